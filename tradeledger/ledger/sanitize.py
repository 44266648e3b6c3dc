"""
Offer record sanitizing: parse, resolve timestamps, enforce a strict total order.

Input records come in two shapes:
- raw polldata offer mappings (validated through `OfferRecord`)
- already-built `TradeRecord` instances

Anything that cannot yield a usable trade is dropped and counted; nothing here
raises for a single bad record.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import InvalidOperation
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from tradeledger.common.logging import log_event
from tradeledger.contracts.offers import CurrencyAmount, OfferRecord
from tradeledger.ledger.errors import MalformedRecordError
from tradeledger.ledger.models import CurrencyValue, ItemPrice, SanitizedTrade, TradeRecord, to_decimal as _D
from tradeledger.time.timestamps import parse_to_millis

logger = logging.getLogger(__name__)

# Ordered by preference: first non-null wins.
TIMESTAMP_FIELDS: Tuple[str, ...] = ("time", "actionTimestamp", "handleTimestamp")


@dataclass(slots=True)
class SanitizeStats:
    seen_records: int = 0
    dropped_records: int = 0
    bumped_timestamps: int = 0
    drop_reasons: Counter = field(default_factory=Counter)

    def drop(self, reason: str) -> None:
        self.dropped_records += 1
        self.drop_reasons[reason] += 1


def _currency_value(amount: Optional[CurrencyAmount]) -> Optional[CurrencyValue]:
    if amount is None:
        return None
    total = None if amount.total is None else _D(amount.total)
    return CurrencyValue(keys=_D(amount.keys), metal=_D(amount.metal), total=total)


def resolve_raw_timestamp(offer: Mapping[str, Any] | OfferRecord) -> Any:
    """Return the first non-null timestamp candidate, or None."""
    for name in TIMESTAMP_FIELDS:
        v = offer.get(name) if isinstance(offer, Mapping) else getattr(offer, name, None)
        if v is not None:
            return v
    return None


def parse_trade_record(raw: Mapping[str, Any], *, index: int = 0) -> TradeRecord:
    """
    Build a TradeRecord from one raw offer mapping.

    Raises MalformedRecordError when the mapping fails validation (e.g. a
    non-numeric currency value).
    """
    try:
        offer = OfferRecord.model_validate(dict(raw))
    except ValidationError as e:
        raise MalformedRecordError("invalid_shape", f"offer record failed validation: {e.error_count()} error(s)") from e

    items = offer.items
    value = offer.value
    prices = {
        sku: ItemPrice(buy=_currency_value(p.buy), sell=_currency_value(p.sell))
        for sku, p in (offer.prices or {}).items()
    }
    return TradeRecord(
        identifier=offer.id or f"offer_{index}",
        counterparty_id=offer.partner,
        timestamp_raw=resolve_raw_timestamp(offer),
        items_given=dict((items.our if items else None) or {}),
        items_received=dict((items.their if items else None) or {}),
        value_given=_currency_value(value.our if value else None),
        value_received=_currency_value(value.their if value else None),
        item_prices=prices,
    )


def _to_record(raw: Any, index: int) -> TradeRecord:
    if isinstance(raw, TradeRecord):
        return raw
    if isinstance(raw, Mapping):
        return parse_trade_record(raw, index=index)
    raise MalformedRecordError("not_a_record", f"unsupported record type: {type(raw).__name__}")


def _check_value(value: Any, where: str) -> None:
    if value is None:
        return
    if not isinstance(value, CurrencyValue):
        raise MalformedRecordError("invalid_value", f"{where} is not a currency value: {type(value).__name__}")
    for name in ("keys", "metal", "total"):
        raw = getattr(value, name)
        if raw is None and name == "total":
            continue
        try:
            d = _D(raw)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise MalformedRecordError("invalid_value", f"{where}.{name} is not numeric: {raw!r}") from e
        if not d.is_finite():
            raise MalformedRecordError("invalid_value", f"{where}.{name} is not finite: {raw!r}")


def check_record_values(rec: TradeRecord) -> None:
    """
    Every currency amount on the record must be a finite number.

    Parsed offers already hold this (NaN/inf fail validation); prebuilt
    TradeRecords are checked here so one bad amount cannot poison the totals.
    """
    _check_value(rec.value_given, "value_given")
    _check_value(rec.value_received, "value_received")
    for sku, price in rec.item_prices.items():
        if not isinstance(price, ItemPrice):
            raise MalformedRecordError("invalid_value", f"price for {sku} is not an ItemPrice")
        _check_value(price.buy, f"prices[{sku}].buy")
        _check_value(price.sell, f"prices[{sku}].sell")


def _resolve(records: Iterable[Any], stats: SanitizeStats) -> List[Tuple[int, TradeRecord]]:
    resolved: List[Tuple[int, TradeRecord]] = []
    for i, raw in enumerate(records):
        stats.seen_records += 1
        try:
            rec = _to_record(raw, i)
            check_record_values(rec)
            if rec.timestamp_raw is None:
                raise MalformedRecordError("missing_timestamp", "no timestamp field present")
            try:
                ts_ms = parse_to_millis(rec.timestamp_raw)
            except (TypeError, ValueError) as e:
                raise MalformedRecordError("invalid_timestamp", str(e)) from e
        except MalformedRecordError as e:
            stats.drop(e.reason)
            log_event(
                logger,
                "sanitize.record_dropped",
                severity="WARNING",
                message=f"dropping offer record #{i}: {e}",
                record_index=i,
                reason=e.reason,
            )
            continue
        resolved.append((ts_ms, rec))
    return resolved


def sanitize(records: Iterable[Any], *, stats: Optional[SanitizeStats] = None) -> Iterator[SanitizedTrade]:
    """
    Yield SanitizedTrades in strictly increasing timestamp order.

    - Survivors are stably sorted by resolved timestamp (ties keep input order).
    - A timestamp equal to or below its predecessor is moved to previous + 1 ms.

    This is a generator: the input is consumed on first iteration and the
    sequence is restarted only by calling `sanitize` again.
    """
    st = stats if stats is not None else SanitizeStats()
    resolved = _resolve(records, st)
    # sorted() is stable, so equal timestamps keep their input order.
    resolved = sorted(resolved, key=lambda pair: pair[0])

    last_ms: Optional[int] = None
    for ts_ms, rec in resolved:
        if last_ms is not None and ts_ms <= last_ms:
            ts_ms = last_ms + 1
            st.bumped_timestamps += 1
        last_ms = ts_ms
        yield SanitizedTrade(record=rec, timestamp_ms=ts_ms)
