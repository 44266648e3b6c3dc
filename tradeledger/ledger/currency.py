"""
Currency normalization for the keys + refined metal model.

Every trade-side value collapses to a single refined-metal scalar:
- `{total}` (scrap): total / 9
- `{keys, metal}`: keys * key_price + metal

The key price comes from the caller's pricelist and is sanity-checked here;
an implausible rate is replaced by a fallback and flagged, never raised.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from tradeledger.common.logging import log_event
from tradeledger.ledger.models import CurrencyValue, to_decimal as _D

logger = logging.getLogger(__name__)

SCRAP_PER_REFINED = Decimal("9")

DEFAULT_KEY_SKU = "5021;6"
# Keys, Refined, Reclaimed, Scrap.
DEFAULT_CURRENCY_SKUS: frozenset[str] = frozenset({"5021;6", "5002;6", "5001;6", "5000;6"})

DEFAULT_KEY_PRICE_FALLBACK = 52.22
# A key never trades anywhere near this many refined; larger values are corrupt data.
DEFAULT_KEY_PRICE_MAX = 1000.0


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    value: Decimal
    degraded: bool
    requested: Optional[float]


def _is_sane_rate(rate: Any, upper_bound: float) -> bool:
    if rate is None or isinstance(rate, bool):
        return False
    try:
        v = float(rate)
    except (TypeError, ValueError):
        return False
    return math.isfinite(v) and 0 < v <= upper_bound


def resolve_exchange_rate(
    rate: Any,
    *,
    fallback: float = DEFAULT_KEY_PRICE_FALLBACK,
    upper_bound: float = DEFAULT_KEY_PRICE_MAX,
) -> ExchangeRate:
    """
    Validate the key price; substitute `fallback` when it is missing, non-positive,
    non-finite or above `upper_bound`.
    """
    if _is_sane_rate(rate, upper_bound):
        return ExchangeRate(value=_D(float(rate)), degraded=False, requested=float(rate))

    requested: Optional[float]
    try:
        requested = None if rate is None or isinstance(rate, bool) else float(rate)
    except (TypeError, ValueError):
        requested = None

    log_event(
        logger,
        "pricing.degraded",
        severity="WARNING",
        message=f"invalid key price {rate!r}, defaulting to {fallback}",
        requested_rate=requested,
        fallback_rate=fallback,
    )
    return ExchangeRate(value=_D(fallback), degraded=True, requested=requested)


def normalize(
    value: Optional[CurrencyValue],
    exchange_rate: Any,
    *,
    fallback_rate: float = DEFAULT_KEY_PRICE_FALLBACK,
    upper_bound: float = DEFAULT_KEY_PRICE_MAX,
) -> Decimal:
    """
    Collapse a trade-side value into refined metal.

    `exchange_rate` may be a raw number or an already-resolved `ExchangeRate`.
    A missing value normalizes to zero.
    """
    if value is None:
        return Decimal("0")

    try:
        if value.is_scrap_total:
            return _D(value.total) / SCRAP_PER_REFINED

        if isinstance(exchange_rate, ExchangeRate):
            rate = exchange_rate.value
        else:
            rate = resolve_exchange_rate(exchange_rate, fallback=fallback_rate, upper_bound=upper_bound).value
        return _D(value.keys) * rate + _D(value.metal)
    except InvalidOperation as e:
        raise ValueError(f"non-numeric currency value: {value!r}") from e
