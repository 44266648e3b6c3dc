from __future__ import annotations

"""
Per-item realized P&L using FIFO unit matching.

Choice: FIFO (first-in-first-out), one event per unit.

How it works:
- Items received in a trade become acquisition events; items given away become
  disposal events. Currency SKUs never produce events.
- Each event carries a per-unit price in refined metal: the bot's explicit
  per-item price when recorded, otherwise the side's total value spread by the
  configured `UnitPricer`.
- Per SKU, each disposal consumes the oldest unconsumed acquisition and realizes
  `disposal_price - acquisition_price`.

Unmatched tail:
- Once a SKU runs out of acquisitions, matching stops for that SKU. Units sold
  from inventory acquired before the observed history have no known cost basis,
  so they are counted in `total_disposed` but excluded from realized profit.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import AbstractSet, Any, Deque, Dict, Iterable, List, Mapping, Optional, Tuple

from tradeledger.common.logging import log_event
from tradeledger.ledger.currency import DEFAULT_CURRENCY_SKUS, ExchangeRate, normalize
from tradeledger.ledger.models import AcquisitionEvent, CurrencyValue, DisposalEvent, SanitizedTrade
from tradeledger.ledger.unit_pricing import UnitPricer, even_split_unit_price

logger = logging.getLogger(__name__)

# Events are materialized per unit; a single entry above this is corrupt data.
MAX_UNITS_PER_ENTRY = 100_000


@dataclass(frozen=True, slots=True)
class ItemSummary:
    sku: str
    net_quantity: int
    total_acquired: int
    total_disposed: int
    realized_profit: float  # FIFO-matched units only
    avg_acquire_price: float
    avg_dispose_price: float
    matched_units: int
    unmatched_disposals: int


@dataclass(slots=True)
class ItemLedgerEntry:
    """
    Working state for one SKU during a single report computation.

    Queues are append-only while trades are read and consumed front-to-back by
    `settle()`.
    """

    sku: str
    acquisitions: Deque[AcquisitionEvent] = field(default_factory=deque)
    disposals: Deque[DisposalEvent] = field(default_factory=deque)
    total_acquired: int = 0
    total_disposed: int = 0
    realized_profit: Decimal = Decimal("0")
    matched_units: int = 0

    def acquire(self, unit_price: Decimal, timestamp_ms: int, qty: int) -> None:
        for _ in range(qty):
            self.acquisitions.append(AcquisitionEvent(sku=self.sku, unit_price=unit_price, timestamp_ms=timestamp_ms))
        self.total_acquired += qty

    def dispose(self, unit_price: Decimal, timestamp_ms: int, qty: int) -> None:
        for _ in range(qty):
            self.disposals.append(DisposalEvent(sku=self.sku, unit_price=unit_price, timestamp_ms=timestamp_ms))
        self.total_disposed += qty

    def settle(self) -> None:
        # Already time-ordered by construction; sorted() is stable so this only
        # guards against callers feeding unordered trades.
        buys = deque(sorted(self.acquisitions, key=lambda e: e.timestamp_ms))
        sells = sorted(self.disposals, key=lambda e: e.timestamp_ms)

        realized = Decimal("0")
        matched = 0
        for sell in sells:
            if not buys:
                break
            buy = buys.popleft()
            realized += sell.unit_price - buy.unit_price
            matched += 1

        self.realized_profit = realized
        self.matched_units = matched

    def summary(self) -> ItemSummary:
        n_buy = len(self.acquisitions)
        n_sell = len(self.disposals)
        avg_buy = sum((e.unit_price for e in self.acquisitions), Decimal("0")) / n_buy if n_buy else Decimal("0")
        avg_sell = sum((e.unit_price for e in self.disposals), Decimal("0")) / n_sell if n_sell else Decimal("0")
        return ItemSummary(
            sku=self.sku,
            net_quantity=self.total_acquired - self.total_disposed,
            total_acquired=self.total_acquired,
            total_disposed=self.total_disposed,
            realized_profit=float(self.realized_profit),
            avg_acquire_price=float(avg_buy),
            avg_dispose_price=float(avg_sell),
            matched_units=self.matched_units,
            unmatched_disposals=self.total_disposed - self.matched_units,
        )


@dataclass(frozen=True, slots=True)
class FifoMatchResult:
    items: Dict[str, ItemSummary]
    skipped_entries: int


def _unit_count(qty: Any) -> Optional[int]:
    """Whole unit count in [0, MAX_UNITS_PER_ENTRY], or None when the entry is malformed."""
    n: Optional[int] = None
    if isinstance(qty, bool):
        return None
    if isinstance(qty, int):
        n = qty
    elif isinstance(qty, float):
        n = int(qty) if qty.is_integer() else None
    elif isinstance(qty, str):
        s = qty.strip()
        n = int(s) if s.isdigit() else None
    if n is None or n < 0 or n > MAX_UNITS_PER_ENTRY:
        return None
    return n


def _side_entries(
    trade: SanitizedTrade,
    items: Mapping[str, Any],
    currency_skus: AbstractSet[str],
    side: str,
) -> Tuple[List[Tuple[str, int]], int]:
    entries: List[Tuple[str, int]] = []
    skipped = 0
    for sku, qty in items.items():
        if sku in currency_skus:
            continue
        n = _unit_count(qty)
        if n is None:
            skipped += 1
            log_event(
                logger,
                "fifo.entry_skipped",
                severity="WARNING",
                message=f"skipping malformed quantity {qty!r} for {sku} in trade {trade.identifier}",
                trade_id=trade.identifier,
                sku=sku,
                side=side,
            )
            continue
        if n == 0:
            continue
        entries.append((str(sku), n))
    return entries, skipped


def _explicit_price(
    trade: SanitizedTrade,
    sku: str,
    side: str,
) -> Optional[CurrencyValue]:
    price = trade.record.item_prices.get(sku)
    if price is None:
        return None
    return price.sell if side == "given" else price.buy


def match_fifo(
    trades: Iterable[SanitizedTrade],
    exchange_rate: ExchangeRate | float,
    currency_skus: AbstractSet[str] = DEFAULT_CURRENCY_SKUS,
    *,
    unit_pricer: UnitPricer = even_split_unit_price,
) -> FifoMatchResult:
    """
    Compute per-SKU realized P&L with FIFO unit matching.

    Returns one ItemSummary per SKU that saw at least one acquisition or
    disposal, plus the number of item entries skipped as malformed.
    """
    ledger: Dict[str, ItemLedgerEntry] = {}
    skipped_total = 0

    for t in trades:
        rec = t.record
        for side, items, value in (
            ("given", rec.items_given, rec.value_given),
            ("received", rec.items_received, rec.value_received),
        ):
            entries, skipped = _side_entries(t, items, currency_skus, side)
            skipped_total += skipped
            if not entries:
                continue

            unit_count = sum(n for _, n in entries)
            fallback_price = unit_pricer(normalize(value, exchange_rate), unit_count)

            for sku, n in entries:
                explicit = _explicit_price(t, sku, side)
                unit_price = normalize(explicit, exchange_rate) if explicit is not None else fallback_price

                entry = ledger.get(sku)
                if entry is None:
                    entry = ItemLedgerEntry(sku=sku)
                    ledger[sku] = entry
                if side == "given":
                    entry.dispose(unit_price, t.timestamp_ms, n)
                else:
                    entry.acquire(unit_price, t.timestamp_ms, n)

    out: Dict[str, ItemSummary] = {}
    for sku, entry in ledger.items():
        if entry.total_acquired == 0 and entry.total_disposed == 0:
            continue
        entry.settle()
        out[sku] = entry.summary()

    return FifoMatchResult(items=out, skipped_entries=skipped_total)
