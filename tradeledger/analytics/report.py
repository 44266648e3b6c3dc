"""
P&L Report Engine

Single entry point that turns an accepted-offer history into a realized P&L
report: sanitize -> exclude counterparties -> {cumulative ledger, FIFO matcher}
-> assemble.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable as IterableABC, Mapping as MappingABC
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Tuple

from tradeledger.common.logging import bind_run_id, log_event
from tradeledger.ledger.counterparty import filter_counterparties
from tradeledger.ledger.cumulative import CumulativeResult, accumulate
from tradeledger.ledger.currency import (
    DEFAULT_CURRENCY_SKUS,
    DEFAULT_KEY_PRICE_FALLBACK,
    DEFAULT_KEY_PRICE_MAX,
    resolve_exchange_rate,
)
from tradeledger.ledger.errors import FatalInputError
from tradeledger.ledger.fifo import FifoMatchResult, ItemSummary, match_fifo
from tradeledger.ledger.models import LedgerPoint
from tradeledger.ledger.sanitize import SanitizeStats, sanitize
from tradeledger.ledger.unit_pricing import UnitPricer, even_split_unit_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PnlReport:
    """Complete realized P&L report for one trade history snapshot"""

    cumulative_profit: float
    points: List[LedgerPoint]
    per_item: Dict[str, ItemSummary]

    exchange_rate: float = 0.0
    degraded_pricing: bool = False
    trades_analyzed: int = 0
    excluded_trades: int = 0
    dropped_records: int = 0
    skipped_entries: int = 0
    warnings: List[str] = field(default_factory=list)


def assemble(
    cumulative: CumulativeResult,
    fifo: FifoMatchResult,
    *,
    exchange_rate: float = 0.0,
    degraded_pricing: bool = False,
    excluded_trades: int = 0,
    dropped_records: int = 0,
    warnings: Optional[List[str]] = None,
) -> PnlReport:
    """Combine ledger and matcher output. No further computation."""
    return PnlReport(
        cumulative_profit=cumulative.total_profit,
        points=list(cumulative.points),
        per_item=dict(fifo.items),
        exchange_rate=exchange_rate,
        degraded_pricing=degraded_pricing,
        trades_analyzed=len(cumulative.points),
        excluded_trades=excluded_trades,
        dropped_records=dropped_records,
        skipped_entries=fifo.skipped_entries,
        warnings=list(warnings or []),
    )


def rank_items(report: PnlReport) -> List[Tuple[str, ItemSummary]]:
    """Items ordered by absolute realized profit, largest impact first (ties by SKU)."""
    return sorted(report.per_item.items(), key=lambda kv: (-abs(kv[1].realized_profit), kv[0]))


def _check_records(records: Any) -> Iterable[Any]:
    if records is None:
        raise FatalInputError("trade history is missing")
    if isinstance(records, (str, bytes, bytearray, MappingABC)):
        raise FatalInputError(f"trade history must be a collection of records, got {type(records).__name__}")
    if not isinstance(records, IterableABC):
        raise FatalInputError(f"trade history is not iterable: {type(records).__name__}")
    return records


def compute_pnl_report(
    records: Iterable[Any],
    *,
    exchange_rate: Any,
    excluded_counterparties: Optional[AbstractSet[str]] = None,
    currency_skus: AbstractSet[str] = DEFAULT_CURRENCY_SKUS,
    fallback_exchange_rate: float = DEFAULT_KEY_PRICE_FALLBACK,
    exchange_rate_upper_bound: float = DEFAULT_KEY_PRICE_MAX,
    unit_pricer: UnitPricer = even_split_unit_price,
) -> PnlReport:
    """
    Compute realized P&L for a full accepted-offer history.

    Args:
        records: raw polldata offer mappings and/or TradeRecord objects
        exchange_rate: key price in refined metal (validated; fallback on failure)
        excluded_counterparties: ids whose trades are ignored entirely
        currency_skus: SKUs never treated as tradeable items
        fallback_exchange_rate: rate used when `exchange_rate` is implausible
        exchange_rate_upper_bound: sanity bound for `exchange_rate`
        unit_pricer: per-unit price fallback for items without explicit prices

    Returns:
        PnlReport

    Raises:
        FatalInputError: `records` is absent or not a record collection.
    """
    history = _check_records(records)

    with bind_run_id():
        warnings: List[str] = []
        rate = resolve_exchange_rate(
            exchange_rate,
            fallback=fallback_exchange_rate,
            upper_bound=exchange_rate_upper_bound,
        )
        if rate.degraded:
            warnings.append(f"key price {exchange_rate!r} is invalid; using fallback {fallback_exchange_rate}")

        stats = SanitizeStats()
        ordered = list(sanitize(history, stats=stats))
        if stats.dropped_records:
            warnings.append(f"dropped {stats.dropped_records} malformed record(s)")

        filtered = filter_counterparties(ordered, excluded_counterparties)

        cumulative = accumulate(filtered.trades, rate)
        fifo = match_fifo(filtered.trades, rate, currency_skus, unit_pricer=unit_pricer)
        if fifo.skipped_entries:
            warnings.append(f"skipped {fifo.skipped_entries} malformed item entries")

        report = assemble(
            cumulative,
            fifo,
            exchange_rate=float(rate.value),
            degraded_pricing=rate.degraded,
            excluded_trades=filtered.excluded_count,
            dropped_records=stats.dropped_records,
            warnings=warnings,
        )

        log_event(
            logger,
            "pnl.report_computed",
            severity="INFO",
            message=f"Total trades: {len(ordered)}, after owner exclusion: {len(filtered.trades)}",
            records_seen=stats.seen_records,
            trades_analyzed=report.trades_analyzed,
            excluded_trades=report.excluded_trades,
            dropped_records=report.dropped_records,
            items=len(report.per_item),
            cumulative_profit=report.cumulative_profit,
        )
        return report
