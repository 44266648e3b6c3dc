"""
Rolling profit windows and item outcome counts for dashboard summaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from tradeledger.analytics.report import PnlReport
from tradeledger.ledger.models import LedgerPoint

DAY_MS = 24 * 60 * 60 * 1000
WEEK_MS = 7 * DAY_MS


@dataclass(frozen=True)
class ProfitWindows:
    """Realized profit over trailing windows (refined metal)"""

    last_24h: float
    last_7d: float
    all_time: float
    trades_24h: int
    trades_7d: int
    trades_all: int
    avg_per_trade: float


@dataclass(frozen=True)
class ItemOutcomes:
    items_traded: int
    profitable_items: int
    loss_items: int


def profit_windows(points: Iterable[LedgerPoint], *, now_ms: int) -> ProfitWindows:
    """
    Sum per-trade profit over the trailing 24h / 7d windows ending at `now_ms`.

    A trade at exactly `now_ms - window` is outside the window.
    """
    pts: List[LedgerPoint] = list(points)
    day = [p for p in pts if p.timestamp_ms > now_ms - DAY_MS]
    week = [p for p in pts if p.timestamp_ms > now_ms - WEEK_MS]
    total = sum(p.trade_profit for p in pts)
    return ProfitWindows(
        last_24h=sum(p.trade_profit for p in day),
        last_7d=sum(p.trade_profit for p in week),
        all_time=total,
        trades_24h=len(day),
        trades_7d=len(week),
        trades_all=len(pts),
        avg_per_trade=(total / len(pts)) if pts else 0.0,
    )


def item_outcomes(report: PnlReport) -> ItemOutcomes:
    profits = [s.realized_profit for s in report.per_item.values()]
    return ItemOutcomes(
        items_traded=len(profits),
        profitable_items=sum(1 for p in profits if p > 0),
        loss_items=sum(1 for p in profits if p < 0),
    )
