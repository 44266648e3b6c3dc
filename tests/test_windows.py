from __future__ import annotations

from tradeledger.analytics.report import PnlReport
from tradeledger.analytics.windows import DAY_MS, WEEK_MS, item_outcomes, profit_windows
from tradeledger.ledger.fifo import ItemSummary
from tradeledger.ledger.models import LedgerPoint

NOW = 1_700_000_000_000


def _pt(ts: int, profit: float) -> LedgerPoint:
    return LedgerPoint(timestamp_iso="", timestamp_ms=ts, cumulative_profit=0.0, trade_profit=profit)


def test_profit_windows_trailing_sums() -> None:
    pts = [
        _pt(NOW - WEEK_MS - 1, 100.0),
        _pt(NOW - WEEK_MS, 50.0),  # boundary: outside
        _pt(NOW - 2 * DAY_MS, 4.0),
        _pt(NOW - DAY_MS + 1, 2.0),
        _pt(NOW, 1.0),
    ]
    w = profit_windows(pts, now_ms=NOW)
    assert w.last_24h == 3.0
    assert w.trades_24h == 2
    assert w.last_7d == 7.0
    assert w.trades_7d == 3
    assert w.all_time == 157.0
    assert w.trades_all == 5
    assert w.avg_per_trade == 157.0 / 5


def test_profit_windows_empty() -> None:
    w = profit_windows([], now_ms=NOW)
    assert (w.all_time, w.trades_all, w.avg_per_trade) == (0, 0, 0.0)


def test_item_outcomes_counts_profitable_and_loss_items() -> None:
    def s(sku: str, p: float) -> ItemSummary:
        return ItemSummary(sku, 0, 1, 1, p, 0.0, 0.0, 1, 0)

    report = PnlReport(
        cumulative_profit=0.0,
        points=[],
        per_item={"a": s("a", 1.0), "b": s("b", -2.0), "c": s("c", 0.0)},
    )
    o = item_outcomes(report)
    assert (o.items_traded, o.profitable_items, o.loss_items) == (3, 1, 1)
