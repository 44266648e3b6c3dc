"""Analytics module for realized P&L reporting"""

from tradeledger.analytics.report import (
    PnlReport,
    assemble,
    compute_pnl_report,
    rank_items,
)
from tradeledger.analytics.windows import (
    ItemOutcomes,
    ProfitWindows,
    item_outcomes,
    profit_windows,
)

__all__ = [
    "PnlReport",
    "assemble",
    "compute_pnl_report",
    "rank_items",
    "ItemOutcomes",
    "ProfitWindows",
    "item_outcomes",
    "profit_windows",
]
