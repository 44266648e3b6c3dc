"""
tradeledger-pnl: compute a realized P&L report from a bot's polldata.json.

Usage:
  tradeledger-pnl --polldata path/to/polldata.json --pricelist files/pricelist.json \
      [--config config.json] [--format json|table] [--top 20]
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional, Sequence

from tradeledger.analytics.report import PnlReport, compute_pnl_report, rank_items
from tradeledger.analytics.windows import item_outcomes, profit_windows
from tradeledger.common.config import load_ledger_settings
from tradeledger.common.logging import init_structured_logging
from tradeledger.contracts.report import encode_report
from tradeledger.ingest.polldata import accepted_offers, item_names, read_polldata, read_pricelist, resolve_key_price
from tradeledger.ledger.errors import FatalInputError

logger = logging.getLogger(__name__)


def _signed(v: float, digits: int = 2) -> str:
    return f"{'+' if v >= 0 else ''}{v:.{digits}f}"


def render_table(report: PnlReport, *, names: dict[str, str], top: Optional[int] = None, now_ms: Optional[int] = None) -> str:
    now = int(time.time() * 1000) if now_ms is None else now_ms
    win = profit_windows(report.points, now_ms=now)
    outcomes = item_outcomes(report)

    lines: List[str] = [
        f"Total net profit:     {_signed(report.cumulative_profit)} ref",
        f"Key price used:       {report.exchange_rate:.2f} ref{' (fallback)' if report.degraded_pricing else ''}",
        f"Trades analyzed:      {report.trades_analyzed}",
        f"Owner trades excluded: {report.excluded_trades}",
        f"Last 24h / 7d:        {_signed(win.last_24h)} / {_signed(win.last_7d)} ref",
        f"Avg per trade:        {win.avg_per_trade:.2f} ref",
        f"Items traded:         {outcomes.items_traded} "
        f"(profitable {outcomes.profitable_items}, loss {outcomes.loss_items})",
        "",
        f"{'Item':<40} {'Net':>5} {'Bought':>7} {'Sold':>5} {'P/L':>10} {'Avg buy':>9} {'Avg sell':>9}",
    ]
    ranked = rank_items(report)
    if top is not None:
        ranked = ranked[:top]
    for sku, s in ranked:
        label = names.get(sku, sku)[:40]
        lines.append(
            f"{label:<40} {s.net_quantity:>5} {s.total_acquired:>7} {s.total_disposed:>5} "
            f"{_signed(s.realized_profit):>10} {s.avg_acquire_price:>9.3f} {s.avg_dispose_price:>9.3f}"
        )
    for w in report.warnings:
        lines.append(f"warning: {w}")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="tradeledger-pnl", description="Realized P&L from bot offer history")
    p.add_argument("--polldata", required=True, help="Path to the bot's polldata.json")
    p.add_argument("--pricelist", required=True, help="Path to pricelist.json (key price + item names)")
    p.add_argument("--config", default=None, help="Optional bot config.json (botOwnerSteamIDs are excluded)")
    p.add_argument("--format", choices=("json", "table"), default="json", help="Output format")
    p.add_argument("--top", type=int, default=None, help="Only show the N items with the largest P/L (table)")
    p.add_argument("--indent", type=int, default=None, help="JSON indent")
    args = p.parse_args(argv)

    # Logging first so settings problems (e.g. an unreadable config.json) are JSON lines too.
    init_structured_logging(service="tradeledger-pnl", stream=sys.stderr)
    settings = load_ledger_settings(config_path=args.config)

    try:
        polldata = read_polldata(args.polldata)
        offers = accepted_offers(polldata)
    except FatalInputError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        pricelist = read_pricelist(args.pricelist)
    except FatalInputError as e:
        # Pricing degrades to the fallback key price; names fall back to SKUs.
        logger.warning("pricelist unavailable: %s", e)
        pricelist = {}

    report = compute_pnl_report(
        offers,
        exchange_rate=resolve_key_price(pricelist, key_sku=settings.key_sku),
        excluded_counterparties=settings.excluded_counterparties,
        currency_skus=settings.currency_skus,
        fallback_exchange_rate=settings.key_price_fallback,
        exchange_rate_upper_bound=settings.key_price_max,
    )

    if args.format == "table":
        print(render_table(report, names=item_names(pricelist), top=args.top))
    else:
        print(encode_report(report, indent=args.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
