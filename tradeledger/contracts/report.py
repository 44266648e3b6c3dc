from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import Field

from tradeledger.analytics.report import PnlReport
from tradeledger.contracts.base import CONTRACT_VERSION_V1, ContractBase


class LedgerPointV1(ContractBase):
    timestamp: str = Field(..., description="ISO-8601 instant, millisecond precision.")
    cumulative_profit: float
    trade_profit: float


class ItemSummaryV1(ContractBase):
    net_quantity: int
    total_acquired: int
    total_disposed: int
    realized_profit: float
    avg_acquire_price: float
    avg_dispose_price: float
    matched_units: int
    unmatched_disposals: int


class PnlReportV1(ContractBase):
    """
    JSON shape of a realized P&L report.

    All amounts are refined metal.
    """

    schema_name: Literal["tradeledger.v1.pnl_report"] = Field(default="tradeledger.v1.pnl_report", alias="schema")
    schema_version: Literal["1.0.0"] = CONTRACT_VERSION_V1

    cumulative_profit: float
    points: List[LedgerPointV1] = Field(default_factory=list)
    per_item: Dict[str, ItemSummaryV1] = Field(default_factory=dict)

    exchange_rate: float
    degraded_pricing: bool = False
    trades_analyzed: int = 0
    excluded_trades: int = 0
    dropped_records: int = 0
    skipped_entries: int = 0
    warnings: List[str] = Field(default_factory=list)


def to_contract(report: PnlReport) -> PnlReportV1:
    return PnlReportV1(
        cumulative_profit=report.cumulative_profit,
        points=[
            LedgerPointV1(
                timestamp=p.timestamp_iso,
                cumulative_profit=p.cumulative_profit,
                trade_profit=p.trade_profit,
            )
            for p in report.points
        ],
        per_item={
            sku: ItemSummaryV1(
                net_quantity=s.net_quantity,
                total_acquired=s.total_acquired,
                total_disposed=s.total_disposed,
                realized_profit=s.realized_profit,
                avg_acquire_price=s.avg_acquire_price,
                avg_dispose_price=s.avg_dispose_price,
                matched_units=s.matched_units,
                unmatched_disposals=s.unmatched_disposals,
            )
            for sku, s in report.per_item.items()
        },
        exchange_rate=report.exchange_rate,
        degraded_pricing=report.degraded_pricing,
        trades_analyzed=report.trades_analyzed,
        excluded_trades=report.excluded_trades,
        dropped_records=report.dropped_records,
        skipped_entries=report.skipped_entries,
        warnings=list(report.warnings),
    )


def encode_report(report: PnlReport | PnlReportV1, *, indent: int | None = None) -> str:
    """
    Encode a report as JSON (field order fixed by the model, so identical
    reports encode to identical bytes).
    """
    msg = report if isinstance(report, PnlReportV1) else to_contract(report)
    return msg.model_dump_json(by_alias=True, indent=indent)


def decode_report(raw: bytes | str) -> PnlReportV1:
    """Decode and validate a JSON report."""
    return PnlReportV1.model_validate_json(raw)
