from __future__ import annotations

"""
Cumulative realized P&L over the ordered trade sequence.

Each trade contributes `value_received - value_given` (in refined metal); one
LedgerPoint per trade carries the running total. Points inherit the strict
timestamp order produced by the sanitizer.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from tradeledger.common.logging import log_event
from tradeledger.ledger.currency import ExchangeRate, normalize
from tradeledger.ledger.models import LedgerPoint, SanitizedTrade
from tradeledger.time.timestamps import millis_to_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CumulativeResult:
    total_profit: float
    points: List[LedgerPoint]


def trade_profit(trade: SanitizedTrade, exchange_rate: ExchangeRate | float) -> Decimal:
    rec = trade.record
    if rec.value_given is None or rec.value_received is None:
        log_event(
            logger,
            "ledger.value_missing",
            severity="WARNING",
            message=f"trade {rec.identifier} has no value for one side; counting it as zero",
            trade_id=rec.identifier,
            missing_given=rec.value_given is None,
            missing_received=rec.value_received is None,
        )
    given = normalize(rec.value_given, exchange_rate)
    received = normalize(rec.value_received, exchange_rate)
    return received - given


def accumulate(trades: Iterable[SanitizedTrade], exchange_rate: ExchangeRate | float) -> CumulativeResult:
    running = Decimal("0")
    points: List[LedgerPoint] = []
    for t in trades:
        profit = trade_profit(t, exchange_rate)
        running += profit
        points.append(
            LedgerPoint(
                timestamp_iso=millis_to_iso(t.timestamp_ms),
                timestamp_ms=t.timestamp_ms,
                cumulative_profit=float(running),
                trade_profit=float(profit),
            )
        )
    return CumulativeResult(total_profit=float(running), points=points)
