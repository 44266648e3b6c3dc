from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional

from tradeledger.common.logging import log_event
from tradeledger.ledger.models import SanitizedTrade

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterResult:
    trades: List[SanitizedTrade]
    excluded_count: int


def filter_counterparties(
    trades: Iterable[SanitizedTrade],
    excluded_ids: Optional[AbstractSet[str]] = None,
) -> FilterResult:
    """
    Drop trades with an excluded counterparty (bot owners move inventory without
    real economic exchange). An empty or missing set keeps everything.
    """
    excluded = frozenset(str(x).strip() for x in (excluded_ids or ()))
    kept: List[SanitizedTrade] = []
    dropped = 0
    for t in trades:
        partner = t.counterparty_id
        if excluded and partner is not None and str(partner).strip() in excluded:
            dropped += 1
            log_event(
                logger,
                "counterparty.excluded",
                severity="DEBUG",
                message=f"excluding owner trade with {partner}",
                trade_id=t.identifier,
                counterparty_id=str(partner),
            )
            continue
        kept.append(t)
    return FilterResult(trades=kept, excluded_count=dropped)
