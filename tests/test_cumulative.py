from __future__ import annotations

import logging
from decimal import Decimal

from tradeledger.ledger.cumulative import accumulate, trade_profit
from tradeledger.ledger.currency import resolve_exchange_rate
from tradeledger.ledger.models import CurrencyValue, SanitizedTrade, TradeRecord


def _trade(tid: str, ts: int, given: CurrencyValue | None, received: CurrencyValue | None) -> SanitizedTrade:
    rec = TradeRecord(identifier=tid, timestamp_raw=ts, value_given=given, value_received=received)
    return SanitizedTrade(record=rec, timestamp_ms=ts)


def _metal(v: str) -> CurrencyValue:
    return CurrencyValue(metal=Decimal(v))


def test_accumulate_running_total_and_points() -> None:
    trades = [
        _trade("a", 1_700_000_000_000, _metal("10"), _metal("11")),
        _trade("b", 1_700_000_000_001, _metal("5"), _metal("3")),
        _trade("c", 1_700_000_060_000, CurrencyValue(keys=Decimal("1")), _metal("52.5")),
    ]
    res = accumulate(trades, resolve_exchange_rate(50))

    assert [p.trade_profit for p in res.points] == [1.0, -2.0, 2.5]
    assert [p.cumulative_profit for p in res.points] == [1.0, -1.0, 1.5]
    assert res.total_profit == res.points[-1].cumulative_profit
    assert res.points[1].timestamp_iso == "2023-11-14T22:13:20.001Z"
    assert [p.timestamp_ms for p in res.points] == [t.timestamp_ms for t in trades]


def test_accumulate_empty_history() -> None:
    res = accumulate([], 50)
    assert res.total_profit == 0.0
    assert res.points == []


def test_accumulate_decimal_sum_has_no_float_drift() -> None:
    trades = [_trade(str(i), 1_700_000_000_000 + i, _metal("0"), _metal("0.1")) for i in range(10)]
    res = accumulate(trades, 50)
    assert res.total_profit == 1.0


def test_trade_profit_missing_side_counts_as_zero(caplog) -> None:
    caplog.set_level(logging.WARNING)
    profit = trade_profit(_trade("x", 1, None, _metal("4")), 50)
    assert profit == Decimal("4")
    assert any(getattr(r, "event_type", None) == "ledger.value_missing" for r in caplog.records)


def test_trade_profit_scrap_totals() -> None:
    given = CurrencyValue(total=Decimal("72"))
    received = CurrencyValue(total=Decimal("81"))
    assert trade_profit(_trade("s", 1, given, received), 50) == Decimal("1")
