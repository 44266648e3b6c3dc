from __future__ import annotations

import copy
import logging
import math
from decimal import Decimal
from typing import Any, Dict

import pytest

from tradeledger.analytics.report import assemble, compute_pnl_report, rank_items
from tradeledger.contracts.report import decode_report, encode_report
from tradeledger.ledger.cumulative import CumulativeResult
from tradeledger.ledger.errors import FatalInputError
from tradeledger.ledger.fifo import FifoMatchResult, ItemSummary
from tradeledger.ledger.models import CurrencyValue, TradeRecord
from tradeledger.ingest.polldata import accepted_offers
from tradeledger.ledger.sample_dataset import SAMPLE_EXCLUDED_IDS, SAMPLE_KEY_PRICE, SAMPLE_POLLDATA


def _offer(offer_id: str, ts: int, *, partner: str = "p", our=None, their=None, v_our=0, v_their=0) -> Dict[str, Any]:
    return {
        "id": offer_id,
        "partner": partner,
        "time": ts,
        "dict": {"our": our or {}, "their": their or {}},
        "value": {"our": {"keys": 0, "metal": v_our}, "their": {"keys": 0, "metal": v_their}},
    }


def _summary(sku: str, profit: float) -> ItemSummary:
    return ItemSummary(
        sku=sku,
        net_quantity=0,
        total_acquired=1,
        total_disposed=1,
        realized_profit=profit,
        avg_acquire_price=0.0,
        avg_dispose_price=0.0,
        matched_units=1,
        unmatched_disposals=0,
    )


def test_report_points_strictly_increasing_and_total_matches_last_point() -> None:
    offers = accepted_offers(SAMPLE_POLLDATA)
    res = compute_pnl_report(offers, exchange_rate=SAMPLE_KEY_PRICE, excluded_counterparties=SAMPLE_EXCLUDED_IDS)
    ts = [p.timestamp_ms for p in res.points]
    assert all(a < b for a, b in zip(ts, ts[1:]))
    assert res.cumulative_profit == res.points[-1].cumulative_profit


def test_report_empty_history() -> None:
    res = compute_pnl_report([], exchange_rate=50)
    assert res.cumulative_profit == 0.0
    assert res.points == []
    assert res.per_item == {}
    assert res.warnings == []


def test_report_is_deterministic() -> None:
    offers = accepted_offers(SAMPLE_POLLDATA)
    a = compute_pnl_report(copy.deepcopy(offers), exchange_rate=SAMPLE_KEY_PRICE, excluded_counterparties=SAMPLE_EXCLUDED_IDS)
    b = compute_pnl_report(copy.deepcopy(offers), exchange_rate=SAMPLE_KEY_PRICE, excluded_counterparties=SAMPLE_EXCLUDED_IDS)
    assert encode_report(a) == encode_report(b)


def test_report_accepts_generator_input() -> None:
    offers = accepted_offers(SAMPLE_POLLDATA)
    res = compute_pnl_report((o for o in offers), exchange_rate=SAMPLE_KEY_PRICE)
    # Without exclusion the owner deposit counts: +20 on top of the sample total.
    assert round(res.cumulative_profit, 10) == 25.5
    assert res.excluded_trades == 0


def test_report_currency_only_trade_moves_total_but_not_items() -> None:
    offers = [_offer("c", 1_700_000_000, our={"5021;6": 1}, their={"5002;6": 53}, v_their=53)]
    offers[0]["value"]["our"] = {"keys": 1, "metal": 0}
    res = compute_pnl_report(offers, exchange_rate=50)
    assert res.cumulative_profit == 3.0
    assert res.per_item == {}


def test_report_counterparty_exclusion_drops_trade_everywhere() -> None:
    offers = [
        _offer("a", 1_700_000_000, partner="owner", their={"378;6": 1}, v_their=10),
        _offer("b", 1_700_000_100, partner="x", our={"378;6": 1}, v_our=12),
    ]
    res = compute_pnl_report(offers, exchange_rate=50, excluded_counterparties=frozenset({"owner"}))
    assert res.excluded_trades == 1
    assert res.trades_analyzed == 1
    s = res.per_item["378;6"]
    assert s.total_acquired == 0
    assert s.unmatched_disposals == 1
    assert s.realized_profit == 0.0


def test_report_degraded_pricing_is_flagged(caplog) -> None:
    caplog.set_level(logging.WARNING)
    offers = [_offer("k", 1_700_000_000, v_their=1)]
    offers[0]["value"]["our"] = {"keys": 1, "metal": 0}
    res = compute_pnl_report(offers, exchange_rate=5000)
    assert res.degraded_pricing is True
    assert res.exchange_rate == 52.22
    assert round(res.cumulative_profit, 10) == round(1 - 52.22, 10)
    assert any("fallback" in w for w in res.warnings)
    assert any(getattr(r, "event_type", None) == "pricing.degraded" for r in caplog.records)


def test_report_warnings_for_dropped_records_and_skipped_entries() -> None:
    offers = [
        _offer("ok", 1_700_000_000, their={"378;6": -2}),
        {"id": "no-time", "dict": {"our": {}, "their": {}}},
    ]
    res = compute_pnl_report(offers, exchange_rate=50)
    assert res.dropped_records == 1
    assert res.skipped_entries == 1
    assert "dropped 1 malformed record(s)" in res.warnings
    assert "skipped 1 malformed item entries" in res.warnings


@pytest.mark.parametrize("bad", [None, "offers", b"offers", {"offerData": {}}, 42])
def test_report_rejects_non_collection_history(bad) -> None:
    with pytest.raises(FatalInputError):
        compute_pnl_report(bad, exchange_rate=50)


def test_report_logs_summary_event(caplog) -> None:
    caplog.set_level(logging.INFO)
    compute_pnl_report([_offer("a", 1_700_000_000, v_their=1)], exchange_rate=50)
    recs = [r for r in caplog.records if getattr(r, "event_type", None) == "pnl.report_computed"]
    assert len(recs) == 1
    assert recs[0].trades_analyzed == 1


def test_assemble_passes_values_through() -> None:
    res = assemble(
        CumulativeResult(total_profit=0.0, points=[]),
        FifoMatchResult(items={"a": _summary("a", 1.0)}, skipped_entries=2),
        exchange_rate=50.0,
        excluded_trades=3,
        dropped_records=4,
        warnings=["w"],
    )
    assert res.per_item["a"].realized_profit == 1.0
    assert (res.skipped_entries, res.excluded_trades, res.dropped_records, res.trades_analyzed) == (2, 3, 4, 0)
    assert res.warnings == ["w"]


def test_rank_items_by_absolute_profit() -> None:
    res = assemble(
        CumulativeResult(total_profit=0.0, points=[]),
        FifoMatchResult(
            items={"b": _summary("b", 2.0), "a": _summary("a", -5.0), "c": _summary("c", 2.0)},
            skipped_entries=0,
        ),
    )
    assert [sku for sku, _ in rank_items(res)] == ["a", "b", "c"]


def test_encode_decode_report_contract() -> None:
    offers = accepted_offers(SAMPLE_POLLDATA)
    res = compute_pnl_report(offers, exchange_rate=SAMPLE_KEY_PRICE, excluded_counterparties=SAMPLE_EXCLUDED_IDS)
    raw = encode_report(res)
    assert '"schema":"tradeledger.v1.pnl_report"' in raw
    msg = decode_report(raw)
    assert msg.cumulative_profit == res.cumulative_profit
    assert msg.points[0].timestamp == "2023-11-14T22:13:20.000Z"
    assert msg.per_item["30000;6"].unmatched_disposals == 1
    assert encode_report(msg) == raw


def test_report_drops_prebuilt_record_with_bad_amount_and_stays_finite() -> None:
    good = TradeRecord(
        identifier="good",
        timestamp_raw=1_700_000_000,
        value_given=CurrencyValue(metal=Decimal("1")),
        value_received=CurrencyValue(metal=Decimal("3")),
    )
    for bad_value in (CurrencyValue(total="lots"), CurrencyValue(metal=Decimal("NaN"))):
        bad = TradeRecord(identifier="bad", timestamp_raw=1_700_000_100, value_received=bad_value)
        res = compute_pnl_report([good, bad], exchange_rate=50)
        assert res.cumulative_profit == 2.0
        assert res.trades_analyzed == 1
        assert res.dropped_records == 1
        assert all(math.isfinite(p.cumulative_profit) for p in res.points)
