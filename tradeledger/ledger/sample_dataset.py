from __future__ import annotations

"""
Sample polldata offer history + expected P&L (FIFO, key price 50 ref).

Shapes mirror the bot's polldata.json:
  offerData/{offer_id}: {partner, time|actionTimestamp|handleTimestamp,
                         isAccepted|action, dict{our,their}, value{our,their}, prices}

Walkthrough (profit = their value - our value, in refined):
- o1  buys 2x 378;6 for 10 ref, their side valued at 11        -> +1.0
- o2  same second as o1 (bumped +1 ms), sells 1x 378;6 for 7   ->  0.0
- o3  sells 1x 378;6 at an explicit 8 ref, scrap totals 72/81   -> +1.0
- o4  owner deposit, excluded
- o5  currency only: 1 key (50) for 52 ref                       -> +2.0
- o6  sells 30000;6 never bought: 1 key + 5 vs 1 key + 6        -> +1.0
- o7  declined, never reaches the engine
- o8  accepted but no timestamp, dropped
- o9  accepted via action, buys 1x 378;6 for 3 ref (valued 3.5) -> +0.5

FIFO 378;6: buys 5.5, 5.5, 3.5; sells 7, 8 -> (7-5.5) + (8-5.5) = 4.0
FIFO 30000;6: one sell at 55 with nothing to match -> 0.0, net -1
"""

from typing import Any, Dict

SAMPLE_KEY_PRICE = 50.0
OWNER_ID = "76561198000000001"
SAMPLE_EXCLUDED_IDS = frozenset({OWNER_ID})

ITEM_TEAM_CAPTAIN = "378;6"
ITEM_UNBOUGHT = "30000;6"


def _v(keys: float = 0, metal: float = 0) -> Dict[str, float]:
    return {"keys": keys, "metal": metal}


SAMPLE_POLLDATA: Dict[str, Any] = {
    "offerData": {
        "o1": {
            "partner": "76561198000000011",
            "isAccepted": True,
            "time": 1_700_000_000,
            "dict": {"our": {"5002;6": 10}, "their": {ITEM_TEAM_CAPTAIN: 2}},
            "value": {"our": _v(metal=10), "their": _v(metal=11)},
        },
        "o2": {
            "partner": "76561198000000012",
            "isAccepted": True,
            "time": 1_700_000_000,
            "dict": {"our": {ITEM_TEAM_CAPTAIN: 1}, "their": {"5002;6": 7}},
            "value": {"our": _v(metal=7), "their": _v(metal=7)},
        },
        "o3": {
            "partner": 76561198000000011,
            "isAccepted": True,
            "actionTimestamp": 1_700_003_600_000,
            "dict": {"our": {ITEM_TEAM_CAPTAIN: 1, "5000;6": 0}, "their": {"5002;6": 9}},
            "value": {"our": {"total": 72}, "their": {"total": 81}},
            "prices": {ITEM_TEAM_CAPTAIN: {"sell": _v(metal=8)}},
        },
        "o4": {
            "partner": OWNER_ID,
            "isAccepted": True,
            "time": 1_700_007_200,
            "dict": {"our": {}, "their": {"999;6": 5}},
            "value": {"our": _v(), "their": _v(metal=20)},
        },
        "o5": {
            "partner": "76561198000000013",
            "isAccepted": True,
            "time": 1_700_010_800,
            "dict": {"our": {"5021;6": 1}, "their": {"5002;6": 52}},
            "value": {"our": _v(keys=1), "their": _v(metal=52)},
        },
        "o6": {
            "partner": "76561198000000012",
            "isAccepted": True,
            "time": 1_700_014_400,
            "dict": {"our": {ITEM_UNBOUGHT: 1}, "their": {"5021;6": 1, "5002;6": 6}},
            "value": {"our": _v(keys=1, metal=5), "their": _v(keys=1, metal=6)},
        },
        "o7": {
            "partner": "76561198000000014",
            "isAccepted": False,
            "action": {"action": "decline"},
            "time": 1_700_015_000,
            "dict": {"our": {ITEM_TEAM_CAPTAIN: 1}, "their": {"5002;6": 100}},
            "value": {"our": _v(metal=1), "their": _v(metal=100)},
        },
        "o8": {
            "partner": "76561198000000015",
            "isAccepted": True,
            "dict": {"our": {"5002;6": 1}, "their": {"5002;6": 2}},
            "value": {"our": _v(metal=1), "their": _v(metal=2)},
        },
        "o9": {
            "partner": "76561198000000016",
            "action": {"action": "accept"},
            "handleTimestamp": 1_700_018_000,
            "dict": {"our": {"5002;6": 3}, "their": {ITEM_TEAM_CAPTAIN: 1, "5000;6": 3}},
            "value": {"our": _v(metal=3), "their": _v(metal=3.5)},
        },
    }
}

SAMPLE_PRICELIST: Dict[str, Any] = {
    "items": [
        {"sku": "5021;6", "name": "Mann Co. Supply Crate Key", "buy": _v(metal=49.5), "sell": _v(metal=SAMPLE_KEY_PRICE)},
        {"sku": ITEM_TEAM_CAPTAIN, "name": "The Team Captain", "buy": _v(metal=5.5), "sell": _v(metal=8)},
        {"sku": ITEM_UNBOUGHT, "name": "Unusual Test Hat", "buy": _v(keys=1), "sell": _v(keys=1, metal=5)},
    ]
}

EXPECTED_TOTALS: Dict[str, Any] = {
    "cumulative_profit": 5.5,
    "trades_analyzed": 6,
    "excluded_trades": 1,
    "dropped_records": 1,
    "cumulative_series": [1.0, 1.0, 2.0, 4.0, 5.0, 5.5],
    "first_two_timestamps_ms": [1_700_000_000_000, 1_700_000_000_001],
}

EXPECTED_ITEMS: Dict[str, Dict[str, Any]] = {
    ITEM_TEAM_CAPTAIN: {
        "net_quantity": 1,
        "total_acquired": 3,
        "total_disposed": 2,
        "realized_profit": 4.0,
        "avg_dispose_price": 7.5,
        "matched_units": 2,
        "unmatched_disposals": 0,
    },
    ITEM_UNBOUGHT: {
        "net_quantity": -1,
        "total_acquired": 0,
        "total_disposed": 1,
        "realized_profit": 0.0,
        "avg_dispose_price": 55.0,
        "matched_units": 0,
        "unmatched_disposals": 1,
    },
}
