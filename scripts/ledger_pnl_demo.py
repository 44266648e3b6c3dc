from __future__ import annotations

import json
import os
import sys

# Allow running as: `python3 scripts/ledger_pnl_demo.py` from repo root.
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from tradeledger.analytics.report import compute_pnl_report
from tradeledger.contracts.report import encode_report
from tradeledger.ingest.polldata import accepted_offers, resolve_key_price
from tradeledger.ledger.sample_dataset import (
    EXPECTED_ITEMS,
    EXPECTED_TOTALS,
    SAMPLE_EXCLUDED_IDS,
    SAMPLE_POLLDATA,
    SAMPLE_PRICELIST,
)


def main() -> None:
    res = compute_pnl_report(
        accepted_offers(SAMPLE_POLLDATA),
        exchange_rate=resolve_key_price(SAMPLE_PRICELIST),
        excluded_counterparties=SAMPLE_EXCLUDED_IDS,
    )
    print("Computed P&L report:")
    print(json.dumps(json.loads(encode_report(res)), indent=2, sort_keys=True))
    print("\nExpected totals:")
    print(json.dumps({"totals": EXPECTED_TOTALS, "items": EXPECTED_ITEMS}, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
