"""
Readers for the bot's on-disk state.

These run on the caller's side of the engine: they do the file I/O and hand
already-parsed data to `compute_pnl_report`.

- polldata.json: `{"offerData": {offer_id: offer, ...}, ...}`
- pricelist.json: `{"items": [{"sku", "name", "buy", "sell"}, ...]}`
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tradeledger.common.logging import log_event
from tradeledger.contracts.offers import Pricelist
from tradeledger.ledger.currency import DEFAULT_KEY_SKU
from tradeledger.ledger.errors import FatalInputError

logger = logging.getLogger(__name__)


def _read_json_object(path: Path, what: str) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as e:
        raise FatalInputError(f"{what} not found: {path}") from e
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FatalInputError(f"unable to load {what} from {path}: {e}") from e
    if not isinstance(data, dict):
        raise FatalInputError(f"{what} at {path} is not a JSON object")
    return data


def read_polldata(path: str | Path) -> Dict[str, Any]:
    """Load polldata.json. Missing or corrupt files are fatal for a report run."""
    return _read_json_object(Path(path), "polldata")


def read_pricelist(path: str | Path) -> Dict[str, Any]:
    return _read_json_object(Path(path), "pricelist")


def _is_accepted(offer: Mapping[str, Any]) -> bool:
    if offer.get("isAccepted") is True:
        return True
    action = offer.get("action")
    return isinstance(action, Mapping) and action.get("action") == "accept"


def accepted_offers(polldata: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Accepted offers from `offerData`, each tagged with its offer id.

    An offer counts as accepted when `isAccepted` is true or its recorded
    action is "accept".
    """
    offer_data = polldata.get("offerData")
    if offer_data is None:
        return []
    if not isinstance(offer_data, Mapping):
        raise FatalInputError(f"polldata offerData must be an object, got {type(offer_data).__name__}")

    out: List[Dict[str, Any]] = []
    for offer_id, offer in offer_data.items():
        if not isinstance(offer, Mapping) or not _is_accepted(offer):
            continue
        rec = dict(offer)
        rec.setdefault("id", str(offer_id))
        out.append(rec)
    return out


def _pricelist(pricelist: Mapping[str, Any]) -> Optional[Pricelist]:
    try:
        return Pricelist.model_validate(dict(pricelist))
    except ValidationError as e:
        log_event(
            logger,
            "pricelist.invalid",
            severity="WARNING",
            message=f"pricelist failed validation: {e.error_count()} error(s)",
        )
        return None


def resolve_key_price(pricelist: Mapping[str, Any], *, key_sku: str = DEFAULT_KEY_SKU) -> Optional[float]:
    """
    The key's sell price in refined metal, or None when the pricelist has no
    usable entry. Plausibility is checked by the engine, not here.
    """
    pl = _pricelist(pricelist)
    if pl is None:
        return None
    for entry in pl.items:
        if entry.sku != key_sku:
            continue
        metal = entry.sell.metal if entry.sell is not None else None
        if metal is None:
            return None
        return float(metal)
    return None


def item_names(pricelist: Mapping[str, Any]) -> Dict[str, str]:
    """SKU -> display name for pricelist entries that carry a name."""
    pl = _pricelist(pricelist)
    if pl is None:
        return {}
    return {e.sku: e.name for e in pl.items if e.name}
