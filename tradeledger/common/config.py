from __future__ import annotations

"""
Settings for P&L report runs.

Sources (later wins for scalars, sets are unioned):
- environment variables (`PNL_*`, `LOG_LEVEL`)
- the bot's `config.json` (only `botOwnerSteamIDs` is read)

The engine itself never reads settings; callers load them here and pass the
values into `compute_pnl_report` explicitly.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from tradeledger.common.logging import log_event
from tradeledger.ledger.currency import (
    DEFAULT_CURRENCY_SKUS,
    DEFAULT_KEY_PRICE_FALLBACK,
    DEFAULT_KEY_PRICE_MAX,
    DEFAULT_KEY_SKU,
)

logger = logging.getLogger(__name__)


def _parse_float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except Exception:
        return float(default)


def _parse_str_env(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    return raw or default


def _parse_csv_env(name: str, default: Iterable[str] = ()) -> FrozenSet[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return frozenset(default)
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    excluded_counterparties: FrozenSet[str] = field(default_factory=frozenset)
    currency_skus: FrozenSet[str] = DEFAULT_CURRENCY_SKUS
    key_sku: str = DEFAULT_KEY_SKU
    key_price_fallback: float = DEFAULT_KEY_PRICE_FALLBACK
    key_price_max: float = DEFAULT_KEY_PRICE_MAX
    log_level: str = "INFO"


def read_bot_owner_ids(config: Mapping[str, Any]) -> FrozenSet[str]:
    """Extract `botOwnerSteamIDs` from a parsed bot config (ids compared as strings)."""
    raw = config.get("botOwnerSteamIDs") or []
    if isinstance(raw, (str, int)):
        raw = [raw]
    if not isinstance(raw, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(str(v).strip() for v in raw if v is not None and str(v).strip())


def _load_bot_config(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        log_event(
            logger,
            "config.unreadable",
            severity="WARNING",
            message=f"could not load bot config for owner exclusion: {e}",
            path=str(path),
        )
        return {}
    if not isinstance(data, Mapping):
        log_event(logger, "config.unreadable", severity="WARNING", message="bot config is not a JSON object", path=str(path))
        return {}
    return data


def load_ledger_settings(*, config_path: Optional[str | Path] = None) -> LedgerSettings:
    """
    Build settings from env vars and (optionally) a bot `config.json`.

    Env vars:
    - PNL_EXCLUDED_COUNTERPARTIES: comma-separated counterparty ids
    - PNL_CURRENCY_SKUS: comma-separated SKUs never treated as items
    - PNL_KEY_SKU: pricelist SKU of the exchange-rate item
    - PNL_KEY_PRICE_FALLBACK / PNL_KEY_PRICE_MAX: rate fallback and sanity bound
    """
    excluded = set(_parse_csv_env("PNL_EXCLUDED_COUNTERPARTIES"))
    if config_path is not None:
        excluded |= read_bot_owner_ids(_load_bot_config(Path(config_path)))

    settings = LedgerSettings(
        excluded_counterparties=frozenset(excluded),
        currency_skus=_parse_csv_env("PNL_CURRENCY_SKUS", DEFAULT_CURRENCY_SKUS),
        key_sku=_parse_str_env("PNL_KEY_SKU", DEFAULT_KEY_SKU),
        key_price_fallback=_parse_float_env("PNL_KEY_PRICE_FALLBACK", DEFAULT_KEY_PRICE_FALLBACK),
        key_price_max=_parse_float_env("PNL_KEY_PRICE_MAX", DEFAULT_KEY_PRICE_MAX),
        log_level=_parse_str_env("LOG_LEVEL", "INFO").upper(),
    )
    log_event(
        logger,
        "config.loaded",
        severity="DEBUG",
        excluded_count=len(settings.excluded_counterparties),
        currency_skus=sorted(settings.currency_skus),
        key_sku=settings.key_sku,
    )
    return settings
