from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional


def to_decimal(v: Any) -> Decimal:
    """
    Convert a numeric-ish value to Decimal safely.

    IMPORTANT:
    - Never call Decimal(float) directly (binary float artifacts).
    - Use Decimal(str(x)) for int/float inputs.
    """
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        return v
    if isinstance(v, (int, float)):
        return Decimal(str(v))
    if isinstance(v, str):
        s = v.strip()
        return Decimal(s) if s else Decimal("0")
    return Decimal(str(v))


@dataclass(frozen=True, slots=True)
class CurrencyValue:
    """
    A trade-side value in the two-unit currency model.

    Two encodings exist in offer history:
    - `keys` + `metal`: keys (secondary unit) are converted at the key price,
      metal is already in refined (major unit).
    - `total`: a scrap count (minor unit), 9 scrap per refined; when present it
      wins and the key price is not used.
    """

    keys: Decimal = Decimal("0")
    metal: Decimal = Decimal("0")
    total: Optional[Decimal] = None

    @property
    def is_scrap_total(self) -> bool:
        return self.total is not None


@dataclass(frozen=True, slots=True)
class ItemPrice:
    """Explicit per-item price the bot recorded at trade time (either side may be absent)."""

    buy: Optional[CurrencyValue] = None
    sell: Optional[CurrencyValue] = None


@dataclass(frozen=True, slots=True)
class TradeRecord:
    """
    One accepted offer, as handed to the engine.

    Notes:
    - `items_given` are the items the ledger owner gave away (sell side),
      `items_received` the items taken in (buy side). Quantities are kept raw;
      the FIFO matcher validates them per entry.
    - `timestamp_raw` is ambiguous (epoch seconds or milliseconds).
    """

    identifier: str
    timestamp_raw: Any
    counterparty_id: Optional[str] = None
    items_given: Mapping[str, Any] = field(default_factory=dict)
    items_received: Mapping[str, Any] = field(default_factory=dict)
    value_given: Optional[CurrencyValue] = None
    value_received: Optional[CurrencyValue] = None
    item_prices: Mapping[str, ItemPrice] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SanitizedTrade:
    """A TradeRecord with a resolved, strictly increasing millisecond timestamp."""

    record: TradeRecord
    timestamp_ms: int

    @property
    def identifier(self) -> str:
        return self.record.identifier

    @property
    def counterparty_id(self) -> Optional[str]:
        return self.record.counterparty_id


@dataclass(frozen=True, slots=True)
class UnitEvent:
    sku: str
    unit_price: Decimal
    timestamp_ms: int


@dataclass(frozen=True, slots=True)
class AcquisitionEvent(UnitEvent):
    """One unit received (bought)."""


@dataclass(frozen=True, slots=True)
class DisposalEvent(UnitEvent):
    """One unit given away (sold)."""


@dataclass(frozen=True, slots=True)
class LedgerPoint:
    timestamp_iso: str
    timestamp_ms: int
    cumulative_profit: float
    trade_profit: float
