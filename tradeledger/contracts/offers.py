"""
Wire shapes for the bot's offer history (polldata) and pricelist.

Only the fields the P&L engine reads are declared; everything else is kept as
extra data. Numeric fields accept numbers and numeric strings. A value that
cannot be read as a number fails validation, which the sanitizer treats as a
malformed record.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from tradeledger.contracts.base import ContractFragment


def _id_to_str(v: Any) -> Any:
    # SteamIDs and offer ids arrive as both numbers and strings.
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return v


class CurrencyAmount(ContractFragment):
    keys: Optional[float] = None
    metal: Optional[float] = None
    total: Optional[float] = Field(default=None, description="Scrap count (9 scrap = 1 refined).")


class OfferSides(ContractFragment):
    our: Optional[CurrencyAmount] = None
    their: Optional[CurrencyAmount] = None


class OfferItems(ContractFragment):
    our: Optional[Dict[str, Any]] = None
    their: Optional[Dict[str, Any]] = None


class OfferItemPrice(ContractFragment):
    buy: Optional[CurrencyAmount] = None
    sell: Optional[CurrencyAmount] = None


class OfferRecord(ContractFragment):
    """One entry of polldata `offerData`."""

    id: Optional[str] = None
    partner: Optional[str] = None

    time: Optional[Union[float, str]] = None
    actionTimestamp: Optional[Union[float, str]] = None
    handleTimestamp: Optional[Union[float, str]] = None

    isAccepted: Optional[bool] = None
    action: Optional[Dict[str, Any]] = None

    items: Optional[OfferItems] = Field(default=None, alias="dict")
    value: Optional[OfferSides] = None
    prices: Optional[Dict[str, OfferItemPrice]] = None

    @field_validator("id", "partner", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        return _id_to_str(v)


class PricelistEntry(ContractFragment):
    sku: str
    name: Optional[str] = None
    buy: Optional[CurrencyAmount] = None
    sell: Optional[CurrencyAmount] = None


class Pricelist(ContractFragment):
    items: List[PricelistEntry] = Field(default_factory=list)
