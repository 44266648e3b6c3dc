from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# Canonical contract version (SemVer string).
# - MAJOR: breaking changes
# - MINOR: additive optional fields
# - PATCH: documentation / clarifications (no schema shape changes)
CONTRACT_VERSION_V1: str = "1.0.0"


class ContractFragment(BaseModel):
    """
    Base for inbound wire shapes (offer records, pricelist entries).

    - `extra="allow"`: offer history carries many fields the engine ignores.
    - NaN/inf are rejected so a corrupt number fails validation instead of
      poisoning the running totals.
    """

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
        populate_by_name=True,
        allow_inf_nan=False,
    )


class ContractBase(BaseModel):
    """
    Base for outbound contracts (reports).

    Immutable so a report cannot be edited between computation and rendering.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )
