from __future__ import annotations

"""
Per-unit price fallbacks for trades without an explicit per-item price.

The matcher calls a `UnitPricer` with the side's total value and the number of
non-currency units on that side. Swap the pricer to change the heuristic
without touching the matching logic.
"""

from decimal import Decimal
from typing import Callable

UnitPricer = Callable[[Decimal, int], Decimal]


def even_split_unit_price(total_value: Decimal, unit_count: int) -> Decimal:
    """Spread the side's total value evenly across its non-currency units."""
    if unit_count <= 0:
        return Decimal("0")
    return total_value / Decimal(unit_count)


def zero_unit_price(total_value: Decimal, unit_count: int) -> Decimal:  # noqa: ARG001
    """Price unknown units at zero (disables the even-split heuristic)."""
    return Decimal("0")
