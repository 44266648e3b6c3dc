"""
Single source of truth for offer-timestamp parsing and formatting.

Canonical rules:
- **Internal representation**: integer epoch milliseconds (UTC).
- **Ambiguous epochs**: numeric values below 1e12 (fewer than 13 digits) are
  seconds, anything else is already milliseconds.
- **Output**: ISO-8601 instants with millisecond precision and a `Z` suffix,
  the shape chart libraries expect for a time axis.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

UTC = timezone.utc

# Epoch values below this are seconds.
MILLIS_THRESHOLD = 1e12

# Numeric string epochs (seconds or ms) appear in some offer records.
_NUMERIC_EPOCH_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def epoch_to_millis(value: float | int) -> int:
    """
    Scale an ambiguous epoch to integer milliseconds.

    Raises ValueError for non-finite values and for instants a datetime cannot
    represent.
    """
    v = float(value)
    if not math.isfinite(v):
        raise ValueError(f"non-finite timestamp: {value!r}")
    if v < MILLIS_THRESHOLD:
        v *= 1000.0
    ms = int(round(v))
    # Round-trip through datetime so unrepresentable instants are rejected here.
    millis_to_datetime(ms)
    return ms


def millis_to_datetime(ms: int) -> datetime:
    try:
        return datetime.fromtimestamp(ms / 1000.0, tz=UTC)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"timestamp out of range: {ms!r}") from e


def parse_to_millis(x: Any) -> int:
    """
    Parse a raw offer timestamp into epoch milliseconds.

    Supports:
    - epoch seconds / milliseconds (int/float)
    - numeric strings (same heuristic)
    - ISO strings (with or without 'Z' / offset; naive treated as UTC)
    - `datetime` (naive treated as UTC)
    """
    if x is None:
        raise TypeError("timestamp is None")

    if isinstance(x, bool):
        raise TypeError("timestamp must not be a bool")

    if isinstance(x, datetime):
        dt = x if x.tzinfo is not None else x.replace(tzinfo=UTC)
        return int(round(dt.timestamp() * 1000))

    if isinstance(x, (int, float)):
        return epoch_to_millis(x)

    if isinstance(x, str):
        s = x.strip()
        if not s:
            raise ValueError("timestamp string is empty")
        if _NUMERIC_EPOCH_RE.match(s):
            return epoch_to_millis(float(s))
        if s.endswith("Z") or s.endswith("z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as e:
            raise ValueError(f"unparseable timestamp string: {x!r}") from e
        return parse_to_millis(dt)

    raise TypeError(f"unsupported timestamp type: {type(x).__name__}")


def millis_to_iso(ms: int) -> str:
    """Format epoch milliseconds as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    dt = millis_to_datetime(ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
