"""Numeric coercion and formatting shared by the normalizers."""

from __future__ import annotations

import math
from typing import Any


def coerce_number(value: Any) -> float | None:
    """Finite float from a native number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            n = float(value)
        elif isinstance(value, str) and value.strip():
            n = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return n if math.isfinite(n) else None


def format_number(n: float) -> str:
    """Shortest string for n without a trailing '.0' (10.0 -> '10', 3.50 -> '3.5')."""
    if not math.isfinite(n):
        return str(n)
    if n == int(n) and abs(n) < 1e16:
        return str(int(n))
    return repr(float(n))
