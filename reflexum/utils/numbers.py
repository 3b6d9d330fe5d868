from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def finite_or(value: object, default: float = 0.0) -> float:
    """Coerce to a finite float, falling back to `default`."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default
