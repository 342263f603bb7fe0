"""Rounding helpers shared by the capacity and scoring calculators."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative values.

    Python's built-in ``round`` uses banker's rounding (``round(0.5) == 0``),
    which would make capacities like 162.5 round down.
    """
    return math.floor(value + 0.5)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))
