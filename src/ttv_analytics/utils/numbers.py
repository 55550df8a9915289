"""Rounding and formatting helpers shared by the analytics services.

Output values are rounded half up (``2.5 -> 3``, ``-2.5 -> -2``) rather
than with Python's round-half-to-even, so that published figures match the
figures the portal has always shown.
"""

import math
from typing import Iterable, Optional, Union

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return int(math.floor(value + 0.5))


def round_to_tenth(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def mean(values: Iterable[Number]) -> Optional[float]:
    """Arithmetic mean, or None for an empty sequence."""
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def format_number(value: Number) -> str:
    """Render a metric for a human-readable message.

    Whole floats drop their decimal part (``4.0 -> "4"``).
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_or_missing(value: Optional[Number], missing: str = "N/A") -> str:
    """Like :func:`format_number`, but None and zero render as ``missing``."""
    if not value:
        return missing
    return format_number(value)
