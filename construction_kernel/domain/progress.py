"""
Progress math -- pure aggregation and rounding rules.

Progress is kept as a float at full precision in storage. Rounding to an
integer happens only at presentation time, half-up, so repeated partial
updates never drift.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from construction_kernel.exceptions import ProgressOutOfRangeError

PROGRESS_MIN = 0.0
PROGRESS_MAX = 100.0

# Tolerance when comparing a stored aggregate with a recomputed one.
PROGRESS_TOLERANCE = 1e-9


def _as_number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ProgressOutOfRangeError(value)
    number = float(value)
    if math.isnan(number):
        raise ProgressOutOfRangeError(value)
    return number


def clamp_progress(value: object) -> float:
    """Clamp a numeric progress into [0, 100]. Non-numbers are rejected."""
    return min(PROGRESS_MAX, max(PROGRESS_MIN, _as_number(value)))


def validate_progress(value: object) -> float:
    """Strict variant for entity creation: out-of-range values are rejected."""
    number = _as_number(value)
    if not PROGRESS_MIN <= number <= PROGRESS_MAX:
        raise ProgressOutOfRangeError(value)
    return number


def mean_progress(values: Iterable[float]) -> float:
    """Unweighted mean of child progress values; 0 for no children."""
    values = list(values)
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def round_progress(value: float) -> int:
    """Presentation rounding: nearest integer, halves away from zero."""
    return int(Decimal(repr(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def progress_matches(stored: float, expected: float) -> bool:
    return abs(stored - expected) <= PROGRESS_TOLERANCE
