from __future__ import annotations

import math
from typing import Any

MIN_CONFIDENCE = 10
MAX_CONFIDENCE = 100


def normalize_confidence(value: Any) -> int:
    """Map an arbitrary confidence value onto an integer percentage in [10, 100].

    Models report confidence as 0-1 fractions, as percentages, and sometimes
    as basis points (8500 for 85%). Anything missing or non-numeric, numeric
    strings included, maps to the floor. The function never raises.
    """

    number = _coerce_number(value)
    if number is None:
        return MIN_CONFIDENCE
    if number >= 1000:
        return _clamp(_round_half_up(number / 100))
    if 0 < number <= 1:
        return _clamp(_round_half_up(number * 100))
    if 100 < number < 1000:
        return MAX_CONFIDENCE
    return _clamp(_round_half_up(number))


def to_fraction(confidence: int) -> float:
    return confidence / 100.0


def _coerce_number(value: Any) -> float | None:
    # Only real numbers count; strings and booleans are treated as missing.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return float(MAX_CONFIDENCE) if value > 0 else None
    if math.isnan(number):
        return None
    if math.isinf(number):
        return float(MAX_CONFIDENCE) if number > 0 else None
    return number


def _round_half_up(number: float) -> int:
    return int(math.floor(number + 0.5))


def _clamp(value: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


__all__ = [
    "MAX_CONFIDENCE",
    "MIN_CONFIDENCE",
    "normalize_confidence",
    "to_fraction",
]
