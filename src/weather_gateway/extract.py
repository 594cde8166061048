"""Tolerant field lookup and numeric coercion over decoded provider JSON.

Nothing in here raises on missing or malformed data. Every coercion takes an
explicit default that is returned whenever the source value is absent or is
not a JSON number.
"""

import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

# Standard atmosphere, used when a provider omits surface pressure
DEFAULT_PRESSURE_PA = 101325.0


def safe_get(value: Any, path: str) -> Optional[Any]:
    """Follow a dotted path (e.g. ``"wind.speed"``) through nested mappings"""
    current = value
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def as_number(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Return ``value`` as a float if it is a finite JSON number, else ``default``"""
    # bool is an int subclass but is never a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    number = float(value)
    if not math.isfinite(number):
        return default
    return number


def round_half_away(number: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)"""
    magnitude = abs(number)
    whole = math.floor(magnitude)
    # a - floor(a) is exact for finite floats; a + 0.5 is not
    if magnitude - whole >= 0.5:
        whole += 1
    return -whole if number < 0 else whole


def coordinate_text(value: float) -> str:
    """Plain decimal text for a coordinate in a URL (1e-05 -> "0.00001", 116.0 -> "116")"""
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def safe_round(value: Any, default: int = 0) -> int:
    number = as_number(value)
    if number is None:
        return default
    return round_half_away(number)


def safe_number(value: Any, default: int = 0) -> int:
    """Truncate toward zero"""
    number = as_number(value)
    if number is None:
        return default
    return int(number)


def percent_from_fraction(value: Any) -> int:
    """Relative humidity 0..1 -> percent"""
    return round_half_away(as_number(value, 0.0) * 100)


def kmh_from_ms(value: Any) -> int:
    return round_half_away(as_number(value, 0.0) * 3.6)


def hpa_from_pa(value: Any) -> int:
    return round_half_away(as_number(value, DEFAULT_PRESSURE_PA) / 100)


def first_text(mapping: Any, *keys: str) -> Optional[str]:
    """First non-empty string found under ``keys`` in ``mapping``"""
    if not isinstance(mapping, Mapping):
        return None
    for key in keys:
        candidate = mapping.get(key)
        if isinstance(candidate, str) and candidate:
            return candidate
    return None
