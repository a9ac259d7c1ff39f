"""
Numeric helper utilities
"""
import math
from typing import Any, Optional


def to_number(value: Any) -> float:
    """Coerce an upstream value to a finite float (None/NaN/garbage -> 0)"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


def finite(value: float) -> float:
    """Replace NaN/Infinity with 0 before a value is persisted"""
    return value if isinstance(value, (int, float)) and math.isfinite(value) else 0.0


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        result = numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default
    return finite(result)


def clamp01(value: float) -> float:
    """Clamp to [0, 1]; non-finite becomes 0"""
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def normalize_pct(value: Any) -> Optional[float]:
    """
    Normalize a percent-like input to a fraction in [0, 1].

    Accepts either a fraction (0.42) or a 0-100 number (42). Returns None
    when the value is missing or not numeric so callers can apply their
    own fallback.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(x):
        return None
    if x > 1:
        x = x / 100
    return clamp01(x)


def non_negative(value: Any) -> float:
    """Finite, floored at 0"""
    return max(0.0, to_number(value))


def round_money(value: float) -> float:
    """Round a currency amount to cents"""
    return round(finite(value), 2)
