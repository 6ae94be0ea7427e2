"""
Numeric helpers for protocol and spread calculations.
"""

from typing import Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10

# Decimal places kept before comparing a percentage against a threshold
THRESHOLD_PRECISION: Final[int] = 9


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if abs(denominator) < EPSILON:
        return default
    return numerator / denominator


def percent_change(value: float, reference: float) -> float:
    """
    Relative difference of value against reference, in percent.

    Example:
        >>> round(percent_change(1.02, 1.00), 6)
        2.0
    """
    if reference <= 0:
        return 0.0
    return (value - reference) / reference * 100.0


def normalize_pct(value: float) -> float:
    """
    Round a percentage so that threshold comparisons ignore float noise.

    `(0.995 - 1.0) * 100` evaluates to -0.5000000000000004; comparing the
    normalized value keeps boundary cases inclusive on both sides.
    """
    return round(value, THRESHOLD_PRECISION)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into the closed interval [lower, upper]."""
    return max(lower, min(upper, value))
