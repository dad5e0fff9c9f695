"""
Currency and measurement rounding helpers.

Every monetary intermediate is rounded to cents at each step, half-up, to
match the rounding the interchange format applies on import.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Convert a number (or numeric string) to Decimal without float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    """Round a monetary value to two decimals, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_qty(value: Any) -> float:
    """Round a geometric quantity to two decimals, half-up."""
    return float(round2(value))


def non_negative(value: Decimal) -> Decimal:
    """Clamp a monetary value at zero."""
    return value if value > ZERO else ZERO


def clamp_percent(value: Any) -> Decimal:
    """Clamp a percentage to [0, 100]."""
    pct = to_decimal(value)
    if pct < ZERO:
        return ZERO
    if pct > HUNDRED:
        return HUNDRED
    return pct


def percent_of(amount: Any, percentage: Any) -> Decimal:
    """Return round2(amount * percentage / 100)."""
    return round2(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def fmt2(value: Any) -> str:
    """Format a number with exactly two decimal places."""
    return f"{round2(value):.2f}"
