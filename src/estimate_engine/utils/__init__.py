"""
Utility modules for the Estimation Engine.
"""

from .money import (
    clamp_percent,
    fmt2,
    non_negative,
    percent_of,
    round2,
    round_qty,
    to_decimal,
)

__all__ = [
    "clamp_percent",
    "fmt2",
    "non_negative",
    "percent_of",
    "round2",
    "round_qty",
    "to_decimal",
]
