"""
Room geometry: opening deductions and dimension variables.
"""

from .dimvars import DimVarResult, calculate_dim_vars, calculate_elevation_dim_vars
from .openings import (
    DEFAULT_OPENING_DIMENSIONS,
    OpeningDeductionResult,
    ResolvedOpening,
    calculate_opening_deductions,
    default_opening_dimensions,
)

__all__ = [
    "DEFAULT_OPENING_DIMENSIONS",
    "DimVarResult",
    "OpeningDeductionResult",
    "ResolvedOpening",
    "calculate_dim_vars",
    "calculate_elevation_dim_vars",
    "calculate_opening_deductions",
    "default_opening_dimensions",
]
