"""
Dimension variable calculator.

Derives the 13 interchange dimension variables for a room, before and
after opening ("missing wall") deductions. Pure and deterministic.
"""

import logging
from dataclasses import dataclass, field

from ..core.models import CeilingType, DimVars, Opening, RoomDimensions
from ..utils.money import round_qty
from .openings import OpeningDeductionResult, calculate_opening_deductions

logger = logging.getLogger(__name__)

CATHEDRAL_VOLUME_FACTOR = 1.25
EXCESSIVE_DEDUCTION_RATIO = 0.5


@dataclass(frozen=True)
class DimVarResult:
    """Dimension variables for one room plus deduction detail."""

    before_mw: DimVars
    after_mw: DimVars
    deductions: OpeningDeductionResult
    warnings: list[str] = field(default_factory=list)


def _finish(values: dict[str, float]) -> DimVars:
    """Floor at zero and round every variable to two decimals."""
    return DimVars(**{name: round_qty(max(0.0, value)) for name, value in values.items()})


def _room_values(dimensions: RoomDimensions) -> dict[str, float]:
    length, width, height = dimensions.length, dimensions.width, dimensions.height
    long_side = max(length, width)
    short_side = min(length, width)
    area = length * width
    perimeter = 2 * (length + width)
    volume = area * height
    if dimensions.ceiling_type == CeilingType.CATHEDRAL:
        volume *= CATHEDRAL_VOLUME_FACTOR

    return {
        "HH": height,
        "SH": height,
        "W": 2 * (length * height + width * height),
        "LW": 2 * long_side * height,
        "SW": 2 * short_side * height,
        "PF": perimeter,
        "PC": perimeter,
        "C": area,
        "F": area,
        "LL": long_side,
        "R": area,
        "SQ": area / 100,
        "V": volume,
    }


def _elevation_values(dimensions: RoomDimensions) -> dict[str, float]:
    length, height = dimensions.length, dimensions.height
    wall = length * height
    return {
        "HH": height,
        "SH": height,
        "W": wall,
        "LW": wall,
        "SW": 0.0,
        "PF": length,
        "PC": length,
        "C": 0.0,
        "F": 0.0,
        "LL": length,
        "R": 0.0,
        "SQ": 0.0,
        "V": 0.0,
    }


def _apply_deductions(
    gross: dict[str, float], deductions: OpeningDeductionResult
) -> dict[str, float]:
    """Subtract opening area from wall terms and opening widths from perimeters."""
    net = dict(gross)
    wall_area = gross["W"]
    removed = deductions.total_deduction_sf

    net["W"] = wall_area - removed
    if wall_area > 0:
        # Each wall pair gives up area in proportion to its share of the gross
        net["LW"] = gross["LW"] - removed * gross["LW"] / wall_area
        net["SW"] = gross["SW"] - removed * gross["SW"] / wall_area
    net["PF"] = gross["PF"] - deductions.total_floor_width_lf
    net["PC"] = gross["PC"] - deductions.total_ceiling_width_lf
    return net


def _build(
    gross: dict[str, float],
    openings: list[Opening] | tuple[Opening, ...],
) -> DimVarResult:
    deductions = calculate_opening_deductions(openings)
    warnings = list(deductions.warnings)

    wall_area = gross["W"]
    if wall_area > 0 and deductions.total_deduction_sf > wall_area * EXCESSIVE_DEDUCTION_RATIO:
        ratio = deductions.total_deduction_sf / wall_area * 100
        message = (
            f"Excessive deduction ratio: openings remove {ratio:.1f}% of "
            f"{round_qty(wall_area)} SF gross wall area; verify opening dimensions"
        )
        logger.warning(message)
        warnings.append(message)

    before = _finish(gross)
    after = _finish(_apply_deductions(gross, deductions)) if openings else before
    return DimVarResult(before_mw=before, after_mw=after, deductions=deductions, warnings=warnings)


def calculate_elevation_dim_vars(
    dimensions: RoomDimensions,
    openings: list[Opening] | tuple[Opening, ...] = (),
) -> DimVarResult:
    """
    Dimension variables for an exterior elevation treated as one flat wall.

    Length is the facade width and height its wall height; floor, ceiling,
    roof and volume terms are zero.
    """
    return _build(_elevation_values(dimensions), openings)


def calculate_dim_vars(
    dimensions: RoomDimensions,
    openings: list[Opening] | tuple[Opening, ...] = (),
) -> DimVarResult:
    """
    Calculate before- and after-deduction dimension variables for a room.

    Args:
        dimensions: Measured room box
        openings: Doors, windows and missing walls in the room

    Returns:
        DimVarResult; after_mw equals before_mw when there are no openings
    """
    if dimensions.is_elevation:
        return calculate_elevation_dim_vars(dimensions, openings)
    return _build(_room_values(dimensions), openings)
