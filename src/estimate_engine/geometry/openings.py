"""
Opening deductions.
Resolves door, window and missing-wall sizes and totals the wall area
they remove from a room.
"""

import logging
from dataclasses import dataclass, field

from ..core.models import Opening
from ..utils.money import round_qty

logger = logging.getLogger(__name__)

# Typical sizes (width, height) in feet, used when a dimension is missing
DEFAULT_OPENING_DIMENSIONS: dict[str, tuple[float, float]] = {
    "window": (3.0, 4.0),
    "standard_door": (2.67, 6.67),
    "door": (2.67, 6.67),
    "sliding_door": (6.0, 6.67),
    "overhead_door": (7.0, 8.0),
    "garage_door": (7.0, 8.0),
    "archway": (3.0, 7.0),
    "pass_through": (3.0, 4.0),
    "missing_wall": (0.0, 0.0),
    "cased_opening": (0.0, 0.0),
}

MAX_TYPICAL_SIDE_FT = 15.0
MAX_TYPICAL_AREA_SF = 200.0


def default_opening_dimensions(opening_type: str) -> tuple[float, float]:
    """Default (width, height) for an opening type; unknown types size as windows."""
    key = (opening_type or "").strip().lower()
    return DEFAULT_OPENING_DIMENSIONS.get(key, DEFAULT_OPENING_DIMENSIONS["window"])


@dataclass(frozen=True)
class ResolvedOpening:
    """An opening with its effective dimensions."""

    opening: Opening
    width_ft: float
    height_ft: float
    defaulted: bool

    @property
    def area_sf(self) -> float:
        return self.width_ft * self.height_ft

    @property
    def total_area_sf(self) -> float:
        return self.area_sf * self.opening.quantity

    @property
    def total_width_lf(self) -> float:
        return self.width_ft * self.opening.quantity


@dataclass
class OpeningTypeStats:
    count: int = 0
    total_area_sf: float = 0.0


@dataclass
class OpeningDeductionResult:
    """Totals removed from a room's walls and perimeters by its openings."""

    total_deduction_sf: float = 0.0
    total_floor_width_lf: float = 0.0
    total_ceiling_width_lf: float = 0.0
    opening_count: int = 0
    openings_by_type: dict[str, OpeningTypeStats] = field(default_factory=dict)
    resolved: list[ResolvedOpening] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _label(opening: Opening) -> str:
    return f'Opening "{opening.label or opening.opening_type}" (ID: {opening.id})'


def resolve_opening(opening: Opening) -> tuple[ResolvedOpening, list[str]]:
    """
    Resolve an opening's effective size.

    Missing or zero dimensions fall back to the type default.
    Returns the resolved opening and any data-quality warnings.
    """
    warnings: list[str] = []
    width = opening.width_ft or 0.0
    height = opening.height_ft or 0.0
    defaulted = False

    if not width or not height:
        default_width, default_height = default_opening_dimensions(opening.opening_type)
        width = width or default_width
        height = height or default_height
        defaulted = True
        warnings.append(
            f"{_label(opening)} missing dimensions; using defaults: "
            f"{width}' x {height}' = {round_qty(width * height)} SF"
        )

    if width > MAX_TYPICAL_SIDE_FT:
        warnings.append(
            f"{_label(opening)} width {width}' exceeds typical opening width; verify dimensions"
        )
    if height > MAX_TYPICAL_SIDE_FT:
        warnings.append(
            f"{_label(opening)} height {height}' exceeds typical opening height; verify dimensions"
        )
    area = width * height
    if area > MAX_TYPICAL_AREA_SF:
        warnings.append(
            f"{_label(opening)} area {round_qty(area)} SF is unusually large; verify dimensions"
        )

    return ResolvedOpening(opening, width, height, defaulted), warnings


def calculate_opening_deductions(openings: list[Opening] | tuple[Opening, ...]) -> OpeningDeductionResult:
    """
    Total the wall area and perimeter width removed by a room's openings.

    Warnings are advisory only and never block the calculation.

    Args:
        openings: Openings belonging to one room

    Returns:
        OpeningDeductionResult with totals, per-type breakdown and warnings
    """
    result = OpeningDeductionResult()
    if not openings:
        return result

    total_area = 0.0
    floor_width = 0.0
    ceiling_width = 0.0

    for opening in openings:
        resolved, warnings = resolve_opening(opening)
        result.resolved.append(resolved)
        result.warnings.extend(warnings)
        result.opening_count += opening.quantity

        total_area += resolved.total_area_sf
        if opening.goes_to_floor:
            floor_width += resolved.total_width_lf
        if opening.goes_to_ceiling:
            ceiling_width += resolved.total_width_lf

        stats = result.openings_by_type.setdefault(opening.opening_type, OpeningTypeStats())
        stats.count += opening.quantity
        stats.total_area_sf += resolved.total_area_sf

    result.total_deduction_sf = round_qty(total_area)
    result.total_floor_width_lf = round_qty(floor_width)
    result.total_ceiling_width_lf = round_qty(ceiling_width)
    for stats in result.openings_by_type.values():
        stats.total_area_sf = round_qty(stats.total_area_sf)

    for warning in result.warnings:
        logger.warning(warning)

    return result
