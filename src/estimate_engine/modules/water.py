"""
Water damage classification (IICRC S500).
Derives category, class, contamination level and drying feasibility from
field responses, and sizes drying equipment for the affected area.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from ..core.models import WaterCategory, WaterClassification

logger = logging.getLogger(__name__)

# Keyword -> source, checked in order
SOURCE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(SUPPLY|RAIN|SPRINKLER|ICE\s*MAKER)", re.IGNORECASE), "clean"),
    (re.compile(r"(WASHING\s*MACHINE|DISH\s*WASHER|SINK|SUMP)", re.IGNORECASE), "gray"),
    (re.compile(r"(SEWER|SEWAGE|TOILET|FLOOD|GROUND\s*WATER)", re.IGNORECASE), "black"),
]

SOURCE_CATEGORY: dict[str, WaterCategory] = {
    "clean": WaterCategory.CATEGORY_1,
    "gray": WaterCategory.CATEGORY_2,
    "black": WaterCategory.CATEGORY_3,
}

# Industry standards for equipment per square footage
AIR_MOVER_SQFT_MIN = 50  # 1 air mover per 50 sq ft
AIR_MOVER_SQFT_MAX = 70  # 1 air mover per 70 sq ft
DEHUMIDIFIER_SQFT = 1000  # 1 dehumidifier per 1000 sq ft

# Category 3 losses always need antimicrobial and containment
CATEGORY_3_COMPANIONS: tuple[str, ...] = ("MIT-APPL-SF", "MIT-CONT-DAY")


class WaterProtocolResponses(BaseModel):
    """Answers gathered by the water damage questioning flow."""

    water_source: str
    standing_water_start: datetime | None = None
    standing_water_end: datetime | None = None
    affected_area: float = Field(default=0.0, ge=0)
    visible_contamination: bool = False
    affected_materials: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DryingEquipment:
    air_movers_min: int
    air_movers_max: int
    dehumidifiers: int


def infer_source(description: str) -> str:
    """Classify a free-text water source as clean, gray or black. Defaults to gray."""
    for pattern, source in SOURCE_PATTERNS:
        if pattern.search(description or ""):
            return source
    return "gray"


def assess_contamination(
    category: WaterCategory, standing_days: int, visible_contamination: bool
) -> str:
    if category == WaterCategory.CATEGORY_3:
        return "high"
    if category == WaterCategory.CATEGORY_2 and (standing_days > 24 or visible_contamination):
        return "high"
    if category == WaterCategory.CATEGORY_2 and standing_days > 12:
        return "medium"
    return "low"


def is_drying_possible(category: WaterCategory, standing_days: int, affected_area: float) -> bool:
    if category == WaterCategory.CATEGORY_3:
        return False
    if category == WaterCategory.CATEGORY_2 and standing_days > 2:
        return False
    if affected_area > 1000 and standing_days > 24:
        return False
    return True


def determine_water_class(affected_area: float, drying_possible: bool) -> int:
    """Class 4 when drying is not feasible, otherwise by affected area."""
    if not drying_possible:
        return 4
    if affected_area > 300:
        return 3
    if affected_area > 24:
        return 2
    return 1


def classify_water_damage(
    responses: WaterProtocolResponses, now: datetime | None = None
) -> WaterClassification:
    """
    Classify a water loss from protocol responses.

    Args:
        responses: Field answers
        now: Reference time for open-ended standing water periods

    Returns:
        WaterClassification
    """
    source = infer_source(responses.water_source)
    category = SOURCE_CATEGORY[source]

    reference = now or datetime.now()
    start = responses.standing_water_start or reference
    end = responses.standing_water_end or reference
    standing_days = max(0, (end - start).days)

    contamination = assess_contamination(category, standing_days, responses.visible_contamination)
    drying = is_drying_possible(category, standing_days, responses.affected_area)
    water_class = determine_water_class(responses.affected_area, drying)

    logger.info(
        "Water damage classified: category %d class %d source %s",
        category.value, water_class, source,
    )
    return WaterClassification(
        category=category,
        water_class=water_class,
        source=source,
        contamination_level=contamination,
        drying_possible=drying,
        standing_days=standing_days,
        notes=responses.notes,
    )


def triggered_companions(classification: WaterClassification) -> list[str]:
    """Catalog codes a classification requires regardless of damage scope."""
    if classification.category == WaterCategory.CATEGORY_3:
        return list(CATEGORY_3_COMPANIONS)
    return []


def estimate_drying_equipment(affected_sf: float) -> DryingEquipment:
    """Air mover range and dehumidifier count for an affected area."""
    if affected_sf <= 0:
        return DryingEquipment(0, 0, 0)
    return DryingEquipment(
        air_movers_min=math.ceil(affected_sf / AIR_MOVER_SQFT_MAX),
        air_movers_max=math.ceil(affected_sf / AIR_MOVER_SQFT_MIN),
        dehumidifiers=max(1, math.ceil(affected_sf / DEHUMIDIFIER_SQFT)),
    )
