"""
Peril scope templates.

Pre-built scope packages per peril and room type. Applying a template
seeds a room with its auto-include items; the rest are suggestions.
"""

from dataclasses import dataclass

from .conditions import zone_for_room_type

DEFAULT_PERIL = "water"


@dataclass(frozen=True)
class PerilTemplateItem:
    catalog_code: str
    auto_include: bool = True
    quantity_multiplier: float = 1.0
    notes: str | None = None


@dataclass(frozen=True)
class PerilTemplate:
    """A starting scope for one peril in a set of room types or zones."""

    peril_type: str
    name: str
    description: str
    room_types: tuple[str, ...]
    zone_types: tuple[str, ...]
    items: tuple[PerilTemplateItem, ...]

    def applies_to(self, room_type: str) -> bool:
        if room_type in self.room_types:
            return True
        zone = zone_for_room_type(room_type)
        return any(
            z == zone or (z == "roof" and zone == "exterior") for z in self.zone_types
        )

    @property
    def auto_items(self) -> tuple[PerilTemplateItem, ...]:
        return tuple(item for item in self.items if item.auto_include)

    @property
    def suggested_items(self) -> tuple[PerilTemplateItem, ...]:
        return tuple(item for item in self.items if not item.auto_include)


def _item(code: str, auto: bool = True, notes: str | None = None) -> PerilTemplateItem:
    return PerilTemplateItem(catalog_code=code, auto_include=auto, notes=notes)


WATER_INTERIOR_TEMPLATE = PerilTemplate(
    peril_type="water",
    name="Water Damage - Interior Room",
    description="Category 1-2 water in an interior room, walls and floors affected",
    room_types=(
        "interior_bedroom", "interior_living", "interior_family",
        "interior_den", "interior_dining", "interior_hallway",
    ),
    zone_types=("interior",),
    items=(
        _item("MIT-EXTR-SF", notes="Extract standing water first"),
        _item("MIT-DEHU-DAY", notes="Minimum 3 days, adjust per monitoring"),
        _item("MIT-AIRM-DAY", notes="1 per 10-16 LF of affected wall"),
        _item("MIT-MONI-DAY"),
        _item("MIT-APPL-SF", auto=False, notes="Add for Category 2/3 water"),
        _item("DEM-DRY-SF", auto=False, notes="Full removal for severe damage"),
        _item("DEM-TRIM-LF"),
        _item("DEM-FLR-SF", auto=False, notes="Only if flooring is not salvageable"),
        _item("DEM-HAUL-LD"),
        _item("DRY-SHEET-SF"),
        _item("DRY-TAPE-LF"),
        _item("DRY-JOINT-SF"),
        _item("PNT-INT-SF"),
        _item("PNT-TRIM-LF"),
        _item("FLR-VINYL-SF", auto=False, notes="Select appropriate flooring type"),
        _item("FLR-PAD-SF", auto=False),
        _item("FLR-TRIM-LF", notes="New baseboard after flooring"),
        _item("GEN-CLEAN-SF"),
    ),
)

WATER_KITCHEN_TEMPLATE = PerilTemplate(
    peril_type="water",
    name="Water Damage - Kitchen",
    description="Kitchen water damage including cabinetry and countertops",
    room_types=("interior_kitchen",),
    zone_types=(),
    items=(
        _item("MIT-EXTR-SF"),
        _item("MIT-DEHU-DAY"),
        _item("MIT-AIRM-DAY"),
        _item("MIT-MONI-DAY"),
        _item("DEM-CAB-LF", notes="Remove affected base cabinets"),
        _item("DEM-DRY-SF"),
        _item("DEM-FLR-SF"),
        _item("DEM-TRIM-LF"),
        _item("DEM-HAUL-LD"),
        _item("DRY-SHEET-SF"),
        _item("PNT-INT-SF"),
        _item("CAB-BASE-LF", notes="Match existing cabinet grade"),
        _item("CTR-LAM-SF", auto=False, notes="Select countertop material"),
        _item("PLM-SINK-EA", auto=False, notes="If sink is damaged or not reusable"),
        _item("GEN-CLEAN-SF"),
    ),
)

WATER_BATHROOM_TEMPLATE = PerilTemplate(
    peril_type="water",
    name="Water Damage - Bathroom",
    description="Bathroom water damage including fixtures, vanity and tile",
    room_types=("interior_bathroom",),
    zone_types=(),
    items=(
        _item("MIT-EXTR-SF"),
        _item("MIT-DEHU-DAY"),
        _item("MIT-AIRM-DAY"),
        _item("MIT-APPL-SF", notes="Bathrooms always get antimicrobial"),
        _item("DEM-VANITY-EA"),
        _item("DEM-DRY-SF"),
        _item("DEM-TRIM-LF"),
        _item("PLM-TOIL-EA", notes="Detach and reset for floor work"),
        _item("DRY-SHEET-SF"),
        _item("PNT-INT-SF"),
        _item("FLR-TILE-SF", auto=False, notes="If tile replacement is needed"),
        _item("CAB-VAN-LF"),
        _item("GEN-CLEAN-SF"),
    ),
)

HAIL_ROOF_TEMPLATE = PerilTemplate(
    peril_type="hail",
    name="Hail Damage - Roof",
    description="Roof replacement for hail damage",
    room_types=("exterior_roof_slope", "exterior_roof"),
    zone_types=("roof",),
    items=(
        _item("RFG-SHIN-AR", notes="Full slope replacement per test square"),
        _item("RFG-FELT-SQ"),
        _item("RFG-ICE-SF", notes="Eaves and valleys"),
        _item("RFG-DRIP-LF"),
        _item("RFG-RIDGE-LF"),
        _item("RFG-FLASH-LF", auto=False),
        _item("RFG-VALLEY-LF", auto=False),
        _item("RFG-VENT-EA", auto=False, notes="Count damaged vents in the field"),
        _item("RFG-UNDER-SF", auto=False, notes="Synthetic underlayment upgrade"),
    ),
)

HAIL_EXTERIOR_TEMPLATE = PerilTemplate(
    peril_type="hail",
    name="Hail Damage - Exterior",
    description="Siding, gutters and soft metals",
    room_types=(
        "exterior_elevation_front", "exterior_elevation_left",
        "exterior_elevation_right", "exterior_elevation_rear",
    ),
    zone_types=(),
    items=(
        _item("EXT-SIDING-SF", auto=False, notes="Measure damaged area per elevation"),
        _item("EXT-WRAP-SF", auto=False),
        _item("EXT-FASCIA-LF", auto=False),
        _item("PNT-EXT-SF", auto=False),
    ),
)

WIND_ROOF_TEMPLATE = PerilTemplate(
    peril_type="wind",
    name="Wind Damage - Roof",
    description="Partial roof repair for lifted or missing shingles",
    room_types=("exterior_roof_slope", "exterior_roof"),
    zone_types=("roof",),
    items=(
        _item("RFG-SHIN-AR", notes="Affected slopes only"),
        _item("RFG-FELT-SQ"),
        _item("RFG-RIDGE-LF", auto=False),
        _item("RFG-DRIP-LF", auto=False),
        _item("RFG-FLASH-LF", auto=False),
    ),
)

FIRE_INTERIOR_TEMPLATE = PerilTemplate(
    peril_type="fire",
    name="Fire Damage - Interior Room",
    description="Demolition, drywall, paint and cleaning for a fire-damaged room",
    room_types=(),
    zone_types=("interior",),
    items=(
        _item("DEM-DRY-SF", notes="Full removal in fire rooms"),
        _item("DEM-CEIL-SF"),
        _item("DEM-FLR-SF"),
        _item("DEM-TRIM-LF"),
        _item("DEM-INSUL-SF", auto=False, notes="If wall cavities are exposed"),
        _item("DRY-SHEET-SF"),
        _item("PNT-INT-SF"),
        _item("PNT-CEILING-SF"),
        _item("PNT-TRIM-LF"),
        _item("FLR-CARPET-SF", auto=False),
        _item("INS-BATTS-SF", auto=False),
        _item("GEN-CLEAN-SF"),
    ),
)

FIRE_EXTERIOR_TEMPLATE = PerilTemplate(
    peril_type="fire",
    name="Fire Damage - Exterior",
    description="Siding, trim and roofing for exterior fire damage",
    room_types=(
        "exterior_elevation_front", "exterior_elevation_left",
        "exterior_elevation_right", "exterior_elevation_rear",
    ),
    zone_types=(),
    items=(
        _item("EXT-SIDING-SF", auto=False, notes="Measure charred area per elevation"),
        _item("EXT-FASCIA-LF", auto=False),
        _item("RFG-SHIN-AR", auto=False, notes="If fire reached the roof"),
        _item("PNT-EXT-SF", auto=False),
    ),
)

PERIL_TEMPLATES: tuple[PerilTemplate, ...] = (
    WATER_INTERIOR_TEMPLATE,
    WATER_KITCHEN_TEMPLATE,
    WATER_BATHROOM_TEMPLATE,
    HAIL_ROOF_TEMPLATE,
    HAIL_EXTERIOR_TEMPLATE,
    WIND_ROOF_TEMPLATE,
    FIRE_INTERIOR_TEMPLATE,
    FIRE_EXTERIOR_TEMPLATE,
)


def normalize_peril(peril_type: str | None) -> str:
    """First word of the peril, lowercased ("Water_Damage" -> "water")."""
    words = (peril_type or "").lower().replace("_", " ").split()
    return words[0] if words else DEFAULT_PERIL


def get_matching_templates(
    peril_type: str | None,
    room_type: str | None,
    templates: tuple[PerilTemplate, ...] = PERIL_TEMPLATES,
) -> list[PerilTemplate]:
    """
    Templates for a peril that apply to a room type.

    Templates naming the room type win over zone-wide ones.
    """
    peril = normalize_peril(peril_type)
    room = room_type or ""
    matches = [t for t in templates if t.peril_type == peril and t.applies_to(room)]
    specific = [t for t in matches if room in t.room_types]
    return specific or matches
