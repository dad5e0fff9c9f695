"""
Starter catalog with US national average prices.

Suitable for offline runs, demos and tests. Production callers inject
their own CatalogSource.
"""

from decimal import Decimal

from ..core.models import CatalogEntry, CompanionRules, RegionalPrice, ScopeConditions
from .catalog import InMemoryCatalog

NATIONAL_REGION = "US_NATIONAL"

# code, trade, description, unit, waste %, formula, material, labor, equipment
_SEED_ROWS: tuple[tuple[str, str, str, str, float, str, str, str, str], ...] = (
    ("MIT-EXTR-SF", "MIT", "Water extraction - standing, per SF", "SF", 0, "FLOOR_SF", "0.50", "1.50", "0.75"),
    ("MIT-EXTR-CA", "MIT", "Water extraction - carpet/pad, per SF", "SF", 0, "FLOOR_SF", "1.00", "2.00", "1.00"),
    ("MIT-DEHU-DAY", "MIT", "Dehumidifier per day", "DAY", 0, "MANUAL", "25.00", "15.00", "50.00"),
    ("MIT-AIRM-DAY", "MIT", "Air mover per day", "DAY", 0, "MANUAL", "10.00", "10.00", "40.00"),
    ("MIT-APPL-SF", "MIT", "Apply antimicrobial, per SF", "SF", 5, "FLOOR_SF", "0.25", "0.75", "0.25"),
    ("MIT-MOLD-SF", "MIT", "Mold remediation, per SF", "SF", 10, "WALL_SF_NET", "0.50", "2.50", "0.50"),
    ("MIT-CONT-DAY", "MIT", "Containment setup, per day", "DAY", 0, "MANUAL", "50.00", "100.00", "0.00"),
    ("MIT-MONI-DAY", "MIT", "Moisture monitoring, per day", "DAY", 0, "MANUAL", "25.00", "50.00", "0.00"),
    ("DEM-DRY-SF", "DEM", "Remove drywall, per SF", "SF", 0, "WALL_SF_NET", "0.50", "1.50", "0.25"),
    ("DEM-CEIL-SF", "DEM", "Remove ceiling drywall, per SF", "SF", 0, "CEILING_SF", "0.50", "1.25", "0.25"),
    ("DEM-FLR-SF", "DEM", "Remove flooring, per SF", "SF", 0, "FLOOR_SF", "0.25", "1.00", "0.50"),
    ("DEM-PAD-SF", "DEM", "Remove carpet pad, per SF", "SF", 0, "FLOOR_SF", "0.15", "0.50", "0.25"),
    ("DEM-TRIM-LF", "DEM", "Remove trim/baseboard, per LF", "LF", 0, "PERIMETER_LF", "0.50", "1.00", "0.00"),
    ("DEM-HAUL-LD", "DEM", "Haul debris, per load", "LD", 0, "EACH", "0.00", "75.00", "50.00"),
    ("DEM-INSUL-SF", "DEM", "Remove insulation, per SF", "SF", 0, "WALL_SF_NET", "0.25", "0.75", "0.25"),
    ("DRY-SHEET-SF", "DRY", "Drywall sheet installation, per SF", "SF", 10, "WALL_SF_NET", "0.75", "1.50", "0.25"),
    ("DRY-TAPE-LF", "DRY", "Drywall tape, per LF", "LF", 5, "PERIMETER_LF", "0.10", "0.25", "0.00"),
    ("DRY-JOINT-SF", "DRY", "Joint compound application, per SF", "SF", 8, "WALL_SF_NET", "0.25", "1.00", "0.25"),
    ("DRY-PATCH-SF", "DRY", "Patch drywall, per SF", "SF", 10, "MANUAL", "0.50", "1.50", "0.25"),
    ("DRY-PRIMER-SF", "DRY", "Primer/sealer, per SF", "SF", 8, "CEILING_SF", "0.30", "0.30", "0.10"),
    ("PNT-INT-SF", "PNT", "Interior paint, per SF", "SF", 10, "WALL_SF_NET", "0.35", "0.75", "0.15"),
    ("PNT-EXT-SF", "PNT", "Exterior paint, per SF", "SF", 10, "WALL_SF_NET", "0.35", "1.00", "0.25"),
    ("PNT-TRIM-LF", "PNT", "Paint trim, per LF", "LF", 8, "PERIMETER_LF", "0.10", "0.50", "0.10"),
    ("PNT-PREP-SF", "PNT", "Paint prep/cleanup, per SF", "SF", 0, "WALLS_CEILING_SF", "0.00", "0.50", "0.10"),
    ("PNT-CEILING-SF", "PNT", "Paint ceiling, per SF", "SF", 12, "CEILING_SF", "0.35", "1.00", "0.25"),
    ("FLR-TILE-SF", "FLR", "Ceramic tile flooring, per SF", "SF", 15, "FLOOR_SF", "3.50", "4.00", "0.50"),
    ("FLR-VINYL-SF", "FLR", "Vinyl plank flooring, per SF", "SF", 10, "FLOOR_SF", "2.00", "2.00", "0.50"),
    ("FLR-WOOD-SF", "FLR", "Hardwood flooring, per SF", "SF", 10, "FLOOR_SF", "5.00", "3.00", "0.50"),
    ("FLR-CARPET-SF", "FLR", "Carpet installation, per SF", "SF", 12, "FLOOR_SF", "2.50", "1.50", "0.50"),
    ("FLR-PAD-SF", "FLR", "Underlayment, per SF", "SF", 8, "FLOOR_SF", "0.50", "0.75", "0.25"),
    ("FLR-TRIM-LF", "FLR", "Floor trim/molding, per LF", "LF", 10, "PERIMETER_LF", "1.00", "1.00", "0.25"),
    ("INS-BATTS-SF", "INS", "Fiberglass batts, per SF", "SF", 15, "WALL_SF_NET", "0.40", "0.75", "0.15"),
    ("INS-ATTIC-SF", "INS", "Attic insulation, per SF", "SF", 12, "CEILING_SF", "0.35", "0.75", "0.25"),
    ("CAR-FRAME-LF", "CAR", "Wood framing, per LF", "LF", 10, "MANUAL", "0.75", "2.00", "0.25"),
    ("CAR-SHEATH-SF", "CAR", "Wall sheathing, per SF", "SF", 10, "WALL_SF_NET", "0.50", "1.00", "0.25"),
    ("RFG-SHIN-AR", "RFG", "Architectural shingles, per SQ", "SQ", 10, "ROOF_SQ", "100.00", "40.00", "5.00"),
    ("RFG-SHIN-3TAB", "RFG", "3-tab shingles, per SQ", "SQ", 10, "ROOF_SQ", "75.00", "35.00", "5.00"),
    ("RFG-UNDER-SF", "RFG", "Roofing underlayment, per SF", "SF", 10, "ROOF_SF", "0.35", "0.50", "0.15"),
    ("RFG-FELT-SQ", "RFG", "Roofing felt, per SQ", "SQ", 5, "ROOF_SQ", "15.00", "10.00", "2.00"),
    ("RFG-RIDGE-LF", "RFG", "Ridge cap shingles, per LF", "LF", 8, "MANUAL", "2.00", "1.50", "0.25"),
    ("RFG-DRIP-LF", "RFG", "Drip edge, per LF", "LF", 0, "PERIMETER_LF", "0.75", "0.50", "0.00"),
    ("RFG-ICE-SF", "RFG", "Ice/water shield, per SF", "SF", 8, "MANUAL", "0.50", "0.50", "0.10"),
    ("RFG-VENT-EA", "RFG", "Roof vent installation, each", "EA", 0, "EACH", "15.00", "25.00", "5.00"),
    ("WIN-DOUBLE-EA", "WIN", "Double-hung window, each", "EA", 5, "EACH", "150.00", "75.00", "10.00"),
    ("WIN-GLASS-SF", "WIN", "Window glass replacement, per SF", "SF", 10, "MANUAL", "5.00", "3.00", "0.50"),
    ("EXT-SIDING-SF", "EXT", "Vinyl siding, per SF", "SF", 10, "WALL_SF_NET", "2.00", "2.00", "0.50"),
    ("EXT-WRAP-SF", "EXT", "House wrap, per SF", "SF", 5, "WALL_SF_NET", "0.20", "0.30", "0.10"),
    ("EXT-FASCIA-LF", "EXT", "Fascia board, per LF", "LF", 10, "PERIMETER_LF", "1.50", "1.50", "0.25"),
    ("EXT-DOOR-EA", "EXT", "Exterior door, each", "EA", 5, "EACH", "150.00", "100.00", "10.00"),
)

_SEED_COMPANIONS: dict[str, CompanionRules] = {
    "DRY-SHEET-SF": CompanionRules(
        auto_adds=["DEM-DRY-SF", "DRY-TAPE-LF", "DRY-JOINT-SF"],
        excludes=["DRY-PATCH-SF"],
    ),
    "DRY-PATCH-SF": CompanionRules(excludes=["DRY-SHEET-SF"]),
    "FLR-CARPET-SF": CompanionRules(
        auto_adds=["FLR-PAD-SF", "DEM-FLR-SF"], excludes=["FLR-VINYL-SF", "FLR-TILE-SF"]
    ),
    "FLR-VINYL-SF": CompanionRules(auto_adds=["DEM-FLR-SF"], excludes=["FLR-CARPET-SF"]),
    "FLR-TILE-SF": CompanionRules(auto_adds=["DEM-FLR-SF"], excludes=["FLR-CARPET-SF"]),
    "MIT-EXTR-SF": CompanionRules(auto_adds=["MIT-APPL-SF"]),
    "RFG-SHIN-AR": CompanionRules(
        auto_adds=["RFG-FELT-SQ", "RFG-DRIP-LF"], excludes=["RFG-SHIN-3TAB"]
    ),
    "RFG-SHIN-3TAB": CompanionRules(
        auto_adds=["RFG-FELT-SQ", "RFG-DRIP-LF"], excludes=["RFG-SHIN-AR"]
    ),
    "EXT-SIDING-SF": CompanionRules(auto_adds=["EXT-WRAP-SF"]),
    "DEM-DRY-SF": CompanionRules(requires=["DRY-SHEET-SF"]),
}

_SEED_CONDITIONS: dict[str, ScopeConditions] = {
    "PNT-PREP-SF": ScopeConditions(damage_types=["smoke", "soot"], zone_types=["interior"]),
    "PNT-CEILING-SF": ScopeConditions(damage_types=["smoke", "soot"], zone_types=["interior"]),
    "INS-BATTS-SF": ScopeConditions(damage_types=["smoke"], severity=["severe"]),
    "PNT-EXT-SF": ScopeConditions(damage_types=["smoke", "soot"], zone_types=["exterior"]),
    "WIN-GLASS-SF": ScopeConditions(damage_types=["broken_glass"]),
}


def seed_catalog_entries() -> list[CatalogEntry]:
    """Catalog entries for the starter catalog."""
    entries = []
    for order, (code, trade, description, unit, waste, formula, *_prices) in enumerate(_SEED_ROWS):
        entries.append(
            CatalogEntry(
                code=code,
                description=description,
                unit=unit,
                trade_code=trade,
                quantity_formula=formula,
                default_waste_factor=waste,
                scope_conditions=_SEED_CONDITIONS.get(code),
                companion_rules=_SEED_COMPANIONS.get(code),
                sort_order=order,
            )
        )
    return entries


def seed_regional_prices(region_id: str = NATIONAL_REGION) -> list[RegionalPrice]:
    """Install prices for every starter catalog code."""
    return [
        RegionalPrice(
            code=code,
            region_id=region_id,
            material_cost=Decimal(material),
            labor_cost=Decimal(labor),
            equipment_cost=Decimal(equipment),
        )
        for code, _trade, _desc, _unit, _waste, _formula, material, labor, equipment in _SEED_ROWS
    ]


def build_seed_catalog(region_id: str = NATIONAL_REGION) -> InMemoryCatalog:
    """In-memory catalog preloaded with the starter entries and prices."""
    return InMemoryCatalog(seed_catalog_entries(), seed_regional_prices(region_id))
