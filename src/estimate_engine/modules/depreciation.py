"""
Depreciation.

Percentage = explicit override, else age / life expectancy, else 0, always
clamped to [0, 100]. Water classification and roof schedules can force
the percentage or the depreciation type.
"""

from dataclasses import dataclass
from decimal import Decimal

from ..core.models import DepreciationType, WaterCategory, WaterClassification
from ..utils.money import HUNDRED, ZERO, clamp_percent, non_negative, percent_of, round2, to_decimal

# category -> ((description phrases, years), ...), default years
LIFE_EXPECTANCY_TABLE: dict[str, tuple[tuple[tuple[tuple[str, ...], float], ...], float]] = {
    "roofing": (
        (
            (("3-tab composition shingles", "3-tab shingles"), 20),
            (("laminated/architectural shingles", "laminated shingles", "architectural shingles"), 30),
            (("metal roofing",), 50),
            (("tile roofing",), 50),
            (("flat/modified bitumen", "modified bitumen"), 20),
            (("wood shake/shingle", "wood shake", "wood shingle"), 30),
            (("roofing felt",), 30),
            (("ice & water barrier", "ice & water shield", "ice/water shield"), 30),
            (("ridge vent",), 25),
            (("drip edge",), 25),
            (("flashing",), 25),
        ),
        25,
    ),
    "siding": (
        (
            (("vinyl siding",), 40),
            (("aluminum siding",), 40),
            (("wood siding",), 30),
            (("fiber cement/hardie", "fiber cement", "hardie"), 50),
            (("stucco",), 50),
            (("brick",), 100),
        ),
        35,
    ),
    "soffit/fascia": (((("aluminum",), 30), (("vinyl",), 30), (("wood",), 20)), 25),
    "gutters": (((("aluminum",), 20), (("copper",), 50), (("vinyl",), 15), (("steel",), 20)), 20),
    "windows": (((("vinyl window",), 30), (("wood window",), 30), (("aluminum window",), 25)), 30),
    "doors": (
        (
            (("exterior door",), 30),
            (("interior door",), 50),
            (("garage door",), 25),
            (("storm door",), 20),
        ),
        30,
    ),
    "drywall": ((), 70),
    "painting": (((("interior",), 7), (("exterior",), 7)), 7),
    "flooring": (
        (
            (("carpet",), 10),
            (("hardwood",), 50),
            (("laminate",), 15),
            (("tile",), 50),
            (("vinyl/lvp", "vinyl", "lvp"), 20),
        ),
        20,
    ),
    "insulation": ((), 50),
    "carpentry": ((), 50),
    "plumbing": ((), 40),
    "electrical": ((), 40),
    "hvac": ((), 15),
    "fencing": (
        (
            (("wood fence",), 15),
            (("vinyl fence",), 30),
            (("chain link",), 20),
            (("wrought iron",), 50),
        ),
        20,
    ),
    "cabinetry": ((), 50),
    "countertops": ((), 50),
    "debris": ((), 0),
    "general": ((), 0),
}

# Trade code -> life table category when the free-text category is unknown
TRADE_LIFE_CATEGORY: dict[str, str] = {
    "RFG": "roofing",
    "EXT": "siding",
    "WIN": "windows",
    "DRY": "drywall",
    "PNT": "painting",
    "FLR": "flooring",
    "INS": "insulation",
    "CAR": "carpentry",
    "CAB": "cabinetry",
    "CTR": "countertops",
    "PLM": "plumbing",
    "ELE": "electrical",
    "HVAC": "hvac",
    "DEM": "debris",
    "MIT": "general",
    "GEN": "general",
}

CATEGORY_ALIASES: dict[str, str] = {
    "exterior": "siding",
    "demolition": "debris",
    "mitigation": "general",
}

WATER_FIFTY_PERCENT_TRADES = frozenset({"DEM", "RFG", "FLR", "EXT"})
WATER_NEVER_DEPRECIATED_TRADES = frozenset({"MIT", "DRY"})
FIFTY = Decimal("50")


@dataclass(frozen=True)
class DepreciationResult:
    """Depreciation for one line item."""

    life_expectancy: float
    percentage: Decimal
    amount: Decimal
    depreciation_type: DepreciationType
    paid_when_incurred_holdback: Decimal = ZERO
    water_override: bool = False

    @property
    def withheld(self) -> Decimal:
        """Amount kept out of ACV."""
        return self.amount + self.paid_when_incurred_holdback

    def acv(self, rcv: Decimal) -> Decimal:
        """ACV clamped to [0, RCV]."""
        return min(rcv, non_negative(round2(rcv - self.withheld)))


def lookup_life_expectancy(category: str, description: str = "", trade_code: str | None = None) -> float:
    """
    Life expectancy in years from the category table.

    The category is matched first, then the trade code's category.
    Description phrases refine the category default. Unknown
    categories return 0 (not depreciated).
    """
    key = (category or "").strip().lower()
    key = CATEGORY_ALIASES.get(key, key)
    if key not in LIFE_EXPECTANCY_TABLE and trade_code:
        key = TRADE_LIFE_CATEGORY.get(trade_code.upper(), "")
    entry = LIFE_EXPECTANCY_TABLE.get(key)
    if entry is None:
        return 0.0

    phrases, default = entry
    text = (description or "").lower()
    for matches, years in phrases:
        if any(phrase in text for phrase in matches):
            return float(years)
    return float(default)


def water_override_active(water: WaterClassification | None) -> bool:
    """Contaminated water or class 3+ saturation forces water depreciation rules."""
    if water is None:
        return False
    return water.category >= WaterCategory.CATEGORY_2 or water.water_class >= 3


def check_water_depreciation_override(
    trade_code: str | None, water: WaterClassification | None
) -> Decimal | None:
    """
    Forced depreciation percentage for a water loss, or None when the
    normal calculation applies.

    Mitigation and drywall are only forced to zero once the override is
    active; a clean class 1 or 2 loss depreciates them normally.
    """
    if water is None:
        return None
    trade = (trade_code or "").upper()
    if water.water_class == 4:
        return ZERO
    if water.category == WaterCategory.CATEGORY_3:
        return ZERO
    if trade in WATER_NEVER_DEPRECIATED_TRADES and water_override_active(water):
        return ZERO
    if (
        water.category == WaterCategory.CATEGORY_2
        and water.water_class >= 3
        and trade in WATER_FIFTY_PERCENT_TRADES
    ):
        return FIFTY
    return None


def depreciation_percentage(
    age: float | None,
    life_expectancy: float,
    override: float | Decimal | None = None,
) -> Decimal:
    """Depreciation percentage rounded to 2 decimals and clamped to [0, 100]."""
    if override is not None:
        return round2(clamp_percent(override))
    if not age or life_expectancy <= 0:
        return ZERO
    return round2(clamp_percent(to_decimal(age) / to_decimal(life_expectancy) * HUNDRED))


def roof_schedule_applies(
    trade_code: str | None,
    schedule_active: bool,
    roof_age: float | None,
    min_age: float,
) -> bool:
    """Whether a roofing item falls under an active roof-age schedule."""
    return (
        schedule_active
        and (trade_code or "").upper() == "RFG"
        and roof_age is not None
        and roof_age >= min_age
    )


def calculate_depreciation(
    basis: Decimal,
    rcv: Decimal,
    trade_code: str | None = None,
    category: str = "",
    description: str = "",
    age: float | None = None,
    life_expectancy: float | None = None,
    override_percentage: float | None = None,
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE,
    work_completed: bool = False,
    water: WaterClassification | None = None,
    roof_schedule_active: bool = False,
    roof_age: float | None = None,
    roof_schedule_min_age: float = 10.0,
) -> DepreciationResult:
    """
    Depreciate one line item.

    Args:
        basis: Amount the percentage applies to (per the resolved basis)
        rcv: The item's replacement cost value
        trade_code: Canonical trade code
        category: Free-text category for the life table
        description: Line item description for the life table
        age: Item age in years
        life_expectancy: Explicit life; looked up when None
        override_percentage: Manual percentage, clamped to [0, 100]
        depreciation_type: Recoverable, Non-Recoverable or Paid When Incurred
        work_completed: Paid-when-incurred work has been done
        water: Water classification of the loss
        roof_schedule_active: Carrier or policy roof schedule in force
        roof_age: Age of the roof in years
        roof_schedule_min_age: Roof age at which the schedule applies

    Returns:
        DepreciationResult
    """
    life = (
        life_expectancy
        if life_expectancy is not None
        else lookup_life_expectancy(category, description, trade_code)
    )

    dep_type = depreciation_type
    if dep_type == DepreciationType.RECOVERABLE and roof_schedule_applies(
        trade_code, roof_schedule_active, roof_age, roof_schedule_min_age
    ):
        dep_type = DepreciationType.NON_RECOVERABLE

    if dep_type == DepreciationType.PAID_WHEN_INCURRED:
        holdback = ZERO if work_completed else round2(rcv)
        return DepreciationResult(
            life_expectancy=life,
            percentage=ZERO,
            amount=ZERO,
            depreciation_type=dep_type,
            paid_when_incurred_holdback=holdback,
        )

    forced = check_water_depreciation_override(trade_code, water)
    if forced is not None:
        pct = forced
    else:
        pct = depreciation_percentage(age, life, override_percentage)

    amount = min(percent_of(non_negative(basis), pct), round2(rcv))
    return DepreciationResult(
        life_expectancy=life,
        percentage=pct,
        amount=amount,
        depreciation_type=dep_type,
        water_override=forced is not None,
    )
