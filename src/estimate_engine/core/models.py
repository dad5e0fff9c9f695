"""
Core data models for the Estimation Engine.
Uses Pydantic for validation and serialization.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..utils.money import round2, to_decimal


class WaterCategory(int, Enum):
    """Water damage categories per IICRC S500 standard."""

    CATEGORY_1 = 1  # Clean water
    CATEGORY_2 = 2  # Gray water
    CATEGORY_3 = 3  # Black water (sewage/contaminated)


class CeilingType(str, Enum):
    """Ceiling profiles that affect room volume."""

    FLAT = "flat"
    CATHEDRAL = "cathedral"
    VAULTED = "vaulted"
    TRAY = "tray"


class QuantityFormula(str, Enum):
    """Quantity formula codes stored on catalog entries."""

    FLOOR_SF = "FLOOR_SF"
    CEILING_SF = "CEILING_SF"
    WALL_SF = "WALL_SF"
    WALL_SF_NET = "WALL_SF_NET"
    WALLS_CEILING_SF = "WALLS_CEILING_SF"
    PERIMETER_LF = "PERIMETER_LF"
    CEILING_PERIM_LF = "CEILING_PERIM_LF"
    FLOOR_SY = "FLOOR_SY"
    ROOF_SF = "ROOF_SF"
    ROOF_SQ = "ROOF_SQ"
    VOLUME_CF = "VOLUME_CF"
    EACH = "EACH"
    MANUAL = "MANUAL"


class Provenance(str, Enum):
    """How a scope item came to exist."""

    DAMAGE_TRIGGERED = "damage_triggered"
    COMPANION_AUTO = "companion_auto"
    TEMPLATE = "template"
    MANUAL = "manual"


class DepreciationType(str, Enum):
    """Depreciation treatment of a line item."""

    RECOVERABLE = "Recoverable"
    NON_RECOVERABLE = "Non-Recoverable"
    PAID_WHEN_INCURRED = "Paid When Incurred"


class CoverageType(str, Enum):
    """Policy coverage buckets."""

    A = "A"  # Dwelling
    B = "B"  # Other structures
    C = "C"  # Personal property / contents
    D = "D"  # Loss of use


class TaxCostType(str, Enum):
    """Which portion of a line item a tax rule applies to."""

    ALL = "all"
    MATERIALS_ONLY = "materials_only"
    LABOR_ONLY = "labor_only"


# ── Geometry ──


class RoomDimensions(BaseModel):
    """Measured room box (feet). Immutable snapshot per calculation."""

    model_config = ConfigDict(frozen=True)

    length: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(default=8.0, ge=0)
    wall_thickness: float | None = Field(default=None, ge=0, description="Inches")
    orientation: float | None = Field(default=None, description="Degrees from north")
    ceiling_type: CeilingType = CeilingType.FLAT
    is_elevation: bool = False


class Opening(BaseModel):
    """Door, window or missing wall belonging to one room."""

    id: str | int | None = None
    opening_type: str = "window"
    width_ft: float | None = Field(default=None, ge=0)
    height_ft: float | None = Field(default=None, ge=0)
    quantity: int = Field(default=1, ge=1)
    wall_side: str | None = None
    goes_to_floor: bool = False
    goes_to_ceiling: bool = False
    label: str | None = None
    opens_into: str | None = None


DIM_VAR_NAMES: tuple[str, ...] = (
    "HH", "SH", "W", "LW", "SW", "PF", "PC", "C", "F", "LL", "R", "SQ", "V",
)


class DimVars(BaseModel):
    """Derived dimension variables for one room, in interchange naming."""

    model_config = ConfigDict(frozen=True)

    HH: float = 0.0  # Ceiling height
    SH: float = 0.0  # Short (wall) height
    W: float = 0.0  # Wall area
    LW: float = 0.0  # Long wall area
    SW: float = 0.0  # Short wall area
    PF: float = 0.0  # Floor perimeter
    PC: float = 0.0  # Ceiling perimeter
    C: float = 0.0  # Ceiling area
    F: float = 0.0  # Floor area
    LL: float = 0.0  # Long wall length
    R: float = 0.0  # Roof area
    SQ: float = 0.0  # Roof squares
    V: float = 0.0  # Volume

    def as_attributes(self) -> dict[str, float]:
        """Dimension variables in interchange attribute order."""
        return {name: getattr(self, name) for name in DIM_VAR_NAMES}


# ── Scope ──


class InspectionRoom(BaseModel):
    """Room context used by scope assembly and export."""

    id: str | int
    name: str
    room_type: str | None = None
    structure: str = "Main Dwelling"
    dimensions: RoomDimensions | None = None
    openings: list[Opening] = Field(default_factory=list)


class DamageObservation(BaseModel):
    """A single logged damage observation."""

    id: str | int
    room_id: str | int | None = None
    description: str = ""
    damage_type: str | None = None
    severity: str | None = None
    location: str | None = None


class ScopeConditions(BaseModel):
    """Declarative applicability criteria for a catalog entry."""

    damage_types: list[str] = Field(default_factory=list)
    severity: list[str] = Field(default_factory=list)
    room_types: list[str] = Field(default_factory=list)
    zone_types: list[str] = Field(default_factory=list)
    surfaces: list[str] = Field(default_factory=list)


class CompanionRules(BaseModel):
    """Companion relationships declared by a catalog entry."""

    requires: list[str] = Field(default_factory=list)
    auto_adds: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)


class CatalogEntry(BaseModel):
    """Static catalog line item (read-only at runtime)."""

    code: str
    description: str
    unit: str = "EA"
    trade_code: str = "GEN"
    quantity_formula: str | None = None
    default_waste_factor: float = Field(default=0.0, ge=0)
    activity_type: str = "install"
    coverage_type: CoverageType | None = None
    scope_conditions: ScopeConditions | None = None
    companion_rules: CompanionRules | None = None
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE
    xact_selector: str | None = None
    sort_order: int = 0
    is_active: bool = True


class RegionalPrice(BaseModel):
    """Unit cost components for a catalog code in a pricing region."""

    code: str
    region_id: str
    activity_type: str = "install"
    material_cost: Decimal = Field(default=Decimal("0"), ge=0)
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0)
    equipment_cost: Decimal = Field(default=Decimal("0"), ge=0)


class ScopeItem(BaseModel):
    """A catalog code bound to a room and damage, with a derived quantity."""

    id: str
    room_id: str | int | None = None
    damage_id: str | int | None = None
    catalog_code: str
    description: str
    trade_code: str
    quantity: float = Field(ge=0)
    unit: str = "EA"
    quantity_formula: str | None = None
    provenance: Provenance = Provenance.MANUAL
    coverage_type: CoverageType | None = None
    activity_type: str = "install"
    waste_factor: float | None = None
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE
    status: str = "active"
    parent_scope_item_id: str | None = None  # Traceability only

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class ManualQuantityNeeded(BaseModel):
    """A catalog item whose quantity needs human input."""

    catalog_code: str
    description: str
    unit: str
    reason: str


# ── Pricing and settlement inputs ──


class LineItem(BaseModel):
    """A priced, billable unit of work."""

    id: str | int
    description: str
    category: str = ""
    trade_code: str | None = None
    xact_code: str | None = None
    action: str = "&"
    quantity: float = Field(default=0.0, ge=0)
    unit: str = "EA"
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    total_price: Decimal | None = None

    # Per-unit cost breakdown, when known
    material_cost: Decimal | None = Field(default=None, ge=0)
    labor_cost: Decimal | None = Field(default=None, ge=0)
    equipment_cost: Decimal | None = Field(default=None, ge=0)
    waste_factor: float | None = None

    # Depreciation inputs and manual overrides
    age: float | None = Field(default=None, ge=0)
    life_expectancy: float | None = Field(default=None, ge=0)
    depreciation_percentage: float | None = None
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE
    work_completed: bool = False

    coverage_type: CoverageType | None = None
    structure: str | None = None
    room_id: str | int | None = None
    room_name: str | None = None

    def model_post_init(self, __context: Any) -> None:
        """Calculate total if not provided."""
        if self.total_price is None:
            self.total_price = round2(self.unit_price * to_decimal(self.quantity))

    def component_total(self, per_unit: Decimal | None) -> Decimal | None:
        """Extended amount for one cost component, or None when unknown."""
        if per_unit is None:
            return None
        return round2(per_unit * to_decimal(self.quantity))


class PolicyRule(BaseModel):
    """Coverage-level policy terms."""

    coverage_type: CoverageType
    policy_limit: Decimal | None = Field(default=None, ge=0)
    deductible: Decimal = Field(default=Decimal("0"), ge=0)
    overhead_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    profit_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    apply_roof_schedule: bool = False
    roof_schedule_age: float | None = Field(
        default=None, ge=0, description="Roof age in years at which this policy's roof schedule starts"
    )


class TaxRule(BaseModel):
    """Per-category sales tax rule."""

    category: str
    tax_rate: Decimal = Field(ge=0, le=100, description="Percent")
    cost_type: TaxCostType = TaxCostType.ALL
    is_default: bool = False


class WaterClassification(BaseModel):
    """IICRC water damage classification for a loss."""

    model_config = ConfigDict(frozen=True)

    category: WaterCategory
    water_class: int = Field(ge=1, le=4)
    source: str = "gray"
    contamination_level: str = "low"
    drying_possible: bool = True
    standing_days: int = 0
    notes: str | None = None


class SettlementRules(BaseModel):
    """Resolved carrier- and claim-specific settlement configuration."""

    model_config = ConfigDict(frozen=True)

    op_threshold: int = 3
    tax_on_op: bool = False
    tax_on_labor: bool = True
    depreciation_basis: str = "rcv_full"
    default_tax_rate: Decimal = Decimal("8")
    labor_efficiency: Decimal = Decimal("100")
    overhead_percentage: Decimal = Decimal("10")
    profit_percentage: Decimal = Decimal("10")
    op_excluded_trades: tuple[str, ...] = ()
    apply_roof_depreciation_schedule: bool = False
    roof_schedule_min_age: float = 10.0
    carrier_code: str = "DEFAULT"
    description: str = "Xactimate-standard defaults (Replacement Cost Value basis)"


# ── Settlement outputs ──


class SettledLineItem(BaseModel):
    """A line item after O&P, tax and depreciation."""

    model_config = ConfigDict(frozen=True)

    line_item_id: str | int
    description: str
    category: str
    trade_code: str
    coverage_type: CoverageType
    xact_code: str | None = None
    action: str = "&"
    room_id: str | int | None = None
    room_name: str | None = None
    structure: str | None = None
    quantity: float
    unit: str
    unit_price: Decimal
    total_price: Decimal
    material_total: Decimal = Decimal("0")
    labor_total: Decimal = Decimal("0")
    equipment_total: Decimal = Decimal("0")
    overhead: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    rcv: Decimal
    age: float | None = None
    life_expectancy: float = 0.0
    depreciation_percentage: Decimal = Decimal("0")
    depreciation_amount: Decimal = Decimal("0")
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE
    paid_when_incurred_holdback: Decimal = Decimal("0")
    acv: Decimal

    @property
    def op_amount(self) -> Decimal:
        return self.overhead + self.profit


class TradeSummary(BaseModel):
    """Per-trade subtotal with O&P eligibility."""

    model_config = ConfigDict(frozen=True)

    trade_code: str
    item_count: int
    subtotal: Decimal
    op_eligible: bool
    overhead: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    rcv: Decimal = Decimal("0")
    depreciation: Decimal = Decimal("0")
    acv: Decimal = Decimal("0")


class CoverageSummary(BaseModel):
    """Rollup of settled items charged against one coverage."""

    model_config = ConfigDict(frozen=True)

    coverage_type: CoverageType
    item_count: int = 0
    line_total: Decimal = Decimal("0")
    overhead: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    rcv: Decimal = Decimal("0")
    recoverable_depreciation: Decimal = Decimal("0")
    non_recoverable_depreciation: Decimal = Decimal("0")
    paid_when_incurred: Decimal = Decimal("0")
    acv: Decimal = Decimal("0")
    deductible: Decimal = Decimal("0")
    policy_limit: Decimal | None = None
    over_limit: Decimal = Decimal("0")
    net_claim: Decimal = Decimal("0")

    @property
    def total_depreciation(self) -> Decimal:
        return self.recoverable_depreciation + self.non_recoverable_depreciation


class SettlementTotals(BaseModel):
    """Grand totals across all coverage buckets."""

    model_config = ConfigDict(frozen=True)

    line_total: Decimal = Decimal("0")
    overhead: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    rcv: Decimal = Decimal("0")
    recoverable_depreciation: Decimal = Decimal("0")
    non_recoverable_depreciation: Decimal = Decimal("0")
    paid_when_incurred: Decimal = Decimal("0")
    acv: Decimal = Decimal("0")
    deductible: Decimal = Decimal("0")
    over_limit: Decimal = Decimal("0")
    net_claim: Decimal = Decimal("0")

    @property
    def total_depreciation(self) -> Decimal:
        return self.recoverable_depreciation + self.non_recoverable_depreciation


class SettlementSummary(BaseModel):
    """Terminal output of a settlement run. Rebuilt whenever inputs change."""

    model_config = ConfigDict(frozen=True)

    coverages: list[CoverageSummary] = Field(default_factory=list)
    trades: list[TradeSummary] = Field(default_factory=list)
    items: list[SettledLineItem] = Field(default_factory=list)
    totals: SettlementTotals = Field(default_factory=SettlementTotals)
    qualifies_for_op: bool = False
    trades_involved: list[str] = Field(default_factory=list)
    rules: SettlementRules = Field(default_factory=SettlementRules)
    warnings: list[str] = Field(default_factory=list)

    def coverage(self, coverage_type: CoverageType | str) -> CoverageSummary | None:
        """Get the rollup for one coverage bucket."""
        wanted = CoverageType(coverage_type)
        for cov in self.coverages:
            if cov.coverage_type == wanted:
                return cov
        return None

    def trade(self, trade_code: str) -> TradeSummary | None:
        """Get the subtotal for one trade."""
        for trade in self.trades:
            if trade.trade_code == trade_code.upper():
                return trade
        return None


# ── Claim context for export ──


class RoofInfo(BaseModel):
    """Roof details reported for wind/hail claims."""

    roof_type: str = ""
    roof_age: float = 0.0
    roof_material: str = ""
    roof_slope: str = "6:12"
    square_footage: float = 0.0
    condition: str = "unknown"


class ContactInfo(BaseModel):
    """Adjuster or inspector contact details."""

    name: str = ""
    company: str = ""
    license_number: str | None = None
    license_state: str | None = None
    phone_number: str | None = None
    email: str | None = None


class ClaimInfo(BaseModel):
    """Claim identity and loss facts needed for the interchange header."""

    claim_number: str = ""
    policy_number: str = ""
    insured_name: str = ""
    property_address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    county: str | None = None
    property_type: str = "residential"
    year_built: int | None = None
    square_footage: float | None = None
    date_of_loss: str = ""
    date_discovered: str | None = None
    date_reported: str | None = None
    peril_type: str | None = None
    peril_severity: str = "moderate"
    cause_of_loss: str | None = None
    is_catastrophic: bool = False
    has_salvage: bool = False
    affected_areas: list[str] = Field(default_factory=list)
    carrier_code: str | None = None
    carrier_name: str = ""
    price_list_id: str | None = None
    tax_rate: Decimal | None = Field(default=None, ge=0, le=100)
    depreciation_type: str | None = None
    roof_info: RoofInfo | None = None
    adjuster: ContactInfo | None = None
    inspector: ContactInfo | None = None
    home_phone: str | None = None
    cell_phone: str | None = None
    email: str | None = None
    is_supplemental: bool = False
    supplemental_reason: str | None = None
    previous_rcv: Decimal | None = None
