"""
Line item pricing.

unit price = round2(round2(material x (1 + waste/100)) + labor + equipment)
total      = round2(unit price x quantity)

Rounding happens at every step; rounding once at the end gives totals
that do not reconcile with the interchange format.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from ..core.models import (
    CatalogEntry,
    CoverageType,
    DepreciationType,
    LineItem,
    RegionalPrice,
    ScopeItem,
)
from ..core.trade_codes import TRADE_NAMES, resolve_category
from ..scope.catalog import TRANSIENT_ERRORS, CatalogSource
from ..utils.money import HUNDRED, ZERO, percent_of, round2, to_decimal

logger = logging.getLogger(__name__)


# Material/labor/equipment percentages by category, for items priced
# without a component breakdown. Each row sums to 100.
CATEGORY_MLE_DEFAULTS: dict[str, tuple[int, int, int]] = {
    "RFG": (55, 40, 5),
    "DRY": (40, 55, 5),
    "PNT": (35, 60, 5),
    "FLR": (50, 45, 5),
    "PLM": (45, 50, 5),
    "HVA": (40, 45, 15),
    "ELE": (35, 55, 10),
    "DEM": (15, 80, 5),
    "MIT": (15, 80, 5),
    "SDG": (60, 35, 5),
    "INS": (65, 30, 5),
    "FRM": (50, 45, 5),
    "CAB": (50, 45, 5),
    "CTR": (65, 30, 5),
    "WIN": (60, 35, 5),
    "EXT": (60, 35, 5),
    "APL": (80, 15, 5),
    "MEC": (40, 45, 15),
    "GEN": (50, 45, 5),
}


@dataclass(frozen=True)
class MLESplit:
    material: Decimal
    labor: Decimal
    equipment: Decimal
    source: str  # "category" or "fallback"


def resolve_mle_split(trade_code: str | None) -> MLESplit:
    """Category default M/L/E percentages for a trade, GEN when unknown."""
    code = (trade_code or "").upper().strip()
    key = code if code in CATEGORY_MLE_DEFAULTS else resolve_category(code)
    source = "category"
    if key not in CATEGORY_MLE_DEFAULTS or (key == "GEN" and code != "GEN"):
        key, source = "GEN", "fallback"
    material, labor, equipment = CATEGORY_MLE_DEFAULTS[key]
    return MLESplit(Decimal(material), Decimal(labor), Decimal(equipment), source)


def apply_mle_split(total: Decimal, split: MLESplit) -> tuple[Decimal, Decimal, Decimal]:
    """Material, labor and equipment amounts of a total; equipment takes the remainder."""
    total = round2(total)
    material = percent_of(total, split.material)
    labor = percent_of(total, split.labor)
    return material, labor, total - material - labor


@dataclass(frozen=True)
class UnitPriceBreakdown:
    material_cost: Decimal  # Waste applied
    labor_cost: Decimal
    equipment_cost: Decimal
    waste_factor: float
    unit_price: Decimal


@dataclass(frozen=True)
class PricedLineItem:
    """A scope item or catalog entry with its price resolved."""

    code: str
    description: str
    unit: str
    quantity: float
    trade_code: str
    breakdown: UnitPriceBreakdown
    total_price: Decimal
    scope_item_id: str | None = None
    room_id: str | int | None = None
    activity_type: str = "install"
    coverage_type: CoverageType | None = None
    depreciation_type: DepreciationType = DepreciationType.RECOVERABLE
    placeholder: bool = False

    @property
    def unit_price(self) -> Decimal:
        return self.breakdown.unit_price

    def to_line_item(
        self,
        room_name: str | None = None,
        structure: str | None = None,
        age: float | None = None,
        life_expectancy: float | None = None,
    ) -> LineItem:
        """Convert into a settlement line item."""
        return LineItem(
            id=self.scope_item_id or self.code,
            description=self.description,
            category=TRADE_NAMES.get(self.trade_code, "General"),
            trade_code=self.trade_code,
            xact_code=self.code,
            quantity=self.quantity,
            unit=self.unit,
            unit_price=self.breakdown.unit_price,
            total_price=self.total_price,
            material_cost=self.breakdown.material_cost,
            labor_cost=self.breakdown.labor_cost,
            equipment_cost=self.breakdown.equipment_cost,
            waste_factor=self.breakdown.waste_factor,
            depreciation_type=self.depreciation_type,
            coverage_type=self.coverage_type,
            structure=structure,
            room_id=self.room_id,
            room_name=room_name,
            age=age,
            life_expectancy=life_expectancy,
        )


@dataclass
class PricingResult:
    items: list[PricedLineItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return round2(sum((item.total_price for item in self.items), ZERO))


@dataclass(frozen=True)
class EstimateTotals:
    """Pre-settlement estimate totals."""

    subtotal_material: Decimal
    subtotal_labor: Decimal
    subtotal_equipment: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    waste_included: Decimal
    trades_involved: list[str]
    qualifies_for_op: bool
    overhead_amount: Decimal
    profit_amount: Decimal
    grand_total: Decimal


def calculate_line_item_price(
    entry: CatalogEntry,
    price: RegionalPrice | None,
    quantity: float,
    waste_factor: float | None = None,
) -> PricedLineItem:
    """
    Price a catalog entry for a quantity.

    Args:
        entry: Catalog entry being priced
        price: Regional unit costs, or None for a zero-priced line
        quantity: Units of work
        waste_factor: Percent waste override; defaults to the catalog's

    Returns:
        PricedLineItem with per-step rounding applied
    """
    waste = entry.default_waste_factor if waste_factor is None else waste_factor
    material = price.material_cost if price else ZERO
    labor = price.labor_cost if price else ZERO
    equipment = price.equipment_cost if price else ZERO

    # Waste applies to materials only
    wasted_material = round2(material * (1 + to_decimal(waste) / HUNDRED))
    unit_price = round2(wasted_material + labor + equipment)
    total = round2(unit_price * to_decimal(quantity))

    return PricedLineItem(
        code=entry.code,
        description=entry.description,
        unit=entry.unit,
        quantity=quantity,
        trade_code=entry.trade_code,
        breakdown=UnitPriceBreakdown(
            material_cost=wasted_material,
            labor_cost=round2(labor),
            equipment_cost=round2(equipment),
            waste_factor=waste,
            unit_price=unit_price,
        ),
        total_price=total,
        activity_type=entry.activity_type,
        coverage_type=entry.coverage_type,
        depreciation_type=entry.depreciation_type,
    )


def _placeholder(item: ScopeItem) -> PricedLineItem:
    return PricedLineItem(
        code=item.catalog_code,
        description=item.description,
        unit=item.unit,
        quantity=item.quantity,
        trade_code=item.trade_code,
        breakdown=UnitPriceBreakdown(ZERO, ZERO, ZERO, item.waste_factor or 0.0, ZERO),
        total_price=ZERO,
        scope_item_id=item.id,
        room_id=item.room_id,
        activity_type=item.activity_type,
        coverage_type=item.coverage_type,
        depreciation_type=item.depreciation_type,
        placeholder=True,
    )


async def _price_one(
    item: ScopeItem, catalog: CatalogSource, region_id: str
) -> tuple[PricedLineItem, str | None]:
    try:
        entry, price = await asyncio.gather(
            catalog.lookup_catalog_item(item.catalog_code),
            catalog.get_regional_price(item.catalog_code, region_id, item.activity_type),
        )
    except TRANSIENT_ERRORS as exc:
        return _placeholder(item), (
            f"Catalog lookup failed for {item.catalog_code}: {exc}; priced at zero"
        )

    if entry is None:
        return _placeholder(item), f"Catalog item {item.catalog_code} not found; priced at zero"
    if price is None:
        warning = f"No {region_id} price for {item.catalog_code}; priced at zero"
    else:
        warning = None

    priced = calculate_line_item_price(entry, price, item.quantity, item.waste_factor)
    return (
        PricedLineItem(
            code=priced.code,
            description=item.description or priced.description,
            unit=priced.unit,
            quantity=priced.quantity,
            trade_code=item.trade_code or priced.trade_code,
            breakdown=priced.breakdown,
            total_price=priced.total_price,
            scope_item_id=item.id,
            room_id=item.room_id,
            activity_type=item.activity_type,
            coverage_type=item.coverage_type or priced.coverage_type,
            depreciation_type=item.depreciation_type,
            placeholder=price is None,
        ),
        warning,
    )


async def price_scope_items(
    items: list[ScopeItem] | tuple[ScopeItem, ...],
    catalog: CatalogSource,
    region_id: str,
) -> PricingResult:
    """
    Price active scope items concurrently.

    Missing catalog entries, missing prices and transient source failures
    produce zero-priced placeholders and a warning instead of failing.
    """
    active = [item for item in items if item.is_active]
    outcomes = await asyncio.gather(*(_price_one(item, catalog, region_id) for item in active))

    result = PricingResult()
    for priced, warning in outcomes:
        result.items.append(priced)
        if warning:
            logger.warning(warning)
            result.warnings.append(warning)
    logger.info("Priced %d scope items for region %s", len(result.items), region_id)
    return result


def calculate_estimate_totals(
    items: list[PricedLineItem],
    tax_rate: Decimal | float = Decimal("8"),
    overhead_percentage: Decimal | float = Decimal("10"),
    profit_percentage: Decimal | float = Decimal("10"),
    op_threshold: int = 3,
) -> EstimateTotals:
    """
    Quick estimate totals before settlement.

    Tax applies to materials only. O&P applies to the whole subtotal once
    op_threshold distinct trades are involved.
    """
    material = labor = equipment = waste = ZERO
    trades: list[str] = []
    for item in items:
        qty = to_decimal(item.quantity)
        material += item.breakdown.material_cost * qty
        labor += item.breakdown.labor_cost * qty
        equipment += item.breakdown.equipment_cost * qty
        if item.breakdown.waste_factor > 0:
            base = item.breakdown.material_cost / (1 + to_decimal(item.breakdown.waste_factor) / HUNDRED)
            waste += (item.breakdown.material_cost - base) * qty
        if item.trade_code not in trades:
            trades.append(item.trade_code)

    material, labor, equipment = round2(material), round2(labor), round2(equipment)
    subtotal = round2(material + labor + equipment)
    tax = percent_of(material, tax_rate)
    qualifies = len(trades) >= op_threshold
    overhead = percent_of(subtotal, overhead_percentage) if qualifies else ZERO
    profit = percent_of(subtotal, profit_percentage) if qualifies else ZERO

    return EstimateTotals(
        subtotal_material=material,
        subtotal_labor=labor,
        subtotal_equipment=equipment,
        subtotal=subtotal,
        tax_amount=tax,
        waste_included=round2(waste),
        trades_involved=trades,
        qualifies_for_op=qualifies,
        overhead_amount=overhead,
        profit_amount=profit,
        grand_total=round2(subtotal + tax + overhead + profit),
    )
