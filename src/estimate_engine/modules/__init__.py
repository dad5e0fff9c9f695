"""
Calculation modules for the Estimation Engine.
"""

from .depreciation import (
    LIFE_EXPECTANCY_TABLE,
    DepreciationResult,
    calculate_depreciation,
    check_water_depreciation_override,
    lookup_life_expectancy,
)
from .pricing import (
    EstimateTotals,
    PricedLineItem,
    PricingResult,
    calculate_estimate_totals,
    calculate_line_item_price,
    price_scope_items,
)
from .settlement import calculate_settlement, distribute, infer_coverage_type
from .settlement_rules import (
    DEFAULT_CARRIER_TABLE,
    CarrierRuleTable,
    resolve_settlement_rules,
    resolve_tax_rule,
    trade_qualifies_for_op,
    validate_settlement_rules,
)
from .water import WaterProtocolResponses, classify_water_damage, estimate_drying_equipment

__all__ = [
    # Pricing
    "EstimateTotals",
    "PricedLineItem",
    "PricingResult",
    "calculate_estimate_totals",
    "calculate_line_item_price",
    "price_scope_items",
    # Depreciation
    "LIFE_EXPECTANCY_TABLE",
    "DepreciationResult",
    "calculate_depreciation",
    "check_water_depreciation_override",
    "lookup_life_expectancy",
    # Settlement rules
    "DEFAULT_CARRIER_TABLE",
    "CarrierRuleTable",
    "resolve_settlement_rules",
    "resolve_tax_rule",
    "trade_qualifies_for_op",
    "validate_settlement_rules",
    # Settlement
    "calculate_settlement",
    "distribute",
    "infer_coverage_type",
    # Water
    "WaterProtocolResponses",
    "classify_water_damage",
    "estimate_drying_equipment",
]
