"""
Settlement rules resolution.

Layers, each overwriting only the fields it names:
defaults -> carrier table entry -> claim tax rate -> caller overrides.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from ..core.errors import SettlementRulesError
from ..core.models import SettlementRules, TaxCostType, TaxRule
from ..utils.money import HUNDRED, ZERO, non_negative, round2

logger = logging.getLogger(__name__)

DEPRECIATION_BASES = ("rcv_full", "rcv_before_op", "materials_only")
MAX_LABOR_EFFICIENCY = Decimal("200")


@dataclass(frozen=True)
class CarrierRuleTable:
    """Immutable, versioned carrier code -> partial rules table."""

    version: str
    entries: Mapping[str, Mapping[str, Any]]

    def __post_init__(self) -> None:
        frozen = {
            code.upper(): MappingProxyType(dict(layer)) for code, layer in self.entries.items()
        }
        object.__setattr__(self, "entries", MappingProxyType(frozen))

    def get(self, carrier_code: str | None) -> Mapping[str, Any] | None:
        if not carrier_code:
            return None
        return self.entries.get(carrier_code.upper())

    @property
    def carriers(self) -> list[str]:
        return sorted(self.entries)


DEFAULT_CARRIER_TABLE = CarrierRuleTable(
    version="2024.1",
    entries={
        "CARRIER_STATE_FARM": {
            "op_threshold": 3,
            "tax_on_op": False,
            "tax_on_labor": False,
            "depreciation_basis": "rcv_before_op",
            "overhead_percentage": 12,
            "profit_percentage": 8,
            "op_excluded_trades": ("MIT",),
            "apply_roof_depreciation_schedule": True,
            "description": "State Farm (FL-specific): non-taxable labor, roof depreciation",
        },
        "CARRIER_ALLSTATE": {
            "op_threshold": 2,
            "tax_on_op": False,
            "tax_on_labor": True,
            "depreciation_basis": "rcv_before_op",
            "overhead_percentage": 10,
            "profit_percentage": 10,
            "op_excluded_trades": ("MIT", "DEM"),
            "apply_roof_depreciation_schedule": False,
            "description": "Allstate: 2-trade O&P threshold, non-taxable O&P",
        },
        "CARRIER_HOMEOWNERS_STANDARD": {
            "op_threshold": 3,
            "tax_on_op": False,
            "tax_on_labor": True,
            "depreciation_basis": "rcv_full",
            "overhead_percentage": 15,
            "profit_percentage": 15,
            "op_excluded_trades": (),
            "apply_roof_depreciation_schedule": False,
            "description": "Standard homeowners (high O&P rates)",
        },
    },
)


def get_default_settlement_rules() -> SettlementRules:
    """Xactimate-standard defaults."""
    return SettlementRules()


def _unknown_fields(layer: Mapping[str, Any]) -> list[str]:
    return sorted(set(layer) - set(SettlementRules.model_fields))


def _merge(rules: SettlementRules, layer: Mapping[str, Any], source: str) -> SettlementRules:
    unknown = _unknown_fields(layer)
    if unknown:
        raise SettlementRulesError([f"Unknown {source} field: {name}" for name in unknown])
    merged = {**rules.model_dump(), **layer}
    if "op_excluded_trades" in layer:
        merged["op_excluded_trades"] = tuple(t.upper() for t in layer["op_excluded_trades"])
    try:
        return SettlementRules.model_validate(merged)
    except ValidationError as exc:
        raise SettlementRulesError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        ) from exc


def validate_settlement_rules(rules: SettlementRules) -> None:
    """
    Validate a resolved rule set.

    Raises:
        SettlementRulesError listing every problem found
    """
    errors: list[str] = []
    if rules.op_threshold < 1:
        errors.append("op_threshold must be >= 1")
    if rules.default_tax_rate < ZERO or rules.default_tax_rate > HUNDRED:
        errors.append("default_tax_rate must be between 0 and 100")
    if rules.labor_efficiency <= ZERO or rules.labor_efficiency > MAX_LABOR_EFFICIENCY:
        errors.append("labor_efficiency must be greater than 0 and at most 200")
    if rules.depreciation_basis not in DEPRECIATION_BASES:
        errors.append(f"depreciation_basis must be one of: {', '.join(DEPRECIATION_BASES)}")
    for name in ("overhead_percentage", "profit_percentage"):
        value = getattr(rules, name)
        if value < ZERO or value > HUNDRED:
            errors.append(f"{name} must be between 0 and 100")
    if rules.roof_schedule_min_age < 0:
        errors.append("roof_schedule_min_age must be >= 0")

    if errors:
        raise SettlementRulesError(errors)


def resolve_settlement_rules(
    carrier_code: str | None = None,
    table: CarrierRuleTable = DEFAULT_CARRIER_TABLE,
    claim_tax_rate: Decimal | float | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> SettlementRules:
    """
    Resolve settlement rules for a claim.

    Args:
        carrier_code: Carrier key into the rule table
        table: Carrier rule table
        claim_tax_rate: Claim- or policy-level tax rate (percent)
        overrides: Caller-supplied field overrides

    Returns:
        Validated SettlementRules

    Raises:
        SettlementRulesError: unknown override fields or invalid values
    """
    rules = get_default_settlement_rules()

    carrier_layer = table.get(carrier_code)
    if carrier_layer is not None:
        rules = _merge(rules, {**carrier_layer, "carrier_code": carrier_code.upper()}, "carrier")
    elif carrier_code:
        logger.warning("No settlement rules for carrier %s; using defaults", carrier_code)

    if claim_tax_rate is not None:
        rules = _merge(rules, {"default_tax_rate": claim_tax_rate}, "claim")

    if overrides:
        rules = _merge(rules, overrides, "override")

    validate_settlement_rules(rules)
    logger.debug("Resolved settlement rules for %s: %s", rules.carrier_code, rules.description)
    return rules


def trade_qualifies_for_op(
    trades_involved: list[str] | set[str], trade_code: str, rules: SettlementRules
) -> bool:
    """O&P needs enough distinct trades and a trade not on the exclusion list."""
    if len(set(trades_involved)) < rules.op_threshold:
        return False
    return trade_code.upper() not in rules.op_excluded_trades


def resolve_tax_rule(
    category: str, rules: SettlementRules, tax_rules: list[TaxRule] | tuple[TaxRule, ...] = ()
) -> TaxRule:
    """
    Pick the tax rule for a category.

    Order: category substring match either way, then the default rule,
    then a flat rule built from the resolved default rate.
    """
    cat = (category or "").strip().lower()
    if cat:
        for rule in tax_rules:
            rule_cat = rule.category.strip().lower()
            if rule_cat and (rule_cat in cat or cat in rule_cat):
                return rule
    for rule in tax_rules:
        if rule.is_default:
            return rule
    return TaxRule(category="*", tax_rate=rules.default_tax_rate, is_default=True)


def calculate_taxable_base(
    total_price: Decimal,
    material_portion: Decimal | None,
    labor_portion: Decimal | None,
    op_amount: Decimal,
    rules: SettlementRules,
    cost_type: TaxCostType = TaxCostType.ALL,
) -> Decimal:
    """
    Taxable amount for one item.

    O&P is only taxed when the rules say so. Unknown cost splits fall
    back to the full extended price.
    """
    if cost_type == TaxCostType.MATERIALS_ONLY and material_portion is not None:
        base = material_portion
    elif cost_type == TaxCostType.LABOR_ONLY and labor_portion is not None:
        base = labor_portion
    else:
        base = total_price
        if not rules.tax_on_labor and labor_portion is not None:
            base -= labor_portion

    if cost_type == TaxCostType.LABOR_ONLY and not rules.tax_on_labor:
        base = ZERO
    if rules.tax_on_op:
        base += op_amount
    return round2(non_negative(base))


def calculate_depreciation_basis(
    rcv: Decimal, op_amount: Decimal, material_total: Decimal | None, rules: SettlementRules
) -> Decimal:
    """Portion of RCV depreciation is calculated on."""
    if rules.depreciation_basis == "rcv_before_op":
        return non_negative(rcv - op_amount)
    if rules.depreciation_basis == "materials_only":
        return material_total if material_total is not None else rcv
    return rcv
