"""
Settlement waterfall.

Line items -> trade subtotals -> O&P -> tax -> RCV -> depreciation ->
per-coverage rollup with deductible and policy limit -> grand totals.
Inputs are never mutated; every run rebuilds the full summary.
"""

import logging
import re
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from ..core.models import (
    CoverageSummary,
    CoverageType,
    DepreciationType,
    LineItem,
    PolicyRule,
    SettledLineItem,
    SettlementRules,
    SettlementSummary,
    SettlementTotals,
    TaxRule,
    TradeSummary,
    WaterClassification,
)
from ..core.trade_codes import TRADE_NAMES, get_parser
from ..utils.money import HUNDRED, ZERO, non_negative, percent_of, round2
from .depreciation import DepreciationResult, calculate_depreciation
from .pricing import apply_mle_split, resolve_mle_split
from .settlement_rules import (
    calculate_depreciation_basis,
    calculate_taxable_base,
    get_default_settlement_rules,
    resolve_tax_rule,
    trade_qualifies_for_op,
    validate_settlement_rules,
)

logger = logging.getLogger(__name__)

COVERAGE_ORDER = (CoverageType.A, CoverageType.B, CoverageType.C, CoverageType.D)

OTHER_STRUCTURES_PATTERN = re.compile(
    r"(DETACHED|SHED|FENC|POOL|BARN|GAZEBO|CARPORT|OUTBUILDING|WORKSHOP|PERGOLA)",
    re.IGNORECASE,
)
CONTENTS_PATTERN = re.compile(r"(CONTENTS|PERSONAL\s*PROPERTY)", re.IGNORECASE)


def infer_coverage_type(
    structure: str | None, category: str | None = None
) -> CoverageType:
    """Coverage bucket from the structure name, then the category. Defaults to A."""
    for text in (structure, category):
        if not text:
            continue
        if CONTENTS_PATTERN.search(text):
            return CoverageType.C
        if OTHER_STRUCTURES_PATTERN.search(text):
            return CoverageType.B
    return CoverageType.A


@dataclass(frozen=True)
class _Prepared:
    """A line item with its trade, coverage and totals resolved."""

    item: LineItem
    trade_code: str
    coverage_type: CoverageType
    category: str
    total: Decimal
    material_total: Decimal | None
    labor_total: Decimal | None
    equipment_total: Decimal | None


def _components(item: LineItem, trade_code: str, total: Decimal) -> tuple[Decimal | None, ...]:
    """Extended M/L/E amounts, from the category split when none are given."""
    components = (
        item.component_total(item.material_cost),
        item.component_total(item.labor_cost),
        item.component_total(item.equipment_cost),
    )
    if any(c is not None for c in components):
        return components
    return apply_mle_split(total, resolve_mle_split(trade_code))


def _prepare(items: Sequence[LineItem], warnings: list[str]) -> list[_Prepared]:
    parser = get_parser()
    prepared = []
    for item in items:
        parsed = parser.parse(item.trade_code, item.xact_code, item.category, item.description)
        if parsed.source == "default":
            warnings.append(f"Line item {item.id} has no recognizable trade; assigned GEN")
        category = item.category or TRADE_NAMES.get(parsed.trade_code, "General")
        total = round2(item.total_price)
        material, labor, equipment = _components(item, parsed.trade_code, total)
        prepared.append(
            _Prepared(
                item=item,
                trade_code=parsed.trade_code,
                coverage_type=item.coverage_type or infer_coverage_type(item.structure, item.category),
                category=category,
                total=total,
                material_total=material,
                labor_total=labor,
                equipment_total=equipment,
            )
        )
    return prepared


def distribute(amount: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Split an amount proportionally to weights.

    Each share is rounded to cents and the remainder lands on the last
    share, so the shares always sum to the amount exactly.
    """
    if not weights:
        return []
    total_weight = sum(weights, ZERO)
    if total_weight <= ZERO:
        return [ZERO] * (len(weights) - 1) + [amount]
    shares = [round2(amount * w / total_weight) for w in weights[:-1]]
    shares.append(amount - sum(shares, ZERO))
    return shares


def _policy_map(policy_rules: Sequence[PolicyRule]) -> dict[CoverageType, PolicyRule]:
    return {rule.coverage_type: rule for rule in policy_rules}


def _op_percentages(
    coverage: CoverageType, rules: SettlementRules, policies: dict[CoverageType, PolicyRule]
) -> tuple[Decimal, Decimal]:
    policy = policies.get(coverage)
    overhead_pct = (
        policy.overhead_percentage
        if policy and policy.overhead_percentage is not None
        else rules.overhead_percentage
    )
    profit_pct = (
        policy.profit_percentage
        if policy and policy.profit_percentage is not None
        else rules.profit_percentage
    )
    return overhead_pct, profit_pct


def _allocate_op(
    prepared: list[_Prepared],
    trades_involved: list[str],
    rules: SettlementRules,
    policies: dict[CoverageType, PolicyRule],
) -> tuple[list[Decimal], list[Decimal]]:
    """
    O&P per item.

    Overhead and profit are rounded once per trade subtotal, then
    distributed across the trade's items by amount times rate. Coverage
    policies may set their own rates, so items of one trade can carry
    different rates.
    """
    overhead = [ZERO] * len(prepared)
    profit = [ZERO] * len(prepared)

    groups: dict[str, list[int]] = defaultdict(list)
    for index, entry in enumerate(prepared):
        groups[entry.trade_code].append(index)

    for trade, indexes in groups.items():
        if not trade_qualifies_for_op(trades_involved, trade, rules):
            continue
        rates = [_op_percentages(prepared[i].coverage_type, rules, policies) for i in indexes]
        overhead_weights = [prepared[i].total * rate[0] for i, rate in zip(indexes, rates)]
        profit_weights = [prepared[i].total * rate[1] for i, rate in zip(indexes, rates)]

        trade_overhead = round2(sum(overhead_weights, ZERO) / HUNDRED)
        trade_profit = round2(sum(profit_weights, ZERO) / HUNDRED)
        for i, share in zip(indexes, distribute(trade_overhead, overhead_weights)):
            overhead[i] = share
        for i, share in zip(indexes, distribute(trade_profit, profit_weights)):
            profit[i] = share
    return overhead, profit


def _roof_schedule_min_age(rules: SettlementRules, policy: PolicyRule | None) -> float:
    if policy and policy.apply_roof_schedule and policy.roof_schedule_age is not None:
        return policy.roof_schedule_age
    return rules.roof_schedule_min_age


def _settle_item(
    entry: _Prepared,
    overhead: Decimal,
    profit: Decimal,
    rules: SettlementRules,
    tax_rules: Sequence[TaxRule],
    policy: PolicyRule | None,
    water_classification: WaterClassification | None,
    roof_age: float | None,
) -> SettledLineItem:
    item = entry.item
    op_amount = overhead + profit

    tax_rule = resolve_tax_rule(entry.category, rules, tax_rules)
    taxable = calculate_taxable_base(
        entry.total, entry.material_total, entry.labor_total, op_amount, rules, tax_rule.cost_type
    )
    tax = percent_of(taxable, tax_rule.tax_rate)
    rcv = round2(entry.total + op_amount + tax)

    basis = calculate_depreciation_basis(rcv, op_amount, entry.material_total, rules)
    depreciation: DepreciationResult = calculate_depreciation(
        basis=basis,
        rcv=rcv,
        trade_code=entry.trade_code,
        category=entry.category,
        description=item.description,
        age=item.age,
        life_expectancy=item.life_expectancy,
        override_percentage=item.depreciation_percentage,
        depreciation_type=item.depreciation_type,
        work_completed=item.work_completed,
        water=water_classification,
        roof_schedule_active=rules.apply_roof_depreciation_schedule
        or bool(policy and policy.apply_roof_schedule),
        roof_age=roof_age,
        roof_schedule_min_age=_roof_schedule_min_age(rules, policy),
    )

    return SettledLineItem(
        line_item_id=item.id,
        description=item.description,
        category=entry.category,
        trade_code=entry.trade_code,
        coverage_type=entry.coverage_type,
        xact_code=item.xact_code,
        action=item.action,
        room_id=item.room_id,
        room_name=item.room_name,
        structure=item.structure,
        quantity=item.quantity,
        unit=item.unit,
        unit_price=round2(item.unit_price),
        total_price=entry.total,
        material_total=entry.material_total if entry.material_total is not None else ZERO,
        labor_total=entry.labor_total if entry.labor_total is not None else ZERO,
        equipment_total=entry.equipment_total if entry.equipment_total is not None else ZERO,
        overhead=overhead,
        profit=profit,
        tax_rate=tax_rule.tax_rate,
        tax=tax,
        rcv=rcv,
        age=item.age,
        life_expectancy=depreciation.life_expectancy,
        depreciation_percentage=depreciation.percentage,
        depreciation_amount=depreciation.amount,
        depreciation_type=depreciation.depreciation_type,
        paid_when_incurred_holdback=depreciation.paid_when_incurred_holdback,
        acv=depreciation.acv(rcv),
    )


def _sum(items: list[SettledLineItem], attr: str) -> Decimal:
    return round2(sum((getattr(i, attr) for i in items), ZERO))


def _depreciation_of(items: list[SettledLineItem], dep_type: DepreciationType) -> Decimal:
    return round2(
        sum((i.depreciation_amount for i in items if i.depreciation_type == dep_type), ZERO)
    )


def _roll_up_coverage(
    coverage: CoverageType, items: list[SettledLineItem], policy: PolicyRule | None
) -> CoverageSummary:
    rcv = _sum(items, "rcv")
    recoverable = _depreciation_of(items, DepreciationType.RECOVERABLE)
    non_recoverable = _depreciation_of(items, DepreciationType.NON_RECOVERABLE)
    pwi = _sum(items, "paid_when_incurred_holdback")
    acv = non_negative(round2(rcv - recoverable - non_recoverable - pwi))

    deductible = round2(policy.deductible) if policy else ZERO
    limit = round2(policy.policy_limit) if policy and policy.policy_limit is not None else None
    net = non_negative(round2(acv - deductible))
    over_limit = ZERO
    if limit is not None and net > limit:
        over_limit = round2(net - limit)
        net = limit

    return CoverageSummary(
        coverage_type=coverage,
        item_count=len(items),
        line_total=_sum(items, "total_price"),
        overhead=_sum(items, "overhead"),
        profit=_sum(items, "profit"),
        tax=_sum(items, "tax"),
        rcv=rcv,
        recoverable_depreciation=recoverable,
        non_recoverable_depreciation=non_recoverable,
        paid_when_incurred=pwi,
        acv=acv,
        deductible=deductible,
        policy_limit=limit,
        over_limit=over_limit,
        net_claim=net,
    )


def _totals(coverages: list[CoverageSummary]) -> SettlementTotals:
    fields = (
        "line_total", "overhead", "profit", "tax", "rcv", "recoverable_depreciation",
        "non_recoverable_depreciation", "paid_when_incurred", "acv", "deductible",
        "over_limit", "net_claim",
    )
    return SettlementTotals(
        **{name: round2(sum((getattr(c, name) for c in coverages), ZERO)) for name in fields}
    )


def _trade_summaries(
    items: list[SettledLineItem], trades_involved: list[str], rules: SettlementRules
) -> list[TradeSummary]:
    summaries = []
    for trade in trades_involved:
        members = [i for i in items if i.trade_code == trade]
        summaries.append(
            TradeSummary(
                trade_code=trade,
                item_count=len(members),
                subtotal=_sum(members, "total_price"),
                op_eligible=trade_qualifies_for_op(trades_involved, trade, rules),
                overhead=_sum(members, "overhead"),
                profit=_sum(members, "profit"),
                tax=_sum(members, "tax"),
                rcv=_sum(members, "rcv"),
                depreciation=_sum(members, "depreciation_amount"),
                acv=_sum(members, "acv"),
            )
        )
    return summaries


def calculate_settlement(
    line_items: Sequence[LineItem],
    rules: SettlementRules | None = None,
    policy_rules: Sequence[PolicyRule] = (),
    tax_rules: Sequence[TaxRule] = (),
    water_classification: WaterClassification | None = None,
    roof_age: float | None = None,
) -> SettlementSummary:
    """
    Run the settlement waterfall.

    Args:
        line_items: Priced line items
        rules: Resolved settlement rules (defaults when None)
        policy_rules: Per-coverage deductible, limit and O&P terms
        tax_rules: Per-category tax rules
        water_classification: Water loss classification, if any
        roof_age: Roof age in years for roof depreciation schedules

    Returns:
        SettlementSummary

    Raises:
        SettlementRulesError: the rule set is invalid
    """
    rules = rules or get_default_settlement_rules()
    validate_settlement_rules(rules)
    warnings: list[str] = []

    prepared = _prepare(line_items, warnings)
    trades_involved = sorted({entry.trade_code for entry in prepared})
    qualifies = len(trades_involved) >= rules.op_threshold
    policies = _policy_map(policy_rules)

    overhead, profit = _allocate_op(prepared, trades_involved, rules, policies)
    settled = [
        _settle_item(
            entry, overhead[i], profit[i], rules, tax_rules,
            policies.get(entry.coverage_type), water_classification, roof_age,
        )
        for i, entry in enumerate(prepared)
    ]

    coverages = []
    for coverage in COVERAGE_ORDER:
        members = [s for s in settled if s.coverage_type == coverage]
        if not members:
            continue
        summary = _roll_up_coverage(coverage, members, policies.get(coverage))
        if summary.over_limit > ZERO:
            warnings.append(
                f"Coverage {coverage.value} exceeds policy limit by {summary.over_limit}"
            )
        coverages.append(summary)

    for warning in warnings:
        logger.warning(warning)
    logger.info(
        "Settlement calculated: %d items, %d trades, O&P %s, carrier %s",
        len(settled), len(trades_involved), "applied" if qualifies else "not applied",
        rules.carrier_code,
    )

    return SettlementSummary(
        coverages=coverages,
        trades=_trade_summaries(settled, trades_involved, rules),
        items=settled,
        totals=_totals(coverages),
        qualifies_for_op=qualifies,
        trades_involved=trades_involved,
        rules=rules,
        warnings=warnings,
    )
