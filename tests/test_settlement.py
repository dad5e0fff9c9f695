"""
Tests for the settlement waterfall.
"""

from decimal import Decimal

import pytest

from estimate_engine.core.errors import SettlementRulesError
from estimate_engine.core.models import (
    CoverageType,
    DepreciationType,
    LineItem,
    PolicyRule,
    SettlementRules,
    TaxRule,
    WaterCategory,
    WaterClassification,
)
from estimate_engine.modules.settlement import calculate_settlement, distribute, infer_coverage_type
from estimate_engine.modules.settlement_rules import resolve_settlement_rules


def _item(item_id: str, trade: str, total: str = "100", **kwargs) -> LineItem:
    return LineItem(
        id=item_id,
        description=kwargs.pop("description", f"{trade} work"),
        trade_code=trade,
        quantity=1,
        unit_price=Decimal(total),
        **kwargs,
    )


@pytest.fixture
def three_trades() -> list[LineItem]:
    """One $100 item in each of three trades."""
    return [_item("1", "DRY"), _item("2", "PNT"), _item("3", "FLR")]


class TestDistribute:
    """Tests for distribute."""

    def test_remainder_on_last(self) -> None:
        """Test shares always sum to the amount."""
        shares = distribute(Decimal("10.00"), [Decimal("1"), Decimal("1"), Decimal("1")])
        assert shares == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
        assert sum(shares) == Decimal("10.00")

    def test_zero_weights(self) -> None:
        """Test zero weights put the amount on the last share."""
        assert distribute(Decimal("5"), [Decimal("0"), Decimal("0")]) == [Decimal("0"), Decimal("5")]
        assert distribute(Decimal("5"), []) == []


class TestCoverageInference:
    """Tests for infer_coverage_type."""

    def test_inference(self) -> None:
        """Test structure and category keywords."""
        assert infer_coverage_type("Main Dwelling") == CoverageType.A
        assert infer_coverage_type("Detached Garage") == CoverageType.B
        assert infer_coverage_type("Backyard", "Fencing") == CoverageType.B
        assert infer_coverage_type(None, "Contents") == CoverageType.C
        assert infer_coverage_type(None, None) == CoverageType.A


class TestCalculateSettlement:
    """Tests for calculate_settlement."""

    def test_three_trade_op(self, three_trades: list[LineItem]) -> None:
        """Test O&P, tax and RCV for three qualifying trades."""
        summary = calculate_settlement(three_trades)

        assert summary.qualifies_for_op is True
        assert summary.trades_involved == ["DRY", "FLR", "PNT"]
        for item in summary.items:
            assert item.overhead == Decimal("10.00")
            assert item.profit == Decimal("10.00")
            assert item.tax == Decimal("8.00")
            assert item.rcv == Decimal("128.00")
            assert item.acv == Decimal("128.00")

        assert summary.totals.overhead == Decimal("30.00")
        assert summary.totals.profit == Decimal("30.00")
        assert summary.totals.rcv == Decimal("384.00")
        assert summary.totals.net_claim == Decimal("384.00")
        assert summary.coverage("A").item_count == 3

    def test_below_threshold_no_op(self) -> None:
        """Test two trades do not earn O&P."""
        summary = calculate_settlement([_item("1", "DRY"), _item("2", "PNT")])

        assert summary.qualifies_for_op is False
        assert summary.totals.overhead == Decimal("0")
        assert summary.totals.rcv == Decimal("216.00")
        assert all(not trade.op_eligible for trade in summary.trades)

    def test_adding_trade_never_lowers_op(self, three_trades: list[LineItem]) -> None:
        """Test O&P grows monotonically as trades are added."""
        two = calculate_settlement(three_trades[:2])
        three = calculate_settlement(three_trades)
        assert three.totals.overhead + three.totals.profit >= two.totals.overhead + two.totals.profit

    def test_idempotent(self, three_trades: list[LineItem]) -> None:
        """Test repeated runs produce identical summaries and never mutate input."""
        before = [item.model_dump() for item in three_trades]
        first = calculate_settlement(three_trades)
        second = calculate_settlement(three_trades)

        assert first.model_dump() == second.model_dump()
        assert [item.model_dump() for item in three_trades] == before

    def test_depreciation(self, three_trades: list[LineItem]) -> None:
        """Test age-based depreciation reduces ACV."""
        items = three_trades[:2] + [
            _item("3", "FLR", description="Carpet", category="Flooring", age=5)
        ]
        summary = calculate_settlement(items)
        carpet = summary.items[2]

        assert carpet.depreciation_percentage == Decimal("50.00")
        assert carpet.depreciation_amount == Decimal("64.00")
        assert carpet.acv == Decimal("64.00")
        assert summary.totals.recoverable_depreciation == Decimal("64.00")
        assert summary.totals.acv == Decimal("320.00")

    def test_acv_bounds(self, three_trades: list[LineItem]) -> None:
        """Test ACV stays within [0, RCV] even at full depreciation."""
        items = [item.model_copy(update={"depreciation_percentage": 100.0}) for item in three_trades]
        summary = calculate_settlement(items)
        for item in summary.items:
            assert Decimal("0") <= item.acv <= item.rcv
            assert item.acv == Decimal("0")

    def test_category_3_water(self) -> None:
        """Test Category 3 water losses are not depreciated."""
        water = WaterClassification(category=WaterCategory.CATEGORY_3, water_class=2)
        items = [_item("1", "DEM", age=10, life_expectancy=20)]
        summary = calculate_settlement(items, water_classification=water)

        assert summary.items[0].depreciation_percentage == Decimal("0")
        assert summary.items[0].acv == summary.items[0].rcv

    def test_paid_when_incurred(self) -> None:
        """Test PWI holdback is kept out of ACV."""
        items = [_item("1", "DRY", depreciation_type=DepreciationType.PAID_WHEN_INCURRED)]
        summary = calculate_settlement(items)
        coverage = summary.coverage(CoverageType.A)

        assert coverage.paid_when_incurred == Decimal("108.00")
        assert coverage.acv == Decimal("0")

    def test_deductible_and_limit(self, three_trades: list[LineItem]) -> None:
        """Test the deductible applies first, then the policy limit caps."""
        policy = PolicyRule(
            coverage_type=CoverageType.A,
            deductible=Decimal("100"),
            policy_limit=Decimal("200"),
        )
        summary = calculate_settlement(three_trades, policy_rules=[policy])
        coverage = summary.coverage("A")

        assert coverage.deductible == Decimal("100.00")
        assert coverage.net_claim == Decimal("200.00")
        assert coverage.over_limit == Decimal("84.00")
        assert any("exceeds policy limit" in w for w in summary.warnings)

    def test_deductible_never_negative(self) -> None:
        """Test the net claim floors at zero."""
        policy = PolicyRule(coverage_type=CoverageType.A, deductible=Decimal("5000"))
        summary = calculate_settlement([_item("1", "DRY")], policy_rules=[policy])
        assert summary.totals.net_claim == Decimal("0")

    def test_coverage_split(self) -> None:
        """Test items roll up to their own coverage in A, B, C, D order."""
        items = [
            _item("1", "DRY", structure="Detached Garage"),
            _item("2", "PNT"),
        ]
        summary = calculate_settlement(items)

        assert [c.coverage_type for c in summary.coverages] == [CoverageType.A, CoverageType.B]
        assert summary.coverage("B").rcv == Decimal("108.00")

    def test_policy_op_override(self, three_trades: list[LineItem]) -> None:
        """Test per-coverage O&P percentages replace the rule defaults."""
        policy = PolicyRule(
            coverage_type=CoverageType.A,
            overhead_percentage=Decimal("5"),
            profit_percentage=Decimal("5"),
        )
        summary = calculate_settlement(three_trades, policy_rules=[policy])
        assert summary.totals.overhead == Decimal("15.00")
        assert summary.totals.profit == Decimal("15.00")

    def test_carrier_exclusions(self) -> None:
        """Test excluded trades and non-taxable labor from carrier rules."""
        rules = resolve_settlement_rules("CARRIER_STATE_FARM")
        items = [
            _item("1", "MIT"),
            _item("2", "DRY", material_cost=Decimal("40"), labor_cost=Decimal("60")),
            _item("3", "PNT"),
        ]
        summary = calculate_settlement(items, rules=rules)
        mit, dry, _pnt = summary.items

        assert mit.overhead == Decimal("0")
        assert dry.overhead == Decimal("12.00")
        assert dry.profit == Decimal("8.00")
        assert dry.tax == Decimal("3.20")

    def test_tax_rules(self, three_trades: list[LineItem]) -> None:
        """Test category tax rules."""
        tax_rules = [TaxRule(category="Drywall", tax_rate=Decimal("6"))]
        summary = calculate_settlement(three_trades, tax_rules=tax_rules)

        assert summary.items[0].tax == Decimal("6.00")
        assert summary.items[0].tax_rate == Decimal("6")
        assert summary.items[1].tax == Decimal("8.00")

    def test_unrecognized_trade_warns(self) -> None:
        """Test unclassifiable items are assigned GEN with a warning."""
        items = [LineItem(id="x", description="Miscellaneous", quantity=1, unit_price=Decimal("10"))]
        summary = calculate_settlement(items)

        assert summary.items[0].trade_code == "GEN"
        assert "assigned GEN" in summary.warnings[0]

    def test_invalid_rules(self, three_trades: list[LineItem]) -> None:
        """Test an invalid rule set fails fast."""
        with pytest.raises(SettlementRulesError):
            calculate_settlement(three_trades, rules=SettlementRules(op_threshold=0))

    def test_empty(self) -> None:
        """Test an empty estimate settles to zero."""
        summary = calculate_settlement([])
        assert summary.coverages == []
        assert summary.totals.rcv == Decimal("0")

    def test_op_rounded_per_trade(self) -> None:
        """Test O&P is rounded once per trade subtotal across coverages."""
        items = [
            _item("1", "DRY", "100.05"),
            _item("2", "DRY", "100.05", structure="Detached Garage"),
            _item("3", "PNT"),
            _item("4", "FLR"),
        ]
        summary = calculate_settlement(items)
        drywall = next(t for t in summary.trades if t.trade_code == "DRY")

        assert drywall.overhead == Decimal("20.01")
        assert drywall.profit == Decimal("20.01")
        assert [i.overhead for i in summary.items[:2]] == [Decimal("10.01"), Decimal("10.00")]
        assert summary.coverage("A").overhead + summary.coverage("B").overhead == Decimal("40.01")

    def test_op_distributed_by_weight(self) -> None:
        """Test a trade's O&P is split in proportion to item amounts."""
        items = [
            _item("1", "DRY", "100"),
            _item("2", "DRY", "300"),
            _item("3", "PNT"),
            _item("4", "FLR"),
        ]
        summary = calculate_settlement(items)
        small, large = summary.items[:2]

        assert small.overhead == Decimal("10.00")
        assert large.overhead == Decimal("30.00")
        assert small.profit + large.profit == Decimal("40.00")

    def test_op_mixed_coverage_rates(self) -> None:
        """Test one trade under two coverage rates gets one rounded total."""
        items = [
            _item("1", "DRY", "100"),
            _item("2", "DRY", "100", structure="Detached Garage"),
            _item("3", "PNT"),
            _item("4", "FLR"),
        ]
        policy = PolicyRule(
            coverage_type=CoverageType.B,
            overhead_percentage=Decimal("5"),
            profit_percentage=Decimal("5"),
        )
        summary = calculate_settlement(items, policy_rules=[policy])
        dwelling, garage = summary.items[:2]

        assert dwelling.overhead == Decimal("10.00")
        assert garage.overhead == Decimal("5.00")
        drywall = next(t for t in summary.trades if t.trade_code == "DRY")
        assert drywall.overhead == Decimal("15.00")

    def test_default_split_limits_tax(self) -> None:
        """Test non-taxable labor uses the category split when no breakdown is given."""
        rules = resolve_settlement_rules("CARRIER_STATE_FARM")
        summary = calculate_settlement([_item("1", "DRY", "100.00")], rules=rules)
        drywall = summary.items[0]

        assert summary.qualifies_for_op is False
        assert drywall.material_total == Decimal("40.00")
        assert drywall.labor_total == Decimal("55.00")
        assert drywall.equipment_total == Decimal("5.00")
        assert drywall.tax == Decimal("3.60")

    def test_given_breakdown_kept(self) -> None:
        """Test an explicit breakdown is never replaced by the category split."""
        rules = resolve_settlement_rules("CARRIER_STATE_FARM")
        item = _item("1", "DRY", material_cost=Decimal("70"), labor_cost=Decimal("30"))
        drywall = calculate_settlement([item], rules=rules).items[0]

        assert drywall.labor_total == Decimal("30.00")
        assert drywall.tax == Decimal("5.60")

    def test_policy_roof_schedule_age(self) -> None:
        """Test a policy's roof schedule age replaces the rule minimum."""
        shingles = _item("1", "RFG", description="Architectural shingles", age=6)
        rule_min = calculate_settlement(
            [shingles],
            policy_rules=[PolicyRule(coverage_type=CoverageType.A, apply_roof_schedule=True)],
            roof_age=6,
        )
        assert rule_min.items[0].depreciation_type == DepreciationType.RECOVERABLE

        policy_age = calculate_settlement(
            [shingles],
            policy_rules=[
                PolicyRule(coverage_type=CoverageType.A, apply_roof_schedule=True, roof_schedule_age=5)
            ],
            roof_age=6,
        )
        assert policy_age.items[0].depreciation_type == DepreciationType.NON_RECOVERABLE
