"""
Tests for settlement rule resolution and tax rules.
"""

from decimal import Decimal

import pytest

from estimate_engine.core.errors import SettlementRulesError
from estimate_engine.core.models import SettlementRules, TaxCostType, TaxRule
from estimate_engine.modules.settlement_rules import (
    DEFAULT_CARRIER_TABLE,
    CarrierRuleTable,
    calculate_depreciation_basis,
    calculate_taxable_base,
    resolve_settlement_rules,
    resolve_tax_rule,
    trade_qualifies_for_op,
    validate_settlement_rules,
)


@pytest.fixture
def rules() -> SettlementRules:
    """Default settlement rules."""
    return SettlementRules()


class TestResolveSettlementRules:
    """Tests for resolve_settlement_rules."""

    def test_defaults(self) -> None:
        """Test no carrier yields the standard defaults."""
        resolved = resolve_settlement_rules()
        assert resolved == SettlementRules()

    def test_carrier_layer(self) -> None:
        """Test carrier entries override only the fields they name."""
        resolved = resolve_settlement_rules("carrier_state_farm")

        assert resolved.carrier_code == "CARRIER_STATE_FARM"
        assert resolved.overhead_percentage == Decimal("12")
        assert resolved.profit_percentage == Decimal("8")
        assert resolved.tax_on_labor is False
        assert resolved.op_excluded_trades == ("MIT",)
        assert resolved.default_tax_rate == Decimal("8")

    def test_unknown_carrier_uses_defaults(self) -> None:
        """Test an unknown carrier falls back to defaults."""
        assert resolve_settlement_rules("CARRIER_NOBODY").carrier_code == "DEFAULT"

    def test_layer_order(self) -> None:
        """Test claim tax rate then overrides are applied last."""
        resolved = resolve_settlement_rules(
            "CARRIER_ALLSTATE",
            claim_tax_rate=Decimal("6.5"),
            overrides={"op_threshold": 4, "op_excluded_trades": ["dem"]},
        )
        assert resolved.default_tax_rate == Decimal("6.5")
        assert resolved.op_threshold == 4
        assert resolved.op_excluded_trades == ("DEM",)
        assert resolved.profit_percentage == Decimal("10")

    def test_unknown_override_key(self) -> None:
        """Test unknown override fields are rejected."""
        with pytest.raises(SettlementRulesError) as exc_info:
            resolve_settlement_rules(overrides={"op_treshold": 2})
        assert exc_info.value.errors == ["Unknown override field: op_treshold"]

    def test_invalid_values_listed(self) -> None:
        """Test every invalid value is reported together."""
        with pytest.raises(SettlementRulesError) as exc_info:
            resolve_settlement_rules(
                overrides={"op_threshold": 0, "overhead_percentage": 150, "depreciation_basis": "acv"}
            )
        errors = exc_info.value.errors
        assert len(errors) == 3
        assert "op_threshold must be >= 1" in errors

    def test_custom_table(self) -> None:
        """Test callers can supply their own table."""
        table = CarrierRuleTable(version="test", entries={"acme": {"op_threshold": 1}})
        assert resolve_settlement_rules("ACME", table=table).op_threshold == 1

    def test_table_is_immutable(self) -> None:
        """Test the carrier table cannot be edited in place."""
        with pytest.raises(TypeError):
            DEFAULT_CARRIER_TABLE.entries["NEW"] = {}
        with pytest.raises(TypeError):
            DEFAULT_CARRIER_TABLE.get("CARRIER_ALLSTATE")["op_threshold"] = 1


class TestValidation:
    """Tests for validate_settlement_rules."""

    def test_valid_defaults(self, rules: SettlementRules) -> None:
        """Test defaults pass validation."""
        validate_settlement_rules(rules)

    def test_labor_efficiency_range(self, rules: SettlementRules) -> None:
        """Test labor efficiency must be in (0, 200]."""
        with pytest.raises(SettlementRulesError):
            validate_settlement_rules(rules.model_copy(update={"labor_efficiency": Decimal("0")}))
        with pytest.raises(SettlementRulesError):
            validate_settlement_rules(rules.model_copy(update={"labor_efficiency": Decimal("250")}))


class TestOpQualification:
    """Tests for trade_qualifies_for_op."""

    def test_threshold(self, rules: SettlementRules) -> None:
        """Test the trade count threshold."""
        assert not trade_qualifies_for_op(["DRY", "PNT"], "DRY", rules)
        assert trade_qualifies_for_op(["DRY", "PNT", "FLR"], "DRY", rules)

    def test_excluded_trade(self) -> None:
        """Test excluded trades never get O&P."""
        rules = resolve_settlement_rules("CARRIER_STATE_FARM")
        assert not trade_qualifies_for_op(["MIT", "DRY", "PNT"], "mit", rules)
        assert trade_qualifies_for_op(["MIT", "DRY", "PNT"], "DRY", rules)


class TestTaxRules:
    """Tests for tax rule selection and taxable base."""

    def test_category_match(self, rules: SettlementRules) -> None:
        """Test substring category matching in either direction."""
        tax_rules = [
            TaxRule(category="Roofing", tax_rate=Decimal("6")),
            TaxRule(category="*", tax_rate=Decimal("7"), is_default=True),
        ]
        assert resolve_tax_rule("roofing materials", rules, tax_rules).tax_rate == Decimal("6")
        assert resolve_tax_rule("Painting", rules, tax_rules).tax_rate == Decimal("7")

    def test_flat_fallback(self, rules: SettlementRules) -> None:
        """Test the resolved default rate is used without rules."""
        assert resolve_tax_rule("Drywall", rules).tax_rate == Decimal("8")

    def test_taxable_base(self, rules: SettlementRules) -> None:
        """Test labor and O&P handling in the taxable base."""
        no_labor_tax = rules.model_copy(update={"tax_on_labor": False})
        tax_op = rules.model_copy(update={"tax_on_op": True})

        assert calculate_taxable_base(Decimal("100"), Decimal("40"), Decimal("60"), Decimal("20"), rules) == Decimal("100.00")
        assert calculate_taxable_base(Decimal("100"), Decimal("40"), Decimal("60"), Decimal("20"), no_labor_tax) == Decimal("40.00")
        assert calculate_taxable_base(Decimal("100"), Decimal("40"), Decimal("60"), Decimal("20"), tax_op) == Decimal("120.00")
        assert calculate_taxable_base(
            Decimal("100"), Decimal("40"), Decimal("60"), Decimal("0"), rules, TaxCostType.MATERIALS_ONLY
        ) == Decimal("40.00")

    def test_depreciation_basis(self, rules: SettlementRules) -> None:
        """Test each depreciation basis."""
        before_op = rules.model_copy(update={"depreciation_basis": "rcv_before_op"})
        materials = rules.model_copy(update={"depreciation_basis": "materials_only"})

        assert calculate_depreciation_basis(Decimal("128"), Decimal("20"), Decimal("40"), rules) == Decimal("128")
        assert calculate_depreciation_basis(Decimal("128"), Decimal("20"), Decimal("40"), before_op) == Decimal("108")
        assert calculate_depreciation_basis(Decimal("128"), Decimal("20"), Decimal("40"), materials) == Decimal("40")
        assert calculate_depreciation_basis(Decimal("128"), Decimal("20"), None, materials) == Decimal("128")
