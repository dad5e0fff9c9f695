"""
Tests for trade code resolution.
"""

import pytest

from estimate_engine.core.trade_codes import (
    TRADE_CODES,
    TradeCodeParser,
    get_parser,
    resolve_category,
)


@pytest.fixture
def parser() -> TradeCodeParser:
    """Create a parser instance."""
    return TradeCodeParser()


class TestTradeCodeParser:
    """Tests for TradeCodeParser."""

    def test_sixteen_trades(self) -> None:
        """Test the canonical trade list."""
        assert len(TRADE_CODES) == 16
        assert "GEN" in TRADE_CODES

    def test_explicit_trade_code(self, parser: TradeCodeParser) -> None:
        """Test an explicit code wins."""
        parsed = parser.parse(trade_code="rfg", category="Drywall")
        assert parsed.trade_code == "RFG"
        assert parsed.source == "trade_code"

    def test_alias(self, parser: TradeCodeParser) -> None:
        """Test aliases map to canonical codes."""
        assert parser.parse(trade_code="SDG").trade_code == "EXT"
        assert parser.parse(trade_code="FCC").trade_code == "FLR"

    def test_code_prefix(self, parser: TradeCodeParser) -> None:
        """Test the catalog code prefix is used next."""
        parsed = parser.parse(xact_code="DRY-SHEET-SF")
        assert parsed.trade_code == "DRY"
        assert parsed.source == "code_prefix"
        assert parsed.xact_category == "DRY"

    def test_category_text(self, parser: TradeCodeParser) -> None:
        """Test free-text categories resolve via patterns."""
        assert parser.parse(category="Roofing").trade_code == "RFG"
        assert parser.parse(category="Interior Paint").trade_code == "PNT"
        assert parser.parse(description="Remove wet carpet pad").trade_code == "DEM"

    def test_default_general(self, parser: TradeCodeParser) -> None:
        """Test unrecognized items fall back to GEN."""
        parsed = parser.parse(description="Miscellaneous")
        assert parsed.trade_code == "GEN"
        assert parsed.source == "default"

    def test_cache(self, parser: TradeCodeParser) -> None:
        """Test repeated lookups return the cached result."""
        first = parser.parse(xact_code="PNT-INT-SF")
        assert parser.parse(xact_code="PNT-INT-SF") is first

    def test_cache_bounded(self) -> None:
        """Test the parse cache evicts instead of growing without limit."""
        small = TradeCodeParser(cache_size=2)
        for n in range(10):
            small.parse(description=f"Miscellaneous item {n}")

        info = small.cache_info()
        assert info.currsize == 2
        assert info.maxsize == 2
        assert small.parse(description="Miscellaneous item 0").trade_code == "GEN"

    def test_singleton(self) -> None:
        """Test get_parser returns one shared instance."""
        assert get_parser() is get_parser()


class TestResolveCategory:
    """Tests for Xactimate category prefixes."""

    def test_prefixes(self) -> None:
        """Test trade to category mapping."""
        assert resolve_category("CAR") == "FRM"
        assert resolve_category("EXT") == "SDG"
        assert resolve_category("HVAC") == "HVA"
        assert resolve_category(None) == "GEN"

    def test_mitigation_depends_on_peril(self) -> None:
        """Test mitigation category follows the peril."""
        assert resolve_category("MIT") == "WTR"
        assert resolve_category("MIT", "fire") == "FIR"
        assert resolve_category("MIT", "hail") == "WND"
        assert resolve_category("MIT", "mold") == "MLR"
