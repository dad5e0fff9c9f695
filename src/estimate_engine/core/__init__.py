"""
Core components for the Estimation Engine.
"""

from .errors import (
    CatalogUnavailableError,
    EstimateEngineError,
    ExportValidationError,
    SettlementRulesError,
)
from .models import (
    CatalogEntry,
    ClaimInfo,
    CoverageSummary,
    CoverageType,
    DamageObservation,
    DepreciationType,
    DimVars,
    InspectionRoom,
    LineItem,
    Opening,
    PolicyRule,
    RegionalPrice,
    RoomDimensions,
    ScopeItem,
    SettledLineItem,
    SettlementRules,
    SettlementSummary,
    TaxRule,
    WaterCategory,
    WaterClassification,
)
from .trade_codes import (
    TRADE_CODES,
    ParsedTrade,
    TradeCodeParser,
    get_parser,
    resolve_category,
)

__all__ = [
    # Errors
    "CatalogUnavailableError",
    "EstimateEngineError",
    "ExportValidationError",
    "SettlementRulesError",
    # Models
    "CatalogEntry",
    "ClaimInfo",
    "CoverageSummary",
    "CoverageType",
    "DamageObservation",
    "DepreciationType",
    "DimVars",
    "InspectionRoom",
    "LineItem",
    "Opening",
    "PolicyRule",
    "RegionalPrice",
    "RoomDimensions",
    "ScopeItem",
    "SettledLineItem",
    "SettlementRules",
    "SettlementSummary",
    "TaxRule",
    "WaterCategory",
    "WaterClassification",
    # Trade codes
    "TRADE_CODES",
    "ParsedTrade",
    "TradeCodeParser",
    "get_parser",
    "resolve_category",
]
