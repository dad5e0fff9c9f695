"""
Estimation & Settlement Calculation Engine.

Turns inspected rooms and damage observations into scoped, priced line
items, settles them into per-coverage RCV/ACV totals, and exports the
result as an ESX interchange archive.
"""

from .core.errors import (
    CatalogUnavailableError,
    EstimateEngineError,
    ExportValidationError,
    SettlementRulesError,
)
from .core.models import (
    ClaimInfo,
    CoverageType,
    DamageObservation,
    DepreciationType,
    InspectionRoom,
    LineItem,
    Opening,
    PolicyRule,
    RoomDimensions,
    SettlementRules,
    SettlementSummary,
    TaxRule,
    WaterCategory,
    WaterClassification,
)
from .engine import EstimateRun, EstimationEngine, calculate_settlement
from .interchange.esx import generate_esx
from .reporting.settlement_report import SettlementFormatter
from .scope.catalog import CatalogSource, InMemoryCatalog
from .scope.seed import build_seed_catalog

__version__ = "0.1.0"

__all__ = [
    # Main Engine
    "EstimationEngine",
    "EstimateRun",
    "calculate_settlement",
    "generate_esx",
    # Errors
    "CatalogUnavailableError",
    "EstimateEngineError",
    "ExportValidationError",
    "SettlementRulesError",
    # Models
    "ClaimInfo",
    "CoverageType",
    "DamageObservation",
    "DepreciationType",
    "InspectionRoom",
    "LineItem",
    "Opening",
    "PolicyRule",
    "RoomDimensions",
    "SettlementRules",
    "SettlementSummary",
    "TaxRule",
    "WaterCategory",
    "WaterClassification",
    # Catalog
    "CatalogSource",
    "InMemoryCatalog",
    "build_seed_catalog",
    # Reporting
    "SettlementFormatter",
]
