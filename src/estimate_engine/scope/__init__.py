"""
Scope building: quantities, catalog access, assembly, peril templates and companions.
"""

from .assembly import (
    DEFAULT_TRADE_SCOPE_TABLE,
    ScopeAssemblyResult,
    TradeScopeTable,
    add_water_protocol_items,
    apply_peril_template,
    assemble_scope,
    scope_item_id,
    suggest_missing_companions,
)
from .catalog import CatalogSource, InMemoryCatalog, select_price
from .companions import (
    CompanionSuggestion,
    EstimateValidation,
    get_companion_suggestions,
    validate_companion_items,
    validate_estimate,
)
from .conditions import ScopeContext, filter_by_scope_conditions, matches_conditions, zone_for_room_type
from .quantity import QuantityResult, derive_quantity, derive_room_quantities
from .seed import NATIONAL_REGION, build_seed_catalog
from .templates import PERIL_TEMPLATES, PerilTemplate, PerilTemplateItem, get_matching_templates

__all__ = [
    # Assembly
    "DEFAULT_TRADE_SCOPE_TABLE",
    "ScopeAssemblyResult",
    "TradeScopeTable",
    "add_water_protocol_items",
    "apply_peril_template",
    "assemble_scope",
    "scope_item_id",
    "suggest_missing_companions",
    # Catalog
    "CatalogSource",
    "InMemoryCatalog",
    "NATIONAL_REGION",
    "build_seed_catalog",
    "select_price",
    # Companions
    "CompanionSuggestion",
    "EstimateValidation",
    "get_companion_suggestions",
    "validate_companion_items",
    "validate_estimate",
    # Conditions
    "ScopeContext",
    "filter_by_scope_conditions",
    "matches_conditions",
    "zone_for_room_type",
    # Quantities
    "QuantityResult",
    "derive_quantity",
    "derive_room_quantities",
    # Peril templates
    "PERIL_TEMPLATES",
    "PerilTemplate",
    "PerilTemplateItem",
    "get_matching_templates",
]
