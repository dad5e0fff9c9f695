"""
Estimation Engine - Main Orchestrator.
Runs room geometry, scope assembly, pricing, settlement and export.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from .core.models import (
    ClaimInfo,
    DamageObservation,
    InspectionRoom,
    LineItem,
    PolicyRule,
    ScopeItem,
    SettlementRules,
    SettlementSummary,
    TaxRule,
    WaterClassification,
)
from .geometry.dimvars import DimVarResult, calculate_dim_vars
from .interchange.esx import generate_esx
from .modules.pricing import PricingResult, price_scope_items
from .modules.settlement import calculate_settlement as _calculate_settlement
from .modules.settlement_rules import (
    DEFAULT_CARRIER_TABLE,
    CarrierRuleTable,
    resolve_settlement_rules,
)
from .reporting.settlement_report import SettlementFormatter
from .scope.assembly import (
    DEFAULT_TRADE_SCOPE_TABLE,
    ScopeAssemblyResult,
    TradeScopeTable,
    add_water_protocol_items,
    apply_peril_template,
    assemble_scope,
    suggest_missing_companions,
)
from .scope.catalog import CatalogSource
from .scope.seed import NATIONAL_REGION, build_seed_catalog
from .scope.templates import get_matching_templates

logger = logging.getLogger(__name__)


@dataclass
class EstimateRun:
    """Everything produced by one pass of the pipeline."""

    scope: ScopeAssemblyResult
    pricing: PricingResult
    line_items: list[LineItem]
    summary: SettlementSummary
    esx: bytes | None = None
    warnings: list[str] = field(default_factory=list)


class EstimationEngine:
    """
    Main orchestrator for the Estimation & Settlement Engine.

    Composes dimension variables, scope assembly, pricing, settlement
    and interchange export.
    """

    def __init__(
        self,
        catalog: CatalogSource | None = None,
        region_id: str = NATIONAL_REGION,
        carrier_code: str | None = None,
        carrier_table: CarrierRuleTable = DEFAULT_CARRIER_TABLE,
        trade_table: TradeScopeTable = DEFAULT_TRADE_SCOPE_TABLE,
        rule_overrides: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Initialize the Estimation Engine.

        Args:
            catalog: Catalog source; the seed catalog when None
            region_id: Pricing region
            carrier_code: Carrier key into the rule table
            carrier_table: Carrier settlement rule table
            trade_table: Damage type to trade scope table
            rule_overrides: Settlement rule fields to override
        """
        self.region_id = region_id
        self.carrier_code = carrier_code
        self.carrier_table = carrier_table
        self.trade_table = trade_table
        self.rule_overrides = dict(rule_overrides or {})

        # Initialize components lazily
        self._catalog: CatalogSource | None = catalog

    @property
    def catalog(self) -> CatalogSource:
        """Get or create the catalog source."""
        if self._catalog is None:
            self._catalog = build_seed_catalog(self.region_id)
        return self._catalog

    def resolve_rules(self, claim_tax_rate: Decimal | float | None = None) -> SettlementRules:
        """Resolve settlement rules for the configured carrier."""
        return resolve_settlement_rules(
            carrier_code=self.carrier_code,
            table=self.carrier_table,
            claim_tax_rate=claim_tax_rate,
            overrides=self.rule_overrides,
        )

    def room_dim_vars(self, room: InspectionRoom) -> DimVarResult | None:
        """Dimension variables for a room, or None when it has no measurements."""
        if room.dimensions is None:
            return None
        return calculate_dim_vars(room.dimensions, room.openings)

    async def assemble(
        self,
        rooms: Sequence[InspectionRoom],
        damages: Sequence[DamageObservation],
        existing_items: Sequence[ScopeItem] = (),
        water_classification: WaterClassification | None = None,
        peril_type: str | None = None,
        apply_templates: bool = False,
    ) -> ScopeAssemblyResult:
        """
        Assemble scope for every damage observation, room by room.

        Items created for earlier damages count as existing for later ones.
        With apply_templates, each damaged room is first seeded from the
        peril templates that match its room type. A water classification
        adds its protocol items to every damaged room. Missing companions
        are returned as suggestions.
        """
        rooms_by_id = {str(room.id): room for room in rooms}
        dim_vars = {str(room.id): self.room_dim_vars(room) for room in rooms}
        combined = ScopeAssemblyResult()
        known = list(existing_items)

        def merge(result: ScopeAssemblyResult) -> None:
            combined.created.extend(result.created)
            combined.companion_items.extend(result.companion_items)
            combined.manual_quantity_needed.extend(result.manual_quantity_needed)
            combined.warnings.extend(result.warnings)
            combined.suggestions.extend(result.suggestions)
            known.extend(result.all_items)

        damaged_rooms: list[InspectionRoom] = []
        for damage in damages:
            room = rooms_by_id.get(str(damage.room_id))
            if room is None:
                combined.warnings.append(f"Damage {damage.id} is not linked to a known room")
                continue
            if room not in damaged_rooms:
                damaged_rooms.append(room)

        if apply_templates:
            for room in damaged_rooms:
                for template in get_matching_templates(peril_type, room.room_type):
                    merge(
                        await apply_peril_template(
                            self.catalog, room, template,
                            existing_items=known, dim_vars=dim_vars[str(room.id)],
                        )
                    )

        for damage in damages:
            room = rooms_by_id.get(str(damage.room_id))
            if room is None:
                continue
            merge(
                await assemble_scope(
                    self.catalog,
                    room,
                    damage,
                    existing_items=known,
                    trade_table=self.trade_table,
                    dim_vars=dim_vars[str(room.id)],
                )
            )

        if water_classification is not None:
            for room in damaged_rooms:
                merge(
                    await add_water_protocol_items(
                        self.catalog, room, water_classification,
                        existing_items=known, dim_vars=dim_vars[str(room.id)],
                    )
                )

        offered = {s.code for s in combined.suggestions}
        for room_id, suggestion in suggest_missing_companions(combined.all_items):
            if suggestion.code not in offered:
                logger.debug("Room %s is missing companion %s", room_id, suggestion.code)
                combined.suggestions.append(suggestion)
                offered.add(suggestion.code)

        logger.info(
            "Scope assembled: %d items, %d companions, %d need manual quantities",
            len(combined.created), len(combined.companion_items),
            len(combined.manual_quantity_needed),
        )
        return combined

    async def price(self, items: Sequence[ScopeItem]) -> PricingResult:
        """Price scope items in the configured region."""
        return await price_scope_items(list(items), self.catalog, self.region_id)

    def to_line_items(
        self,
        pricing: PricingResult,
        rooms: Sequence[InspectionRoom] = (),
        age: float | None = None,
    ) -> list[LineItem]:
        """Convert priced items into settlement line items with room context."""
        rooms_by_id = {str(room.id): room for room in rooms}
        line_items = []
        for priced in pricing.items:
            room = rooms_by_id.get(str(priced.room_id)) if priced.room_id is not None else None
            line_items.append(
                priced.to_line_item(
                    room_name=room.name if room else None,
                    structure=room.structure if room else None,
                    age=age,
                )
            )
        return line_items

    def settle(
        self,
        line_items: Sequence[LineItem | dict[str, Any]],
        policy_rules: Sequence[PolicyRule] = (),
        tax_rules: Sequence[TaxRule] = (),
        water_classification: WaterClassification | None = None,
        roof_age: float | None = None,
        claim_tax_rate: Decimal | float | None = None,
    ) -> SettlementSummary:
        """
        Run the settlement waterfall with the engine's resolved rules.

        Args:
            line_items: Priced line items (LineItem or dict)
            policy_rules: Per-coverage deductible, limit and O&P terms
            tax_rules: Per-category tax rules
            water_classification: Water loss classification, if any
            roof_age: Roof age in years
            claim_tax_rate: Claim-level tax rate (percent)

        Returns:
            SettlementSummary
        """
        items = [
            LineItem.model_validate(item) if isinstance(item, dict) else item
            for item in line_items
        ]
        return _calculate_settlement(
            items,
            rules=self.resolve_rules(claim_tax_rate),
            policy_rules=policy_rules,
            tax_rules=tax_rules,
            water_classification=water_classification,
            roof_age=roof_age,
        )

    def settle_with_formatter(self, line_items: Sequence[LineItem | dict[str, Any]], **kwargs: Any) -> SettlementFormatter:
        """Settle and return a formatter for output."""
        return SettlementFormatter(self.settle(line_items, **kwargs))

    def export_esx(
        self,
        summary: SettlementSummary,
        claim: ClaimInfo,
        rooms: Sequence[InspectionRoom] = (),
        policy_rules: Sequence[PolicyRule] = (),
        transaction_id: str | None = None,
        generated_on: date | None = None,
    ) -> bytes:
        """Serialize a settlement to an ESX archive."""
        return generate_esx(
            summary,
            claim,
            rooms=rooms,
            policy_rules=policy_rules,
            transaction_id=transaction_id,
            generated_on=generated_on,
        )

    async def run(
        self,
        rooms: Sequence[InspectionRoom],
        damages: Sequence[DamageObservation],
        claim: ClaimInfo | None = None,
        policy_rules: Sequence[PolicyRule] = (),
        tax_rules: Sequence[TaxRule] = (),
        water_classification: WaterClassification | None = None,
        existing_items: Sequence[ScopeItem] = (),
        export: bool = False,
        item_age: float | None = None,
        apply_templates: bool = False,
    ) -> EstimateRun:
        """
        Run the full pipeline: scope, price, settle and optionally export.

        Args:
            rooms: Inspected rooms
            damages: Damage observations linked to rooms
            claim: Claim facts (tax rate, roof age, export header)
            policy_rules: Per-coverage terms
            tax_rules: Per-category tax rules
            water_classification: Water loss classification, if any
            existing_items: Scope items already on the estimate
            export: Also build the ESX archive (requires claim)
            item_age: Age in years of the damaged items, for depreciation
            apply_templates: Seed damaged rooms from the claim peril templates

        Returns:
            EstimateRun with every intermediate result
        """
        scope = await self.assemble(
            rooms,
            damages,
            existing_items,
            water_classification=water_classification,
            peril_type=claim.peril_type if claim else None,
            apply_templates=apply_templates,
        )
        pricing = await self.price(scope.all_items)
        line_items = self.to_line_items(pricing, rooms, age=item_age)

        roof_age = claim.roof_info.roof_age if claim and claim.roof_info else None
        summary = self.settle(
            line_items,
            policy_rules=policy_rules,
            tax_rules=tax_rules,
            water_classification=water_classification,
            roof_age=roof_age,
            claim_tax_rate=claim.tax_rate if claim else None,
        )

        esx = None
        if export:
            if claim is None:
                raise ValueError("A claim is required to export an ESX archive")
            esx = self.export_esx(summary, claim, rooms, policy_rules)

        warnings = scope.warnings + pricing.warnings + summary.warnings
        return EstimateRun(
            scope=scope,
            pricing=pricing,
            line_items=line_items,
            summary=summary,
            esx=esx,
            warnings=warnings,
        )

    def configure(
        self,
        catalog: CatalogSource | None = None,
        region_id: str | None = None,
        carrier_code: str | None = None,
        carrier_table: CarrierRuleTable | None = None,
        trade_table: TradeScopeTable | None = None,
        rule_overrides: Mapping[str, Any] | None = None,
    ) -> "EstimationEngine":
        """
        Configure the engine settings.

        Args:
            catalog: Replace the catalog source
            region_id: Change the pricing region
            carrier_code: Change the carrier
            carrier_table: Replace the carrier rule table
            trade_table: Replace the trade scope table
            rule_overrides: Replace the settlement rule overrides

        Returns:
            Self for method chaining
        """
        if catalog is not None:
            self._catalog = catalog
        if region_id is not None:
            if self.region_id != region_id and catalog is None:
                self._catalog = None
            self.region_id = region_id
        if carrier_code is not None:
            self.carrier_code = carrier_code
        if carrier_table is not None:
            self.carrier_table = carrier_table
        if trade_table is not None:
            self.trade_table = trade_table
        if rule_overrides is not None:
            self.rule_overrides = dict(rule_overrides)
        return self


# Convenience function for quick settlements
def calculate_settlement(
    line_items: Sequence[LineItem | dict[str, Any]],
    carrier_code: str | None = None,
    policy_rules: Sequence[PolicyRule] = (),
    tax_rules: Sequence[TaxRule] = (),
    water_classification: WaterClassification | None = None,
    roof_age: float | None = None,
) -> SettlementSummary:
    """
    Convenience function for quick settlements.

    Args:
        line_items: Priced line items (LineItem or dict)
        carrier_code: Carrier key into the default rule table
        policy_rules: Per-coverage terms
        tax_rules: Per-category tax rules
        water_classification: Water loss classification, if any
        roof_age: Roof age in years

    Returns:
        SettlementSummary
    """
    engine = EstimationEngine(carrier_code=carrier_code)
    return engine.settle(
        line_items,
        policy_rules=policy_rules,
        tax_rules=tax_rules,
        water_classification=water_classification,
        roof_age=roof_age,
    )
