"""
Scope assembly.

Turns a damage observation in a room into scope items: curated
damage -> trade -> catalog code lookup first, declarative scope
conditions second, and an empty scope with a warning when neither
matches. Companion auto-adds are expanded after primary items. Peril
templates and water protocol items seed a room with template provenance.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from ..core.models import (
    CatalogEntry,
    CoverageType,
    DamageObservation,
    InspectionRoom,
    ManualQuantityNeeded,
    Provenance,
    QuantityFormula,
    ScopeItem,
    WaterClassification,
)
from ..geometry.dimvars import DimVarResult, calculate_dim_vars
from ..modules.water import triggered_companions
from ..utils.money import round_qty
from .catalog import DEFAULT_ACTIVITY, TRANSIENT_ERRORS, CatalogSource
from .companions import CompanionSuggestion, get_companion_suggestions
from .conditions import ScopeContext, filter_by_scope_conditions, zone_for_room_type
from .quantity import derive_quantity, manual_quantity_reason
from .templates import PerilTemplate

logger = logging.getLogger(__name__)

TRADE_FALLBACK_LIMIT = 3

TradeCodes = tuple[tuple[str, tuple[str, ...]], ...]


@dataclass(frozen=True)
class TradeScopeTable:
    """
    Immutable, versioned damage type -> trade -> catalog code table.
    """

    version: str
    entries: Mapping[str, TradeCodes]

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def trades_for(self, damage_type: str | None) -> TradeCodes:
        if not damage_type:
            return ()
        return self.entries.get(damage_type, ())


DEFAULT_TRADE_SCOPE_TABLE = TradeScopeTable(
    version="2024.1",
    entries={
        "water_intrusion": (
            ("MIT", ("MIT-EXTR-SF",)),
            ("DEM", ("DEM-TRIM-LF",)),
            ("DRY", ("DRY-SHEET-SF",)),
            ("PNT", ("PNT-INT-SF",)),
        ),
        "water_stain": (
            ("DRY", ("DRY-PRIMER-SF",)),
            ("PNT", ("PNT-CEILING-SF",)),
        ),
        "mold": (
            ("MIT", ("MIT-MOLD-SF",)),
            ("DRY", ("DRY-SHEET-SF",)),
        ),
        "hail_impact": (
            ("RFG", ("RFG-SHIN-AR", "RFG-RIDGE-LF")),
        ),
        "wind_damage": (
            ("RFG", ("RFG-SHIN-AR",)),
            ("EXT", ("EXT-SIDING-SF",)),
        ),
        "crack": (
            ("DRY", ("DRY-PATCH-SF",)),
            ("PNT", ("PNT-INT-SF",)),
        ),
        "rot": (
            ("CAR", ("CAR-FRAME-LF",)),
            ("PNT", ("PNT-TRIM-LF",)),
        ),
    },
)


@dataclass
class ScopeAssemblyResult:
    """Items created for one damage observation or template."""

    created: list[ScopeItem] = field(default_factory=list)
    companion_items: list[ScopeItem] = field(default_factory=list)
    manual_quantity_needed: list[ManualQuantityNeeded] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[CompanionSuggestion] = field(default_factory=list)

    @property
    def all_items(self) -> list[ScopeItem]:
        return self.created + self.companion_items


def scope_item_id(room_id: object, damage_id: object, code: str) -> str:
    """Deterministic scope item id."""
    return f"{room_id}:{damage_id}:{code}"


async def _curated_matches(
    catalog: CatalogSource, table: TradeScopeTable, damage_type: str | None
) -> list[CatalogEntry]:
    matches: list[CatalogEntry] = []
    for trade, codes in table.trades_for(damage_type):
        found = await asyncio.gather(*(catalog.lookup_catalog_item(code) for code in codes))
        resolved = [entry for entry in found if entry is not None]
        if not resolved:
            trade_items = await catalog.list_catalog_items(trade)
            resolved = [
                entry for entry in trade_items if entry.activity_type == DEFAULT_ACTIVITY
            ][:TRADE_FALLBACK_LIMIT]
            if resolved:
                logger.debug(
                    "No curated %s code resolved for %s; using %d install items",
                    trade, damage_type, len(resolved),
                )
        matches.extend(resolved)

    unique: dict[str, CatalogEntry] = {}
    for entry in matches:
        unique.setdefault(entry.code, entry)
    return list(unique.values())


async def _existing_exclusions(
    catalog: CatalogSource, active_codes: set[str]
) -> set[str]:
    entries = await asyncio.gather(*(catalog.lookup_catalog_item(c) for c in sorted(active_codes)))
    excluded: set[str] = set()
    for entry in entries:
        if entry is not None and entry.companion_rules:
            excluded.update(entry.companion_rules.excludes)
    return excluded


def _make_item(
    entry: CatalogEntry,
    room: InspectionRoom,
    damage_id: object,
    quantity: float,
    formula: str,
    provenance: Provenance,
    parent_id: str | None = None,
    id_tag: object = None,
) -> ScopeItem:
    return ScopeItem(
        id=scope_item_id(room.id, damage_id if id_tag is None else id_tag, entry.code),
        room_id=room.id,
        damage_id=damage_id,
        catalog_code=entry.code,
        description=entry.description,
        trade_code=entry.trade_code,
        quantity=quantity,
        unit=entry.unit,
        quantity_formula=formula,
        provenance=provenance,
        coverage_type=entry.coverage_type or CoverageType.A,
        activity_type=entry.activity_type,
        waste_factor=entry.default_waste_factor,
        depreciation_type=entry.depreciation_type,
        parent_scope_item_id=parent_id,
    )


def _quantity_for(
    entry: CatalogEntry,
    dim_vars: DimVarResult | None,
    result: ScopeAssemblyResult,
    reason_prefix: str = "",
) -> tuple[float, str] | None:
    """Derive a quantity or queue a manual-quantity record."""
    formula = entry.quantity_formula
    if not formula:
        # Entries without a formula are count-based
        return 1.0, QuantityFormula.EACH.value

    derived = derive_quantity(dim_vars, formula)
    if derived is None:
        reason = manual_quantity_reason(formula, dim_vars is not None)
        result.manual_quantity_needed.append(
            ManualQuantityNeeded(
                catalog_code=entry.code,
                description=entry.description,
                unit=entry.unit,
                reason=f"{reason_prefix}{reason}",
            )
        )
        return None
    return derived.quantity, derived.formula


def _active_codes(room: InspectionRoom, existing_items: Sequence[ScopeItem]) -> set[str]:
    return {
        item.catalog_code
        for item in existing_items
        if item.room_id == room.id and item.is_active
    }


def _unavailable(result: ScopeAssemblyResult, action: str, exc: Exception) -> ScopeAssemblyResult:
    message = f"Catalog unavailable while {action}: {exc}. Items must be added manually."
    logger.warning(message)
    result.warnings.append(message)
    return result


async def assemble_scope(
    catalog: CatalogSource,
    room: InspectionRoom,
    damage: DamageObservation,
    existing_items: Sequence[ScopeItem] = (),
    trade_table: TradeScopeTable | None = None,
    dim_vars: DimVarResult | None = None,
) -> ScopeAssemblyResult:
    """
    Assemble scope items for a damage observation in a room.

    A catalog source that is unavailable leaves the damage unscoped with
    a warning; a companion lookup failure skips only that companion.

    Args:
        catalog: Catalog source
        room: Room the damage was observed in
        damage: The damage observation
        existing_items: Scope items already on the estimate
        trade_table: Curated damage -> trade -> code table
        dim_vars: Precomputed dimension variables for the room

    Returns:
        ScopeAssemblyResult; nothing is persisted
    """
    table = trade_table or DEFAULT_TRADE_SCOPE_TABLE
    result = ScopeAssemblyResult()
    scoping = f"scoping damage {damage.id} in room {room.id}"

    if dim_vars is None and room.dimensions is not None:
        dim_vars = calculate_dim_vars(room.dimensions, room.openings)

    try:
        matches = await _curated_matches(catalog, table, damage.damage_type)
        if not matches:
            context = ScopeContext(
                damage_type=damage.damage_type,
                severity=damage.severity,
                room_type=room.room_type,
                zone_type=zone_for_room_type(room.room_type),
            )
            matches = filter_by_scope_conditions(await catalog.list_catalog_items(), context)
    except TRANSIENT_ERRORS as exc:
        return _unavailable(result, scoping, exc)

    if not matches:
        message = (
            f'No catalog items matched damage type "{damage.damage_type}" with severity '
            f'"{damage.severity}" in room type "{room.room_type}". Items must be added manually.'
        )
        logger.warning(message)
        result.warnings.append(message)
        return result

    active_codes = _active_codes(room, existing_items)
    try:
        excluded = await _existing_exclusions(catalog, active_codes)
    except TRANSIENT_ERRORS as exc:
        return _unavailable(result, scoping, exc)
    pending: dict[str, CatalogEntry] = {}

    for entry in matches:
        if entry.code in active_codes:
            result.warnings.append(f'Skipped "{entry.code}": already in scope for this room.')
            continue
        if entry.code in excluded:
            result.warnings.append(f'Skipped "{entry.code}": excluded by existing scope item.')
            continue

        quantity = _quantity_for(entry, dim_vars, result)
        if quantity is None or quantity[0] <= 0:
            continue

        item = _make_item(entry, room, damage.id, quantity[0], quantity[1], Provenance.DAMAGE_TRIGGERED)
        result.created.append(item)
        pending[entry.code] = entry
        if entry.companion_rules:
            excluded.update(entry.companion_rules.excludes)

    for parent in list(result.created):
        rules = pending[parent.catalog_code].companion_rules
        if rules is None or not rules.auto_adds:
            continue
        for code in rules.auto_adds:
            if code in active_codes or code in pending:
                continue
            try:
                companion = await catalog.lookup_catalog_item(code)
            except TRANSIENT_ERRORS as exc:
                result.warnings.append(f'Companion "{code}" skipped, catalog unavailable: {exc}')
                continue
            if companion is None:
                result.warnings.append(f'Companion "{code}" not found in catalog.')
                continue
            quantity = _quantity_for(
                companion, dim_vars, result, reason_prefix=f'Companion of "{parent.catalog_code}": '
            )
            if quantity is None or quantity[0] <= 0:
                continue
            result.companion_items.append(
                _make_item(
                    companion, room, damage.id, quantity[0], quantity[1],
                    Provenance.COMPANION_AUTO, parent_id=parent.id,
                )
            )
            pending[code] = companion

    for warning in result.warnings:
        logger.warning(warning)
    logger.info(
        "Assembled scope for room %s damage %s: %d items, %d companions, %d manual",
        room.id, damage.id, len(result.created), len(result.companion_items),
        len(result.manual_quantity_needed),
    )
    return result


async def _seed_room(
    catalog: CatalogSource,
    room: InspectionRoom,
    codes: Sequence[tuple[str, float]],
    existing_items: Sequence[ScopeItem],
    dim_vars: DimVarResult | None,
    id_tag: str,
    label: str,
) -> ScopeAssemblyResult:
    """Create template-provenance items for catalog codes in a room."""
    result = ScopeAssemblyResult()
    if dim_vars is None and room.dimensions is not None:
        dim_vars = calculate_dim_vars(room.dimensions, room.openings)

    active_codes = _active_codes(room, existing_items)
    wanted = [(code, mult) for code, mult in codes if code not in active_codes]
    try:
        entries = await asyncio.gather(*(catalog.lookup_catalog_item(code) for code, _ in wanted))
        excluded = await _existing_exclusions(catalog, active_codes)
    except TRANSIENT_ERRORS as exc:
        return _unavailable(result, f"applying {label} to room {room.id}", exc)

    missing = []
    for (code, multiplier), entry in zip(wanted, entries):
        if entry is None:
            missing.append(code)
            continue
        if entry.code in excluded:
            result.warnings.append(f'Skipped "{entry.code}": excluded by existing scope item.')
            continue
        quantity = _quantity_for(entry, dim_vars, result, reason_prefix=f"{label}: ")
        if quantity is None:
            continue
        amount = round_qty(quantity[0] * multiplier)
        if amount <= 0:
            continue
        result.created.append(
            _make_item(entry, room, None, amount, quantity[1], Provenance.TEMPLATE, id_tag=id_tag)
        )
        if entry.companion_rules:
            excluded.update(entry.companion_rules.excludes)

    if missing:
        result.warnings.append(f"{label}: not in catalog: {', '.join(missing)}")
    for warning in result.warnings:
        logger.warning(warning)
    logger.info("%s seeded %d items in room %s", label, len(result.created), room.id)
    return result


async def apply_peril_template(
    catalog: CatalogSource,
    room: InspectionRoom,
    template: PerilTemplate,
    existing_items: Sequence[ScopeItem] = (),
    dim_vars: DimVarResult | None = None,
    include_suggested: bool = False,
) -> ScopeAssemblyResult:
    """
    Seed a room with a peril template's items.

    Auto-include items are created with template provenance; the others
    are returned as suggestions unless include_suggested is set.
    """
    items = template.items if include_suggested else template.auto_items
    result = await _seed_room(
        catalog,
        room,
        [(item.catalog_code, item.quantity_multiplier) for item in items],
        existing_items,
        dim_vars,
        id_tag="template",
        label=f'Template "{template.name}"',
    )
    if not include_suggested:
        result.suggestions.extend(
            CompanionSuggestion(item.catalog_code, item.notes or f"Optional item of {template.name}")
            for item in template.suggested_items
        )
    return result


async def add_water_protocol_items(
    catalog: CatalogSource,
    room: InspectionRoom,
    classification: WaterClassification,
    existing_items: Sequence[ScopeItem] = (),
    dim_vars: DimVarResult | None = None,
) -> ScopeAssemblyResult:
    """Add the items a water classification requires to an affected room."""
    codes = triggered_companions(classification)
    if not codes:
        return ScopeAssemblyResult()
    return await _seed_room(
        catalog,
        room,
        [(code, 1.0) for code in codes],
        existing_items,
        dim_vars,
        id_tag="water",
        label=f"Category {classification.category.value} water protocol",
    )


def suggest_missing_companions(items: Sequence[ScopeItem]) -> list[tuple[object, CompanionSuggestion]]:
    """Missing companion suggestions per room, as (room id, suggestion) pairs."""
    by_room: dict[object, list[ScopeItem]] = {}
    for item in items:
        if item.is_active:
            by_room.setdefault(item.room_id, []).append(item)
    return [
        (room_id, suggestion)
        for room_id, room_items in by_room.items()
        for suggestion in get_companion_suggestions(room_items)
    ]
