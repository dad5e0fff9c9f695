"""
Declarative scope condition matching.

A catalog entry's scope_conditions list the damage types, severities,
room types and zones it applies to. An empty list matches anything.
"""

from dataclasses import dataclass

from ..core.models import CatalogEntry, ScopeConditions


@dataclass(frozen=True)
class ScopeContext:
    """Fixed set of fields scope conditions are evaluated against."""

    damage_type: str | None = None
    severity: str | None = None
    room_type: str | None = None
    zone_type: str | None = None


def zone_for_room_type(room_type: str | None) -> str:
    """Derive the zone from a room type prefix (interior_/exterior_)."""
    if not room_type:
        return "unknown"
    if room_type.startswith("interior_"):
        return "interior"
    if room_type.startswith("exterior_"):
        return "exterior"
    return "unknown"


def _accepts(allowed: list[str], value: str | None) -> bool:
    if not allowed:
        return True
    return value is not None and value in allowed


def matches_conditions(conditions: ScopeConditions | None, context: ScopeContext) -> bool:
    """Whether a set of conditions applies to the context. None never matches."""
    if conditions is None:
        return False
    return (
        _accepts(conditions.damage_types, context.damage_type)
        and _accepts(conditions.severity, context.severity)
        and _accepts(conditions.room_types, context.room_type)
        and _accepts(conditions.zone_types, context.zone_type)
    )


def filter_by_scope_conditions(
    catalog: list[CatalogEntry], context: ScopeContext
) -> list[CatalogEntry]:
    """Active catalog entries whose conditions match the context."""
    return [
        entry
        for entry in catalog
        if entry.is_active and matches_conditions(entry.scope_conditions, context)
    ]
