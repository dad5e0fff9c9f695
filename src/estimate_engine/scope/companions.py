"""
Companion item suggestions and estimate validation.

Works on scope items or line items; anything with a catalog_code or
xact_code attribute is accepted.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.models import Provenance

FLOOR_PROTECTION_TRADE_COUNT = 3


@dataclass(frozen=True)
class CompanionSuggestion:
    code: str
    reason: str


@dataclass
class EstimateValidation:
    """Outcome of an estimate or companion validation pass."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def _code_of(item: Any) -> str:
    return getattr(item, "catalog_code", None) or getattr(item, "xact_code", None) or ""


def _trade_of(item: Any) -> str:
    trade = getattr(item, "trade_code", None)
    if trade:
        return trade.upper()
    code = _code_of(item)
    return code.split("-")[0].upper() if code else ""


def get_companion_suggestions(items: Sequence[Any]) -> list[CompanionSuggestion]:
    """
    Suggest companion items that are usually present alongside existing ones.

    Args:
        items: Scope items or line items already in the estimate

    Returns:
        Suggestions in a stable order, each code at most once
    """
    codes = {_code_of(item) for item in items if _code_of(item)}
    trades = {_trade_of(item) for item in items if _trade_of(item)}
    categories = {(getattr(item, "category", "") or "").upper() for item in items}
    suggestions: dict[str, str] = {}

    def suggest(code: str, reason: str) -> None:
        if code not in codes and code not in suggestions:
            suggestions[code] = reason

    if any(c.startswith("RFG-SHIN") for c in codes) or "ROOFING" in categories:
        suggest("RFG-FELT-SQ", "Roofing felt underlayment required with shingle replacement")
        suggest("RFG-ICE-SF", "Ice & water shield recommended at eaves and valleys")
        suggest("RFG-DRIP-LF", "Drip edge typically replaced with new shingles")
        suggest("RFG-RIDGE-LF", "Ridge cap shingles needed for roof replacement")

    has_drywall = any(
        c.startswith("DRY-") and not c.startswith(("DRY-TAPE", "DRY-JOINT")) for c in codes
    )
    if has_drywall:
        suggest("DRY-TAPE-LF", "Tape and finish required for new drywall")
        suggest("DRY-JOINT-SF", "Texture match required after drywall replacement")

    if any(c.startswith(("FLR-CARPET", "FLR-VINYL", "FLR-LAMINATE", "FLR-WOOD")) for c in codes):
        suggest("FLR-PAD-SF", "Underlayment typically required with new flooring")
        suggest("FLR-TRIM-LF", "Baseboard often replaced or reinstalled with new flooring")

    if "FLR-CARPET-SF" in codes:
        suggest("FLR-PAD-SF", "Carpet pad required with carpet installation")

    if has_drywall and "PNT" not in trades and "PAINTING" not in categories:
        suggest("PNT-INT-SF", "Paint required after drywall replacement")
        suggest("DRY-PRIMER-SF", "Primer/sealer recommended for new drywall")

    if any(c.startswith("DEM-") for c in codes):
        suggest("DEM-HAUL-LD", "Debris haul-off needed for demolished materials")

    code_trades = {c.split("-")[0] for c in codes}
    if len(code_trades) >= FLOOR_PROTECTION_TRADE_COUNT:
        suggest("GEN-PROT-SF", "Floor protection recommended for multi-trade projects")

    return [CompanionSuggestion(code, reason) for code, reason in suggestions.items()]


def validate_companion_items(items: Sequence[Any]) -> EstimateValidation:
    """Flag companion items whose parent is gone or whose quantity is not positive."""
    result = EstimateValidation()
    active = [item for item in items if getattr(item, "status", "active") == "active"]
    active_ids = {getattr(item, "id", None) for item in active}

    for item in active:
        if getattr(item, "provenance", None) != Provenance.COMPANION_AUTO:
            continue
        parent_id = getattr(item, "parent_scope_item_id", None)
        if parent_id is None or parent_id not in active_ids:
            result.errors.append(
                f"Companion {_code_of(item)} ({item.id}) has no active parent item {parent_id}"
            )
        if (item.quantity or 0) <= 0:
            result.warnings.append(f"Companion {_code_of(item)} ({item.id}) has no quantity")
    return result


def validate_estimate(items: Sequence[Any]) -> EstimateValidation:
    """Check an estimate for duplicates, trade sequence gaps and bad quantities."""
    result = EstimateValidation()
    seen: set[str] = set()
    for item in items:
        code = _code_of(item)
        if code in seen:
            result.warnings.append(f"Duplicate item: {code} appears multiple times")
        seen.add(code)

    trades = {_trade_of(item) for item in items}
    if "DRY" in trades and "DEM" not in trades:
        result.warnings.append(
            "Drywall work (DRY) present without Demolition (DEM); verify existing condition"
        )
    if "PNT" in trades and "DRY" not in trades:
        result.warnings.append(
            "Painting (PNT) present without Drywall (DRY); verify surface prep"
        )

    for item in items:
        if not item.quantity or item.quantity <= 0:
            result.errors.append(f"Item {_code_of(item)} has invalid quantity")
    return result
