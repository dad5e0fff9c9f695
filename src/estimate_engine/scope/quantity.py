"""
Scope quantity engine.

Maps a catalog entry's quantity formula onto a room's dimension variables.
A None result means the quantity needs human input; no default is ever
substituted.
"""

from dataclasses import dataclass

from ..core.models import CatalogEntry, DimVars, QuantityFormula
from ..geometry.dimvars import DimVarResult
from ..utils.money import round_qty


@dataclass(frozen=True)
class QuantityResult:
    """A derived quantity with a human-readable explanation."""

    quantity: float
    unit: str
    formula: str
    derivation: str


def _formula(code: str | None) -> QuantityFormula | None:
    if not code:
        return None
    try:
        return QuantityFormula(code.strip().upper())
    except ValueError:
        return None


def derive_quantity(
    dim_vars: DimVarResult | None,
    formula: str | QuantityFormula | None,
) -> QuantityResult | None:
    """
    Derive a quantity from a room's dimension variables.

    Args:
        dim_vars: Before/after deduction variables, or None when the room
            has no measured geometry
        formula: Quantity formula code

    Returns:
        QuantityResult, or None for MANUAL, unknown formulas or missing geometry
    """
    if dim_vars is None:
        return None
    code = _formula(formula.value if isinstance(formula, QuantityFormula) else formula)
    if code is None or code == QuantityFormula.MANUAL:
        return None

    gross: DimVars = dim_vars.before_mw
    net: DimVars = dim_vars.after_mw

    def result(quantity: float, unit: str, derivation: str) -> QuantityResult:
        return QuantityResult(round_qty(quantity), unit, code.value, derivation)

    if code == QuantityFormula.FLOOR_SF:
        return result(gross.F, "SF", f"Floor area: {gross.F} SF")
    if code == QuantityFormula.CEILING_SF:
        return result(gross.C, "SF", f"Ceiling area: {gross.C} SF")
    if code == QuantityFormula.WALL_SF:
        return result(
            gross.W, "SF",
            f"Gross wall area: perimeter {gross.PF} LF x {gross.HH}' height = {gross.W} SF",
        )
    if code == QuantityFormula.WALL_SF_NET:
        removed = round_qty(gross.W - net.W)
        return result(
            net.W, "SF",
            f"Net wall area: {gross.W} SF gross - {removed} SF openings = {net.W} SF",
        )
    if code == QuantityFormula.WALLS_CEILING_SF:
        total = gross.W + gross.C
        return result(
            total, "SF",
            f"Walls + ceiling: {gross.W} SF walls + {gross.C} SF ceiling = {round_qty(total)} SF",
        )
    if code == QuantityFormula.PERIMETER_LF:
        return result(net.PF, "LF", f"Floor perimeter: {net.PF} LF")
    if code == QuantityFormula.CEILING_PERIM_LF:
        return result(net.PC, "LF", f"Ceiling perimeter: {net.PC} LF")
    if code == QuantityFormula.FLOOR_SY:
        yards = gross.F / 9
        return result(yards, "SY", f"Floor area in SY: {gross.F} SF / 9 = {round_qty(yards)} SY")
    if code == QuantityFormula.ROOF_SF:
        return result(gross.R, "SF", f"Roof area: {gross.R} SF")
    if code == QuantityFormula.ROOF_SQ:
        return result(gross.SQ, "SQ", f"Roof squares: {gross.SQ} SQ")
    if code == QuantityFormula.VOLUME_CF:
        return result(gross.V, "CF", f"Volume: {gross.V} CF")
    if code == QuantityFormula.EACH:
        return result(1, "EA", "Count-based item: 1 EA")
    return None


def derive_room_quantities(
    dim_vars: DimVarResult | None,
    catalog_items: list[CatalogEntry],
) -> dict[str, QuantityResult | None]:
    """Derive quantities for several catalog entries against one room."""
    return {
        item.code: derive_quantity(dim_vars, item.quantity_formula)
        for item in catalog_items
    }


def manual_quantity_reason(formula: str | None, has_geometry: bool) -> str:
    """Human-readable reason a quantity could not be derived."""
    code = _formula(formula)
    if code is None and formula:
        return f"Unknown quantity formula '{formula}'; enter quantity manually"
    if code is None or code == QuantityFormula.MANUAL:
        return "Quantity formula is MANUAL; enter quantity manually"
    if not has_geometry:
        return f"Room has no dimensions; {code.value} requires room geometry"
    return f"Could not derive {code.value} from room geometry"
