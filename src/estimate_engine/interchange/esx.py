"""
ESX interchange container.

An ESX file is a ZIP archive holding XACTDOC.XML (claim header, contacts,
coverage and settlement summary) and GENERIC_ROUGHDRAFT.XML (line items
grouped by structure and room, with room dimension variables).
"""

import io
import logging
import zipfile
from collections.abc import Sequence
from datetime import date
from typing import Any
from xml.sax.saxutils import escape

from ..core.errors import ExportValidationError
from ..core.models import (
    ClaimInfo,
    DimVars,
    InspectionRoom,
    PolicyRule,
    SettledLineItem,
    SettlementSummary,
)
from ..core.trade_codes import resolve_category
from ..geometry.dimvars import DimVarResult, calculate_dim_vars
from ..utils.money import fmt2
from .metadata import XactdocMetadata, build_xactdoc_metadata
from .validator import validate_export

logger = logging.getLogger(__name__)

XACTDOC_NAME = "XACTDOC.XML"
ROUGHDRAFT_NAME = "GENERIC_ROUGHDRAFT.XML"
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
UNASSIGNED_ROOM = "Unassigned"
DEFAULT_STRUCTURE = "Main Dwelling"
DEFAULT_SELECTOR = "1/2++"

_QUOTES = {'"': "&quot;", "'": "&apos;"}


def esc(value: Any) -> str:
    """XML-escape a value for element text or a quoted attribute."""
    if value is None:
        return ""
    return escape(str(value), _QUOTES)


def _opt(tag: str, value: Any, indent: str) -> str:
    if value in (None, ""):
        return ""
    return f"{indent}<{tag}>{esc(value)}</{tag}>\n"


def _contact(contact_type: str, fields: dict[str, Any], indent: str = "    ") -> str:
    inner = "".join(_opt(tag, value, indent + "  ") for tag, value in fields.items())
    return f'{indent}<CONTACT type="{contact_type}">\n{inner}{indent}</CONTACT>\n'


def build_xactdoc_xml(metadata: XactdocMetadata, summary: SettlementSummary) -> str:
    """Render XACTDOC.XML."""
    totals = summary.totals
    meta_sum = metadata.summary
    inspected = metadata.inspector.inspection_date

    coverages = "".join(
        f'        <COVERAGE type="{esc(c.coverage_type.value)}" itemCount="{c.item_count}"'
        f' rcv="{fmt2(c.rcv)}" recoverableDepreciation="{fmt2(c.recoverable_depreciation)}"'
        f' nonRecoverableDepreciation="{fmt2(c.non_recoverable_depreciation)}"'
        f' paidWhenIncurred="{fmt2(c.paid_when_incurred)}" acv="{fmt2(c.acv)}"'
        f' deductible="{fmt2(c.deductible)}"'
        f' limit="{fmt2(c.policy_limit) if c.policy_limit is not None else ""}"'
        f' overLimit="{fmt2(c.over_limit)}" netClaim="{fmt2(c.net_claim)}"/>\n'
        for c in summary.coverages
    )
    limits = "".join(
        f'        <LIMIT coverage="{esc(cov)}" amount="{fmt2(amount)}"/>\n'
        for cov, amount in sorted(metadata.coverage.limits.items())
    )

    roof = ""
    if metadata.roof_info is not None:
        r = metadata.roof_info
        roof = (
            f'    <ROOF_INFO roofType="{esc(r.roof_type)}" roofAge="{fmt2(r.roof_age)}"'
            f' roofMaterial="{esc(r.roof_material)}" roofSlope="{esc(r.roof_slope)}"'
            f' squareFootage="{fmt2(r.square_footage)}" condition="{esc(r.condition)}"/>\n'
        )

    supplemental = ""
    if metadata.supplemental is not None:
        s = metadata.supplemental
        previous = fmt2(s.previous_rcv) if s.previous_rcv is not None else ""
        supplemental = (
            f'    <SUPPLEMENT number="{s.number}" reason="{esc(s.reason)}"'
            f' previousRCV="{previous}" addedRCV="{fmt2(s.added_rcv)}"/>\n'
        )

    insured = metadata.insured
    adjuster = metadata.adjuster
    inspector = metadata.inspector
    peril = metadata.peril
    location = metadata.loss_location

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<XACTDOC>\n"
        "  <XACTNET_INFO>\n"
        f"    <transactionId>{esc(metadata.transaction_id)}</transactionId>\n"
        f"    <carrierId>{esc(metadata.carrier_id)}</carrierId>\n"
        f"    <carrierName>{esc(metadata.carrier_name)}</carrierName>\n"
        f"    <estimateType>{esc(metadata.estimate_type)}</estimateType>\n"
        "    <CONTROL_POINTS>\n"
        '      <CONTROL_POINT name="ASSIGNMENT" status="COMPLETE"/>\n'
        f'      <CONTROL_POINT name="INSPECTION" status="COMPLETE" date="{esc(inspected)}"/>\n'
        f'      <CONTROL_POINT name="ESTIMATE" status="COMPLETE" date="{esc(metadata.generated_on)}"/>\n'
        "    </CONTROL_POINTS>\n"
        "    <SUMMARY>\n"
        f"      <totalRCV>{fmt2(meta_sum.total_rcv)}</totalRCV>\n"
        f"      <totalACV>{fmt2(meta_sum.total_acv)}</totalACV>\n"
        f"      <totalDepreciation>{fmt2(meta_sum.total_depreciation)}</totalDepreciation>\n"
        f"      <totalMaterial>{fmt2(meta_sum.total_material)}</totalMaterial>\n"
        f"      <totalLabor>{fmt2(meta_sum.total_labor)}</totalLabor>\n"
        f"      <totalEquipment>{fmt2(meta_sum.total_equipment)}</totalEquipment>\n"
        f"      <overhead>{fmt2(totals.overhead)}</overhead>\n"
        f"      <profit>{fmt2(totals.profit)}</profit>\n"
        f"      <tax>{fmt2(totals.tax)}</tax>\n"
        f"      <paidWhenIncurred>{fmt2(totals.paid_when_incurred)}</paidWhenIncurred>\n"
        f"      <deductible>{fmt2(totals.deductible)}</deductible>\n"
        f"      <netClaim>{fmt2(totals.net_claim)}</netClaim>\n"
        f"      <lineItemCount>{meta_sum.line_item_count}</lineItemCount>\n"
        "    </SUMMARY>\n"
        "  </XACTNET_INFO>\n"
        "  <CONTACTS>\n"
        + _contact(
            "INSURED",
            {
                "name": insured.name,
                "address": insured.address,
                "city": insured.city,
                "state": insured.state,
                "zip": insured.zip,
                "homePhone": insured.home_phone,
                "cellPhone": insured.cell_phone,
                "email": insured.email,
            },
        )
        + _contact(
            "ADJUSTER",
            {
                "name": adjuster.name,
                "company": adjuster.company,
                "licenseNumber": adjuster.license_number,
                "licenseState": adjuster.license_state,
                "phone": adjuster.phone_number,
                "email": adjuster.email,
            },
        )
        + _contact(
            "INSPECTOR",
            {
                "name": inspector.name,
                "company": inspector.company,
                "inspectionDate": inspector.inspection_date,
                "phone": inspector.phone_number,
                "email": inspector.email,
            },
        )
        + "  </CONTACTS>\n"
        "  <ADM>\n"
        f"    <dateOfLoss>{esc(peril.date_of_loss)}</dateOfLoss>\n"
        + _opt("dateDiscovered", peril.date_discovered, "    ")
        + _opt("dateReported", peril.date_reported, "    ")
        + f"    <dateInspected>{esc(inspected)}</dateInspected>\n"
        "    <COVERAGE_LOSS>\n"
        f"      <claimNumber>{esc(metadata.claim_number)}</claimNumber>\n"
        f"      <policyNumber>{esc(metadata.policy_number)}</policyNumber>\n"
        f"      <causeOfLoss>{esc(metadata.loss_details.cause_of_loss)}</causeOfLoss>\n"
        f"      <catastrophic>{'true' if metadata.loss_details.catastrophic else 'false'}</catastrophic>\n"
        f"      <propertyAddress>{esc(location.property_address)}</propertyAddress>\n"
        f"      <city>{esc(location.city)}</city>\n"
        f"      <state>{esc(location.state)}</state>\n"
        f"      <zip>{esc(location.zip)}</zip>\n"
        f"      <propertyType>{esc(location.property_type)}</propertyType>\n"
        "    </COVERAGE_LOSS>\n"
        f'    <COVERAGES deductibleType="{esc(metadata.coverage.deductible_type)}"'
        f' deductible="{fmt2(metadata.coverage.deductible_amount)}"'
        f' coinsurance="{fmt2(metadata.coverage.coinsurance_percentage)}">\n'
        + limits
        + coverages
        + "    </COVERAGES>\n"
        f'    <PERIL type="{esc(peril.peril_type)}" severity="{esc(peril.severity)}"'
        f' affectedAreas="{esc(", ".join(peril.affected_areas))}"/>\n'
        "    <PARAMS>\n"
        f"      <priceList>{esc(metadata.price_list_id)}</priceList>\n"
        f"      <laborEfficiency>{fmt2(metadata.labor_efficiency)}</laborEfficiency>\n"
        f"      <depreciationType>{esc(metadata.depreciation_type)}</depreciationType>\n"
        f"      <taxRate>{fmt2(summary.rules.default_tax_rate)}</taxRate>\n"
        f"      <overheadRate>{fmt2(summary.rules.overhead_percentage)}</overheadRate>\n"
        f"      <profitRate>{fmt2(summary.rules.profit_percentage)}</profitRate>\n"
        "    </PARAMS>\n"
        + roof
        + supplemental
        + "  </ADM>\n"
        "</XACTDOC>\n"
    )


def _dim_vars_xml(dim_type: str, dim_vars: DimVars) -> str:
    attrs = " ".join(f'{name}="{fmt2(value)}"' for name, value in dim_vars.as_attributes().items())
    return f'            <DIM_VARS type="{dim_type}" {attrs}/>\n'


def _item_xml(line_num: int, item: SettledLineItem, peril_type: str | None) -> str:
    category = resolve_category(item.trade_code, peril_type)
    return (
        f'            <ITEM lineNum="{line_num}" cat="{esc(category)}"'
        f' sel="{esc(item.xact_code or DEFAULT_SELECTOR)}" act="{esc(item.action)}"'
        f' desc="{esc(item.description)}" qty="{fmt2(item.quantity)}" unit="{esc(item.unit)}"'
        f' price="{fmt2(item.unit_price)}" remove="0.00" replace="{fmt2(item.rcv)}"'
        f' total="{fmt2(item.total_price)}" laborTotal="{fmt2(item.labor_total)}"'
        f' material="{fmt2(item.material_total)}" equipment="{fmt2(item.equipment_total)}"'
        f' overhead="{fmt2(item.overhead)}" profit="{fmt2(item.profit)}" tax="{fmt2(item.tax)}"'
        f' rcvTotal="{fmt2(item.rcv)}" depreciationPct="{fmt2(item.depreciation_percentage)}"'
        f' depreciation="{fmt2(item.depreciation_amount)}"'
        f' depreciationType="{esc(item.depreciation_type.value)}"'
        f' acvTotal="{fmt2(item.acv)}" coverage="{esc(item.coverage_type.value)}"/>\n'
    )


def _room_xml(
    name: str,
    room: InspectionRoom | None,
    items: list[SettledLineItem],
    peril_type: str | None,
) -> str:
    dims = room.dimensions if room else None
    result: DimVarResult | None = None
    if dims is not None:
        result = calculate_dim_vars(dims, room.openings)
    before = result.before_mw if result else DimVars()
    after = result.after_mw if result else DimVars()

    room_type = (room.room_type if room else None) or "room"
    info = (
        f'          <ROOM_INFO roomType="{esc(room_type)}"'
        f' length="{fmt2(dims.length if dims else 0)}" width="{fmt2(dims.width if dims else 0)}"'
        f' height="{fmt2(dims.height if dims else 0)}"'
        f' ceilingType="{esc(dims.ceiling_type.value if dims else "flat")}"/>\n'
    )

    openings = ""
    if result is not None:
        for resolved in result.deductions.resolved:
            opening = resolved.opening
            openings += (
                f'            <OPENING type="{esc(opening.opening_type)}"'
                f' width="{fmt2(resolved.width_ft)}" height="{fmt2(resolved.height_ft)}"'
                f' quantity="{opening.quantity}" wall="{esc(opening.wall_side)}"'
                f' goesToFloor="{1 if opening.goes_to_floor else 0}"'
                f' goesToCeiling="{1 if opening.goes_to_ceiling else 0}"'
                f' opensInto="{esc(opening.opens_into)}" label="{esc(opening.label)}"/>\n'
            )

    item_rows = "".join(
        _item_xml(index, item, peril_type) for index, item in enumerate(items, start=1)
    )

    return (
        f'        <GROUP type="room" name="{esc(name)}">\n'
        + info
        + "          <ROOM_DIM_VARS>\n"
        + _dim_vars_xml("beforeMW", before)
        + _dim_vars_xml("afterMW", after)
        + "          </ROOM_DIM_VARS>\n"
        + "          <OPENINGS>\n"
        + openings
        + "          </OPENINGS>\n"
        + "          <ITEMS>\n"
        + item_rows
        + "          </ITEMS>\n"
        + "        </GROUP>\n"
    )


def _group_by_room(
    items: Sequence[SettledLineItem], rooms: Sequence[InspectionRoom]
) -> dict[str, list[tuple[str, InspectionRoom | None, list[SettledLineItem]]]]:
    """structure -> [(room name, room, items)], rooms in input order then Unassigned."""
    by_id = {str(room.id): room for room in rooms}
    by_name = {room.name: room for room in rooms}
    room_items: dict[str, list[SettledLineItem]] = {str(room.id): [] for room in rooms}
    unassigned: list[SettledLineItem] = []

    for item in items:
        room = None
        if item.room_id is not None:
            room = by_id.get(str(item.room_id))
        if room is None and item.room_name:
            room = by_name.get(item.room_name)
        if room is None:
            unassigned.append(item)
        else:
            room_items[str(room.id)].append(item)

    levels: dict[str, list[tuple[str, InspectionRoom | None, list[SettledLineItem]]]] = {}
    for room in rooms:
        structure = room.structure or DEFAULT_STRUCTURE
        levels.setdefault(structure, []).append((room.name, room, room_items[str(room.id)]))

    # Unassigned items keep their own structure label
    orphans: dict[str, list[SettledLineItem]] = {}
    for item in unassigned:
        orphans.setdefault(item.structure or DEFAULT_STRUCTURE, []).append(item)
    for structure, members in orphans.items():
        levels.setdefault(structure, []).append((UNASSIGNED_ROOM, None, members))
    return levels


def build_roughdraft_xml(
    summary: SettlementSummary,
    rooms: Sequence[InspectionRoom] = (),
    peril_type: str | None = None,
) -> str:
    """Render GENERIC_ROUGHDRAFT.XML."""
    levels = _group_by_room(summary.items, rooms)
    body = ""
    for structure, room_groups in levels.items():
        body += f'      <GROUP type="level" name="{esc(structure)}">\n'
        for name, room, items in room_groups:
            body += _room_xml(name, room, items, peril_type)
        body += "      </GROUP>\n"

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<GENERIC_ROUGHDRAFT>\n"
        "  <LINE_ITEM_DETAIL>\n"
        '    <GROUP type="estimate" name="Estimate">\n'
        + body
        + "    </GROUP>\n"
        "  </LINE_ITEM_DETAIL>\n"
        "</GENERIC_ROUGHDRAFT>\n"
    )


def package_esx(xactdoc_xml: str, roughdraft_xml: str) -> bytes:
    """Zip both documents with fixed entry timestamps."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in ((XACTDOC_NAME, xactdoc_xml), (ROUGHDRAFT_NAME, roughdraft_xml)):
            info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, content.encode("utf-8"))
    return buffer.getvalue()


def generate_esx(
    summary: SettlementSummary,
    claim: ClaimInfo,
    rooms: Sequence[InspectionRoom] = (),
    metadata: XactdocMetadata | None = None,
    policy_rules: Sequence[PolicyRule] = (),
    transaction_id: str | None = None,
    generated_on: date | None = None,
) -> bytes:
    """
    Serialize a settlement into an ESX archive.

    Args:
        summary: Settlement summary to export
        claim: Claim identity and loss facts
        rooms: Rooms for dimension variables and openings
        metadata: Prebuilt header metadata; built from the claim when None
        policy_rules: Coverage terms for the coverage snapshot
        transaction_id: Fixed transaction id; generated when None
        generated_on: Generation date; today when None

    Returns:
        ZIP archive bytes

    Raises:
        ExportValidationError: the data fails pre-export validation
    """
    if metadata is None:
        metadata = build_xactdoc_metadata(
            claim, summary, policy_rules, transaction_id=transaction_id, generated_on=generated_on
        )

    validation = validate_export(metadata, summary)
    if not validation.is_valid:
        logger.error(validation.summary)
        raise ExportValidationError([issue.as_dict() for issue in validation.errors])

    archive = package_esx(
        build_xactdoc_xml(metadata, summary),
        build_roughdraft_xml(summary, rooms, metadata.peril.peril_type),
    )
    logger.info(
        "ESX generated for claim %s: %d items, %d bytes",
        metadata.claim_number, len(summary.items), len(archive),
    )
    return archive
