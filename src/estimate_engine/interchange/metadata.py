"""
Header metadata for the interchange document.

Assembles the claim, coverage and settlement facts written to XACTDOC.XML.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field

from ..core.models import ClaimInfo, CoverageType, PolicyRule, RoofInfo, SettlementSummary
from ..utils.money import ZERO, round2

DEFAULT_PRICE_LIST = "USNATNL"
DEFAULT_COINSURANCE = 80


class PerilInfo(BaseModel):
    peril_type: str
    severity: str = "moderate"
    affected_areas: list[str] = Field(default_factory=list)
    date_of_loss: str = ""
    date_discovered: str | None = None
    date_reported: str | None = None


class LossLocation(BaseModel):
    property_address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    county: str | None = None
    property_type: str = "residential"
    year_built: int | None = None
    square_footage: float | None = None


class LossDetails(BaseModel):
    cause_of_loss: str
    catastrophic: bool = False
    salvage_opportunity: bool = False


class CoverageSnapshot(BaseModel):
    """Policy limits and deductible as reported in the header."""

    limits: dict[str, Decimal] = Field(default_factory=dict)
    deductible_type: str = "standard"
    deductible_amount: Decimal = Decimal("0")
    coinsurance_percentage: int = DEFAULT_COINSURANCE

    def limit(self, coverage_type: CoverageType | str) -> Decimal:
        return self.limits.get(CoverageType(coverage_type).value, ZERO)


class AdjusterInfo(BaseModel):
    name: str = ""
    company: str = ""
    license_number: str | None = None
    license_state: str | None = None
    phone_number: str | None = None
    email: str | None = None


class InspectorInfo(BaseModel):
    name: str = ""
    company: str = ""
    inspection_date: str = ""
    phone_number: str | None = None
    email: str | None = None


class InsuredInfo(BaseModel):
    name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    home_phone: str | None = None
    cell_phone: str | None = None
    email: str | None = None


class MetadataSummary(BaseModel):
    """Totals recomputed from the settled line items."""

    total_rcv: Decimal = Decimal("0")
    total_acv: Decimal = Decimal("0")
    total_depreciation: Decimal = Decimal("0")
    total_material: Decimal = Decimal("0")
    total_labor: Decimal = Decimal("0")
    total_equipment: Decimal = Decimal("0")
    line_item_count: int = 0


class SupplementalInfo(BaseModel):
    reason: str = "Additional items discovered"
    number: int = 1
    previous_rcv: Decimal | None = None
    added_rcv: Decimal = Decimal("0")


class XactdocMetadata(BaseModel):
    """Everything XACTDOC.XML reports besides the line items."""

    transaction_id: str
    claim_number: str = ""
    policy_number: str = ""
    carrier_id: str = ""
    carrier_name: str = ""
    estimate_type: str = "ESTIMATE"
    generated_on: str = ""
    peril: PerilInfo
    loss_location: LossLocation
    loss_details: LossDetails
    coverage: CoverageSnapshot
    roof_info: RoofInfo | None = None
    adjuster: AdjusterInfo
    inspector: InspectorInfo
    insured: InsuredInfo
    price_list_id: str = DEFAULT_PRICE_LIST
    labor_efficiency: Decimal = Decimal("100")
    depreciation_type: str = "Standard"
    summary: MetadataSummary
    supplemental: SupplementalInfo | None = None


def summarize_items(summary: SettlementSummary) -> MetadataSummary:
    """Header totals summed directly from the settled items."""
    items = summary.items
    return MetadataSummary(
        total_rcv=round2(sum((i.rcv for i in items), ZERO)),
        total_acv=round2(sum((i.acv for i in items), ZERO)),
        total_depreciation=round2(sum((i.depreciation_amount for i in items), ZERO)),
        total_material=round2(sum((i.material_total for i in items), ZERO)),
        total_labor=round2(sum((i.labor_total for i in items), ZERO)),
        total_equipment=round2(sum((i.equipment_total for i in items), ZERO)),
        line_item_count=len(items),
    )


def _coverage_snapshot(policy_rules: Sequence[PolicyRule]) -> CoverageSnapshot:
    limits = {
        rule.coverage_type.value: round2(rule.policy_limit)
        for rule in policy_rules
        if rule.policy_limit is not None
    }
    dwelling = next((r for r in policy_rules if r.coverage_type == CoverageType.A), None)
    return CoverageSnapshot(
        limits=limits,
        deductible_amount=round2(dwelling.deductible) if dwelling else ZERO,
    )


def default_transaction_id(claim_number: str | None) -> str:
    return f"ESTIMATE-{claim_number or 'EST'}-{uuid4().hex[:12]}"


def build_xactdoc_metadata(
    claim: ClaimInfo,
    summary: SettlementSummary,
    policy_rules: Sequence[PolicyRule] = (),
    transaction_id: str | None = None,
    generated_on: date | None = None,
) -> XactdocMetadata:
    """
    Build header metadata for one export.

    Args:
        claim: Claim identity and loss facts
        summary: Settlement summary being exported
        policy_rules: Coverage terms for the coverage snapshot
        transaction_id: Fixed id; generated when None
        generated_on: Generation date; today when None

    Returns:
        XactdocMetadata
    """
    today = (generated_on or date.today()).isoformat()
    peril_type = claim.peril_type or "water"
    totals = summarize_items(summary)
    adjuster = claim.adjuster
    inspector = claim.inspector

    if peril_type.lower() == "water":
        depreciation_type = "Recoverable"
    else:
        depreciation_type = claim.depreciation_type or "Standard"

    supplemental = None
    if claim.is_supplemental:
        supplemental = SupplementalInfo(
            reason=claim.supplemental_reason or "Additional items discovered",
            previous_rcv=claim.previous_rcv,
            added_rcv=totals.total_rcv,
        )

    return XactdocMetadata(
        transaction_id=transaction_id or default_transaction_id(claim.claim_number),
        claim_number=claim.claim_number,
        policy_number=claim.policy_number,
        carrier_id=claim.carrier_code or summary.rules.carrier_code,
        carrier_name=claim.carrier_name,
        estimate_type="SUPPLEMENT" if claim.is_supplemental else "ESTIMATE",
        generated_on=today,
        peril=PerilInfo(
            peril_type=peril_type,
            severity=claim.peril_severity,
            affected_areas=list(claim.affected_areas),
            date_of_loss=claim.date_of_loss,
            date_discovered=claim.date_discovered,
            date_reported=claim.date_reported,
        ),
        loss_location=LossLocation(
            property_address=claim.property_address,
            city=claim.city,
            state=claim.state,
            zip=claim.zip,
            county=claim.county,
            property_type=claim.property_type,
            year_built=claim.year_built,
            square_footage=claim.square_footage,
        ),
        loss_details=LossDetails(
            cause_of_loss=claim.cause_of_loss or f"{peril_type} damage to property",
            catastrophic=claim.is_catastrophic,
            salvage_opportunity=claim.has_salvage,
        ),
        coverage=_coverage_snapshot(policy_rules),
        roof_info=claim.roof_info,
        adjuster=AdjusterInfo(**adjuster.model_dump()) if adjuster else AdjusterInfo(),
        inspector=InspectorInfo(
            name=inspector.name if inspector else "",
            company=inspector.company if inspector else "",
            inspection_date=today,
            phone_number=inspector.phone_number if inspector else None,
            email=inspector.email if inspector else None,
        ),
        insured=InsuredInfo(
            name=claim.insured_name,
            address=claim.property_address,
            city=claim.city,
            state=claim.state,
            zip=claim.zip,
            home_phone=claim.home_phone,
            cell_phone=claim.cell_phone,
            email=claim.email,
        ),
        price_list_id=claim.price_list_id or DEFAULT_PRICE_LIST,
        labor_efficiency=summary.rules.labor_efficiency,
        depreciation_type=depreciation_type,
        summary=totals,
        supplemental=supplemental,
    )
