"""
Pre-export validation of interchange data.

Errors block the export; warnings are reported alongside the file.
"""

import logging
from decimal import Decimal

from pydantic import BaseModel, Field

from ..core.models import SettledLineItem, SettlementSummary
from ..utils.money import HUNDRED, ZERO
from .metadata import DEFAULT_PRICE_LIST, XactdocMetadata, summarize_items

logger = logging.getLogger(__name__)

TOLERANCE = Decimal("0.01")
MLE_TOLERANCE = Decimal("1")
ROOF_PERILS = ("wind", "hail")


class ValidationIssue(BaseModel):
    """A single validation error or warning."""

    severity: str = "error"
    field: str
    message: str
    item_id: str | int | None = None

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationResult(BaseModel):
    """Outcome of the pre-export gate."""

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> str:
        status = "passed" if self.is_valid else "failed"
        return f"Validation {status}: {len(self.errors)} errors, {len(self.warnings)} warnings"


def _check_header(metadata: XactdocMetadata, result: ValidationResult) -> None:
    if not metadata.transaction_id:
        result.errors.append(
            ValidationIssue(field="XACTDOC.transactionId", message="Transaction ID is missing")
        )
    if not metadata.claim_number:
        result.errors.append(
            ValidationIssue(field="XACTDOC.claimNumber", message="Claim number is required")
        )
    if not metadata.loss_location.property_address:
        result.errors.append(
            ValidationIssue(
                field="XACTDOC.lossLocation.propertyAddress",
                message="Property address is required",
            )
        )
    if not metadata.peril.date_of_loss:
        result.errors.append(
            ValidationIssue(field="XACTDOC.peril.dateOfLoss", message="Date of loss is required")
        )
    if metadata.coverage.deductible_amount < ZERO:
        result.errors.append(
            ValidationIssue(
                field="XACTDOC.coverage.deductibleAmount",
                message="Deductible cannot be negative",
            )
        )
    if metadata.price_list_id == DEFAULT_PRICE_LIST:
        result.warnings.append(
            ValidationIssue(
                severity="warning",
                field="XACTDOC.priceListId",
                message="Using national default price list; regional pricing may be more accurate",
            )
        )
    if metadata.peril.peril_type.lower() in ROOF_PERILS and metadata.roof_info is None:
        result.warnings.append(
            ValidationIssue(
                severity="warning",
                field="XACTDOC.roofInfo",
                message=f"Roof information recommended for {metadata.peril.peril_type} claims",
            )
        )
    if not metadata.adjuster.name:
        result.warnings.append(
            ValidationIssue(
                severity="warning",
                field="XACTDOC.adjusterInfo.name",
                message="Adjuster name is missing",
            )
        )


def _check_item(item: SettledLineItem, result: ValidationResult) -> None:
    item_id = item.line_item_id

    def error(field: str, message: str) -> None:
        result.errors.append(
            ValidationIssue(field=f"GENERIC_ROUGHDRAFT.ITEM.{field}", message=message, item_id=item_id)
        )

    def warning(field: str, message: str) -> None:
        result.warnings.append(
            ValidationIssue(
                severity="warning",
                field=f"GENERIC_ROUGHDRAFT.ITEM.{field}",
                message=message,
                item_id=item_id,
            )
        )

    if not item.description.strip():
        error("description", f"Item {item_id}: Description is required")
    if item.quantity <= 0:
        error("quantity", f"Item {item_id}: Quantity must be greater than 0")
    if item.rcv < ZERO:
        error("rcvTotal", f"Item {item_id}: RCV cannot be negative")
    if item.acv < ZERO:
        error("acvTotal", f"Item {item_id}: ACV cannot be negative")
    if item.acv > item.rcv + TOLERANCE:
        error("acvTotal", f"Item {item_id}: ACV ({item.acv}) exceeds RCV ({item.rcv})")
    if item.depreciation_percentage < ZERO or item.depreciation_percentage > HUNDRED:
        error(
            "depreciationPercentage",
            f"Item {item_id}: Depreciation percentage {item.depreciation_percentage}% "
            "is invalid (must be 0-100)",
        )

    components = item.material_total + item.labor_total + item.equipment_total
    if components > ZERO and item.total_price > ZERO:
        share = components / item.total_price * HUNDRED
        if abs(share - HUNDRED) > MLE_TOLERANCE:
            warning(
                "mle",
                f"Item {item_id}: M/L/E percentages sum to {share:.2f}% (expected ~100%)",
            )

    if item.trade_code == "GEN" and item.category.strip().lower() not in ("gen", "general"):
        warning("tradeCode", f"Item {item_id}: Trade code is missing")


def _check_reconciliation(
    metadata: XactdocMetadata, summary: SettlementSummary, result: ValidationResult
) -> None:
    calculated = summarize_items(summary)
    checks = (
        ("totalRCV", metadata.summary.total_rcv, calculated.total_rcv),
        ("totalACV", metadata.summary.total_acv, calculated.total_acv),
        ("totalDepreciation", metadata.summary.total_depreciation, calculated.total_depreciation),
    )
    for name, reported, actual in checks:
        if abs(reported - actual) > TOLERANCE:
            result.errors.append(
                ValidationIssue(
                    field=f"XACTDOC.summary.{name}",
                    message=f"Summary {name} {reported} does not match calculated {actual}",
                )
            )


def validate_export(metadata: XactdocMetadata, summary: SettlementSummary) -> ValidationResult:
    """
    Validate header metadata and settled items before packaging.

    Args:
        metadata: Header metadata for the export
        summary: Settlement summary whose items will be written

    Returns:
        ValidationResult with every error and warning found
    """
    result = ValidationResult()
    _check_header(metadata, result)
    for item in summary.items:
        _check_item(item, result)
    _check_reconciliation(metadata, summary, result)

    for issue in result.warnings:
        logger.warning("%s: %s", issue.field, issue.message)
    logger.info(result.summary)
    return result
