"""
Tests for ESX metadata, validation and packaging.
"""

import io
import xml.etree.ElementTree as ET
import zipfile
from datetime import date
from decimal import Decimal

import pytest

from estimate_engine.core.errors import ExportValidationError
from estimate_engine.core.models import (
    ClaimInfo,
    ContactInfo,
    CoverageType,
    InspectionRoom,
    LineItem,
    Opening,
    PolicyRule,
    RoofInfo,
    RoomDimensions,
    SettlementSummary,
)
from estimate_engine.interchange import (
    ROUGHDRAFT_NAME,
    XACTDOC_NAME,
    build_roughdraft_xml,
    build_xactdoc_metadata,
    build_xactdoc_xml,
    esc,
    generate_esx,
    validate_export,
)
from estimate_engine.interchange.metadata import MetadataSummary
from estimate_engine.modules.settlement import calculate_settlement

GENERATED_ON = date(2024, 6, 15)


@pytest.fixture
def claim() -> ClaimInfo:
    """A water claim with characters that need escaping."""
    return ClaimInfo(
        claim_number="CLM-1001",
        policy_number="HO-555",
        insured_name='Pat O\'Neil "Jr"',
        property_address="12 Oak & Elm <Rear>",
        city="Tampa",
        state="FL",
        zip="33601",
        date_of_loss="2024-06-01",
        peril_type="water",
        adjuster=ContactInfo(name="Sam Adjuster", company="Field Co"),
    )


@pytest.fixture
def rooms() -> list[InspectionRoom]:
    """A bedroom with one door."""
    return [
        InspectionRoom(
            id="room-1",
            name="Bedroom",
            room_type="interior_bedroom",
            dimensions=RoomDimensions(length=12, width=10, height=8),
            openings=[Opening(opening_type="door", width_ft=3, height_ft=6.67, goes_to_floor=True)],
        )
    ]


@pytest.fixture
def summary() -> SettlementSummary:
    """Three trades, two items in the bedroom and one unassigned."""
    items = [
        LineItem(
            id="1", description='Drywall & "tape"', trade_code="DRY", xact_code="DRY-SHEET-SF",
            quantity=331.99, unit="SF", unit_price=Decimal("2.58"), room_id="room-1",
            material_cost=Decimal("0.83"), labor_cost=Decimal("1.50"), equipment_cost=Decimal("0.25"),
        ),
        LineItem(
            id="2", description="Paint walls", trade_code="PNT", quantity=1,
            unit_price=Decimal("100"), room_name="Bedroom",
        ),
        LineItem(id="3", description="Extract water", trade_code="MIT", quantity=1, unit_price=Decimal("100")),
    ]
    return calculate_settlement(items, policy_rules=[PolicyRule(coverage_type=CoverageType.A, deductible=Decimal("500"))])


def _read(archive: bytes) -> dict[str, str]:
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        return {name: zf.read(name).decode("utf-8") for name in zf.namelist()}


class TestEscaping:
    """Tests for XML escaping."""

    def test_esc(self) -> None:
        """Test the five XML special characters."""
        assert esc("a & b") == "a &amp; b"
        assert esc("<x>") == "&lt;x&gt;"
        assert esc('say "hi"') == "say &quot;hi&quot;"
        assert esc("it's") == "it&apos;s"
        assert esc(None) == ""


class TestMetadata:
    """Tests for build_xactdoc_metadata."""

    def test_water_is_recoverable(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test water losses export a recoverable depreciation type."""
        metadata = build_xactdoc_metadata(claim, summary, generated_on=GENERATED_ON)

        assert metadata.depreciation_type == "Recoverable"
        assert metadata.generated_on == "2024-06-15"
        assert metadata.inspector.inspection_date == "2024-06-15"
        assert metadata.transaction_id.startswith("ESTIMATE-CLM-1001-")
        assert metadata.summary.line_item_count == 3
        assert metadata.summary.total_rcv == summary.totals.rcv

    def test_other_perils(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test non-water perils keep the claim's depreciation type."""
        wind = claim.model_copy(update={"peril_type": "wind"})
        assert build_xactdoc_metadata(wind, summary).depreciation_type == "Standard"

        labeled = claim.model_copy(update={"peril_type": "fire", "depreciation_type": "Scheduled"})
        assert build_xactdoc_metadata(labeled, summary).depreciation_type == "Scheduled"

    def test_coverage_snapshot(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test limits and the dwelling deductible come from policy rules."""
        policies = [
            PolicyRule(coverage_type=CoverageType.A, deductible=Decimal("1000"), policy_limit=Decimal("250000")),
            PolicyRule(coverage_type=CoverageType.B, policy_limit=Decimal("25000")),
        ]
        metadata = build_xactdoc_metadata(claim, summary, policies)

        assert metadata.coverage.deductible_amount == Decimal("1000.00")
        assert metadata.coverage.limit("A") == Decimal("250000.00")
        assert metadata.coverage.limit(CoverageType.C) == Decimal("0")

    def test_supplemental(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test supplemental claims carry the added RCV."""
        supplement = claim.model_copy(update={"is_supplemental": True, "previous_rcv": Decimal("1000")})
        metadata = build_xactdoc_metadata(supplement, summary)

        assert metadata.estimate_type == "SUPPLEMENT"
        assert metadata.supplemental.added_rcv == summary.totals.rcv
        assert metadata.supplemental.previous_rcv == Decimal("1000")


class TestValidation:
    """Tests for validate_export."""

    def test_valid(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test a complete claim passes with only the price list warning."""
        metadata = build_xactdoc_metadata(claim, summary)
        result = validate_export(metadata, summary)

        assert result.is_valid
        assert "XACTDOC.priceListId" in [w.field for w in result.warnings]
        assert result.summary.startswith("Validation passed")

    def test_missing_header_fields(self, summary: SettlementSummary) -> None:
        """Test every missing required header field is reported."""
        metadata = build_xactdoc_metadata(ClaimInfo(), summary, transaction_id="TX")
        fields = [e.field for e in validate_export(metadata, summary).errors]

        assert "XACTDOC.claimNumber" in fields
        assert "XACTDOC.lossLocation.propertyAddress" in fields
        assert "XACTDOC.peril.dateOfLoss" in fields

    def test_reconciliation(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test header totals must match the items."""
        metadata = build_xactdoc_metadata(claim, summary)
        tampered = metadata.model_copy(
            update={"summary": MetadataSummary(total_rcv=Decimal("1.00"), line_item_count=3)}
        )
        fields = [e.field for e in validate_export(tampered, summary).errors]
        assert "XACTDOC.summary.totalRCV" in fields

    def test_roof_and_adjuster_warnings(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test roof perils without roof info and missing adjusters warn."""
        hail = claim.model_copy(update={"peril_type": "hail", "adjuster": None})
        fields = [w.field for w in validate_export(build_xactdoc_metadata(hail, summary), summary).warnings]
        assert "XACTDOC.roofInfo" in fields
        assert "XACTDOC.adjusterInfo.name" in fields

        roofed = hail.model_copy(update={"roof_info": RoofInfo(roof_type="gable", roof_age=12)})
        fields = [w.field for w in validate_export(build_xactdoc_metadata(roofed, summary), summary).warnings]
        assert "XACTDOC.roofInfo" not in fields

    def test_item_checks(self, claim: ClaimInfo) -> None:
        """Test item errors and component warnings."""
        items = [
            LineItem(id="a", description=" ", trade_code="DRY", quantity=0, unit_price=Decimal("5")),
            LineItem(
                id="b", description="Paint", trade_code="PNT", quantity=1, unit_price=Decimal("100"),
                material_cost=Decimal("40"), labor_cost=Decimal("40"),
            ),
        ]
        summary = calculate_settlement(items)
        result = validate_export(build_xactdoc_metadata(claim, summary), summary)

        errors = [e.field for e in result.errors]
        warnings = [w.field for w in result.warnings]
        assert "GENERIC_ROUGHDRAFT.ITEM.description" in errors
        assert "GENERIC_ROUGHDRAFT.ITEM.quantity" in errors
        assert "GENERIC_ROUGHDRAFT.ITEM.mle" in warnings


class TestGenerateEsx:
    """Tests for generate_esx."""

    def test_archive_layout(
        self, claim: ClaimInfo, summary: SettlementSummary, rooms: list[InspectionRoom]
    ) -> None:
        """Test two entries with fixed timestamps."""
        archive = generate_esx(summary, claim, rooms, transaction_id="TX-1", generated_on=GENERATED_ON)

        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == [XACTDOC_NAME, ROUGHDRAFT_NAME]
            for info in zf.infolist():
                assert info.date_time == (1980, 1, 1, 0, 0, 0)
                assert info.compress_type == zipfile.ZIP_DEFLATED

    def test_deterministic(
        self, claim: ClaimInfo, summary: SettlementSummary, rooms: list[InspectionRoom]
    ) -> None:
        """Test identical inputs give identical bytes."""
        first = generate_esx(summary, claim, rooms, transaction_id="TX-1", generated_on=GENERATED_ON)
        second = generate_esx(summary, claim, rooms, transaction_id="TX-1", generated_on=GENERATED_ON)
        assert first == second

    def test_xactdoc(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test header content, escaping and two-decimal money."""
        files = _read(generate_esx(summary, claim, transaction_id="TX-1", generated_on=GENERATED_ON))
        xactdoc = files[XACTDOC_NAME]

        assert "<transactionId>TX-1</transactionId>" in xactdoc
        assert "12 Oak &amp; Elm &lt;Rear&gt;" in xactdoc
        assert f"<totalRCV>{summary.totals.rcv:.2f}</totalRCV>" in xactdoc
        assert "<lineItemCount>3</lineItemCount>" in xactdoc
        assert "<depreciationType>Recoverable</depreciationType>" in xactdoc
        assert "<laborEfficiency>100.00</laborEfficiency>" in xactdoc

        root = ET.fromstring(xactdoc.encode("utf-8"))
        insured = root.find("CONTACTS/CONTACT[@type='INSURED']")
        assert insured.findtext("name") == 'Pat O\'Neil "Jr"'
        assert root.findtext("XACTNET_INFO/SUMMARY/deductible") == "500.00"

    def test_roughdraft(
        self, claim: ClaimInfo, summary: SettlementSummary, rooms: list[InspectionRoom]
    ) -> None:
        """Test rooms, dimension variables and items in the rough draft."""
        files = _read(generate_esx(summary, claim, rooms, transaction_id="TX-1", generated_on=GENERATED_ON))
        root = ET.fromstring(files[ROUGHDRAFT_NAME].encode("utf-8"))

        level = root.find("LINE_ITEM_DETAIL/GROUP[@type='estimate']/GROUP[@type='level']")
        assert level.get("name") == "Main Dwelling"
        room_names = [g.get("name") for g in level.findall("GROUP[@type='room']")]
        assert room_names == ["Bedroom", "Unassigned"]

        bedroom = level.find("GROUP[@name='Bedroom']")
        before = bedroom.find("ROOM_DIM_VARS/DIM_VARS[@type='beforeMW']")
        after = bedroom.find("ROOM_DIM_VARS/DIM_VARS[@type='afterMW']")
        assert before.get("W") == "352.00"
        assert after.get("W") == "331.99"
        assert after.get("PF") == "41.00"
        assert len(bedroom.findall("OPENINGS/OPENING")) == 1

        items = bedroom.findall("ITEMS/ITEM")
        assert [i.get("lineNum") for i in items] == ["1", "2"]
        drywall = items[0]
        assert drywall.get("desc") == 'Drywall & "tape"'
        assert drywall.get("cat") == "DRY"
        assert drywall.get("sel") == "DRY-SHEET-SF"
        assert drywall.get("qty") == "331.99"
        assert drywall.get("price") == "2.58"
        assert drywall.get("coverage") == "A"

        unassigned = level.find("GROUP[@name='Unassigned']")
        mitigation = unassigned.find("ITEMS/ITEM")
        assert mitigation.get("cat") == "WTR"
        assert mitigation.get("sel") == "1/2++"

    def test_money_has_two_decimals(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test every money attribute is written with two decimals."""
        root = ET.fromstring(build_roughdraft_xml(summary, peril_type="water").encode("utf-8"))
        for item in root.iter("ITEM"):
            for name in ("price", "total", "rcvTotal", "acvTotal", "tax", "overhead", "profit"):
                whole, _, cents = item.get(name).partition(".")
                assert whole.lstrip("-").isdigit()
                assert len(cents) == 2

    def test_counters_are_integers(
        self, claim: ClaimInfo, summary: SettlementSummary, rooms: list[InspectionRoom]
    ) -> None:
        """Test counts and line numbers are written as plain integers."""
        files = _read(generate_esx(summary, claim, rooms, transaction_id="TX-1", generated_on=GENERATED_ON))
        xactdoc = ET.fromstring(files[XACTDOC_NAME].encode("utf-8"))
        roughdraft = ET.fromstring(files[ROUGHDRAFT_NAME].encode("utf-8"))

        counters = [c.get("itemCount") for c in xactdoc.iter("COVERAGE")]
        counters.append(xactdoc.findtext(".//lineItemCount"))
        counters += [i.get("lineNum") for i in roughdraft.iter("ITEM")]
        counters += [o.get("quantity") for o in roughdraft.iter("OPENING")]

        assert counters
        assert all(value.isdigit() for value in counters)
        assert xactdoc.findtext(".//lineItemCount") == "3"

    def test_validation_blocks_export(self, summary: SettlementSummary) -> None:
        """Test invalid data raises instead of producing a file."""
        with pytest.raises(ExportValidationError) as exc_info:
            generate_esx(summary, ClaimInfo(), transaction_id="TX-1")

        assert "XACTDOC.claimNumber" in exc_info.value.fields
        assert "XACTDOC.peril.dateOfLoss" in exc_info.value.fields

    def test_prebuilt_metadata(self, claim: ClaimInfo, summary: SettlementSummary) -> None:
        """Test callers may pass their own metadata."""
        metadata = build_xactdoc_metadata(claim, summary, transaction_id="TX-9", generated_on=GENERATED_ON)
        files = _read(generate_esx(summary, claim, metadata=metadata))
        assert files[XACTDOC_NAME] == build_xactdoc_xml(metadata, summary)
