#!/usr/bin/env python3
"""
Sample Settlement Script.
Demonstrates usage of the Estimation Engine: scope a water loss,
price it, settle it and write an ESX archive.
"""

import asyncio
import logging
from decimal import Decimal
from pathlib import Path

from estimate_engine import (
    ClaimInfo,
    CoverageType,
    DamageObservation,
    EstimationEngine,
    InspectionRoom,
    Opening,
    PolicyRule,
    RoomDimensions,
    SettlementFormatter,
)
from estimate_engine.modules.water import WaterProtocolResponses, classify_water_damage


def create_sample_claim() -> ClaimInfo:
    """Create a sample claim for demonstration."""
    return ClaimInfo(
        claim_number="CLM-2024-WTR-001",
        policy_number="HO-8812345",
        insured_name="Jordan Smith",
        property_address="123 Main Street",
        city="Tampa",
        state="FL",
        zip="33602",
        date_of_loss="2024-06-01",
        peril_type="water",
        cause_of_loss="Burst supply line behind kitchen wall",
        carrier_name="Sample Mutual",
        tax_rate=Decimal("7"),
    )


def create_sample_rooms() -> list[InspectionRoom]:
    """Two measured rooms with openings."""
    return [
        InspectionRoom(
            id="kitchen",
            name="Kitchen",
            room_type="interior_kitchen",
            dimensions=RoomDimensions(length=14, width=12, height=8),
            openings=[
                Opening(opening_type="door", width_ft=3, height_ft=6.67, goes_to_floor=True),
                Opening(opening_type="window", width_ft=4, height_ft=3),
            ],
        ),
        InspectionRoom(
            id="hall",
            name="Hallway",
            room_type="interior_hallway",
            dimensions=RoomDimensions(length=10, width=4, height=8),
        ),
    ]


def main() -> None:
    """Run sample settlement demonstration."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("ESTIMATION ENGINE - SAMPLE SETTLEMENT")
    print("=" * 70)
    print()

    claim = create_sample_claim()
    rooms = create_sample_rooms()
    damages = [
        DamageObservation(id="d1", room_id="kitchen", damage_type="water_intrusion"),
        DamageObservation(id="d2", room_id="hall", damage_type="water_stain"),
    ]
    water = classify_water_damage(
        WaterProtocolResponses(water_source="Supply line", affected_area=208)
    )
    print(f"Claim: {claim.claim_number}")
    print(f"Water: category {water.category.value}, class {water.water_class} ({water.source})")
    print()

    engine = EstimationEngine()
    run = asyncio.run(
        engine.run(
            rooms,
            damages,
            claim=claim,
            policy_rules=[
                PolicyRule(
                    coverage_type=CoverageType.A,
                    deductible=Decimal("1000"),
                    policy_limit=Decimal("250000"),
                )
            ],
            water_classification=water,
            export=True,
            apply_templates=True,
        )
    )

    SettlementFormatter(run.summary).print_full()

    if run.scope.manual_quantity_needed:
        print()
        print("Quantities needed from the adjuster:")
        for record in run.scope.manual_quantity_needed:
            print(f"  - {record.catalog_code}: {record.reason}")

    if run.scope.suggestions:
        print()
        print("Suggested additions:")
        for suggestion in run.scope.suggestions:
            print(f"  - {suggestion.code}: {suggestion.reason}")

    output = Path(f"{claim.claim_number}.esx")
    output.write_bytes(run.esx)
    print()
    print(f"ESX written to {output} ({len(run.esx):,} bytes)")


if __name__ == "__main__":
    main()
