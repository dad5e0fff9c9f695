"""
Settlement Reporting Module.
Formats settlement summaries as text, dictionaries, JSON and DataFrames.
"""

import json
from decimal import Decimal
from typing import Any

import pandas as pd

from ..core.models import CoverageType, SettlementSummary

COVERAGE_LABELS = {
    CoverageType.A: "Coverage A - Dwelling",
    CoverageType.B: "Coverage B - Other Structures",
    CoverageType.C: "Coverage C - Personal Property",
    CoverageType.D: "Coverage D - Loss of Use",
}

ITEM_COLUMNS = [
    "line_item_id",
    "description",
    "trade_code",
    "coverage_type",
    "room_name",
    "quantity",
    "unit",
    "unit_price",
    "total_price",
    "overhead",
    "profit",
    "tax",
    "rcv",
    "depreciation_percentage",
    "depreciation_amount",
    "depreciation_type",
    "paid_when_incurred_holdback",
    "acv",
]


def _serialize(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if hasattr(value, "value"):  # Enum
        return value.value
    return value


class SettlementFormatter:
    """
    Formats a settlement summary for various output formats.
    """

    def __init__(self, summary: SettlementSummary) -> None:
        self.summary = summary

    def to_text(self, include_items: bool = True) -> str:
        """
        Format the settlement as a plain text report.

        Args:
            include_items: Whether to list each settled line item

        Returns:
            Formatted text report
        """
        summary = self.summary
        totals = summary.totals
        lines: list[str] = []

        # Header
        lines.append("=" * 70)
        lines.append("SETTLEMENT SUMMARY")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Carrier Rules: {summary.rules.carrier_code} ({summary.rules.description})")
        lines.append(f"Trades Involved: {', '.join(summary.trades_involved) or 'none'}")
        lines.append(
            f"O&P: {'applied' if summary.qualifies_for_op else 'not applied'}"
            f" (threshold {summary.rules.op_threshold} trades)"
        )
        lines.append("")

        # Coverage rollups
        for coverage in summary.coverages:
            lines.append("-" * 70)
            lines.append(COVERAGE_LABELS[coverage.coverage_type].upper())
            lines.append("-" * 70)
            lines.append(f"Items: {coverage.item_count}")
            lines.append(f"Line Total: ${coverage.line_total:,.2f}")
            lines.append(f"Overhead: ${coverage.overhead:,.2f}")
            lines.append(f"Profit: ${coverage.profit:,.2f}")
            lines.append(f"Tax: ${coverage.tax:,.2f}")
            lines.append(f"RCV: ${coverage.rcv:,.2f}")
            lines.append(f"Recoverable Depreciation: -${coverage.recoverable_depreciation:,.2f}")
            lines.append(f"Non-Recoverable Depreciation: -${coverage.non_recoverable_depreciation:,.2f}")
            if coverage.paid_when_incurred:
                lines.append(f"Paid When Incurred Holdback: -${coverage.paid_when_incurred:,.2f}")
            lines.append(f"ACV: ${coverage.acv:,.2f}")
            lines.append(f"Deductible: -${coverage.deductible:,.2f}")
            if coverage.policy_limit is not None:
                lines.append(f"Policy Limit: ${coverage.policy_limit:,.2f}")
            if coverage.over_limit:
                lines.append(f"Over Limit: ${coverage.over_limit:,.2f}")
            lines.append(f"Net Claim: ${coverage.net_claim:,.2f}")
            lines.append("")

        # Trades
        if summary.trades:
            lines.append("-" * 70)
            lines.append("TRADES")
            lines.append("-" * 70)
            for trade in summary.trades:
                flag = "O&P" if trade.op_eligible else "   "
                lines.append(
                    f"{trade.trade_code:<5} {flag}  items={trade.item_count:<3}"
                    f" subtotal=${trade.subtotal:,.2f}  rcv=${trade.rcv:,.2f}  acv=${trade.acv:,.2f}"
                )
            lines.append("")

        if include_items and summary.items:
            lines.append("-" * 70)
            lines.append("LINE ITEMS")
            lines.append("-" * 70)
            for item in summary.items:
                lines.append(
                    f"[{item.trade_code}] {item.description} - {item.quantity:g} {item.unit}"
                    f" @ ${item.unit_price:,.2f}"
                )
                lines.append(
                    f"   RCV ${item.rcv:,.2f}  Depreciation {item.depreciation_percentage}%"
                    f" (${item.depreciation_amount:,.2f}, {item.depreciation_type.value})"
                    f"  ACV ${item.acv:,.2f}"
                )
            lines.append("")

        if summary.warnings:
            lines.append("-" * 70)
            lines.append("WARNINGS")
            lines.append("-" * 70)
            for warning in summary.warnings:
                lines.append(f"  - {warning}")
            lines.append("")

        # Footer
        lines.append("=" * 70)
        lines.append(f"TOTAL RCV: ${totals.rcv:,.2f}")
        lines.append(f"TOTAL DEPRECIATION: ${totals.total_depreciation:,.2f}")
        lines.append(f"TOTAL ACV: ${totals.acv:,.2f}")
        lines.append(f"NET CLAIM: ${totals.net_claim:,.2f}")
        lines.append("=" * 70)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the settlement to a plain dictionary.

        Returns:
            Dictionary with floats in place of Decimals and enum values
        """
        return _serialize(self.summary.model_dump())

    def to_json(self, indent: int = 2) -> str:
        """
        Convert the settlement to JSON.

        Args:
            indent: JSON indentation level

        Returns:
            JSON string representation
        """
        return json.dumps(self.to_dict(), indent=indent)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per settled line item."""
        rows = [
            {column: _serialize(getattr(item, column)) for column in ITEM_COLUMNS}
            for item in self.summary.items
        ]
        return pd.DataFrame(rows, columns=ITEM_COLUMNS)

    def coverage_dataframe(self) -> pd.DataFrame:
        """One row per coverage rollup."""
        rows = [_serialize(c.model_dump()) for c in self.summary.coverages]
        return pd.DataFrame(rows)

    def print_summary(self) -> None:
        """Print a brief summary to stdout."""
        print(self.to_text(include_items=False))

    def print_full(self) -> None:
        """Print the full report to stdout."""
        print(self.to_text(include_items=True))
