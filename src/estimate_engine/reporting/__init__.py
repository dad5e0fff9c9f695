"""
Reporting modules for the Estimation Engine.
"""

from .settlement_report import SettlementFormatter

__all__ = [
    "SettlementFormatter",
]
