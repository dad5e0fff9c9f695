"""
ESX interchange export.
"""

from .esx import (
    ROUGHDRAFT_NAME,
    XACTDOC_NAME,
    build_roughdraft_xml,
    build_xactdoc_xml,
    esc,
    generate_esx,
    package_esx,
)
from .metadata import XactdocMetadata, build_xactdoc_metadata, summarize_items
from .validator import ValidationIssue, ValidationResult, validate_export

__all__ = [
    "ROUGHDRAFT_NAME",
    "XACTDOC_NAME",
    "build_roughdraft_xml",
    "build_xactdoc_xml",
    "esc",
    "generate_esx",
    "package_esx",
    "XactdocMetadata",
    "build_xactdoc_metadata",
    "summarize_items",
    "ValidationIssue",
    "ValidationResult",
    "validate_export",
]
