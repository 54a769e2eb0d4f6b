"""Reflib Contracts - Pure Pydantic schemas.

This package contains ONLY Pydantic schemas with no business logic.
Dependencies: pydantic only (no logging, no HTTP, no file I/O).
"""

from reflib_contracts.models import (
    # Library records
    AuthorName,
    BibliographicRecord,
    DateVariable,
    RemoteMetadata,
    # Metadata comparison
    FieldDiff,
    MetadataClassification,
    MetadataComparisonResult,
    # Duplicate detection
    DuplicateMatch,
    DuplicateMatchDetails,
    DuplicateResult,
    DuplicateType,
    # Checking
    CheckFinding,
    CheckFindingType,
    CheckOperationResult,
    CheckResult,
    CheckStatus,
    CheckSummary,
    FindingDetails,
    # Remediation
    FixAction,
    FixActionResult,
    FixActionType,
    FixInteractionResult,
)

__version__ = "0.3.0"

__all__ = [
    # Library records
    "AuthorName",
    "BibliographicRecord",
    "DateVariable",
    "RemoteMetadata",
    # Metadata comparison
    "FieldDiff",
    "MetadataClassification",
    "MetadataComparisonResult",
    # Duplicate detection
    "DuplicateMatch",
    "DuplicateMatchDetails",
    "DuplicateResult",
    "DuplicateType",
    # Checking
    "CheckFinding",
    "CheckFindingType",
    "CheckOperationResult",
    "CheckResult",
    "CheckStatus",
    "CheckSummary",
    "FindingDetails",
    # Remediation
    "FixAction",
    "FixActionResult",
    "FixActionType",
    "FixInteractionResult",
]
