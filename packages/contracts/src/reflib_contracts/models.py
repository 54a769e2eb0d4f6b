"""Pydantic models for the reflib library and its consistency pipeline.

Records are stored as CSL-JSON, so hyphenated CSL keys (``container-title``,
``date-parts``) are exposed as snake_case fields with aliases. Unknown CSL
keys are preserved on round-trip.

All result shapes (comparison, duplicate, check and fix results) are plain
data: safe to render or dump to JSON with
``model_dump(mode="json", by_alias=True)``.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# Library records
# =============================================================================


class AuthorName(BaseModel):
    """CSL name variable. Both parts may be absent."""

    model_config = ConfigDict(extra="allow")

    family: Optional[str] = None
    given: Optional[str] = None


class DateVariable(BaseModel):
    """CSL date variable (only ``date-parts`` is interpreted)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    date_parts: Optional[list[list[Union[int, str]]]] = Field(default=None, alias="date-parts")

    def first_parts(self) -> list[Union[int, str]]:
        """Return the first date-parts entry, or an empty list."""
        if not self.date_parts:
            return []
        return list(self.date_parts[0])


class BibliographicRecord(BaseModel):
    """A library reference in CSL-JSON form.

    ``custom`` is the extension map owned by reflib: ``uuid``, ``tags``,
    ``check`` and anything attachments need.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    id: str = Field(description="Citation key (human-chosen, may change)")
    type: Optional[str] = Field(default=None, description="CSL item type")
    title: Optional[str] = None
    author: Optional[list[AuthorName]] = None
    container_title: Optional[str] = Field(default=None, alias="container-title")
    page: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    issued: Optional[DateVariable] = None
    DOI: Optional[str] = None
    PMID: Optional[str] = None
    note: Optional[str] = None
    custom: dict[str, Any] = Field(default_factory=dict)

    @property
    def uuid(self) -> Optional[str]:
        """Internal identifier, assigned once by the library."""
        value = self.custom.get("uuid")
        return str(value) if value else None

    @property
    def tags(self) -> list[str]:
        return list(self.custom.get("tags") or [])

    def to_csl(self) -> dict[str, Any]:
        """Serialize back to a CSL-JSON dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RemoteMetadata(BaseModel):
    """Provider-sourced snapshot of the comparable bibliographic fields.

    ``type`` is in the provider's vocabulary (e.g. Crossref
    ``journal-article``); the comparator maps it to CSL.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    title: Optional[str] = None
    author: Optional[list[AuthorName]] = None
    container_title: Optional[str] = Field(default=None, alias="container-title")
    type: Optional[str] = None
    page: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    issued: Optional[DateVariable] = None

    @classmethod
    def from_record(cls, record: BibliographicRecord) -> "RemoteMetadata":
        """Build a snapshot from a CSL record (e.g. one fetched from PubMed)."""
        return cls(
            title=record.title,
            author=record.author,
            container_title=record.container_title,
            type=record.type,
            page=record.page,
            volume=record.volume,
            issue=record.issue,
            issued=record.issued,
        )


# =============================================================================
# Metadata comparison
# =============================================================================


class MetadataClassification(str, Enum):
    """Three-way outcome of comparing local and remote metadata."""

    NO_CHANGE = "no_change"
    METADATA_OUTDATED = "metadata_outdated"
    METADATA_MISMATCH = "metadata_mismatch"


class FieldDiff(BaseModel):
    """One differing field. Never both sides null."""

    field: str
    local: Optional[str] = None
    remote: Optional[str] = None


class MetadataComparisonResult(BaseModel):
    """Classification plus the fields that differ, in comparison order."""

    classification: MetadataClassification
    changed_fields: list[str] = Field(default_factory=list)
    field_diffs: list[FieldDiff] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_consistency(self) -> "MetadataComparisonResult":
        if [d.field for d in self.field_diffs] != self.changed_fields:
            raise ValueError("changed_fields must list exactly the fields in field_diffs")
        if (len(self.changed_fields) == 0) != (
            self.classification == MetadataClassification.NO_CHANGE
        ):
            raise ValueError("classification is no_change if and only if nothing changed")
        return self


# =============================================================================
# Duplicate detection
# =============================================================================


class DuplicateType(str, Enum):
    """Evidence that a candidate duplicates an existing record, strongest first."""

    DOI = "doi"
    PMID = "pmid"
    TITLE_AUTHOR_YEAR = "title-author-year"


class DuplicateMatchDetails(BaseModel):
    """Normalized values the match was decided on."""

    doi: Optional[str] = None
    pmid: Optional[str] = None
    normalized_title: Optional[str] = None
    normalized_authors: Optional[list[str]] = None
    year: Optional[str] = None


class DuplicateMatch(BaseModel):
    type: DuplicateType
    existing: BibliographicRecord
    details: Optional[DuplicateMatchDetails] = None


class DuplicateResult(BaseModel):
    is_duplicate: bool = False
    matches: list[DuplicateMatch] = Field(default_factory=list)


# =============================================================================
# Checking
# =============================================================================


class CheckFindingType(str, Enum):
    """Kinds of anomaly a check can report for a record."""

    RETRACTED = "retracted"
    CONCERN = "concern"
    VERSION_CHANGED = "version_changed"
    METADATA_MISMATCH = "metadata_mismatch"
    METADATA_OUTDATED = "metadata_outdated"


class FindingDetails(BaseModel):
    retraction_doi: Optional[str] = None
    retraction_date: Optional[str] = None
    new_doi: Optional[str] = None
    updated_fields: Optional[list[str]] = None
    field_diffs: Optional[list[FieldDiff]] = None


class CheckFinding(BaseModel):
    type: CheckFindingType
    message: str
    details: Optional[FindingDetails] = None


class CheckStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    SKIPPED = "skipped"


class CheckResult(BaseModel):
    """Outcome of checking one record.

    ``status == warning`` is expected exactly when ``findings`` is non-empty.
    """

    id: str
    uuid: str = ""
    status: CheckStatus
    findings: list[CheckFinding] = Field(default_factory=list)
    checked_at: Optional[datetime] = None
    checked_sources: list[str] = Field(default_factory=list)


class CheckSummary(BaseModel):
    total: int = 0
    ok: int = 0
    warnings: int = 0
    skipped: int = 0


class CheckOperationResult(BaseModel):
    results: list[CheckResult] = Field(default_factory=list)
    summary: CheckSummary = Field(default_factory=CheckSummary)


# =============================================================================
# Remediation
# =============================================================================


class FixActionType(str, Enum):
    """Remediation an operator can choose for a finding."""

    ADD_RETRACTED_TAG = "add_retracted_tag"
    ADD_RETRACTION_NOTE = "add_retraction_note"
    REMOVE_FROM_LIBRARY = "remove_from_library"
    UPDATE_FROM_PUBLISHED = "update_from_published"
    ADD_VERSION_TAG = "add_version_tag"
    ADD_CONCERN_TAG = "add_concern_tag"
    ADD_CONCERN_NOTE = "add_concern_note"
    SKIP = "skip"


class FixAction(BaseModel):
    type: FixActionType
    label: str


class FixActionResult(BaseModel):
    applied: bool
    message: str
    removed: bool = False


class FixInteractionResult(BaseModel):
    """Accounting for one remediation run.

    ``applied + skipped <= total_findings``: findings without actions and
    failed actions count only towards the total.
    """

    total_findings: int = 0
    applied: int = 0
    skipped: int = 0
    removed: list[str] = Field(default_factory=list)
