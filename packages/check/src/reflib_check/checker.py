"""Check a single record against Crossref and PubMed.

Sources:
- DOI  -> Crossref ``update-to`` (retraction, expression of concern, new version)
- PMID -> PubMed publication types (retraction, expression of concern)

Metadata comparison runs against the Crossref snapshot when there is one,
otherwise (PMID-only records) against the PubMed snapshot. Records with
neither identifier are skipped.
"""

from datetime import datetime, timezone
from typing import Optional

from reflib_check.comparator import compare_metadata
from reflib_check.crossref_client import CrossrefClient, CrossrefUpdate
from reflib_check.pubmed_client import PubmedClient
from reflib_common import get_logger
from reflib_contracts import (
    BibliographicRecord,
    CheckFinding,
    CheckFindingType,
    CheckResult,
    CheckStatus,
    FindingDetails,
    MetadataClassification,
    RemoteMetadata,
)

logger = get_logger(__name__)

METADATA_MESSAGES: dict[MetadataClassification, str] = {
    MetadataClassification.METADATA_MISMATCH: (
        "Local metadata significantly differs from the remote record"
    ),
    MetadataClassification.METADATA_OUTDATED: "Remote metadata has been updated since import",
}


def map_crossref_update(update: CrossrefUpdate) -> Optional[CheckFinding]:
    """Translate a Crossref ``update-to`` entry into a finding, if relevant."""
    if update.type == "retraction":
        return CheckFinding(
            type=CheckFindingType.RETRACTED,
            message=(
                f"This article was retracted on {update.date}"
                if update.date
                else "This article was retracted"
            ),
            details=FindingDetails(retraction_doi=update.doi, retraction_date=update.date),
        )
    if update.type == "expression-of-concern":
        return CheckFinding(
            type=CheckFindingType.CONCERN,
            message=(
                f"Expression of concern issued on {update.date}"
                if update.date
                else "Expression of concern issued"
            ),
            details=FindingDetails(retraction_doi=update.doi, retraction_date=update.date),
        )
    if update.type == "new_version":
        return CheckFinding(
            type=CheckFindingType.VERSION_CHANGED,
            message=(
                f"Published version available: {update.doi}"
                if update.doi
                else "Published version available"
            ),
            details=FindingDetails(new_doi=update.doi),
        )
    return None


def metadata_finding(
    record: BibliographicRecord, remote: RemoteMetadata
) -> Optional[CheckFinding]:
    """Compare ``record`` with ``remote``; None when nothing changed."""
    comparison = compare_metadata(record, remote)
    if comparison.classification == MetadataClassification.NO_CHANGE:
        return None
    return CheckFinding(
        type=CheckFindingType(comparison.classification.value),
        message=METADATA_MESSAGES[comparison.classification],
        details=FindingDetails(
            updated_fields=comparison.changed_fields,
            field_diffs=comparison.field_diffs,
        ),
    )


def _add_unique(target: list[CheckFinding], source: list[CheckFinding]) -> None:
    seen = {f.type for f in target}
    for finding in source:
        if finding.type not in seen:
            target.append(finding)
            seen.add(finding.type)


class ReferenceChecker:
    """Runs the per-record check with injected provider clients."""

    def __init__(
        self,
        crossref: CrossrefClient,
        pubmed: PubmedClient,
        check_metadata: bool = True,
    ):
        self.crossref = crossref
        self.pubmed = pubmed
        self.check_metadata = check_metadata

    async def check(self, record: BibliographicRecord) -> CheckResult:
        checked_at = datetime.now(timezone.utc)
        uuid = record.uuid or ""

        if not record.DOI and not record.PMID:
            return CheckResult(
                id=record.id,
                uuid=uuid,
                status=CheckStatus.SKIPPED,
                checked_at=checked_at,
            )

        findings: list[CheckFinding] = []
        sources: list[str] = []
        remote: Optional[RemoteMetadata] = None

        if record.DOI:
            sources.append("crossref")
            crossref_result = await self.crossref.query(record.DOI)
            if crossref_result.success:
                for update in crossref_result.updates:
                    finding = map_crossref_update(update)
                    if finding is not None:
                        findings.append(finding)
                remote = crossref_result.metadata
            else:
                logger.warning(
                    "crossref_check_failed", record_id=record.id, error=crossref_result.error
                )

        if record.PMID:
            sources.append("pubmed")
            pubmed_result = await self.pubmed.query(
                record.PMID, include_metadata=self.check_metadata and not record.DOI
            )
            if pubmed_result.success:
                pubmed_findings = []
                if pubmed_result.is_retracted:
                    pubmed_findings.append(
                        CheckFinding(
                            type=CheckFindingType.RETRACTED,
                            message="This article is marked as retracted in PubMed",
                        )
                    )
                if pubmed_result.has_concern:
                    pubmed_findings.append(
                        CheckFinding(
                            type=CheckFindingType.CONCERN,
                            message="Expression of concern noted in PubMed",
                        )
                    )
                _add_unique(findings, pubmed_findings)
                if not record.DOI:
                    remote = pubmed_result.metadata
            else:
                logger.warning(
                    "pubmed_check_failed", record_id=record.id, error=pubmed_result.error
                )

        if self.check_metadata and remote is not None:
            finding = metadata_finding(record, remote)
            if finding is not None:
                findings.append(finding)

        status = CheckStatus.WARNING if findings else CheckStatus.OK
        logger.debug(
            "record_checked", record_id=record.id, status=status.value, findings=len(findings)
        )
        return CheckResult(
            id=record.id,
            uuid=uuid,
            status=status,
            findings=findings,
            checked_at=checked_at,
            checked_sources=sources,
        )
