"""Batch check operation over a library.

Resolves the target records, skips ones checked recently, runs the checker
on the rest and stores each outcome under ``custom.check``::

    {
        "checked_at": "2026-10-19T08:30:00+00:00",
        "status": "retracted",          # first finding type, or ok/skipped
        "findings": [{"type": ..., "message": ..., "details": {...}}],
    }
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from reflib_common import RecordNotFoundError, get_logger
from reflib_contracts import (
    BibliographicRecord,
    CheckOperationResult,
    CheckResult,
    CheckStatus,
    CheckSummary,
)
from reflib_storage import Library

logger = get_logger(__name__)

DEFAULT_SKIP_DAYS = 7


class Checker(Protocol):
    async def check(self, record: BibliographicRecord) -> CheckResult: ...


@dataclass
class CheckOptions:
    """Which records to check and whether to persist results."""

    identifiers: list[str] = field(default_factory=list)
    all: bool = False
    skip_days: int = DEFAULT_SKIP_DAYS
    save: bool = True


def resolve_records(library: Library, options: CheckOptions) -> list[BibliographicRecord]:
    """Return the target records.

    Raises:
        RecordNotFoundError: If an explicit identifier is unknown.
    """
    if options.all:
        return library.get_all()

    records = []
    for identifier in options.identifiers:
        record = library.find(identifier)
        if record is None:
            raise RecordNotFoundError(identifier)
        records.append(record)
    return records


def last_checked_at(record: BibliographicRecord) -> Optional[datetime]:
    check = record.custom.get("check")
    if not isinstance(check, dict) or not check.get("checked_at"):
        return None
    try:
        checked_at = datetime.fromisoformat(str(check["checked_at"]).replace("Z", "+00:00"))
    except ValueError:
        return None
    if checked_at.tzinfo is None:
        checked_at = checked_at.replace(tzinfo=timezone.utc)
    return checked_at


def should_skip_recent_check(
    record: BibliographicRecord,
    skip_days: int,
    now: Optional[datetime] = None,
) -> bool:
    """True if ``record`` was checked less than ``skip_days`` days ago."""
    if skip_days <= 0:
        return False
    checked_at = last_checked_at(record)
    if checked_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    days_since = (now - checked_at).total_seconds() / 86400
    return days_since < skip_days


def check_record_data(result: CheckResult) -> dict[str, Any]:
    """Serialize a check result for ``custom.check``."""
    if result.status == CheckStatus.WARNING and result.findings:
        status = result.findings[0].type.value
    else:
        status = result.status.value
    return {
        "checked_at": result.checked_at.isoformat() if result.checked_at else None,
        "status": status,
        "findings": [
            finding.model_dump(mode="json", exclude_none=True) for finding in result.findings
        ],
    }


def compute_summary(results: list[CheckResult]) -> CheckSummary:
    return CheckSummary(
        total=len(results),
        ok=sum(1 for r in results if r.status == CheckStatus.OK),
        warnings=sum(1 for r in results if r.status == CheckStatus.WARNING),
        skipped=sum(1 for r in results if r.status == CheckStatus.SKIPPED),
    )


async def check_references(
    library: Library,
    checker: Checker,
    options: CheckOptions,
) -> CheckOperationResult:
    """Check the selected records and optionally persist the outcomes."""
    records = resolve_records(library, options)
    results: list[CheckResult] = []
    persisted = 0

    for record in records:
        if should_skip_recent_check(record, options.skip_days):
            results.append(
                CheckResult(
                    id=record.id,
                    uuid=record.uuid or "",
                    status=CheckStatus.SKIPPED,
                    checked_at=last_checked_at(record),
                )
            )
            continue

        result = await checker.check(record)
        results.append(result)

        if options.save and result.status != CheckStatus.SKIPPED:
            custom = {**record.custom, "check": check_record_data(result)}
            outcome = await library.update(record.id, {"custom": custom})
            if outcome.updated:
                persisted += 1

    if persisted:
        await library.save()

    summary = compute_summary(results)
    logger.info(
        "check_complete",
        total=summary.total,
        ok=summary.ok,
        warnings=summary.warnings,
        skipped=summary.skipped,
    )
    return CheckOperationResult(results=results, summary=summary)
