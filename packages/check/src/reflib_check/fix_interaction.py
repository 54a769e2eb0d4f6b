"""Interactive remediation of check findings, one finding at a time.

For every ``warning`` result whose record still exists, each finding is:

1. counted in ``total_findings``
2. dropped if its kind offers no actions
3. presented to the operator (cancelling counts as skipped)
4. applied through the registry; a failed action is reported and counted
   neither applied nor skipped
5. counted as skipped (``skip`` action) or applied, recording removed ids

Findings are processed strictly sequentially in input order: a presentation
is always answered before the next finding is looked at. A failing finding
never stops the run.

Example:
    >>> result = await run_fix_interaction(
    ...     check_results,
    ...     library=library,
    ...     find_item=library.find,
    ...     presenter=TerminalChoicePresenter(),
    ...     on_error=lambda msg: typer.echo(msg, err=True),
    ... )
    >>> print(result.applied, result.skipped)
"""

from typing import Callable, Optional, Protocol, Sequence

from reflib_check.fix_actions import FixActionRegistry
from reflib_common import ReflibError, get_logger
from reflib_contracts import (
    BibliographicRecord,
    CheckFinding,
    CheckFindingType,
    CheckResult,
    CheckStatus,
    FixAction,
    FixActionResult,
    FixActionType,
    FixInteractionResult,
)
from reflib_storage import Library

logger = get_logger(__name__)

STATUS_LABELS: dict[CheckFindingType, str] = {
    CheckFindingType.RETRACTED: "RETRACTED",
    CheckFindingType.CONCERN: "CONCERN",
    CheckFindingType.VERSION_CHANGED: "VERSION",
    CheckFindingType.METADATA_MISMATCH: "MISMATCH",
    CheckFindingType.METADATA_OUTDATED: "OUTDATED",
}

FindItem = Callable[[str], Optional[BibliographicRecord]]
MessageSink = Callable[[str], None]


class ChoicePresenter(Protocol):
    """Presents a prompt with options and waits for the operator.

    Returns the chosen action type, or None when the operator cancels.
    """

    async def present_choice(
        self, message: str, options: Sequence[FixAction]
    ) -> Optional[FixActionType]: ...


def status_label(finding_type: CheckFindingType) -> str:
    return STATUS_LABELS.get(finding_type, "WARNING")


def format_prompt(record_id: str, finding: CheckFinding) -> str:
    """``"[RETRACTED] smith2020: This article was retracted"``."""
    return f"[{status_label(finding.type)}] {record_id}: {finding.message}"


def _ignore(message: str) -> None:
    pass


async def _apply(
    registry: FixActionRegistry,
    library: Library,
    record: BibliographicRecord,
    finding: CheckFinding,
    action_type: FixActionType,
) -> FixActionResult:
    try:
        return await registry.apply_action(library, record, finding, action_type)
    except ReflibError as e:
        return FixActionResult(applied=False, message=str(e))


async def _process_finding(
    result: FixInteractionResult,
    record_id: str,
    record: BibliographicRecord,
    finding: CheckFinding,
    *,
    library: Library,
    presenter: ChoicePresenter,
    registry: FixActionRegistry,
    on_message: MessageSink,
    on_error: MessageSink,
) -> None:
    result.total_findings += 1

    options = registry.get_actions_for_finding(finding)
    if not options:
        logger.debug("finding_has_no_actions", record_id=record_id, finding=finding.type.value)
        return

    selected = await presenter.present_choice(format_prompt(record_id, finding), options)
    if selected is None:
        result.skipped += 1
        logger.info("fix_cancelled", record_id=record_id, finding=finding.type.value)
        return

    outcome = await _apply(registry, library, record, finding, selected)
    if not outcome.applied:
        on_error(f"  Error: {outcome.message}")
        logger.warning(
            "fix_action_failed",
            record_id=record_id,
            action=selected.value,
            error=outcome.message,
        )
        return

    on_message(f"  {outcome.message}")
    if selected == FixActionType.SKIP:
        result.skipped += 1
        return

    result.applied += 1
    if outcome.removed:
        result.removed.append(record_id)
    logger.info("fix_action_applied", record_id=record_id, action=selected.value)


async def run_fix_interaction(
    results: Sequence[CheckResult],
    *,
    library: Library,
    find_item: FindItem,
    presenter: ChoicePresenter,
    registry: Optional[FixActionRegistry] = None,
    on_message: Optional[MessageSink] = None,
    on_error: Optional[MessageSink] = None,
) -> FixInteractionResult:
    """Walk the findings of ``results`` and apply the operator's choices.

    Args:
        results: Check results; only ``warning`` results are considered
        library: Library capability mutated by the chosen actions
        find_item: Resolves a citation id to the current record; results whose
            record no longer exists are skipped without counting
        presenter: Choice presentation capability
        registry: Fix-action registry (defaults to the standard actions)
        on_message: Sink for progress messages
        on_error: Sink for per-finding failure messages

    Returns:
        FixInteractionResult accumulated over the whole run.
    """
    registry = registry or FixActionRegistry()
    on_message = on_message or _ignore
    on_error = on_error or _ignore
    result = FixInteractionResult()

    for check_result in results:
        if check_result.status != CheckStatus.WARNING:
            continue

        record = find_item(check_result.id)
        if record is None:
            logger.info("fix_record_vanished", record_id=check_result.id)
            continue

        for finding in check_result.findings:
            await _process_finding(
                result,
                check_result.id,
                record,
                finding,
                library=library,
                presenter=presenter,
                registry=registry,
                on_message=on_message,
                on_error=on_error,
            )
            # Later findings must see earlier mutations (e.g. tags already added).
            record = find_item(check_result.id) or record

    logger.info(
        "fix_interaction_complete",
        total_findings=result.total_findings,
        applied=result.applied,
        skipped=result.skipped,
        removed=len(result.removed),
    )
    return result
