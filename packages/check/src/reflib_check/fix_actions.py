"""Fix-action registry: which remediations a finding offers, and how each applies.

Each ``FixActionType`` has exactly one handler. Handlers mutate the record
only through the ``Library`` capability and report failures in the returned
``FixActionResult`` instead of raising.

Example:
    >>> registry = FixActionRegistry(fetch_metadata=crossref.fetch_metadata)
    >>> actions = registry.get_actions_for_finding(finding)
    >>> result = await registry.apply_action(library, record, finding, actions[0].type)
"""

from functools import partial
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from reflib_check.comparator import map_remote_type
from reflib_common import RemoteMetadataError, get_logger
from reflib_contracts import (
    BibliographicRecord,
    CheckFinding,
    CheckFindingType,
    FixAction,
    FixActionResult,
    FixActionType,
    RemoteMetadata,
)
from reflib_storage import Library

logger = get_logger(__name__)

RETRACTED_TAG = "retracted"
CONCERN_TAG = "expression-of-concern"
PUBLISHED_VERSION_TAG = "has-published-version"

SKIP_ACTION = FixAction(type=FixActionType.SKIP, label="Skip")

DEFAULT_ACTIONS: dict[CheckFindingType, list[FixAction]] = {
    CheckFindingType.RETRACTED: [
        FixAction(type=FixActionType.ADD_RETRACTED_TAG, label='Add tag "retracted"'),
        FixAction(
            type=FixActionType.ADD_RETRACTION_NOTE, label="Add note with retraction details"
        ),
        FixAction(type=FixActionType.REMOVE_FROM_LIBRARY, label="Remove from library"),
        SKIP_ACTION,
    ],
    CheckFindingType.VERSION_CHANGED: [
        FixAction(
            type=FixActionType.UPDATE_FROM_PUBLISHED,
            label="Update metadata from published version",
        ),
        FixAction(type=FixActionType.ADD_VERSION_TAG, label='Add tag "has-published-version"'),
        SKIP_ACTION,
    ],
    CheckFindingType.CONCERN: [
        FixAction(type=FixActionType.ADD_CONCERN_TAG, label='Add tag "expression-of-concern"'),
        FixAction(type=FixActionType.ADD_CONCERN_NOTE, label="Add note with concern details"),
        SKIP_ACTION,
    ],
}

MetadataFetcher = Callable[[str], Awaitable[RemoteMetadata]]
Handler = Callable[[Library, BibliographicRecord, CheckFinding], Awaitable[FixActionResult]]


def build_note_text(prefix: str, finding: CheckFinding) -> str:
    """``"RETRACTED. Date: 2020-03-01. DOI: 10.1/r"``; absent parts are omitted."""
    parts = [prefix]
    details = finding.details
    if details is not None and details.retraction_date:
        parts.append(f"Date: {details.retraction_date}")
    if details is not None and details.retraction_doi:
        parts.append(f"DOI: {details.retraction_doi}")
    return ". ".join(parts)


def append_note(existing: Optional[str], note: str) -> str:
    if existing:
        return f"{existing}\n\n{note}"
    return note


def metadata_to_updates(metadata: RemoteMetadata, doi: str) -> dict:
    """CSL-JSON field updates from a published version's metadata."""
    updates = metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
    if metadata.type:
        updates["type"] = map_remote_type(metadata.type)
    updates["DOI"] = doi
    return updates


class FixActionRegistry:
    """Maps finding kinds to offered actions and action types to handlers."""

    def __init__(
        self,
        actions: Optional[Mapping[CheckFindingType, Sequence[FixAction]]] = None,
        fetch_metadata: Optional[MetadataFetcher] = None,
    ):
        """Initialize the registry.

        Args:
            actions: Offered actions per finding kind. Defaults to DEFAULT_ACTIONS.
            fetch_metadata: Coroutine fetching metadata for a DOI, used by
                ``update_from_published``. Raises RemoteMetadataError on failure.
        """
        self._actions = dict(DEFAULT_ACTIONS if actions is None else actions)
        self._fetch_metadata = fetch_metadata
        self._handlers: dict[FixActionType, Handler] = {
            FixActionType.ADD_RETRACTED_TAG: partial(self._add_tag, tag=RETRACTED_TAG),
            FixActionType.ADD_RETRACTION_NOTE: partial(self._add_note, prefix="RETRACTED"),
            FixActionType.ADD_CONCERN_TAG: partial(self._add_tag, tag=CONCERN_TAG),
            FixActionType.ADD_CONCERN_NOTE: partial(
                self._add_note, prefix="EXPRESSION OF CONCERN"
            ),
            FixActionType.ADD_VERSION_TAG: partial(self._add_tag, tag=PUBLISHED_VERSION_TAG),
            FixActionType.REMOVE_FROM_LIBRARY: self._remove,
            FixActionType.UPDATE_FROM_PUBLISHED: self._update_from_published,
            FixActionType.SKIP: self._skip,
        }

    def get_actions_for_finding(self, finding: CheckFinding) -> list[FixAction]:
        """Actions offered for ``finding``; empty when its kind has none."""
        return list(self._actions.get(finding.type, []))

    async def apply_action(
        self,
        library: Library,
        record: BibliographicRecord,
        finding: CheckFinding,
        action_type: FixActionType,
    ) -> FixActionResult:
        handler = self._handlers.get(action_type)
        if handler is None:
            return FixActionResult(applied=False, message=f"Unknown action: {action_type}")
        result = await handler(library, record, finding)
        logger.debug(
            "fix_action_result",
            record_id=record.id,
            action=action_type.value,
            applied=result.applied,
        )
        return result

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _add_tag(
        self,
        library: Library,
        record: BibliographicRecord,
        finding: CheckFinding,
        *,
        tag: str,
    ) -> FixActionResult:
        tags = record.tags
        if tag not in tags:
            tags.append(tag)
        outcome = await library.update(record.id, {"custom": {**record.custom, "tags": tags}})
        if not outcome.updated:
            return FixActionResult(applied=False, message=f"Failed to update {record.id}")
        await library.save()
        return FixActionResult(applied=True, message=f'Added tag "{tag}"')

    async def _add_note(
        self,
        library: Library,
        record: BibliographicRecord,
        finding: CheckFinding,
        *,
        prefix: str,
    ) -> FixActionResult:
        note_text = build_note_text(prefix, finding)
        outcome = await library.update(record.id, {"note": append_note(record.note, note_text)})
        if not outcome.updated:
            return FixActionResult(applied=False, message=f"Failed to update {record.id}")
        await library.save()
        return FixActionResult(applied=True, message=f"Added note: {note_text}")

    async def _remove(
        self, library: Library, record: BibliographicRecord, finding: CheckFinding
    ) -> FixActionResult:
        outcome = await library.remove(record.id)
        if not outcome.removed:
            return FixActionResult(applied=False, message=f"Failed to remove {record.id}")
        await library.save()
        return FixActionResult(applied=True, message=f"Removed {record.id}", removed=True)

    async def _update_from_published(
        self, library: Library, record: BibliographicRecord, finding: CheckFinding
    ) -> FixActionResult:
        new_doi = finding.details.new_doi if finding.details else None
        if not new_doi:
            return FixActionResult(
                applied=False, message="No published DOI available in finding details"
            )
        if self._fetch_metadata is None:
            return FixActionResult(applied=False, message="No metadata provider configured")

        try:
            metadata = await self._fetch_metadata(new_doi)
        except RemoteMetadataError as e:
            return FixActionResult(
                applied=False, message=f"Failed to fetch metadata for {new_doi}: {e.message}"
            )

        outcome = await library.update(record.id, metadata_to_updates(metadata, new_doi))
        if not outcome.updated:
            return FixActionResult(applied=False, message=f"Failed to update {record.id}")
        await library.save()
        return FixActionResult(applied=True, message=f"Updated metadata from {new_doi}")

    async def _skip(
        self, library: Library, record: BibliographicRecord, finding: CheckFinding
    ) -> FixActionResult:
        return FixActionResult(applied=True, message="Skipped")
