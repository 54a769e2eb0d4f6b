"""Metadata comparator: diff local fields against a remote snapshot.

Classification is two-tier:

1. Mechanical diff over a fixed, ordered field set. No diffs -> ``no_change``.
2. Identity gate on the raw title and author list. If either looks like a
   different work -> ``metadata_mismatch``, otherwise ``metadata_outdated``.

A slightly corrected title and a DOI that now resolves to an unrelated paper
both produce a title diff; only the similarity gate tells them apart.
"""

from typing import Callable, Optional, Sequence, Union

from reflib_check.similarity import is_author_similar, is_title_similar
from reflib_contracts import (
    AuthorName,
    BibliographicRecord,
    DateVariable,
    FieldDiff,
    MetadataClassification,
    MetadataComparisonResult,
    RemoteMetadata,
)

# Provider (Crossref) item types -> CSL item types. Unmapped values pass through.
REMOTE_TO_CSL_TYPE: dict[str, str] = {
    "journal-article": "article-journal",
    "book-chapter": "chapter",
    "proceedings-article": "paper-conference",
    "posted-content": "article",
}

COMPARED_FIELDS: tuple[str, ...] = (
    "title",
    "author",
    "container-title",
    "type",
    "page",
    "volume",
    "issue",
    "issued",
)

Comparable = Union[BibliographicRecord, RemoteMetadata]


def map_remote_type(remote_type: Optional[str]) -> Optional[str]:
    """Translate a provider item type into the CSL vocabulary."""
    if not remote_type:
        return None
    return REMOTE_TO_CSL_TYPE.get(remote_type, remote_type)


def format_authors(authors: Optional[Sequence[AuthorName]]) -> Optional[str]:
    """Render authors as ``"Family, Given; Family, Given"``."""
    if not authors:
        return None
    return "; ".join(", ".join(part for part in (a.family, a.given) if part) for a in authors)


def format_issued(issued: Optional[DateVariable]) -> Optional[str]:
    """Render the first date-parts entry as ``Y-M-D``, dropping missing parts."""
    if issued is None:
        return None
    parts = [str(p) for p in issued.first_parts() if p is not None and p != ""]
    return "-".join(parts) if parts else None


def _text(value: Optional[str]) -> Optional[str]:
    return value if value else None


_LOCAL_VALUES: dict[str, Callable[[Comparable], Optional[str]]] = {
    "title": lambda r: _text(r.title),
    "author": lambda r: format_authors(r.author),
    "container-title": lambda r: _text(r.container_title),
    "type": lambda r: _text(r.type),
    "page": lambda r: _text(r.page),
    "volume": lambda r: _text(r.volume),
    "issue": lambda r: _text(r.issue),
    "issued": lambda r: format_issued(r.issued),
}

_REMOTE_VALUES: dict[str, Callable[[Comparable], Optional[str]]] = {
    **_LOCAL_VALUES,
    "type": lambda r: map_remote_type(r.type),
}


def collect_field_diffs(local: BibliographicRecord, remote: RemoteMetadata) -> list[FieldDiff]:
    """Return one diff per compared field whose comparable values differ."""
    diffs: list[FieldDiff] = []
    for name in COMPARED_FIELDS:
        local_value = _LOCAL_VALUES[name](local)
        remote_value = _REMOTE_VALUES[name](remote)
        if local_value == remote_value:
            continue
        diffs.append(FieldDiff(field=name, local=local_value, remote=remote_value))
    return diffs


def compare_metadata(
    local: BibliographicRecord,
    remote: RemoteMetadata,
) -> MetadataComparisonResult:
    """Compare a library record against remote metadata and classify the result."""
    field_diffs = collect_field_diffs(local, remote)
    changed_fields = [diff.field for diff in field_diffs]

    if not field_diffs:
        classification = MetadataClassification.NO_CHANGE
    elif not is_title_similar(local.title, remote.title) or not is_author_similar(
        local.author, remote.author
    ):
        classification = MetadataClassification.METADATA_MISMATCH
    else:
        classification = MetadataClassification.METADATA_OUTDATED

    return MetadataComparisonResult(
        classification=classification,
        changed_fields=changed_fields,
        field_diffs=field_diffs,
    )
