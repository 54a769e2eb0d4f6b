"""Duplicate detection for records about to be added to the library.

Evidence types, strongest first:

- ``doi``: identical DOI after stripping resolver prefixes, whitespace and case
- ``pmid``: identical PubMed ID
- ``title-author-year``: identical normalized title, identical set of
  normalized author names and identical publication year

The title/author/year rule is an exact conjunction rather than a similarity
threshold: it is meant to catch re-imports of the same citation without
identifiers. Post-hoc metadata checks use the thresholded predicates in
``reflib_check.similarity`` instead.

At most one match is reported per evidence type, and each existing record
appears in at most one match (under its strongest evidence).
"""

import re
from typing import Callable, Optional, Sequence

from reflib_check.normalizer import normalize
from reflib_common import get_logger
from reflib_contracts import (
    BibliographicRecord,
    DuplicateMatch,
    DuplicateMatchDetails,
    DuplicateResult,
    DuplicateType,
)

logger = get_logger(__name__)

_DOI_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)


def normalize_doi(doi: Optional[str]) -> Optional[str]:
    """Canonical DOI for equality checks (``10.xxxx/...``, lower-case)."""
    if not doi:
        return None
    stripped = _DOI_PREFIX.sub("", doi.strip()).strip()
    return stripped.lower() or None


def normalize_pmid(pmid: Optional[str]) -> Optional[str]:
    if not pmid:
        return None
    return pmid.strip() or None


def extract_year(record: BibliographicRecord) -> Optional[str]:
    """Publication year as a string, or None when undated."""
    if record.issued is None:
        return None
    parts = record.issued.first_parts()
    if not parts or parts[0] in (None, ""):
        return None
    return str(parts[0])


def normalize_authors(record: BibliographicRecord) -> Optional[frozenset[str]]:
    """Set of ``"family initial"`` names, normalized; None without authors."""
    if not record.author:
        return None
    names = set()
    for author in record.author:
        initial = author.given[0] if author.given else ""
        name = normalize(f"{author.family or ''} {initial}")
        if name:
            names.add(name)
    return frozenset(names) or None


def _match_doi(
    candidate: BibliographicRecord, existing: BibliographicRecord
) -> Optional[DuplicateMatch]:
    doi = normalize_doi(candidate.DOI)
    if doi is None or doi != normalize_doi(existing.DOI):
        return None
    return DuplicateMatch(
        type=DuplicateType.DOI,
        existing=existing,
        details=DuplicateMatchDetails(doi=doi),
    )


def _match_pmid(
    candidate: BibliographicRecord, existing: BibliographicRecord
) -> Optional[DuplicateMatch]:
    pmid = normalize_pmid(candidate.PMID)
    if pmid is None or pmid != normalize_pmid(existing.PMID):
        return None
    return DuplicateMatch(
        type=DuplicateType.PMID,
        existing=existing,
        details=DuplicateMatchDetails(pmid=pmid),
    )


def _match_title_author_year(
    candidate: BibliographicRecord, existing: BibliographicRecord
) -> Optional[DuplicateMatch]:
    title = normalize(candidate.title or "")
    authors = normalize_authors(candidate)
    year = extract_year(candidate)
    if not title or authors is None or year is None:
        return None

    if (
        title != normalize(existing.title or "")
        or authors != normalize_authors(existing)
        or year != extract_year(existing)
    ):
        return None

    return DuplicateMatch(
        type=DuplicateType.TITLE_AUTHOR_YEAR,
        existing=existing,
        details=DuplicateMatchDetails(
            normalized_title=title,
            normalized_authors=sorted(authors),
            year=year,
        ),
    )


Matcher = Callable[[BibliographicRecord, BibliographicRecord], Optional[DuplicateMatch]]

# Strongest evidence first.
_MATCHERS: tuple[Matcher, ...] = (_match_doi, _match_pmid, _match_title_author_year)


def detect_duplicate(
    candidate: BibliographicRecord,
    existing_records: Sequence[BibliographicRecord],
) -> DuplicateResult:
    """Score ``candidate`` against the library.

    Records sharing the candidate's uuid are the candidate itself and are
    ignored.

    Returns:
        DuplicateResult with matches ordered doi, pmid, title-author-year.
    """
    candidate_uuid = candidate.uuid
    pool = [r for r in existing_records if not (candidate_uuid and r.uuid == candidate_uuid)]

    matches: list[DuplicateMatch] = []
    claimed: set[int] = set()
    for matcher in _MATCHERS:
        for index, existing in enumerate(pool):
            if index in claimed:
                continue
            match = matcher(candidate, existing)
            if match is not None:
                matches.append(match)
                claimed.add(index)
                break

    if matches:
        logger.debug(
            "duplicate_detected",
            candidate_id=candidate.id,
            matches=[(m.type.value, m.existing.id) for m in matches],
        )

    return DuplicateResult(is_duplicate=bool(matches), matches=matches)
