"""Reflib Check - consistency and remediation pipeline.

This package provides:
- Text normalization and title/author similarity
- Metadata comparison and classification (no_change / outdated / mismatch)
- Duplicate detection (DOI, PMID, title + author + year)
- Crossref and PubMed clients, the per-record checker and the batch check
- The fix-action registry and the interactive fix orchestrator

No module here reads or writes the library file; mutations go through the
``reflib_storage.Library`` capability.
"""

from reflib_check.checker import ReferenceChecker, map_crossref_update, metadata_finding
from reflib_check.comparator import (
    COMPARED_FIELDS,
    REMOTE_TO_CSL_TYPE,
    compare_metadata,
    map_remote_type,
)
from reflib_check.crossref_client import CrossrefClient, CrossrefResult, CrossrefUpdate
from reflib_check.duplicates import detect_duplicate, normalize_doi
from reflib_check.fix_actions import DEFAULT_ACTIONS, FixActionRegistry
from reflib_check.fix_interaction import (
    ChoicePresenter,
    format_prompt,
    run_fix_interaction,
    status_label,
)
from reflib_check.normalizer import normalize
from reflib_check.operation import CheckOptions, check_references
from reflib_check.pubmed_client import PubmedClient, PubmedResult
from reflib_check.rate_limiter import RateLimiter
from reflib_check.similarity import is_author_similar, is_title_similar

__all__ = [
    # Normalization & similarity
    "normalize",
    "is_title_similar",
    "is_author_similar",
    # Comparison
    "COMPARED_FIELDS",
    "REMOTE_TO_CSL_TYPE",
    "compare_metadata",
    "map_remote_type",
    # Duplicates
    "detect_duplicate",
    "normalize_doi",
    # Remote providers
    "CrossrefClient",
    "CrossrefResult",
    "CrossrefUpdate",
    "PubmedClient",
    "PubmedResult",
    "RateLimiter",
    # Checking
    "ReferenceChecker",
    "map_crossref_update",
    "metadata_finding",
    "CheckOptions",
    "check_references",
    # Remediation
    "DEFAULT_ACTIONS",
    "FixActionRegistry",
    "ChoicePresenter",
    "format_prompt",
    "run_fix_interaction",
    "status_label",
]
