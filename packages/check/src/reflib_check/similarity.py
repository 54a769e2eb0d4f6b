"""Title and author similarity between a local record and a remote candidate.

Both predicates are permissive: when either side has nothing to compare they
return True ("not enough evidence to call it different").

Title similarity combines two set metrics over normalized words:
    jaccard     = |A ∩ B| / |A ∪ B|
    containment = |A ∩ B| / min(|A|, |B|)

Containment tolerates subtitle additions and truncation that drag Jaccard
down. Author similarity is anchored to the local list:
    overlap = |local_families ∩ remote_families| / |local_families|
"""

from typing import Optional, Sequence

from reflib_check.normalizer import normalize, tokenize
from reflib_contracts import AuthorName

TITLE_JACCARD_THRESHOLD = 0.5
TITLE_CONTAINMENT_THRESHOLD = 0.8
AUTHOR_OVERLAP_THRESHOLD = 0.5


def jaccard(a: set[str], b: set[str]) -> float:
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def containment(a: set[str], b: set[str]) -> float:
    smaller = min(len(a), len(b))
    return len(a & b) / smaller if smaller else 0.0


def is_title_similar(local: Optional[str], remote: Optional[str]) -> bool:
    """Return True if two titles plausibly name the same work."""
    if not local or not remote:
        return True

    local_words = tokenize(local)
    remote_words = tokenize(remote)
    if not local_words or not remote_words:
        return True

    return (
        jaccard(local_words, remote_words) >= TITLE_JACCARD_THRESHOLD
        or containment(local_words, remote_words) >= TITLE_CONTAINMENT_THRESHOLD
    )


def family_names(authors: Sequence[AuthorName]) -> set[str]:
    """Normalized family names; authors without one are ignored."""
    return {normalize(a.family) for a in authors if a.family and normalize(a.family)}


def is_author_similar(
    local: Optional[Sequence[AuthorName]],
    remote: Optional[Sequence[AuthorName]],
) -> bool:
    """Return True if at least half of the local family names appear remotely."""
    if not local or not remote:
        return True

    local_families = family_names(local)
    remote_families = family_names(remote)
    if not local_families or not remote_families:
        return True

    overlap = len(local_families & remote_families) / len(local_families)
    return overlap >= AUTHOR_OVERLAP_THRESHOLD
