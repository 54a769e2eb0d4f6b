"""Text normalization for title and author comparison.

Steps:
1. Unicode NFKC normalization (compatibility forms, e.g. ligatures)
2. Case folding
3. Diacritic removal (NFD, then drop combining marks)
4. Punctuation to spaces (letters, digits, "/" and whitespace survive)
5. Whitespace collapsing and trimming
"""

import re
import unicodedata

_PUNCTUATION = re.compile(r"[^\w/\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Normalize ``text`` so that case, accent and spacing variants compare equal.

    >>> normalize("  Ŝtructural  Équations: a Re-View ")
    'structural equations a re view'
    """
    if not text:
        return ""

    normalized = unicodedata.normalize("NFKC", text).casefold()
    decomposed = unicodedata.normalize("NFD", normalized)
    stripped = "".join(ch for ch in decomposed if not unicodedata.category(ch).startswith("M"))
    stripped = _PUNCTUATION.sub(" ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def tokenize(text: str) -> set[str]:
    """Return the set of normalized words in ``text``."""
    normalized = normalize(text)
    if not normalized:
        return set()
    return set(normalized.split(" "))
