"""Reflib Storage - CSL-JSON library persistence.

This package provides:
- The ``Library`` capability (structural protocol) consumed by the check
  and remediation pipeline
- ``JsonLibrary``, a file-backed implementation with atomic saves

Exclusive file ownership - no other package reads or writes the library file.
"""

from reflib_storage.json_library import JsonLibrary
from reflib_storage.library import Library, RemoveResult, UpdateResult

__all__ = [
    "Library",
    "UpdateResult",
    "RemoveResult",
    "JsonLibrary",
]
