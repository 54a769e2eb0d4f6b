"""Library capability used by the check and fix pipeline.

The pipeline never touches storage directly; it holds a ``Library`` and calls
these methods. Mutations are async so that a remote-backed implementation can
satisfy the same protocol.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from reflib_contracts import BibliographicRecord


@dataclass(frozen=True)
class UpdateResult:
    updated: bool


@dataclass(frozen=True)
class RemoveResult:
    removed: bool


@runtime_checkable
class Library(Protocol):
    """Narrow interface over the reference library."""

    def find(self, identifier: str) -> Optional[BibliographicRecord]:
        """Find a record by citation id."""
        ...

    def get_all(self) -> list[BibliographicRecord]: ...

    async def update(self, identifier: str, updates: dict[str, Any]) -> UpdateResult:
        """Merge CSL-JSON ``updates`` (alias keys) into the record."""
        ...

    async def remove(self, identifier: str) -> RemoveResult: ...

    async def save(self) -> None: ...
