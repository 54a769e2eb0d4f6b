"""File-backed CSL-JSON library.

The library file is a JSON array of CSL items. Every record is given a
``custom.uuid`` on load or add; that uuid never changes afterwards, while the
citation ``id`` may.

Example:
    >>> library = JsonLibrary.load("~/refs/library.json")
    >>> record = library.find("vaswani2017")
    >>> await library.update("vaswani2017", {"page": "5998-6008"})
    >>> await library.save()
"""

import asyncio
import json
import os
import tempfile
import uuid as uuid_lib
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from reflib_common import StorageError, get_logger
from reflib_contracts import BibliographicRecord
from reflib_storage.library import RemoveResult, UpdateResult

logger = get_logger(__name__)


class JsonLibrary:
    """In-memory index over a CSL-JSON file."""

    def __init__(
        self,
        path: Union[str, Path],
        records: Optional[list[BibliographicRecord]] = None,
    ):
        self.path = Path(path).expanduser()
        self._records: list[BibliographicRecord] = []
        self._by_id: dict[str, BibliographicRecord] = {}
        self._by_uuid: dict[str, BibliographicRecord] = {}
        self._dirty = False
        for record in records or []:
            self._insert(self._with_uuid(record))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "JsonLibrary":
        """Read the library file. A missing file yields an empty library.

        Raises:
            StorageError: If the file is not a JSON array of CSL items.
        """
        file_path = Path(path).expanduser()
        if not file_path.exists():
            logger.info("library_file_missing", path=str(file_path))
            return cls(file_path)

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read library {file_path}: {e}") from e

        if not isinstance(data, list):
            raise StorageError(f"Library {file_path} must contain a JSON array")

        try:
            records = [BibliographicRecord.model_validate(item) for item in data]
        except ValidationError as e:
            raise StorageError(f"Invalid CSL-JSON in {file_path}: {e}") from e

        library = cls(file_path, records)
        logger.debug("library_loaded", path=str(file_path), count=len(records))
        return library

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def find(self, identifier: str) -> Optional[BibliographicRecord]:
        return self._by_id.get(identifier)

    def find_by_uuid(self, uuid: str) -> Optional[BibliographicRecord]:
        return self._by_uuid.get(uuid)

    def get_all(self) -> list[BibliographicRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, record: BibliographicRecord) -> BibliographicRecord:
        """Add a record, assigning a uuid if it has none.

        Raises:
            StorageError: If the citation id is already taken.
        """
        if record.id in self._by_id:
            raise StorageError(f"Duplicate citation id: {record.id}")
        stored = self._with_uuid(record)
        self._insert(stored)
        self._dirty = True
        return stored

    async def update(self, identifier: str, updates: dict[str, Any]) -> UpdateResult:
        """Merge CSL-JSON ``updates`` into a record.

        A ``None`` value deletes the key. The citation id and uuid are kept.
        """
        current = self._by_id.get(identifier)
        if current is None:
            return UpdateResult(updated=False)

        data = current.to_csl()
        data.update(updates)
        data = {key: value for key, value in data.items() if value is not None}
        data["id"] = current.id
        custom = dict(data.get("custom") or {})
        custom["uuid"] = current.uuid
        data["custom"] = custom

        try:
            updated = BibliographicRecord.model_validate(data)
        except ValidationError as e:
            logger.warning("record_update_rejected", record_id=identifier, error=str(e))
            return UpdateResult(updated=False)

        index = self._records.index(current)
        self._records[index] = updated
        self._by_id[updated.id] = updated
        self._by_uuid[current.uuid] = updated
        self._dirty = True
        return UpdateResult(updated=True)

    async def remove(self, identifier: str) -> RemoveResult:
        record = self._by_id.pop(identifier, None)
        if record is None:
            return RemoveResult(removed=False)
        self._records.remove(record)
        self._by_uuid.pop(record.uuid, None)
        self._dirty = True
        return RemoveResult(removed=True)

    async def save(self) -> None:
        """Write the library atomically if anything changed."""
        if not self._dirty:
            return
        await asyncio.to_thread(self._write)
        self._dirty = False
        logger.debug("library_saved", path=str(self.path), count=len(self._records))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _with_uuid(record: BibliographicRecord) -> BibliographicRecord:
        if record.uuid:
            return record
        custom = {**record.custom, "uuid": str(uuid_lib.uuid4())}
        return record.model_copy(update={"custom": custom})

    def _insert(self, record: BibliographicRecord) -> None:
        self._records.append(record)
        self._by_id[record.id] = record
        self._by_uuid[record.uuid] = record

    def _write(self) -> None:
        payload = json.dumps(
            [record.to_csl() for record in self._records],
            indent=2,
            ensure_ascii=False,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write library {self.path}: {e}") from e
