"""Generic keyed collections persisted as JSON arrays.

Each table (printers, materials, projects) is a single JSON array stored
under the table name. The store owns no business rules: it lists, saves and
deletes records by id and nothing else.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from .backends import StorageBackend

logger = logging.getLogger(__name__)

PRINTERS = "printers"
MATERIALS = "materials"
PROJECTS = "projects"
TABLES = (PRINTERS, MATERIALS, PROJECTS)


class IdGenerator:
    """Creation-time ids: milliseconds since the epoch, as strings.

    Ids never repeat within a process, even for two saves in the same
    millisecond; the later one is bumped forward.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        ms = int(self._clock() * 1000)
        if ms <= self._last:
            ms = self._last + 1
        self._last = ms
        return str(ms)


new_entity_id = IdGenerator()


@dataclass
class SaveResult:
    """Outcome of a save: the stored record and whether it was newly inserted."""

    record: dict[str, Any]
    created: bool

    @property
    def id(self) -> str:
        return self.record["id"]


def _matches(record: Any, entity_id: str) -> bool:
    return isinstance(record, dict) and record.get("id") == entity_id


class EntityStore:
    """List/save/delete over the JSON tables of a storage backend."""

    def __init__(
        self,
        backend: StorageBackend,
        id_factory: Callable[[], str] = new_entity_id,
    ) -> None:
        self._backend = backend
        self._new_id = id_factory

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def new_id(self) -> str:
        return self._new_id()

    def list(self, table: str) -> list[dict[str, Any]]:
        """Return the records of a table in stored order.

        A missing table is empty. A corrupt one is logged and also treated as
        empty, so one bad table never takes the rest of the app down with it.
        """
        raw = self._backend.get(table)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("Failed to parse stored table '%s': %s, treating it as empty", table, e)
            return []
        if not isinstance(data, list):
            logger.error(
                "Stored table '%s' is a %s, not a list, treating it as empty",
                table, type(data).__name__,
            )
            return []
        return data

    def get(self, table: str, entity_id: str) -> dict[str, Any] | None:
        for record in self.list(table):
            if _matches(record, entity_id):
                return record
        return None

    def replace(self, table: str, records: list[dict[str, Any]]) -> None:
        """Overwrite a whole table."""
        self._backend.set(table, json.dumps(records))

    def save(self, table: str, record: dict[str, Any]) -> SaveResult:
        """Insert or update a record.

        Without an id the record gets a fresh one and is appended. With an id,
        the first record carrying it is replaced in place. An id that matches
        nothing is treated as an upsert: the record is appended under that id.
        The caller's mapping is not modified.
        """
        record = dict(record)
        records = self.list(table)

        if not record.get("id"):
            record["id"] = self._new_id()
            records.append(record)
            created = True
        else:
            index = next((i for i, r in enumerate(records) if _matches(r, record["id"])), None)
            if index is None:
                logger.warning(
                    "No %s record with id %s, inserting it as new", table, record["id"],
                )
                records.append(record)
                created = True
            else:
                records[index] = record
                created = False

        self.replace(table, records)
        logger.debug("%s %s record %s", "Created" if created else "Updated", table, record["id"])
        return SaveResult(record=record, created=created)

    def delete(self, table: str, entity_id: str) -> int:
        """Remove every record with this id. Returns how many were removed."""
        records = self.list(table)
        kept = [r for r in records if not _matches(r, entity_id)]
        removed = len(records) - len(kept)
        self.replace(table, kept)
        if removed:
            logger.info("Deleted %s record %s", table, entity_id)
        return removed
