"""Whole-dataset backup and restore as one JSON document.

Document shape: {printers, materials, projects, settings, timestamp}.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from .entity_store import MATERIALS, PRINTERS, PROJECTS, TABLES, EntityStore
from .models import isoformat_utc, utc_now
from .settings_store import SETTINGS_KEY, SettingsStore

logger = logging.getLogger(__name__)


def backup_filename(now: datetime | None = None) -> str:
    """File name offered when saving a backup, e.g. calc3d_backup_2024-05-01.json."""
    now = now or utc_now()
    return f"calc3d_backup_{now.astimezone(timezone.utc).date().isoformat()}.json"


def _present(value: Any) -> bool:
    """Whether a section counts as supplied. Empty lists and objects do; null, 0 and "" do not."""
    return isinstance(value, (list, dict)) or bool(value)


def _check_sections(data: dict[str, Any]) -> str | None:
    """Validate the shape of every section that will be written.

    Returns a description of the first problem, or None when the whole
    document can be applied.
    """
    for table in TABLES:
        records = data.get(table)
        if not _present(records):
            continue
        if not isinstance(records, list):
            return f"'{table}' must be a list, got {type(records).__name__}"
        for record in records:
            if not isinstance(record, dict):
                return f"'{table}' entries must be objects, got {type(record).__name__}"
    settings = data.get(SETTINGS_KEY)
    if _present(settings) and not isinstance(settings, dict):
        return f"'{SETTINGS_KEY}' must be an object, got {type(settings).__name__}"
    return None


class BackupManager:
    def __init__(
        self,
        store: EntityStore,
        settings_store: SettingsStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._settings = settings_store
        self._clock = clock

    def export(self) -> dict[str, Any]:
        return {
            PRINTERS: self._store.list(PRINTERS),
            MATERIALS: self._store.list(MATERIALS),
            PROJECTS: self._store.list(PROJECTS),
            SETTINGS_KEY: self._settings.get_raw(),
            "timestamp": isoformat_utc(self._clock()),
        }

    def export_json(self) -> str:
        return json.dumps(self.export())

    def import_data(self, document: str | bytes) -> bool:
        """Replace stored data with the contents of a backup document.

        Returns False, with nothing written, when the document is not JSON or
        any section has the wrong shape. Present sections overwrite their
        store wholesale; absent ones leave it alone. Referential
        integrity between the imported tables is not checked.

        The tables are written one after another, not in a transaction. If a
        write fails partway, the tables written before it keep their new
        contents and the error propagates.
        """
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
            logger.error("Import failed, document is not valid JSON: %s", e)
            return False
        if not isinstance(data, dict):
            logger.error("Import failed, document is a %s, not an object", type(data).__name__)
            return False

        problem = _check_sections(data)
        if problem:
            logger.error("Import failed, %s", problem)
            return False

        written: list[str] = []
        try:
            for table in TABLES:
                if _present(data.get(table)):
                    self._store.replace(table, data[table])
                    written.append(table)
            if _present(data.get(SETTINGS_KEY)):
                self._settings.set(data[SETTINGS_KEY])
                written.append(SETTINGS_KEY)
        except Exception:
            logger.exception("Import stopped after writing %s", ", ".join(written) or "nothing")
            raise

        logger.info(
            "Imported backup from %s (%s)",
            data.get("timestamp", "unknown time"), ", ".join(written) or "nothing to restore",
        )
        return True
