"""Blocking key/value storage backends.

The stores only need `get(key)` and `set(key, value)` over JSON text, the
same contract the browser's localStorage gives the original web app.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Protocol

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryBackend:
    """In-process backend, used by tests and for throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileBackend:
    """One `<key>.json` file per key inside a data directory.

    Writes go to a temp file in the same directory which then replaces the
    target, so a crash mid-write never leaves a truncated table behind.
    """

    def __init__(self, directory: str) -> None:
        self._directory = directory

    @property
    def directory(self) -> str:
        return self._directory

    def _path(self, key: str) -> str:
        return os.path.join(self._directory, f"{key}.json")

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        os.makedirs(self._directory, exist_ok=True)

        # Atomic write: write to temp file, then rename
        fd, tmp_path = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except Exception:
            # Clean up temp file on failure
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d bytes to %s", len(value), self._path(key))
