"""Singleton settings record layered over fixed defaults."""

from __future__ import annotations

import json
import logging
from typing import Any

from .backends import StorageBackend
from .models import Settings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"

DEFAULT_SETTINGS: dict[str, Any] = {
    "kwhCost": 0.80,
    "laborCost": 20.00,
    "markup": 50,
    "currency": "BRL",
}


class SettingsStore:
    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    def _stored(self) -> dict[str, Any]:
        raw = self._backend.get(SETTINGS_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("Failed to parse stored settings: %s, using defaults", e)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("Stored settings are a %s, not an object, using defaults", type(data).__name__)
            return {}
        return data

    def get_raw(self) -> dict[str, Any]:
        """Stored fields shallow-merged over the defaults."""
        return {**DEFAULT_SETTINGS, **self._stored()}

    def get(self) -> Settings:
        return Settings.from_dict(self.get_raw())

    def set(self, settings: Settings | dict[str, Any]) -> None:
        """Persist the record exactly as given; callers pass a complete record."""
        data = settings.to_dict() if isinstance(settings, Settings) else settings
        self._backend.set(SETTINGS_KEY, json.dumps(data))
        logger.info("Settings saved")
