"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".calc3d")


@dataclass
class AppConfig:
    # Local storage
    data_dir: str = DEFAULT_DATA_DIR

    # HTTP API
    host: str = "127.0.0.1"
    port: int = 8080

    # Project history
    project_history_limit: int = 50

    # Logging
    log_level: str = "INFO"


def _env(key: str, default: str) -> str:
    val = os.environ.get(key)
    if val is not None:
        return val
    return default


def _env_int(key: str, default: int) -> int:
    val = os.environ.get(key)
    if val is None:
        return default
    return int(val)


def load_config() -> AppConfig:
    return AppConfig(
        data_dir=_env("CALC3D_DATA_DIR", DEFAULT_DATA_DIR),
        host=_env("CALC3D_HOST", "127.0.0.1"),
        port=_env_int("CALC3D_PORT", 8080),
        project_history_limit=_env_int("CALC3D_PROJECT_HISTORY_LIMIT", 50),
        log_level=_env("CALC3D_LOG_LEVEL", "INFO"),
    )
