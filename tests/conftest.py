"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from calc3d.backends import MemoryBackend
from calc3d.config import AppConfig
from calc3d.entity_store import EntityStore
from calc3d.models import Material, Printer, ProjectInputs, Settings
from calc3d.projects import ProjectHistory
from calc3d.settings_store import SettingsStore

FIXED_NOW = datetime(2025, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        data_dir=str(tmp_path / "data"),
        host="127.0.0.1",
        port=8080,
        project_history_limit=50,
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> EntityStore:
    return EntityStore(backend)


@pytest.fixture
def settings_store(backend) -> SettingsStore:
    return SettingsStore(backend)


@pytest.fixture
def history(store, fixed_now) -> ProjectHistory:
    return ProjectHistory(store, clock=lambda: fixed_now)


@pytest.fixture
def printer() -> Printer:
    return Printer(id="p1", name="Ender 3", price=2000.0, consumption=0.2, lifespan=2000.0, maintenance=0.0)


@pytest.fixture
def material() -> Material:
    return Material(id="m1", name="PLA Black", type="PLA", price=120.0, weight=1000.0)


@pytest.fixture
def settings() -> Settings:
    return Settings(kwh_cost=0.8, labor_cost=20.0, markup=50.0, currency="BRL")


@pytest.fixture
def inputs() -> ProjectInputs:
    return ProjectInputs(weight=100, time_d=1, time_h=2, time_m=30, labor_time=0.5, fail_rate=10)
