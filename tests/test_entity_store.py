"""Tests for the entity store and its storage backends (JSON file persistence)."""

from __future__ import annotations

import json
import os

import pytest

from calc3d.backends import JsonFileBackend, MemoryBackend
from calc3d.entity_store import MATERIALS, PRINTERS, EntityStore, IdGenerator


@pytest.fixture
def sample_printer() -> dict:
    return {
        "name": "Ender 3",
        "price": 1500.0,
        "consumption": 0.35,
        "lifespan": 2000,
        "maintenance": 10,
    }


class TestIdGenerator:
    def test_millisecond_timestamp(self):
        ids = IdGenerator(clock=lambda: 1700000000.123)
        assert ids() == "1700000000123"

    def test_same_millisecond_never_repeats(self):
        ids = IdGenerator(clock=lambda: 1700000000.0)
        generated = [ids() for _ in range(5)]
        assert len(set(generated)) == 5
        assert generated == sorted(generated, key=int)


class TestEntityStore:
    def test_fresh_start(self, store):
        assert store.list(PRINTERS) == []

    def test_save_assigns_id_and_appends(self, store, sample_printer):
        first = store.save(PRINTERS, sample_printer)
        second = store.save(PRINTERS, {**sample_printer, "name": "Prusa MK4"})

        assert first.created is True
        assert first.id
        assert first.id != second.id
        assert [p["name"] for p in store.list(PRINTERS)] == ["Ender 3", "Prusa MK4"]

    def test_save_does_not_mutate_input(self, store, sample_printer):
        store.save(PRINTERS, sample_printer)
        assert "id" not in sample_printer

    def test_empty_id_counts_as_new(self, store, sample_printer):
        result = store.save(PRINTERS, {**sample_printer, "id": ""})
        assert result.created is True
        assert result.id != ""

    def test_update_replaces_in_place(self, store, sample_printer):
        a = store.save(PRINTERS, sample_printer).record
        store.save(PRINTERS, {**sample_printer, "name": "Other"})

        result = store.save(PRINTERS, {**a, "price": 999.0})

        assert result.created is False
        printers = store.list(PRINTERS)
        assert len(printers) == 2
        assert printers[0]["id"] == a["id"]
        assert printers[0]["price"] == 999.0

    def test_unknown_id_is_inserted(self, store, sample_printer):
        """A supplied id that matches nothing is stored under that id (upsert)."""
        result = store.save(PRINTERS, {**sample_printer, "id": "12345"})
        assert result.created is True
        assert store.get(PRINTERS, "12345") is not None
        assert len(store.list(PRINTERS)) == 1

    def test_get(self, store, sample_printer):
        saved = store.save(PRINTERS, sample_printer)
        assert store.get(PRINTERS, saved.id)["name"] == "Ender 3"
        assert store.get(PRINTERS, "NONEXISTENT") is None

    def test_delete(self, store, sample_printer):
        saved = store.save(PRINTERS, sample_printer)
        assert store.delete(PRINTERS, saved.id) == 1
        assert store.list(PRINTERS) == []

    def test_delete_removes_every_duplicate(self, store, backend):
        backend.set(MATERIALS, json.dumps([{"id": "1"}, {"id": "2"}, {"id": "1"}]))
        assert store.delete(MATERIALS, "1") == 2
        assert store.list(MATERIALS) == [{"id": "2"}]

    def test_delete_nonexistent(self, store):
        assert store.delete(PRINTERS, "NOPE") == 0  # should not raise

    def test_tables_are_independent(self, store, sample_printer):
        store.save(PRINTERS, sample_printer)
        assert store.list(MATERIALS) == []

    def test_corrupt_table(self, backend):
        """Corrupt JSON should be handled gracefully."""
        backend.set(PRINTERS, "{invalid json")
        store = EntityStore(backend)
        assert store.list(PRINTERS) == []  # should not raise

    def test_non_list_table(self, backend):
        backend.set(PRINTERS, json.dumps({"id": "1"}))
        assert EntityStore(backend).list(PRINTERS) == []

    def test_save_over_corrupt_table_starts_fresh(self, backend, sample_printer):
        backend.set(PRINTERS, "not json at all")
        store = EntityStore(backend)
        store.save(PRINTERS, sample_printer)
        assert len(store.list(PRINTERS)) == 1


class TestJsonFileBackend:
    def test_missing_key(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path))
        assert backend.get("printers") is None

    def test_save_and_load(self, tmp_path, sample_printer):
        store = EntityStore(JsonFileBackend(str(tmp_path)))
        saved = store.save(PRINTERS, sample_printer)

        # Reload from disk
        store2 = EntityStore(JsonFileBackend(str(tmp_path)))
        loaded = store2.get(PRINTERS, saved.id)
        assert loaded is not None
        assert loaded["name"] == "Ender 3"
        assert loaded["consumption"] == 0.35

    def test_one_file_per_key(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path))
        backend.set("printers", "[]")
        backend.set("settings", "{}")
        assert sorted(os.listdir(tmp_path)) == ["printers.json", "settings.json"]

    def test_creates_directory(self, tmp_path):
        directory = tmp_path / "nested" / "data"
        backend = JsonFileBackend(str(directory))
        backend.set("materials", "[]")
        assert (directory / "materials.json").read_text() == "[]"

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "printers.json").write_text("{invalid json")
        store = EntityStore(JsonFileBackend(str(tmp_path)))
        assert store.list(PRINTERS) == []

    def test_no_temp_files_left_behind(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path))
        for i in range(3):
            backend.set("projects", json.dumps([{"id": str(i)}]))
        assert os.listdir(tmp_path) == ["projects.json"]


class TestMemoryBackend:
    def test_initial_data(self):
        backend = MemoryBackend({"printers": "[]"})
        assert backend.get("printers") == "[]"
        assert backend.get("materials") is None
        assert backend.keys() == ["printers"]
