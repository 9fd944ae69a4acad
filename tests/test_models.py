"""Tests for record parsing and input validation."""

from __future__ import annotations

import pytest

from calc3d.models import (
    DEFAULT_LIFESPAN_HOURS,
    Material,
    Printer,
    Project,
    ProjectInputs,
    Settings,
    ValidationError,
)


class TestPrinterInput:
    def test_defaults_applied(self):
        printer = Printer.from_input({"name": "Ender 3", "price": "1500"})
        assert printer.price == 1500.0
        assert printer.consumption == 0
        assert printer.lifespan == DEFAULT_LIFESPAN_HOURS
        assert printer.maintenance == 0
        assert printer.id is None

    def test_zero_lifespan_uses_default(self):
        printer = Printer.from_input({"name": "X", "price": 1, "lifespan": 0})
        assert printer.lifespan == DEFAULT_LIFESPAN_HOURS

    def test_name_required(self):
        with pytest.raises(ValidationError):
            Printer.from_input({"name": "  ", "price": 100})

    @pytest.mark.parametrize("price", [None, "", "abc", "nan"])
    def test_price_must_be_numeric(self, price):
        with pytest.raises(ValidationError):
            Printer.from_input({"name": "X", "price": price})

    def test_bad_optional_number(self):
        with pytest.raises(ValidationError):
            Printer.from_input({"name": "X", "price": 1, "consumption": "lots"})

    def test_dict_round_trip(self):
        data = {"id": "1", "name": "Ender 3", "price": 1500.0, "consumption": 0.35, "lifespan": 2000.0, "maintenance": 10.0}
        assert Printer.from_dict(data).to_dict() == data


class TestMaterial:
    def test_cost_per_gram(self):
        assert Material(name="PLA", price=120, weight=1000).cost_per_gram == pytest.approx(0.12)

    def test_weight_required(self):
        with pytest.raises(ValidationError):
            Material.from_input({"name": "PLA", "price": 120})

    def test_from_input(self):
        material = Material.from_input({"id": "5", "name": "PETG", "type": "PETG", "price": 140, "weight": "1000"})
        assert material.to_dict() == {"id": "5", "name": "PETG", "type": "PETG", "price": 140.0, "weight": 1000.0}


class TestSettingsInput:
    def test_currency_kept(self):
        settings = Settings.from_input({"kwhCost": 0.9, "laborCost": 25, "markup": 40}, currency="USD")
        assert settings.currency == "USD"
        assert settings.to_dict()["kwhCost"] == 0.9

    def test_missing_field(self):
        with pytest.raises(ValidationError):
            Settings.from_input({"kwhCost": 0.9})


class TestProjectInputs:
    def test_blank_fields_are_zero(self):
        inputs = ProjectInputs.from_input({"weight": "", "timeH": "3"})
        assert inputs == ProjectInputs(weight=0, time_h=3)


class TestProject:
    def test_from_dict_with_breakdown(self):
        project = Project.from_dict({
            "id": "1", "name": "Vase", "printerId": "p", "materialId": "m",
            "weight": 50, "totalHours": 26.5, "timeD": 1, "timeH": 2, "timeM": 30,
            "laborTime": 0.5, "failRate": 5, "costs": {"total": 10}, "updatedAt": "2025-01-01T00:00:00.000Z",
        })
        assert (project.time_d, project.time_h, project.time_m) == (1, 2, 30)
        assert project.inputs.fail_rate == 5
        assert project.to_dict()["updatedAt"] == "2025-01-01T00:00:00.000Z"

    def test_legacy_total_hours(self):
        project = Project.from_dict({"id": "1", "totalHours": 3.75})
        assert (project.time_d, project.time_h, project.time_m) == (0, 3, 45)

    def test_unnamed(self):
        assert Project.from_dict({"id": "1"}).name == "Projeto Sem Nome"
