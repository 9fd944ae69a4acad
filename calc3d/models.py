"""Shared data models for the calculator.

Records are stored as plain JSON objects using the camelCase keys of the
backup document format; the dataclasses here convert to and from that shape.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

DEFAULT_LIFESPAN_HOURS = 2000.0
UNNAMED_PROJECT = "Projeto Sem Nome"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix, e.g. 2024-05-01T12:00:00.000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class ValidationError(ValueError):
    """Raised when caller input cannot be turned into a record."""


def _num(value: Any, default: float = 0.0) -> float:
    """Lenient numeric read for stored records: anything unusable becomes default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(f) else f


def _parse_required(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{key} is required")
    try:
        f = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be a number, got {value!r}") from e
    if math.isnan(f):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    return f


def _parse_optional(data: dict[str, Any], key: str, default: float = 0.0) -> float:
    """Parse an optional numeric field; empty, zero or missing falls back to default."""
    value = data.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    try:
        f = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be a number, got {value!r}") from e
    if math.isnan(f) or f == 0:
        return default
    return f


def _optional_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class Printer:
    """A 3D printer and the figures needed to charge for its time."""

    name: str
    price: float
    consumption: float = 0.0  # kW
    lifespan: float = DEFAULT_LIFESPAN_HOURS  # hours
    maintenance: float = 0.0  # percent of price over the lifespan
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Printer:
        return cls(
            id=_optional_id(data.get("id")),
            name=str(data.get("name") or ""),
            price=_num(data.get("price")),
            consumption=_num(data.get("consumption")),
            lifespan=_num(data.get("lifespan")),
            maintenance=_num(data.get("maintenance")),
        )

    @classmethod
    def from_input(cls, data: dict[str, Any]) -> Printer:
        """Build a printer from form-style input, applying the input defaults."""
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        return cls(
            id=_optional_id(data.get("id")),
            name=name,
            price=_parse_required(data, "price"),
            consumption=_parse_optional(data, "consumption"),
            lifespan=_parse_optional(data, "lifespan", DEFAULT_LIFESPAN_HOURS),
            maintenance=_parse_optional(data, "maintenance"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "consumption": self.consumption,
            "lifespan": self.lifespan,
            "maintenance": self.maintenance,
        }


@dataclass
class Material:
    """A roll/spool of printable material."""

    name: str
    price: float  # price of one roll
    weight: float  # roll weight in grams
    type: str = ""  # e.g. "PLA", "PETG"
    id: Optional[str] = None

    @property
    def cost_per_gram(self) -> float:
        """Roll price divided by roll weight. Not guarded against a zero weight."""
        return self.price / self.weight

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Material:
        return cls(
            id=_optional_id(data.get("id")),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or ""),
            price=_num(data.get("price")),
            weight=_num(data.get("weight")),
        )

    @classmethod
    def from_input(cls, data: dict[str, Any]) -> Material:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        return cls(
            id=_optional_id(data.get("id")),
            name=name,
            type=str(data.get("type") or ""),
            price=_parse_required(data, "price"),
            weight=_parse_required(data, "weight"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "price": self.price,
            "weight": self.weight,
        }


@dataclass
class Settings:
    """Global pricing settings."""

    kwh_cost: float
    labor_cost: float  # per hour
    markup: float  # percent
    currency: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        return cls(
            kwh_cost=_num(data.get("kwhCost")),
            labor_cost=_num(data.get("laborCost")),
            markup=_num(data.get("markup")),
            currency=str(data.get("currency") or ""),
        )

    @classmethod
    def from_input(cls, data: dict[str, Any], currency: str = "BRL") -> Settings:
        return cls(
            kwh_cost=_parse_required(data, "kwhCost"),
            labor_cost=_parse_required(data, "laborCost"),
            markup=_parse_required(data, "markup"),
            currency=str(data.get("currency") or currency),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kwhCost": self.kwh_cost,
            "laborCost": self.labor_cost,
            "markup": self.markup,
            "currency": self.currency,
        }


@dataclass
class ProjectInputs:
    """Per-job inputs entered for a calculation."""

    weight: float = 0.0  # grams used
    time_d: float = 0.0
    time_h: float = 0.0
    time_m: float = 0.0
    labor_time: float = 0.0  # hours
    fail_rate: float = 0.0  # percent

    @classmethod
    def from_input(cls, data: dict[str, Any]) -> ProjectInputs:
        return cls(
            weight=_parse_optional(data, "weight"),
            time_d=_parse_optional(data, "timeD"),
            time_h=_parse_optional(data, "timeH"),
            time_m=_parse_optional(data, "timeM"),
            labor_time=_parse_optional(data, "laborTime"),
            fail_rate=_parse_optional(data, "failRate"),
        )


@dataclass
class CostBreakdown:
    material: float
    energy: float
    depreciation: float
    labor: float
    subtotal: float
    total: float  # subtotal plus the failure surcharge
    suggested_price: float
    total_hours: float

    def costs_dict(self) -> dict[str, float]:
        """The `costs` object stored on a project."""
        return {
            "material": self.material,
            "energy": self.energy,
            "depreciation": self.depreciation,
            "labor": self.labor,
            "total": self.total,
            "suggestedPrice": self.suggested_price,
        }

    def share(self) -> dict[str, float]:
        """Fraction of the subtotal taken by each component (all 0 for a zero subtotal)."""
        parts = {
            "material": self.material,
            "energy": self.energy,
            "depreciation": self.depreciation,
            "labor": self.labor,
        }
        if not self.subtotal:
            return {k: 0.0 for k in parts}
        return {k: v / self.subtotal for k, v in parts.items()}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = self.costs_dict()
        data["subtotal"] = self.subtotal
        data["totalHours"] = self.total_hours
        data["share"] = self.share()
        return data


@dataclass
class Project:
    """A saved calculation, as shown in the project history."""

    id: Optional[str]
    name: str
    printer_id: Optional[str]
    material_id: Optional[str]
    weight: float
    time_d: float
    time_h: float
    time_m: float
    labor_time: float
    fail_rate: float
    total_hours: float = 0.0
    costs: dict[str, float] = field(default_factory=dict)
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        """Parse a stored project.

        Projects saved before the day/hour/minute breakdown existed only carry
        totalHours; their breakdown is reconstructed from it.
        """
        total_hours = _num(data.get("totalHours"))
        costs = data.get("costs")
        if data.get("timeD") is not None:
            time_d = _num(data.get("timeD"))
            time_h = _num(data.get("timeH"))
            time_m = _num(data.get("timeM"))
        else:
            time_d = 0.0
            time_h = float(math.floor(total_hours))
            time_m = float(round((total_hours % 1) * 60))
        return cls(
            id=_optional_id(data.get("id")),
            name=str(data.get("name") or UNNAMED_PROJECT),
            printer_id=_optional_id(data.get("printerId")),
            material_id=_optional_id(data.get("materialId")),
            weight=_num(data.get("weight")),
            time_d=time_d,
            time_h=time_h,
            time_m=time_m,
            labor_time=_num(data.get("laborTime")),
            fail_rate=_num(data.get("failRate")),
            total_hours=total_hours,
            costs=dict(costs) if isinstance(costs, dict) else {},
            updated_at=data.get("updatedAt"),
        )

    @property
    def inputs(self) -> ProjectInputs:
        return ProjectInputs(
            weight=self.weight,
            time_d=self.time_d,
            time_h=self.time_h,
            time_m=self.time_m,
            labor_time=self.labor_time,
            fail_rate=self.fail_rate,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "printerId": self.printer_id,
            "materialId": self.material_id,
            "weight": self.weight,
            "totalHours": self.total_hours,
            "timeD": self.time_d,
            "timeH": self.time_h,
            "timeM": self.time_m,
            "laborTime": self.labor_time,
            "failRate": self.fail_rate,
            "costs": dict(self.costs),
            "updatedAt": self.updated_at,
        }
