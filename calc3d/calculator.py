"""Cost formulas for a print job and their composition into a breakdown.

Every formula is pure and total: degenerate input yields a number (usually 0),
never an exception. The only failure a composition can report is a printer
or material that could not be found, and it is reported through the result,
not raised.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .entity_store import MATERIALS, PRINTERS, EntityStore
from .models import CostBreakdown, Material, Printer, ProjectInputs, Settings
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)


def _falsy(value: Optional[float]) -> bool:
    return not value or (isinstance(value, float) and math.isnan(value))


def material_cost(weight_grams: float, roll_price: float, roll_weight: float) -> float:
    """Cost of the filament used, from the roll price and roll weight."""
    if _falsy(weight_grams) or _falsy(roll_price) or _falsy(roll_weight):
        return 0
    return weight_grams * (roll_price / roll_weight)


def total_hours(d: float = 0, h: float = 0, m: float = 0) -> float:
    return d * 24 + h + m / 60


def energy_cost(hours: float, consumption_kw: float, kwh_cost: float) -> float:
    return hours * consumption_kw * kwh_cost


def depreciation(
    hours: float, printer_price: float, lifespan_hours: float, maintenance_percent: float,
) -> float:
    """Share of the machine's lifetime cost (price plus maintenance) used by this job."""
    if _falsy(lifespan_hours) or lifespan_hours <= 0:
        return 0
    lifetime_cost = printer_price * (1 + maintenance_percent / 100)
    return (lifetime_cost / lifespan_hours) * hours


def labor_cost(labor_hours: float, hourly_rate: float) -> float:
    return labor_hours * hourly_rate


def total_with_failures(subtotal: float, fail_rate_percent: float) -> float:
    # Additive surcharge. Dividing by (1 - rate) would price in the retries
    # more accurately but is deliberately not what is charged.
    return subtotal + subtotal * (fail_rate_percent / 100)


def sell_price(total_cost: float, markup_percent: float) -> float:
    return total_cost * (1 + markup_percent / 100)


@dataclass
class CalculationResult:
    breakdown: Optional[CostBreakdown] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.breakdown is not None


def compose_cost(
    printer: Optional[Printer],
    material: Optional[Material],
    settings: Settings,
    inputs: ProjectInputs,
) -> CalculationResult:
    """Compute the full breakdown for one job."""
    if printer is None or material is None:
        missing = [name for name, obj in (("printer", printer), ("material", material)) if obj is None]
        return CalculationResult(error=f"{' and '.join(missing)} not found")

    hours = total_hours(inputs.time_d, inputs.time_h, inputs.time_m)
    cost_material = material_cost(inputs.weight, material.price, material.weight)
    cost_energy = energy_cost(hours, printer.consumption, settings.kwh_cost)
    cost_depreciation = depreciation(hours, printer.price, printer.lifespan, printer.maintenance)
    cost_labor = labor_cost(inputs.labor_time, settings.labor_cost)

    subtotal = cost_material + cost_energy + cost_depreciation + cost_labor
    total = total_with_failures(subtotal, inputs.fail_rate)

    return CalculationResult(
        breakdown=CostBreakdown(
            material=cost_material,
            energy=cost_energy,
            depreciation=cost_depreciation,
            labor=cost_labor,
            subtotal=subtotal,
            total=total,
            suggested_price=sell_price(total, settings.markup),
            total_hours=hours,
        )
    )


def calculate(
    store: EntityStore,
    settings_store: SettingsStore,
    printer_id: str,
    material_id: str,
    inputs: ProjectInputs,
) -> CalculationResult:
    """Look up the printer, material and settings, then compose the breakdown."""
    printer_data = store.get(PRINTERS, printer_id)
    material_data = store.get(MATERIALS, material_id)
    if printer_data is None or material_data is None:
        logger.error(
            "Printer or material not found in storage (printer_id=%s, material_id=%s)",
            printer_id, material_id,
        )
    return compose_cost(
        Printer.from_dict(printer_data) if printer_data is not None else None,
        Material.from_dict(material_data) if material_data is not None else None,
        settings_store.get(),
        inputs,
    )
