"""Saved calculations, most recent first, capped to a fixed history length."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from .entity_store import PROJECTS, EntityStore, SaveResult
from .models import UNNAMED_PROJECT, CostBreakdown, Project, ProjectInputs, _num, isoformat_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


@dataclass
class HistorySummary:
    count: int
    average_total: float
    recent: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "averageTotal": self.average_total,
            "recent": self.recent,
        }


class ProjectHistory:
    """Stamping and capping rules on top of the projects table."""

    def __init__(
        self,
        store: EntityStore,
        limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._limit = limit
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    def list(self) -> list[dict[str, Any]]:
        return self._store.list(PROJECTS)

    def get(self, project_id: str) -> dict[str, Any] | None:
        return self._store.get(PROJECTS, project_id)

    def load(self, project_id: str) -> Project | None:
        """Fetch a project parsed for re-editing, legacy time fields resolved."""
        data = self.get(project_id)
        if data is None:
            return None
        return Project.from_dict(data)

    def delete(self, project_id: str) -> int:
        return self._store.delete(PROJECTS, project_id)

    def save(self, project: dict[str, Any]) -> SaveResult:
        """Stamp and store a project.

        A known id is replaced where it stands; anything else goes to the
        head of the history. Entries beyond the limit fall off the tail.
        """
        project = dict(project)
        if not project.get("id"):
            project["id"] = self._store.new_id()
        project["updatedAt"] = isoformat_utc(self._clock())

        projects = self.list()
        index = next(
            (i for i, p in enumerate(projects) if isinstance(p, dict) and p.get("id") == project["id"]),
            None,
        )
        if index is not None:
            projects[index] = project
            created = False
        else:
            projects.insert(0, project)
            created = True

        if len(projects) > self._limit:
            dropped = len(projects) - self._limit
            del projects[self._limit:]
            logger.debug("Project history over %d entries, dropped %d oldest", self._limit, dropped)

        self._store.replace(PROJECTS, projects)
        logger.info("Saved project %s (%s)", project["id"], project.get("name"))
        return SaveResult(record=project, created=created)

    def summary(self, recent: int = 5) -> HistorySummary:
        """Dashboard figures: project count, average total cost, latest entries."""
        projects = self.list()
        totals = [_stored_total(p) for p in projects]
        average = sum(totals) / len(totals) if totals else 0.0
        return HistorySummary(count=len(projects), average_total=average, recent=projects[:recent])


def _stored_total(project: Any) -> float:
    """costs.total of a stored project, 0 when missing or unusable."""
    costs = project.get("costs") if isinstance(project, dict) else None
    if not isinstance(costs, dict):
        return 0.0
    return _num(costs.get("total"))


def build_project(
    name: str | None,
    printer_id: str,
    material_id: str,
    inputs: ProjectInputs,
    breakdown: CostBreakdown,
    project_id: str | None = None,
) -> dict[str, Any]:
    """Assemble the stored record for a calculated job."""
    project = Project(
        id=project_id,
        name=name or UNNAMED_PROJECT,
        printer_id=printer_id,
        material_id=material_id,
        weight=inputs.weight,
        time_d=inputs.time_d,
        time_h=inputs.time_h,
        time_m=inputs.time_m,
        labor_time=inputs.labor_time,
        fail_rate=inputs.fail_rate,
        total_hours=breakdown.total_hours,
        costs=breakdown.costs_dict(),
    )
    data = project.to_dict()
    if project_id is None:
        del data["id"]
    del data["updatedAt"]
    return data
