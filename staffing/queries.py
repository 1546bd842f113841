"""
Read models for the capacity dashboards.

Every figure is derived from one read of the assignment rows, so the
totals, availability and utilization shown for an engineer always agree
with the assignments listed beside them. Views may be stale by the time
a caller acts on them; the ledger re-checks on commit.
"""

from collections import defaultdict
from typing import Any

from staffing import config
from staffing.allocation.ledger import Assignment
from staffing.capacity_truth import (
    capacity_snapshot,
    days_remaining,
    days_remaining_label,
    progress_percent,
    utilization_percent,
)
from staffing.entities import Engineer, Registry


class CapacityQueries:
    """Dashboard queries over the registry and the ledger."""

    def __init__(self, registry: Registry | None = None):
        self.registry = registry or Registry()
        self.ledger = self.registry.ledger

    def _assignments_by_engineer(self) -> dict[str, list[Assignment]]:
        grouped: dict[str, list[Assignment]] = defaultdict(list)
        for a in self.ledger.all_assignments():
            grouped[a.engineer_id].append(a)
        return grouped

    def _project_names(self) -> dict[str, str]:
        rows = self.registry.store.query("SELECT id, name FROM projects")
        return {r["id"]: r["name"] for r in rows}

    def _assignment_view(self, a: Assignment, project_names: dict[str, str], now) -> dict[str, Any]:
        return {
            "id": a.id,
            "project_id": a.project_id,
            "project_name": project_names.get(a.project_id),
            "engineer_id": a.engineer_id,
            "allocation_percentage": a.allocation_percentage,
            "start_date": a.start_date,
            "end_date": a.end_date,
            "role": a.role,
            "status": str(a.status(now)),
            "progress_percent": round(progress_percent(a.start_date, a.end_date, now), 1),
            "days_remaining": days_remaining(a.end_date, now),
            "days_remaining_label": days_remaining_label(a.end_date, now),
        }

    @staticmethod
    def _capacity_view(engineer: Engineer, assignments: list[Assignment]) -> dict[str, Any]:
        snap = capacity_snapshot(
            engineer.max_capacity, sum(a.allocation_percentage for a in assignments)
        )
        return {
            "id": engineer.id,
            "name": engineer.name,
            "seniority": engineer.seniority,
            "department": engineer.department,
            "max_capacity": snap.max_capacity,
            "total_allocated": snap.total_allocated,
            "available_capacity": snap.available_capacity,
            "utilization_percent": round(snap.utilization_pct, 1),
            "status": str(snap.bucket),
            "color": snap.color,
        }

    # ==================== Views ====================

    def engineer_capacity_list(self) -> list[dict[str, Any]]:
        """Every engineer with committed and remaining capacity (assignment picker)."""
        grouped = self._assignments_by_engineer()
        return [
            self._capacity_view(e, grouped.get(e.id, []))
            for e in self.registry.list_engineers()
        ]

    def engineer_capacity(self, engineer_id: str) -> dict[str, Any]:
        engineer = self.registry.require_engineer(engineer_id)
        return self._capacity_view(engineer, self.ledger.assignments_for(engineer_id))

    def engineer_assignments(self, engineer_id: str, now=None) -> list[dict[str, Any]]:
        """An engineer's assignments with their timeline position."""
        self.registry.require_engineer(engineer_id)
        names = self._project_names()
        return [
            self._assignment_view(a, names, now) for a in self.ledger.assignments_for(engineer_id)
        ]

    def availability(self, now=None) -> list[dict[str, Any]]:
        """Availability matrix: one card per engineer with their assignments."""
        grouped = self._assignments_by_engineer()
        names = self._project_names()
        cards = []
        for engineer in self.registry.list_engineers():
            assignments = grouped.get(engineer.id, [])
            capacity = self._capacity_view(engineer, assignments)
            cards.append(
                {
                    "id": engineer.id,
                    "name": engineer.name,
                    "department": engineer.department,
                    "skills": engineer.skills,
                    "max_capacity": capacity["max_capacity"],
                    "available": capacity["available_capacity"],
                    "current_allocation": capacity["total_allocated"],
                    "utilization_percent": capacity["utilization_percent"],
                    "status": capacity["status"],
                    "color": capacity["color"],
                    "assignments": [self._assignment_view(a, names, now) for a in assignments],
                }
            )
        return cards

    def team_summary(self) -> dict[str, Any]:
        """Header tiles for the availability matrix."""
        views = self.engineer_capacity_list()
        ceiling = config.AVAILABLE_RESOURCE_CEILING
        utilizations = [
            utilization_percent(v["total_allocated"], v["max_capacity"]) for v in views
        ]
        return {
            "total_engineers": len(views),
            "available_resources": sum(1 for u in utilizations if u <= ceiling),
            "high_utilization": sum(1 for u in utilizations if u > ceiling),
            "overloaded": sum(1 for v in views if v["status"] == "Overloaded"),
            "average_utilization": round(sum(utilizations) / len(utilizations), 1)
            if utilizations
            else 0.0,
        }
