"""
Load a team roster from YAML.

Document shape:

    engineers:
      - name: Ada
        skills: [python, sql]
        seniority: senior
        department: Platform
        maxCapacity: 100
    projects:
      - name: Billing
        status: active
        priority: high
        requiredSkills: [python]
    assignments:
      - engineer: Ada
        project: Billing
        allocationPercentage: 60
        startDate: 2024-01-01
        endDate: 2024-03-31
        role: Tech Lead

Engineers and projects that already exist (matched by name) are reused.
Assignments are proposed through the AssignmentValidator, so a seed file
cannot over-allocate anybody.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from staffing.allocation import AssignmentValidator
from staffing.entities import Registry
from staffing.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


def _pick(entry: dict, camel: str, snake: str, default=None):
    if camel in entry:
        return entry[camel]
    return entry.get(snake, default)


def load_seed_file(path: str | Path) -> dict[str, Any]:
    """Parse a seed document. An empty file is an empty roster."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Seed file {path} must contain a mapping at the top level")
    return data


def apply_seed(
    data: dict[str, Any],
    registry: Registry | None = None,
    validator: AssignmentValidator | None = None,
) -> dict[str, int]:
    """
    Apply a parsed seed document.

    Returns counts of engineers, projects and assignments created.
    Stops at the first rejected entry; everything before it stays committed.
    """
    registry = registry or Registry()
    validator = validator or AssignmentValidator(registry.ledger)
    counts = {"engineers": 0, "projects": 0, "assignments": 0}

    for entry in data.get("engineers") or []:
        if registry.find_engineer(entry.get("name") or "") is not None:
            continue
        registry.register_engineer(
            name=entry.get("name"),
            skills=entry.get("skills"),
            seniority=entry.get("seniority", "mid"),
            department=entry.get("department"),
            max_capacity=_pick(entry, "maxCapacity", "max_capacity", 100),
            email=entry.get("email"),
        )
        counts["engineers"] += 1

    for entry in data.get("projects") or []:
        if registry.find_project(entry.get("name") or "") is not None:
            continue
        registry.create_project(
            name=entry.get("name"),
            description=entry.get("description", ""),
            required_skills=_pick(entry, "requiredSkills", "required_skills"),
            status=entry.get("status", "planning"),
            priority=entry.get("priority", "medium"),
            team_size=_pick(entry, "teamSize", "team_size", 1),
            start_date=_iso(_pick(entry, "startDate", "start_date")),
            end_date=_iso(_pick(entry, "endDate", "end_date")),
            manager_id=_pick(entry, "managerId", "manager_id"),
        )
        counts["projects"] += 1

    for entry in data.get("assignments") or []:
        if not entry.get("engineer") or not entry.get("project"):
            raise ValidationError(f"Seed assignment needs engineer and project names: {entry}")
        engineer = registry.find_engineer(entry["engineer"])
        if engineer is None:
            raise NotFound("engineer", entry["engineer"])
        project = registry.find_project(entry["project"])
        if project is None:
            raise NotFound("project", entry["project"])
        validator.propose_assignment(
            engineer_id=engineer.id,
            project_id=project.id,
            allocation_percentage=_pick(entry, "allocationPercentage", "allocation_percentage"),
            start_date=_pick(entry, "startDate", "start_date"),
            end_date=_pick(entry, "endDate", "end_date"),
            role=entry.get("role"),
        )
        counts["assignments"] += 1

    logger.info(
        "seed: created %d engineers, %d projects, %d assignments",
        counts["engineers"],
        counts["projects"],
        counts["assignments"],
    )
    return counts


def _iso(value):
    # YAML turns bare 2024-01-01 into a date object
    return value.isoformat() if hasattr(value, "isoformat") else value


def seed_from_file(path: str | Path, registry: Registry | None = None) -> dict[str, int]:
    return apply_seed(load_seed_file(path), registry=registry)
