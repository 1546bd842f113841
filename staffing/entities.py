"""Entity classes for Engineers and Projects, plus the registry that stores them."""

import json
import logging
import uuid
from dataclasses import dataclass, field

from staffing import config, safe_sql
from staffing.allocation.ledger import AllocationLedger, Assignment, now_iso
from staffing.allocation.validator import coerce_date, coerce_percentage
from staffing.capacity_truth import to_utc_datetime
from staffing.errors import NotFound, ValidationError
from staffing.state_store import StateStore, get_store

logger = logging.getLogger(__name__)


def _load_list(raw) -> list[str]:
    if isinstance(raw, str):
        return json.loads(raw or "[]")
    return list(raw or [])


def _clean_skills(skills) -> list[str]:
    """Trim, drop blanks, de-duplicate while keeping first-seen order."""
    if skills is None:
        return []
    if isinstance(skills, str):
        skills = skills.split(",")
    seen: dict[str, None] = {}
    for s in skills:
        s = str(s).strip()
        if s:
            seen.setdefault(s, None)
    return list(seen)


# ============================================================================
# ENGINEER
# ============================================================================


@dataclass
class Engineer:
    id: str
    name: str
    skills: list[str] = field(default_factory=list)
    seniority: str = "mid"
    department: str | None = None
    max_capacity: int = config.DEFAULT_MAX_CAPACITY
    email: str | None = None

    created_at: str = None
    updated_at: str = None


def _row_to_engineer(row: dict) -> Engineer:
    return Engineer(
        id=row["id"],
        name=row["name"],
        skills=_load_list(row.get("skills")),
        seniority=row.get("seniority") or "mid",
        department=row.get("department"),
        max_capacity=row["max_capacity"],
        email=row.get("email"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _check_max_capacity(value) -> int:
    value = coerce_percentage(value, "maxCapacity")
    if not config.MIN_MAX_CAPACITY <= value <= config.MAX_MAX_CAPACITY:
        raise ValidationError(
            f"maxCapacity must be between {config.MIN_MAX_CAPACITY} and "
            f"{config.MAX_MAX_CAPACITY}, got {value}",
            field="maxCapacity",
        )
    return value


def _check_choice(value: str, choices: tuple[str, ...], field_name: str) -> str:
    value = (value or "").strip().lower()
    if value not in choices:
        raise ValidationError(
            f"{field_name} must be one of {', '.join(choices)}, got {value!r}", field=field_name
        )
    return value


# ============================================================================
# PROJECT
# ============================================================================


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    required_skills: list[str] = field(default_factory=list)
    status: str = "planning"
    priority: str = "medium"
    team_size: int = 1
    start_date: str | None = None
    end_date: str | None = None
    manager_id: str | None = None
    assignment_count: int = 0

    created_at: str = None
    updated_at: str = None

    def matches(self, search: str) -> bool:
        """Case-insensitive match over name, description, required skills and priority."""
        needle = search.lower()
        return (
            needle in self.name.lower()
            or needle in (self.description or "").lower()
            or any(needle in s.lower() for s in self.required_skills)
            or needle in (self.priority or "").lower()
        )


def _row_to_project(row: dict) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row.get("description") or "",
        required_skills=_load_list(row.get("required_skills")),
        status=row.get("status") or "planning",
        priority=row.get("priority") or "medium",
        team_size=row.get("team_size") or 1,
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        manager_id=row.get("manager_id"),
        assignment_count=row.get("assignment_count") or 0,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


_PROJECT_SELECT = (
    "SELECT p.*, (SELECT COUNT(*) FROM assignments a WHERE a.project_id = p.id) "
    "AS assignment_count FROM projects p"
)


# ============================================================================
# REGISTRY
# ============================================================================


class Registry:
    """
    Engineers and projects.

    Capacity-affecting changes (maxCapacity edits, project deletion) are
    routed through the AllocationLedger so they share its critical section.
    """

    def __init__(self, store: StateStore | None = None, ledger: AllocationLedger | None = None):
        self.store = store or get_store()
        self.ledger = ledger or AllocationLedger(self.store)

    # ---------------- engineers ----------------

    def register_engineer(
        self,
        name: str,
        skills=None,
        seniority: str = "mid",
        department: str | None = None,
        max_capacity: int = config.DEFAULT_MAX_CAPACITY,
        email: str | None = None,
        id: str | None = None,
    ) -> Engineer:
        """
        Register an engineer.

        maxCapacity of 0 is refused here so utilization is always defined.
        """
        if not name or not name.strip():
            raise ValidationError("name is required", field="name")
        now = now_iso()
        engineer = Engineer(
            id=id or str(uuid.uuid4()),
            name=name.strip(),
            skills=_clean_skills(skills),
            seniority=_check_choice(seniority, config.SENIORITY_LEVELS, "seniority"),
            department=(department or "").strip() or None,
            max_capacity=_check_max_capacity(max_capacity),
            email=(email or "").strip() or None,
            created_at=now,
            updated_at=now,
        )
        self.store.insert(
            "engineers",
            {
                "id": engineer.id,
                "name": engineer.name,
                "email": engineer.email,
                "skills": engineer.skills,
                "seniority": engineer.seniority,
                "department": engineer.department,
                "max_capacity": engineer.max_capacity,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("registry: registered engineer %s (%s)", engineer.id, engineer.name)
        return engineer

    def get_engineer(self, engineer_id: str) -> Engineer | None:
        row = self.store.get("engineers", engineer_id)
        return _row_to_engineer(row) if row else None

    def require_engineer(self, engineer_id: str) -> Engineer:
        engineer = self.get_engineer(engineer_id)
        if engineer is None:
            raise NotFound("engineer", engineer_id)
        return engineer

    def find_engineer(self, name: str) -> Engineer | None:
        """Find engineer by exact (case-insensitive) name."""
        rows = self.store.query(
            "SELECT * FROM engineers WHERE LOWER(name) = LOWER(?) LIMIT 1", [name]
        )
        return _row_to_engineer(rows[0]) if rows else None

    def list_engineers(self, department: str | None = None) -> list[Engineer]:
        if department:
            rows = self.store.query(
                "SELECT * FROM engineers WHERE department = ? ORDER BY name", [department]
            )
        else:
            rows = self.store.query("SELECT * FROM engineers ORDER BY name")
        return [_row_to_engineer(r) for r in rows]

    def update_engineer(self, engineer_id: str, **changes) -> Engineer:
        """
        Profile update. Accepts name, email, skills, seniority, department
        and max_capacity; None values are ignored.
        """
        self.require_engineer(engineer_id)
        updates: dict = {}
        new_max = None
        for key, value in changes.items():
            if value is None:
                continue
            if key == "name":
                if not value.strip():
                    raise ValidationError("name cannot be empty", field="name")
                updates["name"] = value.strip()
            elif key == "skills":
                updates["skills"] = _clean_skills(value)
            elif key == "seniority":
                updates["seniority"] = _check_choice(value, config.SENIORITY_LEVELS, "seniority")
            elif key in ("department", "email"):
                updates[key] = value.strip() or None
            elif key == "max_capacity":
                new_max = _check_max_capacity(value)
            else:
                raise ValidationError(f"Unknown engineer field: {key}", field=key)

        if new_max is not None:
            self.ledger.resize_capacity(engineer_id, new_max)
        if updates:
            updates["updated_at"] = now_iso()
            self.store.update("engineers", engineer_id, updates)
        return self.require_engineer(engineer_id)

    # ---------------- projects ----------------

    def create_project(
        self,
        name: str,
        description: str = "",
        required_skills=None,
        status: str = "planning",
        priority: str = "medium",
        team_size: int = 1,
        start_date: str | None = None,
        end_date: str | None = None,
        manager_id: str | None = None,
        id: str | None = None,
    ) -> Project:
        """Create a project. Returns the stored Project."""
        if not name or not name.strip():
            raise ValidationError("name is required", field="name")
        if isinstance(team_size, bool) or not isinstance(team_size, int) or team_size < 1:
            raise ValidationError("teamSize must be a positive integer", field="teamSize")
        start_date = coerce_date(start_date, "startDate") if start_date else None
        end_date = coerce_date(end_date, "endDate") if end_date else None
        if start_date and end_date and to_utc_datetime(start_date) > to_utc_datetime(end_date):
            raise ValidationError(
                f"startDate {start_date} is after endDate {end_date}", field="startDate"
            )

        now = now_iso()
        project = Project(
            id=id or str(uuid.uuid4()),
            name=name.strip(),
            description=description or "",
            required_skills=_clean_skills(required_skills),
            status=_check_choice(status, config.PROJECT_STATUSES, "status"),
            priority=_check_choice(priority, config.PROJECT_PRIORITIES, "priority"),
            team_size=team_size,
            start_date=start_date,
            end_date=end_date,
            manager_id=manager_id,
            created_at=now,
            updated_at=now,
        )
        self.store.insert(
            "projects",
            {
                "id": project.id,
                "name": project.name,
                "description": project.description,
                "required_skills": project.required_skills,
                "status": project.status,
                "priority": project.priority,
                "team_size": project.team_size,
                "start_date": project.start_date,
                "end_date": project.end_date,
                "manager_id": project.manager_id,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("registry: created project %s (%s)", project.id, project.name)
        return project

    def get_project(self, project_id: str) -> Project | None:
        rows = self.store.query(f"{_PROJECT_SELECT} WHERE p.id = ?", [project_id])
        return _row_to_project(rows[0]) if rows else None

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise NotFound("project", project_id)
        return project

    def find_project(self, name: str) -> Project | None:
        """Find project by exact (case-insensitive) name."""
        rows = self.store.query(
            f"{_PROJECT_SELECT} WHERE LOWER(p.name) = LOWER(?) LIMIT 1", [name]
        )
        return _row_to_project(rows[0]) if rows else None

    def list_projects(
        self,
        manager_id: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        search: str | None = None,
    ) -> list[Project]:
        """List projects with optional filters."""
        conditions = []
        params = []

        if manager_id:
            conditions.append("p.manager_id = ?")
            params.append(manager_id)
        if status:
            conditions.append("p.status = ?")
            params.append(status.lower())
        if priority:
            conditions.append("p.priority = ?")
            params.append(priority.lower())

        where = safe_sql.where_and(conditions) or "1=1"
        rows = self.store.query(
            f"{_PROJECT_SELECT} WHERE {where} ORDER BY p.created_at DESC, p.name",  # noqa: S608
            params,
        )
        projects = [_row_to_project(r) for r in rows]
        if search and search.strip():
            projects = [p for p in projects if p.matches(search.strip())]
        return projects

    def delete_project(self, project_id: str) -> list[Assignment]:
        """
        Hard-delete a project and every assignment on it, atomically.
        Returns the removed assignments.
        """
        with self.store.transaction() as conn:
            if self.store.get("projects", project_id, conn=conn) is None:
                raise NotFound("project", project_id)
            removed = self.ledger.remove_project_assignments(project_id, conn=conn)
            self.store.delete("projects", project_id, conn=conn)

        logger.info(
            "registry: deleted project %s (%d assignments released)", project_id, len(removed)
        )
        return removed

    def project_stats(self, manager_id: str | None = None) -> dict:
        """Counts of projects per status."""
        projects = self.list_projects(manager_id=manager_id)
        stats = {"total": len(projects)}
        for status in config.PROJECT_STATUSES:
            stats[status.replace("-", "_")] = sum(1 for p in projects if p.status == status)
        return stats
