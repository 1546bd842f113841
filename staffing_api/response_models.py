"""
Pydantic request and response models for the staffing API.

Fields are declared in snake_case and exchanged as camelCase JSON
(``maxCapacity``, ``allocationPercentage`` ...). Models accept either
spelling on input so read-model dicts can be validated directly.

Usage:
    from staffing_api.response_models import EngineerCapacity

    @app.get("/endpoint", response_model=list[EngineerCapacity])
    def my_endpoint(): ...
"""

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ==== Requests ====


class AssignmentCreate(CamelModel):
    """Body of POST /api/assignments.

    Values are left loosely typed; the AssignmentValidator owns coercion
    so every rejection carries the same error body.
    """

    project_id: Any = None
    engineer_id: Any = None
    allocation_percentage: Any = None
    start_date: Any = None
    end_date: Any = None
    role: str | None = None


class UnassignRequest(CamelModel):
    project_id: Any = None
    engineer_id: Any = None


class EngineerCreate(CamelModel):
    name: str | None = None
    email: str | None = None
    skills: list[str] | str | None = None
    seniority: str = "mid"
    department: str | None = None
    max_capacity: Any = Field(default=100, description="Percent of a full-time load, 1-100")


class EngineerUpdate(CamelModel):
    name: str | None = None
    email: str | None = None
    skills: list[str] | str | None = None
    seniority: str | None = None
    department: str | None = None
    max_capacity: Any = None


class ProjectCreate(CamelModel):
    name: str | None = None
    description: str = ""
    required_skills: list[str] | str | None = None
    status: str = "planning"
    priority: str = "medium"
    team_size: Any = 1
    start_date: str | None = None
    end_date: str | None = None
    manager_id: str | None = None


# ==== Capacity views ====


class EngineerCapacity(CamelModel):
    """Committed and remaining capacity of one engineer."""

    id: str
    name: str
    seniority: str | None = None
    department: str | None = None
    max_capacity: int
    total_allocated: int
    available_capacity: int
    utilization_percent: float = Field(description="totalAllocated / maxCapacity * 100")
    status: str = Field(description="Utilization bucket: Overloaded, High Load, Moderate, Available")
    color: str


class AssignmentView(CamelModel):
    """An assignment positioned on its timeline."""

    id: str
    project_id: str
    project_name: str | None = None
    engineer_id: str
    allocation_percentage: int
    start_date: str
    end_date: str
    role: str
    status: str = Field(description="Pending, Active or Completed")
    progress_percent: float
    days_remaining: int | str = Field(description="Whole days left, \"Due today\" or \"Completed\"")
    days_remaining_label: str


class AvailabilityCard(CamelModel):
    """One engineer in the availability matrix."""

    id: str
    name: str
    department: str | None = None
    skills: list[str] = Field(default_factory=list)
    max_capacity: int
    available: int
    current_allocation: int
    utilization_percent: float
    status: str
    color: str
    assignments: list[AssignmentView] = Field(default_factory=list)


class TeamSummary(CamelModel):
    total_engineers: int
    available_resources: int = Field(description="Engineers at or below 70% utilization")
    high_utilization: int = Field(description="Engineers above 70% utilization")
    overloaded: int
    average_utilization: float


# ==== Records ====


class AssignmentRecord(CamelModel):
    id: str
    project_id: str
    engineer_id: str
    allocation_percentage: int
    start_date: str
    end_date: str
    role: str
    created_at: str | None = None


class EngineerRecord(CamelModel):
    id: str
    name: str
    email: str | None = None
    skills: list[str] = Field(default_factory=list)
    seniority: str
    department: str | None = None
    max_capacity: int
    created_at: str | None = None
    updated_at: str | None = None


class ProjectRecord(CamelModel):
    id: str
    name: str
    description: str = ""
    required_skills: list[str] = Field(default_factory=list)
    status: str
    priority: str
    team_size: int
    start_date: str | None = None
    end_date: str | None = None
    manager_id: str | None = None
    assignment_count: int = 0
    created_at: str | None = None
    updated_at: str | None = None


class ProjectStats(CamelModel):
    total: int
    planning: int
    active: int
    completed: int
    on_hold: int


# ==== Mutation results ====


class UnassignResponse(CamelModel):
    success: bool = Field(description="Whether the operation succeeded")
    message: str
    assignment: AssignmentRecord


class ProjectDeleteResponse(CamelModel):
    success: bool
    project_id: str
    released_assignments: list[AssignmentRecord] = Field(default_factory=list)


# ==== Health / errors ====


class HealthResponse(BaseModel):
    """Health check result."""

    status: str = Field(description="healthy or error")
    schema_version: int = Field(description="PRAGMA user_version of the database")
    timestamp: str = Field(description="ISO timestamp")


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx answer."""

    message: str
    error_code: str

    model_config = {"extra": "allow"}
