"""
Staffing API Server - REST API for the capacity dashboards and assignment flow.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from staffing import __version__, config
from staffing import db as db_module
from staffing.allocation import AssignmentValidator
from staffing.entities import Engineer, Project, Registry
from staffing.errors import (
    CapacityExceeded,
    DivisionUndefined,
    NotFound,
    StaffingError,
    ValidationError,
)
from staffing.observability import CorrelationIdMiddleware
from staffing.queries import CapacityQueries
from staffing.state_store import get_store
from staffing_api.response_models import (
    AssignmentCreate,
    AssignmentRecord,
    AssignmentView,
    AvailabilityCard,
    EngineerCapacity,
    EngineerCreate,
    EngineerRecord,
    EngineerUpdate,
    ErrorResponse,
    HealthResponse,
    ProjectCreate,
    ProjectDeleteResponse,
    ProjectRecord,
    ProjectStats,
    TeamSummary,
    UnassignRequest,
    UnassignResponse,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=== Staffing API startup ===")
    logger.info("DB path: %s", db_module.get_db_path())
    yield
    logger.info("=== Staffing API shutdown ===")


app = FastAPI(
    title="Staffing Capacity API",
    description="Engineer capacity tracking and over-allocation-safe assignments",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=config.CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


# ==== Dependencies ====
# One registry (and so one ledger with its engineer locks) per process.

_registry: Registry | None = None


def get_registry() -> Registry:
    global _registry
    if _registry is None:
        _registry = Registry(get_store())
    return _registry


def get_validator(registry: Registry = Depends(get_registry)) -> AssignmentValidator:
    return AssignmentValidator(registry.ledger)


def get_queries(registry: Registry = Depends(get_registry)) -> CapacityQueries:
    return CapacityQueries(registry)


# ==== Error mapping ====

_STATUS_BY_ERROR = {
    ValidationError: 422,
    CapacityExceeded: 409,
    NotFound: 404,
    DivisionUndefined: 500,
}


@app.exception_handler(StaffingError)
async def staffing_error_handler(request: Request, exc: StaffingError):
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "message": message,
            "error_code": ValidationError.code,
            "errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
        },
    )


_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _engineer_record(engineer: Engineer) -> EngineerRecord:
    return EngineerRecord.model_validate(asdict(engineer))


def _project_record(project: Project) -> ProjectRecord:
    return ProjectRecord.model_validate(asdict(project))


# ==== Health ====


@app.get("/api/health", response_model=HealthResponse)
def health(registry: Registry = Depends(get_registry)):
    with db_module.get_connection(registry.store.db_path) as conn:
        version = db_module.get_schema_version(conn)
    return HealthResponse(
        status="healthy", schema_version=version, timestamp=datetime.now(UTC).isoformat()
    )


# ==== Capacity & availability ====


@app.get("/api/projects/capacity", response_model=list[EngineerCapacity])
def list_engineer_capacity(queries: CapacityQueries = Depends(get_queries)):
    """Every engineer with committed and remaining capacity."""
    return queries.engineer_capacity_list()


@app.get("/api/assignments/availability", response_model=list[AvailabilityCard])
def list_availability(queries: CapacityQueries = Depends(get_queries)):
    """Availability matrix: one card per engineer with their assignments."""
    return queries.availability()


@app.get("/api/assignments/summary", response_model=TeamSummary)
def team_summary(queries: CapacityQueries = Depends(get_queries)):
    return queries.team_summary()


# ==== Assignments ====


@app.post(
    "/api/assignments", status_code=201, response_model=AssignmentRecord, responses=_ERRORS
)
def create_assignment(
    body: AssignmentCreate, validator: AssignmentValidator = Depends(get_validator)
):
    """Assign an engineer to a project, refusing anything that would over-allocate them."""
    assignment = validator.propose_assignment(
        engineer_id=body.engineer_id,
        project_id=body.project_id,
        allocation_percentage=body.allocation_percentage,
        start_date=body.start_date,
        end_date=body.end_date,
        role=body.role,
    )
    return AssignmentRecord.model_validate(assignment.to_record())


@app.post("/api/assignments/unassign", response_model=UnassignResponse, responses=_ERRORS)
def unassign(body: UnassignRequest, validator: AssignmentValidator = Depends(get_validator)):
    """Remove an engineer from a project (most recent assignment of the pair)."""
    removed = validator.propose_unassign(body.project_id, body.engineer_id)
    return UnassignResponse(
        success=True,
        message=f"Released {removed.allocation_percentage}% of engineer {removed.engineer_id}",
        assignment=AssignmentRecord.model_validate(removed.to_record()),
    )


@app.delete(
    "/api/assignments/{assignment_id}", response_model=UnassignResponse, responses=_ERRORS
)
def delete_assignment(
    assignment_id: str, validator: AssignmentValidator = Depends(get_validator)
):
    removed = validator.propose_removal(assignment_id)
    return UnassignResponse(
        success=True,
        message=f"Released {removed.allocation_percentage}% of engineer {removed.engineer_id}",
        assignment=AssignmentRecord.model_validate(removed.to_record()),
    )


# ==== Engineers ====


@app.get("/api/engineers", response_model=list[EngineerRecord])
def list_engineers(
    department: str | None = Query(default=None),
    registry: Registry = Depends(get_registry),
):
    return [_engineer_record(e) for e in registry.list_engineers(department=department)]


@app.post("/api/engineers", status_code=201, response_model=EngineerRecord, responses=_ERRORS)
def register_engineer(body: EngineerCreate, registry: Registry = Depends(get_registry)):
    engineer = registry.register_engineer(
        name=body.name,
        skills=body.skills,
        seniority=body.seniority,
        department=body.department,
        max_capacity=body.max_capacity,
        email=body.email,
    )
    return _engineer_record(engineer)


@app.get("/api/engineers/{engineer_id}", response_model=EngineerRecord, responses=_ERRORS)
def get_engineer(engineer_id: str, registry: Registry = Depends(get_registry)):
    return _engineer_record(registry.require_engineer(engineer_id))


@app.put("/api/engineers/{engineer_id}", response_model=EngineerRecord, responses=_ERRORS)
def update_engineer(
    engineer_id: str, body: EngineerUpdate, registry: Registry = Depends(get_registry)
):
    """Profile update. Lowering maxCapacity below the allocated total is refused."""
    changes = body.model_dump(exclude_unset=True)
    return _engineer_record(registry.update_engineer(engineer_id, **changes))


@app.get(
    "/api/engineers/{engineer_id}/capacity", response_model=EngineerCapacity, responses=_ERRORS
)
def get_engineer_capacity(engineer_id: str, queries: CapacityQueries = Depends(get_queries)):
    return queries.engineer_capacity(engineer_id)


@app.get(
    "/api/engineers/{engineer_id}/assignments",
    response_model=list[AssignmentView],
    responses=_ERRORS,
)
def get_engineer_assignments(engineer_id: str, queries: CapacityQueries = Depends(get_queries)):
    return queries.engineer_assignments(engineer_id)


# ==== Projects ====


@app.get("/api/projects/stats", response_model=ProjectStats)
def project_stats(
    manager_id: str | None = Query(default=None, alias="managerId"),
    registry: Registry = Depends(get_registry),
):
    return registry.project_stats(manager_id=manager_id)


@app.get("/api/projects", response_model=list[ProjectRecord])
def list_projects(
    manager_id: str | None = Query(default=None, alias="managerId"),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    registry: Registry = Depends(get_registry),
):
    """Projects, filtered by manager, status and priority, and searched by text."""
    projects = registry.list_projects(
        manager_id=manager_id, status=status, priority=priority, search=search
    )
    return [_project_record(p) for p in projects]


@app.post("/api/projects", status_code=201, response_model=ProjectRecord, responses=_ERRORS)
def create_project(body: ProjectCreate, registry: Registry = Depends(get_registry)):
    project = registry.create_project(
        name=body.name,
        description=body.description,
        required_skills=body.required_skills,
        status=body.status,
        priority=body.priority,
        team_size=body.team_size,
        start_date=body.start_date,
        end_date=body.end_date,
        manager_id=body.manager_id,
    )
    return _project_record(project)


@app.get("/api/projects/{project_id}", response_model=ProjectRecord, responses=_ERRORS)
def get_project(project_id: str, registry: Registry = Depends(get_registry)):
    return _project_record(registry.require_project(project_id))


@app.delete(
    "/api/projects/{project_id}", response_model=ProjectDeleteResponse, responses=_ERRORS
)
def delete_project(project_id: str, registry: Registry = Depends(get_registry)):
    """Delete a project and release every assignment on it."""
    removed = registry.delete_project(project_id)
    return ProjectDeleteResponse(
        success=True,
        project_id=project_id,
        released_assignments=[AssignmentRecord.model_validate(a.to_record()) for a in removed],
    )
