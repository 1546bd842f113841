"""
Allocation Ledger - the authoritative record of committed capacity.

Enforces invariants:
- sum(allocation_percentage) per engineer never exceeds that engineer's
  max_capacity, including under concurrent commits
- Totals are recomputed from assignment rows on every read, never stored
- A rejected commit writes nothing

Check-then-commit runs inside a per-engineer critical section: an
in-process lock keyed by engineer id wrapped around a BEGIN IMMEDIATE
transaction, so both threads and separate processes sharing the database
are serialized. Engineers never share an in-process lock.
"""

import logging
import sqlite3
import threading
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

from staffing import config
from staffing.capacity_truth import (
    AssignmentStatus,
    assignment_status,
    available_capacity,
    to_utc_datetime,
)
from staffing.errors import CapacityExceeded, NotFound, ValidationError
from staffing.state_store import StateStore, get_store

logger = logging.getLogger(__name__)

_SUM_SQL = (
    "SELECT COALESCE(SUM(allocation_percentage), 0) AS total "
    "FROM assignments WHERE engineer_id = ?"
)


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class Assignment:
    project_id: str
    engineer_id: str
    allocation_percentage: int
    start_date: str
    end_date: str
    role: str = config.DEFAULT_ROLE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=now_iso)

    def status(self, now=None) -> AssignmentStatus:
        """Derived from the date range on every call."""
        return assignment_status(self.start_date, self.end_date, now)

    def to_record(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "Assignment":
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            engineer_id=row["engineer_id"],
            allocation_percentage=row["allocation_percentage"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            role=row.get("role") or config.DEFAULT_ROLE,
            created_at=row.get("created_at"),
        )


def _chronological(assignments) -> list[Assignment]:
    # stored start dates mix bare dates and offset datetimes; compare as UTC instants
    return sorted(assignments, key=lambda a: to_utc_datetime(a.start_date))


class AllocationLedger:
    """
    Per-engineer map of active allocation commitments.

    Responsibilities:
    - Report how much of an engineer's capacity is committed
    - Commit new assignments, re-checking capacity at commit time
    - Remove assignments, freeing their share immediately
    - Apply maxCapacity changes without breaking the invariant
    """

    def __init__(self, store: StateStore | None = None):
        self.store = store or get_store()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _engineer_lock(self, engineer_id: str) -> Generator[None, None, None]:
        with self._locks_guard:
            lock = self._locks.setdefault(engineer_id, threading.Lock())
        with lock:
            yield

    # ==================== Reads ====================

    def total_allocated(self, engineer_id: str) -> int:
        """Sum of allocation percentages currently attributed to the engineer."""
        rows = self.store.query(_SUM_SQL, [engineer_id])
        return int(rows[0]["total"])

    def get(self, assignment_id: str) -> Assignment | None:
        row = self.store.get("assignments", assignment_id)
        return Assignment.from_row(row) if row else None

    def assignments_for(self, engineer_id: str) -> list[Assignment]:
        """The engineer's assignments, earliest start first."""
        rows = self.store.query(
            "SELECT * FROM assignments WHERE engineer_id = ? ORDER BY created_at", [engineer_id]
        )
        return _chronological(Assignment.from_row(r) for r in rows)

    def assignments_for_project(self, project_id: str) -> list[Assignment]:
        rows = self.store.query(
            "SELECT * FROM assignments WHERE project_id = ? ORDER BY created_at",
            [project_id],
        )
        return [Assignment.from_row(r) for r in rows]

    def all_assignments(self) -> list[Assignment]:
        rows = self.store.query("SELECT * FROM assignments ORDER BY engineer_id, created_at")
        assignments = _chronological(Assignment.from_row(r) for r in rows)
        return sorted(assignments, key=lambda a: a.engineer_id)

    def find_assignment(self, project_id: str, engineer_id: str) -> Assignment | None:
        """Most recently created assignment of engineer to project, if any."""
        rows = self.store.query(
            "SELECT * FROM assignments WHERE project_id = ? AND engineer_id = ? "
            "ORDER BY created_at DESC, rowid DESC LIMIT 1",
            [project_id, engineer_id],
        )
        return Assignment.from_row(rows[0]) if rows else None

    # ==================== Mutations ====================

    def record_assignment(self, assignment: Assignment) -> Assignment:
        """
        Commit an assignment if the engineer still has room for it.

        Both max_capacity and the current total are re-read inside the
        critical section, so an earlier validation pass cannot be stale.

        Raises:
            NotFound: engineer or project vanished
            CapacityExceeded: commit would push the total past max_capacity
        """
        with self._engineer_lock(assignment.engineer_id), self.store.transaction() as conn:
            engineer = self.store.get("engineers", assignment.engineer_id, conn=conn)
            if engineer is None:
                raise NotFound("engineer", assignment.engineer_id)
            if self.store.get("projects", assignment.project_id, conn=conn) is None:
                raise NotFound("project", assignment.project_id)

            total = self._total_in(conn, assignment.engineer_id)
            available = available_capacity(engineer["max_capacity"], total)
            if assignment.allocation_percentage > available:
                logger.info(
                    "ledger: rejected %s%% for engineer %s (available %s%%)",
                    assignment.allocation_percentage,
                    assignment.engineer_id,
                    available,
                )
                raise CapacityExceeded(
                    f"Cannot assign {assignment.allocation_percentage}% - engineer only has "
                    f"{available}% available capacity remaining",
                    max_allowed=available,
                )

            self.store.insert("assignments", assignment.to_record(), conn=conn)

        logger.info(
            "ledger: committed assignment %s (%s%% of engineer %s to project %s)",
            assignment.id,
            assignment.allocation_percentage,
            assignment.engineer_id,
            assignment.project_id,
        )
        return assignment

    def remove_assignment(self, assignment_id: str) -> Assignment:
        """
        Remove an assignment, returning the record that was removed.

        Raises:
            NotFound: no such assignment (including one removed concurrently)
        """
        existing = self.get(assignment_id)
        if existing is None:
            raise NotFound("assignment", assignment_id)

        with self._engineer_lock(existing.engineer_id), self.store.transaction() as conn:
            if not self.store.delete("assignments", assignment_id, conn=conn):
                raise NotFound("assignment", assignment_id)

        logger.info(
            "ledger: removed assignment %s (freed %s%% for engineer %s)",
            assignment_id,
            existing.allocation_percentage,
            existing.engineer_id,
        )
        return existing

    def remove_project_assignments(
        self, project_id: str, conn: sqlite3.Connection | None = None
    ) -> list[Assignment]:
        """
        Remove every assignment of a project. Pass *conn* to make the removal
        part of a larger transaction (project deletion).
        """
        if conn is None:
            with self.store.transaction() as own:
                return self.remove_project_assignments(project_id, conn=own)

        rows = conn.execute("SELECT * FROM assignments WHERE project_id = ?", [project_id]).fetchall()
        removed = [Assignment.from_row(dict(r)) for r in rows]
        conn.execute("DELETE FROM assignments WHERE project_id = ?", [project_id])
        if removed:
            logger.info("ledger: removed %d assignments of project %s", len(removed), project_id)
        return removed

    def resize_capacity(self, engineer_id: str, new_max: int) -> int:
        """
        Change an engineer's max_capacity.

        Raises:
            NotFound: no such engineer
            ValidationError: new_max is below what is already allocated
        """
        with self._engineer_lock(engineer_id), self.store.transaction() as conn:
            if self.store.get("engineers", engineer_id, conn=conn) is None:
                raise NotFound("engineer", engineer_id)

            total = self._total_in(conn, engineer_id)
            if new_max < total:
                raise ValidationError(
                    f"maxCapacity cannot be lower than the {total}% already allocated",
                    minAllowed=total,
                )
            self.store.update(
                "engineers",
                engineer_id,
                {"max_capacity": new_max, "updated_at": now_iso()},
                conn=conn,
            )

        logger.info("ledger: engineer %s max_capacity set to %s%%", engineer_id, new_max)
        return new_max

    @staticmethod
    def _total_in(conn: sqlite3.Connection, engineer_id: str) -> int:
        return int(conn.execute(_SUM_SQL, [engineer_id]).fetchone()["total"])
