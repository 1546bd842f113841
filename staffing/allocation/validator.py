"""
Assignment Validator - the only entry point allowed to change the ledger.

Preconditions for a new assignment, checked in order and short-circuiting:
1. engineer and project exist                       -> NotFound
2. allocation percentage within [1, 100]            -> ValidationError
3. start date not after end date                    -> ValidationError
4. percentage fits the engineer's available capacity -> CapacityExceeded

Input that cannot be read at all (missing ids, non-integer percentages,
unparsable dates) is refused with ValidationError before step 1. Passing
step 4 is advisory: the ledger repeats the capacity check at commit time
and its rejection is surfaced unchanged, never retried.
"""

import logging
from datetime import date, datetime

from staffing import config
from staffing.allocation.ledger import AllocationLedger, Assignment
from staffing.capacity_truth import available_capacity, to_utc_datetime
from staffing.errors import CapacityExceeded, NotFound, ValidationError

logger = logging.getLogger(__name__)


def _require_id(value, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return str(value).strip()


def coerce_percentage(value, field_name: str = "allocationPercentage") -> int:
    """Accept an int, an integral float or a numeric string. Range is checked by callers."""
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{field_name} must be an integer", field=field_name)


def coerce_date(value, field_name: str) -> str:
    """
    Return the ISO form of a date/datetime/ISO string, refusing anything else.

    The value must also normalize to UTC, so an offset that pushes it past
    datetime.max is refused here rather than failing later comparisons.
    """
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required", field=field_name)
    text = None
    if isinstance(value, date | datetime):
        text = value.isoformat()
    elif isinstance(value, str):
        stripped = value.strip()
        for parse in (date.fromisoformat, datetime.fromisoformat):
            try:
                text = parse(stripped).isoformat()
                break
            except ValueError:
                continue
    if text is None:
        raise ValidationError(f"{field_name} is not a valid ISO date: {value!r}", field=field_name)
    try:
        to_utc_datetime(text)
    except (ValueError, OverflowError) as e:
        raise ValidationError(
            f"{field_name} is out of range: {value!r}", field=field_name
        ) from e
    return text


class AssignmentValidator:
    """
    Accepts or rejects allocation changes and hands accepted ones to the
    AllocationLedger.
    """

    def __init__(self, ledger: AllocationLedger | None = None):
        self.ledger = ledger or AllocationLedger()
        self.store = self.ledger.store

    def propose_assignment(
        self,
        engineer_id,
        project_id,
        allocation_percentage,
        start_date,
        end_date,
        role: str | None = None,
    ) -> Assignment:
        """
        Validate and commit a new assignment.

        Returns:
            The committed Assignment

        Raises:
            ValidationError, NotFound, CapacityExceeded
        """
        engineer_id = _require_id(engineer_id, "engineerId")
        project_id = _require_id(project_id, "projectId")
        percentage = coerce_percentage(allocation_percentage)
        start = coerce_date(start_date, "startDate")
        end = coerce_date(end_date, "endDate")

        # (1) references
        engineer = self.store.get("engineers", engineer_id)
        if engineer is None:
            raise NotFound("engineer", engineer_id)
        if self.store.get("projects", project_id) is None:
            raise NotFound("project", project_id)

        # (2) range
        if not config.MIN_ALLOCATION <= percentage <= config.MAX_ALLOCATION:
            raise ValidationError(
                f"allocationPercentage must be between {config.MIN_ALLOCATION} "
                f"and {config.MAX_ALLOCATION}, got {percentage}",
                field="allocationPercentage",
            )

        # (3) dates
        if to_utc_datetime(start) > to_utc_datetime(end):
            raise ValidationError(
                f"startDate {start} is after endDate {end}", field="startDate"
            )

        # (4) capacity, from a fresh read
        available = available_capacity(
            engineer["max_capacity"], self.ledger.total_allocated(engineer_id)
        )
        if percentage > available:
            logger.info(
                "validator: rejected %s%% for engineer %s (available %s%%)",
                percentage,
                engineer_id,
                available,
            )
            raise CapacityExceeded(
                f"Exceeds available capacity! Maximum: {available}%",
                max_allowed=available,
            )

        assignment = Assignment(
            project_id=project_id,
            engineer_id=engineer_id,
            allocation_percentage=percentage,
            start_date=start,
            end_date=end,
            role=(role or "").strip() or config.DEFAULT_ROLE,
        )
        return self.ledger.record_assignment(assignment)

    def propose_unassign(self, project_id, engineer_id) -> Assignment:
        """
        Remove the engineer's assignment to the project.

        When the pair has been assigned more than once, the most recent
        assignment is the one removed.

        Raises:
            ValidationError: missing ids
            NotFound: no such assignment
        """
        project_id = _require_id(project_id, "projectId")
        engineer_id = _require_id(engineer_id, "engineerId")

        assignment = self.ledger.find_assignment(project_id, engineer_id)
        if assignment is None:
            raise NotFound("assignment", f"{engineer_id} on {project_id}")
        return self.ledger.remove_assignment(assignment.id)

    def propose_removal(self, assignment_id) -> Assignment:
        """Remove an assignment by its id."""
        return self.ledger.remove_assignment(_require_id(assignment_id, "assignmentId"))
