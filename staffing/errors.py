"""
Error taxonomy for the staffing engine.

Every error here is terminal for the request that raised it: callers report
it verbatim and never retry, since retrying unchanged input against
unchanged state fails the same way.
"""

from typing import Any


class StaffingError(Exception):
    """Base class. ``code`` is stable and safe to expose to API clients."""

    code = "staffing_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "error_code": self.code, **self.details}


class ValidationError(StaffingError):
    """Malformed input: missing fields, out-of-range percentages, start after end."""

    code = "validation_error"


class CapacityExceeded(StaffingError):
    """Requested allocation exceeds what the engineer has left.

    ``max_allowed`` is the largest percentage that would have been accepted.
    """

    code = "capacity_exceeded"

    def __init__(self, message: str, max_allowed: int, **details: Any):
        super().__init__(message, maxAllowed=max_allowed, **details)
        self.max_allowed = max_allowed


class NotFound(StaffingError):
    """Referenced engineer, project or assignment does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}", entity=entity, entityId=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class DivisionUndefined(StaffingError):
    """Utilization asked for an engineer whose maxCapacity is 0.

    Registration refuses such records, so seeing this means the data was
    written around the registry.
    """

    code = "division_undefined"
