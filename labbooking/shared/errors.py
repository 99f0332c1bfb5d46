"""
Typed scheduling errors.

Every expected business-rule violation is raised as one of these. They are
HTTPExceptions so FastAPI renders them directly; the detail always carries a
machine-readable code, a message and the context needed to find the
conflicting resource.
"""

from typing import Any

from fastapi import HTTPException


class SchedulingError(HTTPException):
    """Base class for structured booking/slot errors"""

    status_code = 400
    code = "scheduling_error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail={"error": self.code, "message": message, **context},
        )

    def __str__(self) -> str:
        return self.message


class ValidationError(SchedulingError):
    """Malformed input: bad time format, start >= end, missing field"""

    status_code = 400
    code = "validation_error"


class InvalidTimeFormat(ValidationError):
    code = "invalid_time_format"


class NotFound(SchedulingError):
    status_code = 404
    code = "not_found"


class Conflict(SchedulingError):
    """Exact-duplicate slot, or deletion blocked by dependent active records"""

    status_code = 409
    code = "conflict"


class TimeConflict(SchedulingError):
    status_code = 409
    code = "time_conflict"


class AlreadyBooked(SchedulingError):
    status_code = 409
    code = "already_booked"


class DuplicateLabDay(SchedulingError):
    status_code = 409
    code = "duplicate_lab_day"


class SlotUnavailable(SchedulingError):
    status_code = 409
    code = "slot_unavailable"


class TooLate(SchedulingError):
    status_code = 400
    code = "too_late"


class Unauthorized(SchedulingError):
    status_code = 403
    code = "unauthorized"


class InvalidState(SchedulingError):
    """Requested transition is not legal from the current status"""

    status_code = 409
    code = "invalid_state"
