"""Domain errors raised by scheduling and access-control services.

Every error is a `fastapi.HTTPException` whose `detail` is a structured
payload `{"code": ..., "message": ..., **extra}`, so the application's
HTTP exception handler renders them without extra plumbing.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class SchedulingError(HTTPException):
    """Base class for rejected scheduling, capacity, and access operations."""

    status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code: str = "validation_error"

    def __init__(self, message: str, *, code: str | None = None, **extra: Any) -> None:
        self.code = code or self.default_code
        self.message = message
        self.extra = extra
        super().__init__(
            status_code=type(self).status_code,
            detail={"code": self.code, "message": message, **extra},
        )


class ValidationError(SchedulingError):
    """Input or domain rule violation, e.g. a bad date range."""


class AuthorizationError(SchedulingError):
    """Caller lacks the membership or role the operation requires."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "unauthorized"


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class OverlapConflictError(SchedulingError):
    """A candidate interval overlaps an existing record in the same scope."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "overlap_conflict"


class CapacityExceededError(SchedulingError):
    """Proposed weekly hours exceed the member's remaining capacity."""

    default_code = "capacity_exceeded"

    def __init__(
        self,
        message: str,
        *,
        deficit: float,
        available: float,
        capacity: float,
    ) -> None:
        self.deficit = deficit
        self.available = available
        self.capacity = capacity
        super().__init__(message, deficit=deficit, available=available, capacity=capacity)


class StateConflictError(SchedulingError):
    """Requested sprint transition is not allowed from the current state."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "state_conflict"
