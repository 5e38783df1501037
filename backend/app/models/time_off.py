"""Time-off entry model for member leave requests."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (date, datetime)

# Rejected entries never block new requests.
BLOCKING_TIME_OFF_STATUSES = ("pending", "approved")


class TimeOffEntry(QueryModel, table=True):
    """Inclusive date range a member is away, with an approval status."""

    __tablename__ = "time_off_entries"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_member_id: UUID = Field(
        foreign_key="organization_members.id",
        index=True,
    )
    type: str = Field(index=True)
    start_date: date = Field(index=True)
    end_date: date = Field(index=True)
    description: str | None = None
    status: str = Field(default="pending", index=True)
    approved_by: UUID | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
