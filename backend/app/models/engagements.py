"""Project engagement model: a member's weekly hour commitment to a project."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (date, datetime)


class ProjectEngagement(QueryModel, table=True):
    """Hours-per-week allocation of one member to one project over a date range."""

    __tablename__ = "project_engagements"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_member_id: UUID = Field(
        foreign_key="organization_members.id",
        index=True,
    )
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    role: str | None = None
    hours_per_week: float
    start_date: date = Field(index=True)
    # Open-ended when null.
    end_date: date | None = Field(default=None, index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
