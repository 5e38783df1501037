"""Task model for sprint work items."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Task(QueryModel, table=True):
    """Board task placed in a sprint and, optionally, one of its columns."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    sprint_id: UUID | None = Field(default=None, foreign_key="sprints.id", index=True)
    sprint_column_id: UUID | None = Field(
        default=None,
        foreign_key="sprint_columns.id",
        index=True,
    )
    title: str
    description: str | None = None
    assignee_member_id: UUID | None = Field(
        default=None,
        foreign_key="organization_members.id",
        index=True,
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
