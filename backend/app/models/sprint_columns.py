"""Workflow column model scoped to a sprint."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class SprintColumn(QueryModel, table=True):
    """Ordered column of a sprint board; `is_done` marks finished work."""

    __tablename__ = "sprint_columns"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    sprint_id: UUID = Field(foreign_key="sprints.id", index=True)
    name: str
    position: int = Field(default=0)
    is_done: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
