"""Sprint model and lifecycle status values."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)

_ACTIVE_SPRINT_WHERE = "status = 'active' AND NOT is_deleted"
_BACKLOG_SPRINT_WHERE = "is_backlog AND NOT is_deleted"


class Sprint(QueryModel, table=True):
    """Time-boxed iteration on a board, or the board's permanent backlog."""

    __tablename__ = "sprints"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        # At most one live active sprint per board, enforced at commit time.
        Index(
            "uq_sprints_board_active",
            "board_id",
            unique=True,
            postgresql_where=text(_ACTIVE_SPRINT_WHERE),
            sqlite_where=text(_ACTIVE_SPRINT_WHERE),
        ),
        Index(
            "uq_sprints_board_backlog",
            "board_id",
            unique=True,
            postgresql_where=text(_BACKLOG_SPRINT_WHERE),
            sqlite_where=text(_BACKLOG_SPRINT_WHERE),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    board_id: UUID = Field(foreign_key="boards.id", index=True)
    name: str
    goal: str | None = None
    status: str = Field(default="planning", index=True)
    is_backlog: bool = Field(default=False)
    start_date: datetime | None = None
    end_date: datetime | None = None
    position: int = Field(default=0)
    is_deleted: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
