"""Schemas for sprint lifecycle payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import model_validator
from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)
_ERR_END_BEFORE_START = "end_date must not precede start_date"


class SprintCreate(SQLModel):
    """Payload for adding a planning sprint to a board."""

    name: str = Field(min_length=1, max_length=200)
    goal: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> Self:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(_ERR_END_BEFORE_START)
        return self


class SprintStart(SQLModel):
    """Optional overrides applied when a sprint becomes active."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    goal: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> Self:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(_ERR_END_BEFORE_START)
        return self


class SprintComplete(SQLModel):
    """Completion options."""

    move_unfinished_to_backlog: bool = True


class SprintColumnCreate(SQLModel):
    """Payload for a user-defined workflow column."""

    name: str = Field(min_length=1, max_length=100)
    position: int | None = Field(default=None, ge=0)
    is_done: bool = False


class SprintColumnRead(SQLModel):
    id: UUID
    sprint_id: UUID
    name: str
    position: int
    is_done: bool


class SprintRead(SQLModel):
    """Sprint payload returned by read endpoints."""

    id: UUID
    board_id: UUID
    name: str
    goal: str | None = None
    status: str
    is_backlog: bool
    start_date: datetime | None = None
    end_date: datetime | None = None
    position: int
    created_at: datetime
    updated_at: datetime


class SprintStartResponse(SQLModel):
    """Activated sprint with its workflow columns."""

    sprint: SprintRead
    columns: list[SprintColumnRead] = Field(default_factory=list)


class SprintCompleteResponse(SQLModel):
    """Completed sprint plus how its tasks were handled."""

    sprint: SprintRead
    completed_tasks: int = 0
    moved_tasks: int = 0
