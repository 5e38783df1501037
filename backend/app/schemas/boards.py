"""Schemas for board create/read API operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class BoardCreate(SQLModel):
    """Payload for creating a board; its backlog sprint is created with it."""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    project_id: UUID | None = None


class BoardRead(SQLModel):
    """Board payload returned by read endpoints."""

    id: UUID
    organization_id: UUID
    project_id: UUID | None = None
    name: str
    description: str
    created_at: datetime
    updated_at: datetime
