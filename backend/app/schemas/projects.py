"""Schemas for project API payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class ProjectCreate(SQLModel):
    """Payload for creating a project."""

    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class ProjectRead(SQLModel):
    """Project payload returned by read endpoints."""

    id: UUID
    organization_id: UUID
    name: str
    description: str
    status: str
    created_at: datetime
    updated_at: datetime
