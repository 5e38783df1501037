"""User payload schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class UserRead(SQLModel):
    """User fields embedded in membership payloads."""

    id: UUID
    email: str
    name: str | None = None
    created_at: datetime
