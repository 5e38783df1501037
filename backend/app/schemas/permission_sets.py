"""Schemas for permission set API payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import field_validator
from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)
_ERR_BLANK_NAME = "name must not be blank"


class PermissionSetCreate(SQLModel):
    """Payload for creating a custom permission set."""

    name: str = Field(min_length=1, max_length=100)
    permissions: dict[str, bool] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(_ERR_BLANK_NAME)
        return cleaned


class PermissionSetUpdate(SQLModel):
    """Partial update; `permissions` replaces the stored grants when given."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    permissions: dict[str, bool] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(_ERR_BLANK_NAME)
        return cleaned


class PermissionSetRead(SQLModel):
    """Permission set payload returned by read endpoints."""

    id: UUID
    organization_id: UUID
    name: str
    permissions: dict[str, bool]
    is_default: bool
    member_count: int = 0
    created_at: datetime
    updated_at: datetime
