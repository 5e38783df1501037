"""Schemas for organization and membership API payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import field_validator, model_validator
from sqlmodel import Field, SQLModel

from app.schemas.users import UserRead
from app.services.role_authorizer import ORG_ROLE_VALUES

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)
_ERR_UNKNOWN_ROLE = "role must be one of: " + ", ".join(ORG_ROLE_VALUES)
_ERR_EMPTY_NAME = "name must not be blank"


def _validate_role(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().lower()
    if cleaned not in ORG_ROLE_VALUES:
        raise ValueError(_ERR_UNKNOWN_ROLE)
    return cleaned


class OrganizationCreate(SQLModel):
    """Payload for creating a new organization."""

    name: str = Field(min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(_ERR_EMPTY_NAME)
        return cleaned


class OrganizationRead(SQLModel):
    """Organization payload returned by read endpoints."""

    id: UUID
    name: str
    created_at: datetime
    updated_at: datetime


class OrganizationMemberCreate(SQLModel):
    """Payload for adding a user (by email) to an organization."""

    email: str = Field(min_length=3, max_length=320)
    name: str | None = None
    role: str = "member"
    working_hours_per_week: float | None = Field(default=None, gt=0, le=168)
    permission_set_id: UUID | None = None

    @field_validator("role")
    @classmethod
    def _check_role(cls, value: str) -> str:
        return _validate_role(value) or "member"

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if "@" not in cleaned:
            raise ValueError("email must contain '@'")
        return cleaned


class OrganizationMemberUpdate(SQLModel):
    """Partial update of a member's role, capacity, or permission set."""

    role: str | None = None
    working_hours_per_week: float | None = Field(default=None, gt=0, le=168)
    permission_set_id: UUID | None = None

    @field_validator("role")
    @classmethod
    def _check_role(cls, value: str | None) -> str | None:
        return _validate_role(value)

    @model_validator(mode="after")
    def _require_change(self) -> Self:
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self


class OrganizationMemberRead(SQLModel):
    """Organization member payload with embedded user details."""

    id: UUID
    organization_id: UUID
    user_id: UUID
    role: str
    working_hours_per_week: float | None = None
    permission_set_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    user: UserRead | None = None
