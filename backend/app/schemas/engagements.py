"""Schemas for project engagement and availability payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Self
from uuid import UUID

from pydantic import model_validator
from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (date, datetime, UUID)


class EngagementCreate(SQLModel):
    """Payload for engaging a member on a project."""

    project_id: UUID
    role: str | None = Field(default=None, max_length=100)
    hours_per_week: float = Field(ge=1, le=168)
    start_date: date
    end_date: date | None = None


class EngagementUpdate(SQLModel):
    """Partial engagement update. Send `end_date: null` to make it ongoing."""

    role: str | None = Field(default=None, max_length=100)
    hours_per_week: float | None = Field(default=None, ge=1, le=168)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def _reject_null_required(self) -> Self:
        for name in ("hours_per_week", "start_date", "is_active"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class EngagementRead(SQLModel):
    """Engagement payload with its date-derived status."""

    id: UUID
    organization_member_id: UUID
    project_id: UUID
    role: str | None = None
    hours_per_week: float
    start_date: date
    end_date: date | None = None
    is_active: bool
    status: str = "active"
    created_at: datetime
    updated_at: datetime


class AvailabilityRead(SQLModel):
    """Current capacity use of one member."""

    total_hours: float
    engaged_hours: float
    available_hours: float
    active_engagements_count: int
    utilization_percentage: float


class EngagementListResponse(SQLModel):
    """Member engagements together with their availability summary."""

    engagements: list[EngagementRead] = Field(default_factory=list)
    availability: AvailabilityRead
