"""Schemas for time-off entry payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Self
from uuid import UUID

from pydantic import model_validator
from sqlmodel import Field, SQLModel

RUNTIME_ANNOTATION_TYPES = (date, datetime, UUID)

TimeOffType = Literal[
    "vacation",
    "parental_leave",
    "sick_leave",
    "paid_time_off",
    "unpaid_time_off",
    "other",
]
TimeOffStatus = Literal["pending", "approved", "rejected"]


class TimeOffCreate(SQLModel):
    """Payload for requesting time off; entries start out pending."""

    type: TimeOffType
    start_date: date
    end_date: date
    description: str | None = Field(default=None, max_length=1000)


class TimeOffUpdate(SQLModel):
    """Partial update. Only admins may change `status`."""

    type: TimeOffType | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = Field(default=None, max_length=1000)
    status: TimeOffStatus | None = None

    @model_validator(mode="after")
    def _reject_null_required(self) -> Self:
        for name in ("type", "start_date", "end_date", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TimeOffRead(SQLModel):
    """Time-off entry payload returned by read endpoints."""

    id: UUID
    organization_member_id: UUID
    type: str
    start_date: date
    end_date: date
    description: str | None = None
    status: str
    approved_by: UUID | None = None
    created_at: datetime
    updated_at: datetime
