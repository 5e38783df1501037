"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorDetail(SQLModel):
    """Machine-readable rejection raised by a scheduling rule."""

    code: str = Field(examples=["overlap_conflict", "capacity_exceeded"])
    message: str


class ErrorResponse(SQLModel):
    """Error envelope produced by the application's exception handlers."""

    detail: str | dict[str, object] | list[object] = Field(
        description=(
            "Error payload. Domain rejections carry `code` and `message` plus "
            "rule-specific fields such as `deficit`."
        ),
        examples=[
            {"code": "conflict_another_active", "message": "Sprint 'S1' is already active"},
        ],
    )
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
    code: str | None = Field(
        default=None,
        description="Copy of `detail.code` when the detail is structured.",
        examples=["already_active", "dependency_violation"],
    )
