"""Permission set model: a named bundle of capability flags per organization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class PermissionSet(QueryModel, table=True):
    """Organization-scoped capability grants assignable to members."""

    __tablename__ = "permission_sets"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "name",
            name="uq_permission_sets_org_name",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(foreign_key="organizations.id", index=True)
    name: str
    # Flat mapping of capability -> granted, e.g. {"team_members.view_all": true}.
    permissions: dict[str, bool] = Field(default_factory=dict, sa_column=Column(JSON))
    is_default: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
