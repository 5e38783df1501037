"""Time-off endpoints for one organization member."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import ORG_MEMBER_DEP, SESSION_DEP
from app.db.pagination import paginate
from app.schemas.common import OkResponse
from app.schemas.pagination import DefaultLimitOffsetPage
from app.schemas.time_off import (
    TimeOffCreate,
    TimeOffRead,
    TimeOffStatus,
    TimeOffType,
    TimeOffUpdate,
)
from app.services.organizations import (
    OrganizationContext,
    ensure_can_view_member,
    require_org_member,
)
from app.services.time_off import (
    create_time_off,
    delete_time_off,
    time_off_statement,
    update_time_off,
)

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(
    prefix="/organizations/{organization_id}/members/{member_id}/time-off",
    tags=["time-off"],
)
STATUS_QUERY = Query(default=None)
TYPE_QUERY = Query(default=None, alias="type")
START_QUERY = Query(default=None)
END_QUERY = Query(default=None)


@router.get("", response_model=DefaultLimitOffsetPage[TimeOffRead])
async def list_time_off(
    member_id: UUID,
    status: TimeOffStatus | None = STATUS_QUERY,
    entry_type: TimeOffType | None = TYPE_QUERY,
    start_date: date | None = START_QUERY,
    end_date: date | None = END_QUERY,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> LimitOffsetPage[TimeOffRead]:
    """List a member's time off, optionally filtered by status, type, and window."""
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
    )
    await ensure_can_view_member(session, ctx=ctx, member=member)
    statement = time_off_statement(
        member_id=member.id,
        status=status,
        entry_type=entry_type,
        start_from=start_date,
        end_to=end_date,
    )
    return await paginate(session, statement)


@router.post("", response_model=TimeOffRead)
async def create_member_time_off(
    member_id: UUID,
    payload: TimeOffCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> TimeOffRead:
    """Request time off; rejected with 409 when it overlaps a pending or approved entry."""
    entry = await create_time_off(session, ctx=ctx, member_id=member_id, payload=payload)
    return TimeOffRead.model_validate(entry, from_attributes=True)


@router.patch("/{entry_id}", response_model=TimeOffRead)
async def update_member_time_off(
    member_id: UUID,
    entry_id: UUID,
    payload: TimeOffUpdate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> TimeOffRead:
    entry = await update_time_off(
        session,
        ctx=ctx,
        member_id=member_id,
        entry_id=entry_id,
        payload=payload,
    )
    return TimeOffRead.model_validate(entry, from_attributes=True)


@router.delete("/{entry_id}", response_model=OkResponse)
async def delete_member_time_off(
    member_id: UUID,
    entry_id: UUID,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> OkResponse:
    await delete_time_off(session, ctx=ctx, member_id=member_id, entry_id=entry_id)
    return OkResponse()
