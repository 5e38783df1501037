"""Project engagement endpoints for one organization member."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter

from app.api.deps import ORG_MEMBER_DEP, SESSION_DEP
from app.core.time import utctoday
from app.schemas.common import OkResponse
from app.schemas.engagements import (
    AvailabilityRead,
    EngagementCreate,
    EngagementListResponse,
    EngagementRead,
    EngagementUpdate,
)
from app.services.capacity import availability_summary, engagement_status
from app.services.engagements import (
    create_engagement,
    delete_engagement,
    list_member_engagements,
    update_engagement,
)
from app.services.organizations import (
    OrganizationContext,
    ensure_can_view_member,
    require_org_member,
)

if TYPE_CHECKING:
    from datetime import date

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.engagements import ProjectEngagement

router = APIRouter(
    prefix="/organizations/{organization_id}/members/{member_id}/engagements",
    tags=["engagements"],
)


def _to_read(engagement: ProjectEngagement, today: date) -> EngagementRead:
    model = EngagementRead.model_validate(engagement, from_attributes=True)
    model.status = engagement_status(engagement, today)
    return model


@router.get("", response_model=EngagementListResponse)
async def list_engagements(
    member_id: UUID,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> EngagementListResponse:
    """List a member's engagements with their current availability."""
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
    )
    await ensure_can_view_member(session, ctx=ctx, member=member)
    engagements = await list_member_engagements(session, member_id=member.id)
    today = utctoday()
    summary = availability_summary(member, engagements, today)
    return EngagementListResponse(
        engagements=[_to_read(engagement, today) for engagement in engagements],
        availability=AvailabilityRead.model_validate(summary, from_attributes=True),
    )


@router.post("", response_model=EngagementRead)
async def create_member_engagement(
    member_id: UUID,
    payload: EngagementCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> EngagementRead:
    """Engage a member on a project.

    Rejected with 409 `overlap_conflict` when an active engagement on the
    same project overlaps, and 422 `capacity_exceeded` when the hours do
    not fit the member's remaining weekly capacity.
    """
    engagement = await create_engagement(
        session,
        ctx=ctx,
        member_id=member_id,
        payload=payload,
    )
    return _to_read(engagement, utctoday())


@router.patch("/{engagement_id}", response_model=EngagementRead)
async def update_member_engagement(
    member_id: UUID,
    engagement_id: UUID,
    payload: EngagementUpdate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> EngagementRead:
    engagement = await update_engagement(
        session,
        ctx=ctx,
        member_id=member_id,
        engagement_id=engagement_id,
        payload=payload,
    )
    return _to_read(engagement, utctoday())


@router.delete("/{engagement_id}", response_model=OkResponse)
async def delete_member_engagement(
    member_id: UUID,
    engagement_id: UUID,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> OkResponse:
    await delete_engagement(
        session,
        ctx=ctx,
        member_id=member_id,
        engagement_id=engagement_id,
    )
    return OkResponse()
