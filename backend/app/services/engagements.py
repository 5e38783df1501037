"""Project engagement writes guarded by overlap and capacity rules."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlmodel import col

from app.core.config import settings
from app.core.logging import get_logger
from app.core.time import utcnow, utctoday
from app.models.engagements import ProjectEngagement
from app.services.audit import record_audit
from app.services.capacity import check_capacity
from app.services.errors import NotFoundError, OverlapConflictError, ValidationError
from app.services.intervals import ScheduledRecord, find_overlap, interval_for
from app.services.organizations import require_org_member, require_project
from app.services.role_authorizer import OrgRole, authorize

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.organization_members import OrganizationMember
    from app.schemas.engagements import EngagementCreate, EngagementUpdate
    from app.services.organizations import OrganizationContext

logger = get_logger(__name__)


def _shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year.
        return day.replace(year=day.year + years, day=28)


def validate_engagement_dates(
    start_date: date,
    end_date: date | None,
    *,
    today: date,
) -> None:
    """Reject inverted ranges and dates too far from `today`."""
    years = settings.engagement_max_years_from_today
    if end_date is not None and end_date <= start_date:
        raise ValidationError("End date must be after start date", code="invalid_date_range")
    if start_date < _shift_years(today, -years):
        raise ValidationError(
            f"Start date cannot be more than {years} years in the past",
            code="invalid_date_range",
        )
    if end_date is not None and end_date > _shift_years(today, years):
        raise ValidationError(
            f"End date cannot be more than {years} years in the future",
            code="invalid_date_range",
        )


async def list_member_engagements(
    session: AsyncSession,
    *,
    member_id: UUID,
) -> list[ProjectEngagement]:
    return await (
        ProjectEngagement.objects.filter_by(organization_member_id=member_id)
        .order_by(
            col(ProjectEngagement.is_active).desc(),
            col(ProjectEngagement.start_date).desc(),
        )
        .all(session)
    )


async def _active_engagements(
    session: AsyncSession,
    *,
    member_id: UUID,
) -> list[ProjectEngagement]:
    return await ProjectEngagement.objects.filter_by(
        organization_member_id=member_id,
        is_active=True,
    ).all(session)


def _ensure_no_overlap(
    candidate: ProjectEngagement,
    active: list[ProjectEngagement],
) -> None:
    scoped = [
        ScheduledRecord(
            id=engagement.id,
            interval=interval_for(engagement.start_date, engagement.end_date),
            record=engagement,
        )
        for engagement in active
        if engagement.project_id == candidate.project_id
    ]
    conflict = find_overlap(
        interval_for(candidate.start_date, candidate.end_date),
        scoped,
        exclude_id=candidate.id,
    )
    if conflict is not None:
        logger.info(
            "engagement.overlap.detected",
            extra={
                "member_id": str(candidate.organization_member_id),
                "project_id": str(candidate.project_id),
                "conflicting_engagement_id": str(conflict.id),
            },
        )
        raise OverlapConflictError(
            "Member already has an active overlapping engagement on this project",
            conflicting_id=str(conflict.id),
        )


def _validate_schedule(
    member: OrganizationMember,
    candidate: ProjectEngagement,
    active: list[ProjectEngagement],
    *,
    check_overlap: bool,
    check_hours: bool,
) -> None:
    # Overlap is reported ahead of capacity when both fail.
    if check_overlap:
        _ensure_no_overlap(candidate, active)
    if check_hours:
        check_capacity(
            member,
            candidate.hours_per_week,
            active,
            exclude_engagement_id=candidate.id,
        )


async def create_engagement(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    payload: EngagementCreate,
) -> ProjectEngagement:
    """Engage a member on a project within one locked transaction."""
    authorize(ctx.member, OrgRole.ADMIN)
    organization_id = ctx.organization.id
    member = await require_org_member(
        session,
        organization_id=organization_id,
        member_id=member_id,
        lock=True,
    )
    await require_project(session, organization_id=organization_id, project_id=payload.project_id)
    validate_engagement_dates(payload.start_date, payload.end_date, today=utctoday())
    now = utcnow()
    engagement = ProjectEngagement(
        organization_member_id=member.id,
        project_id=payload.project_id,
        role=payload.role,
        hours_per_week=payload.hours_per_week,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    active = await _active_engagements(session, member_id=member.id)
    _validate_schedule(member, engagement, active, check_overlap=True, check_hours=True)
    session.add(engagement)
    await record_audit(
        session,
        organization_id=organization_id,
        actor_id=ctx.member.user_id,
        action="engagement.create",
        target_type="project_engagement",
        target_id=engagement.id,
        payload={
            "member_id": str(member.id),
            "project_id": str(payload.project_id),
            "hours_per_week": payload.hours_per_week,
        },
    )
    await session.commit()
    await session.refresh(engagement)
    return engagement


async def require_engagement(
    session: AsyncSession,
    *,
    member_id: UUID,
    engagement_id: UUID,
) -> ProjectEngagement:
    engagement = await ProjectEngagement.objects.filter_by(
        id=engagement_id,
        organization_member_id=member_id,
    ).first(session)
    if engagement is None:
        raise NotFoundError("Engagement not found")
    return engagement


async def update_engagement(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    engagement_id: UUID,
    payload: EngagementUpdate,
) -> ProjectEngagement:
    """Apply a partial update, re-running only the checks its fields affect."""
    authorize(ctx.member, OrgRole.ADMIN)
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
        lock=True,
    )
    engagement = await require_engagement(
        session,
        member_id=member.id,
        engagement_id=engagement_id,
    )
    updates = payload.model_dump(exclude_unset=True)
    was_active = engagement.is_active
    dates_changed = "start_date" in updates or "end_date" in updates
    for key, value in updates.items():
        setattr(engagement, key, value)
    if dates_changed:
        validate_engagement_dates(engagement.start_date, engagement.end_date, today=utctoday())
    if engagement.is_active:
        reactivated = not was_active
        active = await _active_engagements(session, member_id=member.id)
        _validate_schedule(
            member,
            engagement,
            active,
            check_overlap=dates_changed or reactivated,
            check_hours="hours_per_week" in updates or reactivated,
        )
    engagement.updated_at = utcnow()
    session.add(engagement)
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="engagement.update",
        target_type="project_engagement",
        target_id=engagement.id,
        payload={"fields": sorted(updates)},
    )
    await session.commit()
    await session.refresh(engagement)
    return engagement


async def delete_engagement(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    engagement_id: UUID,
) -> None:
    authorize(ctx.member, OrgRole.ADMIN)
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
    )
    engagement = await require_engagement(
        session,
        member_id=member.id,
        engagement_id=engagement_id,
    )
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="engagement.delete",
        target_type="project_engagement",
        target_id=engagement.id,
        payload={"project_id": str(engagement.project_id)},
    )
    await session.delete(engagement)
    await session.commit()
