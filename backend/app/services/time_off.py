"""Time-off requests: ownership rules, approval status, and overlap checks."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlmodel import col, select

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.time_off import BLOCKING_TIME_OFF_STATUSES, TimeOffEntry
from app.services.audit import record_audit
from app.services.errors import (
    AuthorizationError,
    NotFoundError,
    OverlapConflictError,
    ValidationError,
)
from app.services.intervals import BoundedInterval, ScheduledRecord, find_overlap
from app.services.organizations import require_org_member
from app.services.role_authorizer import OrgRole, role_at_least

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

    from app.models.organization_members import OrganizationMember
    from app.schemas.time_off import TimeOffCreate, TimeOffUpdate
    from app.services.organizations import OrganizationContext

logger = get_logger(__name__)


def _ensure_can_manage(ctx: OrganizationContext, member: OrganizationMember) -> None:
    """Members manage their own entries; admins and owners manage anyone's."""
    if ctx.member.id == member.id or role_at_least(ctx.member, OrgRole.ADMIN):
        return
    raise AuthorizationError("You can only manage your own time off")


def _ensure_valid_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError(
            "End date must be on or after start date",
            code="invalid_date_range",
        )


async def _ensure_no_overlap(
    session: AsyncSession,
    *,
    member_id: UUID,
    start_date: date,
    end_date: date,
    exclude_id: UUID | None = None,
) -> None:
    blocking = await TimeOffEntry.objects.filter_by(organization_member_id=member_id).filter(
        col(TimeOffEntry.status).in_(BLOCKING_TIME_OFF_STATUSES),
    ).all(session)
    conflict = find_overlap(
        BoundedInterval(start_date, end_date),
        (
            ScheduledRecord(
                id=entry.id,
                interval=BoundedInterval(entry.start_date, entry.end_date),
                record=entry,
            )
            for entry in blocking
        ),
        exclude_id=exclude_id,
    )
    if conflict is not None:
        existing = conflict.record
        logger.info(
            "time_off.overlap.detected",
            extra={"member_id": str(member_id), "conflicting_entry_id": str(existing.id)},
        )
        raise OverlapConflictError(
            "Time off overlaps an existing "
            f"{existing.status} entry ({existing.start_date} to {existing.end_date})",
            conflicting_id=str(existing.id),
        )


def time_off_statement(
    *,
    member_id: UUID,
    status: str | None = None,
    entry_type: str | None = None,
    start_from: date | None = None,
    end_to: date | None = None,
) -> SelectOfScalar[TimeOffEntry]:
    """Build the filtered listing query; the window keeps entries touching it."""
    statement = select(TimeOffEntry).where(
        col(TimeOffEntry.organization_member_id) == member_id,
    )
    if status is not None:
        statement = statement.where(col(TimeOffEntry.status) == status)
    if entry_type is not None:
        statement = statement.where(col(TimeOffEntry.type) == entry_type)
    if start_from is not None:
        statement = statement.where(col(TimeOffEntry.end_date) >= start_from)
    if end_to is not None:
        statement = statement.where(col(TimeOffEntry.start_date) <= end_to)
    return statement.order_by(col(TimeOffEntry.start_date).desc())


async def create_time_off(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    payload: TimeOffCreate,
) -> TimeOffEntry:
    """Record a pending time-off request after the overlap check."""
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
        lock=True,
    )
    _ensure_can_manage(ctx, member)
    _ensure_valid_range(payload.start_date, payload.end_date)
    await _ensure_no_overlap(
        session,
        member_id=member.id,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    now = utcnow()
    entry = TimeOffEntry(
        organization_member_id=member.id,
        type=payload.type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        description=payload.description,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    session.add(entry)
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="time_off.create",
        target_type="time_off_entry",
        target_id=entry.id,
        payload={
            "member_id": str(member.id),
            "type": payload.type,
            "start_date": payload.start_date.isoformat(),
            "end_date": payload.end_date.isoformat(),
        },
    )
    await session.commit()
    await session.refresh(entry)
    return entry


async def require_time_off(
    session: AsyncSession,
    *,
    member_id: UUID,
    entry_id: UUID,
) -> TimeOffEntry:
    entry = await TimeOffEntry.objects.filter_by(
        id=entry_id,
        organization_member_id=member_id,
    ).first(session)
    if entry is None:
        raise NotFoundError("Time off entry not found")
    return entry


async def update_time_off(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    entry_id: UUID,
    payload: TimeOffUpdate,
) -> TimeOffEntry:
    """Edit dates, type, or description, or (admins only) change status."""
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
        lock=True,
    )
    _ensure_can_manage(ctx, member)
    entry = await require_time_off(session, member_id=member.id, entry_id=entry_id)
    updates = payload.model_dump(exclude_unset=True)

    new_status = updates.pop("status", None)
    status_changed = new_status is not None and new_status != entry.status
    if status_changed and not role_at_least(ctx.member, OrgRole.ADMIN):
        raise AuthorizationError("Only admins can change time off status")

    start_date = updates.get("start_date", entry.start_date)
    end_date = updates.get("end_date", entry.end_date)
    _ensure_valid_range(start_date, end_date)

    dates_changed = start_date != entry.start_date or end_date != entry.end_date
    reopened = status_changed and entry.status == "rejected"
    final_status = new_status if status_changed else entry.status
    if (dates_changed or reopened) and final_status in BLOCKING_TIME_OFF_STATUSES:
        await _ensure_no_overlap(
            session,
            member_id=member.id,
            start_date=start_date,
            end_date=end_date,
            exclude_id=entry.id,
        )

    for key, value in updates.items():
        setattr(entry, key, value)
    if status_changed:
        entry.status = final_status
        entry.approved_by = ctx.member.user_id if final_status != "pending" else None
    entry.updated_at = utcnow()
    session.add(entry)
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="time_off.status" if status_changed else "time_off.update",
        target_type="time_off_entry",
        target_id=entry.id,
        payload={"fields": sorted(updates), "status": entry.status},
    )
    await session.commit()
    await session.refresh(entry)
    return entry


async def delete_time_off(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member_id: UUID,
    entry_id: UUID,
) -> None:
    member = await require_org_member(
        session,
        organization_id=ctx.organization.id,
        member_id=member_id,
    )
    _ensure_can_manage(ctx, member)
    entry = await require_time_off(session, member_id=member.id, entry_id=entry_id)
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="time_off.delete",
        target_type="time_off_entry",
        target_id=entry.id,
    )
    await session.delete(entry)
    await session.commit()
