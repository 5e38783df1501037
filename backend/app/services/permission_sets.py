"""Permission set CRUD with dependency and immutability checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.organization_members import OrganizationMember
from app.models.permission_sets import PermissionSet
from app.services.audit import record_audit
from app.services.errors import NotFoundError, ValidationError
from app.services.role_authorizer import (
    ensure_mutable_permission_set,
    ensure_permission_dependencies,
    normalize_permissions,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.schemas.permission_sets import PermissionSetCreate, PermissionSetUpdate
    from app.services.organizations import OrganizationContext

logger = get_logger(__name__)


def _duplicate_name(name: str) -> ValidationError:
    return ValidationError(
        f"A permission set named '{name}' already exists",
        code="duplicate_name",
    )


async def _ensure_unique_name(
    session: AsyncSession,
    *,
    organization_id: UUID,
    name: str,
    exclude_id: UUID | None = None,
) -> None:
    query = PermissionSet.objects.filter_by(organization_id=organization_id).filter(
        func.lower(col(PermissionSet.name)) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(col(PermissionSet.id) != exclude_id)
    if await query.exists(session):
        raise _duplicate_name(name)


async def list_permission_sets(
    session: AsyncSession,
    *,
    organization_id: UUID,
) -> list[tuple[PermissionSet, int]]:
    """Return the organization's sets, defaults first, with member counts."""
    sets = await (
        PermissionSet.objects.filter_by(organization_id=organization_id)
        .order_by(col(PermissionSet.is_default).desc(), col(PermissionSet.name).asc())
        .all(session)
    )
    counts = await member_counts(session, [item.id for item in sets])
    return [(item, counts.get(item.id, 0)) for item in sets]


async def member_counts(
    session: AsyncSession,
    permission_set_ids: list[UUID],
) -> dict[UUID, int]:
    if not permission_set_ids:
        return {}
    statement = (
        select(OrganizationMember.permission_set_id, func.count())
        .where(col(OrganizationMember.permission_set_id).in_(permission_set_ids))
        .group_by(col(OrganizationMember.permission_set_id))
    )
    rows = await session.exec(statement)
    return {set_id: int(count) for set_id, count in rows if set_id is not None}


async def require_permission_set(
    session: AsyncSession,
    *,
    organization_id: UUID,
    permission_set_id: UUID,
) -> PermissionSet:
    permission_set = await PermissionSet.objects.filter_by(
        id=permission_set_id,
        organization_id=organization_id,
    ).first(session)
    if permission_set is None:
        raise NotFoundError("Permission set not found")
    return permission_set


async def create_permission_set(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    payload: PermissionSetCreate,
) -> PermissionSet:
    """Create a custom permission set after dependency and name checks."""
    organization_id = ctx.organization.id
    permissions = normalize_permissions(payload.permissions)
    ensure_permission_dependencies(permissions)
    await _ensure_unique_name(session, organization_id=organization_id, name=payload.name)
    now = utcnow()
    permission_set = PermissionSet(
        organization_id=organization_id,
        name=payload.name,
        permissions=permissions,
        is_default=False,
        created_at=now,
        updated_at=now,
    )
    session.add(permission_set)
    await record_audit(
        session,
        organization_id=organization_id,
        actor_id=ctx.member.user_id,
        action="permission_set.create",
        target_type="permission_set",
        target_id=permission_set.id,
        payload={"name": payload.name},
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise _duplicate_name(payload.name) from exc
    await session.refresh(permission_set)
    return permission_set


async def update_permission_set(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    permission_set: PermissionSet,
    payload: PermissionSetUpdate,
) -> PermissionSet:
    """Rename a custom set and/or replace its grants."""
    ensure_mutable_permission_set(permission_set)
    updates = payload.model_dump(exclude_unset=True)
    name = updates.get("name")
    if name is not None and name != permission_set.name:
        await _ensure_unique_name(
            session,
            organization_id=permission_set.organization_id,
            name=name,
            exclude_id=permission_set.id,
        )
        permission_set.name = name
    if updates.get("permissions") is not None:
        permissions = normalize_permissions(updates["permissions"])
        ensure_permission_dependencies(permissions)
        permission_set.permissions = permissions
    permission_set.updated_at = utcnow()
    session.add(permission_set)
    await record_audit(
        session,
        organization_id=permission_set.organization_id,
        actor_id=ctx.member.user_id,
        action="permission_set.update",
        target_type="permission_set",
        target_id=permission_set.id,
        payload={"fields": sorted(updates)},
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise _duplicate_name(permission_set.name) from exc
    await session.refresh(permission_set)
    return permission_set


async def delete_permission_set(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    permission_set: PermissionSet,
    reassign_to_permission_set_id: UUID | None = None,
) -> int:
    """Delete a custom set, moving its members to another set or to none.

    Returns the number of members that were reassigned.
    """
    ensure_mutable_permission_set(permission_set)
    if reassign_to_permission_set_id is not None:
        if reassign_to_permission_set_id == permission_set.id:
            raise ValidationError("Cannot reassign members to the set being deleted")
        await require_permission_set(
            session,
            organization_id=permission_set.organization_id,
            permission_set_id=reassign_to_permission_set_id,
        )
    members = await OrganizationMember.objects.filter_by(
        permission_set_id=permission_set.id,
    ).all(session)
    now = utcnow()
    for member in members:
        member.permission_set_id = reassign_to_permission_set_id
        member.updated_at = now
        session.add(member)
    # Member rows must point away before the set row disappears.
    await session.flush()
    await record_audit(
        session,
        organization_id=permission_set.organization_id,
        actor_id=ctx.member.user_id,
        action="permission_set.delete",
        target_type="permission_set",
        target_id=permission_set.id,
        payload={
            "name": permission_set.name,
            "reassigned_members": len(members),
            "reassign_to": (
                str(reassign_to_permission_set_id) if reassign_to_permission_set_id else None
            ),
        },
    )
    await session.delete(permission_set)
    await session.commit()
    logger.info(
        "permission_set.deleted",
        extra={"permission_set_id": str(permission_set.id), "reassigned": len(members)},
    )
    return len(members)
