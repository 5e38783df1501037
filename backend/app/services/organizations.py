"""Organization, membership, and project service helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from app.core.logging import get_logger
from app.core.time import utcnow
from app.db import crud
from app.models.engagements import ProjectEngagement
from app.models.organization_members import OrganizationMember
from app.models.organizations import Organization
from app.models.permission_sets import PermissionSet
from app.models.projects import Project
from app.models.users import User
from app.services.audit import record_audit
from app.services.capacity import check_capacity_change
from app.services.errors import AuthorizationError, NotFoundError, ValidationError
from app.services.role_authorizer import (
    DEFAULT_PERMISSION_SETS,
    OrgRole,
    has_capability,
    role_at_least,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.schemas.organizations import OrganizationMemberCreate, OrganizationMemberUpdate
    from app.schemas.projects import ProjectCreate

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrganizationContext:
    """Resolved organization and membership for the calling user."""

    organization: Organization
    member: OrganizationMember


async def get_member(
    session: AsyncSession,
    *,
    user_id: UUID,
    organization_id: UUID,
) -> OrganizationMember | None:
    """Fetch a membership by user id and organization id."""
    return await OrganizationMember.objects.filter_by(
        user_id=user_id,
        organization_id=organization_id,
    ).first(session)


async def require_org_member(
    session: AsyncSession,
    *,
    organization_id: UUID,
    member_id: UUID,
    lock: bool = False,
) -> OrganizationMember:
    """Load a member of `organization_id`, optionally locking the row.

    Locking serializes concurrent schedule writes for one member until the
    surrounding transaction ends.
    """
    query = OrganizationMember.objects.filter_by(
        id=member_id,
        organization_id=organization_id,
    )
    if lock:
        query = query.for_update()
    member = await query.first(session)
    if member is None:
        raise NotFoundError("Member not found")
    return member


async def create_organization(
    session: AsyncSession,
    *,
    user: User,
    name: str,
) -> OrganizationContext:
    """Create an organization owned by `user` with its default permission sets."""
    now = utcnow()
    organization = Organization(name=name, created_at=now, updated_at=now)
    session.add(organization)
    await session.flush()
    for set_name, permissions in DEFAULT_PERMISSION_SETS.items():
        session.add(
            PermissionSet(
                organization_id=organization.id,
                name=set_name,
                permissions=dict(permissions),
                is_default=True,
                created_at=now,
                updated_at=now,
            ),
        )
    member = OrganizationMember(
        organization_id=organization.id,
        user_id=user.id,
        role=OrgRole.OWNER.label,
        created_at=now,
        updated_at=now,
    )
    session.add(member)
    await record_audit(
        session,
        organization_id=organization.id,
        actor_id=user.id,
        action="organization.create",
        target_type="organization",
        target_id=organization.id,
        payload={"name": name},
    )
    await session.commit()
    await session.refresh(organization)
    await session.refresh(member)
    logger.info(
        "organization.created",
        extra={"organization_id": str(organization.id), "owner_user_id": str(user.id)},
    )
    return OrganizationContext(organization=organization, member=member)


async def _require_permission_set_in_org(
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
        raise ValidationError("Permission set does not belong to this organization")
    return permission_set


async def add_member(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    payload: OrganizationMemberCreate,
) -> OrganizationMember:
    """Add a user (created on first sight) to the caller's organization."""
    organization_id = ctx.organization.id
    if payload.permission_set_id is not None:
        await _require_permission_set_in_org(
            session,
            organization_id=organization_id,
            permission_set_id=payload.permission_set_id,
        )
    user, _created = await crud.get_or_create(
        session,
        User,
        email=payload.email,
        defaults={"name": payload.name},
    )
    existing = await get_member(session, user_id=user.id, organization_id=organization_id)
    if existing is not None:
        raise ValidationError(
            "User is already a member of this organization",
            code="duplicate_member",
        )
    now = utcnow()
    member = OrganizationMember(
        organization_id=organization_id,
        user_id=user.id,
        role=payload.role,
        working_hours_per_week=payload.working_hours_per_week,
        permission_set_id=payload.permission_set_id,
        created_at=now,
        updated_at=now,
    )
    session.add(member)
    await record_audit(
        session,
        organization_id=organization_id,
        actor_id=ctx.member.user_id,
        action="member.add",
        target_type="organization_member",
        target_id=member.id,
        payload={"user_id": str(user.id), "role": payload.role},
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValidationError(
            "User is already a member of this organization",
            code="duplicate_member",
        ) from exc
    await session.refresh(member)
    return member


async def update_member(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member: OrganizationMember,
    payload: OrganizationMemberUpdate,
) -> OrganizationMember:
    """Apply role, capacity, and permission-set changes to a member."""
    updates = payload.model_dump(exclude_unset=True)
    if "role" in updates:
        if updates["role"] is None:
            raise ValidationError("role cannot be null")
        caller_role = OrgRole.parse(ctx.member.role)
        target_role = OrgRole.parse(updates["role"])
        # Only owners may grant or revoke ownership.
        if OrgRole.OWNER in (target_role, OrgRole.parse(member.role)) and (
            caller_role != OrgRole.OWNER
        ):
            raise AuthorizationError("Only owners can change ownership")
    if updates.get("permission_set_id") is not None:
        await _require_permission_set_in_org(
            session,
            organization_id=member.organization_id,
            permission_set_id=updates["permission_set_id"],
        )
    if "working_hours_per_week" in updates:
        # Lock the member row the way engagement writes do.
        await session.refresh(member, with_for_update=True)
        engagements = await ProjectEngagement.objects.filter_by(
            organization_member_id=member.id,
            is_active=True,
        ).all(session)
        check_capacity_change(member, updates["working_hours_per_week"], engagements)
    for key, value in updates.items():
        setattr(member, key, value)
    member.updated_at = utcnow()
    session.add(member)
    await record_audit(
        session,
        organization_id=member.organization_id,
        actor_id=ctx.member.user_id,
        action="member.update",
        target_type="organization_member",
        target_id=member.id,
        payload={key: str(value) if value is not None else None for key, value in updates.items()},
    )
    await session.commit()
    await session.refresh(member)
    return member


async def create_project(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    payload: ProjectCreate,
) -> Project:
    now = utcnow()
    project = Project(
        organization_id=ctx.organization.id,
        name=payload.name.strip(),
        description=payload.description,
        created_at=now,
        updated_at=now,
    )
    session.add(project)
    await record_audit(
        session,
        organization_id=ctx.organization.id,
        actor_id=ctx.member.user_id,
        action="project.create",
        target_type="project",
        target_id=project.id,
    )
    await session.commit()
    await session.refresh(project)
    return project


async def require_project(
    session: AsyncSession,
    *,
    organization_id: UUID,
    project_id: UUID,
) -> Project:
    project = await Project.objects.filter_by(
        id=project_id,
        organization_id=organization_id,
    ).first(session)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def can_view_all_members(session: AsyncSession, ctx: OrganizationContext) -> bool:
    """Return whether the caller may see every member's schedule."""
    if role_at_least(ctx.member, OrgRole.ADMIN):
        return True
    permission_set = None
    if ctx.member.permission_set_id is not None:
        permission_set = await PermissionSet.objects.by_id(ctx.member.permission_set_id).first(
            session,
        )
    return has_capability(ctx.member, permission_set, "team_members.view_all")


async def ensure_can_view_member(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    member: OrganizationMember,
) -> None:
    if member.id == ctx.member.id or await can_view_all_members(session, ctx):
        return
    raise AuthorizationError("team_members.view_all permission required")
