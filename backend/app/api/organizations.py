"""Organization, membership, and project endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import col, select

from app.api.deps import ORG_MEMBER_DEP, SESSION_DEP, USER_DEP, require_org_admin
from app.db.pagination import paginate
from app.models.organization_members import OrganizationMember
from app.models.projects import Project
from app.models.users import User
from app.schemas.organizations import (
    OrganizationCreate,
    OrganizationMemberCreate,
    OrganizationMemberRead,
    OrganizationMemberUpdate,
    OrganizationRead,
)
from app.schemas.pagination import DefaultLimitOffsetPage
from app.schemas.projects import ProjectCreate, ProjectRead
from app.schemas.users import UserRead
from app.services.errors import NotFoundError
from app.services.organizations import (
    OrganizationContext,
    add_member,
    can_view_all_members,
    create_organization,
    create_project,
    update_member,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/organizations", tags=["organizations"])
ORG_ADMIN_DEP = Depends(require_org_admin)


def _member_to_read(member: OrganizationMember, user: User | None) -> OrganizationMemberRead:
    model = OrganizationMemberRead.model_validate(member, from_attributes=True)
    if user is not None:
        model.user = UserRead.model_validate(user, from_attributes=True)
    return model


@router.post("", response_model=OrganizationRead)
async def create_org(
    payload: OrganizationCreate,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> OrganizationRead:
    """Create an organization owned by the caller."""
    ctx = await create_organization(session, user=user, name=payload.name)
    return OrganizationRead.model_validate(ctx.organization, from_attributes=True)


@router.get(
    "/{organization_id}/members",
    response_model=DefaultLimitOffsetPage[OrganizationMemberRead],
)
async def list_org_members(
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> LimitOffsetPage[OrganizationMemberRead]:
    """List members; callers without `team_members.view_all` only see themselves."""
    statement = (
        select(OrganizationMember, User)
        .join(User, col(User.id) == col(OrganizationMember.user_id))
        .where(col(OrganizationMember.organization_id) == ctx.organization.id)
        .order_by(col(User.email).asc())
    )
    if not await can_view_all_members(session, ctx):
        statement = statement.where(col(OrganizationMember.id) == ctx.member.id)

    def _transform(items: Sequence[Any]) -> Sequence[Any]:
        return [_member_to_read(member, user) for member, user in items]

    return await paginate(session, statement, transformer=_transform)


@router.post("/{organization_id}/members", response_model=OrganizationMemberRead)
async def add_org_member(
    payload: OrganizationMemberCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> OrganizationMemberRead:
    """Add a user to the organization by email."""
    member = await add_member(session, ctx=ctx, payload=payload)
    user = await User.objects.by_id(member.user_id).first(session)
    return _member_to_read(member, user)


@router.patch(
    "/{organization_id}/members/{member_id}",
    response_model=OrganizationMemberRead,
)
async def update_org_member(
    member_id: UUID,
    payload: OrganizationMemberUpdate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> OrganizationMemberRead:
    """Change a member's role, weekly capacity, or permission set."""
    member = await OrganizationMember.objects.filter_by(
        id=member_id,
        organization_id=ctx.organization.id,
    ).first(session)
    if member is None:
        raise NotFoundError("Member not found")
    updated = await update_member(session, ctx=ctx, member=member, payload=payload)
    user = await User.objects.by_id(updated.user_id).first(session)
    return _member_to_read(updated, user)


@router.get("/{organization_id}/projects", response_model=list[ProjectRead])
async def list_projects(
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> list[ProjectRead]:
    projects = await (
        Project.objects.filter_by(organization_id=ctx.organization.id)
        .order_by(col(Project.created_at).asc())
        .all(session)
    )
    return [ProjectRead.model_validate(project, from_attributes=True) for project in projects]


@router.post("/{organization_id}/projects", response_model=ProjectRead)
async def create_org_project(
    payload: ProjectCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> ProjectRead:
    """Create a project in the organization."""
    project = await create_project(session, ctx=ctx, payload=payload)
    return ProjectRead.model_validate(project, from_attributes=True)
