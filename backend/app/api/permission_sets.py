"""Permission set endpoints scoped to one organization."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import ORG_MEMBER_DEP, SESSION_DEP, require_org_admin
from app.schemas.common import OkResponse
from app.schemas.permission_sets import (
    PermissionSetCreate,
    PermissionSetRead,
    PermissionSetUpdate,
)
from app.services.organizations import OrganizationContext
from app.services.permission_sets import (
    create_permission_set,
    delete_permission_set,
    list_permission_sets,
    member_counts,
    require_permission_set,
    update_permission_set,
)

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.permission_sets import PermissionSet

router = APIRouter(
    prefix="/organizations/{organization_id}/permission-sets",
    tags=["permission-sets"],
)
ORG_ADMIN_DEP = Depends(require_org_admin)
REASSIGN_QUERY = Query(default=None)


def _to_read(permission_set: PermissionSet, member_count: int = 0) -> PermissionSetRead:
    model = PermissionSetRead.model_validate(permission_set, from_attributes=True)
    model.member_count = member_count
    return model


@router.get("", response_model=list[PermissionSetRead])
async def list_sets(
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> list[PermissionSetRead]:
    rows = await list_permission_sets(session, organization_id=ctx.organization.id)
    return [_to_read(permission_set, count) for permission_set, count in rows]


@router.post("", response_model=PermissionSetRead)
async def create_set(
    payload: PermissionSetCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> PermissionSetRead:
    """Create a custom permission set; unmet capability dependencies are rejected."""
    permission_set = await create_permission_set(session, ctx=ctx, payload=payload)
    return _to_read(permission_set)


@router.get("/{permission_set_id}", response_model=PermissionSetRead)
async def get_set(
    permission_set_id: UUID,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> PermissionSetRead:
    permission_set = await require_permission_set(
        session,
        organization_id=ctx.organization.id,
        permission_set_id=permission_set_id,
    )
    counts = await member_counts(session, [permission_set.id])
    return _to_read(permission_set, counts.get(permission_set.id, 0))


@router.patch("/{permission_set_id}", response_model=PermissionSetRead)
async def update_set(
    permission_set_id: UUID,
    payload: PermissionSetUpdate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> PermissionSetRead:
    """Rename a custom set or replace its grants. Default sets are read-only."""
    permission_set = await require_permission_set(
        session,
        organization_id=ctx.organization.id,
        permission_set_id=permission_set_id,
    )
    updated = await update_permission_set(
        session,
        ctx=ctx,
        permission_set=permission_set,
        payload=payload,
    )
    counts = await member_counts(session, [updated.id])
    return _to_read(updated, counts.get(updated.id, 0))


@router.delete("/{permission_set_id}", response_model=OkResponse)
async def delete_set(
    permission_set_id: UUID,
    reassign_to_permission_set_id: UUID | None = REASSIGN_QUERY,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> OkResponse:
    """Delete a custom set, moving its members to another set or to none."""
    permission_set = await require_permission_set(
        session,
        organization_id=ctx.organization.id,
        permission_set_id=permission_set_id,
    )
    await delete_permission_set(
        session,
        ctx=ctx,
        permission_set=permission_set,
        reassign_to_permission_set_id=reassign_to_permission_set_id,
    )
    return OkResponse()
