"""Reusable FastAPI dependencies for caller identity and organization access.

Routes under `/organizations/{organization_id}` resolve the caller's
membership here; a caller without a membership is rejected with a 403
`unauthorized` error before any handler logic runs. Role checks beyond
plain membership go through `require_org_admin`, which delegates to the
shared role hierarchy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Depends, HTTPException, status

from app.core.auth import AuthContext, get_auth_context
from app.db.session import get_session
from app.models.boards import Board
from app.models.organizations import Organization
from app.models.users import User
from app.services.errors import NotFoundError
from app.services.organizations import OrganizationContext, get_member
from app.services.role_authorizer import OrgRole, authorize

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)


def require_user(auth: AuthContext = AUTH_DEP) -> User:
    """Return the authenticated user or raise 401."""
    if auth.user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return auth.user


USER_DEP = Depends(require_user)


async def require_org_member(
    organization_id: UUID,
    user: User = USER_DEP,
    session: AsyncSession = SESSION_DEP,
) -> OrganizationContext:
    """Resolve the caller's membership in the organization named by the path."""
    organization = await Organization.objects.by_id(organization_id).first(session)
    if organization is None:
        raise NotFoundError("Organization not found")
    member = authorize(
        await get_member(session, user_id=user.id, organization_id=organization.id),
        OrgRole.MEMBER,
    )
    return OrganizationContext(organization=organization, member=member)


ORG_MEMBER_DEP = Depends(require_org_member)


async def require_org_admin(
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> OrganizationContext:
    """Require admin-or-higher membership in the path organization."""
    authorize(ctx.member, OrgRole.ADMIN)
    return ctx


async def get_board_or_404(
    board_id: UUID,
    session: AsyncSession = SESSION_DEP,
) -> Board:
    """Load a board by id or raise 404."""
    board = await Board.objects.by_id(board_id).first(session)
    if board is None:
        raise NotFoundError("Board not found")
    return board
