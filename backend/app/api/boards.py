"""Board endpoints scoped to one organization."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from app.api.deps import ORG_MEMBER_DEP, SESSION_DEP, require_org_admin
from app.db.pagination import paginate
from app.schemas.boards import BoardCreate, BoardRead
from app.schemas.pagination import DefaultLimitOffsetPage
from app.services.boards import boards_statement, create_board
from app.services.organizations import OrganizationContext

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/organizations/{organization_id}/boards", tags=["boards"])
ORG_ADMIN_DEP = Depends(require_org_admin)


@router.get("", response_model=DefaultLimitOffsetPage[BoardRead])
async def list_boards(
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_MEMBER_DEP,
) -> LimitOffsetPage[BoardRead]:
    return await paginate(session, boards_statement(ctx.organization.id))


@router.post("", response_model=BoardRead)
async def create_org_board(
    payload: BoardCreate,
    session: AsyncSession = SESSION_DEP,
    ctx: OrganizationContext = ORG_ADMIN_DEP,
) -> BoardRead:
    """Create a board; its backlog sprint is created in the same transaction."""
    board = await create_board(session, ctx=ctx, payload=payload)
    return BoardRead.model_validate(board, from_attributes=True)
