"""Board creation and membership-gated board lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col, select

from app.core.time import utcnow
from app.models.boards import Board
from app.models.sprints import Sprint
from app.services.audit import record_audit
from app.services.errors import NotFoundError
from app.services.organizations import get_member, require_project
from app.services.role_authorizer import OrgRole, authorize

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

    from app.models.organization_members import OrganizationMember
    from app.schemas.boards import BoardCreate
    from app.services.organizations import OrganizationContext

BACKLOG_SPRINT_NAME = "Backlog"


def boards_statement(organization_id: UUID) -> SelectOfScalar[Board]:
    return (
        select(Board)
        .where(col(Board.organization_id) == organization_id)
        .order_by(col(Board.created_at).asc())
    )


async def create_board(
    session: AsyncSession,
    *,
    ctx: OrganizationContext,
    payload: BoardCreate,
) -> Board:
    """Create a board together with its permanent backlog sprint."""
    organization_id = ctx.organization.id
    if payload.project_id is not None:
        await require_project(
            session,
            organization_id=organization_id,
            project_id=payload.project_id,
        )
    now = utcnow()
    board = Board(
        organization_id=organization_id,
        project_id=payload.project_id,
        name=payload.name.strip(),
        description=payload.description,
        created_at=now,
        updated_at=now,
    )
    session.add(board)
    await session.flush()
    session.add(
        Sprint(
            board_id=board.id,
            name=BACKLOG_SPRINT_NAME,
            status="planning",
            is_backlog=True,
            position=0,
            created_at=now,
            updated_at=now,
        ),
    )
    await record_audit(
        session,
        organization_id=organization_id,
        actor_id=ctx.member.user_id,
        action="board.create",
        target_type="board",
        target_id=board.id,
    )
    await session.commit()
    await session.refresh(board)
    return board


async def require_board(session: AsyncSession, board_id: UUID) -> Board:
    board = await Board.objects.by_id(board_id).first(session)
    if board is None:
        raise NotFoundError("Board not found")
    return board


async def require_board_member(
    session: AsyncSession,
    *,
    user_id: UUID,
    board: Board,
) -> OrganizationMember:
    """Return the caller's membership in the board's organization."""
    member = await get_member(
        session,
        user_id=user_id,
        organization_id=board.organization_id,
    )
    return authorize(member, OrgRole.MEMBER)
