"""Sprint lifecycle endpoints: create, inspect, columns, start, complete, delete."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Body, Depends

from app.api.deps import SESSION_DEP, USER_DEP, get_board_or_404
from app.models.boards import Board
from app.models.users import User
from app.schemas.common import OkResponse
from app.schemas.sprints import (
    SprintColumnCreate,
    SprintColumnRead,
    SprintComplete,
    SprintCompleteResponse,
    SprintCreate,
    SprintRead,
    SprintStart,
    SprintStartResponse,
)
from app.services.boards import require_board, require_board_member
from app.services.sprints import (
    complete_sprint,
    create_sprint,
    create_sprint_column,
    delete_sprint,
    list_board_sprints,
    list_sprint_columns,
    require_sprint,
    start_sprint,
)

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

board_router = APIRouter(prefix="/boards/{board_id}/sprints", tags=["sprints"])
router = APIRouter(prefix="/sprints", tags=["sprints"])
BOARD_DEP = Depends(get_board_or_404)
START_BODY = Body(default=None)
COMPLETE_BODY = Body(default=None)


@board_router.get("", response_model=list[SprintRead])
async def list_sprints(
    board: Board = BOARD_DEP,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> list[SprintRead]:
    """List a board's live sprints in position order, backlog first."""
    await require_board_member(session, user_id=user.id, board=board)
    sprints = await list_board_sprints(session, board_id=board.id)
    return [SprintRead.model_validate(sprint, from_attributes=True) for sprint in sprints]


@board_router.post("", response_model=SprintRead)
async def create_board_sprint(
    payload: SprintCreate,
    board: Board = BOARD_DEP,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> SprintRead:
    member = await require_board_member(session, user_id=user.id, board=board)
    sprint = await create_sprint(session, board=board, member=member, payload=payload)
    return SprintRead.model_validate(sprint, from_attributes=True)


@router.get("/{sprint_id}", response_model=SprintRead)
async def get_sprint(
    sprint_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> SprintRead:
    sprint = await require_sprint(session, sprint_id)
    board = await require_board(session, sprint.board_id)
    await require_board_member(session, user_id=user.id, board=board)
    return SprintRead.model_validate(sprint, from_attributes=True)


@router.delete("/{sprint_id}", response_model=OkResponse)
async def delete_board_sprint(
    sprint_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> OkResponse:
    """Soft-delete a sprint. The backlog and the active sprint cannot be deleted."""
    sprint = await require_sprint(session, sprint_id)
    board = await require_board(session, sprint.board_id)
    member = await require_board_member(session, user_id=user.id, board=board)
    await delete_sprint(session, sprint=sprint, board=board, member=member)
    return OkResponse()


@router.post("/{sprint_id}/start", response_model=SprintStartResponse)
async def start_board_sprint(
    sprint_id: UUID,
    payload: SprintStart | None = START_BODY,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> SprintStartResponse:
    """Activate a planning sprint.

    Rejections use 409 with codes `already_active`, `is_backlog`, or
    `conflict_another_active` (naming the sprint that is already active).
    """
    activation = await start_sprint(
        session,
        user_id=user.id,
        sprint_id=sprint_id,
        payload=payload or SprintStart(),
    )
    return SprintStartResponse(
        sprint=SprintRead.model_validate(activation.sprint, from_attributes=True),
        columns=[
            SprintColumnRead.model_validate(column, from_attributes=True)
            for column in activation.columns
        ],
    )


@router.post("/{sprint_id}/complete", response_model=SprintCompleteResponse)
async def complete_board_sprint(
    sprint_id: UUID,
    payload: SprintComplete | None = COMPLETE_BODY,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> SprintCompleteResponse:
    """Complete the active sprint; unfinished tasks go back to the backlog by default."""
    options = payload or SprintComplete()
    completion = await complete_sprint(
        session,
        user_id=user.id,
        sprint_id=sprint_id,
        move_unfinished_to_backlog=options.move_unfinished_to_backlog,
    )
    return SprintCompleteResponse(
        sprint=SprintRead.model_validate(completion.sprint, from_attributes=True),
        completed_tasks=completion.completed_tasks,
        moved_tasks=completion.moved_tasks,
    )


@router.get("/{sprint_id}/columns", response_model=list[SprintColumnRead])
async def list_columns(
    sprint_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> list[SprintColumnRead]:
    sprint = await require_sprint(session, sprint_id)
    board = await require_board(session, sprint.board_id)
    await require_board_member(session, user_id=user.id, board=board)
    columns = await list_sprint_columns(session, sprint_id=sprint.id)
    return [SprintColumnRead.model_validate(column, from_attributes=True) for column in columns]


@router.post("/{sprint_id}/columns", response_model=SprintColumnRead)
async def create_column(
    sprint_id: UUID,
    payload: SprintColumnCreate,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> SprintColumnRead:
    """Add a workflow column. A sprint that has columns keeps them when it starts."""
    sprint = await require_sprint(session, sprint_id)
    board = await require_board(session, sprint.board_id)
    member = await require_board_member(session, user_id=user.id, board=board)
    column = await create_sprint_column(
        session,
        sprint=sprint,
        board=board,
        member=member,
        payload=payload,
    )
    return SprintColumnRead.model_validate(column, from_attributes=True)
