"""Sprint lifecycle: planning -> active -> completed, one active per board.

The backlog sprint created with every board never transitions. Starting a
sprint locks the board row, checks for another active sprint, bootstraps
default columns, and activates within one transaction; the partial unique
index on active sprints catches any writer that slips past the lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.boards import Board
from app.models.sprint_columns import SprintColumn
from app.models.sprints import Sprint
from app.models.tasks import Task
from app.services.audit import record_audit
from app.services.boards import require_board, require_board_member
from app.services.errors import NotFoundError, StateConflictError, ValidationError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.organization_members import OrganizationMember
    from app.schemas.sprints import SprintColumnCreate, SprintCreate, SprintStart

logger = get_logger(__name__)

SPRINT_STATUS_TRANSITIONS: dict[str, set[str]] = {
    "planning": {"active"},
    "active": {"completed"},
    "completed": set(),
}

# (name, is_done) in position order.
DEFAULT_SPRINT_COLUMNS: tuple[tuple[str, bool], ...] = (
    ("To Do", False),
    ("In Progress", False),
    ("Done", True),
)


@dataclass(frozen=True)
class SprintActivation:
    sprint: Sprint
    columns: list[SprintColumn]


@dataclass(frozen=True)
class SprintCompletion:
    sprint: Sprint
    completed_tasks: int
    moved_tasks: int


def _conflict_another_active(active: Sprint | None) -> StateConflictError:
    if active is None:
        return StateConflictError(
            "Another sprint is already active. Please finish it before starting a new one.",
            code="conflict_another_active",
        )
    return StateConflictError(
        f"Sprint '{active.name}' is already active. Please finish it before starting a new one.",
        code="conflict_another_active",
        active_sprint_id=str(active.id),
        active_sprint_name=active.name,
    )


async def require_sprint(session: AsyncSession, sprint_id: UUID) -> Sprint:
    sprint = await Sprint.objects.filter_by(id=sprint_id, is_deleted=False).first(session)
    if sprint is None:
        raise NotFoundError("Sprint not found")
    return sprint


async def list_board_sprints(session: AsyncSession, *, board_id: UUID) -> list[Sprint]:
    return await (
        Sprint.objects.filter_by(board_id=board_id, is_deleted=False)
        .order_by(col(Sprint.position).asc())
        .all(session)
    )


async def list_sprint_columns(session: AsyncSession, *, sprint_id: UUID) -> list[SprintColumn]:
    return await (
        SprintColumn.objects.filter_by(sprint_id=sprint_id)
        .order_by(col(SprintColumn.position).asc())
        .all(session)
    )


async def create_sprint(
    session: AsyncSession,
    *,
    board: Board,
    member: OrganizationMember,
    payload: SprintCreate,
) -> Sprint:
    """Append a planning sprint after the board's last sprint."""
    max_position = (
        await session.exec(
            select(func.max(Sprint.position)).where(
                col(Sprint.board_id) == board.id,
                col(Sprint.is_deleted).is_(False),
            ),
        )
    ).one()
    now = utcnow()
    sprint = Sprint(
        board_id=board.id,
        name=payload.name.strip(),
        goal=payload.goal,
        status="planning",
        start_date=payload.start_date,
        end_date=payload.end_date,
        position=(max_position if max_position is not None else 0) + 1,
        created_at=now,
        updated_at=now,
    )
    session.add(sprint)
    await record_audit(
        session,
        organization_id=board.organization_id,
        actor_id=member.user_id,
        action="sprint.create",
        target_type="sprint",
        target_id=sprint.id,
    )
    await session.commit()
    await session.refresh(sprint)
    return sprint


async def delete_sprint(
    session: AsyncSession,
    *,
    sprint: Sprint,
    board: Board,
    member: OrganizationMember,
) -> None:
    """Soft-delete a sprint; the backlog and the active sprint are kept."""
    if sprint.is_backlog:
        raise ValidationError("Cannot delete the Backlog sprint", code="is_backlog")
    if sprint.status == "active":
        raise ValidationError(
            "Cannot delete an active sprint. Complete it first.",
            code="sprint_active",
        )
    sprint.is_deleted = True
    sprint.updated_at = utcnow()
    session.add(sprint)
    await record_audit(
        session,
        organization_id=board.organization_id,
        actor_id=member.user_id,
        action="sprint.delete",
        target_type="sprint",
        target_id=sprint.id,
    )
    await session.commit()


async def create_sprint_column(
    session: AsyncSession,
    *,
    sprint: Sprint,
    board: Board,
    member: OrganizationMember,
    payload: SprintColumnCreate,
) -> SprintColumn:
    """Add a workflow column; without a position it goes after the last one."""
    if sprint.is_backlog:
        raise ValidationError("The Backlog sprint has no workflow columns", code="is_backlog")
    position = payload.position
    if position is None:
        max_position = (
            await session.exec(
                select(func.max(SprintColumn.position)).where(
                    col(SprintColumn.sprint_id) == sprint.id,
                ),
            )
        ).one()
        position = 0 if max_position is None else max_position + 1
    column = SprintColumn(
        sprint_id=sprint.id,
        name=payload.name.strip(),
        position=position,
        is_done=payload.is_done,
    )
    session.add(column)
    await record_audit(
        session,
        organization_id=board.organization_id,
        actor_id=member.user_id,
        action="sprint_column.create",
        target_type="sprint_column",
        target_id=column.id,
        payload={"sprint_id": str(sprint.id), "name": column.name},
    )
    await session.commit()
    await session.refresh(column)
    return column


async def _ensure_default_columns(
    session: AsyncSession,
    sprint: Sprint,
) -> list[SprintColumn]:
    columns = await list_sprint_columns(session, sprint_id=sprint.id)
    if columns:
        return columns
    created = [
        SprintColumn(sprint_id=sprint.id, name=name, position=position, is_done=is_done)
        for position, (name, is_done) in enumerate(DEFAULT_SPRINT_COLUMNS)
    ]
    session.add_all(created)
    return created


def _ensure_startable(sprint: Sprint) -> None:
    if sprint.status == "active":
        raise StateConflictError("Sprint is already active", code="already_active")
    if sprint.is_backlog:
        raise StateConflictError("Cannot start the Backlog sprint", code="is_backlog")
    if "active" not in SPRINT_STATUS_TRANSITIONS.get(sprint.status, set()):
        raise StateConflictError(
            f"Cannot start a sprint in status '{sprint.status}'",
            code="already_completed",
        )


def _ensure_completable(sprint: Sprint) -> None:
    if sprint.is_backlog:
        raise StateConflictError("Cannot complete the Backlog sprint", code="is_backlog")
    if sprint.status != "active":
        raise StateConflictError("Only an active sprint can be completed", code="not_active")


async def start_sprint(
    session: AsyncSession,
    *,
    user_id: UUID,
    sprint_id: UUID,
    payload: SprintStart,
) -> SprintActivation:
    """Activate a planning sprint on its board."""
    sprint = await require_sprint(session, sprint_id)
    _ensure_startable(sprint)
    board = await require_board(session, sprint.board_id)
    member = await require_board_member(session, user_id=user_id, board=board)
    board_id = board.id
    organization_id = board.organization_id

    # Serialize activation per board, then re-read the sprint under the lock.
    await Board.objects.by_id(board_id).for_update().first(session)
    await session.refresh(sprint, with_for_update=True)
    _ensure_startable(sprint)
    active = await (
        Sprint.objects.filter_by(board_id=board_id, status="active", is_deleted=False)
        .filter(col(Sprint.id) != sprint_id)
        .first(session)
    )
    if active is not None:
        logger.info(
            "sprint.start.conflict",
            extra={
                "board_id": str(board_id),
                "sprint_id": str(sprint_id),
                "active_sprint_id": str(active.id),
            },
        )
        raise _conflict_another_active(active)

    await _ensure_default_columns(session, sprint)
    sprint.status = "active"
    sprint.start_date = payload.start_date or utcnow()
    if payload.end_date is not None:
        sprint.end_date = payload.end_date
    if payload.goal is not None:
        sprint.goal = payload.goal
    sprint.updated_at = utcnow()
    session.add(sprint)
    await record_audit(
        session,
        organization_id=organization_id,
        actor_id=member.user_id,
        action="sprint.start",
        target_type="sprint",
        target_id=sprint_id,
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        # Rollback expires every loaded instance; only captured ids are used below.
        await session.rollback()
        logger.warning(
            "sprint.start.conflict_on_commit",
            extra={"board_id": str(board_id), "sprint_id": str(sprint_id)},
        )
        active = await (
            Sprint.objects.filter_by(board_id=board_id, status="active", is_deleted=False)
            .filter(col(Sprint.id) != sprint_id)
            .first(session)
        )
        raise _conflict_another_active(active) from exc
    await session.refresh(sprint)
    logger.info(
        "sprint.started",
        extra={"board_id": str(board_id), "sprint_id": str(sprint_id)},
    )
    return SprintActivation(
        sprint=sprint,
        columns=await list_sprint_columns(session, sprint_id=sprint_id),
    )


async def reassign_unfinished_tasks(
    session: AsyncSession,
    *,
    sprint: Sprint,
) -> tuple[int, int]:
    """Move tasks outside a done column to the board's backlog sprint.

    Returns `(completed, moved)` counts. Changes are staged on the session
    and committed by the caller.
    """
    backlog = await Sprint.objects.filter_by(
        board_id=sprint.board_id,
        is_backlog=True,
        is_deleted=False,
    ).first(session)
    if backlog is None:
        raise NotFoundError("Backlog sprint not found for board")
    done_column_ids = {
        column.id
        for column in await list_sprint_columns(session, sprint_id=sprint.id)
        if column.is_done
    }
    tasks = await Task.objects.filter_by(sprint_id=sprint.id).all(session)
    completed = 0
    moved = 0
    now = utcnow()
    for task in tasks:
        if task.sprint_column_id in done_column_ids:
            completed += 1
            continue
        task.sprint_id = backlog.id
        task.sprint_column_id = None
        task.updated_at = now
        session.add(task)
        moved += 1
    return completed, moved


async def complete_sprint(
    session: AsyncSession,
    *,
    user_id: UUID,
    sprint_id: UUID,
    move_unfinished_to_backlog: bool = True,
) -> SprintCompletion:
    """Complete the active sprint, optionally handing unfinished work to the backlog."""
    sprint = await require_sprint(session, sprint_id)
    _ensure_completable(sprint)
    board = await require_board(session, sprint.board_id)
    member = await require_board_member(session, user_id=user_id, board=board)

    await session.refresh(sprint, with_for_update=True)
    _ensure_completable(sprint)

    completed, moved = 0, 0
    if move_unfinished_to_backlog:
        completed, moved = await reassign_unfinished_tasks(session, sprint=sprint)
    now = utcnow()
    sprint.status = "completed"
    if sprint.end_date is None:
        sprint.end_date = now
    sprint.updated_at = now
    session.add(sprint)
    await record_audit(
        session,
        organization_id=board.organization_id,
        actor_id=member.user_id,
        action="sprint.complete",
        target_type="sprint",
        target_id=sprint.id,
        payload={"completed_tasks": completed, "moved_tasks": moved},
    )
    await session.commit()
    await session.refresh(sprint)
    return SprintCompletion(sprint=sprint, completed_tasks=completed, moved_tasks=moved)
