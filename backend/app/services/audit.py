"""Audit trail helpers for scheduling and access-control mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.time import utcnow
from app.models.audit_entries import AuditEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


async def record_audit(
    session: AsyncSession,
    *,
    organization_id: UUID,
    actor_id: UUID,
    action: str,
    target_type: str = "",
    target_id: UUID | None = None,
    payload: dict[str, object] | None = None,
    actor_type: str = "user",
    commit: bool = False,
) -> AuditEntry:
    """Stage an audit entry in the caller's transaction.

    Entries are added without committing by default so they land atomically
    with the change they describe.
    """
    entry = AuditEntry(
        organization_id=organization_id,
        actor_id=actor_id,
        actor_type=actor_type,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
        created_at=utcnow(),
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry
