"""Async limit/offset pagination over SQLModel select statements."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi_pagination.ext.sqlmodel import paginate as _paginate

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession


async def paginate(
    session: AsyncSession,
    statement: Any,
    *,
    transformer: Callable[[Sequence[Any]], Sequence[Any]] | None = None,
) -> Any:
    """Paginate a statement using the request-bound limit/offset params."""
    return await _paginate(session, statement, transformer=transformer)
