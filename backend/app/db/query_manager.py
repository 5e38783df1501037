"""Chainable query helpers exposed on models as ``Model.objects``."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class ModelQuery(Generic[ModelT]):
    """Immutable query builder bound to a single model class."""

    model: type[ModelT]
    criteria: tuple[Any, ...] = ()
    ordering: tuple[Any, ...] = ()
    lock: bool = False
    limit_value: int | None = None

    def filter(self, *criteria: Any) -> ModelQuery[ModelT]:
        return replace(self, criteria=(*self.criteria, *criteria))

    def filter_by(self, **values: Any) -> ModelQuery[ModelT]:
        clauses = tuple(col(getattr(self.model, key)) == value for key, value in values.items())
        return self.filter(*clauses)

    def by_id(self, value: Any) -> ModelQuery[ModelT]:
        return self.filter_by(id=value)

    def order_by(self, *ordering: Any) -> ModelQuery[ModelT]:
        return replace(self, ordering=(*self.ordering, *ordering))

    def limit(self, value: int) -> ModelQuery[ModelT]:
        return replace(self, limit_value=value)

    def for_update(self) -> ModelQuery[ModelT]:
        """Lock matched rows until the surrounding transaction ends."""
        return replace(self, lock=True)

    def statement(self) -> SelectOfScalar[ModelT]:
        statement = select(self.model)
        if self.criteria:
            statement = statement.where(*self.criteria)
        if self.ordering:
            statement = statement.order_by(*self.ordering)
        if self.limit_value is not None:
            statement = statement.limit(self.limit_value)
        if self.lock:
            statement = statement.with_for_update()
        return statement

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self.statement())).first()

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list(await session.exec(self.statement()))

    async def exists(self, session: AsyncSession) -> bool:
        return await self.limit(1).first(session) is not None


class ManagerDescriptor:
    """Class-level descriptor returning a fresh query for the owning model."""

    def __get__(self, instance: object, owner: type[ModelT]) -> ModelQuery[ModelT]:
        return ModelQuery(owner)
