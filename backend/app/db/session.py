"""Async engine, request-scoped sessions, and schema bootstrap."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from alembic.config import Config
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app import models as _models
from app.core.config import settings
from app.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# Every table must be registered on SQLModel.metadata before create_all runs.
_MODEL_REGISTRY = _models

BACKEND_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_INI = BACKEND_ROOT / "alembic.ini"
MIGRATION_VERSIONS_DIR = BACKEND_ROOT / "migrations" / "versions"

logger = get_logger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Pin bare `postgresql://` URLs to the async psycopg driver."""
    scheme, separator, rest = database_url.partition("://")
    if separator and scheme in {"postgres", "postgresql"}:
        return f"postgresql+psycopg://{rest}"
    return database_url


async_engine: AsyncEngine = create_async_engine(
    normalize_database_url(settings.database_url),
    pool_pre_ping=True,
)
async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def _alembic_config() -> Config:
    config = Config(str(ALEMBIC_INI))
    # Keep the application's log handlers; alembic.ini must not reconfigure them.
    config.attributes["configure_logger"] = False
    return config


def run_migrations() -> None:
    """Upgrade the configured database to the latest schema revision."""
    from alembic import command

    logger.info("db.migrations.start")
    command.upgrade(_alembic_config(), "head")
    logger.info("db.migrations.complete")


def _has_migrations() -> bool:
    return any(MIGRATION_VERSIONS_DIR.glob("*.py"))


async def init_db() -> None:
    """Bring the schema up to date at startup.

    Migrations run when `DB_AUTO_MIGRATE` is on; without revisions on disk
    the tables (and the partial unique indexes on sprints) come from the
    model metadata instead.
    """
    if settings.db_auto_migrate and _has_migrations():
        await asyncio.to_thread(run_migrations)
        return
    if settings.db_auto_migrate:
        logger.warning("db.migrations.missing fallback=create_all")
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db.schema.created")


async def _rollback_open_transaction(session: AsyncSession) -> None:
    try:
        if not session.in_transaction():
            return
        await session.rollback()
    except SQLAlchemyError:
        logger.exception("db.session.rollback_failed")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request.

    Services commit their own unit of work; anything left uncommitted when
    the request ends (a rejected validation, an exception) is rolled back so
    row locks taken with `SELECT ... FOR UPDATE` are released.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await _rollback_open_transaction(session)
