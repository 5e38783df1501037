"""FastAPI application entrypoint and router wiring for the backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination

from app.api.boards import router as boards_router
from app.api.engagements import router as engagements_router
from app.api.organizations import router as organizations_router
from app.api.permission_sets import router as permission_sets_router
from app.api.sprints import board_router as board_sprints_router
from app.api.sprints import router as sprints_router
from app.api.time_off import router as time_off_router
from app.core.config import settings
from app.core.error_handling import install_error_handling
from app.core.logging import configure_logging, get_logger
from app.db.session import init_db
from app.schemas.errors import ErrorResponse
from app.schemas.health import HealthStatusResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure checks.",
    },
    {
        "name": "organizations",
        "description": "Organization creation, membership, capacity, and project endpoints.",
    },
    {
        "name": "permission-sets",
        "description": "Capability bundles with dependency validation; default sets are read-only.",
    },
    {
        "name": "engagements",
        "description": "Member project engagements guarded by overlap and capacity checks.",
    },
    {
        "name": "time-off",
        "description": "Member time-off requests, approvals, and overlap checks.",
    },
    {
        "name": "boards",
        "description": "Board creation; every board owns one backlog sprint.",
    },
    {
        "name": "sprints",
        "description": "Sprint lifecycle with single-active-sprint-per-board enforcement.",
    },
]
ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_403_FORBIDDEN: {
        "model": ErrorResponse,
        "description": "Caller is not a member or lacks the required role.",
    },
    status.HTTP_404_NOT_FOUND: {
        "model": ErrorResponse,
        "description": "Requested resource was not found.",
    },
    status.HTTP_409_CONFLICT: {
        "model": ErrorResponse,
        "description": "Request conflicts with an existing schedule or sprint state.",
    },
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize application resources before serving requests."""
    logger.info(
        "app.lifecycle.starting environment=%s db_auto_migrate=%s",
        settings.environment,
        settings.db_auto_migrate,
    )
    await init_db()
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Sprint Planner API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    logger.info("app.cors.enabled origins_count=%s", len(origins))
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Check",
    description="Lightweight liveness probe endpoint.",
)
def health() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/healthz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Alias Check",
    description="Alias liveness probe endpoint for platform compatibility.",
)
def healthz() -> HealthStatusResponse:
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Readiness Check",
    description="Readiness probe endpoint for service orchestration checks.",
)
def readyz() -> HealthStatusResponse:
    return HealthStatusResponse(ok=True)


api_v1 = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)
api_v1.include_router(organizations_router)
api_v1.include_router(permission_sets_router)
api_v1.include_router(engagements_router)
api_v1.include_router(time_off_router)
api_v1.include_router(boards_router)
api_v1.include_router(board_sprints_router)
api_v1.include_router(sprints_router)
app.include_router(api_v1)

add_pagination(app)
logger.debug("app.routes.registered count=%s", len(app.routes))
