"""Caller identity resolution for local-token and identity-proxy auth modes."""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth_mode import AuthMode
from app.core.config import settings
from app.core.logging import get_logger
from app.db import crud
from app.db.session import get_session
from app.models.users import User

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
SECURITY_DEP = Depends(security)
SESSION_DEP = Depends(get_session)
LOCAL_AUTH_EMAIL = "admin@home.local"
LOCAL_AUTH_NAME = "Local User"
PROXY_USER_HEADER = "X-User-Id"


@dataclass
class AuthContext:
    """Authenticated user context resolved from inbound auth headers."""

    actor_type: Literal["user"]
    user: User | None = None


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value:
        return None
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", maxsplit=1)[1].strip()
    return token or None


def _has_valid_token(request: Request) -> bool:
    token = _extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return False
    expected = settings.local_auth_token.strip()
    return bool(expected) and compare_digest(token, expected)


async def _get_or_create_local_user(session: AsyncSession) -> User:
    user, created = await crud.get_or_create(
        session,
        User,
        email=LOCAL_AUTH_EMAIL,
        defaults={"name": LOCAL_AUTH_NAME},
    )
    if created:
        logger.info("auth.local_user.created user_id=%s", user.id)
    return user


async def _get_proxy_user(request: Request, session: AsyncSession) -> User | None:
    raw = (request.headers.get(PROXY_USER_HEADER) or "").strip()
    if not raw:
        return None
    try:
        user_id = UUID(raw)
    except ValueError:
        logger.warning("auth.proxy.invalid_user_header")
        return None
    return await User.objects.by_id(user_id).first(session)


async def _resolve_user(request: Request, session: AsyncSession) -> User | None:
    if settings.auth_mode == AuthMode.LOCAL:
        return await _get_or_create_local_user(session)
    return await _get_proxy_user(request, session)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = SECURITY_DEP,
    session: AsyncSession = SESSION_DEP,
) -> AuthContext:
    """Resolve the caller for the configured auth mode, or raise 401.

    Both modes require the shared bearer token; the user is then either the
    provisioned local user or the one named by the proxy identity header.
    """
    _ = credentials
    if not _has_valid_token(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    user = await _resolve_user(request, session)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return AuthContext(actor_type="user", user=user)
