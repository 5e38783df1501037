"""Request-id propagation, request logging, and JSON error handlers."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = get_logger(__name__)
REQUEST_ID_HEADER = "X-Request-Id"
_HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz"})
_INTERNAL_ERROR_DETAIL = "Internal Server Error"


def _incoming_request_id(scope: Scope) -> str | None:
    wanted = REQUEST_ID_HEADER.lower().encode("latin-1")
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            cleaned = value.decode("latin-1").strip()
            return cleaned or None
    return None


class RequestIdMiddleware:
    """Assign a request id, echo it on responses, and log request timing."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        status_code = 500
        started = perf_counter()

        async def _send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, _send)
        finally:
            duration_ms = (perf_counter() - started) * 1000
            _log_request(
                method=str(scope.get("method", "")),
                path=str(scope.get("path", "")),
                status_code=status_code,
                duration_ms=duration_ms,
                request_id=request_id,
            )


def _log_request(
    *,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    request_id: str,
) -> None:
    if path in _HEALTH_PATHS and not settings.request_log_include_health:
        return
    extra: dict[str, object] = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
        "request_id": request_id,
    }
    threshold = settings.request_log_slow_ms
    if threshold > 0 and duration_ms >= threshold:
        logger.warning("http.request.slow", extra={**extra, "slow_threshold_ms": threshold})
        return
    logger.info("http.request.complete", extra=extra)


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _json_safe(value: object) -> object:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _error_payload(*, detail: object, request_id: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": _json_safe(detail)}
    if isinstance(detail, dict):
        code = detail.get("code")
        if isinstance(code, str) and code:
            payload["code"] = code
    if request_id is not None:
        payload["request_id"] = request_id
    return payload


def _json_response(
    request: Request,
    *,
    status_code: int,
    detail: object,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response_headers = dict(headers or {})
    if request_id is not None:
        response_headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(detail=detail, request_id=request_id),
        headers=response_headers,
    )


async def _request_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        msg = "Expected RequestValidationError"
        raise TypeError(msg)
    return _json_response(request, status_code=422, detail=exc.errors())


async def _response_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        msg = "Expected ResponseValidationError"
        raise TypeError(msg)
    logger.error(
        "http.response.validation_failed",
        extra={"path": request.url.path, "errors": _json_safe(exc.errors())},
    )
    return _json_response(request, status_code=500, detail=_INTERNAL_ERROR_DETAIL)


async def _http_exception_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        msg = "Expected StarletteHTTPException"
        raise TypeError(msg)
    headers = dict(exc.headers) if exc.headers else None
    return _json_response(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        headers=headers,
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "http.request.unhandled",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return _json_response(request, status_code=500, detail=_INTERNAL_ERROR_DETAIL)


def install_error_handling(app: FastAPI) -> None:
    """Install request-id middleware and JSON error handlers on an app."""
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
