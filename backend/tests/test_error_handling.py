# ruff: noqa: INP001
"""Tests for request ids, request logging, and JSON error rendering."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from starlette.requests import Request

from app.core import error_handling
from app.core.error_handling import (
    REQUEST_ID_HEADER,
    _error_payload,
    _get_request_id,
    _http_exception_exception_handler,
    _request_validation_exception_handler,
    _response_validation_exception_handler,
    install_error_handling,
)
from app.services.errors import (
    CapacityExceededError,
    OverlapConflictError,
    StateConflictError,
)


def _app() -> FastAPI:
    app = FastAPI()
    install_error_handling(app)
    return app


def _assert_request_id(resp, body: dict[str, object]) -> None:  # noqa: ANN001
    assert isinstance(body.get("request_id"), str)
    assert body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_scheduling_errors_surface_their_code_at_top_level() -> None:
    app = _app()

    @app.post("/sprints/start")
    def start() -> None:
        raise StateConflictError(
            "Sprint 'S1' is already active. Please finish it before starting a new one.",
            code="conflict_another_active",
            active_sprint_name="S1",
        )

    resp = TestClient(app).post("/sprints/start")

    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "conflict_another_active"
    assert body["detail"]["active_sprint_name"] == "S1"
    assert "S1" in body["detail"]["message"]
    _assert_request_id(resp, body)


def test_capacity_error_carries_numeric_deficit() -> None:
    app = _app()

    @app.post("/engagements")
    def create() -> None:
        raise CapacityExceededError("over", deficit=5.0, available=10.0, capacity=40.0)

    resp = TestClient(app).post("/engagements")

    assert resp.status_code == 422
    assert resp.json()["detail"] == {
        "code": "capacity_exceeded",
        "message": "over",
        "deficit": 5.0,
        "available": 10.0,
        "capacity": 40.0,
    }


def test_overlap_error_uses_default_code() -> None:
    err = OverlapConflictError("clash", conflicting_id="abc")

    assert err.status_code == 409
    assert err.code == "overlap_conflict"
    assert _error_payload(detail=err.detail, request_id="r-1") == {
        "detail": {"code": "overlap_conflict", "message": "clash", "conflicting_id": "abc"},
        "code": "overlap_conflict",
        "request_id": "r-1",
    }


def test_plain_http_exception_has_no_code() -> None:
    app = _app()

    @app.get("/missing")
    def missing() -> None:
        raise HTTPException(status_code=404, detail="nope")

    resp = TestClient(app).get("/missing")

    assert resp.status_code == 404
    body = resp.json()
    assert body["detail"] == "nope"
    assert "code" not in body
    _assert_request_id(resp, body)


def test_request_validation_error_lists_problems() -> None:
    class Payload(BaseModel):
        hours_per_week: float = Field(ge=1, le=168)

    app = _app()

    @app.post("/engagements")
    def create(payload: Payload) -> dict[str, float]:
        return {"hours_per_week": payload.hours_per_week}

    resp = TestClient(app).post("/engagements", json={"hours_per_week": 500})

    assert resp.status_code == 422
    body = resp.json()
    assert isinstance(body["detail"], list)
    assert body["detail"][0]["loc"][-1] == "hours_per_week"
    _assert_request_id(resp, body)


def test_non_json_body_is_a_validation_error_not_a_crash() -> None:
    class Payload(BaseModel):
        name: str

    app = _app()

    @app.put("/boards")
    def put_board(payload: Payload) -> dict[str, str]:
        return {"name": payload.name}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.put("/boards", content=b"\xffraw", headers={"content-type": "text/plain"})

    assert resp.status_code == 422
    _assert_request_id(resp, resp.json())


def test_unhandled_and_response_validation_errors_hide_internals() -> None:
    class Out(BaseModel):
        name: str = Field(min_length=1)

    app = _app()

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("database password is hunter2")

    @app.get("/bad", response_model=Out)
    def bad() -> dict[str, str]:
        return {"name": ""}

    client = TestClient(app, raise_server_exceptions=False)
    for path in ("/boom", "/bad"):
        resp = client.get(path)
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Internal Server Error"
        _assert_request_id(resp, resp.json())


def test_client_request_id_is_trimmed_and_echoed() -> None:
    app = _app()

    @app.get("/ping")
    def ping() -> dict[str, bool]:
        return {"ok": True}

    resp = TestClient(app).get("/ping", headers={REQUEST_ID_HEADER: "  req-42  "})

    assert resp.status_code == 200
    assert resp.headers.get(REQUEST_ID_HEADER) == "req-42"


def test_slow_request_is_logged_as_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[tuple[str, dict[str, object]]] = []

    def _fake_warning(message: str, *args: object, **kwargs: object) -> None:
        _ = args
        extra = kwargs.get("extra")
        warnings.append((message, extra if isinstance(extra, dict) else {}))

    ticks = iter((10.0, 10.5))
    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 100)
    monkeypatch.setattr(error_handling, "perf_counter", lambda: next(ticks))
    monkeypatch.setattr(error_handling.logger, "warning", _fake_warning)

    app = _app()

    @app.get("/boards")
    def boards() -> list[str]:
        return []

    assert TestClient(app).get("/boards").status_code == 200
    [(message, extra)] = warnings
    assert message == "http.request.slow"
    assert extra["path"] == "/boards"
    assert extra["status_code"] == 200
    assert extra["duration_ms"] == 500.0
    assert extra["slow_threshold_ms"] == 100


def test_health_requests_are_not_logged_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    logged: list[str] = []
    monkeypatch.setattr(error_handling.settings, "request_log_include_health", False)
    monkeypatch.setattr(
        error_handling.logger,
        "info",
        lambda message, *args, **kwargs: logged.append(message),
    )

    app = _app()

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    resp = TestClient(app).get("/healthz")

    assert resp.status_code == 200
    assert resp.headers.get(REQUEST_ID_HEADER)
    assert logged == []


def test_get_request_id_ignores_missing_or_malformed_state() -> None:
    for state in ({}, {"request_id": 123}, {"request_id": ""}):
        req = Request({"type": "http", "headers": [], "state": state})
        assert _get_request_id(req) is None


def test_error_payload_omits_absent_request_id() -> None:
    assert _error_payload(detail="x", request_id=None) == {"detail": "x"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("handler", "expected"),
    [
        (_request_validation_exception_handler, "Expected RequestValidationError"),
        (_response_validation_exception_handler, "Expected ResponseValidationError"),
        (_http_exception_exception_handler, "Expected StarletteHTTPException"),
    ],
)
async def test_handlers_reject_unexpected_exception_types(handler, expected: str) -> None:  # noqa: ANN001
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match=expected):
        await handler(req, Exception("x"))


def test_json_safe_decodes_binary_and_stringifies_unknowns() -> None:
    class Opaque:
        def __str__(self) -> str:
            return "opaque"

    assert error_handling._json_safe(b"\xff") == "\ufffd"
    assert error_handling._json_safe(memoryview(b"ok")) == "ok"
    assert error_handling._json_safe({1: (Opaque(),)}) == {"1": ["opaque"]}
