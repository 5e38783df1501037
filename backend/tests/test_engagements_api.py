# ruff: noqa: INP001
"""Integration tests for engagement overlap and capacity enforcement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import UUID

import pytest
from fastapi import APIRouter, FastAPI
from fastapi_pagination import add_pagination
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import require_user
from app.api.engagements import router as engagements_router
from app.api.organizations import router as organizations_router
from app.core.error_handling import install_error_handling
from app.core.time import utctoday
from app.db.session import get_session
from app.models.engagements import ProjectEngagement
from app.models.users import User


@dataclass
class _Caller:
    user: User | None = None


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _build_test_app(
    session_maker: async_sessionmaker[AsyncSession],
    caller: _Caller,
) -> FastAPI:
    app = FastAPI()
    install_error_handling(app)
    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(organizations_router)
    api_v1.include_router(engagements_router)
    app.include_router(api_v1)
    add_pagination(app)

    async def _override_get_session() -> AsyncSession:
        async with session_maker() as session:
            yield session

    def _override_require_user() -> User:
        assert caller.user is not None
        return caller.user

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[require_user] = _override_require_user
    return app


async def _seed_user(session_maker: async_sessionmaker[AsyncSession], email: str) -> User:
    async with session_maker() as session:
        user = User(email=email, name=email.split("@")[0])
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def _post(client: AsyncClient, url: str, body: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(url, json=body)
    assert response.status_code == 200, response.text
    return response.json()


async def _seed_org(
    client: AsyncClient,
) -> tuple[str, str, str, str]:
    """Create an org with two projects and a 40h member; return their ids."""
    org = await _post(client, "/api/v1/organizations", {"name": "Acme"})
    org_id = org["id"]
    apollo = await _post(client, f"/api/v1/organizations/{org_id}/projects", {"name": "Apollo"})
    gemini = await _post(client, f"/api/v1/organizations/{org_id}/projects", {"name": "Gemini"})
    member = await _post(
        client,
        f"/api/v1/organizations/{org_id}/members",
        {"email": "dev@example.com", "role": "member", "working_hours_per_week": 40},
    )
    return org_id, apollo["id"], gemini["id"], member["id"]


@pytest.mark.asyncio
async def test_engagement_over_capacity_is_rejected_with_deficit() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)
    today = utctoday()

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org_id, apollo_id, gemini_id, member_id = await _seed_org(client)
            url = f"/api/v1/organizations/{org_id}/members/{member_id}/engagements"

            first = await client.post(
                url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 30,
                    "start_date": today.isoformat(),
                },
            )
            assert first.status_code == 200, first.text
            assert first.json()["status"] == "active"

            over = await client.post(
                url,
                json={
                    "project_id": gemini_id,
                    "hours_per_week": 15,
                    "start_date": today.isoformat(),
                    "end_date": (today + timedelta(days=30)).isoformat(),
                },
            )
            assert over.status_code == 422
            body = over.json()
            assert body["code"] == "capacity_exceeded"
            assert body["detail"]["deficit"] == 5
            assert body["detail"]["available"] == 10
            assert body["detail"]["capacity"] == 40

            exact = await client.post(
                url,
                json={
                    "project_id": gemini_id,
                    "hours_per_week": 10,
                    "start_date": today.isoformat(),
                },
            )
            assert exact.status_code == 200, exact.text

            listing = await client.get(url)
            assert listing.status_code == 200
            availability = listing.json()["availability"]
            assert availability["engaged_hours"] == 40
            assert availability["available_hours"] == 0
            assert availability["active_engagements_count"] == 2
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_overlap_on_same_project_is_reported_before_capacity() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)
    today = utctoday()

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org_id, apollo_id, _gemini_id, member_id = await _seed_org(client)
            url = f"/api/v1/organizations/{org_id}/members/{member_id}/engagements"
            end = today + timedelta(days=30)

            created = await _post(
                client,
                url,
                {
                    "project_id": apollo_id,
                    "hours_per_week": 30,
                    "start_date": today.isoformat(),
                    "end_date": end.isoformat(),
                },
            )

            touching = await client.post(
                url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 20,
                    "start_date": end.isoformat(),
                    "end_date": (end + timedelta(days=10)).isoformat(),
                },
            )
            assert touching.status_code == 409
            assert touching.json()["code"] == "overlap_conflict"
            assert touching.json()["detail"]["conflicting_id"] == created["id"]

            adjacent = await client.post(
                url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 5,
                    "start_date": (end + timedelta(days=1)).isoformat(),
                },
            )
            assert adjacent.status_code == 200, adjacent.text
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_update_excludes_itself_from_checks_and_rechecks_on_reactivation() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)
    today = utctoday()

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org_id, apollo_id, gemini_id, member_id = await _seed_org(client)
            url = f"/api/v1/organizations/{org_id}/members/{member_id}/engagements"
            first = await _post(
                client,
                url,
                {"project_id": apollo_id, "hours_per_week": 30, "start_date": today.isoformat()},
            )

            grown = await client.patch(f"{url}/{first['id']}", json={"hours_per_week": 40})
            assert grown.status_code == 200, grown.text
            assert grown.json()["hours_per_week"] == 40

            paused = await client.patch(f"{url}/{first['id']}", json={"is_active": False})
            assert paused.status_code == 200
            assert paused.json()["status"] == "inactive"

            await _post(
                client,
                url,
                {"project_id": gemini_id, "hours_per_week": 20, "start_date": today.isoformat()},
            )

            resumed = await client.patch(f"{url}/{first['id']}", json={"is_active": True})
            assert resumed.status_code == 422
            assert resumed.json()["detail"]["deficit"] == 20

            async with session_maker() as session:
                stored = await ProjectEngagement.objects.filter_by(
                    project_id=UUID(apollo_id),
                ).first(session)
                assert stored is not None
                assert stored.is_active is False
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_engagement_date_rules() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)
    today = utctoday()

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org_id, apollo_id, _gemini_id, member_id = await _seed_org(client)
            url = f"/api/v1/organizations/{org_id}/members/{member_id}/engagements"

            inverted = await client.post(
                url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 10,
                    "start_date": today.isoformat(),
                    "end_date": (today - timedelta(days=1)).isoformat(),
                },
            )
            assert inverted.status_code == 422
            assert inverted.json()["code"] == "invalid_date_range"

            too_far = await client.post(
                url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 10,
                    "start_date": today.isoformat(),
                    "end_date": (today + timedelta(days=366 * 11)).isoformat(),
                },
            )
            assert too_far.status_code == 422
            assert too_far.json()["code"] == "invalid_date_range"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_members_cannot_write_engagements_or_see_others() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    owner = await _seed_user(session_maker, "owner@example.com")
    caller = _Caller(user=owner)
    app = _build_test_app(session_maker, caller)
    today = utctoday()

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org_id, apollo_id, _gemini_id, dev_member_id = await _seed_org(client)
            other = await _post(
                client,
                f"/api/v1/organizations/{org_id}/members",
                {"email": "other@example.com"},
            )
            async with session_maker() as session:
                dev_user = await User.objects.filter_by(email="dev@example.com").first(session)
            assert dev_user is not None

            caller.user = dev_user
            own_url = f"/api/v1/organizations/{org_id}/members/{dev_member_id}/engagements"
            denied = await client.post(
                own_url,
                json={
                    "project_id": apollo_id,
                    "hours_per_week": 10,
                    "start_date": today.isoformat(),
                },
            )
            assert denied.status_code == 403
            assert denied.json()["code"] == "unauthorized"

            own = await client.get(own_url)
            assert own.status_code == 200
            assert own.json()["availability"]["total_hours"] == 40

            others = await client.get(
                f"/api/v1/organizations/{org_id}/members/{other['id']}/engagements",
            )
            assert others.status_code == 403

            members = await client.get(f"/api/v1/organizations/{org_id}/members")
            assert members.status_code == 200
            assert [item["id"] for item in members.json()["items"]] == [dev_member_id]

            caller.user = await _seed_user(session_maker, "stranger@example.com")
            stranger = await client.get(own_url)
            assert stranger.status_code == 403
            assert stranger.json()["detail"]["message"] == "Not a member of this organization"
    finally:
        await engine.dispose()
