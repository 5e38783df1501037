# ruff: noqa: INP001
"""Integration tests for permission set dependency rules and default-set immutability."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest
from fastapi import APIRouter, FastAPI
from fastapi_pagination import add_pagination
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import require_user
from app.api.organizations import router as organizations_router
from app.api.permission_sets import router as permission_sets_router
from app.core.error_handling import install_error_handling
from app.db.session import get_session
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
    api_v1.include_router(permission_sets_router)
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
        user = User(email=email)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def _post(client: AsyncClient, url: str, body: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(url, json=body)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_default_sets_are_seeded_and_read_only() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org = await _post(client, "/api/v1/organizations", {"name": "Acme"})
            url = f"/api/v1/organizations/{org['id']}/permission-sets"

            listing = await client.get(url)
            assert listing.status_code == 200
            defaults = {item["name"]: item for item in listing.json()}
            assert set(defaults) == {"Admin", "Member"}
            assert all(item["is_default"] for item in defaults.values())
            admin_set = defaults["Admin"]

            renamed = await client.patch(f"{url}/{admin_set['id']}", json={"name": "Boss"})
            assert renamed.status_code == 422
            assert renamed.json()["code"] == "default_permission_set_immutable"

            deleted = await client.delete(f"{url}/{admin_set['id']}")
            assert deleted.status_code == 422
            assert deleted.json()["code"] == "default_permission_set_immutable"

            fetched = await client.get(f"{url}/{admin_set['id']}")
            assert fetched.json()["name"] == "Admin"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_unmet_dependency_rejects_write_without_auto_grant() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    caller = _Caller(user=await _seed_user(session_maker, "owner@example.com"))
    app = _build_test_app(session_maker, caller)

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org = await _post(client, "/api/v1/organizations", {"name": "Acme"})
            url = f"/api/v1/organizations/{org['id']}/permission-sets"

            rejected = await client.post(
                url,
                json={"name": "Managers", "permissions": {"manage_members": True}},
            )
            assert rejected.status_code == 422
            body = rejected.json()
            assert body["code"] == "dependency_violation"
            assert body["detail"]["violations"] == [
                {"capability": "team_members.manage_all", "requires": "team_members.view_all"},
            ]

            created = await _post(
                client,
                url,
                {
                    "name": "Managers",
                    "permissions": {"manage_members": True, "view_members": True},
                },
            )
            assert created["is_default"] is False
            assert created["permissions"] == {
                "team_members.manage_all": True,
                "team_members.view_all": True,
            }

            downgraded = await client.patch(
                f"{url}/{created['id']}",
                json={"permissions": {"team_members.manage_all": True}},
            )
            assert downgraded.status_code == 422
            assert downgraded.json()["code"] == "dependency_violation"

            duplicate = await client.post(url, json={"name": "managers", "permissions": {}})
            assert duplicate.status_code == 422
            assert duplicate.json()["code"] == "duplicate_name"

            unknown = await client.post(url, json={"name": "Odd", "permissions": {"fly": True}})
            assert unknown.status_code == 422
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_delete_reassigns_members_and_view_all_widens_member_listing() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    owner = await _seed_user(session_maker, "owner@example.com")
    caller = _Caller(user=owner)
    app = _build_test_app(session_maker, caller)

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            org = await _post(client, "/api/v1/organizations", {"name": "Acme"})
            sets_url = f"/api/v1/organizations/{org['id']}/permission-sets"
            members_url = f"/api/v1/organizations/{org['id']}/members"
            viewers = await _post(
                client,
                sets_url,
                {"name": "Viewers", "permissions": {"team_members.view_all": True}},
            )
            leads = await _post(
                client,
                sets_url,
                {
                    "name": "Leads",
                    "permissions": {
                        "team_members.view_all": True,
                        "projects.view_all": True,
                    },
                },
            )
            dev = await _post(
                client,
                members_url,
                {"email": "dev@example.com", "permission_set_id": viewers["id"]},
            )
            await _post(client, members_url, {"email": "other@example.com"})

            fetched = await client.get(f"{sets_url}/{viewers['id']}")
            assert fetched.json()["member_count"] == 1

            async with session_maker() as session:
                dev_user = await User.objects.filter_by(email="dev@example.com").first(session)
            assert dev_user is not None
            caller.user = dev_user
            visible = await client.get(members_url)
            assert visible.status_code == 200
            assert visible.json()["total"] == 3

            denied = await client.post(sets_url, json={"name": "Mine", "permissions": {}})
            assert denied.status_code == 403

            caller.user = owner
            self_target = await client.delete(
                f"{sets_url}/{viewers['id']}",
                params={"reassign_to_permission_set_id": viewers["id"]},
            )
            assert self_target.status_code == 422

            removed = await client.delete(
                f"{sets_url}/{viewers['id']}",
                params={"reassign_to_permission_set_id": leads["id"]},
            )
            assert removed.status_code == 200

            members = await client.get(members_url)
            by_id = {item["id"]: item for item in members.json()["items"]}
            assert by_id[dev["id"]]["permission_set_id"] == leads["id"]
            assert by_id[dev["id"]]["user"]["email"] == "dev@example.com"

            missing = await client.get(f"{sets_url}/{viewers['id']}")
            assert missing.status_code == 404
    finally:
        await engine.dispose()
