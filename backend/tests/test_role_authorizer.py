# ruff: noqa: INP001
"""Unit tests for role ordering, capability dependencies, and default sets."""

from __future__ import annotations

from uuid import uuid4

import pytest

from app.models.organization_members import OrganizationMember
from app.models.permission_sets import PermissionSet
from app.services.errors import AuthorizationError, ValidationError
from app.services.role_authorizer import (
    ALL_CAPABILITIES,
    DEFAULT_PERMISSION_SETS,
    OrgRole,
    authorize,
    ensure_mutable_permission_set,
    ensure_permission_dependencies,
    has_capability,
    normalize_permissions,
    role_at_least,
    validate_permission_dependencies,
)


def _member(role: str) -> OrganizationMember:
    return OrganizationMember(organization_id=uuid4(), user_id=uuid4(), role=role)


def _permission_set(permissions: dict[str, bool], *, is_default: bool = False) -> PermissionSet:
    return PermissionSet(
        organization_id=uuid4(),
        name="Custom",
        permissions=permissions,
        is_default=is_default,
    )


def test_roles_form_a_total_order() -> None:
    assert OrgRole.OWNER > OrgRole.ADMIN > OrgRole.MEMBER
    assert OrgRole.parse(" Admin ") is OrgRole.ADMIN
    with pytest.raises(ValueError, match="Unknown organization role"):
        OrgRole.parse("guest")


@pytest.mark.parametrize(
    ("role", "required", "allowed"),
    [
        ("owner", OrgRole.ADMIN, True),
        ("admin", OrgRole.ADMIN, True),
        ("member", OrgRole.ADMIN, False),
        ("member", OrgRole.MEMBER, True),
        ("admin", OrgRole.OWNER, False),
        ("guest", OrgRole.MEMBER, False),
    ],
)
def test_role_at_least(role: str, required: OrgRole, allowed: bool) -> None:
    assert role_at_least(_member(role), required) is allowed


def test_authorize_returns_member_when_rank_suffices() -> None:
    member = _member("admin")

    assert authorize(member, OrgRole.MEMBER) is member


def test_authorize_rejects_missing_membership() -> None:
    with pytest.raises(AuthorizationError) as exc_info:
        authorize(None, OrgRole.MEMBER)

    assert exc_info.value.status_code == 403
    assert exc_info.value.detail["code"] == "unauthorized"
    assert exc_info.value.message == "Not a member of this organization"


def test_authorize_rejects_insufficient_role() -> None:
    with pytest.raises(AuthorizationError, match="admin role required"):
        authorize(_member("member"), OrgRole.ADMIN)


def test_manage_members_without_view_members_yields_one_violation() -> None:
    violations = validate_permission_dependencies({"manage_members": True})

    assert len(violations) == 1
    assert violations[0].capability == "team_members.manage_all"
    assert violations[0].requires == "team_members.view_all"
    assert "team_members.manage_all" in violations[0].message
    assert "team_members.view_all" in violations[0].message


def test_dependency_check_ignores_revoked_grants() -> None:
    assert validate_permission_dependencies({"projects.manage_all": False}) == []
    assert (
        validate_permission_dependencies(
            {"projects.manage_all": True, "projects.view_all": True},
        )
        == []
    )


def test_one_violation_per_missing_prerequisite() -> None:
    violations = validate_permission_dependencies(
        {
            "projects.manage_all": True,
            "clients.manage_assigned": True,
            "permission_sets.manage": True,
        },
    )

    assert [(v.capability, v.requires) for v in violations] == [
        ("projects.manage_all", "projects.view_all"),
        ("clients.manage_assigned", "clients.view_assigned"),
        ("permission_sets.manage", "team_members.view_all"),
    ]


def test_ensure_permission_dependencies_rejects_without_auto_granting() -> None:
    permissions = {"team_members.manage_all": True}

    with pytest.raises(ValidationError) as exc_info:
        ensure_permission_dependencies(permissions)

    detail = exc_info.value.detail
    assert detail["code"] == "dependency_violation"
    assert detail["violations"] == [
        {"capability": "team_members.manage_all", "requires": "team_members.view_all"},
    ]
    assert permissions == {"team_members.manage_all": True}


def test_normalize_permissions_resolves_aliases_and_rejects_unknown() -> None:
    assert normalize_permissions({"view_members": True}) == {"team_members.view_all": True}

    with pytest.raises(ValidationError, match="Unknown capabilities: teleport"):
        normalize_permissions({"teleport": True})


def test_default_permission_sets_satisfy_their_own_dependencies() -> None:
    for permissions in DEFAULT_PERMISSION_SETS.values():
        assert validate_permission_dependencies(permissions) == []
    assert set(DEFAULT_PERMISSION_SETS["Admin"]) == set(ALL_CAPABILITIES)


def test_default_permission_sets_are_immutable() -> None:
    with pytest.raises(ValidationError) as exc_info:
        ensure_mutable_permission_set(_permission_set({}, is_default=True))

    assert exc_info.value.detail["code"] == "default_permission_set_immutable"
    ensure_mutable_permission_set(_permission_set({}))


def test_has_capability_resolution() -> None:
    owner = _member("owner")
    member = _member("member")
    viewer = _permission_set({"team_members.view_all": True})

    assert has_capability(owner, None, "team_members.manage_all")
    assert has_capability(member, None, "projects.view_assigned")
    assert not has_capability(member, None, "team_members.view_all")
    assert has_capability(member, viewer, "view_members")
    assert not has_capability(member, viewer, "manage_members")
