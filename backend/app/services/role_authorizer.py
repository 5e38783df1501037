"""Organization role hierarchy and capability checks.

Roles form a strict total order (owner > admin > member) expressed once as
`OrgRole`. Capabilities are flat dotted strings granted through permission
sets; a grant may depend on another grant, and writes that leave a
dependency unmet are rejected rather than auto-completed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.services.errors import AuthorizationError, ValidationError

if TYPE_CHECKING:
    from app.models.organization_members import OrganizationMember
    from app.models.permission_sets import PermissionSet

logger = get_logger(__name__)


class OrgRole(IntEnum):
    """Organization roles ordered by privilege."""

    MEMBER = 1
    ADMIN = 2
    OWNER = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str) -> OrgRole:
        """Return the role named by `value`, raising `ValueError` if unknown."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            msg = f"Unknown organization role: {value!r}"
            raise ValueError(msg) from None


ORG_ROLE_VALUES = tuple(role.label for role in OrgRole)

CAPABILITY_CATEGORIES: dict[str, tuple[str, ...]] = {
    "team_members": ("team_members.view_all", "team_members.manage_all"),
    "projects": (
        "projects.view_all",
        "projects.manage_all",
        "projects.view_assigned",
        "projects.manage_assigned",
    ),
    "invoicing": (
        "invoicing.view_all",
        "invoicing.manage_all",
        "invoicing.view_assigned",
        "invoicing.manage_assigned",
    ),
    "clients": (
        "clients.view_all",
        "clients.manage_all",
        "clients.view_assigned",
        "clients.manage_assigned",
    ),
    "worklogs": ("worklogs.manage_all",),
    "permission_sets": ("permission_sets.manage",),
}
ALL_CAPABILITIES: tuple[str, ...] = tuple(
    capability for group in CAPABILITY_CATEGORIES.values() for capability in group
)

# capability -> capability it requires
PERMISSION_DEPENDENCIES: tuple[tuple[str, str], ...] = (
    ("team_members.manage_all", "team_members.view_all"),
    ("projects.manage_all", "projects.view_all"),
    ("projects.manage_assigned", "projects.view_assigned"),
    ("invoicing.manage_all", "invoicing.view_all"),
    ("invoicing.manage_assigned", "invoicing.view_assigned"),
    ("clients.manage_all", "clients.view_all"),
    ("clients.manage_assigned", "clients.view_assigned"),
    ("permission_sets.manage", "team_members.view_all"),
)

CAPABILITY_ALIASES: dict[str, str] = {
    "view_members": "team_members.view_all",
    "manage_members": "team_members.manage_all",
}

# Members without a permission set only see projects they are assigned to.
BASELINE_CAPABILITIES = frozenset({"projects.view_assigned"})

DEFAULT_PERMISSION_SETS: dict[str, dict[str, bool]] = {
    "Admin": dict.fromkeys(ALL_CAPABILITIES, True),
    "Member": {"projects.view_assigned": True},
}


@dataclass(frozen=True)
class PermissionViolation:
    """A granted capability whose prerequisite is not granted."""

    capability: str
    requires: str

    @property
    def message(self) -> str:
        return f"'{self.capability}' requires '{self.requires}'"

    def as_dict(self) -> dict[str, str]:
        return {"capability": self.capability, "requires": self.requires}


def member_role(member: OrganizationMember) -> OrgRole | None:
    try:
        return OrgRole.parse(member.role)
    except ValueError:
        logger.warning(
            "authz.role.unknown",
            extra={"member_id": str(member.id), "role": member.role},
        )
        return None


def role_at_least(member: OrganizationMember, required: OrgRole) -> bool:
    """Return whether the member's role ranks at or above `required`."""
    role = member_role(member)
    return role is not None and role >= required


def authorize(
    member: OrganizationMember | None,
    required: OrgRole,
) -> OrganizationMember:
    """Return `member` if it satisfies `required`, else raise `AuthorizationError`.

    A missing membership is treated the same as an insufficient role.
    """
    if member is None:
        raise AuthorizationError("Not a member of this organization")
    if not role_at_least(member, required):
        logger.info(
            "authz.denied",
            extra={
                "member_id": str(member.id),
                "role": member.role,
                "required_role": required.label,
            },
        )
        raise AuthorizationError(f"{required.label} role required")
    return member


def canonical_capability(name: str) -> str:
    cleaned = name.strip()
    return CAPABILITY_ALIASES.get(cleaned, cleaned)


def normalize_permissions(permissions: Mapping[str, bool]) -> dict[str, bool]:
    """Resolve aliases and reject capabilities outside the catalogue."""
    normalized: dict[str, bool] = {}
    unknown: list[str] = []
    for name, granted in permissions.items():
        capability = canonical_capability(name)
        if capability not in ALL_CAPABILITIES:
            unknown.append(name)
            continue
        normalized[capability] = normalized.get(capability, False) or bool(granted)
    if unknown:
        raise ValidationError(
            "Unknown capabilities: " + ", ".join(sorted(unknown)),
            capabilities=sorted(unknown),
        )
    return normalized


def validate_permission_dependencies(
    permissions: Mapping[str, bool],
) -> list[PermissionViolation]:
    """Return one violation per granted capability with an ungranted prerequisite."""
    granted = {
        canonical_capability(name) for name, value in permissions.items() if value
    }
    return [
        PermissionViolation(capability=capability, requires=required)
        for capability, required in PERMISSION_DEPENDENCIES
        if capability in granted and required not in granted
    ]


def ensure_permission_dependencies(permissions: Mapping[str, bool]) -> None:
    violations = validate_permission_dependencies(permissions)
    if violations:
        raise ValidationError(
            "; ".join(violation.message for violation in violations),
            code="dependency_violation",
            violations=[violation.as_dict() for violation in violations],
        )


def ensure_mutable_permission_set(permission_set: PermissionSet) -> None:
    """Reject writes against system-managed default permission sets."""
    if permission_set.is_default:
        raise ValidationError(
            f"Default permission set '{permission_set.name}' cannot be modified",
            code="default_permission_set_immutable",
        )


def has_capability(
    member: OrganizationMember,
    permission_set: PermissionSet | None,
    capability: str,
) -> bool:
    """Resolve one capability for a member and their assigned permission set."""
    wanted = canonical_capability(capability)
    if member_role(member) == OrgRole.OWNER:
        return True
    if permission_set is None:
        return wanted in BASELINE_CAPABILITIES
    return bool(permission_set.permissions.get(wanted, False))
