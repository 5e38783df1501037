"""Public schema exports shared across API route modules."""

from app.schemas.boards import BoardCreate, BoardRead
from app.schemas.engagements import (
    AvailabilityRead,
    EngagementCreate,
    EngagementListResponse,
    EngagementRead,
    EngagementUpdate,
)
from app.schemas.organizations import (
    OrganizationCreate,
    OrganizationMemberCreate,
    OrganizationMemberRead,
    OrganizationMemberUpdate,
    OrganizationRead,
)
from app.schemas.permission_sets import (
    PermissionSetCreate,
    PermissionSetRead,
    PermissionSetUpdate,
)
from app.schemas.projects import ProjectCreate, ProjectRead
from app.schemas.sprints import (
    SprintColumnCreate,
    SprintColumnRead,
    SprintComplete,
    SprintCompleteResponse,
    SprintCreate,
    SprintRead,
    SprintStart,
    SprintStartResponse,
)
from app.schemas.time_off import TimeOffCreate, TimeOffRead, TimeOffUpdate
from app.schemas.users import UserRead

__all__ = [
    "AvailabilityRead",
    "BoardCreate",
    "BoardRead",
    "EngagementCreate",
    "EngagementListResponse",
    "EngagementRead",
    "EngagementUpdate",
    "OrganizationCreate",
    "OrganizationMemberCreate",
    "OrganizationMemberRead",
    "OrganizationMemberUpdate",
    "OrganizationRead",
    "PermissionSetCreate",
    "PermissionSetRead",
    "PermissionSetUpdate",
    "ProjectCreate",
    "ProjectRead",
    "SprintColumnCreate",
    "SprintColumnRead",
    "SprintComplete",
    "SprintCompleteResponse",
    "SprintCreate",
    "SprintRead",
    "SprintStart",
    "SprintStartResponse",
    "TimeOffCreate",
    "TimeOffRead",
    "TimeOffUpdate",
    "UserRead",
]
