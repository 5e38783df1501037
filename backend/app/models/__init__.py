"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.audit_entries import AuditEntry
from app.models.boards import Board
from app.models.engagements import ProjectEngagement
from app.models.organization_members import OrganizationMember
from app.models.organizations import Organization
from app.models.permission_sets import PermissionSet
from app.models.projects import Project
from app.models.sprint_columns import SprintColumn
from app.models.sprints import Sprint
from app.models.tasks import Task
from app.models.time_off import TimeOffEntry
from app.models.users import User

__all__ = [
    "AuditEntry",
    "Board",
    "Organization",
    "OrganizationMember",
    "PermissionSet",
    "Project",
    "ProjectEngagement",
    "Sprint",
    "SprintColumn",
    "Task",
    "TimeOffEntry",
    "User",
]
