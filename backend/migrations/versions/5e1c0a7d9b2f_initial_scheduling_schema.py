"""Initial scheduling schema: orgs, members, permission sets, engagements,
time off, boards, sprints, sprint columns, tasks, and audit entries.

Revision ID: 5e1c0a7d9b2f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "5e1c0a7d9b2f"
down_revision = None
branch_labels = None
depends_on = None

_ACTIVE_SPRINT_WHERE = sa.text("status = 'active' AND NOT is_deleted")
_BACKLOG_SPRINT_WHERE = sa.text("is_backlog AND NOT is_deleted")


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False))
    return columns


def _index(table: str, *columns: str) -> None:
    op.create_index(op.f(f"ix_{table}_{'_'.join(columns)}"), table, list(columns))


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("organizations"):
        op.create_table(
            "organizations",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    if not inspector.has_table("permission_sets"):
        op.create_table(
            "permission_sets",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("permissions", sa.JSON(), nullable=True),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("organization_id", "name", name="uq_permission_sets_org_name"),
        )
        _index("permission_sets", "organization_id")

    if not inspector.has_table("organization_members"):
        op.create_table(
            "organization_members",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("role", sa.String(), nullable=False, server_default="member"),
            sa.Column("working_hours_per_week", sa.Float(), nullable=True),
            sa.Column("permission_set_id", sa.Uuid(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["permission_set_id"], ["permission_sets.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(
                "organization_id",
                "user_id",
                name="uq_organization_members_org_user",
            ),
        )
        _index("organization_members", "organization_id")
        _index("organization_members", "user_id")
        _index("organization_members", "role")
        _index("organization_members", "permission_set_id")

    if not inspector.has_table("projects"):
        op.create_table(
            "projects",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.String(), nullable=False, server_default=""),
            sa.Column("status", sa.String(), nullable=False, server_default="active"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("projects", "organization_id")
        _index("projects", "status")

    if not inspector.has_table("project_engagements"):
        op.create_table(
            "project_engagements",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_member_id", sa.Uuid(), nullable=False),
            sa.Column("project_id", sa.Uuid(), nullable=False),
            sa.Column("role", sa.String(), nullable=True),
            sa.Column("hours_per_week", sa.Float(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_member_id"], ["organization_members.id"]),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("project_engagements", "organization_member_id")
        _index("project_engagements", "project_id")
        _index("project_engagements", "start_date")
        _index("project_engagements", "end_date")
        _index("project_engagements", "is_active")

    if not inspector.has_table("time_off_entries"):
        op.create_table(
            "time_off_entries",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_member_id", sa.Uuid(), nullable=False),
            sa.Column("type", sa.String(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("description", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="pending"),
            sa.Column("approved_by", sa.Uuid(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_member_id"], ["organization_members.id"]),
            sa.ForeignKeyConstraint(["approved_by"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("time_off_entries", "organization_member_id")
        _index("time_off_entries", "type")
        _index("time_off_entries", "start_date")
        _index("time_off_entries", "end_date")
        _index("time_off_entries", "status")

    if not inspector.has_table("boards"):
        op.create_table(
            "boards",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("project_id", sa.Uuid(), nullable=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.String(), nullable=False, server_default=""),
            *_timestamps(),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("boards", "organization_id")
        _index("boards", "project_id")

    if not inspector.has_table("sprints"):
        op.create_table(
            "sprints",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("board_id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("goal", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="planning"),
            sa.Column("is_backlog", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("start_date", sa.DateTime(), nullable=True),
            sa.Column("end_date", sa.DateTime(), nullable=True),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.ForeignKeyConstraint(["board_id"], ["boards.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("sprints", "board_id")
        _index("sprints", "status")
        op.create_index(
            "uq_sprints_board_active",
            "sprints",
            ["board_id"],
            unique=True,
            postgresql_where=_ACTIVE_SPRINT_WHERE,
            sqlite_where=_ACTIVE_SPRINT_WHERE,
        )
        op.create_index(
            "uq_sprints_board_backlog",
            "sprints",
            ["board_id"],
            unique=True,
            postgresql_where=_BACKLOG_SPRINT_WHERE,
            sqlite_where=_BACKLOG_SPRINT_WHERE,
        )

    if not inspector.has_table("sprint_columns"):
        op.create_table(
            "sprint_columns",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("sprint_id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_done", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("sprint_columns", "sprint_id")

    if not inspector.has_table("tasks"):
        op.create_table(
            "tasks",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("board_id", sa.Uuid(), nullable=False),
            sa.Column("sprint_id", sa.Uuid(), nullable=True),
            sa.Column("sprint_column_id", sa.Uuid(), nullable=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("description", sa.String(), nullable=True),
            sa.Column("assignee_member_id", sa.Uuid(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["board_id"], ["boards.id"]),
            sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"]),
            sa.ForeignKeyConstraint(["sprint_column_id"], ["sprint_columns.id"]),
            sa.ForeignKeyConstraint(["assignee_member_id"], ["organization_members.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("tasks", "board_id")
        _index("tasks", "sprint_id")
        _index("tasks", "sprint_column_id")
        _index("tasks", "assignee_member_id")

    if not inspector.has_table("audit_entries"):
        op.create_table(
            "audit_entries",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("actor_id", sa.Uuid(), nullable=False),
            sa.Column("actor_type", sa.String(), nullable=False, server_default="user"),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("target_type", sa.String(), nullable=False, server_default=""),
            sa.Column("target_id", sa.Uuid(), nullable=True),
            sa.Column("payload", sa.JSON(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _index("audit_entries", "organization_id")
        _index("audit_entries", "actor_id")
        _index("audit_entries", "actor_type")
        _index("audit_entries", "action")


def downgrade() -> None:
    for table in (
        "audit_entries",
        "tasks",
        "sprint_columns",
        "sprints",
        "boards",
        "time_off_entries",
        "project_engagements",
        "projects",
        "organization_members",
        "permission_sets",
        "users",
        "organizations",
    ):
        op.drop_table(table)
