"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

WORK_STATUSES = ("todo", "in_progress", "done")
PRIORITIES = ("low", "medium", "high")
CLIENT_TYPES = ("person", "company")


def _timestamps(with_updated: bool = True) -> list:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("CURRENT_TIMESTAMP"),
                nullable=False,
            )
        )
    return columns


def _owner_column() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    # Create user_sessions table
    op.create_table(
        "user_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        _owner_column(),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "last_activity_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"])

    # Create email_verification_tokens table
    op.create_table(
        "email_verification_tokens",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner_column(),
        sa.Column("token", sa.String(255), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
    )

    # Create rate_limits table
    op.create_table(
        "rate_limits",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("scope", sa.String(100), nullable=False),
        sa.Column("request_count", sa.Integer(), nullable=False),
        sa.Column("window_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_request_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint(
            "identifier", "scope", name="rate_limits_identifier_scope_unique"
        ),
    )

    # Create projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*WORK_STATUSES, name="projectStatus"),
            nullable=False,
            server_default="todo",
        ),
        sa.Column(
            "priority",
            sa.Enum(*PRIORITIES, name="projectPriority"),
            nullable=False,
            server_default="medium",
        ),
        *_timestamps(),
    )
    op.create_index("ix_projects_user_created", "projects", ["user_id", "created_at"])

    # Create tasks table
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner_column(),
        sa.Column(
            "project_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*WORK_STATUSES, name="taskStatus"),
            nullable=False,
            server_default="todo",
        ),
        sa.Column("priority", sa.String(50), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_user_status", "tasks", ["user_id", "status"])
    op.create_index("ix_tasks_project", "tasks", ["project_id"])

    # Create clients table
    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.Enum(*CLIENT_TYPES, name="clientType"), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_clients_user_created", "clients", ["user_id", "created_at"])

    # Create files table
    op.create_table(
        "files",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner_column(),
        sa.Column(
            "project_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("stored_filename", sa.String(512), nullable=False, unique=True),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_files_user_created", "files", ["user_id", "created_at"])
    op.create_index("ix_files_project", "files", ["project_id"])


def downgrade() -> None:
    op.drop_table("files")
    op.drop_table("clients")
    op.drop_table("tasks")
    op.drop_table("projects")
    op.drop_table("rate_limits")
    op.drop_table("email_verification_tokens")
    op.drop_table("user_sessions")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ("clientType", "taskStatus", "projectPriority", "projectStatus"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
