"""Initial schema: users, contexts, memberships, projects, posts.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("timezone", sa.String(), nullable=False, server_default="UTC"),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("is_google_user", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("google_id", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("password_reset_token", sa.String(), nullable=True),
        sa.Column("password_reset_expires", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_google_id", "users", ["google_id"])
    op.create_index("ix_users_password_reset_token", "users", ["password_reset_token"])

    op.create_table(
        "contexts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("owner_user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("invite_code", sa.String(length=8), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_contexts_name", "contexts", ["name"])
    op.create_index("ix_contexts_owner_user_id", "contexts", ["owner_user_id"])
    op.create_index("ix_contexts_invite_code", "contexts", ["invite_code"], unique=True)

    op.create_table(
        "context_members",
        sa.Column("context_id", sa.Uuid(), sa.ForeignKey("contexts.id"), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("role", sa.String(), nullable=False, server_default="member"),
        _created_at(),
        sa.CheckConstraint("role IN ('admin', 'member')", name="context_members_role"),
    )
    op.create_index("ix_context_members_user_id", "context_members", ["user_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("context_id", sa.Uuid(), sa.ForeignKey("contexts.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("color_code", sa.String(length=7), nullable=False, server_default="#3B82F6"),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_projects_context_id", "projects", ["context_id"])

    op.create_table(
        "project_members",
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), primary_key=True),
        _created_at(),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("publish_date", sa.Date(), nullable=False),
        sa.Column("publish_time_slot", sa.String(), nullable=True),
        sa.Column("specific_time", sa.Time(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("approved_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("status IN ('pending', 'approved')", name="posts_status"),
        sa.CheckConstraint(
            "publish_time_slot IS NULL OR specific_time IS NULL", name="posts_one_time_field"
        ),
    )
    op.create_index("ix_posts_project_id", "posts", ["project_id"])
    op.create_index("ix_posts_publish_date", "posts", ["publish_date"])


def downgrade() -> None:
    op.drop_table("posts")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("context_members")
    op.drop_table("contexts")
    op.drop_table("users")
