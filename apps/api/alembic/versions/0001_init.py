"""init: users, projects, permissions, secrets, access tokens

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
    sa.Column("username", sa.String(length=100), nullable=False),
    sa.Column("email", sa.String(length=320), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_users_username", "users", ["username"], unique=True)
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "projects",
    sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
    sa.Column("name", sa.String(length=200), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("owner_id", sa.Uuid(as_uuid=False), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_projects_owner_id", "projects", ["owner_id"])

  op.create_table(
    "project_permissions",
    sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
    sa.Column("user_id", sa.Uuid(as_uuid=False), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("project_id", sa.Uuid(as_uuid=False), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("role", sa.String(length=20), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.UniqueConstraint("user_id", "project_id", name="ux_project_permissions_user_project"),
    sa.CheckConstraint("role in ('admin', 'write', 'read')", name="ck_project_permissions_role"),
  )
  op.create_index("ix_project_permissions_user_id", "project_permissions", ["user_id"])
  op.create_index("ix_project_permissions_project_id", "project_permissions", ["project_id"])

  op.create_table(
    "secrets",
    sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
    sa.Column("project_id", sa.Uuid(as_uuid=False), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("key", sa.String(length=256), nullable=False),
    sa.Column("value_encrypted", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("created_by", sa.Uuid(as_uuid=False), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.UniqueConstraint("project_id", "key", name="ux_secrets_project_key"),
  )
  op.create_index("ix_secrets_project_id", "secrets", ["project_id"])

  op.create_table(
    "access_tokens",
    sa.Column("id", sa.Uuid(as_uuid=False), primary_key=True),
    sa.Column("token_hash", sa.String(length=128), nullable=False),
    sa.Column("token_hint", sa.String(length=32), nullable=False),
    sa.Column("user_id", sa.Uuid(as_uuid=False), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("project_id", sa.Uuid(as_uuid=False), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("name", sa.String(length=200), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    sa.UniqueConstraint("project_id", "name", name="ux_access_tokens_project_name"),
  )
  op.create_index("ix_access_tokens_token_hash", "access_tokens", ["token_hash"], unique=True)
  op.create_index("ix_access_tokens_user_id", "access_tokens", ["user_id"])
  op.create_index("ix_access_tokens_project_id", "access_tokens", ["project_id"])


def downgrade() -> None:
  op.drop_index("ix_access_tokens_project_id", table_name="access_tokens")
  op.drop_index("ix_access_tokens_user_id", table_name="access_tokens")
  op.drop_index("ix_access_tokens_token_hash", table_name="access_tokens")
  op.drop_table("access_tokens")
  op.drop_index("ix_secrets_project_id", table_name="secrets")
  op.drop_table("secrets")
  op.drop_index("ix_project_permissions_project_id", table_name="project_permissions")
  op.drop_index("ix_project_permissions_user_id", table_name="project_permissions")
  op.drop_table("project_permissions")
  op.drop_index("ix_projects_owner_id", table_name="projects")
  op.drop_table("projects")
  op.drop_index("ix_users_email", table_name="users")
  op.drop_index("ix_users_username", table_name="users")
  op.drop_table("users")
