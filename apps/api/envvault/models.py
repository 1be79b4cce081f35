from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)
  username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
  email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Project(Base):
  __tablename__ = "projects"

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)
  name: Mapped[str] = mapped_column(String(200), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  owner_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class ProjectPermission(Base):
  __tablename__ = "project_permissions"
  __table_args__ = (
    UniqueConstraint("user_id", "project_id", name="ux_project_permissions_user_project"),
    CheckConstraint("role in ('admin', 'write', 'read')", name="ck_project_permissions_role"),
  )

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)
  user_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
  project_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("projects.id"), nullable=False, index=True)
  role: Mapped[str] = mapped_column(String(20), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Secret(Base):
  __tablename__ = "secrets"
  __table_args__ = (UniqueConstraint("project_id", "key", name="ux_secrets_project_key"),)

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)
  project_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("projects.id"), nullable=False, index=True)
  key: Mapped[str] = mapped_column(String(256), nullable=False)
  value_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_by: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class AccessToken(Base):
  __tablename__ = "access_tokens"
  __table_args__ = (UniqueConstraint("project_id", "name", name="ux_access_tokens_project_name"),)

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)
  token_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
  token_hint: Mapped[str] = mapped_column(String(32), nullable=False)
  user_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
  project_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("projects.id"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String(200), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
