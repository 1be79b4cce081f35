from __future__ import annotations

import re
from datetime import datetime, timezone

from pydantic import BaseModel, Field
from pydantic import field_validator


_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
SECRET_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

MAX_SECRET_VALUE_CHARS = 64 * 1024


def _parse_dt_utc(value: object) -> object:
  if value is None:
    return None
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str):
    s = value.strip()
    if not s:
      return None
    if _DATE_ONLY_RE.fullmatch(s):
      dt = datetime.fromisoformat(s)
    else:
      dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  else:
    return value

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


class UserOut(BaseModel):
  id: str
  username: str
  email: str
  createdAt: datetime


class RegisterIn(BaseModel):
  username: str = Field(min_length=1, max_length=100)
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=8, max_length=200)

  @field_validator("username")
  @classmethod
  def _username(cls, v: str) -> str:
    s = v.strip()
    if not s or not _USERNAME_RE.fullmatch(s):
      raise ValueError("username may only contain letters, digits, '_', '.' and '-'")
    return s

  @field_validator("email")
  @classmethod
  def _email(cls, v: str) -> str:
    s = v.strip().lower()
    local, _, domain = s.partition("@")
    if not local or not domain or " " in s:
      raise ValueError("email is not valid")
    return s


class LoginIn(BaseModel):
  username: str = Field(min_length=1, max_length=100)
  password: str = Field(min_length=1, max_length=200)


class LoginOut(BaseModel):
  token: str
  expiresAt: datetime
  user: UserOut


class ProjectCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=200)
  description: str | None = Field(default=None, max_length=2000)


class ProjectOut(BaseModel):
  id: str
  name: str
  description: str | None = None
  ownerId: str
  role: str | None = None
  createdAt: datetime
  updatedAt: datetime


class AccessTokenCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=200)
  expiresAt: datetime | None = None

  @field_validator("expiresAt", mode="before")
  @classmethod
  def _expires_at_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class AccessTokenOut(BaseModel):
  id: str
  projectId: str
  userId: str
  name: str
  tokenHint: str
  createdAt: datetime
  expiresAt: datetime | None = None
  lastUsedAt: datetime | None = None
  revokedAt: datetime | None = None


class AccessTokenCreateOut(BaseModel):
  token: str
  accessToken: AccessTokenOut


class SecretUpsertIn(BaseModel):
  key: str = Field(min_length=1, max_length=256)
  value: str = Field(max_length=MAX_SECRET_VALUE_CHARS)
  description: str | None = Field(default=None, max_length=1000)

  @field_validator("key")
  @classmethod
  def _key(cls, v: str) -> str:
    s = v.strip()
    if not SECRET_KEY_RE.fullmatch(s):
      raise ValueError("key must start with a letter or '_' and contain only letters, digits, '_', '.' and '-'")
    return s


class SecretMetadataOut(BaseModel):
  id: str
  key: str
  description: str | None = None
  createdBy: str
  createdAt: datetime
  updatedAt: datetime


class ResolvedSecretsOut(BaseModel):
  projectId: str
  secrets: dict[str, str]
