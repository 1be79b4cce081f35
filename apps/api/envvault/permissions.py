"""
Project roles and the single policy table every endpoint consults.

A caller is resolved once per request into a ``Principal``: who is acting, on
which project, through which credential, and the set of actions that allows.
Services only ever ask the principal; they never compare role strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from envvault.errors import ForbiddenError
from envvault.models import ProjectPermission


class Role(str, Enum):
  admin = "admin"
  write = "write"
  read = "read"


class Action(str, Enum):
  read_secret = "read-secret"
  write_secret = "write-secret"
  manage_tokens = "manage-tokens"
  manage_permissions = "manage-permissions"


POLICY: dict[Role, frozenset[Action]] = {
  Role.admin: frozenset({Action.read_secret, Action.write_secret, Action.manage_tokens, Action.manage_permissions}),
  Role.write: frozenset({Action.read_secret, Action.write_secret}),
  Role.read: frozenset({Action.read_secret}),
}

# A validated access token is fixed to read-only retrieval on its own project.
TOKEN_ACTIONS: frozenset[Action] = frozenset({Action.read_secret})


def allowed_actions(role: Role | None) -> frozenset[Action]:
  if role is None:
    return frozenset()
  return POLICY.get(role, frozenset())


def authorize(role: Role | None, action: Action) -> bool:
  return action in allowed_actions(role)


@dataclass(frozen=True)
class SessionCredential:
  user_id: str
  username: str


@dataclass(frozen=True)
class ProjectTokenCredential:
  token_id: str
  project_id: str
  user_id: str


Credential = Union[SessionCredential, ProjectTokenCredential]


@dataclass(frozen=True)
class Principal:
  credential: Credential
  project_id: str
  role: Role | None
  actions: frozenset[Action]

  @property
  def user_id(self) -> str:
    return self.credential.user_id

  @property
  def via_token(self) -> bool:
    return isinstance(self.credential, ProjectTokenCredential)

  def can(self, action: Action) -> bool:
    return action in self.actions

  def require(self, action: Action) -> None:
    if action not in self.actions:
      raise ForbiddenError("Insufficient permissions")


async def role_of(db: AsyncSession, user_id: str, project_id: str) -> Role | None:
  res = await db.execute(
    select(ProjectPermission.role).where(ProjectPermission.user_id == user_id, ProjectPermission.project_id == project_id)
  )
  raw = res.scalar_one_or_none()
  if raw is None:
    return None
  try:
    return Role(raw)
  except ValueError:
    # unknown role strings grant nothing
    return None


async def principal_for(db: AsyncSession, credential: Credential, project_id: str) -> Principal:
  if isinstance(credential, ProjectTokenCredential):
    if credential.project_id != project_id:
      raise ForbiddenError("Token is not valid for this project")
    return Principal(credential=credential, project_id=project_id, role=None, actions=TOKEN_ACTIONS)

  role = await role_of(db, credential.user_id, project_id)
  if role is None:
    raise ForbiddenError("No project access")
  return Principal(credential=credential, project_id=project_id, role=role, actions=allowed_actions(role))
