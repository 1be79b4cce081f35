from __future__ import annotations

import pytest

from envvault.errors import ForbiddenError
from envvault.permissions import (
  Action,
  Principal,
  ProjectTokenCredential,
  Role,
  SessionCredential,
  allowed_actions,
  authorize,
)

EXPECTED = {
  Role.admin: {Action.read_secret: True, Action.write_secret: True, Action.manage_tokens: True, Action.manage_permissions: True},
  Role.write: {Action.read_secret: True, Action.write_secret: True, Action.manage_tokens: False, Action.manage_permissions: False},
  Role.read: {Action.read_secret: True, Action.write_secret: False, Action.manage_tokens: False, Action.manage_permissions: False},
  None: {Action.read_secret: False, Action.write_secret: False, Action.manage_tokens: False, Action.manage_permissions: False},
}


@pytest.mark.parametrize("role", list(EXPECTED))
@pytest.mark.parametrize("action", list(Action))
def test_authorize_matches_policy_table(role: Role | None, action: Action) -> None:
  assert authorize(role, action) is EXPECTED[role][action]


def test_read_role_never_writes_or_manages_tokens() -> None:
  assert not authorize(Role.read, Action.write_secret)
  assert not authorize(Role.read, Action.manage_tokens)


def test_no_role_allows_nothing() -> None:
  assert allowed_actions(None) == frozenset()


def test_principal_require_raises_forbidden() -> None:
  p = Principal(
    credential=SessionCredential(user_id="u1", username="carol"),
    project_id="p1",
    role=Role.write,
    actions=allowed_actions(Role.write),
  )
  p.require(Action.write_secret)
  with pytest.raises(ForbiddenError):
    p.require(Action.manage_tokens)
  assert not p.via_token


def test_token_principal_is_read_only() -> None:
  from envvault.permissions import TOKEN_ACTIONS

  p = Principal(
    credential=ProjectTokenCredential(token_id="t1", project_id="p1", user_id="u1"),
    project_id="p1",
    role=None,
    actions=TOKEN_ACTIONS,
  )
  assert p.via_token
  assert p.can(Action.read_secret)
  for action in (Action.write_secret, Action.manage_tokens, Action.manage_permissions):
    assert not p.can(action)
