from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import DEFAULT_PASSWORD, SessionLocal, bearer, login, register, signup
from envvault.models import User


@pytest.mark.anyio
async def test_register_login_and_me(client: AsyncClient) -> None:
  user = await register(client, "alice")
  assert user["username"] == "alice"
  assert user["email"] == "alice@example.com"
  assert "password" not in user and "passwordHash" not in user

  res = await client.post("/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
  assert res.status_code == 200, res.text
  body = res.json()
  assert body["user"]["id"] == user["id"]
  assert body["expiresAt"]

  me = await client.get("/auth/me", headers=bearer(body["token"]))
  assert me.status_code == 200, me.text
  assert me.json()["username"] == "alice"


@pytest.mark.anyio
async def test_password_is_stored_as_digest(client: AsyncClient) -> None:
  await register(client, "alice")
  async with SessionLocal() as db:
    u = (await db.execute(select(User).where(User.username == "alice"))).scalar_one()
  assert u.password_hash != DEFAULT_PASSWORD
  assert DEFAULT_PASSWORD not in u.password_hash


@pytest.mark.anyio
async def test_register_same_email_twice_conflicts(client: AsyncClient) -> None:
  await register(client, "alice", email="alice@example.com")
  res = await client.post(
    "/auth/register",
    json={"username": "alice2", "email": "Alice@Example.com", "password": DEFAULT_PASSWORD},
  )
  assert res.status_code == 409, res.text
  assert res.json()["kind"] == "conflict"


@pytest.mark.anyio
async def test_register_same_username_twice_conflicts(client: AsyncClient) -> None:
  await register(client, "alice")
  res = await client.post(
    "/auth/register",
    json={"username": "alice", "email": "other@example.com", "password": DEFAULT_PASSWORD},
  )
  assert res.status_code == 409, res.text


@pytest.mark.anyio
async def test_register_validation_does_not_echo_password(client: AsyncClient) -> None:
  res = await client.post("/auth/register", json={"username": "alice", "email": "alice@example.com", "password": "short7!"})
  assert res.status_code == 422, res.text
  assert res.json()["kind"] == "validation_error"
  assert "short7!" not in res.text


@pytest.mark.anyio
@pytest.mark.parametrize("username,password", [("alice", "wrong-password"), ("nobody", DEFAULT_PASSWORD)])
async def test_bad_credentials_are_unauthorized(client: AsyncClient, username: str, password: str) -> None:
  await register(client, "alice")
  res = await client.post("/auth/login", json={"username": username, "password": password})
  assert res.status_code == 401, res.text
  assert res.json() == {"kind": "unauthorized", "detail": "Invalid credentials"}


@pytest.mark.anyio
async def test_session_required_for_me(client: AsyncClient) -> None:
  res = await client.get("/auth/me")
  assert res.status_code == 401
  res = await client.get("/auth/me", headers=bearer("garbage"))
  assert res.status_code == 401


@pytest.mark.anyio
async def test_session_for_vanished_user_is_rejected(client: AsyncClient) -> None:
  user, auth = await signup(client, "alice")
  async with SessionLocal() as db:
    u = (await db.execute(select(User).where(User.id == user["id"]))).scalar_one()
    await db.delete(u)
    await db.commit()
  res = await client.get("/auth/me", headers=auth)
  assert res.status_code == 401


@pytest.mark.anyio
async def test_login_twice_gives_working_sessions(client: AsyncClient) -> None:
  await register(client, "alice")
  a = await login(client, "alice")
  b = await login(client, "alice")
  for auth in (a, b):
    assert (await client.get("/auth/me", headers=auth)).status_code == 200
