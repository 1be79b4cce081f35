from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

_DB_PATH = Path(tempfile.gettempdir()) / f"envvault_test_{os.getpid()}.db"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_PATH}")
os.environ.setdefault("APP_SECRET", "envvault-test-secret-0123456789abcdef")
os.environ.setdefault("FERNET_KEY", Fernet.generate_key().decode("utf-8"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("REDIS_URL", "")

from envvault.config import settings
from envvault.main import app
from envvault.models import AccessToken, Base, Project, ProjectPermission, Secret, User

vault = app.state.vault
SessionLocal = vault.sessionmaker
engine = vault.engine

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  await vault.limiter.reset_prefix("auth:")
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  async with SessionLocal() as db:
    await db.execute(delete(AccessToken))
    await db.execute(delete(Secret))
    await db.execute(delete(ProjectPermission))
    await db.execute(delete(Project))
    await db.execute(delete(User))
    await db.commit()
  await engine.dispose()


@pytest.fixture
async def clean_db() -> None:
  if not settings.is_test_db():
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. envvault_test)."
    )
  await _reset_db()
  yield
  await _reset_db()


@pytest.fixture
async def client(clean_db: None) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


@pytest.fixture
async def db(clean_db: None):
  async with SessionLocal() as session:
    yield session


async def register(client: AsyncClient, username: str, *, email: str | None = None, password: str = DEFAULT_PASSWORD) -> dict:
  res = await client.post(
    "/auth/register",
    json={"username": username, "email": email or f"{username}@example.com", "password": password},
  )
  assert res.status_code == 200, res.text
  return res.json()


async def login(client: AsyncClient, username: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
  res = await client.post("/auth/login", json={"username": username, "password": password})
  assert res.status_code == 200, res.text
  token = res.json()["token"]
  assert token
  return {"Authorization": f"Bearer {token}"}


async def signup(client: AsyncClient, username: str) -> tuple[dict, dict[str, str]]:
  user = await register(client, username)
  return user, await login(client, username)


async def create_project(client: AsyncClient, auth: dict[str, str], name: str = "p1") -> dict:
  res = await client.post("/projects", json={"name": name, "description": f"{name} secrets"}, headers=auth)
  assert res.status_code == 200, res.text
  return res.json()


async def grant(project_id: str, user_id: str, role: str) -> None:
  # no grant endpoint; tests write permission rows directly
  async with SessionLocal() as db:
    db.add(ProjectPermission(project_id=project_id, user_id=user_id, role=role))
    await db.commit()


def bearer(token: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {token}"}
