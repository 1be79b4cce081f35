from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from envvault.config import Settings
from envvault.errors import ConflictError, UnauthorizedError
from envvault.models import User
from envvault.permissions import SessionCredential
from envvault.security import hash_password, session_token_decode, session_token_encode, verify_password


@dataclass(frozen=True)
class SessionIdentity:
  token: str
  expires_at: datetime
  user: User


class CredentialStore:
  def __init__(self, db: AsyncSession, settings: Settings) -> None:
    self.db = db
    self.settings = settings

  async def register(self, *, username: str, email: str, password: str) -> User:
    username = username.strip()
    email = email.strip().lower()
    res = await self.db.execute(select(User.id).where(or_(User.username == username, User.email == email)))
    if res.first() is not None:
      raise ConflictError("Username or email already exists")

    u = User(username=username, email=email, password_hash=hash_password(password))
    self.db.add(u)
    try:
      await self.db.commit()
    except IntegrityError as exc:
      # lost a race against a concurrent registration
      await self.db.rollback()
      raise ConflictError("Username or email already exists") from exc
    logger.info("user registered: id={} username={}", u.id, u.username)
    return u

  async def authenticate(self, *, username: str, password: str) -> SessionIdentity:
    res = await self.db.execute(select(User).where(User.username == username.strip()))
    u = res.scalar_one_or_none()
    if not u or not verify_password(password, u.password_hash):
      logger.info("login failed: username={}", username.strip())
      raise UnauthorizedError("Invalid credentials")

    token, expires_at = session_token_encode(
      u.id,
      u.username,
      secret=self.settings.app_secret,
      ttl=timedelta(hours=self.settings.session_ttl_hours),
      algorithm=self.settings.jwt_algorithm,
    )
    return SessionIdentity(token=token, expires_at=expires_at, user=u)

  async def resolve_session(self, token: str) -> SessionCredential:
    payload = session_token_decode(token, secret=self.settings.app_secret, algorithm=self.settings.jwt_algorithm)
    if not payload:
      raise UnauthorizedError("Invalid or expired session")
    res = await self.db.execute(select(User).where(User.id == str(payload["sub"])))
    u = res.scalar_one_or_none()
    if not u:
      raise UnauthorizedError("User not found")
    return SessionCredential(user_id=u.id, username=u.username)

  async def get_user(self, user_id: str) -> User:
    res = await self.db.execute(select(User).where(User.id == user_id))
    u = res.scalar_one_or_none()
    if not u:
      raise UnauthorizedError("User not found")
    return u
