from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from envvault.config import Settings
from envvault.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationFailedError
from envvault.models import AccessToken
from envvault.permissions import Action, Principal, ProjectTokenCredential
from envvault.security import access_token_hash, access_token_new, token_hint


def _as_utc(dt: datetime) -> datetime:
  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class IssuedToken:
  token: str
  record: AccessToken


class TokenService:
  """
  Project-scoped access tokens for non-interactive clients.

  Only a keyed digest of each token is stored; the plaintext is handed back
  once, by ``issue``.
  """

  def __init__(self, db: AsyncSession, settings: Settings) -> None:
    self.db = db
    self.settings = settings

  def _hash(self, token: str) -> str:
    return access_token_hash(token, secret=self.settings.app_secret)

  async def issue(
    self,
    principal: Principal,
    *,
    name: str,
    expires_at: datetime | None = None,
    now: datetime | None = None,
  ) -> IssuedToken:
    principal.require(Action.manage_tokens)
    name = (name or "").strip()
    if not name:
      raise ValidationFailedError("name is required")
    ts = _as_utc(now) if now else datetime.now(timezone.utc)
    if expires_at is not None:
      expires_at = _as_utc(expires_at)
      if expires_at <= ts:
        raise ValidationFailedError("expiresAt must be in the future")

    exists = await self.db.execute(
      select(AccessToken.id).where(AccessToken.project_id == principal.project_id, AccessToken.name == name)
    )
    if exists.scalar_one_or_none():
      raise ConflictError("A token with this name already exists for the project")

    raw = access_token_new(self.settings.access_token_prefix)
    t = AccessToken(
      token_hash=self._hash(raw),
      token_hint=token_hint(raw),
      user_id=principal.user_id,
      project_id=principal.project_id,
      name=name,
      expires_at=expires_at,
    )
    self.db.add(t)
    try:
      await self.db.commit()
    except IntegrityError as exc:
      await self.db.rollback()
      raise ConflictError("A token with this name already exists for the project") from exc
    logger.info("access token issued: id={} project={} name={}", t.id, t.project_id, t.name)
    return IssuedToken(token=raw, record=t)

  async def validate(self, token: str, *, now: datetime | None = None) -> ProjectTokenCredential:
    raw = (token or "").strip()
    if not raw:
      raise UnauthorizedError("Invalid or expired token")
    ts = _as_utc(now) if now else datetime.now(timezone.utc)
    res = await self.db.execute(
      select(AccessToken).where(
        AccessToken.token_hash == self._hash(raw),
        AccessToken.revoked_at.is_(None),
        or_(AccessToken.expires_at.is_(None), AccessToken.expires_at > ts),
      )
    )
    t = res.scalar_one_or_none()
    if not t:
      logger.info("access token rejected")
      raise UnauthorizedError("Invalid or expired token")
    return ProjectTokenCredential(token_id=t.id, project_id=t.project_id, user_id=t.user_id)

  async def list_for_project(self, principal: Principal) -> list[AccessToken]:
    principal.require(Action.manage_tokens)
    res = await self.db.execute(
      select(AccessToken).where(AccessToken.project_id == principal.project_id).order_by(AccessToken.created_at.desc())
    )
    return list(res.scalars().all())

  async def revoke(self, principal: Principal, token_id: str) -> AccessToken:
    principal.require(Action.manage_tokens)
    res = await self.db.execute(
      select(AccessToken).where(AccessToken.id == token_id, AccessToken.project_id == principal.project_id)
    )
    t = res.scalar_one_or_none()
    if not t:
      raise NotFoundError("Token not found")
    if t.revoked_at is None:
      t.revoked_at = datetime.now(timezone.utc)
      await self.db.commit()
      logger.info("access token revoked: id={} project={}", t.id, t.project_id)
    return t


async def record_token_use(sessionmaker: async_sessionmaker[AsyncSession], token_id: str) -> None:
  # Telemetry only: a lost or failed update must never affect the read it follows.
  try:
    async with sessionmaker() as db:
      await db.execute(update(AccessToken).where(AccessToken.id == token_id).values(last_used_at=datetime.now(timezone.utc)))
      await db.commit()
  except SQLAlchemyError as exc:
    logger.warning("could not record access token use: id={} error={}", token_id, type(exc).__name__)
