from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from envvault.crypto import SecretCipher
from envvault.errors import ForbiddenError, InternalError, ValidationFailedError
from envvault.models import Project, Secret, new_id
from envvault.permissions import Action, Principal
from envvault.schemas import MAX_SECRET_VALUE_CHARS, SECRET_KEY_RE


@dataclass(frozen=True)
class SecretMetadata:
  id: str
  key: str
  description: str | None
  created_by: str
  created_at: datetime
  updated_at: datetime


_INSERTS = {
  "postgresql": pg_insert,
  "sqlite": sqlite_insert,
}


class SecretStore:
  def __init__(self, db: AsyncSession, cipher: SecretCipher) -> None:
    self.db = db
    self.cipher = cipher

  def _insert(self):
    dialect = self.db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
      raise InternalError(f"Unsupported database dialect: {dialect}")
    return insert(Secret)

  async def upsert(self, principal: Principal, *, key: str, value: str, description: str | None = None) -> SecretMetadata:
    """
    Create or overwrite one secret of the principal's project.

    One ``INSERT .. ON CONFLICT (project_id, key) DO UPDATE`` statement, so
    concurrent writers to the same key cannot interleave. An overwrite keeps
    ``created_at``/``created_by`` and refreshes value, description and
    ``updated_at``. The project counts as updated too.
    """
    principal.require(Action.write_secret)
    key = (key or "").strip()
    if not SECRET_KEY_RE.fullmatch(key) or len(key) > 256:
      raise ValidationFailedError("key is not a valid secret name")
    if value is None or len(value) > MAX_SECRET_VALUE_CHARS:
      raise ValidationFailedError("value is missing or too large")

    encrypted = self.cipher.encrypt(value)
    now = datetime.now(timezone.utc)
    stmt = self._insert().values(
      id=new_id(),
      project_id=principal.project_id,
      key=key,
      value_encrypted=encrypted,
      description=description,
      created_by=principal.user_id,
      created_at=now,
      updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
      index_elements=[Secret.project_id, Secret.key],
      set_={
        "value_encrypted": stmt.excluded.value_encrypted,
        "description": stmt.excluded.description,
        "updated_at": stmt.excluded.updated_at,
      },
    ).returning(Secret.id, Secret.key, Secret.description, Secret.created_by, Secret.created_at, Secret.updated_at)

    res = await self.db.execute(stmt)
    row = res.one()
    await self.db.execute(update(Project).where(Project.id == principal.project_id).values(updated_at=now))
    await self.db.commit()
    logger.info("secret upserted: project={} key={} by={}", principal.project_id, key, principal.user_id)
    return SecretMetadata(
      id=row.id,
      key=row.key,
      description=row.description,
      created_by=row.created_by,
      created_at=row.created_at,
      updated_at=row.updated_at,
    )

  async def list_metadata(self, principal: Principal) -> list[SecretMetadata]:
    principal.require(Action.read_secret)
    res = await self.db.execute(
      select(Secret.id, Secret.key, Secret.description, Secret.created_by, Secret.created_at, Secret.updated_at)
      .where(Secret.project_id == principal.project_id)
      .order_by(Secret.key.asc())
    )
    return [
      SecretMetadata(
        id=r.id,
        key=r.key,
        description=r.description,
        created_by=r.created_by,
        created_at=r.created_at,
        updated_at=r.updated_at,
      )
      for r in res.all()
    ]

  async def resolve_all(self, principal: Principal, *, project_id: str | None = None) -> dict[str, str]:
    """
    Decrypt every secret of the project bound to an access token.

    Session principals are refused: bulk plaintext is only ever handed to a
    token, so a leaked session credential cannot dump a project.
    """
    if not principal.via_token:
      raise ForbiddenError("Secret resolution requires a project access token")
    if project_id is not None and project_id != principal.project_id:
      raise ForbiddenError("Token is not valid for this project")
    principal.require(Action.read_secret)

    res = await self.db.execute(
      select(Secret.key, Secret.value_encrypted).where(Secret.project_id == principal.project_id).order_by(Secret.key.asc())
    )
    out: dict[str, str] = {}
    for key, value_encrypted in res.all():
      try:
        out[key] = self.cipher.decrypt(value_encrypted)
      except InternalError:
        logger.error("secret could not be decrypted: project={} key={}", principal.project_id, key)
        raise
    return out
