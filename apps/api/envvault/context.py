from __future__ import annotations

from dataclasses import dataclass

from redis.asyncio import from_url as redis_from_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from envvault.config import Settings
from envvault.crypto import SecretCipher
from envvault.db import make_engine, make_sessionmaker
from envvault.rate_limit import RateLimiter


@dataclass
class VaultContext:
  """Everything process-wide, built once by ``create_app`` and handed to each request."""

  settings: Settings
  engine: AsyncEngine
  sessionmaker: async_sessionmaker[AsyncSession]
  cipher: SecretCipher
  limiter: RateLimiter


def build_context(settings: Settings) -> VaultContext:
  engine = make_engine(settings.database_url)
  redis_client = redis_from_url(settings.redis_url, decode_responses=True) if settings.redis_url else None
  return VaultContext(
    settings=settings,
    engine=engine,
    sessionmaker=make_sessionmaker(engine),
    cipher=SecretCipher(settings.fernet_key),
    limiter=RateLimiter(redis_client),
  )
