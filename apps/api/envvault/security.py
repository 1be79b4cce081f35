from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def session_token_encode(
  user_id: str,
  username: str,
  *,
  secret: str,
  ttl: timedelta,
  algorithm: str = "HS256",
  now: datetime | None = None,
) -> tuple[str, datetime]:
  issued = now or datetime.now(timezone.utc)
  expires_at = issued + ttl
  payload = {"sub": user_id, "username": username, "iat": issued, "exp": expires_at}
  return jwt.encode(payload, secret, algorithm=algorithm), expires_at


def session_token_decode(token: str, *, secret: str, algorithm: str = "HS256") -> dict[str, Any] | None:
  # signature and exp are both checked by PyJWT
  try:
    payload = jwt.decode(token, secret, algorithms=[algorithm], options={"require": ["sub", "exp"]})
  except jwt.PyJWTError:
    return None
  return payload


def access_token_new(prefix: str) -> str:
  return prefix + secrets.token_hex(ACCESS_TOKEN_BYTES)


def access_token_hash(token: str, *, secret: str) -> str:
  # Keyed hash so DB leaks don't allow offline token matching.
  key = (secret or "").encode("utf-8")
  msg = (token or "").strip().encode("utf-8")
  return hmac.new(key, msg, hashlib.sha256).hexdigest()


def token_hint(token: str) -> str:
  t = (token or "").strip()
  if not t:
    return ""
  if len(t) <= 6:
    return f"…{t}"
  return f"…{t[-6:]}"
