from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from envvault.accounts.service import CredentialStore
from envvault.context import VaultContext
from envvault.deps import client_ip, get_credential_store, get_session_credential, get_vault
from envvault.models import User
from envvault.permissions import SessionCredential
from envvault.schemas import LoginIn, LoginOut, RegisterIn, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(u: User) -> UserOut:
  return UserOut(id=u.id, username=u.username, email=u.email, createdAt=u.created_at)


async def _rate_limit_or_429(vault: VaultContext, *, key: str, limit: int, window_seconds: int) -> None:
  allowed, retry_after = await vault.limiter.hit(key, limit=limit, window_seconds=window_seconds)
  if allowed:
    return
  raise HTTPException(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    detail={"code": "rate_limited", "message": "Too many requests", "retryAfterSeconds": retry_after},
    headers={"Retry-After": str(retry_after)},
  )


@router.post("/register", response_model=UserOut)
async def register(payload: RegisterIn, credentials: CredentialStore = Depends(get_credential_store)) -> UserOut:
  u = await credentials.register(username=payload.username, email=payload.email, password=payload.password)
  return _user_out(u)


@router.post("/login", response_model=LoginOut)
async def login(
  payload: LoginIn,
  request: Request,
  credentials: CredentialStore = Depends(get_credential_store),
  vault: VaultContext = Depends(get_vault),
) -> LoginOut:
  ip = client_ip(request)
  username_key = (payload.username or "").strip().lower()
  await _rate_limit_or_429(vault, key=f"auth:login:ip:{ip}", limit=int(vault.settings.rate_limit_login_ip_per_minute), window_seconds=60)
  if username_key:
    await _rate_limit_or_429(
      vault,
      key=f"auth:login:username:{username_key}",
      limit=int(vault.settings.rate_limit_login_username_per_minute),
      window_seconds=60,
    )

  identity = await credentials.authenticate(username=payload.username, password=payload.password)
  return LoginOut(token=identity.token, expiresAt=identity.expires_at, user=_user_out(identity.user))


@router.get("/me", response_model=UserOut)
async def me(
  credential: SessionCredential = Depends(get_session_credential),
  credentials: CredentialStore = Depends(get_credential_store),
) -> UserOut:
  return _user_out(await credentials.get_user(credential.user_id))
