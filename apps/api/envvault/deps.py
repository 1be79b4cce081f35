from __future__ import annotations

import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from envvault.accounts.service import CredentialStore
from envvault.context import VaultContext
from envvault.errors import NotFoundError, UnauthorizedError
from envvault.permissions import Principal, ProjectTokenCredential, SessionCredential, principal_for
from envvault.projects.service import ProjectService
from envvault.secret_store.service import SecretStore
from envvault.tokens.service import TokenService


def get_vault(request: Request) -> VaultContext:
  return request.app.state.vault


async def get_db(vault: VaultContext = Depends(get_vault)) -> AsyncSession:
  async with vault.sessionmaker() as session:
    yield session


def get_credential_store(db: AsyncSession = Depends(get_db), vault: VaultContext = Depends(get_vault)) -> CredentialStore:
  return CredentialStore(db, vault.settings)


def get_project_service(db: AsyncSession = Depends(get_db)) -> ProjectService:
  return ProjectService(db)


def get_token_service(db: AsyncSession = Depends(get_db), vault: VaultContext = Depends(get_vault)) -> TokenService:
  return TokenService(db, vault.settings)


def get_secret_store(db: AsyncSession = Depends(get_db), vault: VaultContext = Depends(get_vault)) -> SecretStore:
  return SecretStore(db, vault.cipher)


def bearer_value(request: Request) -> str:
  auth = request.headers.get("authorization")
  if not auth or not auth.lower().startswith("bearer "):
    raise UnauthorizedError("Missing or invalid authorization header")
  value = auth.split(" ", 1)[1].strip()
  if not value:
    raise UnauthorizedError("Missing or invalid authorization header")
  return value


async def get_session_credential(
  request: Request,
  credentials: CredentialStore = Depends(get_credential_store),
) -> SessionCredential:
  return await credentials.resolve_session(bearer_value(request))


async def get_token_credential(
  request: Request,
  tokens: TokenService = Depends(get_token_service),
) -> ProjectTokenCredential:
  return await tokens.validate(bearer_value(request))


def require_uuid(value: str, what: str) -> str:
  try:
    return str(uuid.UUID(value))
  except ValueError:
    raise NotFoundError(f"{what} not found") from None


async def get_project_principal(
  project_id: str,
  credential: SessionCredential = Depends(get_session_credential),
  db: AsyncSession = Depends(get_db),
) -> Principal:
  return await principal_for(db, credential, require_uuid(project_id, "Project"))


async def get_token_principal(
  credential: ProjectTokenCredential = Depends(get_token_credential),
  db: AsyncSession = Depends(get_db),
) -> Principal:
  return await principal_for(db, credential, credential.project_id)


def client_ip(request: Request) -> str:
  return request.client.host if request.client else "unknown"
