from __future__ import annotations

from fastapi import APIRouter, Depends

from envvault.deps import (
  get_project_principal,
  get_project_service,
  get_secret_store,
  get_session_credential,
  get_token_service,
  require_uuid,
)
from envvault.models import AccessToken, Project
from envvault.permissions import Principal, Role, SessionCredential
from envvault.projects.service import ProjectService
from envvault.schemas import (
  AccessTokenCreateIn,
  AccessTokenCreateOut,
  AccessTokenOut,
  ProjectCreateIn,
  ProjectOut,
  SecretMetadataOut,
  SecretUpsertIn,
)
from envvault.secret_store.service import SecretMetadata, SecretStore
from envvault.tokens.service import TokenService

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_out(p: Project, role: Role | None) -> ProjectOut:
  return ProjectOut(
    id=p.id,
    name=p.name,
    description=p.description,
    ownerId=p.owner_id,
    role=role.value if role else None,
    createdAt=p.created_at,
    updatedAt=p.updated_at,
  )


def _access_token_out(t: AccessToken) -> AccessTokenOut:
  return AccessTokenOut(
    id=t.id,
    projectId=t.project_id,
    userId=t.user_id,
    name=t.name,
    tokenHint=t.token_hint,
    createdAt=t.created_at,
    expiresAt=t.expires_at,
    lastUsedAt=t.last_used_at,
    revokedAt=t.revoked_at,
  )


def _secret_out(s: SecretMetadata) -> SecretMetadataOut:
  return SecretMetadataOut(
    id=s.id,
    key=s.key,
    description=s.description,
    createdBy=s.created_by,
    createdAt=s.created_at,
    updatedAt=s.updated_at,
  )


@router.get("", response_model=list[ProjectOut])
async def list_projects(
  credential: SessionCredential = Depends(get_session_credential),
  projects: ProjectService = Depends(get_project_service),
) -> list[ProjectOut]:
  return [_project_out(p, role) for p, role in await projects.list_projects_for_user(credential.user_id)]


@router.post("", response_model=ProjectOut)
async def create_project(
  payload: ProjectCreateIn,
  credential: SessionCredential = Depends(get_session_credential),
  projects: ProjectService = Depends(get_project_service),
) -> ProjectOut:
  p, role = await projects.create_project(owner_id=credential.user_id, name=payload.name, description=payload.description)
  return _project_out(p, role)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
  principal: Principal = Depends(get_project_principal),
  projects: ProjectService = Depends(get_project_service),
) -> ProjectOut:
  return _project_out(await projects.get_project(principal), principal.role)


@router.post("/{project_id}/tokens", response_model=AccessTokenCreateOut)
async def create_access_token(
  payload: AccessTokenCreateIn,
  principal: Principal = Depends(get_project_principal),
  tokens: TokenService = Depends(get_token_service),
) -> AccessTokenCreateOut:
  issued = await tokens.issue(principal, name=payload.name, expires_at=payload.expiresAt)
  return AccessTokenCreateOut(token=issued.token, accessToken=_access_token_out(issued.record))


@router.get("/{project_id}/tokens", response_model=list[AccessTokenOut])
async def list_access_tokens(
  principal: Principal = Depends(get_project_principal),
  tokens: TokenService = Depends(get_token_service),
) -> list[AccessTokenOut]:
  return [_access_token_out(t) for t in await tokens.list_for_project(principal)]


@router.post("/{project_id}/tokens/{token_id}/revoke", response_model=AccessTokenOut)
async def revoke_access_token(
  token_id: str,
  principal: Principal = Depends(get_project_principal),
  tokens: TokenService = Depends(get_token_service),
) -> AccessTokenOut:
  t = await tokens.revoke(principal, require_uuid(token_id, "Token"))
  return _access_token_out(t)


@router.post("/{project_id}/secrets", response_model=SecretMetadataOut)
async def upsert_secret(
  payload: SecretUpsertIn,
  principal: Principal = Depends(get_project_principal),
  store: SecretStore = Depends(get_secret_store),
) -> SecretMetadataOut:
  meta = await store.upsert(principal, key=payload.key, value=payload.value, description=payload.description)
  return _secret_out(meta)


@router.get("/{project_id}/secrets", response_model=list[SecretMetadataOut])
async def list_secrets(
  principal: Principal = Depends(get_project_principal),
  store: SecretStore = Depends(get_secret_store),
) -> list[SecretMetadataOut]:
  return [_secret_out(s) for s in await store.list_metadata(principal)]
