from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from envvault.context import VaultContext
from envvault.deps import get_secret_store, get_token_principal, get_vault, require_uuid
from envvault.permissions import Principal
from envvault.schemas import ResolvedSecretsOut
from envvault.secret_store.service import SecretStore
from envvault.tokens.service import record_token_use

router = APIRouter(prefix="/secrets", tags=["secrets"])


def _dotenv_line(key: str, value: str) -> str:
  # single quotes keep $ literal for shells and compose files
  if "$" in value and not any(c in value for c in "'\n\r"):
    return f"{key}='{value}'"
  if value == "" or any(c in value for c in " \t\n\r\"'#$\\"):
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r").replace("$", "\\$")
    return f'{key}="{escaped}"'
  return f"{key}={value}"


def render_dotenv(secrets: dict[str, str]) -> str:
  lines = [_dotenv_line(k, secrets[k]) for k in sorted(secrets)]
  return "\n".join(lines) + ("\n" if lines else "")


@router.get("", response_model=ResolvedSecretsOut)
async def resolve_secrets(
  background: BackgroundTasks,
  projectId: str | None = Query(default=None),
  fmt: Literal["json", "dotenv"] = Query(default="json", alias="format"),
  principal: Principal = Depends(get_token_principal),
  store: SecretStore = Depends(get_secret_store),
  vault: VaultContext = Depends(get_vault),
) -> ResolvedSecretsOut | Response:
  requested = require_uuid(projectId, "Project") if projectId else None
  resolved = await store.resolve_all(principal, project_id=requested)
  background.add_task(record_token_use, vault.sessionmaker, principal.credential.token_id)
  headers = {"Cache-Control": "no-store"}
  if fmt == "dotenv":
    return PlainTextResponse(render_dotenv(resolved), headers=headers)
  body = ResolvedSecretsOut(projectId=principal.project_id, secrets=resolved)
  return Response(content=body.model_dump_json(), media_type="application/json", headers=headers)
