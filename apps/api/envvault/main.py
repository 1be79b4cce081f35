from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from envvault.config import Settings, settings as default_settings
from envvault.context import build_context
from envvault.errors import ErrorKind, ServiceError
from envvault.logging_config import configure_logging
from envvault.routers.auth import router as auth_router
from envvault.routers.projects import router as projects_router
from envvault.routers.secrets import router as secrets_router

_PLACEHOLDER_SECRETS = {"dev-secret-change-me", "replace_with_strong_random_secret"}
_PLACEHOLDER_FERNET_KEYS = {"AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA=", "REPLACE_WITH_FERNET_KEY"}


def _error(kind: ErrorKind, status_code: int, message: str, **extra) -> JSONResponse:
  return JSONResponse(status_code=status_code, content={"kind": kind.value, "detail": message, **extra})


async def _service_error_handler(_: Request, exc: ServiceError) -> JSONResponse:
  if exc.kind is ErrorKind.internal:
    logger.opt(exception=exc).error("internal error: {}", exc.message)
  return _error(exc.kind, exc.status_code, exc.message)


async def _validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
  # Report where the request is malformed, never what was sent: bodies carry secret values.
  errors = [
    {"field": ".".join(str(loc) for loc in e.get("loc", [])), "message": e.get("msg"), "type": e.get("type")}
    for e in exc.errors()
  ]
  return _error(ErrorKind.validation, 422, "Request validation failed", errors=errors)


async def _database_error_handler(_: Request, exc: SQLAlchemyError) -> JSONResponse:
  logger.error("database error: {}", type(exc).__name__)
  return _error(ErrorKind.internal, 500, "Internal server error")


def _check_secrets(s: Settings) -> None:
  if s.is_test_db():
    return
  if not s.app_secret or s.app_secret.strip().lower() in _PLACEHOLDER_SECRETS:
    raise RuntimeError("APP_SECRET is required and must not be a placeholder")
  if not s.fernet_key or s.fernet_key.strip() in _PLACEHOLDER_FERNET_KEYS:
    raise RuntimeError("FERNET_KEY is required and must not be a placeholder")


def create_app(s: Settings | None = None) -> FastAPI:
  s = s or default_settings
  configure_logging(s.log_level)

  app = FastAPI(
    title="envvault API",
    version=s.app_version,
    docs_url="/docs" if s.api_docs_enabled else None,
    redoc_url="/redoc" if s.api_docs_enabled else None,
    openapi_url="/openapi.json" if s.api_docs_enabled else None,
  )
  app.state.vault = build_context(s)

  app.add_exception_handler(ServiceError, _service_error_handler)
  app.add_exception_handler(RequestValidationError, _validation_error_handler)
  app.add_exception_handler(SQLAlchemyError, _database_error_handler)

  app.add_middleware(
    CORSMiddleware,
    allow_origins=s.cors_origin_list(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
  )

  app.include_router(auth_router)
  app.include_router(projects_router)
  app.include_router(secrets_router)

  @app.middleware("http")
  async def _security_headers_middleware(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    return response

  @app.get("/health")
  async def health() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

  @app.on_event("startup")
  async def _startup() -> None:
    _check_secrets(s)
    logger.info("envvault API starting: version={}", s.app_version)

  @app.on_event("shutdown")
  async def _shutdown() -> None:
    await app.state.vault.limiter.close()
    await app.state.vault.engine.dispose()

  return app


app = create_app()
