from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://envvault:envvault@db:5432/envvault"
  app_secret: str = "dev-secret-change-me"
  fernet_key: str = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="
  app_version: str = "0.1.0"

  session_ttl_hours: int = 24
  jwt_algorithm: str = "HS256"
  access_token_prefix: str = "evt_"

  log_level: str = "INFO"
  api_docs_enabled: bool = True

  # shared login counters; unset means each process counts on its own
  redis_url: str | None = None

  rate_limit_login_ip_per_minute: int = 60
  rate_limit_login_username_per_minute: int = 20

  cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def is_test_db(self) -> bool:
    db_name = self.database_url.rsplit("/", 1)[-1]
    return "test" in db_name


settings = Settings()
