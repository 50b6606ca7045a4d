"""
clinic_portal.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (backend anon key, JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `CLINIC_`); defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="CLINIC_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "clinic-portal"
    log_level: str = "INFO"
    # Off renders human-readable console logs for a local terminal.
    log_json: bool = True

    # One clinic UI per process; expose beyond loopback only behind a proxy.
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # Hosted auth/storage backend
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = Field(default="dev-anon-key", repr=False)
    backend_timeout_seconds: float = 10.0
    receipts_bucket: str = "payment_receipts"

    # Session token validation (signature is only checked when a secret is configured)
    jwt_alg: str = "HS256"
    jwt_audience: str = "authenticated"
    jwt_secret: str | None = Field(default=None, repr=False)

    # Persistence (the hosted Postgres in production)
    database_url: str = "sqlite+aiosqlite:///./clinic.db"

    # Session coordinator timers
    session_refresh_interval_seconds: float = Field(default=120.0, gt=0)
    session_startup_timeout_seconds: float = Field(default=15.0, gt=0)
    session_inactivity_timeout_seconds: float = Field(default=30 * 60.0, gt=0)
    session_expiry_margin_seconds: float = Field(default=60.0, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Timer defaults mirror what the UI expects: refresh every 2 minutes, give up on
# startup after 15 seconds, re-validate after 30 idle minutes.
