"""
person_registry.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Describe the trust boundary: issuer, audience and key-discovery URL of the
  external authorization server.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration; defaults are safe for local dev against the
    docker-compose authorization server on port 9090.
    """

    model_config = SettingsConfigDict(env_prefix="REGISTRY_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "person-registry"
    log_level: str = "INFO"
    # Console rendering is easier to read in a terminal; keep JSON for shipping logs.
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence (prod: postgresql+asyncpg://...)
    database_url: str = "sqlite+aiosqlite:///./registry.db"

    # Authorization server
    auth_issuer: str = "http://localhost:9090/auth/issuer"
    auth_jwks_url: str = "http://localhost:9090/auth/.well-known/jwks.json"
    auth_audience: str = "person-registry"

    jwks_cache_ttl_seconds: float = Field(default=300.0, gt=0)
    jwks_refresh_cooldown_seconds: float = Field(default=10.0, ge=0)
    jwks_fetch_timeout_seconds: float = Field(default=5.0, gt=0)
    token_leeway_seconds: int = Field(default=0, ge=0)

    # Exact paths that skip the authorization gate.
    public_paths: tuple[str, ...] = (
        "/healthz",
        "/readyz",
        "/docs",
        "/docs/oauth2-redirect",
        "/openapi.json",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The bypass list is static: a new public endpoint is added here, never inferred
# from route metadata.
