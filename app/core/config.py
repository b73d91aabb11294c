"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the dependency factories
and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, BaseSettings, Field, validator


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class MercadoLivreSettings(BaseSettings):
    """Configuration required for interacting with the Mercado Livre APIs."""

    client_id: str = Field(..., env="MERCADO_LIVRE_CLIENT_ID")
    client_secret: str = Field(..., env="MERCADO_LIVRE_CLIENT_SECRET")
    auth_url: AnyHttpUrl = Field(
        "https://auth.mercadolibre.com.br/authorization",
        env="MERCADO_LIVRE_AUTH_URL",
    )
    api_url: AnyHttpUrl = Field(
        "https://api.mercadolibre.com",
        env="MERCADO_LIVRE_API_URL",
    )
    admin_order_url: str = Field(
        "https://www.mercadolibre.com.br/ventas/{order_id}/detalle",
        env="MERCADO_LIVRE_ADMIN_ORDER_URL",
        description="Seller dashboard deep link; '{order_id}' is substituted.",
    )
    http_timeout_seconds: float = Field(10.0, env="MERCADO_LIVRE_HTTP_TIMEOUT")
    refresh_window_seconds: int = Field(
        300,
        env="MERCADO_LIVRE_REFRESH_WINDOW",
        description="Refresh the access token when it expires within this window.",
    )
    orders_limit: int = Field(50, env="MERCADO_LIVRE_ORDERS_LIMIT")

    @validator("api_url", "auth_url")
    def _strip_trailing_slash(cls, value: AnyHttpUrl) -> str:
        return str(value).rstrip("/")

    @validator("admin_order_url")
    def _require_order_placeholder(cls, value: str) -> str:
        if "{order_id}" not in value:
            raise ValueError("admin_order_url must contain an '{order_id}' placeholder")
        return value


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, env="OAUTH_STATE_TTL")
    state_secret: Optional[str] = Field(
        None,
        env="OAUTH_STATE_SECRET",
        description="Key for signing state tokens. Defaults to the client secret.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        env="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", env="APP_ENV")
    log_level: str = Field("INFO", env="APP_LOG_LEVEL")
    frontend_url: str = Field(
        "",
        env="FRONTEND_URL",
        description="Base URL for callback and post-authorization redirects.",
    )
    credential_db_path: str = Field(
        "data/integrations.db",
        env="CREDENTIAL_DB_PATH",
        description="SQLite file holding integration credentials and contacts.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    mercado_livre: MercadoLivreSettings = Field(default_factory=MercadoLivreSettings)

    @validator("frontend_url")
    def _normalize_frontend_url(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def redirect_uri(self) -> str:
        """Fixed OAuth redirect URI registered with Mercado Livre."""
        return f"{self.frontend_url}/mercado_livre/callback"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "MercadoLivreSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
