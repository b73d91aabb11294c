"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_contact_directory,
    get_credential_store,
    get_mercado_livre_client,
    get_mercado_livre_integration_service,
    get_mercado_livre_oauth_client,
    get_mercado_livre_token_service,
    get_oauth_state_encoder,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings
from .context import get_request_context

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_contact_directory",
    "get_credential_store",
    "get_mercado_livre_client",
    "get_mercado_livre_integration_service",
    "get_mercado_livre_oauth_client",
    "get_mercado_livre_token_service",
    "get_oauth_state_encoder",
    "get_request_context",
    "get_token_cipher_service",
]
