"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import (
    ContactDirectory,
    CredentialStore,
    MercadoLivreClient,
    MercadoLivreOAuthClient,
    OAuthStateEncoder,
)
from app.core.config import get_settings
from app.services import (
    MercadoLivreIntegrationService,
    MercadoLivreTokenService,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the state secret or client secret."""
    settings = _settings()
    secret = settings.oauth.state_secret or settings.mercado_livre.client_secret
    return OAuthStateEncoder(
        secret_key=secret, ttl_seconds=settings.oauth.state_ttl_seconds
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = (
        settings.security.token_encryption_secret
        or settings.mercado_livre.client_secret
    )
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the shared credential store."""
    settings = _settings()
    return CredentialStore(
        settings.credential_db_path, token_cipher=get_token_cipher_service()
    )


@lru_cache()
def get_contact_directory() -> ContactDirectory:
    settings = _settings()
    return ContactDirectory(settings.credential_db_path)


@lru_cache()
def get_mercado_livre_oauth_client() -> MercadoLivreOAuthClient:
    """Create a singleton Mercado Livre OAuth client."""
    settings = _settings()
    return MercadoLivreOAuthClient(
        settings.mercado_livre, redirect_uri=settings.redirect_uri
    )


@lru_cache()
def get_mercado_livre_client() -> MercadoLivreClient:
    settings = _settings()
    return MercadoLivreClient(settings.mercado_livre)


@lru_cache()
def get_mercado_livre_token_service() -> MercadoLivreTokenService:
    """Provide helper for refreshing stored Mercado Livre tokens."""
    settings = _settings()
    return MercadoLivreTokenService(
        store=get_credential_store(),
        oauth_client=get_mercado_livre_oauth_client(),
        refresh_window_seconds=settings.mercado_livre.refresh_window_seconds,
    )


def get_mercado_livre_integration_service() -> MercadoLivreIntegrationService:
    """Build the integration service from the shared clients."""
    settings = _settings()
    return MercadoLivreIntegrationService(
        store=get_credential_store(),
        contacts=get_contact_directory(),
        oauth_client=get_mercado_livre_oauth_client(),
        api_client=get_mercado_livre_client(),
        token_service=get_mercado_livre_token_service(),
        state_encoder=get_oauth_state_encoder(),
        frontend_url=settings.frontend_url,
        admin_order_url=settings.mercado_livre.admin_order_url,
    )


__all__ = [
    "get_contact_directory",
    "get_credential_store",
    "get_mercado_livre_client",
    "get_mercado_livre_integration_service",
    "get_mercado_livre_oauth_client",
    "get_mercado_livre_token_service",
    "get_oauth_state_encoder",
    "get_token_cipher_service",
]
