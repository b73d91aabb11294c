"""Service layer exports."""

from .mercado_livre_integration import (
    ContactNotFoundError,
    IntegrationNotConfiguredError,
    MercadoLivreIntegrationError,
    MercadoLivreIntegrationService,
    OrdersResult,
    UpstreamAuthError,
)
from .mercado_livre_tokens import MercadoLivreTokenService, RefreshOutcome
from .token_cipher import TokenCipherService

__all__ = [
    "ContactNotFoundError",
    "IntegrationNotConfiguredError",
    "MercadoLivreIntegrationError",
    "MercadoLivreIntegrationService",
    "MercadoLivreTokenService",
    "OrdersResult",
    "RefreshOutcome",
    "TokenCipherService",
    "UpstreamAuthError",
]
