"""Expose constructed client wrappers."""

from .contact_directory import ContactDirectory
from .credential_store import CredentialStore, StaleCredentialError
from .mercado_livre_api import MercadoLivreClient, OrderSearchResult
from .mercado_livre_auth import (
    IdentityResult,
    InvalidStateError,
    MercadoLivreOAuthClient,
    OAuthStateEncoder,
    TokenExchangeResult,
)

__all__ = [
    "ContactDirectory",
    "CredentialStore",
    "IdentityResult",
    "InvalidStateError",
    "MercadoLivreClient",
    "MercadoLivreOAuthClient",
    "OAuthStateEncoder",
    "OrderSearchResult",
    "StaleCredentialError",
    "TokenExchangeResult",
]
