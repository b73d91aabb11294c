"""Domain model exports."""

from .context import RequestContext
from .credential import MERCADO_LIVRE_APP_ID, CredentialRecord, CredentialStatus

__all__ = [
    "CredentialRecord",
    "CredentialStatus",
    "MERCADO_LIVRE_APP_ID",
    "RequestContext",
]
