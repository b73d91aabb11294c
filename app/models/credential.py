"""
Domain model for persisted marketplace credentials.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

MERCADO_LIVRE_APP_ID = "mercado_livre"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStatus(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


class CredentialRecord(BaseModel):
    """Tokens and seller reference stored for one account integration."""

    account_id: str = Field(..., description="Owning account identifier.")
    app_id: str = Field(MERCADO_LIVRE_APP_ID, description="Integration identifier.")
    access_token: str
    refresh_token: str
    token_expires_at: int = Field(
        ..., description="Epoch seconds; the access token is invalid from then on."
    )
    reference_id: str = Field(..., description="Marketplace seller identifier.")
    scope: str = ""
    status: CredentialStatus = CredentialStatus.ENABLED
    version: int = Field(1, description="Incremented on every token update.")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_fresh(self, now: int, window_seconds: int) -> bool:
        """Return True when the token stays valid beyond ``now + window``."""
        return self.token_expires_at > now + window_seconds


__all__ = ["CredentialRecord", "CredentialStatus", "MERCADO_LIVRE_APP_ID"]
