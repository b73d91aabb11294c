"""
Keeps stored Mercado Livre access tokens usable before each API call.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.clients import CredentialStore, MercadoLivreOAuthClient, StaleCredentialError
from app.models.credential import CredentialRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RefreshOutcome:
    """Result of ``ensure_fresh``.

    ``refresh_skipped`` is set when a refresh was due but could not be
    completed; ``credential`` then still carries the stale token.
    """

    credential: CredentialRecord
    refreshed: bool = False
    refresh_skipped: bool = False
    detail: Optional[str] = None


class MercadoLivreTokenService:
    """Refreshes access tokens that are about to expire."""

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: MercadoLivreOAuthClient,
        *,
        refresh_window_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._window = refresh_window_seconds
        self._clock = clock

    async def ensure_fresh(self, credential: CredentialRecord) -> RefreshOutcome:
        now = int(self._clock())
        if credential.is_fresh(now, self._window):
            return RefreshOutcome(credential=credential)

        logger.info(
            "Refreshing Mercado Livre token for account %s", credential.account_id
        )
        result = await self._oauth.refresh(credential.refresh_token)
        if not result.ok:
            logger.error(
                "Failed to refresh Mercado Livre token for account %s: %s - %s",
                credential.account_id,
                result.status_code,
                result.body,
            )
            return RefreshOutcome(
                credential=credential,
                refresh_skipped=True,
                detail=f"token endpoint returned {result.status_code}",
            )

        try:
            updated = self._store.update_tokens(
                credential,
                access_token=result.access_token,
                refresh_token=result.refresh_token,
                token_expires_at=int(self._clock()) + result.expires_in,
            )
        except StaleCredentialError as exc:
            # A concurrent writer won; continue with whatever it stored.
            logger.warning("Discarding refreshed token: %s", exc)
            latest = self._store.get(
                account_id=credential.account_id, app_id=credential.app_id
            )
            return RefreshOutcome(
                credential=latest or credential, refresh_skipped=True, detail=str(exc)
            )

        logger.info("Mercado Livre token refreshed for account %s", credential.account_id)
        return RefreshOutcome(credential=updated, refreshed=True)


__all__ = ["MercadoLivreTokenService", "RefreshOutcome"]
