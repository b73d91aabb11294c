"""
Orchestrates the Mercado Livre integration for an account.

Covers the OAuth round trip (authorization URL, callback handling), the
order-search proxy and disconnecting the integration.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.clients import (
    ContactDirectory,
    CredentialStore,
    InvalidStateError,
    MercadoLivreClient,
    MercadoLivreOAuthClient,
    OAuthStateEncoder,
)
from app.models import (
    MERCADO_LIVRE_APP_ID,
    CredentialRecord,
    CredentialStatus,
    RequestContext,
)
from app.services.mercado_livre_tokens import MercadoLivreTokenService, RefreshOutcome

logger = logging.getLogger(__name__)


class MercadoLivreIntegrationError(Exception):
    """Base class for failures surfaced by the integration endpoints."""


class UpstreamAuthError(MercadoLivreIntegrationError):
    """Raised when the token or identity endpoint rejects a request."""


class ContactNotFoundError(MercadoLivreIntegrationError):
    """Raised when a contact id does not belong to the requesting account."""


class IntegrationNotConfiguredError(MercadoLivreIntegrationError):
    """Raised when the account has no stored Mercado Livre credential."""


@dataclass(slots=True)
class OrdersResult:
    orders: List[Dict[str, Any]] = field(default_factory=list)
    refresh: Optional[RefreshOutcome] = None


class MercadoLivreIntegrationService:
    """Account-scoped operations backing the integration endpoints."""

    def __init__(
        self,
        *,
        store: CredentialStore,
        contacts: ContactDirectory,
        oauth_client: MercadoLivreOAuthClient,
        api_client: MercadoLivreClient,
        token_service: MercadoLivreTokenService,
        state_encoder: OAuthStateEncoder,
        frontend_url: str,
        admin_order_url: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._contacts = contacts
        self._oauth = oauth_client
        self._api = api_client
        self._tokens = token_service
        self._state = state_encoder
        self._frontend_url = frontend_url.rstrip("/")
        self._admin_order_url = admin_order_url
        self._clock = clock

    # -- URLs -----------------------------------------------------------

    def settings_url(self, account_id: str) -> str:
        return (
            f"{self._frontend_url}/app/accounts/{account_id}"
            f"/settings/integrations/{MERCADO_LIVRE_APP_ID}"
        )

    def admin_url(self, order_id: Any) -> str:
        return self._admin_order_url.format(order_id=order_id)

    @staticmethod
    def _with_error_flag(url: str) -> str:
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}error=true"

    # -- OAuth ----------------------------------------------------------

    def authorization_url(self, context: RequestContext) -> str:
        """Return the consent URL for the account in ``context``."""
        state = self._state.encode(context.account_id)
        return self._oauth.build_authorization_url(state=state)

    async def complete_authorization(self, *, code: Optional[str], state: Optional[str]) -> str:
        """Finish the OAuth round trip and return where to send the browser."""
        try:
            account_id = self._state.decode(state or "")
        except InvalidStateError as exc:
            logger.warning("Rejected Mercado Livre callback: %s", exc)
            return self._with_error_flag(self._frontend_url or "/")

        try:
            await self._connect_account(account_id, code)
        except UpstreamAuthError as exc:
            logger.error(
                "Mercado Livre authorization failed for account %s: %s", account_id, exc
            )
            return self._with_error_flag(self.settings_url(account_id))
        except Exception:  # pylint: disable=broad-except
            logger.exception(
                "Unexpected error completing Mercado Livre callback for account %s",
                account_id,
            )
            return self._with_error_flag(self.settings_url(account_id))

        return self.settings_url(account_id)

    async def _connect_account(self, account_id: str, code: Optional[str]) -> CredentialRecord:
        if not code:
            raise UpstreamAuthError("authorization code missing from callback")

        tokens = await self._oauth.exchange_code(code)
        if not tokens.ok:
            raise UpstreamAuthError(
                f"token exchange returned {tokens.status_code}: {tokens.body}"
            )

        identity = await self._oauth.fetch_identity(tokens.access_token)
        if not identity.ok:
            raise UpstreamAuthError(
                f"identity lookup returned {identity.status_code}: {identity.body}"
            )

        record = CredentialRecord(
            account_id=account_id,
            app_id=MERCADO_LIVRE_APP_ID,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_expires_at=int(self._clock()) + tokens.expires_in,
            reference_id=identity.user_id,
            scope=tokens.scope,
            status=CredentialStatus.ENABLED,
        )
        stored = self._store.replace(record)
        logger.info(
            "Connected Mercado Livre seller %s to account %s",
            stored.reference_id,
            account_id,
        )
        return stored

    # -- Account-scoped API ---------------------------------------------

    def get_credential(self, context: RequestContext) -> CredentialRecord:
        credential = self._store.get(
            account_id=context.account_id, app_id=MERCADO_LIVRE_APP_ID
        )
        if credential is None:
            raise IntegrationNotConfiguredError(
                "Mercado Livre integration is not configured for this account."
            )
        return credential

    def ensure_contact(self, context: RequestContext, contact_id: str) -> None:
        if not self._contacts.exists(account_id=context.account_id, contact_id=contact_id):
            raise ContactNotFoundError("Contact not found")

    async def list_orders(
        self, context: RequestContext, *, contact_id: Optional[str] = None
    ) -> OrdersResult:
        """Return the seller's recent orders decorated with dashboard links.

        ``contact_id`` is only checked for existence; the order search is
        always seller-wide.
        """
        credential = self.get_credential(context)
        if contact_id is not None:
            self.ensure_contact(context, contact_id)

        refresh = await self._tokens.ensure_fresh(credential)
        credential = refresh.credential

        result = await self._api.search_orders(
            credential.access_token, credential.reference_id
        )
        if not result.ok:
            logger.error(
                "Mercado Livre order search failed for account %s: %s - %s",
                context.account_id,
                result.status_code,
                result.body,
            )
            return OrdersResult(orders=[], refresh=refresh)

        orders = [
            {**order, "admin_url": self.admin_url(order.get("id"))}
            for order in result.orders
        ]
        return OrdersResult(orders=orders, refresh=refresh)

    def disconnect(self, context: RequestContext) -> None:
        self.get_credential(context)
        self._store.delete(account_id=context.account_id, app_id=MERCADO_LIVRE_APP_ID)
        logger.info("Disconnected Mercado Livre for account %s", context.account_id)


__all__ = [
    "ContactNotFoundError",
    "IntegrationNotConfiguredError",
    "MercadoLivreIntegrationError",
    "MercadoLivreIntegrationService",
    "OrdersResult",
    "UpstreamAuthError",
]
