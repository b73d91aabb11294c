"""
Mercado Livre OAuth utilities.

These helpers manage the authorization-code flow: signing the ``state``
value, building the consent URL, and talking to the token and identity
endpoints.
"""

from __future__ import annotations

import base64
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import MercadoLivreSettings

logger = logging.getLogger(__name__)

_SIGNATURE_BYTES = 32


class InvalidStateError(Exception):
    """Raised when an OAuth state token is malformed, forged or expired."""


class OAuthStateEncoder:
    """Encode and decode OAuth state values bound to an account."""

    def __init__(self, secret_key: str, *, ttl_seconds: int = 900) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = timedelta(seconds=ttl_seconds)

    def _sign(self, serialized: bytes) -> bytes:
        return hmac.new(self._secret_key, serialized, sha256).digest()

    def encode(self, account_id: str, *, issued_at: Optional[datetime] = None) -> str:
        payload = {
            "account_id": str(account_id),
            "nonce": uuid.uuid4().hex,
            "issued_at": (issued_at or datetime.now(timezone.utc)).isoformat(),
        }
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode(
            "utf-8"
        )
        return base64.urlsafe_b64encode(self._sign(serialized) + serialized).decode(
            "utf-8"
        )

    def decode(self, token: str, *, now: Optional[datetime] = None) -> str:
        """Return the account id carried by ``token``."""
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except ValueError as exc:
            raise InvalidStateError("OAuth state is not valid base64.") from exc

        signature, serialized = decoded[:_SIGNATURE_BYTES], decoded[_SIGNATURE_BYTES:]
        if not serialized or not hmac.compare_digest(signature, self._sign(serialized)):
            raise InvalidStateError("Invalid OAuth state signature.")

        try:
            payload: Dict[str, Any] = json.loads(serialized)
            issued_at = datetime.fromisoformat(payload["issued_at"])
            account_id = str(payload["account_id"])
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidStateError("OAuth state payload is malformed.") from exc

        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        current = now or datetime.now(timezone.utc)
        if current - issued_at > self._ttl:
            raise InvalidStateError("OAuth state token has expired.")
        if not account_id:
            raise InvalidStateError("Missing account identifier in state token.")
        return account_id


@dataclass(slots=True)
class TokenExchangeResult:
    """Outcome of a call to the token endpoint."""

    ok: bool
    status_code: Optional[int]
    body: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: str = ""


@dataclass(slots=True)
class IdentityResult:
    """Outcome of looking up the seller behind an access token."""

    ok: bool
    status_code: Optional[int]
    body: str
    user_id: Optional[str] = None


class MercadoLivreOAuthClient:
    """Build authorization URLs and exchange codes or refresh tokens."""

    def __init__(
        self,
        settings: MercadoLivreSettings,
        *,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._redirect_uri = redirect_uri
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._settings.api_url}/oauth/token"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        )

    def build_authorization_url(self, state: str) -> str:
        """Construct the Mercado Livre consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": self._redirect_uri,
            "state": state,
        }
        return f"{self._settings.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenExchangeResult:
        """Exchange an authorization code for an access/refresh token pair."""
        return await self._request_token(
            {
                "grant_type": "authorization_code",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "code": code,
                "redirect_uri": self._redirect_uri,
            }
        )

    async def refresh(self, refresh_token: str) -> TokenExchangeResult:
        """Mint a new access token from a stored refresh token."""
        return await self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "refresh_token": refresh_token,
            }
        )

    async def _request_token(self, payload: Dict[str, str]) -> TokenExchangeResult:
        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_url,
                    data=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "Mercado Livre token request (%s) failed: %s", payload["grant_type"], exc
            )
            return TokenExchangeResult(ok=False, status_code=None, body=str(exc))

        if not response.is_success:
            return TokenExchangeResult(
                ok=False, status_code=response.status_code, body=response.text
            )

        try:
            token_payload = response.json()
            access_token = token_payload["access_token"]
            refresh_token = token_payload["refresh_token"]
            expires_in = int(token_payload["expires_in"])
        except (ValueError, KeyError, TypeError):
            return TokenExchangeResult(
                ok=False, status_code=response.status_code, body=response.text
            )

        return TokenExchangeResult(
            ok=True,
            status_code=response.status_code,
            body=response.text,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            scope=token_payload.get("scope") or "",
        )

    async def fetch_identity(self, access_token: str) -> IdentityResult:
        """Return the seller id owning ``access_token``."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._settings.api_url}/users/me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Mercado Livre identity lookup failed: %s", exc)
            return IdentityResult(ok=False, status_code=None, body=str(exc))

        if not response.is_success:
            return IdentityResult(
                ok=False, status_code=response.status_code, body=response.text
            )

        try:
            user_id = response.json()["id"]
        except (ValueError, KeyError, TypeError):
            return IdentityResult(
                ok=False, status_code=response.status_code, body=response.text
            )
        return IdentityResult(
            ok=True, status_code=response.status_code, body=response.text, user_id=str(user_id)
        )


__all__ = [
    "IdentityResult",
    "InvalidStateError",
    "MercadoLivreOAuthClient",
    "OAuthStateEncoder",
    "TokenExchangeResult",
]
