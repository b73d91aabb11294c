"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qsl

import httpx
import pytest

from app.clients import (
    ContactDirectory,
    CredentialStore,
    MercadoLivreClient,
    MercadoLivreOAuthClient,
    OAuthStateEncoder,
)
from app.core.config import MercadoLivreSettings
from app.services import (
    MercadoLivreIntegrationService,
    MercadoLivreTokenService,
    TokenCipherService,
)

FRONTEND_URL = "https://app.example.com"
REDIRECT_URI = f"{FRONTEND_URL}/mercado_livre/callback"
API_URL = "https://api.mercadolibre.test"
TOKEN_LIFETIME = 21600
NOW = 1_700_000_000


class FrozenClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeMercadoLivre:
    """In-process stand-in for the Mercado Livre token, users and orders APIs."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.refresh_status = 200
        self.identity_status = 200
        self.orders_status = 200
        self.seller_id = 987654321
        self.issued = 0
        self.orders: list[dict] = [
            {"id": 2000001, "status": "paid", "total_amount": 150.0},
            {"id": 2000002, "status": "cancelled", "total_amount": 42.5},
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/oauth/token":
            form = dict(parse_qsl(request.content.decode("utf-8")))
            status = (
                self.refresh_status
                if form.get("grant_type") == "refresh_token"
                else self.token_status
            )
            if status != 200:
                return httpx.Response(status, json={"error": "invalid_grant"})
            self.issued += 1
            return httpx.Response(
                200,
                json={
                    "access_token": f"APP_USR-access-{self.issued}",
                    "refresh_token": f"TG-refresh-{self.issued}",
                    "expires_in": TOKEN_LIFETIME,
                    "scope": "offline_access read write",
                    "token_type": "Bearer",
                    "user_id": self.seller_id,
                },
            )
        if path == "/users/me":
            if self.identity_status != 200:
                return httpx.Response(self.identity_status, json={"message": "invalid token"})
            return httpx.Response(200, json={"id": self.seller_id, "nickname": "SELLER"})
        if path == "/orders/search":
            if self.orders_status != 200:
                return httpx.Response(self.orders_status, json={"message": "invalid token"})
            return httpx.Response(200, json={"results": self.orders, "paging": {}})
        return httpx.Response(404)

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def token_grants(self) -> list[str]:
        return [
            dict(parse_qsl(request.content.decode("utf-8")))["grant_type"]
            for request in self.calls("/oauth/token")
        ]

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake_ml() -> FakeMercadoLivre:
    return FakeMercadoLivre()


@pytest.fixture
def ml_settings() -> MercadoLivreSettings:
    return MercadoLivreSettings(
        client_id="client-id",
        client_secret="client-secret",
        api_url=API_URL,
        auth_url="https://auth.mercadolibre.test/authorization",
    )


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="test-secret")


@pytest.fixture
def credential_store(tmp_path, cipher) -> CredentialStore:
    return CredentialStore(str(tmp_path / "integrations.db"), token_cipher=cipher)


@pytest.fixture
def contacts(tmp_path) -> ContactDirectory:
    return ContactDirectory(str(tmp_path / "integrations.db"))


@pytest.fixture
def state_encoder() -> OAuthStateEncoder:
    return OAuthStateEncoder("state-secret", ttl_seconds=900)


@pytest.fixture
def oauth_client(ml_settings, fake_ml) -> MercadoLivreOAuthClient:
    return MercadoLivreOAuthClient(
        ml_settings, redirect_uri=REDIRECT_URI, transport=fake_ml.transport
    )


@pytest.fixture
def token_service(credential_store, oauth_client, clock) -> MercadoLivreTokenService:
    return MercadoLivreTokenService(
        credential_store, oauth_client, refresh_window_seconds=300, clock=clock
    )


@pytest.fixture
def integration_service(
    credential_store,
    contacts,
    oauth_client,
    token_service,
    state_encoder,
    ml_settings,
    fake_ml,
    clock,
) -> MercadoLivreIntegrationService:
    return MercadoLivreIntegrationService(
        store=credential_store,
        contacts=contacts,
        oauth_client=oauth_client,
        api_client=MercadoLivreClient(ml_settings, transport=fake_ml.transport),
        token_service=token_service,
        state_encoder=state_encoder,
        frontend_url=FRONTEND_URL,
        admin_order_url=ml_settings.admin_order_url,
        clock=clock,
    )
