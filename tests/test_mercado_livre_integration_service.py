from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from app.models import MERCADO_LIVRE_APP_ID, CredentialRecord, RequestContext
from app.services import ContactNotFoundError, IntegrationNotConfiguredError
from conftest import FRONTEND_URL, NOW, TOKEN_LIFETIME

SETTINGS_URL = f"{FRONTEND_URL}/app/accounts/7/settings/integrations/mercado_livre"
CONTEXT = RequestContext(account_id="7")


def _connect(credential_store, *, expires_at: int = NOW + TOKEN_LIFETIME) -> None:
    credential_store.replace(
        CredentialRecord(
            account_id="7",
            access_token="APP_USR-current",
            refresh_token="TG-current",
            token_expires_at=expires_at,
            reference_id="987654321",
        )
    )


def test_authorization_url_state_decodes_to_account(
    integration_service, state_encoder
) -> None:
    url = integration_service.authorization_url(CONTEXT)

    query = parse_qs(urlparse(url).query)
    assert query["client_id"] == ["client-id"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == [f"{FRONTEND_URL}/mercado_livre/callback"]
    assert state_encoder.decode(query["state"][0]) == "7"


@pytest.mark.anyio
async def test_callback_stores_credential_and_redirects_to_settings(
    integration_service, state_encoder, credential_store, fake_ml
) -> None:
    target = await integration_service.complete_authorization(
        code="TG-code", state=state_encoder.encode("7")
    )

    assert target == SETTINGS_URL
    assert fake_ml.paths() == ["/oauth/token", "/users/me"]
    assert fake_ml.calls("/users/me")[0].headers["authorization"] == (
        "Bearer APP_USR-access-1"
    )
    assert credential_store.count(account_id="7", app_id=MERCADO_LIVRE_APP_ID) == 1
    stored = credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID)
    assert stored.reference_id == str(fake_ml.seller_id)
    assert stored.token_expires_at == NOW + TOKEN_LIFETIME
    assert stored.access_token == "APP_USR-access-1"
    assert stored.refresh_token == "TG-refresh-1"
    assert stored.scope == "offline_access read write"


@pytest.mark.anyio
async def test_reauthorization_overwrites_existing_credential(
    integration_service, state_encoder, credential_store, fake_ml
) -> None:
    await integration_service.complete_authorization(
        code="first", state=state_encoder.encode("7")
    )
    fake_ml.seller_id = 123
    await integration_service.complete_authorization(
        code="second", state=state_encoder.encode("7")
    )

    assert credential_store.count(account_id="7", app_id=MERCADO_LIVRE_APP_ID) == 1
    stored = credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID)
    assert stored.access_token == "APP_USR-access-2"
    assert stored.reference_id == "123"


@pytest.mark.anyio
@pytest.mark.parametrize("state", [None, "", "forged-state"])
async def test_invalid_state_redirects_to_generic_error(
    integration_service, credential_store, fake_ml, state
) -> None:
    target = await integration_service.complete_authorization(code="TG-code", state=state)

    assert target == f"{FRONTEND_URL}?error=true"
    assert fake_ml.requests == []
    assert credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID) is None


@pytest.mark.anyio
async def test_expired_state_never_touches_existing_credential(
    integration_service, state_encoder, credential_store, fake_ml
) -> None:
    _connect(credential_store)
    stale_state = state_encoder.encode(
        "7", issued_at=datetime.now(timezone.utc) - timedelta(hours=1)
    )

    target = await integration_service.complete_authorization(
        code="TG-code", state=stale_state
    )

    assert target.endswith("?error=true")
    assert fake_ml.requests == []
    stored = credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID)
    assert stored.access_token == "APP_USR-current"


@pytest.mark.anyio
async def test_failed_code_exchange_redirects_with_error(
    integration_service, state_encoder, credential_store, fake_ml
) -> None:
    fake_ml.token_status = 400

    target = await integration_service.complete_authorization(
        code="TG-code", state=state_encoder.encode("7")
    )

    assert target == f"{SETTINGS_URL}?error=true"
    assert fake_ml.calls("/users/me") == []
    assert credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID) is None


@pytest.mark.anyio
async def test_failed_identity_lookup_redirects_with_error(
    integration_service, state_encoder, credential_store, fake_ml
) -> None:
    fake_ml.identity_status = 403

    target = await integration_service.complete_authorization(
        code="TG-code", state=state_encoder.encode("7")
    )

    assert target == f"{SETTINGS_URL}?error=true"
    assert credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID) is None


@pytest.mark.anyio
async def test_missing_code_redirects_with_error(
    integration_service, state_encoder, fake_ml
) -> None:
    target = await integration_service.complete_authorization(
        code=None, state=state_encoder.encode("7")
    )

    assert target == f"{SETTINGS_URL}?error=true"
    assert fake_ml.requests == []


@pytest.mark.anyio
async def test_unexpected_failure_still_redirects(
    integration_service, state_encoder, credential_store, monkeypatch
) -> None:
    def explode(record):
        raise RuntimeError("disk full")

    monkeypatch.setattr(credential_store, "replace", explode)

    target = await integration_service.complete_authorization(
        code="TG-code", state=state_encoder.encode("7")
    )

    assert target == f"{SETTINGS_URL}?error=true"


@pytest.mark.anyio
async def test_orders_with_fresh_token_skip_refresh(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store, expires_at=NOW + 301)

    result = await integration_service.list_orders(CONTEXT)

    assert fake_ml.paths() == ["/orders/search"]
    assert not result.refresh.refreshed
    request = fake_ml.calls("/orders/search")[0]
    assert request.headers["authorization"] == "Bearer APP_USR-current"
    assert dict(request.url.params) == {
        "seller": "987654321",
        "sort": "date_desc",
        "limit": "50",
    }


@pytest.mark.anyio
async def test_orders_refresh_expiring_token_first(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store, expires_at=NOW + 300)

    result = await integration_service.list_orders(CONTEXT)

    assert fake_ml.paths() == ["/oauth/token", "/orders/search"]
    assert result.refresh.refreshed
    request = fake_ml.calls("/orders/search")[0]
    assert request.headers["authorization"] == "Bearer APP_USR-access-1"


@pytest.mark.anyio
async def test_orders_are_decorated_with_admin_url_only(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store)

    result = await integration_service.list_orders(CONTEXT)

    assert len(result.orders) == len(fake_ml.orders)
    for original, decorated in zip(fake_ml.orders, result.orders):
        assert decorated["admin_url"] == (
            f"https://www.mercadolibre.com.br/ventas/{original['id']}/detalle"
        )
        assert {k: v for k, v in decorated.items() if k != "admin_url"} == original
        assert "admin_url" not in original


@pytest.mark.anyio
async def test_upstream_error_yields_empty_order_list(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store)
    fake_ml.orders_status = 500

    result = await integration_service.list_orders(CONTEXT)

    assert result.orders == []


@pytest.mark.anyio
async def test_failed_refresh_falls_back_to_stale_token(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store, expires_at=NOW - 60)
    fake_ml.refresh_status = 400
    fake_ml.orders_status = 401

    result = await integration_service.list_orders(CONTEXT)

    assert result.orders == []
    assert result.refresh.refresh_skipped
    assert fake_ml.paths() == ["/oauth/token", "/orders/search"]
    request = fake_ml.calls("/orders/search")[0]
    assert request.headers["authorization"] == "Bearer APP_USR-current"


@pytest.mark.anyio
async def test_orders_require_configured_integration(integration_service, fake_ml) -> None:
    with pytest.raises(IntegrationNotConfiguredError):
        await integration_service.list_orders(CONTEXT)

    assert fake_ml.requests == []


@pytest.mark.anyio
async def test_unknown_contact_is_rejected(
    integration_service, credential_store, fake_ml
) -> None:
    _connect(credential_store)

    with pytest.raises(ContactNotFoundError):
        await integration_service.list_orders(CONTEXT, contact_id="404")

    assert fake_ml.requests == []


@pytest.mark.anyio
async def test_contact_of_other_account_is_rejected(
    integration_service, credential_store, contacts
) -> None:
    _connect(credential_store)
    contacts.add(account_id="8", contact_id="55")

    with pytest.raises(ContactNotFoundError):
        await integration_service.list_orders(CONTEXT, contact_id="55")


@pytest.mark.anyio
async def test_contact_is_validated_but_not_used_as_filter(
    integration_service, credential_store, contacts, fake_ml
) -> None:
    # The contact id gates the request only; the search stays seller-wide.
    _connect(credential_store)
    contacts.add(account_id="7", contact_id="55", name="Maria")

    result = await integration_service.list_orders(CONTEXT, contact_id="55")

    assert len(result.orders) == 2
    params = dict(fake_ml.calls("/orders/search")[0].url.params)
    assert "55" not in params.values()
    assert set(params) == {"seller", "sort", "limit"}


@pytest.mark.anyio
async def test_disconnect_removes_credential(integration_service, credential_store) -> None:
    _connect(credential_store)

    integration_service.disconnect(CONTEXT)

    assert credential_store.get(account_id="7", app_id=MERCADO_LIVRE_APP_ID) is None
    with pytest.raises(IntegrationNotConfiguredError):
        await integration_service.list_orders(CONTEXT)


def test_disconnect_without_integration_fails_fast(integration_service) -> None:
    with pytest.raises(IntegrationNotConfiguredError):
        integration_service.disconnect(CONTEXT)
