"""
FastAPI routes for the Mercado Livre integration.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.dependencies import (
    get_app_settings,
    get_mercado_livre_integration_service,
    get_request_context,
)
from app.models import RequestContext
from app.schemas import AuthorizationUrlResponse, ErrorResponse, OrdersResponse
from app.services import ContactNotFoundError, IntegrationNotConfiguredError

router = APIRouter()
logger = logging.getLogger(__name__)

_INTEGRATION_PATH = "/v1/accounts/{account_id}/integrations/mercado_livre"
_ERROR_RESPONSES = {
    HTTPStatus.NOT_FOUND.value: {"model": ErrorResponse},
    HTTPStatus.UNPROCESSABLE_ENTITY.value: {"model": ErrorResponse},
}


def _error(status_code: HTTPStatus, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: Annotated[Any, Depends(get_app_settings)]) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.get(
    f"{_INTEGRATION_PATH}/auth",
    response_model=AuthorizationUrlResponse,
    status_code=HTTPStatus.OK,
)
async def start_mercado_livre_oauth_flow(
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[Any, Depends(get_mercado_livre_integration_service)],
) -> AuthorizationUrlResponse:
    """Issue a state token and return the Mercado Livre consent URL."""
    return AuthorizationUrlResponse(redirect_url=service.authorization_url(context))


@router.get("/mercado_livre/callback", status_code=HTTPStatus.FOUND)
async def handle_mercado_livre_callback(
    service: Annotated[Any, Depends(get_mercado_livre_integration_service)],
    code: str | None = Query(
        default=None, description="Authorization code returned by Mercado Livre."
    ),
    state: str | None = Query(default=None, description="OAuth state token."),
) -> Response:
    """Complete the OAuth exchange and bounce the browser back to the front-end.

    Every outcome is a redirect; failures carry ``error=true``.
    """
    target = await service.complete_authorization(code=code, state=state)
    return RedirectResponse(url=target, status_code=HTTPStatus.FOUND)


@router.get(
    f"{_INTEGRATION_PATH}/orders",
    response_model=OrdersResponse,
    responses=_ERROR_RESPONSES,
)
async def list_mercado_livre_orders(
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[Any, Depends(get_mercado_livre_integration_service)],
    contact_id: str | None = Query(
        default=None, description="Contact the orders panel is opened for."
    ),
) -> Any:
    """Return the connected seller's latest orders."""
    try:
        result = await service.list_orders(context, contact_id=contact_id)
    except IntegrationNotConfiguredError as exc:
        return _error(HTTPStatus.NOT_FOUND, str(exc))
    except ContactNotFoundError as exc:
        return _error(HTTPStatus.UNPROCESSABLE_ENTITY, str(exc))
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception(
            "Error fetching Mercado Livre orders for account %s", context.account_id
        )
        return _error(HTTPStatus.UNPROCESSABLE_ENTITY, str(exc))

    return OrdersResponse(orders=result.orders)


@router.delete(_INTEGRATION_PATH, responses=_ERROR_RESPONSES)
async def disconnect_mercado_livre(
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[Any, Depends(get_mercado_livre_integration_service)],
) -> Response:
    """Remove the stored Mercado Livre credential for the account."""
    try:
        service.disconnect(context)
    except IntegrationNotConfiguredError as exc:
        return _error(HTTPStatus.NOT_FOUND, str(exc))
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception(
            "Error disconnecting Mercado Livre for account %s", context.account_id
        )
        return _error(HTTPStatus.UNPROCESSABLE_ENTITY, str(exc))

    return Response(status_code=HTTPStatus.OK)
