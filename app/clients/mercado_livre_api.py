"""Thin async wrapper over the Mercado Livre seller REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import MercadoLivreSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OrderSearchResult:
    ok: bool
    status_code: Optional[int]
    body: str
    orders: List[Dict[str, Any]] = field(default_factory=list)


class MercadoLivreClient:
    """Query seller resources on behalf of a connected account."""

    def __init__(
        self,
        settings: MercadoLivreSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def search_orders(
        self, access_token: str, seller_id: str, *, limit: Optional[int] = None
    ) -> OrderSearchResult:
        """Fetch the seller's most recent orders, newest first."""
        params = {
            "seller": seller_id,
            "sort": "date_desc",
            "limit": limit if limit is not None else self._settings.orders_limit,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self._settings.api_url}/orders/search",
                    params=params,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Mercado Livre order search failed: %s", exc)
            return OrderSearchResult(ok=False, status_code=None, body=str(exc))

        if not response.is_success:
            return OrderSearchResult(
                ok=False, status_code=response.status_code, body=response.text
            )

        try:
            results = response.json().get("results") or []
        except (ValueError, AttributeError):
            return OrderSearchResult(
                ok=False, status_code=response.status_code, body=response.text
            )
        return OrderSearchResult(
            ok=True,
            status_code=response.status_code,
            body=response.text,
            orders=list(results),
        )


__all__ = ["MercadoLivreClient", "OrderSearchResult"]
