"""Schemas exchanged by the Mercado Livre integration endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class AuthorizationUrlResponse(BaseModel):
    """Consent URL the front-end should send the user to."""

    redirect_url: str = Field(..., description="Mercado Livre authorization URL.")


class OrdersResponse(BaseModel):
    """Seller orders, each decorated with an ``admin_url`` deep link."""

    orders: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


__all__ = ["AuthorizationUrlResponse", "ErrorResponse", "OrdersResponse"]
