"""Public schema exports."""

from .mercado_livre import AuthorizationUrlResponse, ErrorResponse, OrdersResponse

__all__ = [
    "AuthorizationUrlResponse",
    "ErrorResponse",
    "OrdersResponse",
]
