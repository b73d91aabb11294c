"""
Resolve the request-scoped account context for account-scoped routes.
"""

from fastapi import Path

from app.models import RequestContext


def get_request_context(
    account_id: str = Path(..., min_length=1, description="Account identifier."),
) -> RequestContext:
    """FastAPI dependency building a ``RequestContext`` from the URL."""
    return RequestContext(account_id=account_id)


__all__ = ["get_request_context"]
