"""Request-scoped context passed explicitly into service calls."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RequestContext:
    """The authenticated account a request acts on behalf of."""

    account_id: str


__all__ = ["RequestContext"]
