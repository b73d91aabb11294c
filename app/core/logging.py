"""
Logging utilities for the integration service.

Provides a consistent logging format and keeps the HTTP client quiet unless
the service itself runs at DEBUG.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    resolved = level.upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    if resolved != "DEBUG":
        # httpx logs every request line at INFO, including query strings.
        logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
