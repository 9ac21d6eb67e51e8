"""Utility modules for the church portal.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at
  ChurchPortalError; each layer raises its own subclass so the API
  middleware can map failures to HTTP status codes.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from src.utils.errors import (
    AuthorizationError,
    BackendError,
    BackendUnavailableError,
    ChurchPortalError,
    ConfigurationError,
    PayloadValidationError,
    StorageError,
)
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "AuthorizationError",
    "BackendError",
    "BackendUnavailableError",
    "ChurchPortalError",
    "ConfigurationError",
    "PayloadValidationError",
    "StorageError",
    "configure_logging",
    "get_logger",
]
