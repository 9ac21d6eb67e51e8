"""Custom exception hierarchy for the church portal.

All application exceptions inherit from :class:`ChurchPortalError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "church_api", "sqlite", "memory") caused the failure.

The hierarchy is organized by the layer that raises it:

    ChurchPortalError  (base -- catch-all for any portal error)
    +-- AuthorizationError       (missing / malformed bearer header)
    +-- PayloadValidationError   (request body or form failed validation)
    +-- BackendError             (backend answered with a failure status)
    +-- BackendUnavailableError  (backend unreachable / transport failure)
    +-- StorageError             (key-value storage adapter failure)
    +-- ConfigurationError       (startup / missing config)

The API middleware maps each class to an HTTP status code, so route
handlers raise and never build error responses by hand.
"""


class ChurchPortalError(Exception):
    """Base exception for all church portal errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[church_api] Connection refused``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request errors (raised by the proxy routes)
# ---------------------------------------------------------------------------

class AuthorizationError(ChurchPortalError):
    """Raised when a request lacks a ``Bearer`` authorization header."""

    def __init__(
        self,
        message: str = "Authorization required",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PayloadValidationError(ChurchPortalError):
    """Raised when a request body is missing required fields or has bad values."""

    def __init__(
        self,
        message: str = "Invalid request payload",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Backend errors
# ---------------------------------------------------------------------------

class BackendError(ChurchPortalError):
    """Raised when the backend answers with a failure status code.

    Only used where the caller needs the data itself (cached feeds,
    dashboard aggregation).  Plain proxy routes relay the backend status
    instead of raising.
    """

    def __init__(
        self,
        message: str = "Backend request failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class BackendUnavailableError(ChurchPortalError):
    """Raised when the backend cannot be reached (DNS, timeout, reset)."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage / configuration errors
# ---------------------------------------------------------------------------

class StorageError(ChurchPortalError):
    """Raised when a key-value storage adapter fails to read, write or delete."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(ChurchPortalError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
