"""HTTP client for the church platform's REST backend.

Every proxy route and every cached content feed reaches the backend
through :class:`ChurchApiClient`.  The client forwards the caller's
``Authorization`` header untouched, relays the backend's status code, and
normalises response bodies:

- JSON bodies are decoded as-is.
- Empty bodies (e.g. ``204 No Content``) become ``None``.
- Anything else becomes ``{"error": "Invalid response from external API"}``.

Transport failures (DNS, refused connection, timeout) raise
:class:`~src.utils.errors.BackendUnavailableError`; the API middleware turns
that into ``500 Internal server error``.

Follows the adapter pattern used for all outbound HTTP: an injected
``httpx.AsyncClient`` for connection pooling and testability.
"""

from __future__ import annotations


import time
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import httpx

from src.utils.errors import BackendError, BackendUnavailableError
from src.utils.logging import get_logger

_INVALID_RESPONSE = {"error": "Invalid response from external API"}
_PROVIDER_NAME = "church_api"


@dataclass(frozen=True)
class UpstreamResponse:
    """Status code and decoded body of one backend call."""

    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def error_text(self) -> str | None:
        """The backend's own ``error`` / ``detail`` message, when it sent one."""
        if isinstance(self.payload, dict):
            for key in ("error", "detail"):
                value = self.payload.get(key)
                if isinstance(value, str) and value:
                    return value
        return None


def extract_results(payload: Any) -> list[Any]:
    """Return the item list from a plain list or a paginated ``results`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return payload["results"]
    return []


class ChurchApiClient:
    """Thin async client for the external church REST API.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.  Its ``base_url`` must point at the
        API root (e.g. ``https://church.example.org/api``).
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Generic forwarding
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        authorization: str | None = None,
        json_body: Any = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
        params: Any = None,
    ) -> UpstreamResponse:
        """Send one request to the backend and decode its body.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            Path relative to the client's base URL, with trailing slash
            (e.g. ``/admin-panel/departments/3/``).
        authorization:
            Caller's ``Authorization`` header, forwarded verbatim.
        json_body:
            JSON payload.  Mutually exclusive with *data* / *files*.
        data, files:
            Multipart form fields and file parts.
        params:
            Query parameters appended to the backend URL.
        """
        request_id = uuid4().hex[:8]
        headers: dict[str, str] = {}
        if authorization:
            headers["Authorization"] = authorization

        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if files is not None or data is not None:
            kwargs["data"] = data
            kwargs["files"] = files
        elif json_body is not None:
            kwargs["json"] = json_body

        start = time.perf_counter()
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            self._logger.error(
                "backend_request_failed",
                request_id=request_id,
                method=method,
                path=path,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise BackendUnavailableError(
                message=f"{method} {path} failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        payload = self._decode(response)
        self._logger.info(
            "backend_request",
            request_id=request_id,
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return UpstreamResponse(status_code=response.status_code, payload=payload)

    async def fetch_collection(
        self,
        path: str,
        authorization: str | None,
        label: str = "items",
    ) -> list[Any]:
        """GET a collection and unwrap it to a plain list.

        Raises
        ------
        BackendError
            On any non-2xx answer.  The message is the backend's own error
            text when present; a 401 always reads "Authentication failed".
        """
        upstream = await self.request("GET", path, authorization=authorization)
        if not upstream.ok:
            if upstream.status_code == 401:
                message = "Authentication failed"
            else:
                message = upstream.error_text() or (
                    f"Failed to fetch {label} ({upstream.status_code})"
                )
            raise BackendError(
                message=message,
                provider_name=_PROVIDER_NAME,
                status_code=upstream.status_code,
            )
        return extract_results(upstream.payload)

    # ------------------------------------------------------------------
    # Named endpoints
    # ------------------------------------------------------------------

    async def obtain_token(self, email: str, password: str) -> UpstreamResponse:
        return await self.request(
            "POST", "/token/", json_body={"email": email, "password": password}
        )

    async def register_member(self, member: dict[str, Any]) -> UpstreamResponse:
        return await self.request("POST", "/members/", json_body=member)

    async def moderate_testimony(
        self,
        testimony_id: str,
        action: str,
        authorization: str,
    ) -> UpstreamResponse:
        """POST to the backend's approve/reject endpoint for one testimony."""
        return await self.request(
            "POST",
            f"/admin-panel/testimonies/{testimony_id}/{action}/",
            authorization=authorization,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            self._logger.warning(
                "backend_invalid_json",
                status=response.status_code,
                body_preview=response.text[:200],
            )
            return dict(_INVALID_RESPONSE)
