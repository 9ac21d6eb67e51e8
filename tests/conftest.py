"""Shared pytest fixtures for the church portal test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

from src.providers.backend.church_api_client import ChurchApiClient
from src.providers.storage.memory_storage import MemoryStorageProvider

API_PREFIX = "/api"
BASE_URL = f"http://backend.test{API_PREFIX}"


def _api_path(request: httpx.Request) -> str:
    return request.url.path.removeprefix(API_PREFIX)


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingBackend:
    """``httpx.MockTransport`` handler with canned responses per ``(method, path)``.

    Paths are registered relative to the API root (``/token/``, not
    ``/api/token/``).  Unregistered routes answer 404.  Every request is kept
    in ``calls``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, payload: Any = None) -> None:
        def _respond(_request: httpx.Request) -> httpx.Response:
            if payload is None:
                return httpx.Response(status)
            return httpx.Response(status, json=payload)

        self.routes[(method.upper(), path)] = _respond

    def add_handler(
        self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self.routes[(method.upper(), path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, _api_path(request)))
        if handler is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return handler(request)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method and _api_path(c) == path]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage() -> MemoryStorageProvider:
    return MemoryStorageProvider(max_entries=64)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest_asyncio.fixture
async def http_client(backend: RecordingBackend):
    async with httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(backend)
    ) as client:
        yield client


@pytest.fixture
def api_client(http_client: httpx.AsyncClient) -> ChurchApiClient:
    return ChurchApiClient(http_client=http_client)


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal resolved configuration for testing."""
    return {
        "app": {"name": "church-portal", "version": "0.1.0"},
        "cache": {
            "default_duration_ms": 120000,
            "feeds": {
                "members": {"cache_key": "test-members", "duration_ms": 1000},
                "announcements": {"path": "/admin-panel/announcements/"},
            },
        },
        "dashboard": {"recent_window_days": 7, "pending_testimony_statuses": ["pending"]},
    }
