"""Stale-while-revalidate wrapper around an async fetch operation.

A :class:`CachedDataAccessor` persists the last successful result of its
``fetch_fn`` under a cache key, serves that result immediately on the next
activation, and refetches in the background once it is older than the
freshness window.  Callers observe an immutable :class:`AccessorState`
(``data``, ``is_loading``, ``error``, ``is_stale``) and drive it with
``refresh()`` and ``clear_cache()``.

# ─── HOW A FETCH FLOWS ────────────────────────────────────────────────
#
#   fetch_data(force=False)
#     ├─ disabled?            → return, nothing touched
#     ├─ read storage entry
#     │    ├─ none / corrupt  → fetch
#     │    ├─ fresh           → show it, return (no network)
#     │    └─ stale           → show it with is_stale=True, then fetch
#     └─ fetch
#          ├─ is_loading=True, error cleared, old data kept on screen
#          ├─ success         → persist (best effort), show new data
#          └─ failure         → keep old data, set error
#
# Concurrent fetches are neither coalesced nor cancelled: the fetch that
# *resolves* last decides the final state and the persisted entry.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError

from src.interfaces.storage_provider import IStorageProvider
from src.models.cache import AccessorState, CacheEntry
from src.utils.errors import StorageError
from src.utils.logging import get_logger

T = TypeVar("T")

DEFAULT_CACHE_DURATION_MS = 5 * 60 * 1000
_DEFAULT_ERROR_MESSAGE = "An error occurred"

StateListener = Callable[[AccessorState[Any]], Any]


def wall_clock_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


class CachedDataAccessor(Generic[T]):
    """Cached, observable view over one async data source.

    Parameters
    ----------
    fetch_fn:
        Zero-argument coroutine function returning fresh data.  The value
        must be JSON-serialisable to be persisted.
    storage:
        Key-value store holding the ``{"data", "timestamp"}`` envelope.
    cache_key:
        Storage key for this data source.  Accessors sharing a key share
        the persisted entry, nothing else.
    cache_duration:
        Freshness window in milliseconds.
    enabled:
        When False, :meth:`fetch_data` is a no-op.
    clock:
        Epoch-millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        fetch_fn: Callable[[], Awaitable[T]],
        storage: IStorageProvider,
        *,
        cache_key: str,
        cache_duration: int = DEFAULT_CACHE_DURATION_MS,
        enabled: bool = True,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        if not cache_key:
            raise ValueError("cache_key must be a non-empty string")
        if cache_duration < 0:
            raise ValueError(f"cache_duration must be >= 0, got {cache_duration}")

        self._fetch_fn = fetch_fn
        self._storage = storage
        self._cache_key = cache_key
        self._cache_duration = cache_duration
        self._enabled = enabled
        self._clock = clock

        self._state: AccessorState[T] = AccessorState()
        self._listeners: list[StateListener] = []
        self._active = False
        # Bumped by stop(); a fetch only updates state for the activation it began in.
        self._activation = 0
        self._logger: structlog.BoundLogger = get_logger(__name__).bind(cache_key=cache_key)

    # ------------------------------------------------------------------
    # Configuration / observation
    # ------------------------------------------------------------------

    @property
    def cache_key(self) -> str:
        return self._cache_key

    @property
    def cache_duration(self) -> int:
        return self._cache_duration

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active(self) -> bool:
        return self._active

    @property
    def state(self) -> AccessorState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def timestamp(self) -> int:
        return self._state.timestamp

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def is_stale(self) -> bool:
        return self._state.is_stale

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Register *callback* for every new state snapshot.

        The callback may be sync or async.  Returns a function that
        unregisters it.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Activate the accessor and run the initial cache-first fetch."""
        if self._active:
            return
        self._active = True
        await self.fetch_data()

    async def stop(self) -> None:
        """Deactivate and discard in-memory state.

        Persisted entries are kept.  A fetch still in flight will persist
        its result when it resolves but no longer updates this accessor.
        """
        self._active = False
        self._activation += 1
        self._state = AccessorState()
        self._listeners.clear()

    async def __aenter__(self) -> CachedDataAccessor[T]:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def set_enabled(self, enabled: bool) -> None:
        """Toggle fetching.  Re-enabling an active accessor fetches (cache first)."""
        was_enabled = self._enabled
        self._enabled = enabled
        if enabled and not was_enabled and self._active:
            await self.fetch_data()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_data(self, force: bool = False) -> None:
        """Serve from cache when fresh, otherwise fetch (showing stale data meanwhile).

        Parameters
        ----------
        force:
            Skip the cache read and always call ``fetch_fn``.
        """
        if not self._enabled:
            return
        activation = self._activation

        if not force:
            entry = await self._load_from_cache()
            if entry is not None:
                now = self._clock()
                if not entry.is_stale(now, self._cache_duration):
                    self._logger.debug("cache_hit", age_ms=entry.age_ms(now))
                    await self._set_state(
                        self._state.model_copy(
                            update={
                                "data": entry.data,
                                "timestamp": entry.timestamp,
                                "is_loading": False,
                                "error": None,
                                "is_stale": False,
                            }
                        ),
                        activation,
                    )
                    return

                self._logger.debug("cache_stale", age_ms=entry.age_ms(now))
                await self._set_state(
                    self._state.model_copy(
                        update={
                            "data": entry.data,
                            "timestamp": entry.timestamp,
                            "is_stale": True,
                        }
                    ),
                    activation,
                )

        await self._set_state(
            self._state.model_copy(update={"is_loading": True, "error": None}), activation
        )

        try:
            data = await self._fetch_fn()
        except Exception as exc:
            message = str(exc) or _DEFAULT_ERROR_MESSAGE
            self._logger.warning(
                "cache_fetch_failed",
                error=message,
                error_type=type(exc).__name__,
                force=force,
            )
            await self._set_state(
                self._state.model_copy(update={"is_loading": False, "error": message}),
                activation,
            )
            return

        now = self._clock()
        await self._save_to_cache(data, now)
        await self._set_state(AccessorState(data=data, timestamp=now), activation)
        self._logger.debug("cache_refreshed", force=force)

    async def refresh(self) -> None:
        """Refetch unconditionally, bypassing the freshness check."""
        await self.fetch_data(force=True)

    async def clear_cache(self) -> None:
        """Delete the persisted entry.  In-memory state is left as is."""
        try:
            await self._storage.remove(self._cache_key)
        except StorageError as exc:
            self._logger.warning("cache_clear_failed", error=str(exc))
            return
        self._logger.debug("cache_cleared")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load_from_cache(self) -> CacheEntry[Any] | None:
        """Read and validate the envelope; any failure counts as a miss."""
        try:
            raw = await self._storage.get(self._cache_key)
        except StorageError as exc:
            self._logger.warning("cache_read_failed", error=str(exc))
            return None

        if raw is None:
            self._logger.debug("cache_miss")
            return None

        try:
            return CacheEntry[Any].model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            self._logger.warning("cache_entry_corrupt", error=str(exc))
            return None

    async def _save_to_cache(self, data: T, timestamp: int) -> None:
        """Persist the envelope; failures are logged, never raised."""
        try:
            payload = json.dumps({"data": data, "timestamp": timestamp})
            await self._storage.set(self._cache_key, payload)
        except (TypeError, ValueError, StorageError) as exc:
            self._logger.warning("cache_write_failed", error=str(exc))

    async def _set_state(self, new_state: AccessorState[T], activation: int) -> None:
        if activation != self._activation:
            return
        self._state = new_state
        await self._notify_listeners(new_state)

    async def _notify_listeners(self, state: AccessorState[T]) -> None:
        """Invoke listeners; a failing listener is logged and skipped."""
        for callback in list(self._listeners):
            try:
                result = callback(state)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
