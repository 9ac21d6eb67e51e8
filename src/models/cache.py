"""Cache models for the cached data accessor.

``CacheEntry`` is what gets persisted: the last successful fetch result and
the epoch-millisecond time it was fetched, serialised as the JSON envelope
``{"data": ..., "timestamp": ...}``.

``AccessorState`` is what callers observe.  It lives only in memory and is
frozen: every transition produces a new snapshot via
``model_copy(update={...})``, so a listener holding an old snapshot never
sees it change underneath it.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, StrictInt

T = TypeVar("T")


class CacheEntry(BaseModel, Generic[T]):
    """Persisted record for one cache key."""

    model_config = ConfigDict(frozen=True)

    data: T
    # StrictInt so a corrupt envelope such as {"timestamp": "yesterday"}
    # fails validation and is treated as a cache miss.
    timestamp: StrictInt

    def age_ms(self, now: int) -> int:
        """Milliseconds elapsed between the fetch and *now*."""
        return now - self.timestamp

    def is_stale(self, now: int, cache_duration: int) -> bool:
        """True when the entry is older than the freshness window."""
        return self.age_ms(now) > cache_duration


class AccessorState(BaseModel, Generic[T]):
    """In-memory state exposed by a :class:`CachedDataAccessor`."""

    model_config = ConfigDict(frozen=True)

    data: T | None = None
    # 0 until the accessor has shown any data.
    timestamp: int = 0
    is_loading: bool = False
    error: str | None = None
    is_stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view used by the CLI's ``--json`` output and the feeds route."""
        return self.model_dump()
