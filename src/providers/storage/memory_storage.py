"""In-memory storage provider using cachetools.LRUCache.

Simple, fast storage suitable for tests and single-process deployments.
Nothing survives a restart; use :class:`SQLiteStorageProvider` when cached
feeds must outlive the process.
"""

from __future__ import annotations

import structlog
from cachetools import LRUCache

from src.interfaces.storage_provider import IStorageProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryStorageProvider(IStorageProvider):
    """In-memory LRU store backed by ``cachetools.LRUCache``.

    Parameters
    ----------
    max_entries:
        Maximum number of keys before the least-recently-used key is evicted.
    """

    def __init__(self, max_entries: int = 256) -> None:
        self._store: LRUCache[str, str] = LRUCache(maxsize=max_entries)

    # ------------------------------------------------------------------
    # IStorageProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        logger.debug("storage_get", key=key, found=value is not None)
        return value

    async def set(self, key: str, value: str) -> None:
        self._store[key] = value
        logger.debug("storage_set", key=key, size=len(value))

    async def remove(self, key: str) -> None:
        """Remove *key* (no-op if absent)."""
        self._store.pop(key, None)
        logger.debug("storage_remove", key=key)

    def get_provider_name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._store)
