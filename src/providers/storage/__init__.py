"""Storage providers.

Key-value stores that hold the cached data accessor's JSON envelopes.

MemoryStorageProvider is an LRU map - fast but gone on restart and not
shared across processes.  SQLiteStorageProvider keeps entries on disk so
a CLI run or a server restart still finds the last fetched feeds.
"""

from src.config.settings import Settings
from src.interfaces.storage_provider import IStorageProvider
from src.providers.storage.memory_storage import MemoryStorageProvider
from src.providers.storage.sqlite_storage import SQLiteStorageProvider
from src.utils.errors import ConfigurationError


def build_storage(app_settings: Settings) -> IStorageProvider:
    """Select the content cache storage named by ``CACHE_BACKEND``.

    Shared by the API server and the content CLI so both read the same cache.
    """
    backend = app_settings.cache_backend.lower()
    if backend == "sqlite":
        return SQLiteStorageProvider(db_path=app_settings.cache_db_path)
    if backend == "memory":
        return MemoryStorageProvider(max_entries=app_settings.cache_memory_max_entries)
    raise ConfigurationError(
        f"Unknown cache backend: {app_settings.cache_backend!r} (expected 'sqlite' or 'memory')"
    )


__all__ = ["MemoryStorageProvider", "SQLiteStorageProvider", "build_storage"]
