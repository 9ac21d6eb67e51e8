"""Abstract base class for key-value storage providers.

Defines the contract for the durable string storage behind the cached
data accessor: one JSON envelope per cache key.  Implementations may use
an in-process map, SQLite, Redis, or any other store.  The adapter pattern
lets the storage backend be swapped without touching the accessor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IStorageProvider(ABC):
    """Contract for string key-value storage.

    All operations are async so network- or disk-backed stores never block
    the event loop.  Implementations raise
    :class:`~src.utils.errors.StorageError` when the underlying store fails.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the string stored under *key*, or ``None`` if absent.

        Parameters
        ----------
        key:
            The storage key to look up.
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any existing value.

        Parameters
        ----------
        key:
            The storage key.
        value:
            The serialised value.  Callers own the encoding.
        """

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete the value stored under *key*.

        This is a no-op if the key does not exist.

        Parameters
        ----------
        key:
            The storage key to delete.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for logs and health output."""
