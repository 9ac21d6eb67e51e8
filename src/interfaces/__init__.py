"""Public interface definitions for external collaborators.

Storage is accessed exclusively through the abstract base class defined in
this package.  Concrete adapters implement it and are injected at runtime,
so business logic never depends on a particular store.

CONCRETE PROVIDER MAP:
    Interface          →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    IStorageProvider   →  MemoryStorageProvider, SQLiteStorageProvider

Re-exports
----------
IStorageProvider
    String key-value storage contract.
"""

from src.interfaces.storage_provider import IStorageProvider

__all__ = ["IStorageProvider"]
