"""
Storage Services Package

Provides the key-value interface the ledger persists through and its
concrete implementations (in-memory and file-backed).
"""

from typing import Optional

from ledger.config import StorageSettings, get_settings
from ledger.services.storage.interface import (
    KeyValueStore,
    ScopedKeyValueStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from ledger.services.storage.memory import InMemoryKeyValueStore
from ledger.services.storage.file_store import FileKeyValueStore


def create_key_value_store(
    settings: Optional[StorageSettings] = None,
) -> KeyValueStore:
    """Build the configured backend, scoped by the configured key prefix."""
    settings = settings or get_settings().storage
    if settings.backend == "file":
        inner: KeyValueStore = FileKeyValueStore(
            settings.data_dir,
            write_attempts=settings.write_retry_attempts,
        )
    else:
        inner = InMemoryKeyValueStore()
    return ScopedKeyValueStore(inner, settings.key_prefix)


__all__ = [
    # Interface
    "KeyValueStore",
    "ScopedKeyValueStore",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "create_key_value_store",
]
