"""Services package."""

from ledger.services.storage import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    ScopedKeyValueStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
    create_key_value_store,
)

__all__ = [
    # Storage services
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "ScopedKeyValueStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "create_key_value_store",
]
