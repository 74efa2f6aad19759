"""
Abstract Key-Value Storage Interface

DESIGN DECISION: The ledger persists through a tiny scoped key-value
interface rather than a database. This allows us to:
1. Mirror the browser storage the dashboard was built on
2. Use in-memory storage for testing
3. Swap in a file, a cache or a remote blob store without touching the engine

The interface is intentionally minimal: whole values in, whole values out.
There are no partial or streaming writes.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract interface for key-value persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Read the value stored under a key.

        Args:
            key: The key to read

        Returns:
            The stored bytes, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """
        Replace the value stored under a key.

        Args:
            key: The key to write
            value: The complete new value

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove a key. Removing a missing key is not an error.

        Raises:
            StorageWriteError: If the removal fails
        """
        pass


class ScopedKeyValueStore(KeyValueStore):
    """
    Applies a fixed prefix to every key of an underlying store.

    Lets several tools of the dashboard share one backend without
    their keys colliding.
    """

    def __init__(self, inner: KeyValueStore, prefix: str):
        self._inner = inner
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def _scoped(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[bytes]:
        return self._inner.get(self._scoped(key))

    def set(self, key: str, value: bytes) -> None:
        self._inner.set(self._scoped(key), value)

    def delete(self, key: str) -> None:
        self._inner.delete(self._scoped(key))


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageWriteError(StorageError):
    """A value could not be written."""
    pass


class StorageReadError(StorageError):
    """A value could not be read or decoded."""
    pass
