"""In-memory key-value store, used for tests and throwaway sessions."""

from typing import Optional

from ledger.services.storage.interface import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Keeps every value in a dict; nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._data: dict[str, bytes] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)
        self.write_count += 1

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
