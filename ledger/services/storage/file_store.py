"""
File-backed Key-Value Store

DESIGN DECISION: One file per key inside a data directory.
The ledger rewrites whole collections on every commit, so the store only
needs atomic whole-file replacement:
1. Write the new value to a temporary file next to the target
2. os.replace() it over the target (atomic on POSIX and Windows)

A reader therefore sees either the old or the new value, never a torn write.

Transient OS errors (antivirus locks, network drives) are retried.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger.services.storage.interface import (
    KeyValueStore,
    StorageReadError,
    StorageWriteError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileKeyValueStore(KeyValueStore):
    """Stores each key as `<data_dir>/<key>.json`."""

    def __init__(self, data_dir: Union[str, Path], write_attempts: int = 3):
        self._dir = Path(data_dir)
        self._retrying = Retrying(
            stop=stop_after_attempt(write_attempts),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageReadError(f"Failed to read {key}: {e}")

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            self._retrying(self._write_atomic, path, value)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Failed to delete {key}: {e}")

    def _write_atomic(self, path: Path, value: bytes) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{path.stem}.")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
