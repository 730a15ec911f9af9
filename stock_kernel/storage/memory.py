"""In-process key-value backend."""

from __future__ import annotations

import threading

from stock_kernel.exceptions import StaleDocumentError
from stock_kernel.logging_config import get_logger
from stock_kernel.storage.base import KeyValueStore, StoredValue

logger = get_logger("storage.memory")


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store guarded by a lock.

    Several DocumentStore instances sharing one InMemoryKeyValueStore behave
    like several browser tabs sharing one localStorage.
    """

    def __init__(self, prefix: str = ""):
        super().__init__(prefix)
        self._data: dict[str, StoredValue] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> StoredValue | None:
        with self._lock:
            return self._data.get(self._full_key(key))

    def compare_and_set(self, key: str, value: str, expected_version: int) -> int:
        full_key = self._full_key(key)
        with self._lock:
            current = self._data.get(full_key)
            current_version = current.version if current is not None else 0
            if current_version != expected_version:
                logger.warning(
                    "stale_write_rejected",
                    extra={
                        "key": full_key,
                        "expected_version": expected_version,
                        "actual_version": current_version,
                    },
                )
                raise StaleDocumentError(full_key, expected_version, current_version)
            new_version = current_version + 1
            self._data[full_key] = StoredValue(value=value, version=new_version)
        return new_version

    def set(self, key: str, value: str) -> int:
        full_key = self._full_key(key)
        with self._lock:
            current = self._data.get(full_key)
            new_version = (current.version if current is not None else 0) + 1
            self._data[full_key] = StoredValue(value=value, version=new_version)
        return new_version

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(self._full_key(key), None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(
                k[len(self.prefix):] for k in self._data if k.startswith(self.prefix)
            )

    def size_bytes(self) -> int:
        with self._lock:
            return sum(
                len(v.value) for k, v in self._data.items() if k.startswith(self.prefix)
            )
