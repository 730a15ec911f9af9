"""
Key-value storage contract.

Responsibility:
    Defines the narrow persistence surface the document store writes to: a
    namespaced key-value map where every key carries a version number that
    increases by one on each write.

Invariants enforced:
    - ``compare_and_set`` succeeds only when the caller's expected version
      equals the stored version (0 means "key must not exist yet").
      A mismatch raises StaleDocumentError and changes nothing.
    - Keys are namespaced with ``prefix``; ``keys()`` returns them without it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StoredValue:
    """A value read from a backend together with its version."""

    value: str
    version: int


class KeyValueStore(ABC):
    """Abstract versioned key-value backend."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @abstractmethod
    def get(self, key: str) -> StoredValue | None:
        """Return the stored value and version, or None if absent."""

    @abstractmethod
    def compare_and_set(self, key: str, value: str, expected_version: int) -> int:
        """
        Write ``value`` if the stored version equals ``expected_version``.

        Returns:
            The new version (``expected_version + 1``).

        Raises:
            StaleDocumentError: If the stored version differs.
        """

    @abstractmethod
    def set(self, key: str, value: str) -> int:
        """Unconditional write. Returns the new version."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys under this backend's prefix, prefix stripped."""

    @abstractmethod
    def size_bytes(self) -> int:
        """Total length of the stored values under this prefix."""

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)
