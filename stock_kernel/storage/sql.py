"""
Module: stock_kernel.storage.sql
Responsibility: Versioned key-value backend on top of a SQLAlchemy session
    factory.  Each operation runs in its own ``session_scope``.
Architecture position: Kernel > Storage.  Imports db/ and storage/orm only.

Invariants enforced:
    - Compare-and-set is a single conditional UPDATE
      (``WHERE key = :key AND version = :expected``).  A zero rowcount means
      another writer got there first.
    - First write of a key is an INSERT at version 1; a unique-key collision
      means another writer created it first.

Failure modes:
    - StaleDocumentError on version mismatch or racing insert.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import StaleDocumentError
from stock_kernel.logging_config import get_logger
from stock_kernel.storage.base import KeyValueStore, StoredValue
from stock_kernel.storage.orm import KeyValueEntry

logger = get_logger("storage.sql")


class SqlKeyValueStore(KeyValueStore):
    """Key-value backend persisted in the ``kv_entries`` table."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        prefix: str = "",
        clock: Clock | None = None,
    ):
        super().__init__(prefix)
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def get(self, key: str) -> StoredValue | None:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(KeyValueEntry.payload, KeyValueEntry.version).where(
                    KeyValueEntry.key == self._full_key(key)
                )
            ).first()
            if row is None:
                return None
            return StoredValue(value=row.payload, version=row.version)

    def compare_and_set(self, key: str, value: str, expected_version: int) -> int:
        full_key = self._full_key(key)
        if expected_version == 0:
            return self._insert(full_key, value)

        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(KeyValueEntry)
                .where(
                    KeyValueEntry.key == full_key,
                    KeyValueEntry.version == expected_version,
                )
                .values(
                    payload=value,
                    version=KeyValueEntry.version + 1,
                    updated_at=self._clock.now(),
                )
            )
            if result.rowcount == 0:
                actual = session.execute(
                    select(KeyValueEntry.version).where(KeyValueEntry.key == full_key)
                ).scalar_one_or_none()
                self._reject(full_key, expected_version, actual or 0)

        logger.debug(
            "kv_written",
            extra={"key": full_key, "version": expected_version + 1},
        )
        return expected_version + 1

    def _insert(self, full_key: str, value: str) -> int:
        try:
            with session_scope(self._session_factory) as session:
                existing = session.execute(
                    select(KeyValueEntry.version).where(KeyValueEntry.key == full_key)
                ).scalar_one_or_none()
                if existing is not None:
                    self._reject(full_key, 0, existing)
                session.add(
                    KeyValueEntry(
                        key=full_key,
                        payload=value,
                        version=1,
                        updated_at=self._clock.now(),
                    )
                )
        except IntegrityError as exc:
            current = self.get(full_key[len(self.prefix):])
            actual = current.version if current is not None else 0
            logger.warning(
                "stale_write_rejected",
                extra={"key": full_key, "expected_version": 0, "actual_version": actual},
            )
            raise StaleDocumentError(full_key, 0, actual) from exc

        logger.debug("kv_written", extra={"key": full_key, "version": 1})
        return 1

    def _reject(self, full_key: str, expected: int, actual: int) -> None:
        logger.warning(
            "stale_write_rejected",
            extra={
                "key": full_key,
                "expected_version": expected,
                "actual_version": actual,
            },
        )
        raise StaleDocumentError(full_key, expected, actual)

    def set(self, key: str, value: str) -> int:
        full_key = self._full_key(key)
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(KeyValueEntry).where(KeyValueEntry.key == full_key)
            ).scalar_one_or_none()
            if entry is None:
                session.add(
                    KeyValueEntry(
                        key=full_key,
                        payload=value,
                        version=1,
                        updated_at=self._clock.now(),
                    )
                )
                return 1
            entry.payload = value
            entry.version += 1
            entry.updated_at = self._clock.now()
            return entry.version

    def delete(self, key: str) -> None:
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(KeyValueEntry).where(KeyValueEntry.key == self._full_key(key))
            ).scalar_one_or_none()
            if entry is not None:
                session.delete(entry)

    def keys(self) -> list[str]:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(KeyValueEntry.key)
                .where(KeyValueEntry.key.startswith(self.prefix, autoescape=True))
                .order_by(KeyValueEntry.key)
            ).scalars().all()
        return [k[len(self.prefix):] for k in rows]

    def size_bytes(self) -> int:
        with session_scope(self._session_factory) as session:
            total = session.execute(
                select(func.coalesce(func.sum(func.length(KeyValueEntry.payload)), 0))
                .where(KeyValueEntry.key.startswith(self.prefix, autoescape=True))
            ).scalar_one()
        return int(total)
