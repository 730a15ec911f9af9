"""
DocumentStore -- owner of the shared inventory document.

Responsibility:
    Loads the inventory document from the key-value backend, hands it to
    the stores inside transactions, writes it back with a version check,
    and exports/imports it as JSON.

Architecture position:
    Kernel > Services -- imperative shell.  The only component that talks
    to a ``KeyValueStore`` for inventory data.

Invariants enforced:
    - ATOMIC_MUTATION: ``transaction()`` snapshots the document on entry; any
      exception raised inside the block (validation or write failure)
      restores the snapshot before propagating.
    - VERSIONED_WRITE: writes use ``compare_and_set`` against the version
      that was loaded.  A concurrent writer makes the write fail with
      StaleDocumentError instead of silently overwriting its changes.

Failure modes:
    - StaleDocumentError on commit when another writer saved first.
    - InvalidImportFormatError from ``import_json`` on unparseable input.

Audit relevance:
    Every successful save logs ``document_saved`` with the new version and
    collection sizes; every rollback logs ``document_rolled_back``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.values import to_iso
from stock_kernel.exceptions import InvalidImportFormatError, StaleDocumentError
from stock_kernel.invariants import LedgerInvariant
from stock_kernel.logging_config import get_logger
from stock_kernel.models.document import InventoryDocument
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.storage.base import KeyValueStore

logger = get_logger("services.document_store")


class DocumentStore:
    """
    Shared in-memory inventory document with versioned persistence.

    Contract:
        Every mutation of the document happens inside ``transaction()``.
        Transactions nest: an inner ``transaction()`` joins the outer one,
        and only the outermost block writes.

    Non-goals:
        - Does NOT merge concurrent changes; a stale writer must
          ``reload()`` and redo its operation.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        document_key: str = "data",
        clock: Clock | None = None,
        export_version: str = "1.0",
        export_indent: int = 2,
    ):
        self._backend = backend
        self._key = document_key
        self._clock = clock or SystemClock()
        self._export_version = export_version
        self._export_indent = export_indent
        self._document: InventoryDocument | None = None
        self._version = 0
        self._depth = 0

    @property
    def document(self) -> InventoryDocument:
        if self._document is None:
            self.load()
        return self._document

    @property
    def version(self) -> int:
        """Backend version of the last loaded or saved document."""
        return self._version

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> InventoryDocument:
        """
        Read the document from the backend.

        An absent key yields an empty document at version 0.  A stored
        payload that cannot be parsed is logged and replaced by an empty
        document at the stored version, so the next save overwrites it.
        """
        stored = self._backend.get(self._key)
        if stored is None:
            self._document = InventoryDocument()
            self._version = 0
            logger.info("document_initialized", extra={"key": self._key})
            return self._document

        try:
            document = InventoryDocument.from_dict(json.loads(stored.value))
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(
                "document_corrupt",
                extra={"key": self._key, "version": stored.version, "error": str(exc)},
            )
            document = InventoryDocument()

        if not document.sequences:
            SequenceService.rebuild(document)
        self._document = document
        self._version = stored.version
        logger.info(
            "document_loaded",
            extra={
                "key": self._key,
                "version": stored.version,
                "categories": len(document.categories),
                "products": len(document.products),
                "movements": len(document.movements),
            },
        )
        return document

    def reload(self) -> InventoryDocument:
        """Discard the in-memory document and read the latest version."""
        if self._depth:
            raise RuntimeError("cannot reload inside a transaction")
        return self.load()

    def _save(self) -> None:
        document = self.document
        document.last_updated = self._clock.now()
        payload = json.dumps(document.to_dict(), ensure_ascii=False)
        try:
            new_version = self._backend.compare_and_set(self._key, payload, self._version)
        except StaleDocumentError:
            logger.warning(
                "document_save_conflict",
                extra={
                    "key": self._key,
                    "expected_version": self._version,
                    "invariant": LedgerInvariant.VERSIONED_WRITE.value,
                },
            )
            raise
        self._version = new_version
        logger.info(
            "document_saved",
            extra={
                "key": self._key,
                "version": new_version,
                "size_bytes": len(payload),
                "products": len(document.products),
                "movements": len(document.movements),
            },
        )

    @contextmanager
    def transaction(self) -> Iterator[InventoryDocument]:
        """
        Run a mutation against the document atomically.

        Usage:
            with store.transaction() as doc:
                doc.products.append(product)

        Postconditions:
            On normal exit of the outermost block the document is written.
            On any exception the pre-transaction snapshot is restored and
            the exception re-raised.
        """
        document = self.document
        if self._depth:
            self._depth += 1
            try:
                yield document
            finally:
                self._depth -= 1
            return

        snapshot = document.copy()
        self._depth = 1
        try:
            yield document
            self._save()
        except Exception as exc:
            self._document = snapshot
            logger.info(
                "document_rolled_back",
                extra={
                    "reason": type(exc).__name__,
                    "invariant": LedgerInvariant.ATOMIC_MUTATION.value,
                },
            )
            raise
        finally:
            self._depth = 0

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_data(self) -> dict[str, Any]:
        document = self.document
        data = document.to_dict()
        data["metadata"] = {
            "version": self._export_version,
            "exportDate": to_iso(self._clock.now()),
            "totals": {
                "categories": len(document.categories),
                "products": len(document.products),
                "movements": len(document.movements),
            },
        }
        return data

    def export_json(self) -> str:
        """Pretty-printed JSON of the whole document plus export metadata."""
        text = json.dumps(self.export_data(), indent=self._export_indent, ensure_ascii=False)
        logger.info(
            "document_exported",
            extra={"size_bytes": len(text), "version": self._version},
        )
        return text

    def import_json(self, text: str) -> InventoryDocument:
        """
        Replace the document with the content of an export.

        ``metadata`` is optional and ignored; absent collections import as
        empty.  Sequence counters are rebuilt from the highest imported ids.

        Raises:
            InvalidImportFormatError: If ``text`` is not valid JSON, the root
                is not an object, or any record is malformed.  State is
                left untouched.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            logger.warning("import_rejected", extra={"reason": "invalid_json"})
            raise InvalidImportFormatError(f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            logger.warning("import_rejected", extra={"reason": "root_not_object"})
            raise InvalidImportFormatError("root value must be an object")

        try:
            imported = InventoryDocument.from_dict(data)
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("import_rejected", extra={"reason": "malformed_record"})
            raise InvalidImportFormatError(f"malformed record: {exc!r}") from exc

        SequenceService.rebuild(imported)
        self._replace(imported)
        logger.info(
            "document_imported",
            extra={
                "categories": len(imported.categories),
                "products": len(imported.products),
                "movements": len(imported.movements),
                "version": self._version,
            },
        )
        return self.document

    def reset(self) -> None:
        """Replace the document with an empty one."""
        self._replace(InventoryDocument())
        logger.warning("document_reset", extra={"version": self._version})

    def _replace(self, replacement: InventoryDocument) -> None:
        with self.transaction() as document:
            document.categories[:] = replacement.categories
            document.products[:] = replacement.products
            document.movements[:] = replacement.movements
            document.audit_log[:] = replacement.audit_log
            document.sequences.clear()
            document.sequences.update(replacement.sequences)
