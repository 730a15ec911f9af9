"""
SequenceService -- monotonic identifier allocation from document counters.

Responsibility:
    Allocates the human-readable identifiers of categories (``CAT-001``),
    products (``PROD-001``) and movements (``MOV-00001``).  Counters live in
    the document's ``sequences`` map and are persisted with it.

Architecture position:
    Kernel > Services.  Called by CategoryStore, ProductStore and
    MovementLedger inside a DocumentStore transaction.

Invariants enforced:
    - Identifiers are strictly increasing per kind.  Counting the list
      length (or max-plus-one over live records) is not used: deleting the
      newest product must not let its id be handed out again.
    - Allocation is transactional: the counter is part of the document
      snapshot, so a rolled-back operation returns its value.

Failure modes:
    - KeyError for an unknown sequence kind.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from stock_kernel.logging_config import get_logger
from stock_kernel.models.document import InventoryDocument

logger = get_logger("services.sequence")


class SequenceService:
    """
    Identifier allocator over an ``InventoryDocument``.

    Contract:
        ``next_id`` mutates ``document.sequences``; callers must be inside
        ``DocumentStore.transaction()`` so the increment is persisted or
        rolled back together with the record that uses it.
    """

    CATEGORY = "category"
    PRODUCT = "product"
    MOVEMENT = "movement"

    FORMATS: dict[str, tuple[str, int]] = {
        CATEGORY: ("CAT", 3),
        PRODUCT: ("PROD", 3),
        MOVEMENT: ("MOV", 5),
    }

    @classmethod
    def format_id(cls, kind: str, value: int) -> str:
        prefix, width = cls.FORMATS[kind]
        return f"{prefix}-{value:0{width}d}"

    @classmethod
    def parse_id(cls, kind: str, identifier: str) -> int | None:
        """Numeric part of ``identifier`` if it has ``kind``'s prefix."""
        prefix, _ = cls.FORMATS[kind]
        match = re.fullmatch(rf"{prefix}-(\d+)", identifier)
        if match is None:
            return None
        return int(match.group(1))

    def next_id(self, document: InventoryDocument, kind: str) -> str:
        """
        Allocate the next identifier of ``kind``.

        Postconditions:
            - ``document.sequences[kind]`` is one greater than before.
        """
        value = document.sequences.get(kind, 0) + 1
        document.sequences[kind] = value
        identifier = self.format_id(kind, value)
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": kind, "value": value, "identifier": identifier},
        )
        return identifier

    @classmethod
    def highest(cls, kind: str, identifiers: Iterable[str]) -> int:
        values = [cls.parse_id(kind, i) for i in identifiers]
        return max((v for v in values if v is not None), default=0)

    @classmethod
    def rebuild(cls, document: InventoryDocument) -> dict[str, int]:
        """
        Recompute counters from the identifiers present in ``document``.

        Used after an import, and when loading a document written without
        counters.  Existing counters are never lowered.
        """
        observed = {
            cls.CATEGORY: cls.highest(cls.CATEGORY, (c.id for c in document.categories)),
            cls.PRODUCT: cls.highest(cls.PRODUCT, (p.id for p in document.products)),
            cls.MOVEMENT: cls.highest(cls.MOVEMENT, (m.id for m in document.movements)),
        }
        for kind, value in observed.items():
            document.sequences[kind] = max(document.sequences.get(kind, 0), value)
        return dict(document.sequences)
