"""
Module: stock_kernel.selectors.base
Responsibility: Base class for read-only query selectors over the inventory
    document.  Selectors form the "Q" side of the CQRS-lite split: stores
    write, selectors read and aggregate.
Architecture position: Kernel > Selectors.  May import from models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never mutate the document or open a
      transaction.
    - DTO return convention: aggregates are returned as frozen dataclasses;
      record lists are the frozen model instances themselves.
"""

from abc import ABC
from typing import Protocol

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.models.document import InventoryDocument


class DocumentSource(Protocol):
    """Anything exposing the current inventory document."""

    @property
    def document(self) -> InventoryDocument: ...


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors read ``source.document`` on every call, so they always
        see the latest committed (or rolled-back) state.
    """

    def __init__(self, source: DocumentSource, clock: Clock | None = None):
        self.source = source
        self.clock = clock or SystemClock()

    @property
    def document(self) -> InventoryDocument:
        return self.source.document
