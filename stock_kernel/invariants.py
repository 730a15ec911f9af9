"""
Ledger Invariants Contract.

These invariants are structural law. No configuration value may override
them. This module declares them explicitly; enforcement is distributed
across ProductStore, MovementLedger and DocumentStore.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Product quantity is never below zero after a committed operation.
    Enforced by ProductStore.adjust_quantity and the ledger's EXIT check."""

    UNIQUE_SKU = "unique_sku"
    """No two products share a SKU, whatever their status. Enforced by
    ProductStore.create and ProductStore.update."""

    MOVEMENT_IMMUTABILITY = "movement_immutability"
    """Movements are append-only: no update or delete operation exists.
    Movement is a frozen dataclass."""

    REASON_DIRECTION = "reason_direction"
    """A movement's reason code belongs to the set allowed for its type.
    Enforced by MovementLedger validation."""

    ATOMIC_MUTATION = "atomic_mutation"
    """A rejected operation leaves the document in its last committed
    state. Enforced by DocumentStore.transaction()."""

    VERSIONED_WRITE = "versioned_write"
    """Writes against a stale document version are refused. Enforced by
    the storage backends' compare-and-set."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)
