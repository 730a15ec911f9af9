"""
Values -- Enumerations and value helpers shared by the whole kernel.

Responsibility:
    Defines product status and lifecycle states, movement types, the fixed
    reason-code vocabulary with its per-direction allowed sets, audit
    actions, and the small conversion helpers (Decimal, timestamps) used
    when records cross the JSON boundary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Reason codes are partitioned by direction: ``ENTRY_REASON_CODES`` and
      ``EXIT_REASON_CODES`` are the only sets the ledger accepts.
    - Prices are Decimal; ``parse_decimal`` never goes through float.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum


class ProductStatus(str, Enum):
    """Catalog status stored on every product."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DISCONTINUED = "DISCONTINUED"


class ProductLifecycle(str, Enum):
    """
    Explicit lifecycle state of a product.

    ``REMOVED`` never appears on a stored product; it is the outcome of a
    permanent delete and lets callers tell the two delete outcomes apart.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    REMOVED = "REMOVED"


class MovementType(str, Enum):
    """Direction of a stock movement."""

    ENTRY = "ENTRY"
    EXIT = "EXIT"

    @property
    def sign(self) -> int:
        return 1 if self is MovementType.ENTRY else -1


class MovementStatus(str, Enum):
    COMPLETED = "COMPLETED"


class ReasonCode(str, Enum):
    """Justification for a movement."""

    # Entries
    PURCHASE = "PURCHASE"
    CUSTOMER_RETURN = "CUSTOMER_RETURN"
    TRANSFER_IN = "TRANSFER_IN"
    INITIAL_RECEIPT = "INITIAL_RECEIPT"
    REPAIR_COMPLETED = "REPAIR_COMPLETED"

    # Both directions
    INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"

    # Exits
    CUSTOMER_SALE = "CUSTOMER_SALE"
    SUPPLIER_RETURN = "SUPPLIER_RETURN"
    TRANSFER_OUT = "TRANSFER_OUT"
    DAMAGE_LOSS = "DAMAGE_LOSS"
    SAMPLE_GIVEAWAY = "SAMPLE_GIVEAWAY"
    THEFT_LOSS = "THEFT_LOSS"
    EXPIRATION = "EXPIRATION"


ENTRY_REASON_CODES: tuple[ReasonCode, ...] = (
    ReasonCode.PURCHASE,
    ReasonCode.CUSTOMER_RETURN,
    ReasonCode.INVENTORY_ADJUSTMENT,
    ReasonCode.TRANSFER_IN,
    ReasonCode.INITIAL_RECEIPT,
    ReasonCode.REPAIR_COMPLETED,
)

EXIT_REASON_CODES: tuple[ReasonCode, ...] = (
    ReasonCode.CUSTOMER_SALE,
    ReasonCode.SUPPLIER_RETURN,
    ReasonCode.INVENTORY_ADJUSTMENT,
    ReasonCode.TRANSFER_OUT,
    ReasonCode.DAMAGE_LOSS,
    ReasonCode.SAMPLE_GIVEAWAY,
    ReasonCode.THEFT_LOSS,
    ReasonCode.EXPIRATION,
)


def allowed_reason_codes(movement_type: MovementType) -> tuple[ReasonCode, ...]:
    """Return the reason codes a movement of ``movement_type`` may carry."""
    if movement_type is MovementType.ENTRY:
        return ENTRY_REASON_CODES
    return EXIT_REASON_CODES


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""

    ENTRY_RECORDED = "ENTRY_RECORDED"
    EXIT_RECORDED = "EXIT_RECORDED"

    @classmethod
    def for_movement(cls, movement_type: MovementType) -> AuditAction:
        if movement_type is MovementType.ENTRY:
            return cls.ENTRY_RECORDED
        return cls.EXIT_RECORDED


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

_CENT = Decimal("0.01")


def parse_decimal(value: object, default: Decimal = Decimal("0")) -> Decimal:
    """
    Convert a JSON/user value to Decimal.

    ``None`` and empty strings yield ``default``. Floats are converted via
    their ``str`` form so ``12.5`` becomes ``Decimal("12.5")``.

    Raises:
        ValueError: If the value is not numeric.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal value: {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal value: {value!r}") from exc


def compute_margin(purchase_price: Decimal, sell_price: Decimal) -> Decimal:
    """Margin percentage over purchase price, 2 places; 0 when purchase is 0."""
    if purchase_price <= 0:
        return Decimal("0")
    margin = (sell_price - purchase_price) / purchase_price * 100
    return margin.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a timestamp as ISO-8601 (None passes through)."""
    if value is None:
        return None
    return value.isoformat()


def from_iso(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Accepts the trailing ``Z`` JavaScript ``toISOString()`` produces.
    """
    if value is None or value == "":
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
