"""Pure domain layer: clock, enumerations and value helpers."""

from stock_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from stock_kernel.domain.values import (
    ENTRY_REASON_CODES,
    EXIT_REASON_CODES,
    AuditAction,
    MovementStatus,
    MovementType,
    ProductLifecycle,
    ProductStatus,
    ReasonCode,
    allowed_reason_codes,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SequentialClock",
    "SystemClock",
    "ENTRY_REASON_CODES",
    "EXIT_REASON_CODES",
    "AuditAction",
    "MovementStatus",
    "MovementType",
    "ProductLifecycle",
    "ProductStatus",
    "ReasonCode",
    "allowed_reason_codes",
]
