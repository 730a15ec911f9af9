"""
Module: stock_kernel.models.movement
Responsibility: Immutable stock movement and audit-log entry records.
Architecture position: Kernel > Models.  May import from domain/ only.

Invariants enforced:
    - Movements are append-only: frozen dataclass, and no store exposes an
      update or delete operation for them.
    - ``quantity`` is strictly positive; direction lives in ``type``.

Audit relevance:
    ``AuditEntry`` keeps a full snapshot of the movement it records, so the
    audit log remains readable even if the product is later archived.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from stock_kernel.domain.values import (
    AuditAction,
    MovementStatus,
    MovementType,
    ReasonCode,
    from_iso,
    to_iso,
)


@dataclass(frozen=True)
class Movement:
    """A committed stock movement."""

    id: str
    type: MovementType
    product_id: str
    quantity: int
    reason_code: ReasonCode
    timestamp: datetime
    user: str
    notes: str = ""
    reference: dict[str, Any] = field(default_factory=dict)
    status: MovementStatus = MovementStatus.COMPLETED

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"movement quantity must be positive (got {self.quantity})")

    @property
    def signed_quantity(self) -> int:
        return self.type.sign * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "productId": self.product_id,
            "quantity": self.quantity,
            "reasonCode": self.reason_code.value,
            "timestamp": to_iso(self.timestamp),
            "user": self.user,
            "notes": self.notes,
            "reference": dict(self.reference),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Movement:
        return cls(
            id=str(data["id"]),
            type=MovementType(data["type"]),
            product_id=str(data["productId"]),
            quantity=int(data["quantity"]),
            reason_code=ReasonCode(data["reasonCode"]),
            timestamp=from_iso(data["timestamp"]),
            user=str(data["user"]),
            notes=str(data.get("notes") or ""),
            reference=dict(data.get("reference") or {}),
            status=MovementStatus(data.get("status", MovementStatus.COMPLETED.value)),
        )


@dataclass(frozen=True)
class AuditEntry:
    """One audit-log record written alongside a committed movement."""

    timestamp: datetime
    action: AuditAction
    user: str
    movement: Movement

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "action": self.action.value,
            "user": self.user,
            "movement": self.movement.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        return cls(
            timestamp=from_iso(data["timestamp"]),
            action=AuditAction(data["action"]),
            user=str(data["user"]),
            movement=Movement.from_dict(data["movement"]),
        )
