"""
Module: stock_kernel.models.document
Responsibility: The single persisted inventory document shared by every
    store: categories, products, movements, audit log, id sequences.
Architecture position: Kernel > Models.

Invariants enforced:
    - ``copy()`` produces a snapshot whose lists and sequence counters are
      independent of the original; records themselves are frozen and are
      shared safely.  DocumentStore relies on this for rollback.

Failure modes:
    - ``from_dict`` raises ``KeyError``/``ValueError``/``TypeError`` on
      malformed input; DocumentStore wraps these as
      InvalidImportFormatError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from stock_kernel.domain.values import from_iso, to_iso
from stock_kernel.models.category import Category
from stock_kernel.models.movement import AuditEntry, Movement
from stock_kernel.models.product import Product

COLLECTION_KEYS = ("categories", "products", "movements", "auditLog")


@dataclass
class InventoryDocument:
    """In-memory form of the persisted JSON document."""

    categories: list[Category] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    movements: list[Movement] = field(default_factory=list)
    audit_log: list[AuditEntry] = field(default_factory=list)
    sequences: dict[str, int] = field(default_factory=dict)
    last_updated: datetime | None = None

    def copy(self) -> InventoryDocument:
        return InventoryDocument(
            categories=list(self.categories),
            products=list(self.products),
            movements=list(self.movements),
            audit_log=list(self.audit_log),
            sequences=dict(self.sequences),
            last_updated=self.last_updated,
        )

    def is_empty(self) -> bool:
        return not (self.categories or self.products or self.movements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "products": [p.to_dict() for p in self.products],
            "movements": [m.to_dict() for m in self.movements],
            "auditLog": [a.to_dict() for a in self.audit_log],
            "sequences": dict(self.sequences),
            "lastUpdated": to_iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InventoryDocument:
        for key in COLLECTION_KEYS:
            if key in data and not isinstance(data[key], list):
                raise TypeError(f"'{key}' must be a list")
        sequences = data.get("sequences") or {}
        if not isinstance(sequences, dict):
            raise TypeError("'sequences' must be an object")
        return cls(
            categories=[Category.from_dict(c) for c in data.get("categories", [])],
            products=[Product.from_dict(p) for p in data.get("products", [])],
            movements=[Movement.from_dict(m) for m in data.get("movements", [])],
            audit_log=[AuditEntry.from_dict(a) for a in data.get("auditLog", [])],
            sequences={str(k): int(v) for k, v in sequences.items()},
            last_updated=from_iso(data.get("lastUpdated")),
        )
