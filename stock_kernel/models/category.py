"""
Module: stock_kernel.models.category
Responsibility: Immutable category record and its JSON mapping.
Architecture position: Kernel > Models.  May import from domain/ only.

Invariants enforced:
    - ``id`` is unique within a document (allocated by SequenceService).
    - A category referenced by any product cannot be deleted
      (CategoryStore.delete).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from stock_kernel.domain.values import from_iso, to_iso


@dataclass(frozen=True)
class Category:
    """A product category."""

    id: str
    name: str
    created_at: datetime
    modified_at: datetime
    description: str = ""
    icon: str = ""
    color: str = ""
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "active": self.active,
            "createdAt": to_iso(self.created_at),
            "modifiedAt": to_iso(self.modified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        """
        Rebuild a category from its JSON form.

        Raises:
            KeyError: If ``id``, ``name`` or a timestamp is missing.
            ValueError: If a timestamp is malformed.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            icon=str(data.get("icon") or ""),
            color=str(data.get("color") or ""),
            active=bool(data.get("active", True)),
            created_at=from_iso(data["createdAt"]),
            modified_at=from_iso(data["modifiedAt"]),
        )
