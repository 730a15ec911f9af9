"""
CategoryStore -- create, update and delete product categories.

Responsibility:
    Owns the ``categories`` collection of the inventory document.

Architecture position:
    Kernel > Services.  Reads ``products`` only to refuse deleting a
    category that is still referenced.

Invariants enforced:
    - A category referenced by any product (active or not) cannot be
      deleted.
    - Identifiers come from SequenceService and are never reused.

Failure modes:
    - MissingFieldError: ``create`` without a name.
    - NotFoundError: unknown category id.
    - CategoryInUseError: ``delete`` of a referenced category.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import CategoryInUseError, MissingFieldError, NotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.category import Category
from stock_kernel.services.document_store import DocumentStore
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.category")


class CategoryStore:
    """Category CRUD over the shared document."""

    def __init__(
        self,
        documents: DocumentStore,
        clock: Clock | None = None,
        default_icon: str = "📂",
        default_color: str = "#4ECDC4",
        sequences: SequenceService | None = None,
    ):
        self._documents = documents
        self._clock = clock or SystemClock()
        self._default_icon = default_icon
        self._default_color = default_color
        self._sequences = sequences or SequenceService()

    def list(self) -> list[Category]:
        return list(self._documents.document.categories)

    def find(self, category_id: str) -> Category | None:
        for category in self._documents.document.categories:
            if category.id == category_id:
                return category
        return None

    def get(self, category_id: str) -> Category:
        category = self.find(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def name_of(self, category_id: str) -> str | None:
        """Display name of a category, or None when it does not exist."""
        category = self.find(category_id)
        return category.name if category is not None else None

    def create(self, data: dict[str, Any]) -> Category:
        """
        Create a category.

        ``icon`` and ``color`` fall back to the configured defaults.

        Raises:
            MissingFieldError: If ``name`` is absent or blank.
        """
        name = str(data.get("name") or "").strip()
        if not name:
            raise MissingFieldError("Category", ["name"])

        with self._documents.transaction() as document:
            now = self._clock.now()
            category = Category(
                id=self._sequences.next_id(document, SequenceService.CATEGORY),
                name=name,
                description=str(data.get("description") or "").strip(),
                icon=data.get("icon") or self._default_icon,
                color=data.get("color") or self._default_color,
                active=True,
                created_at=now,
                modified_at=now,
            )
            document.categories.append(category)

        logger.info(
            "category_created",
            extra={"category_id": category.id, "category_name": category.name},
        )
        return category

    def update(self, category_id: str, data: dict[str, Any]) -> Category:
        """
        Merge ``data`` into an existing category.

        ``id`` and ``createdAt`` cannot be changed; unknown keys are ignored.

        Raises:
            NotFoundError: If the category does not exist.
        """
        changes: dict[str, Any] = {}
        if data.get("name"):
            changes["name"] = str(data["name"]).strip()
        for key in ("description", "icon", "color"):
            if key in data and data[key] is not None:
                changes[key] = str(data[key])
        if "active" in data:
            changes["active"] = bool(data["active"])

        with self._documents.transaction() as document:
            index = self._index_of(document.categories, category_id)
            updated = replace(
                document.categories[index],
                modified_at=self._clock.now(),
                **changes,
            )
            document.categories[index] = updated

        logger.info(
            "category_updated",
            extra={"category_id": category_id, "fields": sorted(changes)},
        )
        return updated

    def delete(self, category_id: str) -> None:
        """
        Remove a category.

        Raises:
            NotFoundError: If the category does not exist.
            CategoryInUseError: If any product references it.
        """
        with self._documents.transaction() as document:
            index = self._index_of(document.categories, category_id)
            product_count = sum(1 for p in document.products if p.category_id == category_id)
            if product_count:
                logger.warning(
                    "category_delete_blocked",
                    extra={"category_id": category_id, "product_count": product_count},
                )
                raise CategoryInUseError(category_id, product_count)
            del document.categories[index]

        logger.info("category_deleted", extra={"category_id": category_id})

    @staticmethod
    def _index_of(categories: list[Category], category_id: str) -> int:
        for index, category in enumerate(categories):
            if category.id == category_id:
                return index
        raise NotFoundError("Category", category_id)
