"""
ProductStore -- catalog of products and the sole writer of stock quantity.

Responsibility:
    Creates, updates, archives and removes products, and applies quantity
    deltas on behalf of the MovementLedger.

Architecture position:
    Kernel > Services.  Satisfies the ``StockAdjuster`` protocol the
    ledger depends on.

Invariants enforced:
    - UNIQUE_SKU: no two products share a SKU, whatever their status.
    - NON_NEGATIVE_STOCK: ``adjust_quantity`` refuses any delta that would
      take quantity below zero; ``update`` refuses a negative quantity.
    - A product referenced by movements is archived (INACTIVE), never
      removed, by ``delete``.

Failure modes:
    - MissingFieldError, NotFoundError, DuplicateSkuError on create/update.
    - InsufficientStockError from ``adjust_quantity``.
    - InvalidQuantityError on a stock figure that is not a whole number >= 0.
    - InvalidPriceError on a price that is not a decimal number.
    - ProductReferencedError from ``delete_permanently``.

Audit relevance:
    Quantity changes made here are not themselves audited; the ledger
    records the movement and audit entry in the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.values import ProductLifecycle, ProductStatus, parse_decimal
from stock_kernel.exceptions import (
    DuplicateSkuError,
    InsufficientStockError,
    InvalidPriceError,
    InvalidQuantityError,
    MissingFieldError,
    NotFoundError,
    ProductReferencedError,
)
from stock_kernel.invariants import LedgerInvariant
from stock_kernel.logging_config import get_logger
from stock_kernel.models.document import InventoryDocument
from stock_kernel.models.product import Pricing, Product, StockLevel
from stock_kernel.services.document_store import DocumentStore
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.product")

_REQUIRED_FIELDS = ("name", "sku", "categoryId")


@dataclass(frozen=True)
class DeletionResult:
    """
    Outcome of ``ProductStore.delete``.

    ``product`` is the archived record for INACTIVE, and the record as it
    was before removal for REMOVED.
    """

    product_id: str
    outcome: ProductLifecycle
    product: Product

    @property
    def removed(self) -> bool:
        return self.outcome is ProductLifecycle.REMOVED


def _to_int(value: Any, default: int) -> int:
    """Whole, non-negative stock figure, or InvalidQuantityError."""
    if value is None or value == "":
        return default
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidQuantityError(value, minimum=0)
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidQuantityError(value, minimum=0) from exc
    if result < 0:
        raise InvalidQuantityError(value, minimum=0)
    return result


def _to_price(field: str, value: Any) -> Decimal:
    try:
        return parse_decimal(value)
    except ValueError as exc:
        raise InvalidPriceError(field, value) from exc


class ProductStore:
    """
    Product CRUD over the shared document.

    Contract:
        Mutations run in ``DocumentStore.transaction()`` and either fully
        apply or leave the document untouched.
    """

    def __init__(
        self,
        documents: DocumentStore,
        clock: Clock | None = None,
        min_quantity: int = 5,
        max_quantity: int = 100,
        location: str = "General Warehouse",
        currency: str = "USD",
        sequences: SequenceService | None = None,
    ):
        self._documents = documents
        self._clock = clock or SystemClock()
        self._min_quantity = min_quantity
        self._max_quantity = max_quantity
        self._location = location
        self._currency = currency
        self._sequences = sequences or SequenceService()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, include_inactive: bool = False) -> list[Product]:
        products = self._documents.document.products
        if include_inactive:
            return list(products)
        return [p for p in products if p.is_active]

    def find(self, product_id: str) -> Product | None:
        for product in self._documents.document.products:
            if product.id == product_id:
                return product
        return None

    def get(self, product_id: str) -> Product:
        product = self.find(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def get_by_sku(self, sku: str) -> Product | None:
        for product in self._documents.document.products:
            if product.sku == sku:
                return product
        return None

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create(self, data: dict[str, Any]) -> Product:
        """
        Create a product from caller data.

        Accepts the nested ``price`` / ``inventory`` shape of the stored
        document as well as flat ``purchasePrice``, ``sellPrice``,
        ``quantity``, ``minQuantity``, ``maxQuantity`` and ``location`` keys.

        Checks run in this order and the first failure wins; a duplicate SKU
        is reported whatever else is wrong with the data.

        Raises:
            MissingFieldError: If name, sku or categoryId is absent.
            DuplicateSkuError: If the SKU is already used.
            InvalidPriceError: If a price is not a decimal number.
            InvalidQuantityError: If a stock figure is not a whole number >= 0.
            NotFoundError: If categoryId references no category.
        """
        missing = [f for f in _REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
        if missing:
            raise MissingFieldError("Product", missing)

        sku = str(data["sku"]).strip()
        category_id = str(data["categoryId"])

        with self._documents.transaction() as document:
            self._check_sku_free(document, sku, exclude_id=None)

            price_data = {**(data.get("price") or {}), **_flat_price(data)}
            inventory_data = {**(data.get("inventory") or {}), **_flat_inventory(data)}
            pricing = Pricing(
                purchase_price=_to_price("purchasePrice", price_data.get("purchasePrice")),
                sell_price=_to_price("sellPrice", price_data.get("sellPrice")),
                currency=str(price_data.get("currency") or self._currency),
            )
            quantity = _to_int(inventory_data.get("quantity"), 0)

            if not any(c.id == category_id for c in document.categories):
                raise NotFoundError("Category", category_id)

            now = self._clock.now()
            product = Product(
                id=self._sequences.next_id(document, SequenceService.PRODUCT),
                sku=sku,
                name=str(data["name"]).strip(),
                description=str(data.get("description") or "").strip(),
                category_id=category_id,
                price=pricing,
                inventory=StockLevel(
                    quantity=quantity,
                    min_quantity=_to_int(inventory_data.get("minQuantity"), self._min_quantity),
                    max_quantity=_to_int(inventory_data.get("maxQuantity"), self._max_quantity),
                    location=str(inventory_data.get("location") or self._location).strip(),
                    last_updated=now,
                ),
                specifications=dict(data.get("specifications") or {}),
                image=data.get("image") or None,
                status=ProductStatus.ACTIVE,
                created_at=now,
                modified_at=now,
            )
            document.products.append(product)

        if pricing.sells_below_cost:
            logger.warning(
                "sell_price_below_purchase_price",
                extra={
                    "product_id": product.id,
                    "purchase_price": pricing.purchase_price,
                    "sell_price": pricing.sell_price,
                },
            )
        logger.info(
            "product_created",
            extra={"product_id": product.id, "sku": product.sku, "quantity": quantity},
        )
        return product

    def update(self, product_id: str, data: dict[str, Any]) -> Product:
        """
        Merge a partial update into a product.

        ``price`` and ``inventory`` are merged field by field; flat
        ``purchasePrice``/``sellPrice`` are accepted too.  ``specifications``
        is merged key by key.  ``id`` and ``createdAt`` are never changed.

        Raises:
            NotFoundError: If the product does not exist.
            DuplicateSkuError: If the new SKU belongs to another product.
            InvalidQuantityError: If ``inventory.quantity`` is negative.
        """
        with self._documents.transaction() as document:
            index = self._index_of(document, product_id)
            current = document.products[index]
            now = self._clock.now()
            changes: dict[str, Any] = {}

            if data.get("sku"):
                sku = str(data["sku"]).strip()
                if sku != current.sku:
                    self._check_sku_free(document, sku, exclude_id=product_id)
                changes["sku"] = sku
            if data.get("name"):
                changes["name"] = str(data["name"]).strip()
            if data.get("description") is not None:
                changes["description"] = str(data["description"]).strip()
            if data.get("categoryId"):
                changes["category_id"] = str(data["categoryId"])
            if "image" in data:
                changes["image"] = data["image"] or None
            if data.get("status"):
                changes["status"] = ProductStatus(data["status"])
            if data.get("specifications"):
                changes["specifications"] = {
                    **current.specifications,
                    **data["specifications"],
                }

            price_data = {**(data.get("price") or {}), **_flat_price(data)}
            if price_data:
                changes["price"] = _merge_pricing(current.price, price_data)

            inventory_data = data.get("inventory") or {}
            if inventory_data:
                changes["inventory"] = _merge_stock_level(current.inventory, inventory_data, now)

            updated = replace(current, modified_at=now, **changes)
            document.products[index] = updated

        if "price" in changes and updated.price.sells_below_cost:
            logger.warning(
                "sell_price_below_purchase_price",
                extra={
                    "product_id": product_id,
                    "purchase_price": updated.price.purchase_price,
                    "sell_price": updated.price.sell_price,
                },
            )
        logger.info(
            "product_updated",
            extra={"product_id": product_id, "fields": sorted(changes)},
        )
        return updated

    def adjust_quantity(self, product_id: str, delta: int) -> Product:
        """
        Add ``delta`` (positive or negative) to the on-hand quantity.

        Raises:
            NotFoundError: If the product does not exist.
            InsufficientStockError: If the result would be negative.
        """
        with self._documents.transaction() as document:
            index = self._index_of(document, product_id)
            current = document.products[index]
            new_quantity = current.inventory.quantity + delta
            if new_quantity < 0:
                logger.warning(
                    "stock_adjustment_rejected",
                    extra={
                        "product_id": product_id,
                        "available": current.inventory.quantity,
                        "delta": delta,
                        "invariant": LedgerInvariant.NON_NEGATIVE_STOCK.value,
                    },
                )
                raise InsufficientStockError(product_id, current.inventory.quantity, -delta)

            now = self._clock.now()
            updated = replace(
                current,
                inventory=replace(current.inventory, quantity=new_quantity, last_updated=now),
                modified_at=now,
            )
            document.products[index] = updated

        logger.debug(
            "stock_adjusted",
            extra={
                "product_id": product_id,
                "delta": delta,
                "quantity_before": current.inventory.quantity,
                "quantity_after": new_quantity,
            },
        )
        return updated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self, product_id: str) -> Product:
        """Return an archived product to ACTIVE."""
        return self._set_status(product_id, ProductStatus.ACTIVE)

    def delete(self, product_id: str) -> DeletionResult:
        """
        Archive or remove a product.

        Products referenced by at least one movement are archived
        (status INACTIVE) so the movement history stays resolvable; others
        are removed from the document.

        Raises:
            NotFoundError: If the product does not exist.
        """
        with self._documents.transaction() as document:
            index = self._index_of(document, product_id)
            current = document.products[index]
            if self._movement_count(document, product_id):
                archived = replace(
                    current,
                    status=ProductStatus.INACTIVE,
                    modified_at=self._clock.now(),
                )
                document.products[index] = archived
                result = DeletionResult(product_id, ProductLifecycle.INACTIVE, archived)
            else:
                del document.products[index]
                result = DeletionResult(product_id, ProductLifecycle.REMOVED, current)

        logger.info(
            "product_deleted",
            extra={"product_id": product_id, "outcome": result.outcome.value},
        )
        return result

    def delete_permanently(self, product_id: str) -> DeletionResult:
        """
        Remove a product that no movement references.

        Raises:
            NotFoundError: If the product does not exist.
            ProductReferencedError: If any movement references it.
        """
        with self._documents.transaction() as document:
            self._index_of(document, product_id)
            movement_count = self._movement_count(document, product_id)
            if movement_count:
                raise ProductReferencedError(product_id, movement_count)
            return self.delete(product_id)

    def _set_status(self, product_id: str, status: ProductStatus) -> Product:
        with self._documents.transaction() as document:
            index = self._index_of(document, product_id)
            updated = replace(
                document.products[index],
                status=status,
                modified_at=self._clock.now(),
            )
            document.products[index] = updated
        logger.info(
            "product_status_changed",
            extra={"product_id": product_id, "status": status.value},
        )
        return updated

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _index_of(document: InventoryDocument, product_id: str) -> int:
        for index, product in enumerate(document.products):
            if product.id == product_id:
                return index
        raise NotFoundError("Product", product_id)

    @staticmethod
    def _movement_count(document: InventoryDocument, product_id: str) -> int:
        return sum(1 for m in document.movements if m.product_id == product_id)

    @staticmethod
    def _check_sku_free(document: InventoryDocument, sku: str, exclude_id: str | None) -> None:
        for product in document.products:
            if product.sku == sku and product.id != exclude_id:
                logger.warning(
                    "duplicate_sku_rejected",
                    extra={
                        "sku": sku,
                        "existing_product_id": product.id,
                        "invariant": LedgerInvariant.UNIQUE_SKU.value,
                    },
                )
                raise DuplicateSkuError(sku, product.id)


def _flat_price(data: dict[str, Any]) -> dict[str, Any]:
    return {k: data[k] for k in ("purchasePrice", "sellPrice") if data.get(k) is not None}


def _flat_inventory(data: dict[str, Any]) -> dict[str, Any]:
    keys = ("quantity", "minQuantity", "maxQuantity", "location")
    return {k: data[k] for k in keys if data.get(k) is not None}


def _merge_pricing(current: Pricing, data: dict[str, Any]) -> Pricing:
    purchase: Decimal = current.purchase_price
    sell: Decimal = current.sell_price
    if data.get("purchasePrice") is not None:
        purchase = _to_price("purchasePrice", data["purchasePrice"])
    if data.get("sellPrice") is not None:
        sell = _to_price("sellPrice", data["sellPrice"])
    return Pricing(
        purchase_price=purchase,
        sell_price=sell,
        currency=str(data.get("currency") or current.currency),
    )


def _merge_stock_level(current: StockLevel, data: dict[str, Any], now: datetime) -> StockLevel:
    quantity = current.quantity
    if data.get("quantity") is not None:
        quantity = _to_int(data["quantity"], current.quantity)
    return StockLevel(
        quantity=quantity,
        min_quantity=_to_int(data.get("minQuantity"), current.min_quantity),
        max_quantity=_to_int(data.get("maxQuantity"), current.max_quantity),
        location=str(data.get("location") or current.location),
        last_updated=now,
    )
