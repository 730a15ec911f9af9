"""
Module: stock_kernel.models.product
Responsibility: Immutable product record with its price and inventory
    sub-objects, and the JSON mapping used for persistence and export.
Architecture position: Kernel > Models.  May import from domain/ only.

Invariants enforced:
    - ``StockLevel.quantity`` is never negative (construction fails).
    - Prices are Decimal, never float.
    - ``Pricing.margin`` is derived, not stored: it is recomputed from the
      two prices every time it is read.

Failure modes:
    - Construction of a ``StockLevel`` with a negative quantity raises
      ``ValueError``.

Audit relevance:
    ``modified_at`` and ``inventory.last_updated`` change on every quantity
    adjustment, so the last stock change of a product is always visible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from stock_kernel.domain.values import (
    ProductLifecycle,
    ProductStatus,
    compute_margin,
    from_iso,
    parse_decimal,
    to_iso,
)


def _nested(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise TypeError(f"'{key}' must be an object")
    return value


@dataclass(frozen=True)
class Pricing:
    """Purchase and sell price of a product."""

    purchase_price: Decimal = Decimal("0")
    sell_price: Decimal = Decimal("0")
    currency: str = "USD"

    @property
    def margin(self) -> Decimal:
        return compute_margin(self.purchase_price, self.sell_price)

    @property
    def sells_below_cost(self) -> bool:
        return Decimal("0") < self.sell_price < self.purchase_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "purchasePrice": str(self.purchase_price),
            "sellPrice": str(self.sell_price),
            "currency": self.currency,
            "margin": str(self.margin),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pricing:
        return cls(
            purchase_price=parse_decimal(data.get("purchasePrice")),
            sell_price=parse_decimal(data.get("sellPrice")),
            currency=str(data.get("currency") or "USD"),
        )


@dataclass(frozen=True)
class StockLevel:
    """
    On-hand quantity and replenishment bounds of a product.

    Guarantees: ``quantity >= 0``.

    Raises:
        ValueError: If an invariant is violated at construction time.
    """

    quantity: int = 0
    min_quantity: int = 5
    max_quantity: int = 100
    location: str = ""
    last_updated: datetime | None = None

    def __post_init__(self):
        if self.quantity < 0:
            raise ValueError(f"quantity cannot be negative (got {self.quantity})")

    def to_dict(self) -> dict[str, Any]:
        return {
            "quantity": self.quantity,
            "minQuantity": self.min_quantity,
            "maxQuantity": self.max_quantity,
            "location": self.location,
            "lastUpdated": to_iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StockLevel:
        return cls(
            quantity=int(data.get("quantity") or 0),
            min_quantity=int(data.get("minQuantity", 5)),
            max_quantity=int(data.get("maxQuantity", 100)),
            location=str(data.get("location") or ""),
            last_updated=from_iso(data.get("lastUpdated")),
        )


@dataclass(frozen=True)
class Product:
    """
    A catalog product.

    Contract: Immutable.  Stores replace a product with
    ``dataclasses.replace`` rather than mutating it, so snapshots held by
    callers and by the document-store rollback never change underneath them.
    """

    id: str
    sku: str
    name: str
    category_id: str
    created_at: datetime
    modified_at: datetime
    description: str = ""
    price: Pricing = field(default_factory=Pricing)
    inventory: StockLevel = field(default_factory=StockLevel)
    specifications: dict[str, Any] = field(default_factory=dict)
    image: str | None = None
    status: ProductStatus = ProductStatus.ACTIVE

    @property
    def quantity(self) -> int:
        return self.inventory.quantity

    @property
    def is_active(self) -> bool:
        return self.status is ProductStatus.ACTIVE

    @property
    def lifecycle(self) -> ProductLifecycle:
        if self.status is ProductStatus.INACTIVE:
            return ProductLifecycle.INACTIVE
        return ProductLifecycle.ACTIVE

    @property
    def is_low_stock(self) -> bool:
        return self.inventory.quantity <= self.inventory.min_quantity

    @property
    def stock_value(self) -> Decimal:
        """Sell-price valuation of the quantity on hand."""
        return self.price.sell_price * self.inventory.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "categoryId": self.category_id,
            "price": self.price.to_dict(),
            "inventory": self.inventory.to_dict(),
            "specifications": dict(self.specifications),
            "image": self.image,
            "status": self.status.value,
            "createdAt": to_iso(self.created_at),
            "modifiedAt": to_iso(self.modified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Product:
        """
        Rebuild a product from its JSON form.

        Raises:
            KeyError: If ``id``, ``sku``, ``name``, ``categoryId`` or a
                timestamp is missing.
            TypeError: If ``price`` or ``inventory`` is not an object.
            ValueError: On malformed numbers, timestamps or status.
        """
        return cls(
            id=str(data["id"]),
            sku=str(data["sku"]),
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            category_id=str(data["categoryId"]),
            price=Pricing.from_dict(_nested(data, "price")),
            inventory=StockLevel.from_dict(_nested(data, "inventory")),
            specifications=dict(data.get("specifications") or {}),
            image=data.get("image"),
            status=ProductStatus(data.get("status", ProductStatus.ACTIVE.value)),
            created_at=from_iso(data["createdAt"]),
            modified_at=from_iso(data["modifiedAt"]),
        )
