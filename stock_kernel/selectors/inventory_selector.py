"""
Module: stock_kernel.selectors.inventory_selector
Responsibility: Read-only catalog queries and reports: filters (category,
    status, low stock, search), valuation, margin averages, per-category
    reports and the document integrity check.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Valuations use Decimal throughout and are quantized to cents.
    - ``validate_integrity`` reports problems and never repairs them.  An
      orphaned ``categoryId`` (its category removed by some other path) is a
      known data-integrity gap that is surfaced here.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from stock_kernel.domain.values import ProductStatus
from stock_kernel.models.category import Category
from stock_kernel.models.product import Product
from stock_kernel.selectors.base import BaseSelector

_CENT = Decimal("0.01")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InventoryStatistics:
    """Headline figures for the dashboard."""

    total_products: int
    active_products: int
    inactive_products: int
    total_categories: int
    total_units: int
    inventory_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    average_margin: Decimal
    most_valuable: tuple[Product, ...] = ()


@dataclass(frozen=True)
class CategoryReportRow:
    category_id: str
    category_name: str | None
    product_count: int
    total_units: int
    total_value: Decimal
    product_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryWithCount:
    category: Category
    product_count: int


@dataclass(frozen=True)
class IntegrityReport:
    """Outcome of ``InventorySelector.validate_integrity``."""

    orphaned_products: tuple[str, ...] = ()
    orphaned_movements: tuple[str, ...] = ()
    duplicate_skus: tuple[str, ...] = ()
    errors: tuple[str, ...] = field(default=())

    @property
    def is_valid(self) -> bool:
        return not self.errors


class InventorySelector(BaseSelector):
    """Catalog queries over the shared document."""

    def products(self, include_inactive: bool = False) -> list[Product]:
        products = self.document.products
        if include_inactive:
            return list(products)
        return [p for p in products if p.is_active]

    def get(self, product_id: str) -> Product | None:
        for product in self.document.products:
            if product.id == product_id:
                return product
        return None

    def by_category(self, category_id: str) -> list[Product]:
        """Active products of one category."""
        return [p for p in self.products() if p.category_id == category_id]

    def by_status(self, status: ProductStatus | str) -> list[Product]:
        status = ProductStatus(status)
        return [p for p in self.document.products if p.status is status]

    def low_stock(self) -> list[Product]:
        """Active products at or below their minimum quantity."""
        return [p for p in self.products() if p.is_low_stock]

    def out_of_stock(self) -> list[Product]:
        return [p for p in self.products() if p.quantity == 0]

    def search(self, term: str) -> list[Product]:
        """Case-insensitive match on name, SKU or description of active products."""
        needle = term.strip().lower()
        return [
            p
            for p in self.products()
            if needle in p.name.lower()
            or needle in p.sku.lower()
            or needle in p.description.lower()
        ]

    def inventory_value(self, include_inactive: bool = True) -> Decimal:
        """Sum of sell price times quantity on hand."""
        total = sum(
            (p.stock_value for p in self.products(include_inactive=include_inactive)),
            Decimal("0"),
        )
        return _cents(total)

    def average_margin(self) -> Decimal:
        """Mean margin over products with a non-zero margin."""
        margins = [p.price.margin for p in self.document.products if p.price.margin != 0]
        if not margins:
            return Decimal("0")
        return _cents(sum(margins, Decimal("0")) / len(margins))

    def statistics(self, top: int = 5) -> InventoryStatistics:
        products = self.document.products
        active = [p for p in products if p.is_active]
        most_valuable = sorted(active, key=lambda p: p.stock_value, reverse=True)[:top]
        return InventoryStatistics(
            total_products=len(products),
            active_products=len(active),
            inactive_products=sum(1 for p in products if p.status is ProductStatus.INACTIVE),
            total_categories=len(self.document.categories),
            total_units=sum(p.quantity for p in active),
            inventory_value=self.inventory_value(include_inactive=False),
            low_stock_count=len(self.low_stock()),
            out_of_stock_count=len(self.out_of_stock()),
            average_margin=self.average_margin(),
            most_valuable=tuple(most_valuable),
        )

    def category_report(self) -> list[CategoryReportRow]:
        """
        Per-category totals over all products, in category order.

        Products whose category no longer exists are grouped under their
        dangling ``categoryId`` with ``category_name`` None.
        """
        names = {c.id: c.name for c in self.document.categories}
        order = list(names)
        groups: dict[str, list[Product]] = {cid: [] for cid in order}
        for product in self.document.products:
            if product.category_id not in groups:
                groups[product.category_id] = []
                order.append(product.category_id)
            groups[product.category_id].append(product)

        return [
            CategoryReportRow(
                category_id=cid,
                category_name=names.get(cid),
                product_count=len(groups[cid]),
                total_units=sum(p.quantity for p in groups[cid]),
                total_value=_cents(sum((p.stock_value for p in groups[cid]), Decimal("0"))),
                product_names=tuple(p.name for p in groups[cid]),
            )
            for cid in order
        ]

    def categories_with_counts(self) -> list[CategoryWithCount]:
        counts = Counter(p.category_id for p in self.document.products)
        return [
            CategoryWithCount(category=c, product_count=counts.get(c.id, 0))
            for c in self.document.categories
        ]

    def validate_integrity(self) -> IntegrityReport:
        """
        Check cross-references in the document.

        Reports products whose category does not exist, movements whose
        product does not exist and SKUs used more than once.
        """
        document = self.document
        category_ids = {c.id for c in document.categories}
        product_ids = {p.id for p in document.products}

        orphaned_products = tuple(
            p.id for p in document.products if p.category_id not in category_ids
        )
        orphaned_movements = tuple(
            m.id for m in document.movements if m.product_id not in product_ids
        )
        sku_counts = Counter(p.sku for p in document.products)
        duplicate_skus = tuple(sorted(sku for sku, n in sku_counts.items() if n > 1))

        errors = [
            f"Product {pid} references a missing category" for pid in orphaned_products
        ]
        errors += [
            f"Movement {mid} references a missing product" for mid in orphaned_movements
        ]
        errors += [f"Duplicate SKU: {sku}" for sku in duplicate_skus]

        return IntegrityReport(
            orphaned_products=orphaned_products,
            orphaned_movements=orphaned_movements,
            duplicate_skus=duplicate_skus,
            errors=tuple(errors),
        )
