"""Immutable record types and the shared inventory document."""

from stock_kernel.models.category import Category
from stock_kernel.models.document import InventoryDocument
from stock_kernel.models.movement import AuditEntry, Movement
from stock_kernel.models.product import Pricing, Product, StockLevel

__all__ = [
    "AuditEntry",
    "Category",
    "InventoryDocument",
    "Movement",
    "Pricing",
    "Product",
    "StockLevel",
]
