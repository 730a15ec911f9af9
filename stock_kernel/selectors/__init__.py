"""Read-only selectors (query side)."""

from stock_kernel.selectors.base import BaseSelector, DocumentSource
from stock_kernel.selectors.inventory_selector import (
    CategoryReportRow,
    CategoryWithCount,
    IntegrityReport,
    InventorySelector,
    InventoryStatistics,
)
from stock_kernel.selectors.movement_selector import (
    MovementSelector,
    MovementStatistics,
    PeriodReport,
    ProductMovementSummary,
    ReasonSummary,
    StockHistoryRow,
)

__all__ = [
    "BaseSelector",
    "CategoryReportRow",
    "CategoryWithCount",
    "DocumentSource",
    "IntegrityReport",
    "InventorySelector",
    "InventoryStatistics",
    "MovementSelector",
    "MovementStatistics",
    "PeriodReport",
    "ProductMovementSummary",
    "ReasonSummary",
    "StockHistoryRow",
]
