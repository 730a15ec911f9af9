"""Services for the stock kernel (write side)."""

from stock_kernel.services.auth_service import AuthGate, AuthSession, AuthUser, Credential
from stock_kernel.services.category_service import CategoryStore
from stock_kernel.services.document_store import DocumentStore
from stock_kernel.services.movement_service import (
    ConsistencyReport,
    MovementLedger,
    StockAdjuster,
)
from stock_kernel.services.product_service import DeletionResult, ProductStore
from stock_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuthGate",
    "AuthSession",
    "AuthUser",
    "CategoryStore",
    "ConsistencyReport",
    "Credential",
    "DeletionResult",
    "DocumentStore",
    "MovementLedger",
    "ProductStore",
    "SequenceService",
    "StockAdjuster",
]
