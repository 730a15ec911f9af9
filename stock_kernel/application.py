"""
InventoryApplication -- explicit composition of the inventory services.

Responsibility:
    Builds one DocumentStore over a key-value backend and wires the
    category/product stores, the movement ledger, the selectors and the
    auth gate around it.  Replaces process-wide singletons: every
    application (and every test) owns its own instances.

Architecture position:
    Composition root.  The only kernel module that reads ``stock_config``
    settings; it translates them into plain constructor arguments.

Usage:
    app = InventoryApplication.from_backend(InMemoryKeyValueStore("inventory_"))
    app.initialize()
    product = app.products.create({...})
"""

from __future__ import annotations

from dataclasses import dataclass

from stock_config import InventorySettings, get_active_config
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import get_logger
from stock_kernel.services.auth_service import AuthGate, AuthUser, Credential
from stock_kernel.services.category_service import CategoryStore
from stock_kernel.services.document_store import DocumentStore
from stock_kernel.services.movement_service import MovementLedger
from stock_kernel.services.product_service import ProductStore
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.selectors.inventory_selector import InventorySelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.storage.base import KeyValueStore

logger = get_logger("application")


@dataclass(frozen=True)
class StorageInfo:
    items: int
    size_bytes: int
    document_version: int

    @property
    def size_mb(self) -> float:
        return round(self.size_bytes / 1024 / 1024, 2)


class InventoryApplication:
    """Container holding one wired set of inventory services."""

    def __init__(
        self,
        backend: KeyValueStore,
        settings: InventorySettings,
        clock: Clock,
    ):
        self.backend = backend
        self.settings = settings
        self.clock = clock

        sequences = SequenceService()
        self.documents = DocumentStore(
            backend,
            document_key=settings.storage.document_key,
            clock=clock,
            export_version=settings.export.format_version,
            export_indent=settings.export.indent,
        )
        self.categories = CategoryStore(
            self.documents,
            clock=clock,
            default_icon=settings.category.icon,
            default_color=settings.category.color,
            sequences=sequences,
        )
        self.products = ProductStore(
            self.documents,
            clock=clock,
            min_quantity=settings.product.min_quantity,
            max_quantity=settings.product.max_quantity,
            location=settings.product.location,
            currency=settings.product.currency,
            sequences=sequences,
        )
        self.ledger = MovementLedger(
            self.documents,
            self.products,
            clock=clock,
            sequences=sequences,
        )
        self.inventory = InventorySelector(self.documents, clock=clock)
        self.movements = MovementSelector(self.documents, clock=clock)
        self.auth = AuthGate(
            backend,
            credentials=[
                Credential(
                    user=AuthUser(
                        id=u.id,
                        username=u.username,
                        name=u.name,
                        role=u.role,
                        email=u.email,
                    ),
                    password=u.password,
                )
                for u in settings.users
            ],
            role_permissions=settings.roles,
            session_key=settings.storage.session_key,
            session_hours=settings.storage.session_hours,
            clock=clock,
        )

    @classmethod
    def from_backend(
        cls,
        backend: KeyValueStore,
        settings: InventorySettings | None = None,
        clock: Clock | None = None,
    ) -> InventoryApplication:
        """
        Wire an application over ``backend``.

        Args:
            backend: Key-value store holding the document and the session.
            settings: Defaults to ``get_active_config()``.
            clock: Defaults to ``SystemClock``.
        """
        return cls(
            backend,
            settings if settings is not None else get_active_config(),
            clock or SystemClock(),
        )

    def initialize(self, seed: bool = True) -> None:
        """Load the document; seed categories into an empty one when asked."""
        document = self.documents.load()
        if seed and document.is_empty():
            self._seed()

    def reset(self) -> None:
        """Erase all inventory data and re-seed the default categories."""
        self.documents.reset()
        self._seed()

    def _seed(self) -> None:
        for seed in self.settings.seed_categories:
            self.categories.create(
                {
                    "name": seed.name,
                    "description": seed.description,
                    "icon": seed.icon,
                    "color": seed.color,
                }
            )
        logger.info(
            "seed_categories_created",
            extra={"count": len(self.settings.seed_categories)},
        )

    def storage_info(self) -> StorageInfo:
        return StorageInfo(
            items=len(self.backend.keys()),
            size_bytes=self.backend.size_bytes(),
            document_version=self.documents.version,
        )
