"""
End-to-end tests for InventoryApplication over both backends.

Covers the full flow a front end drives: initialize (with seeding), sign
in, catalog work, movements, reports, export/import and reset, and that a
restarted application sees everything that was committed.
"""

import json

import pytest

from stock_kernel.application import InventoryApplication
from stock_kernel.db.engine import create_session_factory
from stock_kernel.exceptions import PermissionDeniedError
from stock_kernel.storage.memory import InMemoryKeyValueStore
from stock_kernel.storage.sql import SqlKeyValueStore


class TestInitialize:
    def test_seeds_empty_document(self, make_app, backend, settings):
        app = make_app(backend, seed=True)

        [category] = app.categories.list()
        assert category.name == "Electronics"
        assert category.icon == settings.seed_categories[0].icon
        assert app.documents.version == 1

    def test_does_not_reseed(self, make_app, backend):
        make_app(backend, seed=True)
        again = make_app(backend, seed=True)
        assert len(again.categories.list()) == 1
        assert again.documents.version == 1

    def test_default_wiring(self):
        app = InventoryApplication.from_backend(InMemoryKeyValueStore())
        app.initialize(seed=False)
        assert app.settings.config_id == "inventory-default"
        assert app.documents.document.is_empty()

    def test_storage_info(self, make_app, backend):
        app = make_app(backend, seed=True)
        app.auth.login("admin", "admin123")

        info = app.storage_info()

        assert info.items == 2
        assert info.size_bytes == backend.size_bytes() > 0
        assert info.document_version == 1
        assert info.size_mb == 0.0

    def test_reset_reseeds(self, make_app, backend):
        app = make_app(backend, seed=True)
        category_id = app.categories.list()[0].id
        app.products.create({"name": "Laptop", "sku": "LAP-001", "categoryId": category_id})

        app.reset()

        assert app.products.list() == []
        assert [c.id for c in app.categories.list()] == ["CAT-001"]


class TestWorkflow:
    def test_store_day(self, make_app, backend, clock):
        app = make_app(backend, seed=True)
        user = app.auth.login("employee", "emp123").user
        electronics = app.categories.list()[0]

        with pytest.raises(PermissionDeniedError):
            app.auth.require_permission("create_product")

        app.auth.logout()
        admin = app.auth.login("admin", "admin123").user
        app.auth.require_permission("create_product")
        laptop = app.products.create(
            {
                "name": "Laptop",
                "sku": "LAP-001",
                "categoryId": electronics.id,
                "purchasePrice": "800",
                "sellPrice": "1000",
                "minQuantity": 3,
            }
        )
        app.ledger.register_entry(laptop.id, 10, "INITIAL_RECEIPT", admin.username)

        app.auth.logout()
        app.auth.login("employee", "emp123")
        app.auth.require_permission("register_movement")
        clock.advance(3600)
        app.ledger.register_exit(laptop.id, 8, "CUSTOMER_SALE", user.username)

        assert app.products.get(laptop.id).quantity == 2
        assert [p.id for p in app.inventory.low_stock()] == [laptop.id]
        assert app.inventory.inventory_value() == 2000
        assert app.movements.statistics().net_balance == 2
        assert [r.resulting_stock for r in app.movements.stock_history(laptop.id)] == [10, 2]
        assert app.ledger.verify_consistency(laptop.id).is_consistent
        assert app.inventory.validate_integrity().is_valid

    def test_export_then_import_into_other_backend(self, make_app, backend):
        source = make_app(backend, seed=True)
        category_id = source.categories.list()[0].id
        product = source.products.create(
            {"name": "Laptop", "sku": "LAP-001", "categoryId": category_id}
        )
        source.ledger.register_entry(product.id, 4, "PURCHASE", "admin")
        exported = source.documents.export_json()

        target = make_app(InMemoryKeyValueStore(prefix="inventory_"), seed=True)
        target.documents.import_json(exported)

        assert json.loads(exported)["metadata"]["totals"]["movements"] == 1
        assert target.products.get(product.id).quantity == 4
        assert len(target.categories.list()) == 1
        # counters continue after the imported ids
        assert target.products.create(
            {"name": "Mouse", "sku": "MOU-001", "categoryId": category_id}
        ).id == "PROD-002"


class TestSqlPersistence:
    def test_restart_sees_committed_state(self, sql_engine, make_app, settings, clock):
        factory = create_session_factory(sql_engine)

        def backend():
            return SqlKeyValueStore(factory, prefix=settings.storage.key_prefix, clock=clock)

        first = make_app(backend(), seed=True)
        category_id = first.categories.list()[0].id
        product = first.products.create(
            {"name": "Laptop", "sku": "LAP-001", "categoryId": category_id}
        )
        first.ledger.register_entry(product.id, 7, "PURCHASE", "admin")
        first.auth.login("admin", "admin123")

        restarted = make_app(backend(), seed=True)

        assert restarted.products.get(product.id).quantity == 7
        assert restarted.documents.version == first.documents.version
        assert restarted.auth.current_user.username == "admin"
        assert restarted.ledger.verify_consistency(product.id).is_consistent
        assert restarted.backend.keys() == ["data", "session"]
