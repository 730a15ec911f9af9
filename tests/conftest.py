"""
Pytest fixtures for the stock kernel test suite.

Provides:
- Structured logging configured once per session, with a ``captured_logs``
  fixture that returns parsed JSON records
- A DeterministicClock so timestamps are reproducible
- In-memory and SQLite-backed key-value backends
- A fully wired InventoryApplication plus shortcuts to its stores
- Factories for categories and products
"""

import json
import logging
from io import StringIO
from pathlib import Path
from typing import Any, Callable

import pytest

from stock_config import get_active_config
from stock_config.schema import InventorySettings
from stock_kernel.application import InventoryApplication
from stock_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
)
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_kernel.models.category import Category
from stock_kernel.models.product import Product
from stock_kernel.storage.memory import InMemoryKeyValueStore
from stock_kernel.storage.sql import SqlKeyValueStore

TEST_USER = "admin"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger, product):
            ledger.register_entry(product.id, 5, "PURCHASE", "admin")
            logs = captured_logs()
            assert any(r["message"] == "movement_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time, settings and backends
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture(scope="session")
def settings() -> InventorySettings:
    return get_active_config()


@pytest.fixture
def backend(settings) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(prefix=settings.storage.key_prefix)


@pytest.fixture
def sql_engine():
    engine = create_engine_from_url("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def sql_backend(sql_engine, clock, settings) -> SqlKeyValueStore:
    return SqlKeyValueStore(
        create_session_factory(sql_engine),
        prefix=settings.storage.key_prefix,
        clock=clock,
    )


# =============================================================================
# Application wiring
# =============================================================================


@pytest.fixture
def make_app(settings, clock) -> Callable[..., InventoryApplication]:
    """Build an application over a given backend (shared backends model tabs)."""

    def _make(backend, seed: bool = False) -> InventoryApplication:
        app = InventoryApplication.from_backend(backend, settings=settings, clock=clock)
        app.initialize(seed=seed)
        return app

    return _make


@pytest.fixture
def app(make_app, backend) -> InventoryApplication:
    return make_app(backend)


@pytest.fixture
def documents(app):
    return app.documents


@pytest.fixture
def categories(app):
    return app.categories


@pytest.fixture
def products(app):
    return app.products


@pytest.fixture
def ledger(app):
    return app.ledger


@pytest.fixture
def category(categories) -> Category:
    return categories.create({"name": "Electronics", "description": "Electronic equipment"})


@pytest.fixture
def create_product(products, category) -> Callable[..., Product]:
    """Factory creating products in the default category with unique SKUs."""
    counter = {"n": 0}

    def _create(**overrides: Any) -> Product:
        counter["n"] += 1
        data = {
            "name": f"Product {counter['n']}",
            "sku": f"SKU-{counter['n']:03d}",
            "categoryId": category.id,
            "purchasePrice": "10.00",
            "sellPrice": "15.00",
        }
        data.update(overrides)
        return products.create(data)

    return _create


@pytest.fixture
def product(create_product) -> Product:
    """A product with 10 units on hand and no movement history."""
    return create_product(quantity=10, minQuantity=2)


@pytest.fixture
def stocked_product(create_product, ledger, products) -> Product:
    """A product whose 10 units arrived through an INITIAL_RECEIPT movement."""
    created = create_product(minQuantity=2)
    ledger.register_entry(created.id, 10, "INITIAL_RECEIPT", TEST_USER)
    return products.get(created.id)


@pytest.fixture
def config_file(tmp_path) -> Callable[[str], Path]:
    """Write YAML text to a temporary file and return its path."""

    def _write(text: str) -> Path:
        path = tmp_path / "settings.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write
