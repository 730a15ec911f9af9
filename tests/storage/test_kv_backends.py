"""
Contract tests for the versioned key-value backends.

Every test runs against both the in-memory and the SQLite-backed store so
the document store can rely on identical compare-and-set semantics.
"""

import pytest

from stock_kernel.db.engine import create_session_factory
from stock_kernel.exceptions import StaleDocumentError
from stock_kernel.storage.base import StoredValue
from stock_kernel.storage.memory import InMemoryKeyValueStore
from stock_kernel.storage.sql import SqlKeyValueStore


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryKeyValueStore(prefix="inventory_")
    return request.getfixturevalue("sql_backend")


class TestReadWrite:
    def test_missing_key(self, store):
        assert store.get("data") is None
        assert not store.exists("data")

    def test_first_write_creates_version_one(self, store):
        assert store.compare_and_set("data", "{}", expected_version=0) == 1
        assert store.get("data") == StoredValue(value="{}", version=1)

    def test_each_write_bumps_version(self, store):
        store.compare_and_set("data", "a", 0)
        assert store.compare_and_set("data", "b", 1) == 2
        assert store.compare_and_set("data", "c", 2) == 3
        assert store.get("data") == StoredValue(value="c", version=3)

    def test_unconditional_set(self, store):
        assert store.set("session", "s1") == 1
        assert store.set("session", "s2") == 2
        assert store.get("session").value == "s2"

    def test_delete(self, store):
        store.set("session", "s1")
        store.delete("session")
        assert store.get("session") is None
        # deleting an absent key is a no-op
        store.delete("session")


class TestCompareAndSet:
    def test_stale_version_rejected(self, store):
        store.compare_and_set("data", "a", 0)
        store.compare_and_set("data", "b", 1)

        with pytest.raises(StaleDocumentError) as exc_info:
            store.compare_and_set("data", "stale", 1)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert exc_info.value.key == "inventory_data"
        assert store.get("data") == StoredValue(value="b", version=2)

    def test_create_when_key_exists_rejected(self, store):
        store.compare_and_set("data", "a", 0)
        with pytest.raises(StaleDocumentError) as exc_info:
            store.compare_and_set("data", "b", 0)
        assert exc_info.value.actual_version == 1
        assert store.get("data").value == "a"

    def test_update_of_missing_key_rejected(self, store):
        with pytest.raises(StaleDocumentError) as exc_info:
            store.compare_and_set("data", "a", 3)
        assert exc_info.value.actual_version == 0
        assert store.get("data") is None

    def test_rejection_is_logged(self, store, captured_logs):
        store.compare_and_set("data", "a", 0)
        with pytest.raises(StaleDocumentError):
            store.compare_and_set("data", "b", 0)

        rejected = [r for r in captured_logs() if r["message"] == "stale_write_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["key"] == "inventory_data"
        assert rejected[0]["expected_version"] == 0
        assert rejected[0]["actual_version"] == 1


class TestNamespacing:
    def test_keys_are_sorted_and_unprefixed(self, store):
        store.set("session", "x")
        store.compare_and_set("data", "y", 0)
        assert store.keys() == ["data", "session"]

    def test_size_bytes(self, store):
        assert store.size_bytes() == 0
        store.set("a", "12345")
        store.set("b", "678")
        assert store.size_bytes() == 8

    def test_clear(self, store):
        store.set("a", "1")
        store.set("b", "2")
        store.clear()
        assert store.keys() == []


class TestSharedPrefixIsolation:
    def test_memory_prefixes_do_not_leak(self):
        inventory = InMemoryKeyValueStore(prefix="inventory_")
        other = InMemoryKeyValueStore(prefix="other_")
        # distinct instances never share data; the prefix only namespaces keys
        inventory.set("data", "x")
        assert other.keys() == []

    def test_sql_prefixes_share_table_but_not_keys(self, sql_engine, clock):
        factory = create_session_factory(sql_engine)
        inventory = SqlKeyValueStore(factory, prefix="inventory_", clock=clock)
        other = SqlKeyValueStore(factory, prefix="other_", clock=clock)

        inventory.set("data", "abc")
        other.set("data", "z")

        assert inventory.get("data").value == "abc"
        assert other.get("data").value == "z"
        assert inventory.size_bytes() == 3
        assert other.keys() == ["data"]

    def test_sql_prefix_wildcards_are_literal(self, sql_engine, clock):
        factory = create_session_factory(sql_engine)
        percent = SqlKeyValueStore(factory, prefix="inv%", clock=clock)
        plain = SqlKeyValueStore(factory, prefix="invX", clock=clock)

        plain.set("data", "x")
        assert percent.keys() == []

    def test_sql_writes_visible_to_second_instance(self, sql_engine, clock):
        factory = create_session_factory(sql_engine)
        first = SqlKeyValueStore(factory, prefix="inventory_", clock=clock)
        second = SqlKeyValueStore(factory, prefix="inventory_", clock=clock)

        first.compare_and_set("data", "v1", 0)
        assert second.get("data") == StoredValue(value="v1", version=1)
        with pytest.raises(StaleDocumentError):
            second.compare_and_set("data", "v1-bis", 0)
