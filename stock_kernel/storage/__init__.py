from stock_kernel.storage.base import KeyValueStore, StoredValue
from stock_kernel.storage.memory import InMemoryKeyValueStore
from stock_kernel.storage.sql import SqlKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SqlKeyValueStore",
    "StoredValue",
]
