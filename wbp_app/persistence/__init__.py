"""
Persistent key-value store adapters.

Both processes share one store; it is the only source of truth for the
unlock grant and the current task label.
"""
from .base import KeyValueStore, StorageChange
from .memory_store import InMemoryStore
from .sqlite_store import SqliteStore

__all__ = ["KeyValueStore", "StorageChange", "InMemoryStore", "SqliteStore"]
