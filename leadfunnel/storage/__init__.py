"""Persistence of visitor state between page loads."""

from .autosave import Debouncer
from .kv import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from .snapshot import SnapshotStore

__all__ = [
    "Debouncer",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
    "SnapshotStore",
]
