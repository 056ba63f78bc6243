"""
Fast-store module for the Entry API.

This module handles:
- The flattened EntryRecord and its lossless mapping to/from Entry
- The SQLite EntryStore (key lookups, batch writes, compiled queries)

The store is a cache of the content host. It can be dropped and rebuilt by
re-fetching entries.

Invariants:
    - The domain Entry never sees the flattened record shape
    - SQLite uses WAL mode for concurrent reads during writes
"""

from .entry_store import EntryStore, StoreNotInitializedError
from .record import COLUMNS, EntryRecord

__all__ = ["COLUMNS", "EntryRecord", "EntryStore", "StoreNotInitializedError"]
