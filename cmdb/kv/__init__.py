"""
Ordered key/value store abstraction for the CMDB core.

This module provides:
- KVStore / Transaction / Namespace / Cursor protocols
- SqliteKVStore, a single-file engine on the standard-library sqlite3 module

Invariants:
    - Prefix scans return keys in ascending byte order
    - update() is atomic across all namespaces
    - view() never writes

How to change safely:
    - New engines must implement the KVStore protocol
    - Keep keys byte-oriented; callers store raw digests as keys
"""

from .base import Cursor, KVStore, Namespace, Transaction, to_key
from .sqlite import SqliteKVStore, open_store

__all__ = [
    # Protocols
    "KVStore",
    "Transaction",
    "Namespace",
    "Cursor",
    "to_key",
    # Implementations
    "SqliteKVStore",
    "open_store",
]
