"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- World state and private collections
- Approver sets and enrolled identities
- The transaction log
"""

from sealbid.core.storage.sqlite_adapter import SQLiteAdapter
from sealbid.core.storage.storage_manager import StorageManager, StoredLedgerState

__all__ = ["SQLiteAdapter", "StorageManager", "StoredLedgerState"]
