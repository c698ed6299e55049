"""
Persistent Storage Module.

Provides the SQLite-backed store shared by:
- The registry ledgers (reservations, names, credits)
- The value layer (account balances)
- Registry metadata
"""

from snr.core.storage.sqlite_adapter import SQLiteAdapter, MEMORY

__all__ = ["SQLiteAdapter", "MEMORY"]
