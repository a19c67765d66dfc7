"""
Storage module for the identity's slot history.

Provides the database abstraction used by the coordinator and watcher.
Uses SQLite for simplicity and correctness.
"""

from .database import Database
from .namespaces import BlocksNamespace, EpochInfoNamespace
from .records import BlockRecord, EpochInfo, EpochWrite, StoredEpoch
from .sqlite import SQLiteDatabase

__all__ = [
    "BlockRecord",
    "BlocksNamespace",
    "Database",
    "EpochInfo",
    "EpochInfoNamespace",
    "EpochWrite",
    "SQLiteDatabase",
    "StoredEpoch",
]
