"""
store — SQLite-backed persistence layer for short text records.

Public API
──────────
Record          — dataclass representing one row of the names table
Handle          — open reference to one database file
RecordStore     — CRUD + export / import (open, create, list, update, …)
SerialExecutor  — single-writer async queue over a handle
"""

from recordbook.store.models import Handle, HandleState, Record
from recordbook.store.db import DEFAULT_DB_NAME, RecordStore
from recordbook.store.executor import SerialExecutor

__all__ = [
    "DEFAULT_DB_NAME",
    "Handle",
    "HandleState",
    "Record",
    "RecordStore",
    "SerialExecutor",
]
