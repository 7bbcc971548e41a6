"""Stores consumed by the CRUD engine."""

from recordkit.core.storage.base import (
    ChangeSet,
    QueryableCollection,
    ScopedConnection,
    Store,
    TrackingScope,
    is_unset_key,
)
from recordkit.core.storage.duckdb_store import DuckDBCollection, DuckDBScope, DuckDBStore, column_type
from recordkit.core.storage.memory import InMemoryCollection, InMemoryScope, InMemoryStore
from recordkit.core.storage.sql import SqlCompiler, compile_where, quote_identifier

__all__ = [
    "ChangeSet",
    "DuckDBCollection",
    "DuckDBScope",
    "DuckDBStore",
    "InMemoryCollection",
    "InMemoryScope",
    "InMemoryStore",
    "QueryableCollection",
    "ScopedConnection",
    "SqlCompiler",
    "Store",
    "TrackingScope",
    "column_type",
    "compile_where",
    "is_unset_key",
    "quote_identifier",
]
