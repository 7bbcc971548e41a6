"""DuckDB backed store.

Tables are derived from entity annotations on first use. Every scope runs
on its own cursor of the store connection and therefore in its own
transaction; conflicting writes surface as ``duckdb.TransactionException``
on commit.
"""

from __future__ import annotations

import threading
import types
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar, Union, get_args, get_origin

import duckdb
from pydantic import BaseModel

from recordkit.core.exceptions import ConcurrencyConflictError, ConfigurationError
from recordkit.core.logging import get_logger
from recordkit.core.models.entity import entity_key_field, entity_table_name
from recordkit.core.predicates import Predicate
from recordkit.core.storage.base import ChangeSet, QueryableCollection, Store, TrackingScope, is_unset_key
from recordkit.core.storage.sql import compile_where, quote_identifier

EntityT = TypeVar("EntityT", bound=BaseModel)

logger = get_logger(__name__)

# bool before int: bool is an int subclass
_COLUMN_TYPES: list[tuple[type, str]] = [
    (bool, "BOOLEAN"),
    (int, "BIGINT"),
    (float, "DOUBLE"),
    (Decimal, "DECIMAL(18,6)"),
    (datetime, "TIMESTAMP"),
    (date, "DATE"),
    (uuid.UUID, "UUID"),
    (bytes, "BLOB"),
    (str, "VARCHAR"),
]


def column_type(annotation: Any) -> tuple[str, bool]:
    """SQL column type for a field annotation, and whether it is nullable.

    Raises:
        ConfigurationError: For annotations without a column mapping
    """
    nullable = False
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        nullable = len(args) != len(get_args(annotation))
        if len(args) != 1:
            raise ConfigurationError(f"Unsupported column annotation {annotation!r}")
        annotation = args[0]

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return "VARCHAR", nullable
        for python_type, sql_type in _COLUMN_TYPES:
            if issubclass(annotation, python_type):
                return sql_type, nullable
    raise ConfigurationError(f"Unsupported column annotation {annotation!r}")


def _sequence_name(entity_type: type[BaseModel]) -> str:
    return f"{entity_table_name(entity_type)}_{entity_key_field(entity_type)}_seq"


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class DuckDBCollection(QueryableCollection[EntityT]):
    scope: DuckDBScope

    async def _query(self, predicates: tuple[Predicate, ...], limit: int | None) -> list[EntityT]:
        fields = list(self.entity_type.model_fields)
        sql = (
            f"SELECT {', '.join(quote_identifier(name) for name in fields)} "
            f"FROM {quote_identifier(entity_table_name(self.entity_type))}"
        )
        where, params = compile_where(predicates)
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {quote_identifier(entity_key_field(self.entity_type))}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"

        rows = self.scope.execute(sql, params).fetchall()
        return [self.entity_type.model_validate(dict(zip(fields, row, strict=True))) for row in rows]


class DuckDBScope(TrackingScope):
    """Unit of work running on a dedicated cursor."""

    def __init__(self, store: DuckDBStore, cursor: duckdb.DuckDBPyConnection) -> None:
        super().__init__()
        self.store = store
        self.cursor = cursor
        self._in_transaction = False

    def get_collection(self, entity_type: type[EntityT]) -> DuckDBCollection[EntityT]:
        self.store.ensure_table(entity_type, self.cursor if self._in_transaction else None)
        return DuckDBCollection(self, entity_type)

    def execute(self, sql: str, params: list[Any] | None = None) -> duckdb.DuckDBPyConnection:
        if not self._in_transaction:
            self.cursor.execute("BEGIN TRANSACTION")
            self._in_transaction = True
        logger.debug("SQL: {} | params={}", sql, params)
        return self.cursor.execute(sql, params or [])

    async def _apply(self, changes: ChangeSet) -> None:
        assigned: list[tuple[BaseModel, str, Any]] = []
        try:
            for entity in changes.removed:
                self._delete(entity)
            for entity in changes.modified:
                self._update(entity)
            for entity in changes.added:
                assigned.append(self._insert(entity))
            if self._in_transaction:
                self.cursor.execute("COMMIT")
                self._in_transaction = False
        except Exception:
            await self.rollback()
            raise

        for entity, key_field, key in assigned:
            setattr(entity, key_field, key)

    def _next_key(self, entity_type: type[BaseModel], key_field: str) -> Any:
        if entity_type.model_fields[key_field].annotation is str:
            return uuid.uuid4().hex
        table = quote_identifier(entity_table_name(entity_type))
        row = self.execute(
            f"SELECT greatest(nextval('{_sequence_name(entity_type)}'), "
            f"coalesce((SELECT max({quote_identifier(key_field)}) FROM {table}), 0) + 1)"
        ).fetchone()
        return row[0]

    def _insert(self, entity: BaseModel) -> tuple[BaseModel, str, Any]:
        entity_type = type(entity)
        key_field = entity_key_field(entity_type)
        key = getattr(entity, key_field)
        if is_unset_key(key):
            key = self._next_key(entity_type, key_field)

        values = {name: _column_value(getattr(entity, name)) for name in entity_type.model_fields}
        values[key_field] = key
        columns = ", ".join(quote_identifier(name) for name in values)
        placeholders = ", ".join("?" for _ in values)
        self.execute(
            f"INSERT INTO {quote_identifier(entity_table_name(entity_type))} ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        return entity, key_field, key

    def _update(self, entity: BaseModel) -> None:
        entity_type = type(entity)
        key_field = entity_key_field(entity_type)
        names = [name for name in entity_type.model_fields if name != key_field]
        assignments = ", ".join(f"{quote_identifier(name)} = ?" for name in names)
        params = [_column_value(getattr(entity, name)) for name in names]
        params.append(getattr(entity, key_field))
        table = entity_table_name(entity_type)
        (count,) = self.execute(
            f"UPDATE {quote_identifier(table)} SET {assignments} WHERE {quote_identifier(key_field)} = ?",
            params,
        ).fetchone()
        if count == 0:
            raise ConcurrencyConflictError(table, getattr(entity, key_field))

    def _delete(self, entity: BaseModel) -> None:
        entity_type = type(entity)
        key_field = entity_key_field(entity_type)
        table = entity_table_name(entity_type)
        (count,) = self.execute(
            f"DELETE FROM {quote_identifier(table)} WHERE {quote_identifier(key_field)} = ?",
            [getattr(entity, key_field)],
        ).fetchone()
        if count == 0:
            raise ConcurrencyConflictError(table, getattr(entity, key_field))

    async def rollback(self) -> None:
        await super().rollback()
        if self._in_transaction:
            self._in_transaction = False
            try:
                self.cursor.execute("ROLLBACK")
            except duckdb.TransactionException as e:
                # a failed COMMIT has already ended the transaction
                logger.debug("Rollback skipped: {}", e)

    async def close(self) -> None:
        self.cursor.close()


class DuckDBStore(Store):
    """Store persisting entities in a DuckDB database.

    Args:
        database: Database file path, or ``:memory:``
    """

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self.connection = duckdb.connect(database)
        self._tables: set[type[BaseModel]] = set()
        self._lock = threading.Lock()

    def open_scope(self) -> DuckDBScope:
        return DuckDBScope(self, self.connection.cursor())

    def ensure_table(
        self,
        entity_type: type[BaseModel],
        connection: duckdb.DuckDBPyConnection | None = None,
    ) -> None:
        """Create the table (and key sequence) for ``entity_type`` if needed."""
        with self._lock:
            if entity_type in self._tables:
                return
            key_field = entity_key_field(entity_type)
            columns = []
            for name, info in entity_type.model_fields.items():
                sql_type, nullable = column_type(info.annotation)
                if name == key_field:
                    columns.append(f"{quote_identifier(name)} {sql_type} PRIMARY KEY")
                else:
                    null_clause = "" if nullable else " NOT NULL"
                    columns.append(f"{quote_identifier(name)} {sql_type}{null_clause}")

            target = connection or self.connection
            table = entity_table_name(entity_type)
            target.execute(f"CREATE SEQUENCE IF NOT EXISTS {quote_identifier(_sequence_name(entity_type))} START 1")
            target.execute(f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} ({', '.join(columns)})")
            self._tables.add(entity_type)
            logger.debug("Ensured table {} for {}", table, entity_type.__name__)

    def count(self, entity_type: type[BaseModel]) -> int:
        self.ensure_table(entity_type)
        with self._lock:
            cursor = self.connection.cursor()
            try:
                (count,) = cursor.execute(
                    f"SELECT count(*) FROM {quote_identifier(entity_table_name(entity_type))}"
                ).fetchone()
            finally:
                cursor.close()
        return count

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> DuckDBStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
