"""
Database introspector for reverse schema extraction.

Reads the live schema from a SQLite or libSQL database through three
catalog queries (columns, foreign keys, indexes) built on ``sqlite_master``
and the ``pragma_*`` table-valued functions, then assembles the rows into a
``SchemaState`` that can be compared against the model state.
"""

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel

from ..exceptions import StructuralViolation
from ..types import ColumnType
from .state import SchemaState, Table

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)

SYSTEM_TABLE_PREFIX = "sqlite_"
AUTOINDEX_PREFIX = "sqlite_autoindex"

COLUMNS_QUERY = """
SELECT
    m.name AS table_name,
    c.name AS column_name,
    c.type AS column_type,
    c.pk AS column_pk,
    c."notnull" AS column_notnull,
    c.dflt_value AS column_default
FROM sqlite_master AS m
JOIN pragma_table_info(m.name) AS c
WHERE m.type = 'table'
ORDER BY m.rowid, c.cid
"""

FOREIGN_KEYS_QUERY = """
SELECT
    m.name AS table_name,
    f.id AS foreign_key_id,
    f.seq AS foreign_key_seq,
    f."table" AS foreign_key_table,
    f."from" AS foreign_key_from,
    f."to" AS foreign_key_to,
    f.on_update AS foreign_key_on_update,
    f.on_delete AS foreign_key_on_delete
FROM sqlite_master AS m
JOIN pragma_foreign_key_list(m.name) AS f
WHERE m.type = 'table'
ORDER BY m.rowid, f.id, f.seq
"""

INDEXES_QUERY = """
SELECT
    m.name AS table_name,
    l.name AS index_name,
    l."unique" AS index_unique,
    l.origin AS index_origin,
    i.name AS index_column_name,
    i.seqno AS index_column_seqno
FROM sqlite_master AS m
JOIN pragma_index_list(m.name) AS l
JOIN pragma_index_info(l.name) AS i
WHERE m.type = 'table'
ORDER BY m.rowid, l.name, i.seqno
"""

_COLUMN_TYPE_ALIASES = {
    "TEXT": ColumnType.TEXT,
    "INTEGER": ColumnType.INTEGER,
    "INT": ColumnType.INTEGER,
    "REAL": ColumnType.REAL,
    "BLOB": ColumnType.BLOB,
    "NULL": ColumnType.NULL,
}


class ColumnRow(BaseModel):
    table_name: str
    column_name: str
    column_type: str = ""
    column_pk: int = 0
    column_notnull: int = 0
    column_default: str | None = None


class ForeignKeyRow(BaseModel):
    table_name: str
    foreign_key_id: int
    foreign_key_seq: int
    foreign_key_table: str
    foreign_key_from: str
    foreign_key_to: str | None = None
    foreign_key_on_update: str = "NO ACTION"
    foreign_key_on_delete: str = "NO ACTION"


class IndexColumnRow(BaseModel):
    table_name: str
    index_name: str
    index_unique: int = 0
    index_origin: str = "c"
    # Expression indexes have no column name
    index_column_name: str | None = None
    index_column_seqno: int = 0


def _has_unique(table: Table, columns: list[str]) -> bool:
    return any(unique.column_names == columns for unique in table.uniques)


def ensure_valid_column_type(type_text: str | None) -> ColumnType:
    """
    Normalize a declared column type to a canonical ColumnType.

    Unrecognized types are logged and mapped to ``ColumnType.UNKNOWN``;
    they are not an error.
    """
    text = (type_text or "").strip().upper()
    if not text:
        return ColumnType.UNKNOWN
    column_type = _COLUMN_TYPE_ALIASES.get(text)
    if column_type is None:
        logger.warning("Unknown column type %r", text)
        return ColumnType.UNKNOWN
    return column_type


class DatabaseIntrospector:
    """
    Reverse-introspects a SQLite database into a ``SchemaState``.

    Works over any DB-API 2.0 connection whose cursors return plain
    sequences (stdlib ``sqlite3``, libSQL clients).

    Usage::

        connection = sqlite3.connect("app.db")
        state = DatabaseIntrospector(connection).introspect()
        # state.tables contains all discovered tables with columns, keys and indexes
    """

    def __init__(self, connection: Any, prefix: str | None = None) -> None:
        """
        Initialize the database introspector.

        Args:
            connection: DB-API connection to read the catalog from
            prefix: Only keep tables whose name starts with this prefix
        """
        self._connection = connection
        self.prefix = prefix

    def _query(self, sql: str, row_model: type[RowT]) -> list[RowT]:
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql)
            names = [column[0] for column in cursor.description]
            return [row_model.model_validate(dict(zip(names, row))) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def _keep(self, table_name: str) -> bool:
        if table_name.startswith(SYSTEM_TABLE_PREFIX):
            return False
        return not self.prefix or table_name.startswith(self.prefix)

    def introspect(self) -> SchemaState:
        """
        Introspect the database and return a SchemaState.

        Returns:
            SchemaState containing every user table with its columns,
            primary key, foreign keys, unique constraints and indexes.
        """
        state = SchemaState()

        columns = [row for row in self._query(COLUMNS_QUERY, ColumnRow) if self._keep(row.table_name)]
        foreign_keys = [row for row in self._query(FOREIGN_KEYS_QUERY, ForeignKeyRow) if self._keep(row.table_name)]
        indexes = [row for row in self._query(INDEXES_QUERY, IndexColumnRow) if self._keep(row.table_name)]

        self._build_columns(state, columns)
        self._build_foreign_keys(state, foreign_keys)
        self._build_indexes(state, indexes)

        return state

    def _build_columns(self, state: SchemaState, rows: Iterable[ColumnRow]) -> None:
        for row in rows:
            table = state.tables.get(row.table_name) or state.create_table(row.table_name)
            table.create_column(
                row.column_name,
                ensure_valid_column_type(row.column_type),
                not_null=row.column_notnull == 1,
                default=row.column_default,
            )
            if row.column_pk > 0:
                table.set_primary_key_column(row.column_name, row.column_pk)

    def _build_foreign_keys(self, state: SchemaState, rows: Iterable[ForeignKeyRow]) -> None:
        grouped: dict[tuple[str, int], list[ForeignKeyRow]] = {}
        for row in rows:
            grouped.setdefault((row.table_name, row.foreign_key_id), []).append(row)

        for (table_name, key_id), key_rows in grouped.items():
            key_rows.sort(key=lambda r: r.foreign_key_seq)
            table = state.get_table(table_name)
            first = key_rows[0]

            foreign_table = state.tables.get(first.foreign_key_table)
            if foreign_table is None:
                logger.warning(
                    "Foreign table %r not found for foreign key %d at table %r, skipping.",
                    first.foreign_key_table,
                    key_id,
                    table_name,
                )
                continue

            foreign_columns = self._resolve_foreign_columns(foreign_table, key_rows)
            if foreign_columns is None:
                logger.warning(
                    "Foreign key %d at table %r references missing columns of %r, skipping.",
                    key_id,
                    table_name,
                    foreign_table.name,
                )
                continue

            try:
                table.create_foreign_key(
                    foreign_table,
                    [row.foreign_key_from for row in key_rows],
                    foreign_columns,
                    on_update=first.foreign_key_on_update,
                    on_delete=first.foreign_key_on_delete,
                )
            except StructuralViolation as e:
                logger.warning("Unsupported foreign key %d at table %r, skipping: %s", key_id, table_name, e)

    @staticmethod
    def _resolve_foreign_columns(foreign_table: Table, rows: list[ForeignKeyRow]) -> list[str] | None:
        """
        Target column names of a foreign key.

        A NULL target column means the key references the target's primary
        key, column by column in slot order.
        """
        primary_key = foreign_table.primary_key
        names: list[str] = []
        for position, row in enumerate(rows):
            if row.foreign_key_to is not None:
                name = row.foreign_key_to
            elif position < len(primary_key):
                name = primary_key[position].name
            else:
                return None
            if name not in foreign_table.columns:
                return None
            names.append(name)
        return names

    def _build_indexes(self, state: SchemaState, rows: Iterable[IndexColumnRow]) -> None:
        grouped: dict[tuple[str, str], list[IndexColumnRow]] = {}
        for row in rows:
            grouped.setdefault((row.table_name, row.index_name), []).append(row)

        for (table_name, index_name), index_rows in grouped.items():
            index_rows.sort(key=lambda r: r.index_column_seqno)
            first = index_rows[0]

            # The primary key is already known from the column rows
            if first.index_origin == "pk":
                continue

            if any(row.index_column_name is None for row in index_rows):
                logger.warning("Expression index %r on table %r is not supported, skipping.", index_name, table_name)
                continue

            table = state.get_table(table_name)
            columns = [row.index_column_name for row in index_rows]

            if first.index_unique and not _has_unique(table, columns):
                table.create_unique(columns)

            if first.index_origin == "c" and not index_name.startswith(AUTOINDEX_PREFIX):
                table.create_index(index_name, columns, unique=first.index_unique == 1)


__all__ = ["DatabaseIntrospector", "ensure_valid_column_type"]
