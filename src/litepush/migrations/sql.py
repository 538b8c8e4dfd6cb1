"""
SQL statement generation for SQLite schema changes.

Pure functions from schema entities to literal statements. Nothing here
touches a database or validates input beyond what the schema model and
the differ already guarantee.
"""

import json
import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..types import ColumnType
from .state import Column, ForeignKey, Table

SHADOW_TABLE_MARKER = "__new__"
SHADOW_SUFFIX_ALPHABET = "1234567890abcdef"

# Fills new UNIQUE / PRIMARY KEY columns before rows are copied
UNIQUE_FILL_EXPRESSION = "(abs(random()) % 10000000)"

_UNSET: Any = object()


def quote_identifier(name: str) -> str:
    """Quote a table, column or index name with backticks."""
    return "`" + name.replace("`", "``") + "`"


def escape_string(value: str) -> str:
    """Render a Python string as a single-quoted SQL literal."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class SqlExpression:
    """
    A raw SQL expression used as a column default.

    ``?`` placeholders in ``sql`` are replaced, in order, by the SQL
    literal of each value in ``params``.

    Example:
        SqlExpression("CURRENT_TIMESTAMP")
        SqlExpression("(lower(?))", ("ABC",))  ->  (lower('ABC'))
    """

    sql: str
    params: tuple[Any, ...] = ()

    def to_sql(self, escape: Callable[[str], str] = escape_string) -> str:
        parts = self.sql.split("?")
        if len(parts) - 1 != len(self.params):
            raise ValueError(f"Expression {self.sql!r} expects {len(parts) - 1} parameters, got {len(self.params)}")
        rendered = [parts[0]]
        for param, part in zip(self.params, parts[1:]):
            rendered.append(escape(param) if isinstance(param, str) else sql_literal(param))
            rendered.append(part)
        return "".join(rendered)


def sql_literal(value: Any) -> str:
    """
    Encode a Python value as a SQL literal suitable for a DEFAULT clause.

    - None -> NULL
    - str -> single quoted, embedded quotes doubled
    - bool -> 1 / 0
    - int / float -> decimal literal, ValueError for nan and infinities
    - SqlExpression -> rendered through its own escaping
    - anything else -> JSON encoded, then single quoted
    """
    if value is None:
        return "NULL"
    if isinstance(value, SqlExpression):
        return value.to_sql(escape_string)
    if isinstance(value, str):
        return escape_string(value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"SQLite has no literal for {value!r}")
        return repr(float(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"SQLite has no literal for {value!r}")
        return str(value)
    return escape_string(json.dumps(value, default=str))


def placeholder_default(column_type: ColumnType) -> str:
    """Temporary default that gives existing rows a legal value."""
    return "0" if ColumnType(column_type).is_numeric else "''"


def random_shadow_suffix(length: int = 16) -> str:
    return "".join(random.choices(SHADOW_SUFFIX_ALPHABET, k=length))


def shadow_table_name(table_name: str, suffix: str) -> str:
    return f"{table_name}{SHADOW_TABLE_MARKER}{suffix}"


def define_column_sql(column: Column, default: str | None = _UNSET, force_default: bool = False) -> str:
    """
    Render a column definition: name, type, NOT NULL, AUTO_INCREMENT, DEFAULT.

    Args:
        column: Column to render
        default: Literal default overriding the column's own default
        force_default: Use a type placeholder when there is no default
    """
    value = column.default if default is _UNSET else default
    if value is None and force_default:
        value = placeholder_default(column.type)

    parts = [quote_identifier(column.name)]

    # Untyped columns are legal in SQLite
    if column.type != ColumnType.UNKNOWN:
        parts.append(str(column.type))

    if column.not_null:
        parts.append("NOT NULL")

    if column.auto_increment:
        parts.append("AUTO_INCREMENT")

    if value is not None:
        parts.append(f"DEFAULT {value}")

    return " ".join(parts)


def references_sql(fk: ForeignKey) -> str:
    """Inline REFERENCES clause for a single-column foreign key."""
    return (
        f"REFERENCES {quote_identifier(fk.foreign_table.name)}({quote_identifier(fk.foreign_columns[0].name)})"
        f" ON DELETE {fk.on_delete} ON UPDATE {fk.on_update}"
    )


def _column_list(columns: Sequence[Column] | Sequence[str]) -> str:
    names = [c if isinstance(c, str) else c.name for c in columns]
    return ",".join(quote_identifier(name) for name in names)


def create_table_sql(table: Table, references: bool = True, name: str | None = None) -> list[str]:
    """
    Render a CREATE TABLE statement for the given table.

    Single-column foreign keys are rendered inline on their column only when
    ``references`` is true; multi-column foreign keys are always rendered as
    table constraints.
    """
    rows: list[str] = []

    single_column_fks = {fk.local_columns[0].name: fk for fk in table.foreign_keys if fk.is_single_column}

    for column in table.columns.values():
        row = define_column_sql(column)
        fk = single_column_fks.get(column.name)
        if fk is not None and references:
            row += " " + references_sql(fk)
        rows.append(f"    {row}")

    if table.primary_key:
        rows.append(f"    PRIMARY KEY ({_column_list(table.primary_key)})")

    for fk in table.foreign_keys:
        if fk.is_single_column:
            continue
        rows.append(
            f"    FOREIGN KEY ({_column_list(fk.local_columns)}) REFERENCES "
            f"{quote_identifier(fk.foreign_table.name)}({_column_list(fk.foreign_columns)})"
            f" ON DELETE {fk.on_delete} ON UPDATE {fk.on_update}"
        )

    for unique in table.uniques:
        rows.append(f"    UNIQUE ({_column_list(unique.columns)})")

    sql = f"CREATE TABLE {quote_identifier(name or table.name)} (\n" + ",\n".join(rows) + "\n)"
    return [sql]


def drop_table_sql(table_name: str) -> list[str]:
    return [f"DROP TABLE {quote_identifier(table_name)}"]


def drop_column_sql(table_name: str, column_name: str) -> list[str]:
    return [f"ALTER TABLE {quote_identifier(table_name)} DROP COLUMN {quote_identifier(column_name)}"]


def add_column_sql(table_name: str, column: Column, default: str | None = _UNSET) -> list[str]:
    """
    Render the statements adding ``column`` to ``table_name``.

    A NOT NULL column without a default is added in two steps: first with a
    placeholder default so existing rows get a legal value, then redefined
    to its real definition.
    """
    value = column.default if default is _UNSET else default
    table = quote_identifier(table_name)

    if column.not_null and value is None:
        return [
            f"ALTER TABLE {table} ADD COLUMN {define_column_sql(column, default=None, force_default=True)}",
            f"ALTER TABLE {table} ALTER COLUMN {quote_identifier(column.name)} TO {define_column_sql(column, default=None)}",
        ]

    return [f"ALTER TABLE {table} ADD COLUMN {define_column_sql(column, default=value)}"]


def copy_data_sql(source: str, target: str, columns: Sequence[str]) -> list[str]:
    column_list = _column_list(columns)
    return [f"INSERT INTO {quote_identifier(target)} ({column_list}) SELECT {column_list} FROM {quote_identifier(source)}"]


def rename_table_sql(old_name: str, new_name: str) -> list[str]:
    return [f"ALTER TABLE {quote_identifier(old_name)} RENAME TO {quote_identifier(new_name)}"]


def recreate_table_sql(current: Table, desired: Table, shadow_suffix: str | None = None) -> list[str]:
    """
    Rebuild ``current`` into the shape of ``desired`` while keeping its rows.

    1. Add every new column to the current table with a temporary default
    2. Fill new PRIMARY KEY / single-column UNIQUE columns with random values
    3. Create a shadow table with the desired shape (no inline references)
    4. Copy the desired column list from the current table into the shadow
    5. Drop the current table
    6. Rename the shadow table to the original name

    Args:
        current: Table as it exists now
        desired: Table as it should be
        shadow_suffix: Suffix of the temporary table name, random when omitted
    """
    statements: list[str] = []
    shadow_name = shadow_table_name(desired.name, shadow_suffix or random_shadow_suffix())

    primary_key_names = {column.name for column in desired.primary_key}
    unique_names = {unique.columns[0].name for unique in desired.uniques if len(unique.columns) == 1}

    for column in desired.columns.values():
        if column.name in current.columns:
            continue

        must_be_unique = column.name in primary_key_names or column.name in unique_names

        temporary_default = placeholder_default(column.type)
        if column.default is not None and not must_be_unique:
            temporary_default = column.default

        statements.extend(add_column_sql(current.name, column, default=temporary_default))

        if must_be_unique:
            statements.append(
                f"UPDATE {quote_identifier(current.name)} SET {quote_identifier(column.name)} = {UNIQUE_FILL_EXPRESSION}"
            )

    statements.extend(create_table_sql(desired, references=False, name=shadow_name))
    statements.extend(copy_data_sql(current.name, shadow_name, list(desired.columns)))
    statements.extend(drop_table_sql(current.name))
    statements.extend(rename_table_sql(shadow_name, current.name))

    return statements


def create_index_sql(table_name: str, index_name: str, columns: Sequence[str]) -> list[str]:
    return [
        f"CREATE INDEX IF NOT EXISTS {quote_identifier(index_name)} ON {quote_identifier(table_name)} ({_column_list(columns)})"
    ]


def drop_index_sql(index_name: str) -> list[str]:
    return [f"DROP INDEX {quote_identifier(index_name)}"]


def drop_foreign_key_sql(table_name: str, column: Column) -> list[str]:
    """Remove a column's reference clause by redefining the column without it."""
    return [
        f"ALTER TABLE {quote_identifier(table_name)} ALTER COLUMN {quote_identifier(column.name)} TO {define_column_sql(column)}"
    ]


def add_foreign_key_sql(table_name: str, column: Column, fk: ForeignKey) -> list[str]:
    """Attach a reference clause by redefining the column with it."""
    return [
        f"ALTER TABLE {quote_identifier(table_name)} ALTER COLUMN {quote_identifier(column.name)} TO "
        f"{define_column_sql(column)} {references_sql(fk)}"
    ]
