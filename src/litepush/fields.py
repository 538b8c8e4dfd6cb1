"""
Column markers for declarative table models.

Markers are attached to model fields with ``typing.Annotated`` and read by
the model introspector. They must be the outermost annotation metadata.

Usage:
    class User(TableModel):
        model_config = TableConfigDict(table_name="users")

        id: Annotated[int, PrimaryKey()]
        email: Annotated[str, Unique()]
        created_at: Annotated[str, DefaultSQL("CURRENT_TIMESTAMP")]

    class Post(TableModel):
        model_config = TableConfigDict(table_name="posts")

        id: Annotated[int, PrimaryKey()]
        user_id: Annotated[int | None, References(User, "id", on_delete="CASCADE")] = None
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .types import ColumnType, ForeignKeyAction

if TYPE_CHECKING:
    from .model_base import TableModel


def _table_name(table: "str | type[TableModel]") -> str:
    if isinstance(table, str):
        return table
    return table.get_table_name()


@dataclass(frozen=True)
class PrimaryKey:
    """Marks a column as part of the primary key, in field declaration order."""


@dataclass(frozen=True)
class Unique:
    """Adds a single-column UNIQUE constraint on the column."""


@dataclass(frozen=True)
class AutoIncrement:
    """Declares the column AUTO_INCREMENT."""


@dataclass(frozen=True)
class SQLType:
    """Overrides the column type derived from the Python annotation."""

    type: ColumnType


@dataclass(frozen=True)
class DefaultSQL:
    """
    A raw SQL default expression.

    Example:
        created_at: Annotated[str, DefaultSQL("CURRENT_TIMESTAMP")]
        slug: Annotated[str, DefaultSQL("(lower(?))", ("untitled",))]
    """

    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class References:
    """
    Single-column foreign key to another table.

    Attributes:
        table: Target table name or model class
        column: Target column name
        on_delete: ON DELETE action
        on_update: ON UPDATE action
    """

    table: "str | type[TableModel]"
    column: str = "id"
    on_delete: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION

    @property
    def table_name(self) -> str:
        return _table_name(self.table)


@dataclass(frozen=True)
class IndexDef:
    """
    Table-level index definition for ``TableConfigDict(indexes=[...])``.

    Unique indexes are declared as UNIQUE constraints instead.
    """

    name: str
    columns: list[str]
    unique: bool = False


@dataclass(frozen=True)
class ForeignKeyDef:
    """Table-level (possibly multi-column) foreign key for ``TableConfigDict(foreign_keys=[...])``."""

    columns: list[str]
    table: "str | type[TableModel]"
    foreign_columns: list[str] = field(default_factory=list)
    on_delete: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION

    @property
    def table_name(self) -> str:
        return _table_name(self.table)


__all__ = [
    "PrimaryKey",
    "Unique",
    "AutoIncrement",
    "SQLType",
    "DefaultSQL",
    "References",
    "IndexDef",
    "ForeignKeyDef",
]
