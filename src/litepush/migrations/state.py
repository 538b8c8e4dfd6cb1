"""
Schema state model for SQLite migrations.

This module provides the classes that represent one point-in-time schema
snapshot: tables, columns, indexes, unique constraints and foreign keys.
Every child entity is created through its owner's factory method, which
links it to the owner immediately, so the graph is always fully linked.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import quote

from ..exceptions import DuplicateNameError, NotFoundError, StructuralViolation
from ..types import ColumnType, ForeignKeyAction

if TYPE_CHECKING:
    from .plan import MigrationPlan


def canonical_column_list(columns: Iterable["Column"]) -> str:
    """
    Render a column set as a sorted, comma-joined string.

    Column names are percent-encoded so that names containing the
    delimiter cannot collide.
    """
    return ",".join(sorted(quote(column.name, safe="") for column in columns))


@dataclass(eq=False)
class Column:
    """
    A single column of a table.

    Attributes:
        table: Owning table
        name: Column name, unique within the table
        type: Canonical SQLite type
        not_null: Whether the column is declared NOT NULL
        default: SQL-encoded literal default, or None when absent
        auto_increment: Whether the column is declared AUTO_INCREMENT
    """

    table: "Table" = field(repr=False)
    name: str
    type: ColumnType
    not_null: bool = False
    default: str | None = None
    auto_increment: bool = False

    def __post_init__(self) -> None:
        self.type = ColumnType(self.type)
        if self.default == "NULL":
            self.default = None

    def rename(self, new_name: str) -> None:
        """Rename the column in place on its owning table."""
        self.table.rename_column(self.name, new_name)

    def is_unique(self) -> bool:
        """Whether a single-column UNIQUE constraint covers this column."""
        return any(len(unique.columns) == 1 and unique.columns[0] is self for unique in self.table.uniques)

    def primary_key_slot(self) -> int:
        """1-based primary key slot of this column, or 0 when not part of the key."""
        for slot, column in self.table._primary_key_slots.items():
            if column is self:
                return slot
        return 0

    def same_definition(self, other: "Column") -> bool:
        """Check whether name, type, nullability and default all match."""
        return (
            self.name == other.name
            and self.type == other.type
            and self.not_null == other.not_null
            and self.default == other.default
        )

    @property
    def qualified_name(self) -> str:
        return f"{self.table.name}.{self.name}"


@dataclass(eq=False)
class Index:
    """
    A named index on a table.

    Attributes:
        table: Owning table
        name: Index name, unique across the whole snapshot
        columns: Ordered indexed columns
        unique: Whether the index enforces uniqueness
    """

    table: "Table" = field(repr=False)
    name: str
    columns: list[Column]
    unique: bool = False

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def verify(self) -> None:
        for column in self.columns:
            if column.table is not self.table:
                raise StructuralViolation(f"Index {self.name} column {column.name} must belong to table {self.table.name}")

    def same_shape(self, other: "Index") -> bool:
        """Compare name, uniqueness and the ordered column list."""
        return (
            self.unique == other.unique
            and self.name == other.name
            and self.column_names == other.column_names
        )


@dataclass(eq=False)
class Unique:
    """
    A UNIQUE constraint over one or more columns of a table.

    Attributes:
        table: Owning table
        columns: Ordered constrained columns
    """

    table: "Table" = field(repr=False)
    columns: list[Column]

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def verify(self) -> None:
        for column in self.columns:
            if column.table is not self.table:
                raise StructuralViolation(f"Unique column {column.name} must belong to table {self.table.name}")
        seen: set[int] = set()
        for column in self.columns:
            if id(column) in seen:
                raise StructuralViolation(f"Unique columns must be unique: {column.name} on table {self.table.name}")
            seen.add(id(column))

    def canonical(self) -> str:
        return canonical_column_list(self.columns)


@dataclass(eq=False)
class ForeignKey:
    """
    A foreign key from columns of the owning table to columns of another table.

    Attributes:
        table: Owning (referencing) table
        foreign_table: Referenced table, never the owning table
        local_columns: Ordered referencing columns
        foreign_columns: Ordered referenced columns, same length as local_columns
        on_update: ON UPDATE action
        on_delete: ON DELETE action
    """

    table: "Table" = field(repr=False)
    foreign_table: "Table" = field(repr=False)
    local_columns: list[Column]
    foreign_columns: list[Column]
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION

    def __post_init__(self) -> None:
        self.on_update = ForeignKeyAction(self.on_update)
        self.on_delete = ForeignKeyAction(self.on_delete)

    @property
    def is_single_column(self) -> bool:
        return len(self.local_columns) == 1

    def verify(self) -> None:
        if self.foreign_table is self.table:
            raise StructuralViolation(f"Foreign key on table {self.table.name} must not reference its own table")

        if not self.foreign_columns:
            raise StructuralViolation("Foreign columns must not be empty")

        if not self.local_columns:
            raise StructuralViolation("Local columns must not be empty")

        if len(self.foreign_columns) != len(self.local_columns):
            raise StructuralViolation("Foreign key columns and local columns must have the same length")

        for local, foreign in zip(self.local_columns, self.foreign_columns):
            if foreign.table is not self.foreign_table:
                raise StructuralViolation(
                    f"Foreign key column {foreign.name} must belong to the foreign table {self.foreign_table.name}"
                )
            if local.table is not self.table:
                raise StructuralViolation(f"Local column {local.name} must belong to the local table {self.table.name}")

        for label, columns in (("Local", self.local_columns), ("Foreign", self.foreign_columns)):
            seen: set[int] = set()
            for column in columns:
                if id(column) in seen:
                    raise StructuralViolation(f"{label} columns must be unique: {column.name}")
                seen.add(id(column))

    def canonical(self) -> str:
        return (
            f"{canonical_column_list(self.local_columns)} -> {canonical_column_list(self.foreign_columns)}"
            f" on {self.foreign_table.name} | {self.on_delete} | {self.on_update}"
        )


class Table:
    """
    Represents the complete state of a table.

    Attributes:
        name: Table name, unique within the snapshot
        schema: Owning snapshot
        columns: Dict of column name to Column, in declaration order
        uniques: List of UNIQUE constraints
        foreign_keys: List of foreign keys
        indexes: Dict of index name to Index
    """

    def __init__(self, schema: "SchemaState", name: str):
        self.schema = schema
        self.name = name
        self.columns: dict[str, Column] = {}
        self.uniques: list[Unique] = []
        self.foreign_keys: list[ForeignKey] = []
        self.indexes: dict[str, Index] = {}
        self._primary_key_slots: dict[int, Column] = {}

    # ── Columns ─────────────────────────────────────────────────────

    def create_column(
        self,
        name: str,
        type: ColumnType | str,
        not_null: bool = False,
        default: str | None = None,
        auto_increment: bool = False,
        unique: bool = False,
    ) -> Column:
        """
        Create a column on this table.

        Args:
            name: Column name
            type: Canonical column type
            not_null: Declare the column NOT NULL
            default: SQL-encoded literal default
            auto_increment: Declare the column AUTO_INCREMENT
            unique: Also create a single-column UNIQUE constraint

        Returns:
            The new Column

        Raises:
            DuplicateNameError: If a column with this name already exists
        """
        if name in self.columns:
            raise DuplicateNameError(f"Duplicate column: {name} on table {self.name}", name=name)

        column = Column(
            table=self,
            name=name,
            type=ColumnType(type),
            not_null=not_null,
            default=default,
            auto_increment=auto_increment,
        )
        self.columns[name] = column

        if unique:
            self.create_unique([name])

        return column

    def get_column(self, name: str) -> Column:
        column = self.columns.get(name)
        if column is None:
            raise NotFoundError(f"Column not found: {name} on table {self.name}", name=name)
        return column

    def rename_column(self, old_name: str, new_name: str) -> None:
        """
        Rename a column, keeping its position in the column order.

        Raises:
            NotFoundError: If old_name does not exist
            DuplicateNameError: If new_name is already taken
        """
        column = self.get_column(old_name)
        if new_name == old_name:
            return
        if new_name in self.columns:
            raise DuplicateNameError(f"Duplicate column: {new_name} on table {self.name}", name=new_name)
        column.name = new_name
        self.columns = {(new_name if key == old_name else key): value for key, value in self.columns.items()}

    def _resolve_columns(self, columns: Sequence[str | Column]) -> list[Column]:
        return [self.get_column(c) if isinstance(c, str) else c for c in columns]

    # ── Primary key ─────────────────────────────────────────────────

    @property
    def primary_key(self) -> list[Column]:
        """Primary key columns ordered by slot."""
        return [self._primary_key_slots[slot] for slot in sorted(self._primary_key_slots)]

    def set_primary_key_column(self, column: str | Column, slot: int = 1) -> None:
        """
        Place a column in the given 1-based primary key slot.

        Slots may be filled in any order, but every slot up to the highest
        one must be filled before the table verifies.

        Raises:
            StructuralViolation: If slot < 1, the slot is already occupied
                or the column already holds another slot
        """
        resolved = self._resolve_columns([column])[0]
        if slot < 1:
            raise StructuralViolation("Primary key slot must be greater than 0 (slot 0 means no primary key)")
        if slot in self._primary_key_slots:
            raise StructuralViolation(f"Primary key slot {slot} already set on table {self.name}")
        if resolved.table is not self:
            raise StructuralViolation(f"Primary key column {resolved.name} must belong to table {self.name}")
        if any(c is resolved for c in self._primary_key_slots.values()):
            raise StructuralViolation(f"Column {resolved.name} already in the primary key of table {self.name}")
        self._primary_key_slots[slot] = resolved

    def set_primary_key(self, *columns: str | Column) -> None:
        """Assign the given columns to primary key slots 1..n."""
        for slot, column in enumerate(columns, start=1):
            self.set_primary_key_column(column, slot)

    # ── Constraints and indexes ─────────────────────────────────────

    def create_index(self, name: str, columns: Sequence[str | Column], unique: bool = False) -> Index:
        """
        Create a named index on this table.

        Raises:
            DuplicateNameError: If any table of the snapshot already has an index with this name
            StructuralViolation: If a column belongs to another table
        """
        existing = self.schema.find_index(name)
        if existing is not None:
            raise DuplicateNameError(f"Duplicate index: {name} (already on table {existing.table.name})", name=name)

        index = Index(table=self, name=name, columns=self._resolve_columns(columns), unique=unique)
        index.verify()
        self.indexes[name] = index
        return index

    def create_unique(self, columns: Sequence[str | Column]) -> Unique:
        """
        Create a UNIQUE constraint on this table.

        Raises:
            StructuralViolation: On a duplicate constraint, a repeated column
                or a column that belongs to another table
        """
        unique = Unique(table=self, columns=self._resolve_columns(columns))
        unique.verify()
        for existing in self.uniques:
            if len(existing.columns) == len(unique.columns) and all(
                a is b for a, b in zip(existing.columns, unique.columns)
            ):
                raise StructuralViolation(f"Duplicate unique ({', '.join(unique.column_names)}) on table {self.name}")
        self.uniques.append(unique)
        return unique

    def create_foreign_key(
        self,
        foreign_table: "Table | str",
        local_columns: Sequence[str | Column],
        foreign_columns: Sequence[str | Column],
        on_update: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION,
        on_delete: ForeignKeyAction | str = ForeignKeyAction.NO_ACTION,
    ) -> ForeignKey:
        """
        Create a foreign key from this table to another table of the snapshot.

        Raises:
            NotFoundError: If the target table or a named column does not exist
            StructuralViolation: If any foreign key invariant is violated
        """
        target = self.schema.get_table(foreign_table) if isinstance(foreign_table, str) else foreign_table
        if target.schema is not self.schema:
            raise StructuralViolation(f"Foreign table {target.name} must belong to the same schema as {self.name}")

        foreign_key = ForeignKey(
            table=self,
            foreign_table=target,
            local_columns=self._resolve_columns(local_columns),
            foreign_columns=target._resolve_columns(foreign_columns),
            on_update=ForeignKeyAction(on_update),
            on_delete=ForeignKeyAction(on_delete),
        )
        foreign_key.verify()
        self.foreign_keys.append(foreign_key)
        return foreign_key

    # ── Verification ────────────────────────────────────────────────

    def verify_primary_key(self) -> None:
        slots = sorted(self._primary_key_slots)
        if slots != list(range(1, len(slots) + 1)):
            raise StructuralViolation(f"Primary key of table {self.name} has unassigned slots (assigned: {slots})")
        for column in self._primary_key_slots.values():
            if self.columns.get(column.name) is not column:
                raise StructuralViolation(f"Primary key column {column.name} must belong to table {self.name}")
        names = [c.name for c in self._primary_key_slots.values()]
        if len(set(names)) != len(names):
            raise StructuralViolation(f"Primary key of table {self.name} repeats a column ({names})")

    def verify(self) -> None:
        """
        Re-check every invariant of this table.

        Raises:
            StructuralViolation: On the first violation found
        """
        self.verify_primary_key()
        for name, column in self.columns.items():
            if column.table is not self or column.name != name:
                raise StructuralViolation(f"Column {name} must belong to table {self.name}")
        for name, index in self.indexes.items():
            if index.table is not self or index.name != name:
                raise StructuralViolation(f"Index {name} must belong to table {self.name}")
            index.verify()
        for foreign_key in self.foreign_keys:
            if foreign_key.table is not self:
                raise StructuralViolation(f"Foreign key must belong to table {self.name}")
            foreign_key.verify()
        for unique in self.uniques:
            if unique.table is not self:
                raise StructuralViolation(f"Unique must belong to table {self.name}")
            unique.verify()

    def describe(self) -> str:
        """Multi-line, DDL-like rendering of the table for debugging."""
        lines = [f"Table ({self.name}) {{"]
        for column in self.columns.values():
            parts = [column.name]
            if column.type:
                parts.append(str(column.type))
            if column.not_null:
                parts.append("NOT NULL")
            if column.auto_increment:
                parts.append("AUTOINCREMENT")
            if column.default is not None:
                parts.append(f"DEFAULT {column.default}")
            lines.append("    " + " ".join(parts))

        lines.append("")
        lines.append(f"    PRIMARY KEY ({', '.join(c.name for c in self.primary_key)})")
        for unique in self.uniques:
            lines.append(f"    UNIQUE ({', '.join(unique.column_names)})")

        if self.foreign_keys:
            lines.append("")
            for fk in self.foreign_keys:
                lines.append(
                    f"    FOREIGN KEY ({', '.join(c.name for c in fk.local_columns)}) REFERENCES "
                    f"{fk.foreign_table.name} ({', '.join(c.name for c in fk.foreign_columns)}) "
                    f"ON UPDATE {fk.on_update} ON DELETE {fk.on_delete}"
                )

        if self.indexes:
            lines.append("")
            for index in self.indexes.values():
                lines.append(f"    INDEX {index.name} ({', '.join(index.column_names)})")

        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Table(name={self.name!r}, columns={list(self.columns)})"


@dataclass
class SchemaState:
    """
    Represents the complete database schema at one point in time.

    Attributes:
        tables: Dict of table name to Table, in creation order
    """

    tables: dict[str, Table] = field(default_factory=dict)

    def create_table(self, name: str) -> Table:
        """
        Create an empty table in this snapshot.

        Raises:
            DuplicateNameError: If a table with this name already exists
        """
        if name in self.tables:
            raise DuplicateNameError(f"Duplicate table: {name}", name=name)
        table = Table(self, name)
        self.tables[name] = table
        return table

    def get_table(self, name: str) -> Table:
        table = self.tables.get(name)
        if table is None:
            raise NotFoundError(f"Table not found: {name}", name=name)
        return table

    def rename_table(self, old_name: str, new_name: str) -> None:
        table = self.get_table(old_name)
        if new_name == old_name:
            return
        if new_name in self.tables:
            raise DuplicateNameError(f"Duplicate table: {new_name}", name=new_name)
        table.name = new_name
        self.tables = {(new_name if key == old_name else key): value for key, value in self.tables.items()}

    def remove_table(self, name: str) -> None:
        """
        Remove a table from the snapshot.

        Raises:
            NotFoundError: If the table does not exist
            StructuralViolation: If another table still references it
        """
        table = self.get_table(name)
        referencing = self.referencing_tables().get(name, [])
        if referencing:
            raise StructuralViolation(f"Table {name} is still referenced by: {', '.join(referencing)}")
        del self.tables[table.name]

    def find_index(self, name: str) -> Index | None:
        for table in self.tables.values():
            index = table.indexes.get(name)
            if index is not None:
                return index
        return None

    def all_indexes(self) -> list[Index]:
        return [index for table in self.tables.values() for index in table.indexes.values()]

    def all_single_column_foreign_keys(self) -> list[ForeignKey]:
        return [fk for table in self.tables.values() for fk in table.foreign_keys if fk.is_single_column]

    def references_to(self, table_name: str) -> list[Column]:
        """Local columns of every other table's foreign keys that target table_name."""
        columns: list[Column] = []
        for table in self.tables.values():
            if table.name == table_name:
                continue
            for fk in table.foreign_keys:
                if fk.foreign_table.name == table_name:
                    columns.extend(fk.local_columns)
        return columns

    def referencing_tables(self) -> dict[str, list[str]]:
        """Map each referenced table name to the names of the tables referencing it."""
        graph: dict[str, list[str]] = {}
        for table in self.tables.values():
            for fk in table.foreign_keys:
                referencing = graph.setdefault(fk.foreign_table.name, [])
                if table.name not in referencing:
                    referencing.append(table.name)
        return graph

    def verify(self) -> None:
        """
        Re-check every invariant across the whole snapshot.

        Raises:
            StructuralViolation: On the first violation found
        """
        index_owners: dict[str, str] = {}
        for name, table in self.tables.items():
            if table.schema is not self or table.name != name:
                raise StructuralViolation(f"Table {name} must belong to this schema")
            table.verify()
            for index_name in table.indexes:
                if index_name in index_owners:
                    raise DuplicateNameError(
                        f"Duplicate index: {index_name} on tables {index_owners[index_name]} and {name}",
                        name=index_name,
                    )
                index_owners[index_name] = name
            for fk in table.foreign_keys:
                if self.tables.get(fk.foreign_table.name) is not fk.foreign_table:
                    raise StructuralViolation(
                        f"Foreign key on table {name} references table {fk.foreign_table.name} outside this schema"
                    )

    @property
    def is_empty(self) -> bool:
        return not self.tables

    def diff(self, target: "SchemaState", creation_mode: bool = False) -> "MigrationPlan":
        """
        Compute the operations needed to transform this state into target state.

        Args:
            target: The desired schema state
            creation_mode: Only allowed on an empty state; skips foreign key additions

        Returns:
            MigrationPlan with ordered operations and a summary
        """
        from .differ import diff_schemas

        return diff_schemas(self, target, creation_mode=creation_mode)

    def describe(self) -> str:
        return "\n\n".join(table.describe() for table in self.tables.values())

    def __repr__(self) -> str:
        return f"SchemaState(tables={list(self.tables.keys())})"
