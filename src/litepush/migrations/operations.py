"""
Migration operations for SQLite schema changes.

Each operation represents a single schema modification and renders the
literal statements that apply it (forwards). SQLite cannot undo DDL
selectively, so operations carry no rollback statements: a plan is applied
as one transaction or not at all.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .sql import (
    add_column_sql,
    add_foreign_key_sql,
    create_index_sql,
    create_table_sql,
    drop_column_sql,
    drop_foreign_key_sql,
    drop_index_sql,
    drop_table_sql,
    random_shadow_suffix,
    recreate_table_sql,
)
from .state import Column, ForeignKey, Table


@dataclass
class Operation(ABC):
    """
    Base class for all migration operations.

    Operations must implement forwards(), returning the SQL statements
    that apply them, in order.
    """

    @abstractmethod
    def forwards(self) -> list[str]:
        """Generate the forward SQL statements."""
        ...

    def describe(self) -> str:
        """Human-readable description of the operation."""
        return f"{self.__class__.__name__}"


@dataclass
class DropIndex(Operation):
    """
    Remove an index.

    Example:
        DropIndex(table="users", name="users_email_idx")

    Generates:
        DROP INDEX `users_email_idx`
    """

    table: str
    name: str

    def forwards(self) -> list[str]:
        return drop_index_sql(self.name)

    def describe(self) -> str:
        return f"Remove index {self.name}"


@dataclass
class DropForeignKey(Operation):
    """
    Remove the reference clause of a single-column foreign key.

    SQLite has no DROP CONSTRAINT, so the column is redefined in place
    without its REFERENCES clause.

    Generates:
        ALTER TABLE `posts` ALTER COLUMN `user_id` TO `user_id` INTEGER
    """

    table: str
    column: Column

    def forwards(self) -> list[str]:
        return drop_foreign_key_sql(self.table, self.column)

    def describe(self) -> str:
        return f"Remove foreign key {self.column.name} from table {self.table}"


@dataclass
class CreateTable(Operation):
    """
    Create a new table with its columns, primary key and constraints.

    Single-column foreign keys are left out unless ``references`` is set;
    they are attached later by AddForeignKey.

    Generates:
        CREATE TABLE `users` (
            `id` INTEGER NOT NULL,
            `name` TEXT,
            PRIMARY KEY (`id`)
        )
    """

    table: Table
    references: bool = False

    def forwards(self) -> list[str]:
        return create_table_sql(self.table, references=self.references)

    def describe(self) -> str:
        return f"Create table {self.table.name}"


@dataclass
class DropTable(Operation):
    """
    Drop an existing table.

    Generates:
        DROP TABLE `users`
    """

    name: str

    def forwards(self) -> list[str]:
        return drop_table_sql(self.name)

    def describe(self) -> str:
        return f"Remove table {self.name}"


@dataclass
class AddColumn(Operation):
    """
    Add a column to an existing table.

    Generates:
        ALTER TABLE `users` ADD COLUMN `email` TEXT
    """

    table: str
    column: Column

    def forwards(self) -> list[str]:
        return add_column_sql(self.table, self.column)

    def describe(self) -> str:
        return f"Add column {self.column.name} to table {self.table}"


@dataclass
class DropColumn(Operation):
    """
    Remove a column from a table.

    Generates:
        ALTER TABLE `users` DROP COLUMN `nickname`
    """

    table: str
    name: str

    def forwards(self) -> list[str]:
        return drop_column_sql(self.table, self.name)

    def describe(self) -> str:
        return f"Remove column {self.name} from table {self.table}"


@dataclass
class RecreateTable(Operation):
    """
    Rebuild a table through a shadow copy, keeping its rows.

    Used whenever the change cannot be expressed with SQLite's ALTER TABLE
    (type, nullability, default, primary key, unique or foreign key change).
    The shadow suffix is drawn once, when the operation is created, so
    rendering the same operation twice yields the same statements.
    """

    current: Table
    desired: Table
    reasons: list[str] = field(default_factory=list)
    shadow_suffix: str = field(default_factory=random_shadow_suffix)

    def forwards(self) -> list[str]:
        return recreate_table_sql(self.current, self.desired, shadow_suffix=self.shadow_suffix)

    def describe(self) -> str:
        return f"Recreate table {self.desired.name}"


@dataclass
class AddForeignKey(Operation):
    """
    Attach a single-column foreign key by redefining the column.

    Generates:
        ALTER TABLE `posts` ALTER COLUMN `user_id` TO `user_id` INTEGER
            REFERENCES `users`(`id`) ON DELETE CASCADE ON UPDATE NO ACTION
    """

    table: str
    column: Column
    foreign_key: ForeignKey

    def forwards(self) -> list[str]:
        return add_foreign_key_sql(self.table, self.column, self.foreign_key)

    def describe(self) -> str:
        return f"Add foreign key {self.column.name} to table {self.table}"


@dataclass
class CreateIndex(Operation):
    """
    Create an index on a table.

    Generates:
        CREATE INDEX IF NOT EXISTS `posts_title_idx` ON `posts` (`title`)
    """

    table: str
    name: str
    columns: list[str]

    def forwards(self) -> list[str]:
        return create_index_sql(self.table, self.name, self.columns)

    def describe(self) -> str:
        return f"Add index {self.name}"
