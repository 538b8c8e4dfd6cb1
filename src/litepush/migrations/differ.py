"""
Schema diffing for SQLite migrations.

Compares a current and a desired SchemaState and produces a MigrationPlan.
SQLite's ALTER TABLE cannot change a column's type, nullability or default,
nor a table's primary key, unique constraints or foreign keys, so any such
change rebuilds the whole table. Column removals and index changes are
applied in place.

Operations are emitted in a fixed global order:

1. Drop indexes that are gone or changed
2. Drop single-column foreign keys of tables whose target is rebuilt
3. Create new tables
4. Drop removed tables
5. Add standalone columns
6. Drop standalone columns
7. Recreate tables
8. Re-add single-column foreign keys (skipped in creation mode)
9. Create new or changed indexes
"""

from ..exceptions import ContractViolation, ModeViolation, NotFoundError, StructuralViolation
from .changes import Incremental, Recreate, TableChange, Unchanged
from .operations import (
    AddColumn,
    AddForeignKey,
    CreateIndex,
    CreateTable,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropTable,
    Operation,
    RecreateTable,
)
from .plan import MigrationPlan
from .state import Column, Index, SchemaState, Table, canonical_column_list
from .summary import PushSummary

REASON_ADDED_COLUMNS = "added columns"
REASON_PRIMARY_KEY = "pk"
REASON_UNIQUES = "uniques"
REASON_FOREIGN_KEYS = "fks"
REASON_UNIQUE_INDEXES = "unique indexes (migrate to UNIQUE on definition)"


def _primary_keys_equal(current: Table, desired: Table) -> bool:
    return canonical_column_list(current.primary_key) == canonical_column_list(desired.primary_key)


def _canonical_uniques(table: Table) -> str:
    return ",".join(sorted({unique.canonical() for unique in table.uniques}))


def _canonical_foreign_keys(table: Table) -> str:
    return ",".join(sorted({fk.canonical() for fk in table.foreign_keys}))


def _format_default(value: str | None) -> str:
    return "NULL" if value is None else value


def _index_changed(current: Index, desired: Index) -> bool:
    return current.table.name != desired.table.name or not current.same_shape(desired)


class SchemaDiffer:
    """
    Computes the MigrationPlan that turns ``current`` into ``desired``.

    Each instance builds fresh working sets, so a differ is single use.

    Usage::

        plan = SchemaDiffer(current, desired).compute()
    """

    def __init__(self, current: SchemaState, desired: SchemaState, creation_mode: bool = False):
        """
        Initialize the differ.

        Args:
            current: Schema as it exists in the database
            desired: Schema as it should be
            creation_mode: Bulk-create tables into an empty database without
                attaching single-column foreign keys

        Raises:
            ModeViolation: If creation_mode is set and current is not empty
        """
        if creation_mode and not current.is_empty:
            raise ModeViolation("Creation mode is not supported for existing tables")

        self.current = current
        self.desired = desired
        self.creation_mode = creation_mode

        self.changes: dict[str, TableChange] = {}
        self.drop_references: list[str] = []

    # ── Lookups ─────────────────────────────────────────────────────

    @staticmethod
    def _require_table(schema: SchemaState, name: str) -> Table:
        try:
            return schema.get_table(name)
        except NotFoundError as e:
            raise ContractViolation(f"Classification refers to missing table {name}") from e

    def _mark_drop_references(self, table_name: str) -> None:
        if table_name not in self.drop_references:
            self.drop_references.append(table_name)

    # ── Classification ──────────────────────────────────────────────

    def _column_edit_reasons(self, current: Table, desired: Table) -> list[str]:
        reasons: list[str] = []
        for column in current.columns.values():
            target = desired.columns.get(column.name)
            if target is None or column.same_definition(target):
                continue
            if column.type != target.type:
                reasons.append(f"type of column {column.name} of table {current.name}")
            if column.not_null != target.not_null:
                reasons.append(f"notNull of column {column.name} of table {current.name}")
            if column.default != target.default:
                reasons.append(
                    f"default of column {column.name} of table {current.name} "
                    f"(from {_format_default(column.default)} to {_format_default(target.default)})"
                )
        return reasons

    def _structural_reasons(self, current: Table, desired: Table) -> list[str]:
        reasons: list[str] = []
        if any(name not in current.columns for name in desired.columns):
            reasons.append(REASON_ADDED_COLUMNS)
        if not _primary_keys_equal(current, desired):
            reasons.append(REASON_PRIMARY_KEY)
        if _canonical_uniques(current) != _canonical_uniques(desired):
            reasons.append(REASON_UNIQUES)
        if _canonical_foreign_keys(current) != _canonical_foreign_keys(desired):
            reasons.append(REASON_FOREIGN_KEYS)
        if any(index.unique for index in current.indexes.values()):
            reasons.append(REASON_UNIQUE_INDEXES)
        return reasons

    def _classify_rebuilds(self) -> dict[str, Recreate]:
        """
        Find the tables that must be rebuilt and the tables whose single-column
        foreign keys must be dropped and re-added around the rebuild.
        """
        rebuilds: dict[str, Recreate] = {}
        references = self.current.referencing_tables()

        for name, current_table in self.current.tables.items():
            desired_table = self.desired.tables.get(name)
            if desired_table is None:
                continue

            reasons = self._column_edit_reasons(current_table, desired_table)
            structural = self._structural_reasons(current_table, desired_table)

            if structural:
                for referencing in references.get(name, []):
                    if referencing in self.desired.tables:
                        self._mark_drop_references(referencing)

            reasons.extend(structural)
            if reasons:
                rebuilds[name] = Recreate(table=name, reasons=tuple(reasons), structural=bool(structural))
                self._mark_drop_references(name)

        return rebuilds

    def _index_changes(self, rebuilds: dict[str, Recreate]) -> tuple[dict[str, Index], dict[str, Index]]:
        """
        Diff indexes by name across the snapshots.

        Returns:
            (indexes to remove, indexes to add), keyed by index name
        """
        current_indexes = {index.name: index for index in self.current.all_indexes()}
        desired_indexes = {index.name: index for index in self.desired.all_indexes()}

        to_remove: dict[str, Index] = {}
        for name, index in current_indexes.items():
            # Dropping the table drops its indexes
            if index.table.name not in self.desired.tables:
                continue
            target = desired_indexes.get(name)
            if target is None or _index_changed(index, target):
                to_remove[name] = index

        to_add: dict[str, Index] = {}
        for name, index in desired_indexes.items():
            source = current_indexes.get(name)
            if source is None or _index_changed(source, index):
                to_add[name] = index

        # A rebuilt table loses every index and gets all desired ones back
        for table_name in rebuilds:
            for index in self._require_table(self.current, table_name).indexes.values():
                to_remove.setdefault(index.name, index)
            for index in self._require_table(self.desired, table_name).indexes.values():
                to_add.setdefault(index.name, index)

        return to_remove, to_add

    # ── Plan ────────────────────────────────────────────────────────

    def compute(self) -> MigrationPlan:
        """
        Verify both snapshots, classify every table and emit the operations.

        Returns:
            MigrationPlan with operations in global order and a summary

        Raises:
            StructuralViolation: If either snapshot breaks an invariant
                or the desired one holds a unique index
        """
        self.current.verify()
        self.desired.verify()
        for table in self.desired.tables.values():
            for index in table.indexes.values():
                if index.unique:
                    raise StructuralViolation(
                        f"Unique index {index.name} on table {table.name} is not supported, declare it as UNIQUE"
                    )

        added_tables = [t for name, t in self.desired.tables.items() if name not in self.current.tables]
        removed_tables = [t for name, t in self.current.tables.items() if name not in self.desired.tables]
        added_names = {t.name for t in added_tables}

        rebuilds = self._classify_rebuilds()
        indexes_to_remove, indexes_to_add = self._index_changes(rebuilds)

        # New columns always rebuild the table, so no standalone column is added
        columns_to_add: list[Column] = []
        columns_to_remove: list[Column] = []

        for name, current_table in self.current.tables.items():
            desired_table = self.desired.tables.get(name)
            if desired_table is None:
                continue

            if name in rebuilds:
                self.changes[name] = rebuilds[name]
                continue

            removed = [c for c in current_table.columns.values() if c.name not in desired_table.columns]
            columns_to_remove.extend(removed)

            change = Incremental(
                table=name,
                removed_columns=tuple(c.name for c in removed),
                added_indexes=tuple(i.name for i in indexes_to_add.values() if i.table.name == name),
                removed_indexes=tuple(i.name for i in indexes_to_remove.values() if i.table.name == name),
            )
            if change.removed_columns or change.added_indexes or change.removed_indexes:
                self.changes[name] = change
            else:
                self.changes[name] = Unchanged(table=name)

        operations: list[Operation] = []

        for index in indexes_to_remove.values():
            operations.append(DropIndex(table=index.table.name, name=index.name))

        for fk in self.current.all_single_column_foreign_keys():
            if fk.table.name in self.drop_references:
                operations.append(DropForeignKey(table=fk.table.name, column=fk.local_columns[0]))

        for table in added_tables:
            operations.append(CreateTable(table=table, references=False))

        for table in removed_tables:
            operations.append(DropTable(name=table.name))

        for column in columns_to_add:
            operations.append(AddColumn(table=column.table.name, column=column))

        for column in columns_to_remove:
            operations.append(DropColumn(table=column.table.name, name=column.name))

        for name, rebuild in rebuilds.items():
            operations.append(
                RecreateTable(
                    current=self._require_table(self.current, name),
                    desired=self._require_table(self.desired, name),
                    reasons=list(rebuild.reasons),
                )
            )

        if not self.creation_mode:
            for fk in self.desired.all_single_column_foreign_keys():
                owner = fk.table.name
                if owner in self.drop_references or owner in added_names:
                    operations.append(AddForeignKey(table=owner, column=fk.local_columns[0], foreign_key=fk))

        for index in indexes_to_add.values():
            operations.append(CreateIndex(table=index.table.name, name=index.name, columns=index.column_names))

        summary = PushSummary.from_changes(
            added_tables=[t.name for t in added_tables],
            removed_tables=[t.name for t in removed_tables],
            changes=self.changes,
        )

        return MigrationPlan(
            operations=operations,
            summary=summary,
            changes=self.changes,
            creation_mode=self.creation_mode,
        )


def diff_schemas(current: SchemaState, desired: SchemaState, creation_mode: bool = False) -> MigrationPlan:
    """
    Convenience function to diff two schema snapshots.

    Args:
        current: Schema as it exists in the database
        desired: Schema as it should be
        creation_mode: Only valid with an empty current schema; skips
            attaching single-column foreign keys

    Returns:
        MigrationPlan to apply atomically
    """
    return SchemaDiffer(current, desired, creation_mode=creation_mode).compute()


__all__ = ["SchemaDiffer", "diff_schemas"]
