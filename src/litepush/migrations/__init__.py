"""
litepush schema push engine.

This module plans the statements that reconcile a live SQLite / libSQL
schema with a desired one, including:
- Schema snapshots with structural invariants
- Per-table classification (unchanged, incremental, recreate)
- Statement generation in a dependency-safe order
- Reverse introspection of a live database

Usage:
    current = DatabaseIntrospector(connection).introspect()
    desired = introspect_models()

    plan = current.diff(desired)
    StatementExecutor(connection).apply(plan.forwards_sql())
"""

from .changes import Incremental, Recreate, TableChange, Unchanged
from .db_introspector import DatabaseIntrospector, ensure_valid_column_type
from .differ import SchemaDiffer, diff_schemas
from .executor import StatementExecutor
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
from .sql import SqlExpression, sql_literal
from .state import Column, ForeignKey, Index, SchemaState, Table, Unique
from .summary import PushSummary

__all__ = [
    # Schema model
    "SchemaState",
    "Table",
    "Column",
    "Index",
    "Unique",
    "ForeignKey",
    # Diffing
    "SchemaDiffer",
    "diff_schemas",
    "MigrationPlan",
    "PushSummary",
    "Unchanged",
    "Incremental",
    "Recreate",
    "TableChange",
    # Operations
    "Operation",
    "CreateTable",
    "DropTable",
    "AddColumn",
    "DropColumn",
    "RecreateTable",
    "AddForeignKey",
    "DropForeignKey",
    "CreateIndex",
    "DropIndex",
    "SqlExpression",
    "sql_literal",
    # Database
    "DatabaseIntrospector",
    "ensure_valid_column_type",
    "StatementExecutor",
]
