"""
Tests for pushing models to an in-memory SQLite database.
"""

import logging
import sqlite3
from typing import Annotated

import pytest

from litepush.config import PushOptions
from litepush.exceptions import ExecutionError, ModeViolation
from litepush.fields import IndexDef, PrimaryKey, Unique
from litepush.migrations.changes import Recreate
from litepush.migrations.db_introspector import DatabaseIntrospector
from litepush.migrations.executor import StatementExecutor, build_script
from litepush.migrations.summary import PushSummary
from litepush.model_base import TableConfigDict, TableModel
from litepush.pusher import plan_schema, push_schema
from litepush.reporter import LoggingReporter, NullReporter


class Account(TableModel):
    model_config = TableConfigDict(table_name="accounts")

    id: Annotated[int, PrimaryKey()]
    name: str
    nickname: str | None = None


class AccountWithEmail(TableModel):
    model_config = TableConfigDict(
        table_name="accounts",
        indexes=[IndexDef(name="accounts_name_idx", columns=["name"])],
    )

    id: Annotated[int, PrimaryKey()]
    name: str
    nickname: str | None = None
    email: Annotated[str | None, Unique()] = None


class AccountWithoutNickname(TableModel):
    model_config = TableConfigDict(table_name="accounts")

    id: Annotated[int, PrimaryKey()]
    name: str


class RecordingReporter:
    """Reporter keeping every call for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def no_changes(self) -> None:
        self.calls.append(("no_changes", None))

    def summary(self, summary: PushSummary) -> None:
        self.calls.append(("summary", summary))

    def statement(self, sql: str) -> None:
        self.calls.append(("statement", sql))


def table_names(connection: sqlite3.Connection) -> list[str]:
    rows = connection.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name").fetchall()
    return [row[0] for row in rows]


class TestExecutor:
    """Tests for atomic statement application."""

    def test_build_script(self) -> None:
        """Test statements are wrapped in one transaction with foreign keys off."""
        assert build_script(["A", "B"]) == "PRAGMA foreign_keys=OFF;\nBEGIN;\nA;\nB;\nCOMMIT;"

    def test_apply(self, connection: sqlite3.Connection) -> None:
        """Test statements are applied."""
        StatementExecutor(connection).apply(["CREATE TABLE a (x)", "CREATE TABLE b (y)"])
        assert table_names(connection) == ["a", "b"]

    def test_failure_rolls_back(self, connection: sqlite3.Connection) -> None:
        """Test a failing batch leaves the database untouched."""
        statements = ["CREATE TABLE a (x)", "THIS IS NOT SQL"]

        with pytest.raises(ExecutionError) as exc_info:
            StatementExecutor(connection).apply(statements)

        assert exc_info.value.statements == statements
        assert table_names(connection) == []

    def test_empty_batch(self, connection: sqlite3.Connection) -> None:
        """Test an empty batch is a no-op."""
        StatementExecutor(connection).apply([])
        assert table_names(connection) == []

    def test_foreign_keys_restored(self, connection: sqlite3.Connection) -> None:
        """Test foreign key enforcement is switched back on after a batch."""
        connection.execute("PRAGMA foreign_keys=ON")

        StatementExecutor(connection).apply(["CREATE TABLE a (x INTEGER PRIMARY KEY)"])

        assert connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_foreign_keys_restored_after_failure(self, connection: sqlite3.Connection) -> None:
        """Test foreign key enforcement is switched back on after a failed batch."""
        connection.execute("PRAGMA foreign_keys=ON")

        with pytest.raises(ExecutionError):
            StatementExecutor(connection).apply(["CREATE TABLE a (x)", "THIS IS NOT SQL"])

        assert connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_foreign_keys_left_off(self, connection: sqlite3.Connection) -> None:
        """Test a connection without enforcement keeps it off."""
        executor = StatementExecutor(connection)

        executor.apply(["CREATE TABLE a (x)"])

        assert executor.foreign_keys_enabled() is False


class TestPush:
    """End-to-end pushes."""

    def test_create_then_fixed_point(self, connection: sqlite3.Connection) -> None:
        """Test a pushed schema diffs clean against the same models."""
        push_schema(connection, [Account], reporter=NullReporter())

        assert table_names(connection) == ["accounts"]
        assert plan_schema(connection, [Account]).is_empty

    def test_creation_mode(self, connection: sqlite3.Connection) -> None:
        """Test creation mode builds an empty database."""
        plan = push_schema(connection, [Account], PushOptions(creation_mode=True), NullReporter())

        assert plan.summary.added_tables == ["accounts"]
        assert table_names(connection) == ["accounts"]

    def test_creation_mode_refused_on_populated_database(self, connection: sqlite3.Connection) -> None:
        """Test creation mode requires an empty database."""
        push_schema(connection, [Account], reporter=NullReporter())
        with pytest.raises(ModeViolation):
            push_schema(connection, [AccountWithEmail], PushOptions(creation_mode=True), NullReporter())

    def test_recreate_keeps_rows(self, connection: sqlite3.Connection) -> None:
        """Test adding a unique column rebuilds the table and keeps its rows."""
        push_schema(connection, [Account], reporter=NullReporter())
        connection.execute("INSERT INTO accounts (id, name) VALUES (1, 'ada'), (2, 'bob')")
        connection.commit()

        plan = push_schema(connection, [AccountWithEmail], reporter=NullReporter())

        assert isinstance(plan.changes["accounts"], Recreate)
        rows = connection.execute("SELECT id, name FROM accounts ORDER BY id").fetchall()
        assert rows == [(1, "ada"), (2, "bob")]
        assert table_names(connection) == ["accounts"]

        accounts = DatabaseIntrospector(connection).introspect().get_table("accounts")
        assert list(accounts.columns) == ["id", "name", "nickname", "email"]
        assert list(accounts.indexes) == ["accounts_name_idx"]
        assert plan_schema(connection, [AccountWithEmail]).is_empty

    def test_drop_column(self, connection: sqlite3.Connection) -> None:
        """Test a removed field drops its column in place."""
        push_schema(connection, [Account], reporter=NullReporter())

        plan = push_schema(connection, [AccountWithoutNickname], reporter=NullReporter())

        assert plan.summary.removed_columns == ["accounts.nickname"]
        columns = [row[1] for row in connection.execute("PRAGMA table_info(accounts)").fetchall()]
        assert columns == ["id", "name"]

    def test_dry_run(self, connection: sqlite3.Connection) -> None:
        """Test a dry run reports without applying."""
        reporter = RecordingReporter()
        plan = push_schema(connection, [Account], PushOptions(dry_run=True), reporter)

        assert not plan.is_empty
        assert table_names(connection) == []
        kinds = [kind for kind, _ in reporter.calls]
        assert kinds[0] == "summary"
        assert kinds[1:] == ["statement"] * len(plan.forwards_sql())

    def test_no_changes_reported(self, connection: sqlite3.Connection) -> None:
        """Test an up-to-date database reports no changes."""
        push_schema(connection, [Account], reporter=NullReporter())
        reporter = RecordingReporter()

        push_schema(connection, [Account], reporter=reporter)

        assert reporter.calls == [("no_changes", None)]

    def test_prefix_ignores_other_tables(self, connection: sqlite3.Connection) -> None:
        """Test tables outside the prefix are neither dropped nor created."""
        connection.execute("CREATE TABLE legacy (id INTEGER)")

        plan = push_schema(connection, [Account], PushOptions(prefix="acc"), NullReporter())

        assert plan.summary.removed_tables == []
        assert table_names(connection) == ["accounts", "legacy"]

    def test_logging_reporter(self, connection: sqlite3.Connection, caplog: pytest.LogCaptureFixture) -> None:
        """Test the default reporter logs the summary and statements."""
        with caplog.at_level(logging.INFO, logger="litepush"):
            push_schema(connection, [Account], reporter=LoggingReporter())

        assert "Add tables: accounts" in caplog.text
        assert "CREATE TABLE `accounts`" in caplog.text
