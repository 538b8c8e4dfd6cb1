"""
Statement executor for applying a migration plan to the database.

SQLite ignores ``PRAGMA foreign_keys`` inside a transaction, so enforcement
is switched off first and the whole statement list then runs as a single
``BEGIN ... COMMIT`` script. A failure rolls the transaction back.
The previous enforcement setting is restored afterwards, whether the batch
succeeded or not.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ..exceptions import ExecutionError

logger = logging.getLogger(__name__)


def build_script(statements: Sequence[str]) -> str:
    """Wrap statements in one transaction script with foreign keys disabled."""
    body = ";\n".join(statements)
    return f"PRAGMA foreign_keys=OFF;\nBEGIN;\n{body};\nCOMMIT;"


class StatementExecutor:
    """
    Applies statement lists atomically over a DB-API connection.

    Connections exposing ``executescript`` (stdlib ``sqlite3``) receive the
    whole script at once. Other connections get one ``execute`` per
    statement inside the driver's transaction.
    """

    def __init__(self, connection: Any):
        """
        Initialize the executor.

        Args:
            connection: DB-API connection to apply statements on
        """
        self._connection = connection

    def apply(self, statements: Sequence[str]) -> None:
        """
        Apply every statement or none of them.

        Args:
            statements: Literal SQL statements, in order

        Raises:
            ExecutionError: If any statement fails; the transaction is rolled back
        """
        if not statements:
            return

        logger.debug("Applying %d statements", len(statements))
        enforced = self.foreign_keys_enabled()

        try:
            try:
                if hasattr(self._connection, "executescript"):
                    self._connection.execute("PRAGMA foreign_keys=OFF")
                    self._connection.executescript(build_script(statements))
                else:
                    self._apply_each(statements)
            except Exception as e:
                self._rollback()
                raise ExecutionError(f"Failed to apply schema changes: {e}", statements=list(statements)) from e
        finally:
            self._set_foreign_keys(enforced)

    def foreign_keys_enabled(self) -> bool:
        """Current value of PRAGMA foreign_keys on the connection."""
        cursor = self._connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys")
            row = cursor.fetchone()
        finally:
            cursor.close()
        return bool(row and row[0])

    def _set_foreign_keys(self, enabled: bool) -> None:
        cursor = self._connection.cursor()
        try:
            cursor.execute(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
        finally:
            cursor.close()

    def _apply_each(self, statements: Sequence[str]) -> None:
        cursor = self._connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=OFF")
            for statement in statements:
                cursor.execute(statement)
        finally:
            cursor.close()
        self._connection.commit()

    def _rollback(self) -> None:
        try:
            self._connection.rollback()
        except Exception:
            logger.warning("Rollback after failed push also failed", exc_info=True)


__all__ = ["StatementExecutor", "build_script"]
