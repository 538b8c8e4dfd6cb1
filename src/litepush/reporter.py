"""
Push reporters.

The push orchestrator never prints. It hands the summary and every
statement to a Reporter, which decides where they go.
"""

import logging
from typing import Protocol, runtime_checkable

from .migrations.summary import PushSummary

logger = logging.getLogger(__name__)


@runtime_checkable
class Reporter(Protocol):
    """Receives the progress of a schema push."""

    def no_changes(self) -> None: ...

    def summary(self, summary: PushSummary) -> None: ...

    def statement(self, sql: str) -> None: ...


class LoggingReporter:
    """Reports through the standard logging module."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def no_changes(self) -> None:
        self.log.log(self.level, "No changes to apply")

    def summary(self, summary: PushSummary) -> None:
        for line in summary.describe().splitlines():
            self.log.log(self.level, line)

    def statement(self, sql: str) -> None:
        self.log.log(self.level, "%s", sql)


class NullReporter:
    """Discards everything."""

    def no_changes(self) -> None:
        pass

    def summary(self, summary: PushSummary) -> None:
        pass

    def statement(self, sql: str) -> None:
        pass


__all__ = ["Reporter", "LoggingReporter", "NullReporter"]
