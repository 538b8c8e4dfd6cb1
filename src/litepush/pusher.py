"""
Schema push orchestration.

Introspects the live database, builds the desired schema from models,
diffs the two and applies the resulting plan in one transaction.
"""

import logging
from typing import TYPE_CHECKING, Any

from .config import PushOptions
from .migrations.db_introspector import DatabaseIntrospector
from .migrations.differ import diff_schemas
from .migrations.executor import StatementExecutor
from .migrations.introspector import introspect_models
from .migrations.plan import MigrationPlan
from .reporter import LoggingReporter, Reporter

if TYPE_CHECKING:
    from .model_base import TableModel

logger = logging.getLogger(__name__)


def plan_schema(
    connection: Any,
    models: list[type["TableModel"]] | None = None,
    options: PushOptions | None = None,
) -> MigrationPlan:
    """
    Compute the plan that brings the database to the models' schema.

    Args:
        connection: DB-API connection to introspect
        models: Model classes, or None to use all registered models
        options: Push options (prefix, creation mode)

    Returns:
        MigrationPlan, not applied
    """
    options = options or PushOptions()

    current = DatabaseIntrospector(connection, prefix=options.prefix).introspect()
    desired = introspect_models(models, prefix=options.prefix)

    logger.debug("Current schema: %r, desired schema: %r", current, desired)

    return diff_schemas(current, desired, creation_mode=options.creation_mode)


def push_schema(
    connection: Any,
    models: list[type["TableModel"]] | None = None,
    options: PushOptions | None = None,
    reporter: Reporter | None = None,
) -> MigrationPlan:
    """
    Push the models' schema to the database.

    Args:
        connection: DB-API connection to introspect and migrate
        models: Model classes, or None to use all registered models
        options: Push options
        reporter: Receives the summary and statements; logs by default

    Returns:
        The computed MigrationPlan

    Raises:
        ModeViolation: If creation mode is set and the database has tables
        UnsupportedTypeError: If a model field cannot be mapped
        ExecutionError: If applying the plan fails
    """
    options = options or PushOptions()
    reporter = reporter or LoggingReporter()

    plan = plan_schema(connection, models, options)

    if plan.is_empty:
        reporter.no_changes()
        return plan

    reporter.summary(plan.summary)

    statements = plan.forwards_sql()
    for sql in statements:
        reporter.statement(sql)

    if options.dry_run:
        logger.info("Dry run, %d statements not applied", len(statements))
        return plan

    StatementExecutor(connection).apply(statements)
    return plan


__all__ = ["plan_schema", "push_schema"]
