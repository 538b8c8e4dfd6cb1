"""
CLI commands for litepush.

Uses click for command-line argument parsing.
"""

import importlib
import sqlite3
import sys

import click

from ..config import PushOptions
from ..exceptions import LitePushError
from ..migrations.summary import PushSummary
from ..pusher import plan_schema, push_schema


class EchoReporter:
    """Reporter writing to the terminal through click."""

    def no_changes(self) -> None:
        click.echo("No changes to apply.")

    def summary(self, summary: PushSummary) -> None:
        click.echo(summary.describe())
        click.echo()

    def statement(self, sql: str) -> None:
        click.echo(f"{sql};")


def import_models(modules: tuple[str, ...]) -> None:
    """Import model modules so their TableModel subclasses register."""
    for module_path in modules:
        try:
            importlib.import_module(module_path)
        except ImportError as e:
            click.echo(f"Error importing {module_path}: {e}", err=True)
            sys.exit(1)


def connect(database: str | None) -> sqlite3.Connection:
    if not database:
        click.echo("Error: no database given (use --database or LITEPUSH_DATABASE)", err=True)
        sys.exit(1)
    return sqlite3.connect(database)


@click.group()
@click.option(
    "--database",
    "-d",
    envvar="LITEPUSH_DATABASE",
    help="Path of the SQLite database file",
)
@click.option(
    "--prefix",
    "-p",
    envvar="LITEPUSH_PREFIX",
    help="Only consider tables whose name starts with this prefix",
)
@click.pass_context
def cli(ctx: click.Context, database: str | None, prefix: str | None) -> None:
    """Push declarative table models to a SQLite database."""
    ctx.ensure_object(dict)
    ctx.obj["database"] = database
    ctx.obj["prefix"] = prefix


@cli.command()
@click.argument("modules", nargs=-1, required=True)
@click.option("--creation-mode", is_flag=True, help="Create tables from scratch without foreign keys")
@click.pass_context
def plan(ctx: click.Context, modules: tuple[str, ...], creation_mode: bool) -> None:
    """Show the statements a push would run, without running them."""
    import_models(modules)
    options = PushOptions(creation_mode=creation_mode, prefix=ctx.obj["prefix"])

    connection = connect(ctx.obj["database"])
    try:
        migration_plan = plan_schema(connection, options=options)
    except LitePushError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        connection.close()

    if migration_plan.is_empty:
        click.echo("No changes to apply.")
        return

    click.echo(migration_plan.summary.describe())
    click.echo()
    click.echo(migration_plan.describe())
    click.echo()
    for sql in migration_plan.forwards_sql():
        click.echo(f"{sql};")


@cli.command()
@click.argument("modules", nargs=-1, required=True)
@click.option("--creation-mode", is_flag=True, help="Create tables from scratch without foreign keys")
@click.option("--dry-run", is_flag=True, help="Report the changes without applying them")
@click.pass_context
def push(ctx: click.Context, modules: tuple[str, ...], creation_mode: bool, dry_run: bool) -> None:
    """Apply the models' schema to the database."""
    import_models(modules)
    options = PushOptions(creation_mode=creation_mode, prefix=ctx.obj["prefix"], dry_run=dry_run)

    connection = connect(ctx.obj["database"])
    try:
        migration_plan = push_schema(connection, options=options, reporter=EchoReporter())
    except LitePushError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        connection.close()

    if not migration_plan.is_empty and not dry_run:
        click.echo(f"Applied {len(migration_plan.operations)} operations.")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
