"""Database browsing and editing CLI commands."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from sqlpane.cli.utils import console, open_session, print_exception, render_tabular
from sqlpane.config import ConfigParser
from sqlpane.exceptions import SQLPaneError, TransactionError
from sqlpane.models import DEFAULT_ROW_LIMIT


def _fail(ctx: click.Context, message: str, exc: Exception) -> None:
    print_exception(message, exc, ctx.obj.get('verbose', False))
    raise SystemExit(1) from exc


@click.command(name="databases")
@click.pass_context
def databases_command(ctx: click.Context) -> None:
    """List databases on the server."""
    try:
        with open_session(ctx) as session:
            databases = session.driver.get_databases()

        for name in databases:
            console.print(escape(name))
        console.print(f"\n[dim]Total: {len(databases)} database(s)[/dim]")
    except SQLPaneError as exc:
        _fail(ctx, "Error", exc)


@click.command(name="tables")
@click.argument("database")
@click.pass_context
def tables_command(ctx: click.Context, database: str) -> None:
    """List tables in DATABASE, grouped by database or schema."""
    try:
        with open_session(ctx) as session:
            tables = session.driver.get_tables(database)

        total = 0
        for group, names in tables.items():
            console.print(f"[bold blue]{escape(group)}[/bold blue]")
            for name in names:
                console.print(f"  {escape(name)}")
            total += len(names)
        console.print(f"\n[dim]Total: {total} table(s)[/dim]")
    except SQLPaneError as exc:
        _fail(ctx, "Error", exc)


@click.command(name="describe")
@click.argument("database")
@click.argument("table")
@click.option("--constraints", is_flag=True, help="Also show constraints")
@click.option("--foreign-keys", is_flag=True, help="Also show foreign keys referencing the table")
@click.option("--indexes", is_flag=True, help="Also show indexes")
@click.pass_context
def describe_command(
    ctx: click.Context,
    database: str,
    table: str,
    constraints: bool,
    foreign_keys: bool,
    indexes: bool,
) -> None:
    """Describe the columns of TABLE in DATABASE."""
    try:
        with open_session(ctx) as session:
            driver = session.driver
            console.print(render_tabular(driver.get_table_columns(database, table), title="Columns"))

            primary_key = driver.get_primary_key_column_names(database, table)
            if primary_key:
                console.print(f"Primary key: [cyan]{escape(', '.join(primary_key))}[/cyan]")

            if constraints:
                console.print(render_tabular(driver.get_constraints(database, table), title="Constraints"))
            if foreign_keys:
                console.print(render_tabular(driver.get_foreign_keys(database, table), title="Foreign keys"))
            if indexes:
                console.print(render_tabular(driver.get_indexes(database, table), title="Indexes"))
    except SQLPaneError as exc:
        _fail(ctx, "Error", exc)


@click.command(name="records")
@click.argument("database")
@click.argument("table")
@click.option("--where", default="", help="Raw filter, including the WHERE keyword")
@click.option("--sort", default="", help="Raw ORDER BY expression")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--limit", type=click.IntRange(min=0), default=0,
              help=f"Page size (0 means {DEFAULT_ROW_LIMIT})")
@click.pass_context
def records_command(
    ctx: click.Context,
    database: str,
    table: str,
    where: str,
    sort: str,
    offset: int,
    limit: int,
) -> None:
    """Show one page of records from TABLE in DATABASE."""
    try:
        with open_session(ctx) as session:
            records, total = session.driver.get_records(database, table, where, sort, offset, limit)

        console.print(render_tabular(records))
        shown = max(len(records) - 1, 0)
        console.print(f"\n[dim]Rows {offset + 1 if shown else 0}-{offset + shown} of {total}[/dim]")
    except SQLPaneError as exc:
        _fail(ctx, "Error", exc)


@click.command(name="query")
@click.argument("sql")
@click.pass_context
def query_command(ctx: click.Context, sql: str) -> None:
    """Run a read-only SQL statement and print its rows."""
    try:
        with open_session(ctx) as session:
            rows, count = session.driver.execute_query(sql)

        if rows:
            console.print(render_tabular(rows))
        console.print(f"\n[dim]{count} row(s)[/dim]")
    except SQLPaneError as exc:
        _fail(ctx, "Query failed", exc)


@click.command(name="exec")
@click.argument("sql")
@click.pass_context
def exec_command(ctx: click.Context, sql: str) -> None:
    """Run a single write statement."""
    try:
        with open_session(ctx) as session:
            message = session.driver.execute_dml_statement(sql)
        console.print(f"[green]{message}[/green]")
    except SQLPaneError as exc:
        _fail(ctx, "Statement failed", exc)


@click.command(name="apply")
@click.argument("changes_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Only print the statements that would run")
@click.pass_context
def apply_command(ctx: click.Context, changes_file: Path, dry_run: bool) -> None:
    """Apply the row edits in CHANGES_FILE as one transaction."""
    try:
        changes = ConfigParser(ctx.obj.get('settings')).load_changes(changes_file)

        with open_session(ctx) as session:
            for change in changes:
                session.stage(change)

            console.print(f"[bold blue]{len(changes)} pending change(s)[/bold blue]")
            for statement in session.preview():
                console.print(escape(statement), highlight=False)

            if dry_run:
                console.print("\n[yellow]Dry run, nothing was applied[/yellow]")
                return

            applied = session.commit()
        console.print(f"\n[green]Applied {applied} change(s)[/green]")
    except TransactionError as exc:
        _fail(ctx, "Changes rolled back", exc)
    except SQLPaneError as exc:
        _fail(ctx, "Error", exc)
