"""Shared CLI utilities for SQLPane."""

from __future__ import annotations

import logging
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from sqlpane.config import ConfigParser, Connection, EnvironmentSettings, SQLPaneConfig
from sqlpane.exceptions import ConfigurationError
from sqlpane.session import Session

# Single console instance reused across CLI modules
console = Console()


def setup_logging(verbose: bool, settings: EnvironmentSettings) -> None:
    """Route the package's log records through rich.

    Args:
        verbose: Force DEBUG level.
        settings: Environment settings providing the default level.
    """
    level = logging.DEBUG if verbose or settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)

    package_logger = logging.getLogger("sqlpane")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)
    )
    package_logger.setLevel(level)
    package_logger.propagate = False


def print_exception(message: str, error: Exception, verbose: bool = False) -> None:
    """Render a formatted exception message.

    Args:
        message: Friendly context message to display before the exception.
        error: Original exception instance.
        verbose: When True, render the full traceback for debugging.
    """
    console.print(f"[red]{escape(message)}: {escape(str(error))}[/red]", highlight=False)
    if verbose:
        console.print_exception()


def load_config(ctx: click.Context) -> SQLPaneConfig:
    parser = ConfigParser(ctx.obj.get('settings'))
    return parser.load_config(ctx.obj.get('config'))


def resolve_connection(ctx: click.Context) -> Connection:
    """Pick the connection named on the command line.

    ``--url`` wins over ``--connection``; otherwise the configuration's
    default connection is used.
    """
    url: Optional[str] = ctx.obj.get('url')
    if url:
        return Connection(name="command-line", url=url)

    return load_config(ctx).get_connection(ctx.obj.get('connection'))


def open_session(ctx: click.Context) -> Session:
    settings: EnvironmentSettings = ctx.obj['settings']
    try:
        connection = resolve_connection(ctx)
    except ValueError as e:
        raise ConfigurationError(f"Invalid connection URL: {e}") from e
    return Session(connection, connect_timeout=settings.connect_timeout)


def render_tabular(rows: List[List[str]], title: Optional[str] = None) -> Table:
    """Build a rich table from a header-first tabular result."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    if not rows:
        return table

    for column in rows[0]:
        table.add_column(escape(str(column)), style="cyan", overflow="fold")
    for row in rows[1:]:
        table.add_row(*[escape(str(value)) for value in row])
    return table
