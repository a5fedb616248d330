"""Main CLI entry point for SQLPane."""

from __future__ import annotations

from typing import Optional

import click

from sqlpane import __version__
from sqlpane.cli.commands import register_commands
from sqlpane.cli.commands.configuration import config_group, connections_command
from sqlpane.cli.commands.database import (
    apply_command,
    databases_command,
    describe_command,
    exec_command,
    query_command,
    records_command,
    tables_command,
)
from sqlpane.cli.utils import console, setup_logging
from sqlpane.config import EnvironmentSettings


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.option("--config", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--connection", "-c", help="Configured connection name")
@click.option("--url", help="Connection URL (overrides --connection)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(
    ctx: click.Context,
    version: bool,
    config: Optional[str],
    connection: Optional[str],
    url: Optional[str],
    verbose: bool,
) -> None:
    """SQLPane - browse and edit data across SQL engines."""
    settings = EnvironmentSettings()
    setup_logging(verbose, settings)

    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "config": config,
            "connection": connection,
            "url": url,
            "verbose": verbose,
            "settings": settings,
        }
    )

    if version:
        console.print(f"SQLPane v{__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Browsing first, then editing, then environment tools.
COMMAND_REGISTRY = [
    databases_command,
    tables_command,
    describe_command,
    records_command,
    query_command,
    exec_command,
    apply_command,
    connections_command,
    config_group,
]

register_commands(cli, COMMAND_REGISTRY)


if __name__ == "__main__":
    cli()
