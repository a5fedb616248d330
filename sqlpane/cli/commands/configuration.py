"""Configuration management CLI commands."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from sqlpane.cli.utils import console, load_config, print_exception
from sqlpane.config import ConfigParser
from sqlpane.drivers.url import render_url
from sqlpane.exceptions import ConfigurationError


@click.group(name="config")
def config_group() -> None:
    """Configuration management."""
    pass


@config_group.command(name="validate")
@click.argument("config_file", type=click.Path(exists=True))
@click.pass_context
def validate_command(ctx: click.Context, config_file: str) -> None:
    """Validate configuration file."""
    try:
        config = ConfigParser(ctx.obj.get('settings')).validate_config_file(config_file)
        names = [connection.name for connection in config.connections]
        console.print(f"[green]Configuration file '{escape(config_file)}' is valid[/green]")
        console.print(f"Found {len(names)} connection(s): {escape(', '.join(names))}")
        console.print(f"Default connection: [cyan]{escape(config.default_connection or '')}[/cyan]")
    except ConfigurationError as exc:
        print_exception("Configuration validation failed", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc


@config_group.command(name="sample")
@click.argument("output_file", type=click.Path())
@click.pass_context
def sample_command(ctx: click.Context, output_file: str) -> None:
    """Create sample configuration file."""
    try:
        output_path = Path(output_file)
        if output_path.exists():
            click.confirm(f"File '{output_file}' exists. Overwrite?", abort=True)

        ConfigParser(ctx.obj.get('settings')).create_sample_config(output_path)
        console.print(f"[green]Sample configuration created: {escape(output_file)}[/green]")
        console.print("\n[yellow]Next steps:[/yellow]")
        console.print("1. Edit the connection URLs to match your servers")
        console.print("2. Set the referenced environment variables (e.g., PG_PASSWORD)")
        console.print(f"3. Validate: [cyan]sqlpane config validate {escape(output_file)}[/cyan]")
    except ConfigurationError as exc:
        print_exception("Error creating sample configuration", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc


@click.command(name="connections")
@click.pass_context
def connections_command(ctx: click.Context) -> None:
    """List configured connections."""
    try:
        config = load_config(ctx)
    except ConfigurationError as exc:
        print_exception("Configuration Error", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Provider", style="green")
    table.add_column("URL", style="white", overflow="fold")
    table.add_column("Default", style="blue")

    for connection in config.connections:
        is_default = "✓" if connection.name == config.default_connection else ""
        table.add_row(connection.name, connection.provider.value, mask_password(connection.url), is_default)

    console.print(table)


def mask_password(url: str) -> str:
    """Hide the password part of a connection URL."""
    try:
        return render_url(make_url(url))
    except (ArgumentError, ValueError):
        return _mask_unparsed(url)


def _mask_unparsed(url: str) -> str:
    scheme, separator, rest = url.partition("://")
    if not separator:
        return url

    credentials, at, location = rest.rpartition("@")
    if not at or ":" not in credentials:
        return url

    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{location}"
