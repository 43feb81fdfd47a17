"""
CLI: ``spine-wps config`` — effective settings.
"""

from __future__ import annotations

import typer

from spine_wps.cli.utils import console, print_json

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration."""
    from rich.table import Table

    from spine_wps.core.settings import get_settings

    settings = get_settings()
    values = settings.model_dump()

    if format == "json":
        print_json(values)
        return

    if format == "env":
        for key, value in sorted(values.items()):
            console.print(f"WPS_{key.upper()}={value}")
        return

    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value", overflow="fold")
    for key, value in values.items():
        table.add_row(key, str(value))
    console.print(table)
