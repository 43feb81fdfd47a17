"""
CLI utility helpers — registry construction and output formatting.
"""

from __future__ import annotations

import json
import sys
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from spine_wps.algorithm.registry import AlgorithmRegistry, RegistrationReport
from spine_wps.algorithm.sources import source_from_settings
from spine_wps.core.errors import WpsError
from spine_wps.core.logging import configure_logging
from spine_wps.core.settings import EngineSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Registry helper ──────────────────────────────────────────────────────


def build_registry(settings: EngineSettings | None = None) -> tuple[AlgorithmRegistry, RegistrationReport]:
    """Build and load a registry from settings (built-ins + ``WPS_ALGORITHMS``)."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs, stream=sys.stderr)
    registry = AlgorithmRegistry(
        source_from_settings(settings),
        supported_versions=settings.supported_versions,
    )
    report = registry.load_all()
    for identifier, error in report.failures.items():
        err_console.print(f"[yellow]Skipped[/yellow] {identifier}: {error.message}")
    return registry, report


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: Exception, *, as_json: bool = False) -> None:
    """Print an error and exit with status 1."""
    if as_json:
        payload = error.to_dict() if isinstance(error, WpsError) else {"message": str(error)}
        console.print_json(json.dumps({"ok": False, "error": payload}, default=str))
    else:
        code = error.code if isinstance(error, WpsError) else type(error).__name__
        message = error.message if isinstance(error, WpsError) else str(error)
        err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
        cause = getattr(error, "cause", None)
        if isinstance(cause, WpsError):
            err_console.print(f"  [dim]caused by {cause.code}: {cause.message}[/dim]")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
