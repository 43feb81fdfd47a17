"""
Root Typer application for the spine-wps CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="spine-wps",
    help="spine-wps — register, describe and execute processes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from spine_wps import __version__

        typer.echo(f"spine-wps {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """spine-wps CLI — processes, execution and configuration."""


# ── Sub-command registration ─────────────────────────────────────────────

from spine_wps.cli.config import app as config_app  # noqa: E402
from spine_wps.cli.execute import execute  # noqa: E402
from spine_wps.cli.processes import app as processes_app  # noqa: E402

app.add_typer(processes_app, name="processes", help="List and describe processes.")
app.add_typer(config_app, name="config", help="Configuration inspection.")
app.command("execute")(execute)
