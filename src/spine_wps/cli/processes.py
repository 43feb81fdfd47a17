"""
CLI: ``spine-wps processes`` — list and describe registered processes.
"""

from __future__ import annotations

import typer

from spine_wps.cli.utils import build_registry, console, fail, print_dict, print_json, print_table

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_processes(
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered processes."""
    registry, _ = build_registry()
    rows = [
        {
            "identifier": d.identifier,
            "title": d.title,
            "version": d.version,
            "modes": ", ".join(d.job_control_options),
        }
        for d in registry.descriptions()
    ]
    if json_out:
        print_json(rows)
        return
    print_table(rows, title="Processes")


@app.command("describe")
def describe_process(
    process_id: str = typer.Argument(..., help="Process identifier"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the inputs and outputs of a process."""
    from spine_wps.core.errors import UnknownProcessError

    registry, _ = build_registry()
    description = registry.lookup(process_id)
    if description is None:
        fail(UnknownProcessError(process_id), as_json=json_out)

    data = description.to_dict()
    if json_out:
        print_json(data)
        return

    header = {k: v for k, v in data.items() if k not in ("inputs", "outputs", "metadata") and v}
    print_dict(header, title=f"Process: {process_id}")
    console.print()
    print_table([_row(i) for i in data["inputs"]], title="Inputs")
    print_table([_row(o) for o in data["outputs"]], title="Outputs")


def _row(item: dict) -> dict:
    detail = item.get("domains") or item.get("formats") or item.get("crs") or []
    return {
        "identifier": item["identifier"],
        "kind": item["kind"],
        "occurs": item["occurs"],
        "type": item.get("data_type", ""),
        "accepts": "; ".join(detail),
        "default": item.get("default", ""),
    }
