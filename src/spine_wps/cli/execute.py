"""
CLI: ``spine-wps execute`` — run a process and print its outputs.

Inputs are given as ``--input name=value`` (repeatable).  A qualifier
after the name selects a unit of measure, CRS or MIME type::

    --input distance:km=1.5
    --input bbox:EPSG:32633=0,0,100,100
    --input text:text/plain=@notes.txt      # @path reads a file
"""

from __future__ import annotations

from pathlib import Path

import typer

from spine_wps.cli.utils import build_registry, console, fail, print_json, print_table
from spine_wps.data import (
    BoundingBoxData,
    ComplexData,
    ExecuteRequest,
    ExecutionMode,
    LiteralData,
    ProcessData,
    TransmissionMode,
)
from spine_wps.description.model import DataKind, Format, ProcessDescription
from spine_wps.engine.coordinator import ExecutionCoordinator
from spine_wps.engine.jobs import JobStatus
from spine_wps.engine.responses import RawResponse


def parse_input(text: str, description: ProcessDescription | None) -> ProcessData:
    """Turn ``name[:qualifier]=value`` into process data.

    Raises:
        typer.BadParameter: the text is not of that form
    """
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"expected name=value, got {text!r}")
    identifier, _, qualifier = key.partition(":")
    qualifier = qualifier or None

    input_description = description.input(identifier) if description else None
    kind = input_description.kind if input_description else DataKind.LITERAL

    if kind is DataKind.COMPLEX:
        fmt = Format(qualifier) if qualifier else None
        content: bytes | str = value
        if value.startswith("@"):
            try:
                content = Path(value[1:]).read_bytes()
            except OSError as e:
                raise typer.BadParameter(f"cannot read {value[1:]}: {e}") from e
        return ComplexData.raw(identifier, content, fmt)
    if kind is DataKind.BOUNDING_BOX:
        try:
            coords = [float(c) for c in value.split(",")]
        except ValueError as e:
            raise typer.BadParameter(f"bounding box must be comma-separated numbers: {value!r}") from e
        if len(coords) % 2:
            raise typer.BadParameter(f"bounding box needs an even number of coordinates: {value!r}")
        half = len(coords) // 2
        return BoundingBoxData(identifier, tuple(coords[:half]), tuple(coords[half:]), qualifier)
    return LiteralData(identifier, value, qualifier)


def execute(
    process_id: str = typer.Argument(..., help="Process identifier"),
    inputs: list[str] | None = typer.Option(None, "--input", "-i", help="name[:qualifier]=value (repeatable)"),
    outputs: list[str] | None = typer.Option(
        None, "--output", "-o", help="Requested output; append ':ref' to get it by reference"
    ),
    mode: ExecutionMode = typer.Option(ExecutionMode.AUTO, "--mode", "-m", help="auto, sync or async"),
    raw: bool = typer.Option(False, "--raw", help="Print the single requested output only"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds to wait for async jobs"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Execute a process."""
    registry, _ = build_registry()
    description = registry.lookup(process_id)

    builder = ExecuteRequest.builder(process_id).mode(mode)
    for text in inputs or []:
        builder.input(parse_input(text, description))
    for text in outputs or []:
        identifier, _, suffix = text.partition(":")
        transmission = TransmissionMode.REFERENCE if suffix == "ref" else TransmissionMode.VALUE
        builder.output(identifier, transmission=transmission)
    if raw:
        builder.raw()

    with ExecutionCoordinator(registry) as coordinator:
        submitted = coordinator.submit(builder.build())
        if submitted.is_err():
            fail(submitted.error, as_json=json_out)
        handle = submitted.unwrap()
        snapshot = coordinator.wait(handle, timeout).unwrap()

    if not snapshot.is_terminal:
        console.print(f"[yellow]Job {snapshot.job_id} still {snapshot.status.value} after {timeout}s[/yellow]")
        raise typer.Exit(code=2)

    if json_out:
        print_json(snapshot.to_dict())
        if snapshot.status is not JobStatus.SUCCEEDED:
            raise typer.Exit(code=1)
        return

    if snapshot.status is JobStatus.FAILED:
        console.print(f"[bold red]Failed[/bold red] ({snapshot.failure.kind}): {snapshot.failure.message}")
        raise typer.Exit(code=1)
    if snapshot.status is JobStatus.CANCELLED:
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=1)

    response = snapshot.response
    if isinstance(response, RawResponse):
        typer.echo(response.content)
        return

    console.print(f"[bold]Job[/bold] {snapshot.job_id}: [green]{snapshot.status.value}[/green]")
    rows = []
    for output in response.outputs:
        shown = output.to_dict()
        rows.append({
            "identifier": output.identifier,
            "value": shown.get("href") or shown.get("value"),
            "uom": output.uom,
            "type": output.data_type or output.mime_type,
        })
    print_table(rows, title="Outputs")
