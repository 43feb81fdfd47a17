"""
Process description model - the declarative contract of a process.

Manifesto:
    A process is only as usable as its description.  Clients discover what
    to send (inputs, types, domains, cardinality) and what they will get
    back (outputs, formats) from the description alone, and the engine
    checks every request against the very same objects.

    - **Immutable:** every node is a frozen dataclass, built once via the
      builders in :mod:`spine_wps.description.builders`
    - **Kind-tagged:** inputs and outputs carry a ``Literal``,
      ``BoundingBox`` or ``Complex`` payload
    - **Ordered:** inputs, outputs and keywords keep declaration order

Architecture:
    ::

        ProcessDescription
          ├── identifier / title / abstract / keywords / metadata
          ├── sync_execute / async_execute  (job control options)
          ├── inputs:  InputDescription  ─┐
          └── outputs: OutputDescription ─┤
                                          ├── identifier, Occurrence(min, max)
                                          └── payload
                                                ├── LiteralDescription(domains)
                                                ├── BoundingBoxDescription(crs)
                                                └── ComplexDescription(formats)

Tags:
    spine-wps, description, model, immutable

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from spine_wps.description.domains import LiteralDataDomain

UNBOUNDED = None


class DataKind(str, Enum):
    """Payload kind of an input, output or runtime value."""

    LITERAL = "literal"
    BOUNDING_BOX = "boundingBox"
    COMPLEX = "complex"


@dataclass(frozen=True)
class Occurrence:
    """Occurrence bounds ``[min_occurs, max_occurs]``; ``None`` max means unbounded."""

    min_occurs: int = 1
    max_occurs: int | None = 1

    @property
    def required(self) -> bool:
        return self.min_occurs > 0

    def allows(self, count: int) -> bool:
        if count < self.min_occurs:
            return False
        return self.max_occurs is UNBOUNDED or count <= self.max_occurs

    def __str__(self) -> str:
        upper = "*" if self.max_occurs is UNBOUNDED else str(self.max_occurs)
        return f"[{self.min_occurs}, {upper}]"


@dataclass(frozen=True)
class Format:
    """A complex data encoding: MIME type plus optional encoding and schema."""

    mime_type: str | None
    encoding: str | None = None
    schema: str | None = None

    def matches(self, requested: Format) -> bool:
        """True if ``requested`` is satisfied by this format.

        Fields left unset on ``requested`` match anything.
        """
        if requested.mime_type is not None and requested.mime_type != self.mime_type:
            return False
        if requested.encoding is not None and (requested.encoding or "").lower() != (self.encoding or "").lower():
            return False
        return requested.schema is None or requested.schema == self.schema

    def __str__(self) -> str:
        text = self.mime_type or "?"
        if self.encoding:
            text += f"; charset={self.encoding}"
        if self.schema:
            text += f"; schema={self.schema}"
        return text


@dataclass(frozen=True)
class Metadata:
    """A metadata link attached to a description."""

    href: str
    role: str | None = None
    title: str | None = None


# ── Payloads ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LiteralDescription:
    """Literal payload: the first domain is the default domain."""

    domains: tuple[LiteralDataDomain, ...]

    kind = DataKind.LITERAL

    @property
    def default_domain(self) -> LiteralDataDomain:
        return self.domains[0]

    @property
    def data_type(self):
        return self.default_domain.data_type

    @property
    def default_uom(self) -> str | None:
        return self.default_domain.uom

    @property
    def supported_uoms(self) -> tuple[str, ...]:
        seen: list[str] = []
        for domain in self.domains:
            if domain.uom is not None and domain.uom not in seen:
                seen.append(domain.uom)
        return tuple(seen)

    @property
    def default_value(self) -> Any:
        return self.default_domain.default_value

    def domains_for(self, uom: str | None) -> tuple[LiteralDataDomain, ...]:
        return tuple(d for d in self.domains if d.uom == uom)


@dataclass(frozen=True)
class BoundingBoxDescription:
    """Bounding box payload: a default CRS plus the CRSs also accepted."""

    default_crs: str | None = None
    supported_crs: tuple[str, ...] = ()
    dimensions: int = 2

    kind = DataKind.BOUNDING_BOX

    @property
    def all_crs(self) -> tuple[str, ...]:
        if self.default_crs is None or self.default_crs in self.supported_crs:
            return self.supported_crs
        return (self.default_crs, *self.supported_crs)


@dataclass(frozen=True)
class ComplexDescription:
    """Complex payload: format-negotiated opaque data."""

    default_format: Format
    supported_formats: tuple[Format, ...] = ()
    maximum_megabytes: int | None = None

    kind = DataKind.COMPLEX

    @property
    def all_formats(self) -> tuple[Format, ...]:
        if self.default_format in self.supported_formats:
            return self.supported_formats
        return (self.default_format, *self.supported_formats)

    def find_format(self, requested: Format | None) -> Format | None:
        """The first supported format satisfying ``requested`` (default if ``None``)."""
        if requested is None:
            return self.default_format
        if self.default_format.matches(requested):
            return self.default_format
        for candidate in self.supported_formats:
            if candidate.matches(requested):
                return candidate
        return None


Payload = LiteralDescription | BoundingBoxDescription | ComplexDescription


# ── Inputs, outputs, processes ───────────────────────────────────────────


@dataclass(frozen=True)
class InputDescription:
    identifier: str
    payload: Payload
    occurrence: Occurrence = field(default_factory=Occurrence)
    title: str | None = None
    abstract: str | None = None
    keywords: tuple[str, ...] = ()
    metadata: tuple[Metadata, ...] = ()

    @property
    def kind(self) -> DataKind:
        return self.payload.kind


@dataclass(frozen=True)
class OutputDescription:
    identifier: str
    payload: Payload
    occurrence: Occurrence = field(default_factory=Occurrence)
    title: str | None = None
    abstract: str | None = None
    keywords: tuple[str, ...] = ()
    metadata: tuple[Metadata, ...] = ()

    @property
    def kind(self) -> DataKind:
        return self.payload.kind


@dataclass(frozen=True)
class ProcessDescription:
    """
    The full description of one process.

    ``sync_execute`` / ``async_execute`` are the job control options: a
    process offering ``async_execute`` is treated as long-running and
    AUTO requests for it run asynchronously.
    """

    identifier: str
    inputs: tuple[InputDescription, ...] = ()
    outputs: tuple[OutputDescription, ...] = ()
    title: str | None = None
    abstract: str | None = None
    keywords: tuple[str, ...] = ()
    metadata: tuple[Metadata, ...] = ()
    version: str = "1.0.0"
    sync_execute: bool = True
    async_execute: bool = False

    def input(self, identifier: str) -> InputDescription | None:
        return next((i for i in self.inputs if i.identifier == identifier), None)

    def output(self, identifier: str) -> OutputDescription | None:
        return next((o for o in self.outputs if o.identifier == identifier), None)

    @property
    def input_ids(self) -> list[str]:
        return [i.identifier for i in self.inputs]

    @property
    def output_ids(self) -> list[str]:
        return [o.identifier for o in self.outputs]

    @property
    def job_control_options(self) -> list[str]:
        options = []
        if self.sync_execute:
            options.append("sync-execute")
        if self.async_execute:
            options.append("async-execute")
        return options

    def to_dict(self) -> dict[str, Any]:
        """Plain summary used by listings and the command line."""
        return {
            "identifier": self.identifier,
            "title": self.title,
            "abstract": self.abstract,
            "version": self.version,
            "keywords": list(self.keywords),
            "metadata": [{"href": m.href, "role": m.role, "title": m.title} for m in self.metadata],
            "job_control_options": self.job_control_options,
            "inputs": [_describe_io(i) for i in self.inputs],
            "outputs": [_describe_io(o) for o in self.outputs],
        }


def _describe_io(item: InputDescription | OutputDescription) -> dict[str, Any]:
    result: dict[str, Any] = {
        "identifier": item.identifier,
        "title": item.title,
        "kind": item.kind.value,
        "occurs": str(item.occurrence),
    }
    payload = item.payload
    if isinstance(payload, LiteralDescription):
        result["data_type"] = payload.data_type.value
        result["domains"] = [d.describe() for d in payload.domains]
        if payload.default_value is not None:
            result["default"] = payload.default_value
        if payload.supported_uoms:
            result["uoms"] = list(payload.supported_uoms)
    elif isinstance(payload, ComplexDescription):
        result["formats"] = [str(f) for f in payload.all_formats]
    else:
        result["crs"] = list(payload.all_crs)
    return result


__all__ = [
    "UNBOUNDED",
    "DataKind",
    "Occurrence",
    "Format",
    "Metadata",
    "LiteralDescription",
    "BoundingBoxDescription",
    "ComplexDescription",
    "Payload",
    "InputDescription",
    "OutputDescription",
    "ProcessDescription",
]
