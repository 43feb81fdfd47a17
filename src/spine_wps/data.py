"""
Runtime data: values bound to inputs/outputs and the execute request.

Manifesto:
    Descriptions say what *may* be sent; the types here carry what *was*
    sent.  They are created per call and are immutable once handed to the
    coordinator - the builder phase ends at ``build()``.

Architecture:
    ::

        ExecuteRequest (frozen)
          ├── process_id
          ├── execution_mode   AUTO | SYNC | ASYNC
          ├── response_mode    DOCUMENT | RAW
          ├── inputs:  ProcessData ...
          │              ├── LiteralData(identifier, value, uom)
          │              ├── BoundingBoxData(identifier, lower, upper, crs)
          │              └── ComplexData(identifier, value, format, encoded)
          └── outputs: OutputDefinition(identifier, format, transmission)

        ProcessInputs   identifier -> (ProcessData, ...)   (bound, validated)

Examples:
    >>> request = (
    ...     ExecuteRequest.builder("echo")
    ...     .literal("msg", "hi")
    ...     .output("msg")
    ...     .build()
    ... )
    >>> request.execution_mode, request.response_mode
    (<ExecutionMode.AUTO: 'auto'>, <ResponseMode.DOCUMENT: 'document'>)

Tags:
    spine-wps, data, request, immutable

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from spine_wps.description.model import DataKind, Format


class ExecutionMode(str, Enum):
    """Whether the call blocks until the process finishes."""

    AUTO = "auto"
    SYNC = "sync"
    ASYNC = "async"


class ResponseMode(str, Enum):
    """Structured document with status metadata, or one raw output value."""

    DOCUMENT = "document"
    RAW = "raw"


class TransmissionMode(str, Enum):
    """Deliver an output inline or as a reference to stored content."""

    VALUE = "value"
    REFERENCE = "reference"


# ── Process data ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LiteralData:
    identifier: str
    value: Any
    uom: str | None = None

    kind = DataKind.LITERAL


@dataclass(frozen=True)
class BoundingBoxData:
    identifier: str
    lower_corner: tuple[float, ...]
    upper_corner: tuple[float, ...]
    crs: str | None = None

    kind = DataKind.BOUNDING_BOX

    @property
    def value(self) -> BoundingBoxData:
        return self

    @property
    def dimensions(self) -> int:
        return len(self.lower_corner)

    def to_dict(self) -> dict[str, Any]:
        return {
            "crs": self.crs,
            "lowerCorner": list(self.lower_corner),
            "upperCorner": list(self.upper_corner),
        }


@dataclass(frozen=True)
class ComplexData:
    """
    Complex value.  ``encoded=True`` means ``value`` still holds the raw
    bytes (or text) received from the caller and must be decoded by a
    parser before the algorithm sees it.
    """

    identifier: str
    value: Any
    format: Format | None = None
    encoded: bool = False

    kind = DataKind.COMPLEX

    @classmethod
    def raw(cls, identifier: str, content: bytes | str, format: Format | None = None) -> ComplexData:
        return cls(identifier=identifier, value=content, format=format, encoded=True)


ProcessData = LiteralData | BoundingBoxData | ComplexData


@dataclass(frozen=True)
class OutputDefinition:
    """A requested output, optionally with a format and transmission mode."""

    identifier: str
    format: Format | None = None
    transmission: TransmissionMode = TransmissionMode.VALUE


# ── Execute request ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExecuteRequest:
    process_id: str
    inputs: tuple[ProcessData, ...] = ()
    outputs: tuple[OutputDefinition, ...] = ()
    execution_mode: ExecutionMode = ExecutionMode.AUTO
    response_mode: ResponseMode = ResponseMode.DOCUMENT

    @staticmethod
    def builder(process_id: str) -> ExecuteRequestBuilder:
        return ExecuteRequestBuilder(process_id)

    def inputs_for(self, identifier: str) -> list[ProcessData]:
        return [item for item in self.inputs if item.identifier == identifier]


class ExecuteRequestBuilder:
    """Fluent, single-use construction of an ``ExecuteRequest``."""

    def __init__(self, process_id: str) -> None:
        self._process_id = process_id
        self._inputs: list[ProcessData] = []
        self._outputs: list[OutputDefinition] = []
        self._execution_mode = ExecutionMode.AUTO
        self._response_mode = ResponseMode.DOCUMENT
        self._built = False

    def _check(self) -> None:
        if self._built:
            raise RuntimeError("ExecuteRequestBuilder cannot be reused after build()")

    def input(self, data: ProcessData) -> ExecuteRequestBuilder:
        self._check()
        self._inputs.append(data)
        return self

    def literal(self, identifier: str, value: Any, uom: str | None = None) -> ExecuteRequestBuilder:
        return self.input(LiteralData(identifier, value, uom))

    def complex(self, identifier: str, value: Any, format: Format | None = None) -> ExecuteRequestBuilder:
        return self.input(ComplexData(identifier, value, format))

    def raw_complex(self, identifier: str, content: bytes | str, format: Format | None = None) -> ExecuteRequestBuilder:
        return self.input(ComplexData.raw(identifier, content, format))

    def bounding_box(
        self,
        identifier: str,
        lower: Sequence[float],
        upper: Sequence[float],
        crs: str | None = None,
    ) -> ExecuteRequestBuilder:
        return self.input(BoundingBoxData(identifier, tuple(lower), tuple(upper), crs))

    def output(
        self,
        identifier: str,
        format: Format | None = None,
        transmission: TransmissionMode = TransmissionMode.VALUE,
    ) -> ExecuteRequestBuilder:
        self._check()
        self._outputs.append(OutputDefinition(identifier, format, transmission))
        return self

    def mode(self, mode: ExecutionMode) -> ExecuteRequestBuilder:
        self._check()
        self._execution_mode = mode
        return self

    def sync(self) -> ExecuteRequestBuilder:
        return self.mode(ExecutionMode.SYNC)

    def async_(self) -> ExecuteRequestBuilder:
        return self.mode(ExecutionMode.ASYNC)

    def response(self, mode: ResponseMode) -> ExecuteRequestBuilder:
        self._check()
        self._response_mode = mode
        return self

    def raw(self) -> ExecuteRequestBuilder:
        return self.response(ResponseMode.RAW)

    def build(self) -> ExecuteRequest:
        self._check()
        self._built = True
        return ExecuteRequest(
            process_id=self._process_id,
            inputs=tuple(self._inputs),
            outputs=tuple(self._outputs),
            execution_mode=self._execution_mode,
            response_mode=self._response_mode,
        )


# ── Bound inputs ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProcessInputs(Mapping[str, tuple[ProcessData, ...]]):
    """
    Validated inputs handed to an algorithm, keyed by input identifier.

    Optional inputs that were not supplied (and have no default) are
    absent.

    >>> inputs = ProcessInputs({"msg": (LiteralData("msg", "hi"),)})
    >>> inputs.value("msg")
    'hi'
    """

    bound: Mapping[str, tuple[ProcessData, ...]] = field(default_factory=dict)

    def __getitem__(self, identifier: str) -> tuple[ProcessData, ...]:
        return self.bound[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self.bound)

    def __len__(self) -> int:
        return len(self.bound)

    def first(self, identifier: str) -> ProcessData | None:
        items = self.bound.get(identifier, ())
        return items[0] if items else None

    def value(self, identifier: str, default: Any = None) -> Any:
        """Value of the first occurrence of ``identifier``."""
        item = self.first(identifier)
        return default if item is None else item.value

    def all_values(self, identifier: str) -> list[Any]:
        """Values of every occurrence of ``identifier``."""
        return [item.value for item in self.bound.get(identifier, ())]


__all__ = [
    "ExecutionMode",
    "ResponseMode",
    "TransmissionMode",
    "LiteralData",
    "BoundingBoxData",
    "ComplexData",
    "ProcessData",
    "OutputDefinition",
    "ExecuteRequest",
    "ExecuteRequestBuilder",
    "ProcessInputs",
]
