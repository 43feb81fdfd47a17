"""
Data binding - caller values in, rendered outputs out.

Manifesto:
    Binding is where the description meets the request.  Inputs are
    counted, validated and decoded before any algorithm runs; outputs are
    matched against their descriptions and encoded by a generator after
    it returns.  The byte-level work always belongs to the parser and
    generator collaborators.

Architecture:
    ::

        bind_inputs(description, inputs)
          ├── unknown identifiers          UnknownInputError
          ├── per InputDescription (declaration order)
          │     ├── literal default for omitted optional inputs
          │     ├── validate_occurrence    MissingInput / OccurrenceOutOfBounds
          │     ├── validate_value         TypeMismatch / OutOfDomain
          │     └── decode encoded complex data via ParserFactory
          └── Ok(ProcessInputs)

        check_output_definitions(description, definitions, response_mode)
          ├── unknown outputs              UnknownOutputError
          ├── RAW needs exactly one        InvalidResponseModeError
          └── format negotiation           UnsupportedFormatError

        render_outputs(description, definitions, produced)
          ├── missing values               MissingOutputError
          ├── kind check / coercion        RenderError
          └── encode via GeneratorFactory  UnsupportedFormatError

Tags:
    spine-wps, binding, validation, rendering, result-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from spine_wps.core.errors import (
    DuplicateOutputError,
    InvalidResponseModeError,
    MissingOutputError,
    RenderError,
    TypeMismatchError,
    UnknownInputError,
    UnknownOutputError,
    UnsupportedFormatError,
)
from spine_wps.core.result import Err, Ok, Result, collect_results
from spine_wps.data import (
    BoundingBoxData,
    ComplexData,
    LiteralData,
    OutputDefinition,
    ProcessData,
    ProcessInputs,
    ResponseMode,
)
from spine_wps.description.model import (
    BoundingBoxDescription,
    ComplexDescription,
    DataKind,
    Format,
    LiteralDescription,
    OutputDescription,
    ProcessDescription,
)
from spine_wps.description.units import DEFAULT_UNITS, UnitRegistry
from spine_wps.description.validation import DEFAULT_EPSILON, validate_occurrence, validate_value
from spine_wps.io.codecs import BBOX_FORMAT, GeneratorFactory, ParserFactory


@dataclass(frozen=True)
class RenderedOutput:
    """
    One output ready for delivery.

    ``value`` is what a document response shows inline (the typed literal,
    the bounding box, or the encoded bytes of complex data); ``content`` is
    always the encoded form used for RAW responses and stored references.
    Outputs delivered by reference carry ``href`` and no inline ``value``.
    """

    identifier: str
    kind: DataKind
    value: Any
    content: bytes
    mime_type: str | None = None
    format: Format | None = None
    data_type: str | None = None
    uom: str | None = None
    href: str | None = None

    @property
    def by_reference(self) -> bool:
        return self.href is not None

    def as_reference(self, href: str) -> RenderedOutput:
        return replace(self, value=None, href=href)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"identifier": self.identifier, "kind": self.kind.value}
        if self.href is not None:
            result["href"] = self.href
        elif isinstance(self.value, bytes):
            result["value"] = self.value.decode("utf-8", errors="replace")
        elif isinstance(self.value, BoundingBoxData):
            result["value"] = self.value.to_dict()
        elif isinstance(self.value, bool | int | float | str):
            result["value"] = self.value
        else:
            result["value"] = self.content.decode("utf-8", errors="replace")
        for key in ("mime_type", "data_type", "uom"):
            if getattr(self, key) is not None:
                result[key] = getattr(self, key)
        return result


# =============================================================================
# INPUTS
# =============================================================================


def bind_inputs(
    description: ProcessDescription,
    inputs: Sequence[ProcessData],
    *,
    parser_factory: ParserFactory | None = None,
    epsilon: float = DEFAULT_EPSILON,
    units: UnitRegistry = DEFAULT_UNITS,
) -> Result[ProcessInputs]:
    """Validate and convert caller-supplied inputs.

    Returns:
        ``Ok(ProcessInputs)`` or ``Err`` with the first ``ValidationError``
    """
    grouped: dict[str, list[ProcessData]] = {}
    for item in inputs:
        if description.input(item.identifier) is None:
            return Err(UnknownInputError(item.identifier, description.input_ids))
        grouped.setdefault(item.identifier, []).append(item)

    bound: dict[str, tuple[ProcessData, ...]] = {}
    for input_description in description.inputs:
        identifier = input_description.identifier
        supplied = grouped.get(identifier, [])

        payload = input_description.payload
        if not supplied and isinstance(payload, LiteralDescription) and payload.default_value is not None:
            supplied = [LiteralData(identifier, payload.default_value, payload.default_uom)]

        occurrence = validate_occurrence(input_description, len(supplied))
        if occurrence.is_err():
            return Err(occurrence.error)

        values: list[ProcessData] = []
        for item in supplied:
            checked = validate_value(input_description, item, epsilon=epsilon, units=units)
            if checked.is_err():
                return Err(checked.error)
            value = checked.unwrap()
            if isinstance(value, ComplexData) and value.encoded:
                decoded = _decode(value, parser_factory)
                if decoded.is_err():
                    return Err(decoded.error)
                value = decoded.unwrap()
            values.append(value)

        if values:
            bound[identifier] = tuple(values)

    return Ok(ProcessInputs(bound))


def _decode(data: ComplexData, parser_factory: ParserFactory | None) -> Result[ProcessData]:
    fmt = data.format
    if parser_factory is None or fmt is None or not parser_factory.supports_decode(fmt, DataKind.COMPLEX):
        return Err(TypeMismatchError(data.identifier, str(fmt), "encoded content", reason="no decoder for format"))
    try:
        value = parser_factory.decode(fmt, data.value, DataKind.COMPLEX)
    except Exception as e:
        return Err(TypeMismatchError(data.identifier, str(fmt), type(data.value).__name__, reason=str(e)))
    return Ok(ComplexData(data.identifier, value, fmt, encoded=False))


# =============================================================================
# OUTPUT DEFINITIONS
# =============================================================================


def check_output_definitions(
    description: ProcessDescription,
    definitions: Sequence[OutputDefinition],
    response_mode: ResponseMode,
    *,
    generator_factory: GeneratorFactory | None = None,
) -> Result[tuple[OutputDefinition, ...]]:
    """
    Validate requested outputs before execution.

    A DOCUMENT request without definitions asks for every output.  The
    returned definitions have their formats resolved.
    """
    for definition in definitions:
        if description.output(definition.identifier) is None:
            return Err(UnknownOutputError(definition.identifier, description.output_ids))

    counts = Counter(d.identifier for d in definitions)
    for identifier, count in counts.items():
        if count > 1:
            return Err(DuplicateOutputError(identifier, count))

    if response_mode is ResponseMode.RAW and len(definitions) != 1:
        return Err(InvalidResponseModeError(len(definitions)))

    if not definitions:
        definitions = [OutputDefinition(o.identifier) for o in description.outputs]

    formats = collect_results([
        _resolve_format(description.output(d.identifier), d, generator_factory) for d in definitions
    ])
    return formats.map(lambda resolved: tuple(
        OutputDefinition(d.identifier, fmt, d.transmission) for d, fmt in zip(definitions, resolved)
    ))


def _resolve_format(
    output: OutputDescription,
    definition: OutputDefinition,
    generator_factory: GeneratorFactory | None,
) -> Result[Any]:
    payload = output.payload
    if isinstance(payload, ComplexDescription):
        fmt = payload.find_format(definition.format)
        if fmt is None:
            return Err(UnsupportedFormatError(output.identifier, definition.format, list(payload.all_formats)))
        if generator_factory is not None and not generator_factory.supports_encode(fmt, DataKind.COMPLEX):
            return Err(UnsupportedFormatError(output.identifier, fmt, list(payload.all_formats)))
        return Ok(fmt)
    if isinstance(payload, BoundingBoxDescription):
        if definition.format is not None and not BBOX_FORMAT.matches(definition.format):
            return Err(UnsupportedFormatError(output.identifier, definition.format, [BBOX_FORMAT]))
        return Ok(BBOX_FORMAT)
    if definition.format is not None:
        return Err(UnsupportedFormatError(output.identifier, definition.format, []))
    return Ok(None)


# =============================================================================
# OUTPUTS
# =============================================================================


def render_outputs(
    description: ProcessDescription,
    definitions: Sequence[OutputDefinition],
    produced: Mapping[str, Any],
    *,
    generator_factory: GeneratorFactory,
    explicit: bool = True,
) -> Result[list[RenderedOutput]]:
    """
    Render produced values for delivery.

    ``definitions`` must already be resolved by
    ``check_output_definitions``.  When ``explicit`` is false (the caller
    asked for "all outputs") a missing optional output is skipped instead
    of failing.
    """
    rendered: list[RenderedOutput] = []
    for definition in definitions:
        output = description.output(definition.identifier)
        if output is None:
            return Err(UnknownOutputError(definition.identifier, description.output_ids))
        if definition.identifier not in produced or produced[definition.identifier] is None:
            if not explicit and not output.occurrence.required:
                continue
            return Err(MissingOutputError(definition.identifier))

        match _render_one(output, definition, produced[definition.identifier], generator_factory):
            case Err(error):
                return Err(error)
            case Ok(item):
                rendered.append(item)
    return Ok(rendered)


def _render_one(
    output: OutputDescription,
    definition: OutputDefinition,
    value: Any,
    generator_factory: GeneratorFactory,
) -> Result[RenderedOutput]:
    identifier = output.identifier
    payload = output.payload

    if isinstance(payload, LiteralDescription):
        raw = value.value if isinstance(value, LiteralData) else value
        if isinstance(value, BoundingBoxData | ComplexData):
            return Err(_kind_mismatch(identifier, payload.kind, value.kind))
        try:
            typed = payload.data_type.coerce(raw)
        except (TypeError, ValueError) as e:
            return Err(RenderError(identifier, f"Output {identifier} is not a {payload.data_type.value}: {e}"))
        uom = value.uom if isinstance(value, LiteralData) and value.uom else payload.default_uom
        text = payload.data_type.format(typed)
        return Ok(RenderedOutput(
            identifier=identifier,
            kind=DataKind.LITERAL,
            value=typed,
            content=text.encode("utf-8"),
            mime_type="text/plain",
            data_type=payload.data_type.value,
            uom=uom,
        ))

    if isinstance(payload, BoundingBoxDescription):
        if not isinstance(value, BoundingBoxData):
            return Err(_kind_mismatch(identifier, payload.kind, getattr(value, "kind", type(value).__name__)))
        box = value if value.crs else BoundingBoxData(identifier, value.lower_corner, value.upper_corner, payload.default_crs)
        return _encode(identifier, DataKind.BOUNDING_BOX, definition.format, box, box, generator_factory)

    if isinstance(value, LiteralData | BoundingBoxData):
        return Err(_kind_mismatch(identifier, payload.kind, value.kind))
    data = value if isinstance(value, ComplexData) else ComplexData(identifier, value, definition.format)
    return _encode(identifier, DataKind.COMPLEX, definition.format, data, None, generator_factory)


def _encode(
    identifier: str,
    kind: DataKind,
    fmt: Any,
    data: ProcessData,
    document_value: Any,
    generator_factory: GeneratorFactory,
) -> Result[RenderedOutput]:
    if not generator_factory.supports_encode(fmt, kind):
        return Err(UnsupportedFormatError(identifier, fmt))
    try:
        content = generator_factory.encode(fmt, data)
    except Exception as e:
        return Err(RenderError(identifier, f"Could not encode output {identifier} as {fmt}: {e}", cause=e))
    return Ok(RenderedOutput(
        identifier=identifier,
        kind=kind,
        value=content if document_value is None else document_value,
        content=content,
        mime_type=fmt.mime_type,
        format=fmt,
    ))


def _kind_mismatch(identifier: str, expected: DataKind, actual: Any) -> RenderError:
    actual_text = actual.value if isinstance(actual, DataKind) else str(actual)
    return RenderError(identifier, f"Output {identifier} should be {expected.value} data, got {actual_text}")


__all__ = ["RenderedOutput", "bind_inputs", "check_output_definitions", "render_outputs"]
