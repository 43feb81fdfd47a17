"""
Builders for the immutable description tree.

Every builder is single-use: after ``build()`` (or ``build_input()`` /
``build_output()``) any further call raises ``RuntimeError``, so a
half-configured builder can never leak changes into a description that
was already published.

Builders do not judge well-formedness; the registry checks the finished
description against each supported protocol version.

Examples:
    >>> description = (
    ...     ProcessBuilder("echo")
    ...     .title("Echo")
    ...     .input(LiteralBuilder("msg", LiteralType.STRING).build_input())
    ...     .output(LiteralBuilder("msg", LiteralType.STRING).build_output())
    ...     .build()
    ... )
    >>> description.input_ids
    ['msg']

Guardrails:
    ❌ DON'T: Keep a builder around to "tweak" a published description
    ✅ DO: Build a new description and re-register the process

Tags:
    spine-wps, description, builder

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any, Self

from spine_wps.description.domains import (
    AllowedValues,
    AnyValue,
    LiteralDataDomain,
    RangeClosure,
    ValueRange,
)
from spine_wps.description.literal import DataType
from spine_wps.description.model import (
    BoundingBoxDescription,
    ComplexDescription,
    Format,
    InputDescription,
    LiteralDescription,
    Metadata,
    Occurrence,
    OutputDescription,
    Payload,
    ProcessDescription,
)


class _SingleUse:
    """Guard shared by all builders."""

    def __init__(self) -> None:
        self._built = False

    def _check(self) -> None:
        if self._built:
            raise RuntimeError(f"{type(self).__name__} cannot be reused after build()")

    def _finish(self) -> None:
        self._check()
        self._built = True


class _DataBuilder(_SingleUse):
    """Common identification and occurrence settings for inputs and outputs."""

    def __init__(self, identifier: str) -> None:
        super().__init__()
        self._identifier = identifier
        self._title: str | None = None
        self._abstract: str | None = None
        self._keywords: list[str] = []
        self._metadata: list[Metadata] = []
        self._occurrence = Occurrence()

    def title(self, title: str) -> Self:
        self._check()
        self._title = title
        return self

    def abstract(self, abstract: str) -> Self:
        self._check()
        self._abstract = abstract
        return self

    def keyword(self, *keywords: str) -> Self:
        self._check()
        self._keywords.extend(keywords)
        return self

    def metadata(self, href: str, role: str | None = None, title: str | None = None) -> Self:
        self._check()
        self._metadata.append(Metadata(href=href, role=role, title=title))
        return self

    def occurs(self, min_occurs: int, max_occurs: int | None = 1) -> Self:
        """Set occurrence bounds; ``max_occurs=None`` means unbounded."""
        self._check()
        self._occurrence = Occurrence(min_occurs, max_occurs)
        return self

    def optional(self) -> Self:
        self._check()
        self._occurrence = Occurrence(0, self._occurrence.max_occurs)
        return self

    def _payload(self) -> Payload:
        raise NotImplementedError

    def build_input(self) -> InputDescription:
        payload = self._payload()
        self._finish()
        return InputDescription(
            identifier=self._identifier,
            payload=payload,
            occurrence=self._occurrence,
            title=self._title,
            abstract=self._abstract,
            keywords=tuple(self._keywords),
            metadata=tuple(self._metadata),
        )

    def build_output(self) -> OutputDescription:
        payload = self._payload()
        self._finish()
        return OutputDescription(
            identifier=self._identifier,
            payload=payload,
            occurrence=self._occurrence,
            title=self._title,
            abstract=self._abstract,
            keywords=tuple(self._keywords),
            metadata=tuple(self._metadata),
        )


class LiteralBuilder(_DataBuilder):
    """
    Literal input/output.

    ``allowed_values`` / ``range`` / ``uom`` / ``default`` configure the
    default domain; ``domain`` appends further supported domains (for
    example the same range expressed in another unit).
    """

    def __init__(self, identifier: str, data_type: DataType) -> None:
        super().__init__(identifier)
        self._data_type = data_type
        self._values: list[Any] = []
        self._ranges: list[ValueRange] = []
        self._uom: str | None = None
        self._default: Any = None
        self._extra: list[LiteralDataDomain] = []

    def allowed_values(self, *values: Any) -> Self:
        self._check()
        self._values.extend(values)
        return self

    def range(
        self,
        minimum: float | None = None,
        maximum: float | None = None,
        *,
        spacing: float | None = None,
        closure: RangeClosure = RangeClosure.CLOSED,
    ) -> Self:
        self._check()
        self._ranges.append(ValueRange(minimum, maximum, spacing, closure))
        return self

    def uom(self, uom: str) -> Self:
        self._check()
        self._uom = uom
        return self

    def default(self, value: Any) -> Self:
        self._check()
        self._default = value
        return self

    def domain(self, domain: LiteralDataDomain) -> Self:
        self._check()
        self._extra.append(domain)
        return self

    def _payload(self) -> LiteralDescription:
        if self._values or self._ranges:
            possible = AllowedValues(tuple(self._values), tuple(self._ranges))
        else:
            possible = AnyValue()
        default_domain = LiteralDataDomain(
            possible_values=possible,
            data_type=self._data_type,
            uom=self._uom,
            default_value=self._default,
        )
        return LiteralDescription(domains=(default_domain, *self._extra))


class ComplexBuilder(_DataBuilder):
    """Complex input/output with a default format and alternatives."""

    def __init__(self, identifier: str, default_format: Format) -> None:
        super().__init__(identifier)
        self._default_format = default_format
        self._formats: list[Format] = [default_format]
        self._maximum_megabytes: int | None = None

    def supported_format(self, *formats: Format) -> Self:
        self._check()
        for fmt in formats:
            if fmt not in self._formats:
                self._formats.append(fmt)
        return self

    def maximum_megabytes(self, size: int) -> Self:
        self._check()
        self._maximum_megabytes = size
        return self

    def _payload(self) -> ComplexDescription:
        return ComplexDescription(
            default_format=self._default_format,
            supported_formats=tuple(self._formats),
            maximum_megabytes=self._maximum_megabytes,
        )


class BoundingBoxBuilder(_DataBuilder):
    """Bounding box input/output."""

    def __init__(self, identifier: str, default_crs: str | None = None, dimensions: int = 2) -> None:
        super().__init__(identifier)
        self._default_crs = default_crs
        self._crs: list[str] = [default_crs] if default_crs else []
        self._dimensions = dimensions

    def supported_crs(self, *crs: str) -> Self:
        self._check()
        for item in crs:
            if item not in self._crs:
                self._crs.append(item)
        return self

    def _payload(self) -> BoundingBoxDescription:
        return BoundingBoxDescription(
            default_crs=self._default_crs,
            supported_crs=tuple(self._crs),
            dimensions=self._dimensions,
        )


class ProcessBuilder(_SingleUse):
    """Assembles a ``ProcessDescription``."""

    def __init__(self, identifier: str) -> None:
        super().__init__()
        self._identifier = identifier
        self._title: str | None = None
        self._abstract: str | None = None
        self._version = "1.0.0"
        self._keywords: list[str] = []
        self._metadata: list[Metadata] = []
        self._inputs: list[InputDescription] = []
        self._outputs: list[OutputDescription] = []
        self._sync = True
        self._async = False

    def title(self, title: str) -> Self:
        self._check()
        self._title = title
        return self

    def abstract(self, abstract: str) -> Self:
        self._check()
        self._abstract = abstract
        return self

    def version(self, version: str) -> Self:
        """Version of the process itself (not the protocol)."""
        self._check()
        self._version = version
        return self

    def keyword(self, *keywords: str) -> Self:
        self._check()
        self._keywords.extend(keywords)
        return self

    def metadata(self, href: str, role: str | None = None, title: str | None = None) -> Self:
        self._check()
        self._metadata.append(Metadata(href=href, role=role, title=title))
        return self

    def input(self, description: InputDescription) -> Self:
        self._check()
        self._inputs.append(description)
        return self

    def output(self, description: OutputDescription) -> Self:
        self._check()
        self._outputs.append(description)
        return self

    def execution(self, *, sync: bool = True, async_: bool = False) -> Self:
        """Declare which execution modes the process offers."""
        self._check()
        self._sync = sync
        self._async = async_
        return self

    def build(self) -> ProcessDescription:
        self._finish()
        return ProcessDescription(
            identifier=self._identifier,
            inputs=tuple(self._inputs),
            outputs=tuple(self._outputs),
            title=self._title,
            abstract=self._abstract,
            keywords=tuple(self._keywords),
            metadata=tuple(self._metadata),
            version=self._version,
            sync_execute=self._sync,
            async_execute=self._async,
        )


__all__ = [
    "LiteralBuilder",
    "ComplexBuilder",
    "BoundingBoxBuilder",
    "ProcessBuilder",
]
