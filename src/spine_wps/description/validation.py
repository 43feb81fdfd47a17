"""
Value, occurrence and well-formedness checks.

Manifesto:
    Every rejection happens here, before an algorithm runs, and comes back
    as a typed ``Err`` naming the offending identifier with the expected
    and actual values.  Nothing in this module raises for bad input.

Architecture:
    ::

        validate_value(description, data)       -> Result[ProcessData]
          ├── kind check           TypeMismatchError
          ├── literal
          │     ├── coerce type    TypeMismatchError
          │     ├── unit of measure (convert to default unit if declared)
          │     └── domains        OutOfDomainError
          ├── bounding box         CRS / dimensions
          └── complex              format negotiation

        validate_occurrence(description, count) -> Result[None]
          └── MissingInputError / OccurrenceOutOfBoundsError

        check_well_formed(description, version) -> list[str]
        problems_by_version(description, versions) -> dict[str, list[str]]

Examples:
    >>> validate_occurrence(description.input("msg"), 0)
    Err(MissingInputError('Missing required input: msg', category=VALIDATION))

Tags:
    spine-wps, description, validation, result-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from spine_wps.core.errors import (
    MissingInputError,
    OccurrenceOutOfBoundsError,
    OutOfDomainError,
    TypeMismatchError,
)
from spine_wps.core.result import Err, Ok, Result
from spine_wps.data import BoundingBoxData, ComplexData, LiteralData, ProcessData
from spine_wps.description.domains import AllowedValues, LiteralDataDomain
from spine_wps.description.literal import DataType
from spine_wps.description.model import (
    BoundingBoxDescription,
    ComplexDescription,
    InputDescription,
    LiteralDescription,
    Occurrence,
    OutputDescription,
    ProcessDescription,
)
from spine_wps.description.units import DEFAULT_UNITS, UnitRegistry

DEFAULT_EPSILON = 1e-9

DataDescription = InputDescription | OutputDescription


# =============================================================================
# VALUES
# =============================================================================


def validate_value(
    description: DataDescription,
    data: ProcessData,
    *,
    epsilon: float = DEFAULT_EPSILON,
    units: UnitRegistry = DEFAULT_UNITS,
) -> Result[ProcessData]:
    """
    Check one runtime value against its description.

    Returns the value in canonical form: literals coerced to the declared
    type and expressed in the default unit; bounding boxes and complex
    values with their CRS / format resolved.
    """
    if data.kind != description.kind:
        return Err(TypeMismatchError(description.identifier, description.kind.value, data.kind.value))

    payload = description.payload
    match payload, data:
        case LiteralDescription(), LiteralData():
            return _validate_literal(description.identifier, payload, data, epsilon, units)
        case BoundingBoxDescription(), BoundingBoxData():
            return _validate_bbox(description.identifier, payload, data)
        case ComplexDescription(), ComplexData():
            return _validate_complex(description.identifier, payload, data)
    return Err(TypeMismatchError(description.identifier, description.kind.value, type(data).__name__))


def _validate_literal(
    identifier: str,
    payload: LiteralDescription,
    data: LiteralData,
    epsilon: float,
    units: UnitRegistry,
) -> Result[ProcessData]:
    data_type = payload.data_type
    try:
        value = data_type.coerce(data.value)
    except (TypeError, ValueError) as e:
        return Err(TypeMismatchError(identifier, data_type.value, type(data.value).__name__, reason=str(e)))

    default_uom = payload.default_uom
    uom = data.uom or default_uom

    if uom is None or uom in payload.supported_uoms:
        candidates = payload.domains_for(uom) if uom else payload.domains
    elif default_uom is not None and data_type.is_numeric and units.convertible(uom, default_uom):
        converted = _to_unit(identifier, data_type, value, uom, default_uom, units)
        if converted.is_err():
            return converted
        value, uom = converted.unwrap(), default_uom
        candidates = payload.domains_for(uom)
    else:
        supported = list(payload.supported_uoms)
        return Err(OutOfDomainError(identifier, data.value, expected=supported, reason=f"unit {uom} is not supported"))

    if not any(domain.contains(value, epsilon) for domain in candidates):
        expected = [domain.describe() for domain in candidates]
        return Err(OutOfDomainError(identifier, value, expected=expected))

    if default_uom is not None and uom != default_uom and data_type.is_numeric and units.convertible(uom, default_uom):
        converted = _to_unit(identifier, data_type, value, uom, default_uom, units)
        if converted.is_err():
            return converted
        value, uom = converted.unwrap(), default_uom

    return Ok(LiteralData(identifier, value, uom))


def _to_unit(
    identifier: str, data_type: DataType, value: Any, source: str, target: str, units: UnitRegistry
) -> Result[Any]:
    try:
        return Ok(data_type.coerce(units.convert(value, source, target)))
    except (TypeError, ValueError) as e:
        return Err(TypeMismatchError(identifier, f"{data_type.value} in {target}", f"{value} {source}", reason=str(e)))


def _validate_bbox(identifier: str, payload: BoundingBoxDescription, data: BoundingBoxData) -> Result[ProcessData]:
    if len(data.lower_corner) != len(data.upper_corner):
        return Err(TypeMismatchError(
            identifier,
            f"{payload.dimensions} dimensions",
            f"{len(data.lower_corner)}/{len(data.upper_corner)} corner coordinates",
        ))
    if data.dimensions != payload.dimensions:
        return Err(TypeMismatchError(identifier, f"{payload.dimensions} dimensions", f"{data.dimensions} dimensions"))
    if any(low > high for low, high in zip(data.lower_corner, data.upper_corner)):
        return Err(OutOfDomainError(identifier, data.to_dict(), reason="lower corner exceeds upper corner"))

    crs = data.crs or payload.default_crs
    allowed = payload.all_crs
    if allowed and crs not in allowed:
        return Err(OutOfDomainError(identifier, crs, expected=list(allowed), reason="unsupported CRS"))
    return Ok(BoundingBoxData(identifier, tuple(data.lower_corner), tuple(data.upper_corner), crs))


def _validate_complex(identifier: str, payload: ComplexDescription, data: ComplexData) -> Result[ProcessData]:
    resolved = payload.find_format(data.format)
    if resolved is None:
        return Err(TypeMismatchError(
            identifier,
            [str(f) for f in payload.all_formats],
            str(data.format),
            reason="unsupported format",
        ))
    if payload.maximum_megabytes is not None and data.encoded and isinstance(data.value, bytes | str):
        size = len(data.value) / (1024 * 1024)
        if size > payload.maximum_megabytes:
            return Err(OutOfDomainError(
                identifier,
                f"{size:.1f} MB",
                expected=f"<= {payload.maximum_megabytes} MB",
                reason="content too large",
            ))
    return Ok(ComplexData(identifier, data.value, resolved, data.encoded))


# =============================================================================
# OCCURRENCES
# =============================================================================


def validate_occurrence(description: DataDescription, count: int) -> Result[None]:
    """Reject counts outside ``[min_occurs, max_occurs]``."""
    occurrence = description.occurrence
    if occurrence.allows(count):
        return Ok(None)
    if count == 0:
        return Err(MissingInputError(description.identifier, occurrence.min_occurs))
    return Err(OccurrenceOutOfBoundsError(
        description.identifier, occurrence.min_occurs, occurrence.max_occurs, count
    ))


# =============================================================================
# WELL-FORMEDNESS PER PROTOCOL VERSION
# =============================================================================

Rule = Callable[[ProcessDescription], list[str]]


def _common_rules(description: ProcessDescription) -> list[str]:
    problems: list[str] = []
    if not description.identifier:
        problems.append("process identifier is empty")
    if not description.outputs:
        problems.append("process declares no outputs")
    if not (description.sync_execute or description.async_execute):
        problems.append("process offers neither sync nor async execution")

    for label, items in (("input", description.inputs), ("output", description.outputs)):
        seen: set[str] = set()
        for item in items:
            if not item.identifier:
                problems.append(f"{label} with empty identifier")
            elif item.identifier in seen:
                problems.append(f"duplicate {label} identifier {item.identifier}")
            seen.add(item.identifier)
            problems.extend(_occurrence_problems(label, item.identifier, item.occurrence))
            problems.extend(_payload_problems(label, item))
    return problems


def _occurrence_problems(label: str, identifier: str, occurrence: Occurrence) -> list[str]:
    if occurrence.min_occurs < 0:
        return [f"{label} {identifier}: min_occurs is negative"]
    if occurrence.max_occurs is not None and occurrence.max_occurs < max(occurrence.min_occurs, 1):
        return [f"{label} {identifier}: max_occurs {occurrence.max_occurs} is below min_occurs {occurrence.min_occurs}"]
    return []


def _payload_problems(label: str, item: DataDescription) -> list[str]:
    prefix = f"{label} {item.identifier}"
    payload = item.payload
    if isinstance(payload, LiteralDescription):
        if not payload.domains:
            return [f"{prefix}: literal without domains"]
        problems: list[str] = []
        for domain in payload.domains:
            problems.extend(_domain_problems(prefix, domain))
        default = payload.default_value
        if default is not None:
            try:
                coerced = payload.data_type.coerce(default)
            except (TypeError, ValueError):
                problems.append(f"{prefix}: default value {default!r} is not a {payload.data_type.value}")
            else:
                if not payload.default_domain.contains(coerced):
                    problems.append(f"{prefix}: default value {default!r} is outside the default domain")
        return problems
    if isinstance(payload, ComplexDescription):
        if payload.supported_formats and payload.default_format not in payload.supported_formats:
            return [f"{prefix}: default format is not among the supported formats"]
        return []
    if payload.dimensions < 1:
        return [f"{prefix}: bounding box needs at least one dimension"]
    return []


def _domain_problems(prefix: str, domain: LiteralDataDomain) -> list[str]:
    possible = domain.possible_values
    if not isinstance(possible, AllowedValues):
        return []
    problems: list[str] = []
    if not possible.values and not possible.ranges:
        problems.append(f"{prefix}: allowed values are empty")
    for value in possible.values:
        try:
            domain.data_type.coerce(value)
        except (TypeError, ValueError):
            problems.append(f"{prefix}: allowed value {value!r} is not a {domain.data_type.value}")
    for value_range in possible.ranges:
        if not domain.data_type.is_numeric:
            problems.append(f"{prefix}: range on non-numeric type {domain.data_type.value}")
        if (
            value_range.minimum is not None
            and value_range.maximum is not None
            and value_range.minimum > value_range.maximum
        ):
            problems.append(f"{prefix}: range minimum exceeds maximum")
        if value_range.spacing is not None and value_range.spacing <= 0:
            problems.append(f"{prefix}: range spacing must be positive")
    return problems


def _v1_rules(description: ProcessDescription) -> list[str]:
    problems = _common_rules(description)
    for output in description.outputs:
        if output.occurrence.max_occurs != 1:
            problems.append(f"output {output.identifier}: version 1.0.0 outputs occur exactly once")
    for item in (*description.inputs, *description.outputs):
        if isinstance(item.payload, ComplexDescription):
            if any(f.mime_type is None for f in item.payload.all_formats):
                problems.append(f"{item.identifier}: version 1.0.0 formats require a MIME type")
    return problems


def _v2_rules(description: ProcessDescription) -> list[str]:
    return _common_rules(description)


VERSION_RULES: dict[str, Rule] = {
    "1.0.0": _v1_rules,
    "2.0.0": _v2_rules,
}


def check_well_formed(description: ProcessDescription, version: str) -> list[str]:
    """Problems that make ``description`` unusable under ``version`` (empty if none)."""
    rule = VERSION_RULES.get(version)
    if rule is None:
        return [f"unsupported protocol version {version}"]
    return rule(description)


def problems_by_version(description: ProcessDescription, versions: list[str]) -> dict[str, list[str]]:
    return {version: check_well_formed(description, version) for version in versions}


__all__ = [
    "DEFAULT_EPSILON",
    "validate_value",
    "validate_occurrence",
    "check_well_formed",
    "problems_by_version",
    "VERSION_RULES",
]
