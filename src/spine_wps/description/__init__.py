"""Process descriptions: types, domains, units and builders.

Validation lives in :mod:`spine_wps.description.validation`, which also
depends on the runtime data types and is therefore not re-exported here.

Tags:
    spine-wps, description
"""

from spine_wps.description.builders import BoundingBoxBuilder, ComplexBuilder, LiteralBuilder, ProcessBuilder
from spine_wps.description.domains import AllowedValues, AnyValue, LiteralDataDomain, RangeClosure, ValueRange
from spine_wps.description.literal import EnumeratedType, LiteralType
from spine_wps.description.model import (
    UNBOUNDED,
    BoundingBoxDescription,
    ComplexDescription,
    DataKind,
    Format,
    InputDescription,
    LiteralDescription,
    Metadata,
    Occurrence,
    OutputDescription,
    ProcessDescription,
)
from spine_wps.description.units import DEFAULT_UNITS, UnitRegistry

__all__ = [
    "ProcessBuilder",
    "LiteralBuilder",
    "ComplexBuilder",
    "BoundingBoxBuilder",
    "AnyValue",
    "AllowedValues",
    "ValueRange",
    "RangeClosure",
    "LiteralDataDomain",
    "LiteralType",
    "EnumeratedType",
    "UNBOUNDED",
    "DataKind",
    "Format",
    "Metadata",
    "Occurrence",
    "LiteralDescription",
    "BoundingBoxDescription",
    "ComplexDescription",
    "InputDescription",
    "OutputDescription",
    "ProcessDescription",
    "UnitRegistry",
    "DEFAULT_UNITS",
]
