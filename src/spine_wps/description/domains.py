"""Allowed-value domains for literal data.

A literal description carries one default domain and any number of
additional supported domains (typically one per unit of measure).  Each
domain combines a data type with the set of permitted values, which is
one of:

- ``AnyValue`` - every syntactically valid value of the type
- ``AllowedValues`` - explicit values and/or ``ValueRange`` intervals

Ranges may declare a ``spacing``; a value then belongs to the range only
if it is reachable from the range minimum (or maximum, if the range is
open below) by an integer number of steps, within ``epsilon``.

Tags:
    spine-wps, description, domains, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from spine_wps.description.literal import DataType, LiteralType


class RangeClosure(str, Enum):
    """Which ends of a ``ValueRange`` are inclusive."""

    CLOSED = "closed"
    OPEN = "open"
    OPEN_CLOSED = "open-closed"
    CLOSED_OPEN = "closed-open"

    @property
    def includes_minimum(self) -> bool:
        return self in (RangeClosure.CLOSED, RangeClosure.CLOSED_OPEN)

    @property
    def includes_maximum(self) -> bool:
        return self in (RangeClosure.CLOSED, RangeClosure.OPEN_CLOSED)


@dataclass(frozen=True)
class ValueRange:
    """A numeric interval, optionally restricted to a spacing grid."""

    minimum: float | None = None
    maximum: float | None = None
    spacing: float | None = None
    closure: RangeClosure = RangeClosure.CLOSED

    def contains(self, value: float, epsilon: float = 1e-9) -> bool:
        # NaN and infinities lie in no interval
        if not math.isfinite(value):
            return False
        if self.minimum is not None:
            if value < self.minimum - epsilon:
                return False
            if not self.closure.includes_minimum and abs(value - self.minimum) <= epsilon:
                return False
        if self.maximum is not None:
            if value > self.maximum + epsilon:
                return False
            if not self.closure.includes_maximum and abs(value - self.maximum) <= epsilon:
                return False
        if self.spacing:
            anchor = self.minimum if self.minimum is not None else (self.maximum or 0.0)
            offset = (value - anchor) / self.spacing
            if not math.isfinite(offset):
                return False
            steps = round(offset)
            if abs(anchor + steps * self.spacing - value) > epsilon:
                return False
        return True

    def describe(self) -> str:
        low = "-inf" if self.minimum is None else repr(self.minimum)
        high = "+inf" if self.maximum is None else repr(self.maximum)
        left = "[" if self.closure.includes_minimum else "("
        right = "]" if self.closure.includes_maximum else ")"
        text = f"{left}{low}, {high}{right}"
        if self.spacing:
            text += f" step {self.spacing!r}"
        return text


@dataclass(frozen=True)
class AnyValue:
    """Any syntactically valid value of the domain's type."""

    def contains(self, value: Any, data_type: DataType, epsilon: float = 1e-9) -> bool:
        return True

    def describe(self) -> str:
        return "any value"


@dataclass(frozen=True)
class AllowedValues:
    """Explicit enumeration of values and/or ranges."""

    values: tuple[Any, ...] = ()
    ranges: tuple[ValueRange, ...] = ()

    def contains(self, value: Any, data_type: DataType, epsilon: float = 1e-9) -> bool:
        for allowed in self.values:
            try:
                candidate = data_type.coerce(allowed)
            except (TypeError, ValueError):
                continue
            if candidate == value:
                return True
            if isinstance(value, float) and abs(candidate - value) <= epsilon:
                return True
        if data_type.is_numeric:
            return any(r.contains(value, epsilon) for r in self.ranges)
        return False

    def describe(self) -> str:
        parts = [repr(v) for v in self.values] + [r.describe() for r in self.ranges]
        return "one of " + ", ".join(parts) if parts else "no values"


PossibleValues = AnyValue | AllowedValues


@dataclass(frozen=True)
class LiteralDataDomain:
    """A data type, its permitted values, unit of measure and default value."""

    possible_values: PossibleValues = field(default_factory=AnyValue)
    data_type: DataType = LiteralType.STRING
    uom: str | None = None
    default_value: Any = None

    def contains(self, value: Any, epsilon: float = 1e-9) -> bool:
        """Check an already-coerced value for membership."""
        return self.possible_values.contains(value, self.data_type, epsilon)

    def describe(self) -> str:
        text = f"{self.data_type.value}: {self.possible_values.describe()}"
        if self.uom:
            text += f" ({self.uom})"
        return text


__all__ = [
    "RangeClosure",
    "ValueRange",
    "AnyValue",
    "AllowedValues",
    "PossibleValues",
    "LiteralDataDomain",
]
