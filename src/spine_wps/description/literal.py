"""Literal scalar types and lossless coercion.

Manifesto:
    Callers hand the engine values that were decoded from some wire
    format, so a ``"42"`` string, an ``int`` and a ``42.0`` float must all
    be acceptable for an ``integer`` input, while ``42.5`` and ``True`` must
    not.  Each type knows how to coerce a value *without losing
    information* and how to format it back for raw delivery.

Examples:
    >>> LiteralType.INTEGER.coerce("42")
    42
    >>> LiteralType.DOUBLE.coerce(3)
    3.0
    >>> LiteralType.BOOLEAN.format(True)
    'true'

Guardrails:
    ❌ DON'T: Accept ``bool`` for numeric types (``True == 1`` in Python)
    ✅ DO: Reject any value whose conversion would change it

Tags:
    spine-wps, description, literal, coercion

Doc-Types:
    api-reference
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

_INT32 = (-(2**31), 2**31 - 1)
_INT64 = (-(2**63), 2**63 - 1)

_TRUE = frozenset({"true", "1"})
_FALSE = frozenset({"false", "0"})


class LiteralType(str, Enum):
    """Scalar types a literal input or output can declare."""

    INTEGER = "integer"
    LONG = "long"
    DOUBLE = "double"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE_TIME = "dateTime"

    @property
    def is_numeric(self) -> bool:
        return self in (LiteralType.INTEGER, LiteralType.LONG, LiteralType.DOUBLE, LiteralType.FLOAT)

    def coerce(self, value: Any) -> Any:
        """Return ``value`` as this type.

        Raises:
            TypeError: the Python type of ``value`` cannot represent this type
            ValueError: the conversion would lose information
        """
        match self:
            case LiteralType.INTEGER:
                return _coerce_int(value, _INT32)
            case LiteralType.LONG:
                return _coerce_int(value, _INT64)
            case LiteralType.DOUBLE | LiteralType.FLOAT:
                return _coerce_float(value)
            case LiteralType.BOOLEAN:
                return _coerce_bool(value)
            case LiteralType.STRING:
                if not isinstance(value, str):
                    raise TypeError(f"expected str, got {type(value).__name__}")
                return value
            case LiteralType.DATE_TIME:
                return _coerce_datetime(value)
        raise TypeError(f"unsupported literal type {self.value}")  # pragma: no cover

    def format(self, value: Any) -> str:
        """Render a coerced value as text."""
        if self is LiteralType.BOOLEAN:
            return "true" if value else "false"
        if self is LiteralType.DATE_TIME:
            return value.isoformat()
        return str(value)


@dataclass(frozen=True)
class EnumeratedType:
    """
    A typed enumeration backed by a Python ``Enum``.

    Values coerce from members, member values or member names.

    >>> import enum
    >>> class Method(enum.Enum):
    ...     NEAREST = "nearest"
    ...     BILINEAR = "bilinear"
    >>> EnumeratedType(Method).coerce("bilinear")
    <Method.BILINEAR: 'bilinear'>
    """

    enum_class: type[Enum]

    @property
    def value(self) -> str:
        return self.enum_class.__name__

    @property
    def is_numeric(self) -> bool:
        return False

    def coerce(self, value: Any) -> Enum:
        if isinstance(value, self.enum_class):
            return value
        for member in self.enum_class:
            if value == member.value or (isinstance(value, str) and value == member.name):
                return member
        raise ValueError(f"{value!r} is not a member of {self.enum_class.__name__}")

    def format(self, value: Any) -> str:
        return str(self.coerce(value).value)


DataType = LiteralType | EnumeratedType


# ── Coercion helpers ─────────────────────────────────────────────────────


def _coerce_int(value: Any, bounds: tuple[int, int]) -> int:
    if isinstance(value, bool):
        raise TypeError("booleans are not integers")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValueError(f"{value!r} is not integral")
        result = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            result = int(text)
        except ValueError:
            result = _coerce_int(float(text), bounds)
    else:
        raise TypeError(f"expected an integer, got {type(value).__name__}")

    low, high = bounds
    if not low <= result <= high:
        raise ValueError(f"{result} does not fit in [{low}, {high}]")
    return result


def _coerce_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            result = float(value)
        except OverflowError as e:
            raise ValueError(f"{value} is too large for a double") from e
        if int(result) != value:
            raise ValueError(f"{value} cannot be represented exactly as a double")
        return result
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"expected a number, got {type(value).__name__}")


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"{value!r} is not a boolean")
    raise TypeError(f"expected a boolean, got {type(value).__name__}")


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise TypeError(f"expected a dateTime, got {type(value).__name__}")


__all__ = ["LiteralType", "EnumeratedType", "DataType"]
