"""
Result envelope for consistent success/failure handling.

Registry lookups, input binding, output rendering and job control all
return ``Ok[T]`` or ``Err[T]`` instead of raising for expected failures.
A rejected request is a normal outcome of the protocol; it must be
rendered to the caller, not unwound through the stack.

Manifesto:
    - **Explicit over implicit:** callers see both paths in the type
    - **Functional composition:** chain binding → checking → dispatch with
      ``flat_map`` instead of nested try/except
    - **Batch-friendly:** registration of many processes collects failures
      with ``partition_results()`` and keeps going

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Result[T]                                │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • try_result()          │
        │ • map()         │ • map_err()     │ • collect_results()     │
        │ • flat_map()    │ • or_else()     │ • partition_results()   │
        │ • unwrap()      │ • unwrap_or()   │ • from_optional()       │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from spine_wps.core.result import Ok, Err
    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    >>> Err(ValueError("oops")).map(lambda x: x * 2).unwrap_or(0)
    0

    Pattern matching:

    >>> match registry.register("echo"):
    ...     case Ok(description):
    ...         print(description.identifier)
    ...     case Err(error):
    ...         print(error.to_dict())

Guardrails:
    ❌ DON'T: Use unwrap() without checking is_ok() first
    ✅ DO: Use unwrap_or() or pattern matching for safe extraction

    ❌ DON'T: Raise exceptions inside map/flat_map functions
    ✅ DO: Return Err from flat_map if the step can fail

Tags:
    result-pattern, error-handling, functional-programming, spine-wps

Doc-Types:
    - API Reference
    - Design Patterns Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from spine_wps.core.errors import WpsError


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return self

    def or_else(self, f: Callable[[Exception], Result[T]]) -> Result[T]:
        return self

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        """Call f with value for side effects, return self."""
        f(self.value)
        return self

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    Prefer ``WpsError`` subclasses so ``to_dict()`` carries the
    structured detail (identifier, expected, actual).
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return f(self.error)

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Transform the error."""
        return Err(f(self.error))

    def or_else(self, f: Callable[[Exception], Result[T]]) -> Result[T]:
        """Call f with error to try recovery."""
        return f(self.error)

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        return self

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, WpsError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


# =============================================================================
# RESULT CONSTRUCTORS AND UTILITIES
# =============================================================================


def try_result(f: Callable[[], T]) -> Result[T]:
    """
    Execute ``f`` and capture any exception as ``Err``.

    Bridges exception-throwing code (host factories, third-party
    codecs) into the Result world.

    >>> try_result(lambda: int("42"))
    Ok(42)
    >>> try_result(lambda: int("x")).is_err()
    True
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


def collect_results(results: list[Result[T]]) -> Result[list[T]]:
    """
    Fail-fast collection: all values if every result is Ok, else the first Err.

    >>> collect_results([Ok(1), Ok(2)]).unwrap()
    [1, 2]
    """
    values = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                return Err(error)
    return Ok(values)


def partition_results(
    results: list[Result[T]],
) -> tuple[list[T], list[Exception]]:
    """
    Split results into successful values and errors, preserving order.

    >>> partition_results([Ok(1), Err(ValueError("x")), Ok(3)])[0]
    [1, 3]
    """
    values: list[T] = []
    errors: list[Exception] = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


def from_optional(value: T | None, error: Exception) -> Result[T]:
    """
    Convert an optional value into a Result.

    >>> from_optional(None, KeyError("nope")).is_err()
    True
    """
    if value is None:
        return Err(error)
    return Ok(value)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result",
    "collect_results",
    "partition_results",
    "from_optional",
]
