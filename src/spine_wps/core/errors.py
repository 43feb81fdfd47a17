"""
Structured error types for the process engine.

Every failure the engine can report is a typed ``WpsError`` carrying a
category, a structured context and (optionally) the underlying cause.
Expected failures travel inside ``Err`` values (see
:mod:`spine_wps.core.result`); callers render them with ``to_dict()``
instead of parsing messages.

Manifesto:
    - **Typed hierarchy:** one class per failure the protocol can report
    - **Structured detail:** offending identifier, expected and actual value
      are attributes, never only text
    - **Error chaining:** dispatch errors wrap the precise cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                          WpsError                               │
        │              (category, context, cause, to_dict)                │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  RegistrationError   ValidationError          RenderError       │
        │  (REGISTRY)          (VALIDATION)             (RENDER)          │
        │       │                   │                        │            │
        │  LoadError           UnknownInputError       UnsupportedFormat  │
        │  DescriptionInvalid  MissingInputError       MissingOutput      │
        │                      OutOfDomainError                           │
        │                      TypeMismatchError                          │
        │                      OccurrenceOutOfBounds                      │
        │                                                                 │
        │  UnknownProcessError InvalidResponseMode     DispatchError      │
        │  ModeNotSupported    (REQUEST)               (wraps the above)  │
        │                                                                 │
        │  CancelError         UnknownJobError         ExecutionFailure   │
        │  AlreadyTerminal     JobNotFinishedError     (EXECUTION)        │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = MissingInputError("msg")
    >>> error.identifier
    'msg'
    >>> error.to_dict()["error_type"]
    'MissingInputError'

    Wrapping a validation failure at dispatch time:

    >>> dispatch = DispatchError.wrap(MissingInputError("msg"))
    >>> isinstance(dispatch.cause, MissingInputError)
    True

Tags:
    error-handling, exception-hierarchy, error-context, spine-wps

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and rendering."""

    REGISTRY = "REGISTRY"          # Loading, describing, indexing processes
    REQUEST = "REQUEST"            # Malformed or unsupported execute requests
    VALIDATION = "VALIDATION"      # Input values against descriptions
    RENDER = "RENDER"              # Output encoding
    EXECUTION = "EXECUTION"        # Algorithm-reported failures
    JOB = "JOB"                    # Job lookup, cancellation
    CONFIG = "CONFIG"              # Settings, discovery tables
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-empty fields are serialized by ``to_dict()``.

    >>> ErrorContext(process_id="echo", job_id="j-1").to_dict()
    {'process_id': 'echo', 'job_id': 'j-1'}
    """

    process_id: str | None = None
    job_id: str | None = None
    identifier: str | None = None
    version: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in ("process_id", "job_id", "identifier", "version"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WpsError(Exception):
    """
    Base class for all engine errors.

    Attributes:
        message: Human-readable description
        category: ``ErrorCategory`` used for routing and rendering
        context: ``ErrorContext`` with structured metadata
        cause: Underlying exception, also chained as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        """Stable error code, the class name without the ``Error`` suffix."""
        name = self.__class__.__name__
        return name[:-5] if name.endswith("Error") else name

    def with_context(self, **kwargs: Any) -> WpsError:
        """
        Add context to this error (fluent API).

        Usage:
            return Err(UnknownProcessError(pid).with_context(job_id=job_id))
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def details(self) -> dict[str, Any]:
        """Subclass-specific structured fields."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        result.update(self.details())
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            if isinstance(self.cause, WpsError):
                result["cause"] = self.cause.to_dict()
            else:
                result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistrationError(WpsError):
    """A process could not be registered."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, identifier: str, message: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.identifier = identifier
        self.context.identifier = identifier

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier}


class LoadError(RegistrationError):
    """The implementation bound to an identifier could not be located or instantiated."""

    def __init__(self, identifier: str, reason: str | None = None, *, cause: Exception | None = None):
        reason = reason or (str(cause) if cause is not None else "unknown reason")
        super().__init__(identifier, f"Could not load process {identifier}: {reason}", cause=cause)
        self.reason = reason

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "reason": self.reason}


class DescriptionInvalidError(RegistrationError):
    """The process description is not well-formed for any supported version."""

    def __init__(self, identifier: str, problems: dict[str, list[str]]):
        self.problems = {version: list(items) for version, items in problems.items()}
        summary = "; ".join(
            f"{version}: {', '.join(items)}" for version, items in self.problems.items()
        )
        super().__init__(identifier, f"Process description not valid for {identifier} ({summary})")

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "problems": self.problems}


class UnknownProcessError(WpsError):
    """No process is registered under the requested identifier."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, identifier: str):
        super().__init__(f"Unknown process: {identifier}")
        self.identifier = identifier
        self.context.process_id = identifier

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier}


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(WpsError):
    """
    An input value does not satisfy its description.

    Never recoverable by retrying - the request must change.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        identifier: str,
        message: str,
        *,
        expected: Any = None,
        actual: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.identifier = identifier
        self.expected = expected
        self.actual = actual
        self.context.identifier = identifier

    def details(self) -> dict[str, Any]:
        result: dict[str, Any] = {"identifier": self.identifier}
        if self.expected is not None:
            result["expected"] = _printable(self.expected)
        if self.actual is not None:
            result["actual"] = _printable(self.actual)
        return result


class UnknownInputError(ValidationError):
    """The request names an input the process does not declare."""

    def __init__(self, identifier: str, known: list[str] | None = None):
        super().__init__(
            identifier,
            f"Unknown input: {identifier}",
            expected=sorted(known) if known else None,
            actual=identifier,
        )


class MissingInputError(ValidationError):
    """A required input was not supplied."""

    def __init__(self, identifier: str, min_occurs: int = 1):
        super().__init__(
            identifier,
            f"Missing required input: {identifier}",
            expected=f">= {min_occurs} occurrence(s)",
            actual=0,
        )
        self.min_occurs = min_occurs


class OutOfDomainError(ValidationError):
    """A literal value lies outside every allowed-value domain."""

    def __init__(self, identifier: str, value: Any, expected: Any = None, *, reason: str | None = None):
        message = f"Value {value!r} for {identifier} is outside the allowed domain"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(identifier, message, expected=expected, actual=value)
        self.value = value


class TypeMismatchError(ValidationError):
    """A value does not have (and cannot be losslessly coerced to) the declared type."""

    def __init__(self, identifier: str, expected: Any, actual: Any, *, reason: str | None = None):
        message = f"Type mismatch for {identifier}: expected {expected}, got {actual}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(identifier, message, expected=expected, actual=actual)


class OccurrenceOutOfBoundsError(ValidationError):
    """The number of supplied occurrences lies outside ``[min, max]``."""

    def __init__(self, identifier: str, min_occurs: int, max_occurs: int | None, count: int):
        upper = "unbounded" if max_occurs is None else str(max_occurs)
        super().__init__(
            identifier,
            f"Input {identifier} occurs {count} time(s), expected between {min_occurs} and {upper}",
            expected=[min_occurs, upper],
            actual=count,
        )
        self.min_occurs = min_occurs
        self.max_occurs = max_occurs
        self.count = count


# =============================================================================
# REQUEST ERRORS
# =============================================================================


class InvalidResponseModeError(WpsError):
    """RAW response mode used with anything other than exactly one output."""

    default_category = ErrorCategory.REQUEST

    def __init__(self, requested_outputs: int):
        super().__init__(
            f"RAW response mode requires exactly one requested output, got {requested_outputs}"
        )
        self.requested_outputs = requested_outputs

    def details(self) -> dict[str, Any]:
        return {"expected": 1, "actual": self.requested_outputs}


class DuplicateOutputError(WpsError):
    """The same output is requested more than once."""

    default_category = ErrorCategory.REQUEST

    def __init__(self, identifier: str, count: int):
        super().__init__(f"Output {identifier} requested {count} times")
        self.identifier = identifier
        self.count = count
        self.context.identifier = identifier

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "expected": 1, "actual": self.count}


class ModeNotSupportedError(WpsError):
    """The requested execution mode is not offered by the process."""

    default_category = ErrorCategory.REQUEST

    def __init__(self, identifier: str, requested: str, supported: list[str]):
        super().__init__(
            f"Process {identifier} does not support {requested} execution "
            f"(supported: {', '.join(supported)})"
        )
        self.identifier = identifier
        self.requested = requested
        self.supported = supported
        self.context.process_id = identifier

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "expected": self.supported, "actual": self.requested}


class DispatchError(WpsError):
    """
    A request was rejected before any algorithm ran.

    Wraps the precise cause (``UnknownProcessError``, a ``ValidationError``,
    ``InvalidResponseModeError``, ``ModeNotSupportedError`` or a
    ``RenderError`` found while checking output definitions).
    """

    default_category = ErrorCategory.REQUEST

    @classmethod
    def wrap(cls, error: WpsError) -> DispatchError:
        wrapped = cls(f"Request rejected: {error.message}", category=error.category, cause=error)
        wrapped.context = error.context
        return wrapped

    @property
    def reason(self) -> str:
        """Code of the wrapped error."""
        return self.cause.code if isinstance(self.cause, WpsError) else "Dispatch"


# =============================================================================
# RENDER ERRORS
# =============================================================================


class RenderError(WpsError):
    """An output could not be delivered."""

    default_category = ErrorCategory.RENDER

    def __init__(self, identifier: str, message: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.identifier = identifier
        self.context.identifier = identifier

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier}


class UnknownOutputError(RenderError):
    """A requested output does not exist in the process description."""

    def __init__(self, identifier: str, known: list[str] | None = None):
        super().__init__(identifier, f"Unknown output: {identifier}")
        self.known = sorted(known or [])

    def details(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "expected": self.known, "actual": self.identifier}


class UnsupportedFormatError(RenderError):
    """The process cannot produce (or accept) the requested encoding."""

    def __init__(self, identifier: str, requested: Any, supported: list[Any] | None = None):
        super().__init__(identifier, f"Unsupported format for {identifier}: {requested}")
        self.requested = requested
        self.supported = list(supported or [])

    def details(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "expected": [_printable(f) for f in self.supported],
            "actual": _printable(self.requested),
        }


class MissingOutputError(RenderError):
    """The process did not produce a value for a requested output."""

    def __init__(self, identifier: str):
        super().__init__(identifier, f"Process produced no value for output: {identifier}")


# =============================================================================
# JOB ERRORS
# =============================================================================


class UnknownJobError(WpsError):
    """No job is retained under the given identifier."""

    default_category = ErrorCategory.JOB

    def __init__(self, job_id: str):
        super().__init__(f"Unknown job: {job_id}")
        self.job_id = job_id
        self.context.job_id = job_id


class JobNotFinishedError(WpsError):
    """A result was requested for a job that has not reached a terminal state."""

    default_category = ErrorCategory.JOB

    def __init__(self, job_id: str, status: str):
        super().__init__(f"Job {job_id} is not finished (status: {status})")
        self.job_id = job_id
        self.status = status
        self.context.job_id = job_id


class CancelError(WpsError):
    """A cancellation request could not be honoured."""

    default_category = ErrorCategory.JOB


class AlreadyTerminalError(CancelError):
    """Cancellation is not retroactive."""

    def __init__(self, job_id: str, status: str):
        super().__init__(f"Job {job_id} already reached terminal state {status}")
        self.job_id = job_id
        self.status = status
        self.context.job_id = job_id

    def details(self) -> dict[str, Any]:
        return {"job_id": self.job_id, "actual": self.status}


class ExecutionFailure(WpsError):
    """
    Failure reported by an algorithm while running.

    Algorithms raise this to fail a job with a stable ``code``; any other
    exception is captured the same way using its class name.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, code: str = "ExecutionFailure", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.failure_code = code

    @property
    def code(self) -> str:
        return self.failure_code


class InvalidTransitionError(ValueError):
    """Raised when an illegal job state transition is attempted."""

    def __init__(self, current: str, target: str, enum_name: str = "JobStatus") -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid {enum_name} transition: {current} → {target}")


def _printable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_printable(v) for v in value]
    return str(value)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WpsError",
    "RegistrationError",
    "LoadError",
    "DescriptionInvalidError",
    "UnknownProcessError",
    "ValidationError",
    "UnknownInputError",
    "MissingInputError",
    "OutOfDomainError",
    "TypeMismatchError",
    "OccurrenceOutOfBoundsError",
    "InvalidResponseModeError",
    "DuplicateOutputError",
    "ModeNotSupportedError",
    "DispatchError",
    "RenderError",
    "UnknownOutputError",
    "UnsupportedFormatError",
    "MissingOutputError",
    "UnknownJobError",
    "JobNotFinishedError",
    "CancelError",
    "AlreadyTerminalError",
    "ExecutionFailure",
    "InvalidTransitionError",
]
