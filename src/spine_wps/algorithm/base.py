"""
Algorithm protocol, execution context and function adapter.

Manifesto:
    The engine talks to every process through one fixed interface:
    ``describe()`` and ``execute(context)``.  Implementations either
    satisfy it directly or are wrapped by an explicit adapter when they are
    registered, never per call.

Architecture:
    ::

        Algorithm (Protocol)
          ├── describe() -> ProcessDescription
          └── execute(context) -> Mapping[output id, value] | None

        ExecutionContext  (one per job run, used on the worker thread)
          ├── inputs            ProcessInputs (validated)
          ├── checkpoint()      raises JobCancelled once cancel is posted
          ├── report_progress() percent + message, visible in snapshots
          └── set_output()      partial outputs, merged with the return value

        @algorithm(description)  ->  FunctionAlgorithm adapter

Examples:
    >>> @algorithm(ECHO_DESCRIPTION)
    ... def echo(inputs, context):
    ...     return {"msg": inputs.value("msg")}
    >>> adapt(echo).describe().identifier
    'echo'

Guardrails:
    ❌ DON'T: Swallow ``JobCancelled`` inside an algorithm
    ✅ DO: Call ``context.checkpoint()`` between units of work

Tags:
    spine-wps, algorithm, protocol, adapter, cancellation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from spine_wps.data import ProcessInputs
from spine_wps.description.model import ProcessDescription

ProgressCallback = Callable[[int, str | None], None]
OutputCallback = Callable[[str, Any], None]


class JobCancelled(Exception):
    """Raised by ``ExecutionContext.checkpoint()`` after cancellation was requested."""


@runtime_checkable
class Algorithm(Protocol):
    """Anything the registry can bind to a process identifier."""

    def describe(self) -> ProcessDescription: ...

    def execute(self, context: ExecutionContext) -> Mapping[str, Any] | None: ...


class ExecutionContext:
    """Per-run handle given to ``Algorithm.execute``."""

    def __init__(
        self,
        job_id: str,
        process_id: str,
        inputs: ProcessInputs,
        cancel_event: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
        on_output: OutputCallback | None = None,
    ):
        self.job_id = job_id
        self.process_id = process_id
        self.inputs = inputs
        self._cancel_event = cancel_event or threading.Event()
        self._on_progress = on_progress
        self._on_output = on_output
        self._outputs: dict[str, Any] = {}

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def checkpoint(self) -> None:
        """Stop here if cancellation was requested.

        Raises:
            JobCancelled: a cancel signal was posted for this job
        """
        if self._cancel_event.is_set():
            raise JobCancelled(self.job_id)

    def report_progress(self, percent: int, message: str | None = None) -> None:
        percent = max(0, min(100, int(percent)))
        if self._on_progress is not None:
            self._on_progress(percent, message)

    def set_output(self, identifier: str, value: Any) -> None:
        """Record an output before ``execute`` returns."""
        self._outputs[identifier] = value
        if self._on_output is not None:
            self._on_output(identifier, value)

    @property
    def outputs(self) -> dict[str, Any]:
        return dict(self._outputs)


AlgorithmFunction = Callable[[ProcessInputs, ExecutionContext], Mapping[str, Any] | None]


class FunctionAlgorithm:
    """Adapter turning a decorated function into an ``Algorithm``."""

    def __init__(self, function: AlgorithmFunction, description: ProcessDescription):
        self.function = function
        self.description = description
        self.__name__ = getattr(function, "__name__", description.identifier)

    def describe(self) -> ProcessDescription:
        return self.description

    def execute(self, context: ExecutionContext) -> Mapping[str, Any] | None:
        return self.function(context.inputs, context)

    def __repr__(self) -> str:
        return f"FunctionAlgorithm({self.__name__!r}, process={self.description.identifier!r})"


def algorithm(description: ProcessDescription) -> Callable[[AlgorithmFunction], AlgorithmFunction]:
    """
    Decorator attaching a description to a plain function.

    The function receives ``(inputs, context)`` and returns a mapping of
    output identifiers to values.
    """

    def decorator(function: AlgorithmFunction) -> AlgorithmFunction:
        function.__process_description__ = description  # type: ignore[attr-defined]
        return function

    return decorator


def adapt(candidate: Any) -> Algorithm:
    """Resolve ``candidate`` to the ``Algorithm`` interface.

    Raises:
        TypeError: ``candidate`` neither implements the interface nor
            carries a description from ``@algorithm``
    """
    if isinstance(candidate, type):
        raise TypeError(f"expected an algorithm instance, got class {candidate.__name__}")
    if isinstance(candidate, Algorithm):
        return candidate
    description = getattr(candidate, "__process_description__", None)
    if isinstance(description, ProcessDescription) and callable(candidate):
        return FunctionAlgorithm(candidate, description)
    raise TypeError(
        f"{type(candidate).__name__} does not implement describe()/execute() "
        "and is not decorated with @algorithm"
    )


__all__ = [
    "JobCancelled",
    "Algorithm",
    "ExecutionContext",
    "FunctionAlgorithm",
    "algorithm",
    "adapt",
]
