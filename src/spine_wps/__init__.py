"""
spine-wps - process registry and execution engine.

Register described processes, validate execute requests against their
descriptions, and run them synchronously or asynchronously.

Examples:
    >>> from spine_wps import AlgorithmRegistry, ExecutionCoordinator, ExecuteRequest
    >>> from spine_wps.algorithm import BUILTIN_ALGORITHMS, StaticSource
    >>> registry = AlgorithmRegistry(StaticSource(BUILTIN_ALGORITHMS))
    >>> registry.load_all().ok
    True
    >>> with ExecutionCoordinator(registry) as coordinator:
    ...     request = ExecuteRequest.builder("echo").literal("msg", "hi").build()
    ...     coordinator.submit(request).unwrap().status
    <JobStatus.SUCCEEDED: 'succeeded'>

Tags:
    spine-wps, package
"""

__version__ = "0.1.0"

from spine_wps.algorithm.registry import AlgorithmRegistry
from spine_wps.core.result import Err, Ok, Result
from spine_wps.data import ExecuteRequest, ExecutionMode, ResponseMode, TransmissionMode
from spine_wps.engine.coordinator import ExecutionCoordinator
from spine_wps.engine.jobs import JobStatus

__all__ = [
    "__version__",
    "AlgorithmRegistry",
    "ExecutionCoordinator",
    "ExecuteRequest",
    "ExecutionMode",
    "ResponseMode",
    "TransmissionMode",
    "JobStatus",
    "Ok",
    "Err",
    "Result",
]
