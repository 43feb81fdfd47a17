"""Algorithms: the protocol, discovery sources, the registry and built-ins.

ARCHITECTURE
────────────
::

    base.py      ─ Algorithm protocol, ExecutionContext, @algorithm
    sources.py   ─ StaticSource / ImportPathSource / ChainSource
    registry.py  ─ AlgorithmRegistry
    builtin.py   ─ reference processes (echo, add, sleep, ...)
"""

from spine_wps.algorithm.base import Algorithm, ExecutionContext, FunctionAlgorithm, JobCancelled, adapt, algorithm
from spine_wps.algorithm.builtin import BUILTIN_ALGORITHMS
from spine_wps.algorithm.registry import AlgorithmRegistry, RegisteredProcess, RegistrationReport
from spine_wps.algorithm.sources import ChainSource, ImportPathSource, StaticSource, source_from_settings

__all__ = [
    "Algorithm",
    "ExecutionContext",
    "FunctionAlgorithm",
    "JobCancelled",
    "adapt",
    "algorithm",
    "BUILTIN_ALGORITHMS",
    "AlgorithmRegistry",
    "RegisteredProcess",
    "RegistrationReport",
    "ChainSource",
    "ImportPathSource",
    "StaticSource",
    "source_from_settings",
]
