"""
Algorithm registry - the single source of truth for processes.

Manifesto:
    An identifier maps to exactly one (description, implementation) pair,
    and the two are installed and removed together.  Lookups are frequent
    and concurrent; registrations are rare.  So readers work on an
    immutable snapshot without taking a lock, while writers serialize on
    one lock and publish a new snapshot with a single reference swap.

Architecture:
    ::

        AlgorithmRegistry(source, supported_versions, parsers, generators)
          │
          ├── register(id[, factory]) ── factory ─► instantiate ─► adapt
          │        │                       inject parser/generator factories
          │        │                       describe() ─► check per version
          │        └── (lock) copy snapshot, add entry, swap  ─► Ok(description)
          │
          ├── load_all()      ─ register every candidate, collect failures
          ├── unregister(id)  ─ (lock) copy snapshot, drop entry, swap
          │
          ├── lookup(id)      ─┐
          ├── resolve(id)      ├─ read the current snapshot, no lock
          ├── get_entry(id)    │
          └── list_processes() ┘

Examples:
    >>> registry = AlgorithmRegistry(StaticSource(BUILTIN_ALGORITHMS))
    >>> report = registry.load_all()
    >>> registry.lookup("echo").identifier
    'echo'
    >>> registry.lookup("nope") is None
    True

Guardrails:
    ❌ DON'T: Mutate ``ProcessDescription`` objects to change a process
    ✅ DO: Re-register the identifier with a new implementation

    ❌ DON'T: Let one broken plugin stop the server from starting
    ✅ DO: Use ``load_all()`` and report ``RegistrationReport.failures``

Tags:
    spine-wps, algorithm, registry, copy-on-write, thread-safety

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from spine_wps.algorithm.base import Algorithm, adapt
from spine_wps.algorithm.sources import AlgorithmFactory, DiscoverySource, StaticSource
from spine_wps.core.errors import DescriptionInvalidError, LoadError, RegistrationError
from spine_wps.core.logging import get_logger
from spine_wps.core.result import Err, Ok, Result, partition_results, try_result
from spine_wps.core.settings import DEFAULT_SUPPORTED_VERSIONS
from spine_wps.description.model import ProcessDescription
from spine_wps.description.validation import problems_by_version
from spine_wps.io.codecs import GeneratorFactory, ParserFactory, default_codecs

log = get_logger(__name__)


@dataclass(frozen=True)
class RegisteredProcess:
    """An installed process: its description, implementation and valid versions."""

    description: ProcessDescription
    algorithm: Algorithm
    versions: tuple[str, ...]

    @property
    def identifier(self) -> str:
        return self.description.identifier


@dataclass
class RegistrationReport:
    """Outcome of ``load_all()``."""

    loaded: list[str] = field(default_factory=list)
    failures: dict[str, RegistrationError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded": list(self.loaded),
            "failures": {pid: error.to_dict() for pid, error in self.failures.items()},
        }


class AlgorithmRegistry:
    """
    Loads, validates and indexes processes by identifier.

    Pass the registry explicitly to whatever needs it; there is no
    process-wide instance.
    """

    def __init__(
        self,
        source: DiscoverySource | None = None,
        *,
        supported_versions: list[str] | None = None,
        parser_factory: ParserFactory | None = None,
        generator_factory: GeneratorFactory | None = None,
    ):
        codecs = default_codecs() if parser_factory is None or generator_factory is None else None
        self.source: DiscoverySource = source or StaticSource()
        self.supported_versions = list(supported_versions or DEFAULT_SUPPORTED_VERSIONS)
        self.parser_factory: ParserFactory = parser_factory or codecs
        self.generator_factory: GeneratorFactory = generator_factory or codecs
        self._write_lock = threading.Lock()
        self._entries: MappingProxyType[str, RegisteredProcess] = MappingProxyType({})
        self._rank: dict[str, int] = {}

    # ── Registration ─────────────────────────────────────────────────────

    def register(
        self,
        identifier: str,
        factory: AlgorithmFactory | None = None,
    ) -> Result[ProcessDescription]:
        """
        Load the implementation bound to ``identifier`` and publish it.

        ``factory`` overrides the discovery source.  Registering an
        identifier that is already present replaces it atomically.

        Returns:
            ``Ok(description)`` or ``Err(LoadError | DescriptionInvalidError)``
        """
        match self._load(identifier, factory):
            case Err(error):
                log.warning("process.register_failed", process_id=identifier, error=error.code, reason=error.message)
                return Err(error)
            case Ok(entry):
                pass

        with self._write_lock:
            entries = dict(self._entries)
            replaced = identifier in entries
            entries[identifier] = entry
            # first-registration order survives unregister / register cycles
            self._rank.setdefault(identifier, len(self._rank))
            ordered = sorted(entries.items(), key=lambda item: self._rank[item[0]])
            self._entries = MappingProxyType(dict(ordered))

        log.info(
            "process.registered",
            process_id=identifier,
            versions=list(entry.versions),
            replaced=replaced,
        )
        return Ok(entry.description)

    def _load(self, identifier: str, factory: AlgorithmFactory | None) -> Result[RegisteredProcess]:
        factory = factory or self.source.factory(identifier)
        if factory is None:
            return Err(LoadError(identifier, "no implementation is bound to this identifier"))

        try:
            implementation = adapt(factory())
            self._inject(implementation)
        except Exception as e:
            return Err(LoadError(identifier, cause=e))

        match try_result(implementation.describe):
            case Err(error):
                return Err(LoadError(identifier, f"describe() failed: {error}", cause=error))
            case Ok(description):
                pass
        if not isinstance(description, ProcessDescription):
            return Err(LoadError(identifier, f"describe() returned {type(description).__name__}"))
        if description.identifier != identifier:
            return Err(LoadError(identifier, f"implementation describes process {description.identifier!r}"))

        problems = problems_by_version(description, self.supported_versions)
        versions = tuple(version for version, items in problems.items() if not items)
        if not versions:
            return Err(DescriptionInvalidError(identifier, problems))
        for version, items in problems.items():
            if items:
                log.info("process.version_skipped", process_id=identifier, version=version, problems=items)

        return Ok(RegisteredProcess(description=description, algorithm=implementation, versions=versions))

    def _inject(self, implementation: Algorithm) -> None:
        set_parsers = getattr(implementation, "set_parser_factory", None)
        if callable(set_parsers):
            set_parsers(self.parser_factory)
        set_generators = getattr(implementation, "set_generator_factory", None)
        if callable(set_generators):
            set_generators(self.generator_factory)

    def load_all(self) -> RegistrationReport:
        """Register every candidate of the discovery source.

        A failure for one identifier never stops the others.
        """
        identifiers = self.source.identifiers()
        results = [self.register(identifier) for identifier in identifiers]
        _, errors = partition_results(results)

        report = RegistrationReport()
        for identifier, result in zip(identifiers, results):
            if result.is_ok():
                report.loaded.append(identifier)
        for error in errors:
            report.failures[error.identifier] = error

        log.info("registry.loaded", loaded=len(report.loaded), failed=len(report.failures))
        return report

    def unregister(self, identifier: str) -> bool:
        """Remove a process.  Jobs already running keep their implementation."""
        with self._write_lock:
            if identifier not in self._entries:
                return False
            entries = dict(self._entries)
            del entries[identifier]
            self._entries = MappingProxyType(entries)
        log.info("process.unregistered", process_id=identifier)
        return True

    # ── Queries (lock-free) ──────────────────────────────────────────────

    def get_entry(self, identifier: str) -> RegisteredProcess | None:
        """Description and implementation, read from one snapshot."""
        return self._entries.get(identifier)

    def lookup(self, identifier: str) -> ProcessDescription | None:
        entry = self._entries.get(identifier)
        return entry.description if entry else None

    def resolve(self, identifier: str) -> Algorithm | None:
        entry = self._entries.get(identifier)
        return entry.algorithm if entry else None

    def contains(self, identifier: str) -> bool:
        return identifier in self._entries

    def list_processes(self) -> list[str]:
        """Registered identifiers in first-registration order."""
        return list(self._entries)

    def descriptions(self) -> list[ProcessDescription]:
        return [entry.description for entry in self._entries.values()]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def shutdown(self) -> None:
        """Give every implementation that defines ``shutdown()`` a chance to release resources."""
        for entry in self._entries.values():
            close = getattr(entry.algorithm, "shutdown", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception as e:
                log.warning("process.shutdown_failed", process_id=entry.identifier, error=str(e))


__all__ = ["RegisteredProcess", "RegistrationReport", "AlgorithmRegistry"]
