"""Discovery sources - where the registry finds candidate processes.

A source maps process identifiers to factories.  Calling a factory yields
the implementation: an ``Algorithm`` instance or a function decorated with
``@algorithm``.  The registry instantiates each candidate once, at
registration time.

ARCHITECTURE
────────────
::

    DiscoverySource (Protocol)
      ├── .identifiers()          ─ candidate identifiers, in order
      └── .factory(identifier)    ─ factory or None

    StaticSource({"echo": make_echo})          ─ host-supplied table
    ImportPathSource({"buf": "pkg.mod:attr"})  ─ table of import paths
    ChainSource(first, second, ...)            ─ first match wins

    source_from_settings(settings)  ─ built-ins + WPS_ALGORITHMS table

Tags:
    spine-wps, algorithm, discovery, plugins

Doc-Types:
    api-reference
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from spine_wps.core.settings import EngineSettings

AlgorithmFactory = Callable[[], Any]


class DiscoverySource(Protocol):
    def identifiers(self) -> list[str]: ...

    def factory(self, identifier: str) -> AlgorithmFactory | None: ...


class StaticSource:
    """A fixed identifier -> factory table supplied by the host."""

    def __init__(self, table: Mapping[str, AlgorithmFactory] | None = None):
        self._table: dict[str, AlgorithmFactory] = dict(table or {})

    def identifiers(self) -> list[str]:
        return list(self._table)

    def factory(self, identifier: str) -> AlgorithmFactory | None:
        return self._table.get(identifier)


def load_target(path: str) -> Any:
    """Import ``"package.module:attribute"`` and return the attribute.

    Raises:
        ValueError: the path is not of the form ``module:attribute``
        ImportError / AttributeError: the target does not exist
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"import path must look like 'module:attribute', got {path!r}")
    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target


def instantiate(target: Any) -> Any:
    """Turn an imported target into an implementation.

    Classes are instantiated, ``@algorithm`` functions are used as they
    are, and any other callable is treated as a factory.
    """
    if isinstance(target, type):
        return target()
    if hasattr(target, "__process_description__"):
        return target
    if callable(target) and not hasattr(target, "describe"):
        return target()
    return target


class ImportPathSource:
    """An identifier -> ``"module:attribute"`` table, imported lazily."""

    def __init__(self, table: Mapping[str, str] | None = None):
        self._table: dict[str, str] = dict(table or {})

    def identifiers(self) -> list[str]:
        return list(self._table)

    def factory(self, identifier: str) -> AlgorithmFactory | None:
        path = self._table.get(identifier)
        if path is None:
            return None
        return lambda: instantiate(load_target(path))


class ChainSource:
    """Several sources consulted in order; the first that knows an identifier wins."""

    def __init__(self, *sources: DiscoverySource):
        self._sources = sources

    def identifiers(self) -> list[str]:
        seen: dict[str, None] = {}
        for source in self._sources:
            for identifier in source.identifiers():
                seen.setdefault(identifier, None)
        return list(seen)

    def factory(self, identifier: str) -> AlgorithmFactory | None:
        for source in self._sources:
            found = source.factory(identifier)
            if found is not None:
                return found
        return None


def source_from_settings(settings: EngineSettings) -> DiscoverySource:
    """The discovery source a host builds from its settings."""
    sources: list[DiscoverySource] = []
    if settings.algorithms:
        sources.append(ImportPathSource(settings.algorithms))
    if settings.include_builtin:
        from spine_wps.algorithm.builtin import BUILTIN_ALGORITHMS

        sources.append(StaticSource(BUILTIN_ALGORITHMS))
    return ChainSource(*sources)


__all__ = [
    "AlgorithmFactory",
    "DiscoverySource",
    "StaticSource",
    "ImportPathSource",
    "ChainSource",
    "load_target",
    "instantiate",
    "source_from_settings",
]
