"""
Shared pytest fixtures for spine-wps tests.

This module provides:
- A registry loaded with the built-in processes
- A coordinator built from explicit settings (no environment leakage)
- Settings cache and logging isolation between tests

Usage:
    def test_something(coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").build()
        handle = coordinator.submit(request).unwrap()
"""

import sys
from pathlib import Path

import pytest
import structlog

# Ensure spine_wps package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spine_wps.algorithm import BUILTIN_ALGORITHMS, AlgorithmRegistry, StaticSource
from spine_wps.core.settings import EngineSettings, clear_settings_cache
from spine_wps.engine import ExecutionCoordinator


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_and_logging(monkeypatch):
    """Fresh settings and default structlog config for every test."""
    for name in ("WPS_ALGORITHMS", "WPS_INCLUDE_BUILTIN", "WPS_LOG_FORMAT", "WPS_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WPS_LOG_LEVEL", "WARNING")
    clear_settings_cache()
    structlog.reset_defaults()
    yield
    clear_settings_cache()
    structlog.reset_defaults()


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        max_workers=2,
        job_retention_seconds=60.0,
        reference_base_url="http://test.local/outputs",
        _env_file=None,
    )


@pytest.fixture
def registry() -> AlgorithmRegistry:
    """Registry holding every built-in process."""
    registry = AlgorithmRegistry(StaticSource(BUILTIN_ALGORITHMS))
    report = registry.load_all()
    assert report.ok, report.to_dict()
    return registry


@pytest.fixture
def coordinator(registry, settings):
    coordinator = ExecutionCoordinator(registry, settings=settings)
    yield coordinator
    coordinator.shutdown(wait=True, cancel_pending=True)
