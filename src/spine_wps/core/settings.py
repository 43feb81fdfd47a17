"""
Centralized settings for the process engine.

Manifesto:
    One validated, cached settings object.  Hosts read it to build a
    registry and a coordinator; the core components themselves take
    explicit constructor arguments and only fall back to these values
    when an argument is omitted.

All fields can be set through ``WPS_*`` environment variables (e.g.
``WPS_MAX_WORKERS=8``) or a ``.env`` file.  Mapping fields accept JSON::

    WPS_ALGORITHMS='{"buffer": "myproject.processes:make_buffer"}'

Tags:
    spine-wps, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Protocol versions every description is checked against.
DEFAULT_SUPPORTED_VERSIONS = ["1.0.0", "2.0.0"]


class EngineSettings(BaseSettings):
    """Process engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Protocol ─────────────────────────────────────────────────
    supported_versions: list[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_VERSIONS))

    # ── Execution ────────────────────────────────────────────────
    max_workers: int = Field(default=4, ge=1, description="Async worker pool size")
    job_retention_seconds: float = Field(
        default=3600.0,
        ge=0,
        description="How long terminal jobs stay queryable",
    )
    reference_base_url: str = Field(
        default="http://localhost:8080/wps/outputs",
        description="Prefix for outputs delivered by reference",
    )

    # ── Validation ───────────────────────────────────────────────
    spacing_epsilon: float = Field(default=1e-9, gt=0)

    # ── Discovery ────────────────────────────────────────────────
    algorithms: dict[str, str] = Field(
        default_factory=dict,
        description="identifier -> 'module:attribute' factory table",
    )
    include_builtin: bool = Field(default=True)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("supported_versions")
    @classmethod
    def _require_versions(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one protocol version must be supported")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, EngineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> EngineSettings:
    """Load, validate, and cache an :class:`EngineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = EngineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "DEFAULT_SUPPORTED_VERSIONS",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
]
