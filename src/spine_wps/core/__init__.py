"""Core primitives: errors, results, logging and settings."""

from spine_wps.core.errors import ErrorCategory, ErrorContext, WpsError
from spine_wps.core.logging import LogContext, configure_logging, get_logger
from spine_wps.core.result import Err, Ok, Result
from spine_wps.core.settings import EngineSettings, clear_settings_cache, get_settings

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WpsError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "Ok",
    "Err",
    "Result",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
]
