"""Core primitives shared by every phenospine layer: errors, logging, settings."""

from phenospine.core.errors import (
    ErrorCategory,
    ErrorContext,
    PhenoSpineError,
)
from phenospine.core.logging import LogContext, configure_logging, get_logger
from phenospine.core.settings import PhenoSpineSettings, clear_settings_cache, get_settings

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "PhenoSpineError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "PhenoSpineSettings",
    "clear_settings_cache",
    "get_settings",
]
