"""Cross-cutting infrastructure: settings and logging configuration."""

from .config import Settings, TelemetryConfig, ValidatorConfig, settings
from .logging_config import get_logger, setup_logging

__all__ = [
    "Settings",
    "TelemetryConfig",
    "ValidatorConfig",
    "settings",
    "get_logger",
    "setup_logging",
]
