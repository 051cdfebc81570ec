"""
Shared module - Cross-cutting concerns / Shared Layer

Enums and logging helpers used by every layer. Nothing in here may depend on
infrastructure or frameworks other than structlog.
"""

from .consts import EnumEnvironment, EnumLogLevel
from .logging import configure_logging, get_logger, update_logging_from_settings

__all__ = [
    "EnumEnvironment",
    "EnumLogLevel",
    "configure_logging",
    "get_logger",
    "update_logging_from_settings",
]
