"""Configuration package for the test server manager."""

from .logging import configure_logging, get_logger, log_performance
from .settings import LoggingConfig, ServerSettings, Settings

__all__ = [
    "configure_logging",
    "get_logger",
    "log_performance",
    "LoggingConfig",
    "ServerSettings",
    "Settings",
]
