"""
Configuration module for the invoice memory engine.

Provides centralized configuration management using Pydantic Settings
and structured logging via structlog.
"""

from invoice_memory.config.logging_config import configure_logging, get_logger
from invoice_memory.config.settings import (
    EngineSettings,
    Environment,
    LoggingSettings,
    MemoryStoreSettings,
    Settings,
    get_settings,
)


__all__ = [
    "Settings",
    "EngineSettings",
    "MemoryStoreSettings",
    "LoggingSettings",
    "get_settings",
    "Environment",
    "configure_logging",
    "get_logger",
]
