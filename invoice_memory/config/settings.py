"""
Application settings using Pydantic Settings.

Provides type-safe, validated configuration from environment variables
with defaults matching the engine's documented thresholds.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format enumeration."""

    JSON = "json"
    CONSOLE = "console"


class EngineSettings(BaseSettings):
    """Decision engine thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        extra="ignore",
    )

    min_memory_confidence: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.4,
        description="Memories below this confidence are not recalled",
    )
    auto_accept_threshold: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.85,
        description="Minimum confidence score for auto-acceptance",
    )
    duplicate_penalty: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.2,
        description="Confidence subtracted when a probable duplicate is found",
    )
    duplicate_window_days: Annotated[int, Field(ge=0, le=31)] = Field(
        default=2,
        description="Inclusive invoice-date tolerance for duplicate detection",
    )


class MemoryStoreSettings(BaseSettings):
    """Memory store configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="MEMORY_",
        extra="ignore",
    )

    db_path: str = Field(
        default="./data/memory.db",
        description="SQLite database file (':memory:' for an ephemeral store)",
    )
    timeout: Annotated[float, Field(ge=0.1, le=60.0)] = Field(
        default=5.0,
        description="SQLite busy timeout in seconds",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="Log output format",
    )
    file_path: Path | None = Field(
        default=None,
        description="Optional log file path",
    )
    file_max_size_mb: Annotated[int, Field(ge=1, le=1000)] = Field(
        default=20,
        description="Maximum log file size in MB",
    )
    file_backup_count: Annotated[int, Field(ge=1, le=20)] = Field(
        default=3,
        description="Number of backup log files to keep",
    )
    include_caller: bool = Field(
        default=False,
        description="Include caller information in log entries",
    )
    mask_sensitive: bool = Field(
        default=True,
        description="Mask bank account and card numbers in log entries",
    )


class Settings(BaseSettings):
    """
    Main application settings aggregating all configuration sections.

    Settings are loaded from environment variables with optional .env file support.
    Each section has its own prefix for environment variable naming.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="invoice-memory",
        description="Application name",
    )
    app_version: str = Field(
        default="0.3.0",
        description="Application version",
    )
    app_env: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)
    memory: MemoryStoreSettings = Field(default_factory=MemoryStoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Reject settings that are unsafe outside development."""
        if self.is_production:
            if self.debug:
                raise ValueError("DEBUG must be False in production")
            if self.memory.db_path == ":memory:":
                raise ValueError("An in-memory store cannot be used in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
