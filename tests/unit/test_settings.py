"""
Unit tests for Settings classes.

Tests cover:
- EngineSettings defaults and constraints
- Environment variable loading
- Production settings validation
- Settings caching behavior
"""

import pytest
from pydantic import ValidationError

from invoice_memory.config.settings import (
    EngineSettings,
    Environment,
    LogFormat,
    LoggingSettings,
    MemoryStoreSettings,
    Settings,
    get_settings,
)


class TestEngineSettings:
    """Tests for EngineSettings class."""

    def test_default_values(self) -> None:
        """Test default thresholds."""
        settings = EngineSettings()

        assert settings.min_memory_confidence == 0.4
        assert settings.auto_accept_threshold == 0.85
        assert settings.duplicate_penalty == 0.2
        assert settings.duplicate_window_days == 2

    def test_env_prefix_loading(self, monkeypatch) -> None:
        """Test loading from environment variables with ENGINE_ prefix."""
        monkeypatch.setenv("ENGINE_AUTO_ACCEPT_THRESHOLD", "0.9")
        monkeypatch.setenv("ENGINE_DUPLICATE_WINDOW_DAYS", "5")

        settings = EngineSettings()

        assert settings.auto_accept_threshold == 0.9
        assert settings.duplicate_window_days == 5

    def test_validation_constraints_thresholds(self) -> None:
        """Confidence thresholds must stay within [0, 1]."""
        with pytest.raises(ValidationError):
            EngineSettings(auto_accept_threshold=1.2)

        with pytest.raises(ValidationError):
            EngineSettings(min_memory_confidence=-0.1)

        # Valid boundaries
        assert EngineSettings(duplicate_penalty=0.0).duplicate_penalty == 0.0
        assert EngineSettings(duplicate_penalty=1.0).duplicate_penalty == 1.0

    def test_validation_constraints_window(self) -> None:
        """Test duplicate_window_days constraints (ge=0, le=31)."""
        with pytest.raises(ValidationError):
            EngineSettings(duplicate_window_days=-1)

        with pytest.raises(ValidationError):
            EngineSettings(duplicate_window_days=60)


class TestMemoryStoreSettings:
    """Tests for MemoryStoreSettings class."""

    def test_env_prefix_loading(self, monkeypatch) -> None:
        monkeypatch.setenv("MEMORY_DB_PATH", "/tmp/other.db")
        assert MemoryStoreSettings().db_path == "/tmp/other.db"

    def test_timeout_constraints(self) -> None:
        with pytest.raises(ValidationError):
            MemoryStoreSettings(timeout=0)


class TestLoggingSettings:
    """Tests for LoggingSettings class."""

    def test_default_values(self) -> None:
        settings = LoggingSettings()
        assert settings.format == LogFormat.CONSOLE
        assert settings.file_path is None
        assert settings.mask_sensitive is True

    def test_format_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("LOG_FORMAT", "json")
        assert LoggingSettings().format == LogFormat.JSON


class TestMainSettings:
    """Tests for main Settings class."""

    def test_sections_integrated(self) -> None:
        """Test nested sections are present with defaults."""
        settings = Settings()

        assert isinstance(settings.engine, EngineSettings)
        assert isinstance(settings.memory, MemoryStoreSettings)
        assert settings.app_name == "invoice-memory"

    def test_production_checks_only_apply_in_production(self) -> None:
        """Debug and in-memory stores are allowed outside production."""
        settings = Settings(
            app_env=Environment.STAGING,
            debug=True,
            memory=MemoryStoreSettings(db_path=":memory:"),
        )
        assert settings.is_production is False

    def test_production_rejects_debug(self) -> None:
        """Test production validation fails with debug enabled."""
        with pytest.raises(ValidationError) as exc:
            Settings(app_env=Environment.PRODUCTION, debug=True)
        assert "DEBUG must be False" in str(exc.value)

    def test_production_rejects_in_memory_store(self) -> None:
        with pytest.raises(ValidationError):
            Settings(
                app_env=Environment.PRODUCTION,
                memory=MemoryStoreSettings(db_path=":memory:"),
            )

    def test_production_with_file_store(self) -> None:
        settings = Settings(app_env=Environment.PRODUCTION)
        assert settings.is_production is True


class TestGetSettings:
    """Tests for get_settings caching."""

    def test_returns_cached_instance(self) -> None:
        assert get_settings() is get_settings()

    def test_cache_clear_reloads_environment(self, monkeypatch) -> None:
        first = get_settings()
        monkeypatch.setenv("ENGINE_DUPLICATE_PENALTY", "0.3")
        get_settings.cache_clear()

        second = get_settings()
        assert second is not first
        assert second.engine.duplicate_penalty == 0.3
