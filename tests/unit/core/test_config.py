"""Tests for configuration management."""

from __future__ import annotations

import pytest

from dnd_combat.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_combat.core.exceptions import ConfigurationError


class TestEngineSettings:
    """Tests for EngineSettings configuration."""

    def test_defaults(self) -> None:
        """Test rules defaults match the 5E baseline."""
        settings = EngineSettings()

        assert settings.dice_seed is None
        assert settings.default_concentration_rounds == 10
        assert settings.default_save_dc == 10
        assert settings.default_proficiency_bonus == 2
        assert settings.default_walk_speed == 30

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test engine settings read their own env prefix."""
        monkeypatch.setenv("DND_COMBAT_ENGINE_DICE_SEED", "1234")
        monkeypatch.setenv("DND_COMBAT_ENGINE_DEFAULT_WALK_SPEED", "25")

        settings = EngineSettings()

        assert settings.dice_seed == 1234
        assert settings.default_walk_speed == 25


class TestSettings:
    """Tests for main Settings class."""

    def test_default_settings(self) -> None:
        """Test default settings values."""
        settings = Settings()

        assert settings.app_name == "D&D Combat Engine"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.is_production is True
        assert isinstance(settings.engine, EngineSettings)

    def test_debug_mode(self) -> None:
        """Test debug mode settings."""
        settings = Settings(debug=True, log_level="DEBUG")

        assert settings.debug is True
        assert settings.is_production is False

    def test_debug_with_error_level_rejected(self) -> None:
        """Test that debug mode cannot silence warnings."""
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(debug=True, log_level="ERROR")

        assert exc_info.value.details["config_key"] == "log_level"

    def test_env_variables(self, mock_env_vars: dict[str, str]) -> None:
        """Test settings load from environment variables."""
        settings = Settings()

        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.engine.default_save_dc == 13
        assert settings.engine.dice_seed == 42


class TestGetSettings:
    """Tests for get_settings function."""

    def test_returns_cached_instance(self) -> None:
        """Test that get_settings returns cached instance."""
        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that clearing the cache picks up new environment values."""
        first = get_settings()
        monkeypatch.setenv("DND_COMBAT_ENGINE_DEFAULT_SAVE_DC", "15")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.engine.default_save_dc == 15

    def test_invalid_env_raises_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that invalid environment values surface as ConfigurationError."""
        monkeypatch.setenv("DND_COMBAT_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError, match="Failed to load engine settings"):
            get_settings()
