"""Configuration management for the combat engine.

Centralized settings using pydantic-settings, read from environment
variables and an optional ``.env`` file.

Example:
    >>> from dnd_combat.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.default_concentration_rounds
    10

Environment Variables:
    DND_COMBAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_COMBAT_JSON_LOGS: Emit JSON log lines instead of console output
    DND_COMBAT_ENGINE_DICE_SEED: Seed for reproducible encounters
    DND_COMBAT_ENGINE_DEFAULT_SAVE_DC: Save DC used when an effect gives none
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_combat.core.exceptions import ConfigurationError


class EngineSettings(BaseSettings):
    """Configuration for rules resolution defaults.

    Attributes:
        dice_seed: Optional seed for the default dice roller.
        default_concentration_rounds: Rounds a concentration effect lasts
            when no maximum is given.
        default_save_dc: DC used when an effect's save has no DC source.
        default_proficiency_bonus: Proficiency for creatures that are
            neither player characters nor templated monsters.
        default_walk_speed: Walking speed assumed when none is recorded.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_COMBAT_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    dice_seed: int | None = Field(
        default=None,
        description="Seed for reproducible dice rolls",
    )
    default_concentration_rounds: int = Field(
        default=10,
        ge=1,
        description="Rounds for concentration without an explicit maximum",
    )
    default_save_dc: int = Field(
        default=10,
        ge=1,
        le=30,
        description="Fallback save DC",
    )
    default_proficiency_bonus: int = Field(
        default=2,
        ge=0,
        le=9,
        description="Fallback proficiency bonus",
    )
    default_walk_speed: int = Field(
        default=30,
        ge=0,
        description="Fallback walking speed in feet",
    )


class Settings(BaseSettings):
    """Main settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Logging level.
        json_logs: Render logs as JSON.
        engine: Rules engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_COMBAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Combat Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)

    @model_validator(mode="after")
    def validate_debug_logging(self) -> "Settings":
        """Reject a debug run that silences warnings.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If debug is on but the level hides warnings.
        """
        if self.debug and self.log_level in ("ERROR", "CRITICAL"):
            raise ConfigurationError(
                f"debug mode requires log_level WARNING or lower, got {self.log_level}",
                config_key="log_level",
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        The cached Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "EngineSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
