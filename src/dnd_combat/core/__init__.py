"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndCombatError: Base exception for all engine errors.
        DefinitionNotFoundError: Unresolvable definition reference.
        ConfigurationError: Configuration-related errors.

    Configuration:
        Settings: Main settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from dnd_combat.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_combat.core.exceptions import (
    CombatError,
    ConfigurationError,
    DefinitionNotFoundError,
    DiceRollError,
    DndCombatError,
    FormulaError,
    GameEngineError,
    InvalidGameStateError,
    ResourceError,
    ValidationError,
)
from dnd_combat.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "DndCombatError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidGameStateError",
    "CombatError",
    "DiceRollError",
    "DefinitionNotFoundError",
    "FormulaError",
    "ResourceError",
    # Configuration
    "Settings",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
