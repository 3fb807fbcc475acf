"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DragonsBaneError: Base exception for all application errors.
        GameEngineError: Base for world engine precondition failures.
        PersistenceError: World store read/write failures.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from dragons_bane.core.config import (
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dragons_bane.core.exceptions import (
    CombatError,
    ConfigurationError,
    DragonsBaneError,
    GameEngineError,
    InteractionError,
    InvalidGameStateError,
    PersistenceError,
    StateChangeError,
    StorageError,
    TravelError,
    ValidationError,
)
from dragons_bane.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "DragonsBaneError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidGameStateError",
    "CombatError",
    "TravelError",
    "InteractionError",
    "StateChangeError",
    # Storage exceptions
    "StorageError",
    "PersistenceError",
    # Configuration
    "Settings",
    "StorageSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
]
