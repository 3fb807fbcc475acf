"""Configuration management for the Dragon's Bane world engine.

Settings are loaded with pydantic-settings from environment variables and an
optional ``.env`` file, with per-domain settings classes aggregated into a
single cached ``Settings`` object.

Example:
    >>> from dragons_bane.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.storage.world_slot
    'default'

Environment Variables:
    DRAGONS_BANE_DATABASE_PATH: Path to the SQLite world store
    DRAGONS_BANE_WORLD_SLOT: Name of the world document slot
    DRAGONS_BANE_GAME_RANDOM_SEED: Seed for the engine random source
    DRAGONS_BANE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DRAGONS_BANE_JSON_LOGS: Render logs as JSON
    DRAGONS_BANE_LOG_FILE: Also write logs to this file
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for the persistence gateway.

    Attributes:
        database_path: Path to the SQLite database file.
        world_slot: Key of the single live world document.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONS_BANE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dragons_bane.db"),
        description="Path to SQLite world store",
    )
    world_slot: str = Field(
        default="default",
        min_length=1,
        max_length=100,
        description="Slot name of the live world document",
    )


class GameSettings(BaseSettings):
    """Configuration for world engine behavior.

    Attributes:
        random_seed: Seed for the engine random source (None = system entropy).
        start_location_id: Where new characters begin.
        max_event_history: Recent world events handed to collaborators as context.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONS_BANE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    random_seed: int | None = Field(
        default=None,
        description="Seed for reproducible combat and travel rolls",
    )
    start_location_id: str = Field(
        default=START_LOCATION_ID,
        description="Starting location for new characters",
    )
    max_event_history: int = Field(
        default=500,
        ge=10,
        le=100_000,
        description="Recent world events handed to collaborators as context",
    )

    @field_validator("start_location_id")
    @classmethod
    def validate_start_location(cls, value: str) -> str:
        """Reject blank start locations."""
        if not value.strip():
            raise ConfigurationError(
                "start_location_id must not be blank",
                config_key="start_location_id",
            )
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Render logs as JSON.
        log_file: Optional file that also receives log output.
        storage: Persistence settings.
        game: Engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONS_BANE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Dragon's Bane",
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
        description="Render logs as JSON",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    game: GameSettings = Field(default_factory=GameSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
