"""Custom exception hierarchy for the Dragon's Bane world engine.

All exceptions inherit from DragonsBaneError so callers can handle engine
failures uniformly at the request boundary while keeping domain context
(which NPC, which change, which destination) in ``details``.

Example:
    >>> from dragons_bane.core.exceptions import CombatError
    >>> raise CombatError("Already in combat", enemy_npc_id="npc_wolf")
"""

from __future__ import annotations

from typing import Any


class DragonsBaneError(Exception):
    """Base exception for all Dragon's Bane errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DragonsBaneError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(DragonsBaneError):
    """Raised when external data fails validation.

    This covers collaborator payloads (action resolutions, encounter
    classifications) that cannot be coerced into engine models.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(DragonsBaneError):
    """Base exception for all world engine errors.

    Subclasses other than StateChangeError signal precondition violations:
    the operation was rejected and no state was mutated.
    """


class InvalidGameStateError(GameEngineError):
    """Raised when the world is in a state that forbids the operation."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid game state error with state context.

        Args:
            message: Human-readable error description.
            current_state: The current state identifier.
            expected_states: List of valid states that were expected.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class CombatError(GameEngineError):
    """Raised when a combat operation is not allowed."""

    def __init__(
        self,
        message: str,
        *,
        enemy_npc_id: str | None = None,
        turn_count: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            enemy_npc_id: Identifier of the NPC involved.
            turn_count: Current combat turn when the error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if enemy_npc_id:
            combined_details["enemy_npc_id"] = enemy_npc_id
        if turn_count is not None:
            combined_details["turn_count"] = turn_count
        super().__init__(message, details=combined_details)


class TravelError(GameEngineError):
    """Raised when a travel request is rejected."""

    def __init__(
        self,
        message: str,
        *,
        destination_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize travel error with destination context.

        Args:
            message: Human-readable error description.
            destination_id: The requested destination.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if destination_id:
            combined_details["destination_id"] = destination_id
        super().__init__(message, details=combined_details)


class InteractionError(GameEngineError):
    """Raised when the player cannot interact with an NPC.

    Typically the NPC is missing, dead, or not at the player's location.
    """

    def __init__(
        self,
        message: str,
        *,
        npc_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if npc_id:
            combined_details["npc_id"] = npc_id
        super().__init__(message, details=combined_details)


class StateChangeError(GameEngineError):
    """Raised when a single state change cannot be applied.

    The reducer catches this, records a warning and skips the change; it
    never escapes a batch application.
    """

    def __init__(
        self,
        message: str,
        *,
        change_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if change_type:
            combined_details["change_type"] = change_type
        super().__init__(message, details=combined_details)


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(DragonsBaneError):
    """Base exception for persistence errors."""


class PersistenceError(StorageError):
    """Raised when the world document cannot be written or read.

    Fatal for the current request only. The in-memory world stays valid.
    """

    def __init__(
        self,
        message: str,
        *,
        slot: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if slot:
            combined_details["slot"] = slot
        super().__init__(message, details=combined_details)


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
]
