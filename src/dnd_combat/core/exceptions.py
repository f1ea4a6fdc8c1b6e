"""Custom exception hierarchy for the combat resolution engine.

All exceptions inherit from DndCombatError so that the turn manager can
treat every engine failure uniformly at the action boundary while still
carrying domain-specific context in ``details``.

Expected, user-facing failures (wrong actor, no slots left, missing
target) are *not* exceptions: they are returned as unsuccessful results.
The classes below cover hard failures only.

Example:
    >>> from dnd_combat.core.exceptions import DefinitionNotFoundError
    >>> raise DefinitionNotFoundError("Unknown spell", definition_id="FIREBALL", kind="spell")
"""

from __future__ import annotations

from typing import Any


class DndCombatError(Exception):
    """Base exception for all combat engine errors.

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
        """Return a detailed string representation of the exception.

        Returns:
            String representation suitable for debugging.
        """
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(DndCombatError):
    """Base exception for all game engine errors.

    Raised when there are issues with combat state management, action
    resolution, or rules processing.
    """


class InvalidGameStateError(GameEngineError):
    """Raised when an operation is attempted in the wrong combat phase.

    For example, processing an action before combat has started.
    """

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
    """Raised when combat resolution hits a structural impossibility.

    This includes a target missing from the roster or a malformed
    weapon/attack definition.
    """

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice notation cannot be parsed or evaluated."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class DefinitionNotFoundError(GameEngineError):
    """Raised when a referenced definition id has no backing definition.

    This is a hard failure for the action that triggered the lookup; the
    turn manager rolls the action back and reports the message.
    """

    def __init__(
        self,
        message: str,
        *,
        definition_id: str | None = None,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error with the missing definition id.

        Args:
            message: Human-readable error description.
            definition_id: The id that could not be resolved.
            kind: Definition kind (spell, item, condition, ...).
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if definition_id:
            combined_details["definition_id"] = definition_id
        if kind:
            combined_details["kind"] = kind
        super().__init__(message, details=combined_details)


class FormulaError(GameEngineError):
    """Raised inside the formula evaluator for any evaluation failure.

    Never escapes ``evaluate_formula``; it is converted into the
    ``error`` field of the returned result.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            expression: The formula that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class ResourceError(GameEngineError):
    """Raised when a resource operation is structurally invalid.

    Running out of a resource is not an error; a negative spend is.
    """

    def __init__(
        self,
        message: str,
        *,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize resource error with the resource id.

        Args:
            message: Human-readable error description.
            resource_id: The resource involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if resource_id:
            combined_details["resource_id"] = resource_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration Domain Exceptions
# =============================================================================


class ConfigurationError(DndCombatError):
    """Raised when engine configuration is invalid.

    This includes invalid values or incompatible configuration
    combinations.
    """

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


class ValidationError(DndCombatError):
    """Raised when authored data fails a rules-level check.

    Schema errors are reported by pydantic; this covers constraints
    pydantic cannot express, such as a duplicate combatant id.
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


__all__ = [
    "DndCombatError",
    "GameEngineError",
    "InvalidGameStateError",
    "CombatError",
    "DiceRollError",
    "DefinitionNotFoundError",
    "FormulaError",
    "ResourceError",
    "ConfigurationError",
    "ValidationError",
]
