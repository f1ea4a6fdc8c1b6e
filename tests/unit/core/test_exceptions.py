"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestDndCombatError:
    """Tests for the base exception."""

    def test_message_only(self) -> None:
        """Test an error without details."""
        error = DndCombatError("Something broke")

        assert str(error) == "Something broke"
        assert error.message == "Something broke"
        assert error.details == {}

    def test_details_in_string(self) -> None:
        """Test details are appended to the string form."""
        error = DndCombatError("Bad roll", details={"expression": "1d0"})

        assert str(error) == "Bad roll [expression='1d0']"
        assert error.message == "Bad roll"

    def test_repr(self) -> None:
        """Test the debugging representation."""
        error = DndCombatError("Oops", details={"a": 1})

        assert repr(error) == "DndCombatError(message='Oops', details={'a': 1})"


class TestHierarchy:
    """Tests for the exception inheritance tree."""

    @pytest.mark.parametrize(
        "error_class",
        [
            InvalidGameStateError,
            CombatError,
            DiceRollError,
            DefinitionNotFoundError,
            FormulaError,
            ResourceError,
        ],
    )
    def test_engine_errors(self, error_class: type[DndCombatError]) -> None:
        """Test engine errors derive from GameEngineError."""
        assert issubclass(error_class, GameEngineError)
        assert issubclass(error_class, DndCombatError)

    def test_configuration_and_validation_are_not_engine_errors(self) -> None:
        """Test configuration and validation errors sit beside the engine branch."""
        assert not issubclass(ConfigurationError, GameEngineError)
        assert not issubclass(ValidationError, GameEngineError)
        assert issubclass(ValidationError, DndCombatError)

    def test_exported_hierarchy(self) -> None:
        """Test the module exports exactly the classes the engine raises."""
        from dnd_combat.core import exceptions

        assert sorted(exceptions.__all__) == [
            "CombatError",
            "ConfigurationError",
            "DefinitionNotFoundError",
            "DiceRollError",
            "DndCombatError",
            "FormulaError",
            "GameEngineError",
            "InvalidGameStateError",
            "ResourceError",
            "ValidationError",
        ]


class TestContextualErrors:
    """Tests for domain-specific context fields."""

    def test_combat_error_context(self) -> None:
        """Test combatant and round are recorded."""
        error = CombatError("Target missing", combatant_id="goblin-1", round_number=3)

        assert error.details == {"combatant_id": "goblin-1", "round_number": 3}

    def test_combat_error_round_zero_kept(self) -> None:
        """Test that round zero is not dropped as falsy."""
        error = CombatError("Early", round_number=0)

        assert error.details == {"round_number": 0}

    def test_invalid_state_context(self) -> None:
        """Test current and expected states are recorded."""
        error = InvalidGameStateError(
            "Not running",
            current_state="not_started",
            expected_states=["in_progress"],
        )

        assert error.details["current_state"] == "not_started"
        assert error.details["expected_states"] == ["in_progress"]

    def test_definition_not_found_context(self) -> None:
        """Test the missing id and its kind are recorded."""
        error = DefinitionNotFoundError("Unknown spell", definition_id="WISH", kind="spell")

        assert error.details == {"definition_id": "WISH", "kind": "spell"}
        assert error.message == "Unknown spell"

    def test_resource_error_context(self) -> None:
        """Test the resource id is recorded."""
        error = ResourceError("Negative spend", resource_id="KI")

        assert error.details == {"resource_id": "KI"}

    def test_extra_details_merged(self) -> None:
        """Test explicit details merge with context fields."""
        error = DiceRollError("Bad", expression="2d", details={"position": 2})

        assert error.details == {"position": 2, "expression": "2d"}
