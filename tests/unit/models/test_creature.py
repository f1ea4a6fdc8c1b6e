"""Tests for runtime creature state."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from dnd_combat.models.creature import (
    ActionEconomy,
    ActiveCondition,
    CreatureRuntimeState,
    TrackedResource,
    calculate_modifier,
)


class TestCalculateModifier:
    """Tests for the ability modifier formula."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [(1, -5), (8, -1), (9, -1), (10, 0), (11, 0), (12, 1), (15, 2), (20, 5), (30, 10)],
    )
    def test_modifier_table(self, score: int, expected: int) -> None:
        """Test floor((score - 10) / 2) across the score range."""
        assert calculate_modifier(score) == expected


class TestCreatureRuntimeState:
    """Tests for CreatureRuntimeState helpers."""

    def test_minimal_creature(self) -> None:
        """Test only id and name are required."""
        creature = CreatureRuntimeState(id="rat-1", name="Rat")

        assert creature.current_hp == 0
        assert creature.armor_class == 10
        assert creature.action_economy.has_action is True

    def test_ability_score_fallbacks(self) -> None:
        """Test effective scores win over base scores, which win over 10."""
        creature = CreatureRuntimeState(
            id="a",
            name="A",
            ability_scores_base={"STR": 16, "DEX": 12},
            ability_scores_effective={"STR": 18},
        )

        assert creature.ability_score("STR") == 18
        assert creature.ability_score("dex") == 12
        assert creature.ability_score("CHA") == 10
        assert creature.ability_modifier("STR") == 4

    def test_has_condition(self, make_creature: Any) -> None:
        """Test condition lookup by id."""
        creature = make_creature("a", active_conditions=[ActiveCondition(condition_id="PRONE")])

        assert creature.has_condition("PRONE")
        assert not creature.has_condition("BLINDED")

    def test_get_resource(self, make_creature: Any) -> None:
        """Test tracked resource lookup by id."""
        creature = make_creature(
            "a",
            tracked_resources=[
                TrackedResource(resource_id="KI", current_value=2, max_value=3),
            ],
        )

        assert creature.get_resource("KI").current_value == 2
        assert creature.get_resource("RAGE") is None

    def test_can_act(self, make_creature: Any) -> None:
        """Test a healthy creature can act."""
        assert make_creature("a", hp=5).can_act

    def test_cannot_act_at_zero_hp(self, make_creature: Any) -> None:
        """Test a creature at 0 HP cannot act."""
        assert not make_creature("a", hp=0).can_act

    @pytest.mark.parametrize("condition_id", ["STUNNED", "PARALYZED", "UNCONSCIOUS"])
    def test_cannot_act_when_incapacitated(self, make_creature: Any, condition_id: str) -> None:
        """Test incapacitating conditions prevent turns."""
        creature = make_creature(
            "a",
            active_conditions=[ActiveCondition(condition_id=condition_id)],
        )

        assert creature.is_incapacitated
        assert not creature.can_act

    def test_assignment_is_validated(self, make_creature: Any) -> None:
        """Test HP cannot be assigned a negative value."""
        creature = make_creature("a")

        with pytest.raises(ValidationError):
            creature.current_hp = -1

    def test_unknown_fields_rejected(self) -> None:
        """Test the model forbids unknown fields."""
        with pytest.raises(ValidationError):
            CreatureRuntimeState(id="a", name="A", hit_points=7)


class TestActionEconomy:
    """Tests for the per-turn action budget."""

    def test_reset(self) -> None:
        """Test reset restores the full budget."""
        economy = ActionEconomy(
            has_action=False,
            has_bonus_action=False,
            has_reaction=False,
            movement_used=30,
        )

        economy.reset()

        assert economy == ActionEconomy()
