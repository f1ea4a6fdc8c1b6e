"""Tests for saving throws, skill checks and contests."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_combat.engine.dice import RollType
from dnd_combat.engine.saving_throw import (
    classify_check,
    resolve_saving_throw,
    saving_throw_event,
)
from dnd_combat.engine.skill_check import resolve_contested_check, resolve_skill_check
from dnd_combat.models.effects import BonusEffect
from dnd_combat.models.enums import CheckOutcome, ContestOutcome, EventType


class TestClassifyCheck:
    """Tests for DC comparisons."""

    @pytest.mark.parametrize(
        ("natural", "total", "dc", "expected"),
        [
            (12, 15, 15, CheckOutcome.SUCCESS),
            (20, 25, 15, CheckOutcome.CRITICAL_SUCCESS),
            (10, 14, 15, CheckOutcome.FAILURE),
            (1, 3, 15, CheckOutcome.CRITICAL_FAILURE),
            (20, 18, 19, CheckOutcome.FAILURE),
            (1, 16, 15, CheckOutcome.SUCCESS),
        ],
    )
    def test_outcomes(self, natural: int, total: int, dc: int, expected: CheckOutcome) -> None:
        """Test natural rolls only flag criticals, they never flip the result."""
        assert classify_check(natural, total, dc) is expected


class TestSavingThrow:
    """Tests for saving throws."""

    def test_success_with_bonus(self, make_creature: Any, scripted_dice: Any) -> None:
        """Test the save bonus is added to the d20."""
        creature = make_creature("a", scores={"DEX": 16})

        resolution = resolve_saving_throw(creature, "DEX", 13, scripted_dice(10))

        assert resolution.total == 13
        assert resolution.success
        assert resolution.outcome is CheckOutcome.SUCCESS

    def test_failure(self, make_creature: Any, scripted_dice: Any) -> None:
        """Test a total below the DC fails."""
        resolution = resolve_saving_throw(make_creature("a"), "WIS", 12, scripted_dice(11))

        assert not resolution.success

    def test_own_advantage_effect(
        self, make_creature: Any, make_active_effect: Any, scripted_dice: Any
    ) -> None:
        """Test a DEX_SAVE advantage effect applies to DEX saves only."""
        creature = make_creature(
            "a",
            active_effects=[
                make_active_effect(
                    BonusEffect(effect_type="GRANT_ADVANTAGE_ON_ROLL", bonus_to="DEX_SAVE"),
                    source="DODGE_ACTION",
                ),
            ],
        )
        dice = scripted_dice(4, 17, 9)

        dex_save = resolve_saving_throw(creature, "DEX", 15, dice)
        con_save = resolve_saving_throw(creature, "CON", 15, dice)

        assert dex_save.roll.roll_type is RollType.ADVANTAGE
        assert dex_save.roll.chosen == 17
        assert con_save.roll.roll_type is RollType.NORMAL

    def test_caller_disadvantage(self, make_creature: Any, scripted_dice: Any) -> None:
        """Test caller-supplied disadvantage."""
        resolution = resolve_saving_throw(
            make_creature("a"), "STR", 10, scripted_dice(19, 2), disadvantage=True
        )

        assert resolution.roll.chosen == 2
        assert resolution.outcome is CheckOutcome.FAILURE

    def test_event(self, make_creature: Any, scripted_dice: Any) -> None:
        """Test the SAVING_THROW_MADE payload."""
        creature = make_creature("a", scores={"CON": 14})
        resolution = resolve_saving_throw(creature, "con", 12, scripted_dice(8))

        event = saving_throw_event(creature, "con", resolution, source_creature_id="b")

        assert event.type is EventType.SAVING_THROW_MADE
        assert event.target_creature_id == "a"
        assert event.details == {
            "ability": "CON",
            "dc": 12,
            "roll_total": 10,
            "natural_roll": 8,
            "outcome": "Failure",
        }


class TestSkillCheck:
    """Tests for skill checks."""

    def test_check_against_dc(
        self, make_creature: Any, scripted_dice: Any, registry: Any
    ) -> None:
        """Test a proficient skill check."""
        rogue = make_creature(
            "rogue", scores={"DEX": 16}, proficiency_bonus=2, skill_proficiencies=["STEALTH"]
        )

        resolution = resolve_skill_check(rogue, "STEALTH", 15, scripted_dice(10), registry)

        assert resolution.bonus == 5
        assert resolution.total == 15
        assert resolution.success

    def test_ability_check_disadvantage(
        self, make_creature: Any, make_active_effect: Any, scripted_dice: Any, registry: Any
    ) -> None:
        """Test ABILITY_CHECK disadvantage applies to every skill."""
        creature = make_creature(
            "a",
            active_effects=[
                make_active_effect(
                    BonusEffect(effect_type="IMPOSE_DISADVANTAGE_ON_ROLL", bonus_to="ABILITY_CHECK"),
                    source="EXHAUSTION",
                ),
            ],
        )

        resolution = resolve_skill_check(creature, "PERCEPTION", 10, scripted_dice(15, 6), registry)

        assert resolution.roll.roll_type is RollType.DISADVANTAGE
        assert resolution.total == 6


class TestContestedCheck:
    """Tests for contests between two creatures."""

    def test_performer_a_rolls_first(
        self, make_creature: Any, scripted_dice: Any, registry: Any
    ) -> None:
        """Test dice are consumed by A, then B."""
        grappler = make_creature("grappler", scores={"STR": 16})
        escapee = make_creature("escapee", scores={"DEX": 14})

        result = resolve_contested_check(
            grappler, "ATHLETICS", escapee, "ACROBATICS", scripted_dice(12, 9), registry
        )

        assert result.performer_a.total == 15
        assert result.performer_b.total == 11
        assert result.outcome is ContestOutcome.PERFORMER_A

    def test_performer_b_wins(
        self, make_creature: Any, scripted_dice: Any, registry: Any
    ) -> None:
        """Test B wins on a higher total."""
        result = resolve_contested_check(
            make_creature("a"),
            "ATHLETICS",
            make_creature("b"),
            "ATHLETICS",
            scripted_dice(5, 6),
            registry,
        )

        assert result.outcome is ContestOutcome.PERFORMER_B

    def test_tie_is_reported(
        self, make_creature: Any, scripted_dice: Any, registry: Any
    ) -> None:
        """Test equal totals are a tie, not broken."""
        result = resolve_contested_check(
            make_creature("a", scores={"STR": 12}),
            "ATHLETICS",
            make_creature("b"),
            "ATHLETICS",
            scripted_dice(10, 11),
            registry,
        )

        assert result.outcome is ContestOutcome.TIE
