"""Tests for dice rolling mechanics."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_combat.core.exceptions import DefinitionNotFoundError, DiceRollError
from dnd_combat.engine.dice import DiceRoller, RollType
from dnd_combat.models.effects import DamageRoll, HealingRoll


class TestRollType:
    """Tests for combining advantage and disadvantage."""

    @pytest.mark.parametrize(
        ("advantage", "disadvantage", "expected"),
        [
            (False, False, RollType.NORMAL),
            (True, False, RollType.ADVANTAGE),
            (False, True, RollType.DISADVANTAGE),
            (True, True, RollType.NORMAL),
        ],
    )
    def test_from_flags(self, advantage: bool, disadvantage: bool, expected: RollType) -> None:
        """Test advantage and disadvantage cancel out."""
        assert RollType.from_flags(advantage=advantage, disadvantage=disadvantage) is expected


class TestD20:
    """Tests for d20 rolls."""

    def test_normal_roll(self, scripted_dice: Any) -> None:
        """Test a normal roll uses one die."""
        result = scripted_dice(13).roll_d20()

        assert result.natural_rolls == (13,)
        assert result.chosen == 13
        assert result.roll_type is RollType.NORMAL

    def test_advantage_keeps_higher(self, scripted_dice: Any) -> None:
        """Test advantage rolls twice and keeps the higher die."""
        result = scripted_dice(7, 15).roll_d20(advantage=True)

        assert result.natural_rolls == (7, 15)
        assert result.chosen == 15
        assert result.roll_type is RollType.ADVANTAGE

    def test_disadvantage_keeps_lower(self, scripted_dice: Any) -> None:
        """Test disadvantage rolls twice and keeps the lower die."""
        result = scripted_dice(7, 15).roll_d20(disadvantage=True)

        assert result.chosen == 7
        assert result.roll_type is RollType.DISADVANTAGE

    def test_both_roll_once(self, scripted_rng: Any) -> None:
        """Test cancelled advantage consumes a single die."""
        rng = scripted_rng(12, 19)

        result = DiceRoller(rng=rng).roll_d20(advantage=True, disadvantage=True)

        assert result.natural_rolls == (12,)
        assert rng.remaining == 1

    def test_critical_and_fumble(self, scripted_dice: Any) -> None:
        """Test natural 20 and natural 1 flags."""
        roller = scripted_dice(20, 1)

        assert roller.roll_d20().is_critical
        assert roller.roll_d20().is_fumble


class TestDiceRoller:
    """Tests for plain dice and notation."""

    def test_roll_dice(self, scripted_dice: Any) -> None:
        """Test rolling several dice with a negative modifier."""
        result = scripted_dice(2, 3).roll_dice(2, 6, -1)

        assert result.rolls == (2, 3)
        assert result.total == 4
        assert result.modifier == -1
        assert result.expression == "2d6-1"

    def test_degenerate_die(self, scripted_dice: Any) -> None:
        """Test a die with no faces rolls 0 without touching the source."""
        assert scripted_dice().roll_die(0) == 0

    def test_seeded_rolls_reproducible(self) -> None:
        """Test two rollers with the same seed agree."""
        first = DiceRoller(seed=7).roll_dice(10, 20)
        second = DiceRoller(seed=7).roll_dice(10, 20)

        assert first == second
        assert all(1 <= value <= 20 for value in first.rolls)

    def test_notation_with_modifier(self, scripted_dice: Any) -> None:
        """Test notation with a flat modifier."""
        result = scripted_dice(4, 5).roll_notation("2d6+3")

        assert result.total == 12
        assert result.rolls == (4, 5)
        assert result.modifier == 3

    def test_notation_parentheses_and_multiply(self, scripted_dice: Any) -> None:
        """Test grouped notation."""
        result = scripted_dice(3).roll_notation("(1d4+1)*2")

        assert result.total == 8
        assert result.rolls == (3,)

    def test_notation_mixed_dice(self, scripted_dice: Any) -> None:
        """Test several dice groups in one expression."""
        result = scripted_dice(6, 1, 4).roll_notation("2d6+1d4")

        assert result.total == 11
        assert result.rolls == (6, 1, 4)

    def test_notation_division_floors(self, scripted_dice: Any) -> None:
        """Test integer division rounds down."""
        assert scripted_dice().roll_notation("10/3").total == 3

    @pytest.mark.parametrize("expression", ["", "   ", "hello", "1d20 + abc"])
    def test_invalid_notation(self, dice_roller: DiceRoller, expression: str) -> None:
        """Test malformed notation raises DiceRollError."""
        with pytest.raises(DiceRollError):
            dice_roller.roll_notation(expression)


class TestDamageRolls:
    """Tests for typed damage and healing rolls."""

    def test_critical_doubles_dice_not_bonus(self, scripted_dice: Any, registry: Any) -> None:
        """Test a critical hit doubles the dice count only."""
        damage_roll = DamageRoll(dice_count=1, dice_id="D8", damage_type="SLASHING", bonus_damage=2)

        (result,) = scripted_dice(3, 5).roll_damage([damage_roll], registry, is_critical=True)

        assert result.rolls == (3, 5)
        assert result.total == 10
        assert result.bonus == 2
        assert result.dice == "1d8"
        assert result.is_critical

    def test_total_floored_at_zero(self, scripted_dice: Any, registry: Any) -> None:
        """Test a large penalty cannot produce negative damage."""
        damage_roll = DamageRoll(dice_count=1, dice_id="D4", damage_type="FIRE", bonus_damage=-5)

        (result,) = scripted_dice(2).roll_damage([damage_roll], registry)

        assert result.total == 0

    def test_one_result_per_roll(self, scripted_dice: Any, registry: Any) -> None:
        """Test each damage roll keeps its own type."""
        rolls = [
            DamageRoll(dice_count=1, dice_id="D6", damage_type="PIERCING"),
            DamageRoll(dice_count=1, dice_id="D6", damage_type="POISON"),
        ]

        results = scripted_dice(4, 2).roll_damage(rolls, registry)

        assert [(r.damage_type, r.total) for r in results] == [("PIERCING", 4), ("POISON", 2)]

    def test_unknown_die_raises(self, scripted_dice: Any, registry: Any) -> None:
        """Test an unregistered dice id is a hard failure."""
        damage_roll = DamageRoll(dice_count=1, dice_id="D7", damage_type="FIRE")

        with pytest.raises(DefinitionNotFoundError):
            scripted_dice(1).roll_damage([damage_roll], registry)

    def test_healing(self, scripted_dice: Any, registry: Any) -> None:
        """Test healing sums dice and flat bonus."""
        healing = [HealingRoll(dice_count=2, dice_id="D4", bonus_healing=2)]

        assert scripted_dice(1, 4).roll_healing(healing, registry) == 7

    def test_damage_and_healing_roll_through_notation(
        self, scripted_dice: Any, registry: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test typed rolls are evaluated as dice notation."""
        roller = scripted_dice(3, 5, 2)
        rolled = roller.roll_notation
        expressions: list[str] = []

        def record(expression: str) -> Any:
            expressions.append(expression)
            return rolled(expression)

        monkeypatch.setattr(roller, "roll_notation", record)
        damage_roll = DamageRoll(dice_count=1, dice_id="D8", damage_type="FIRE", bonus_damage=2)

        roller.roll_damage([damage_roll], registry, is_critical=True)
        roller.roll_healing([HealingRoll(dice_count=1, dice_id="D4", bonus_healing=-1)], registry)

        assert expressions == ["2d8+2", "1d4-1"]
