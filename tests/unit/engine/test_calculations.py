"""Tests for derived stat calculations."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_combat.engine.calculations import (
    attack_bonus,
    base_hit_points,
    effective_ability_scores,
    initiative_modifier,
    max_hit_points,
    proficiency_bonus,
    save_bonus,
    skill_bonus,
    spell_save_dc,
    update_calculated_stats,
)
from dnd_combat.models.creature import ClassLevelEntry
from dnd_combat.models.effects import BonusEffect, MaxHitPointsEffect, SaveDcEffect


@pytest.fixture
def make_pc(make_creature: Any, registry: Any) -> Any:
    """Provide a factory for single-class player characters."""

    def _make(class_id: str, level: int, **fields: Any) -> Any:
        entry = ClassLevelEntry(class_definition=registry.get_class(class_id), level=level)
        return make_creature(
            f"{class_id.lower()}-{level}",
            is_player_character=True,
            class_levels=[entry],
            **fields,
        )

    return _make


class TestProficiencyBonus:
    """Tests for proficiency bonus sources."""

    @pytest.mark.parametrize(
        ("level", "expected"),
        [(1, 2), (4, 2), (5, 3), (8, 3), (9, 4), (13, 5), (16, 5), (17, 6), (20, 6)],
    )
    def test_player_level_table(self, make_pc: Any, level: int, expected: int) -> None:
        """Test the level breakpoints for player characters."""
        assert proficiency_bonus(make_pc("FIGHTER", level)) == expected

    def test_monster_uses_template(self, make_creature: Any, registry: Any) -> None:
        """Test monsters read the stat block's bonus."""
        template = registry.get_creature_template("ORC").model_copy(update={"proficiency_bonus": 3})
        orc = make_creature("orc", creature_definition=template)

        assert proficiency_bonus(orc) == 3

    def test_bare_creature_uses_default(self, make_creature: Any) -> None:
        """Test a creature with no template or classes gets the default."""
        assert proficiency_bonus(make_creature("thing")) == 2

    def test_default_from_settings(
        self, make_creature: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the default is configurable."""
        monkeypatch.setenv("DND_COMBAT_ENGINE_DEFAULT_PROFICIENCY_BONUS", "4")

        assert proficiency_bonus(make_creature("thing")) == 4


class TestHitPoints:
    """Tests for base and effective max HP."""

    def test_player_character(self, make_pc: Any, registry: Any) -> None:
        """Test full die at first level, rounded-up average afterwards."""
        fighter = make_pc("FIGHTER", 3, scores={"CON": 14})

        # 10 + 2, then (5 + 2) twice
        assert base_hit_points(fighter, registry) == 26

    def test_player_minimum_one_per_level(self, make_pc: Any, registry: Any) -> None:
        """Test a heavy CON penalty still gives 1 HP per level."""
        wizard = make_pc("WIZARD", 2, scores={"CON": 1})

        # max(1, 6 - 5) + max(1, 3 - 5)
        assert base_hit_points(wizard, registry) == 2

    def test_monster_hit_dice(self, make_creature: Any, registry: Any) -> None:
        """Test monster hit dice average plus CON per die."""
        goblin = make_creature(
            "goblin",
            creature_definition=registry.get_creature_template("GOBLIN"),
            scores={"CON": 12},
        )

        # floor(3.5 * 2) + 1 * 2
        assert base_hit_points(goblin, registry) == 9

    def test_monster_never_below_average(self, make_creature: Any, registry: Any) -> None:
        """Test the printed average is a floor."""
        goblin = make_creature(
            "goblin",
            creature_definition=registry.get_creature_template("GOBLIN"),
            scores={"CON": 6},
        )

        assert base_hit_points(goblin, registry) == 7

    def test_monster_without_formula(self, make_creature: Any, registry: Any) -> None:
        """Test the average is used when no hit dice are listed."""
        guard = make_creature("guard", creature_definition=registry.get_creature_template("GUARD"))

        assert base_hit_points(guard, registry) == 20

    def test_bare_creature_keeps_base(self, make_creature: Any, registry: Any) -> None:
        """Test creatures without a template keep their stored base."""
        assert base_hit_points(make_creature("thing", hp=13), registry) == 13

    def test_max_hp_effects(
        self, make_creature: Any, make_active_effect: Any, registry: Any
    ) -> None:
        """Test INCREASE_MAX_HP effects raise max HP."""
        creature = make_creature(
            "thing",
            hp=10,
            active_effects=[make_active_effect(MaxHitPointsEffect(bonus_value=5), source="AID")],
        )

        assert max_hit_points(creature, registry) == 15

    def test_max_hp_at_least_one(self, make_creature: Any, registry: Any) -> None:
        """Test max HP never drops below 1."""
        assert max_hit_points(make_creature("thing", hp=0), registry) == 1


class TestScoresAndBonuses:
    """Tests for effective scores and roll bonuses."""

    def test_effective_scores_include_bonuses(
        self, make_creature: Any, make_active_effect: Any
    ) -> None:
        """Test GRANT_BONUS on an ability raises the score."""
        creature = make_creature(
            "a",
            scores={"STR": 16},
            active_effects=[
                make_active_effect(BonusEffect(bonus_to="STR", bonus_value=2), source="BELT"),
            ],
        )

        assert effective_ability_scores(creature) == {"STR": 18}

    def test_attack_bonus_formula(self, make_creature: Any) -> None:
        """Test a formula attack bonus."""
        creature = make_creature("a", scores={"STR": 16}, proficiency_bonus=2)

        bonus = attack_bonus(creature, formula="ABILITY_MODIFIER:STR + PROFICIENCY_BONUS")

        assert bonus == 5

    def test_attack_bonus_failed_formula_falls_back(self, make_creature: Any) -> None:
        """Test a broken formula falls back to ability plus proficiency."""
        creature = make_creature("a", scores={"DEX": 18}, proficiency_bonus=3)

        assert attack_bonus(creature, formula="NOT_A_VAR +", ability="DEX") == 7

    def test_attack_bonus_fixed_and_effects(
        self, make_creature: Any, make_active_effect: Any
    ) -> None:
        """Test a fixed bonus plus ATTACK_ROLL bonuses."""
        creature = make_creature(
            "a",
            active_effects=[
                make_active_effect(
                    BonusEffect(bonus_to="ATTACK_ROLL", bonus_value=1), source="BLESS"
                ),
            ],
        )

        assert attack_bonus(creature, fixed_bonus=4) == 5

    def test_save_bonus(
        self, make_pc: Any, make_active_effect: Any, registry: Any
    ) -> None:
        """Test proficient and non-proficient saves plus SAVING_THROW bonuses."""
        fighter = make_pc("FIGHTER", 1, scores={"STR": 16, "DEX": 14})
        update_calculated_stats(fighter, registry)

        assert save_bonus(fighter, "STR") == 5
        assert save_bonus(fighter, "DEX") == 2

        fighter.active_effects.append(
            make_active_effect(BonusEffect(bonus_to="SAVING_THROW", bonus_value=1), source="CLOAK")
        )

        assert save_bonus(fighter, "DEX") == 3

    def test_save_bonus_specific_ability(
        self, make_creature: Any, make_active_effect: Any
    ) -> None:
        """Test bonuses keyed to one ability's save."""
        creature = make_creature(
            "a",
            active_effects=[
                make_active_effect(BonusEffect(bonus_to="WIS_SAVE", bonus_value=2), source="WARD"),
            ],
        )

        assert save_bonus(creature, "WIS") == 2
        assert save_bonus(creature, "CHA") == 0

    def test_monster_save_proficiency(self, make_creature: Any, registry: Any) -> None:
        """Test template save proficiencies."""
        goblin = make_creature(
            "goblin",
            creature_definition=registry.get_creature_template("GOBLIN"),
            scores={"DEX": 14},
            proficiency_bonus=2,
        )

        assert save_bonus(goblin, "DEX") == 4

    def test_skill_bonus(self, make_creature: Any, registry: Any) -> None:
        """Test proficiency, expertise and untrained skills."""
        rogue = make_creature(
            "rogue",
            scores={"DEX": 16},
            proficiency_bonus=2,
            skill_proficiencies=["ACROBATICS", "STEALTH"],
            skill_expertise=["STEALTH"],
        )

        assert skill_bonus(rogue, "STEALTH", registry) == 7
        assert skill_bonus(rogue, "ACROBATICS", registry) == 5
        assert skill_bonus(rogue, "ATHLETICS", registry) == 0

    def test_skill_bonus_from_template(self, make_creature: Any, registry: Any) -> None:
        """Test template skill proficiencies count."""
        goblin = make_creature(
            "goblin",
            creature_definition=registry.get_creature_template("GOBLIN"),
            scores={"DEX": 14},
            proficiency_bonus=2,
        )

        assert skill_bonus(goblin, "stealth", registry) == 4

    def test_initiative_modifier(self, make_creature: Any, make_active_effect: Any) -> None:
        """Test DEX plus INITIATIVE_ROLL bonuses."""
        creature = make_creature(
            "a",
            scores={"DEX": 14},
            active_effects=[
                make_active_effect(
                    BonusEffect(bonus_to="INITIATIVE_ROLL", bonus_value=5), source="ALERT"
                ),
            ],
        )

        assert initiative_modifier(creature) == 7


class TestSpellSaveDc:
    """Tests for spell save DCs."""

    def test_default_formula(self, make_creature: Any) -> None:
        """Test 8 + proficiency + spellcasting modifier."""
        wizard = make_creature(
            "wizard", scores={"INT": 16}, proficiency_bonus=2, spellcasting_ability="INT"
        )

        assert spell_save_dc(wizard) == 13

    def test_define_save_dc_effect(self, make_creature: Any, make_active_effect: Any) -> None:
        """Test a DEFINE_SAVE_DC effect replaces the default."""
        creature = make_creature(
            "monk",
            scores={"WIS": 16},
            active_effects=[
                make_active_effect(
                    SaveDcEffect(value_formula="8 + PROFICIENCY_BONUS + ABILITY_MODIFIER:WIS"),
                    source="KI",
                ),
            ],
        )

        assert spell_save_dc(creature) == 13

    def test_broken_save_dc_effect_uses_default(
        self, make_creature: Any, make_active_effect: Any
    ) -> None:
        """Test a failing DEFINE_SAVE_DC formula is ignored."""
        creature = make_creature(
            "a",
            active_effects=[make_active_effect(SaveDcEffect(value_formula="1 /"), source="BAD")],
        )

        assert spell_save_dc(creature) == 10


class TestUpdateCalculatedStats:
    """Tests for the recalculation orchestrator."""

    def test_player_character(self, make_pc: Any, registry: Any) -> None:
        """Test a full recalculation for a player character."""
        fighter = make_pc("FIGHTER", 5, hp=100, scores={"CON": 14, "DEX": 12, "WIS": 12})

        update_calculated_stats(fighter, registry)

        assert fighter.total_level == 5
        assert fighter.proficiency_bonus == 3
        # 12 + 4 * 7
        assert fighter.max_hp_calculated == 40
        assert fighter.current_hp == 40
        assert fighter.armor_class == 11
        assert fighter.speeds == {"WALK": 30}
        assert fighter.senses.passive_perception == 11

    def test_current_hp_not_raised(self, make_creature: Any, registry: Any) -> None:
        """Test recalculation only clamps HP downward."""
        creature = make_creature("a", hp=20)
        creature.current_hp = 5

        update_calculated_stats(creature, registry)

        assert creature.current_hp == 5
        assert creature.max_hp_calculated == 20

    def test_template_speeds(self, make_creature: Any, registry: Any) -> None:
        """Test monsters take speeds from the template."""
        orc = make_creature("orc", hp=15, creature_definition=registry.get_creature_template("ORC"))

        update_calculated_stats(orc, registry)

        assert orc.speeds == {"WALK": 30}
        assert orc.armor_class == 13
