"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the D&D combat engine test suite: a scripted random source so that
every die face is chosen by the test, a registry of master data, and a
factory for runtime creatures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Callable, Generator


class ScriptedRng:
    """Random source that returns queued values in order.

    Each ``randint`` call pops the next value and checks it lies within
    the requested range, so a test fails loudly when the engine rolls a
    different die than the one scripted.
    """

    def __init__(self, values: list[int]) -> None:
        self._values = list(values)
        self.calls: list[tuple[int, int, int]] = []

    def randint(self, a: int, b: int) -> int:
        if not self._values:
            raise AssertionError(f"No scripted roll left for randint({a}, {b})")
        value = self._values.pop(0)
        if not a <= value <= b:
            raise AssertionError(f"Scripted roll {value} outside randint({a}, {b})")
        self.calls.append((a, b, value))
        return value

    @property
    def remaining(self) -> int:
        return len(self._values)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dnd_combat.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_COMBAT_DEBUG": "true",
        "DND_COMBAT_LOG_LEVEL": "DEBUG",
        "DND_COMBAT_ENGINE_DEFAULT_SAVE_DC": "13",
        "DND_COMBAT_ENGINE_DICE_SEED": "42",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Dice Fixtures
# =============================================================================


@pytest.fixture
def scripted_rng() -> Callable[..., ScriptedRng]:
    """Provide a factory for scripted random sources.

    Returns:
        Callable taking the die faces to return, in order.
    """

    def _make(*values: int) -> ScriptedRng:
        return ScriptedRng(list(values))

    return _make


@pytest.fixture
def scripted_dice(scripted_rng: Callable[..., ScriptedRng]) -> Callable[..., Any]:
    """Provide a factory for DiceRollers driven by scripted rolls.

    Returns:
        Callable taking the die faces to return, in order.
    """
    from dnd_combat.engine.dice import DiceRoller

    def _make(*values: int) -> DiceRoller:
        return DiceRoller(rng=scripted_rng(*values))

    return _make


@pytest.fixture
def dice_roller() -> Any:
    """Provide a seeded DiceRoller instance."""
    from dnd_combat.engine.dice import DiceRoller

    return DiceRoller(seed=42)


# =============================================================================
# Master Data Fixtures
# =============================================================================


@pytest.fixture
def conditions() -> list[Any]:
    """Provide condition definitions used across the suite."""
    from dnd_combat.models.definitions import ConditionDefinition

    return [
        ConditionDefinition(
            condition_id="UNCONSCIOUS",
            name="Unconscious",
            parsed_effects=[{"effect_type": "GRANT_ADVANTAGE_TO_ATTACKERS"}],
        ),
        ConditionDefinition(
            condition_id="POISONED",
            name="Poisoned",
            parsed_effects=[
                {"effect_type": "IMPOSE_DISADVANTAGE_ON_ROLL", "bonus_to": "ATTACK_ROLL"},
            ],
        ),
        ConditionDefinition(
            condition_id="RESTRAINED",
            name="Restrained",
            parsed_effects=[{"effect_type": "GRANT_ADVANTAGE_TO_ATTACKERS"}],
        ),
        ConditionDefinition(condition_id="STUNNED", name="Stunned"),
    ]


@pytest.fixture
def items() -> list[Any]:
    """Provide weapons, armor and mundane gear."""
    from dnd_combat.models.definitions import ArmorProperties, ItemDefinition, WeaponProperties
    from dnd_combat.models.effects import DamageRoll

    return [
        ItemDefinition(
            item_id="LONGSWORD",
            name="Longsword",
            weapon=WeaponProperties(
                damage_rolls=[DamageRoll(dice_count=1, dice_id="D8", damage_type="SLASHING")],
                properties=["VERSATILE"],
            ),
        ),
        ItemDefinition(
            item_id="DAGGER",
            name="Dagger",
            weapon=WeaponProperties(
                damage_rolls=[DamageRoll(dice_count=1, dice_id="D4", damage_type="PIERCING")],
                properties=["FINESSE", "LIGHT"],
            ),
        ),
        ItemDefinition(
            item_id="LONGBOW",
            name="Longbow",
            weapon=WeaponProperties(
                damage_rolls=[DamageRoll(dice_count=1, dice_id="D8", damage_type="PIERCING")],
                properties=["RANGED", "TWO_HANDED"],
            ),
        ),
        ItemDefinition(item_id="LEATHER_ARMOR", name="Leather", armor=ArmorProperties(base_ac=11)),
        ItemDefinition(
            item_id="HIDE_ARMOR",
            name="Hide",
            armor=ArmorProperties(base_ac=12, max_dex_bonus=2),
        ),
        ItemDefinition(
            item_id="CHAIN_MAIL",
            name="Chain Mail",
            armor=ArmorProperties(base_ac=16, add_dex_modifier=False),
        ),
        ItemDefinition(item_id="SHIELD", name="Shield", armor=ArmorProperties(ac_bonus=2)),
        ItemDefinition(item_id="TORCH", name="Torch"),
    ]


@pytest.fixture
def spells() -> list[Any]:
    """Provide spells covering damage, saves, concentration and costs."""
    from dnd_combat.models.definitions import (
        CastingTime,
        SpellComponents,
        SpellDefinition,
    )
    from dnd_combat.models.effects import (
        BonusEffect,
        DamageEffect,
        DamageRoll,
        SavingThrowSpec,
    )

    return [
        SpellDefinition(
            spell_id="MAGIC_MISSILE",
            name="Magic Missile",
            level=1,
            components=SpellComponents(verbal=True, somatic=True),
            duration="Instantaneous",
            parsed_effects=[
                DamageEffect(
                    damage_rolls=[
                        DamageRoll(dice_count=1, dice_id="D4", damage_type="FORCE", bonus_damage=1),
                    ],
                ),
            ],
        ),
        SpellDefinition(
            spell_id="FIRE_BOLT",
            name="Fire Bolt",
            level=0,
            duration="Instantaneous",
            parsed_effects=[
                DamageEffect(
                    damage_rolls=[DamageRoll(dice_count=1, dice_id="D10", damage_type="FIRE")],
                ),
            ],
        ),
        SpellDefinition(
            spell_id="BURNING_HANDS",
            name="Burning Hands",
            level=1,
            duration="Instantaneous",
            parsed_effects=[
                DamageEffect(
                    damage_rolls=[DamageRoll(dice_count=3, dice_id="D6", damage_type="FIRE")],
                    saving_throw=SavingThrowSpec(
                        ability="DEX",
                        dc_formula="CASTER_SPELL_SAVE_DC",
                        effect_on_success="HALF_DAMAGE",
                    ),
                ),
            ],
        ),
        SpellDefinition(
            spell_id="SHIELD_OF_FAITH",
            name="Shield of Faith",
            level=1,
            casting_time=CastingTime(action_type="BONUS_ACTION"),
            duration="Concentration, up to 10 minutes",
            parsed_effects=[
                BonusEffect(
                    bonus_to="ARMOR_CLASS",
                    bonus_value=2,
                    duration="Concentration, up to 10 minutes",
                    concentration=True,
                ),
            ],
        ),
        SpellDefinition(
            spell_id="BLESS",
            name="Bless",
            level=1,
            duration="Concentration, up to 1 minute",
            parsed_effects=[
                BonusEffect(
                    bonus_to="ATTACK_ROLL",
                    bonus_value=1,
                    duration="Concentration, up to 1 minute",
                    concentration=True,
                ),
            ],
        ),
        SpellDefinition(
            spell_id="REVIVIFY",
            name="Revivify",
            level=3,
            components=SpellComponents(
                verbal=True,
                somatic=True,
                material=True,
                material_description="diamonds worth 300 gp",
                material_cost=300,
            ),
            duration="Instantaneous",
        ),
    ]


@pytest.fixture
def classes() -> list[Any]:
    """Provide a martial and a spellcasting class."""
    from dnd_combat.models.definitions import ClassDefinition, LevelProgression

    return [
        ClassDefinition(
            class_id="FIGHTER",
            name="Fighter",
            hit_die="D10",
            saving_throw_proficiencies=["STR", "CON"],
        ),
        ClassDefinition(
            class_id="WIZARD",
            name="Wizard",
            hit_die="D6",
            saving_throw_proficiencies=["INT", "WIS"],
            spellcasting_ability="INT",
            level_progression={
                1: LevelProgression(spell_slots={"1": 2}),
                2: LevelProgression(spell_slots={"1": 1}),
                3: LevelProgression(spell_slots={"1": 1, "2": 2}),
            },
        ),
    ]


@pytest.fixture
def templates() -> list[Any]:
    """Provide monster stat blocks."""
    from dnd_combat.models.definitions import (
        ArmorClassInfo,
        CreatureAction,
        CreatureTemplateDefinition,
        HitDiceFormula,
        HitPointsInfo,
    )
    from dnd_combat.models.effects import DamageEffect, DamageRoll

    return [
        CreatureTemplateDefinition(
            creature_id="ORC",
            name="Orc",
            armor_class=ArmorClassInfo(value=13),
            hit_points=HitPointsInfo(average=15),
            proficiency_bonus=2,
            actions=[
                CreatureAction(
                    action_name="Battleaxe",
                    attack_bonus_value=5,
                    on_hit_effects=[
                        DamageEffect(
                            damage_rolls=[
                                DamageRoll(dice_count=1, dice_id="D8", damage_type="SLASHING"),
                            ],
                        ),
                    ],
                ),
                CreatureAction(
                    action_name="Maul",
                    attack_bonus_value=5,
                    on_hit_effects=[
                        DamageEffect(
                            damage_rolls=[
                                DamageRoll(dice_count=1, dice_id="D12", damage_type="SLASHING"),
                            ],
                        ),
                    ],
                ),
            ],
        ),
        CreatureTemplateDefinition(
            creature_id="GUARD",
            name="Guard",
            armor_class=ArmorClassInfo(value=15, calculation_details="chain shirt"),
            hit_points=HitPointsInfo(average=20),
        ),
        CreatureTemplateDefinition(
            creature_id="GOBLIN",
            name="Goblin",
            armor_class=ArmorClassInfo(value=15),
            hit_points=HitPointsInfo(
                average=7,
                dice_formula=HitDiceFormula(dice_count=2, dice_id="D6"),
            ),
            ability_scores={"DEX": 14, "CON": 10},
            skill_proficiencies=["STEALTH"],
            saving_throw_proficiencies=["DEX"],
        ),
    ]


@pytest.fixture
def registry(
    conditions: list[Any],
    items: list[Any],
    spells: list[Any],
    classes: list[Any],
    templates: list[Any],
) -> Any:
    """Provide a DefinitionRegistry seeded with the suite's master data."""
    from dnd_combat.engine.registry import DefinitionRegistry

    return DefinitionRegistry([*conditions, *items, *spells, *classes, *templates])


# =============================================================================
# Creature Fixtures
# =============================================================================


@pytest.fixture
def make_creature() -> Callable[..., Any]:
    """Provide a factory for runtime creatures.

    The factory sets ``max_hp_base`` to the starting HP so that a bare
    creature survives stat recalculation unchanged.

    Returns:
        Callable taking an id and optional runtime state fields.
    """
    from dnd_combat.models.creature import CreatureRuntimeState

    def _make(
        creature_id: str,
        *,
        name: str | None = None,
        hp: int = 20,
        scores: dict[str, int] | None = None,
        **fields: Any,
    ) -> CreatureRuntimeState:
        fields.setdefault("max_hp_base", hp)
        fields.setdefault("max_hp_calculated", hp)
        return CreatureRuntimeState(
            id=creature_id,
            name=name or creature_id.replace("-", " ").title(),
            current_hp=hp,
            ability_scores_base=scores or {},
            **fields,
        )

    return _make


@pytest.fixture
def make_active_effect() -> Callable[..., Any]:
    """Provide a factory wrapping an effect in an ActiveEffect."""
    from dnd_combat.models.effects import ActiveEffect

    def _make(effect: Any, *, source: str = "TEST", rounds: int | None = None) -> ActiveEffect:
        return ActiveEffect(
            instance_id=f"{source}-instance",
            source_definition_id=source,
            remaining_duration_rounds=rounds,
            effect=effect,
        )

    return _make
