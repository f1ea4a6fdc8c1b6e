"""Derived-stat calculator.

Pure functions over a :class:`CreatureRuntimeState` that compute ability
modifiers, proficiency, hit points and the roll bonuses used by the
resolvers. ``update_calculated_stats`` is the single entry point that
writes the derived fields back onto the creature; call it after any
mutation that could change them (HP change, effect added or removed,
gear change).
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

from dnd_combat.core.config import get_settings
from dnd_combat.core.constants import (
    ABILITY_CHECK,
    ABILITY_IDS,
    ATTACK_ROLL,
    INITIATIVE_ROLL,
    PROFICIENCY_BY_LEVEL,
    SAVING_THROW,
    SPELL_SAVE_DC,
)
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.formula import FormulaContext, evaluate_formula
from dnd_combat.models.creature import calculate_modifier
from dnd_combat.models.effects import ActiveEffect, MaxHitPointsEffect, SaveDcEffect
from dnd_combat.models.enums import Ability, EffectType, Skill


if TYPE_CHECKING:
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)

ability_modifier = calculate_modifier
"""Modifier for an ability score: ``(score - 10) // 2``."""


# =============================================================================
# Effect Helpers
# =============================================================================


def _formula_amount(
    creature: CreatureRuntimeState,
    formula: str,
    *,
    purpose: str,
    target: CreatureRuntimeState | None = None,
) -> int:
    result = evaluate_formula(formula, FormulaContext(actor=creature, target=target))
    if not result.ok:
        logger.warning(
            "Formula failed, using 0",
            creature_id=creature.id,
            formula=formula,
            purpose=purpose,
            error=result.error,
        )
    return result.floor_or(0)


def effect_amount(creature: CreatureRuntimeState, active: ActiveEffect) -> int:
    """Numeric contribution of a bonus-style active effect.

    Uses the static ``bonus_value`` when present, otherwise evaluates the
    effect's formula for ``creature``. A failing formula contributes 0.

    Args:
        creature: Creature holding the effect.
        active: The active effect.

    Returns:
        The bonus amount.
    """
    effect = active.effect
    value = getattr(effect, "bonus_value", None)
    if value is not None:
        return value
    formula = getattr(effect, "bonus_value_formula", None) or getattr(effect, "value_formula", None)
    if formula:
        return _formula_amount(creature, formula, purpose=active.effect_type)
    return 0


def _matching(
    creature: CreatureRuntimeState,
    effect_type: str,
    targets: Iterable[str],
) -> list[ActiveEffect]:
    keys = {str(t).upper() for t in targets}
    return [
        active
        for active in creature.active_effects
        if active.effect_type == effect_type and (active.bonus_to or "").upper() in keys
    ]


def bonus_total(creature: CreatureRuntimeState, *targets: str) -> int:
    """Sum every GRANT_BONUS effect whose ``bonus_to`` is one of ``targets``.

    Args:
        creature: Creature holding the effects.
        *targets: Bonus targets, e.g. ``"ATTACK_ROLL"`` or ``"DEX_SAVE"``.

    Returns:
        Total bonus.
    """
    return sum(
        effect_amount(creature, active)
        for active in _matching(creature, EffectType.GRANT_BONUS, targets)
    )


def has_effect(creature: CreatureRuntimeState, effect_type: str, *targets: str) -> bool:
    """Whether an effect of ``effect_type`` targets any of ``targets``.

    With no targets, any effect of the type matches.
    """
    if not targets:
        return any(active.effect_type == effect_type for active in creature.active_effects)
    return bool(_matching(creature, effect_type, targets))


def roll_flags(creature: CreatureRuntimeState, *targets: str) -> tuple[bool, bool]:
    """Advantage and disadvantage a creature has on its own roll.

    Args:
        creature: The roller.
        *targets: Roll tags, e.g. ``"SAVING_THROW"``, ``"DEX_SAVE"``.

    Returns:
        ``(advantage, disadvantage)``.
    """
    return (
        has_effect(creature, EffectType.GRANT_ADVANTAGE_ON_ROLL, *targets),
        has_effect(creature, EffectType.IMPOSE_DISADVANTAGE_ON_ROLL, *targets),
    )


# =============================================================================
# Scores and Proficiency
# =============================================================================


def effective_ability_scores(creature: CreatureRuntimeState) -> dict[str, int]:
    """Base scores plus GRANT_BONUS effects that target an ability id.

    Abilities missing from the base scores are not invented unless an
    effect raises them, in which case they start from 10.

    Args:
        creature: The creature.

    Returns:
        Effective scores keyed by ability id.
    """
    scores = {key.upper(): value for key, value in creature.ability_scores_base.items()}
    for active in creature.active_effects:
        if active.effect_type != EffectType.GRANT_BONUS:
            continue
        ability = (active.bonus_to or "").upper()
        if ability in ABILITY_IDS:
            scores[ability] = scores.get(ability, 10) + effect_amount(creature, active)
    return scores


def total_level(creature: CreatureRuntimeState) -> int:
    """Sum of class levels, or the stored total for classless creatures."""
    if creature.class_levels:
        return sum(entry.level for entry in creature.class_levels)
    return creature.total_level


def proficiency_bonus(creature: CreatureRuntimeState) -> int:
    """Proficiency bonus.

    Player characters use the level breakpoint table, monsters use their
    template's value and anything else gets the configured default.

    Args:
        creature: The creature.

    Returns:
        The proficiency bonus.
    """
    if creature.is_player_character:
        level = total_level(creature)
        for minimum, bonus in PROFICIENCY_BY_LEVEL:
            if level >= minimum:
                return bonus
        return 0
    if creature.creature_definition is not None:
        return creature.creature_definition.proficiency_bonus
    return get_settings().engine.default_proficiency_bonus


# =============================================================================
# Hit Points
# =============================================================================


def _average_die(faces: int) -> int:
    return math.floor(faces / 2 + 0.5)


def base_hit_points(creature: CreatureRuntimeState, definitions: DefinitionLookup) -> int:
    """Max HP before INCREASE_MAX_HP effects.

    Monsters roll nothing: their hit dice average plus bonus, never below
    the template's printed average. Player characters take the full die
    plus CON at their first level and the rounded-up half die plus CON
    afterwards, minimum 1 per level. Creatures with neither keep their
    stored ``max_hp_base``.

    Args:
        creature: The creature.
        definitions: Lookup for dice definitions.

    Returns:
        Base max HP.
    """
    con = creature.ability_modifier(Ability.CON)
    template = creature.creature_definition

    if template is not None and not creature.class_levels:
        hit_points = template.hit_points
        formula = hit_points.dice_formula
        if formula is None:
            return hit_points.average
        faces = definitions.get_dice(formula.dice_id).faces
        total = math.floor((faces / 2 + 0.5) * formula.dice_count) + formula.bonus
        if formula.bonus_formula:
            result = evaluate_formula(formula.bonus_formula, FormulaContext(actor=creature))
            total += result.floor_or(con * formula.dice_count)
        else:
            total += con * formula.dice_count
        return max(hit_points.average, total)

    if creature.class_levels:
        total = 0
        first_level = True
        for entry in creature.class_levels:
            faces = definitions.get_dice(entry.class_definition.hit_die).faces
            for _ in range(entry.level):
                if first_level:
                    total += max(1, faces + con)
                    first_level = False
                else:
                    total += max(1, _average_die(faces) + con)
        return total

    return creature.max_hp_base


def max_hit_points(creature: CreatureRuntimeState, definitions: DefinitionLookup) -> int:
    """Effective max HP: base plus INCREASE_MAX_HP effects, never below 1."""
    total = base_hit_points(creature, definitions)
    for active in creature.active_effects:
        effect = active.effect
        if not isinstance(effect, MaxHitPointsEffect):
            continue
        if effect.bonus_value is not None:
            total += effect.bonus_value
        elif effect.value_formula:
            total += _formula_amount(creature, effect.value_formula, purpose="INCREASE_MAX_HP")
    return max(1, math.floor(total))


# =============================================================================
# Roll Bonuses
# =============================================================================


def attack_bonus(
    creature: CreatureRuntimeState,
    *,
    formula: str | None = None,
    fixed_bonus: int | None = None,
    ability: str | None = None,
    target: CreatureRuntimeState | None = None,
) -> int:
    """To-hit bonus for an attack.

    An explicit formula wins. When it fails the bonus falls back to the
    associated ability modifier plus proficiency, or to the fixed bonus.
    Active GRANT_BONUS effects on ATTACK_ROLL are added either way.

    Args:
        creature: The attacker.
        formula: Attack bonus formula.
        fixed_bonus: Fixed attack bonus.
        ability: Associated ability id.
        target: Target, for TARGET_* variables.

    Returns:
        The total attack bonus.
    """

    def fallback() -> int:
        if ability:
            return creature.ability_modifier(ability) + creature.proficiency_bonus
        return fixed_bonus or 0

    if formula:
        result = evaluate_formula(formula, FormulaContext(actor=creature, target=target))
        if result.ok:
            base = result.floor_or(0)
        else:
            logger.warning(
                "Attack bonus formula failed, using fallback",
                creature_id=creature.id,
                formula=formula,
                error=result.error,
            )
            base = fallback()
    elif fixed_bonus is not None:
        base = fixed_bonus
    else:
        base = fallback()
    return base + bonus_total(creature, ATTACK_ROLL)


def is_save_proficient(creature: CreatureRuntimeState, ability: str) -> bool:
    """Proficiency from the first class or the monster template."""
    key = str(ability).upper()
    if creature.class_levels:
        first_class = creature.class_levels[0].class_definition
        if key in first_class.saving_throw_proficiencies:
            return True
    template = creature.creature_definition
    return template is not None and key in template.saving_throw_proficiencies


def save_bonus(creature: CreatureRuntimeState, ability: str) -> int:
    """Saving throw bonus for an ability.

    Args:
        creature: The creature saving.
        ability: Ability id.

    Returns:
        Modifier, plus proficiency if proficient, plus matching bonuses.
    """
    key = str(ability).upper()
    total = creature.ability_modifier(key)
    if is_save_proficient(creature, key):
        total += creature.proficiency_bonus
    return total + bonus_total(creature, SAVING_THROW, key, f"{key}_SAVE")


def skill_ability(skill_id: str, definitions: DefinitionLookup) -> str:
    """Default ability of a skill."""
    return str(definitions.get_skill(str(skill_id).upper()).default_ability)


def skill_bonus(
    creature: CreatureRuntimeState,
    skill_id: str,
    definitions: DefinitionLookup,
) -> int:
    """Skill check bonus.

    Args:
        creature: The creature.
        skill_id: Skill id, e.g. PERCEPTION.
        definitions: Lookup for the skill's default ability.

    Returns:
        Modifier, plus proficiency (doubled with expertise), plus
        bonuses on the skill or on ABILITY_CHECK.
    """
    key = str(skill_id).upper()
    total = creature.ability_modifier(skill_ability(key, definitions))

    proficient = {s.upper() for s in creature.skill_proficiencies}
    if creature.creature_definition is not None:
        proficient.update(s.upper() for s in creature.creature_definition.skill_proficiencies)
    if key in {s.upper() for s in creature.skill_expertise}:
        total += creature.proficiency_bonus * 2
    elif key in proficient:
        total += creature.proficiency_bonus

    return total + bonus_total(creature, key, ABILITY_CHECK)


def spell_save_dc(creature: CreatureRuntimeState) -> int:
    """Spell save DC.

    A DEFINE_SAVE_DC effect supplies its own formula; otherwise the DC is
    8 + proficiency + spellcasting modifier. SPELL_SAVE_DC bonuses are
    added on top.
    """
    base: int | None = None
    for active in creature.active_effects:
        if isinstance(active.effect, SaveDcEffect):
            result = evaluate_formula(active.effect.value_formula, FormulaContext(actor=creature))
            if result.ok:
                base = result.floor_or(0)
            else:
                logger.warning(
                    "Save DC formula failed, using default",
                    creature_id=creature.id,
                    formula=active.effect.value_formula,
                    error=result.error,
                )
    if base is None:
        casting_mod = (
            creature.ability_modifier(creature.spellcasting_ability)
            if creature.spellcasting_ability
            else 0
        )
        base = 8 + creature.proficiency_bonus + casting_mod
    return base + bonus_total(creature, SPELL_SAVE_DC)


def initiative_modifier(creature: CreatureRuntimeState) -> int:
    """DEX modifier plus INITIATIVE_ROLL bonuses."""
    return creature.ability_modifier(Ability.DEX) + bonus_total(creature, INITIATIVE_ROLL)


def passive_score(
    creature: CreatureRuntimeState,
    skill_id: str,
    definitions: DefinitionLookup,
) -> int:
    """10 + skill bonus + ``PASSIVE_<SKILL>`` bonuses."""
    key = str(skill_id).upper()
    return 10 + skill_bonus(creature, key, definitions) + bonus_total(creature, f"PASSIVE_{key}")


# =============================================================================
# Orchestration
# =============================================================================


def update_calculated_stats(creature: CreatureRuntimeState, definitions: DefinitionLookup) -> None:
    """Recompute every derived field on ``creature`` in place.

    Effective scores and proficiency are written first because the HP,
    AC and passive perception calculations read them.

    Args:
        creature: Creature to update.
        definitions: Lookup for dice, items and skills.
    """
    from dnd_combat.engine.armor_class import calculate_armor_class

    creature.total_level = total_level(creature)
    creature.ability_scores_effective = effective_ability_scores(creature)
    creature.proficiency_bonus = proficiency_bonus(creature)

    if creature.creature_definition is not None or creature.class_levels:
        creature.max_hp_base = base_hit_points(creature, definitions)
    creature.max_hp_calculated = max_hit_points(creature, definitions)
    if creature.current_hp > creature.max_hp_calculated:
        creature.current_hp = creature.max_hp_calculated

    armor = calculate_armor_class(creature, definitions)
    creature.armor_class = armor.final_ac
    creature.armor_class_breakdown = armor.breakdown

    if not creature.speeds:
        if creature.creature_definition is not None:
            creature.speeds = dict(creature.creature_definition.speeds)
        else:
            creature.speeds = {"WALK": get_settings().engine.default_walk_speed}

    creature.senses.passive_perception = passive_score(creature, Skill.PERCEPTION, definitions)
    logger.debug(
        "Stats updated",
        creature_id=creature.id,
        max_hp=creature.max_hp_calculated,
        armor_class=creature.armor_class,
        proficiency_bonus=creature.proficiency_bonus,
    )


__all__ = [
    "ability_modifier",
    "effect_amount",
    "bonus_total",
    "has_effect",
    "roll_flags",
    "effective_ability_scores",
    "total_level",
    "proficiency_bonus",
    "base_hit_points",
    "max_hit_points",
    "attack_bonus",
    "is_save_proficient",
    "save_bonus",
    "skill_ability",
    "skill_bonus",
    "spell_save_dc",
    "initiative_modifier",
    "passive_score",
    "update_calculated_stats",
]
