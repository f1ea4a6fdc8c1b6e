"""Skill checks, plain and contested."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dnd_combat.core.constants import ABILITY_CHECK
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.calculations import roll_flags, skill_bonus
from dnd_combat.engine.saving_throw import CheckResolution, classify_check
from dnd_combat.models.enums import ContestOutcome


if TYPE_CHECKING:
    from dnd_combat.engine.dice import D20Roll, DiceRoller
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)


@dataclass(frozen=True)
class SkillRoll:
    """One side of a contested check."""

    creature_id: str
    skill_id: str
    roll: D20Roll
    bonus: int
    total: int


@dataclass(frozen=True)
class ContestResolution:
    """Result of a contested check. Ties are reported, not broken."""

    outcome: ContestOutcome
    performer_a: SkillRoll
    performer_b: SkillRoll


def _roll_skill(
    creature: CreatureRuntimeState,
    skill_id: str,
    dice: DiceRoller,
    definitions: DefinitionLookup,
    *,
    advantage: bool,
    disadvantage: bool,
) -> SkillRoll:
    key = str(skill_id).upper()
    own_advantage, own_disadvantage = roll_flags(creature, key, ABILITY_CHECK)
    roll = dice.roll_d20(
        advantage=advantage or own_advantage,
        disadvantage=disadvantage or own_disadvantage,
    )
    bonus = skill_bonus(creature, key, definitions)
    return SkillRoll(
        creature_id=creature.id,
        skill_id=key,
        roll=roll,
        bonus=bonus,
        total=roll.chosen + bonus,
    )


def resolve_skill_check(
    creature: CreatureRuntimeState,
    skill_id: str,
    dc: int,
    dice: DiceRoller,
    definitions: DefinitionLookup,
    *,
    advantage: bool = False,
    disadvantage: bool = False,
) -> CheckResolution:
    """Roll a skill check against a DC.

    Args:
        creature: Creature making the check.
        skill_id: Skill id.
        dc: Difficulty class.
        dice: Dice roller.
        definitions: Lookup for the skill's ability.
        advantage: Extra advantage from the caller.
        disadvantage: Extra disadvantage from the caller.

    Returns:
        CheckResolution for the check.
    """
    rolled = _roll_skill(
        creature,
        skill_id,
        dice,
        definitions,
        advantage=advantage,
        disadvantage=disadvantage,
    )
    outcome = classify_check(rolled.roll.chosen, rolled.total, dc)
    logger.debug(
        "Skill check",
        creature_id=creature.id,
        skill_id=rolled.skill_id,
        dc=dc,
        total=rolled.total,
        outcome=outcome.value,
    )
    return CheckResolution(
        outcome=outcome,
        roll=rolled.roll,
        bonus=rolled.bonus,
        total=rolled.total,
        dc=dc,
    )


def resolve_contested_check(
    performer_a: CreatureRuntimeState,
    skill_a: str,
    performer_b: CreatureRuntimeState,
    skill_b: str,
    dice: DiceRoller,
    definitions: DefinitionLookup,
) -> ContestResolution:
    """Both performers roll; the higher total wins.

    Performer A rolls first, so a scripted dice source sees A's d20(s)
    before B's.

    Returns:
        ContestResolution with a Tie outcome on equal totals.
    """
    roll_a = _roll_skill(performer_a, skill_a, dice, definitions, advantage=False, disadvantage=False)
    roll_b = _roll_skill(performer_b, skill_b, dice, definitions, advantage=False, disadvantage=False)
    if roll_a.total > roll_b.total:
        outcome = ContestOutcome.PERFORMER_A
    elif roll_b.total > roll_a.total:
        outcome = ContestOutcome.PERFORMER_B
    else:
        outcome = ContestOutcome.TIE
    logger.debug(
        "Contested check",
        performer_a=performer_a.id,
        total_a=roll_a.total,
        performer_b=performer_b.id,
        total_b=roll_b.total,
        outcome=outcome.value,
    )
    return ContestResolution(outcome=outcome, performer_a=roll_a, performer_b=roll_b)


__all__ = [
    "SkillRoll",
    "ContestResolution",
    "resolve_skill_check",
    "resolve_contested_check",
]
