"""Saving throw resolution.

Natural 20 and natural 1 only label the outcome as critical; they do not
turn a failure into a success or the reverse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dnd_combat.core.constants import SAVING_THROW
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.calculations import roll_flags, save_bonus
from dnd_combat.models.enums import CheckOutcome, EventType
from dnd_combat.models.events import GameEvent, SavingThrowDetails, make_event


if TYPE_CHECKING:
    from dnd_combat.engine.dice import D20Roll, DiceRoller
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckResolution:
    """A d20 roll compared against a DC.

    Attributes:
        outcome: Success or failure, flagged critical on a natural 20/1.
        roll: The d20 roll.
        bonus: Bonus added to the chosen d20.
        total: Chosen d20 plus bonus.
        dc: Difficulty class.
    """

    outcome: CheckOutcome
    roll: D20Roll
    bonus: int
    total: int
    dc: int

    @property
    def success(self) -> bool:
        return self.outcome.is_success


def classify_check(natural: int, total: int, dc: int) -> CheckOutcome:
    """Classify a roll against a DC.

    Args:
        natural: Chosen natural d20.
        total: Natural plus bonus.
        dc: Difficulty class.

    Returns:
        The outcome; meeting the DC succeeds.
    """
    if total >= dc:
        return CheckOutcome.CRITICAL_SUCCESS if natural == 20 else CheckOutcome.SUCCESS
    return CheckOutcome.CRITICAL_FAILURE if natural == 1 else CheckOutcome.FAILURE


def resolve_saving_throw(
    creature: CreatureRuntimeState,
    ability: str,
    dc: int,
    dice: DiceRoller,
    *,
    advantage: bool = False,
    disadvantage: bool = False,
) -> CheckResolution:
    """Roll a saving throw.

    Advantage and disadvantage also come from the creature's own effects
    tagged SAVING_THROW, the ability id or ``<ABILITY>_SAVE``.

    Args:
        creature: Creature making the save.
        ability: Ability id.
        dc: Difficulty class.
        dice: Dice roller.
        advantage: Extra advantage from the caller.
        disadvantage: Extra disadvantage from the caller.

    Returns:
        CheckResolution for the save.
    """
    key = str(ability).upper()
    own_advantage, own_disadvantage = roll_flags(creature, SAVING_THROW, key, f"{key}_SAVE")
    roll = dice.roll_d20(
        advantage=advantage or own_advantage,
        disadvantage=disadvantage or own_disadvantage,
    )
    bonus = save_bonus(creature, key)
    total = roll.chosen + bonus
    outcome = classify_check(roll.chosen, total, dc)
    logger.debug(
        "Saving throw",
        creature_id=creature.id,
        ability=key,
        dc=dc,
        natural=roll.chosen,
        total=total,
        outcome=outcome.value,
    )
    return CheckResolution(outcome=outcome, roll=roll, bonus=bonus, total=total, dc=dc)


def saving_throw_event(
    creature: CreatureRuntimeState,
    ability: str,
    resolution: CheckResolution,
    *,
    source_creature_id: str | None = None,
    source_definition_id: str | None = None,
) -> GameEvent:
    """Build the SAVING_THROW_MADE event for a resolved save."""
    key = str(ability).upper()
    return make_event(
        EventType.SAVING_THROW_MADE,
        description=(
            f"{creature.name} makes a DC {resolution.dc} {key} save: "
            f"{resolution.total} ({resolution.outcome.value})"
        ),
        details=SavingThrowDetails(
            ability=key,
            dc=resolution.dc,
            roll_total=resolution.total,
            natural_roll=resolution.roll.chosen,
            outcome=resolution.outcome,
        ),
        source_creature_id=source_creature_id,
        target_creature_id=creature.id,
        source_definition_id=source_definition_id,
    )


__all__ = [
    "CheckResolution",
    "classify_check",
    "resolve_saving_throw",
    "saving_throw_event",
]
