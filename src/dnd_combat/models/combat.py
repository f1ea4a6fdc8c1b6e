"""Pydantic V2 schemas for combat management.

Defines the combat snapshot owned by the turn manager and the
command/result types exchanged with the UI or automation driving it.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from dnd_combat.models.creature import CreatureRuntimeState
from dnd_combat.models.enums import ActionType
from dnd_combat.models.events import GameEvent


class CombatPhase(StrEnum):
    """Lifecycle of an encounter."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"


class InitiativeEntry(BaseModel):
    """One slot in the initiative order.

    Attributes:
        creature_id: Reference to the combatant.
        initiative_roll: Rolled initiative total.
        dexterity_modifier: Effective DEX modifier, the first tie-breaker.
        submission_index: Position in the roster passed to start_combat,
            the final tie-breaker.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    creature_id: str
    initiative_roll: int
    dexterity_modifier: int = 0
    submission_index: int = 0

    @property
    def sort_key(self) -> tuple[int, int, int]:
        """Key that sorts ascending into initiative order."""
        return (-self.initiative_roll, -self.dexterity_modifier, self.submission_index)


class CombatStateSnapshot(BaseModel):
    """The full state of an encounter.

    Attributes:
        round_number: Current round, starting at 1.
        current_turn_creature_id: Creature whose turn it is; None once
            nobody can act.
        initiative_order: Combatants in turn order.
        combatants: Canonical creature states.
        log: Append-only event log.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    round_number: int = Field(default=0, ge=0)
    current_turn_creature_id: str | None = None
    initiative_order: list[InitiativeEntry] = Field(default_factory=list)
    combatants: list[CreatureRuntimeState] = Field(default_factory=list)
    log: list[GameEvent] = Field(default_factory=list)

    def get_combatant(self, creature_id: str) -> CreatureRuntimeState | None:
        """Find a combatant by id."""
        for combatant in self.combatants:
            if combatant.id == creature_id:
                return combatant
        return None

    def initiative_index(self, creature_id: str) -> int | None:
        """Position of a creature in the initiative order."""
        for index, entry in enumerate(self.initiative_order):
            if entry.creature_id == creature_id:
                return index
        return None


class Point(BaseModel):
    """A point in space for area targeting (informational only)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    x: float
    y: float
    z: float = 0.0


class TargetInfo(BaseModel):
    """Targets chosen for an action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    creature_ids: list[str] = Field(default_factory=list)
    point: Point | None = None
    self_target: bool = False


class ActionChoice(BaseModel):
    """A command submitted for the current actor.

    Attributes:
        actor_id: Creature taking the action.
        action_type: Kind of action.
        action_name: Creature action name for monster attacks.
        target_info: Targets.
        spell_id: Spell to cast for SPELL.
        spell_slot_level: Slot level to cast at for SPELL.
        item_id: Weapon to attack with for ATTACK.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    actor_id: str
    action_type: ActionType | str
    action_name: str | None = None
    target_info: TargetInfo | None = None
    spell_id: str | None = None
    spell_slot_level: int | None = Field(default=None, ge=0, le=9)
    item_id: str | None = None

    @property
    def target_ids(self) -> list[str]:
        """Targeted creature ids, empty when none were chosen."""
        return list(self.target_info.creature_ids) if self.target_info else []


class ActionResult(BaseModel):
    """Outcome of process_action.

    Attributes:
        success: Whether the action was applied.
        reason: Human-readable explanation, always set on failure.
        events: Events generated by the action (empty on failure).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    reason: str | None = None
    events: list[GameEvent] = Field(default_factory=list)


__all__ = [
    "CombatPhase",
    "InitiativeEntry",
    "CombatStateSnapshot",
    "Point",
    "TargetInfo",
    "ActionChoice",
    "ActionResult",
]
