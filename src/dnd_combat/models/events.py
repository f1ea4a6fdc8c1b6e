"""Pydantic V2 schemas for combat log events.

Every mutating engine operation appends GameEvents to the combat log.
Events are frozen; their ``details`` payload is a plain dict produced from
one of the typed detail models below so that consumers can render it
without importing engine types.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dnd_combat.models.enums import AttackOutcome, CheckOutcome, EventType


class GameEvent(BaseModel):
    """An entry in the combat log.

    Attributes:
        type: Event tag.
        timestamp: When the event was generated (UTC).
        source_creature_id: Creature causing the event.
        target_creature_id: Creature affected by the event.
        source_definition_id: Spell/item/feature/condition involved.
        details: Type-specific payload.
        description: Human-readable log line.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source_creature_id: str | None = None
    target_creature_id: str | None = None
    source_definition_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    description: str = ""


# =============================================================================
# Detail Payloads
# =============================================================================


class _Details(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def as_payload(self) -> dict[str, Any]:
        """Dump to the dict stored on a GameEvent."""
        return self.model_dump(mode="json")


class AttackMadeDetails(_Details):
    """Payload of ATTACK_MADE."""

    attack_roll_result: int
    d20_natural_rolls: list[int]
    chosen_natural_roll: int
    target_armor_class: int
    outcome: AttackOutcome
    attack_source_id: str | None = None


class DamageBreakdownEntry(_Details):
    """Per damage type line of DAMAGE_APPLIED."""

    type: str
    raw: int
    modified: int
    final_applied: int


class DamageAppliedDetails(_Details):
    """Payload of DAMAGE_APPLIED."""

    total_amount: int
    breakdown: list[DamageBreakdownEntry]
    hp_reduced: int
    temp_hp_reduced: int
    was_lethal: bool
    is_critical_hit: bool
    damage_type: str
    overkill: int = 0
    concentration_check_dc: int | None = None


class HealingAppliedDetails(_Details):
    """Payload of HEALING_APPLIED."""

    amount: int
    new_hp: int
    max_hp: int


class SavingThrowDetails(_Details):
    """Payload of SAVING_THROW_MADE."""

    ability: str
    dc: int
    roll_total: int
    natural_roll: int
    outcome: CheckOutcome


class ConditionChangeDetails(_Details):
    """Payload of CONDITION_GAINED and CONDITION_REMOVED."""

    condition_id: str
    duration_rounds: int | None = None
    save_dc: int | None = None


class EffectChangeDetails(_Details):
    """Payload of EFFECT_APPLIED and EFFECT_REMOVED."""

    effect_type: str
    instance_id: str | None = None
    duration_rounds: int | None = None


class ResourceDetails(_Details):
    """Payload of RESOURCE_SPENT and RESOURCE_GAINED."""

    resource_id: str
    amount: int
    remaining: int


class SpellCastDetails(_Details):
    """Payload of SPELL_CAST."""

    spell_level: int
    slot_used_level: int
    target_ids: list[str]
    action_used: str


class InitiativeDetails(_Details):
    """Payload of INITIATIVE_ROLLED."""

    roll: int
    natural_roll: int
    modifier: int


class MoveDetails(_Details):
    """Payload of MOVE_ACTION."""

    distance: int


def make_event(
    event_type: EventType,
    *,
    description: str,
    details: _Details | None = None,
    source_creature_id: str | None = None,
    target_creature_id: str | None = None,
    source_definition_id: str | None = None,
) -> GameEvent:
    """Build a GameEvent from a typed payload.

    Args:
        event_type: Event tag.
        description: Human-readable log line.
        details: Typed payload, dumped to a dict.
        source_creature_id: Creature causing the event.
        target_creature_id: Creature affected.
        source_definition_id: Definition involved.

    Returns:
        The frozen event.
    """
    return GameEvent(
        type=event_type,
        description=description,
        details=details.as_payload() if details is not None else {},
        source_creature_id=source_creature_id,
        target_creature_id=target_creature_id,
        source_definition_id=source_definition_id,
    )


__all__ = [
    "GameEvent",
    "AttackMadeDetails",
    "DamageBreakdownEntry",
    "DamageAppliedDetails",
    "HealingAppliedDetails",
    "SavingThrowDetails",
    "ConditionChangeDetails",
    "EffectChangeDetails",
    "ResourceDetails",
    "SpellCastDetails",
    "InitiativeDetails",
    "MoveDetails",
    "make_event",
]
