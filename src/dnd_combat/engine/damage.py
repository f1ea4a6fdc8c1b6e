"""Damage application pipeline.

Rolled damage instances pass through the target's defenses (immunity,
vulnerability, resistance), are summed, and are then taken from
temporary hit points before current hit points. The calculation is pure;
:meth:`DamageApplicationResult.apply_to` commits it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dnd_combat.core.constants import ALL_DAMAGE, DEAD, UNCONSCIOUS
from dnd_combat.core.logging import get_logger
from dnd_combat.models.effects import ImmunityEffect, ResistanceEffect
from dnd_combat.models.enums import EventType, ResistanceKind
from dnd_combat.models.events import (
    DamageAppliedDetails,
    DamageBreakdownEntry,
    GameEvent,
    make_event,
)


if TYPE_CHECKING:
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)


@dataclass(frozen=True)
class DamageInstance:
    """Rolled damage of one type, already doubled for a critical hit.

    Attributes:
        amount: Raw damage.
        damage_type: Damage type id.
        is_critical: Whether it came from a critical hit.
        bypasses_immunity: Damage types whose immunity this instance
            ignores; ALL_DAMAGE ignores every immunity.
    """

    amount: int
    damage_type: str
    is_critical: bool = False
    bypasses_immunity: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Defenses:
    """Whether a creature is immune, resistant or vulnerable to one type."""

    immune: bool = False
    resistant: bool = False
    vulnerable: bool = False


def defenses_against(target: CreatureRuntimeState, damage_type: str) -> Defenses:
    """Collect the target's defenses against a damage type.

    Args:
        target: Creature taking damage.
        damage_type: Damage type id.

    Returns:
        Defenses from the target's active effects.
    """
    key = damage_type.upper()
    immune = resistant = vulnerable = False
    for active in target.active_effects:
        effect = active.effect
        if isinstance(effect, ImmunityEffect):
            scope = (effect.immunity_scope or "").upper()
            specific = {s.upper() for s in effect.specific_immunities}
            if scope in (ALL_DAMAGE, key) or key in specific:
                immune = True
        elif isinstance(effect, ResistanceEffect):
            if effect.resistance_scope.upper() not in (ALL_DAMAGE, key):
                continue
            if effect.resistance_type is ResistanceKind.VULNERABILITY:
                vulnerable = True
            else:
                resistant = True
    return Defenses(immune=immune, resistant=resistant, vulnerable=vulnerable)


def modify_damage(amount: int, defenses: Defenses, *, bypass_immunity: bool = False) -> int:
    """Apply defenses to a raw amount.

    Immunity zeroes the damage. Vulnerability doubles and resistance
    halves (rounding down); together they cancel.
    """
    if defenses.immune and not bypass_immunity:
        return 0
    if defenses.vulnerable and defenses.resistant:
        return amount
    if defenses.vulnerable:
        return amount * 2
    if defenses.resistant:
        return amount // 2
    return amount


@dataclass(frozen=True)
class DamageApplicationResult:
    """Outcome of running damage through a target's defenses.

    Attributes:
        target_id: Creature the damage is for.
        total_damage: Damage after defenses.
        temp_hp_reduced: Amount absorbed by temporary HP.
        hp_reduced: Amount taken from current HP.
        new_current_hp: Current HP afterwards, floored at 0.
        new_temp_hp: Temporary HP afterwards.
        overkill: Damage beyond 0 HP.
        new_condition_ids: Conditions the target gains (UNCONSCIOUS).
        concentration_check_dc: DC of the concentration save the
            target must make, if concentrating.
        breakdown: Per-instance audit trail.
        is_critical: Whether any instance came from a critical hit.
    """

    target_id: str
    total_damage: int
    temp_hp_reduced: int
    hp_reduced: int
    new_current_hp: int
    new_temp_hp: int
    overkill: int
    new_condition_ids: tuple[str, ...]
    concentration_check_dc: int | None
    breakdown: tuple[DamageBreakdownEntry, ...]
    is_critical: bool = False

    @property
    def was_lethal(self) -> bool:
        """Whether this damage dropped the target to 0 HP."""
        return self.new_current_hp == 0 and self.hp_reduced > 0

    @property
    def damage_types(self) -> str:
        """Damage types involved, comma separated."""
        seen: list[str] = []
        for entry in self.breakdown:
            if entry.type not in seen:
                seen.append(entry.type)
        return ", ".join(seen)

    def apply_to(self, target: CreatureRuntimeState) -> None:
        """Commit the HP changes to ``target``.

        New conditions are not added here; the caller routes them
        through the effect executor so their own effects apply.
        """
        target.temporary_hp = self.new_temp_hp
        target.current_hp = self.new_current_hp

    def to_event(
        self,
        target: CreatureRuntimeState,
        *,
        source_creature_id: str | None = None,
        source_definition_id: str | None = None,
    ) -> GameEvent:
        """Build the DAMAGE_APPLIED event."""
        return make_event(
            EventType.DAMAGE_APPLIED,
            description=(
                f"{target.name} takes {self.total_damage} {self.damage_types} damage"
                + (" (critical)" if self.is_critical else "")
            ),
            details=DamageAppliedDetails(
                total_amount=self.total_damage,
                breakdown=list(self.breakdown),
                hp_reduced=self.hp_reduced,
                temp_hp_reduced=self.temp_hp_reduced,
                was_lethal=self.was_lethal,
                is_critical_hit=self.is_critical,
                damage_type=self.damage_types,
                overkill=self.overkill,
                concentration_check_dc=self.concentration_check_dc,
            ),
            source_creature_id=source_creature_id,
            target_creature_id=target.id,
            source_definition_id=source_definition_id,
        )


def calculate_damage(
    target: CreatureRuntimeState,
    instances: Sequence[DamageInstance],
) -> DamageApplicationResult:
    """Run damage instances through the target's defenses and hit points.

    Args:
        target: Creature taking damage. Not modified.
        instances: Rolled damage.

    Returns:
        DamageApplicationResult describing the change.
    """
    breakdown: list[DamageBreakdownEntry] = []
    total = 0
    for instance in instances:
        defenses = defenses_against(target, instance.damage_type)
        bypass = bool(
            {ALL_DAMAGE, instance.damage_type.upper()}
            & {b.upper() for b in instance.bypasses_immunity}
        )
        modified = modify_damage(max(0, instance.amount), defenses, bypass_immunity=bypass)
        total += modified
        breakdown.append(
            DamageBreakdownEntry(
                type=instance.damage_type,
                raw=instance.amount,
                modified=modified,
                final_applied=modified,
            )
        )

    temp_absorbed = min(target.temporary_hp, total)
    remainder = total - temp_absorbed
    previous_hp = target.current_hp
    raw_hp = previous_hp - remainder
    new_hp = max(0, raw_hp)

    new_conditions: tuple[str, ...] = ()
    if (
        previous_hp > 0
        and new_hp <= 0
        and not target.has_condition(UNCONSCIOUS)
        and not target.has_condition(DEAD)
    ):
        new_conditions = (UNCONSCIOUS,)

    concentration_dc = None
    if target.concentration is not None and total > 0:
        concentration_dc = max(10, total // 2)

    result = DamageApplicationResult(
        target_id=target.id,
        total_damage=total,
        temp_hp_reduced=temp_absorbed,
        hp_reduced=previous_hp - new_hp,
        new_current_hp=new_hp,
        new_temp_hp=target.temporary_hp - temp_absorbed,
        overkill=max(0, -raw_hp),
        new_condition_ids=new_conditions,
        concentration_check_dc=concentration_dc,
        breakdown=tuple(breakdown),
        is_critical=any(instance.is_critical for instance in instances),
    )
    logger.debug(
        "Damage calculated",
        target_id=target.id,
        total=total,
        temp_hp_reduced=temp_absorbed,
        new_hp=new_hp,
        overkill=result.overkill,
    )
    return result


__all__ = [
    "DamageInstance",
    "Defenses",
    "defenses_against",
    "modify_damage",
    "DamageApplicationResult",
    "calculate_damage",
]
