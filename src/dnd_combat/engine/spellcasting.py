"""Spellcasting orchestration.

Casting validates components, drops any previous concentration, spends
the spell slot and then hands the spell's effects to the
:class:`~dnd_combat.engine.effects.EffectExecutor`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dnd_combat.core.exceptions import CombatError
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.formula import ExecutionContext
from dnd_combat.engine.resources import spell_slot_resource_id, spend_resource
from dnd_combat.models.creature import ConcentrationPointer
from dnd_combat.models.enums import DefinitionSource, EventType
from dnd_combat.models.events import GameEvent, SpellCastDetails, make_event


if TYPE_CHECKING:
    from dnd_combat.engine.effects import EffectExecutor
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)


@dataclass(frozen=True)
class SpellcastResult:
    """Outcome of a cast.

    Attributes:
        success: Whether the spell was cast.
        reason: Why not, when ``success`` is False.
        events: Events generated, in order.
        modified_ids: Creatures the cast mutated.
    """

    success: bool
    reason: str | None = None
    events: list[GameEvent] = field(default_factory=list)
    modified_ids: list[str] = field(default_factory=list)


class SpellcastingEngine:
    """Casts spells for combatants."""

    def __init__(self, definitions: DefinitionLookup, executor: EffectExecutor) -> None:
        """Initialize the engine.

        Args:
            definitions: Definition lookup for spells.
            executor: Effect executor that applies spell effects.
        """
        self._definitions = definitions
        self._executor = executor

    def cast_spell(
        self,
        caster: CreatureRuntimeState,
        spell_id: str,
        *,
        roster: Sequence[CreatureRuntimeState],
        target_ids: Sequence[str] = (),
        self_target: bool = False,
        slot_level: int | None = None,
        metamagic: Sequence[str] = (),
        skip_cost: bool = False,
        material_override: bool = False,
        current_round: int | None = None,
    ) -> SpellcastResult:
        """Cast a spell.

        Args:
            caster: The caster, mutated in place.
            spell_id: Spell to cast.
            roster: Combatants that target ids are resolved against.
            target_ids: Chosen targets.
            self_target: Whether the caster is also a target.
            slot_level: Slot level to cast with; the spell's level if omitted.
            metamagic: Metamagic option ids.
            skip_cost: Cast without spending a slot.
            material_override: Ignore costly material components.
            current_round: Round number for the execution context.

        Returns:
            SpellcastResult; expected failures (no slot, missing
            material) are reported, not raised.

        Raises:
            DefinitionNotFoundError: If the spell does not exist.
            CombatError: If a target id is not in the roster.
        """
        spell = self._definitions.get_spell(spell_id)

        components = spell.components
        if components.material and components.material_cost and not material_override:
            material = components.material_description or "material component"
            return SpellcastResult(
                success=False,
                reason=f"{spell.name} requires a costly {material} ({components.material_cost} gp).",
            )

        slot = spell.level if slot_level is None else slot_level
        if spell.level > 0 and slot < spell.level:
            return SpellcastResult(
                success=False,
                reason=f"{spell.name} cannot be cast with a level {slot} slot.",
            )

        targets = self._resolve_targets(caster, roster, target_ids, self_target)

        events: list[GameEvent] = []
        modified_ids = [caster.id]

        if spell.level > 0 and not skip_cost:
            spent = spend_resource(caster, spell_slot_resource_id(slot))
            if not spent.success:
                logger.info("Spell cast failed", caster_id=caster.id, spell_id=spell_id, reason=spent.reason)
                return SpellcastResult(success=False, reason=spent.reason)
            if spent.event is not None:
                events.append(spent.event)

        previous = caster.concentration
        if spell.requires_concentration and previous is not None:
            events.extend(self._executor.remove_effect(caster, previous.effect_instance_id))
            caster.concentration = None
            logger.info(
                "Concentration dropped",
                caster_id=caster.id,
                previous_spell_id=previous.spell_id,
                new_spell_id=spell_id,
            )

        events.append(
            make_event(
                EventType.SPELL_CAST,
                description=f"{caster.name} casts {spell.name}",
                details=SpellCastDetails(
                    spell_level=spell.level,
                    slot_used_level=slot if spell.level > 0 else 0,
                    target_ids=[t.id for t in targets],
                    action_used=spell.casting_time.action_type.value,
                ),
                source_creature_id=caster.id,
                source_definition_id=spell.spell_id,
            )
        )

        execution = ExecutionContext(
            spell_slot_level=slot,
            metamagic=tuple(metamagic),
            current_round=current_round,
            current_turn_creature_id=caster.id,
        )
        outcome = self._executor.apply_effects(
            spell.parsed_effects,
            source_definition_id=spell.spell_id,
            source_type=DefinitionSource.SPELL,
            originator=caster,
            targets=targets,
            execution=execution,
            source_definition=spell,
        )
        events.extend(outcome.events)
        for creature_id in outcome.modified_ids:
            if creature_id not in modified_ids:
                modified_ids.append(creature_id)

        for creature_id, active in outcome.applied_effects:
            if (
                creature_id == caster.id
                and active.concentration
                and active.source_definition_id == spell.spell_id
            ):
                caster.concentration = ConcentrationPointer(
                    spell_id=spell.spell_id,
                    effect_instance_id=active.instance_id,
                )
                break

        logger.info(
            "Spell cast",
            caster_id=caster.id,
            spell_id=spell.spell_id,
            slot_level=slot,
            targets=[t.id for t in targets],
        )
        return SpellcastResult(success=True, events=events, modified_ids=modified_ids)

    @staticmethod
    def _resolve_targets(
        caster: CreatureRuntimeState,
        roster: Sequence[CreatureRuntimeState],
        target_ids: Sequence[str],
        self_target: bool,
    ) -> list[CreatureRuntimeState]:
        by_id = {creature.id: creature for creature in roster}
        targets: list[CreatureRuntimeState] = []
        if self_target:
            targets.append(caster)
        for target_id in target_ids:
            if target_id == caster.id:
                creature = caster
            elif target_id in by_id:
                creature = by_id[target_id]
            else:
                raise CombatError(f"Target {target_id} is not in combat", combatant_id=target_id)
            if all(t.id != creature.id for t in targets):
                targets.append(creature)
        return targets


__all__ = [
    "SpellcastResult",
    "SpellcastingEngine",
]
