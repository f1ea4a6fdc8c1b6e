"""Effect execution.

:class:`EffectExecutor` interprets batches of authored effects against
creatures. It mutates the creatures it is given in place and reports
what it did through an :class:`EffectOutcome` (events, ids of modified
creatures, active effects created).

This module also owns duration handling: converting authored durations
to rounds and expiring effects and conditions at the end of a turn.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, assert_never

from dnd_combat.core.config import EngineSettings, get_settings
from dnd_combat.core.constants import (
    ABILITY_IDS,
    ARMOR_CLASS,
    CASTER_SPELL_SAVE_DC,
    ON_ATTACK_HIT,
    ROUNDS_PER_DAY,
    ROUNDS_PER_HOUR,
    ROUNDS_PER_MINUTE,
)
from dnd_combat.core.exceptions import DefinitionNotFoundError
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.calculations import spell_save_dc, update_calculated_stats
from dnd_combat.engine.damage import DamageInstance, calculate_damage
from dnd_combat.engine.formula import ExecutionContext, FormulaContext, evaluate_formula
from dnd_combat.engine.saving_throw import resolve_saving_throw, saving_throw_event
from dnd_combat.models.creature import ActiveCondition
from dnd_combat.models.effects import (
    ActiveEffect,
    BaseArmorClassEffect,
    BonusEffect,
    ConditionEffect,
    DamageEffect,
    DurationSpec,
    Effect,
    GenericEffect,
    HealEffect,
    ImmunityEffect,
    MaxHitPointsEffect,
    ResistanceEffect,
    SaveDcEffect,
    SavingThrowSpec,
)
from dnd_combat.models.enums import DefinitionSource, EffectType, EventType, SaveEffect
from dnd_combat.models.events import (
    ConditionChangeDetails,
    EffectChangeDetails,
    GameEvent,
    HealingAppliedDetails,
    make_event,
)


if TYPE_CHECKING:
    from dnd_combat.engine.dice import DiceRoller
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState
    from dnd_combat.models.definitions import (
        ConditionDefinition,
        FeatureDefinition,
        ItemDefinition,
        SpellDefinition,
    )
    from dnd_combat.models.effects import Duration

    SourceDefinition = SpellDefinition | ItemDefinition | FeatureDefinition | ConditionDefinition

logger = get_logger(__name__)


# =============================================================================
# Durations
# =============================================================================

_INDEFINITE = ("until dispelled", "until triggered", "special", "permanent", "indefinite")
_AMOUNT = re.compile(r"(\d+)\s*(round|minute|hour|day)s?", re.IGNORECASE)


def _to_rounds(value: int, unit: str | None) -> int:
    unit_key = (unit or "ROUNDS").upper().rstrip("S")
    match unit_key:
        case "ROUND":
            return value
        case "MINUTE":
            return value * ROUNDS_PER_MINUTE
        case "HOUR":
            return value * ROUNDS_PER_HOUR
        case "DAY":
            return value * ROUNDS_PER_DAY
    logger.warning("Unknown duration unit, treating as rounds", unit=unit, value=value)
    return value


def duration_to_rounds(
    duration: Duration | None,
    *,
    default_concentration_rounds: int | None = None,
) -> int | None:
    """Convert an authored duration to a round count.

    Args:
        duration: Round count, string shorthand or structured duration.
        default_concentration_rounds: Rounds for concentration without an
            explicit length. Defaults to the engine setting.

    Returns:
        Rounds; 0 for instantaneous; None for indefinite durations that
        turn processing never expires.

    Example:
        >>> duration_to_rounds("1 minute")
        10
        >>> duration_to_rounds("Concentration, up to 1 hour")
        600
        >>> duration_to_rounds("until dispelled") is None
        True
    """
    if default_concentration_rounds is None:
        default_concentration_rounds = get_settings().engine.default_concentration_rounds

    if duration is None:
        return None
    if isinstance(duration, bool):
        raise TypeError("Duration cannot be a boolean")
    if isinstance(duration, int):
        return max(0, duration)
    if isinstance(duration, DurationSpec):
        return _spec_to_rounds(duration, default_concentration_rounds)

    text = duration.strip().lower()
    if text.isdigit():
        return int(text)
    if text.startswith("instant"):
        return 0
    if text.startswith("concentration"):
        match = _AMOUNT.search(text)
        if match is None:
            return default_concentration_rounds
        return _to_rounds(int(match.group(1)), match.group(2))
    if text.startswith(_INDEFINITE):
        return None
    match = _AMOUNT.fullmatch(text)
    if match is not None:
        return _to_rounds(int(match.group(1)), match.group(2))

    logger.warning("Unrecognized duration, treating as indefinite", duration=duration)
    return None


def _spec_to_rounds(spec: DurationSpec, default_concentration_rounds: int) -> int | None:
    duration_type = (spec.duration_type or "").upper()
    if duration_type == "INSTANTANEOUS":
        return 0
    if duration_type in ("UNTIL_DISPELLED", "SPECIAL", "PERMANENT"):
        return None
    if duration_type == "CONCENTRATION":
        if spec.max_duration is not None and spec.max_duration.value is not None:
            return _to_rounds(spec.max_duration.value, spec.max_duration.unit)
        if spec.value is not None:
            return _to_rounds(spec.value, spec.unit)
        return default_concentration_rounds
    if spec.value is None:
        return None
    if duration_type == "ROUND_BASED":
        return spec.value
    return _to_rounds(spec.value, spec.unit)


# =============================================================================
# Outcome
# =============================================================================


@dataclass
class EffectOutcome:
    """What an effect batch did.

    Attributes:
        events: Events in the order they happened.
        modified_ids: Creatures that were mutated, in first-touch order.
        applied_effects: ``(creature_id, active_effect)`` for every
            effect pushed onto a creature.
    """

    events: list[GameEvent] = field(default_factory=list)
    modified_ids: list[str] = field(default_factory=list)
    applied_effects: list[tuple[str, ActiveEffect]] = field(default_factory=list)

    def touch(self, creature_id: str) -> None:
        if creature_id not in self.modified_ids:
            self.modified_ids.append(creature_id)

    def extend(self, other: EffectOutcome) -> None:
        """Append another outcome's results to this one."""
        self.events.extend(other.events)
        for creature_id in other.modified_ids:
            self.touch(creature_id)
        self.applied_effects.extend(other.applied_effects)


# =============================================================================
# Executor
# =============================================================================


class EffectExecutor:
    """Applies effects to creatures.

    Example:
        >>> executor = EffectExecutor(registry, DiceRoller(seed=1))
        >>> outcome = executor.apply_effects(
        ...     spell.parsed_effects,
        ...     source_definition_id=spell.spell_id,
        ...     source_type=DefinitionSource.SPELL,
        ...     originator=caster,
        ...     targets=[goblin],
        ... )
    """

    def __init__(
        self,
        definitions: DefinitionLookup,
        dice: DiceRoller,
        *,
        settings: EngineSettings | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            definitions: Definition lookup.
            dice: Dice roller used for damage, healing and saves.
            settings: Engine settings; the global settings if omitted.
        """
        self._definitions = definitions
        self._dice = dice
        self._settings = settings or get_settings().engine

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def apply_effects(
        self,
        effects: Sequence[Effect],
        *,
        source_definition_id: str,
        source_type: DefinitionSource,
        originator: CreatureRuntimeState,
        targets: Sequence[CreatureRuntimeState],
        execution: ExecutionContext | None = None,
        source_definition: SourceDefinition | None = None,
    ) -> EffectOutcome:
        """Apply a batch of effects.

        SELF-scoped effects land on the originator, everything else on
        each target in order.

        Args:
            effects: Effects to apply.
            source_definition_id: Spell/item/feature/condition id.
            source_type: Kind of the source.
            originator: Creature producing the effects.
            targets: Target creatures.
            execution: Per-action context (slot level, critical hit...).
            source_definition: Source definition for formulas.

        Returns:
            EffectOutcome for the whole batch.
        """
        outcome = EffectOutcome()
        for effect in effects:
            if effect.target_scope is not None and effect.target_scope.is_self:
                recipients: Sequence[CreatureRuntimeState] = [originator]
            else:
                recipients = targets
            if not recipients:
                logger.debug(
                    "Effect has no recipients",
                    effect_type=effect.effect_type,
                    source=source_definition_id,
                )
            for target in recipients:
                outcome.extend(
                    self.apply_effect(
                        effect,
                        source_definition_id=source_definition_id,
                        source_type=source_type,
                        originator=originator,
                        target=target,
                        execution=execution,
                        source_definition=source_definition,
                    )
                )
        return outcome

    def apply_effect(
        self,
        effect: Effect,
        *,
        source_definition_id: str,
        source_type: DefinitionSource,
        originator: CreatureRuntimeState,
        target: CreatureRuntimeState,
        execution: ExecutionContext | None = None,
        source_definition: SourceDefinition | None = None,
    ) -> EffectOutcome:
        """Apply one effect to one target."""
        context = FormulaContext(
            actor=originator,
            target=target,
            source_definition=source_definition,
            execution=execution,
        )
        source = _Source(source_definition_id, source_type, originator.id)

        match effect:
            case DamageEffect():
                return self._deal_damage(effect, source, originator, target, context)
            case ConditionEffect():
                return self._apply_condition(effect, source, originator, target, context)
            case HealEffect():
                return self._heal(effect, source, target, context)
            case BonusEffect():
                return self._grant_bonus(effect, source, target, context)
            case BaseArmorClassEffect():
                return self._push_and_recompute(effect, source, target)
            case ResistanceEffect() | ImmunityEffect() | SaveDcEffect():
                return self._push(effect, source, target)
            case MaxHitPointsEffect():
                return self._increase_max_hp(effect, source, target, context)
            case GenericEffect():
                return self._generic(effect, source, target)
            case _:
                assert_never(effect)

    def apply_damage(
        self,
        target: CreatureRuntimeState,
        instances: Sequence[DamageInstance],
        *,
        source_creature_id: str | None = None,
        source_definition_id: str | None = None,
    ) -> EffectOutcome:
        """Run rolled damage through defenses and commit it.

        Conditions the damage causes (UNCONSCIOUS) are added through
        :meth:`add_condition`, then stats are recomputed.
        """
        outcome = EffectOutcome()
        result = calculate_damage(target, instances)
        result.apply_to(target)
        outcome.touch(target.id)
        outcome.events.append(
            result.to_event(
                target,
                source_creature_id=source_creature_id,
                source_definition_id=source_definition_id,
            )
        )
        for condition_id in result.new_condition_ids:
            outcome.extend(
                self.add_condition(
                    target,
                    condition_id,
                    source_creature_id=source_creature_id,
                    source_definition_id=source_definition_id,
                )
            )
        update_calculated_stats(target, self._definitions)
        return outcome

    def add_condition(
        self,
        target: CreatureRuntimeState,
        condition_id: str,
        *,
        source_creature_id: str | None = None,
        source_definition_id: str | None = None,
        source_effect_id: str | None = None,
        duration_rounds: int | None = None,
        save_dc: int | None = None,
        save_ability: str | None = None,
    ) -> EffectOutcome:
        """Give a creature a condition.

        Re-applying a condition the creature already has does nothing.
        The condition definition's own effects are applied with the
        condition id as their source, so they are removed with it.

        Returns:
            EffectOutcome; empty when the condition was already active.
        """
        outcome = EffectOutcome()
        if target.has_condition(condition_id):
            logger.debug("Condition already active", creature_id=target.id, condition_id=condition_id)
            return outcome

        definition = self._condition_definition(condition_id)
        target.active_conditions.append(
            ActiveCondition(
                condition_id=condition_id,
                definition=definition,
                source_effect_id=source_effect_id,
                source_creature_id=source_creature_id,
                source_definition_id=source_definition_id,
                remaining_duration_rounds=duration_rounds,
                save_to_end_dc=save_dc,
                save_ability=save_ability,
            )
        )
        outcome.touch(target.id)
        outcome.events.append(
            make_event(
                EventType.CONDITION_GAINED,
                description=f"{target.name} is now {condition_id}",
                details=ConditionChangeDetails(
                    condition_id=condition_id,
                    duration_rounds=duration_rounds,
                    save_dc=save_dc,
                ),
                source_creature_id=source_creature_id,
                target_creature_id=target.id,
                source_definition_id=source_definition_id,
            )
        )
        logger.info("Condition gained", creature_id=target.id, condition_id=condition_id)

        if definition is not None and definition.parsed_effects:
            outcome.extend(
                self.apply_effects(
                    definition.parsed_effects,
                    source_definition_id=condition_id,
                    source_type=DefinitionSource.CONDITION,
                    originator=target,
                    targets=[target],
                    source_definition=definition,
                )
            )
        update_calculated_stats(target, self._definitions)
        return outcome

    def remove_effect(self, creature: CreatureRuntimeState, instance_id: str) -> list[GameEvent]:
        """Remove an active effect by instance id.

        Clears the creature's concentration if it pointed at the effect.

        Returns:
            The EFFECT_REMOVED event, or nothing if no such effect exists.
        """
        active = creature.find_effect(instance_id)
        if active is None:
            return []
        creature.active_effects = [e for e in creature.active_effects if e.instance_id != instance_id]
        if creature.concentration is not None and creature.concentration.effect_instance_id == instance_id:
            creature.concentration = None
        update_calculated_stats(creature, self._definitions)
        return [_effect_removed_event(creature, active)]

    def process_end_of_turn_effects(self, creature: CreatureRuntimeState) -> EffectOutcome:
        """Tick down durations at the end of ``creature``'s turn.

        Every timed effect and condition loses one round; those reaching
        zero are removed. Effects sourced from a removed condition go
        with it. Indefinite entries are untouched.

        Args:
            creature: The creature whose turn is ending.

        Returns:
            EffectOutcome with EFFECT_REMOVED/CONDITION_REMOVED events.
        """
        outcome = EffectOutcome()
        removed_effects: list[ActiveEffect] = []
        kept_effects: list[ActiveEffect] = []
        for active in creature.active_effects:
            if active.remaining_duration_rounds is None:
                kept_effects.append(active)
                continue
            remaining = active.remaining_duration_rounds - 1
            if remaining <= 0:
                removed_effects.append(active)
            else:
                active.remaining_duration_rounds = remaining
                kept_effects.append(active)

        removed_conditions: list[ActiveCondition] = []
        kept_conditions: list[ActiveCondition] = []
        for condition in creature.active_conditions:
            if condition.remaining_duration_rounds is None:
                kept_conditions.append(condition)
                continue
            remaining = condition.remaining_duration_rounds - 1
            if remaining <= 0:
                removed_conditions.append(condition)
            else:
                condition.remaining_duration_rounds = remaining
                kept_conditions.append(condition)

        removed_condition_ids = {c.condition_id for c in removed_conditions}
        if removed_condition_ids:
            orphaned = [e for e in kept_effects if e.source_definition_id in removed_condition_ids]
            removed_effects.extend(orphaned)
            kept_effects = [e for e in kept_effects if e.source_definition_id not in removed_condition_ids]

        if not removed_effects and not removed_conditions:
            return outcome

        creature.active_effects = kept_effects
        creature.active_conditions = kept_conditions
        removed_ids = {e.instance_id for e in removed_effects}
        if creature.concentration is not None and creature.concentration.effect_instance_id in removed_ids:
            creature.concentration = None

        for active in removed_effects:
            outcome.events.append(_effect_removed_event(creature, active))
        for condition in removed_conditions:
            outcome.events.append(
                make_event(
                    EventType.CONDITION_REMOVED,
                    description=f"{creature.name} is no longer {condition.condition_id}",
                    details=ConditionChangeDetails(condition_id=condition.condition_id),
                    source_creature_id=condition.source_creature_id,
                    target_creature_id=creature.id,
                    source_definition_id=condition.source_definition_id,
                )
            )
        outcome.touch(creature.id)
        update_calculated_stats(creature, self._definitions)
        logger.debug(
            "End of turn expiry",
            creature_id=creature.id,
            effects_removed=len(removed_effects),
            conditions_removed=len(removed_conditions),
        )
        return outcome

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _deal_damage(
        self,
        effect: DamageEffect,
        source: _Source,
        originator: CreatureRuntimeState,
        target: CreatureRuntimeState,
        context: FormulaContext,
    ) -> EffectOutcome:
        if _fires_on_hit(effect) and not _resolving_hit(context):
            return self._push(effect, source, target)

        outcome = EffectOutcome()
        rolls = []
        for damage_roll in effect.damage_rolls:
            if damage_roll.bonus_damage_formula:
                result = evaluate_formula(damage_roll.bonus_damage_formula, context)
                if not result.ok:
                    logger.warning(
                        "Bonus damage formula failed, using 0",
                        formula=damage_roll.bonus_damage_formula,
                        error=result.error,
                    )
                damage_roll = damage_roll.model_copy(
                    update={
                        "bonus_damage": damage_roll.bonus_damage + result.floor_or(0),
                        "bonus_damage_formula": None,
                    }
                )
            rolls.append(damage_roll)

        is_critical = context.execution is not None and context.execution.is_critical_hit
        rolled = self._dice.roll_damage(rolls, self._definitions, is_critical=is_critical)
        amounts = [r.total for r in rolled]

        if effect.saving_throw is not None:
            dc = self._save_dc(effect.saving_throw, originator, context)
            save = resolve_saving_throw(target, effect.saving_throw.ability, dc, self._dice)
            outcome.events.append(
                saving_throw_event(
                    target,
                    effect.saving_throw.ability,
                    save,
                    source_creature_id=originator.id,
                    source_definition_id=source.definition_id,
                )
            )
            if save.success:
                if effect.saving_throw.effect_on_success is SaveEffect.HALF_DAMAGE:
                    amounts = [amount // 2 for amount in amounts]
                else:
                    outcome.touch(target.id)
                    return outcome

        instances = [
            DamageInstance(amount=amount, damage_type=r.damage_type, is_critical=is_critical)
            for amount, r in zip(amounts, rolled, strict=True)
        ]
        outcome.extend(
            self.apply_damage(
                target,
                instances,
                source_creature_id=originator.id,
                source_definition_id=source.definition_id,
            )
        )
        return outcome

    def _apply_condition(
        self,
        effect: ConditionEffect,
        source: _Source,
        originator: CreatureRuntimeState,
        target: CreatureRuntimeState,
        context: FormulaContext,
    ) -> EffectOutcome:
        outcome = EffectOutcome()
        save_dc: int | None = None
        save_ability: str | None = None
        if effect.saving_throw is not None:
            save_dc = self._save_dc(effect.saving_throw, originator, context)
            save_ability = effect.saving_throw.ability
            save = resolve_saving_throw(target, save_ability, save_dc, self._dice)
            outcome.events.append(
                saving_throw_event(
                    target,
                    save_ability,
                    save,
                    source_creature_id=originator.id,
                    source_definition_id=source.definition_id,
                )
            )
            if save.success:
                outcome.touch(target.id)
                return outcome

        # Instantaneous sources still leave the condition in place.
        rounds = self._rounds(effect.duration)
        outcome.extend(
            self.add_condition(
                target,
                effect.condition_id,
                source_creature_id=originator.id,
                source_definition_id=source.definition_id,
                source_effect_id=source.new_instance_id(),
                duration_rounds=rounds or None,
                save_dc=save_dc,
                save_ability=save_ability,
            )
        )
        return outcome

    def _heal(
        self,
        effect: HealEffect,
        source: _Source,
        target: CreatureRuntimeState,
        context: FormulaContext,
    ) -> EffectOutcome:
        outcome = EffectOutcome()
        amount = self._dice.roll_healing(effect.healing_rolls, self._definitions)
        if effect.bonus_value is not None:
            amount += effect.bonus_value
        if effect.value_formula:
            amount += self._formula_or_zero(effect.value_formula, context, purpose="HEAL")

        healed = max(0, min(amount, target.max_hp_calculated - target.current_hp))
        target.current_hp += healed
        outcome.touch(target.id)
        if healed > 0:
            outcome.events.append(
                make_event(
                    EventType.HEALING_APPLIED,
                    description=f"{target.name} regains {healed} hit points",
                    details=HealingAppliedDetails(
                        amount=healed,
                        new_hp=target.current_hp,
                        max_hp=target.max_hp_calculated,
                    ),
                    source_creature_id=source.creature_id,
                    target_creature_id=target.id,
                    source_definition_id=source.definition_id,
                )
            )
        update_calculated_stats(target, self._definitions)
        return outcome

    def _grant_bonus(
        self,
        effect: BonusEffect,
        source: _Source,
        target: CreatureRuntimeState,
        context: FormulaContext,
    ) -> EffectOutcome:
        if effect.bonus_value is None and effect.bonus_value_formula:
            value = self._formula_or_zero(effect.bonus_value_formula, context, purpose=effect.effect_type)
            effect = effect.model_copy(update={"bonus_value": value})

        bonus_to = (effect.bonus_to or "").upper()
        affects_stats = effect.effect_type == EffectType.GRANT_BONUS and (
            bonus_to == ARMOR_CLASS or bonus_to in ABILITY_IDS
        )
        if affects_stats:
            return self._push_and_recompute(effect, source, target)
        return self._push(effect, source, target)

    def _increase_max_hp(
        self,
        effect: MaxHitPointsEffect,
        source: _Source,
        target: CreatureRuntimeState,
        context: FormulaContext,
    ) -> EffectOutcome:
        if effect.bonus_value is None:
            value = 0
            if effect.value_formula:
                value = self._formula_or_zero(effect.value_formula, context, purpose="INCREASE_MAX_HP")
            effect = effect.model_copy(update={"bonus_value": value})

        before = target.max_hp_calculated
        outcome = self._push_and_recompute(effect, source, target)
        increase = target.max_hp_calculated - before
        if increase > 0:
            target.current_hp = min(target.current_hp + increase, target.max_hp_calculated)
        return outcome

    def _generic(self, effect: GenericEffect, source: _Source, target: CreatureRuntimeState) -> EffectOutcome:
        if effect.duration is not None or source.source_type is DefinitionSource.CONDITION:
            return self._push(effect, source, target)
        logger.warning(
            "No handler for effect type",
            effect_type=effect.effect_type,
            source=source.definition_id,
            target_id=target.id,
        )
        return EffectOutcome()

    def _push(self, effect: Effect, source: _Source, target: CreatureRuntimeState) -> EffectOutcome:
        outcome = EffectOutcome()
        rounds = self._rounds(effect.duration)
        if rounds == 0:
            logger.debug(
                "Instantaneous effect not kept",
                effect_type=effect.effect_type,
                source=source.definition_id,
            )
            return outcome

        active = ActiveEffect(
            instance_id=source.new_instance_id(),
            source_definition_id=source.definition_id,
            source_creature_id=source.creature_id,
            remaining_duration_rounds=rounds,
            concentration=effect.concentration,
            effect=effect,
        )
        target.active_effects.append(active)
        outcome.touch(target.id)
        outcome.applied_effects.append((target.id, active))
        outcome.events.append(
            make_event(
                EventType.EFFECT_APPLIED,
                description=f"{target.name} gains {active.effect_type} from {source.definition_id}",
                details=EffectChangeDetails(
                    effect_type=active.effect_type,
                    instance_id=active.instance_id,
                    duration_rounds=rounds,
                ),
                source_creature_id=source.creature_id,
                target_creature_id=target.id,
                source_definition_id=source.definition_id,
            )
        )
        return outcome

    def _push_and_recompute(
        self,
        effect: Effect,
        source: _Source,
        target: CreatureRuntimeState,
    ) -> EffectOutcome:
        outcome = self._push(effect, source, target)
        update_calculated_stats(target, self._definitions)
        return outcome

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _rounds(self, duration: Duration | None) -> int | None:
        return duration_to_rounds(
            duration,
            default_concentration_rounds=self._settings.default_concentration_rounds,
        )

    def _formula_or_zero(self, formula: str, context: FormulaContext, *, purpose: str) -> int:
        result = evaluate_formula(formula, context)
        if not result.ok:
            logger.warning("Formula failed, using 0", formula=formula, purpose=purpose, error=result.error)
        return result.floor_or(0)

    def _save_dc(
        self,
        saving_throw: SavingThrowSpec,
        originator: CreatureRuntimeState,
        context: FormulaContext,
    ) -> int:
        """DC for a gated effect: formula, then fixed DC, then a default."""
        formula = (saving_throw.dc_formula or "").strip()
        if formula.upper() == CASTER_SPELL_SAVE_DC:
            return spell_save_dc(originator)
        if formula:
            result = evaluate_formula(formula, context)
            if result.ok:
                return result.floor_or(self._settings.default_save_dc)
            logger.warning("Save DC formula failed, using fallback", formula=formula, error=result.error)
        if saving_throw.dc_fixed is not None:
            return saving_throw.dc_fixed
        if formula and originator.spellcasting_ability is not None:
            return spell_save_dc(originator)
        return self._settings.default_save_dc

    def _condition_definition(self, condition_id: str) -> ConditionDefinition | None:
        try:
            return self._definitions.get_condition(condition_id)
        except DefinitionNotFoundError:
            logger.debug("Condition has no definition, applying bare", condition_id=condition_id)
            return None


@dataclass(frozen=True)
class _Source:
    definition_id: str
    source_type: DefinitionSource
    creature_id: str | None

    def new_instance_id(self) -> str:
        return f"{self.definition_id}-{uuid.uuid4()}"


def _fires_on_hit(effect: DamageEffect) -> bool:
    return (
        effect.effect_type == EffectType.DEAL_DAMAGE_ON_ATTACK_HIT
        or (effect.trigger or "").upper() == ON_ATTACK_HIT
    )


def _resolving_hit(context: FormulaContext) -> bool:
    return context.execution is not None and context.execution.attack_roll_total is not None


def _effect_removed_event(creature: CreatureRuntimeState, active: ActiveEffect) -> GameEvent:
    return make_event(
        EventType.EFFECT_REMOVED,
        description=f"{active.effect_type} from {active.source_definition_id} ends on {creature.name}",
        details=EffectChangeDetails(effect_type=active.effect_type, instance_id=active.instance_id),
        source_creature_id=active.source_creature_id,
        target_creature_id=creature.id,
        source_definition_id=active.source_definition_id,
    )


def effects_with_trigger(creature: CreatureRuntimeState, trigger: str) -> Iterable[ActiveEffect]:
    """Active effects on ``creature`` that fire on ``trigger``."""
    return [active for active in creature.active_effects if (active.trigger or "").upper() == trigger]


__all__ = [
    "duration_to_rounds",
    "EffectOutcome",
    "EffectExecutor",
    "effects_with_trigger",
]
