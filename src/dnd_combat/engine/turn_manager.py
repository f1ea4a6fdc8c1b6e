"""Turn and round state machine.

:class:`TurnManager` owns the canonical :class:`CombatStateSnapshot` for
one encounter. It rolls initiative, cycles turns, dispatches actions to
the resolvers and appends every resulting event to the combat log.

Every action runs against a checkpoint. If it fails, whether through an
expected failure or an engine exception, the snapshot is restored so
nothing is partially committed.

Example:
    >>> manager = TurnManager(registry, dice=DiceRoller(seed=42))
    >>> manager.start_combat([fighter, goblin])
    >>> manager.process_action(ActionChoice(actor_id="fighter", action_type="DODGE"))
    >>> manager.progress_to_next_turn()
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from dnd_combat.core.config import Settings, get_settings
from dnd_combat.core.constants import DODGE_ACTION, INITIATIVE_ROLL, ON_ATTACK_HIT
from dnd_combat.core.exceptions import (
    CombatError,
    DndCombatError,
    InvalidGameStateError,
    ValidationError,
)
from dnd_combat.core.logging import bind_context, get_logger
from dnd_combat.engine.attack import (
    AttackDescription,
    describe_creature_action,
    describe_weapon_attack,
    resolve_attack,
)
from dnd_combat.engine.calculations import initiative_modifier, roll_flags, update_calculated_stats
from dnd_combat.engine.dice import DiceRoller
from dnd_combat.engine.effects import EffectExecutor, EffectOutcome, effects_with_trigger
from dnd_combat.engine.formula import ExecutionContext
from dnd_combat.engine.resources import initialize_creature_resources
from dnd_combat.engine.spellcasting import SpellcastingEngine
from dnd_combat.models.combat import (
    ActionChoice,
    ActionResult,
    CombatPhase,
    CombatStateSnapshot,
    InitiativeEntry,
)
from dnd_combat.models.effects import BonusEffect, DamageEffect
from dnd_combat.models.enums import (
    Ability,
    ActionCost,
    ActionType,
    DefinitionSource,
    EffectType,
    EventType,
    TargetScope,
)
from dnd_combat.models.events import GameEvent, InitiativeDetails, MoveDetails, make_event


if TYPE_CHECKING:
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)

MAIN_HAND_SLOT = "main_hand"


class _ActionFailed(Exception):
    """Expected, user-facing failure inside an action handler."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class TurnManager:
    """Runs a single encounter from initiative to the end of combat.

    Attributes:
        phase: Lifecycle phase of the encounter.
    """

    def __init__(
        self,
        definitions: DefinitionLookup,
        *,
        dice: DiceRoller | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the turn manager.

        Args:
            definitions: Definition lookup.
            dice: Dice roller; one seeded from settings if omitted.
            settings: Application settings; the global settings if omitted.
        """
        self._settings = settings or get_settings()
        self._definitions = definitions
        self._dice = dice or DiceRoller(seed=self._settings.engine.dice_seed)
        self._executor = EffectExecutor(definitions, self._dice, settings=self._settings.engine)
        self._spellcasting = SpellcastingEngine(definitions, self._executor)
        self._state: CombatStateSnapshot | None = None
        self.phase = CombatPhase.NOT_STARTED

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_combat(self, creatures: Sequence[CreatureRuntimeState]) -> CombatStateSnapshot:
        """Start an encounter.

        The creatures are deep-copied; the manager owns the copies. Each
        gets its derived stats and starting resources, then rolls
        initiative.

        Args:
            creatures: Combatants in submission order.

        Returns:
            A copy of the initial snapshot.

        Raises:
            InvalidGameStateError: If combat is already running.
            ValidationError: If the roster is empty or has duplicate ids.
        """
        if self.phase is CombatPhase.IN_PROGRESS:
            raise InvalidGameStateError(
                "Combat is already in progress",
                current_state=self.phase.value,
                expected_states=[CombatPhase.NOT_STARTED.value, CombatPhase.ENDED.value],
            )
        if not creatures:
            raise ValidationError("Cannot start combat without combatants", field_name="creatures")
        ids = [creature.id for creature in creatures]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValidationError(
                "Combatant ids must be unique",
                field_name="creatures",
                invalid_value=duplicates,
            )

        combatants = [creature.model_copy(deep=True) for creature in creatures]
        log: list[GameEvent] = [
            make_event(
                EventType.COMBAT_STARTED,
                description=f"Combat started with {len(combatants)} combatants",
            )
        ]

        entries: list[InitiativeEntry] = []
        for index, creature in enumerate(combatants):
            initialize_creature_resources(creature)
            update_calculated_stats(creature, self._definitions)
            entry, event = self._roll_initiative(creature, index)
            entries.append(entry)
            log.append(event)
        entries.sort(key=lambda entry: entry.sort_key)

        self._state = CombatStateSnapshot(
            round_number=1,
            initiative_order=entries,
            combatants=combatants,
            log=log,
        )
        self.phase = CombatPhase.IN_PROGRESS
        bind_context(combat_round=1)
        logger.info(
            "Combat started",
            combatants=len(combatants),
            order=[entry.creature_id for entry in entries],
        )

        self._state.log.append(
            make_event(EventType.ROUND_STARTED, description="Round 1 started")
        )
        first = self._next_actor_index(start=0)
        if first is None:
            self._finish("Combat ends: no combatant can act")
        else:
            self._begin_turn(entries[first].creature_id)
        return self.get_combat_state()

    def end_combat(self) -> None:
        """End the encounter explicitly and drop its state."""
        if self._state is not None:
            self._state.log.append(
                make_event(EventType.COMBAT_ENDED, description="Combat ended")
            )
            logger.info("Combat ended", rounds=self._state.round_number)
        self._state = None
        self.phase = CombatPhase.ENDED

    def get_combat_state(self) -> CombatStateSnapshot | None:
        """A deep copy of the current snapshot, or None outside combat."""
        if self._state is None:
            return None
        return self._state.model_copy(deep=True)

    # =========================================================================
    # Turns
    # =========================================================================

    def progress_to_next_turn(self) -> CombatStateSnapshot | None:
        """End the current turn and start the next one.

        The next actor is the first creature after the current one in
        initiative order (wrapping) that can act. Wrapping advances the
        round. When nobody can act, combat ends.

        Returns:
            A copy of the snapshot, or None if combat was not running or
            has just ended because nobody can act.
        """
        state = self._state
        if state is None or state.current_turn_creature_id is None:
            return None

        current_id = state.current_turn_creature_id
        self._end_turn(current_id)

        current_index = state.initiative_index(current_id) or 0
        next_index = self._next_actor_index(start=current_index + 1)
        if next_index is None:
            self._finish("Combat ends: no combatant can act")
            return None

        if next_index <= current_index:
            state.log.append(
                make_event(EventType.ROUND_ENDED, description=f"Round {state.round_number} ended")
            )
            state.round_number += 1
            bind_context(combat_round=state.round_number)
            state.log.append(
                make_event(EventType.ROUND_STARTED, description=f"Round {state.round_number} started")
            )
            logger.info("Round started", round_number=state.round_number)

        self._begin_turn(state.initiative_order[next_index].creature_id)
        return self.get_combat_state()

    # =========================================================================
    # Actions
    # =========================================================================

    def process_action(self, choice: ActionChoice) -> ActionResult:
        """Resolve an action for the current actor.

        Args:
            choice: The submitted action.

        Returns:
            ActionResult with the generated events. On failure the
            snapshot is exactly as it was before the call.
        """
        state = self._state
        if (
            state is None
            or self.phase is not CombatPhase.IN_PROGRESS
            or choice.actor_id != state.current_turn_creature_id
        ):
            return ActionResult(success=False, reason="Not the actor's turn or combat not active.")
        actor = state.get_combatant(choice.actor_id)
        if actor is None:
            return ActionResult(success=False, reason=f"Actor {choice.actor_id} not found in combat.")

        try:
            action_type = ActionType(choice.action_type)
        except ValueError:
            return ActionResult(
                success=False,
                reason=f"Action type {choice.action_type} not recognized.",
            )

        checkpoint = state.model_copy(deep=True)
        try:
            events = self._dispatch(state, actor, action_type, choice)
        except _ActionFailed as failure:
            self._state = checkpoint
            logger.info("Action rejected", actor_id=actor.id, action=action_type.value, reason=failure.reason)
            return ActionResult(success=False, reason=failure.reason)
        except DndCombatError as exc:
            self._state = checkpoint
            logger.warning(
                "Action failed",
                actor_id=actor.id,
                action=action_type.value,
                error=exc.message,
                error_type=type(exc).__name__,
            )
            return ActionResult(success=False, reason=exc.message)
        except Exception:
            self._state = checkpoint
            raise

        state.log.extend(events)
        return ActionResult(success=True, events=events)

    def _dispatch(
        self,
        state: CombatStateSnapshot,
        actor: CreatureRuntimeState,
        action_type: ActionType,
        choice: ActionChoice,
    ) -> list[GameEvent]:
        match action_type:
            case ActionType.ATTACK:
                return self._attack(state, actor, choice)
            case ActionType.SPELL:
                return self._cast(state, actor, choice)
            case ActionType.DODGE:
                return self._dodge(actor)
            case ActionType.MOVE:
                return self._move(actor)
            case ActionType.PASS_TURN:
                actor.action_economy.has_action = False
                actor.action_economy.has_bonus_action = False
                return [
                    make_event(
                        EventType.TURN_ENDED,
                        description=f"{actor.name} passes their turn",
                        source_creature_id=actor.id,
                    )
                ]
            case _:
                raise _ActionFailed(f"Action type {action_type.value} not recognized.")

    def _attack(
        self,
        state: CombatStateSnapshot,
        actor: CreatureRuntimeState,
        choice: ActionChoice,
    ) -> list[GameEvent]:
        if not actor.action_economy.has_action:
            raise _ActionFailed(f"{actor.name} has no action left this turn.")
        if not choice.target_ids:
            raise _ActionFailed("An attack needs a target.")
        target = state.get_combatant(choice.target_ids[0])
        if target is None:
            raise CombatError(
                f"Target {choice.target_ids[0]} is not in combat",
                combatant_id=choice.target_ids[0],
                round_number=state.round_number,
            )

        attack, source_type = self._describe_attack(actor, choice)
        resolution = resolve_attack(actor, target, attack, self._dice, self._definitions)
        events = [resolution.to_event(actor, target, attack)]

        if resolution.is_hit:
            execution = ExecutionContext(
                current_round=state.round_number,
                current_turn_creature_id=actor.id,
                is_critical_hit=resolution.is_critical,
                attack_roll_total=resolution.total,
            )
            source_id = attack.source_id or "ATTACK"
            outcome = EffectOutcome()
            if attack.damage_rolls:
                weapon_damage = DamageEffect(
                    effect_type=EffectType.DEAL_DAMAGE.value,
                    damage_rolls=list(attack.damage_rolls),
                )
                outcome.extend(
                    self._executor.apply_effect(
                        weapon_damage,
                        source_definition_id=source_id,
                        source_type=source_type,
                        originator=actor,
                        target=target,
                        execution=execution,
                    )
                )
            for effect in attack.on_hit_effects:
                outcome.extend(
                    self._executor.apply_effect(
                        effect,
                        source_definition_id=source_id,
                        source_type=source_type,
                        originator=actor,
                        target=target,
                        execution=execution,
                    )
                )
            for active in effects_with_trigger(actor, ON_ATTACK_HIT):
                outcome.extend(
                    self._executor.apply_effect(
                        active.effect,
                        source_definition_id=active.source_definition_id,
                        source_type=DefinitionSource.FEATURE,
                        originator=actor,
                        target=target,
                        execution=execution,
                    )
                )
            events.extend(outcome.events)

        actor.action_economy.has_action = False
        return events

    def _describe_attack(
        self,
        actor: CreatureRuntimeState,
        choice: ActionChoice,
    ) -> tuple[AttackDescription, DefinitionSource]:
        if choice.item_id:
            item = self._definitions.get_item(choice.item_id)
            return describe_weapon_attack(actor, item), DefinitionSource.ITEM

        if choice.action_name:
            template = actor.creature_definition
            actions = template.actions if template is not None else []
            for action in actions:
                if action.action_name.lower() == choice.action_name.lower():
                    return describe_creature_action(action), DefinitionSource.CREATURE_ACTION
            raise CombatError(
                f"{actor.name} has no action named {choice.action_name}",
                combatant_id=actor.id,
            )

        main_hand = actor.equipped_items.get(MAIN_HAND_SLOT)
        if main_hand:
            item = self._definitions.get_item(main_hand)
            return describe_weapon_attack(actor, item), DefinitionSource.ITEM
        raise _ActionFailed(f"{actor.name} has no weapon or attack selected.")

    def _cast(
        self,
        state: CombatStateSnapshot,
        actor: CreatureRuntimeState,
        choice: ActionChoice,
    ) -> list[GameEvent]:
        if not choice.spell_id:
            raise _ActionFailed("No spell selected.")
        spell = self._definitions.get_spell(choice.spell_id)
        cost = spell.casting_time.action_type
        economy = actor.action_economy
        if cost is ActionCost.ACTION and not economy.has_action:
            raise _ActionFailed(f"{actor.name} has no action left this turn.")
        if cost is ActionCost.BONUS_ACTION and not economy.has_bonus_action:
            raise _ActionFailed(f"{actor.name} has no bonus action left this turn.")

        result = self._spellcasting.cast_spell(
            actor,
            spell.spell_id,
            roster=state.combatants,
            target_ids=choice.target_ids,
            self_target=bool(choice.target_info and choice.target_info.self_target),
            slot_level=choice.spell_slot_level,
            current_round=state.round_number,
        )
        if not result.success:
            raise _ActionFailed(result.reason or f"{spell.name} could not be cast.")

        if cost is ActionCost.ACTION:
            economy.has_action = False
        elif cost is ActionCost.BONUS_ACTION:
            economy.has_bonus_action = False
        return result.events

    def _dodge(self, actor: CreatureRuntimeState) -> list[GameEvent]:
        if not actor.action_economy.has_action:
            raise _ActionFailed(f"{actor.name} has no action left for Dodge.")
        actor.action_economy.has_action = False
        dodge_effects = [
            BonusEffect(
                effect_type=EffectType.GRANT_DISADVANTAGE_TO_ATTACKERS.value,
                target_scope=TargetScope.SELF,
                duration=1,
                description="Attack rolls against this creature have disadvantage.",
            ),
            BonusEffect(
                effect_type=EffectType.GRANT_ADVANTAGE_ON_ROLL.value,
                target_scope=TargetScope.SELF,
                bonus_to=Ability.DEX.save_tag,
                duration=1,
                description="Dexterity saving throws have advantage.",
            ),
        ]
        outcome = self._executor.apply_effects(
            dodge_effects,
            source_definition_id=DODGE_ACTION,
            source_type=DefinitionSource.ACTION,
            originator=actor,
            targets=[actor],
        )
        return outcome.events

    def _move(self, actor: CreatureRuntimeState) -> list[GameEvent]:
        walk = actor.speeds.get("WALK", self._settings.engine.default_walk_speed)
        remaining = walk - actor.action_economy.movement_used
        if remaining <= 0:
            raise _ActionFailed("Not enough movement remaining.")
        actor.action_economy.movement_used = walk
        return [
            make_event(
                EventType.MOVE_ACTION,
                description=f"{actor.name} moves {remaining} feet",
                source_creature_id=actor.id,
                details=MoveDetails(distance=remaining),
            )
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_state(self) -> CombatStateSnapshot:
        if self._state is None or self.phase is not CombatPhase.IN_PROGRESS:
            raise InvalidGameStateError(
                "Combat is not in progress",
                current_state=self.phase.value,
                expected_states=[CombatPhase.IN_PROGRESS.value],
            )
        return self._state

    def _roll_initiative(
        self,
        creature: CreatureRuntimeState,
        index: int,
    ) -> tuple[InitiativeEntry, GameEvent]:
        advantage, disadvantage = roll_flags(creature, INITIATIVE_ROLL)
        roll = self._dice.roll_d20(advantage=advantage, disadvantage=disadvantage)
        modifier = initiative_modifier(creature)
        total = roll.chosen + modifier
        creature.initiative_roll = total
        entry = InitiativeEntry(
            creature_id=creature.id,
            initiative_roll=total,
            dexterity_modifier=creature.ability_modifier(Ability.DEX),
            submission_index=index,
        )
        event = make_event(
            EventType.INITIATIVE_ROLLED,
            description=f"{creature.name} rolls {total} for initiative",
            details=InitiativeDetails(roll=total, natural_roll=roll.chosen, modifier=modifier),
            source_creature_id=creature.id,
        )
        return entry, event

    def _next_actor_index(self, start: int) -> int | None:
        state = self._state
        if state is None or not state.initiative_order:
            return None
        count = len(state.initiative_order)
        for offset in range(count):
            index = (start + offset) % count
            creature = state.get_combatant(state.initiative_order[index].creature_id)
            if creature is not None and creature.can_act:
                return index
        return None

    def _begin_turn(self, creature_id: str) -> None:
        state = self._require_state()
        creature = state.get_combatant(creature_id)
        if creature is None:
            raise CombatError(f"Combatant {creature_id} is not in combat", combatant_id=creature_id)
        state.current_turn_creature_id = creature_id
        creature.action_economy.reset()
        state.log.append(
            make_event(
                EventType.TURN_STARTED,
                description=f"{creature.name}'s turn",
                source_creature_id=creature_id,
            )
        )
        logger.debug("Turn started", creature_id=creature_id, round_number=state.round_number)

    def _end_turn(self, creature_id: str) -> None:
        state = self._require_state()
        creature = state.get_combatant(creature_id)
        if creature is None:
            return
        outcome = self._executor.process_end_of_turn_effects(creature)
        state.log.extend(outcome.events)
        state.log.append(
            make_event(
                EventType.TURN_ENDED,
                description=f"{creature.name}'s turn ended",
                source_creature_id=creature_id,
            )
        )

    def _finish(self, reason: str) -> None:
        state = self._require_state()
        state.current_turn_creature_id = None
        state.log.append(make_event(EventType.COMBAT_ENDED, description=reason))
        self.phase = CombatPhase.ENDED
        logger.info("Combat ended", reason=reason, rounds=state.round_number)


__all__ = [
    "MAIN_HAND_SLOT",
    "TurnManager",
]
