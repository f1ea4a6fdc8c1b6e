"""Attack resolution.

An attack is resolved in two steps: roll a d20 with the attacker's bonus
and any advantage/disadvantage, then classify the result against the
target's armor class. Weapons and monster stat-block actions are first
normalized into an :class:`AttackDescription`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dnd_combat.core.constants import ATTACK_ROLL, ON_ATTACK_HIT
from dnd_combat.core.exceptions import CombatError
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.armor_class import calculate_armor_class
from dnd_combat.engine.calculations import attack_bonus, roll_flags
from dnd_combat.models.effects import DamageEffect
from dnd_combat.models.enums import Ability, AttackOutcome, EffectType, EventType
from dnd_combat.models.events import AttackMadeDetails, GameEvent, make_event


if TYPE_CHECKING:
    from dnd_combat.engine.dice import D20Roll, DiceRoller
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState
    from dnd_combat.models.definitions import CreatureAction, ItemDefinition, RangeValue
    from dnd_combat.models.effects import DamageRoll, Effect

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttackDescription:
    """An attack normalized from a weapon or a creature action.

    Attributes:
        source_id: Item id or action name, for the log.
        name: Display name.
        ability: Associated ability used for fallback bonuses.
        bonus_formula: Attack bonus formula.
        fixed_bonus: Fixed attack bonus.
        damage_rolls: Damage dealt on a hit.
        on_hit_effects: Additional effects applied to the target on a hit.
        range: Reach or range.
    """

    source_id: str | None
    name: str
    ability: str | None = None
    bonus_formula: str | None = None
    fixed_bonus: int | None = None
    damage_rolls: tuple[DamageRoll, ...] = ()
    on_hit_effects: tuple[Effect, ...] = ()
    range: RangeValue | None = None


@dataclass(frozen=True)
class SituationalModifiers:
    """Circumstances the caller knows about and the engine does not."""

    advantage: bool = False
    disadvantage: bool = False
    flat_bonus: int = 0


@dataclass(frozen=True)
class AttackResolution:
    """A rolled and classified attack.

    Attributes:
        outcome: CriticalMiss, Miss, Hit or CriticalHit.
        roll: The d20 roll.
        attack_bonus: Bonus added to the chosen d20.
        total: Chosen d20 plus bonus.
        target_ac: Armor class the attack was compared against.
    """

    outcome: AttackOutcome
    roll: D20Roll
    attack_bonus: int
    total: int
    target_ac: int

    @property
    def is_hit(self) -> bool:
        return self.outcome.is_hit

    @property
    def is_critical(self) -> bool:
        return self.outcome is AttackOutcome.CRITICAL_HIT

    def to_event(
        self,
        attacker: CreatureRuntimeState,
        target: CreatureRuntimeState,
        attack: AttackDescription,
    ) -> GameEvent:
        """Build the ATTACK_MADE event for this resolution."""
        return make_event(
            EventType.ATTACK_MADE,
            description=(
                f"{attacker.name} attacks {target.name} with {attack.name}: "
                f"{self.total} vs AC {self.target_ac} ({self.outcome.value})"
            ),
            details=AttackMadeDetails(
                attack_roll_result=self.total,
                d20_natural_rolls=list(self.roll.natural_rolls),
                chosen_natural_roll=self.roll.chosen,
                target_armor_class=self.target_ac,
                outcome=self.outcome,
                attack_source_id=attack.source_id,
            ),
            source_creature_id=attacker.id,
            target_creature_id=target.id,
            source_definition_id=attack.source_id,
        )


# =============================================================================
# Normalization
# =============================================================================


def weapon_ability(attacker: CreatureRuntimeState, item: ItemDefinition) -> Ability:
    """Ability a weapon attacks with.

    Ranged weapons use DEX; finesse weapons use the better of STR and
    DEX; everything else uses STR.
    """
    weapon = item.weapon
    if weapon is not None and weapon.is_ranged:
        return Ability.DEX
    if weapon is not None and weapon.is_finesse:
        if attacker.ability_modifier(Ability.DEX) > attacker.ability_modifier(Ability.STR):
            return Ability.DEX
    return Ability.STR


def describe_weapon_attack(attacker: CreatureRuntimeState, item: ItemDefinition) -> AttackDescription:
    """Normalize a weapon into an attack.

    Args:
        attacker: The wielder.
        item: Weapon definition.

    Returns:
        AttackDescription using the wielder's ability and proficiency.

    Raises:
        CombatError: If the item has no weapon properties.
    """
    if item.weapon is None:
        raise CombatError(f"Item {item.item_id} is not a weapon", combatant_id=attacker.id)

    ability = weapon_ability(attacker, item)
    damage_rolls = tuple(
        roll
        if roll.bonus_damage_formula
        else roll.model_copy(update={"bonus_damage_formula": f"ABILITY_MODIFIER:{ability.value}"})
        for roll in item.weapon.damage_rolls
    )
    on_hit = tuple(effect for effect in item.parsed_effects if effect.trigger == ON_ATTACK_HIT)
    return AttackDescription(
        source_id=item.item_id,
        name=item.name,
        ability=ability.value,
        bonus_formula=f"ABILITY_MODIFIER:{ability.value} + PROFICIENCY_BONUS",
        damage_rolls=damage_rolls,
        on_hit_effects=on_hit,
        range=item.weapon.range,
    )


def describe_creature_action(action: CreatureAction) -> AttackDescription:
    """Normalize a stat-block action into an attack.

    Plain DEAL_DAMAGE on-hit effects become the attack's damage. Damage
    gated by a saving throw, and every other effect, is applied as an
    on-hit effect instead.
    """
    damage_rolls: list[DamageRoll] = []
    on_hit: list[Effect] = []
    for effect in action.on_hit_effects:
        if (
            isinstance(effect, DamageEffect)
            and effect.effect_type == EffectType.DEAL_DAMAGE
            and effect.saving_throw is None
        ):
            damage_rolls.extend(effect.damage_rolls)
        else:
            on_hit.append(effect)
    return AttackDescription(
        source_id=action.action_name,
        name=action.action_name,
        ability=action.associated_ability.value if action.associated_ability else None,
        bonus_formula=action.attack_bonus_formula,
        fixed_bonus=action.attack_bonus_value,
        damage_rolls=tuple(damage_rolls),
        on_hit_effects=tuple(on_hit),
        range=action.range,
    )


# =============================================================================
# Resolution
# =============================================================================


def classify_attack(natural: int, total: int, target_ac: int) -> AttackOutcome:
    """Classify an attack roll.

    Natural 1 always misses and natural 20 always crits, whatever the total.
    """
    if natural == 1:
        return AttackOutcome.CRITICAL_MISS
    if natural == 20:
        return AttackOutcome.CRITICAL_HIT
    if total >= target_ac:
        return AttackOutcome.HIT
    return AttackOutcome.MISS


def _defender_grants(target: CreatureRuntimeState, effect_type: str) -> bool:
    if any(active.effect_type == effect_type for active in target.active_effects):
        return True
    for condition in target.active_conditions:
        if condition.definition is None:
            continue
        if any(effect.effect_type == effect_type for effect in condition.definition.parsed_effects):
            return True
    return False


def attack_roll_flags(
    attacker: CreatureRuntimeState,
    target: CreatureRuntimeState,
    situational: SituationalModifiers | None = None,
) -> tuple[bool, bool]:
    """Aggregate advantage and disadvantage for an attack.

    Returns:
        ``(advantage, disadvantage)``; both may be True, which cancels.
    """
    situational = situational or SituationalModifiers()
    own_advantage, own_disadvantage = roll_flags(attacker, ATTACK_ROLL)
    advantage = (
        situational.advantage
        or own_advantage
        or _defender_grants(target, EffectType.GRANT_ADVANTAGE_TO_ATTACKERS)
    )
    disadvantage = (
        situational.disadvantage
        or own_disadvantage
        or _defender_grants(target, EffectType.GRANT_DISADVANTAGE_TO_ATTACKERS)
    )
    return advantage, disadvantage


def resolve_attack(
    attacker: CreatureRuntimeState,
    target: CreatureRuntimeState,
    attack: AttackDescription,
    dice: DiceRoller,
    definitions: DefinitionLookup,
    situational: SituationalModifiers | None = None,
) -> AttackResolution:
    """Roll and classify an attack.

    Args:
        attacker: Attacking creature.
        target: Defending creature.
        attack: Normalized attack.
        dice: Dice roller.
        definitions: Lookup for the target's armor.
        situational: Extra advantage/disadvantage and flat bonus.

    Returns:
        AttackResolution with the rolls, total, AC and outcome.
    """
    situational = situational or SituationalModifiers()
    target_ac = calculate_armor_class(target, definitions).final_ac
    bonus = attack_bonus(
        attacker,
        formula=attack.bonus_formula,
        fixed_bonus=attack.fixed_bonus,
        ability=attack.ability,
        target=target,
    ) + situational.flat_bonus

    advantage, disadvantage = attack_roll_flags(attacker, target, situational)
    roll = dice.roll_d20(advantage=advantage, disadvantage=disadvantage)
    total = roll.chosen + bonus
    outcome = classify_attack(roll.chosen, total, target_ac)

    logger.info(
        "Attack resolved",
        attacker_id=attacker.id,
        target_id=target.id,
        attack=attack.name,
        natural=roll.chosen,
        total=total,
        target_ac=target_ac,
        outcome=outcome.value,
    )
    return AttackResolution(
        outcome=outcome,
        roll=roll,
        attack_bonus=bonus,
        total=total,
        target_ac=target_ac,
    )


__all__ = [
    "AttackDescription",
    "SituationalModifiers",
    "AttackResolution",
    "weapon_ability",
    "describe_weapon_attack",
    "describe_creature_action",
    "classify_attack",
    "attack_roll_flags",
    "resolve_attack",
]
