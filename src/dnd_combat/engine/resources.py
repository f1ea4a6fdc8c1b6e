"""Resource management: spending, recovery, rests and initialization.

Resources are named counters on a creature (spell slots, hit dice,
per-rest feature uses). Expected failures such as spending a slot the
creature does not have are returned as :class:`ResourceResult` values
rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dnd_combat.core.constants import (
    HIT_DICE_PREFIX,
    HP_RESOURCE,
    SPELL_SLOT_PREFIX,
    TEMP_HP_RESOURCE,
)
from dnd_combat.core.exceptions import DefinitionNotFoundError, ResourceError
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.calculations import update_calculated_stats
from dnd_combat.models.creature import TrackedResource
from dnd_combat.models.enums import EventType, RestType
from dnd_combat.models.events import GameEvent, ResourceDetails, make_event


if TYPE_CHECKING:
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResourceResult:
    """Outcome of spending or recovering a resource.

    Attributes:
        success: Whether the operation happened.
        reason: Why it did not, when ``success`` is False.
        amount: Amount actually spent or recovered.
        event: RESOURCE_SPENT or RESOURCE_GAINED event, when anything changed.
    """

    success: bool
    reason: str | None = None
    amount: int = 0
    event: GameEvent | None = None


@dataclass(frozen=True)
class ResourceState:
    """Current and maximum value of a resource."""

    resource_id: str
    current: int
    maximum: int | None


def spell_slot_resource_id(level: int) -> str:
    """Resource id for spell slots of a level, e.g. SPELL_SLOT_L1."""
    return f"{SPELL_SLOT_PREFIX}{level}"


def spend_resource(
    creature: CreatureRuntimeState,
    resource_id: str,
    amount: int = 1,
) -> ResourceResult:
    """Spend ``amount`` of a resource.

    Args:
        creature: The creature spending.
        resource_id: Resource id.
        amount: Amount to spend.

    Returns:
        ResourceResult; fails without mutating if the resource is missing
        or too low.

    Raises:
        ResourceError: If ``amount`` is negative.
    """
    if amount < 0:
        raise ResourceError(f"Cannot spend a negative amount ({amount})", resource_id=resource_id)
    resource = creature.get_resource(resource_id)
    if resource is None:
        return ResourceResult(
            success=False,
            reason=f"Resource {resource_id} not found on {creature.name}.",
        )
    if resource.current_value < amount:
        return ResourceResult(
            success=False,
            reason=f"Not enough {resource_id}. Has {resource.current_value}, needs {amount}.",
        )

    resource.current_value -= amount
    logger.debug(
        "Resource spent",
        creature_id=creature.id,
        resource_id=resource_id,
        amount=amount,
        remaining=resource.current_value,
    )
    event = make_event(
        EventType.RESOURCE_SPENT,
        description=f"{creature.name} spends {amount} {resource_id}",
        details=ResourceDetails(
            resource_id=resource_id,
            amount=amount,
            remaining=resource.current_value,
        ),
        source_creature_id=creature.id,
        target_creature_id=creature.id,
    )
    return ResourceResult(success=True, amount=amount, event=event)


def recover_resource(
    creature: CreatureRuntimeState,
    resource_id: str,
    amount: int | None = None,
    *,
    ignore_max: bool = False,
) -> ResourceResult:
    """Recover a resource.

    Args:
        creature: The creature recovering.
        resource_id: Resource id.
        amount: Amount to recover; None recovers up to the maximum, or 1
            when the resource has no maximum.
        ignore_max: Allow the value to exceed its maximum.

    Returns:
        ResourceResult whose ``amount`` is what was actually recovered.
    """
    resource = creature.get_resource(resource_id)
    if resource is None:
        return ResourceResult(
            success=False,
            reason=f"Resource {resource_id} not found on {creature.name}.",
        )

    if amount is None:
        if resource.max_value is None:
            amount = 1
        else:
            amount = max(0, resource.max_value - resource.current_value)

    target_value = resource.current_value + amount
    if resource.max_value is not None and not ignore_max:
        target_value = min(target_value, resource.max_value)
    recovered = max(0, target_value - resource.current_value)
    resource.current_value += recovered

    event = None
    if recovered:
        event = make_event(
            EventType.RESOURCE_GAINED,
            description=f"{creature.name} recovers {recovered} {resource_id}",
            details=ResourceDetails(
                resource_id=resource_id,
                amount=recovered,
                remaining=resource.current_value,
            ),
            source_creature_id=creature.id,
            target_creature_id=creature.id,
        )
    return ResourceResult(success=True, amount=recovered, event=event)


def _recharges_on(
    resource: TrackedResource,
    rest_type: RestType,
    definitions: DefinitionLookup,
) -> bool:
    if rest_type in resource.recharge_on:
        return True
    if resource.definition_id is None:
        return False
    try:
        definition = definitions.get_resource(resource.definition_id)
    except DefinitionNotFoundError:
        return False
    return rest_type in definition.recharge_on


def apply_rest_effects(
    creature: CreatureRuntimeState,
    rest_type: RestType,
    definitions: DefinitionLookup,
) -> list[GameEvent]:
    """Apply the benefits of a rest.

    A long rest restores all hit points, clears temporary hit points and
    recovers half of each hit-dice resource (minimum 1). Any rest
    recovers the resources that recharge on it and resets the action
    economy.

    Args:
        creature: The resting creature.
        rest_type: Short or long rest.
        definitions: Lookup for resource recharge rules.

    Returns:
        RESOURCE_GAINED events for what was recovered.
    """
    events: list[GameEvent] = []
    # TODO: reduce exhaustion by one level on a long rest once exhaustion levels are tracked.
    if rest_type is RestType.LONG_REST:
        update_calculated_stats(creature, definitions)
        creature.current_hp = creature.max_hp_calculated
        creature.temporary_hp = 0

    for resource in creature.tracked_resources:
        if rest_type is RestType.LONG_REST and resource.resource_id.startswith(HIT_DICE_PREFIX):
            half = max(1, (resource.max_value or 0) // 2)
            result = recover_resource(creature, resource.resource_id, half)
        elif _recharges_on(resource, rest_type, definitions):
            result = recover_resource(creature, resource.resource_id)
        else:
            continue
        if result.event is not None:
            events.append(result.event)

    creature.action_economy.reset()
    update_calculated_stats(creature, definitions)
    logger.info("Rest applied", creature_id=creature.id, rest_type=rest_type.value)
    return events


def _slot_level(key: str) -> int | None:
    text = key.upper().removeprefix("L")
    return int(text) if text.isdigit() else None


def _set_resource(
    creature: CreatureRuntimeState,
    resource_id: str,
    maximum: int,
    recharge_on: list[RestType],
    *,
    overwrite: bool = True,
) -> None:
    existing = creature.get_resource(resource_id)
    if existing is None:
        creature.tracked_resources.append(
            TrackedResource(
                resource_id=resource_id,
                current_value=maximum,
                max_value=maximum,
                recharge_on=recharge_on,
            )
        )
        return
    if not overwrite:
        return
    existing.max_value = maximum
    existing.current_value = maximum
    for rest_type in recharge_on:
        if rest_type not in existing.recharge_on:
            existing.recharge_on = [*existing.recharge_on, rest_type]


def initialize_creature_resources(creature: CreatureRuntimeState) -> None:
    """Seed hit dice and spell slots.

    Monsters get ``HIT_DICE_<die>`` from their template's hit dice.
    Player characters get ``SPELL_SLOT_L<n>`` summed over every level
    attained in each class. Re-running refills spell slots to the same
    maximums rather than adding to them; hit dice already tracked are
    left as they are, spent dice included.
    """
    template = creature.creature_definition
    if template is not None and template.hit_points.dice_formula is not None:
        formula = template.hit_points.dice_formula
        _set_resource(
            creature,
            f"{HIT_DICE_PREFIX}{formula.dice_id}",
            formula.dice_count,
            [RestType.LONG_REST],
            overwrite=False,
        )

    slots: dict[int, int] = {}
    for entry in creature.class_levels:
        progression = entry.class_definition.level_progression
        for level in range(1, entry.level + 1):
            granted = progression.get(level)
            if granted is None:
                continue
            for key, count in granted.spell_slots.items():
                slot_level = _slot_level(key)
                if slot_level is None or count <= 0:
                    continue
                slots[slot_level] = slots.get(slot_level, 0) + count

    for slot_level, count in sorted(slots.items()):
        _set_resource(creature, spell_slot_resource_id(slot_level), count, [RestType.LONG_REST])

    logger.debug(
        "Resources initialized",
        creature_id=creature.id,
        resources=[r.resource_id for r in creature.tracked_resources],
    )


def get_resource_state(creature: CreatureRuntimeState, resource_id: str) -> ResourceState | None:
    """Current and max of a resource; also answers HP and TEMP_HP."""
    if resource_id == HP_RESOURCE:
        return ResourceState(HP_RESOURCE, creature.current_hp, creature.max_hp_calculated)
    if resource_id == TEMP_HP_RESOURCE:
        return ResourceState(TEMP_HP_RESOURCE, creature.temporary_hp, None)
    resource = creature.get_resource(resource_id)
    if resource is None:
        return None
    return ResourceState(resource.resource_id, resource.current_value, resource.max_value)


__all__ = [
    "ResourceResult",
    "ResourceState",
    "spell_slot_resource_id",
    "spend_resource",
    "recover_resource",
    "apply_rest_effects",
    "initialize_creature_resources",
    "get_resource_state",
]
