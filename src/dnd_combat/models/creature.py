"""Pydantic V2 schema for a creature's mutable combat state.

A CreatureRuntimeState is the record the engine mutates: hit points,
derived stats, resources, active conditions and effects, and the
per-turn action economy. It is exclusively owned by the combat snapshot.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from dnd_combat.core.constants import DEFAULT_ABILITY_SCORE, INCAPACITATING_CONDITIONS
from dnd_combat.models.definitions import (
    ClassDefinition,
    ConditionDefinition,
    CreatureSenses,
    CreatureTemplateDefinition,
)
from dnd_combat.models.effects import ActiveEffect
from dnd_combat.models.enums import Ability, RestType


def calculate_modifier(score: int) -> int:
    """Calculate the ability modifier from an ability score.

    The modifier is calculated as: (score - 10) // 2

    Args:
        score: The ability score.

    Returns:
        The ability modifier.

    Example:
        >>> calculate_modifier(10)
        0
        >>> calculate_modifier(9)
        -1
    """
    return (score - 10) // 2


class ClassLevelEntry(BaseModel):
    """Levels held in one class."""

    model_config = ConfigDict(extra="forbid")

    class_definition: ClassDefinition
    level: Annotated[int, Field(ge=1, le=20)]
    subclass_id: str | None = None

    @property
    def class_id(self) -> str:
        """Id of the class."""
        return self.class_definition.class_id


class TrackedResource(BaseModel):
    """A named, countable capacity such as a spell slot or hit die.

    Attributes:
        resource_id: Resource id, e.g. SPELL_SLOT_L1 or HIT_DICE_D8.
        current_value: Uses remaining.
        max_value: Cap; None means uncapped.
        recharge_on: Rest types that fully restore the resource.
        definition_id: Optional ResourceDefinition with further recharge rules.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    resource_id: str = Field(min_length=1)
    current_value: Annotated[int, Field(ge=0)] = 0
    max_value: Annotated[int, Field(ge=0)] | None = None
    recharge_on: list[RestType] = Field(default_factory=list)
    definition_id: str | None = None


class ActiveCondition(BaseModel):
    """A condition currently affecting a creature.

    Attributes:
        condition_id: Condition id, e.g. POISONED.
        definition: Resolved condition definition.
        source_effect_id: Instance id of the effect application that caused it.
        source_creature_id: Creature that applied it.
        source_definition_id: Spell/item/feature that applied it.
        remaining_duration_rounds: Rounds left; None means indefinite.
        save_to_end_dc: DC of a save that ends it, if any.
        save_ability: Ability for that save.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    condition_id: str = Field(min_length=1)
    definition: ConditionDefinition | None = None
    source_effect_id: str | None = None
    source_creature_id: str | None = None
    source_definition_id: str | None = None
    remaining_duration_rounds: Annotated[int, Field(ge=0)] | None = None
    save_to_end_dc: int | None = None
    save_ability: Ability | None = None


class ConcentrationPointer(BaseModel):
    """The spell effect a caster is concentrating on."""

    model_config = ConfigDict(extra="forbid")

    spell_id: str | None = None
    effect_instance_id: str


class ActionEconomy(BaseModel):
    """Per-turn action budget."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    has_action: bool = True
    has_bonus_action: bool = True
    has_reaction: bool = True
    movement_used: Annotated[int, Field(ge=0)] = 0

    def reset(self) -> None:
        """Restore the full budget at the start of a turn."""
        self.has_action = True
        self.has_bonus_action = True
        self.has_reaction = True
        self.movement_used = 0


class CreatureRuntimeState(BaseModel):
    """A creature participating in combat.

    Derived fields (``*_calculated``, ``ability_scores_effective``,
    ``proficiency_bonus``, ``armor_class``) are recomputed by
    ``update_calculated_stats`` and should not be set by hand except to
    seed a creature before combat.

    Attributes:
        id: Unique id within the encounter.
        name: Display name.
        is_player_character: Player character vs monster/NPC.
        creature_definition: Monster template, if any.
        class_levels: Player class levels.
        current_hp: Current hit points.
        temporary_hp: Temporary hit points.
        max_hp_base: Max HP before effects.
        max_hp_calculated: Effective max HP.
        ability_scores_base: Ability scores keyed by ability id.
        ability_scores_effective: Scores after active effects.
        equipped_items: Slot name (armor, shield, main_hand, ...) to item id.
        active_conditions: Conditions currently applied.
        active_effects: Effects currently applied.
        concentration: Spell effect held by concentration.
        action_economy: Per-turn budget.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(min_length=1, description="Unique creature instance id")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    is_player_character: bool = False

    creature_definition: CreatureTemplateDefinition | None = None
    species_id: str | None = None
    background_id: str | None = None
    class_levels: list[ClassLevelEntry] = Field(default_factory=list)
    total_level: Annotated[int, Field(ge=0)] = 0

    current_hp: Annotated[int, Field(ge=0)] = 0
    temporary_hp: Annotated[int, Field(ge=0)] = 0
    max_hp_base: Annotated[int, Field(ge=0)] = 0
    max_hp_calculated: Annotated[int, Field(ge=0)] = 0

    ability_scores_base: dict[str, int] = Field(default_factory=dict)
    ability_scores_effective: dict[str, int] = Field(default_factory=dict)
    proficiency_bonus: int = 2
    armor_class: int = 10
    armor_class_breakdown: str = ""

    speeds: dict[str, int] = Field(default_factory=dict)
    senses: CreatureSenses = Field(default_factory=CreatureSenses)
    tracked_resources: list[TrackedResource] = Field(default_factory=list)

    spellcasting_ability: Ability | None = None
    known_spell_ids: list[str] = Field(default_factory=list)
    prepared_spell_ids: list[str] = Field(default_factory=list)
    skill_proficiencies: list[str] = Field(default_factory=list)
    skill_expertise: list[str] = Field(default_factory=list)

    equipped_items: dict[str, str] = Field(default_factory=dict)
    inventory_item_ids: list[str] = Field(default_factory=list)
    attuned_item_ids: list[str] = Field(default_factory=list)

    active_conditions: list[ActiveCondition] = Field(default_factory=list)
    active_effects: list[ActiveEffect] = Field(default_factory=list)
    concentration: ConcentrationPointer | None = None

    initiative_roll: int | None = None
    action_economy: ActionEconomy = Field(default_factory=ActionEconomy)

    def has_condition(self, condition_id: str) -> bool:
        """Check whether a condition is active.

        Args:
            condition_id: Condition id to look for.

        Returns:
            True if the condition is active.
        """
        return any(c.condition_id == condition_id for c in self.active_conditions)

    def ability_score(self, ability: str) -> int:
        """Effective score for an ability, falling back to base, then 10."""
        key = str(ability).upper()
        if key in self.ability_scores_effective:
            return self.ability_scores_effective[key]
        return self.ability_scores_base.get(key, DEFAULT_ABILITY_SCORE)

    def ability_modifier(self, ability: str) -> int:
        """Modifier of the effective score for an ability."""
        return calculate_modifier(self.ability_score(ability))

    def get_resource(self, resource_id: str) -> TrackedResource | None:
        """Find a tracked resource by id."""
        for resource in self.tracked_resources:
            if resource.resource_id == resource_id:
                return resource
        return None

    def find_effect(self, instance_id: str) -> ActiveEffect | None:
        """Find an active effect by instance id."""
        for effect in self.active_effects:
            if effect.instance_id == instance_id:
                return effect
        return None

    @property
    def is_incapacitated(self) -> bool:
        """Whether a condition prevents the creature from taking turns."""
        return any(c.condition_id in INCAPACITATING_CONDITIONS for c in self.active_conditions)

    @property
    def can_act(self) -> bool:
        """Whether the creature can take a turn.

        Returns:
            True if HP > 0 and no incapacitating condition is active.
        """
        return self.current_hp > 0 and not self.is_incapacitated


__all__ = [
    "calculate_modifier",
    "ClassLevelEntry",
    "TrackedResource",
    "ActiveCondition",
    "ConcentrationPointer",
    "ActionEconomy",
    "CreatureRuntimeState",
]
