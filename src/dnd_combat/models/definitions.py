"""Pydantic V2 schemas for immutable rules definitions.

Definitions are the authored master data the engine resolves against:
dice, conditions, spells, items, features, classes, creature templates,
skills and resources. They arrive fully resolved from the data layer and
are never mutated during combat.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from dnd_combat.models.effects import DamageRoll, Duration, DurationSpec, Effect
from dnd_combat.models.enums import Ability, ActionCost, RestType


class _Definition(BaseModel):
    """Common configuration for definitions."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class DiceDefinition(_Definition):
    """A die type, e.g. D8 with 8 faces."""

    dice_id: str
    faces: int


class ConditionDefinition(_Definition):
    """A named condition and the effects it imposes while active.

    Attributes:
        condition_id: Unique id, e.g. POISONED.
        name: Display name.
        description: Rules text.
        parsed_effects: Effects applied when the condition is gained and
            removed with it.
    """

    condition_id: str
    name: str
    description: str = ""
    parsed_effects: list[Effect] = Field(default_factory=list)


# =============================================================================
# Spells
# =============================================================================


class CastingTime(_Definition):
    """How long a spell takes to cast."""

    action_type: ActionCost = ActionCost.ACTION
    value: int = 1


class SpellComponents(_Definition):
    """Verbal/somatic/material requirements.

    A material component with a ``material_cost`` must be supplied
    explicitly (the caster cannot substitute a focus).
    """

    verbal: bool = False
    somatic: bool = False
    material: bool = False
    material_description: str | None = None
    material_cost: int | None = None


class SpellDefinition(_Definition):
    """A castable spell.

    Attributes:
        spell_id: Unique id, e.g. MAGIC_MISSILE.
        name: Display name.
        level: Spell level, 0 for cantrips.
        casting_time: Action economy cost.
        components: Casting components.
        duration: Spell duration.
        parsed_effects: Effects resolved on cast.
    """

    spell_id: str
    name: str
    level: int = Field(ge=0, le=9)
    casting_time: CastingTime = Field(default_factory=CastingTime)
    components: SpellComponents = Field(default_factory=SpellComponents)
    duration: Duration | None = None
    parsed_effects: list[Effect] = Field(default_factory=list)

    @property
    def requires_concentration(self) -> bool:
        """Whether the spell is held by concentration."""
        if isinstance(self.duration, DurationSpec):
            return self.duration.is_concentration
        if isinstance(self.duration, str):
            return self.duration.strip().lower().startswith("concentration")
        return False


# =============================================================================
# Items
# =============================================================================


class RangeValue(_Definition):
    """Reach or range of an attack, in feet."""

    value: int | None = None
    unit: str = "FEET"
    short: int | None = None
    long: int | None = None


class WeaponProperties(_Definition):
    """Weapon statistics."""

    damage_rolls: list[DamageRoll] = Field(default_factory=list)
    range: RangeValue | None = None
    properties: list[str] = Field(default_factory=list, description="FINESSE, RANGED, ...")

    @property
    def is_finesse(self) -> bool:
        """Whether the wielder may use DEX instead of STR."""
        return "FINESSE" in (p.upper() for p in self.properties)

    @property
    def is_ranged(self) -> bool:
        """Whether the weapon attacks with DEX."""
        return "RANGED" in (p.upper() for p in self.properties)


class ArmorProperties(_Definition):
    """Armor or shield statistics.

    Attributes:
        base_ac: Body armor base AC.
        add_dex_modifier: Whether DEX modifier is added.
        max_dex_bonus: Cap on the DEX contribution; None is uncapped.
        ac_bonus: Flat bonus for shields.
    """

    base_ac: int | None = None
    add_dex_modifier: bool = True
    max_dex_bonus: int | None = None
    ac_bonus: int = 0


class ItemDefinition(_Definition):
    """A weapon, armor, shield or other item."""

    item_id: str
    name: str
    weapon: WeaponProperties | None = None
    armor: ArmorProperties | None = None
    parsed_effects: list[Effect] = Field(default_factory=list)


class FeatureDefinition(_Definition):
    """A class, species or feat feature."""

    feature_id: str
    name: str
    parsed_effects: list[Effect] = Field(default_factory=list)


# =============================================================================
# Classes
# =============================================================================


class LevelProgression(_Definition):
    """What a class grants at one level.

    ``spell_slots`` maps slot level keys (``"1"`` or ``"L1"``) to the
    number of slots gained; a ``cantripsKnown`` key is ignored.
    """

    spell_slots: dict[str, int] = Field(default_factory=dict)
    feature_ids: list[str] = Field(default_factory=list)


class ClassDefinition(_Definition):
    """A character class."""

    class_id: str
    name: str
    hit_die: str = Field(description="Dice definition id, e.g. D10")
    saving_throw_proficiencies: list[Ability] = Field(default_factory=list)
    spellcasting_ability: Ability | None = None
    level_progression: dict[int, LevelProgression] = Field(default_factory=dict)


# =============================================================================
# Creature Templates
# =============================================================================


class HitDiceFormula(_Definition):
    """Monster hit dice, e.g. 2d6 + 0."""

    dice_count: int = Field(ge=0)
    dice_id: str
    bonus: int = 0
    bonus_formula: str | None = None


class HitPointsInfo(_Definition):
    """Monster hit points as printed in a stat block."""

    average: int = Field(ge=1)
    dice_formula: HitDiceFormula | None = None


class ArmorClassInfo(_Definition):
    """Printed armor class, used as natural armor when nothing is worn."""

    value: int
    calculation_details: str = ""


class CreatureSenses(BaseModel):
    """Senses; passive perception is recalculated by the engine."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    darkvision: int | None = None
    blindsight: int | None = None
    tremorsense: int | None = None
    truesight: int | None = None
    passive_perception: int | None = None


class CreatureAction(_Definition):
    """An action from a monster stat block.

    Attributes:
        action_name: Name the player/AI selects, e.g. "Scimitar".
        attack_bonus_formula: Formula for the to-hit bonus.
        attack_bonus_value: Fixed to-hit bonus.
        associated_ability: Ability used for fallback bonuses.
        on_hit_effects: Effects applied on a hit; DEAL_DAMAGE entries
            provide the attack's damage.
    """

    action_name: str
    action_type: str = "MELEE_WEAPON_ATTACK"
    attack_bonus_formula: str | None = None
    attack_bonus_value: int | None = None
    associated_ability: Ability | None = None
    range: RangeValue | None = None
    on_hit_effects: list[Effect] = Field(default_factory=list)


class CreatureTemplateDefinition(_Definition):
    """A monster stat block."""

    creature_id: str
    name: str
    armor_class: ArmorClassInfo | None = None
    hit_points: HitPointsInfo
    speeds: dict[str, int] = Field(default_factory=lambda: {"WALK": 30})
    ability_scores: dict[Ability, int] = Field(default_factory=dict)
    saving_throw_proficiencies: list[Ability] = Field(default_factory=list)
    skill_proficiencies: list[str] = Field(default_factory=list)
    senses: CreatureSenses = Field(default_factory=CreatureSenses)
    proficiency_bonus: int = 2
    actions: list[CreatureAction] = Field(default_factory=list)


# =============================================================================
# Lookups
# =============================================================================


class SkillDefinition(_Definition):
    """A skill and its default ability."""

    skill_id: str
    name: str
    default_ability: Ability


class ResourceDefinition(_Definition):
    """Recharge rules for a named resource."""

    resource_id: str
    name: str
    recharge_on: list[RestType] = Field(default_factory=list)
    max_static: int | None = None


Definition = Union[
    DiceDefinition,
    ConditionDefinition,
    SpellDefinition,
    ItemDefinition,
    FeatureDefinition,
    ClassDefinition,
    CreatureTemplateDefinition,
    SkillDefinition,
    ResourceDefinition,
]
"""Any master-data definition."""


__all__ = [
    "DiceDefinition",
    "ConditionDefinition",
    "CastingTime",
    "SpellComponents",
    "SpellDefinition",
    "RangeValue",
    "WeaponProperties",
    "ArmorProperties",
    "ItemDefinition",
    "FeatureDefinition",
    "LevelProgression",
    "ClassDefinition",
    "HitDiceFormula",
    "HitPointsInfo",
    "ArmorClassInfo",
    "CreatureSenses",
    "CreatureAction",
    "CreatureTemplateDefinition",
    "SkillDefinition",
    "ResourceDefinition",
    "Definition",
]
