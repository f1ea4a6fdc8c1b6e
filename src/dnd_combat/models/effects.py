"""Pydantic V2 schemas for the data-driven effect language.

An effect is an immutable, authored record describing one rules effect.
Effects form a closed tagged union discriminated on ``effect_type``: each
kind with dedicated semantics has its own model, and every other type
string lands in :class:`GenericEffect`, which the interpreter treats as a
timed or ongoing marker.

When an effect is applied to a creature it is wrapped in an
:class:`ActiveEffect`, which carries the runtime bookkeeping (instance id,
provenance, remaining rounds) and is the only mutable part.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator

from dnd_combat.models.enums import Ability, EffectType, ResistanceKind, SaveEffect, TargetScope


# =============================================================================
# Building Blocks
# =============================================================================


class DurationValue(BaseModel):
    """A bare value/unit pair, e.g. 1 minute."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: int | None = Field(default=None, description="Amount of time")
    unit: str | None = Field(default=None, description="ROUNDS, MINUTES, HOURS, DAYS")


class DurationSpec(BaseModel):
    """Structured duration as authored on spells and effects.

    Attributes:
        duration_type: INSTANTANEOUS, ROUND_BASED, TIME_BASED,
            CONCENTRATION, UNTIL_DISPELLED or SPECIAL.
        value: Amount of time for round/time based durations.
        unit: Unit of ``value``.
        max_duration: Upper bound, used by concentration.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    duration_type: str | None = Field(default=None, description="Duration type id")
    value: int | None = Field(default=None, description="Amount of time")
    unit: str | None = Field(default=None, description="Unit of value")
    max_duration: DurationValue | None = Field(default=None, description="Upper bound")

    @property
    def is_concentration(self) -> bool:
        """Whether this duration requires concentration."""
        return (self.duration_type or "").upper() == "CONCENTRATION"


Duration = Union[int, str, DurationSpec]
"""Round count, string shorthand ("1 minute"), or structured duration."""


class DamageRoll(BaseModel):
    """One typed damage roll, e.g. 1d8 SLASHING + 3."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dice_count: int = Field(ge=0, description="Number of dice")
    dice_id: str = Field(description="Dice definition id, e.g. D8")
    damage_type: str = Field(description="Damage type id, e.g. SLASHING")
    bonus_damage: int = Field(default=0, description="Static bonus")
    bonus_damage_formula: str | None = Field(default=None, description="Bonus formula")


class HealingRoll(BaseModel):
    """One healing roll, e.g. 2d4 + 2."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dice_count: int = Field(ge=0, description="Number of dice")
    dice_id: str = Field(description="Dice definition id")
    bonus_healing: int = Field(default=0, description="Static bonus")


class SavingThrowSpec(BaseModel):
    """Save that gates an effect.

    Attributes:
        ability: Ability the target saves with.
        dc_formula: Formula for the DC; ``CASTER_SPELL_SAVE_DC`` is
            understood as the originator's spell save DC.
        dc_fixed: Fixed DC used when no formula resolves.
        effect_on_success: HALF_DAMAGE or NO_EFFECT. Unset means the
            effect is avoided entirely.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ability: Ability
    dc_formula: str | None = None
    dc_fixed: int | None = None
    effect_on_success: SaveEffect | None = None


# =============================================================================
# Effect Union
# =============================================================================


class _EffectBase(BaseModel):
    """Fields shared by every effect kind."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_scope: TargetScope | None = Field(default=None, description="Who the effect lands on")
    duration: Duration | None = Field(default=None, description="How long it persists")
    trigger: str | None = Field(default=None, description="Trigger id, e.g. ON_ATTACK_HIT")
    concentration: bool = Field(default=False, description="Requires concentration")
    description: str | None = Field(default=None, description="Human-readable summary")
    is_magical: bool = Field(default=False, description="Magical source")


class DamageEffect(_EffectBase):
    """Deal typed damage, optionally halved or negated by a save."""

    effect_type: Literal["DEAL_DAMAGE", "DEAL_DAMAGE_ON_ATTACK_HIT"] = "DEAL_DAMAGE"
    damage_rolls: list[DamageRoll] = Field(default_factory=list)
    saving_throw: SavingThrowSpec | None = None


class ConditionEffect(_EffectBase):
    """Apply a condition, optionally avoided by a save."""

    effect_type: Literal["APPLY_CONDITION"] = "APPLY_CONDITION"
    condition_id: str = Field(description="Condition definition id")
    saving_throw: SavingThrowSpec | None = None


class HealEffect(_EffectBase):
    """Restore hit points."""

    effect_type: Literal["HEAL"] = "HEAL"
    healing_rolls: list[HealingRoll] = Field(default_factory=list)
    bonus_value: int | None = None
    value_formula: str | None = None


class BonusEffect(_EffectBase):
    """Bonus or advantage/disadvantage modifier on a roll or stat.

    ``bonus_to`` names what is modified: ATTACK_ROLL, SAVING_THROW,
    ARMOR_CLASS, an ability id, a skill id, ``DEX_SAVE`` and so on.
    """

    effect_type: Literal[
        "GRANT_BONUS",
        "GRANT_ADVANTAGE_ON_ROLL",
        "IMPOSE_DISADVANTAGE_ON_ROLL",
        "GRANT_ADVANTAGE_TO_ATTACKERS",
        "GRANT_DISADVANTAGE_TO_ATTACKERS",
    ] = "GRANT_BONUS"
    bonus_to: str | None = None
    bonus_value: int | None = None
    bonus_value_formula: str | None = None


class BaseArmorClassEffect(_EffectBase):
    """Unarmored AC formula, e.g. ``13 + ABILITY_MODIFIER:DEX``."""

    effect_type: Literal["SET_BASE_AC"] = "SET_BASE_AC"
    ac_value_formula: str


class ResistanceEffect(_EffectBase):
    """Resistance (or vulnerability) to one damage type or all damage."""

    effect_type: Literal["GRANT_RESISTANCE"] = "GRANT_RESISTANCE"
    resistance_scope: str = Field(description="Damage type id or ALL_DAMAGE")
    resistance_type: ResistanceKind | None = Field(
        default=None,
        description="Unset means RESISTANCE",
    )


class ImmunityEffect(_EffectBase):
    """Immunity to a damage type, all damage, or a list of damage types."""

    effect_type: Literal["GRANT_IMMUNITY"] = "GRANT_IMMUNITY"
    immunity_scope: str | None = Field(default=None, description="Damage type id or ALL_DAMAGE")
    specific_immunities: list[str] = Field(default_factory=list, description="Damage type ids")


class MaxHitPointsEffect(_EffectBase):
    """Raise maximum hit points."""

    effect_type: Literal["INCREASE_MAX_HP"] = "INCREASE_MAX_HP"
    bonus_value: int | None = None
    value_formula: str | None = None


class SaveDcEffect(_EffectBase):
    """Feature-defined spell save DC formula."""

    effect_type: Literal["DEFINE_SAVE_DC"] = "DEFINE_SAVE_DC"
    value_formula: str


class GenericEffect(_EffectBase):
    """Any effect type without dedicated interpreter semantics.

    Extra authored fields are kept as-is for consumers that understand
    them.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    effect_type: str
    bonus_to: str | None = None

    @model_validator(mode="after")
    def reject_dedicated_types(self) -> "GenericEffect":
        """Keep the union closed: dedicated types must use their own model."""
        if self.effect_type in EffectType.__members__:
            raise ValueError(f"{self.effect_type} must use its dedicated effect model")
        return self


_EFFECT_TAGS: dict[str, str] = {
    EffectType.DEAL_DAMAGE: "damage",
    EffectType.DEAL_DAMAGE_ON_ATTACK_HIT: "damage",
    EffectType.APPLY_CONDITION: "condition",
    EffectType.HEAL: "heal",
    EffectType.GRANT_BONUS: "bonus",
    EffectType.GRANT_ADVANTAGE_ON_ROLL: "bonus",
    EffectType.IMPOSE_DISADVANTAGE_ON_ROLL: "bonus",
    EffectType.GRANT_ADVANTAGE_TO_ATTACKERS: "bonus",
    EffectType.GRANT_DISADVANTAGE_TO_ATTACKERS: "bonus",
    EffectType.SET_BASE_AC: "base_ac",
    EffectType.GRANT_RESISTANCE: "resistance",
    EffectType.GRANT_IMMUNITY: "immunity",
    EffectType.INCREASE_MAX_HP: "max_hp",
    EffectType.DEFINE_SAVE_DC: "save_dc",
}


def _effect_tag(value: Any) -> str:
    if isinstance(value, dict):
        effect_type = value.get("effect_type")
    else:
        effect_type = getattr(value, "effect_type", None)
    return _EFFECT_TAGS.get(str(effect_type), "generic")


Effect = Annotated[
    Union[
        Annotated[DamageEffect, Tag("damage")],
        Annotated[ConditionEffect, Tag("condition")],
        Annotated[HealEffect, Tag("heal")],
        Annotated[BonusEffect, Tag("bonus")],
        Annotated[BaseArmorClassEffect, Tag("base_ac")],
        Annotated[ResistanceEffect, Tag("resistance")],
        Annotated[ImmunityEffect, Tag("immunity")],
        Annotated[MaxHitPointsEffect, Tag("max_hp")],
        Annotated[SaveDcEffect, Tag("save_dc")],
        Annotated[GenericEffect, Tag("generic")],
    ],
    Discriminator(_effect_tag),
]
"""Any authored effect, dispatched on ``effect_type``."""


# =============================================================================
# Runtime Instance
# =============================================================================


class ActiveEffect(BaseModel):
    """An effect currently affecting a creature.

    Attributes:
        instance_id: Unique id of this application.
        source_definition_id: Spell/item/feature/condition id it came from.
        source_creature_id: Creature that applied it.
        remaining_duration_rounds: Rounds left; None means indefinite.
        concentration: Whether the source is held by concentration.
        effect: The applied effect, with any formula already resolved.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    instance_id: str = Field(min_length=1)
    source_definition_id: str
    source_creature_id: str | None = None
    remaining_duration_rounds: int | None = Field(default=None, ge=0)
    concentration: bool = False
    effect: Effect

    @property
    def effect_type(self) -> str:
        """The wrapped effect's type string."""
        return str(self.effect.effect_type)

    @property
    def bonus_to(self) -> str | None:
        """The wrapped effect's bonus target, when it has one."""
        return getattr(self.effect, "bonus_to", None)

    @property
    def trigger(self) -> str | None:
        """The wrapped effect's trigger."""
        return self.effect.trigger


__all__ = [
    "DurationValue",
    "DurationSpec",
    "Duration",
    "DamageRoll",
    "HealingRoll",
    "SavingThrowSpec",
    "DamageEffect",
    "ConditionEffect",
    "HealEffect",
    "BonusEffect",
    "BaseArmorClassEffect",
    "ResistanceEffect",
    "ImmunityEffect",
    "MaxHitPointsEffect",
    "SaveDcEffect",
    "GenericEffect",
    "Effect",
    "ActiveEffect",
]
