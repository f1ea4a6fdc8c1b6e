"""Pydantic V2 schemas for the combat engine.

Definitions are immutable master data loaded from content files. Runtime
state (creatures, active effects, the combat snapshot) is mutable and
validated on assignment.

Submodules:
    enums: Enumeration types (Ability, EffectType, EventType, etc.)
    effects: Effect variants and active effect instances
    definitions: Master data (spells, items, conditions, templates)
    creature: Per-combatant runtime state
    events: Game events and their typed payloads
    combat: Combat snapshot, action commands and results

Example:
    >>> from dnd_combat.models import CreatureRuntimeState, ActionChoice
    >>> goblin = CreatureRuntimeState(id="goblin-1", name="Goblin", current_hp=7)
    >>> choice = ActionChoice(actor_id="goblin-1", action_type="DODGE")
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from dnd_combat.models.enums import (
    Ability,
    ActionCost,
    ActionType,
    AttackOutcome,
    CheckOutcome,
    ContestOutcome,
    DefinitionSource,
    EffectType,
    EventType,
    ResistanceKind,
    RestType,
    SaveEffect,
    Skill,
    TargetScope,
)

# =============================================================================
# Effects
# =============================================================================
from dnd_combat.models.effects import (
    ActiveEffect,
    BaseArmorClassEffect,
    BonusEffect,
    ConditionEffect,
    DamageEffect,
    DamageRoll,
    Duration,
    DurationSpec,
    DurationValue,
    Effect,
    GenericEffect,
    HealEffect,
    HealingRoll,
    ImmunityEffect,
    MaxHitPointsEffect,
    ResistanceEffect,
    SaveDcEffect,
    SavingThrowSpec,
)

# =============================================================================
# Definitions
# =============================================================================
from dnd_combat.models.definitions import (
    ArmorClassInfo,
    ArmorProperties,
    CastingTime,
    ClassDefinition,
    ConditionDefinition,
    CreatureAction,
    CreatureSenses,
    CreatureTemplateDefinition,
    Definition,
    DiceDefinition,
    FeatureDefinition,
    HitDiceFormula,
    HitPointsInfo,
    ItemDefinition,
    LevelProgression,
    RangeValue,
    ResourceDefinition,
    SkillDefinition,
    SpellComponents,
    SpellDefinition,
    WeaponProperties,
)

# =============================================================================
# Runtime State
# =============================================================================
from dnd_combat.models.creature import (
    ActionEconomy,
    ActiveCondition,
    ClassLevelEntry,
    ConcentrationPointer,
    CreatureRuntimeState,
    TrackedResource,
    calculate_modifier,
)
from dnd_combat.models.events import (
    AttackMadeDetails,
    ConditionChangeDetails,
    DamageAppliedDetails,
    DamageBreakdownEntry,
    EffectChangeDetails,
    GameEvent,
    HealingAppliedDetails,
    InitiativeDetails,
    MoveDetails,
    ResourceDetails,
    SavingThrowDetails,
    SpellCastDetails,
    make_event,
)
from dnd_combat.models.combat import (
    ActionChoice,
    ActionResult,
    CombatPhase,
    CombatStateSnapshot,
    InitiativeEntry,
    Point,
    TargetInfo,
)


__all__ = [
    # Enums
    "Ability",
    "ActionCost",
    "ActionType",
    "AttackOutcome",
    "CheckOutcome",
    "ContestOutcome",
    "DefinitionSource",
    "EffectType",
    "EventType",
    "ResistanceKind",
    "RestType",
    "SaveEffect",
    "Skill",
    "TargetScope",
    # Effects
    "ActiveEffect",
    "BaseArmorClassEffect",
    "BonusEffect",
    "ConditionEffect",
    "DamageEffect",
    "DamageRoll",
    "Duration",
    "DurationSpec",
    "DurationValue",
    "Effect",
    "GenericEffect",
    "HealEffect",
    "HealingRoll",
    "ImmunityEffect",
    "MaxHitPointsEffect",
    "ResistanceEffect",
    "SaveDcEffect",
    "SavingThrowSpec",
    # Definitions
    "ArmorClassInfo",
    "ArmorProperties",
    "CastingTime",
    "ClassDefinition",
    "ConditionDefinition",
    "CreatureAction",
    "CreatureSenses",
    "CreatureTemplateDefinition",
    "Definition",
    "DiceDefinition",
    "FeatureDefinition",
    "HitDiceFormula",
    "HitPointsInfo",
    "ItemDefinition",
    "LevelProgression",
    "RangeValue",
    "ResourceDefinition",
    "SkillDefinition",
    "SpellComponents",
    "SpellDefinition",
    "WeaponProperties",
    # Runtime state
    "ActionEconomy",
    "ActiveCondition",
    "ClassLevelEntry",
    "ConcentrationPointer",
    "CreatureRuntimeState",
    "TrackedResource",
    "calculate_modifier",
    # Events
    "AttackMadeDetails",
    "ConditionChangeDetails",
    "DamageAppliedDetails",
    "DamageBreakdownEntry",
    "EffectChangeDetails",
    "GameEvent",
    "HealingAppliedDetails",
    "InitiativeDetails",
    "MoveDetails",
    "ResourceDetails",
    "SavingThrowDetails",
    "SpellCastDetails",
    "make_event",
    # Combat
    "ActionChoice",
    "ActionResult",
    "CombatPhase",
    "CombatStateSnapshot",
    "InitiativeEntry",
    "Point",
    "TargetInfo",
]
