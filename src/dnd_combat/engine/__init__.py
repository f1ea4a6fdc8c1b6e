"""Rules engine for turn-based combat resolution.

Submodules:
    registry: Definition lookup and the in-memory registry
    dice: Dice rolling with 5E mechanics (d20 library)
    formula: Safe arithmetic formula evaluation over creature state
    calculations: Derived stats (modifiers, proficiency, HP, save DCs)
    armor_class: Armor class calculation
    attack: Attack description and resolution
    saving_throw: Saving throws
    skill_check: Skill checks and contests
    damage: Damage defenses and HP application
    effects: Effect interpreter and duration tracking
    resources: Resources, rests and spell slots
    spellcasting: Spell casting orchestration
    turn_manager: Initiative, turns, rounds and action dispatch

Example:
    >>> from dnd_combat.engine import DefinitionRegistry, DiceRoller, TurnManager
    >>> manager = TurnManager(DefinitionRegistry(), dice=DiceRoller(seed=7))
    >>> snapshot = manager.start_combat([fighter, goblin])
"""

from __future__ import annotations

from dnd_combat.engine.armor_class import ArmorClassResult, calculate_armor_class
from dnd_combat.engine.attack import (
    AttackDescription,
    AttackResolution,
    SituationalModifiers,
    describe_creature_action,
    describe_weapon_attack,
    resolve_attack,
)
from dnd_combat.engine.calculations import (
    attack_bonus,
    initiative_modifier,
    max_hit_points,
    proficiency_bonus,
    save_bonus,
    skill_bonus,
    spell_save_dc,
    update_calculated_stats,
)
from dnd_combat.engine.damage import (
    DamageApplicationResult,
    DamageInstance,
    calculate_damage,
)

# =============================================================================
# Dice Rolling
# =============================================================================
from dnd_combat.engine.dice import (
    D20Roll,
    DamageRollResult,
    DiceRoller,
    DiceRollResult,
    RandomSource,
    RollType,
)
from dnd_combat.engine.effects import (
    EffectExecutor,
    EffectOutcome,
    duration_to_rounds,
)
from dnd_combat.engine.formula import (
    ExecutionContext,
    FormulaContext,
    FormulaResult,
    evaluate_formula,
)
from dnd_combat.engine.registry import DefinitionLookup, DefinitionRegistry
from dnd_combat.engine.resources import (
    ResourceResult,
    apply_rest_effects,
    get_resource_state,
    initialize_creature_resources,
    recover_resource,
    spend_resource,
)
from dnd_combat.engine.saving_throw import CheckResolution, resolve_saving_throw
from dnd_combat.engine.skill_check import (
    ContestResolution,
    resolve_contested_check,
    resolve_skill_check,
)
from dnd_combat.engine.spellcasting import SpellcastingEngine, SpellcastResult

# =============================================================================
# Turn Management
# =============================================================================
from dnd_combat.engine.turn_manager import TurnManager


__all__ = [
    # Registry
    "DefinitionLookup",
    "DefinitionRegistry",
    # Dice
    "D20Roll",
    "DamageRollResult",
    "DiceRollResult",
    "DiceRoller",
    "RandomSource",
    "RollType",
    # Formulas
    "ExecutionContext",
    "FormulaContext",
    "FormulaResult",
    "evaluate_formula",
    # Calculations
    "attack_bonus",
    "calculate_armor_class",
    "ArmorClassResult",
    "initiative_modifier",
    "max_hit_points",
    "proficiency_bonus",
    "save_bonus",
    "skill_bonus",
    "spell_save_dc",
    "update_calculated_stats",
    # Resolution
    "AttackDescription",
    "AttackResolution",
    "SituationalModifiers",
    "describe_creature_action",
    "describe_weapon_attack",
    "resolve_attack",
    "CheckResolution",
    "resolve_saving_throw",
    "ContestResolution",
    "resolve_contested_check",
    "resolve_skill_check",
    "DamageApplicationResult",
    "DamageInstance",
    "calculate_damage",
    # Effects and resources
    "EffectExecutor",
    "EffectOutcome",
    "duration_to_rounds",
    "ResourceResult",
    "apply_rest_effects",
    "get_resource_state",
    "initialize_creature_resources",
    "recover_resource",
    "spend_resource",
    "SpellcastResult",
    "SpellcastingEngine",
    # Turn management
    "TurnManager",
]
