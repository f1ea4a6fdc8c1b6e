"""Rules constants shared across the engine.

Identifiers here match the ids used in authored definition data.
"""

from __future__ import annotations

# =============================================================================
# Ability Scores
# =============================================================================

ABILITY_IDS = ("STR", "DEX", "CON", "INT", "WIS", "CHA")
"""Ability score ids, in canonical order."""

DEFAULT_ABILITY_SCORE = 10
"""Score assumed when a creature has no value recorded for an ability."""

# =============================================================================
# Proficiency
# =============================================================================

PROFICIENCY_BY_LEVEL: tuple[tuple[int, int], ...] = (
    (17, 6),
    (13, 5),
    (9, 4),
    (5, 3),
    (1, 2),
)
"""(minimum level, bonus) breakpoints, highest first."""

# =============================================================================
# Time
# =============================================================================

ROUNDS_PER_MINUTE = 10
"""One combat round is six seconds."""

ROUNDS_PER_HOUR = 600

ROUNDS_PER_DAY = 14400

# =============================================================================
# Conditions
# =============================================================================

UNCONSCIOUS = "UNCONSCIOUS"
DEAD = "DEAD"

INCAPACITATING_CONDITIONS = frozenset(
    {"INCAPACITATED", "STUNNED", "PARALYZED", "UNCONSCIOUS", "PETRIFIED"}
)
"""Conditions that make a creature skip its turn."""

# =============================================================================
# Resource Ids
# =============================================================================

SPELL_SLOT_PREFIX = "SPELL_SLOT_L"
HIT_DICE_PREFIX = "HIT_DICE_"
HP_RESOURCE = "HP"
TEMP_HP_RESOURCE = "TEMP_HP"

# =============================================================================
# Bonus Targets
# =============================================================================

ATTACK_ROLL = "ATTACK_ROLL"
SAVING_THROW = "SAVING_THROW"
ABILITY_CHECK = "ABILITY_CHECK"
ARMOR_CLASS = "ARMOR_CLASS"
SPELL_SAVE_DC = "SPELL_SAVE_DC"
INITIATIVE_ROLL = "INITIATIVE_ROLL"
ALL_DAMAGE = "ALL_DAMAGE"
CASTER_SPELL_SAVE_DC = "CASTER_SPELL_SAVE_DC"

# =============================================================================
# Action Sources
# =============================================================================

DODGE_ACTION = "DODGE_ACTION"
ON_ATTACK_HIT = "ON_ATTACK_HIT"
