"""Enumeration types for the combat engine.

Values match the uppercase ids used in authored definition data, so an
enum member compares equal to the raw string from a data file.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """The six ability scores."""

    STR = "STR"
    DEX = "DEX"
    CON = "CON"
    INT = "INT"
    WIS = "WIS"
    CHA = "CHA"

    @property
    def save_tag(self) -> str:
        """Bonus/advantage target for saves of this ability (e.g. 'DEX_SAVE')."""
        return f"{self.value}_SAVE"


class Skill(StrEnum):
    """Skills and their default abilities."""

    # Strength skills
    ATHLETICS = "ATHLETICS"

    # Dexterity skills
    ACROBATICS = "ACROBATICS"
    SLEIGHT_OF_HAND = "SLEIGHT_OF_HAND"
    STEALTH = "STEALTH"

    # Intelligence skills
    ARCANA = "ARCANA"
    HISTORY = "HISTORY"
    INVESTIGATION = "INVESTIGATION"
    NATURE = "NATURE"
    RELIGION = "RELIGION"

    # Wisdom skills
    ANIMAL_HANDLING = "ANIMAL_HANDLING"
    INSIGHT = "INSIGHT"
    MEDICINE = "MEDICINE"
    PERCEPTION = "PERCEPTION"
    SURVIVAL = "SURVIVAL"

    # Charisma skills
    DECEPTION = "DECEPTION"
    INTIMIDATION = "INTIMIDATION"
    PERFORMANCE = "PERFORMANCE"
    PERSUASION = "PERSUASION"

    @property
    def ability(self) -> Ability:
        """Get the default ability score for this skill.

        Returns:
            The Ability enum value associated with this skill.
        """
        skill_abilities: dict[Skill, Ability] = {
            Skill.ATHLETICS: Ability.STR,
            Skill.ACROBATICS: Ability.DEX,
            Skill.SLEIGHT_OF_HAND: Ability.DEX,
            Skill.STEALTH: Ability.DEX,
            Skill.ARCANA: Ability.INT,
            Skill.HISTORY: Ability.INT,
            Skill.INVESTIGATION: Ability.INT,
            Skill.NATURE: Ability.INT,
            Skill.RELIGION: Ability.INT,
            Skill.ANIMAL_HANDLING: Ability.WIS,
            Skill.INSIGHT: Ability.WIS,
            Skill.MEDICINE: Ability.WIS,
            Skill.PERCEPTION: Ability.WIS,
            Skill.SURVIVAL: Ability.WIS,
            Skill.DECEPTION: Ability.CHA,
            Skill.INTIMIDATION: Ability.CHA,
            Skill.PERFORMANCE: Ability.CHA,
            Skill.PERSUASION: Ability.CHA,
        }
        return skill_abilities[self]


class EffectType(StrEnum):
    """Effect kinds with dedicated semantics in the effect interpreter."""

    DEAL_DAMAGE = "DEAL_DAMAGE"
    DEAL_DAMAGE_ON_ATTACK_HIT = "DEAL_DAMAGE_ON_ATTACK_HIT"
    APPLY_CONDITION = "APPLY_CONDITION"
    HEAL = "HEAL"
    GRANT_BONUS = "GRANT_BONUS"
    GRANT_ADVANTAGE_ON_ROLL = "GRANT_ADVANTAGE_ON_ROLL"
    IMPOSE_DISADVANTAGE_ON_ROLL = "IMPOSE_DISADVANTAGE_ON_ROLL"
    GRANT_ADVANTAGE_TO_ATTACKERS = "GRANT_ADVANTAGE_TO_ATTACKERS"
    GRANT_DISADVANTAGE_TO_ATTACKERS = "GRANT_DISADVANTAGE_TO_ATTACKERS"
    SET_BASE_AC = "SET_BASE_AC"
    GRANT_RESISTANCE = "GRANT_RESISTANCE"
    GRANT_IMMUNITY = "GRANT_IMMUNITY"
    INCREASE_MAX_HP = "INCREASE_MAX_HP"
    DEFINE_SAVE_DC = "DEFINE_SAVE_DC"


class TargetScope(StrEnum):
    """Who an effect lands on."""

    SELF = "SELF"
    SELF_CONSUMER = "SELF_CONSUMER"
    SELF_WIELDER = "SELF_WIELDER"
    TARGET = "TARGET"

    @property
    def is_self(self) -> bool:
        """Whether the scope resolves to the originator."""
        return self in (TargetScope.SELF, TargetScope.SELF_CONSUMER, TargetScope.SELF_WIELDER)


class ResistanceKind(StrEnum):
    """How a GRANT_RESISTANCE effect modifies damage."""

    RESISTANCE = "RESISTANCE"
    VULNERABILITY = "VULNERABILITY"


class SaveEffect(StrEnum):
    """What a successful save does to a gated effect."""

    HALF_DAMAGE = "HALF_DAMAGE"
    NO_EFFECT = "NO_EFFECT"


class ActionType(StrEnum):
    """Action kinds a combatant can submit on their turn."""

    ATTACK = "ATTACK"
    SPELL = "SPELL"
    ABILITY = "ABILITY"
    ITEM = "ITEM"
    MOVE = "MOVE"
    DODGE = "DODGE"
    DISENGAGE = "DISENGAGE"
    HIDE = "HIDE"
    HELP = "HELP"
    READY = "READY"
    OTHER = "OTHER"
    PASS_TURN = "PASS_TURN"


class ActionCost(StrEnum):
    """Action economy slot a casting time consumes."""

    ACTION = "ACTION"
    BONUS_ACTION = "BONUS_ACTION"
    REACTION = "REACTION"
    OTHER = "OTHER"


class DefinitionSource(StrEnum):
    """Kind of definition an effect batch came from."""

    SPELL = "SPELL"
    ITEM = "ITEM"
    FEATURE = "FEATURE"
    CONDITION = "CONDITION"
    CREATURE_ACTION = "CREATURE_ACTION"
    ACTION = "ACTION"


class RestType(StrEnum):
    """Types of rest."""

    SHORT_REST = "SHORT_REST"
    LONG_REST = "LONG_REST"


class AttackOutcome(StrEnum):
    """Classification of an attack roll."""

    CRITICAL_MISS = "CriticalMiss"
    MISS = "Miss"
    HIT = "Hit"
    CRITICAL_HIT = "CriticalHit"

    @property
    def is_hit(self) -> bool:
        """Whether the attack connects."""
        return self in (AttackOutcome.HIT, AttackOutcome.CRITICAL_HIT)


class CheckOutcome(StrEnum):
    """Result of a save or check against a DC."""

    CRITICAL_SUCCESS = "CriticalSuccess"
    SUCCESS = "Success"
    FAILURE = "Failure"
    CRITICAL_FAILURE = "CriticalFailure"

    @property
    def is_success(self) -> bool:
        """Whether the roll met the DC."""
        return self in (CheckOutcome.SUCCESS, CheckOutcome.CRITICAL_SUCCESS)


class ContestOutcome(StrEnum):
    """Winner of a contested check."""

    PERFORMER_A = "PerformerA"
    PERFORMER_B = "PerformerB"
    TIE = "Tie"


class EventType(StrEnum):
    """Game event tags appended to the combat log."""

    DAMAGE_APPLIED = "DAMAGE_APPLIED"
    HEALING_APPLIED = "HEALING_APPLIED"
    CONDITION_GAINED = "CONDITION_GAINED"
    CONDITION_REMOVED = "CONDITION_REMOVED"
    EFFECT_APPLIED = "EFFECT_APPLIED"
    EFFECT_REMOVED = "EFFECT_REMOVED"
    SPELL_CAST = "SPELL_CAST"
    ATTACK_MADE = "ATTACK_MADE"
    SAVING_THROW_MADE = "SAVING_THROW_MADE"
    SKILL_CHECK_MADE = "SKILL_CHECK_MADE"
    RESOURCE_SPENT = "RESOURCE_SPENT"
    RESOURCE_GAINED = "RESOURCE_GAINED"
    TURN_STARTED = "TURN_STARTED"
    TURN_ENDED = "TURN_ENDED"
    ROUND_STARTED = "ROUND_STARTED"
    ROUND_ENDED = "ROUND_ENDED"
    COMBAT_STARTED = "COMBAT_STARTED"
    COMBAT_ENDED = "COMBAT_ENDED"
    INITIATIVE_ROLLED = "INITIATIVE_ROLLED"
    MOVE_ACTION = "MOVE_ACTION"


__all__ = [
    "Ability",
    "Skill",
    "EffectType",
    "TargetScope",
    "ResistanceKind",
    "SaveEffect",
    "ActionType",
    "ActionCost",
    "DefinitionSource",
    "RestType",
    "AttackOutcome",
    "CheckOutcome",
    "ContestOutcome",
    "EventType",
]
