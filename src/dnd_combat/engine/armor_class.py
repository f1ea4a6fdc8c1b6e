"""Armor class calculator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dnd_combat.core.constants import ARMOR_CLASS
from dnd_combat.core.exceptions import CombatError
from dnd_combat.core.logging import get_logger
from dnd_combat.engine.calculations import effect_amount
from dnd_combat.engine.formula import FormulaContext, evaluate_formula
from dnd_combat.models.effects import BaseArmorClassEffect
from dnd_combat.models.enums import Ability, EffectType


if TYPE_CHECKING:
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.creature import CreatureRuntimeState
    from dnd_combat.models.definitions import ArmorProperties, ItemDefinition

logger = get_logger(__name__)

ARMOR_SLOT = "armor"
SHIELD_SLOT = "shield"


@dataclass(frozen=True)
class ArmorClassResult:
    """Computed armor class.

    Attributes:
        base_formula_ac: AC from armor, natural armor or an unarmored
            formula, before shields and bonuses.
        final_ac: AC after shields and bonuses.
        parts: Calculation trail, one entry per contribution.
    """

    base_formula_ac: int
    final_ac: int
    parts: tuple[str, ...] = field(default_factory=tuple)

    @property
    def breakdown(self) -> str:
        """Human-readable calculation trail."""
        return " + ".join(self.parts) + f" = {self.final_ac}"


def _armor_properties(
    creature: CreatureRuntimeState,
    slot: str,
    definitions: DefinitionLookup,
) -> tuple[ItemDefinition, ArmorProperties] | None:
    item_id = creature.equipped_items.get(slot)
    if not item_id:
        return None
    item = definitions.get_item(item_id)
    if item.armor is None:
        raise CombatError(
            f"Item {item.item_id} equipped as {slot} has no armor properties",
            combatant_id=creature.id,
        )
    return item, item.armor


def calculate_armor_class(
    creature: CreatureRuntimeState,
    definitions: DefinitionLookup,
) -> ArmorClassResult:
    """Calculate a creature's armor class.

    The base is worn armor (with a possibly capped DEX bonus), else the
    template's natural armor, else 10 + DEX. Without worn armor any
    SET_BASE_AC effect whose value beats the current base replaces it. A
    shield and GRANT_BONUS effects on ARMOR_CLASS are then added.

    Args:
        creature: The creature.
        definitions: Lookup for equipped items.

    Returns:
        ArmorClassResult with the base, the final AC and a trail.

    Raises:
        CombatError: If an item in the armor or shield slot is not armor.
    """
    dex = creature.ability_modifier(Ability.DEX)
    template = creature.creature_definition
    parts: list[str] = []

    armor = _armor_properties(creature, ARMOR_SLOT, definitions)
    if armor is not None:
        item, properties = armor
        base = properties.base_ac if properties.base_ac is not None else 10
        parts.append(f"{item.name} {base}")
        if properties.add_dex_modifier:
            dex_part = dex if properties.max_dex_bonus is None else min(dex, properties.max_dex_bonus)
            base += dex_part
            parts.append(f"DEX {dex_part}")
    elif template is not None and template.armor_class is not None:
        base = template.armor_class.value
        parts.append(f"natural armor {base}")
    else:
        base = 10 + dex
        parts.extend(["10", f"DEX {dex}"])

    if armor is None:
        for active in creature.active_effects:
            effect = active.effect
            if not isinstance(effect, BaseArmorClassEffect):
                continue
            result = evaluate_formula(effect.ac_value_formula, FormulaContext(actor=creature))
            if not result.ok:
                logger.warning(
                    "Base AC formula failed, ignoring",
                    creature_id=creature.id,
                    formula=effect.ac_value_formula,
                    error=result.error,
                )
                continue
            value = result.floor_or(base)
            if value > base:
                base = value
                parts = [f"{active.source_definition_id} {value}"]

    base_formula_ac = base
    total = base

    shield = _armor_properties(creature, SHIELD_SLOT, definitions)
    if shield is not None:
        item, properties = shield
        total += properties.ac_bonus
        parts.append(f"{item.name} {properties.ac_bonus}")

    for active in creature.active_effects:
        if active.effect_type != EffectType.GRANT_BONUS:
            continue
        if (active.bonus_to or "").upper() != ARMOR_CLASS:
            continue
        amount = effect_amount(creature, active)
        total += amount
        parts.append(f"{active.source_definition_id} {amount}")

    return ArmorClassResult(base_formula_ac=base_formula_ac, final_ac=total, parts=tuple(parts))


__all__ = [
    "ARMOR_SLOT",
    "SHIELD_SLOT",
    "ArmorClassResult",
    "calculate_armor_class",
]
