"""Definition lookup for the rules engine.

The engine never loads master data itself. It resolves ids through a
:class:`DefinitionLookup`, which the surrounding application implements
over whatever storage it uses. Lookups must be idempotent and free of
side effects visible to the engine; a missing id raises
DefinitionNotFoundError.

:class:`DefinitionRegistry` is the in-memory implementation used by tests
and simple embeddings. It comes pre-seeded with the standard dice and
skills.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar, runtime_checkable

from dnd_combat.core.exceptions import DefinitionNotFoundError
from dnd_combat.core.logging import get_logger
from dnd_combat.models.definitions import (
    ClassDefinition,
    ConditionDefinition,
    CreatureTemplateDefinition,
    Definition,
    DiceDefinition,
    FeatureDefinition,
    ItemDefinition,
    ResourceDefinition,
    SkillDefinition,
    SpellDefinition,
)
from dnd_combat.models.enums import Skill


logger = get_logger(__name__)

_D = TypeVar("_D")

STANDARD_DICE = (4, 6, 8, 10, 12, 20, 100)


@runtime_checkable
class DefinitionLookup(Protocol):
    """Lookup-by-id capability the engine consumes."""

    def get_dice(self, dice_id: str) -> DiceDefinition: ...

    def get_condition(self, condition_id: str) -> ConditionDefinition: ...

    def get_spell(self, spell_id: str) -> SpellDefinition: ...

    def get_item(self, item_id: str) -> ItemDefinition: ...

    def get_feature(self, feature_id: str) -> FeatureDefinition: ...

    def get_class(self, class_id: str) -> ClassDefinition: ...

    def get_creature_template(self, creature_id: str) -> CreatureTemplateDefinition: ...

    def get_skill(self, skill_id: str) -> SkillDefinition: ...

    def get_resource(self, resource_id: str) -> ResourceDefinition: ...


class DefinitionRegistry:
    """In-memory DefinitionLookup.

    Example:
        >>> registry = DefinitionRegistry()
        >>> registry.register(SpellDefinition(spell_id="FIRE_BOLT", name="Fire Bolt", level=0))
        >>> registry.get_spell("FIRE_BOLT").name
        'Fire Bolt'
    """

    def __init__(self, definitions: Iterable[Definition] = ()) -> None:
        """Initialize the registry.

        Args:
            definitions: Definitions to register in addition to the
                standard dice and skills.
        """
        self._dice: dict[str, DiceDefinition] = {}
        self._conditions: dict[str, ConditionDefinition] = {}
        self._spells: dict[str, SpellDefinition] = {}
        self._items: dict[str, ItemDefinition] = {}
        self._features: dict[str, FeatureDefinition] = {}
        self._classes: dict[str, ClassDefinition] = {}
        self._templates: dict[str, CreatureTemplateDefinition] = {}
        self._skills: dict[str, SkillDefinition] = {}
        self._resources: dict[str, ResourceDefinition] = {}

        for faces in STANDARD_DICE:
            self.register(DiceDefinition(dice_id=f"D{faces}", faces=faces))
        for skill in Skill:
            self.register(
                SkillDefinition(
                    skill_id=skill.value,
                    name=skill.name.replace("_", " ").title(),
                    default_ability=skill.ability,
                )
            )
        for definition in definitions:
            self.register(definition)

    def register(self, definition: Definition) -> None:
        """Add or replace a definition.

        Args:
            definition: Any definition model.

        Raises:
            TypeError: If the object is not a known definition type.
        """
        match definition:
            case DiceDefinition():
                self._dice[definition.dice_id] = definition
            case ConditionDefinition():
                self._conditions[definition.condition_id] = definition
            case SpellDefinition():
                self._spells[definition.spell_id] = definition
            case ItemDefinition():
                self._items[definition.item_id] = definition
            case FeatureDefinition():
                self._features[definition.feature_id] = definition
            case ClassDefinition():
                self._classes[definition.class_id] = definition
            case CreatureTemplateDefinition():
                self._templates[definition.creature_id] = definition
            case SkillDefinition():
                self._skills[definition.skill_id] = definition
            case ResourceDefinition():
                self._resources[definition.resource_id] = definition
            case _:
                raise TypeError(f"Not a definition: {type(definition).__name__}")

    @staticmethod
    def _get(table: dict[str, _D], definition_id: str, kind: str) -> _D:
        try:
            return table[definition_id]
        except KeyError:
            logger.warning("Definition not found", kind=kind, definition_id=definition_id)
            raise DefinitionNotFoundError(
                f"No {kind} definition with id '{definition_id}'",
                definition_id=definition_id,
                kind=kind,
            ) from None

    def get_dice(self, dice_id: str) -> DiceDefinition:
        return self._get(self._dice, dice_id, "dice")

    def get_condition(self, condition_id: str) -> ConditionDefinition:
        return self._get(self._conditions, condition_id, "condition")

    def get_spell(self, spell_id: str) -> SpellDefinition:
        return self._get(self._spells, spell_id, "spell")

    def get_item(self, item_id: str) -> ItemDefinition:
        return self._get(self._items, item_id, "item")

    def get_feature(self, feature_id: str) -> FeatureDefinition:
        return self._get(self._features, feature_id, "feature")

    def get_class(self, class_id: str) -> ClassDefinition:
        return self._get(self._classes, class_id, "class")

    def get_creature_template(self, creature_id: str) -> CreatureTemplateDefinition:
        return self._get(self._templates, creature_id, "creature template")

    def get_skill(self, skill_id: str) -> SkillDefinition:
        return self._get(self._skills, skill_id, "skill")

    def get_resource(self, resource_id: str) -> ResourceDefinition:
        return self._get(self._resources, resource_id, "resource")


__all__ = [
    "DefinitionLookup",
    "DefinitionRegistry",
    "STANDARD_DICE",
]
