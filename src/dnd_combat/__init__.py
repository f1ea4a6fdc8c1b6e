"""dnd_combat - Turn-based D&D 5E combat resolution engine.

Given creature definitions, runtime creature states and master data
(spells, items, conditions, dice), the engine resolves attacks, saving
throws, skill checks, damage, healing, conditions, spells and resources
turn by turn, and records everything in an append-only event log.

RULES OWNERSHIP:
- The engine owns TRUTH (combat snapshot, dice rolls via d20, rule validation)
- Callers submit ActionChoice commands and read back events and snapshots
- Snapshots cross the boundary as deep copies only

Example:
    >>> from dnd_combat import TurnManager, DefinitionRegistry, ActionChoice
    >>>
    >>> registry = DefinitionRegistry([longsword, unconscious])
    >>> manager = TurnManager(registry)
    >>> snapshot = manager.start_combat([fighter, goblin])
    >>>
    >>> actor = snapshot.current_turn_creature_id
    >>> result = manager.process_action(
    ...     ActionChoice(actor_id=actor, action_type="DODGE")
    ... )
    >>> manager.progress_to_next_turn()

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for definitions, runtime state and events.
    engine: Dice, formulas, resolution pipelines and turn management.
"""

from __future__ import annotations

# Core
from dnd_combat.core.config import Settings, get_settings
from dnd_combat.core.exceptions import DndCombatError
from dnd_combat.core.logging import configure_logging, get_logger

# Engine
from dnd_combat.engine.dice import DiceRoller
from dnd_combat.engine.registry import DefinitionRegistry
from dnd_combat.engine.turn_manager import TurnManager

# Models
from dnd_combat.models.combat import (
    ActionChoice,
    ActionResult,
    CombatStateSnapshot,
    TargetInfo,
)
from dnd_combat.models.creature import CreatureRuntimeState
from dnd_combat.models.events import GameEvent


__version__ = "0.1.0"
__author__ = "dnd-combat developers"
__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core
    "DndCombatError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Engine
    "DefinitionRegistry",
    "DiceRoller",
    "TurnManager",
    # Models
    "ActionChoice",
    "ActionResult",
    "CombatStateSnapshot",
    "CreatureRuntimeState",
    "GameEvent",
    "TargetInfo",
]
