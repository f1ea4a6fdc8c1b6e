"""Dice rolling primitives.

All randomness in the engine flows through a :class:`DiceRoller`. The
roller draws from an injectable random source (anything with
``randint(a, b)``), so tests and replays can script every die.

Standard dice notation ("2d6+3") is parsed with the d20 library and then
evaluated against the same random source.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import d20
from d20 import diceast

from dnd_combat.core.exceptions import DiceRollError
from dnd_combat.core.logging import get_logger


if TYPE_CHECKING:
    from dnd_combat.engine.registry import DefinitionLookup
    from dnd_combat.models.effects import DamageRoll, HealingRoll

logger = get_logger(__name__)


class RollType(StrEnum):
    """How a d20 is rolled."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"

    @classmethod
    def from_flags(cls, *, advantage: bool, disadvantage: bool) -> RollType:
        """Combine advantage and disadvantage; both together cancel.

        Args:
            advantage: Whether any source grants advantage.
            disadvantage: Whether any source imposes disadvantage.

        Returns:
            The resulting roll type.
        """
        if advantage and not disadvantage:
            return cls.ADVANTAGE
        if disadvantage and not advantage:
            return cls.DISADVANTAGE
        return cls.NORMAL


class RandomSource(Protocol):
    """Uniform integer generator."""

    def randint(self, a: int, b: int) -> int: ...


@dataclass(frozen=True)
class D20Roll:
    """A d20 roll after advantage/disadvantage selection.

    Attributes:
        natural_rolls: Every d20 rolled (one or two).
        chosen: The roll that counts.
        roll_type: How the d20 was rolled.
    """

    natural_rolls: tuple[int, ...]
    chosen: int
    roll_type: RollType

    @property
    def is_critical(self) -> bool:
        return self.chosen == 20

    @property
    def is_fumble(self) -> bool:
        return self.chosen == 1


@dataclass(frozen=True)
class DiceRollResult:
    """Sum of several dice plus a flat modifier.

    Attributes:
        total: Sum of rolls plus modifier.
        rolls: Individual die results.
        modifier: Flat modifier added.
        expression: Notation that was rolled, for display.
    """

    total: int
    rolls: tuple[int, ...]
    modifier: int
    expression: str


@dataclass(frozen=True)
class DamageRollResult:
    """One typed damage roll.

    Attributes:
        damage_type: Damage type id.
        dice: Notation before critical doubling, e.g. "1d8".
        rolls: Individual die results (doubled count on a crit).
        bonus: Flat bonus, never doubled.
        total: Rolls plus bonus, floored at zero.
        is_critical: Whether dice were doubled.
    """

    damage_type: str
    dice: str
    rolls: tuple[int, ...]
    bonus: int
    total: int
    is_critical: bool


class DiceRoller:
    """Dice rolling over an injectable random source.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> roller.roll_d20(advantage=True).chosen in range(1, 21)
        True
    """

    def __init__(self, *, rng: RandomSource | None = None, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            rng: Random source; a private ``random.Random`` if omitted.
            seed: Seed for the private source. Ignored when ``rng`` is given.
        """
        self._rng: RandomSource = rng if rng is not None else random.Random(seed)
        logger.debug("DiceRoller initialized", seed=seed, injected=rng is not None)

    def roll_die(self, faces: int) -> int:
        """Roll one die.

        Args:
            faces: Number of faces.

        Returns:
            A value in [1, faces], or 0 for a degenerate die (faces <= 0).
        """
        if faces <= 0:
            return 0
        return self._rng.randint(1, faces)

    def roll_d20(self, *, advantage: bool = False, disadvantage: bool = False) -> D20Roll:
        """Roll a d20 with optional advantage/disadvantage.

        Args:
            advantage: Roll twice, keep the higher.
            disadvantage: Roll twice, keep the lower.

        Returns:
            D20Roll with every natural roll and the chosen one.
        """
        roll_type = RollType.from_flags(advantage=advantage, disadvantage=disadvantage)
        if roll_type is RollType.NORMAL:
            natural = self.roll_die(20)
            return D20Roll(natural_rolls=(natural,), chosen=natural, roll_type=roll_type)

        first, second = self.roll_die(20), self.roll_die(20)
        chosen = max(first, second) if roll_type is RollType.ADVANTAGE else min(first, second)
        logger.debug("d20 rolled", rolls=(first, second), chosen=chosen, roll_type=roll_type)
        return D20Roll(natural_rolls=(first, second), chosen=chosen, roll_type=roll_type)

    def roll_dice(self, count: int, faces: int, modifier: int = 0) -> DiceRollResult:
        """Roll ``count`` dice of ``faces`` faces and add a modifier.

        The roll is built as dice notation and evaluated by
        :meth:`roll_notation`, which damage and healing rolls share.

        Args:
            count: Number of dice.
            faces: Faces per die.
            modifier: Flat modifier.

        Returns:
            DiceRollResult with the individual rolls.
        """
        sign = "+" if modifier >= 0 else "-"
        expression = f"{count}d{faces}" + (f"{sign}{abs(modifier)}" if modifier else "")
        if count > 0 and faces > 0:
            return self.roll_notation(expression)

        # nothing to roll; only the modifier counts
        rolls = tuple(self.roll_die(faces) for _ in range(max(0, count)))
        return DiceRollResult(
            total=sum(rolls) + modifier,
            rolls=rolls,
            modifier=modifier,
            expression=expression,
        )

    def roll_notation(self, expression: str) -> DiceRollResult:
        """Roll standard dice notation such as ``"2d6+1d4+3"``.

        Supports dice, integer literals, parentheses, unary minus and
        ``+ - * /`` (``/`` floors).

        Args:
            expression: Dice notation.

        Returns:
            DiceRollResult; ``modifier`` is the total minus the dice sum.

        Raises:
            DiceRollError: If the notation cannot be parsed or uses
                unsupported operators (keep/drop, sets).
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)
        try:
            parsed = d20.parse(expression)
        except d20.RollSyntaxError as exc:
            raise DiceRollError(f"Invalid dice expression: {exc}", expression=expression) from exc

        rolls: list[int] = []
        total = self._evaluate_node(parsed.roll, rolls, expression)
        return DiceRollResult(
            total=total,
            rolls=tuple(rolls),
            modifier=total - sum(rolls),
            expression=expression,
        )

    def _evaluate_node(self, node: Any, rolls: list[int], expression: str) -> int:
        if isinstance(node, diceast.Literal):
            return int(node.value)
        if isinstance(node, diceast.Dice):
            if not isinstance(node.size, int):
                raise DiceRollError("Percentile shorthand is not supported", expression=expression)
            values = [self.roll_die(node.size) for _ in range(node.num)]
            rolls.extend(values)
            return sum(values)
        if isinstance(node, (diceast.Parenthetical, diceast.AnnotatedNumber)):
            return self._evaluate_node(node.value, rolls, expression)
        if isinstance(node, diceast.UnOp):
            value = self._evaluate_node(node.value, rolls, expression)
            return -value if node.op == "-" else value
        if isinstance(node, diceast.BinOp):
            left = self._evaluate_node(node.left, rolls, expression)
            right = self._evaluate_node(node.right, rolls, expression)
            match node.op:
                case "+":
                    return left + right
                case "-":
                    return left - right
                case "*":
                    return left * right
                case "/":
                    if right == 0:
                        raise DiceRollError("Division by zero", expression=expression)
                    return left // right
        raise DiceRollError(
            f"Unsupported dice syntax: {type(node).__name__}",
            expression=expression,
        )

    def roll_damage(
        self,
        damage_rolls: Sequence[DamageRoll],
        definitions: DefinitionLookup,
        *,
        is_critical: bool = False,
    ) -> list[DamageRollResult]:
        """Roll typed damage.

        A critical hit doubles the number of dice; flat bonuses are added
        once. Any formula bonus must already be folded into
        ``bonus_damage`` by the caller.

        Args:
            damage_rolls: Damage roll specs.
            definitions: Lookup used to resolve dice ids.
            is_critical: Whether the attack was a critical hit.

        Returns:
            One result per damage roll.
        """
        results: list[DamageRollResult] = []
        for damage_roll in damage_rolls:
            faces = definitions.get_dice(damage_roll.dice_id).faces
            count = damage_roll.dice_count * 2 if is_critical else damage_roll.dice_count
            rolled = self.roll_dice(count, faces, damage_roll.bonus_damage)
            results.append(
                DamageRollResult(
                    damage_type=damage_roll.damage_type,
                    dice=f"{damage_roll.dice_count}d{faces}",
                    rolls=rolled.rolls,
                    bonus=damage_roll.bonus_damage,
                    total=max(0, rolled.total),
                    is_critical=is_critical,
                )
            )
        logger.debug(
            "Damage rolled",
            is_critical=is_critical,
            totals=[r.total for r in results],
        )
        return results

    def roll_healing(
        self,
        healing_rolls: Sequence[HealingRoll],
        definitions: DefinitionLookup,
    ) -> int:
        """Roll healing dice and add their flat bonuses.

        Args:
            healing_rolls: Healing roll specs.
            definitions: Lookup used to resolve dice ids.

        Returns:
            Total healing rolled.
        """
        total = 0
        for healing_roll in healing_rolls:
            faces = definitions.get_dice(healing_roll.dice_id).faces
            total += self.roll_dice(healing_roll.dice_count, faces, healing_roll.bonus_healing).total
        return total


__all__ = [
    "RollType",
    "RandomSource",
    "D20Roll",
    "DiceRollResult",
    "DamageRollResult",
    "DiceRoller",
]
