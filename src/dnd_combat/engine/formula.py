"""Formula evaluator for data-authored modifiers.

Formulas are small arithmetic expressions over named game variables,
for example ``"PROFICIENCY_BONUS + ABILITY_MODIFIER:STR"`` or
``"MAX(1, FLOOR(LEVEL / 2))"``.

Evaluation runs in three steps:

1. The expression is split into typed tokens (numbers, names, operators,
   parentheses, commas).
2. Every name that is not a function call is resolved against a
   :class:`FormulaContext` and replaced by a number token.
3. The token stream is converted to reverse Polish notation with the
   shunting-yard algorithm and evaluated on a stack.

Evaluation never raises. Failures are reported in ``FormulaResult.error``
and each caller picks its own fallback.

Variables:
    PROFICIENCY_BONUS, LEVEL, MAX_HP, CURRENT_HP
    ABILITY_MODIFIER:<ABBR>, SPELLCASTING_ABILITY_MODIFIER
    CLASS_LEVEL:<CLASS_ID>
    TARGET_ABILITY_MODIFIER:<ABBR>, TARGET_AC, TARGET_MAX_HP, TARGET_CURRENT_HP
    SPELL_SLOT_LEVEL

Functions:
    MAX, MIN (one or more arguments), FLOOR, CEIL, ROUND, ABS
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from dnd_combat.core.constants import ABILITY_IDS
from dnd_combat.core.exceptions import FormulaError
from dnd_combat.core.logging import get_logger
from dnd_combat.models.definitions import SpellDefinition


if TYPE_CHECKING:
    from dnd_combat.models.creature import CreatureRuntimeState
    from dnd_combat.models.definitions import (
        ConditionDefinition,
        FeatureDefinition,
        ItemDefinition,
    )
    from dnd_combat.models.effects import ActiveEffect

logger = get_logger(__name__)


# =============================================================================
# Context and Result
# =============================================================================


@dataclass(frozen=True)
class ExecutionContext:
    """Per-action details that effects and formulas may depend on.

    Attributes:
        spell_slot_level: Slot a spell was cast with.
        metamagic: Metamagic option ids chosen for the cast.
        current_round: Round the action happens in.
        current_turn_creature_id: Creature whose turn it is.
        is_critical_hit: Whether the triggering attack was a critical hit.
        attack_roll_total: Total of the triggering attack roll.
        user_choices: Free-form choices made by the player.
    """

    spell_slot_level: int | None = None
    metamagic: tuple[str, ...] = ()
    current_round: int | None = None
    current_turn_creature_id: str | None = None
    is_critical_hit: bool = False
    attack_roll_total: int | None = None
    user_choices: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FormulaContext:
    """Everything a formula can refer to.

    Attributes:
        actor: Creature the formula is evaluated for.
        target: Optional target for TARGET_* variables.
        source_definition: Spell, item, feature or condition the formula
            belongs to.
        active_effect: Effect instance being evaluated, if any.
        execution: Per-action execution context.
    """

    actor: CreatureRuntimeState
    target: CreatureRuntimeState | None = None
    source_definition: (
        SpellDefinition | ItemDefinition | FeatureDefinition | ConditionDefinition | None
    ) = None
    active_effect: ActiveEffect | None = None
    execution: ExecutionContext | None = None


@dataclass(frozen=True)
class FormulaResult:
    """Outcome of evaluating a formula.

    Exactly one of ``value`` and ``error`` is set.
    """

    value: float | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def floor_or(self, default: int) -> int:
        """Floored value, or ``default`` when evaluation failed."""
        if self.value is None or self.error is not None:
            return default
        return math.floor(self.value)


# =============================================================================
# Tokens
# =============================================================================


class TokenKind(StrEnum):
    """Kinds of formula tokens."""

    NUMBER = "number"
    NAME = "name"
    FUNCTION = "function"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"


@dataclass(frozen=True)
class Token:
    """A formula token. ``value`` is set for numbers."""

    kind: TokenKind
    text: str
    value: float | None = None


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?|\.\d+)
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?::[A-Za-z0-9_]+)?)
  | (?P<operator>[-+*/])
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<comma>,)
  | (?P<space>\s+)
  | (?P<invalid>.)
    """,
    re.VERBOSE,
)

# name: (min args, max args or None, implementation)
_FUNCTIONS: dict[str, tuple[int, int | None, Callable[..., float]]] = {
    "MAX": (1, None, max),
    "MIN": (1, None, min),
    "FLOOR": (1, 1, math.floor),
    "CEIL": (1, 1, math.ceil),
    "ROUND": (1, 1, lambda x: math.floor(x + 0.5)),
    "ABS": (1, 1, abs),
}

_NEGATE = "neg"

# operator: (precedence, right associative)
_OPERATORS: dict[str, tuple[int, bool]] = {
    "+": (1, False),
    "-": (1, False),
    "*": (2, False),
    "/": (2, False),
    _NEGATE: (3, True),
}


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens.

    Names immediately followed by ``(`` that match a known function
    become FUNCTION tokens; all other names stay NAME tokens.

    Args:
        expression: Formula text.

    Returns:
        Token list without whitespace.

    Raises:
        FormulaError: On a character that cannot start any token.
    """
    tokens: list[Token] = []
    for match in _TOKEN_PATTERN.finditer(expression):
        kind = match.lastgroup
        text = match.group()
        if kind == "space":
            continue
        if kind == "invalid":
            raise FormulaError(f"Unrecognized token '{text}'", expression=expression)
        if kind == "number":
            tokens.append(Token(TokenKind.NUMBER, text, float(text)))
        else:
            tokens.append(Token(TokenKind(kind), text))

    for index, token in enumerate(tokens):
        followed_by_paren = index + 1 < len(tokens) and tokens[index + 1].kind is TokenKind.LPAREN
        if token.kind is TokenKind.NAME and followed_by_paren:
            name = token.text.upper()
            if name not in _FUNCTIONS:
                raise FormulaError(f"Unknown function '{token.text}'", expression=expression)
            tokens[index] = Token(TokenKind.FUNCTION, name)
    return tokens


# =============================================================================
# Variable Resolution
# =============================================================================


def _ability_argument(name: str, argument: str | None) -> str:
    ability = (argument or "").upper()
    if ability not in ABILITY_IDS:
        raise FormulaError(f"Variable {name} needs an ability id, got '{argument}'")
    return ability


def resolve_variable(name: str, context: FormulaContext) -> float:
    """Resolve one variable name against the context.

    Args:
        name: Variable name, optionally with a ``:ARGUMENT`` suffix.
        context: Formula context.

    Returns:
        The numeric value.

    Raises:
        FormulaError: If the variable is unknown or cannot be resolved.
    """
    base, _, argument = name.upper().partition(":")
    actor = context.actor
    target = context.target

    match base:
        case "PROFICIENCY_BONUS":
            return actor.proficiency_bonus
        case "LEVEL":
            return actor.total_level
        case "MAX_HP":
            return actor.max_hp_calculated
        case "CURRENT_HP":
            return actor.current_hp
        case "ABILITY_MODIFIER":
            return actor.ability_modifier(_ability_argument(base, argument or None))
        case "SPELLCASTING_ABILITY_MODIFIER":
            if actor.spellcasting_ability is None:
                raise FormulaError(f"{actor.name} has no spellcasting ability")
            return actor.ability_modifier(actor.spellcasting_ability)
        case "CLASS_LEVEL":
            if not argument:
                raise FormulaError("CLASS_LEVEL needs a class id")
            for entry in actor.class_levels:
                if entry.class_id.upper() == argument:
                    return entry.level
            return 0
        case "SPELL_SLOT_LEVEL":
            execution = context.execution
            if execution is not None and execution.spell_slot_level is not None:
                return execution.spell_slot_level
            if isinstance(context.source_definition, SpellDefinition):
                return context.source_definition.level
            raise FormulaError("SPELL_SLOT_LEVEL used outside of a spell")

    if base.startswith("TARGET_"):
        if target is None:
            raise FormulaError(f"{base} used without a target")
        match base:
            case "TARGET_ABILITY_MODIFIER":
                return target.ability_modifier(_ability_argument(base, argument or None))
            case "TARGET_AC":
                return target.armor_class or 10
            case "TARGET_MAX_HP":
                return target.max_hp_calculated
            case "TARGET_CURRENT_HP":
                return target.current_hp

    raise FormulaError(f"Unknown variable '{name}'")


def _substitute_variables(tokens: list[Token], context: FormulaContext) -> list[Token]:
    resolved: list[Token] = []
    for token in tokens:
        if token.kind is TokenKind.NAME:
            value = float(resolve_variable(token.text, context))
            resolved.append(Token(TokenKind.NUMBER, token.text, value))
        else:
            resolved.append(token)
    return resolved


# =============================================================================
# Shunting-Yard and RPN Evaluation
# =============================================================================


@dataclass(frozen=True)
class _Call:
    name: str
    arg_count: int


_RpnItem = float | str | _Call


def _is_operand_end(token: Token | None) -> bool:
    return token is not None and token.kind in (TokenKind.NUMBER, TokenKind.RPAREN)


def to_rpn(tokens: list[Token]) -> list[_RpnItem]:
    """Convert number/operator/function tokens to reverse Polish notation.

    A ``-`` is unary when the preceding token is not a number or a
    closing parenthesis. Unary ``+`` is dropped.

    Args:
        tokens: Tokens with all variables already substituted.

    Returns:
        RPN items: floats, operator symbols, and function calls.

    Raises:
        FormulaError: On mismatched parentheses or misplaced commas.
    """
    output: list[_RpnItem] = []
    operators: list[str | Token] = []
    # One entry per open parenthesis: argument count if it belongs to a
    # function call, None for a grouping parenthesis.
    arg_counts: list[int | None] = []
    previous: Token | None = None

    for token in tokens:
        match token.kind:
            case TokenKind.NUMBER:
                if _is_operand_end(previous):
                    raise FormulaError(f"Missing operator before '{token.text}'")
                output.append(token.value if token.value is not None else 0.0)
            case TokenKind.FUNCTION:
                operators.append(token)
            case TokenKind.LPAREN:
                is_call = bool(operators) and isinstance(operators[-1], Token)
                arg_counts.append(0 if is_call else None)
                operators.append("(")
            case TokenKind.COMMA:
                if not arg_counts or arg_counts[-1] is None:
                    raise FormulaError("Comma outside of a function call")
                if previous is None or previous.kind in (TokenKind.LPAREN, TokenKind.COMMA):
                    raise FormulaError("Empty function argument")
                while operators and operators[-1] != "(":
                    output.append(_pop_operator(operators))
                arg_counts[-1] += 1
            case TokenKind.RPAREN:
                while operators and operators[-1] != "(":
                    output.append(_pop_operator(operators))
                if not operators:
                    raise FormulaError("Mismatched parentheses")
                operators.pop()
                count = arg_counts.pop()
                if operators and isinstance(operators[-1], Token):
                    function = operators.pop()
                    assert isinstance(function, Token)
                    has_argument = previous is not None and previous.kind is not TokenKind.LPAREN
                    output.append(_Call(function.text, (count or 0) + int(has_argument)))
                elif previous is not None and previous.kind is TokenKind.LPAREN:
                    raise FormulaError("Empty parentheses")
            case TokenKind.OPERATOR:
                symbol = token.text
                if not _is_operand_end(previous):
                    if symbol == "+":
                        previous = token
                        continue
                    if symbol != "-":
                        raise FormulaError(f"Operator '{symbol}' is missing its left operand")
                    symbol = _NEGATE
                precedence, right_assoc = _OPERATORS[symbol]
                while operators and isinstance(operators[-1], str) and operators[-1] in _OPERATORS:
                    top_precedence, _ = _OPERATORS[operators[-1]]
                    if top_precedence > precedence or (top_precedence == precedence and not right_assoc):
                        output.append(_pop_operator(operators))
                    else:
                        break
                operators.append(symbol)
            case TokenKind.NAME:
                raise FormulaError(f"Unresolved variable '{token.text}'")
        previous = token

    while operators:
        top = operators.pop()
        if top == "(":
            raise FormulaError("Mismatched parentheses")
        if isinstance(top, Token):
            raise FormulaError(f"Function {top.text} is missing its argument list")
        output.append(top)
    return output


def _pop_operator(operators: list[str | Token]) -> str:
    top = operators.pop()
    if isinstance(top, Token):
        raise FormulaError(f"Function {top.text} is missing its argument list")
    return top


def evaluate_rpn(items: list[_RpnItem]) -> float:
    """Evaluate RPN items on a stack.

    Raises:
        FormulaError: On stack underflow, arity errors, division by zero
            or leftover operands.
    """
    stack: list[float] = []
    for item in items:
        if isinstance(item, float):
            stack.append(item)
        elif isinstance(item, _Call):
            minimum, maximum, function = _FUNCTIONS[item.name]
            if item.arg_count < minimum or (maximum is not None and item.arg_count > maximum):
                raise FormulaError(f"{item.name} called with {item.arg_count} arguments")
            if len(stack) < item.arg_count:
                raise FormulaError(f"Not enough operands for {item.name}")
            arguments = stack[len(stack) - item.arg_count:]
            del stack[len(stack) - item.arg_count:]
            stack.append(float(function(*arguments)))
        elif item == _NEGATE:
            if not stack:
                raise FormulaError("Unary minus without operand")
            stack.append(-stack.pop())
        else:
            if len(stack) < 2:
                raise FormulaError(f"Operator '{item}' is missing an operand")
            right = stack.pop()
            left = stack.pop()
            match item:
                case "+":
                    stack.append(left + right)
                case "-":
                    stack.append(left - right)
                case "*":
                    stack.append(left * right)
                case "/":
                    if right == 0:
                        raise FormulaError("Division by zero")
                    stack.append(left / right)
    if len(stack) != 1:
        raise FormulaError("Malformed expression")
    return stack[0]


def evaluate_formula(expression: str | None, context: FormulaContext) -> FormulaResult:
    """Evaluate a formula against a context.

    Args:
        expression: Formula text.
        context: Variables available to the formula.

    Returns:
        FormulaResult with either a value or an error message.

    Example:
        >>> evaluate_formula("PROFICIENCY_BONUS + ABILITY_MODIFIER:STR", ctx).value
        6.0
    """
    if expression is None or not expression.strip():
        return FormulaResult(value=None, error="Empty formula")
    try:
        tokens = _substitute_variables(tokenize(expression), context)
        value = evaluate_rpn(to_rpn(tokens))
    except FormulaError as exc:
        logger.debug("Formula evaluation failed", formula=expression, error=exc.message)
        return FormulaResult(value=None, error=exc.message)
    if not math.isfinite(value):
        return FormulaResult(value=None, error="Formula result is not finite")
    return FormulaResult(value=value)


__all__ = [
    "ExecutionContext",
    "FormulaContext",
    "FormulaResult",
    "TokenKind",
    "Token",
    "tokenize",
    "resolve_variable",
    "to_rpn",
    "evaluate_rpn",
    "evaluate_formula",
]
