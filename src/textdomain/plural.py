"""Plural-Forms Expression Evaluation.

This module parses the ``Plural-Forms`` catalog header and evaluates the
C-like expression it carries to pick a plural form for a count.

Grammar (lowest to highest precedence):
- ``?:`` (right associative)
- ``||``
- ``&&``
- ``==`` ``!=``
- ``<`` ``<=`` ``>`` ``>=``
- ``+`` ``-``
- ``*`` ``/`` ``%``
- unary ``-`` ``!``
- integer literal, ``n``, parenthesized expression

Usage:
    from textdomain.plural import parse_plural_forms

    rule = parse_plural_forms("nplurals=3; plural=(n==1?0:(n>=2&&n<=4?1:2));")
    rule.select(1)   # -> 0
    rule.select(3)   # -> 1
    rule.select(11)  # -> 2
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Union

from textdomain.errors import ExpressionError


logger = logging.getLogger(__name__)

DEFAULT_PLURAL_FORMS = "nplurals=2; plural=(n != 1);"

MAX_EXPRESSION_LENGTH = 1000
MAX_NESTING_DEPTH = 64

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<WHITESPACE>\s+)                        |
    (?P<NUMBER>[0-9]+)                         |
    (?P<NAME>n\b)                              |
    (?P<PAREN>[()])                            |
    (?P<OPERATOR>&&|\|\||[=!<>]=|[-+*/%<>!?:]) |
    (?P<INVALID>\w+|.)
    """,
    re.VERBOSE | re.DOTALL,
)


# ==============================================================================
# Expression Tree
# ==============================================================================


def _c_div(left: int, right: int) -> int:
    """Integer division truncating toward zero, as in C."""
    if right == 0:
        raise ExpressionError("division by zero in plural expression")
    quotient = abs(left) // abs(right)
    return -quotient if (left < 0) != (right < 0) else quotient


def _c_mod(left: int, right: int) -> int:
    """Remainder with the sign of the dividend, as in C."""
    if right == 0:
        raise ExpressionError("modulo by zero in plural expression")
    return left - right * _c_div(left, right)


_BINARY_OPERATIONS: dict[str, Callable[[int, int], int]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _c_div,
    "%": _c_mod,
    "==": lambda a, b: int(a == b),
    "!=": lambda a, b: int(a != b),
    "<": lambda a, b: int(a < b),
    "<=": lambda a, b: int(a <= b),
    ">": lambda a, b: int(a > b),
    ">=": lambda a, b: int(a >= b),
}


@dataclass(frozen=True)
class Literal:
    """Integer constant."""

    value: int

    def evaluate(self, n: int) -> int:
        return self.value


@dataclass(frozen=True)
class Variable:
    """The count ``n``."""

    def evaluate(self, n: int) -> int:
        return n


@dataclass(frozen=True)
class Unary:
    """Unary negation (``-``) or logical not (``!``)."""

    op: str
    operand: "Node"

    def evaluate(self, n: int) -> int:
        value = self.operand.evaluate(n)
        if self.op == "!":
            return int(value == 0)
        return -value


@dataclass(frozen=True)
class Binary:
    """Arithmetic, comparison or logical operator."""

    op: str
    left: "Node"
    right: "Node"

    def evaluate(self, n: int) -> int:
        if self.op == "&&":
            return int(self.left.evaluate(n) != 0 and self.right.evaluate(n) != 0)
        if self.op == "||":
            return int(self.left.evaluate(n) != 0 or self.right.evaluate(n) != 0)
        return _BINARY_OPERATIONS[self.op](self.left.evaluate(n), self.right.evaluate(n))


@dataclass(frozen=True)
class Conditional:
    """Ternary ``condition ? if_true : if_false``."""

    condition: "Node"
    if_true: "Node"
    if_false: "Node"

    def evaluate(self, n: int) -> int:
        if self.condition.evaluate(n) != 0:
            return self.if_true.evaluate(n)
        return self.if_false.evaluate(n)


Node = Union[Literal, Variable, Unary, Binary, Conditional]


# ==============================================================================
# Parser
# ==============================================================================


def _tokenize(expression: str) -> list[str]:
    tokens = []
    for match in _TOKEN_PATTERN.finditer(expression):
        kind = match.lastgroup
        if kind == "WHITESPACE":
            continue
        value = match.group()
        if kind == "INVALID":
            raise ExpressionError(f"invalid token in plural expression: {value!r}", expression)
        tokens.append(value)
    return tokens


# Binary operators grouped by precedence, lowest first.
_PRECEDENCE: tuple[tuple[str, ...], ...] = (
    ("||",),
    ("&&",),
    ("==", "!="),
    ("<", "<=", ">", ">="),
    ("+", "-"),
    ("*", "/", "%"),
)


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.pos = 0
        self.depth = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionError("empty plural expression", self.expression)
        node = self._conditional()
        if self.pos < len(self.tokens):
            raise self._error(f"unexpected token {self.tokens[self.pos]!r}")
        return node

    def _error(self, message: str) -> ExpressionError:
        return ExpressionError(f"{message} in plural expression", self.expression)

    def _peek(self) -> str | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end")
        self.pos += 1
        return token

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise self._error("nesting too deep")

    def _conditional(self) -> Node:
        self._enter()
        condition = self._binary(0)
        if self._peek() == "?":
            self.pos += 1
            if_true = self._conditional()
            if self._next() != ":":
                raise self._error("expected ':'")
            if_false = self._conditional()
            condition = Conditional(condition, if_true, if_false)
        self.depth -= 1
        return condition

    def _binary(self, level: int) -> Node:
        if level == len(_PRECEDENCE):
            return self._unary()
        node = self._binary(level + 1)
        while self._peek() in _PRECEDENCE[level]:
            op = self._next()
            node = Binary(op, node, self._binary(level + 1))
        return node

    def _unary(self) -> Node:
        token = self._peek()
        if token in ("-", "!"):
            self.pos += 1
            self._enter()
            node = Unary(token, self._unary())
            self.depth -= 1
            return node
        return self._atom()

    def _atom(self) -> Node:
        token = self._next()
        if token == "(":
            node = self._conditional()
            if self._next() != ")":
                raise self._error("unbalanced parenthesis")
            return node
        if token == "n":
            return Variable()
        if token.isdigit():
            return Literal(int(token))
        raise self._error(f"unexpected token {token!r}")


def compile_expression(expression: str) -> Node:
    """Parse a bare plural expression such as ``n != 1``.

    Raises:
        ExpressionError: If the expression is malformed or too complex
    """
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError("plural expression is too long", expression[:80])
    return _Parser(expression).parse()


# ==============================================================================
# Plural Rule
# ==============================================================================


@dataclass(frozen=True)
class PluralRule:
    """Compiled Plural-Forms header.

    Attributes:
        nplurals: Number of plural forms the catalog provides
        expression: Compiled expression tree
        header: Original header text, kept for serialization
    """

    nplurals: int
    expression: Node
    header: str

    def evaluate(self, n: int) -> int:
        """Evaluate the raw expression.

        Raises:
            ExpressionError: On division or modulo by zero
        """
        return self.expression.evaluate(n)

    def select(self, n: int) -> int:
        """Get the plural form index for ``n``.

        Evaluation errors and results outside ``[0, nplurals)`` select
        index 0, the way GNU libintl does.
        """
        try:
            index = self.expression.evaluate(int(n))
        except ExpressionError as e:
            logger.debug(f"Plural rule {self.header!r} failed for n={n}: {e}")
            return 0
        if 0 <= index < self.nplurals:
            return index
        return 0


@lru_cache(maxsize=256)
def parse_plural_forms(header: str) -> PluralRule:
    """Parse a ``Plural-Forms`` header value.

    Args:
        header: Text like ``nplurals=2; plural=(n != 1);``

    Returns:
        Compiled PluralRule

    Raises:
        ExpressionError: If nplurals or plural is missing or malformed
    """
    fields: dict[str, str] = {}
    for part in header.split(";"):
        if "=" not in part:
            if part.strip():
                raise ExpressionError(f"unexpected text {part.strip()!r} in Plural-Forms", header)
            continue
        key, value = part.split("=", 1)
        fields[key.strip().lower()] = value.strip()

    if "nplurals" not in fields:
        raise ExpressionError("Plural-Forms has no nplurals", header)
    if "plural" not in fields:
        raise ExpressionError("Plural-Forms has no plural expression", header)

    try:
        nplurals = int(fields["nplurals"])
    except ValueError:
        raise ExpressionError(f"invalid nplurals {fields['nplurals']!r}", header) from None
    if nplurals < 1:
        raise ExpressionError(f"nplurals must be positive, got {nplurals}", header)

    return PluralRule(
        nplurals=nplurals,
        expression=compile_expression(fields["plural"]),
        header=header.strip(),
    )


def default_rule() -> PluralRule:
    """Get the two-form ``n != 1`` rule used when a catalog declares none."""
    return parse_plural_forms(DEFAULT_PLURAL_FORMS)


def rule_from_header(header: str | None) -> PluralRule:
    """Compile a Plural-Forms header, falling back to the default rule.

    Never raises; a malformed header is logged and replaced.
    """
    if not header or not header.strip():
        return default_rule()
    try:
        return parse_plural_forms(header.strip())
    except ExpressionError as e:
        logger.warning(f"Invalid Plural-Forms header {header!r}, using default rule: {e.message}")
        return default_rule()
