"""Closed predicate grammar for conditional activities.

Supported forms::

    paymentResult.status === "completed"
    orderData.quantity >= 2 && !orderData.express
    (a.x == 1 || a.y != null)

Operands are dotted field paths into the run scope or literals (strings,
numbers, ``true``, ``false``, ``null``, ``undefined``). A bare path tests
truthiness. Nothing is ever executed as code.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from ..errors import PredicateError

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<number>-?\d+(?:\.\d+)?)
      | (?P<op>===|!==|==|!=|<=|>=|<|>|&&|\|\||!|\(|\))
      | (?P<path>[A-Za-z_$][\w$]*(?:\.[\w$]+)*)
    )
    """,
    re.VERBOSE,
)

_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "===": operator.eq,
    "==": operator.eq,
    "!==": operator.ne,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_MISSING = object()


def resolve_path(scope: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Look up a dotted ``path`` in ``scope``; missing segments yield ``default``."""
    current: Any = scope
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else _MISSING
        else:
            current = _MISSING
        if current is _MISSING:
            return default
    return current


@dataclass(frozen=True)
class Literal:
    value: Any

    def evaluate(self, scope: Mapping[str, Any]) -> Any:
        return self.value


@dataclass(frozen=True)
class Path:
    path: str

    def evaluate(self, scope: Mapping[str, Any]) -> Any:
        return resolve_path(scope, self.path)


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Node"
    right: "Node"

    def evaluate(self, scope: Mapping[str, Any]) -> bool:
        left = self.left.evaluate(scope)
        right = self.right.evaluate(scope)
        try:
            return bool(_COMPARATORS[self.op](left, right))
        except TypeError:
            # ordering between incomparable values (e.g. None < 1) is false
            return False


@dataclass(frozen=True)
class Not:
    operand: "Node"

    def evaluate(self, scope: Mapping[str, Any]) -> bool:
        return not self.operand.evaluate(scope)


@dataclass(frozen=True)
class BoolOp:
    op: str
    operands: Tuple["Node", ...]

    def evaluate(self, scope: Mapping[str, Any]) -> bool:
        if self.op == "&&":
            return all(operand.evaluate(scope) for operand in self.operands)
        return any(operand.evaluate(scope) for operand in self.operands)


Node = Union[Literal, Path, Compare, Not, BoolOp]


def _tokenize(source: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    pos = 0
    source = source.rstrip()
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None or match.end() == pos or match.lastgroup is None:
            raise PredicateError(f"Unexpected input at position {pos} in {source!r}")
        tokens.append((match.lastgroup, match.group(match.lastgroup)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = _tokenize(source)
        self.pos = 0

    def peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> Tuple[str, str]:
        token = self.peek()
        if token is None:
            raise PredicateError(f"Unexpected end of expression in {self.source!r}")
        self.pos += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise PredicateError("Empty expression")
        node = self.parse_or()
        if self.peek() is not None:
            raise PredicateError(f"Unexpected token {self.peek()[1]!r} in {self.source!r}")
        return node

    def parse_or(self) -> Node:
        operands = [self.parse_and()]
        while self.peek() == ("op", "||"):
            self.take()
            operands.append(self.parse_and())
        return operands[0] if len(operands) == 1 else BoolOp("||", tuple(operands))

    def parse_and(self) -> Node:
        operands = [self.parse_unary()]
        while self.peek() == ("op", "&&"):
            self.take()
            operands.append(self.parse_unary())
        return operands[0] if len(operands) == 1 else BoolOp("&&", tuple(operands))

    def parse_unary(self) -> Node:
        if self.peek() == ("op", "!"):
            self.take()
            return Not(self.parse_unary())
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        if self.peek() == ("op", "("):
            self.take()
            node = self.parse_or()
            if self.take() != ("op", ")"):
                raise PredicateError(f"Missing ')' in {self.source!r}")
            return node
        left = self.parse_operand()
        token = self.peek()
        if token is not None and token[0] == "op" and token[1] in _COMPARATORS:
            self.take()
            return Compare(token[1], left, self.parse_operand())
        return left

    def parse_operand(self) -> Node:
        kind, text = self.take()
        if kind == "string":
            body = text[1:-1]
            return Literal(re.sub(r"\\(.)", r"\1", body))
        if kind == "number":
            return Literal(float(text) if "." in text else int(text))
        if kind == "path":
            if text in _KEYWORDS:
                return Literal(_KEYWORDS[text])
            return Path(text)
        raise PredicateError(f"Expected a value but found {text!r} in {self.source!r}")


@dataclass(frozen=True)
class Predicate:
    """A parsed condition that can be evaluated against a variable scope."""

    source: str
    root: Node

    def evaluate(self, scope: Mapping[str, Any]) -> bool:
        return bool(self.root.evaluate(scope))


@lru_cache(maxsize=256)
def compile_predicate(source: str) -> Predicate:
    """Parse ``source`` into a :class:`Predicate`.

    Raises:
        PredicateError: If the expression is outside the supported grammar.
    """
    return Predicate(source=source, root=_Parser(source).parse())
