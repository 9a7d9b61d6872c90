"""Tiny expression compiler for gate-matrix entries and gate parameters.

Text such as ``"cos(theta / 2)"`` or ``"-i * sin(theta / 2)"`` is parsed into
a tree of ``Number / Symbol / Unary / Binary / Call / Paren`` nodes.  A tree
can be

  * evaluated against a binding environment → ``complex``
  * rewritten by replacing symbols with (parenthesised) sub-expressions
  * serialised back to text (``str(node)``)

Grammar (lowest precedence first)::

    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := ('+' | '-') unary | power
    power   := primary ('^' unary)?          # right-associative
    primary := NUMBER | NAME | NAME '(' [expr (',' expr)*] ')' | '(' expr ')'

``**`` is accepted as a synonym for ``^``.
"""
from __future__ import annotations

import cmath
import math
import numbers
import re
from dataclasses import dataclass
from typing import Callable, Mapping, Union

from qu_engine.errors import ExpressionError

Value = Union[int, float, complex]

_ADD, _MUL, _UNARY, _POW, _ATOM = 1, 2, 3, 4, 5

CONSTANTS: dict[str, complex] = {
    "pi": complex(math.pi),
    "PI": complex(math.pi),
    "e": complex(math.e),
    "E": complex(math.e),
    "i": 1j,
}


def _log(z, base=None):
    if base is None:
        return cmath.log(z)
    return cmath.log(z) / cmath.log(base)


FUNCTIONS: dict[str, Callable[..., complex]] = {
    "sin": cmath.sin,
    "cos": cmath.cos,
    "tan": cmath.tan,
    "sqrt": cmath.sqrt,
    "exp": cmath.exp,
    "log": _log,
    "abs": lambda z: complex(abs(z)),
    "pow": lambda a, b: a ** b,
    # arithmetic aliases used by older gate templates
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b,
}


# ── tree ─────────────────────────────────────────────────────────────

class Node:
    precedence = _ATOM

    def evaluate(self, env: Mapping[str, Value] | None = None) -> complex:
        raise NotImplementedError

    def substitute(self, mapping: Mapping[str, "Node"]) -> "Node":
        raise NotImplementedError

    def free_symbols(self) -> set[str]:
        return set()


@dataclass(frozen=True)
class Number(Node):
    text: str

    def evaluate(self, env=None) -> complex:
        return complex(float(self.text))

    def substitute(self, mapping):
        return self

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Symbol(Node):
    name: str

    def evaluate(self, env=None) -> complex:
        if env is not None and self.name in env:
            value = env[self.name]
            if value is None:
                raise ExpressionError(f"symbol '{self.name}' is unbound")
            return complex(value)
        if self.name in CONSTANTS:
            return CONSTANTS[self.name]
        raise ExpressionError(f"undefined symbol '{self.name}'")

    def substitute(self, mapping):
        if self.name in mapping:
            return mapping[self.name]
        return self

    def free_symbols(self) -> set[str]:
        return set() if self.name in CONSTANTS else {self.name}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Paren(Node):
    inner: Node
    text: str | None = None  # verbatim source, when spliced in from text

    def evaluate(self, env=None) -> complex:
        return self.inner.evaluate(env)

    def substitute(self, mapping):
        return Paren(self.inner.substitute(mapping))

    def free_symbols(self) -> set[str]:
        return self.inner.free_symbols()

    def __str__(self) -> str:
        return f"({self.text if self.text is not None else self.inner})"


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node
    precedence = _UNARY

    def evaluate(self, env=None) -> complex:
        v = self.operand.evaluate(env)
        # keeps a +0.0 imaginary part; sqrt and log branch on its sign
        return 0j - v if self.op == "-" else v

    def substitute(self, mapping):
        return Unary(self.op, self.operand.substitute(mapping))

    def free_symbols(self) -> set[str]:
        return self.operand.free_symbols()

    def __str__(self) -> str:
        return self.op + _wrap(self.operand, self.operand.precedence < _UNARY)


_BINARY_PREC = {"+": _ADD, "-": _ADD, "*": _MUL, "/": _MUL, "^": _POW}


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return _BINARY_PREC[self.op]

    def evaluate(self, env=None) -> complex:
        a = self.left.evaluate(env)
        b = self.right.evaluate(env)
        try:
            if self.op == "+":
                return a + b
            if self.op == "-":
                return a - b
            if self.op == "*":
                return a * b
            if self.op == "/":
                return a / b
            return a ** b
        except ZeroDivisionError as exc:
            raise ExpressionError(f"division by zero in '{self}'") from exc

    def substitute(self, mapping):
        return Binary(self.op, self.left.substitute(mapping), self.right.substitute(mapping))

    def free_symbols(self) -> set[str]:
        return self.left.free_symbols() | self.right.free_symbols()

    def __str__(self) -> str:
        p = self.precedence
        if self.op == "^":
            left_paren = self.left.precedence <= p
            right_paren = self.right.precedence < p
        else:
            left_paren = self.left.precedence < p
            right_paren = self.right.precedence < p or (
                self.right.precedence == p and self.op in ("-", "/")
            )
        return f"{_wrap(self.left, left_paren)} {self.op} {_wrap(self.right, right_paren)}"


@dataclass(frozen=True)
class Call(Node):
    name: str
    args: tuple[Node, ...]

    def evaluate(self, env=None) -> complex:
        fn = FUNCTIONS.get(self.name)
        if fn is None:
            raise ExpressionError(f"undefined function '{self.name}'")
        values = [a.evaluate(env) for a in self.args]
        try:
            return complex(fn(*values))
        except TypeError as exc:
            raise ExpressionError(f"bad arguments for '{self.name}': {exc}") from exc
        except ZeroDivisionError as exc:
            raise ExpressionError(f"division by zero in '{self}'") from exc

    def substitute(self, mapping):
        return Call(self.name, tuple(a.substitute(mapping) for a in self.args))

    def free_symbols(self) -> set[str]:
        out: set[str] = set()
        for a in self.args:
            out |= a.free_symbols()
        return out

    def __str__(self) -> str:
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


def _wrap(node: Node, paren: bool) -> str:
    return f"({node})" if paren else str(node)


# ── parser ───────────────────────────────────────────────────────────

_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<num>(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z_0-9]*)"
    r"|(?P<op>\*\*|[-+*/^(),])"
    r")"
)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if not m or m.end() == pos:
            raise ExpressionError(f"unexpected character {text[pos:].strip()[:1]!r} in {text!r}")
        kind = m.lastgroup
        value = m.group(kind)
        if kind == "op" and value == "**":
            value = "^"
        tokens.append((kind, value))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise ExpressionError(f"unexpected end of expression {self.text!r}")
        self.pos += 1
        return tok

    def expect(self, op: str) -> None:
        kind, value = self.take()
        if kind != "op" or value != op:
            raise ExpressionError(f"expected '{op}', got '{value}' in {self.text!r}")

    def at_op(self, *ops: str) -> bool:
        tok = self.peek()
        return tok is not None and tok[0] == "op" and tok[1] in ops

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionError("empty expression")
        node = self.expr()
        if self.peek() is not None:
            raise ExpressionError(f"unexpected '{self.peek()[1]}' in {self.text!r}")
        return node

    def expr(self) -> Node:
        node = self.term()
        while self.at_op("+", "-"):
            op = self.take()[1]
            node = Binary(op, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while self.at_op("*", "/"):
            op = self.take()[1]
            node = Binary(op, node, self.unary())
        return node

    def unary(self) -> Node:
        if self.at_op("+", "-"):
            op = self.take()[1]
            return Unary(op, self.unary())
        return self.power()

    def power(self) -> Node:
        node = self.primary()
        if self.at_op("^"):
            self.take()
            node = Binary("^", node, self.unary())
        return node

    def primary(self) -> Node:
        kind, value = self.take()
        if kind == "num":
            return Number(value)
        if kind == "name":
            if self.at_op("("):
                self.take()
                args: list[Node] = []
                if not self.at_op(")"):
                    args.append(self.expr())
                    while self.at_op(","):
                        self.take()
                        args.append(self.expr())
                self.expect(")")
                return Call(value, tuple(args))
            return Symbol(value)
        if value == "(":
            inner = self.expr()
            self.expect(")")
            return Paren(inner)
        raise ExpressionError(f"unexpected '{value}' in {self.text!r}")


# ── public API ───────────────────────────────────────────────────────

def parse(text: str) -> Node:
    """Parse expression text into a tree.  Raises ExpressionError."""
    if not isinstance(text, str):
        raise ExpressionError(f"expression must be text, got {type(text).__name__}")
    return _Parser(text).parse()


def format_number(value: Value) -> str:
    """Render a numeric literal so that it parses back to the same value."""
    z = complex(value)
    if z.imag == 0:
        r = z.real
        return str(int(r)) if r.is_integer() and abs(r) < 1e15 else repr(r)
    if z.real == 0:
        return f"{z.imag!r} * i"
    return f"{z.real!r} + {z.imag!r} * i"


def evaluate(expression: str | Value, env: Mapping[str, Value] | None = None) -> complex:
    """Evaluate text (or pass a number through) to a complex value."""
    if isinstance(expression, numbers.Number) and not isinstance(expression, bool):
        return complex(expression)
    return parse(expression).evaluate(env)


def substitute(expression: str, mapping: Mapping[str, str | Value]) -> str:
    """Replace every symbol named in ``mapping`` by ``(actual text)``.

    The actual text is kept verbatim, e.g. ``theta / 2`` with
    ``{"theta": "pi/2"}`` becomes ``(pi/2) / 2``.
    """
    replacements: dict[str, Node] = {}
    for name, actual in mapping.items():
        text = actual.strip() if isinstance(actual, str) else format_number(actual)
        replacements[name] = Paren(parse(text), text)
    return str(parse(expression).substitute(replacements))
