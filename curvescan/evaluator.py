"""
Evaluator for canonical expressions.

The canonical string is tokenized and parsed by recursive descent into a
tree of closures over ``x``; nothing is handed to ``eval``. Arithmetic runs
on ``numpy.float64`` with floating-point errors silenced, so division by
zero gives +/-inf and domain errors give NaN exactly as IEEE-754 says.
Only the final value is checked: NaN or infinite results come back as
``None``.

Grammar::

    expr  := term (('+' | '-') term)*
    term  := unary (('*' | '/') unary)*
    unary := ('+' | '-') unary | power
    power := call ('^' unary)?
    call  := FUNC atom | atom
    atom  := NUMBER | 'x' | '(' expr ')'
"""

import logging
import re
from functools import lru_cache
from typing import Callable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

_FUNCTIONS = {"sin": np.sin, "cos": np.cos, "tan": np.tan}

_TOKEN = re.compile(
    r"(?P<num>\d+\.?\d*|\.\d+)"
    r"|(?P<func>sin|cos|tan)"
    r"|(?P<var>x)"
    r"|(?P<op>\*\*|[-+*/^()])"
)


class ParseError(ValueError):
    """Canonical text that does not form an expression."""


def tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if m is None:
            raise ParseError(f"Unexpected character {text[pos]!r} at {pos}.")
        kind = m.lastgroup
        value = m.group(kind)
        if value == "**":
            value = "^"
        tokens.append((kind, value))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return (None, None)

    def take(self):
        tok = self.peek()
        self.pos += 1
        return tok

    def expect(self, value):
        kind, got = self.take()
        if got != value:
            raise ParseError(f"Expected {value!r}, got {got!r}.")

    def parse(self):
        if not self.tokens:
            raise ParseError("Empty expression.")
        node = self.expr()
        if self.pos != len(self.tokens):
            raise ParseError(f"Unexpected token {self.peek()[1]!r}.")
        return node

    def expr(self):
        node = self.term()
        while self.peek()[1] in ("+", "-"):
            op = self.take()[1]
            rhs = self.term()
            node = _add(node, rhs) if op == "+" else _sub(node, rhs)
        return node

    def term(self):
        node = self.unary()
        while self.peek()[1] in ("*", "/"):
            op = self.take()[1]
            rhs = self.unary()
            node = _mul(node, rhs) if op == "*" else _div(node, rhs)
        return node

    def unary(self):
        op = self.peek()[1]
        if op == "-":
            self.take()
            return _neg(self.unary())
        if op == "+":
            self.take()
            return self.unary()
        return self.power()

    def power(self):
        base = self.call()
        if self.peek()[1] == "^":
            self.take()
            # right-associative; the exponent may carry its own sign
            return _pow(base, self.unary())
        return base

    def call(self):
        kind, value = self.peek()
        if kind == "func":
            self.take()
            return _apply(_FUNCTIONS[value], self.atom())
        return self.atom()

    def atom(self):
        kind, value = self.take()
        if kind == "num":
            const = np.float64(value)
            return lambda x: const
        if kind == "var":
            return lambda x: x
        if value == "(":
            node = self.expr()
            self.expect(")")
            return node
        raise ParseError(f"Unexpected token {value!r}.")


def _add(a, b): return lambda x: a(x) + b(x)
def _sub(a, b): return lambda x: a(x) - b(x)
def _mul(a, b): return lambda x: a(x) * b(x)
def _div(a, b): return lambda x: a(x) / b(x)
def _pow(a, b): return lambda x: np.power(a(x), b(x))
def _neg(a): return lambda x: -a(x)
def _apply(fn, a): return lambda x: fn(a(x))


@lru_cache(maxsize=256)
def compile_expression(canonical: str) -> Optional[Callable[[float], Optional[float]]]:
    """Parse ``canonical`` once; ``None`` if it is not an expression."""
    try:
        tree = _Parser(tokenize(canonical)).parse()
    except (ParseError, RecursionError) as e:
        logger.debug("cannot parse %r: %s", canonical, e)
        return None

    def f(x):
        with np.errstate(all="ignore"):
            y = tree(np.float64(x))
        if not np.isfinite(y):
            return None
        return float(y)

    return f


def evaluate(canonical: str, x: float) -> Optional[float]:
    """Value of ``canonical`` at ``x``, or ``None`` where it is undefined."""
    f = compile_expression(canonical)
    if f is None:
        return None
    try:
        return f(x)
    except (TypeError, ValueError, OverflowError):
        return None
