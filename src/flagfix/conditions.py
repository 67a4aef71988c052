"""conditions.py – Boolean conditions over flag states.

A condition is an AND/OR tree whose leaves test one flag against ``on`` or
``off``.  Evaluation is three-valued: a leaf on an unset flag is unknown,
and the tree is only *determined* once enough leaves are known (an OR with
one true term is true even if the others are still unset).

Conditions can be built directly or parsed from text::

    parse_condition("GLS_MIXING || MY25_MIXING")
    parse_condition("BIO_FENNEL and not PERFECT_RESTART")
    parse_condition("(LMD_MIXING == on) && RI_SPLINES == off")
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from flagfix.errors import ConditionSyntaxError
from flagfix.registry import State


class Condition:
    """Base class for condition nodes."""

    def evaluate(self, values: Mapping[str, State]) -> bool | None:
        raise NotImplementedError

    def flags(self) -> list[str]:
        raise NotImplementedError

    def negate(self) -> "Condition":
        raise NotImplementedError


@dataclass(frozen=True)
class Test(Condition):
    """Leaf: ``flag == value``."""

    flag: str
    value: bool = True

    def evaluate(self, values: Mapping[str, State]) -> bool | None:
        state = values.get(self.flag, State.UNSET)
        if state is State.UNSET:
            return None
        return (state is State.ON) == self.value

    def flags(self) -> list[str]:
        return [self.flag]

    def negate(self) -> "Test":
        return Test(self.flag, not self.value)

    def __str__(self) -> str:
        return self.flag if self.value else f"!{self.flag}"


@dataclass(frozen=True)
class AllOf(Condition):
    terms: tuple[Condition, ...]

    def evaluate(self, values: Mapping[str, State]) -> bool | None:
        unknown = False
        for term in self.terms:
            result = term.evaluate(values)
            if result is False:
                return False
            if result is None:
                unknown = True
        return None if unknown else True

    def flags(self) -> list[str]:
        return _merge_flags(self.terms)

    def negate(self) -> "AnyOf":
        return AnyOf(tuple(t.negate() for t in self.terms))

    def __str__(self) -> str:
        return " && ".join(_wrap(t) for t in self.terms)


@dataclass(frozen=True)
class AnyOf(Condition):
    terms: tuple[Condition, ...]

    def evaluate(self, values: Mapping[str, State]) -> bool | None:
        unknown = False
        for term in self.terms:
            result = term.evaluate(values)
            if result is True:
                return True
            if result is None:
                unknown = True
        return None if unknown else False

    def flags(self) -> list[str]:
        return _merge_flags(self.terms)

    def negate(self) -> "AllOf":
        return AllOf(tuple(t.negate() for t in self.terms))

    def __str__(self) -> str:
        return " || ".join(_wrap(t) for t in self.terms)


def _merge_flags(terms: tuple[Condition, ...]) -> list[str]:
    seen: dict[str, None] = {}
    for term in terms:
        for name in term.flags():
            seen.setdefault(name)
    return list(seen)


def _wrap(term: Condition) -> str:
    return f"({term})" if isinstance(term, (AllOf, AnyOf)) else str(term)


# ---------------------------------------------------------------------------
# Text parser
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"\s*(?:(?P<op>\|\||&&|==|!=|!|\(|\))|(?P<word>[A-Za-z_][A-Za-z0-9_]*))"
)

_AND = {"and", "&&"}
_OR = {"or", "||"}
_NOT = {"not", "!"}


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        m = _TOKEN_RE.match(stripped, pos)
        if m is None or m.end() == pos:
            raise ConditionSyntaxError(text, f"unexpected character at offset {pos}")
        tokens.append(m.group("op") or m.group("word"))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        tok = self.peek()
        if tok is None:
            raise ConditionSyntaxError(self.text, "unexpected end of expression")
        self.pos += 1
        return tok

    def parse(self) -> Condition:
        if not self.tokens:
            raise ConditionSyntaxError(self.text, "empty condition")
        node = self.expr()
        if self.peek() is not None:
            raise ConditionSyntaxError(self.text, f"unexpected token {self.peek()!r}")
        return node

    def expr(self) -> Condition:
        terms = [self.term()]
        while self.peek() is not None and self.peek().lower() in _OR:
            self.take()
            terms.append(self.term())
        return terms[0] if len(terms) == 1 else AnyOf(tuple(terms))

    def term(self) -> Condition:
        factors = [self.factor()]
        while self.peek() is not None and self.peek().lower() in _AND:
            self.take()
            factors.append(self.factor())
        return factors[0] if len(factors) == 1 else AllOf(tuple(factors))

    def factor(self) -> Condition:
        tok = self.take()
        if tok.lower() in _NOT:
            return self.factor().negate()
        if tok == "(":
            node = self.expr()
            if self.take() != ")":
                raise ConditionSyntaxError(self.text, "missing ')'")
            return node
        if not re.match(r"[A-Za-z_]", tok) or tok.lower() in _AND | _OR:
            raise ConditionSyntaxError(self.text, f"expected a flag name, got {tok!r}")
        if self.peek() in ("==", "!="):
            op = self.take()
            raw = self.take()
            try:
                value = State.parse(raw)
            except ValueError:
                raise ConditionSyntaxError(self.text, f"bad flag value {raw!r}") from None
            if value is State.UNSET:
                raise ConditionSyntaxError(self.text, "flags can only be compared to on/off")
            positive = value is State.ON
            return Test(tok, positive if op == "==" else not positive)
        return Test(tok, True)


def parse_condition(text: str) -> Condition:
    """Parse a textual condition into a :class:`Condition` tree."""
    return _Parser(text).parse()


def as_condition(value: Condition | str) -> Condition:
    """Accept either a prebuilt condition or its textual form."""
    if isinstance(value, Condition):
        return value
    if not isinstance(value, str):
        raise ConditionSyntaxError(repr(value), "expected a condition string")
    return parse_condition(value)
