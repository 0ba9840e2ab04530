"""Formula: infix arithmetic over numbers and cell names.

Evaluation never raises for domain problems. Division by zero and
unresolvable variables produce a :class:`FormulaError` value, which then
propagates through every enclosing operation, the way spreadsheet errors do.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from cellsheet._errors import FormulaFormatError
from cellsheet.calc._parser import (
    LPAREN,
    NAME,
    NUMBER,
    Token,
    check_syntax,
    normalize_names,
    tokenize,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormulaError:
    """Result of a formula that cannot produce a number."""

    reason: str

    def __str__(self) -> str:
        return f"#ERROR: {self.reason}"


EvalResult = Union[float, FormulaError]


def _apply(left: EvalResult, op: str, right: EvalResult) -> EvalResult:
    """Evaluate a binary arithmetic operation with error propagation."""
    if isinstance(left, FormulaError):
        return left
    if isinstance(right, FormulaError):
        return right
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if right == 0:
        return FormulaError("division by zero")
    return left / right


class Formula:
    """A syntactically valid arithmetic formula.

    Usage::

        f = Formula("A1 * (b2 + 3)", normalize=str.upper)
        f.variables()            # frozenset({'A1', 'B2'})
        str(f)                   # 'A1*(B2+3.0)'
        f.evaluate({"A1": 2.0, "B2": 1.0}.__getitem__)   # 8.0

    *normalize* maps each variable to its canonical form; every normalized
    variable must be a legal cell name and pass *is_valid* when given.
    Raises FormulaFormatError otherwise, or when the text is malformed.
    """

    __slots__ = ("_tokens", "_text", "_variables")

    def __init__(
        self,
        text: str,
        normalize: Callable[[str], str] | None = None,
        is_valid: Callable[[str], bool] | None = None,
    ) -> None:
        tokens = tokenize(text)
        check_syntax(tokens, text)
        tokens = normalize_names(tokens, normalize, is_valid)
        for t in tokens:
            if t.kind == NUMBER and not math.isfinite(float(t.text)):
                raise FormulaFormatError(f"Number {t.text!r} is out of range in formula {text!r}")
        self._tokens: tuple[Token, ...] = tuple(tokens)
        self._variables = frozenset(t.text for t in tokens if t.kind == NAME)
        self._text = "".join(
            repr(float(t.text)) if t.kind == NUMBER else t.text for t in tokens
        )

    def variables(self) -> frozenset[str]:
        """Normalized names this formula reads."""
        return self._variables

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Formula({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Formula):
            return self._text == other._text
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._text)

    # ------------------------------------------------------------------
    # Evaluation (recursive descent over the token list)
    # ------------------------------------------------------------------

    def evaluate(self, lookup: Callable[[str], float]) -> EvalResult:
        """Compute the formula, resolving variables through *lookup*.

        *lookup* returns a number or raises LookupError, ValueError or
        TypeError when the variable has no numeric value.
        """
        value, _ = self._expression(0, lookup)
        return value

    def _expression(self, pos: int, lookup: Callable[[str], float]) -> tuple[EvalResult, int]:
        value, pos = self._term(pos, lookup)
        while pos < len(self._tokens) and self._tokens[pos].text in ('+', '-'):
            op = self._tokens[pos].text
            right, pos = self._term(pos + 1, lookup)
            value = _apply(value, op, right)
        return value, pos

    def _term(self, pos: int, lookup: Callable[[str], float]) -> tuple[EvalResult, int]:
        value, pos = self._factor(pos, lookup)
        while pos < len(self._tokens) and self._tokens[pos].text in ('*', '/'):
            op = self._tokens[pos].text
            right, pos = self._factor(pos + 1, lookup)
            value = _apply(value, op, right)
        return value, pos

    def _factor(self, pos: int, lookup: Callable[[str], float]) -> tuple[EvalResult, int]:
        tok = self._tokens[pos]
        if tok.kind == LPAREN:
            value, pos = self._expression(pos + 1, lookup)
            # skip the matching ')'
            return value, pos + 1
        if tok.kind == NUMBER:
            return float(tok.text), pos + 1
        # Syntax was checked on construction, so only names remain here
        assert tok.kind == NAME
        try:
            return float(lookup(tok.text)), pos + 1
        except (LookupError, ValueError, TypeError):
            logger.debug("Cannot resolve variable %r in %s", tok.text, self._text)
            return FormulaError(f"undefined variable: {tok.text}"), pos + 1
