"""Formula tokenizer: regex-based token scan, name rules and syntax checks."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import NamedTuple

from cellsheet._errors import FormulaFormatError

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Cell name: letter or underscore, then letters, digits, underscores
_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_NAME_RE = re.compile(rf"{_NAME}")

# Non-negative decimal with optional exponent: 3, 3., .5, 2.5e-3
_NUMBER = r"(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?"

_TOKEN_RE = re.compile(
    rf"\s*(?:(?P<number>{_NUMBER})|(?P<name>{_NAME})|(?P<op>[-+*/])"
    rf"|(?P<lparen>\()|(?P<rparen>\)))"
)

NUMBER = "number"
NAME = "name"
OP = "op"
LPAREN = "lparen"
RPAREN = "rparen"

# Tokens that may end an operand (and so start a valid formula's end)
_OPERAND_END = (NUMBER, NAME, RPAREN)
# Tokens that may start an operand
_OPERAND_START = (NUMBER, NAME, LPAREN)


class Token(NamedTuple):
    kind: str
    text: str


def is_valid_name(name: object) -> bool:
    """``True`` when *name* is a string of the form ``[A-Za-z_][A-Za-z0-9_]*``.

    ``"x"``, ``"_"``, ``"x2"`` and ``"y_15"`` are valid; ``""``, ``"25"``,
    ``"2x"`` and ``"&"`` are not. Names are case sensitive.
    """
    return isinstance(name, str) and _NAME_RE.fullmatch(name) is not None


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, ignoring whitespace.

    Raises FormulaFormatError on any character that starts no token.
    """
    tokens: list[Token] = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            bad = text[pos:].lstrip()[:1]
            raise FormulaFormatError(f"Unexpected character {bad!r} in formula {text!r}")
        kind = m.lastgroup
        assert kind is not None
        tokens.append(Token(kind, m.group(kind)))
        pos = m.end()
    return tokens


def parse_references(text: str) -> list[str]:
    """Names referenced by *text*, first occurrence order, no duplicates."""
    refs: list[str] = []
    seen: set[str] = set()
    for tok in tokenize(text):
        if tok.kind == NAME and tok.text not in seen:
            refs.append(tok.text)
            seen.add(tok.text)
    return refs


# ---------------------------------------------------------------------------
# Syntax validation
# ---------------------------------------------------------------------------


def check_syntax(tokens: list[Token], text: str = "") -> None:
    """Validate the token sequence of an infix arithmetic formula.

    Rules:

    1. at least one token
    2. no prefix closes more parentheses than it opened, and the totals match
    3. the first token is a number, name or ``(``
    4. the last token is a number, name or ``)``
    5. after ``(`` or an operator comes a number, name or ``(``
    6. after a number, name or ``)`` comes an operator or ``)``
    """
    shown = text or " ".join(t.text for t in tokens)
    if not tokens:
        raise FormulaFormatError("Formula is empty")
    if tokens[0].kind not in _OPERAND_START:
        raise FormulaFormatError(f"Formula {shown!r} cannot start with {tokens[0].text!r}")
    if tokens[-1].kind not in _OPERAND_END:
        raise FormulaFormatError(f"Formula {shown!r} cannot end with {tokens[-1].text!r}")

    depth = 0
    prev: Token | None = None
    for tok in tokens:
        if tok.kind == LPAREN:
            depth += 1
        elif tok.kind == RPAREN:
            depth -= 1
            if depth < 0:
                raise FormulaFormatError(f"Unbalanced ')' in formula {shown!r}")
        if prev is not None:
            if prev.kind in (LPAREN, OP) and tok.kind not in _OPERAND_START:
                raise FormulaFormatError(
                    f"Expected a number, name or '(' after {prev.text!r} in {shown!r}"
                )
            if prev.kind in _OPERAND_END and tok.kind not in (OP, RPAREN):
                raise FormulaFormatError(
                    f"Expected an operator or ')' after {prev.text!r} in {shown!r}"
                )
        prev = tok
    if depth != 0:
        raise FormulaFormatError(f"Unbalanced '(' in formula {shown!r}")


def normalize_names(
    tokens: list[Token],
    normalize: Callable[[str], str] | None = None,
    is_valid: Callable[[str], bool] | None = None,
) -> list[Token]:
    """Return *tokens* with every name normalized and checked.

    A normalized name must pass :func:`is_valid_name` and, when given,
    *is_valid*; otherwise FormulaFormatError is raised.
    """
    out: list[Token] = []
    for tok in tokens:
        if tok.kind == NAME:
            name = normalize(tok.text) if normalize is not None else tok.text
            if not is_valid_name(name) or (is_valid is not None and not is_valid(name)):
                raise FormulaFormatError(f"Invalid variable {tok.text!r} in formula")
            tok = Token(NAME, name)
        out.append(tok)
    return out
