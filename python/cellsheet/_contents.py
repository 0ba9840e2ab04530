"""Cell contents: a tagged variant over empty, number, text and formula."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from cellsheet.calc._protocol import FormulaLike


class ContentsKind(enum.Enum):
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"
    FORMULA = "formula"


@dataclass(frozen=True)
class CellContents:
    """What a cell holds, as opposed to the value it displays.

    Build instances with the classmethods rather than the constructor so the
    payload always matches the tag. Text ``""`` is the empty variant.
    """

    kind: ContentsKind
    value: Union[float, str, FormulaLike]

    @classmethod
    def empty(cls) -> CellContents:
        return _EMPTY

    @classmethod
    def number(cls, value: float) -> CellContents:
        return cls(ContentsKind.NUMBER, float(value))

    @classmethod
    def text(cls, text: str) -> CellContents:
        if text == "":
            return _EMPTY
        return cls(ContentsKind.TEXT, text)

    @classmethod
    def formula(cls, formula: FormulaLike) -> CellContents:
        return cls(ContentsKind.FORMULA, formula)

    @property
    def is_empty(self) -> bool:
        return self.kind is ContentsKind.EMPTY

    @property
    def is_formula(self) -> bool:
        return self.kind is ContentsKind.FORMULA

    def __str__(self) -> str:
        if self.kind is ContentsKind.FORMULA:
            return f"={self.value}"
        if self.kind is ContentsKind.NUMBER:
            return repr(self.value)
        return str(self.value)


_EMPTY = CellContents(ContentsKind.EMPTY, "")
