"""SheetEvaluator: keeps cell values current as a Spreadsheet changes.

The spreadsheet only decides *which* cells need recomputing and in what
order. This module does the recomputing: it turns raw cell input into
contents, hands it to the spreadsheet, then evaluates the returned cells in
that order so every formula sees up-to-date values for the cells it reads.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cellsheet._contents import ContentsKind
from cellsheet._errors import NullContentError
from cellsheet.calc._formula import Formula, FormulaError
from cellsheet.calc._protocol import CellDelta, CellValue, RecalcResult

if TYPE_CHECKING:
    from cellsheet._spreadsheet import Spreadsheet

logger = logging.getLogger(__name__)


def _values_differ(a: CellValue, b: CellValue, tolerance: float) -> bool:
    """Check if two values differ beyond tolerance."""
    if isinstance(a, float) and isinstance(b, float):
        return abs(a - b) > tolerance
    return a != b


class SheetEvaluator:
    """Evaluates the cells of a :class:`~cellsheet.Spreadsheet`.

    Usage::

        ev = SheetEvaluator()
        ev.set_cell("A1", "3")
        ev.set_cell("B1", "=A1*2")
        result = ev.set_cell("A1", "4")
        ev.value("B1")          # 8.0
        result.order            # ('A1', 'B1')

    A formula variable resolves only when the named cell's value is a
    number; text, empty cells and formula errors all make the reading
    formula evaluate to a :class:`FormulaError`.
    """

    def __init__(self, sheet: Spreadsheet | None = None, tolerance: float = 1e-10) -> None:
        if sheet is None:
            from cellsheet._spreadsheet import Spreadsheet

            sheet = Spreadsheet()
        self._sheet = sheet
        self._tolerance = tolerance
        # name -> computed value, for non-empty cells only
        self._values: dict[str, CellValue] = {}
        if len(sheet):
            self.calculate()

    @property
    def sheet(self) -> Spreadsheet:
        return self._sheet

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_cell(self, name: str, raw: str) -> RecalcResult:
        """Parse *raw* like a spreadsheet input line and store it in *name*.

        ``""`` empties the cell, ``"=..."`` is a formula, anything that
        parses as a float is a number, and everything else is text.
        Raises FormulaFormatError for malformed formulas and
        CircularDependencyError for circular ones; neither changes anything.
        """
        if raw is None:
            raise NullContentError("cell input must not be None")
        sheet = self._sheet
        if raw.startswith("="):
            formula = Formula(raw[1:], normalize=sheet.normalize, is_valid=sheet.is_valid)
            order = sheet.set_formula(name, formula)
        elif raw == "":
            order = sheet.set_text(name, raw)
        else:
            try:
                number = float(raw)
            except ValueError:
                order = sheet.set_text(name, raw)
            else:
                order = sheet.set_number(name, number)
        return self._recalculate(order)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def value(self, name: str) -> CellValue:
        """Value of *name*: ``""`` when empty, else a float, text or FormulaError."""
        # get_contents validates the name
        if self._sheet.get_contents(name).is_empty:
            return ""
        canon = self._sheet.normalize(name) if self._sheet.normalize is not None else name
        if canon in self._values:
            return self._values[canon]
        # set directly on the sheet, bypassing this evaluator
        return self._evaluate_cell(canon)

    def calculate(self) -> dict[str, CellValue]:
        """Evaluate every non-empty cell in dependency order.

        Returns a dict of name -> value for all non-empty cells.
        """
        names = list(self._sheet.nonempty_cell_names())
        self._values.clear()
        for name in self._sheet.cells_to_recalculate(names):
            self._store(name, self._evaluate_cell(name))
        return dict(self._values)

    def _recalculate(self, order: list[str]) -> RecalcResult:
        deltas: list[CellDelta] = []
        for name in order:
            old = self._values.get(name, "")
            new = self._evaluate_cell(name)
            self._store(name, new)
            if _values_differ(old, new, self._tolerance):
                deltas.append(CellDelta(name=name, old_value=old, new_value=new))
        logger.debug("Recalculated %d cells, %d changed", len(order), len(deltas))
        return RecalcResult(changed_cell=order[0], order=tuple(order), deltas=tuple(deltas))

    def _store(self, name: str, value: CellValue) -> None:
        if value == "":
            self._values.pop(name, None)
        else:
            self._values[name] = value

    def _evaluate_cell(self, name: str) -> CellValue:
        contents = self._sheet.get_contents(name)
        if contents.kind is ContentsKind.FORMULA:
            result = contents.value.evaluate(self._lookup)
            if isinstance(result, FormulaError):
                logger.debug("Formula in %s evaluated to %s", name, result)
            return result
        # EMPTY, NUMBER and TEXT evaluate to their own payload
        return contents.value

    def _lookup(self, name: str) -> float:
        if name not in self._values and not self._sheet.get_contents(name).is_empty:
            # set directly on the sheet, bypassing this evaluator
            self._store(name, self._evaluate_cell(name))
        value = self._values.get(name)
        if not isinstance(value, float):
            raise KeyError(name)
        return value
