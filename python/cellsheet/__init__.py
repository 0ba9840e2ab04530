"""cellsheet: named cells, formulas, and safe recalculation order.

Usage::

    from cellsheet import Spreadsheet
    from cellsheet.calc import Formula, SheetEvaluator

    # Contents and ordering only
    sheet = Spreadsheet()
    sheet.set_number("A1", 3)
    sheet.set_formula("B1", Formula("A1*2"))
    sheet.set_number("A1", 4)        # ['A1', 'B1']

    # With values
    ev = SheetEvaluator(sheet)
    ev.set_cell("C1", "=B1+A1")
    print(ev.value("C1"))            # 12.0
"""

from cellsheet._contents import CellContents, ContentsKind
from cellsheet._errors import (
    CellsheetError,
    CircularDependencyError,
    FormulaFormatError,
    InvalidNameError,
    NullContentError,
)
from cellsheet._spreadsheet import Spreadsheet
from cellsheet.calc import Formula, FormulaError, SheetEvaluator, is_valid_name

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellContents",
    "CellsheetError",
    "CircularDependencyError",
    "ContentsKind",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "InvalidNameError",
    "NullContentError",
    "SheetEvaluator",
    "Spreadsheet",
    "is_valid_name",
]
