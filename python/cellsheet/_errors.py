"""
Exception classes for cellsheet.

Every error is raised before the spreadsheet is left in a modified state:
a call either fully succeeds or changes nothing.
"""

from __future__ import annotations


class CellsheetError(Exception):
    """Base class for all cellsheet errors."""
    pass


class InvalidNameError(CellsheetError, ValueError):
    """Raised when a cell name is absent or not a legal identifier.

    A legal name starts with a letter or underscore followed by letters,
    digits or underscores, and must also satisfy any extra predicate the
    spreadsheet was configured with. Examples of illegal names:
        - ``""`` and ``None``
        - ``"2x"`` (leading digit)
        - ``"A-1"`` (punctuation)
    """

    def __init__(self, name: object) -> None:
        super().__init__(f"Invalid cell name: {name!r}")
        self.name = name


class NullContentError(CellsheetError, TypeError):
    """Raised when ``None`` is passed where text or a formula is required."""
    pass


class CircularDependencyError(CellsheetError, ValueError):
    """Raised when a formula would make a cell depend on itself.

    The tentative graph edit is rolled back before this propagates, so the
    spreadsheet is exactly as it was before the call.
    """

    def __init__(self, cell: str, involving: str | None = None) -> None:
        where = involving if involving is not None else cell
        super().__init__(f"Circular reference detected involving: {where}")
        self.cell = cell
        self.involving = where


class FormulaFormatError(CellsheetError, ValueError):
    """Raised when formula text cannot be tokenized or is syntactically invalid."""
    pass
