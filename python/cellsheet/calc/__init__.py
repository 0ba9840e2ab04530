"""cellsheet.calc - Formula parsing, dependency tracking and evaluation."""

from cellsheet.calc._evaluator import SheetEvaluator
from cellsheet.calc._formula import Formula, FormulaError
from cellsheet.calc._graph import DependencyGraph
from cellsheet.calc._parser import is_valid_name, parse_references, tokenize
from cellsheet.calc._protocol import CellDelta, FormulaLike, RecalcResult

__all__ = [
    "CellDelta",
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "FormulaLike",
    "RecalcResult",
    "SheetEvaluator",
    "is_valid_name",
    "parse_references",
    "tokenize",
]
