"""Collaborator protocols and recalculation result dataclasses."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from cellsheet.calc._formula import FormulaError

NameValidator = Callable[[str], bool]
NameNormalizer = Callable[[str], str]

CellValue = Union[float, str, "FormulaError"]


@runtime_checkable
class FormulaLike(Protocol):
    """What the spreadsheet needs from a formula.

    Only ``variables()`` is used to maintain the dependency graph;
    ``evaluate()`` is for evaluation drivers.
    """

    def variables(self) -> Iterable[str]:
        """Names of the cells this formula reads."""
        ...

    def evaluate(self, lookup: Callable[[str], float]) -> float | FormulaError:
        """Compute the formula, resolving each variable through *lookup*."""
        ...


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from recalculation."""

    name: str
    old_value: CellValue  # "" when the cell was empty
    new_value: CellValue


@dataclass(frozen=True)
class RecalcResult:
    """Result of setting one cell and re-evaluating its closure."""

    changed_cell: str
    order: tuple[str, ...]  # evaluation order, changed_cell first
    deltas: tuple[CellDelta, ...]  # cells whose value actually changed

    @property
    def propagated_cells(self) -> int:
        return len(self.deltas)

    @property
    def propagation_ratio(self) -> float:
        if not self.order:
            return 0.0
        return len(self.deltas) / len(self.order)
