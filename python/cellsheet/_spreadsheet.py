"""Spreadsheet: named cell store plus the recalculation-ordering engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from cellsheet._contents import CellContents, ContentsKind
from cellsheet._errors import CircularDependencyError, InvalidNameError, NullContentError
from cellsheet.calc._graph import DependencyGraph
from cellsheet.calc._parser import is_valid_name
from cellsheet.calc._protocol import FormulaLike, NameNormalizer, NameValidator

logger = logging.getLogger(__name__)

# Visit markers for the ordering walk
_IN_PROGRESS = 1
_DONE = 2


class Spreadsheet:
    """An infinite grid of named cells whose formulas may read each other.

    Every cell exists conceptually and starts out empty. Setting a cell
    returns the names that must be re-evaluated, in an order where each cell
    comes after every cell it reads. Formulas that would make a cell depend
    on itself, directly or indirectly, are rejected with no change made.

    Usage::

        sheet = Spreadsheet()
        sheet.set_number("A1", 3)
        sheet.set_formula("B1", Formula("A1*2"))
        sheet.set_formula("C1", Formula("B1+A1"))
        sheet.set_number("A1", 4)   # ['A1', 'B1', 'C1']

    *normalize* maps every incoming name (formula variables included) to its
    canonical form and must be idempotent; *is_valid* is an extra check a
    normalized name must pass on top of :func:`is_valid_name`.
    """

    __slots__ = ("_cells", "_graph", "_dirty", "_normalize", "_is_valid")

    def __init__(
        self,
        is_valid: NameValidator | None = None,
        normalize: NameNormalizer | None = None,
    ) -> None:
        # name -> contents; empty cells are never stored
        self._cells: dict[str, CellContents] = {}
        self._graph = DependencyGraph()
        # names mutated since the last mark_saved()
        self._dirty: set[str] = set()
        self._normalize = normalize
        self._is_valid = is_valid

    @property
    def is_valid(self) -> NameValidator | None:
        return self._is_valid

    @property
    def normalize(self) -> NameNormalizer | None:
        return self._normalize

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def _check_name(self, name: str | None) -> str:
        """Return the canonical form of *name* or raise InvalidNameError."""
        if not name or not isinstance(name, str):
            raise InvalidNameError(name)
        canon = self._normalize(name) if self._normalize is not None else name
        if not is_valid_name(canon):
            raise InvalidNameError(name)
        if self._is_valid is not None and not self._is_valid(canon):
            raise InvalidNameError(name)
        return canon

    def _canonical_variables(self, formula: FormulaLike) -> set[str]:
        if self._normalize is None:
            return set(formula.variables())
        return {self._normalize(v) for v in formula.variables()}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_contents(self, name: str) -> CellContents:
        """Contents of *name*; empty contents if it was never set."""
        return self._cells.get(self._check_name(name), CellContents.empty())

    def direct_dependents(self, name: str) -> set[str]:
        """Cells whose formulas read *name* directly."""
        return self._graph.dependents_of(self._check_name(name))

    def direct_dependees(self, name: str) -> set[str]:
        """Cells that *name*'s formula reads directly."""
        return self._graph.dependees_of(self._check_name(name))

    def nonempty_cell_names(self) -> tuple[str, ...]:
        """Names of non-empty cells, in the order they were first set."""
        return tuple(self._cells)

    def __getitem__(self, name: str) -> CellContents:
        return self.get_contents(name)

    def __contains__(self, name: object) -> bool:
        try:
            return self._check_name(name) in self._cells  # type: ignore[arg-type]
        except InvalidNameError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(self.nonempty_cell_names())

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"<Spreadsheet cells={len(self._cells)} edges={len(self._graph)}>"

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    @property
    def changed(self) -> bool:
        """``True`` when a cell was set since the last :meth:`mark_saved`."""
        return bool(self._dirty)

    def dirty_cells(self) -> set[str]:
        return set(self._dirty)

    def mark_saved(self) -> None:
        self._dirty.clear()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_number(self, name: str, value: float) -> list[str]:
        """Make *name* hold *value*; return the cells to recompute, *name* first."""
        canon = self._check_name(name)
        return self._set_plain(canon, CellContents.number(value))

    def set_text(self, name: str, text: str) -> list[str]:
        """Make *name* hold *text*; ``""`` empties the cell.

        Returns the cells to recompute, *name* first.
        """
        if text is None:
            raise NullContentError("text must not be None")
        canon = self._check_name(name)
        return self._set_plain(canon, CellContents.text(text))

    def set_formula(self, name: str, formula: FormulaLike) -> list[str]:
        """Make *name* hold *formula*; return the cells to recompute, *name* first.

        Raises CircularDependencyError, leaving the sheet untouched, when
        the formula would make *name* depend on itself.
        """
        if formula is None:
            raise NullContentError("formula must not be None")
        canon = self._check_name(name)

        previous = self._graph.dependees_of(canon)
        self._graph.replace_dependees(canon, self._canonical_variables(formula))
        try:
            order = self._ordered_closure([canon])
        except CircularDependencyError as exc:
            self._graph.replace_dependees(canon, previous)
            logger.info("Rejected formula %s for %s: %s", formula, canon, exc)
            raise

        self._cells[canon] = CellContents.formula(formula)
        self._dirty.add(canon)
        logger.debug("Set %s = %s; recompute %s", canon, formula, order)
        return order

    def set_contents(self, name: str, contents: CellContents) -> list[str]:
        """Dispatch *contents* to the setter for its kind."""
        if contents is None:
            raise NullContentError("contents must not be None")
        if contents.kind is ContentsKind.FORMULA:
            return self.set_formula(name, contents.value)
        if contents.kind is ContentsKind.NUMBER:
            return self.set_number(name, contents.value)
        # EMPTY and TEXT both carry a string
        return self.set_text(name, contents.value)

    def _set_plain(self, name: str, contents: CellContents) -> list[str]:
        # Plain contents read nothing, so the walk below never meets a cycle.
        self._graph.replace_dependees(name, ())
        if contents.is_empty:
            self._cells.pop(name, None)
        else:
            self._cells[name] = contents
        self._dirty.add(name)
        order = self._ordered_closure([name])
        logger.debug("Set %s = %r; recompute %s", name, contents.value, order)
        return order

    # ------------------------------------------------------------------
    # Recalculation order
    # ------------------------------------------------------------------

    def cells_to_recalculate(self, names: str | Iterable[str]) -> list[str]:
        """Every cell in *names* plus all their transitive dependents.

        Each cell appears once and after every cell it reads. A single root
        always comes first. Raises CircularDependencyError on a cycle.
        """
        if isinstance(names, str):
            names = [names]
        return self._ordered_closure([self._check_name(n) for n in names])

    def _ordered_closure(self, roots: list[str]) -> list[str]:
        """Reverse post-order of a depth-first walk over dependents.

        The walk keeps an explicit stack so long chains do not hit the
        recursion limit. Nodes are in-progress while on the stack and done
        once all their dependents are finished; meeting an in-progress node
        again means a cycle.
        """
        state: dict[str, int] = {}
        finished: list[str] = []

        for root in roots:
            if root in state:
                continue
            state[root] = _IN_PROGRESS
            stack = [(root, iter(sorted(self._graph.dependents_of(root))))]
            while stack:
                node, children = stack[-1]
                for child in children:
                    mark = state.get(child)
                    if mark == _IN_PROGRESS:
                        raise CircularDependencyError(root, child)
                    if mark is None:
                        state[child] = _IN_PROGRESS
                        stack.append((child, iter(sorted(self._graph.dependents_of(child)))))
                        break
                else:
                    stack.pop()
                    state[node] = _DONE
                    finished.append(node)

        finished.reverse()
        return finished
