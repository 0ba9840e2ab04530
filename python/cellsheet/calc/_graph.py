"""Dependency graph between named cells, stored in both directions."""

from __future__ import annotations

from collections.abc import Iterable


class DependencyGraph:
    """Tracks which cells read from which.

    An edge ``dependee -> dependent`` means the dependent's formula reads the
    dependee. Both directions are kept in sync by every mutating method;
    there is no way to update one view without the other.
    """

    __slots__ = ("_dependents", "_dependees", "_size")

    def __init__(self) -> None:
        # cell -> set of cells that read from it
        self._dependents: dict[str, set[str]] = {}
        # cell -> set of cells it reads from
        self._dependees: dict[str, set[str]] = {}
        self._size = 0

    def __len__(self) -> int:
        """Number of distinct edges."""
        return self._size

    def __repr__(self) -> str:
        return f"<DependencyGraph edges={self._size}>"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def dependents_of(self, cell: str) -> set[str]:
        """Cells whose formulas read *cell* directly (a copy)."""
        return set(self._dependents.get(cell, ()))

    def dependees_of(self, cell: str) -> set[str]:
        """Cells that *cell*'s formula reads directly (a copy)."""
        return set(self._dependees.get(cell, ()))

    def has_dependents(self, cell: str) -> bool:
        return cell in self._dependents

    def has_dependees(self, cell: str) -> bool:
        return cell in self._dependees

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_dependency(self, dependee: str, dependent: str) -> None:
        """Record that *dependent* reads *dependee*. Adding twice is a no-op."""
        targets = self._dependents.setdefault(dependee, set())
        if dependent in targets:
            return
        targets.add(dependent)
        self._dependees.setdefault(dependent, set()).add(dependee)
        self._size += 1

    def remove_dependency(self, dependee: str, dependent: str) -> None:
        """Drop a single edge if present."""
        targets = self._dependents.get(dependee)
        if targets is None or dependent not in targets:
            return
        targets.discard(dependent)
        if not targets:
            del self._dependents[dependee]
        sources = self._dependees[dependent]
        sources.discard(dependee)
        if not sources:
            del self._dependees[dependent]
        self._size -= 1

    def replace_dependees(self, cell: str, new_dependees: Iterable[str]) -> None:
        """Make *new_dependees* the exact set of cells that *cell* reads."""
        for old in self.dependees_of(cell):
            self.remove_dependency(old, cell)
        for new in new_dependees:
            self.add_dependency(new, cell)

    def replace_dependents(self, cell: str, new_dependents: Iterable[str]) -> None:
        """Make *new_dependents* the exact set of cells that read *cell*."""
        for old in self.dependents_of(cell):
            self.remove_dependency(cell, old)
        for new in new_dependents:
            self.add_dependency(cell, new)
