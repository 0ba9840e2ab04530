"""Tests for the Spreadsheet cell store and recalculation ordering."""

from __future__ import annotations

import logging

import pytest

from cellsheet import (
    CellContents,
    CircularDependencyError,
    ContentsKind,
    Formula,
    InvalidNameError,
    NullContentError,
    Spreadsheet,
)


class _Refs:
    """Minimal FormulaLike that only knows which names it reads."""

    def __init__(self, *names: str) -> None:
        self._names = names

    def variables(self) -> tuple[str, ...]:
        return self._names

    def evaluate(self, lookup):
        return sum(lookup(n) for n in self._names)


def _assert_precedes(order: list[str], first: str, then: str) -> None:
    assert order.index(first) < order.index(then), order


def _chain_sheet() -> Spreadsheet:
    """A1 = 3, B1 = A1*2, C1 = B1+A1."""
    sheet = Spreadsheet()
    sheet.set_number("A1", 3)
    sheet.set_formula("B1", Formula("A1*2"))
    sheet.set_formula("C1", Formula("B1+A1"))
    return sheet


class TestContents:
    @pytest.mark.parametrize("name", ["A1", "x", "_", "zz99"])
    def test_fresh_cell_is_empty(self, name: str) -> None:
        contents = Spreadsheet().get_contents(name)
        assert contents.is_empty
        assert contents.value == ""

    def test_number(self) -> None:
        sheet = Spreadsheet()
        sheet.set_number("A1", 5)
        contents = sheet.get_contents("A1")
        assert contents == CellContents.number(5)
        assert contents.kind is ContentsKind.NUMBER
        assert contents.value == 5

    def test_text(self) -> None:
        sheet = Spreadsheet()
        sheet.set_text("A1", "hello")
        assert sheet.get_contents("A1") == CellContents.text("hello")

    def test_formula(self) -> None:
        sheet = Spreadsheet()
        f = Formula("B1+1")
        sheet.set_formula("A1", f)
        contents = sheet.get_contents("A1")
        assert contents.is_formula
        assert contents.value == f

    def test_overwrite_changes_kind(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1"))
        sheet.set_number("A1", 2.5)
        assert sheet["A1"] == CellContents.number(2.5)

    def test_names_are_case_sensitive(self) -> None:
        sheet = Spreadsheet()
        sheet.set_number("a1", 1)
        assert sheet.get_contents("A1").is_empty

    def test_set_contents_dispatch(self) -> None:
        sheet = Spreadsheet()
        sheet.set_contents("A1", CellContents.number(1))
        sheet.set_contents("B1", CellContents.formula(Formula("A1")))
        sheet.set_contents("C1", CellContents.text("note"))
        assert sheet.direct_dependents("A1") == {"B1"}
        assert sheet["C1"].value == "note"
        sheet.set_contents("C1", CellContents.empty())
        assert "C1" not in sheet


class TestNonemptyNames:
    def test_insertion_order(self) -> None:
        sheet = _chain_sheet()
        assert list(sheet.nonempty_cell_names()) == ["A1", "B1", "C1"]

    def test_emptied_cell_excluded(self) -> None:
        sheet = _chain_sheet()
        sheet.set_text("B1", "")
        assert "B1" not in set(sheet.nonempty_cell_names())
        assert sheet.get_contents("B1").is_empty
        assert len(sheet) == 2

    def test_restartable_snapshot(self) -> None:
        sheet = _chain_sheet()
        names = sheet.nonempty_cell_names()
        sheet.set_number("D1", 1)
        assert list(names) == ["A1", "B1", "C1"]
        assert list(names) == ["A1", "B1", "C1"]
        assert list(sheet) == ["A1", "B1", "C1", "D1"]
        assert list(sheet) == list(sheet)

    def test_empty_sheet(self) -> None:
        assert list(Spreadsheet().nonempty_cell_names()) == []


class TestDependents:
    def test_direct_dependents(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("B1", Formula("A1*A1"))
        assert "B1" in sheet.direct_dependents("A1")

    def test_multiple_and_no_duplicates(self) -> None:
        """A1 = 3, B1 = A1*A1, C1 = B1+A1, D1 = B1-C1."""
        sheet = Spreadsheet()
        sheet.set_number("A1", 3)
        sheet.set_formula("B1", Formula("A1*A1"))
        sheet.set_formula("C1", Formula("B1+A1"))
        sheet.set_formula("D1", Formula("B1-C1"))
        assert sheet.direct_dependents("A1") == {"B1", "C1"}
        assert sheet.direct_dependents("B1") == {"C1", "D1"}
        assert sheet.direct_dependees("D1") == {"B1", "C1"}

    def test_overwrite_clears_stale_edges(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1+1"))
        sheet.set_text("A1", "hello")
        assert "A1" not in sheet.direct_dependents("B1")

    def test_new_formula_replaces_edges(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1+C1"))
        sheet.set_formula("A1", Formula("C1+D1"))
        assert sheet.direct_dependents("B1") == set()
        assert sheet.direct_dependents("C1") == {"A1"}
        assert sheet.direct_dependents("D1") == {"A1"}

    def test_emptied_formula_cell_drops_edges(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1"))
        sheet.set_text("A1", "")
        assert sheet.direct_dependents("B1") == set()

    def test_dependents_of_unknown_cell(self) -> None:
        assert Spreadsheet().direct_dependents("Q7") == set()


class TestRecalculationOrder:
    def test_chain(self) -> None:
        sheet = _chain_sheet()
        order = sheet.set_number("A1", 4)
        assert set(order) == {"A1", "B1", "C1"}
        assert len(order) == 3
        _assert_precedes(order, "A1", "B1")
        _assert_precedes(order, "B1", "C1")

    def test_root_first(self) -> None:
        sheet = _chain_sheet()
        assert sheet.set_number("A1", 4)[0] == "A1"
        assert sheet.set_formula("B1", Formula("A1*3")) == ["B1", "C1"]
        assert sheet.set_text("C1", "x") == ["C1"]

    def test_isolated_cell(self) -> None:
        assert Spreadsheet().set_number("Z1", 1) == ["Z1"]

    def test_diamond(self) -> None:
        """A1 feeds B1 and C1, both feed D1."""
        sheet = Spreadsheet()
        sheet.set_formula("B1", Formula("A1+1"))
        sheet.set_formula("C1", Formula("A1*2"))
        sheet.set_formula("D1", Formula("B1+C1"))
        order = sheet.set_number("A1", 1)
        assert sorted(order) == ["A1", "B1", "C1", "D1"]
        _assert_precedes(order, "B1", "D1")
        _assert_precedes(order, "C1", "D1")
        assert order[0] == "A1"

    def test_skip_level_edge(self) -> None:
        """D1 reads A1 directly and through B1 and C1."""
        sheet = Spreadsheet()
        sheet.set_formula("B1", Formula("A1"))
        sheet.set_formula("C1", Formula("B1"))
        sheet.set_formula("D1", Formula("C1+A1"))
        order = sheet.set_number("A1", 1)
        assert order == ["A1", "B1", "C1", "D1"]

    def test_unrelated_cells_excluded(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("B1", Formula("A1+1"))
        sheet.set_formula("D1", Formula("C1*2"))
        order = sheet.set_number("A1", 1)
        assert "D1" not in order

    def test_repeated_requests_are_consistent(self) -> None:
        sheet = _chain_sheet()
        sheet.set_formula("D1", Formula("A1"))
        first = sheet.cells_to_recalculate("A1")
        second = sheet.cells_to_recalculate("A1")
        assert set(first) == set(second)
        for order in (first, second):
            _assert_precedes(order, "A1", "B1")
            _assert_precedes(order, "B1", "C1")

    def test_multiple_roots(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("C1", Formula("A1+B1"))
        sheet.set_formula("D1", Formula("C1"))
        order = sheet.cells_to_recalculate(["A1", "B1"])
        assert sorted(order) == ["A1", "B1", "C1", "D1"]
        _assert_precedes(order, "A1", "C1")
        _assert_precedes(order, "B1", "C1")
        _assert_precedes(order, "C1", "D1")

    def test_deep_chain_no_recursion_error(self) -> None:
        sheet = Spreadsheet()
        depth = 5000
        for i in range(1, depth):
            sheet.set_formula(f"c{i}", _Refs(f"c{i - 1}"))
        order = sheet.set_number("c0", 1)
        assert order == [f"c{i}" for i in range(depth)]

    def test_accepts_any_formula_like(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("B1", _Refs("A1", "A1"))
        assert sheet.direct_dependents("A1") == {"B1"}


class TestCircularDependency:
    def test_two_cell_cycle(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1+1"))
        with pytest.raises(CircularDependencyError):
            sheet.set_formula("B1", Formula("A1+1"))
        assert sheet.get_contents("B1").is_empty
        # only the committed B1 -> A1 edge remains
        assert sheet.direct_dependents("B1") == {"A1"}
        assert sheet.direct_dependents("A1") == set()
        assert sheet.direct_dependees("B1") == set()

    def test_self_cycle(self) -> None:
        sheet = Spreadsheet()
        with pytest.raises(CircularDependencyError, match="Circular reference"):
            sheet.set_formula("A1", Formula("A1"))
        assert sheet.get_contents("A1").is_empty
        assert sheet.direct_dependents("A1") == set()

    def test_indirect_cycle(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1*2"))
        sheet.set_formula("B1", Formula("C1*2"))
        with pytest.raises(CircularDependencyError) as info:
            sheet.set_formula("C1", Formula("A1*2"))
        assert info.value.cell == "C1"
        assert sheet.get_contents("C1").is_empty

    def test_rollback_restores_previous_formula_edges(self) -> None:
        sheet = _chain_sheet()
        before = {n: sheet.direct_dependents(n) for n in ("A1", "B1", "C1", "D1")}
        with pytest.raises(CircularDependencyError):
            sheet.set_formula("B1", Formula("C1+D1"))
        after = {n: sheet.direct_dependents(n) for n in ("A1", "B1", "C1", "D1")}
        assert after == before
        assert sheet.direct_dependees("B1") == {"A1"}
        assert sheet.get_contents("B1").value == Formula("A1*2")

    def test_rejected_change_is_not_tracked(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1"))
        sheet.mark_saved()
        with pytest.raises(CircularDependencyError):
            sheet.set_formula("B1", Formula("A1"))
        assert not sheet.changed

    def test_rejection_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        sheet = Spreadsheet()
        with caplog.at_level(logging.INFO, logger="cellsheet._spreadsheet"):
            with pytest.raises(CircularDependencyError):
                sheet.set_formula("A1", Formula("A1+1"))
        assert "Rejected formula" in caplog.text

    def test_number_and_text_break_cycles_safely(self) -> None:
        sheet = Spreadsheet()
        sheet.set_formula("A1", Formula("B1"))
        sheet.set_number("B1", 2)
        sheet.set_text("A1", "done")
        # A1 no longer reads B1, so B1 may now read A1
        assert sheet.set_formula("B1", Formula("A1")) == ["B1"]


class TestValidation:
    @pytest.mark.parametrize("bad", ["2x", "", None, "A-1", "&"])
    def test_invalid_names_everywhere(self, bad: str) -> None:
        sheet = Spreadsheet()
        with pytest.raises(InvalidNameError):
            sheet.get_contents(bad)
        with pytest.raises(InvalidNameError):
            sheet.set_number(bad, 1)
        with pytest.raises(InvalidNameError):
            sheet.set_text(bad, "x")
        with pytest.raises(InvalidNameError):
            sheet.set_formula(bad, Formula("A1"))
        with pytest.raises(InvalidNameError):
            sheet.direct_dependents(bad)
        with pytest.raises(InvalidNameError):
            sheet.direct_dependees(bad)
        with pytest.raises(InvalidNameError):
            sheet.set_contents(bad, CellContents.number(1))
        with pytest.raises(InvalidNameError):
            sheet.set_contents(bad, CellContents.formula(Formula("A1")))
        with pytest.raises(InvalidNameError):
            sheet.cells_to_recalculate([bad])
        assert len(sheet) == 0
        assert not sheet.changed

    def test_invalid_name_is_value_error(self) -> None:
        with pytest.raises(ValueError, match="Invalid cell name: '2x'"):
            Spreadsheet().get_contents("2x")

    def test_null_text(self) -> None:
        sheet = Spreadsheet()
        with pytest.raises(NullContentError):
            sheet.set_text("A1", None)
        assert len(sheet) == 0

    def test_null_formula(self) -> None:
        sheet = Spreadsheet()
        with pytest.raises(NullContentError):
            sheet.set_formula("A1", None)

    def test_extra_validator(self) -> None:
        sheet = Spreadsheet(is_valid=lambda n: n[0].isupper())
        sheet.set_number("A1", 1)
        with pytest.raises(InvalidNameError):
            sheet.set_number("a1", 1)

    def test_normalizer(self) -> None:
        sheet = Spreadsheet(normalize=str.upper)
        sheet.set_number("a1", 1)
        sheet.set_formula("b1", _Refs("a1"))
        assert sheet.get_contents("A1").value == 1.0
        assert sheet.direct_dependents("A1") == {"B1"}
        assert list(sheet) == ["A1", "B1"]
        assert "a1" in sheet


class TestChangeTracking:
    def test_fresh_sheet_unchanged(self) -> None:
        assert not Spreadsheet().changed

    def test_mutation_marks_changed(self) -> None:
        sheet = Spreadsheet()
        sheet.set_number("A1", 1)
        assert sheet.changed
        assert sheet.dirty_cells() == {"A1"}
        sheet.mark_saved()
        assert not sheet.changed

    def test_queries_do_not_mark_changed(self) -> None:
        sheet = _chain_sheet()
        sheet.mark_saved()
        sheet.get_contents("A1")
        sheet.direct_dependents("A1")
        sheet.cells_to_recalculate("A1")
        assert not sheet.changed
