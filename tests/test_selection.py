"""Tests for point selection."""

import pytest

from pathedit.points import extract_editable_points
from pathedit.selection import PointSelection, SelectedPoint, points_in_range
from pathedit.svgpath import SvgPathData

COMMANDS = SvgPathData.parse("M 0 0 L 10 0 C 15 5 20 5 20 0 M 30 0 L 40 0")
VISIBLE = extract_editable_points(COMMANDS)


def ref(command_index, point_index=0, element_id="p"):
    return SelectedPoint(element_id, command_index, point_index)


@pytest.fixture(name="selection")
def fixture_selection():
    return PointSelection()


class TestPointsInRange:
    """Tests for points_in_range."""

    def test_inclusive_run(self):
        """The run includes both ends and the handles in between."""
        run = points_in_range(COMMANDS, (0, 0), (2, 2))
        assert [p.key for p in run] == [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)]

    def test_order_independent(self):
        """Start and end may be given in either order."""
        assert points_in_range(COMMANDS, (2, 2), (1, 0)) == points_in_range(COMMANDS, (1, 0), (2, 2))

    def test_different_subpaths(self):
        """A range never crosses a subpath boundary."""
        assert points_in_range(COMMANDS, (1, 0), (4, 0)) == []

    def test_unknown_points(self):
        """Unknown points give an empty range."""
        assert points_in_range(COMMANDS, (1, 3), (2, 2)) == []
        assert points_in_range(COMMANDS, (9, 0), (2, 2)) == []


class TestSelect:
    """Tests for PointSelection.select."""

    def test_click_selects_single(self, selection):
        """A click replaces the selection with the clicked point."""
        selection.select(ref(1), VISIBLE, COMMANDS)
        selection.select(ref(2, 2), VISIBLE, COMMANDS)
        assert selection.points == [ref(2, 2)]

    def test_click_toggles_off(self, selection):
        """Clicking the selected point clears the selection."""
        selection.select(ref(1), VISIBLE, COMMANDS)
        selection.select(ref(1), VISIBLE, COMMANDS)
        assert len(selection) == 0

    def test_shift_click_range(self, selection):
        """Shift-click with one selected point selects the whole run."""
        selection.select(ref(0), VISIBLE, COMMANDS)
        selection.select(ref(2, 2), VISIBLE, COMMANDS, multi_select=True)
        assert [p.key for p in selection] == [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)]

    def test_shift_click_other_subpath_adds_point(self, selection):
        """Across subpaths only the clicked point is added."""
        selection.select(ref(1), VISIBLE, COMMANDS)
        selection.select(ref(4), VISIBLE, COMMANDS, multi_select=True)
        assert selection.points == [ref(1), ref(4)]

    def test_shift_click_with_several_selected(self, selection):
        """With more than one selected point, shift-click adds just the point."""
        selection.replace([ref(0), ref(4)])
        selection.select(ref(2, 2), VISIBLE, COMMANDS, multi_select=True)
        assert selection.points == [ref(0), ref(4), ref(2, 2)]

    def test_shift_click_removes_selected(self, selection):
        """Shift-click on a selected point removes it."""
        selection.replace([ref(0), ref(1)])
        selection.select(ref(0), VISIBLE, COMMANDS, multi_select=True)
        assert selection.points == [ref(1)]

    def test_range_only_in_same_element(self, selection):
        """A selected point of another element does not start a range."""
        selection.select(ref(0, element_id="other"), VISIBLE, COMMANDS)
        selection.select(ref(1), VISIBLE, COMMANDS, multi_select=True)
        selection.select(ref(2, 2), VISIBLE, COMMANDS, multi_select=True)
        assert [p.key for p in selection.for_element("p")] == [(1, 0), (2, 0), (2, 1), (2, 2)]

    def test_hidden_point_ignored(self, selection):
        """Points outside the visible set cannot be selected."""
        visible = [p for p in VISIBLE if p.command_index >= 3]
        selection.select(ref(1), visible, COMMANDS)
        assert len(selection) == 0

    def test_range_filtered_by_visibility(self, selection):
        """Hidden points inside a run are skipped."""
        visible = [p for p in VISIBLE if not p.is_control]
        selection.select(ref(0), visible, COMMANDS)
        selection.select(ref(2, 2), visible, COMMANDS, multi_select=True)
        assert [p.key for p in selection] == [(0, 0), (1, 0), (2, 2)]


class TestBookkeeping:
    """Tests for grouping and pruning."""

    def test_no_duplicates(self, selection):
        """Adding a selected point again has no effect."""
        selection.extend([ref(1), ref(1), ref(2)])
        assert selection.points == [ref(1), ref(2)]

    def test_by_element(self, selection):
        """Points are grouped by element in order of appearance."""
        selection.extend([ref(1, element_id="b"), ref(0, element_id="a"), ref(2, element_id="b")])
        grouped = selection.by_element()
        assert list(grouped) == ["b", "a"]
        assert grouped["b"] == [ref(1, element_id="b"), ref(2, element_id="b")]

    def test_prune(self, selection):
        """Stale references of an element are dropped."""
        selection.extend([ref(1), ref(7), ref(7, element_id="q")])
        assert selection.prune("p", lambda r: r.command_index < 5) == 1
        assert selection.points == [ref(1), ref(7, element_id="q")]

    def test_drop_element_and_first(self, selection):
        """drop_element removes all points of an element."""
        assert selection.first() is None
        selection.extend([ref(1), ref(2, element_id="q")])
        selection.drop_element("p")
        assert selection.first() == ref(2, element_id="q")
