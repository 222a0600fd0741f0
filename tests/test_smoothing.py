"""Tests for the smoothing brush, point simplification and delegated geometry."""

import pytest

from pathedit.geom import Point
from pathedit.path import LineTo, MoveTo, PathData
from pathedit.points import EditablePoint, extract_editable_points
from pathedit.settings import SmoothBrushSettings
from pathedit.smoothing import DelegatedGeometry, SmoothBrush, simplify_points
from pathedit.svgpath import SvgPathData


def cmds(path_string):
    return SvgPathData.parse(path_string)


def brush(**kwargs):
    return SmoothBrush(SmoothBrushSettings(**kwargs))


class TestComputeUpdates:
    """Tests for SmoothBrush.compute_updates."""

    points = extract_editable_points(cmds("M 0 0 L 5 8 L 10 0"))

    def test_selected_full_strength(self):
        """With strength 1 a selected point moves onto the average of itself and its neighbors."""
        updates = brush(strength=1.0).compute_updates(self.points, selected={(1, 0)})
        assert updates == {(1, 0): Point(5, 2.67)}

    def test_radius_weight_falls_off(self):
        """Points in the brush radius move by strength * (1 - d / radius)."""
        at_center = brush(strength=0.35).compute_updates(self.points, center=Point(5, 8))
        assert at_center[(1, 0)].y == pytest.approx(6.13)
        half_way = brush(strength=1.0, radius=10).compute_updates(self.points, center=Point(5, 3))
        assert half_way[(1, 0)].y == pytest.approx(8 - (8 - 8 / 3) * 0.5, abs=0.01)

    def test_outside_radius_untouched(self):
        """Points farther than the radius do not move."""
        assert brush().compute_updates(self.points, center=Point(100, 100)) == {}

    def test_end_points_never_move(self):
        """First and last point are excluded even when selected."""
        updates = brush(strength=1.0).compute_updates(self.points, selected={(0, 0), (2, 0)})
        assert updates == {}

    def test_no_center_no_selection(self):
        """Without selection and center all interior points are smoothed."""
        points = extract_editable_points(cmds("M 0 0 L 5 8 L 10 0 L 15 8 L 20 0"))
        updates = brush(strength=0.5).compute_updates(points)
        assert set(updates) == {(1, 0), (2, 0), (3, 0)}

    def test_straight_line_unchanged(self):
        """Points already on the average are not reported."""
        points = extract_editable_points(cmds("M 0 0 L 5 0 L 10 0"))
        assert brush(strength=1.0).compute_updates(points) == {}


class TestSimplifyPoints:
    """Tests for simplify_points."""

    @staticmethod
    def anchors(*coords):
        return [EditablePoint(i, 0, x, y) for i, (x, y) in enumerate(coords)]

    def test_min_distance_and_douglas_peucker(self):
        """Close points are dropped first, then the line is simplified."""
        points = self.anchors((0, 0), (0.2, 0), (1, 0), (2, 0.01), (3, 0))
        result = simplify_points(points, tolerance=0.1, min_distance=0.5)
        assert [p.position for p in result] == [Point(0, 0), Point(3, 0)]

    def test_keeps_corners(self):
        """Vertices farther than the tolerance stay."""
        points = self.anchors((0, 0), (5, 5), (10, 0))
        assert simplify_points(points, tolerance=0.3, min_distance=0.5) == points

    def test_handles_bypass_min_distance(self):
        """Handles are never dropped by the distance filter."""
        points = [EditablePoint(0, 0, 0, 0), EditablePoint(1, 0, 0.1, 0, True), EditablePoint(1, 2, 5, 5)]
        result = simplify_points(points, tolerance=0, min_distance=0.5)
        assert result == points

    def test_empty(self):
        """No points in, no points out."""
        assert simplify_points([], 0.3, 0.5) == []


class TestRebuildAsPolyline:
    """Tests for SmoothBrush.rebuild_as_polyline."""

    def test_collinear_points_removed(self):
        """Simplified updated points are merged with the untouched ones."""
        commands = cmds("M 0 0 L 1 0 L 2 0 L 3 0 L 4 0")
        points = extract_editable_points(commands)
        result = brush().rebuild_as_polyline(commands, points, {(1, 0), (2, 0), (3, 0)})
        assert result == cmds("M 0 0 L 1 0 L 3 0 L 4 0")

    def test_curves_become_lines(self):
        """Curve handles become polyline vertices."""
        commands = cmds("M 0 0 C 1 1 2 1 3 0 L 6 0")
        points = extract_editable_points(commands)
        result = brush().rebuild_as_polyline(commands, points, {(1, 2)})
        assert result == cmds("M 0 0 L 1 1 L 2 1 L 3 0 L 6 0")

    def test_closed_and_untouched_subpaths(self):
        """Closed subpaths stay closed, other subpaths are kept as they are."""
        commands = cmds("M 0 0 L 10 0 L 10 10 Z M 20 20 C 21 21 22 21 23 20")
        points = extract_editable_points(commands)
        result = brush().rebuild_as_polyline(commands, points, {(1, 0)})
        assert result == cmds("M 0 0 L 10 0 L 10 10 Z M 20 20 C 21 21 22 21 23 20")


class FakeService:
    """GeometryService replacing each subpath by a line from its first to its last anchor."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def _reduce(self, path):
        self.calls.append(path)
        if self.fail:
            return None
        sub_paths = []
        for sub_path in path.sub_paths:
            anchors = [c.position for c in sub_path if c.cmd != "Z"]
            sub_paths.append((MoveTo(anchors[0]), LineTo(anchors[-1])))
        return PathData(tuple(sub_paths), path.style)

    def simplify(self, path, tolerance):
        return self._reduce(path)

    def round(self, path, radius):
        return self._reduce(path)


class TestDelegatedGeometry:
    """Tests for DelegatedGeometry."""

    def test_range_with_artificial_moveto(self):
        """A range starting mid-subpath gets a temporary MoveTo that is stripped again."""
        service = FakeService()
        commands = cmds("M 0 0 L 1 1 L 2 0 L 3 1 L 4 0")
        result = DelegatedGeometry(service).simplify_range(commands, 2, 3, 1.0)
        assert service.calls[0].commands[0] == MoveTo(Point(1, 1))
        assert result == cmds("M 0 0 L 1 1 L 3 1 L 4 0")

    def test_range_starting_with_moveto(self):
        """A range starting at a MoveTo is passed as it is."""
        commands = cmds("M 0 0 L 1 1 L 2 0")
        result = DelegatedGeometry(FakeService()).simplify_range(commands, 0, 2, 1.0)
        assert result == cmds("M 0 0 L 2 0")

    def test_range_failure(self):
        """A failing service yields None."""
        assert DelegatedGeometry(FakeService(fail=True)).simplify_range(cmds("M 0 0 L 1 1"), 1, 1, 1.0) is None

    def test_sub_paths(self):
        """Only the selected subpaths are replaced."""
        path = PathData.from_commands(cmds("M 0 0 L 1 1 L 2 0 M 5 5 L 6 6 L 7 5"))
        result = DelegatedGeometry(FakeService()).simplify_sub_paths(path, [1], 1.0)
        assert result.commands == cmds("M 0 0 L 1 1 L 2 0 M 5 5 L 7 5")

    def test_sub_paths_failure_keeps_original(self):
        """A failing subpath stays unchanged."""
        path = PathData.from_commands(cmds("M 0 0 L 1 1 L 2 0"))
        result = DelegatedGeometry(FakeService(fail=True)).simplify_sub_paths(path, [0], 1.0)
        assert result.commands == path.commands

    def test_round_whole_path_failure(self):
        """Rounding failure yields None."""
        path = PathData.from_commands(cmds("M 0 0 L 1 1 L 2 0"))
        assert DelegatedGeometry(FakeService(fail=True)).round_sub_paths(path, None, 5.0) is None
