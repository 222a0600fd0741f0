"""Tests for the shapely based geometry service."""

import numpy as np
import pytest

from pathedit.bezier import CIRCLE_KAPPA
from pathedit.geom import Point
from pathedit.geometry_service import ShapelyGeometryService
from pathedit.path import ClosePath, CurveTo, LineTo, MoveTo, PathData
from pathedit.svgpath import SvgPathData


def path(path_string, style=None):
    return PathData.from_commands(SvgPathData.parse(path_string), style)


@pytest.fixture(name="service")
def fixture_service():
    return ShapelyGeometryService()


class TestSimplify:
    """Tests for ShapelyGeometryService.simplify."""

    def test_nearly_straight_polyline(self, service):
        """Small deviations below the tolerance collapse to one line."""
        result = service.simplify(path("M 0 0 L 1 0.01 L 2 0 L 3 0.01 L 10 0"), 1.0)
        assert result.commands == [MoveTo(Point(0, 0)), LineTo(Point(10, 0))]

    def test_closed_polygon(self, service):
        """A closed polygon is refitted with closed Catmull-Rom curves."""
        result = service.simplify(path("M 0 0 L 5 0 L 10 0 L 10 10 L 0 10 Z"), 0.5)
        commands = result.commands
        assert commands[0] == MoveTo(Point(0, 0))
        assert [c.cmd for c in commands] == ["M", "C", "C", "C", "C", "Z"]
        assert [c.position for c in commands[1:5]] == [Point(10, 0), Point(10, 10), Point(0, 10), Point(0, 0)]

    def test_curve_end_points_kept(self, service):
        """Simplifying a curve keeps its end points."""
        result = service.simplify(path("M 0 0 C 0 10 10 10 10 0"), 0.01)
        commands = result.commands
        assert commands[0] == MoveTo(Point(0, 0))
        assert commands[-1].position == Point(10, 0)
        assert all(isinstance(c, CurveTo) for c in commands[1:])

    def test_style_passed_through(self, service):
        """Style attributes survive."""
        result = service.simplify(path("M 0 0 L 10 0", {"fill": "none"}), 1.0)
        assert result.style == {"fill": "none"}

    def test_failure_returns_none(self, service, monkeypatch):
        """Errors during simplification yield None."""

        def broken(*_args):
            raise ValueError("broken")

        monkeypatch.setattr(service, "simplify_sub_path", broken)
        assert service.simplify(path("M 0 0 L 10 0"), 1.0) is None

    def test_polygonize(self, service):
        """Curves are sampled, lines contribute their anchors."""
        coords = service.polygonize(SvgPathData.parse("M 0 0 C 0 10 10 10 10 0 L 20 0"))
        assert len(coords) == 1 + service.curve_steps + 1
        assert np.allclose(coords[-1], [20, 0])


class TestRound:
    """Tests for ShapelyGeometryService.round."""

    def test_square(self, service):
        """All four right angles of a square get a cubic arc."""
        result = service.round(path("M 0 0 L 100 0 L 100 100 L 0 100 Z"), 10)
        commands = result.commands
        assert len(commands) == 9
        assert commands[0] == MoveTo(Point(0, 10))
        first = commands[1]
        assert isinstance(first, CurveTo)
        assert first.position == Point(10, 0)
        assert first.control_point1.y == pytest.approx(10 * (1 - CIRCLE_KAPPA))
        assert first.control_point2.x == pytest.approx(10 * (1 - CIRCLE_KAPPA))
        assert isinstance(commands[-1], ClosePath)

    def test_open_path_keeps_ends(self, service):
        """End points of open paths are not rounded."""
        commands = service.round(path("M 0 0 L 100 0 L 100 100"), 10).commands
        assert [c.cmd for c in commands] == ["M", "L", "C", "L"]
        assert commands[0].position == Point(0, 0)
        assert commands[1].position == Point(90, 0)
        assert commands[2].position == Point(100, 10)
        assert commands[3].position == Point(100, 100)

    def test_radius_limited_by_segments(self, service):
        """The radius never exceeds 40% of an adjacent segment."""
        commands = service.round(path("M 0 0 L 10 0 L 10 100"), 50).commands
        assert commands[1].position == Point(6, 0)

    def test_flat_corner_untouched(self, service):
        """Corners flatter than 150 degrees stay sharp."""
        original = path("M 0 0 L 100 0 L 200 10")
        assert service.round(original, 10).commands == original.commands

    def test_too_few_anchors(self, service):
        """Subpaths with fewer than three anchors are returned as they are."""
        original = path("M 0 0 L 10 0")
        assert service.round(original, 10).commands == original.commands
