"""Geometry service for path simplification and corner rounding.

The editor only depends on the GeometryService protocol. ShapelyGeometryService
is the default implementation: curves are polygonized with numpy, simplified
with shapely and refitted with Catmull-Rom cubics.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

import numpy as np
from shapely.errors import GEOSException
from shapely.geometry import LineString

from pathedit.bezier import CIRCLE_KAPPA, BezierCurve
from pathedit.geom import GeomMath, Point
from pathedit.path import ClosePath, Command, CurveTo, LineTo, MoveTo, PathData

logger = logging.getLogger(__name__)

# Corners with an angle between these limits (degrees) get rounded
SHARP_CORNER_MIN_DEG = 30.0
SHARP_CORNER_MAX_DEG = 150.0
# The rounding radius never exceeds this share of an adjacent segment
MAX_RADIUS_SEGMENT_SHARE = 0.4
# Polygonization steps per cubic segment before simplification
CURVE_STEPS = 16


class GeometryService(Protocol):
    """Delegate for heavy geometric operations. Both return None on failure."""

    def simplify(self, path: PathData, tolerance: float) -> Optional[PathData]: ...

    def round(self, path: PathData, radius: float) -> Optional[PathData]: ...


def _anchors(sub_path: Sequence[Command]) -> List[Point]:
    return [c.position for c in sub_path if not isinstance(c, ClosePath)]


def _is_closed(sub_path: Sequence[Command]) -> bool:
    return bool(sub_path) and isinstance(sub_path[-1], ClosePath)


class ShapelyGeometryService:
    """GeometryService based on shapely and numpy."""

    def __init__(self, curve_steps: int = CURVE_STEPS):
        self.curve_steps = curve_steps

    ###########################################################################
    # Simplification
    ###########################################################################
    def polygonize(self, sub_path: Sequence[Command]) -> np.ndarray:
        """Polyline (N, 2) of one subpath, curves sampled with `curve_steps` steps."""
        coords: List[np.ndarray] = []
        current: Optional[Point] = None
        for command in sub_path:
            if isinstance(command, MoveTo):
                coords.append(np.array([command.position.to_tuple()]))
            elif isinstance(command, LineTo):
                coords.append(np.array([command.position.to_tuple()]))
            elif isinstance(command, CurveTo) and current is not None:
                sampled = BezierCurve.polygonize_cubic(current, *command.points, self.curve_steps)
                coords.append(sampled[1:])
            if not isinstance(command, ClosePath):
                current = command.position
        if not coords:
            return np.empty((0, 2))
        return np.vstack(coords)

    def simplify_sub_path(self, sub_path: Sequence[Command], tolerance: float) -> List[Command]:
        """Simplify one subpath into a MoveTo followed by cubic (or line) segments."""
        closed = _is_closed(sub_path)
        coords = self.polygonize(sub_path)
        if len(coords) < 2:
            return list(sub_path)
        if closed and not np.allclose(coords[0], coords[-1]):
            coords = np.vstack([coords, coords[:1]])
        simplified = np.asarray(LineString(coords).simplify(tolerance, preserve_topology=False).coords)
        points = GeomMath.from_array(simplified)
        if closed and len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        if len(points) < 2:
            raise ValueError("Simplification collapsed the subpath")

        result: List[Command] = [MoveTo(points[0])]
        if len(points) == 2 and not closed:
            result.append(LineTo(points[1]))
        else:
            result.extend(CurveTo(*segment) for segment in BezierCurve.catmull_rom_to_cubics(points, closed))
        if closed:
            result.append(ClosePath())
        return result

    def simplify(self, path: PathData, tolerance: float) -> Optional[PathData]:
        try:
            sub_paths = tuple(tuple(self.simplify_sub_path(sp, tolerance)) for sp in path.sub_paths if sp)
        except (TypeError, ValueError, GEOSException) as err:
            logger.warning("Path simplification failed, keeping original path: %s", err)
            return None
        return PathData(sub_paths, dict(path.style))

    ###########################################################################
    # Rounding
    ###########################################################################
    @staticmethod
    def round_sub_path(sub_path: Sequence[Command], radius: float) -> List[Command]:
        """
        Round the sharp corners of one subpath.

        A corner is sharp if the angle between its two segments lies between
        30 and 150 degrees. It is replaced by a cubic arc whose radius is
        limited to 40% of the adjacent segment lengths. End points of open
        subpaths and subpaths with fewer than three anchors stay unchanged.
        """
        closed = _is_closed(sub_path)
        anchors = _anchors(sub_path)
        if closed and len(anchors) > 1 and anchors[0] == anchors[-1]:
            anchors = anchors[:-1]
        n = len(anchors)
        if n < 3:
            return list(sub_path)

        pts = GeomMath.to_array(anchors)
        result: List[Command] = []

        def emit_point(point: Point) -> None:
            result.append(LineTo(point) if result else MoveTo(point))

        for i in range(n):
            curr = pts[i]
            if not closed and i in (0, n - 1):
                emit_point(anchors[i])
                continue
            to_prev = pts[i - 1] - curr
            to_next = pts[(i + 1) % n] - curr
            len_prev = float(np.linalg.norm(to_prev))
            len_next = float(np.linalg.norm(to_next))
            if len_prev == 0.0 or len_next == 0.0:
                emit_point(anchors[i])
                continue
            u_prev = to_prev / len_prev
            u_next = to_next / len_next
            angle = float(np.degrees(np.arccos(np.clip(np.dot(u_prev, u_next), -1.0, 1.0))))
            if not SHARP_CORNER_MIN_DEG < angle < SHARP_CORNER_MAX_DEG:
                emit_point(anchors[i])
                continue
            eff = min(radius, MAX_RADIUS_SEGMENT_SHARE * len_prev, MAX_RADIUS_SEGMENT_SHARE * len_next)
            point_to_prev = curr + u_prev * eff
            point_to_next = curr + u_next * eff
            c1 = point_to_prev - u_prev * eff * CIRCLE_KAPPA
            c2 = point_to_next - u_next * eff * CIRCLE_KAPPA
            ctrl = GeomMath.from_array(np.vstack([point_to_prev, c1, c2, point_to_next]))
            emit_point(ctrl[0])
            result.append(CurveTo(ctrl[1], ctrl[2], ctrl[3]))
        if closed:
            result.append(ClosePath())
        return result

    def round(self, path: PathData, radius: float) -> Optional[PathData]:
        try:
            sub_paths = tuple(tuple(self.round_sub_path(sp, radius)) for sp in path.sub_paths if sp)
        except (TypeError, ValueError) as err:
            logger.warning("Path rounding failed, keeping original path: %s", err)
            return None
        return PathData(sub_paths, dict(path.style))
