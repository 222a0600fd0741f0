"""Bezier curve helpers: evaluation, De Casteljau subdivision, polygonization
and Catmull-Rom fitting of polylines."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from pathedit.geom import GeomMath, Point

CubicControls = Tuple[Point, Point, Point]
"""(control point 1, control point 2, end point) of a cubic segment"""

CIRCLE_KAPPA = 0.5522847498307936
"""Handle length factor approximating a quarter circle with one cubic."""


class BezierCurve:
    """Static helpers around cubic Bezier curves given as four points."""

    @classmethod
    def evaluate_cubic(cls, p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
        """Evaluate a cubic Bezier curve at parameter `t` (Bernstein form)."""
        omt = 1.0 - t
        b0 = omt * omt * omt
        b1 = 3.0 * omt * omt * t
        b2 = 3.0 * omt * t * t
        b3 = t * t * t
        return Point(
            b0 * p0.x + b1 * p1.x + b2 * p2.x + b3 * p3.x,
            b0 * p0.y + b1 * p1.y + b2 * p2.y + b3 * p3.y,
        )

    @classmethod
    def split_cubic(
        cls, p0: Point, p1: Point, p2: Point, p3: Point, t: float
    ) -> Tuple[CubicControls, CubicControls]:
        """
        Split a cubic Bezier curve at parameter `t` using De Casteljau's algorithm.

        Args:
            p0: Start point of the curve
            p1: First control point
            p2: Second control point
            p3: End point
            t: Split parameter in [0, 1]

        Returns:
            Two tuples (control1, control2, end) describing the left and the
            right part. The left part starts at `p0`, the right part at the
            left part's end point.
        """
        p01 = GeomMath.lerp(p0, p1, t)
        p12 = GeomMath.lerp(p1, p2, t)
        p23 = GeomMath.lerp(p2, p3, t)
        p012 = GeomMath.lerp(p01, p12, t)
        p123 = GeomMath.lerp(p12, p23, t)
        pt = GeomMath.lerp(p012, p123, t)
        return (p01, p012, pt), (p123, p23, p3)

    @classmethod
    def line_to_cubic(cls, start: Point, end: Point) -> Tuple[Point, Point]:
        """Control points at 1/3 and 2/3 of a line, giving a curve identical to the line."""
        return GeomMath.lerp(start, end, 1.0 / 3.0), GeomMath.lerp(start, end, 2.0 / 3.0)

    @classmethod
    def polygonize_cubic(cls, p0: Point, p1: Point, p2: Point, p3: Point, steps: int) -> NDArray[np.float64]:
        """
        Polygonize a cubic Bezier curve into `steps + 1` points (both ends included).

        Uses direct evaluation of the Bernstein basis with vectorized numpy operations.
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        ctrl = GeomMath.to_array((p0, p1, p2, p3))
        t = np.linspace(0, 1, steps + 1, dtype=np.float64)
        omt = 1 - t
        basis = np.stack([omt**3, 3 * omt**2 * t, 3 * omt * t**2, t**3], axis=1)
        return basis @ ctrl

    @classmethod
    def catmull_rom_to_cubics(cls, points: Sequence[Point], closed: bool = False) -> List[CubicControls]:
        """
        Fit cubic segments through `points` using a uniform Catmull-Rom spline.

        For each pair (p1, p2) with neighbors p0 and p3 the Bezier controls are
        c1 = p1 + (p2 - p0) / 6 and c2 = p2 - (p3 - p1) / 6.
        Open splines repeat their end points, closed splines wrap around and
        get an extra segment back to the first point.

        Returns:
            One (c1, c2, end) tuple per segment, starting after points[0].
        """
        pts = list(points)
        if len(pts) < 2:
            return []
        if closed:
            padded = [pts[-1]] + pts + [pts[0], pts[1 % len(pts)]]
            n_segments = len(pts)
        else:
            padded = [pts[0]] + pts + [pts[-1]]
            n_segments = len(pts) - 1
        segments: List[CubicControls] = []
        for i in range(n_segments):
            q0, q1, q2, q3 = padded[i], padded[i + 1], padded[i + 2], padded[i + 3]
            c1 = q1 + (q2 - q0) * (1.0 / 6.0)
            c2 = q2 - (q3 - q1) * (1.0 / 6.0)
            segments.append((c1, c2, q2))
        return segments
