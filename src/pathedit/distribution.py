"""Alignment and even distribution of points along an axis"""

from __future__ import annotations

from typing import List, Sequence

from pathedit.common import AlignStrategy, DistributeAxis
from pathedit.geom import GeomMath, Point

MIN_ALIGN_POINTS = 2
MIN_DISTRIBUTE_POINTS = 3


def align_positions(points: Sequence[Point], strategy: AlignStrategy) -> List[Point]:
    """
    Align points on the left/center/right x or top/middle/bottom y of their bounds.

    Fewer than two points are returned unchanged.
    """
    if len(points) < MIN_ALIGN_POINTS:
        return list(points)
    xmin, ymin, xmax, ymax = GeomMath.bounds(points)
    if strategy == AlignStrategy.LEFT:
        return [Point(xmin, p.y) for p in points]
    if strategy == AlignStrategy.RIGHT:
        return [Point(xmax, p.y) for p in points]
    if strategy == AlignStrategy.CENTER:
        return [Point((xmin + xmax) / 2.0, p.y) for p in points]
    if strategy == AlignStrategy.TOP:
        return [Point(p.x, ymin) for p in points]
    if strategy == AlignStrategy.BOTTOM:
        return [Point(p.x, ymax) for p in points]
    if strategy == AlignStrategy.MIDDLE:
        return [Point(p.x, (ymin + ymax) / 2.0) for p in points]
    raise ValueError(f"Unknown align strategy {strategy}")


def distribute_positions(points: Sequence[Point], axis: DistributeAxis) -> List[Point]:
    """
    Space points evenly along `axis` by rank.

    Points are sorted along the axis, the first and last keep their
    position and the i-th gets first + i * (last - first) / (n - 1).
    Fewer than three points are returned unchanged. The result keeps the
    input order.
    """
    n = len(points)
    if n < MIN_DISTRIBUTE_POINTS:
        return list(points)
    horizontal = axis == DistributeAxis.HORIZONTAL
    order = sorted(range(n), key=lambda i: points[i].x if horizontal else points[i].y)
    first = points[order[0]].x if horizontal else points[order[0]].y
    last = points[order[-1]].x if horizontal else points[order[-1]].y
    step = (last - first) / (n - 1)

    result = list(points)
    for rank, index in enumerate(order[1:-1], start=1):
        value = first + rank * step
        p = points[index]
        result[index] = Point(value, p.y) if horizontal else Point(p.x, value)
    return result
