"""Handling of plain 2D geometry: points, vectors and coordinate formatting"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

CoordinateFormatter = Callable[[float, int], float]
"""Signature of a precision formatter: (value, precision) -> value"""


###############################################################################
# Point
###############################################################################
@dataclass(frozen=True)
class Point:
    """Immutable 2D point, also used as a vector (deltas, handle vectors)."""

    x: float
    y: float

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> Point:
        return Point(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __neg__(self) -> Point:
        return Point(-self.x, -self.y)

    @property
    def magnitude(self) -> float:
        """Euclidean length of the point seen as a vector."""
        return math.hypot(self.x, self.y)

    def distance_to(self, other: Point) -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def dot(self, other: Point) -> float:
        """Dot product of the two points seen as vectors."""
        return self.x * other.x + self.y * other.y

    def is_close(self, other: Point, tolerance: float) -> bool:
        """True if both coordinates differ by at most `tolerance`."""
        return abs(self.x - other.x) <= tolerance and abs(self.y - other.y) <= tolerance

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


###############################################################################
# GeomMath
###############################################################################
class GeomMath:
    """Class to provide various static methods related to geometry handling."""

    @staticmethod
    def lerp(p0: Point, p1: Point, t: float) -> Point:
        """Linear interpolation between `p0` (t=0) and `p1` (t=1)."""
        return Point(p0.x + (p1.x - p0.x) * t, p0.y + (p1.y - p0.y) * t)

    @staticmethod
    def unit(vector: Point) -> Point:
        """Unit vector of `vector`, raises ValueError for a zero-length vector."""
        magnitude = vector.magnitude
        if magnitude == 0.0 or not math.isfinite(magnitude):
            raise ValueError("Cannot normalize a zero-length vector")
        return Point(vector.x / magnitude, vector.y / magnitude)

    @staticmethod
    def angle_between(v1: Point, v2: Point) -> float:
        """Unsigned angle between two non-zero vectors in degrees (0..180)."""
        m1, m2 = v1.magnitude, v2.magnitude
        if m1 == 0.0 or m2 == 0.0:
            raise ValueError("Angle undefined for zero-length vectors")
        cos_a = max(-1.0, min(1.0, v1.dot(v2) / (m1 * m2)))
        return math.degrees(math.acos(cos_a))

    @staticmethod
    def to_array(points: Iterable[Point]) -> NDArray[np.float64]:
        """Convert points to an (N, 2) float array."""
        arr = np.array([(p.x, p.y) for p in points], dtype=np.float64)
        return arr.reshape(-1, 2)

    @staticmethod
    def from_array(arr: NDArray[np.float64]) -> List[Point]:
        """Convert an (N, 2) array back to points."""
        return [Point(float(x), float(y)) for x, y in np.asarray(arr, dtype=np.float64).reshape(-1, 2)]

    @staticmethod
    def bounds(points: Sequence[Point]) -> Tuple[float, float, float, float]:
        """Bounding box (xmin, ymin, xmax, ymax) of a non-empty point sequence."""
        if not points:
            raise ValueError("Bounds of an empty point sequence are undefined")
        arr = GeomMath.to_array(points)
        xmin, ymin = arr.min(axis=0)
        xmax, ymax = arr.max(axis=0)
        return (float(xmin), float(ymin), float(xmax), float(ymax))


###############################################################################
# Formatting
###############################################################################
def format_to_precision(value: float, precision: int) -> float:
    """Round `value` to `precision` decimals (negative zero becomes zero)."""
    return round(float(value), precision) + 0.0


def format_point(point: Point, precision: int, formatter: CoordinateFormatter = format_to_precision) -> Point:
    """Apply `formatter` to both coordinates of `point`."""
    return Point(formatter(point.x, precision), formatter(point.y, precision))
