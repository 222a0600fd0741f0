"""Smoothing brush, polyline point simplification and delegated
simplification/rounding with command range handling."""

from __future__ import annotations

import logging
from typing import Collection, Dict, List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import LineString

from pathedit.geom import CoordinateFormatter, Point, format_point, format_to_precision
from pathedit.geometry_service import GeometryService
from pathedit.path import ClosePath, Command, LineTo, MoveTo, PathCommands, PathData, with_point
from pathedit.points import EditablePoint
from pathedit.settings import SmoothBrushSettings

logger = logging.getLogger(__name__)

PointKey = Tuple[int, int]


###############################################################################
# Point simplification
###############################################################################
def simplify_points(points: Sequence[EditablePoint], tolerance: float, min_distance: float) -> List[EditablePoint]:
    """
    Thin out a polyline of editable points.

    First, anchors closer than `min_distance` to the last kept point are
    dropped (the first point and handles always pass). The remaining points
    are simplified with Douglas-Peucker at `tolerance`.
    """
    if not points:
        return []
    kept: List[EditablePoint] = [points[0]]
    for point in points[1:]:
        if point.is_control or point.position.distance_to(kept[-1].position) >= min_distance:
            kept.append(point)
    if len(kept) < 3 or tolerance <= 0:
        return kept

    coords = np.array([(p.x, p.y) for p in kept])
    simplified = np.asarray(LineString(coords).simplify(tolerance, preserve_topology=False).coords)
    # the result is an ordered subset of the input vertices
    result: List[EditablePoint] = []
    cursor = 0
    for x, y in simplified:
        while cursor < len(kept) and not (kept[cursor].x == x and kept[cursor].y == y):
            cursor += 1
        if cursor == len(kept):
            break
        result.append(kept[cursor])
        cursor += 1
    return result or kept


###############################################################################
# SmoothBrush
###############################################################################
class SmoothBrush:
    """Neighbor averaging brush."""

    def __init__(
        self,
        settings: Optional[SmoothBrushSettings] = None,
        precision: int = 2,
        formatter: CoordinateFormatter = format_to_precision,
    ):
        self.settings = settings or SmoothBrushSettings()
        self.precision = precision
        self.formatter = formatter

    def weight(self, point: EditablePoint, selected: Optional[Collection[PointKey]], center: Optional[Point]) -> float:
        """Smoothing weight of one point, 0 means untouched."""
        if selected:
            return self.settings.strength if point.key in selected else 0.0
        if center is None:
            return self.settings.strength
        distance = point.position.distance_to(center)
        if distance > self.settings.radius:
            return 0.0
        return self.settings.strength * (1.0 - distance / self.settings.radius)

    def compute_updates(
        self,
        points: Sequence[EditablePoint],
        selected: Optional[Collection[PointKey]] = None,
        center: Optional[Point] = None,
    ) -> Dict[PointKey, Point]:
        """
        New positions for the points touched by the brush.

        Every interior point moves toward the average of itself and its two
        neighbors by its weight: selected points use the full strength, points
        within the brush radius a strength falling off linearly with the
        distance. The first and the last point never move.
        """
        updates: Dict[PointKey, Point] = {}
        for i in range(1, len(points) - 1):
            point = points[i]
            weight = self.weight(point, selected, center)
            if weight <= 0.0:
                continue
            prev_pos, pos, next_pos = points[i - 1].position, point.position, points[i + 1].position
            average = Point((prev_pos.x + pos.x + next_pos.x) / 3.0, (prev_pos.y + pos.y + next_pos.y) / 3.0)
            moved = format_point(pos + (average - pos) * weight, self.precision, self.formatter)
            if moved.is_finite() and moved != pos:
                updates[point.key] = moved
        return updates

    @staticmethod
    def apply_updates(commands: Sequence[Command], updates: Dict[PointKey, Point]) -> List[Command]:
        result = list(commands)
        for (command_index, point_index), position in updates.items():
            result[command_index] = with_point(result[command_index], point_index, position)
        return result

    def rebuild_as_polyline(
        self, commands: Sequence[Command], points: Sequence[EditablePoint], updated: Collection[PointKey]
    ) -> List[Command]:
        """
        Rebuild the subpaths that contain updated points as MoveTo + LineTo polylines.

        The updated points are simplified first, the others are kept. Closed
        subpaths stay closed, untouched subpaths stay as they are.
        """
        moved = [p for p in points if p.key in updated]
        survivors = simplify_points(moved, self.settings.simplification_tolerance, self.settings.min_distance)
        merged = sorted(
            [p for p in points if p.key not in updated] + survivors,
            key=lambda p: p.key,
        )
        result: List[Command] = []
        for info in PathCommands.extract_subpaths(commands):
            if not any(info.contains(key[0]) for key in updated):
                result.extend(info.commands)
                continue
            vertices = [p.position for p in merged if info.contains(p.command_index)]
            if not vertices:
                continue
            result.append(MoveTo(vertices[0]))
            result.extend(LineTo(v) for v in vertices[1:])
            if info.is_closed:
                result.append(ClosePath())
        return PathCommands.normalize(result)


###############################################################################
# Delegated simplification / rounding
###############################################################################
class DelegatedGeometry:
    """Runs the geometry service on parts of a path and splices the results back."""

    def __init__(self, service: GeometryService):
        self.service = service

    def simplify_sub_paths(
        self, path: PathData, subpath_indices: Collection[int], tolerance: float
    ) -> PathData:
        """Simplify the selected subpaths. A failing subpath is kept as it is."""
        sub_paths = list(path.sub_paths)
        for index in sorted(set(subpath_indices)):
            if not 0 <= index < len(sub_paths):
                continue
            result = self.service.simplify(PathData((sub_paths[index],), path.style), tolerance)
            if result is None or result.is_empty:
                logger.info("simplify: keeping subpath %d unchanged", index)
                continue
            sub_paths[index] = tuple(result.commands)
        return path.with_commands(PathCommands.normalize(PathCommands.flatten(sub_paths)))

    def simplify_range(
        self, commands: Sequence[Command], min_index: int, max_index: int, tolerance: float
    ) -> Optional[List[Command]]:
        """
        Simplify the commands `min_index..max_index` (inclusive).

        A range not starting with a MoveTo gets an artificial MoveTo at the
        current point before it, which is stripped from the result so the
        simplified part continues the path.

        Returns:
            The full new command list or None if the service failed
        """
        segment = list(commands[min_index : max_index + 1])
        if not segment:
            return None
        artificial = not isinstance(segment[0], MoveTo)
        if artificial:
            start = PathCommands.end_point(commands, min_index - 1)
            if start is None:
                start = PathCommands.end_point(commands, min_index)
            segment.insert(0, MoveTo(start))

        result = self.service.simplify(PathData.from_commands(segment), tolerance)
        if result is None or result.is_empty:
            return None
        simplified = result.commands
        if artificial and simplified and isinstance(simplified[0], MoveTo):
            simplified = simplified[1:]
        return PathCommands.normalize(list(commands[:min_index]) + simplified + list(commands[max_index + 1 :]))

    def simplify_all(self, path: PathData, tolerance: float) -> Optional[PathData]:
        result = self.service.simplify(path, tolerance)
        if result is None or result.is_empty:
            return None
        return path.with_commands(PathCommands.normalize(result.commands))

    def round_sub_paths(
        self, path: PathData, subpath_indices: Optional[Collection[int]], radius: float
    ) -> Optional[PathData]:
        """Round the selected subpaths (all if `subpath_indices` is None)."""
        if subpath_indices is None:
            result = self.service.round(path, radius)
            if result is None or result.is_empty:
                return None
            return path.with_commands(PathCommands.normalize(result.commands))
        sub_paths = list(path.sub_paths)
        for index in sorted(set(subpath_indices)):
            if not 0 <= index < len(sub_paths):
                continue
            result = self.service.round(PathData((sub_paths[index],), path.style), radius)
            if result is None or result.is_empty:
                logger.info("round: keeping subpath %d unchanged", index)
                continue
            sub_paths[index] = tuple(result.commands)
        return path.with_commands(PathCommands.normalize(PathCommands.flatten(sub_paths)))
