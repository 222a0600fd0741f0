"""Editable points derived from path commands.

Editable points are never stored. They are recomputed from the command list
whenever they are needed, so they cannot go stale after an edit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, List, Optional, Sequence

from pathedit.geom import Point
from pathedit.path import COMMAND_INFO, Command, PathCommands


@dataclass(frozen=True)
class EditablePoint:
    """
    A selectable point of a path.

    Attributes:
        command_index: Index of the owning command in the flat command list
        point_index: 0 for MoveTo/LineTo anchors; 0, 1 (handles) or 2 (anchor) for CurveTo
        x: x-coordinate
        y: y-coordinate
        is_control: True for Bezier handles
        anchor: Anchor governing a handle: the curve's start point for
            point_index 0, the curve's end point for point_index 1
    """

    command_index: int
    point_index: int
    x: float
    y: float
    is_control: bool = False
    anchor: Optional[Point] = None

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @property
    def key(self) -> tuple:
        return (self.command_index, self.point_index)


def extract_editable_points(commands: Sequence[Command]) -> List[EditablePoint]:
    """Derive the ordered editable points of a command list."""
    points: List[EditablePoint] = []
    for index, command in enumerate(commands):
        info = COMMAND_INFO[command.cmd]
        if not info.editable_points:
            continue
        if info.is_curve:
            start = PathCommands.start_point(commands, index)
            cp1, cp2, end = command.points
            points.append(EditablePoint(index, 0, cp1.x, cp1.y, True, start))
            points.append(EditablePoint(index, 1, cp2.x, cp2.y, True, end))
            points.append(EditablePoint(index, 2, end.x, end.y))
        else:
            points.append(EditablePoint(index, 0, command.position.x, command.position.y))
    return points


def filter_points_by_subpaths(
    points: Sequence[EditablePoint],
    commands: Sequence[Command],
    subpath_indices: Optional[Collection[int]],
) -> List[EditablePoint]:
    """
    Restrict `points` to the given subpaths.

    `None` means no subpath filtering is active and all points are returned.
    An empty collection yields no points. Points are returned in the order
    of the given subpath indices.
    """
    if subpath_indices is None:
        return list(points)
    subpaths = PathCommands.extract_subpaths(commands)
    result: List[EditablePoint] = []
    for subpath_index in subpath_indices:
        if not 0 <= subpath_index < len(subpaths):
            continue
        info = subpaths[subpath_index]
        result.extend(p for p in points if info.contains(p.command_index))
    return result


def find_point(points: Sequence[EditablePoint], command_index: int, point_index: int) -> Optional[EditablePoint]:
    """Editable point with the given indices, or None."""
    for point in points:
        if point.command_index == command_index and point.point_index == point_index:
            return point
    return None
