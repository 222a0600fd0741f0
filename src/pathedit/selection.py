"""Point selection state.

The selection holds value triples (element id, command index, point index).
They are checked against freshly extracted points on every use and are
never live references into a command list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Collection, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from pathedit.path import Command, PathCommands
from pathedit.points import EditablePoint, extract_editable_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedPoint:
    """Reference to an editable point of an element."""

    element_id: str
    command_index: int
    point_index: int

    @property
    def key(self) -> Tuple[int, int]:
        return (self.command_index, self.point_index)


def points_in_range(
    commands: Sequence[Command], start: Tuple[int, int], end: Tuple[int, int]
) -> List[EditablePoint]:
    """
    Ordered editable points between `start` and `end` (both inclusive).

    Both points have to lie in the same subpath, otherwise the range is empty.
    The order of `start` and `end` does not matter.
    """
    start_info = PathCommands.find_subpath(commands, start[0])
    end_info = PathCommands.find_subpath(commands, end[0])
    if start_info is None or start_info != end_info:
        return []
    points = [p for p in extract_editable_points(commands) if start_info.contains(p.command_index)]
    keys = [p.key for p in points]
    if tuple(start) not in keys or tuple(end) not in keys:
        return []
    lo, hi = sorted((keys.index(tuple(start)), keys.index(tuple(end))))
    return points[lo : hi + 1]


class PointSelection:
    """Ordered, duplicate free set of selected points."""

    def __init__(self, points: Iterable[SelectedPoint] = ()):
        self._points: List[SelectedPoint] = []
        self.extend(points)

    def __iter__(self) -> Iterator[SelectedPoint]:
        return iter(list(self._points))

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, point: object) -> bool:
        return point in self._points

    @property
    def points(self) -> List[SelectedPoint]:
        return list(self._points)

    def clear(self) -> None:
        self._points.clear()

    def replace(self, points: Iterable[SelectedPoint]) -> None:
        self._points.clear()
        self.extend(points)

    def extend(self, points: Iterable[SelectedPoint]) -> None:
        for point in points:
            if point not in self._points:
                self._points.append(point)

    def remove(self, point: SelectedPoint) -> None:
        if point in self._points:
            self._points.remove(point)

    def for_element(self, element_id: str) -> List[SelectedPoint]:
        """Selected points of one element in selection order."""
        return [p for p in self._points if p.element_id == element_id]

    def by_element(self) -> Dict[str, List[SelectedPoint]]:
        """Selected points grouped by element, in order of first appearance."""
        grouped: Dict[str, List[SelectedPoint]] = {}
        for point in self._points:
            grouped.setdefault(point.element_id, []).append(point)
        return grouped

    def select(
        self,
        target: SelectedPoint,
        visible: Collection[EditablePoint],
        commands: Sequence[Command],
        multi_select: bool = False,
    ) -> None:
        """
        Apply a click on `target`.

        Without `multi_select` the selection becomes `target`, or empty if
        `target` was already selected. With `multi_select` a selected target is
        removed. An unselected target extends the selection by the whole run
        of points between it and the element's only selected point (same
        subpath only), or is added on its own.
        Points not contained in `visible` are ignored.
        """
        visible_keys: Set[Tuple[int, int]] = {p.key for p in visible}
        if target.key not in visible_keys:
            logger.debug("select: %s is not visible, ignored", target)
            return
        already = target in self._points

        if not multi_select:
            self.replace([] if already else [target])
            return
        if already:
            self.remove(target)
            return

        in_element = self.for_element(target.element_id)
        run: List[SelectedPoint] = []
        if len(in_element) == 1:
            anchor = in_element[0]
            run = [
                SelectedPoint(target.element_id, p.command_index, p.point_index)
                for p in points_in_range(commands, anchor.key, target.key)
                if p.key in visible_keys
            ]
        self.extend(run or [target])

    def prune(self, element_id: str, is_valid: Callable[[SelectedPoint], bool]) -> int:
        """Drop selected points of `element_id` failing `is_valid`, returns the count dropped."""
        stale = [p for p in self._points if p.element_id == element_id and not is_valid(p)]
        for point in stale:
            self._points.remove(point)
        if stale:
            logger.debug("prune: dropped %d stale selected point(s) of %s", len(stale), element_id)
        return len(stale)

    def drop_element(self, element_id: str) -> None:
        self._points = [p for p in self._points if p.element_id != element_id]

    def first(self) -> Optional[SelectedPoint]:
        return self._points[0] if self._points else None
