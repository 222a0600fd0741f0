"""Drag sessions: a sequence of pointer updates followed by commit or cancel."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from pathedit.geom import Point
from pathedit.mutations import PathMutator, require_point
from pathedit.path import Command

logger = logging.getLogger(__name__)


class DragSession:
    """
    Drag of one or more points of a single element.

    Positions captured at start are the reference for every update, so a
    group drag never accumulates rounding drift across frames. A single
    dragged handle keeps its aligned or mirrored partner in step.
    """

    class State(Enum):
        ACTIVE = "active"
        COMMITTED = "committed"
        CANCELLED = "cancelled"

    def __init__(
        self,
        mutator: PathMutator,
        element_id: str,
        commands: Sequence[Command],
        keys: Sequence[Tuple[int, int]],
        start: Point,
    ):
        if not keys:
            raise ValueError("A drag needs at least one point")
        self.mutator = mutator
        self.element_id = element_id
        self.keys: List[Tuple[int, int]] = list(dict.fromkeys(tuple(k) for k in keys))
        self.start = start
        self.original: List[Command] = list(commands)
        self.initial: Dict[Tuple[int, int], Point] = {
            key: require_point(commands, key[0], key[1]) for key in self.keys
        }
        self.current: List[Command] = list(commands)
        self.state = DragSession.State.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state == DragSession.State.ACTIVE

    def _require_active(self) -> None:
        if not self.is_active:
            raise ValueError(f"Drag session is {self.state.value}")

    def update(self, pointer: Point) -> List[Command]:
        """Apply the pointer position, returns the commands to display."""
        self._require_active()
        delta = pointer - self.start
        if len(self.keys) == 1:
            command_index, point_index = self.keys[0]
            target = self.initial[self.keys[0]] + delta
            self.current = self.mutator.move_point(self.current, command_index, point_index, target)
        else:
            self.current = self.mutator.move_points_by(self.original, self.keys, delta, self.initial)
        return self.current

    def commit(self) -> List[Command]:
        """Finish the drag, returns the final commands."""
        self._require_active()
        self.state = DragSession.State.COMMITTED
        logger.debug("drag of %d point(s) on %s committed", len(self.keys), self.element_id)
        return self.current

    def cancel(self) -> List[Command]:
        """Abort the drag, returns the commands as they were at start."""
        self._require_active()
        self.state = DragSession.State.CANCELLED
        self.current = list(self.original)
        return self.current
