"""Mutation engine.

Every mutation takes a flat command list and returns a new, normalized
command list. Invalid targets raise InvalidTargetError before anything is
computed, so a failed mutation never yields a partially edited path.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from pathedit.alignment import ControlPointAlignment
from pathedit.bezier import BezierCurve
from pathedit.common import AlignmentType, InvalidTargetError
from pathedit.geom import CoordinateFormatter, Point, format_point, format_to_precision
from pathedit.path import (
    COMMAND_INFO,
    ClosePath,
    Command,
    CurveTo,
    LineTo,
    MoveTo,
    PathCommands,
    translate_command,
    with_point,
)
from pathedit.points import EditablePoint
from pathedit.settings import EditorSettings

logger = logging.getLogger(__name__)

PointKey = Tuple[int, int]


###############################################################################
# DeleteGuard
###############################################################################
class DeleteGuard:
    """
    Re-entrancy guard of the delete operation.

    States: idle -> deleting -> idle. A new deletion is refused while one is
    in progress or when the previous one started less than `debounce_ms` ago.
    """

    class State(Enum):
        IDLE = "idle"
        DELETING = "deleting"

    def __init__(self, debounce_ms: float = 200.0, clock: Callable[[], float] = time.monotonic):
        self.debounce_ms = debounce_ms
        self._clock = clock
        self._state = DeleteGuard.State.IDLE
        self._last_start: Optional[float] = None

    @property
    def state(self) -> DeleteGuard.State:
        return self._state

    def begin(self) -> bool:
        """Enter the deleting state, returns False if the deletion must be suppressed."""
        now = self._clock()
        if self._state == DeleteGuard.State.DELETING:
            return False
        if self._last_start is not None and (now - self._last_start) * 1000.0 < self.debounce_ms:
            return False
        self._state = DeleteGuard.State.DELETING
        self._last_start = now
        return True

    def finish(self) -> None:
        self._state = DeleteGuard.State.IDLE

    def reset(self) -> None:
        """Back to idle, forgetting the last deletion time."""
        self._state = DeleteGuard.State.IDLE
        self._last_start = None


###############################################################################
# Helpers
###############################################################################
def require_command(commands: Sequence[Command], command_index: int) -> Command:
    if not 0 <= command_index < len(commands):
        raise InvalidTargetError(f"Command index {command_index} out of range (0..{len(commands) - 1})")
    return commands[command_index]


def require_point(commands: Sequence[Command], command_index: int, point_index: int) -> Point:
    command = require_command(commands, command_index)
    if not 0 <= point_index < COMMAND_INFO[command.cmd].editable_points:
        raise InvalidTargetError(f"Command {command.cmd} at {command_index} has no point {point_index}")
    return command.points[point_index]


###############################################################################
# PathMutator
###############################################################################
class PathMutator:
    """Command list mutations using a precision formatter for written coordinates."""

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        formatter: CoordinateFormatter = format_to_precision,
    ):
        self.settings = settings or EditorSettings()
        self.formatter = formatter
        self.alignment = ControlPointAlignment(self.settings)

    def fmt(self, point: Point) -> Point:
        return format_point(point, self.settings.precision, self.formatter)

    ###########################################################################
    # Move
    ###########################################################################
    def move_point(
        self,
        commands: Sequence[Command],
        command_index: int,
        point_index: int,
        position: Point,
        keep_alignment: bool = True,
    ) -> List[Command]:
        """
        Move one point to `position` (formatted).

        If the point is a handle with an aligned or mirrored partner, the
        partner follows. The relation is classified on the geometry before
        the move.
        """
        require_point(commands, command_index, point_index)
        if not position.is_finite():
            raise InvalidTargetError(f"Non-finite target position {position}")
        new_position = self.fmt(position)
        result = list(commands)

        if keep_alignment and isinstance(commands[command_index], CurveTo) and point_index in (0, 1):
            info = self.alignment.resolve(commands, command_index, point_index)
            if info.has_pair and info.type != AlignmentType.INDEPENDENT:
                paired_current = require_point(commands, info.paired_command_index, info.paired_point_index)
                paired = self.alignment.paired_position(info.anchor, new_position, paired_current, info.type)
                if paired is not None:
                    result[info.paired_command_index] = with_point(
                        result[info.paired_command_index], info.paired_point_index, self.fmt(paired)
                    )

        result[command_index] = with_point(result[command_index], point_index, new_position)
        return result

    def move_points_by(
        self,
        commands: Sequence[Command],
        keys: Iterable[PointKey],
        delta: Point,
        initial: Optional[Mapping[PointKey, Point]] = None,
    ) -> List[Command]:
        """
        Move several points by `delta`.

        Each point is placed at format(initial + format(delta)). The initial
        positions default to the current ones. Passing the positions captured
        at drag start keeps repeated updates free of drift.
        """
        keys = list(dict.fromkeys(keys))
        for command_index, point_index in keys:
            require_point(commands, command_index, point_index)
        delta = self.fmt(delta)
        result = list(commands)
        for key in keys:
            start = initial[key] if initial and key in initial else result[key[0]].points[key[1]]
            result[key[0]] = with_point(result[key[0]], key[1], self.fmt(start + delta))
        return result

    ###########################################################################
    # Delete
    ###########################################################################
    @staticmethod
    def surviving_neighbor(points: Sequence[EditablePoint], key: PointKey, deleted: Set[PointKey]) -> Optional[Point]:
        """
        Position of the nearest anchor after `key` (else before it) that is not deleted.

        Returns:
            The anchor's coordinates or None
        """
        keys = [p.key for p in points]
        if key not in keys:
            return None
        index = keys.index(key)
        candidates = list(points[index + 1 :]) + list(reversed(points[:index]))
        for candidate in candidates:
            if not candidate.is_control and candidate.key not in deleted:
                return candidate.position
        return None

    def delete_points(self, commands: Sequence[Command], keys: Iterable[PointKey]) -> List[Command]:
        """
        Delete the given points.

        Points are grouped per command and processed in descending command
        order. A MoveTo is removed after promoting the next non-ClosePath
        command to a MoveTo. A LineTo is removed. A CurveTo is removed if its
        anchor is selected, else it degrades to a LineTo. ClosePath commands are
        left alone. The result is normalized.
        """
        by_command: Dict[int, Set[int]] = defaultdict(set)
        for command_index, point_index in keys:
            require_point(commands, command_index, point_index)
            by_command[command_index].add(point_index)

        result: List[Command] = list(commands)
        for command_index in sorted(by_command, reverse=True):
            command = result[command_index]
            selected = by_command[command_index]
            if isinstance(command, MoveTo):
                nxt = command_index + 1
                while nxt < len(result) and isinstance(result[nxt], ClosePath):
                    nxt += 1
                if nxt < len(result):
                    result[nxt] = MoveTo(result[nxt].position)
                del result[command_index]
            elif isinstance(command, LineTo):
                del result[command_index]
            elif isinstance(command, CurveTo):
                if 2 in selected:
                    del result[command_index]
                elif selected & {0, 1}:
                    result[command_index] = LineTo(command.position)
        return PathCommands.normalize(result)

    ###########################################################################
    # Insert / cut / convert
    ###########################################################################
    @staticmethod
    def insert_point(commands: Sequence[Command], command_index: int, t: float) -> Tuple[List[Command], PointKey]:
        """
        Insert an anchor into the segment of command `command_index` at parameter `t`.

        A LineTo is split at the interpolated point, a CurveTo by De Casteljau
        subdivision. The coordinates are written unrounded so the two halves
        reproduce the original curve exactly.

        Returns:
            The new commands and the key of the inserted anchor
        """
        command = require_command(commands, command_index)
        # t = 0 or 1 would add a zero-length segment that normalize removes again
        if not 0.0 < t < 1.0:
            raise InvalidTargetError(f"Curve parameter {t} outside (0, 1)")
        if not isinstance(command, (LineTo, CurveTo)):
            raise InvalidTargetError(f"Cannot insert a point into command {command.cmd}")
        start = PathCommands.start_point(commands, command_index)
        if start is None:
            raise InvalidTargetError(f"Command {command_index} has no start point")

        result = list(commands)
        if isinstance(command, LineTo):
            split = start + (command.position - start) * t
            result[command_index : command_index + 1] = [LineTo(split), LineTo(command.position)]
            return result, (command_index, 0)
        left, right = BezierCurve.split_cubic(start, *command.points, t)
        result[command_index : command_index + 1] = [CurveTo(*left), CurveTo(*right)]
        return result, (command_index, 2)

    def cut_subpath(self, commands: Sequence[Command], command_index: int) -> List[Command]:
        """Split a subpath after the LineTo/CurveTo at `command_index` with a MoveTo at its anchor plus an offset."""
        command = require_command(commands, command_index)
        if not isinstance(command, (LineTo, CurveTo)):
            raise InvalidTargetError(f"Cannot cut at command {command.cmd}")
        offset = Point(self.settings.cut_offset, self.settings.cut_offset)
        result = list(commands)
        result.insert(command_index + 1, MoveTo(self.fmt(command.position + offset)))
        return PathCommands.normalize(result)

    def convert_command(self, commands: Sequence[Command], command_index: int) -> List[Command]:
        """
        Toggle the type of a drawing command.

        LineTo becomes a CurveTo with handles at 1/3 and 2/3 of the segment,
        CurveTo becomes a LineTo to its anchor.
        """
        command = require_command(commands, command_index)
        result = list(commands)
        if isinstance(command, CurveTo):
            result[command_index] = LineTo(command.position)
        elif isinstance(command, LineTo):
            start = PathCommands.start_point(commands, command_index)
            if start is None:
                raise InvalidTargetError(f"Command {command_index} has no start point")
            c1, c2 = BezierCurve.line_to_cubic(start, command.position)
            result[command_index] = CurveTo(self.fmt(c1), self.fmt(c2), command.position)
        else:
            raise InvalidTargetError(f"Cannot convert command {command.cmd}")
        return PathCommands.normalize(result)

    ###########################################################################
    # ClosePath utilities
    ###########################################################################
    @staticmethod
    def _closing_z(commands: Sequence[Command], move_index: int) -> int:
        z_index = PathCommands.find_closing_z(commands, move_index)
        if z_index is None:
            raise InvalidTargetError(f"No ClosePath closes the MoveTo at {move_index}")
        return z_index

    def delete_closing_z(self, commands: Sequence[Command], move_index: int) -> List[Command]:
        """Remove the ClosePath closing back to the MoveTo at `move_index`."""
        z_index = self._closing_z(commands, move_index)
        result = list(commands)
        del result[z_index]
        return PathCommands.normalize(result)

    def convert_z_to_line(self, commands: Sequence[Command], move_index: int) -> List[Command]:
        """Replace the closing ClosePath by an explicit LineTo to the MoveTo position."""
        z_index = self._closing_z(commands, move_index)
        result = list(commands)
        result[z_index] = LineTo(commands[move_index].position)
        return PathCommands.normalize(result)

    def move_to_m(self, commands: Sequence[Command], command_index: int) -> List[Command]:
        """
        Snap the last anchor of a subpath onto the subpath's MoveTo.

        Only the last LineTo/CurveTo of a subpath qualifies. Handles of a
        CurveTo move by the same offset as its anchor.
        """
        command = require_command(commands, command_index)
        info = PathCommands.find_subpath(commands, command_index)
        if not isinstance(command, (LineTo, CurveTo)) or info is None:
            raise InvalidTargetError(f"Command {command_index} cannot be moved to its MoveTo")
        last = info.end_index
        while last > info.start_index and isinstance(commands[last], ClosePath):
            last -= 1
        head = commands[info.start_index]
        if last != command_index or not isinstance(head, MoveTo):
            raise InvalidTargetError(f"Command {command_index} is not the last anchor of its subpath")
        result = list(commands)
        result[command_index] = translate_command(command, head.position - command.position)
        return PathCommands.normalize(result)

    ###########################################################################
    # Subpath operations
    ###########################################################################
    @staticmethod
    def reverse_subpath(commands: Sequence[Command], subpath_index: int) -> List[Command]:
        """Reverse the direction of one subpath, leaving the others as they are."""
        subpaths = PathCommands.extract_subpaths(commands)
        if not 0 <= subpath_index < len(subpaths):
            raise InvalidTargetError(f"Subpath index {subpath_index} out of range")
        parts = [list(info.commands) for info in subpaths]
        parts[subpath_index] = PathCommands.reverse_subpath(parts[subpath_index])
        return PathCommands.normalize(PathCommands.flatten(parts))

    @staticmethod
    def split_subpaths(commands: Sequence[Command]) -> List[List[Command]]:
        """One normalized command list per non-empty subpath."""
        parts = [PathCommands.normalize(info.commands) for info in PathCommands.extract_subpaths(commands)]
        return [part for part in parts if part]

    def format_commands(self, commands: Sequence[Command]) -> List[Command]:
        """Apply the precision formatter to every coordinate."""
        result: List[Command] = []
        for command in commands:
            for point_index, point in enumerate(command.points):
                command = with_point(command, point_index, self.fmt(point))
            result.append(command)
        return result
