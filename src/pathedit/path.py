"""Path command model.

A path is an ordered list of immutable commands (MoveTo, LineTo, CurveTo,
ClosePath) grouped into subpaths. Every edit produces a new command list;
nothing in here is patched in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from pathedit.common import PathCmds
from pathedit.geom import Point

logger = logging.getLogger(__name__)


###############################################################################
# Commands
###############################################################################
@dataclass(frozen=True)
class MoveTo:
    """Starts a new subpath at `position`."""

    position: Point
    cmd: ClassVar[PathCmds] = "M"

    @property
    def points(self) -> Tuple[Point, ...]:
        return (self.position,)


@dataclass(frozen=True)
class LineTo:
    """Straight segment ending at `position`."""

    position: Point
    cmd: ClassVar[PathCmds] = "L"

    @property
    def points(self) -> Tuple[Point, ...]:
        return (self.position,)


@dataclass(frozen=True)
class CurveTo:
    """Cubic Bezier segment ending at `position`."""

    control_point1: Point
    control_point2: Point
    position: Point
    cmd: ClassVar[PathCmds] = "C"

    @property
    def points(self) -> Tuple[Point, ...]:
        return (self.control_point1, self.control_point2, self.position)


@dataclass(frozen=True)
class ClosePath:
    """Closes the current subpath back to its MoveTo."""

    cmd: ClassVar[PathCmds] = "Z"

    @property
    def points(self) -> Tuple[Point, ...]:
        return ()


Command = Union[MoveTo, LineTo, CurveTo, ClosePath]
"""Any path command."""

DrawingCommand = Union[LineTo, CurveTo]


@dataclass(frozen=True)
class CommandInfo:
    """Metadata of a command type.

    Attributes:
        editable_points: Number of editable points the command contributes
        is_curve: Whether the command carries Bezier handles
    """

    editable_points: int
    is_curve: bool = False


COMMAND_INFO: Dict[str, CommandInfo] = {
    "M": CommandInfo(1),
    "L": CommandInfo(1),
    "C": CommandInfo(3, is_curve=True),
    "Z": CommandInfo(0),
}


def with_point(command: Command, point_index: int, point: Point) -> Command:
    """Return a copy of `command` with editable point `point_index` replaced.

    Raises:
        IndexError: If the command has no such point
    """
    if isinstance(command, CurveTo):
        if point_index == 0:
            return replace(command, control_point1=point)
        if point_index == 1:
            return replace(command, control_point2=point)
        if point_index == 2:
            return replace(command, position=point)
    elif isinstance(command, (MoveTo, LineTo)) and point_index == 0:
        return replace(command, position=point)
    raise IndexError(f"Command {command.cmd} has no point index {point_index}")


def translate_command(command: Command, delta: Point) -> Command:
    """Return a copy of `command` with all points shifted by `delta`."""
    if isinstance(command, CurveTo):
        return CurveTo(command.control_point1 + delta, command.control_point2 + delta, command.position + delta)
    if isinstance(command, (MoveTo, LineTo)):
        return replace(command, position=command.position + delta)
    return command


###############################################################################
# SubPathInfo / PathData
###############################################################################
@dataclass(frozen=True)
class SubPathInfo:
    """A subpath and its inclusive index range within the flat command list."""

    commands: Tuple[Command, ...]
    start_index: int
    end_index: int

    @property
    def is_closed(self) -> bool:
        return bool(self.commands) and isinstance(self.commands[-1], ClosePath)

    def contains(self, command_index: int) -> bool:
        return self.start_index <= command_index <= self.end_index


@dataclass(frozen=True)
class PathData:
    """Ordered subpaths plus style attributes passed through untouched."""

    sub_paths: Tuple[Tuple[Command, ...], ...] = ()
    style: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_commands(cls, commands: Sequence[Command], style: Optional[Dict[str, Any]] = None) -> PathData:
        """Group a flat command list into subpaths."""
        sub_paths = tuple(info.commands for info in PathCommands.extract_subpaths(commands))
        return cls(sub_paths, dict(style or {}))

    @property
    def commands(self) -> List[Command]:
        """Flat command list."""
        return PathCommands.flatten(self.sub_paths)

    def with_commands(self, commands: Sequence[Command]) -> PathData:
        """New PathData with the same style and the given commands."""
        return PathData.from_commands(commands, self.style)

    @property
    def is_empty(self) -> bool:
        return not any(self.sub_paths)


###############################################################################
# PathCommands
###############################################################################
class PathCommands:
    """Static operations on flat command lists."""

    @staticmethod
    def flatten(sub_paths: Sequence[Sequence[Command]]) -> List[Command]:
        """Concatenate subpaths into one flat command list."""
        return [command for sub_path in sub_paths for command in sub_path]

    @staticmethod
    def extract_subpaths(commands: Sequence[Command]) -> List[SubPathInfo]:
        """
        Split a flat command list into subpaths.

        A new subpath starts at every MoveTo. Commands before the first MoveTo
        form a subpath of their own.

        Returns:
            SubPathInfo per subpath with inclusive start/end indices.
        """
        result: List[SubPathInfo] = []
        start = 0
        for index, command in enumerate(commands):
            if isinstance(command, MoveTo) and index > start:
                result.append(SubPathInfo(tuple(commands[start:index]), start, index - 1))
                start = index
        if start < len(commands):
            result.append(SubPathInfo(tuple(commands[start:]), start, len(commands) - 1))
        return result

    @staticmethod
    def find_subpath(commands: Sequence[Command], command_index: int) -> Optional[SubPathInfo]:
        """Subpath containing `command_index`, or None if out of range."""
        for info in PathCommands.extract_subpaths(commands):
            if info.contains(command_index):
                return info
        return None

    @staticmethod
    def normalize(commands: Sequence[Command]) -> List[Command]:
        """
        Remove commands without semantic content and repair subpath starts.

        Rules, applied in one pass over the already emitted output:
        - commands with non-finite coordinates are dropped
        - a LineTo/CurveTo without an open subpath (list start or after a
          ClosePath) is promoted to a MoveTo at its end position
        - a LineTo to the current point and a CurveTo collapsed onto the
          current point are dropped
        - a ClosePath without drawn content or following another ClosePath
          is dropped

        The function is idempotent.
        """
        out: List[Command] = []
        current: Optional[Point] = None
        subpath_open = False
        for command in commands:
            if not all(p.is_finite() for p in command.points):
                logger.debug("normalize: dropping non-finite %s", command)
                continue
            if isinstance(command, ClosePath):
                if not subpath_open or isinstance(out[-1], MoveTo):
                    continue
                out.append(command)
                subpath_open = False
                continue
            if isinstance(command, MoveTo):
                out.append(command)
                current = command.position
                subpath_open = True
                continue
            if not subpath_open:
                out.append(MoveTo(command.position))
                current = command.position
                subpath_open = True
                continue
            if isinstance(command, LineTo) and command.position == current:
                continue
            if isinstance(command, CurveTo) and all(p == current for p in command.points):
                continue
            out.append(command)
            current = command.position
        return out

    @staticmethod
    def end_point(commands: Sequence[Command], index: int) -> Optional[Point]:
        """
        Current point after executing command `index`.

        For a ClosePath this is the position of the subpath's MoveTo.
        """
        if not 0 <= index < len(commands):
            return None
        command = commands[index]
        if not isinstance(command, ClosePath):
            return command.position
        for back in range(index - 1, -1, -1):
            if isinstance(commands[back], MoveTo):
                return commands[back].position
        return None

    @staticmethod
    def start_point(commands: Sequence[Command], index: int) -> Optional[Point]:
        """Start point of the segment drawn by command `index` (None for index 0)."""
        if index <= 0:
            return None
        return PathCommands.end_point(commands, index - 1)

    @staticmethod
    def find_closing_z(commands: Sequence[Command], move_index: int) -> Optional[int]:
        """
        Index of the ClosePath that closes back to the MoveTo at `move_index`.

        Walks forward from the MoveTo. Each ClosePath found closes to the
        nearest preceding MoveTo, which has to be the target. The walk stops
        at the next MoveTo.
        """
        if not 0 <= move_index < len(commands) or not isinstance(commands[move_index], MoveTo):
            return None
        for index in range(move_index + 1, len(commands)):
            command = commands[index]
            if isinstance(command, MoveTo):
                return None
            if isinstance(command, ClosePath):
                nearest = next(
                    (back for back in range(index - 1, -1, -1) if isinstance(commands[back], MoveTo)),
                    None,
                )
                if nearest == move_index:
                    return index
        return None

    @staticmethod
    def reverse_subpath(sub_path: Sequence[Command]) -> List[Command]:
        """
        Reverse the drawing direction of one subpath.

        The two controls of each curve swap places. A closed subpath stays
        closed, an open one stays open.
        """
        if not sub_path or not isinstance(sub_path[0], MoveTo):
            return list(sub_path)
        closed = isinstance(sub_path[-1], ClosePath)
        drawing = [c for c in sub_path[1:] if not isinstance(c, ClosePath)]
        anchors = [sub_path[0].position] + [c.position for c in drawing]
        reversed_cmds: List[Command] = [MoveTo(anchors[-1])]
        for i in range(len(drawing) - 1, -1, -1):
            segment = drawing[i]
            target = anchors[i]
            if isinstance(segment, CurveTo):
                reversed_cmds.append(CurveTo(segment.control_point2, segment.control_point1, target))
            else:
                reversed_cmds.append(LineTo(target))
        if closed:
            reversed_cmds.append(ClosePath())
        return reversed_cmds

    @staticmethod
    def validate(commands: Sequence[Command]) -> None:
        """
        Validate the structure of a command list.

        Raises:
            ValueError: If the list does not start with a MoveTo or a
                ClosePath is not the last command of its subpath.
        """
        if not commands:
            return
        if not isinstance(commands[0], MoveTo):
            raise ValueError(f"Path must start with M, got {commands[0].cmd}")
        for index, command in enumerate(commands[:-1]):
            if isinstance(command, ClosePath) and not isinstance(commands[index + 1], MoveTo):
                raise ValueError(f"Z at index {index} is not the last command of its subpath")
