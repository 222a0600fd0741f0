"""Pairing and alignment of Bezier handles that share an anchor.

Two handles are paired when they belong to adjacent commands around the same
anchor (with wrap-around at the MoveTo of a subpath). The relation between
them is never stored; it is classified from the geometry on every request.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from pathedit.common import AlignmentType, InvalidTargetError
from pathedit.geom import GeomMath, Point
from pathedit.path import ClosePath, Command, CurveTo, MoveTo, PathCommands
from pathedit.settings import EditorSettings

logger = logging.getLogger(__name__)

# Fallback handle lengths when switching a pair to "aligned" without a usable own length
_ALIGNED_LENGTH_FACTOR = 0.7
_ALIGNED_MIN_LENGTH = 15.0
_ALIGNED_DISTINCT_MARGIN = 5.0
# Perpendicular offset when breaking an aligned pair apart
_INDEPENDENT_MIN_OFFSET = 10.0
_INDEPENDENT_OFFSET_FACTOR = 0.2


@dataclass(frozen=True)
class AlignmentInfo:
    """Result of resolving the alignment of one handle."""

    type: AlignmentType
    anchor: Optional[Point] = None
    paired_command_index: Optional[int] = None
    paired_point_index: Optional[int] = None

    @property
    def has_pair(self) -> bool:
        return self.paired_command_index is not None


@dataclass(frozen=True)
class HandlePair:
    """A handle, its paired sibling and their shared anchor."""

    command_index: int
    point_index: int
    paired_command_index: int
    paired_point_index: int
    anchor: Point


def handle_position(commands: Sequence[Command], command_index: int, point_index: int) -> Point:
    """Position of handle `point_index` (0 or 1) of the CurveTo at `command_index`."""
    command = commands[command_index]
    if not isinstance(command, CurveTo) or point_index not in (0, 1):
        raise InvalidTargetError(f"No handle {point_index} at command {command_index}")
    return command.control_point1 if point_index == 0 else command.control_point2


class ControlPointAlignment:
    """Resolves, classifies and enforces handle relations."""

    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()

    ###########################################################################
    # Pairing
    ###########################################################################
    def handle_anchor(self, commands: Sequence[Command], command_index: int, point_index: int) -> Optional[Point]:
        """Anchor governing a handle: start point for handle 0, end point for handle 1."""
        handle_position(commands, command_index, point_index)
        if point_index == 1:
            return commands[command_index].position
        return PathCommands.start_point(commands, command_index)

    def find_paired_handle(
        self, commands: Sequence[Command], command_index: int, point_index: int
    ) -> Optional[HandlePair]:
        """
        Find the handle sharing the anchor of the given handle.

        Handle 1 pairs with handle 0 of the following CurveTo. Handle 0 pairs
        with handle 1 of the preceding CurveTo. At the start and end of a
        subpath the search wraps around when the subpath ends on its MoveTo.

        Raises:
            InvalidTargetError: If the indices do not denote a handle
        """
        if not 0 <= command_index < len(commands):
            raise InvalidTargetError(f"Command index {command_index} out of range")
        anchor = self.handle_anchor(commands, command_index, point_index)
        if anchor is None:
            return None
        info = PathCommands.find_subpath(commands, command_index)
        if info is None:
            return None

        if point_index == 1:
            candidate = self._next_curve(commands, command_index, info.end_index)
            if candidate is None:
                candidate = self._wrap_to_first_curve(commands, command_index, info.start_index, info.end_index)
            paired_point = 0
        else:
            candidate = self._previous_curve(commands, command_index, info.start_index)
            if candidate is None:
                candidate = self._wrap_to_last_curve(commands, command_index, info.start_index, info.end_index)
            paired_point = 1

        if candidate is None:
            return None
        paired_anchor = self.handle_anchor(commands, candidate, paired_point)
        if paired_anchor is None or paired_anchor.distance_to(anchor) > self.settings.anchor_tolerance:
            return None
        return HandlePair(command_index, point_index, candidate, paired_point, anchor)

    @staticmethod
    def _next_curve(commands: Sequence[Command], index: int, end_index: int) -> Optional[int]:
        nxt = index + 1
        if nxt <= end_index and isinstance(commands[nxt], CurveTo):
            return nxt
        return None

    @staticmethod
    def _previous_curve(commands: Sequence[Command], index: int, start_index: int) -> Optional[int]:
        prev = index - 1
        if prev > start_index and isinstance(commands[prev], CurveTo):
            return prev
        return None

    @staticmethod
    def _last_drawing_index(commands: Sequence[Command], start_index: int, end_index: int) -> int:
        last = end_index
        while last > start_index and isinstance(commands[last], ClosePath):
            last -= 1
        return last

    def _wrap_to_first_curve(
        self, commands: Sequence[Command], index: int, start_index: int, end_index: int
    ) -> Optional[int]:
        # only the last drawing command of a subpath wraps around
        if index != self._last_drawing_index(commands, start_index, end_index):
            return None
        first = start_index + 1
        if not isinstance(commands[start_index], MoveTo) or first == index or first > end_index:
            return None
        return first if isinstance(commands[first], CurveTo) else None

    def _wrap_to_last_curve(
        self, commands: Sequence[Command], index: int, start_index: int, end_index: int
    ) -> Optional[int]:
        if index != start_index + 1 or not isinstance(commands[start_index], MoveTo):
            return None
        last = self._last_drawing_index(commands, start_index, end_index)
        if last == index or not isinstance(commands[last], CurveTo):
            return None
        return last

    ###########################################################################
    # Classification
    ###########################################################################
    def classify(self, handle: Point, paired: Point, anchor: Point) -> AlignmentType:
        """
        Classify two handles around `anchor`.

        Opposite directions (within the angular tolerance) with equal lengths
        (within the relative magnitude tolerance) are mirrored, opposite
        directions with different lengths are aligned, anything else
        (including zero-length handles) is independent.
        """
        v1 = handle - anchor
        v2 = paired - anchor
        m1, m2 = v1.magnitude, v2.magnitude
        if m1 == 0.0 or m2 == 0.0:
            return AlignmentType.INDEPENDENT
        angle = GeomMath.angle_between(v1, v2)
        if 180.0 - angle > self.settings.angle_tolerance_deg:
            return AlignmentType.INDEPENDENT
        if abs(m1 - m2) <= self.settings.magnitude_tolerance * max(m1, m2):
            return AlignmentType.MIRRORED
        return AlignmentType.ALIGNED

    def resolve(self, commands: Sequence[Command], command_index: int, point_index: int) -> AlignmentInfo:
        """
        Resolve the alignment of a handle.

        Raises:
            InvalidTargetError: If the indices do not denote a handle
        """
        pair = self.find_paired_handle(commands, command_index, point_index)
        if pair is None:
            anchor = self.handle_anchor(commands, command_index, point_index)
            return AlignmentInfo(AlignmentType.INDEPENDENT, anchor)
        handle = handle_position(commands, command_index, point_index)
        paired = handle_position(commands, pair.paired_command_index, pair.paired_point_index)
        return AlignmentInfo(
            self.classify(handle, paired, pair.anchor),
            pair.anchor,
            pair.paired_command_index,
            pair.paired_point_index,
        )

    ###########################################################################
    # Enforcement
    ###########################################################################
    @staticmethod
    def paired_position(
        anchor: Point, moved: Point, paired_current: Point, alignment: AlignmentType
    ) -> Optional[Point]:
        """
        New position of the paired handle after a handle moved to `moved`.

        Mirrored pairs are reflected through the anchor. Aligned pairs point
        in the opposite direction and keep the paired handle's length.

        Returns:
            The new position or None if the paired handle stays where it is
        """
        if alignment == AlignmentType.INDEPENDENT:
            return None
        vector = moved - anchor
        if vector.magnitude == 0.0:
            return None
        direction = -GeomMath.unit(vector)
        if alignment == AlignmentType.MIRRORED:
            return anchor + direction * vector.magnitude
        length = (paired_current - anchor).magnitude
        if length == 0.0:
            return None
        return anchor + direction * length

    def adjusted_position(
        self, anchor: Point, handle: Point, driver: Point, alignment: AlignmentType
    ) -> Optional[Point]:
        """
        Position of `handle` satisfying `alignment` relative to the driving handle.

        Returns:
            The new position or None if the handle stays where it is
            (degenerate vectors or nothing to change)
        """
        v_handle = handle - anchor
        v_driver = driver - anchor
        m_handle, m_driver = v_handle.magnitude, v_driver.magnitude

        if alignment == AlignmentType.INDEPENDENT:
            if m_handle == 0.0 or self.classify(handle, driver, anchor) == AlignmentType.INDEPENDENT:
                return None
            unit = GeomMath.unit(v_handle)
            offset = max(_INDEPENDENT_MIN_OFFSET, _INDEPENDENT_OFFSET_FACTOR * m_handle)
            return handle + Point(-unit.y, unit.x) * offset

        if m_driver == 0.0:
            return None
        direction = -GeomMath.unit(v_driver)
        if alignment == AlignmentType.MIRRORED:
            return anchor + direction * m_driver

        equal = abs(m_handle - m_driver) <= self.settings.magnitude_tolerance * max(m_handle, m_driver)
        if m_handle > 0.0 and not equal:
            length = m_handle
        else:
            length = _ALIGNED_LENGTH_FACTOR * m_driver
            if length < _ALIGNED_MIN_LENGTH:
                length = max(0.5 * m_driver, _ALIGNED_MIN_LENGTH)
            if abs(length - m_driver) < _ALIGNED_DISTINCT_MARGIN:
                length = 0.6 * m_driver
        result = anchor + direction * length
        return result if math.isfinite(result.x) and math.isfinite(result.y) else None

    def pair_of(self, commands: Sequence[Command], first: Tuple[int, int], second: Tuple[int, int]) -> Optional[Point]:
        """Shared anchor if the two handles are paired, else None."""
        try:
            pair = self.find_paired_handle(commands, first[0], first[1])
        except InvalidTargetError:
            return None
        if pair is None or (pair.paired_command_index, pair.paired_point_index) != tuple(second):
            return None
        return pair.anchor
