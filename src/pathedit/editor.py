"""PathEditor: the editing operations on path elements of an element store.

Every operation reads the element's current commands, computes a new command
list and replaces the element's PathData as a whole. Invalid targets turn an
operation into a logged no-op; nothing is written in that case.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pathedit.alignment import AlignmentInfo, ControlPointAlignment, handle_position
from pathedit.common import AlignmentType, AlignStrategy, DistributeAxis, InvalidTargetError
from pathedit.distribution import MIN_ALIGN_POINTS, MIN_DISTRIBUTE_POINTS, align_positions, distribute_positions
from pathedit.drag import DragSession
from pathedit.geom import CoordinateFormatter, Point, format_to_precision
from pathedit.geometry_service import GeometryService, ShapelyGeometryService
from pathedit.mutations import DeleteGuard, PathMutator, require_point
from pathedit.path import Command, CurveTo, LineTo, PathCommands, PathData, with_point
from pathedit.points import EditablePoint, extract_editable_points, filter_points_by_subpaths
from pathedit.selection import PointSelection, SelectedPoint, points_in_range
from pathedit.settings import EditorSettings, PathRoundingSettings, PathSimplificationSettings, SmoothBrushSettings
from pathedit.smoothing import DelegatedGeometry, SmoothBrush
from pathedit.store import ElementStore

logger = logging.getLogger(__name__)


def _no_op_on_invalid_target(method: Callable) -> Callable:
    """Turn an InvalidTargetError raised by `method` into a logged no-op returning None."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except InvalidTargetError as err:
            logger.debug("%s ignored: %s", method.__name__, err)
            return None

    return wrapper


class PathEditor:
    """Editing facade over an ElementStore."""

    def __init__(
        self,
        store: ElementStore,
        settings: Optional[EditorSettings] = None,
        brush_settings: Optional[SmoothBrushSettings] = None,
        simplification_settings: Optional[PathSimplificationSettings] = None,
        rounding_settings: Optional[PathRoundingSettings] = None,
        geometry_service: Optional[GeometryService] = None,
        formatter: CoordinateFormatter = format_to_precision,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.settings = settings or EditorSettings()
        self.brush_settings = brush_settings or SmoothBrushSettings()
        self.simplification_settings = simplification_settings or PathSimplificationSettings()
        self.rounding_settings = rounding_settings or PathRoundingSettings()
        self.mutator = PathMutator(self.settings, formatter)
        self.alignment = ControlPointAlignment(self.settings)
        self.brush = SmoothBrush(self.brush_settings, self.settings.precision, formatter)
        self.geometry = DelegatedGeometry(geometry_service or ShapelyGeometryService())
        self.guard = DeleteGuard(self.settings.delete_debounce_ms, clock)
        self.selection = PointSelection()
        self.selected_subpaths: List[Tuple[str, int]] = []
        self.drag: Optional[DragSession] = None

    ###########################################################################
    # Element access
    ###########################################################################
    def _path(self, element_id: str) -> PathData:
        element = self.store.find_element(element_id)
        if element is None:
            raise InvalidTargetError(f"Element {element_id} not found")
        if not element.is_path:
            raise InvalidTargetError(f"Element {element_id} is not a path")
        return element.data

    def _commands(self, element_id: str) -> List[Command]:
        return self._path(element_id).commands

    def _write(self, element_id: str, commands: Sequence[Command], normalize: bool = True) -> None:
        """Replace the element's path, deleting the element if nothing is left."""
        path = self._path(element_id)
        if normalize:
            commands = PathCommands.normalize(commands)
            PathCommands.validate(commands)
        if not commands:
            logger.info("Path %s became empty and is deleted", element_id)
            self.store.delete_element(element_id)
            self.selection.drop_element(element_id)
            self.selected_subpaths = [s for s in self.selected_subpaths if s[0] != element_id]
            return
        self.store.replace_element_data(element_id, path.with_commands(commands))
        self._prune(element_id)

    def _write_all(self, results: Dict[str, List[Command]]) -> None:
        """Write the new commands of several elements, computed before anything is written."""
        for element_id, commands in results.items():
            self._write(element_id, commands)

    def _prune(self, element_id: str) -> None:
        """Drop selected subpaths and points that no longer resolve."""
        commands = self._commands(element_id)
        count = len(PathCommands.extract_subpaths(commands))
        self.selected_subpaths = [s for s in self.selected_subpaths if s[0] != element_id or s[1] < count]
        visible = {p.key for p in self.get_filtered_editable_points(element_id)}
        self.selection.prune(element_id, lambda ref: ref.key in visible)

    ###########################################################################
    # Queries
    ###########################################################################
    def extract_editable_points(self, element_id: str) -> List[EditablePoint]:
        """All editable points of an element (empty for invalid targets)."""
        try:
            return extract_editable_points(self._commands(element_id))
        except InvalidTargetError:
            return []

    def is_working_with_subpaths(self) -> bool:
        return bool(self.selected_subpaths)

    def selected_subpath_indices(self, element_id: str) -> List[int]:
        return [index for eid, index in self.selected_subpaths if eid == element_id]

    def get_filtered_editable_points(self, element_id: str) -> List[EditablePoint]:
        """
        Editable points visible for selection.

        All points if no subpath is selected anywhere, else only the points of
        the element's selected subpaths.
        """
        try:
            commands = self._commands(element_id)
        except InvalidTargetError:
            return []
        indices = self.selected_subpath_indices(element_id) if self.selected_subpaths else None
        return filter_points_by_subpaths(extract_editable_points(commands), commands, indices)

    def get_points_in_range(
        self, element_id: str, start: Tuple[int, int], end: Tuple[int, int]
    ) -> List[SelectedPoint]:
        """Points between `start` and `end` within one subpath (empty across subpaths)."""
        try:
            commands = self._commands(element_id)
        except InvalidTargetError:
            return []
        return [SelectedPoint(element_id, p.command_index, p.point_index) for p in points_in_range(commands, start, end)]

    @_no_op_on_invalid_target
    def resolve_alignment(self, element_id: str, command_index: int, point_index: int) -> Optional[AlignmentInfo]:
        """Alignment of a handle, None if the point is not a handle."""
        return self.alignment.resolve(self._commands(element_id), command_index, point_index)

    get_control_point_alignment_info = resolve_alignment

    ###########################################################################
    # Selection
    ###########################################################################
    def select_point(self, element_id: str, command_index: int, point_index: int, multi_select: bool = False) -> None:
        """Click on a point, `multi_select` is the shift-click variant."""
        try:
            commands = self._commands(element_id)
        except InvalidTargetError as err:
            logger.debug("select_point ignored: %s", err)
            return
        self.selection.select(
            SelectedPoint(element_id, command_index, point_index),
            self.get_filtered_editable_points(element_id),
            commands,
            multi_select,
        )

    def select_all(self, element_id: str) -> None:
        """Select every visible point of an element."""
        self.selection.replace(
            SelectedPoint(element_id, p.command_index, p.point_index)
            for p in self.get_filtered_editable_points(element_id)
        )

    def clear_selection(self) -> None:
        self.selection.clear()

    def select_subpath(self, element_id: str, subpath_index: int, multi_select: bool = False) -> None:
        """Restrict editing to a subpath (toggles with `multi_select`)."""
        try:
            count = len(PathCommands.extract_subpaths(self._commands(element_id)))
        except InvalidTargetError as err:
            logger.debug("select_subpath ignored: %s", err)
            return
        if not 0 <= subpath_index < count:
            return
        entry = (element_id, subpath_index)
        if not multi_select:
            self.selected_subpaths = [entry]
        elif entry in self.selected_subpaths:
            self.selected_subpaths.remove(entry)
        else:
            self.selected_subpaths.append(entry)
        for eid in {p.element_id for p in self.selection}:
            self._prune(eid)

    def clear_subpath_selection(self) -> None:
        self.selected_subpaths = []

    ###########################################################################
    # Move / alignment
    ###########################################################################
    @_no_op_on_invalid_target
    def move_point(self, element_id: str, command_index: int, point_index: int, x: float, y: float) -> None:
        """Move one point, keeping the relation of an aligned or mirrored handle pair."""
        commands = self._commands(element_id)
        self._write(element_id, self.mutator.move_point(commands, command_index, point_index, Point(x, y)))

    @_no_op_on_invalid_target
    def apply_alignment(self, element_id: str, command_index: int, point_index: int, new_x: float, new_y: float) -> None:
        """Move a handle to (new_x, new_y) and update its paired handle to keep their relation."""
        commands = self._commands(element_id)
        handle_position(commands, command_index, point_index)
        self._write(element_id, self.mutator.move_point(commands, command_index, point_index, Point(new_x, new_y)))

    @_no_op_on_invalid_target
    def set_alignment_type(
        self,
        element_id: str,
        command_index1: int,
        point_index1: int,
        command_index2: int,
        point_index2: int,
        alignment: AlignmentType,
    ) -> None:
        """
        Make handle 1 satisfy `alignment` relative to handle 2.

        Only handle 1 is written. Degenerate handles leave the path unchanged.
        """
        commands = self._commands(element_id)
        handle = handle_position(commands, command_index1, point_index1)
        driver = handle_position(commands, command_index2, point_index2)
        anchor = self.alignment.pair_of(commands, (command_index1, point_index1), (command_index2, point_index2))
        if anchor is None:
            raise InvalidTargetError("The handles do not share an anchor")
        target = self.alignment.adjusted_position(anchor, handle, driver, alignment)
        if target is None:
            logger.debug("set_alignment_type: handle left unchanged")
            return
        result = list(commands)
        result[command_index1] = with_point(result[command_index1], point_index1, self.mutator.fmt(target))
        self._write(element_id, result)

    @_no_op_on_invalid_target
    def move_selected_points(self, dx: float, dy: float) -> None:
        """Move all selected points by (dx, dy)."""
        delta = Point(dx, dy)
        results = {
            element_id: self.mutator.move_points_by(self._commands(element_id), [r.key for r in refs], delta)
            for element_id, refs in self.selection.by_element().items()
        }
        self._write_all(results)

    ###########################################################################
    # Drag
    ###########################################################################
    @_no_op_on_invalid_target
    def start_drag(
        self, element_id: str, x: float, y: float, keys: Optional[Sequence[Tuple[int, int]]] = None
    ) -> Optional[DragSession]:
        """Start dragging `keys` (default: the element's selected points) from pointer (x, y)."""
        if self.drag is not None and self.drag.is_active:
            self.cancel_drag()
        if keys is None:
            keys = [r.key for r in self.selection.for_element(element_id)]
        if not keys:
            raise InvalidTargetError(f"Nothing to drag on {element_id}")
        self.drag = DragSession(self.mutator, element_id, self._commands(element_id), keys, Point(x, y))
        return self.drag

    @_no_op_on_invalid_target
    def update_drag(self, x: float, y: float) -> None:
        if self.drag is None or not self.drag.is_active:
            return
        commands = self.drag.update(Point(x, y))
        # indices must stay stable while dragging, normalization waits for commit
        self._write(self.drag.element_id, commands, normalize=False)

    @_no_op_on_invalid_target
    def commit_drag(self) -> None:
        if self.drag is None or not self.drag.is_active:
            return
        self._write(self.drag.element_id, self.drag.commit())

    @_no_op_on_invalid_target
    def cancel_drag(self) -> None:
        if self.drag is None or not self.drag.is_active:
            return
        self._write(self.drag.element_id, self.drag.cancel(), normalize=False)

    ###########################################################################
    # Delete
    ###########################################################################
    def delete_selected_points(self) -> None:
        """
        Delete the selected points of all elements.

        Suppressed while another deletion runs or within the debounce time of
        the previous one. With a single selected point, the nearest surviving
        anchor gets selected afterwards.
        """
        if not self.guard.begin():
            logger.debug("delete_selected_points suppressed")
            return
        try:
            self._delete_selected_points()
        finally:
            self.guard.finish()

    def _delete_selected_points(self) -> None:
        refs = self.selection.points
        if not refs:
            return
        single = refs[0] if len(refs) == 1 else None
        reselect: Optional[Tuple[str, Point]] = None

        for element_id, element_refs in self.selection.by_element().items():
            try:
                commands = self._commands(element_id)
            except InvalidTargetError as err:
                logger.debug("delete: %s", err)
                continue
            points = extract_editable_points(commands)
            existing = {p.key for p in points}
            keys = {r.key for r in element_refs if r.key in existing}
            if not keys:
                continue
            if single is not None and single.element_id == element_id:
                neighbor = PathMutator.surviving_neighbor(points, single.key, keys)
                if neighbor is not None:
                    reselect = (element_id, neighbor)
            self._write(element_id, self.mutator.delete_points(commands, keys))

        self.selection.clear()
        if reselect is None or self.store.find_element(reselect[0]) is None:
            return
        element_id, position = reselect
        anchors = [p for p in self.get_filtered_editable_points(element_id) if not p.is_control]
        match = next(
            (p for p in anchors if p.position.is_close(position, self.settings.reselect_tolerance)),
            anchors[0] if anchors else None,
        )
        if match is not None:
            self.selection.replace([SelectedPoint(element_id, match.command_index, match.point_index)])

    ###########################################################################
    # Insert / cut / convert / ClosePath / subpaths
    ###########################################################################
    @_no_op_on_invalid_target
    def insert_point(self, element_id: str, command_index: int, t: float) -> None:
        """Insert an anchor at parameter `t` of a segment and select it."""
        commands, (new_command, new_point) = self.mutator.insert_point(self._commands(element_id), command_index, t)
        self._write(element_id, commands)
        visible = {p.key for p in self.get_filtered_editable_points(element_id)}
        if (new_command, new_point) in visible:
            self.selection.replace([SelectedPoint(element_id, new_command, new_point)])

    @_no_op_on_invalid_target
    def cut_subpath_at_point(self, element_id: str, command_index: int, point_index: int) -> None:
        """Start a new subpath after the anchor of a LineTo/CurveTo."""
        commands = self._commands(element_id)
        require_point(commands, command_index, point_index)
        self._write(element_id, self.mutator.cut_subpath(commands, command_index))
        self.selection.clear()

    @_no_op_on_invalid_target
    def convert_command_type(self, element_id: str, command_index: int) -> None:
        """Toggle a command between LineTo and CurveTo."""
        self._write(element_id, self.mutator.convert_command(self._commands(element_id), command_index))

    @_no_op_on_invalid_target
    def delete_closing_z(self, element_id: str, move_index: int) -> None:
        self._write(element_id, self.mutator.delete_closing_z(self._commands(element_id), move_index))

    @_no_op_on_invalid_target
    def convert_z_to_line(self, element_id: str, move_index: int) -> None:
        self._write(element_id, self.mutator.convert_z_to_line(self._commands(element_id), move_index))

    @_no_op_on_invalid_target
    def move_to_m(self, element_id: str, command_index: int, point_index: int) -> None:
        """Snap the final anchor of a subpath onto its MoveTo."""
        commands = self._commands(element_id)
        require_point(commands, command_index, point_index)
        command = commands[command_index]
        anchor_index = 2 if isinstance(command, CurveTo) else 0
        if point_index != anchor_index or not isinstance(command, (LineTo, CurveTo)):
            raise InvalidTargetError("move_to_m needs the anchor of a LineTo or CurveTo")
        self._write(element_id, self.mutator.move_to_m(commands, command_index))

    @_no_op_on_invalid_target
    def reverse_subpath(self, element_id: str, subpath_index: int) -> None:
        self._write(element_id, self.mutator.reverse_subpath(self._commands(element_id), subpath_index))
        self.selection.drop_element(element_id)

    @_no_op_on_invalid_target
    def split_subpaths(self, element_id: str) -> Optional[List[str]]:
        """
        Move every subpath except the first into an element of its own.

        Returns:
            Ids of all resulting elements, starting with `element_id`
        """
        path = self._path(element_id)
        parts = self.mutator.split_subpaths(path.commands)
        if len(parts) < 2:
            return [element_id]
        new_ids = [self.store.add_element(PathData.from_commands(part, path.style)) for part in parts[1:]]
        self.selection.drop_element(element_id)
        self.selected_subpaths = [s for s in self.selected_subpaths if s[0] != element_id]
        self._write(element_id, parts[0])
        return [element_id] + new_ids

    ###########################################################################
    # Smoothing / simplification / rounding
    ###########################################################################
    def _target_element(self, element_id: Optional[str]) -> Optional[str]:
        first = self.selection.first()
        if first is not None:
            return first.element_id
        if element_id is not None:
            return element_id
        if self.selected_subpaths:
            return self.selected_subpaths[0][0]
        return None

    @_no_op_on_invalid_target
    def apply_smooth_brush(
        self, center_x: Optional[float] = None, center_y: Optional[float] = None, element_id: Optional[str] = None
    ) -> None:
        """
        Smooth the selected points, or the points around (center_x, center_y).

        Without selection and without center all interior points are smoothed.
        With point simplification enabled the touched subpaths become polylines.
        """
        target = self._target_element(element_id)
        if target is None:
            return
        commands = self._commands(target)
        points = self.get_filtered_editable_points(target)
        selected = {r.key for r in self.selection.for_element(target)}
        center = Point(center_x, center_y) if center_x is not None and center_y is not None else None
        updates = self.brush.compute_updates(points, selected or None, center)
        if not updates:
            return
        smoothed = self.brush.apply_updates(commands, updates)
        if not self.brush_settings.simplify_points:
            self._write(target, smoothed)
            return
        indices = self.selected_subpath_indices(target) if self.selected_subpaths else None
        smoothed_points = filter_points_by_subpaths(extract_editable_points(smoothed), smoothed, indices)
        self._write(target, self.brush.rebuild_as_polyline(smoothed, smoothed_points, set(updates)))
        self.selection.drop_element(target)

    @_no_op_on_invalid_target
    def apply_path_simplification(self, element_id: Optional[str] = None) -> None:
        """
        Simplify selected subpaths, the command range spanned by the selected
        points, or the whole path of `element_id`.
        """
        tolerance = self.simplification_settings.tolerance
        if self.selected_subpaths:
            results = {
                target: self.mutator.format_commands(
                    self.geometry.simplify_sub_paths(
                        self._path(target), self.selected_subpath_indices(target), tolerance
                    ).commands
                )
                for target in dict.fromkeys(eid for eid, _ in self.selected_subpaths)
            }
            self._write_all(results)
            return

        first = self.selection.first()
        if first is not None:
            target = first.element_id
            commands = self._commands(target)
            indices = [r.command_index for r in self.selection.for_element(target)]
            result = self.geometry.simplify_range(commands, min(indices), max(indices), tolerance)
            if result is None:
                logger.info("simplify: no result, path %s unchanged", target)
                return
            self._write(target, self.mutator.format_commands(result))
            self.selection.clear()
            return

        if element_id is None:
            return
        simplified = self.geometry.simplify_all(self._path(element_id), tolerance)
        if simplified is None:
            logger.info("simplify: no result, path %s unchanged", element_id)
            return
        self._write(element_id, self.mutator.format_commands(simplified.commands))

    @_no_op_on_invalid_target
    def apply_path_rounding(self, element_id: Optional[str] = None) -> None:
        """Round the corners of the selected subpaths or of the whole target path."""
        radius = self.rounding_settings.radius
        targets: Dict[str, Optional[List[int]]] = {}
        if self.selected_subpaths:
            for eid, _ in self.selected_subpaths:
                targets[eid] = self.selected_subpath_indices(eid)
        else:
            target = self._target_element(element_id)
            if target is None:
                return
            targets[target] = None
        paths = {target: self._path(target) for target in targets}
        results: Dict[str, List[Command]] = {}
        for target, indices in targets.items():
            rounded = self.geometry.round_sub_paths(paths[target], indices, radius)
            if rounded is None:
                logger.info("round: no result, path %s unchanged", target)
                continue
            results[target] = self.mutator.format_commands(rounded.commands)
        self._write_all(results)
        self.selection.clear()

    ###########################################################################
    # Align / distribute
    ###########################################################################
    @_no_op_on_invalid_target
    def align_selected(self, strategy: AlignStrategy) -> None:
        """Align the selected points of each element (two or more per element)."""
        results: Dict[str, List[Command]] = {}
        for element_id, refs in self.selection.by_element().items():
            if len(refs) < MIN_ALIGN_POINTS:
                continue
            commands = self._commands(element_id)
            positions = [require_point(commands, r.command_index, r.point_index) for r in refs]
            results[element_id] = self._with_positions(commands, refs, align_positions(positions, strategy))
        self._write_all(results)

    @_no_op_on_invalid_target
    def distribute_selected(self, axis: DistributeAxis) -> None:
        """Distribute all selected points (three or more, across elements) evenly."""
        refs = self.selection.points
        if len(refs) < MIN_DISTRIBUTE_POINTS:
            return
        commands_by_element = {eid: self._commands(eid) for eid in dict.fromkeys(r.element_id for r in refs)}
        positions = [
            require_point(commands_by_element[r.element_id], r.command_index, r.point_index) for r in refs
        ]
        distributed = distribute_positions(positions, axis)
        results: Dict[str, List[Command]] = {}
        for element_id, commands in commands_by_element.items():
            pairs = [(r, p) for r, p in zip(refs, distributed) if r.element_id == element_id]
            results[element_id] = self._with_positions(commands, [r for r, _ in pairs], [p for _, p in pairs])
        self._write_all(results)

    def _with_positions(
        self, commands: Sequence[Command], refs: Sequence[SelectedPoint], positions: Sequence[Point]
    ) -> List[Command]:
        result = list(commands)
        for ref, position in zip(refs, positions):
            result[ref.command_index] = with_point(result[ref.command_index], ref.point_index, self.mutator.fmt(position))
        return result
