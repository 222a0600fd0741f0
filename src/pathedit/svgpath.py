"""Conversion between SVG path strings and command lists"""

from __future__ import annotations

import re
from typing import Callable, ClassVar, List, Optional, Sequence

from pathedit.geom import Point
from pathedit.path import ClosePath, Command, CurveTo, LineTo, MoveTo


class SvgPathData:
    """
    Static methods to read and write the `d` attribute of SVG paths.

    Supported commands (command : number of values : command-character):
        MoveTo:       2: Mm
        LineTo:       2: Ll   1: Hh(x)   1: Vv(y)
        CubicBezier:  6: Cc
        ClosePath:    0: Zz
    Horizontal and vertical lines are expanded into LineTo commands.
    """

    # Command letters:
    SVG_CMDS: ClassVar[str] = "MmLlHhVvCcSsQqTtAaZz"
    SUPPORTED_CMDS: ClassVar[str] = "MmLlHhVvCcZz"
    # Definition of a number:
    SVG_ARGS: ClassVar[str] = r"[-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?"
    # Values consumed per repetition of a command:
    BATCH_SIZES: ClassVar[dict] = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "Z": 0}
    # Decimals written per coordinate, trailing zeros are stripped
    MAX_DECIMALS: ClassVar[int] = 10

    @staticmethod
    def parse(path_string: str) -> List[Command]:
        """
        Parse an SVG path string into absolute commands.

        Args:
            path_string (str): a SVG path string

        Returns:
            List[Command]: the parsed commands

        Raises:
            ValueError: On unsupported commands or a wrong number of arguments
        """
        stripped = path_string.strip()
        if stripped and stripped[0] not in SvgPathData.SVG_CMDS:
            raise ValueError(f"Path string must start with a command letter: {path_string!r}")
        org_commands = re.findall(f"[{SvgPathData.SVG_CMDS}][^{SvgPathData.SVG_CMDS}]*", stripped)

        commands: List[Command] = []
        current = Point(0.0, 0.0)
        subpath_start = current
        for chunk in org_commands:
            letter = chunk[0]
            if letter not in SvgPathData.SUPPORTED_CMDS:
                raise ValueError(f"Unsupported path command {letter!r}")
            relative = letter.islower()
            kind = letter.upper()
            args = [float(a) for a in re.findall(SvgPathData.SVG_ARGS, chunk[1:])]
            batch_size = SvgPathData.BATCH_SIZES[kind]

            if kind == "Z":
                if args:
                    raise ValueError(f"Command Z takes no arguments, got {len(args)}")
                commands.append(ClosePath())
                current = subpath_start
                continue
            if not args or len(args) % batch_size:
                raise ValueError(f"Command {letter} needs a multiple of {batch_size} arguments, got {len(args)}")

            for i in range(0, len(args), batch_size):
                values = args[i : i + batch_size]
                offset_x = current.x if relative else 0.0
                offset_y = current.y if relative else 0.0
                if kind == "H":
                    end = Point(values[0] + offset_x, current.y)
                    commands.append(LineTo(end))
                elif kind == "V":
                    end = Point(current.x, values[0] + offset_y)
                    commands.append(LineTo(end))
                elif kind == "C":
                    c1 = Point(values[0] + offset_x, values[1] + offset_y)
                    c2 = Point(values[2] + offset_x, values[3] + offset_y)
                    end = Point(values[4] + offset_x, values[5] + offset_y)
                    commands.append(CurveTo(c1, c2, end))
                else:
                    end = Point(values[0] + offset_x, values[1] + offset_y)
                    # Coordinate pairs following a MoveTo are implicit LineTos
                    if kind == "M" and i == 0:
                        commands.append(MoveTo(end))
                        subpath_start = end
                    else:
                        commands.append(LineTo(end))
                current = end
        return commands

    @staticmethod
    def format(commands: Sequence[Command], round_func: Optional[Callable[[float], float]] = None) -> str:
        """
        Serialize commands into an SVG path string with absolute coordinates.

        Args:
            commands: the commands to serialize
            round_func: optional function applied to every coordinate

        Returns:
            str: e.g. "M 0 0 L 10 0 Z"
        """
        parts: List[str] = []
        for command in commands:
            parts.append(command.cmd)
            for point in command.points:
                for value in (point.x, point.y):
                    value = round_func(value) if round_func else value
                    parts.append(SvgPathData.format_number(value))
        return " ".join(parts)

    @staticmethod
    def format_number(value: float) -> str:
        """
        Format a coordinate without exponent and without trailing zeros.

        Unlike "%g" this keeps all decimals of large values, e.g. 100000.25.
        """
        text = f"{float(value) + 0.0:.{SvgPathData.MAX_DECIMALS}f}".rstrip("0").rstrip(".")
        return "0" if text == "-0" else text
