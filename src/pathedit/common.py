"""Common types and enums of the path editing engine."""

from __future__ import annotations

from enum import Enum, auto
from typing import Literal

###############################################################################
# Command letters
###############################################################################

PathCmds = Literal["M", "L", "C", "Z"]
"""Command letters understood by the editor (absolute coordinates)."""


###############################################################################
# Enums
###############################################################################
class AlignmentType(Enum):
    """Relation between two Bezier handles that share an anchor."""

    INDEPENDENT = "independent"
    ALIGNED = "aligned"
    MIRRORED = "mirrored"


class AlignStrategy(Enum):
    """Target of a multi-point alignment."""

    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()
    TOP = auto()
    MIDDLE = auto()
    BOTTOM = auto()


class DistributeAxis(Enum):
    """Axis along which points get evenly distributed."""

    HORIZONTAL = auto()
    VERTICAL = auto()


###############################################################################
# Exceptions
###############################################################################
class PathEditError(Exception):
    """Base exception for path editing."""


class InvalidTargetError(PathEditError):
    """Raised when an element, command or point cannot be resolved."""
