"""Settings of the path editing engine.

All settings are immutable value objects. Use `dataclasses.replace` to derive
modified copies, and `to_dict`/`from_dict` to move them across a
configuration boundary.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Type, TypeVar

_S = TypeVar("_S", bound="_SettingsMixin")


class _SettingsMixin:
    """Shared (de)serialization of settings dataclasses."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls: Type[_S], data: Dict[str, Any]) -> _S:
        """Create settings from a dictionary, ignoring unknown keys.

        Missing keys fall back to the field defaults.
        """
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in data.items() if k in known})


def _require_positive(name: str, value: float, allow_zero: bool = False) -> None:
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be {'non-negative' if allow_zero else 'positive'}, got {value}")


###############################################################################
# EditorSettings
###############################################################################
@dataclass(frozen=True)
class EditorSettings(_SettingsMixin):
    """General editing settings.

    Attributes:
        precision: Number of decimals written coordinates are rounded to
        anchor_tolerance: Max distance for two handle anchors to count as shared
        angle_tolerance_deg: Max deviation from 180 degrees for opposite handles
        magnitude_tolerance: Relative tolerance for equal handle lengths
        delete_debounce_ms: Minimum time between two delete invocations
        cut_offset: Offset of the new MoveTo created when cutting a subpath
        reselect_tolerance: Coordinate tolerance used to reselect after delete
    """

    precision: int = 2
    anchor_tolerance: float = 0.1
    angle_tolerance_deg: float = 2.0
    magnitude_tolerance: float = 0.01
    delete_debounce_ms: float = 200.0
    cut_offset: float = 5.0
    reselect_tolerance: float = 0.001

    def __post_init__(self):
        if self.precision < 0:
            raise ValueError(f"precision must be non-negative, got {self.precision}")
        _require_positive("anchor_tolerance", self.anchor_tolerance)
        _require_positive("angle_tolerance_deg", self.angle_tolerance_deg, allow_zero=True)
        _require_positive("magnitude_tolerance", self.magnitude_tolerance, allow_zero=True)
        _require_positive("delete_debounce_ms", self.delete_debounce_ms, allow_zero=True)
        _require_positive("reselect_tolerance", self.reselect_tolerance)


###############################################################################
# SmoothBrushSettings
###############################################################################
@dataclass(frozen=True)
class SmoothBrushSettings(_SettingsMixin):
    """Settings of the smoothing brush."""

    radius: float = 18.0
    strength: float = 0.35
    simplify_points: bool = False
    simplification_tolerance: float = 0.3
    min_distance: float = 0.5

    def __post_init__(self):
        _require_positive("radius", self.radius)
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError(f"strength must be within [0, 1], got {self.strength}")
        _require_positive("simplification_tolerance", self.simplification_tolerance, allow_zero=True)
        _require_positive("min_distance", self.min_distance, allow_zero=True)


@dataclass(frozen=True)
class PathSimplificationSettings(_SettingsMixin):
    """Settings of the delegated path simplification."""

    tolerance: float = 1.0

    def __post_init__(self):
        _require_positive("tolerance", self.tolerance, allow_zero=True)


@dataclass(frozen=True)
class PathRoundingSettings(_SettingsMixin):
    """Settings of the delegated corner rounding."""

    radius: float = 5.0

    def __post_init__(self):
        _require_positive("radius", self.radius)
