"""Lengths, units and conversion to canonical units.

Canonical units are root user units. Physical units (in, cm, mm, pt, pc) are
DPI-relative: a declared value converts as

    value * px_per_unit * (dpi_render / dpi_units)

so ``1in`` is 96 canonical units at 96/96 and ``128`` at dpi_units=72.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from enum import Enum

from svg_simplify.exceptions import InvalidDimensionError

CSS_PX_PER_UNIT = {
    "px": 1.0,
    "in": 96.0,
    "cm": 96.0 / 2.54,
    "mm": 96.0 / 25.4,
    "pt": 4.0 / 3.0,
    "pc": 16.0,
}
PHYSICAL_UNITS = frozenset({"in", "cm", "mm", "pt", "pc"})

_LENGTH_RE = re.compile(
    r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(px|in|cm|mm|pt|pc|em|ex|%)?\s*$",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?\s*$")
_LIST_SPLIT_RE = re.compile(r"[\s,]+")


class Axis(Enum):
    """Which viewport dimension a percentage resolves against."""

    X = "x"
    Y = "y"
    DIAGONAL = "diagonal"


@dataclass(frozen=True)
class Length:
    value: float
    unit: str = ""

    @property
    def is_percent(self) -> bool:
        return self.unit == "%"


def parse_length(text: str) -> Length:
    """Parse ``"12.5mm"`` style lengths. Raises InvalidDimensionError."""
    match = _LENGTH_RE.match(text)
    if match is None:
        raise InvalidDimensionError(f"invalid length {text!r}")
    value = float(match.group(1))
    if not math.isfinite(value):
        raise InvalidDimensionError(f"invalid length {text!r}")
    unit = (match.group(2) or "").lower()
    return Length(value, "" if unit == "px" else unit)


def parse_length_list(text: str) -> list[Length]:
    parts = [p for p in _LIST_SPLIT_RE.split(text.strip()) if p]
    return [parse_length(p) for p in parts]


def parse_number(text: str) -> float:
    if _NUMBER_RE.match(text) is None:
        raise InvalidDimensionError(f"invalid number {text!r}")
    value = float(text)
    if not math.isfinite(value):
        raise InvalidDimensionError(f"invalid number {text!r}")
    return value


def parse_number_list(text: str) -> list[float]:
    """Parse a list of numbers from an SVG attribute (space/comma separated)."""
    return [parse_number(part) for part in _LIST_SPLIT_RE.split(text.strip()) if part]


@dataclass(frozen=True)
class UnitContext:
    """Everything needed to turn a declared length into user units.

    Attributes:
        dpi_render: Output raster resolution.
        dpi_units: Resolution assumed for physical units in the source.
        font_size: Computed font size of the current element (for em/ex).
        viewport_width: Width of the nearest viewport, in user units.
        viewport_height: Height of the nearest viewport, in user units.
    """

    dpi_render: float = 96.0
    dpi_units: float = 96.0
    font_size: float = 16.0
    viewport_width: float = 100.0
    viewport_height: float = 100.0

    @property
    def dpi_scale(self) -> float:
        return self.dpi_render / self.dpi_units

    def with_font_size(self, font_size: float) -> UnitContext:
        return replace(self, font_size=font_size)

    def with_viewport(self, width: float, height: float) -> UnitContext:
        return replace(self, viewport_width=width, viewport_height=height)

    def px_per_unit(self, unit: str) -> float:
        """Canonical units per one declared unit (physical and px only)."""
        factor = CSS_PX_PER_UNIT[unit or "px"]
        if unit in PHYSICAL_UNITS:
            factor *= self.dpi_scale
        return factor

    def to_user(self, length: Length, axis: Axis = Axis.DIAGONAL) -> float:
        unit = length.unit
        if unit in ("", "px") or unit in PHYSICAL_UNITS:
            return length.value * self.px_per_unit(unit)
        if unit == "em":
            return length.value * self.font_size
        if unit == "ex":
            return length.value * self.font_size / 2.0
        if unit == "%":
            return length.value / 100.0 * self._reference(axis)
        raise InvalidDimensionError(f"unknown unit {unit!r}")

    def _reference(self, axis: Axis) -> float:
        if axis is Axis.X:
            return self.viewport_width
        if axis is Axis.Y:
            return self.viewport_height
        return math.sqrt((self.viewport_width**2 + self.viewport_height**2) / 2.0)

    def length(self, text: str | None, axis: Axis, default: float = 0.0) -> float:
        """Parse and convert ``text``; ``None`` yields ``default``."""
        if text is None:
            return default
        return self.to_user(parse_length(text), axis)

    def from_canonical(self, value: float, unit: str) -> float:
        """Inverse of ``to_user`` for absolute units (used for serialization)."""
        return value / self.px_per_unit(unit)
