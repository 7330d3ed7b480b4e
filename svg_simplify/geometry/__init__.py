"""Geometry primitives: transforms, lengths, paths and shape lowering."""

from svg_simplify.geometry.path import (
    ArcTo,
    ClosePath,
    CubicTo,
    LineTo,
    MoveTo,
    PathData,
    PathSampler,
    PathSegment,
)
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform, parse_transform
from svg_simplify.geometry.units import Axis, Length, UnitContext, parse_length

__all__ = [
    "ArcTo",
    "Axis",
    "ClosePath",
    "CubicTo",
    "Length",
    "LineTo",
    "MoveTo",
    "PathData",
    "PathSampler",
    "PathSegment",
    "Rect",
    "Transform",
    "UnitContext",
    "parse_length",
    "parse_transform",
]
