"""CSS property definitions and value parsing.

The cascade itself is in ``svg_simplify.style.cascade``.
"""

from svg_simplify.style.properties import PROPERTIES, ResolvedStyle
from svg_simplify.style.values import Color, PaintKind, PaintSpec, parse_color, parse_paint

__all__ = [
    "PROPERTIES",
    "Color",
    "PaintKind",
    "PaintSpec",
    "ResolvedStyle",
    "parse_color",
    "parse_paint",
]
