"""SVG input parsing.

The simplified output writer lives in ``svg_simplify.svg.writer``; it is not
re-exported here because it depends on the output tree.
"""

from svg_simplify.svg.nodes import Document, ElementKind, Node
from svg_simplify.svg.parser import parse_svg, parse_svg_string

__all__ = ["Document", "ElementKind", "Node", "parse_svg", "parse_svg_string"]
