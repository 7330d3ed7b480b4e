"""Lowering of SVG shape elements into ``PathData``.

Basic shapes have closed-form outlines; rounded rect corners, circles and
ellipses are built from arcs, so they follow the same arc policy as arcs in
path data.
"""

from __future__ import annotations

import logging

from svg.path import Arc, Close, CubicBezier, Line, Move, QuadraticBezier, parse_path

from svg_simplify.exceptions import InvalidDimensionError, InvalidValueError
from svg_simplify.geometry.path import PathData
from svg_simplify.geometry.units import Axis, UnitContext, parse_number_list
from svg_simplify.svg.nodes import ElementKind, Node

logger = logging.getLogger(__name__)


def parse_path_data(d: str, arc_preservation: bool = False, tolerance: float = 0.1) -> PathData:
    """Parse a ``d`` attribute into absolute canonical segments.

    Relative and shorthand commands are resolved by svg.path; quadratic
    curves become cubics and arcs follow ``arc_preservation``.

    Raises:
        InvalidValueError: The path data is malformed.
    """
    try:
        parsed = parse_path(d)
    # svg.path asserts on arc flags other than 0 and 1.
    except (ValueError, IndexError, AssertionError) as e:
        raise InvalidValueError(f"invalid path data: {e}") from e

    path = PathData()
    for segment in parsed:
        if isinstance(segment, Move):
            path.push_move_to(segment.start.real, segment.start.imag)
        elif isinstance(segment, Close):
            path.push_close_path()
        elif isinstance(segment, Line):
            path.push_line_to(segment.end.real, segment.end.imag)
        elif isinstance(segment, CubicBezier):
            path.push_cubic_to(
                segment.control1.real,
                segment.control1.imag,
                segment.control2.real,
                segment.control2.imag,
                segment.end.real,
                segment.end.imag,
            )
        elif isinstance(segment, QuadraticBezier):
            path.push_quad_to(
                segment.control.real, segment.control.imag, segment.end.real, segment.end.imag
            )
        elif isinstance(segment, Arc):
            path.push_arc_to(
                segment.radius.real,
                segment.radius.imag,
                segment.rotation,
                bool(segment.arc),
                bool(segment.sweep),
                segment.end.real,
                segment.end.imag,
                preserve=arc_preservation,
                tolerance=tolerance,
            )
    return path


def _positive_size(node: Node, name: str, units: UnitContext, axis: Axis) -> float:
    value = units.length(node.get(name), axis, 0.0)
    if value < 0:
        raise InvalidDimensionError(f"<{node.tag}> has negative {name}", node.node_id)
    return value


def _rect_path(node: Node, units: UnitContext, arcs: bool, tolerance: float) -> PathData | None:
    x = units.length(node.get("x"), Axis.X)
    y = units.length(node.get("y"), Axis.Y)
    width = _positive_size(node, "width", units, Axis.X)
    height = _positive_size(node, "height", units, Axis.Y)
    if width == 0 or height == 0:
        return None

    rx_attr, ry_attr = node.get("rx"), node.get("ry")
    if rx_attr in (None, "auto") and ry_attr in (None, "auto"):
        rx = ry = 0.0
    elif rx_attr in (None, "auto"):
        rx = ry = units.length(ry_attr, Axis.Y)
    elif ry_attr in (None, "auto"):
        rx = ry = units.length(rx_attr, Axis.X)
    else:
        rx = units.length(rx_attr, Axis.X)
        ry = units.length(ry_attr, Axis.Y)
    rx = min(max(rx, 0.0), width / 2.0)
    ry = min(max(ry, 0.0), height / 2.0)

    path = PathData()
    if rx == 0 or ry == 0:
        path.push_move_to(x, y)
        path.push_line_to(x + width, y)
        path.push_line_to(x + width, y + height)
        path.push_line_to(x, y + height)
        path.push_close_path()
        return path

    def corner(ex: float, ey: float) -> None:
        path.push_arc_to(rx, ry, 0.0, False, True, ex, ey, preserve=arcs, tolerance=tolerance)

    right, bottom = x + width, y + height
    path.push_move_to(x + rx, y)
    path.push_line_to(right - rx, y)
    corner(right, y + ry)
    path.push_line_to(right, bottom - ry)
    corner(right - rx, bottom)
    path.push_line_to(x + rx, bottom)
    corner(x, bottom - ry)
    path.push_line_to(x, y + ry)
    corner(x + rx, y)
    path.push_close_path()
    return path


def _ellipse_path(
    cx: float, cy: float, rx: float, ry: float, arcs: bool, tolerance: float
) -> PathData:
    path = PathData()
    path.push_move_to(cx + rx, cy)
    for ex, ey in ((cx, cy + ry), (cx - rx, cy), (cx, cy - ry), (cx + rx, cy)):
        path.push_arc_to(rx, ry, 0.0, False, True, ex, ey, preserve=arcs, tolerance=tolerance)
    path.push_close_path()
    return path


def _points_path(node: Node, close: bool) -> PathData | None:
    try:
        numbers = parse_number_list(node.get("points", ""))
    except InvalidValueError as e:
        raise InvalidValueError(f"<{node.tag}> has invalid points: {e.message}", node.node_id) from e
    # An odd trailing coordinate is ignored.
    coords = list(zip(numbers[0::2], numbers[1::2]))
    if len(coords) < 2:
        return None
    path = PathData()
    path.push_move_to(*coords[0])
    for x, y in coords[1:]:
        path.push_line_to(x, y)
    if close:
        path.push_close_path()
    return path


def lower_shape(
    node: Node,
    units: UnitContext,
    arc_preservation: bool = False,
    tolerance: float = 0.1,
) -> PathData | None:
    """Convert a shape element into a path in its local user space.

    Returns None when the shape does not render (zero size, too few points,
    empty path data).

    Raises:
        InvalidValueError: Malformed attributes; the element is not rendered.
    """
    kind = node.kind
    if kind is ElementKind.RECT:
        return _rect_path(node, units, arc_preservation, tolerance)

    if kind is ElementKind.CIRCLE:
        r = _positive_size(node, "r", units, Axis.DIAGONAL)
        if r == 0:
            return None
        cx = units.length(node.get("cx"), Axis.X)
        cy = units.length(node.get("cy"), Axis.Y)
        return _ellipse_path(cx, cy, r, r, arc_preservation, tolerance)

    if kind is ElementKind.ELLIPSE:
        rx_attr, ry_attr = node.get("rx", "auto"), node.get("ry", "auto")
        if rx_attr == "auto":
            rx_attr = ry_attr
        if ry_attr == "auto":
            ry_attr = rx_attr
        if rx_attr == "auto":
            return None
        rx = units.length(rx_attr, Axis.X)
        ry = units.length(ry_attr, Axis.Y)
        if rx < 0 or ry < 0:
            raise InvalidDimensionError(f"<{node.tag}> has a negative radius", node.node_id)
        if rx == 0 or ry == 0:
            return None
        cx = units.length(node.get("cx"), Axis.X)
        cy = units.length(node.get("cy"), Axis.Y)
        return _ellipse_path(cx, cy, rx, ry, arc_preservation, tolerance)

    if kind is ElementKind.LINE:
        path = PathData()
        path.push_move_to(units.length(node.get("x1"), Axis.X), units.length(node.get("y1"), Axis.Y))
        path.push_line_to(units.length(node.get("x2"), Axis.X), units.length(node.get("y2"), Axis.Y))
        return path

    if kind is ElementKind.POLYLINE:
        return _points_path(node, close=False)

    if kind is ElementKind.POLYGON:
        return _points_path(node, close=True)

    if kind is ElementKind.PATH:
        d = node.get("d", "")
        if not d.strip():
            return None
        try:
            path = parse_path_data(d, arc_preservation, tolerance)
        except InvalidValueError as e:
            raise InvalidValueError(e.message, node.node_id) from e
        return path if len(path) >= 2 else None

    raise InvalidValueError(f"<{node.tag}> is not a shape", node.node_id)
