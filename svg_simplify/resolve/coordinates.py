"""Viewports, ``viewBox`` and ``preserveAspectRatio``.

A viewport maps the coordinate system of its content (the viewBox, when
present) onto a rectangle of its parent's user space. The transform it
contributes composes with the ``transform`` attribute chain to give every
node its absolute matrix.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from svg_simplify.diagnostics import DiagnosticLog
from svg_simplify.exceptions import InvalidDimensionError, InvalidValueError
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform
from svg_simplify.geometry.units import Axis, UnitContext, parse_length, parse_number_list
from svg_simplify.svg.nodes import Node

DEFAULT_ROOT_SIZE = 100.0

T = TypeVar("T")

_ALIGNS = (
    "none",
    "xMinYMin",
    "xMidYMin",
    "xMaxYMin",
    "xMinYMid",
    "xMidYMid",
    "xMaxYMid",
    "xMinYMax",
    "xMidYMax",
    "xMaxYMax",
)


@dataclass(frozen=True)
class AspectRatio:
    align: str = "xMidYMid"
    slice: bool = False


@dataclass(frozen=True)
class Viewport:
    """Resolved viewport of an ``<svg>`` or ``<symbol>``.

    Attributes:
        rect: Viewport rectangle in the parent's user space.
        view_box: The declared viewBox, or None.
        transform: Maps content coordinates into the parent's user space.
        degenerate: The viewBox has zero area; nothing inside renders.
    """

    rect: Rect
    view_box: Rect | None
    transform: Transform
    degenerate: bool = False

    @property
    def content_size(self) -> tuple[float, float]:
        """Size used for percentages inside this viewport."""
        if self.view_box is not None:
            return (self.view_box.width, self.view_box.height)
        return (self.rect.width, self.rect.height)

    def content_units(self, units: UnitContext) -> UnitContext:
        width, height = self.content_size
        return units.with_viewport(width, height)


def parse_view_box(value: str | None) -> Rect | None:
    """Parse ``viewBox``. Negative sizes are invalid; zero sizes are kept."""
    if value is None:
        return None
    numbers = parse_number_list(value)
    if len(numbers) != 4:
        raise InvalidValueError(f"viewBox needs four numbers, got {value!r}")
    x, y, width, height = numbers
    if width < 0 or height < 0:
        raise InvalidValueError(f"viewBox has a negative size: {value!r}")
    return Rect(x, y, width, height)


def parse_aspect_ratio(value: str | None) -> AspectRatio:
    if value is None:
        return AspectRatio()
    parts = value.split()
    if parts and parts[0] == "defer":
        parts = parts[1:]
    if not parts or parts[0] not in _ALIGNS or len(parts) > 2:
        raise InvalidValueError(f"invalid preserveAspectRatio {value!r}")
    if len(parts) == 2 and parts[1] not in ("meet", "slice"):
        raise InvalidValueError(f"invalid preserveAspectRatio {value!r}")
    return AspectRatio(parts[0], len(parts) == 2 and parts[1] == "slice")


def view_box_transform(view_box: Rect, aspect: AspectRatio, width: float, height: float) -> Transform:
    """Transform mapping ``view_box`` onto a ``width`` x ``height`` viewport at the origin."""
    sx = width / view_box.width
    sy = height / view_box.height
    if aspect.align == "none":
        return Transform(sx, 0.0, 0.0, sy, -view_box.x * sx, -view_box.y * sy)

    scale = max(sx, sy) if aspect.slice else min(sx, sy)
    content_w = view_box.width * scale
    content_h = view_box.height * scale
    x_align, y_align = aspect.align[1:4], aspect.align[5:8]
    tx = -view_box.x * scale
    ty = -view_box.y * scale
    if x_align == "Mid":
        tx += (width - content_w) / 2.0
    elif x_align == "Max":
        tx += width - content_w
    if y_align == "Mid":
        ty += (height - content_h) / 2.0
    elif y_align == "Max":
        ty += height - content_h
    return Transform(scale, 0.0, 0.0, scale, tx, ty)


def _viewport(
    rect: Rect, view_box: Rect | None, aspect: AspectRatio
) -> Viewport:
    if view_box is not None and (view_box.width == 0 or view_box.height == 0):
        return Viewport(rect, view_box, Transform.translate(rect.x, rect.y), degenerate=True)
    transform = Transform.translate(rect.x, rect.y)
    if view_box is not None and not rect.is_empty():
        transform = transform @ view_box_transform(view_box, aspect, rect.width, rect.height)
    return Viewport(rect, view_box, transform, degenerate=rect.is_empty())


def _lenient(
    parse: Callable[[str | None], T],
    value: str | None,
    fallback: T,
    node: Node,
    diagnostics: DiagnosticLog | None,
) -> T:
    """Parse ``value``; a malformed one is recorded and replaced by ``fallback``.

    Without a diagnostics log the error propagates.
    """
    try:
        return parse(value)
    except InvalidValueError as e:
        if diagnostics is None:
            raise
        diagnostics.record(e, node.node_id)
        return fallback


def root_viewport(
    node: Node, units: UnitContext, diagnostics: DiagnosticLog | None = None
) -> Viewport:
    """Resolve the outermost ``<svg>``.

    ``width``/``height`` resolve against the viewBox size when they are
    percentages or missing, and default to 100 when there is no viewBox.
    Malformed attributes fall back to those defaults.
    """
    view_box = _lenient(parse_view_box, node.get("viewBox"), None, node, diagnostics)
    aspect = _lenient(
        parse_aspect_ratio, node.get("preserveAspectRatio"), AspectRatio(), node, diagnostics
    )
    ref_w = view_box.width if view_box is not None else DEFAULT_ROOT_SIZE
    ref_h = view_box.height if view_box is not None else DEFAULT_ROOT_SIZE
    width = _lenient(
        lambda value: _root_dimension(value, ref_w, units, Axis.X),
        node.get("width"),
        ref_w,
        node,
        diagnostics,
    )
    height = _lenient(
        lambda value: _root_dimension(value, ref_h, units, Axis.Y),
        node.get("height"),
        ref_h,
        node,
        diagnostics,
    )
    return _viewport(Rect(0.0, 0.0, width, height), view_box, aspect)


def _root_dimension(value: str | None, reference: float, units: UnitContext, axis: Axis) -> float:
    if value is None or value.strip() == "auto":
        return reference
    length = parse_length(value)
    if length.is_percent:
        size = reference * length.value / 100.0
    else:
        size = units.to_user(length, axis)
    if size < 0:
        raise InvalidDimensionError(f"root size must not be negative, got {value!r}")
    return size


def _viewport_dimension(value: str | None, units: UnitContext, axis: Axis) -> float:
    if value is None or value.strip() == "auto":
        value = "100%"
    size = units.length(value, axis)
    if size < 0:
        raise InvalidDimensionError(f"viewport size must not be negative, got {value!r}")
    return size


def nested_viewport(
    node: Node,
    units: UnitContext,
    width_override: str | None = None,
    height_override: str | None = None,
    diagnostics: DiagnosticLog | None = None,
) -> Viewport:
    """Resolve a nested ``<svg>``, or a ``<symbol>`` instantiated by ``use``.

    ``units`` describes the parent viewport. The ``use`` element's
    ``width``/``height`` take precedence over the element's own. Malformed
    sizes fall back to ``100%``, positions to 0.
    """
    view_box = _lenient(parse_view_box, node.get("viewBox"), None, node, diagnostics)
    aspect = _lenient(
        parse_aspect_ratio, node.get("preserveAspectRatio"), AspectRatio(), node, diagnostics
    )
    width_attr = width_override if width_override is not None else node.get("width")
    height_attr = height_override if height_override is not None else node.get("height")
    x = _lenient(lambda value: units.length(value, Axis.X), node.get("x"), 0.0, node, diagnostics)
    y = _lenient(lambda value: units.length(value, Axis.Y), node.get("y"), 0.0, node, diagnostics)
    width = _lenient(
        lambda value: _viewport_dimension(value, units, Axis.X),
        width_attr,
        units.viewport_width,
        node,
        diagnostics,
    )
    height = _lenient(
        lambda value: _viewport_dimension(value, units, Axis.Y),
        height_attr,
        units.viewport_height,
        node,
        diagnostics,
    )
    return _viewport(Rect(x, y, width, height), view_box, aspect)
