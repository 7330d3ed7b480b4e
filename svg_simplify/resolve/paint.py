"""Paint server resolution: colors, gradients and patterns.

Gradients and patterns are resolved into the user space of the painted
element; ``objectBoundingBox`` units are folded into the paint transform,
so the output only ever uses ``userSpaceOnUse``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from svg_simplify.exceptions import CyclicReferenceError, InvalidValueError
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform, parse_transform
from svg_simplify.geometry.units import Axis, UnitContext, parse_length
from svg_simplify.resolve.coordinates import parse_aspect_ratio, parse_view_box, view_box_transform
from svg_simplify.style.properties import ResolvedStyle
from svg_simplify.style.values import PaintKind, PaintSpec
from svg_simplify.svg.nodes import GRADIENT_KINDS, PAINT_SERVER_KINDS, ElementKind, Node
from svg_simplify.tree import (
    Fill,
    GroupNode,
    LinearGradient,
    Paint,
    Pattern,
    RadialGradient,
    Stop,
    Stroke,
)

if TYPE_CHECKING:
    from svg_simplify.pipeline import Converter, ResolveContext

logger = logging.getLogger(__name__)

SPREAD_METHODS = ("pad", "reflect", "repeat")


def _first_attr(chain: list[Node], name: str) -> str | None:
    for node in chain:
        value = node.get(name)
        if value is not None:
            return value
    return None


def _units_attr(chain: list[Node], name: str, default: str) -> str:
    value = _first_attr(chain, name)
    if value in ("userSpaceOnUse", "objectBoundingBox"):
        return value
    return default


def bbox_fraction(text: str | None, default: float) -> float:
    """Coordinate in objectBoundingBox units: a number or a percentage."""
    if text is None:
        return default
    length = parse_length(text)
    return length.value / 100.0 if length.is_percent else length.value


def user_length(text: str | None, default: str, units: UnitContext, axis: Axis) -> float:
    return units.to_user(parse_length(text if text is not None else default), axis)


class PaintResolver:
    """Turn ``fill``/``stroke`` declarations into self-contained paints."""

    def __init__(self, converter: Converter) -> None:
        self.converter = converter
        self.refs = converter.refs
        self.styles = converter.styles
        self.diagnostics = converter.diagnostics

    def fill(
        self, node: Node, style: ResolvedStyle, bbox: Rect | None, ctx: ResolveContext
    ) -> Fill | None:
        resolved = self.resolve(style.fill, node, style, bbox, ctx)
        if resolved is None:
            return None
        paint, alpha = resolved
        return Fill(paint, style.fill_opacity * alpha, style.fill_rule)

    def stroke(
        self, node: Node, style: ResolvedStyle, bbox: Rect | None, ctx: ResolveContext
    ) -> Stroke | None:
        if style.stroke_width <= 0:
            return None
        resolved = self.resolve(style.stroke, node, style, bbox, ctx)
        if resolved is None:
            return None
        paint, alpha = resolved
        return Stroke(
            paint,
            opacity=style.stroke_opacity * alpha,
            width=style.stroke_width,
            linecap=style.stroke_linecap,
            linejoin=style.stroke_linejoin,
            miterlimit=style.stroke_miterlimit,
            dasharray=style.stroke_dasharray,
            dashoffset=style.stroke_dashoffset,
        )

    def resolve(
        self,
        spec: PaintSpec,
        node: Node,
        style: ResolvedStyle,
        bbox: Rect | None,
        ctx: ResolveContext,
    ) -> tuple[Paint, float] | None:
        """Resolve one paint declaration.

        Returns the paint and an opacity factor (the alpha of a declared
        color), or None when nothing is painted.
        """
        if spec.kind is PaintKind.NONE:
            return None
        if spec.kind is PaintKind.CURRENT_COLOR:
            return (style.color, 1.0)
        if spec.kind is PaintKind.COLOR:
            return (spec.color, spec.alpha)

        server = self.refs.lookup(node, spec.url, PAINT_SERVER_KINDS)
        if server is None:
            return self._fallback(spec, node, style, bbox, ctx)
        try:
            path = self.refs.enter(ctx.path, server)
            if server.kind in GRADIENT_KINDS:
                return self.resolve_gradient(server, bbox, ctx.units)
            return self.resolve_pattern(server, bbox, ctx.with_path(path))
        except CyclicReferenceError as e:
            self.diagnostics.record(e, node.node_id)
        except InvalidValueError as e:
            self.diagnostics.record(e, server.node_id)
        return self._fallback(spec, node, style, bbox, ctx)

    def _fallback(self, spec, node, style, bbox, ctx) -> tuple[Paint, float] | None:
        if spec.fallback is None:
            return None
        return self.resolve(spec.fallback, node, style, bbox, ctx)

    def stops(self, chain: list[Node], units: UnitContext) -> tuple[Stop, ...]:
        """Stops of the first element in the chain that declares any."""
        for gradient in chain:
            stop_nodes = [child for child in gradient.children if child.kind is ElementKind.STOP]
            if stop_nodes:
                break
        else:
            return ()

        stops: list[Stop] = []
        previous = 0.0
        for stop_node in stop_nodes:
            try:
                offset = bbox_fraction(stop_node.get("offset"), 0.0)
            except InvalidValueError as e:
                self.diagnostics.record(e, stop_node.node_id)
                offset = 0.0
            # Offsets are clamped to [0, 1] and never decrease.
            offset = max(previous, min(1.0, max(0.0, offset)))
            previous = offset
            style = self.styles.document_style(stop_node, units)
            stops.append(Stop(offset, style.stop_color, style.stop_opacity))
        return tuple(stops)

    def resolve_gradient(
        self, gradient: Node, bbox: Rect | None, units: UnitContext
    ) -> tuple[Paint, float] | None:
        """Resolve a gradient with its ``href`` inheritance chain.

        Raises:
            CyclicReferenceError: The ``href`` chain loops.
            InvalidValueError: The gradient is degenerate or malformed.
        """
        chain = self.refs.href_chain(gradient)
        stops = self.stops(chain, units)
        if len(stops) < 2:
            raise InvalidValueError(
                f"gradient has {len(stops)} stop(s), at least two are required", gradient.node_id
            )

        spread = _first_attr(chain, "spreadMethod") or "pad"
        if spread not in SPREAD_METHODS:
            spread = "pad"
        gradient_units = _units_attr(chain, "gradientUnits", "objectBoundingBox")
        transform = parse_transform(_first_attr(chain, "gradientTransform"))

        bbox_units = gradient_units == "objectBoundingBox"
        if bbox_units:
            if bbox is None or bbox.width <= 0 or bbox.height <= 0:
                raise InvalidValueError(
                    "objectBoundingBox gradient on an element without area", gradient.node_id
                )
            transform = bbox.bbox_transform() @ transform
        if not transform.is_invertible():
            raise InvalidValueError("gradientTransform is not invertible", gradient.node_id)

        def coord(name: str, default: str, axis: Axis) -> float:
            text = _first_attr(chain, name)
            if bbox_units:
                return bbox_fraction(text, bbox_fraction(default, 0.0))
            return user_length(text, default, units, axis)

        last = stops[-1]
        if gradient.kind is ElementKind.LINEAR_GRADIENT:
            x1 = coord("x1", "0%", Axis.X)
            y1 = coord("y1", "0%", Axis.Y)
            x2 = coord("x2", "100%", Axis.X)
            y2 = coord("y2", "0%", Axis.Y)
            if x1 == x2 and y1 == y2:
                return (last.color, last.opacity)
            return (LinearGradient(x1, y1, x2, y2, stops, spread, transform), 1.0)

        cx = coord("cx", "50%", Axis.X)
        cy = coord("cy", "50%", Axis.Y)
        r = coord("r", "50%", Axis.DIAGONAL)
        fx = coord("fx", _first_attr(chain, "cx") or "50%", Axis.X)
        fy = coord("fy", _first_attr(chain, "cy") or "50%", Axis.Y)
        fr = coord("fr", "0%", Axis.DIAGONAL)
        if r < 0 or fr < 0:
            raise InvalidValueError("negative gradient radius", gradient.node_id)
        if r == 0:
            return (last.color, last.opacity)
        return (RadialGradient(cx, cy, r, fx, fy, fr, stops, spread, transform), 1.0)

    def resolve_pattern(
        self, pattern: Node, bbox: Rect | None, ctx: ResolveContext
    ) -> tuple[Paint, float] | None:
        """Resolve a pattern; its content goes through the full pipeline.

        ``ctx.path`` already contains the pattern, so content referring back
        to it is reported as a cycle.
        """
        chain = self.refs.href_chain(pattern)
        pattern_units = _units_attr(chain, "patternUnits", "objectBoundingBox")
        content_units = _units_attr(chain, "patternContentUnits", "userSpaceOnUse")
        transform = parse_transform(_first_attr(chain, "patternTransform"))
        if not transform.is_invertible():
            raise InvalidValueError("patternTransform is not invertible", pattern.node_id)

        needs_bbox = pattern_units == "objectBoundingBox" or (
            content_units == "objectBoundingBox" and _first_attr(chain, "viewBox") is None
        )
        if needs_bbox and (bbox is None or bbox.width <= 0 or bbox.height <= 0):
            raise InvalidValueError(
                "objectBoundingBox pattern on an element without area", pattern.node_id
            )

        if pattern_units == "objectBoundingBox":
            rect = Rect(
                bbox.x + bbox_fraction(_first_attr(chain, "x"), 0.0) * bbox.width,
                bbox.y + bbox_fraction(_first_attr(chain, "y"), 0.0) * bbox.height,
                bbox_fraction(_first_attr(chain, "width"), 0.0) * bbox.width,
                bbox_fraction(_first_attr(chain, "height"), 0.0) * bbox.height,
            )
        else:
            rect = Rect(
                user_length(_first_attr(chain, "x"), "0", ctx.units, Axis.X),
                user_length(_first_attr(chain, "y"), "0", ctx.units, Axis.Y),
                user_length(_first_attr(chain, "width"), "0", ctx.units, Axis.X),
                user_length(_first_attr(chain, "height"), "0", ctx.units, Axis.Y),
            )
        if rect.width <= 0 or rect.height <= 0:
            return None

        view_box = parse_view_box(_first_attr(chain, "viewBox"))
        if view_box is not None:
            if view_box.width <= 0 or view_box.height <= 0:
                return None
            aspect = parse_aspect_ratio(_first_attr(chain, "preserveAspectRatio"))
            content_ts = view_box_transform(view_box, aspect, rect.width, rect.height)
        elif content_units == "objectBoundingBox":
            content_ts = Transform.scale(bbox.width, bbox.height)
        else:
            content_ts = Transform()

        content_node = next((node for node in chain if node.children), None)
        if content_node is None:
            return None
        content = GroupNode(transform=content_ts, abs_transform=content_ts)
        content.children = self.converter.convert_definition_content(
            content_node, ctx.with_transform(content_ts)
        )
        if not content.children:
            return None
        return (Pattern(rect, transform, content), 1.0)
