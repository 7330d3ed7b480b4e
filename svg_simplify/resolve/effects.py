"""Clip path, mask and filter resolution.

Effects are resolved per referencing element: regions declared in
``objectBoundingBox`` units are computed from that element's bounding box,
and content is converted in the element's user space. Each resolved effect
is self-contained; nothing refers back to the source document.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from svg_simplify.exceptions import (
    CyclicReferenceError,
    InvalidValueError,
    UnsupportedElementError,
)
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import parse_transform
from svg_simplify.geometry.units import Axis, UnitContext, parse_number, parse_number_list
from svg_simplify.resolve.paint import bbox_fraction, user_length
from svg_simplify.style.properties import BLEND_MODES, ResolvedStyle
from svg_simplify.svg.nodes import ElementKind, Node
from svg_simplify.tree import (
    Blend,
    ClipPath,
    ColorMatrix,
    Composite,
    DropShadow,
    Effect,
    Filter,
    FilterPrimitive,
    Flood,
    GaussianBlur,
    Mask,
    Merge,
    Offset,
    PassThrough,
)

if TYPE_CHECKING:
    from svg_simplify.pipeline import Converter, ResolveContext

logger = logging.getLogger(__name__)

SOURCE_INPUTS = ("SourceGraphic", "SourceAlpha")
COMPOSITE_OPERATORS = ("over", "in", "out", "atop", "xor", "arithmetic")
COLOR_MATRIX_TYPES = ("matrix", "saturate", "hueRotate", "luminanceToAlpha")

_DEFAULT_REGION = ("-10%", "-10%", "120%", "120%")


def _units(node: Node, name: str, default: str) -> str:
    value = node.get(name)
    if value in ("userSpaceOnUse", "objectBoundingBox"):
        return value
    return default


def _region(
    x: str | None,
    y: str | None,
    width: str | None,
    height: str | None,
    bbox_units: bool,
    bbox: Rect | None,
    units: UnitContext,
) -> Rect:
    """Resolve an x/y/width/height region, defaulting to -10%/120%."""
    dx, dy, dw, dh = _DEFAULT_REGION
    if bbox_units:
        return Rect(
            bbox.x + bbox_fraction(x or dx, 0.0) * bbox.width,
            bbox.y + bbox_fraction(y or dy, 0.0) * bbox.height,
            bbox_fraction(width or dw, 0.0) * bbox.width,
            bbox_fraction(height or dh, 0.0) * bbox.height,
        )
    return Rect(
        user_length(x, dx, units, Axis.X),
        user_length(y, dy, units, Axis.Y),
        user_length(width, dw, units, Axis.X),
        user_length(height, dh, units, Axis.Y),
    )


def _require_bbox(bbox: Rect | None, node: Node) -> Rect:
    if bbox is None or bbox.width <= 0 or bbox.height <= 0:
        raise InvalidValueError(
            f"<{node.tag}> uses objectBoundingBox units on an element without area",
            node.node_id,
        )
    return bbox


class EffectResolver:
    """Build the effect chain of an element."""

    def __init__(self, converter: Converter) -> None:
        self.converter = converter
        self.refs = converter.refs
        self.styles = converter.styles
        self.diagnostics = converter.diagnostics

    def resolve(
        self, node: Node, style: ResolvedStyle, bbox: Rect | None, ctx: ResolveContext
    ) -> list[Effect]:
        """Resolve clip-path, mask and filter in declaration order.

        ``ctx.transform`` is the absolute transform of the element's user
        space. Failed references are recorded and contribute no effect.
        """
        effects: list[Effect] = []
        for name in style.effect_order:
            if name == "clip-path" and style.clip_path:
                clip = self._guarded(self.resolve_clip_path, node, style.clip_path, bbox, ctx)
                if clip is not None:
                    effects.append(clip)
            elif name == "mask" and style.mask:
                mask = self._guarded(self.resolve_mask, node, style.mask, bbox, ctx)
                if mask is not None:
                    effects.append(mask)
            elif name == "filter":
                for filter_id in style.filter:
                    result = self._guarded(self.resolve_filter, node, filter_id, bbox, ctx)
                    if result is not None:
                        effects.append(result)
        return effects

    def _guarded(self, method, node: Node, reference: str, bbox, ctx):
        try:
            return method(node, reference, bbox, ctx)
        except CyclicReferenceError as e:
            self.diagnostics.record(e, node.node_id)
        except InvalidValueError as e:
            self.diagnostics.record(e, e.node_id or node.node_id)
        return None

    def resolve_clip_path(
        self, node: Node, reference: str, bbox: Rect | None, ctx: ResolveContext
    ) -> ClipPath | None:
        clip_node = self.refs.lookup(node, reference, {ElementKind.CLIP_PATH})
        if clip_node is None:
            return None
        path = self.refs.enter(ctx.path, clip_node)
        transform = parse_transform(clip_node.get("transform"))
        if _units(clip_node, "clipPathUnits", "userSpaceOnUse") == "objectBoundingBox":
            transform = _require_bbox(bbox, clip_node).bbox_transform() @ transform
        inner = ctx.with_path(path).with_transform(ctx.transform @ transform)

        clip = ClipPath(children=self.converter.convert_clip_content(clip_node, inner))
        clip_style = self.styles.document_style(clip_node, ctx.units)
        if clip_style.clip_path:
            clip.clip_path = self.resolve_clip_path(
                clip_node, clip_style.clip_path, bbox, ctx.with_path(path)
            )
        return clip

    def resolve_mask(
        self, node: Node, reference: str, bbox: Rect | None, ctx: ResolveContext
    ) -> Mask | None:
        mask_node = self.refs.lookup(node, reference, {ElementKind.MASK})
        if mask_node is None:
            return None
        path = self.refs.enter(ctx.path, mask_node)
        bbox_units = _units(mask_node, "maskUnits", "objectBoundingBox") == "objectBoundingBox"
        content_bbox = _units(mask_node, "maskContentUnits", "userSpaceOnUse") == "objectBoundingBox"
        if bbox_units or content_bbox:
            bbox = _require_bbox(bbox, mask_node)
        rect = _region(
            mask_node.get("x"),
            mask_node.get("y"),
            mask_node.get("width"),
            mask_node.get("height"),
            bbox_units,
            bbox,
            ctx.units,
        )
        content_ts = ctx.transform
        if content_bbox:
            content_ts = content_ts @ bbox.bbox_transform()
        kind = "alpha" if mask_node.get("mask-type") == "alpha" else "luminance"

        mask = Mask(rect=rect, kind=kind)
        if rect.width > 0 and rect.height > 0:
            mask.children = self.converter.convert_definition_content(
                mask_node, ctx.with_path(path).with_transform(content_ts)
            )
        mask_style = self.styles.document_style(mask_node, ctx.units)
        if mask_style.mask:
            mask.mask = self.resolve_mask(mask_node, mask_style.mask, bbox, ctx.with_path(path))
        return mask

    def resolve_filter(
        self, node: Node, reference: str, bbox: Rect | None, ctx: ResolveContext
    ) -> Filter | None:
        filter_node = self.refs.lookup(node, reference, {ElementKind.FILTER})
        if filter_node is None:
            return None
        self.refs.enter(ctx.path, filter_node)
        chain = self.refs.href_chain(filter_node)
        bbox_units = _units(filter_node, "filterUnits", "objectBoundingBox") == "objectBoundingBox"
        primitive_bbox = (
            _units(filter_node, "primitiveUnits", "userSpaceOnUse") == "objectBoundingBox"
        )
        if bbox_units or primitive_bbox:
            bbox = _require_bbox(bbox, filter_node)

        def attr(name: str) -> str | None:
            for item in chain:
                value = item.get(name)
                if value is not None:
                    return value
            return None

        region = _region(
            attr("x"), attr("y"), attr("width"), attr("height"), bbox_units, bbox, ctx.units
        )
        result = Filter(rect=region)
        if region.width <= 0 or region.height <= 0:
            return result

        source = next(
            (item for item in chain if any(c.kind is ElementKind.FILTER_PRIMITIVE for c in item.children)),
            None,
        )
        if source is None:
            return result
        builder = _PrimitiveBuilder(self, source, region, bbox if primitive_bbox else None, ctx.units)
        result.primitives = builder.build()
        return result


class _PrimitiveBuilder:
    """Resolve the primitives of one filter element."""

    def __init__(
        self,
        resolver: EffectResolver,
        filter_node: Node,
        region: Rect,
        bbox: Rect | None,
        units: UnitContext,
    ) -> None:
        self.resolver = resolver
        self.filter_node = filter_node
        self.region = region
        self.bbox = bbox
        self.units = units
        self.results: list[str] = []
        self.interpolation = filter_node.get("color-interpolation-filters", "linearRGB")

    def build(self) -> list[FilterPrimitive]:
        primitives = []
        for child in self.filter_node.children:
            if child.kind is not ElementKind.FILTER_PRIMITIVE:
                continue
            try:
                primitives.append(self.primitive(child))
            except InvalidValueError as e:
                self.resolver.diagnostics.record(e, child.node_id)
                primitives.append(self._pass_through(child))
        return primitives

    def _input(self, node: Node, name: str) -> str:
        value = (node.get(name) or "").strip()
        if value in SOURCE_INPUTS or value in self.results:
            return value
        # Unknown or missing inputs fall back to the previous result.
        return self.results[-1] if self.results else "SourceGraphic"

    def _result_name(self, node: Node) -> str:
        name = (node.get("result") or "").strip()
        if not name or name in SOURCE_INPUTS:
            name = f"result{len(self.results) + 1}"
        self.results.append(name)
        return name

    def _subregion(self, node: Node) -> Rect:
        r = self.region
        values = [node.get(name) for name in ("x", "y", "width", "height")]
        if self.bbox is not None:
            b = self.bbox
            x = b.x + bbox_fraction(values[0], 0.0) * b.width if values[0] else r.x
            y = b.y + bbox_fraction(values[1], 0.0) * b.height if values[1] else r.y
            w = bbox_fraction(values[2], 0.0) * b.width if values[2] else r.width
            h = bbox_fraction(values[3], 0.0) * b.height if values[3] else r.height
        else:
            x = self.units.length(values[0], Axis.X) if values[0] else r.x
            y = self.units.length(values[1], Axis.Y) if values[1] else r.y
            w = self.units.length(values[2], Axis.X) if values[2] else r.width
            h = self.units.length(values[3], Axis.Y) if values[3] else r.height
        return Rect(x, y, w, h)

    def _scale(self) -> tuple[float, float]:
        """Factors applied to primitive lengths in objectBoundingBox units."""
        if self.bbox is None:
            return (1.0, 1.0)
        return (self.bbox.width, self.bbox.height)

    def _pair(self, node: Node, name: str, default: float) -> tuple[float, float]:
        text = node.get(name)
        if text is None:
            return (default, default)
        numbers = parse_number_list(text)
        if len(numbers) == 1:
            return (numbers[0], numbers[0])
        if len(numbers) == 2:
            return (numbers[0], numbers[1])
        raise InvalidValueError(f"{name} expects one or two numbers, got {text!r}", node.node_id)

    def _number(self, node: Node, name: str, default: float) -> float:
        text = node.get(name)
        return default if text is None else parse_number(text)

    def primitive(self, node: Node) -> FilterPrimitive:
        subregion = self._subregion(node)
        sx, sy = self._scale()
        tag = node.tag
        interpolation = node.get("color-interpolation-filters", self.interpolation)
        if interpolation not in ("sRGB", "linearRGB"):
            interpolation = self.interpolation

        if tag == "feGaussianBlur":
            dx, dy = self._pair(node, "stdDeviation", 0.0)
            if dx < 0 or dy < 0:
                raise InvalidValueError("negative stdDeviation", node.node_id)
            kind = GaussianBlur(self._input(node, "in"), dx * sx, dy * sy)
        elif tag == "feOffset":
            kind = Offset(
                self._input(node, "in"),
                self._number(node, "dx", 0.0) * sx,
                self._number(node, "dy", 0.0) * sy,
            )
        elif tag == "feFlood":
            style = self.resolver.styles.document_style(node, self.units)
            kind = Flood(style.flood_color, style.flood_opacity)
        elif tag == "feBlend":
            mode = node.get("mode", "normal")
            if mode not in BLEND_MODES:
                raise InvalidValueError(f"unknown blend mode {mode!r}", node.node_id)
            kind = Blend(self._input(node, "in"), self._input(node, "in2"), mode)
        elif tag == "feComposite":
            operator = node.get("operator", "over")
            if operator not in COMPOSITE_OPERATORS:
                raise InvalidValueError(f"unknown composite operator {operator!r}", node.node_id)
            kind = Composite(
                self._input(node, "in"),
                self._input(node, "in2"),
                operator,
                *(self._number(node, k, 0.0) for k in ("k1", "k2", "k3", "k4")),
            )
        elif tag == "feMerge":
            inputs = tuple(
                self._input(child, "in")
                for child in node.children
                if child.tag == "feMergeNode"
            )
            kind = Merge(inputs)
        elif tag == "feColorMatrix":
            kind = self._color_matrix(node)
        elif tag == "feDropShadow":
            style = self.resolver.styles.document_style(node, self.units)
            dx, dy = self._pair(node, "stdDeviation", 2.0)
            if dx < 0 or dy < 0:
                raise InvalidValueError("negative stdDeviation", node.node_id)
            kind = DropShadow(
                self._input(node, "in"),
                self._number(node, "dx", 2.0) * sx,
                self._number(node, "dy", 2.0) * sy,
                dx * sx,
                dy * sy,
                style.flood_color,
                style.flood_opacity,
            )
        else:
            return self._pass_through(node, subregion)

        return FilterPrimitive(subregion, self._result_name(node), kind, interpolation)

    def _color_matrix(self, node: Node) -> ColorMatrix:
        matrix_type = node.get("type", "matrix")
        if matrix_type not in COLOR_MATRIX_TYPES:
            raise InvalidValueError(f"unknown feColorMatrix type {matrix_type!r}", node.node_id)
        text = node.get("values")
        values = tuple(parse_number_list(text)) if text is not None else ()
        expected = {"matrix": 20, "saturate": 1, "hueRotate": 1, "luminanceToAlpha": 0}[matrix_type]
        if not values and matrix_type == "saturate":
            values = (1.0,)
        elif not values and matrix_type == "hueRotate":
            values = (0.0,)
        elif not values and matrix_type == "matrix":
            values = (1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0)
        if len(values) != expected:
            raise InvalidValueError(
                f"feColorMatrix type {matrix_type} expects {expected} values", node.node_id
            )
        return ColorMatrix(self._input(node, "in"), matrix_type, tuple(float(v) for v in values))

    def _pass_through(self, node: Node, subregion: Rect | None = None) -> FilterPrimitive:
        if node.tag not in (
            "feGaussianBlur",
            "feOffset",
            "feFlood",
            "feBlend",
            "feComposite",
            "feMerge",
            "feColorMatrix",
            "feDropShadow",
        ):
            self.resolver.diagnostics.record(
                UnsupportedElementError(f"<{node.tag}> is rendered as a pass-through"),
                node.node_id,
            )
        return FilterPrimitive(
            subregion if subregion is not None else self.region,
            self._result_name(node),
            PassThrough(self._input(node, "in"), node.tag),
            self.interpolation,
        )
