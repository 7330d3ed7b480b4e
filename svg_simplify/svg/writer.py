"""Serialize a simplified tree to namespace-tagged SVG.

The output is itself valid SVG, so it can be fed back into the pipeline:

- the root carries ``ssvg:version`` in the simplified-format namespace;
- ``width``/``height`` carry the output unit suffix and the ``viewBox`` has
  the same numbers, so one user unit is one output unit;
- every paint server and effect lives in ``<defs>`` under a generated id,
  in ``userSpaceOnUse`` units;
- effects of a group are written as attributes in application order.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from svg_simplify.config import Config
from svg_simplify.geometry.path import ArcTo, ClosePath, CubicTo, LineTo, MoveTo, PathData
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform
from svg_simplify.geometry.units import UnitContext
from svg_simplify.style.values import Color
from svg_simplify.svg.nodes import SVG_NS
from svg_simplify.tree import (
    Blend,
    ClipPath,
    ColorMatrix,
    Composite,
    DropShadow,
    Fill,
    Filter,
    FilterPrimitive,
    Flood,
    GaussianBlur,
    GroupNode,
    LinearGradient,
    Mask,
    Merge,
    Offset,
    Paint,
    PassThrough,
    PathNode,
    Pattern,
    RadialGradient,
    SimplifiedTree,
    Stroke,
    TextNode,
)
from svg_simplify.tree import Node as TreeNode

logger = logging.getLogger(__name__)

SSVG_PREFIX = "ssvg"
SSVG_NS = "urn:svg-simplify:1"
FORMAT_VERSION = "1"


def format_number(value: float, precision: int = 6) -> str:
    """Shortest fixed-point form of ``value`` with at most ``precision`` decimals."""
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def _tag(name: str) -> str:
    return f"{{{SVG_NS}}}{name}"


class SvgWriter:
    """Builds the output element tree for one simplified tree."""

    def __init__(self, config: Config, units: UnitContext | None = None) -> None:
        if units is None:
            dpi_units = config.dpi_units if isinstance(config.dpi_units, (int, float)) else 96.0
            units = UnitContext(dpi_render=config.dpi_render, dpi_units=dpi_units)
        self.precision = config.precision
        self.unit = config.output_unit
        self.scale = units.from_canonical(1.0, self.unit)
        self.defs: list[ET.Element] = []
        self._used_ids: set[str] = set()
        self._counters: dict[str, int] = {}

    def num(self, value: float) -> str:
        return format_number(value, self.precision)

    def new_id(self, prefix: str) -> str:
        """Generated definition id that clashes with no id kept from the input."""
        while True:
            count = self._counters.get(prefix, 0) + 1
            self._counters[prefix] = count
            candidate = f"{prefix}{count}"
            if candidate not in self._used_ids:
                self._used_ids.add(candidate)
                return candidate

    # Document

    def build(self, tree: SimplifiedTree) -> ET.Element:
        self._used_ids = {node.id for node in tree.iter() if node.id}
        width = self.num(tree.width * self.scale)
        height = self.num(tree.height * self.scale)
        root = ET.Element(
            _tag("svg"),
            {
                "width": f"{width}{self.unit}",
                "height": f"{height}{self.unit}",
                "viewBox": f"0 0 {width} {height}",
                f"{{{SSVG_NS}}}version": FORMAT_VERSION,
            },
        )
        if tree.width > 0 and tree.height > 0:
            to_output = Transform.scale(self.scale)
            for child in tree.root.children:
                root.append(self.node(child, to_output @ child.abs_transform))
        if self.defs:
            defs = ET.Element(_tag("defs"))
            defs.extend(self.defs)
            root.insert(0, defs)
        return root

    def node(self, node: TreeNode, transform: Transform) -> ET.Element:
        """Element for ``node`` placed with ``transform`` relative to its parent."""
        if isinstance(node, GroupNode):
            return self.group(node, transform)
        if isinstance(node, PathNode):
            element = ET.Element(_tag("path"))
            self._set_id(element, node.id)
            self._set_transform(element, transform)
            element.set("d", self.path_data(node.data))
            self._paint_attributes(element, node.fill, node.stroke)
            return element
        element = ET.Element(_tag("g"))
        self._set_id(element, node.id)
        self._set_transform(element, transform)
        self._text_runs(element, node)
        return element

    def group(self, group: GroupNode, transform: Transform) -> ET.Element:
        element = ET.Element(_tag("g"))
        self._set_id(element, group.id)
        self._set_transform(element, transform)
        if group.opacity < 1.0:
            element.set("opacity", self.num(group.opacity))
        if group.blend_mode != "normal":
            element.set("mix-blend-mode", group.blend_mode)
        if group.isolate:
            element.set("isolation", "isolate")

        filters = []
        for effect in group.effects:
            if isinstance(effect, ClipPath):
                element.set("clip-path", f"url(#{self.clip_path(effect, group.abs_transform)})")
            elif isinstance(effect, Mask):
                element.set("mask", f"url(#{self.mask(effect, group.abs_transform)})")
            else:
                filters.append(f"url(#{self.filter(effect)})")
                # All filters share one attribute, kept at the first filter's position.
                element.set("filter", " ".join(filters))

        for child in group.children:
            element.append(self.node(child, child.transform))
        return element

    def _text_runs(self, element: ET.Element, node: TextNode) -> None:
        for run in node.runs:
            path = ET.SubElement(element, _tag("path"))
            path.set("d", self.path_data(run.outline))
            self._paint_attributes(path, run.fill, run.stroke)

    # Attributes

    def _set_id(self, element: ET.Element, node_id: str) -> None:
        if node_id:
            element.set("id", node_id)

    def _set_transform(self, element: ET.Element, transform: Transform, name: str = "transform") -> None:
        values = [self.num(v) for v in transform.as_tuple()]
        if values == ["1", "0", "0", "1", "0", "0"]:
            return
        element.set(name, f"matrix({' '.join(values)})")

    def _set_rect(self, element: ET.Element, rect: Rect) -> None:
        element.set("x", self.num(rect.x))
        element.set("y", self.num(rect.y))
        element.set("width", self.num(rect.width))
        element.set("height", self.num(rect.height))

    def _paint_attributes(self, element: ET.Element, fill: Fill | None, stroke: Stroke | None) -> None:
        if fill is None:
            element.set("fill", "none")
        else:
            element.set("fill", self.paint(fill.paint))
            if fill.opacity < 1.0:
                element.set("fill-opacity", self.num(fill.opacity))
            if fill.rule != "nonzero":
                element.set("fill-rule", fill.rule)
        if stroke is None:
            return
        element.set("stroke", self.paint(stroke.paint))
        if stroke.opacity < 1.0:
            element.set("stroke-opacity", self.num(stroke.opacity))
        element.set("stroke-width", self.num(stroke.width))
        if stroke.linecap != "butt":
            element.set("stroke-linecap", stroke.linecap)
        if stroke.linejoin != "miter":
            element.set("stroke-linejoin", stroke.linejoin)
        if stroke.miterlimit != 4.0:
            element.set("stroke-miterlimit", self.num(stroke.miterlimit))
        if stroke.dasharray:
            element.set("stroke-dasharray", " ".join(self.num(v) for v in stroke.dasharray))
            if stroke.dashoffset:
                element.set("stroke-dashoffset", self.num(stroke.dashoffset))

    def path_data(self, data: PathData) -> str:
        n = self.num
        parts = []
        for seg in data:
            if isinstance(seg, MoveTo):
                parts.append(f"M {n(seg.x)} {n(seg.y)}")
            elif isinstance(seg, LineTo):
                parts.append(f"L {n(seg.x)} {n(seg.y)}")
            elif isinstance(seg, CubicTo):
                parts.append(
                    f"C {n(seg.x1)} {n(seg.y1)} {n(seg.x2)} {n(seg.y2)} {n(seg.x)} {n(seg.y)}"
                )
            elif isinstance(seg, ArcTo):
                parts.append(
                    f"A {n(seg.rx)} {n(seg.ry)} {n(seg.x_axis_rotation)} "
                    f"{int(seg.large_arc)} {int(seg.sweep)} {n(seg.x)} {n(seg.y)}"
                )
            elif isinstance(seg, ClosePath):
                parts.append("Z")
        return " ".join(parts)

    # Paint servers

    def paint(self, paint: Paint) -> str:
        if isinstance(paint, Color):
            return paint.to_hex()
        if isinstance(paint, LinearGradient):
            element = ET.Element(_tag("linearGradient"), {"id": self.new_id("linearGradient")})
            for name in ("x1", "y1", "x2", "y2"):
                element.set(name, self.num(getattr(paint, name)))
        elif isinstance(paint, RadialGradient):
            element = ET.Element(_tag("radialGradient"), {"id": self.new_id("radialGradient")})
            for name in ("cx", "cy", "r", "fx", "fy", "fr"):
                element.set(name, self.num(getattr(paint, name)))
        else:
            return f"url(#{self.pattern(paint)})"

        element.set("gradientUnits", "userSpaceOnUse")
        if paint.spread_method != "pad":
            element.set("spreadMethod", paint.spread_method)
        self._set_transform(element, paint.transform, "gradientTransform")
        for stop in paint.stops:
            stop_element = ET.SubElement(element, _tag("stop"))
            stop_element.set("offset", self.num(stop.offset))
            stop_element.set("stop-color", stop.color.to_hex())
            if stop.opacity < 1.0:
                stop_element.set("stop-opacity", self.num(stop.opacity))
        self.defs.append(element)
        return f"url(#{element.get('id')})"

    def pattern(self, pattern: Pattern) -> str:
        element = ET.Element(_tag("pattern"), {"id": self.new_id("pattern")})
        element.set("patternUnits", "userSpaceOnUse")
        self._set_rect(element, pattern.rect)
        self._set_transform(element, pattern.transform, "patternTransform")
        content = pattern.content
        for child in content.children:
            element.append(self.node(child, content.transform @ child.transform))
        self.defs.append(element)
        return element.get("id")

    # Effects

    def clip_path(self, clip: ClipPath, base: Transform) -> str:
        """Write ``clip`` with its children relative to ``base``."""
        element = ET.Element(_tag("clipPath"), {"id": self.new_id("clipPath")})
        element.set("clipPathUnits", "userSpaceOnUse")
        if clip.clip_path is not None:
            element.set("clip-path", f"url(#{self.clip_path(clip.clip_path, base)})")
        self._clip_children(element, clip.children, base.inverse(), None)
        self.defs.append(element)
        return element.get("id")

    def _clip_children(
        self,
        element: ET.Element,
        children: list[TreeNode],
        base_inverse: Transform,
        clip_ref: str | None,
    ) -> None:
        """Clip paths hold no groups: wrappers become ``clip-path`` attributes."""
        for child in children:
            if isinstance(child, GroupNode):
                inner_ref = clip_ref
                for effect in child.effects:
                    if isinstance(effect, ClipPath):
                        inner_ref = self.clip_path(effect, child.abs_transform)
                self._clip_children(element, child.children, base_inverse, inner_ref)
                continue
            outlines = (
                [(child.data, child.fill)]
                if isinstance(child, PathNode)
                else [(run.outline, run.fill) for run in child.runs]
            )
            for data, fill in outlines:
                path = ET.SubElement(element, _tag("path"))
                self._set_transform(path, base_inverse @ child.abs_transform)
                path.set("d", self.path_data(data))
                if fill is not None and fill.rule != "nonzero":
                    path.set("clip-rule", fill.rule)
                if clip_ref is not None:
                    path.set("clip-path", f"url(#{clip_ref})")

    def mask(self, mask: Mask, base: Transform) -> str:
        element = ET.Element(_tag("mask"), {"id": self.new_id("mask")})
        element.set("maskUnits", "userSpaceOnUse")
        element.set("maskContentUnits", "userSpaceOnUse")
        self._set_rect(element, mask.rect)
        if mask.kind == "alpha":
            element.set("mask-type", "alpha")
        if mask.mask is not None:
            element.set("mask", f"url(#{self.mask(mask.mask, base)})")
        base_inverse = base.inverse()
        for child in mask.children:
            element.append(self.node(child, base_inverse @ child.abs_transform))
        self.defs.append(element)
        return element.get("id")

    def filter(self, effect: Filter) -> str:
        element = ET.Element(_tag("filter"), {"id": self.new_id("filter")})
        element.set("filterUnits", "userSpaceOnUse")
        element.set("primitiveUnits", "userSpaceOnUse")
        self._set_rect(element, effect.rect)
        for primitive in effect.primitives:
            element.append(self.primitive(primitive))
        self.defs.append(element)
        return element.get("id")

    def primitive(self, primitive: FilterPrimitive) -> ET.Element:
        kind = primitive.kind
        n = self.num
        if isinstance(kind, GaussianBlur):
            element = ET.Element(_tag("feGaussianBlur"), {"in": kind.input})
            element.set("stdDeviation", f"{n(kind.std_dev_x)} {n(kind.std_dev_y)}")
        elif isinstance(kind, Offset):
            element = ET.Element(_tag("feOffset"), {"in": kind.input})
            element.set("dx", n(kind.dx))
            element.set("dy", n(kind.dy))
        elif isinstance(kind, Flood):
            element = ET.Element(_tag("feFlood"))
            element.set("flood-color", kind.color.to_hex())
            element.set("flood-opacity", n(kind.opacity))
        elif isinstance(kind, Blend):
            element = ET.Element(_tag("feBlend"), {"in": kind.input1, "in2": kind.input2})
            element.set("mode", kind.mode)
        elif isinstance(kind, Composite):
            element = ET.Element(_tag("feComposite"), {"in": kind.input1, "in2": kind.input2})
            element.set("operator", kind.operator)
            if kind.operator == "arithmetic":
                for name in ("k1", "k2", "k3", "k4"):
                    element.set(name, n(getattr(kind, name)))
        elif isinstance(kind, Merge):
            element = ET.Element(_tag("feMerge"))
            for name in kind.inputs:
                ET.SubElement(element, _tag("feMergeNode"), {"in": name})
        elif isinstance(kind, ColorMatrix):
            element = ET.Element(_tag("feColorMatrix"), {"in": kind.input, "type": kind.kind})
            if kind.values:
                element.set("values", " ".join(n(v) for v in kind.values))
        elif isinstance(kind, DropShadow):
            element = ET.Element(_tag("feDropShadow"), {"in": kind.input})
            element.set("dx", n(kind.dx))
            element.set("dy", n(kind.dy))
            element.set("stdDeviation", f"{n(kind.std_dev_x)} {n(kind.std_dev_y)}")
            element.set("flood-color", kind.color.to_hex())
            element.set("flood-opacity", n(kind.opacity))
        elif isinstance(kind, PassThrough):
            # A zero offset is the identity primitive.
            element = ET.Element(_tag("feOffset"), {"in": kind.input, "dx": "0", "dy": "0"})
        else:
            raise TypeError(f"unknown filter primitive {type(kind).__name__}")
        self._set_rect(element, primitive.rect)
        element.set("result", primitive.result)
        if primitive.color_interpolation != "linearRGB":
            element.set("color-interpolation-filters", primitive.color_interpolation)
        return element


def write_svg(tree: SimplifiedTree, config: Config, units: UnitContext | None = None) -> str:
    """Serialize ``tree`` as simplified SVG text.

    Args:
        tree: Pipeline output.
        config: Supplies ``output_unit`` and ``precision``.
        units: DPI pair used for the conversion to ``output_unit``; derived
            from ``config`` when omitted.
    """
    ET.register_namespace("", SVG_NS)
    ET.register_namespace(SSVG_PREFIX, SSVG_NS)
    writer = SvgWriter(config, units)
    root = writer.build(tree)
    ET.indent(root, space="  ")
    logger.debug("Serialized %d definitions", len(writer.defs))
    return ET.tostring(root, encoding="unicode") + "\n"
