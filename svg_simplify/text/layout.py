"""Text layout: font fallback, shaping and absolute glyph placement.

Layout works on the addressable characters of a ``<text>`` element after
whitespace processing. Every character knows the element it came from (for
style), its explicit ``x``/``y``/``dx``/``dy``/``rotate`` values and the
``<textPath>`` it belongs to, if any. Characters are split into text chunks
at absolute positions, shaped per run of uniform face and style, anchored,
and finally turned into glyph outlines.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fontTools.pens.basePen import BasePen
from fontTools.pens.transformPen import TransformPen
from fontTools.ttLib import TTFont

from svg_simplify.exceptions import (
    FontResolutionError,
    InvalidValueError,
    ResourceLimitExceededError,
)
from svg_simplify.fonts.database import FaceRecord
from svg_simplify.geometry.path import PathData, PathSampler
from svg_simplify.geometry.shapes import lower_shape
from svg_simplify.geometry.transform import Transform, parse_transform
from svg_simplify.geometry.units import Axis, parse_length, parse_length_list, parse_number_list
from svg_simplify.shaping.harfbuzz import create_hb_font, shape_text
from svg_simplify.style.properties import ResolvedStyle
from svg_simplify.style.values import BLACK
from svg_simplify.svg.nodes import ElementKind, Node
from svg_simplify.tree import Fill, GlyphRun, PositionedGlyph

if TYPE_CHECKING:
    import uharfbuzz as hb

    from svg_simplify.pipeline import Converter, ResolveContext

logger = logging.getLogger(__name__)


class PathDataPen(BasePen):
    """fontTools pen writing into a ``PathData``; quadratics become cubics."""

    def __init__(self, path: PathData) -> None:
        super().__init__(glyphSet=None)
        self.path = path

    def _moveTo(self, pt):
        self.path.push_move_to(*pt)

    def _lineTo(self, pt):
        self.path.push_line_to(*pt)

    def _curveToOne(self, pt1, pt2, pt3):
        self.path.push_cubic_to(*pt1, *pt2, *pt3)

    def _qCurveToOne(self, pt1, pt2):
        self.path.push_quad_to(*pt1, *pt2)

    def _closePath(self):
        self.path.push_close_path()


@dataclass
class FontHandle:
    """Per-pipeline font objects built from a database face."""

    record: FaceRecord
    ttfont: TTFont
    hb_font: hb.Font
    cmap: dict[int, str]
    glyph_order: list[str]
    units_per_em: int

    @classmethod
    def load(cls, record: FaceRecord) -> FontHandle:
        ttfont = TTFont(io.BytesIO(record.data), fontNumber=record.index, lazy=True)
        return cls(
            record=record,
            ttfont=ttfont,
            hb_font=create_hb_font(record.data, record.index),
            cmap=ttfont.getBestCmap() or {},
            glyph_order=ttfont.getGlyphOrder(),
            units_per_em=ttfont["head"].unitsPerEm,
        )

    def has_char(self, char: str) -> bool:
        return ord(char) in self.cmap

    def draw(self, glyph_id: int, transform: Transform, path: PathData) -> None:
        if glyph_id >= len(self.glyph_order):
            return
        glyph_set = self.ttfont.getGlyphSet()
        glyph = glyph_set[self.glyph_order[glyph_id]]
        glyph.draw(TransformPen(PathDataPen(path), transform.as_tuple()))


@dataclass(frozen=True)
class TextPathInfo:
    node: Node
    sampler: PathSampler
    start_offset: float


@dataclass
class TextChar:
    """One addressable character with its layout attributes."""

    char: str
    node: Node
    style: ResolvedStyle
    text_path: TextPathInfo | None = None
    x: float | None = None
    y: float | None = None
    dx: float | None = None
    dy: float | None = None
    rotate: float | None = None


@dataclass
class _PlacedGlyph:
    index: int
    glyph_id: int
    handle: FontHandle
    style: ResolvedStyle
    node: Node
    placement: Transform
    x: float
    y: float
    angle: float
    advance: float


@dataclass
class _Collector:
    chars: list[TextChar] = field(default_factory=list)
    last_was_space: bool = True


def _xml_space(node: Node) -> str:
    for current in (node, *node.ancestors()):
        value = current.get("xml:space")
        if value in ("default", "preserve"):
            return value
    return "default"


class TextLayoutEngine:
    """Lay out ``<text>`` elements into glyph runs."""

    def __init__(self, converter: Converter) -> None:
        self.converter = converter
        self.font_db = converter.font_db
        self.styles = converter.styles
        self.refs = converter.refs
        self.diagnostics = converter.diagnostics
        self.default_family = converter.config.default_font_family
        self.max_depth = converter.config.max_depth
        self._handles: dict[tuple[str, int], FontHandle] = {}
        self._families: dict[tuple[tuple[str, ...], int, str], list[FontHandle]] = {}

    def layout(self, text_node: Node, style: ResolvedStyle, ctx: ResolveContext) -> list[GlyphRun]:
        """Shape and position the content of ``text_node``.

        ``style`` is the computed style of the text element. Returned runs
        are in the coordinate space of the text element.
        """
        collector = _Collector()
        self._collect(text_node, style, None, ctx, collector, depth=0)
        chars = collector.chars
        while chars and chars[-1].char == " " and _xml_space(chars[-1].node) == "default":
            chars.pop()
        if not chars:
            return []

        placed: list[_PlacedGlyph] = []
        pen_x = pen_y = 0.0
        for chunk in _chunks(chars):
            pen_x, pen_y = self._layout_chunk(chunk, chars, pen_x, pen_y, placed)
        return self._build_runs(placed, chars, ctx)

    # Character collection

    def _collect(
        self,
        node: Node,
        style: ResolvedStyle,
        text_path: TextPathInfo | None,
        ctx: ResolveContext,
        collector: _Collector,
        depth: int,
    ) -> None:
        if depth > self.max_depth:
            raise ResourceLimitExceededError(
                f"text nesting deeper than {self.max_depth}", node.node_id
            )
        start = len(collector.chars)
        preserve = _xml_space(node) == "preserve"
        self._append_text(node.text, node, style, text_path, collector, preserve)
        for child in node.children:
            if child.kind in (ElementKind.TSPAN, ElementKind.TEXT_PATH):
                child_style = self.styles.compute(child, style, ctx.units)
                if child_style.display != "none":
                    child_path = text_path
                    if child.kind is ElementKind.TEXT_PATH:
                        child_path = self._text_path(child, ctx)
                    if child.kind is not ElementKind.TEXT_PATH or child_path is not None:
                        self._collect(child, child_style, child_path, ctx, collector, depth + 1)
            self._append_text(child.tail, node, style, text_path, collector, preserve)
        self._assign_positions(node, style, collector.chars[start:], ctx)

    @staticmethod
    def _append_text(
        text: str | None,
        node: Node,
        style: ResolvedStyle,
        text_path: TextPathInfo | None,
        collector: _Collector,
        preserve: bool,
    ) -> None:
        if not text:
            return
        if preserve:
            text = text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ").replace("\t", " ")
        else:
            text = text.replace("\r", "").replace("\n", "").replace("\t", " ")
        for char in text:
            if not preserve and char == " ":
                if collector.last_was_space:
                    continue
                collector.last_was_space = True
            else:
                collector.last_was_space = False
            collector.chars.append(TextChar(char, node, style, text_path))

    def _assign_positions(
        self, node: Node, style: ResolvedStyle, chars: list[TextChar], ctx: ResolveContext
    ) -> None:
        """Apply the element's position lists; values set deeper win."""
        if not chars:
            return
        units = ctx.units.with_font_size(style.font_size)
        names = ("dx", "dy") if node.kind is ElementKind.TEXT_PATH else ("x", "y", "dx", "dy")
        for name in names:
            axis = Axis.X if name.endswith("x") else Axis.Y
            for char, value in zip(chars, self._lengths(node, name, axis, units)):
                if getattr(char, name) is None:
                    setattr(char, name, value)
        rotate_text = node.get("rotate")
        if rotate_text is not None:
            try:
                angles = parse_number_list(rotate_text)
            except InvalidValueError as e:
                self.diagnostics.record(e, node.node_id)
                angles = []
            if angles:
                # The last angle repeats for the remaining characters.
                angles = angles + [angles[-1]] * (len(chars) - len(angles))
                for char, angle in zip(chars, angles):
                    if char.rotate is None:
                        char.rotate = angle

    def _lengths(self, node: Node, attr: str, axis: Axis, units) -> list[float]:
        text = node.get(attr)
        if text is None:
            return []
        try:
            return [units.to_user(length, axis) for length in parse_length_list(text)]
        except InvalidValueError as e:
            self.diagnostics.record(e, node.node_id)
            return []

    def _text_path(self, node: Node, ctx: ResolveContext) -> TextPathInfo | None:
        target = self.refs.lookup(node, node.href, {ElementKind.PATH})
        if target is None:
            return None
        try:
            path = lower_shape(target, ctx.units)
            if path is None:
                return None
            path = path.transformed(parse_transform(target.get("transform")))
            sampler = PathSampler(path)
            offset_text = node.get("startOffset")
            offset = 0.0
            if offset_text is not None:
                length = parse_length(offset_text)
                if length.is_percent:
                    offset = sampler.length * length.value / 100.0
                else:
                    offset = ctx.units.to_user(length, Axis.X)
        except InvalidValueError as e:
            self.diagnostics.record(e, node.node_id)
            return None
        return TextPathInfo(node, sampler, offset)

    # Fonts

    def _handle(self, record: FaceRecord) -> FontHandle:
        key = (record.source, record.index)
        handle = self._handles.get(key)
        if handle is None:
            handle = FontHandle.load(record)
            self._handles[key] = handle
        return handle

    def _fallback_handles(self, style: ResolvedStyle) -> list[FontHandle]:
        """Faces for the family list of ``style``, in fallback order."""
        key = (style.font_family, style.font_weight, style.font_style)
        handles = self._families.get(key)
        if handles is not None:
            return handles
        handles = []
        seen = set()
        for family in (*style.font_family, self.default_family):
            record = self.font_db.query(family, style.font_weight, style.font_style)
            if record is not None and (record.source, record.index) not in seen:
                seen.add((record.source, record.index))
                handles.append(self._handle(record))
        if not handles and self.font_db.faces:
            # Last resort: any registered face.
            handles.append(self._handle(self.font_db.faces[0]))
        self._families[key] = handles
        return handles

    def _face_for(self, char: TextChar) -> FontHandle | None:
        handles = self._fallback_handles(char.style)
        if not handles:
            return None
        for handle in handles:
            if handle.has_char(char.char):
                return handle
        if not char.char.isspace():
            self.diagnostics.record(
                FontResolutionError(
                    f"no glyph for {char.char!r} in {', '.join(char.style.font_family)}"
                ),
                char.node.node_id,
            )
        return handles[0]

    # Layout

    def _layout_chunk(
        self,
        chunk: range,
        chars: list[TextChar],
        pen_x: float,
        pen_y: float,
        placed: list[_PlacedGlyph],
    ) -> tuple[float, float]:
        first = chars[chunk.start]
        text_path = first.text_path
        if text_path is not None and first.x is None:
            pen_x = text_path.start_offset
            pen_y = 0.0
        if first.x is not None:
            pen_x = first.x
        if first.y is not None:
            pen_y = first.y
        start_x = pen_x
        chunk_glyphs: list[_PlacedGlyph] = []

        for run_start, run_end, handle in self._runs(chunk, chars):
            if handle is None:
                self.diagnostics.record(
                    FontResolutionError("no font available for text"), chars[run_start].node.node_id
                )
                continue
            run_chars = chars[run_start:run_end]
            style = run_chars[0].style
            scale = style.font_size / handle.units_per_em
            direction = "rtl" if style.direction == "rtl" else None
            shaped = shape_text(handle.hb_font, "".join(c.char for c in run_chars), direction)
            seen_clusters: set[int] = set()
            for position, glyph in enumerate(shaped.glyphs):
                char_index = run_start + glyph.cluster
                char = chars[char_index]
                if glyph.cluster not in seen_clusters:
                    seen_clusters.add(glyph.cluster)
                    pen_x += char.dx or 0.0
                    pen_y += char.dy or 0.0
                advance = glyph.x_advance * scale
                x = pen_x + glyph.x_offset * scale
                y = pen_y - glyph.y_offset * scale
                angle = char.rotate or 0.0
                chunk_glyphs.append(
                    _PlacedGlyph(
                        char_index, glyph.glyph_id, handle, style, char.node,
                        Transform(), x, y, angle, advance,
                    )
                )
                pen_x += advance
                pen_y -= glyph.y_advance * scale
                next_cluster = (
                    shaped.glyphs[position + 1].cluster
                    if position + 1 < len(shaped.glyphs)
                    else None
                )
                if next_cluster != glyph.cluster:
                    pen_x += style.letter_spacing
                    if char.char == " ":
                        pen_x += style.word_spacing

        shift = _anchor_shift(first.style, pen_x - start_x)
        for glyph in chunk_glyphs:
            glyph.x += shift
            if text_path is None:
                glyph.placement = Transform.translate(glyph.x, glyph.y) @ Transform.rotate(glyph.angle)
                placed.append(glyph)
                continue
            # Glyphs are centered on the path at the middle of their advance.
            sample = text_path.sampler.sample(glyph.x + glyph.advance / 2.0)
            if sample is None:
                continue
            px, py, tangent = sample
            tangent_deg = math.degrees(tangent)
            glyph.placement = (
                Transform.translate(px, py)
                @ Transform.rotate(tangent_deg)
                @ Transform.translate(-glyph.advance / 2.0, glyph.y)
                @ Transform.rotate(glyph.angle)
            )
            glyph.x, glyph.y = glyph.placement.apply(0.0, 0.0)
            glyph.angle += tangent_deg
            placed.append(glyph)
        return pen_x + shift, pen_y

    def _runs(self, chunk: range, chars: list[TextChar]):
        """Split a chunk into ``(start, end, handle)`` runs of one face and style."""
        start = chunk.start
        current = self._face_for(chars[start])
        for index in range(chunk.start + 1, chunk.stop):
            handle = self._face_for(chars[index])
            if handle is not current or chars[index].style is not chars[start].style:
                yield start, index, current
                start, current = index, handle
        yield start, chunk.stop, current

    def _build_runs(
        self, placed: list[_PlacedGlyph], chars: list[TextChar], ctx: ResolveContext
    ) -> list[GlyphRun]:
        groups: list[list[_PlacedGlyph]] = []
        for glyph in placed:
            if not glyph.style.is_visible:
                continue
            last = groups[-1][0] if groups else None
            if last is not None and last.handle is glyph.handle and last.style is glyph.style:
                groups[-1].append(glyph)
            else:
                groups.append([glyph])

        outlines = []
        for group in groups:
            outline = PathData()
            first = group[0]
            scale = first.style.font_size / first.handle.units_per_em
            for glyph in group:
                em_to_user = glyph.placement @ Transform.scale(scale, -scale)
                first.handle.draw(glyph.glyph_id, em_to_user, outline)
            outlines.append(outline)

        bbox = None
        for outline in outlines:
            box = outline.bbox()
            if box is not None:
                bbox = box.union(bbox)

        runs = []
        for group, outline in zip(groups, outlines):
            first = group[0]
            if ctx.mode == "clip":
                # Clip content is solid black, shaped by clip-rule.
                fill = Fill(BLACK, 1.0, first.style.clip_rule)
                stroke = None
            else:
                fill = self.converter.paints.fill(first.node, first.style, bbox, ctx)
                stroke = self.converter.paints.stroke(first.node, first.style, bbox, ctx)
            if fill is None and stroke is None:
                continue
            if not outline:
                continue
            glyphs = tuple(
                PositionedGlyph(g.glyph_id, g.index, g.x, g.y, g.angle) for g in group
            )
            runs.append(
                GlyphRun(
                    face=first.handle.record.info(),
                    font_size=first.style.font_size,
                    glyphs=glyphs,
                    outline=outline,
                    fill=fill,
                    stroke=stroke,
                )
            )
        return runs


def _chunks(chars: list[TextChar]):
    """Split characters into text chunks (new chunk at absolute positions)."""
    start = 0
    for index in range(1, len(chars)):
        char = chars[index]
        if (
            char.x is not None
            or char.y is not None
            or char.text_path is not chars[index - 1].text_path
        ):
            yield range(start, index)
            start = index
    yield range(start, len(chars))


def _anchor_shift(style: ResolvedStyle, advance: float) -> float:
    anchor = style.text_anchor
    if style.direction == "rtl":
        anchor = {"start": "end", "end": "start"}.get(anchor, anchor)
    if anchor == "middle":
        return -advance / 2.0
    if anchor == "end":
        return -advance
    return 0.0
