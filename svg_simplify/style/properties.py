"""Supported style properties and their computed values.

Each property has an inheritance flag, an initial value (as CSS text) and a
``compute`` function turning declared text into a computed value. Lengths
are computed to user units, colors to ``Color``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from svg_simplify.exceptions import InvalidValueError
from svg_simplify.geometry.units import Axis, UnitContext, parse_length, parse_length_list, parse_number
from svg_simplify.style.values import (
    BLACK,
    Color,
    PaintKind,
    PaintSpec,
    parse_color,
    parse_filter_list,
    parse_font_family,
    parse_iri_reference,
    parse_keyword,
    parse_opacity,
    parse_paint,
)

FONT_SIZE_KEYWORDS = {
    "xx-small": 9.0,
    "x-small": 10.0,
    "small": 13.0,
    "medium": 16.0,
    "large": 18.0,
    "x-large": 24.0,
    "xx-large": 32.0,
}
BLEND_MODES = (
    "normal",
    "multiply",
    "screen",
    "overlay",
    "darken",
    "lighten",
    "color-dodge",
    "color-burn",
    "hard-light",
    "soft-light",
    "difference",
    "exclusion",
    "hue",
    "saturation",
    "color",
    "luminosity",
)


@dataclass(frozen=True)
class ComputeContext:
    """Inputs a property computation may depend on.

    ``units`` already carries this element's computed font size once
    ``font-size`` itself has been computed.
    """

    parent: Any
    units: UnitContext
    color: Color = BLACK


Compute = Callable[[str, ComputeContext], Any]


@dataclass(frozen=True)
class PropertyDef:
    name: str
    inherited: bool
    initial: str
    compute: Compute

    @property
    def attr(self) -> str:
        return self.name.replace("-", "_")


def _paint(text: str, ctx: ComputeContext) -> PaintSpec:
    return parse_paint(text)


def _opacity(text: str, ctx: ComputeContext) -> float:
    return parse_opacity(text)


def _keyword(*allowed: str) -> Compute:
    def compute(text: str, ctx: ComputeContext) -> str:
        return parse_keyword(text, allowed)

    return compute


def _non_negative_length(axis: Axis) -> Compute:
    def compute(text: str, ctx: ComputeContext) -> float:
        value = ctx.units.to_user(parse_length(text), axis)
        if value < 0:
            raise InvalidValueError(f"negative length {text!r}")
        return value

    return compute


def _length(axis: Axis) -> Compute:
    def compute(text: str, ctx: ComputeContext) -> float:
        return ctx.units.to_user(parse_length(text), axis)

    return compute


def _spacing(text: str, ctx: ComputeContext) -> float:
    if text.strip().lower() == "normal":
        return 0.0
    return ctx.units.to_user(parse_length(text), Axis.X)


def _miterlimit(text: str, ctx: ComputeContext) -> float:
    value = parse_number(text)
    if value < 1.0:
        raise InvalidValueError(f"stroke-miterlimit must be >= 1, got {text!r}")
    return value


def _dasharray(text: str, ctx: ComputeContext) -> tuple[float, ...] | None:
    if text.strip().lower() == "none":
        return None
    values = [ctx.units.to_user(length, Axis.DIAGONAL) for length in parse_length_list(text)]
    if not values:
        raise InvalidValueError(f"empty stroke-dasharray {text!r}")
    if any(v < 0 for v in values):
        raise InvalidValueError(f"negative value in stroke-dasharray {text!r}")
    if sum(values) == 0:
        return None
    if len(values) % 2:
        values = values * 2
    return tuple(values)


def _color(text: str, ctx: ComputeContext) -> Color:
    parsed = parse_color(text)
    if parsed.is_current_color:
        return ctx.color
    return parsed.color


def _color_property(text: str, ctx: ComputeContext) -> Color:
    # currentColor on 'color' itself means the inherited color.
    parsed = parse_color(text)
    if parsed.is_current_color:
        return ctx.parent.color if ctx.parent is not None else BLACK
    return parsed.color


def _font_size(text: str, ctx: ComputeContext) -> float:
    """Compute font-size; ``ctx.units`` still carries the parent font size."""
    value = text.strip().lower()
    parent_size = ctx.units.font_size
    if value in FONT_SIZE_KEYWORDS:
        return FONT_SIZE_KEYWORDS[value]
    if value == "larger":
        return parent_size * 1.2
    if value == "smaller":
        return parent_size / 1.2
    length = parse_length(value)
    if length.is_percent:
        result = parent_size * length.value / 100.0
    else:
        result = ctx.units.to_user(length, Axis.DIAGONAL)
    if result < 0:
        raise InvalidValueError(f"negative font-size {text!r}")
    return result


def _font_weight(text: str, ctx: ComputeContext) -> int:
    value = text.strip().lower()
    parent_weight = ctx.parent.font_weight if ctx.parent is not None else 400
    if value == "normal":
        return 400
    if value == "bold":
        return 700
    if value == "bolder":
        if parent_weight < 350:
            return 400
        if parent_weight < 550:
            return 700
        return 900
    if value == "lighter":
        if parent_weight < 550:
            return 100
        if parent_weight < 750:
            return 400
        return 700
    number = parse_number(value)
    if not 1 <= number <= 1000:
        raise InvalidValueError(f"font-weight out of range: {text!r}")
    return int(number)


def _font_family(text: str, ctx: ComputeContext) -> tuple[str, ...]:
    return parse_font_family(text)


def _iri(text: str, ctx: ComputeContext) -> str | None:
    return parse_iri_reference(text)


def _filter(text: str, ctx: ComputeContext) -> tuple[str, ...]:
    return parse_filter_list(text)


_DEFINITIONS = [
    # Order matters: font-size and color are computed before anything that
    # depends on them.
    PropertyDef("font-size", True, "medium", _font_size),
    PropertyDef("color", True, "black", _color_property),
    PropertyDef("font-family", True, "serif", _font_family),
    PropertyDef("font-weight", True, "normal", _font_weight),
    PropertyDef("font-style", True, "normal", _keyword("normal", "italic", "oblique")),
    PropertyDef("fill", True, "black", _paint),
    PropertyDef("fill-opacity", True, "1", _opacity),
    PropertyDef("fill-rule", True, "nonzero", _keyword("nonzero", "evenodd")),
    PropertyDef("stroke", True, "none", _paint),
    PropertyDef("stroke-width", True, "1", _non_negative_length(Axis.DIAGONAL)),
    PropertyDef("stroke-opacity", True, "1", _opacity),
    PropertyDef("stroke-linecap", True, "butt", _keyword("butt", "round", "square")),
    PropertyDef(
        "stroke-linejoin", True, "miter", _keyword("miter", "miter-clip", "round", "bevel", "arcs")
    ),
    PropertyDef("stroke-miterlimit", True, "4", _miterlimit),
    PropertyDef("stroke-dasharray", True, "none", _dasharray),
    PropertyDef("stroke-dashoffset", True, "0", _length(Axis.DIAGONAL)),
    PropertyDef("clip-rule", True, "nonzero", _keyword("nonzero", "evenodd")),
    PropertyDef("visibility", True, "visible", _keyword("visible", "hidden", "collapse")),
    PropertyDef("letter-spacing", True, "normal", _spacing),
    PropertyDef("word-spacing", True, "normal", _spacing),
    PropertyDef("text-anchor", True, "start", _keyword("start", "middle", "end")),
    PropertyDef("direction", True, "ltr", _keyword("ltr", "rtl")),
    PropertyDef("opacity", False, "1", _opacity),
    PropertyDef(
        "display",
        False,
        "inline",
        _keyword(
            "inline", "block", "none", "inline-block", "list-item", "run-in", "compact",
            "marker", "table", "inline-table", "table-row-group", "table-header-group",
            "table-footer-group", "table-row", "table-column-group", "table-column",
            "table-cell", "table-caption", "flex", "grid", "contents",
        ),
    ),
    PropertyDef("overflow", False, "visible", _keyword("visible", "hidden", "scroll", "auto")),
    PropertyDef("clip-path", False, "none", _iri),
    PropertyDef("mask", False, "none", _iri),
    PropertyDef("filter", False, "none", _filter),
    PropertyDef("stop-color", False, "black", _color),
    PropertyDef("stop-opacity", False, "1", _opacity),
    PropertyDef("flood-color", False, "black", _color),
    PropertyDef("flood-opacity", False, "1", _opacity),
    PropertyDef("mix-blend-mode", False, "normal", _keyword(*BLEND_MODES)),
    PropertyDef("isolation", False, "auto", _keyword("auto", "isolate")),
]

PROPERTIES: dict[str, PropertyDef] = {prop.name: prop for prop in _DEFINITIONS}

# Properties whose declaration order decides the order of the effect chain.
EFFECT_PROPERTIES = ("clip-path", "mask", "filter")


@dataclass(frozen=True)
class ResolvedStyle:
    """Computed value of every supported property for one element."""

    font_size: float
    color: Color
    font_family: tuple[str, ...]
    font_weight: int
    font_style: str
    fill: PaintSpec
    fill_opacity: float
    fill_rule: str
    stroke: PaintSpec
    stroke_width: float
    stroke_opacity: float
    stroke_linecap: str
    stroke_linejoin: str
    stroke_miterlimit: float
    stroke_dasharray: tuple[float, ...] | None
    stroke_dashoffset: float
    clip_rule: str
    visibility: str
    letter_spacing: float
    word_spacing: float
    text_anchor: str
    direction: str
    opacity: float
    display: str
    overflow: str
    clip_path: str | None
    mask: str | None
    filter: tuple[str, ...]
    stop_color: Color
    stop_opacity: float
    flood_color: Color
    flood_opacity: float
    mix_blend_mode: str
    isolation: str
    effect_order: tuple[str, ...] = EFFECT_PROPERTIES

    @property
    def is_visible(self) -> bool:
        return self.visibility == "visible"

    @property
    def has_fill(self) -> bool:
        return self.fill.kind is not PaintKind.NONE

    @property
    def has_stroke(self) -> bool:
        return self.stroke.kind is not PaintKind.NONE and self.stroke_width > 0
