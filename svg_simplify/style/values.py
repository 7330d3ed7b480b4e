"""Parsers for individual CSS/SVG property values.

Every parser raises ``InvalidValueError`` on malformed input; the cascade
catches it, records a diagnostic and falls back to the next candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import tinycss2
from tinycss2 import color3

from svg_simplify.exceptions import InvalidValueError
from svg_simplify.geometry.units import parse_number


@dataclass(frozen=True)
class Color:
    """Opaque sRGB color with 8-bit channels; alpha lives in opacities."""

    red: int
    green: int
    blue: int

    def to_hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"

    def __str__(self) -> str:
        return self.to_hex()


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


@dataclass(frozen=True)
class ParsedColor:
    """A color value as declared: either a concrete color or ``currentColor``."""

    color: Color | None
    alpha: float = 1.0

    @property
    def is_current_color(self) -> bool:
        return self.color is None


class PaintKind(Enum):
    NONE = "none"
    COLOR = "color"
    CURRENT_COLOR = "currentColor"
    URL = "url"


@dataclass(frozen=True)
class PaintSpec:
    """Declared ``fill``/``stroke`` value.

    Attributes:
        kind: Which form the value takes.
        color: The color for ``COLOR`` paints.
        alpha: Alpha of the declared color, folded into the paint opacity.
        url: Referenced element id for ``URL`` paints.
        fallback: Paint used when the URL cannot be resolved (``None`` means
            the reference has no fallback).
    """

    kind: PaintKind
    color: Color | None = None
    alpha: float = 1.0
    url: str | None = None
    fallback: PaintSpec | None = None


PAINT_NONE = PaintSpec(PaintKind.NONE)


def _tokens(text: str) -> list:
    return [
        token
        for token in tinycss2.parse_component_value_list(text, skip_comments=True)
        if token.type != "whitespace"
    ]


def parse_color(text: str) -> ParsedColor:
    """Parse a CSS color (named, hex, rgb(), hsl(), currentColor).

    Trailing ICC color specifications are ignored.
    """
    tokens = _tokens(text)
    if not tokens:
        raise InvalidValueError(f"empty color value {text!r}")
    rgba = color3.parse_color(tokens[0])
    if rgba is None:
        raise InvalidValueError(f"invalid color {text!r}")
    if len(tokens) > 1 and not _is_icc_color(tokens[1:]):
        raise InvalidValueError(f"unexpected tokens after color in {text!r}")
    if rgba == "currentColor":
        return ParsedColor(None)
    return ParsedColor(
        Color(_channel(rgba.red), _channel(rgba.green), _channel(rgba.blue)),
        float(rgba.alpha),
    )


def _channel(value: float) -> int:
    return max(0, min(255, round(value * 255)))


def _is_icc_color(tokens: list) -> bool:
    return len(tokens) == 1 and tokens[0].type == "function" and tokens[0].lower_name == "icc-color"


def _url_target(token) -> str | None:
    """Return the URL of a ``url()`` token, or None for any other token."""
    if token.type == "url":
        return token.value
    if token.type == "function" and token.lower_name == "url":
        args = [t for t in token.arguments if t.type != "whitespace"]
        if len(args) == 1 and args[0].type == "string":
            return args[0].value
    return None


def fragment_id(url: str) -> str:
    """Extract the element id from a local ``#id`` reference.

    Raises:
        InvalidValueError: The URL points outside the document.
    """
    url = url.strip()
    if not url.startswith("#") or len(url) < 2:
        raise InvalidValueError(f"only local references are supported, got {url!r}")
    return url[1:]


def parse_paint(text: str) -> PaintSpec:
    """Parse ``fill``/``stroke`` values: none, colors, ``url(#id) [fallback]``."""
    tokens = _tokens(text)
    if not tokens:
        raise InvalidValueError(f"empty paint value {text!r}")
    first = tokens[0]
    url = _url_target(first)
    if url is not None:
        fallback = None
        if len(tokens) > 1:
            fallback = parse_paint(tinycss2.serialize(tokens[1:]))
            if fallback.kind is PaintKind.URL:
                raise InvalidValueError(f"paint fallback cannot be a reference: {text!r}")
        return PaintSpec(PaintKind.URL, url=fragment_id(url), fallback=fallback)
    if first.type == "ident" and first.lower_value == "none" and len(tokens) == 1:
        return PAINT_NONE
    if first.type == "ident" and first.lower_value in ("context-fill", "context-stroke"):
        # Context paints only apply inside markers, which are not rendered.
        return PAINT_NONE
    parsed = parse_color(text)
    if parsed.is_current_color:
        return PaintSpec(PaintKind.CURRENT_COLOR)
    return PaintSpec(PaintKind.COLOR, color=parsed.color, alpha=parsed.alpha)


def parse_iri_reference(text: str) -> str | None:
    """Parse ``clip-path``/``mask`` values: ``none`` or ``url(#id)``."""
    tokens = _tokens(text)
    if len(tokens) == 1:
        token = tokens[0]
        if token.type == "ident" and token.lower_value == "none":
            return None
        url = _url_target(token)
        if url is not None:
            return fragment_id(url)
    raise InvalidValueError(f"expected none or url(#id), got {text!r}")


def parse_filter_list(text: str) -> tuple[str, ...]:
    """Parse the ``filter`` property into referenced filter ids.

    CSS filter functions (``blur()`` and friends) are rejected.
    """
    tokens = _tokens(text)
    if len(tokens) == 1 and tokens[0].type == "ident" and tokens[0].lower_value == "none":
        return ()
    ids = []
    for token in tokens:
        url = _url_target(token)
        if url is None:
            raise InvalidValueError(f"unsupported filter value {tinycss2.serialize([token])!r}")
        ids.append(fragment_id(url))
    if not ids:
        raise InvalidValueError(f"empty filter value {text!r}")
    return tuple(ids)


def parse_opacity(text: str) -> float:
    """Parse a number or percentage and clamp it to ``[0, 1]``."""
    text = text.strip()
    if text.endswith("%"):
        value = parse_number(text[:-1]) / 100.0
    else:
        try:
            value = parse_number(text)
        except InvalidValueError as e:
            raise InvalidValueError(f"invalid opacity {text!r}") from e
    return max(0.0, min(1.0, value))


def parse_keyword(text: str, allowed: tuple[str, ...]) -> str:
    value = text.strip().lower()
    for keyword in allowed:
        if value == keyword.lower():
            return keyword
    raise InvalidValueError(f"expected one of {', '.join(allowed)}, got {text!r}")


def parse_font_family(text: str) -> tuple[str, ...]:
    """Split a family list; quoted names are unquoted, bare words joined."""
    families: list[str] = []
    current: list[str] = []
    for token in tinycss2.parse_component_value_list(text, skip_comments=True):
        if token.type == "literal" and token.value == ",":
            if current:
                families.append(" ".join(current))
            current = []
        elif token.type == "string":
            current.append(token.value)
        elif token.type == "ident":
            current.append(token.value)
        elif token.type != "whitespace":
            raise InvalidValueError(f"invalid font-family {text!r}")
    if current:
        families.append(" ".join(current))
    if not families:
        raise InvalidValueError(f"empty font-family {text!r}")
    return tuple(families)
