"""HarfBuzz text shaping wrapper.

Text is added to the buffer as codepoints, so glyph clusters are indices into
the shaped string (not UTF-8 byte offsets). Positions are returned in font
units; the font scale is set to the face's units per em.
"""

from __future__ import annotations

from dataclasses import dataclass

import uharfbuzz as hb


@dataclass(frozen=True)
class ShapedGlyph:
    """One glyph of shaping output, in font units."""

    glyph_id: int
    cluster: int
    x_advance: float
    y_advance: float
    x_offset: float
    y_offset: float


@dataclass
class ShapingResult:
    glyphs: list[ShapedGlyph]
    direction: str
    units_per_em: int

    @property
    def advance(self) -> float:
        return sum(glyph.x_advance for glyph in self.glyphs)


def create_hb_font(font_data: bytes, face_index: int = 0) -> hb.Font:
    """Build a HarfBuzz font scaled to font units."""
    face = hb.Face(hb.Blob(font_data), face_index)
    font = hb.Font(face)
    font.scale = (face.upem, face.upem)
    return font


def shape_text(
    hb_font: hb.Font,
    text: str,
    direction: str | None = None,
    language: str | None = None,
    features: dict[str, bool] | None = None,
) -> ShapingResult:
    """Shape ``text`` with ``hb_font``.

    Args:
        hb_font: Font from ``create_hb_font``.
        text: The run to shape.
        direction: ``"ltr"`` or ``"rtl"``; guessed from the script if None.
        language: BCP 47 language tag, guessed if None.
        features: OpenType features to enable or disable.

    Returns:
        Glyphs in visual order with clusters indexing ``text``.
    """
    buf = hb.Buffer()
    buf.add_codepoints([ord(char) for char in text])
    if direction is not None:
        buf.direction = direction
    if language is not None:
        buf.language = language
    buf.guess_segment_properties()
    hb.shape(hb_font, buf, features or {"kern": True, "liga": True})

    glyphs = [
        ShapedGlyph(
            glyph_id=info.codepoint,
            cluster=info.cluster,
            x_advance=pos.x_advance,
            y_advance=pos.y_advance,
            x_offset=pos.x_offset,
            y_offset=pos.y_offset,
        )
        for info, pos in zip(buf.glyph_infos, buf.glyph_positions)
    ]
    return ShapingResult(glyphs, buf.direction, hb_font.face.upem)
