"""Text shaping with HarfBuzz."""

from svg_simplify.shaping.harfbuzz import ShapedGlyph, ShapingResult, create_hb_font, shape_text

__all__ = ["ShapedGlyph", "ShapingResult", "create_hb_font", "shape_text"]
