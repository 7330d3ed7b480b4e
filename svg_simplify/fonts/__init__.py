"""Font database shared by pipelines."""

from svg_simplify.fonts.database import FaceRecord, FontDatabase, system_font_dirs

__all__ = ["FaceRecord", "FontDatabase", "system_font_dirs"]
