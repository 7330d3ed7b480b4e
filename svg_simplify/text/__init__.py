"""Text layout."""

from svg_simplify.text.layout import TextLayoutEngine

__all__ = ["TextLayoutEngine"]
