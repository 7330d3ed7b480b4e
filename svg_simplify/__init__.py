"""svg-simplify: Resolve arbitrary SVG into a flat, self-contained SVG tree.

The pipeline resolves everything a renderer would otherwise have to work out
itself:
- CSS cascade and inheritance (stylesheets, attributes, inline styles)
- href/use reference chains, with cycle detection
- viewBox, transform and unit/DPI conversion
- gradients, patterns, clip paths, masks and filters
- text shaping with HarfBuzz and font fallback, emitted as outlines

Example:
    >>> from svg_simplify import Simplifier
    >>> simplifier = Simplifier()
    >>> result = simplifier.convert_file("input.svg", "output.svg")
    >>> result.success
    True
"""

from svg_simplify.api import ConversionResult, Simplifier, create_font_database, simplify
from svg_simplify.config import Config
from svg_simplify.diagnostics import Diagnostic, DiagnosticLog
from svg_simplify.exceptions import (
    ConfigError,
    CyclicReferenceError,
    FontResolutionError,
    InvalidDimensionError,
    InvalidValueError,
    ResourceLimitExceededError,
    SimplifyError,
    UnsupportedElementError,
    XmlSyntaxError,
)
from svg_simplify.fonts.database import FontDatabase
from svg_simplify.generator import SvgGenerator, guess_svg_generator

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Simplifier",
    "ConversionResult",
    "simplify",
    "Config",
    "create_font_database",
    "guess_svg_generator",
    "SvgGenerator",
    # Fonts
    "FontDatabase",
    # Diagnostics and exceptions
    "Diagnostic",
    "DiagnosticLog",
    "SimplifyError",
    "XmlSyntaxError",
    "CyclicReferenceError",
    "UnsupportedElementError",
    "InvalidValueError",
    "InvalidDimensionError",
    "FontResolutionError",
    "ResourceLimitExceededError",
    "ConfigError",
    # Metadata
    "__version__",
]
