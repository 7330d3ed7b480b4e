"""Resolution stages: references, viewports, paint servers and effects."""

from svg_simplify.resolve.coordinates import Viewport, nested_viewport, root_viewport
from svg_simplify.resolve.references import ReferenceResolver, ResolutionPath

__all__ = [
    "ReferenceResolver",
    "ResolutionPath",
    "Viewport",
    "nested_viewport",
    "root_viewport",
]
