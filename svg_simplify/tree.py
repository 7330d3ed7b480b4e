"""The simplified tree: fully resolved output of the pipeline.

Nothing in here refers back to the input document. Paints carry merged stop
lists, effects carry absolute regions, lengths are canonical units and every
node knows both its transform relative to its parent and its fully composed
``abs_transform``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from svg_simplify.geometry.path import PathData
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform
from svg_simplify.style.values import Color

# Paints


@dataclass(frozen=True)
class Stop:
    offset: float
    color: Color
    opacity: float = 1.0


@dataclass(frozen=True)
class LinearGradient:
    """Linear gradient in the user space of the painted node."""

    x1: float
    y1: float
    x2: float
    y2: float
    stops: tuple[Stop, ...]
    spread_method: str = "pad"
    transform: Transform = field(default_factory=Transform)


@dataclass(frozen=True)
class RadialGradient:
    """Radial gradient in the user space of the painted node."""

    cx: float
    cy: float
    r: float
    fx: float
    fy: float
    fr: float
    stops: tuple[Stop, ...]
    spread_method: str = "pad"
    transform: Transform = field(default_factory=Transform)


@dataclass(eq=False)
class Pattern:
    """Tiled pattern.

    Attributes:
        rect: Tile rectangle in the user space of the painted node.
        transform: ``patternTransform`` (user space of the painted node).
        content: Tile content; its coordinates are relative to the tile
            space, with ``viewBox`` and content units already folded in.
    """

    rect: Rect
    transform: Transform
    content: GroupNode


Paint = Color | LinearGradient | RadialGradient | Pattern


@dataclass(frozen=True)
class Fill:
    paint: Paint
    opacity: float = 1.0
    rule: str = "nonzero"


@dataclass(frozen=True)
class Stroke:
    paint: Paint
    opacity: float = 1.0
    width: float = 1.0
    linecap: str = "butt"
    linejoin: str = "miter"
    miterlimit: float = 4.0
    dasharray: tuple[float, ...] | None = None
    dashoffset: float = 0.0


# Effects


@dataclass(eq=False)
class ClipPath:
    """Clip region made of ``children`` (user space of the clipped group).

    A clip path that is itself clipped links the next clip in ``clip_path``;
    the chain is kept, never merged into one region.
    """

    children: list[Node] = field(default_factory=list)
    clip_path: ClipPath | None = None


@dataclass(eq=False)
class Mask:
    """Mask with its region resolved to the user space of the masked group."""

    rect: Rect
    kind: str = "luminance"
    children: list[Node] = field(default_factory=list)
    mask: Mask | None = None


@dataclass(frozen=True)
class GaussianBlur:
    input: str
    std_dev_x: float
    std_dev_y: float


@dataclass(frozen=True)
class Offset:
    input: str
    dx: float
    dy: float


@dataclass(frozen=True)
class Flood:
    color: Color
    opacity: float


@dataclass(frozen=True)
class Blend:
    input1: str
    input2: str
    mode: str = "normal"


@dataclass(frozen=True)
class Composite:
    input1: str
    input2: str
    operator: str = "over"
    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0


@dataclass(frozen=True)
class Merge:
    inputs: tuple[str, ...]


@dataclass(frozen=True)
class ColorMatrix:
    input: str
    kind: str
    values: tuple[float, ...]


@dataclass(frozen=True)
class DropShadow:
    input: str
    dx: float
    dy: float
    std_dev_x: float
    std_dev_y: float
    color: Color
    opacity: float


@dataclass(frozen=True)
class PassThrough:
    """Unsupported primitive, rendered as a copy of its input."""

    input: str
    tag: str


FilterKind = (
    GaussianBlur | Offset | Flood | Blend | Composite | Merge | ColorMatrix | DropShadow | PassThrough
)


@dataclass(frozen=True)
class FilterPrimitive:
    rect: Rect
    result: str
    kind: FilterKind
    color_interpolation: str = "linearRGB"


@dataclass(eq=False)
class Filter:
    """Filter with region and primitive subregions in user space."""

    rect: Rect
    primitives: list[FilterPrimitive] = field(default_factory=list)


Effect = ClipPath | Mask | Filter


# Nodes


@dataclass(eq=False)
class GroupNode:
    """Container node; the only node kind that carries effects and opacity.

    ``effects`` are applied in list order.
    """

    id: str = ""
    transform: Transform = field(default_factory=Transform)
    abs_transform: Transform = field(default_factory=Transform)
    opacity: float = 1.0
    blend_mode: str = "normal"
    isolate: bool = False
    effects: list[Effect] = field(default_factory=list)
    children: list[Node] = field(default_factory=list)

    def bbox(self) -> Rect | None:
        """Bounding box of the children in this group's coordinate space."""
        result = None
        for child in self.children:
            child_box = child.bbox()
            if child_box is None:
                continue
            child_box = child_box.transformed(child.transform)
            result = child_box.union(result)
        return result

    def iter(self):
        """Pre-order iteration over this group and its descendants."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, GroupNode):
                stack.extend(reversed(node.children))


@dataclass(eq=False)
class PathNode:
    id: str = ""
    data: PathData = field(default_factory=PathData)
    fill: Fill | None = None
    stroke: Stroke | None = None
    transform: Transform = field(default_factory=Transform)
    abs_transform: Transform = field(default_factory=Transform)

    def bbox(self) -> Rect | None:
        return self.data.bbox()


@dataclass(frozen=True)
class FaceInfo:
    """Identity of the font face a glyph run was shaped with."""

    family: str
    weight: int
    style: str
    source: str
    index: int = 0


@dataclass(frozen=True)
class PositionedGlyph:
    """One shaped glyph.

    ``x``/``y`` is the pen position of the glyph origin and ``angle`` its
    rotation in degrees, both in the coordinate space of the text node.
    """

    glyph_id: int
    cluster: int
    x: float
    y: float
    angle: float = 0.0


@dataclass(eq=False)
class GlyphRun:
    """Shaped glyphs sharing one face, size and paint.

    ``outline`` is the union of the glyph outlines, already positioned in
    the coordinate space of the owning text node.
    """

    face: FaceInfo
    font_size: float
    glyphs: tuple[PositionedGlyph, ...]
    outline: PathData
    fill: Fill | None = None
    stroke: Stroke | None = None


@dataclass(eq=False)
class TextNode:
    id: str = ""
    runs: list[GlyphRun] = field(default_factory=list)
    transform: Transform = field(default_factory=Transform)
    abs_transform: Transform = field(default_factory=Transform)

    def bbox(self) -> Rect | None:
        result = None
        for run in self.runs:
            box = run.outline.bbox()
            if box is not None:
                result = box.union(result)
        return result


Node = GroupNode | PathNode | TextNode


@dataclass(eq=False)
class SimplifiedTree:
    """Output of one pipeline run.

    Attributes:
        width: Root viewport width in canonical units.
        height: Root viewport height in canonical units.
        root: Root group; its children already include the root viewBox
            transform in their ``abs_transform``.
    """

    width: float
    height: float
    root: GroupNode = field(default_factory=GroupNode)

    def iter(self):
        return self.root.iter()

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0 or not self.root.children
