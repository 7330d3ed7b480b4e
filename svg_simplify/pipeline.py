"""Depth-first conversion of a parsed document into a simplified tree.

One ``Converter`` handles one document. It walks the element tree once,
carrying a ``ResolveContext`` (parent style, absolute transform of the
current user space, unit context, resolution path) down and returning
resolved tree nodes up. Stage resolvers (styles, references, paints,
effects, text) share the converter's diagnostic log.

Problems below the document level are raised where they are detected and
caught in ``_convert_children``, which records them and drops only the
offending element.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from svg_simplify.config import Config
from svg_simplify.diagnostics import DiagnosticLog
from svg_simplify.exceptions import (
    CyclicReferenceError,
    InvalidValueError,
    ResourceLimitExceededError,
    SimplifyError,
    UnsupportedElementError,
)
from svg_simplify.fonts.database import FontDatabase
from svg_simplify.geometry.path import PathData
from svg_simplify.geometry.shapes import lower_shape
from svg_simplify.geometry.transform import Transform, parse_transform
from svg_simplify.geometry.units import Axis, UnitContext
from svg_simplify.resolve.coordinates import Viewport, nested_viewport, root_viewport
from svg_simplify.resolve.effects import EffectResolver
from svg_simplify.resolve.paint import PaintResolver
from svg_simplify.resolve.references import ReferenceResolver, ResolutionPath
from svg_simplify.style.cascade import StyleResolver
from svg_simplify.style.properties import ResolvedStyle
from svg_simplify.style.values import BLACK, PAINT_NONE, PaintKind, PaintSpec
from svg_simplify.svg.nodes import SHAPE_KINDS, Document, ElementKind, Node
from svg_simplify.text.layout import TextLayoutEngine
from svg_simplify.tree import (
    ClipPath,
    Fill,
    Filter,
    GroupNode,
    PathNode,
    SimplifiedTree,
    TextNode,
)
from svg_simplify.tree import Node as TreeNode

logger = logging.getLogger(__name__)

RENDER_MODE = "render"
CLIP_MODE = "clip"

_CLIP_CONTENT_KINDS = SHAPE_KINDS | {ElementKind.TEXT, ElementKind.USE}
_UNSUPPORTED_KINDS = frozenset({ElementKind.IMAGE, ElementKind.FOREIGN_OBJECT})
_CLIP_FILL = PaintSpec(PaintKind.COLOR, BLACK)


@dataclass(frozen=True)
class ResolveContext:
    """Inherited state for the element being converted.

    Attributes:
        style: Computed style of the parent element (None at the root).
        transform: Absolute transform of the parent's user space.
        units: Unit context of the nearest viewport.
        depth: Nesting depth of groups, ``use`` and viewports.
        path: Ids of the definitions currently being resolved.
        mode: ``"render"``, or ``"clip"`` inside clip path content.
        keep_ids: Whether element ids are copied to the output.
    """

    style: ResolvedStyle | None
    transform: Transform
    units: UnitContext
    depth: int = 0
    path: ResolutionPath = ()
    mode: str = RENDER_MODE
    keep_ids: bool = True

    def with_path(self, path: ResolutionPath) -> ResolveContext:
        return replace(self, path=path)

    def with_transform(self, transform: Transform) -> ResolveContext:
        return replace(self, transform=transform)

    def child(
        self, style: ResolvedStyle, transform: Transform, units: UnitContext | None = None
    ) -> ResolveContext:
        """Context for the children of an element with ``style``."""
        return replace(
            self,
            style=style,
            transform=transform,
            units=units if units is not None else self.units,
            depth=self.depth + 1,
        )


def _language_matches(value: str, languages: list[str]) -> bool:
    for tag in (part.strip() for part in value.split(",")):
        if not tag:
            continue
        for language in languages:
            if tag == language or tag.startswith(language + "-"):
                return True
    return False


class Converter:
    """Convert one parsed document.

    Args:
        document: Parsed input.
        config: Pipeline options.
        font_db: Shared, read-only font database.
        diagnostics: Log receiving every non-fatal problem.
    """

    def __init__(
        self,
        document: Document,
        config: Config,
        font_db: FontDatabase,
        diagnostics: DiagnosticLog | None = None,
    ) -> None:
        self.document = document
        self.config = config
        self.font_db = font_db
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self.refs = ReferenceResolver(document, self.diagnostics)
        self.styles = StyleResolver(document, config.default_font_family, self.diagnostics)
        self.paints = PaintResolver(self)
        self.effects = EffectResolver(self)
        self.text = TextLayoutEngine(self)
        self.node_count = 0
        self._limit_hit = False
        self._handlers = {
            ElementKind.GROUP: self._convert_group,
            ElementKind.SWITCH: self._convert_switch,
            ElementKind.SVG: self._convert_svg,
            ElementKind.USE: self._convert_use,
            ElementKind.TEXT: self._convert_text,
        }
        for kind in SHAPE_KINDS:
            self._handlers[kind] = self._convert_shape

    def convert(self, units: UnitContext) -> SimplifiedTree:
        """Convert the whole document.

        ``units`` carries the DPI pair; viewport sizes are filled in here.
        """
        root = self.document.root
        viewport = root_viewport(root, units, self.diagnostics)

        tree = SimplifiedTree(viewport.rect.width, viewport.rect.height)
        if viewport.degenerate:
            logger.debug("Root viewport is degenerate, nothing to render")
            return tree

        units = viewport.content_units(units)
        style = self.styles.compute(root, None, units)
        if style.display == "none":
            return tree
        ctx = ResolveContext(style=None, transform=Transform(), units=units)
        children = self._convert_children(root, ctx.child(style, viewport.transform))
        try:
            tree.root.children = self._finish_group(
                root, style, ctx, viewport.transform, children, wrapper=True
            )
        except ResourceLimitExceededError as e:
            self._record_limit(e, root)
        logger.debug(
            "Converted %s: %d nodes, %d diagnostics",
            root.node_id,
            self.node_count,
            len(self.diagnostics),
        )
        return tree

    # Entry points used by paint and effect resolution

    def convert_definition_content(self, node: Node, ctx: ResolveContext) -> list[TreeNode]:
        """Convert the children of a pattern or mask.

        Content inherits the definition's own document style, not the style
        of the referencing element. Ids are not copied.
        """
        style = self.styles.document_style(node, ctx.units)
        inner = replace(ctx, style=style, depth=ctx.depth + 1, mode=RENDER_MODE, keep_ids=False)
        return self._convert_children(node, inner)

    def convert_clip_content(self, clip_node: Node, ctx: ResolveContext) -> list[TreeNode]:
        """Convert the children of a ``<clipPath>``.

        Only shapes, text and ``use`` contribute; they are painted solid
        black with ``clip-rule`` as fill rule and never stroked.
        """
        style = self.styles.document_style(clip_node, ctx.units)
        inner = replace(ctx, style=style, depth=ctx.depth + 1, mode=CLIP_MODE, keep_ids=False)
        return self._convert_children(clip_node, inner)

    # Traversal

    def _convert_children(self, node: Node, ctx: ResolveContext) -> list[TreeNode]:
        result: list[TreeNode] = []
        for child in node.children:
            try:
                result.extend(self._convert_node(child, ctx))
            except ResourceLimitExceededError as e:
                self._record_limit(e, child)
            except SimplifyError as e:
                self.diagnostics.record(e, e.node_id or child.node_id)
        return result

    def _convert_node(self, node: Node, ctx: ResolveContext) -> list[TreeNode]:
        if not node.is_svg:
            return []
        if ctx.mode == CLIP_MODE and node.kind not in _CLIP_CONTENT_KINDS:
            return []
        if node.kind in _UNSUPPORTED_KINDS:
            raise UnsupportedElementError(f"<{node.tag}> is not supported", node.node_id)
        handler = self._handlers.get(node.kind)
        if handler is None:
            return []
        if ctx.depth > self.config.max_depth:
            raise ResourceLimitExceededError(
                f"nesting deeper than {self.config.max_depth} levels", node.node_id
            )

        style = self.styles.compute(node, ctx.style, ctx.units)
        if style.display == "none":
            return []
        if ctx.mode == CLIP_MODE:
            style = replace(
                style,
                fill=_CLIP_FILL,
                fill_opacity=1.0,
                fill_rule=style.clip_rule,
                stroke=PAINT_NONE,
                opacity=1.0,
                mask=None,
                filter=(),
                mix_blend_mode="normal",
                isolation="auto",
            )
        return handler(node, style, ctx)

    def _record_limit(self, error: ResourceLimitExceededError, node: Node) -> None:
        # Later hits are consequences of the first one.
        if not self._limit_hit:
            self._limit_hit = True
            self.diagnostics.record(error, error.node_id or node.node_id)

    def _count(self, amount: int = 1) -> None:
        self.node_count += amount
        if self.node_count > self.config.max_nodes:
            raise ResourceLimitExceededError(
                f"more than {self.config.max_nodes} output nodes"
            )

    def _id(self, node: Node, ctx: ResolveContext) -> str:
        if not ctx.keep_ids:
            return ""
        return node.element_id or ""

    def _local_transform(self, node: Node) -> Transform | None:
        """The ``transform`` attribute; None when the element must not render."""
        try:
            transform = parse_transform(node.get("transform"))
        except InvalidValueError as e:
            self.diagnostics.record(e, node.node_id)
            return Transform()
        if not transform.is_invertible():
            return None
        return transform

    # Groups

    def _finish_group(
        self,
        node: Node,
        style: ResolvedStyle,
        ctx: ResolveContext,
        transform: Transform,
        children: list[TreeNode],
        wrapper: bool = False,
    ) -> list[TreeNode]:
        """Wrap ``children`` with the opacity and effects of ``node``.

        ``children`` carry transforms relative to ``node``'s user space. A
        ``wrapper`` group only exists to hold the effects of a leaf (or of
        the root); it carries no id and dissolves when it has none.
        """
        abs_transform = ctx.transform @ transform
        group = GroupNode(
            id="" if wrapper else self._id(node, ctx),
            transform=transform,
            abs_transform=abs_transform,
            opacity=style.opacity,
            blend_mode=style.mix_blend_mode,
            isolate=style.isolation == "isolate",
            children=children,
        )
        if style.clip_path or style.mask or style.filter:
            group.effects = self.effects.resolve(
                node, style, group.bbox(), ctx.with_transform(abs_transform)
            )
        return self._emit_group(group, dissolve=wrapper)

    def _emit_group(self, group: GroupNode, dissolve: bool = False) -> list[TreeNode]:
        """Drop empty groups; with ``dissolve``, hoist the children of no-op groups."""
        has_filter = any(isinstance(effect, Filter) for effect in group.effects)
        if not group.children and not has_filter:
            return []
        is_noop = not (
            group.effects
            or group.opacity < 1.0
            or group.blend_mode != "normal"
            or group.isolate
        )
        if not (dissolve and is_noop):
            self._count()
            return [group]
        for child in group.children:
            child.transform = group.transform @ child.transform
        return group.children

    def _convert_group(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        transform = self._local_transform(node)
        if transform is None:
            return []
        children = self._convert_children(node, ctx.child(style, ctx.transform @ transform))
        return self._finish_group(node, style, ctx, transform, children)

    def _convert_switch(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        transform = self._local_transform(node)
        if transform is None:
            return []
        chosen = next((child for child in node.children if self._passes(child)), None)
        if chosen is None:
            return []
        children = []
        inner = ctx.child(style, ctx.transform @ transform)
        try:
            children = self._convert_node(chosen, inner)
        except ResourceLimitExceededError as e:
            self._record_limit(e, chosen)
        except SimplifyError as e:
            self.diagnostics.record(e, e.node_id or chosen.node_id)
        return self._finish_group(node, style, ctx, transform, children)

    def _passes(self, node: Node) -> bool:
        """Conditional processing attributes of a ``<switch>`` child."""
        if not node.is_svg or node.kind in (ElementKind.UNKNOWN, ElementKind.STYLE):
            return False
        if node.get("requiredExtensions") is not None:
            return False
        language = node.get("systemLanguage")
        if language is not None and not _language_matches(language, self.config.languages):
            return False
        return True

    # Viewports and use

    def _convert_svg(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        transform = self._local_transform(node)
        if transform is None:
            return []
        viewport = nested_viewport(node, ctx.units, diagnostics=self.diagnostics)
        children = self._viewport_content(node, style, ctx, viewport, ctx.transform @ transform)
        return self._finish_group(node, style, ctx, transform, children, wrapper=True)

    def _viewport_content(
        self,
        node: Node,
        style: ResolvedStyle,
        ctx: ResolveContext,
        viewport: Viewport,
        outer: Transform,
    ) -> list[TreeNode]:
        """Children of a nested ``<svg>`` or ``<symbol>``, clipped to the viewport.

        ``outer`` is the absolute transform of the space the viewport
        rectangle is declared in.
        """
        if viewport.degenerate:
            return []
        abs_transform = outer @ viewport.transform
        inner_ctx = ctx.child(style, abs_transform, viewport.content_units(ctx.units))
        content = GroupNode(
            transform=viewport.transform,
            abs_transform=abs_transform,
            children=self._convert_children(node, inner_ctx),
        )
        if content.children and style.overflow in ("hidden", "scroll"):
            clip_rect = viewport.rect.transformed(viewport.transform.inverse())
            content.effects.append(
                ClipPath(
                    children=[
                        PathNode(
                            data=PathData.from_rect(clip_rect),
                            fill=Fill(BLACK),
                            abs_transform=abs_transform,
                        )
                    ]
                )
            )
        return self._emit_group(content)

    def _convert_use(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        target = self.refs.href_target(node)
        if target is None:
            return []
        if target is node or any(ancestor is target for ancestor in node.ancestors()):
            raise CyclicReferenceError([node.node_id, target.node_id], node.node_id)
        path = self.refs.enter(ctx.path, target)

        transform = self._local_transform(node)
        if transform is None:
            return []
        x = ctx.units.length(node.get("x"), Axis.X)
        y = ctx.units.length(node.get("y"), Axis.Y)
        transform = transform @ Transform.translate(x, y)
        abs_transform = ctx.transform @ transform
        inner = replace(ctx.child(style, abs_transform), path=path, keep_ids=False)

        if target.kind in (ElementKind.SYMBOL, ElementKind.SVG):
            if ctx.mode == CLIP_MODE:
                return []
            target_style = self.styles.compute(target, style, ctx.units)
            if target_style.display == "none":
                return []
            viewport = nested_viewport(
                target, ctx.units, node.get("width"), node.get("height"), self.diagnostics
            )
            target_transform = Transform()
            if target.kind is ElementKind.SVG:
                target_transform = self._local_transform(target)
                if target_transform is None:
                    return []
            children = self._viewport_content(
                target,
                target_style,
                inner,
                viewport,
                abs_transform @ target_transform,
            )
            if target.kind is ElementKind.SVG:
                children = self._finish_group(
                    target, target_style, inner, target_transform, children, wrapper=True
                )
        else:
            children = self._convert_node(target, inner)
        return self._finish_group(node, style, ctx, transform, children)

    # Leaves

    def _convert_shape(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        if not style.is_visible:
            return []
        transform = self._local_transform(node)
        if transform is None:
            return []
        abs_transform = ctx.transform @ transform
        # Tolerance is in canonical units; shrink it for magnified shapes.
        tolerance = self.config.arc_tolerance / max(abs_transform.max_scale(), 1e-9)
        data = lower_shape(
            node,
            ctx.units.with_font_size(style.font_size),
            self.config.arc_preservation,
            tolerance,
        )
        if data is None or not data:
            return []

        bbox = data.bbox()
        shape_ctx = ctx.with_transform(abs_transform)
        fill = self.paints.fill(node, style, bbox, shape_ctx)
        stroke = self.paints.stroke(node, style, bbox, shape_ctx)
        if fill is None and stroke is None:
            return []
        self._count()
        shape = PathNode(
            id=self._id(node, ctx),
            data=data,
            fill=fill,
            stroke=stroke,
            abs_transform=abs_transform,
        )
        return self._finish_group(node, style, ctx, transform, [shape], wrapper=True)

    def _convert_text(self, node: Node, style: ResolvedStyle, ctx: ResolveContext):
        transform = self._local_transform(node)
        if transform is None:
            return []
        abs_transform = ctx.transform @ transform
        runs = self.text.layout(node, style, ctx.child(style, abs_transform))
        if not runs:
            return []
        self._count()
        text = TextNode(id=self._id(node, ctx), runs=runs, abs_transform=abs_transform)
        return self._finish_group(node, style, ctx, transform, [text], wrapper=True)


def build_tree(
    document: Document,
    config: Config,
    font_db: FontDatabase,
    units: UnitContext,
    diagnostics: DiagnosticLog | None = None,
) -> SimplifiedTree:
    """Run the resolution pipeline on a parsed document."""
    return Converter(document, config, font_db, diagnostics).convert(units)
