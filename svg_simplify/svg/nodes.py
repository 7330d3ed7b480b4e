"""Generic attributed document tree produced by the parser.

Nodes keep every attribute verbatim (unknown ones included); later stages
decide what applies. Only the SVG, XLink and XML namespaces are interpreted:
XLink and XML attributes are stored under their conventional prefixed names
(``xlink:href``, ``xml:space``), other namespaced attributes keep their
``{uri}local`` form.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XML_NS = "http://www.w3.org/XML/1998/namespace"


class ElementKind(Enum):
    """Closed set of element kinds the pipeline dispatches on."""

    SVG = "svg"
    GROUP = "g"
    DEFS = "defs"
    USE = "use"
    SYMBOL = "symbol"
    SWITCH = "switch"
    PATH = "path"
    RECT = "rect"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    LINE = "line"
    POLYLINE = "polyline"
    POLYGON = "polygon"
    TEXT = "text"
    TSPAN = "tspan"
    TEXT_PATH = "textPath"
    LINEAR_GRADIENT = "linearGradient"
    RADIAL_GRADIENT = "radialGradient"
    STOP = "stop"
    PATTERN = "pattern"
    CLIP_PATH = "clipPath"
    MASK = "mask"
    FILTER = "filter"
    FILTER_PRIMITIVE = "fe"
    STYLE = "style"
    IMAGE = "image"
    MARKER = "marker"
    FOREIGN_OBJECT = "foreignObject"
    UNKNOWN = "unknown"


_KIND_BY_TAG = {kind.value: kind for kind in ElementKind}
# <a> carries no link semantics here; it renders like a group.
_KIND_BY_TAG["a"] = ElementKind.GROUP
del _KIND_BY_TAG["fe"], _KIND_BY_TAG["unknown"]

SHAPE_KINDS = frozenset(
    {
        ElementKind.PATH,
        ElementKind.RECT,
        ElementKind.CIRCLE,
        ElementKind.ELLIPSE,
        ElementKind.LINE,
        ElementKind.POLYLINE,
        ElementKind.POLYGON,
    }
)
PAINT_SERVER_KINDS = frozenset(
    {ElementKind.LINEAR_GRADIENT, ElementKind.RADIAL_GRADIENT, ElementKind.PATTERN}
)
GRADIENT_KINDS = frozenset({ElementKind.LINEAR_GRADIENT, ElementKind.RADIAL_GRADIENT})
TEXT_CONTENT_KINDS = frozenset(
    {ElementKind.TEXT, ElementKind.TSPAN, ElementKind.TEXT_PATH}
)


def kind_for_tag(namespace: str, tag: str) -> ElementKind:
    """Map a qualified element name onto its kind.

    Elements without a namespace are treated as SVG, matching how browsers
    render standalone documents that omit ``xmlns``.
    """
    if namespace not in ("", SVG_NS):
        return ElementKind.UNKNOWN
    if tag.startswith("fe") and tag[2:3].isupper():
        return ElementKind.FILTER_PRIMITIVE
    return _KIND_BY_TAG.get(tag, ElementKind.UNKNOWN)


@dataclass(eq=False)
class Node:
    """One element of the parsed document.

    Attributes:
        kind: Element kind used for dispatch.
        tag: Local element name as written (``"rect"``, ``"feGaussianBlur"``).
        namespace: Namespace URI of the element, ``""`` if none.
        attributes: Raw attribute values keyed by normalized name.
        children: Child elements in document order, owned by this node.
        text: Character data before the first child.
        tail: Character data following this element inside its parent.
        node_id: The ``id`` attribute, or a generated ``tag[index]`` label
            used for diagnostics.
        parent: Back-reference to the parent node (not an ownership edge).
    """

    kind: ElementKind
    tag: str
    namespace: str = SVG_NS
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)
    text: str | None = None
    tail: str | None = None
    node_id: str = ""
    parent: Node | None = field(default=None, repr=False)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    @property
    def element_id(self) -> str | None:
        return self.attributes.get("id")

    @property
    def href(self) -> str | None:
        """``href`` (SVG 2) with ``xlink:href`` as fallback."""
        value = self.attributes.get("href")
        if value is None:
            value = self.attributes.get("xlink:href")
        return value

    @property
    def is_svg(self) -> bool:
        return self.namespace in ("", SVG_NS)

    def append(self, child: Node) -> None:
        child.parent = self
        self.children.append(child)

    def ancestors(self) -> Iterator[Node]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def iter(self) -> Iterator[Node]:
        """Pre-order traversal of this subtree (iterative)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        return f"<Node {self.tag} {self.node_id!r}>"


@dataclass(eq=False)
class Document:
    """Parsed document: the root node plus lookup tables.

    Attributes:
        root: The outermost ``<svg>`` element.
        ids: Elements by ``id``; the first element wins on duplicates.
        namespaces: Prefix to URI declarations seen in the document.
        stylesheets: Text of every ``<style>`` element, in document order.
    """

    root: Node
    ids: dict[str, Node] = field(default_factory=dict)
    namespaces: dict[str, str] = field(default_factory=dict)
    stylesheets: list[str] = field(default_factory=list)

    def get(self, element_id: str) -> Node | None:
        return self.ids.get(element_id)

    def iter(self) -> Iterator[Node]:
        return self.root.iter()
