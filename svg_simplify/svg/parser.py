"""SVG parsing into the generic document tree.

Parsing goes through defusedxml so external entities and entity expansion
attacks are refused. Internal entity declarations (common in Illustrator
exports) can be allowed explicitly.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from xml.etree.ElementTree import Element, ParseError

import defusedxml
from defusedxml import ElementTree as DefusedET

from svg_simplify.exceptions import XmlSyntaxError
from svg_simplify.svg.nodes import (
    XLINK_NS,
    XML_NS,
    Document,
    ElementKind,
    Node,
    kind_for_tag,
)

logger = logging.getLogger(__name__)

_ATTRIBUTE_PREFIXES = {XLINK_NS: "xlink", XML_NS: "xml"}


def parse_svg_string(text: str | bytes, allow_entities: bool = False) -> Document:
    """Parse SVG markup.

    Args:
        text: Document text. ``str`` input is encoded as UTF-8; ``bytes`` are
            passed through so an XML declaration can name another encoding.
        allow_entities: Accept internal entity declarations in the DTD.

    Raises:
        XmlSyntaxError: The markup is not well-formed, uses forbidden
            constructs, or its root element is not ``<svg>``.
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    namespaces: dict[str, str] = {}
    root_element: Element | None = None

    try:
        events = DefusedET.iterparse(
            io.BytesIO(data),
            events=("start-ns", "start"),
            forbid_entities=not allow_entities,
        )
        for event, item in events:
            if event == "start-ns":
                prefix, uri = item
                namespaces.setdefault(prefix, uri)
            elif root_element is None:
                root_element = item
    except ParseError as e:
        line, column = getattr(e, "position", (None, None))
        raise XmlSyntaxError(_parse_error_message(e), line, column) from e
    except defusedxml.DefusedXmlException as e:
        raise XmlSyntaxError(f"forbidden XML construct: {e}") from e

    if root_element is None:
        raise XmlSyntaxError("document has no root element")

    document = _build_document(root_element, namespaces)
    if document.root.kind is not ElementKind.SVG:
        raise XmlSyntaxError(f"root element is <{document.root.tag}>, expected <svg>")
    logger.debug(
        "Parsed document: %d elements, %d ids", sum(1 for _ in document.iter()), len(document.ids)
    )
    return document


def parse_svg(path: Path | str, allow_entities: bool = False) -> Document:
    """Parse an SVG file from disk."""
    return parse_svg_string(Path(path).read_bytes(), allow_entities=allow_entities)


def _parse_error_message(error: ParseError) -> str:
    # expat appends ": line L, column C"; the position is carried separately.
    message = str(error)
    head, sep, _tail = message.partition(": line ")
    return head if sep else message


def split_qname(qname: str) -> tuple[str, str]:
    """Split ElementTree's ``{uri}local`` notation."""
    if qname.startswith("{"):
        uri, _, local = qname[1:].partition("}")
        return uri, local
    return "", qname


def _normalize_attributes(raw: dict[str, str]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for qname, value in raw.items():
        uri, local = split_qname(qname)
        if not uri:
            attributes[local] = value
        elif uri in _ATTRIBUTE_PREFIXES:
            attributes[f"{_ATTRIBUTE_PREFIXES[uri]}:{local}"] = value
        else:
            attributes[qname] = value
    return attributes


def _make_node(element: Element, index: int) -> Node:
    namespace, tag = split_qname(element.tag)
    attributes = _normalize_attributes(dict(element.attrib))
    node = Node(
        kind=kind_for_tag(namespace, tag),
        tag=tag,
        namespace=namespace,
        attributes=attributes,
        text=element.text,
        tail=element.tail,
    )
    node.node_id = attributes.get("id") or f"{tag}[{index}]"
    return node


def _build_document(root_element: Element, namespaces: dict[str, str]) -> Document:
    """Convert the ElementTree into ``Node`` objects without recursion."""
    counter = 0
    root = _make_node(root_element, counter)
    # The root's tail lies outside the document element.
    root.tail = None
    document = Document(root=root, namespaces=namespaces)

    stack: list[tuple[Element, Node]] = [(root_element, root)]
    while stack:
        element, node = stack.pop()
        if node.element_id and node.element_id not in document.ids:
            document.ids[node.element_id] = node
        if node.kind is ElementKind.STYLE:
            style_type = node.get("type", "text/css")
            if style_type in ("", "text/css") and node.text:
                document.stylesheets.append(node.text)
        children = []
        for child_element in element:
            if not isinstance(child_element.tag, str):
                # Comments and processing instructions.
                continue
            counter += 1
            child = _make_node(child_element, counter)
            node.append(child)
            children.append((child_element, child))
        stack.extend(reversed(children))
    return document
