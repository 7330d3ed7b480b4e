"""Reference lookup and cycle detection.

Definitions live in the document's flat id table. A resolution path is an
immutable tuple of the ids currently being resolved; entering an id already
on the path is a cycle. Paths are threaded through the traversal context, so
a cycle fails only the reference that closes it.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from svg_simplify.diagnostics import DiagnosticLog
from svg_simplify.exceptions import CyclicReferenceError, InvalidValueError
from svg_simplify.style.values import fragment_id
from svg_simplify.svg.nodes import GRADIENT_KINDS, Document, ElementKind, Node

logger = logging.getLogger(__name__)

ResolutionPath = tuple[str, ...]


class ReferenceResolver:
    """Resolve ids and ``href`` links against one document."""

    def __init__(self, document: Document, diagnostics: DiagnosticLog | None = None) -> None:
        self.document = document
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()

    def lookup(
        self,
        node: Node,
        reference: str | None,
        kinds: Collection[ElementKind],
    ) -> Node | None:
        """Find the element ``reference`` names, checking its kind.

        ``reference`` is a bare id or a ``#id`` URL. Missing targets and
        targets of the wrong kind are recorded and yield None.
        """
        if not reference:
            return None
        element_id = reference[1:] if reference.startswith("#") else reference
        target = self.document.get(element_id)
        if target is None:
            self.diagnostics.record(
                InvalidValueError(f"reference to missing element #{element_id}"), node.node_id
            )
            return None
        if target.kind not in kinds:
            expected = ", ".join(sorted(f"<{kind.value}>" for kind in kinds))
            self.diagnostics.record(
                InvalidValueError(
                    f"#{element_id} is a <{target.tag}>, expected one of {expected}"
                ),
                node.node_id,
            )
            return None
        return target

    def href_target(self, node: Node) -> Node | None:
        """Element named by the ``href``/``xlink:href`` of ``node``, if any."""
        href = node.href
        if href is None:
            return None
        try:
            element_id = fragment_id(href)
        except InvalidValueError as e:
            self.diagnostics.record(e, node.node_id)
            return None
        target = self.document.get(element_id)
        if target is None:
            self.diagnostics.record(
                InvalidValueError(f"href to missing element #{element_id}"), node.node_id
            )
        return target

    def href_chain(self, node: Node) -> list[Node]:
        """Follow template ``href`` links of a paint server or filter.

        Returns ``node`` followed by the elements it inherits from, stopping
        at the first link to an incompatible element.

        Raises:
            CyclicReferenceError: The chain loops back onto an element
                already in it.
        """
        chain = [node]
        seen = {id(node)}
        current = node
        while True:
            target = self.href_target(current)
            if target is None or not _compatible(node.kind, target.kind):
                return chain
            if id(target) in seen:
                ids = [n.node_id for n in chain] + [target.node_id]
                raise CyclicReferenceError(ids, node.node_id)
            seen.add(id(target))
            chain.append(target)
            current = target

    def enter(self, path: ResolutionPath, node: Node) -> ResolutionPath:
        """Add ``node`` to a resolution path.

        Raises:
            CyclicReferenceError: ``node`` is already being resolved.
        """
        if node.node_id in path:
            start = path.index(node.node_id)
            raise CyclicReferenceError([*path[start:], node.node_id], node.node_id)
        return (*path, node.node_id)


def _compatible(source: ElementKind, target: ElementKind) -> bool:
    if source in GRADIENT_KINDS:
        return target in GRADIENT_KINDS
    return source is target
