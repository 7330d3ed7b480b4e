"""Unit tests for reference lookup and cycle detection."""

import pytest

from svg_simplify.diagnostics import DiagnosticLog
from svg_simplify.exceptions import CyclicReferenceError, InvalidValueError
from svg_simplify.resolve.references import ReferenceResolver
from svg_simplify.svg.nodes import GRADIENT_KINDS, ElementKind
from svg_simplify.svg.parser import parse_svg_string
from svg_simplify.tree import PathNode


def resolver_for(body: str) -> ReferenceResolver:
    doc = parse_svg_string(
        '<svg xmlns="http://www.w3.org/2000/svg" '
        f'xmlns:xlink="http://www.w3.org/1999/xlink">{body}</svg>'
    )
    return ReferenceResolver(doc, DiagnosticLog())


class TestLookup:
    """Tests for ReferenceResolver.lookup."""

    def test_bare_id_and_url_fragment(self) -> None:
        """Both ``id`` and ``#id`` forms resolve."""
        refs = resolver_for('<clipPath id="c"/><rect id="r"/>')
        node = refs.document.get("r")
        assert refs.lookup(node, "c", {ElementKind.CLIP_PATH}) is refs.document.get("c")
        assert refs.lookup(node, "#c", {ElementKind.CLIP_PATH}) is refs.document.get("c")

    def test_missing_target(self) -> None:
        """Missing targets are recorded against the referencing node."""
        refs = resolver_for('<rect id="r"/>')
        assert refs.lookup(refs.document.get("r"), "nope", {ElementKind.MASK}) is None
        (diagnostic,) = refs.diagnostics.of_kind(InvalidValueError)
        assert diagnostic.node_id == "r"
        assert "#nope" in diagnostic.message

    def test_wrong_kind(self) -> None:
        """A target of the wrong kind is rejected."""
        refs = resolver_for('<mask id="m"/><rect id="r"/>')
        assert refs.lookup(refs.document.get("r"), "m", {ElementKind.CLIP_PATH}) is None
        assert "expected one of <clipPath>" in refs.diagnostics.of_kind(InvalidValueError)[0].message

    def test_empty_reference(self) -> None:
        """No reference, no lookup, no diagnostic."""
        refs = resolver_for('<rect id="r"/>')
        assert refs.lookup(refs.document.get("r"), None, {ElementKind.MASK}) is None
        assert not refs.diagnostics


class TestHref:
    """Tests for href targets and template chains."""

    def test_xlink_href(self) -> None:
        """xlink:href resolves like href."""
        refs = resolver_for('<rect id="r"/><use id="u" xlink:href="#r"/>')
        assert refs.href_target(refs.document.get("u")) is refs.document.get("r")

    def test_external_href_is_recorded(self) -> None:
        """External resources are not fetched."""
        refs = resolver_for('<use id="u" href="other.svg#r"/>')
        assert refs.href_target(refs.document.get("u")) is None
        assert refs.diagnostics.of_kind(InvalidValueError)

    def test_gradient_chain(self) -> None:
        """Gradients may inherit from gradients of the other kind."""
        refs = resolver_for(
            '<linearGradient id="a"/>'
            '<radialGradient id="b" href="#a"/>'
            '<linearGradient id="c" href="#b"/>'
        )
        chain = refs.href_chain(refs.document.get("c"))
        assert [node.element_id for node in chain] == ["c", "b", "a"]
        assert all(node.kind in GRADIENT_KINDS for node in chain)

    def test_chain_stops_at_incompatible_element(self) -> None:
        """A gradient cannot inherit from a pattern."""
        refs = resolver_for('<pattern id="p"/><linearGradient id="g" href="#p"/>')
        chain = refs.href_chain(refs.document.get("g"))
        assert [node.element_id for node in chain] == ["g"]

    def test_self_reference_is_cyclic(self) -> None:
        """A gradient referring to itself is a cycle."""
        refs = resolver_for('<linearGradient id="g" href="#g"/>')
        with pytest.raises(CyclicReferenceError) as exc_info:
            refs.href_chain(refs.document.get("g"))
        assert exc_info.value.chain == ["g", "g"]

    def test_longer_cycle(self) -> None:
        """Cycles through several elements are detected."""
        refs = resolver_for(
            '<linearGradient id="a" href="#b"/><linearGradient id="b" href="#a"/>'
        )
        with pytest.raises(CyclicReferenceError, match="#a -> #b -> #a"):
            refs.href_chain(refs.document.get("a"))


class TestResolutionPath:
    """Tests for ReferenceResolver.enter."""

    def test_enter_extends_path(self) -> None:
        refs = resolver_for('<clipPath id="a"/><clipPath id="b"/>')
        path = refs.enter((), refs.document.get("a"))
        assert refs.enter(path, refs.document.get("b")) == ("a", "b")

    def test_reentering_raises(self) -> None:
        """Entering an element that is already being resolved is a cycle."""
        refs = resolver_for('<clipPath id="a"/><clipPath id="b"/>')
        node_a = refs.document.get("a")
        path = refs.enter(refs.enter((), node_a), refs.document.get("b"))
        with pytest.raises(CyclicReferenceError) as exc_info:
            refs.enter(path, node_a)
        assert exc_info.value.chain == ["a", "b", "a"]


class TestCyclesInDocuments:
    """Cycles fail only the reference that closes them."""

    def test_use_of_ancestor(self, simplifier) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <g id="loop"><rect id="keep" width="10" height="10"/><use href="#loop"/></g>
        </svg>"""
        tree, diagnostics, _ = simplifier.run(svg)
        assert diagnostics.of_kind(CyclicReferenceError)
        assert [node.id for node in tree.iter() if isinstance(node, PathNode)] == ["keep"]

    def test_clip_path_cycle(self, simplifier) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <clipPath id="a" clip-path="url(#b)"><rect width="5" height="5"/></clipPath>
          <clipPath id="b" clip-path="url(#a)"><rect width="5" height="5"/></clipPath>
          <rect id="shape" width="10" height="10" clip-path="url(#a)"/>
        </svg>"""
        tree, diagnostics, _ = simplifier.run(svg)
        assert diagnostics.of_kind(CyclicReferenceError)
        assert any(isinstance(node, PathNode) and node.id == "shape" for node in tree.iter())

    def test_mutual_use(self, simplifier) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <defs>
            <g id="a"><use href="#b"/></g>
            <g id="b"><use href="#a"/></g>
          </defs>
          <use href="#a"/>
        </svg>"""
        tree, diagnostics, _ = simplifier.run(svg)
        assert diagnostics.of_kind(CyclicReferenceError)
        assert tree.is_empty
