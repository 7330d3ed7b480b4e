"""CSS cascade: stylesheet rules, presentation attributes and inline style.

Declarations applying to an element are collected with a precedence rank,
sorted, and folded into one ``ResolvedStyle``. Precedence, lowest first:

1. user agent defaults and inherited values (used only when nothing else
   declares the property),
2. ``<style>`` rules, by selector specificity then source order,
3. presentation attributes,
4. the inline ``style`` attribute,
5. ``!important`` stylesheet declarations,
6. ``!important`` inline declarations.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace

import cssselect2
import tinycss2

from svg_simplify.diagnostics import DiagnosticLog
from svg_simplify.exceptions import InvalidValueError, UnsupportedElementError
from svg_simplify.geometry.units import UnitContext
from svg_simplify.style.properties import (
    EFFECT_PROPERTIES,
    FONT_SIZE_KEYWORDS,
    PROPERTIES,
    ComputeContext,
    PropertyDef,
    ResolvedStyle,
)
from svg_simplify.style.values import BLACK
from svg_simplify.svg.nodes import Document, ElementKind, Node

logger = logging.getLogger(__name__)

TIER_STYLESHEET = 1
TIER_ATTRIBUTE = 2
TIER_INLINE = 3
TIER_STYLESHEET_IMPORTANT = 4
TIER_INLINE_IMPORTANT = 5

# Elements that clip their content by default (user agent stylesheet).
_OVERFLOW_HIDDEN_KINDS = frozenset(
    {ElementKind.SVG, ElementKind.SYMBOL, ElementKind.PATTERN, ElementKind.MARKER}
)


@dataclass(frozen=True)
class Declaration:
    """One applicable declaration with its cascade rank.

    ``position`` orders declarations as written on the element: presentation
    attributes first, then inline style, then stylesheet rules.
    """

    name: str
    value: str
    rank: tuple
    position: tuple[int, int]


class CSSMatcher(cssselect2.Matcher):
    """Matcher fed from ``<style>`` elements; payloads are declaration lists."""

    def __init__(self, diagnostics: DiagnosticLog) -> None:
        super().__init__()
        self.diagnostics = diagnostics
        self.rule_count = 0

    def add_styles(self, style_content: str) -> None:
        rules = tinycss2.parse_stylesheet(style_content, skip_comments=True, skip_whitespace=True)
        for rule in rules:
            if rule.type == "error":
                self.diagnostics.record(InvalidValueError(f"CSS syntax error: {rule.message}"))
                continue
            if rule.type == "at-rule":
                self.diagnostics.record(
                    UnsupportedElementError(f"@{rule.lower_at_keyword} rules are not supported")
                )
                continue
            try:
                selectors = cssselect2.compile_selector_list(rule.prelude)
            except cssselect2.SelectorError as e:
                selector_string = tinycss2.serialize(rule.prelude).strip()
                self.diagnostics.record(
                    InvalidValueError(f"unsupported selector {selector_string!r}: {e}")
                )
                continue
            declarations = _parse_declarations(rule.content, self.diagnostics)
            if not declarations:
                continue
            payload = (self.rule_count, declarations)
            self.rule_count += 1
            for selector in selectors:
                self.add_selector(selector, payload)


def _parse_declarations(
    content: str | list, diagnostics: DiagnosticLog, node_id: str | None = None
) -> list[tuple[str, str, bool]]:
    """Return ``(name, value, important)`` triples for supported properties."""
    result = []
    for item in tinycss2.parse_declaration_list(content, skip_comments=True, skip_whitespace=True):
        if item.type == "error":
            diagnostics.record(InvalidValueError(f"CSS syntax error: {item.message}"), node_id)
            continue
        if item.type != "declaration":
            continue
        name = item.lower_name
        if name not in PROPERTIES:
            if name in ("font", "marker", "marker-start", "marker-mid", "marker-end"):
                diagnostics.record(
                    UnsupportedElementError(f"property {name!r} is not supported"), node_id
                )
            continue
        value = tinycss2.serialize(item.value).strip()
        result.append((name, value, item.important))
    return result


class StyleResolver:
    """Compute ``ResolvedStyle`` records for the nodes of one document.

    Args:
        document: The parsed document (its stylesheets are compiled once).
        default_font_family: Initial ``font-family`` value.
        diagnostics: Sink for malformed values and unsupported CSS.
    """

    def __init__(
        self,
        document: Document,
        default_font_family: str = "Times New Roman",
        diagnostics: DiagnosticLog | None = None,
    ) -> None:
        self.document = document
        self.default_font_family = default_font_family
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._matcher = CSSMatcher(self.diagnostics)
        for sheet in document.stylesheets:
            self._matcher.add_styles(sheet)
        self._rule_matches = self._match_document() if self._matcher.rule_count else {}
        self._document_styles: dict[int, ResolvedStyle] = {}

    def _match_document(self) -> dict[int, list[tuple[tuple, tuple, list]]]:
        """Run every selector against a mirror ElementTree of the document."""
        mirror_of: dict[int, Node] = {}
        root = self._mirror(self.document.root, mirror_of)
        matches: dict[int, list[tuple[tuple, tuple, list]]] = {}
        wrapper = cssselect2.ElementWrapper.from_xml_root(root)
        for element in wrapper.iter_subtree():
            node = mirror_of[id(element.etree_element)]
            found = []
            for specificity, order, pseudo_type, payload in self._matcher.match(element):
                if pseudo_type is not None:
                    continue
                rule_index, declarations = payload
                found.append((specificity, (rule_index, order), declarations))
            if found:
                matches[id(node)] = found
        return matches

    @staticmethod
    def _mirror(root: Node, mirror_of: dict[int, Node]) -> ET.Element:
        def make(node: Node) -> ET.Element:
            tag = f"{{{node.namespace}}}{node.tag}" if node.namespace else node.tag
            attrib = {k: v for k, v in node.attributes.items() if ":" not in k and "{" not in k}
            element = ET.Element(tag, attrib)
            mirror_of[id(element)] = node
            return element

        mirror_root = make(root)
        stack = [(root, mirror_root)]
        while stack:
            node, element = stack.pop()
            for child in node.children:
                child_element = make(child)
                element.append(child_element)
                stack.append((child, child_element))
        return mirror_root

    def declarations(self, node: Node) -> list[Declaration]:
        """All declarations applying to ``node``, lowest precedence first."""
        result: list[Declaration] = []

        for index, (name, value) in enumerate(node.attributes.items()):
            if name in PROPERTIES:
                result.append(Declaration(name, value, (TIER_ATTRIBUTE, index), (0, index)))

        style_attr = node.get("style")
        if style_attr:
            inline = _parse_declarations(style_attr, self.diagnostics, node.node_id)
            for index, (name, value, important) in enumerate(inline):
                tier = TIER_INLINE_IMPORTANT if important else TIER_INLINE
                result.append(Declaration(name, value, (tier, index), (1, index)))

        for specificity, order, declarations in self._rule_matches.get(id(node), []):
            for index, (name, value, important) in enumerate(declarations):
                tier = TIER_STYLESHEET_IMPORTANT if important else TIER_STYLESHEET
                rank = (tier, *specificity, *order, index)
                result.append(Declaration(name, value, rank, (2, order[0])))

        result.sort(key=lambda decl: decl.rank)
        return result

    def compute(
        self, node: Node, parent_style: ResolvedStyle | None, units: UnitContext
    ) -> ResolvedStyle:
        """Fold the declarations of ``node`` over the inherited parent style.

        ``units`` supplies the viewport for percentages; the font size in it
        is replaced by the parent's computed size before em units resolve.
        """
        declarations = self.declarations(node)
        candidates: dict[str, list[str]] = {}
        for decl in reversed(declarations):
            candidates.setdefault(decl.name, []).append(decl.value)

        parent_font_size = (
            parent_style.font_size if parent_style is not None else FONT_SIZE_KEYWORDS["medium"]
        )
        ctx = ComputeContext(
            parent=parent_style,
            units=units.with_font_size(parent_font_size),
            color=parent_style.color if parent_style is not None else BLACK,
        )
        values = {}
        for prop in PROPERTIES.values():
            value = self._compute_property(prop, candidates.get(prop.name, []), node, ctx)
            values[prop.attr] = value
            if prop.name == "font-size":
                ctx = replace(ctx, units=ctx.units.with_font_size(value))
            elif prop.name == "color":
                ctx = replace(ctx, color=value)

        return ResolvedStyle(**values, effect_order=_effect_order(declarations))

    def _compute_property(
        self, prop: PropertyDef, candidates: list[str], node: Node, ctx: ComputeContext
    ):
        for text in candidates:
            keyword = text.strip().lower()
            if keyword == "inherit" or (keyword == "unset" and prop.inherited):
                return self._inherited_value(prop, node, ctx)
            if keyword in ("initial", "unset"):
                return self._initial_value(prop, node, ctx)
            try:
                return prop.compute(text, ctx)
            except InvalidValueError as e:
                self.diagnostics.record(type(e)(f"{prop.name}: {e.message}"), node.node_id)
        if prop.inherited:
            return self._inherited_value(prop, node, ctx)
        return self._initial_value(prop, node, ctx)

    def _inherited_value(self, prop: PropertyDef, node: Node, ctx: ComputeContext):
        if ctx.parent is None:
            return self._initial_value(prop, node, ctx)
        return getattr(ctx.parent, prop.attr)

    def _initial_value(self, prop: PropertyDef, node: Node, ctx: ComputeContext):
        if prop.name == "font-family":
            return (self.default_font_family,)
        if prop.name == "overflow" and node.kind in _OVERFLOW_HIDDEN_KINDS:
            if node.kind is not ElementKind.SVG or node.parent is not None:
                return "hidden"
        return prop.compute(prop.initial, ctx)

    def document_style(self, node: Node, units: UnitContext) -> ResolvedStyle:
        """Style of ``node`` as inherited along its document ancestors.

        Used for definitions (gradient stops, clip path children, filter
        primitives) whose style does not depend on where they are referenced.
        """
        cached = self._document_styles.get(id(node))
        if cached is not None:
            return cached
        chain = [node, *node.ancestors()]
        chain.reverse()
        parent_style = None
        for current in chain:
            style = self._document_styles.get(id(current))
            if style is None:
                style = self.compute(current, parent_style, units)
                self._document_styles[id(current)] = style
            parent_style = style
        return parent_style


def _effect_order(declarations: list[Declaration]) -> tuple[str, ...]:
    """Order of clip-path, mask and filter as written on the element."""
    written = sorted(
        (decl for decl in declarations if decl.name in EFFECT_PROPERTIES),
        key=lambda decl: decl.position,
    )
    order: list[str] = []
    for decl in written:
        if decl.name not in order:
            order.append(decl.name)
    order.extend(name for name in EFFECT_PROPERTIES if name not in order)
    return tuple(order)
