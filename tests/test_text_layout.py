"""Tests for text layout: shaping, positioning and font fallback.

The test font draws every glyph as a box 500 units wide and 700 high with a
600 unit advance, so at font-size 10 each character advances 6 user units.
"""

import pytest

from svg_simplify import Config, FontDatabase, Simplifier
from svg_simplify.exceptions import FontResolutionError
from svg_simplify.style.values import Color
from svg_simplify.tree import TextNode


def text_nodes(simplifier, body: str):
    svg = f'<svg xmlns="http://www.w3.org/2000/svg" width="200" height="100">{body}</svg>'
    tree, diagnostics, _ = simplifier.run(svg)
    return [node for node in tree.iter() if isinstance(node, TextNode)], diagnostics


def glyph_xs(node: TextNode) -> list[float]:
    return [glyph.x for run in node.runs for glyph in run.glyphs]


class TestBasicLayout:
    """Tests for a single chunk of text."""

    def test_glyph_positions(self, simplifier, text_svg_content) -> None:
        tree, diagnostics, _ = simplifier.run(text_svg_content)
        (node,) = [n for n in tree.iter() if isinstance(n, TextNode)]
        (run,) = node.runs
        assert run.face.family == "Test Sans"
        assert run.font_size == 10
        assert [g.x for g in run.glyphs] == pytest.approx([10, 16, 22, 28, 34])
        assert all(g.y == 50 for g in run.glyphs)
        assert [g.cluster for g in run.glyphs] == [0, 1, 2, 3, 4]
        assert not diagnostics

    def test_outline_bbox(self, simplifier, text_svg_content) -> None:
        """Outlines are placed in user space, y pointing down."""
        tree, _, _ = simplifier.run(text_svg_content)
        (node,) = [n for n in tree.iter() if isinstance(n, TextNode)]
        box = node.bbox()
        assert (box.x, box.y, box.width, box.height) == pytest.approx((10.5, 43, 29, 7))

    def test_default_fill(self, simplifier, text_svg_content) -> None:
        tree, _, _ = simplifier.run(text_svg_content)
        (node,) = [n for n in tree.iter() if isinstance(n, TextNode)]
        assert node.runs[0].fill.paint == Color(0, 0, 0)
        assert node.runs[0].stroke is None

    @pytest.mark.parametrize(
        ("anchor", "first_x"),
        [("start", 10), ("middle", -5), ("end", -20)],
    )
    def test_text_anchor(self, simplifier, anchor: str, first_x: float) -> None:
        (node,), _ = text_nodes(
            simplifier,
            f'<text x="10" y="20" font-size="10" text-anchor="{anchor}">ABABA</text>',
        )
        assert glyph_xs(node)[0] == pytest.approx(first_x)

    def test_rtl_swaps_anchor(self, simplifier) -> None:
        """text-anchor start means the right edge in rtl text."""
        (node,), _ = text_nodes(
            simplifier, '<text x="30" y="20" font-size="10" direction="rtl">AB</text>'
        )
        assert min(glyph_xs(node)) == pytest.approx(18)


class TestWhitespace:
    """Tests for xml:space handling."""

    def test_default_collapses(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text y="20" font-size="10">\n   A    B   \n</text>'
        )
        assert glyph_xs(node) == pytest.approx([0, 6, 12])

    def test_preserve_keeps_spaces(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier,
            '<text y="20" font-size="10" xml:space="preserve">A  B</text>',
        )
        assert glyph_xs(node) == pytest.approx([0, 6, 12, 18])

    def test_whitespace_only_text(self, simplifier) -> None:
        nodes, _ = text_nodes(simplifier, '<text y="20">   </text>')
        assert nodes == []


class TestPositioning:
    """Tests for x/y/dx/dy/rotate lists and spacing."""

    def test_dx_list(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text x="0" y="20" dx="5 5" font-size="10">AB</text>'
        )
        assert glyph_xs(node) == pytest.approx([5, 16])

    def test_absolute_x_starts_chunk(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text x="0 100" y="20" font-size="10">ABA</text>'
        )
        assert glyph_xs(node) == pytest.approx([0, 100, 106])

    def test_rotate_repeats_last_value(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text y="20" rotate="10 20" font-size="10">ABA</text>'
        )
        angles = [glyph.angle for run in node.runs for glyph in run.glyphs]
        assert angles == [10, 20, 20]

    def test_letter_and_word_spacing(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier,
            '<text y="20" font-size="10" letter-spacing="1" word-spacing="4">A B</text>',
        )
        assert glyph_xs(node) == pytest.approx([0, 7, 18])

    def test_tspan_position_wins(self, simplifier) -> None:
        """Values on a tspan override those of the enclosing text."""
        (node,), _ = text_nodes(
            simplifier,
            '<text x="0" y="20" font-size="10">A<tspan x="50">B</tspan>A</text>',
        )
        assert glyph_xs(node) == pytest.approx([0, 50, 56])

    def test_text_path(self, simplifier) -> None:
        """Glyphs follow the referenced path from startOffset."""
        (node,), _ = text_nodes(
            simplifier,
            '<defs><path id="p" d="M0 30 L200 30"/></defs>'
            '<text font-size="10"><textPath href="#p" startOffset="10">AB</textPath></text>',
        )
        glyphs = [glyph for run in node.runs for glyph in run.glyphs]
        assert [(g.x, g.y) for g in glyphs] == [
            pytest.approx((10, 30)),
            pytest.approx((16, 30)),
        ]

    def test_text_path_missing_target(self, simplifier) -> None:
        nodes, diagnostics = text_nodes(
            simplifier, '<text><textPath href="#nope">AB</textPath></text>'
        )
        assert nodes == []
        assert diagnostics


class TestStyledRuns:
    """Tests for run splitting by style."""

    def test_tspan_fill_splits_runs(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text y="20" font-size="10">A<tspan fill="red">B</tspan></text>'
        )
        assert [run.fill.paint for run in node.runs] == [Color(0, 0, 0), Color(255, 0, 0)]

    def test_hidden_tspan_keeps_advance(self, simplifier) -> None:
        """visibility hides glyphs but keeps their space."""
        (node,), _ = text_nodes(
            simplifier,
            '<text y="20" font-size="10">A<tspan visibility="hidden">B</tspan>A</text>',
        )
        assert glyph_xs(node) == pytest.approx([0, 12])

    def test_display_none_tspan_is_skipped(self, simplifier) -> None:
        (node,), _ = text_nodes(
            simplifier, '<text y="20" font-size="10">A<tspan display="none">B</tspan>A</text>'
        )
        assert glyph_xs(node) == pytest.approx([0, 6])

    def test_unpainted_text(self, simplifier) -> None:
        nodes, _ = text_nodes(simplifier, '<text y="20" fill="none">AB</text>')
        assert nodes == []


class TestFonts:
    """Tests for font fallback."""

    def test_missing_glyph_is_reported(self, simplifier) -> None:
        (node,), diagnostics = text_nodes(simplifier, '<text y="20" font-size="10">AZ</text>')
        assert len(glyph_xs(node)) == 2
        (diagnostic,) = diagnostics.of_kind(FontResolutionError)
        assert "'Z'" in diagnostic.message

    def test_fallback_family(self, font_db, font_factory, config) -> None:
        """Characters missing from the first family come from the next one."""
        font_db.load_font_data(font_factory("Other Sans", "Z"), "other-sans.ttf")
        simplifier = Simplifier(config, font_db)
        (node,), diagnostics = text_nodes(
            simplifier,
            "<text y=\"20\" font-size=\"10\" font-family=\"'Test Sans', 'Other Sans'\">AZ</text>",
        )
        assert [run.face.family for run in node.runs] == ["Test Sans", "Other Sans"]
        assert not diagnostics.of_kind(FontResolutionError)

    def test_unknown_family_uses_default(self, simplifier) -> None:
        (node,), _ = text_nodes(simplifier, '<text y="20" font-family="Nope">A</text>')
        assert node.runs[0].face.family == "Test Sans"

    def test_no_fonts_at_all(self) -> None:
        simplifier = Simplifier(Config(), FontDatabase())
        nodes, diagnostics = text_nodes(simplifier, '<text y="20">A</text>')
        assert nodes == []
        assert diagnostics.of_kind(FontResolutionError)
