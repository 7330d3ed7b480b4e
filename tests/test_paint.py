"""Tests for fill and stroke resolution."""

import pytest

from svg_simplify.exceptions import CyclicReferenceError, InvalidValueError
from svg_simplify.style.values import Color
from svg_simplify.tree import LinearGradient, PathNode, Pattern, RadialGradient

RED = Color(255, 0, 0)
BLUE = Color(0, 0, 255)


def convert(simplifier, body: str):
    svg = f'<svg xmlns="http://www.w3.org/2000/svg" width="200" height="200">{body}</svg>'
    tree, diagnostics, _ = simplifier.run(svg)
    paths = {node.id: node for node in tree.iter() if isinstance(node, PathNode)}
    return paths, diagnostics


GRADIENT_STOPS = '<stop offset="0" stop-color="red"/><stop offset="1" stop-color="blue"/>'


class TestColors:
    """Tests for solid paints."""

    def test_solid_fill(self, simplifier) -> None:
        paths, _ = convert(simplifier, '<rect id="r" width="10" height="10" fill="red"/>')
        assert paths["r"].fill.paint == RED
        assert paths["r"].stroke is None

    def test_color_alpha_folds_into_opacity(self, simplifier) -> None:
        """rgba() alpha multiplies fill-opacity."""
        paths, _ = convert(
            simplifier,
            '<rect id="r" width="10" height="10" fill="rgba(255,0,0,0.5)" fill-opacity="0.5"/>',
        )
        assert paths["r"].fill.opacity == pytest.approx(0.25)

    def test_current_color(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<g color="blue"><rect id="r" width="10" height="10" fill="currentColor"/></g>',
        )
        assert paths["r"].fill.paint == BLUE

    def test_stroke_properties(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<rect id="r" width="10" height="10" fill="none" stroke="red" '
            'stroke-width="3" stroke-linejoin="round" stroke-dasharray="2"/>',
        )
        stroke = paths["r"].stroke
        assert paths["r"].fill is None
        assert (stroke.paint, stroke.width, stroke.linejoin) == (RED, 3, "round")
        assert stroke.dasharray == (2, 2)

    def test_zero_stroke_width(self, simplifier) -> None:
        """A stroke of zero width is not painted."""
        paths, _ = convert(
            simplifier, '<rect id="r" width="10" height="10" stroke="red" stroke-width="0"/>'
        )
        assert paths["r"].stroke is None

    def test_nothing_painted(self, simplifier) -> None:
        """Shapes with neither fill nor stroke are omitted."""
        paths, _ = convert(simplifier, '<rect id="r" width="10" height="10" fill="none"/>')
        assert "r" not in paths


class TestGradients:
    """Tests for linear and radial gradients."""

    def test_bounding_box_units(self, simplifier) -> None:
        """objectBoundingBox coordinates are folded into the transform."""
        paths, _ = convert(
            simplifier,
            f'<linearGradient id="g">{GRADIENT_STOPS}</linearGradient>'
            '<rect id="r" x="10" y="20" width="100" height="50" fill="url(#g)"/>',
        )
        paint = paths["r"].fill.paint
        assert isinstance(paint, LinearGradient)
        assert (paint.x1, paint.y1, paint.x2, paint.y2) == (0, 0, 1, 0)
        assert paint.transform.as_tuple() == pytest.approx((100, 0, 0, 50, 10, 20))
        assert [stop.color for stop in paint.stops] == [RED, BLUE]

    def test_user_space_units(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<linearGradient id="g" gradientUnits="userSpaceOnUse" x1="0" x2="50%">'
            f"{GRADIENT_STOPS}</linearGradient>"
            '<rect id="r" width="10" height="10" fill="url(#g)"/>',
        )
        paint = paths["r"].fill.paint
        assert paint.x2 == pytest.approx(100)
        assert paint.transform.is_identity()

    def test_href_inheritance(self, simplifier) -> None:
        """Stops and attributes are inherited through href."""
        paths, _ = convert(
            simplifier,
            f'<linearGradient id="base" spreadMethod="reflect">{GRADIENT_STOPS}</linearGradient>'
            '<radialGradient id="g" href="#base" r="25%"/>'
            '<rect id="r" width="10" height="10" fill="url(#g)"/>',
        )
        paint = paths["r"].fill.paint
        assert isinstance(paint, RadialGradient)
        assert paint.spread_method == "reflect"
        assert paint.r == pytest.approx(0.25)
        assert (paint.fx, paint.fy) == (paint.cx, paint.cy)
        assert len(paint.stops) == 2

    def test_stop_offsets_are_monotonic(self, simplifier) -> None:
        """Offsets are clamped and never decrease."""
        paths, _ = convert(
            simplifier,
            '<linearGradient id="g"><stop offset="60%"/><stop offset="0.2"/>'
            '<stop offset="2"/></linearGradient>'
            '<rect id="r" width="10" height="10" fill="url(#g)"/>',
        )
        offsets = [stop.offset for stop in paths["r"].fill.paint.stops]
        assert offsets == pytest.approx([0.6, 0.6, 1.0])

    def test_self_reference_falls_back_to_nothing(self, simplifier) -> None:
        """A cyclic gradient paints nothing and is reported."""
        paths, diagnostics = convert(
            simplifier,
            f'<linearGradient id="g" href="#g">{GRADIENT_STOPS}</linearGradient>'
            '<rect id="r" width="10" height="10" fill="url(#g)"/>',
        )
        assert "r" not in paths
        assert diagnostics.of_kind(CyclicReferenceError)

    def test_cycle_uses_fallback_color(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            f'<linearGradient id="g" href="#g">{GRADIENT_STOPS}</linearGradient>'
            '<rect id="r" width="10" height="10" fill="url(#g) blue"/>',
        )
        assert paths["r"].fill.paint == BLUE

    def test_single_stop_is_invalid(self, simplifier) -> None:
        paths, diagnostics = convert(
            simplifier,
            '<linearGradient id="g"><stop stop-color="red"/></linearGradient>'
            '<rect id="r" width="10" height="10" fill="url(#g) blue"/>',
        )
        assert paths["r"].fill.paint == BLUE
        assert any("stop" in d.message for d in diagnostics.of_kind(InvalidValueError))

    def test_zero_length_gradient_uses_last_stop(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            f'<linearGradient id="g" x2="0">{GRADIENT_STOPS}</linearGradient>'
            '<rect id="r" width="10" height="10" fill="url(#g)"/>',
        )
        assert paths["r"].fill.paint == BLUE

    def test_missing_reference(self, simplifier) -> None:
        paths, diagnostics = convert(
            simplifier, '<rect id="r" width="10" height="10" fill="url(#nope) red"/>'
        )
        assert paths["r"].fill.paint == RED
        assert diagnostics.of_kind(InvalidValueError)

    def test_bounding_box_on_line(self, simplifier) -> None:
        """A horizontal line has no area for objectBoundingBox units."""
        paths, diagnostics = convert(
            simplifier,
            f'<linearGradient id="g">{GRADIENT_STOPS}</linearGradient>'
            '<line id="l" x2="50" stroke="url(#g) red"/>',
        )
        assert paths["l"].stroke.paint == RED
        assert diagnostics.of_kind(InvalidValueError)


class TestPatterns:
    """Tests for pattern paints."""

    def test_user_space_pattern(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<pattern id="p" patternUnits="userSpaceOnUse" width="10" height="10">'
            '<rect id="tile" width="5" height="5" fill="red"/></pattern>'
            '<rect id="r" width="100" height="100" fill="url(#p)"/>',
        )
        paint = paths["r"].fill.paint
        assert isinstance(paint, Pattern)
        assert (paint.rect.width, paint.rect.height) == (10, 10)
        (tile,) = paint.content.children
        assert tile.fill.paint == RED

    def test_bounding_box_pattern(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<pattern id="p" width="0.5" height="25%">'
            '<rect width="5" height="5" fill="red"/></pattern>'
            '<rect id="r" x="10" width="100" height="40" fill="url(#p)"/>',
        )
        rect = paths["r"].fill.paint.rect
        assert (rect.x, rect.width, rect.height) == pytest.approx((10, 50, 10))

    def test_empty_pattern_paints_nothing(self, simplifier) -> None:
        paths, _ = convert(
            simplifier,
            '<pattern id="p" patternUnits="userSpaceOnUse" width="10" height="10"/>'
            '<rect id="r" width="100" height="100" fill="url(#p)" stroke="red"/>',
        )
        assert paths["r"].fill is None

    def test_pattern_referring_to_itself(self, simplifier) -> None:
        paths, diagnostics = convert(
            simplifier,
            '<pattern id="p" patternUnits="userSpaceOnUse" width="10" height="10">'
            '<rect width="5" height="5" fill="url(#p) red"/></pattern>'
            '<rect id="r" width="100" height="100" fill="url(#p)"/>',
        )
        assert diagnostics.of_kind(CyclicReferenceError)
        (tile,) = paths["r"].fill.paint.content.children
        assert tile.fill.paint == RED
