"""Tests for clip paths, masks and filters."""

import pytest

from svg_simplify.exceptions import InvalidValueError, UnsupportedElementError
from svg_simplify.style.values import Color
from svg_simplify.tree import (
    ClipPath,
    ColorMatrix,
    Filter,
    Flood,
    GaussianBlur,
    GroupNode,
    Mask,
    Merge,
    Offset,
    PassThrough,
    PathNode,
)


def convert(simplifier, body: str):
    svg = f'<svg xmlns="http://www.w3.org/2000/svg" width="200" height="200">{body}</svg>'
    tree, diagnostics, _ = simplifier.run(svg)
    groups = [node for node in tree.iter() if isinstance(node, GroupNode) and node.effects]
    return tree, groups, diagnostics


class TestClipPath:
    """Tests for clip-path resolution."""

    def test_clip_wraps_shape(self, simplifier) -> None:
        """A clipped shape is wrapped in a group carrying the clip."""
        _, groups, _ = convert(
            simplifier,
            '<clipPath id="c"><rect width="5" height="5"/></clipPath>'
            '<rect id="r" width="10" height="10" fill="red" clip-path="url(#c)"/>',
        )
        (group,) = groups
        (clip,) = group.effects
        assert isinstance(clip, ClipPath)
        assert [child.id for child in group.children] == ["r"]
        (clip_shape,) = clip.children
        assert clip_shape.bbox().width == 5

    def test_clip_content_is_solid(self, simplifier) -> None:
        """Clip content is filled black with clip-rule and never stroked."""
        _, groups, _ = convert(
            simplifier,
            '<clipPath id="c"><rect width="5" height="5" fill="none" stroke="red" '
            'clip-rule="evenodd"/><g><rect width="1" height="1"/></g></clipPath>'
            '<rect width="10" height="10" clip-path="url(#c)"/>',
        )
        (clip_shape,) = groups[0].effects[0].children
        assert clip_shape.fill.paint == Color(0, 0, 0)
        assert clip_shape.fill.rule == "evenodd"
        assert clip_shape.stroke is None

    def test_bounding_box_units(self, simplifier) -> None:
        """objectBoundingBox clip content is scaled to the element."""
        _, groups, _ = convert(
            simplifier,
            '<clipPath id="c" clipPathUnits="objectBoundingBox">'
            '<rect width="0.5" height="0.5"/></clipPath>'
            '<rect x="20" y="10" width="100" height="50" clip-path="url(#c)"/>',
        )
        (clip_shape,) = groups[0].effects[0].children
        assert clip_shape.abs_transform.as_tuple() == pytest.approx((100, 0, 0, 50, 20, 10))

    def test_clipped_clip_path(self, simplifier) -> None:
        """A clip path with its own clip-path keeps the chain."""
        _, groups, _ = convert(
            simplifier,
            '<clipPath id="inner"><circle r="4"/></clipPath>'
            '<clipPath id="c" clip-path="url(#inner)"><rect width="5" height="5"/></clipPath>'
            '<rect width="10" height="10" clip-path="url(#c)"/>',
        )
        clip = groups[0].effects[0]
        assert isinstance(clip.clip_path, ClipPath)
        assert clip.clip_path.clip_path is None

    def test_wrong_kind_is_ignored(self, simplifier) -> None:
        tree, groups, diagnostics = convert(
            simplifier,
            '<mask id="m"/><rect id="r" width="10" height="10" clip-path="url(#m)"/>',
        )
        assert not groups
        assert any(isinstance(node, PathNode) for node in tree.iter())
        assert diagnostics.of_kind(InvalidValueError)

    def test_nested_svg_clips_to_viewport(self, simplifier) -> None:
        """overflow defaults to hidden on nested viewports."""
        _, groups, _ = convert(
            simplifier, '<svg width="50" height="50"><rect width="100" height="100"/></svg>'
        )
        (group,) = groups
        assert isinstance(group.effects[0], ClipPath)
        assert group.effects[0].children[0].bbox().width == 50


class TestMask:
    """Tests for mask resolution."""

    def test_default_region(self, simplifier) -> None:
        """The mask region defaults to -10%/120% of the bounding box."""
        _, groups, _ = convert(
            simplifier,
            '<mask id="m"><rect width="100" height="100" fill="white"/></mask>'
            '<rect width="100" height="50" mask="url(#m)"/>',
        )
        (mask,) = groups[0].effects
        assert isinstance(mask, Mask)
        assert mask.kind == "luminance"
        assert (mask.rect.x, mask.rect.y, mask.rect.width, mask.rect.height) == pytest.approx(
            (-10, -5, 120, 60)
        )
        assert len(mask.children) == 1

    def test_alpha_mask_in_user_space(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<mask id="m" mask-type="alpha" maskUnits="userSpaceOnUse" width="50" height="50">'
            '<rect width="10" height="10"/></mask>'
            '<rect width="100" height="50" mask="url(#m)"/>',
        )
        mask = groups[0].effects[0]
        assert mask.kind == "alpha"
        assert (mask.rect.width, mask.rect.height) == (50, 50)

    def test_empty_region_has_no_content(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<mask id="m" width="0"><rect width="10" height="10"/></mask>'
            '<rect width="100" height="50" mask="url(#m)"/>',
        )
        assert groups[0].effects[0].children == []


class TestFilter:
    """Tests for filter resolution."""

    def test_primitive_chain(self, simplifier) -> None:
        """Missing inputs refer to the previous result."""
        _, groups, diagnostics = convert(
            simplifier,
            '<filter id="f"><feGaussianBlur stdDeviation="2 3"/>'
            '<feOffset dx="1" result="off"/><feTurbulence in="off"/></filter>'
            '<rect width="100" height="50" filter="url(#f)"/>',
        )
        (filter_effect,) = groups[0].effects
        assert isinstance(filter_effect, Filter)
        blur, offset, turbulence = filter_effect.primitives
        assert blur.kind == GaussianBlur("SourceGraphic", 2, 3)
        assert blur.result == "result1"
        assert offset.kind == Offset("result1", 1, 0)
        assert offset.result == "off"
        assert turbulence.kind == PassThrough("off", "feTurbulence")
        assert diagnostics.of_kind(UnsupportedElementError)

    def test_filter_region(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<filter id="f" filterUnits="userSpaceOnUse" x="0" y="0" width="30" height="40">'
            '<feFlood flood-color="red" flood-opacity="0.5"/></filter>'
            '<rect width="100" height="50" filter="url(#f)"/>',
        )
        filter_effect = groups[0].effects[0]
        assert (filter_effect.rect.width, filter_effect.rect.height) == (30, 40)
        (flood,) = filter_effect.primitives
        assert flood.kind == Flood(Color(255, 0, 0), 0.5)
        assert flood.rect == filter_effect.rect

    def test_primitive_units(self, simplifier) -> None:
        """objectBoundingBox primitive lengths scale with the element."""
        _, groups, _ = convert(
            simplifier,
            '<filter id="f" primitiveUnits="objectBoundingBox">'
            '<feGaussianBlur stdDeviation="0.1"/></filter>'
            '<rect width="100" height="50" filter="url(#f)"/>',
        )
        (blur,) = groups[0].effects[0].primitives
        assert (blur.kind.std_dev_x, blur.kind.std_dev_y) == pytest.approx((10, 5))

    def test_invalid_primitive_passes_through(self, simplifier) -> None:
        _, groups, diagnostics = convert(
            simplifier,
            '<filter id="f"><feGaussianBlur stdDeviation="-1"/>'
            '<feColorMatrix type="matrix" values="1 2 3"/></filter>'
            '<rect width="100" height="50" filter="url(#f)"/>',
        )
        kinds = [p.kind for p in groups[0].effects[0].primitives]
        assert all(isinstance(kind, PassThrough) for kind in kinds)
        assert len(diagnostics.of_kind(InvalidValueError)) == 2

    def test_color_matrix_defaults(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<filter id="f"><feColorMatrix type="saturate"/>'
            '<feMerge><feMergeNode in="SourceGraphic"/><feMergeNode/></feMerge></filter>'
            '<rect width="100" height="50" filter="url(#f)"/>',
        )
        matrix, merge = groups[0].effects[0].primitives
        assert matrix.kind == ColorMatrix("SourceGraphic", "saturate", (1.0,))
        assert merge.kind == Merge(("SourceGraphic", "result1"))

    def test_filter_on_empty_group(self, simplifier) -> None:
        """A filtered group is kept even without children."""
        _, groups, _ = convert(
            simplifier,
            '<filter id="f" filterUnits="userSpaceOnUse"><feFlood flood-color="blue"/></filter>'
            '<g id="empty" filter="url(#f)"/>',
        )
        assert [group.id for group in groups] == ["empty"]

    def test_filter_list(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<filter id="a"><feOffset dx="1"/></filter><filter id="b"><feOffset dx="2"/></filter>'
            '<rect width="100" height="50" filter="url(#a) url(#b)"/>',
        )
        offsets = [effect.primitives[0].kind.dx for effect in groups[0].effects]
        assert offsets == [1, 2]


class TestEffectOrder:
    """Effects apply in the order they are written."""

    def test_written_order(self, simplifier) -> None:
        _, groups, _ = convert(
            simplifier,
            '<clipPath id="c"><rect width="5" height="5"/></clipPath>'
            '<filter id="f"><feOffset/></filter>'
            '<rect width="10" height="10" filter="url(#f)" clip-path="url(#c)"/>',
        )
        assert [type(effect) for effect in groups[0].effects] == [Filter, ClipPath]

    def test_opacity_keeps_wrapper(self, simplifier) -> None:
        """Group opacity is not pushed into the paint."""
        tree, _, _ = convert(simplifier, '<rect id="r" width="10" height="10" opacity="0.5"/>')
        (group,) = [node for node in tree.root.children if isinstance(node, GroupNode)]
        assert group.opacity == 0.5
        assert group.children[0].fill.opacity == 1.0
