"""Tests for serialization of the simplified tree."""

import xml.etree.ElementTree as ET

import pytest

from svg_simplify import Config
from svg_simplify.api import simplify
from svg_simplify.geometry.rect import Rect
from svg_simplify.svg.writer import SSVG_NS, SvgWriter, format_number
from svg_simplify.tree import FilterPrimitive, PassThrough

SVG = "{http://www.w3.org/2000/svg}"


def parse_output(text: str) -> ET.Element:
    return ET.fromstring(text)


class TestFormatNumber:
    """Tests for format_number."""

    @pytest.mark.parametrize(
        ("value", "precision", "expected"),
        [
            (1.0, 6, "1"),
            (0.5, 6, "0.5"),
            (100, 6, "100"),
            (-2.5, 6, "-2.5"),
            (1 / 3, 3, "0.333"),
            (-0.0000001, 6, "0"),
            (2.0000004, 6, "2"),
            (12.345, 0, "12"),
            (100, 0, "100"),
        ],
    )
    def test_values(self, value: float, precision: int, expected: str) -> None:
        assert format_number(value, precision) == expected


class TestDocument:
    """Tests for the root element."""

    def test_root_attributes(self, simple_svg_content, font_db) -> None:
        root = parse_output(simplify(simple_svg_content, Config(), font_db))
        assert root.tag == f"{SVG}svg"
        assert root.get("width") == "960px"
        assert root.get("height") == "480px"
        assert root.get("viewBox") == "0 0 960 480"
        assert root.get(f"{{{SSVG_NS}}}version") == "1"

    def test_namespace_prefix(self, simple_svg_content, font_db) -> None:
        output = simplify(simple_svg_content, Config(), font_db)
        assert 'xmlns:ssvg="urn:svg-simplify:1"' in output
        assert 'ssvg:version="1"' in output

    def test_physical_output_unit(self, simple_svg_content, font_db) -> None:
        """Top-level content is scaled into the output unit."""
        root = parse_output(simplify(simple_svg_content, Config(output_unit="in"), font_db))
        assert root.get("width") == "10in"
        assert root.get("viewBox") == "0 0 10 5"
        (path,) = root.iter(f"{SVG}path")
        assert path.get("transform") == "matrix(0.010417 0 0 0.010417 0 0)"

    def test_identity_transform_is_omitted(self, simple_svg_content, font_db) -> None:
        root = parse_output(simplify(simple_svg_content, Config(), font_db))
        (path,) = root.iter(f"{SVG}path")
        assert path.get("transform") is None
        assert path.get("d") == "M 0 0 L 480 0 L 480 480 L 0 480 Z"
        assert path.get("fill") == "#ff0000"

    def test_precision(self, font_db) -> None:
        svg = (
            '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
            '<rect width="3.14159" height="1"/></svg>'
        )
        root = parse_output(simplify(svg, Config(precision=2), font_db))
        (path,) = root.iter(f"{SVG}path")
        assert "3.14" in path.get("d")
        assert "3.142" not in path.get("d")

    def test_empty_document(self, font_db) -> None:
        root = parse_output(
            simplify('<svg xmlns="http://www.w3.org/2000/svg" width="0" height="10"/>', Config(), font_db)
        )
        assert root.get("width") == "0px"
        assert list(root) == []


class TestDefinitions:
    """Tests for generated definitions."""

    def test_gradient_goes_to_defs(self, font_db) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <linearGradient id="g"><stop offset="0" stop-color="red"/>
            <stop offset="1" stop-color="blue" stop-opacity="0.5"/></linearGradient>
          <rect x="10" y="20" width="50" height="50" fill="url(#g)"/>
        </svg>"""
        root = parse_output(simplify(svg, Config(), font_db))
        defs = root[0]
        assert defs.tag == f"{SVG}defs"
        (gradient,) = defs
        assert gradient.get("id") == "linearGradient1"
        assert gradient.get("gradientUnits") == "userSpaceOnUse"
        assert gradient.get("gradientTransform") == "matrix(50 0 0 50 10 20)"
        stops = gradient.findall(f"{SVG}stop")
        assert [s.get("stop-color") for s in stops] == ["#ff0000", "#0000ff"]
        assert stops[1].get("stop-opacity") == "0.5"
        (path,) = root.iter(f"{SVG}path")
        assert path.get("fill") == "url(#linearGradient1)"

    def test_generated_ids_avoid_kept_ids(self, font_db) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <linearGradient id="g" gradientUnits="userSpaceOnUse" x2="10">
            <stop offset="0"/><stop offset="1" stop-color="red"/></linearGradient>
          <rect id="linearGradient1" width="50" height="50" fill="url(#g)"/>
        </svg>"""
        root = parse_output(simplify(svg, Config(), font_db))
        (path,) = root.iter(f"{SVG}path")
        assert path.get("id") == "linearGradient1"
        assert path.get("fill") == "url(#linearGradient2)"

    def test_effects_become_attributes(self, font_db) -> None:
        svg = """<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
          <clipPath id="c"><circle cx="5" cy="5" r="5"/></clipPath>
          <filter id="f" filterUnits="userSpaceOnUse"><feGaussianBlur stdDeviation="1"/></filter>
          <g id="group" opacity="0.5" clip-path="url(#c)" filter="url(#f)">
            <rect width="10" height="10"/>
          </g>
        </svg>"""
        root = parse_output(simplify(svg, Config(), font_db))
        group = root.find(f".//{SVG}g[@id='group']")
        assert group.get("opacity") == "0.5"
        assert group.get("clip-path") == "url(#clipPath1)"
        assert group.get("filter") == "url(#filter1)"
        blur = root.find(f".//{SVG}feGaussianBlur")
        assert blur.get("in") == "SourceGraphic"
        assert blur.get("stdDeviation") == "1 1"

    def test_text_is_written_as_paths(self, simplifier, text_svg_content) -> None:
        result = simplifier.convert_string(text_svg_content)
        root = parse_output(result.output)
        assert root.find(f".//{SVG}text") is None
        (path,) = root.iter(f"{SVG}path")
        assert path.get("d").startswith("M ")


class TestPrimitives:
    """Tests for filter primitive elements."""

    def test_pass_through_is_a_zero_offset(self) -> None:
        primitive = FilterPrimitive(
            Rect(0, 0, 10, 10), "result1", PassThrough("SourceGraphic", "feTurbulence")
        )
        element = SvgWriter(Config()).primitive(primitive)
        assert element.tag == f"{SVG}feOffset"
        assert (element.get("in"), element.get("dx"), element.get("dy")) == ("SourceGraphic", "0", "0")
        assert element.get("result") == "result1"

    def test_unknown_primitive_is_rejected(self) -> None:
        primitive = FilterPrimitive(Rect(0, 0, 10, 10), "result1", object())
        with pytest.raises(TypeError, match="unknown filter primitive"):
            SvgWriter(Config()).primitive(primitive)


class TestIdempotence:
    """Simplified output is a fixed point of the pipeline."""

    @pytest.mark.parametrize(
        "body",
        [
            '<rect x="10" y="10" width="30" height="20" fill="red" stroke="blue"/>',
            '<g transform="rotate(30)" opacity="0.5"><circle cx="50" cy="50" r="20"/></g>',
            '<linearGradient id="g"><stop offset="0"/><stop offset="1" stop-color="red"/>'
            '</linearGradient><rect width="40" height="40" fill="url(#g)"/>',
            '<clipPath id="c"><rect width="5" height="5"/></clipPath>'
            '<rect width="10" height="10" clip-path="url(#c)"/>',
            '<text x="10" y="50" font-size="10">Hi AB</text>',
        ],
    )
    def test_second_pass_is_unchanged(self, config, font_db, body: str) -> None:
        svg = f'<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">{body}</svg>'
        once = simplify(svg, config, font_db)
        assert simplify(once, config, font_db) == once
