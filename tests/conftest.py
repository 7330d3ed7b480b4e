"""Pytest configuration and shared fixtures for svg-simplify tests."""

import io
from collections.abc import Generator
from pathlib import Path

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from svg_simplify import Config, FontDatabase, Simplifier

TEST_FAMILY = "Test Sans"
UNITS_PER_EM = 1000
ADVANCE = 600

# Characters with a box outline in the test font; space is empty.
TEST_CHARS = "ABHTXaeiloprstx"


def _box_glyph(left: int, right: int, top: int):
    pen = TTGlyphPen(None)
    pen.moveTo((left, 0))
    pen.lineTo((left, top))
    pen.lineTo((right, top))
    pen.lineTo((right, 0))
    pen.closePath()
    return pen.glyph()


def build_test_font(family: str = TEST_FAMILY, chars: str = TEST_CHARS) -> bytes:
    """Build a TrueType font whose glyphs are 600-unit wide boxes."""
    glyph_order = [".notdef", "space", *(f"uni{ord(c):04X}" for c in chars)]
    cmap = {32: "space", **{ord(c): f"uni{ord(c):04X}" for c in chars}}

    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    glyphs = {name: _box_glyph(50, 550, 700) for name in glyph_order}
    glyphs["space"] = TTGlyphPen(None).glyph()
    fb.setupGlyf(glyphs)
    glyph_table = fb.font["glyf"]
    fb.setupHorizontalMetrics({name: (ADVANCE, glyph_table[name].xMin) for name in glyph_order})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, usWinAscent=800, usWinDescent=200, usWeightClass=400)
    fb.setupPost()

    buf = io.BytesIO()
    fb.save(buf)
    return buf.getvalue()


@pytest.fixture(scope="session")
def test_font_data() -> bytes:
    """Return the bytes of the in-memory test font."""
    return build_test_font()


@pytest.fixture
def font_db(test_font_data: bytes) -> FontDatabase:
    """Return a font database holding only the test font."""
    db = FontDatabase()
    db.load_font_data(test_font_data, "test-sans.ttf")
    return db


@pytest.fixture
def font_dir(tmp_path: Path, test_font_data: bytes) -> Path:
    """Return a directory containing the test font as a file."""
    directory = tmp_path / "fonts"
    directory.mkdir()
    (directory / "test-sans.ttf").write_bytes(test_font_data)
    return directory


@pytest.fixture
def config() -> Config:
    """Return a config whose default family is the test font."""
    return Config(default_font_family=TEST_FAMILY)


@pytest.fixture
def simplifier(config: Config, font_db: FontDatabase) -> Simplifier:
    """Return a simplifier sharing the test font database."""
    return Simplifier(config, font_db)


@pytest.fixture
def simple_svg_content() -> str:
    """Return the 10in x 5in document with a single red square."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="10in" height="5in">
  <rect width="5in" height="5in" fill="red"/>
</svg>"""


@pytest.fixture
def text_svg_content() -> str:
    """Return SVG with a text element using the test font."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="200" height="100" viewBox="0 0 200 100">
  <text x="10" y="50" font-family="Test Sans" font-size="10">Hi AB</text>
</svg>"""


@pytest.fixture
def temp_svg(tmp_path: Path, simple_svg_content: str) -> Generator[Path, None, None]:
    """Create a temporary SVG file for testing."""
    svg_path = tmp_path / "test.svg"
    svg_path.write_text(simple_svg_content, encoding="utf-8")
    yield svg_path


@pytest.fixture(scope="session")
def font_factory():
    """Return the test font builder, for tests that need extra faces."""
    return build_test_font
