"""Public entry points.

``Simplifier`` is the binding-style interface: text in, a
``ConversionResult`` out, never raising for document problems.
``simplify`` is the plain function form that raises on fatal errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from svg_simplify.config import Config
from svg_simplify.diagnostics import Diagnostic, DiagnosticLog
from svg_simplify.exceptions import ConfigError, XmlSyntaxError
from svg_simplify.fonts.database import FontDatabase
from svg_simplify.generator import guess_svg_generator
from svg_simplify.geometry.units import UnitContext
from svg_simplify.pipeline import build_tree
from svg_simplify.svg.parser import parse_svg_string
from svg_simplify.svg.writer import write_svg
from svg_simplify.tree import SimplifiedTree

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Outcome of one conversion.

    Attributes:
        success: False only for fatal errors (malformed XML, unreadable file).
        output: Serialized simplified SVG.
        tree: The simplified tree the output was written from.
        diagnostics: Non-fatal problems, in the order they were found.
        errors: Fatal error messages.
        dpi_units: DPI used for physical units (after ``"auto"`` detection).
        input_path: Source file, for file conversions.
        output_path: Written file, for file conversions.
    """

    success: bool
    output: str | None = None
    tree: SimplifiedTree | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dpi_units: float | None = None
    input_path: Path | None = None
    output_path: Path | None = None


def create_font_database(config: Config) -> FontDatabase:
    """Build a font database from the font options of ``config``."""
    font_db = FontDatabase()
    for generic, family in config.generic_families.items():
        try:
            font_db.set_generic_family(generic, family)
        except ValueError as e:
            raise ConfigError(str(e)) from e
    for directory in config.font_dirs:
        count = font_db.load_fonts_dir(directory)
        logger.debug("Loaded %d faces from %s", count, directory)
    if config.system_fonts:
        count = font_db.load_system_fonts()
        logger.debug("Loaded %d system faces", count)
    return font_db


class Simplifier:
    """Convert SVG documents into simplified SVG.

    One instance may convert many documents, also from several threads at
    once: each conversion builds its own pipeline state and only reads the
    shared font database.

    Args:
        config: Pipeline options (defaults when None).
        font_db: Font database; built from ``config`` when None.

    Example:
        >>> simplifier = Simplifier(Config(output_unit="mm"))
        >>> result = simplifier.convert_string(svg_text)
        >>> result.success, result.output
    """

    def __init__(self, config: Config | None = None, font_db: FontDatabase | None = None) -> None:
        self.config = config or Config()
        self.font_db = font_db if font_db is not None else create_font_database(self.config)

    def units_for(self, text: str | bytes) -> UnitContext:
        dpi_units = self.config.dpi_units
        if dpi_units == "auto":
            source = text.decode("utf-8", errors="replace") if isinstance(text, bytes) else text
            generator = guess_svg_generator(source)
            dpi_units = generator.dpi
            logger.debug("Detected %s, using %s DPI for units", generator, dpi_units)
        return UnitContext(dpi_render=self.config.dpi_render, dpi_units=float(dpi_units))

    def run(self, text: str | bytes) -> tuple[SimplifiedTree, DiagnosticLog, UnitContext]:
        """Parse and resolve ``text``.

        Raises:
            XmlSyntaxError: The document is not well-formed SVG.
        """
        document = parse_svg_string(text, allow_entities=self.config.allow_entities)
        units = self.units_for(text)
        diagnostics = DiagnosticLog()
        tree = build_tree(document, self.config, self.font_db, units, diagnostics)
        return tree, diagnostics, units

    def convert_string(self, text: str | bytes) -> ConversionResult:
        try:
            tree, diagnostics, units = self.run(text)
        except XmlSyntaxError as e:
            logger.debug("Fatal parse error: %s", e)
            return ConversionResult(success=False, errors=[str(e)])
        return ConversionResult(
            success=True,
            output=write_svg(tree, self.config, units),
            tree=tree,
            diagnostics=list(diagnostics),
            dpi_units=units.dpi_units,
        )

    def convert_file(
        self, input_path: Path | str, output_path: Path | str | None = None
    ) -> ConversionResult:
        """Convert a file; the output is written when ``output_path`` is given."""
        input_path = Path(input_path)
        try:
            data = input_path.read_bytes()
        except OSError as e:
            return ConversionResult(
                success=False, errors=[f"cannot read {input_path}: {e}"], input_path=input_path
            )

        result = self.convert_string(data)
        result.input_path = input_path
        if result.success and output_path is not None:
            output_path = Path(output_path)
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_text(result.output, encoding="utf-8")
            except OSError as e:
                result.success = False
                result.errors.append(f"cannot write {output_path}: {e}")
                return result
            result.output_path = output_path
            logger.info("Wrote %s", output_path)
        return result


def simplify(
    text: str | bytes,
    config: Config | None = None,
    font_db: FontDatabase | None = None,
) -> str:
    """Convert ``text`` and return the simplified SVG.

    Raises:
        XmlSyntaxError: The document is not well-formed SVG.
    """
    simplifier = Simplifier(config, font_db)
    tree, _diagnostics, units = simplifier.run(text)
    return write_svg(tree, simplifier.config, units)
