"""Convert command - simplify a single SVG file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console

from svg_simplify.api import Simplifier
from svg_simplify.config import OUTPUT_UNITS, Config
from svg_simplify.exceptions import ConfigError, FontResolutionError

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def parse_dpi_units(value: str | None) -> float | str | None:
    """Accept a positive number or ``auto``."""
    if value is None or value == "auto":
        return value
    try:
        return float(value)
    except ValueError as e:
        raise click.BadParameter(f"expected a number or 'auto', got {value!r}") from e


@click.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Output file (default: stdout)")
@click.option("--dpi-render", type=float, help="Resolution of the eventual raster output")
@click.option("--dpi-units", help="DPI for physical units, or 'auto' to detect it")
@click.option("--arc-preservation/--no-arc-preservation", default=None, help="Keep elliptical arcs")
@click.option("--output-unit", type=click.Choice(OUTPUT_UNITS), help="Unit of the output lengths")
@click.option("--font-dir", "font_dirs", multiple=True, type=click.Path(file_okay=False, path_type=Path), help="Extra font directory (repeatable)")
@click.option("--default-family", help="Font family used when nothing else resolves")
@click.option("--system-fonts/--no-system-fonts", default=None, help="Load the platform fonts")
@click.option("-p", "--precision", type=int, help="Decimal places in the output")
@click.option("--show-diagnostics", is_flag=True, help="Print non-fatal problems to stderr")
@click.pass_context
def convert(
    ctx: click.Context,
    input_file: Path,
    output: Path | None,
    dpi_render: float | None,
    dpi_units: str | None,
    arc_preservation: bool | None,
    output_unit: str | None,
    font_dirs: tuple[Path, ...],
    default_family: str | None,
    system_fonts: bool | None,
    precision: int | None,
    show_diagnostics: bool,
) -> None:
    """Simplify INPUT_FILE into a flat, self-contained SVG."""
    config: Config = ctx.obj.get("config") or Config.load()
    try:
        config = config.with_overrides(
            dpi_render=dpi_render,
            dpi_units=parse_dpi_units(dpi_units),
            arc_preservation=arc_preservation,
            output_unit=output_unit,
            default_font_family=default_family,
            system_fonts=system_fonts,
            precision=precision,
            font_dirs=[*config.font_dirs, *map(str, font_dirs)] if font_dirs else None,
        )
        simplifier = Simplifier(config)
    except (ConfigError, FontResolutionError) as e:
        logger.error("%s", e)
        raise SystemExit(2) from e

    result = simplifier.convert_file(input_file, output)

    if show_diagnostics:
        for diagnostic in result.diagnostics:
            console.print(f"[yellow]{diagnostic.kind}[/yellow] {diagnostic}")

    if not result.success:
        for error in result.errors:
            logger.error("%s", error)
        raise SystemExit(1)

    if output is None:
        sys.stdout.write(result.output)
    else:
        console.print(f"[green]Wrote[/green] {output}")
