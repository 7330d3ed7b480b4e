"""CLI commands for svg-simplify."""

from svg_simplify.cli.commands.batch import batch
from svg_simplify.cli.commands.convert import convert
from svg_simplify.cli.commands.fonts import fonts

__all__ = ["convert", "batch", "fonts"]
