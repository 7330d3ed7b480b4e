"""Command line interface for svg-simplify."""

from svg_simplify.cli.main import cli

__all__ = ["cli"]
