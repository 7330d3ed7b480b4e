"""svg-simplify command line entry point."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from svg_simplify import __version__
from svg_simplify.cli.commands import batch, convert, fonts
from svg_simplify.config import LOG_LEVELS, Config
from svg_simplify.exceptions import ConfigError

LOG_LEVEL_ENV_VAR = "SVG_SIMPLIFY_LOG_LEVEL"

console = Console(stderr=True)


def setup_logging(level: str) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="svg-simplify")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar=LOG_LEVEL_ENV_VAR,
    default=None,
    help="Logging level (default: WARNING, or log_level from the config file)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, config_path: Path | None) -> None:
    """Resolve SVG documents into flat, self-contained simplified SVG."""
    ctx.ensure_object(dict)
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise SystemExit(2) from e
    level = (log_level or config.log_level).upper()
    setup_logging(level)
    ctx.obj["config"] = config
    ctx.obj["log_level"] = level


cli.add_command(convert)
cli.add_command(batch)
cli.add_command(fonts)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
