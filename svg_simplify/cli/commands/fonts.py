"""Fonts command - inspect the font database."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from svg_simplify.api import create_font_database
from svg_simplify.config import Config
from svg_simplify.exceptions import ConfigError
from svg_simplify.fonts.database import FontDatabase

console = Console()


def _load_database(ctx: click.Context) -> FontDatabase:
    config: Config = ctx.obj.get("config") or Config.load()
    try:
        with console.status("[bold green]Loading fonts..."):
            return create_font_database(config.with_overrides(system_fonts=True))
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(2) from e


@click.group()
def fonts() -> None:
    """Font database commands."""


@fonts.command("list")
@click.option("--family", help="Filter by font family name")
@click.option("--style", help="Filter by style (normal, italic, oblique)")
@click.option("--weight", type=int, help="Filter by weight (400, 700, etc)")
@click.pass_context
def list_fonts(ctx: click.Context, family: str | None, style: str | None, weight: int | None) -> None:
    """List available fonts."""
    font_db = _load_database(ctx)

    table = Table(title="Available Fonts")
    table.add_column("Family", style="cyan")
    table.add_column("Style", style="green")
    table.add_column("Weight", style="yellow")
    table.add_column("Path", style="dim")

    count = 0
    for face in font_db.faces:
        if family and family.lower() not in face.family.lower():
            continue
        if style and style.lower() != face.style:
            continue
        if weight and weight != face.weight:
            continue
        source = face.source if face.index == 0 else f"{face.source}:{face.index}"
        table.add_row(
            face.family,
            face.style,
            str(face.weight),
            source[:50] + "..." if len(source) > 50 else source,
        )
        count += 1

    console.print(table)
    console.print(f"\n[bold]Total:[/bold] {count} fonts")


@fonts.command("find")
@click.argument("name")
@click.option("--weight", type=int, default=400, help="Requested weight")
@click.option("--style", default="normal", help="Requested style")
@click.pass_context
def find_font(ctx: click.Context, name: str, weight: int, style: str) -> None:
    """Find the face a font family resolves to."""
    font_db = _load_database(ctx)
    face = font_db.query(name, weight, style)
    if face is None:
        console.print(f"[red]Not found:[/red] {name}")
        raise SystemExit(1)
    console.print(f"[green]Found:[/green] {face.source}")
    console.print(f"[dim]Family:[/dim] {face.family} ({face.style}, {face.weight})")
    console.print(f"[dim]Face index:[/dim] {face.index}")
