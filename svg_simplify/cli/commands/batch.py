"""Batch command - simplify multiple SVG files."""

from __future__ import annotations

import concurrent.futures
from pathlib import Path

import click
from rich.console import Console
from rich.progress import Progress

from svg_simplify.api import ConversionResult, Simplifier
from svg_simplify.config import Config
from svg_simplify.exceptions import ConfigError, FontResolutionError

console = Console()


@click.command()
@click.argument("inputs", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--output-dir", "-o", type=click.Path(path_type=Path), required=True, help="Output directory")
@click.option("--batch-file", type=click.Path(exists=True, path_type=Path), help="File containing list of inputs")
@click.option("--suffix", default="_simplified", help="Output filename suffix")
@click.option("-j", "--jobs", type=int, default=4, help="Parallel jobs")
@click.option("--continue-on-error", is_flag=True, help="Continue processing on errors")
@click.pass_context
def batch(
    ctx: click.Context,
    inputs: tuple[Path, ...],
    output_dir: Path,
    batch_file: Path | None,
    suffix: str,
    jobs: int,
    continue_on_error: bool,
) -> None:
    """Simplify multiple SVG files.

    INPUTS: Paths to SVG files (supports glob patterns via shell).
    """
    config: Config = ctx.obj.get("config") or Config.load()

    all_inputs: list[Path] = list(inputs)
    if batch_file:
        with open(batch_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    all_inputs.append(Path(line))

    if not all_inputs:
        console.print("[red]Error:[/red] No input files specified")
        raise SystemExit(1)

    output_dir.mkdir(parents=True, exist_ok=True)

    # One font database for all workers; conversions only read it.
    try:
        simplifier = Simplifier(config)
    except (ConfigError, FontResolutionError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(2) from e

    results: list[ConversionResult] = []
    success_count = 0
    error_count = 0

    def process_file(input_path: Path) -> ConversionResult:
        output_path = output_dir / f"{input_path.stem}{suffix}.svg"
        return simplifier.convert_file(input_path, output_path)

    with Progress(console=console) as progress:
        task = progress.add_task("[green]Simplifying...", total=len(all_inputs))

        with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
            future_to_path = {executor.submit(process_file, p): p for p in all_inputs}

            for future in concurrent.futures.as_completed(future_to_path):
                input_path = future_to_path[future]
                result = future.result()
                results.append(result)
                progress.advance(task)
                if result.success:
                    success_count += 1
                    continue
                error_count += 1
                console.print(f"[red]Error in {input_path}:[/red] {'; '.join(result.errors)}")
                if not continue_on_error:
                    for pending in future_to_path:
                        pending.cancel()
                    break

    console.print()
    console.print("[bold]Batch complete:[/bold]")
    console.print(f"  [green]Success:[/green] {success_count}")
    console.print(f"  [red]Failed:[/red] {error_count}")
    console.print(f"  [yellow]Diagnostics:[/yellow] {sum(len(r.diagnostics) for r in results)}")
    console.print(f"  [blue]Output:[/blue] {output_dir}")

    if error_count > 0 and not continue_on_error:
        raise SystemExit(1)
