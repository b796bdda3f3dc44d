"""
Specforge CLI - Command-line interface for spec-driven generation

Usage:
    specforge build <spec_file> -o <output_dir> [--key KEY]
    specforge update <spec_file> -o <output_dir> --key KEY [--spec]
    specforge validate <spec_file>
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from specforge.builder import Builder
from specforge.config import Action, BuildArgs, BuildConfig
from specforge.spec import RawSpec, normalize
from specforge.writer import GenerationResult

app = typer.Typer(
    name="specforge",
    help="Generate client and mock-server projects from API specs",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(spec_file: Path) -> RawSpec:
    try:
        return RawSpec.from_file(spec_file)
    except (ValidationError, yaml.YAMLError, ValueError) as e:
        rprint(f"[red]✗[/red] Cannot load {spec_file}: {escape(str(e))}")
        raise typer.Exit(1)


def _run(
    action: Action,
    spec_file: Path,
    output: Optional[Path],
    args: BuildArgs,
    verbose: bool,
) -> None:
    _setup_logging(verbose)
    raw = _load(spec_file)
    rprint(f"[green]✓[/green] Loaded: [bold]{raw.project.name or spec_file.name}[/bold]")

    if output is None:
        output = Path.cwd()

    config = BuildConfig(action=action, output_root=output, pid=raw.project.id)
    result = Builder(raw, config, args).run()
    _show_result(result, output)


def _show_result(result: GenerationResult, output: Path) -> None:
    rprint(f"[green]✓[/green] Wrote {len(result.files)} files to {output}")
    if result.skipped:
        rprint(f"[yellow]•[/yellow] Kept {len(result.skipped)} existing files")
    if not result.success:
        rprint(f"[yellow]![/yellow] {len(result.errors)} problems during generation:")
        for error in result.errors:
            rprint(f"  [red]✗[/red] {escape(error)}")


def _spec_file_argument():
    return typer.Argument(
        ...,
        help="Path to the spec payload (JSON or YAML)",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    )


@app.command()
def build(
    spec_file: Path = _spec_file_argument(),
    output: Path = typer.Option(None, "--output", "-o", help="Output root (defaults to cwd)", resolve_path=True),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Project key; enables mock data and config files"),
    spec_key: Optional[str] = typer.Option(None, "--spec-key", help="Spec key"),
    spec_type: Optional[str] = typer.Option(None, "--spec-type", "-t", help="Spec type, e.g. web, ios, android"),
    overwrite: bool = typer.Option(False, "--overwrite", "-w", help="Overwrite existing files"),
    ios_project_path: Optional[str] = typer.Option(None, "--ios-project-path", help="Directory holding the .xcodeproj"),
    prefix: str = typer.Option("", "--prefix", help="Class prefix for generated iOS models"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Generate a project from a spec."""
    args = BuildArgs(
        key=key,
        spec_key=spec_key,
        spec_type=spec_type,
        overwrite=overwrite,
        ios_project_path=ios_project_path,
        prefix=prefix,
    )
    _run(Action.BUILD, spec_file, output, args, verbose)


@app.command()
def update(
    spec_file: Path = _spec_file_argument(),
    output: Path = typer.Option(None, "--output", "-o", help="Output root (defaults to cwd)", resolve_path=True),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Project key"),
    spec_key: Optional[str] = typer.Option(None, "--spec-key", help="Spec key"),
    spec_type: Optional[str] = typer.Option(None, "--spec-type", "-t", help="Spec type, e.g. web, ios, android"),
    spec: bool = typer.Option(False, "--spec", help="Also regenerate plain files and directories"),
    overwrite: bool = typer.Option(False, "--overwrite", "-w", help="Overwrite existing files"),
    ios_project_path: Optional[str] = typer.Option(None, "--ios-project-path", help="Directory holding the .xcodeproj"),
    pbx_force: bool = typer.Option(False, "--pbx-force", help="Update the Xcode project even if nothing changed"),
    prefix: str = typer.Option("", "--prefix", help="Class prefix for generated iOS models"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Refresh a generated project after the spec changed."""
    args = BuildArgs(
        key=key,
        spec_key=spec_key,
        spec_type=spec_type,
        spec=spec,
        overwrite=overwrite,
        ios_project_path=ios_project_path,
        pbx_force=pbx_force,
        prefix=prefix,
    )
    _run(Action.UPDATE, spec_file, output, args, verbose)


@app.command()
def validate(spec_file: Path = _spec_file_argument()) -> None:
    """Validate a spec payload and summarize it."""
    raw = _load(spec_file)
    ds = normalize(raw)
    rprint(f"[green]✓[/green] Valid: [bold]{ds.project.name or spec_file.name}[/bold]")

    table = Table()
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("Documents", str(len(ds.docs)))
    table.add_row("Interfaces", str(len(ds.interfaces)))
    table.add_row("Data types", str(len(ds.datatypes)))
    table.add_row("Enumerations", str(len(ds.datatype_enums)))
    table.add_row("Templates", str(len(ds.templates)))
    table.add_row("Pages", str(len(ds.pages)))

    rprint(table)


@app.command()
def version() -> None:
    """Show version."""
    from specforge import __version__
    rprint(f"specforge {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
