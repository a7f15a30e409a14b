"""Tombstone Analyzer CLI - find dead code from tombstones that never came back to life."""
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from .config import Config, __version__
from .errors import ConfigurationError
from .pipeline import analyze_project, collect_sightings, extract_markers
from .report.console import render_report
from .report.json_export import write_json
from .utils.logger import configure_logging
from .utils.safe_console import SafeConsole

app = typer.Typer(
    name="tombstone-analyzer",
    help="Correlate tombstone markers with runtime sightings to find dead code",
    add_completion=False,
)
# Use SafeConsole for Windows Unicode compatibility
console = SafeConsole()


def _build_config(root: str, log_dir: Optional[str] = None, include: Optional[List[str]] = None,
                  exclude: Optional[List[str]] = None, function: Optional[List[str]] = None,
                  tolerance: Optional[int] = None, workers: Optional[int] = None) -> Config:
    return Config(
        root_directory=root,
        log_directory=log_dir,
        include=include or None,
        excludes=exclude or None,
        function_names=function or None,
        position_tolerance=tolerance,
        workers=workers,
    )


def _fail(exc: ConfigurationError) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    raise typer.Exit(1)


@app.command()
def report(
    root: str = typer.Argument(".", help="Project root to scan for tombstones"),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", "-l", help="Directory of sighting logs (default: <root>/storage/tombstone)"),
    include: Optional[List[str]] = typer.Option(None, "--include", "-i", help="Glob of source files to scan (repeatable)"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="Directory or glob to skip (repeatable)"),
    function: Optional[List[str]] = typer.Option(None, "--function", "-f", help="Marking function name (repeatable)"),
    tolerance: Optional[int] = typer.Option(None, "--tolerance", help="Line drift accepted by position matching"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Worker threads for parsing and log reading"),
    json_output: Optional[Path] = typer.Option(None, "--json", help="Also write the report as JSON to this path"),
    show_sightings: bool = typer.Option(False, "--show-sightings", help="List the sightings of resurrected tombstones"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Analyze tombstones and generate a dead code report."""
    configure_logging(verbose=verbose)
    config = _build_config(root, log_dir, include, exclude, function, tolerance, workers)

    console.print(f"[bold blue]Analyzing tombstones in:[/bold blue] {escape(str(config.root_directory))}")
    try:
        with console.status("Collecting tombstones and vampire logs..."):
            result = analyze_project(config)
    except ConfigurationError as exc:
        _fail(exc)

    if result.collection.directory_missing:
        console.print(f"[dim]No log directory at {escape(str(config.log_directory))}; "
                      f"treating every tombstone as dormant.[/dim]")
    console.print()

    render_report(result.report, console, show_sightings=show_sightings)

    if json_output is not None:
        written = write_json(result.report, json_output)
        console.print(f"\n[green]JSON report written to {escape(str(written))}[/green]")


@app.command()
def markers(
    root: str = typer.Argument(".", help="Project root to scan for tombstones"),
    include: Optional[List[str]] = typer.Option(None, "--include", "-i", help="Glob of source files to scan (repeatable)"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="Directory or glob to skip (repeatable)"),
    function: Optional[List[str]] = typer.Option(None, "--function", "-f", help="Marking function name (repeatable)"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Worker threads for parsing"),
):
    """List the tombstones found in source code."""
    configure_logging()
    config = _build_config(root, include=include, exclude=exclude, function=function, workers=workers)
    try:
        config.validate()
        extraction = extract_markers(config)
    except ConfigurationError as exc:
        _fail(exc)

    if extraction.markers:
        table = Table(title="Tombstones")
        table.add_column("File", style="magenta", no_wrap=False)
        table.add_column("Line", justify="right", style="green")
        table.add_column("In", style="yellow")
        table.add_column("Metadata", style="cyan")
        table.add_column("Id", style="dim")
        for marker in extraction.markers:
            table.add_row(
                escape(marker.file_path),
                str(marker.line_number),
                escape(marker.enclosing_function or "<module>"),
                escape(", ".join(marker.metadata)),
                marker.id[:12],
            )
        console.print(table)
    else:
        console.print("[bold yellow]No tombstones found.[/bold yellow]")

    for failure in extraction.failures:
        console.print(f"[yellow]Skipped[/yellow] {escape(str(failure))}")
    console.print(f"\n  Files scanned: {extraction.files_scanned}")
    console.print(f"  Tombstones: {len(extraction.markers)}")


@app.command()
def sightings(
    log_dir: str = typer.Argument(..., help="Directory of sighting logs"),
    show_failures: bool = typer.Option(False, "--show-failures", help="List undecodable lines"),
):
    """Summarize the vampire logs in a directory."""
    configure_logging()
    config = Config(log_directory=str(Path(log_dir).resolve()))
    try:
        collection = collect_sightings(config)
    except ConfigurationError as exc:
        _fail(exc)

    if collection.directory_missing:
        console.print(f"[bold yellow]Log directory does not exist:[/bold yellow] {escape(log_dir)}")

    counts = {}
    for sighting in collection.sightings:
        key = (sighting.file_path, sighting.line_number, sighting.enclosing_function)
        counts[key] = counts.get(key, 0) + 1

    if counts:
        table = Table(title="Vampires")
        table.add_column("File", style="magenta")
        table.add_column("Line", justify="right", style="green")
        table.add_column("In", style="yellow")
        table.add_column("Sightings", justify="right")
        for (file_path, line, function_name), count in sorted(counts.items()):
            table.add_row(escape(file_path), str(line), escape(function_name or "<module>"), str(count))
        console.print(table)

    if show_failures:
        for failure in collection.failures:
            console.print(f"[yellow]Skipped[/yellow] {escape(str(failure))}")

    console.print(f"\n  Log files read: {collection.files_read}")
    console.print(f"  Sightings: {len(collection.sightings)}")
    console.print(f"  Skipped lines: {len(collection.failures)}")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tombstone-analyzer {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """Tombstone Analyzer - dead code detection from tombstones and vampire logs."""


if __name__ == "__main__":
    app()
