"""Rich console rendering of an aggregated report."""
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..matching.matcher import Status
from .aggregator import Report, ReportEntry


def _marker_label(entry: ReportEntry) -> str:
    args = ', '.join(repr(value) for value in entry.marker.metadata)
    return f"{entry.marker.function_name}({args})"


def render_report(report: Report, console: Console, show_sightings: bool = False) -> None:
    """Print dormant and resurrected markers grouped by file, then the summary."""
    if not report.files:
        console.print("[bold yellow]No tombstones found.[/bold yellow]\n")

    for file_report in report.files:
        table = Table(title=escape(file_report.file_path), title_justify="left", show_header=True,
                      header_style="bold magenta")
        table.add_column("Line", justify="right", style="green")
        table.add_column("Tombstone", style="cyan", no_wrap=False)
        table.add_column("In", style="yellow")
        table.add_column("Status")
        table.add_column("Sightings", justify="right")
        table.add_column("Matched By", style="dim")

        for entry in file_report.entries:
            if entry.status is Status.RESURRECTED:
                status = "[bold red]resurrected[/bold red]"
            else:
                status = "[bold green]dormant[/bold green]"
            table.add_row(
                str(entry.marker.line_number),
                escape(_marker_label(entry)),
                escape(entry.marker.enclosing_function or "<module>"),
                status,
                str(len(entry.sightings)),
                entry.strategy or "-",
            )
        console.print(table)

        if show_sightings:
            for entry in file_report.resurrected:
                console.print(f"  [bold]line {entry.marker.line_number}[/bold] "
                              f"{escape(_marker_label(entry))}")
                for sighting in entry.sightings:
                    caller = escape(sighting.caller or "unknown caller")
                    console.print(f"    → [dim]{sighting.timestamp.isoformat()}[/dim] by {caller} "
                                  f"[dim]({escape(sighting.file_path)}:{sighting.line_number})[/dim]")
        console.print()

    if report.warnings:
        console.print(f"[bold yellow]Skipped {len(report.warnings)} file(s):[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  [yellow]⚠[/yellow] {escape(str(warning))}")
        console.print()

    summary = report.summary
    console.print("[bold yellow]Tombstone Summary:[/bold yellow]")
    console.print(f"  Total tombstones: {summary.total}")
    console.print(f"  Dormant (dead code candidates): {summary.dormant}")
    console.print(f"  Resurrected (still in use): {summary.resurrected}")
    if summary.skipped_files:
        console.print(f"  Skipped source files: {summary.skipped_files}")
    if summary.skipped_lines:
        console.print(f"  Skipped log lines: {summary.skipped_lines}")
