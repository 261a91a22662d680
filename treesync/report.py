"""Rich rendering of run results and execution reports."""

from __future__ import annotations

from io import StringIO
import shutil
from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.table import Table

from .sync import ExecutionReport, SyncResult

LIST_LIMIT = 20
MIN_WIDTH = 40


def render_rich(render_fn: Callable[[Console], None], width: Optional[int] = None) -> str:
    """Draw through ``render_fn`` on an off-screen console and return the text.

    Styles survive as ANSI codes. ``width`` defaults to the terminal's.
    """
    if width is None:
        width = max(MIN_WIDTH, shutil.get_terminal_size(fallback=(100, 24)).columns)
    console = Console(record=True, force_terminal=True, width=width, file=StringIO())
    render_fn(console)
    return console.export_text(styles=True)


def render_result(result: SyncResult, job_name: Optional[str] = None) -> str:
    """Summary table, blocking files and pending plan for one run."""

    def _render(console: Console) -> None:
        title = f"Job {job_name}" if job_name else "Process summary"
        table = Table(title=title, show_header=False)
        table.add_column("Category", style="bold")
        table.add_column("Files", justify="right")

        table.add_row("Source", str(len(result.source_files)))
        table.add_row("Target", str(len(result.target_files)))
        table.add_row("Identical", str(len(result.identical)))
        table.add_row("Different", str(len(result.different)))
        table.add_row("Missing", str(len(result.missing)))
        table.add_row("Extra", str(len(result.extra)))
        table.add_row("Similar", str(len(result.similar)))
        table.add_row("Conflicted", str(len(result.conflicted)))
        if result.failures:
            table.add_row("Comparison failures", str(len(result.failures)))
        console.print(table)
        console.print(f"Process ran in {int(result.duration * 1000)} ms.\n", highlight=False)

        if result.conflicted:
            console.print("[yellow]Conflicted files were detected:[/yellow]")
            _print_paths(console, result.conflicted, "!")
        if result.different:
            console.print("[red]Different files were detected:[/red]")
            _print_paths(console, result.different, "~")
        if result.failures:
            console.print("[red]Comparison failures:[/red]")
            _print_paths(
                console,
                [f"{f.first} / {f.second} ({f.stage}): {f.message}" for f in result.failures],
                "x",
            )

        if not result.has_blockers:
            console.print(f"{len(result.extra)} extra files will be deleted.", highlight=False)
            console.print(f"{len(result.missing)} missing files will be copied.", highlight=False)
            console.print(f"{len(result.similar)} similar files will be moved.", highlight=False)

    return render_rich(_render)


def render_execution_report(report: ExecutionReport) -> str:
    def _render(console: Console) -> None:
        console.print(f"[bold]Execution:[/bold] {report.summary()}", highlight=False)
        for error in report.failed:
            console.print(f"  x {error}", style="red", markup=False, highlight=False)

    return render_rich(_render)


def _print_paths(console: Console, paths: Sequence[str], marker: str) -> None:
    for path in paths[:LIST_LIMIT]:
        console.print(f"  {marker} {path}", markup=False, highlight=False)
    if len(paths) > LIST_LIMIT:
        console.print(f"  ... and {len(paths) - LIST_LIMIT} more", highlight=False)
    console.print()


__all__ = ["render_rich", "render_result", "render_execution_report"]
