"""Rich formatting helpers for the refbuild CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from refbuild.models.build import BuildInfo, JobInfo
    from refbuild.models.commits import CommitWindow
    from refbuild.models.reference import ReferencePointer

_RESULT_STYLES = {
    "success": "green",
    "unstable": "yellow",
    "failure": "red",
    "not_built": "dim",
    "aborted": "dim",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _short(commit_id: str) -> str:
    return commit_id[:8] if commit_id else "-"


def _result_markup(build: BuildInfo) -> str:
    if build.result is None:
        return "[cyan]running[/cyan]"
    style = _RESULT_STYLES.get(build.result.value, "")
    return f"[{style}]{build.result.value}[/{style}]"


def format_jobs(jobs: list[JobInfo], console: Console) -> None:
    """Display registered jobs as a table."""
    if not jobs:
        console.print("[dim]No jobs.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Job", style="bold")
    table.add_column("Project")
    table.add_column("Branch")
    table.add_column("Primary", justify="center")

    for job in jobs:
        table.add_row(
            escape(job.name),
            escape(job.project or ""),
            escape(job.branch or ""),
            "*" if job.is_primary else "",
        )

    console.print(table)


def format_builds(
    entries: list[tuple[BuildInfo, ReferencePointer | None]], console: Console
) -> None:
    """Display builds of a job with their reference build."""
    if not entries:
        console.print("[dim]No builds.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Build", style="yellow")
    table.add_column("Result")
    table.add_column("Time", style="dim")
    table.add_column("Reference")

    for build, pointer in entries:
        if pointer is None:
            reference = "[dim]unresolved[/dim]"
        elif pointer.reference_build_id is None:
            reference = "[dim]none[/dim]"
        else:
            reference = escape(pointer.reference_build_id)
        table.add_row(
            escape(build.build_id),
            _result_markup(build),
            build.created_at.strftime("%Y-%m-%d %H:%M"),
            reference,
        )

    console.print(table)


def format_window(window: CommitWindow | None, console: Console) -> None:
    """Display a commit window, newest commit first."""
    if window is None:
        console.print("  Commits:   [dim]not recorded[/dim]")
        return

    console.print(f"  HEAD:      [yellow]{_short(window.latest_commit)}[/yellow]")
    console.print(f"  Parent:    {_short(window.parent_commit)}")
    console.print(f"  Commits:   {window.size} new")
    for commit_id in window.commits:
        console.print(f"    [yellow]{escape(commit_id)}[/yellow]")


def format_reference(pointer: ReferencePointer | None, console: Console, *, verbose: bool = False) -> None:
    """Display a reference pointer and, if asked, the trail of the search."""
    if pointer is None:
        console.print("  Reference: [dim]not resolved[/dim]")
        return

    if pointer.reference_build_id is None:
        console.print("  Reference: [dim]none[/dim]")
    else:
        console.print(f"  Reference: [green]{escape(pointer.reference_build_id)}[/green]")

    if verbose:
        for message in pointer.messages:
            console.print(f"    [dim]{escape(message)}[/dim]")


def format_build(
    build: BuildInfo,
    window: CommitWindow | None,
    pointer: ReferencePointer | None,
    console: Console,
    *,
    verbose: bool = False,
) -> None:
    """Display one build with its commit window and reference build."""
    console.print(f"[yellow]build {escape(build.build_id)}[/yellow] {_result_markup(build)}")
    console.print(f"  Date:      {build.created_at.strftime('%Y-%m-%d %H:%M:%S')}")
    format_window(window, console)
    format_reference(pointer, console, verbose=verbose)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
