"""Rich output formatting helpers for the pubsolve CLI.

Provides consistent terminal output for resolutions, conflict explanations,
constraint checks and errors. JSON output is produced by the commands
themselves with ``click.echo``.
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pubsolve.core.resolution.models import Resolution
from pubsolve.core.solver.report import ConflictExplanation
from pubsolve.core.version.constraints import VersionConstraint
from pubsolve.core.version.version import Version

console = Console()
error_console = Console(stderr=True)

_STABILITY_STYLES: dict[str, str] = {
    "stable": "green",
    "RC": "cyan",
    "beta": "yellow",
    "alpha": "yellow",
    "dev": "bold red",
}


def stability_style(version: Version) -> str:
    """Return the Rich style string for a version's stability."""
    return _STABILITY_STYLES.get(str(version.stability), "white")


def print_resolution(resolution: Resolution, show_stats: bool = True) -> None:
    """Print the selected packages in installation order.

    Args:
        resolution: The successful resolution.
        show_stats: Also print solver and fetch counters.
    """
    if not resolution.packages:
        console.print("[dim]Nothing to install.[/dim]")
    else:
        table = Table(title="Resolved Packages", show_header=True, header_style="bold")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Dev", justify="center")
        table.add_column("Requires", style="dim")

        for position, package in enumerate(resolution.packages, start=1):
            table.add_row(
                str(position),
                package.name,
                Text(str(package.version), style=stability_style(package.version)),
                Text("dev", style="yellow") if package.is_dev else Text("-", style="dim"),
                ", ".join(package.dependencies) or "-",
            )
        console.print(table)

    if resolution.platform_packages:
        console.print(
            f"[dim]Platform requirements: {', '.join(resolution.platform_packages)}[/dim]"
        )

    summary = (
        f"[bold]{len(resolution)}[/bold] packages "
        f"({len(resolution.non_dev)} runtime, {len(resolution.dev)} dev)"
    )
    if show_stats:
        stats = resolution.stats
        summary += (
            f" in {stats.elapsed:.2f}s | decisions: {stats.solver.decisions}"
            f" | conflicts: {stats.solver.conflicts}"
            f" | fetched: {stats.fetch.completed}"
        )
    console.print(summary)


def print_conflict(explanation: ConflictExplanation) -> None:
    """Print why the requirements cannot be satisfied."""
    body = Text()
    for index, step in enumerate(explanation.steps):
        if index:
            body.append("\n")
        style = "bold" if index == len(explanation.steps) - 1 else ""
        body.append(step.description, style=style)
    error_console.print(
        Panel(body, title="Version solving failed", border_style="red", expand=False)
    )


def print_error(message: str, title: str = "Error") -> None:
    """Print a single error in a red panel on stderr."""
    error_console.print(Panel(message, title=title, border_style="red", expand=False))


def print_constraint_report(
    constraint: VersionConstraint,
    results: Sequence[tuple[str, bool | None]],
) -> None:
    """Print a parsed constraint and which versions it allows.

    Args:
        constraint: The parsed constraint.
        results: ``(version text, allowed)`` pairs; ``allowed`` is None for
            versions that failed to parse.
    """
    console.print(f"[bold]{constraint.text}[/bold] -> {constraint.versions}")
    if constraint.stability is not None:
        console.print(f"[dim]stability flag: {constraint.stability}[/dim]")
    if not results:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Version")
    table.add_column("Allowed", justify="center")
    for text, allowed in results:
        if allowed is None:
            verdict = Text("invalid", style="bold red")
        elif allowed:
            verdict = Text("yes", style="bold green")
        else:
            verdict = Text("no", style="yellow")
        table.add_row(text, verdict)
    console.print(table)
