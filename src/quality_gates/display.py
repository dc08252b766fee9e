"""Rich-based terminal rendering of gate results and run summaries.

All functions share the module-level ``_console`` so output stays
consistent across a session; tests swap it for a recording console.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from src.quality_gates.models import GateResult, GateStatus, RunSummary, RunVerdict

# ---------------------------------------------------------------------------
# Module-level Console singleton
# ---------------------------------------------------------------------------

_console = Console()

_STATUS_STYLES: dict[GateStatus, str] = {
    GateStatus.PASS: "green",
    GateStatus.FAIL: "red",
    GateStatus.SKIP: "dim",
    GateStatus.ERROR: "yellow",
}

_MAX_ISSUES_SHOWN = 20


# ---------------------------------------------------------------------------
# Display functions
# ---------------------------------------------------------------------------


def print_result(result: GateResult) -> None:
    """Print one gate result with its issues as a table."""
    style = _STATUS_STYLES.get(result.status, "dim")
    header = Text()
    header.append(f"{result.gate or 'gate'}: ", style="bold")
    header.append(result.status.value.upper(), style=f"bold {style}")
    header.append(f"  ({result.duration_ms:.0f}ms, {result.attempts} attempt(s))", style="dim")
    if result.reason:
        header.append(f"\n{result.reason}", style="dim")
    if result.error:
        header.append(f"\n{result.error}", style="yellow")

    renderables: list[Any] = [header]
    if result.issues:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Rule", style="cyan")
        table.add_column("Message")
        for issue in result.issues[:_MAX_ISSUES_SHOWN]:
            table.add_row(str(issue.line), issue.severity, issue.rule, issue.message)
        renderables.append(table)
        hidden = len(result.issues) - _MAX_ISSUES_SHOWN
        if hidden > 0:
            renderables.append(Text(f"... and {hidden} more", style="dim"))

    _console.print(Panel(Group(*renderables), border_style=style, expand=False))


def print_summary(summary: RunSummary) -> None:
    """Print a Rich panel summarising a run."""
    passed = summary.overall_status == RunVerdict.PASSED
    style = "green" if passed else "red"

    content = Text()
    content.append(f"Verdict: {summary.overall_status.value.upper()}\n", style=f"bold {style}")
    content.append(f"Score: {summary.score:.1f}%\n")
    content.append(
        f"Passed: {summary.passed}  Failed: {summary.failed}  "
        f"Errors: {summary.errors}  Skipped: {summary.skipped}\n"
    )
    content.append(f"Duration: {summary.duration_ms:.0f}ms")
    if summary.task_id:
        content.append(f"\nTask: {summary.task_id}", style="dim")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Gate", style="cyan", min_width=14)
    table.add_column("Status", justify="center", min_width=8)
    table.add_column("Issues", justify="right")
    table.add_column("Duration", justify="right")
    for result in summary.results:
        status_style = _STATUS_STYLES.get(result.status, "dim")
        table.add_row(
            result.gate,
            f"[{status_style}]{result.status.value}[/{status_style}]",
            str(len(result.issues)),
            f"{result.duration_ms:.0f}ms",
        )

    _console.print(
        Panel(
            Group(content, table),
            title="[bold]Quality Gate Summary[/bold]",
            border_style=style,
            expand=False,
        )
    )


def print_error_panel(error: str | Exception) -> None:
    """Print an error message in a red Rich panel."""
    _console.print(
        Panel(
            Text(str(error), style="bold white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )
