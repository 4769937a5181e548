"""Rich output formatting helpers for the distcheck CLI.

Provides consistent, colored terminal output for validation reports,
taint advisories, and content mismatch diffs.

Status Color Mapping:
    CLEAN = bold green, TAINTED = yellow, INVALID = bold red
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from distcheck.core.models import TaintReason, ValidationOutcome
from distcheck.core.walker import WalkReport
from distcheck.exceptions import ContentMismatchError

_TAINT_STYLES: dict[TaintReason, str] = {
    TaintReason.NONE: "green",
    TaintReason.SHA_MISMATCH: "bold yellow",
    TaintReason.SHA_MISSING: "yellow",
    TaintReason.TAG_MISSING: "cyan",
    TaintReason.PENDING: "magenta",
}

console = Console()
err_console = Console(stderr=True)


def taint_style(reason: TaintReason) -> str:
    """Return the Rich style string for a taint reason."""
    return _TAINT_STYLES.get(reason, "white")


def outcome_status(outcome: ValidationOutcome) -> Text:
    if not outcome.valid:
        return Text("INVALID", style="bold red")
    if not outcome.taint.clean:
        return Text("TAINTED", style="yellow")
    return Text("CLEAN", style="bold green")


def print_report(report: WalkReport) -> None:
    """Print a summary table of every validated package.

    Args:
        report: Walk report from the dependency walker.
    """
    if not report.outcomes:
        console.print("[dim]No packages validated.[/dim]")
        return

    table = Table(title="distcheck Results", show_header=True, header_style="bold")
    table.add_column("Package", style="bold")
    table.add_column("Version", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Taint", justify="center")
    table.add_column("Details")

    for outcome in report.outcomes:
        reason = outcome.taint.reason
        details = outcome.error or _format_details(outcome.taint.details())
        table.add_row(
            outcome.package,
            outcome.version,
            outcome_status(outcome),
            Text(reason.value, style=taint_style(reason)),
            Text(details),
        )

    console.print(table)
    _print_summary(report)

    for outcome in report.outcomes:
        if outcome.diff:
            print_diff(f"{outcome.package}@{outcome.version}", outcome.diff)


def _format_details(details: dict[str, object]) -> str:
    return ", ".join(f"{k}={v}" for k, v in details.items())


def _print_summary(report: WalkReport) -> None:
    """Print a one-line summary after the results table."""
    total = len(report.outcomes)
    clean = sum(1 for o in report.outcomes if o.clean)
    invalid = sum(1 for o in report.outcomes if not o.valid)
    tainted = total - clean - invalid
    parts = [f"[bold]{total}[/bold] packages checked"]
    if clean:
        parts.append(f"[green]{clean} clean[/green]")
    if tainted:
        parts.append(f"[yellow]{tainted} tainted[/yellow]")
    if invalid:
        parts.append(f"[red]{invalid} invalid[/red]")
    console.print(" | ".join(parts))


def print_diff(title: str, diff: str) -> None:
    """Print a unified diff with syntax highlighting."""
    console.print(Panel(
        Syntax(diff, "diff", word_wrap=True),
        title=f"Content mismatch: {title}",
        border_style="red",
    ))


def print_mismatch(exc: ContentMismatchError) -> None:
    """Print a content mismatch error, including the git taint in effect."""
    title = f"{exc.package}@{exc.version}" if exc.package else "package"
    if not exc.taint.clean:
        err_console.print(
            f"[yellow]git checkout tainted due to \"{exc.taint.reason.value}\": "
            f"{escape(_format_details(exc.taint.details()))}[/yellow]"
        )
    print_diff(title, exc.diff)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
