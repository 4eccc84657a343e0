# Rich console output: format diagnostics for terminal display.

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cleansweep.findings.models import BatchResult, Diagnostics, Finding, Severity

# Remediation hints per rule (shown with --verbose)
RULE_REMEDIATIONS: dict[str, str] = {
    "naming-convention": (
        "Use names that reveal intent: longer names for longer-lived scopes, "
        "is/has/can prefixes for booleans, positive predicates, no I-prefixes or noise words."
    ),
    "function-shape": (
        "Keep parameter lists short; replace flag arguments with separate functions; "
        "return results instead of writing through parameters."
    ),
    "comment-quality": (
        "Delete commented-out code; update or remove comments that mention symbols "
        "which no longer exist."
    ),
    "class-shape": (
        "Split classes with many methods or fields by responsibility; keep fields private."
    ),
    "conditional-polarity": (
        "Prefer positive conditions: if (isReady()) over if (!isNotReady())."
    ),
    "parse-error": "Fix the syntax error; no rules run on a file that does not parse.",
}

# Severity -> Rich style
SEVERITY_STYLE = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "bold yellow",
    Severity.INFO: "bold blue",
}

DEFAULT_SEVERITY_STYLE = "bold white"


def _severity_style(severity: Severity) -> str:
    return SEVERITY_STYLE.get(severity, DEFAULT_SEVERITY_STYLE)


def _get_remediation(finding: Finding) -> str | None:
    """Return remediation hint for a finding, or None if unknown."""
    return RULE_REMEDIATIONS.get(finding.rule_id)


def print_batch(
    batch: BatchResult,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> None:
    """
    Print a batch using Rich: one table per file with findings, colored by
    severity, followed by a file summary and a severity summary. If verbose,
    shows suggestions and remediation hints.
    """
    console = console or Console()

    if not batch.findings and not batch.diagnostics:
        console.print(
            Panel(
                "[green]No files analyzed.[/green]",
                title="CleanSweep",
                border_style="green",
                box=box.ROUNDED,
            )
        )
        _print_not_analyzed(batch, console)
        return

    for diagnostics in batch.diagnostics:
        if diagnostics.findings:
            _print_file(diagnostics, verbose, console)

    _print_file_summary_table(batch.diagnostics, console)
    _print_not_analyzed(batch, console)
    _print_summary(batch.findings, console)


def _print_file(diagnostics: Diagnostics, verbose: bool, console: Console) -> None:
    console.print()
    console.print(
        Panel(
            Text(_shorten_path(diagnostics.path), style="bold cyan"),
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        )
    )

    table = Table(
        show_header=True,
        header_style="bold magenta",
        box=box.SIMPLE,
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Line", justify="right", style="dim", width=5)
    table.add_column("Col", justify="right", style="dim", width=4)
    table.add_column("Severity", width=8)
    table.add_column("Rule", width=22)
    table.add_column("Message", style="white")

    for f in diagnostics.findings:
        table.add_row(
            str(f.span.start_line),
            str(f.span.start_column),
            Text(f.severity.value.upper(), style=_severity_style(f.severity)),
            Text(f"[{f.rule_id}]", style="dim"),
            Text(f.message),
        )
    console.print(table)

    if not verbose:
        return
    for f in diagnostics.findings:
        if f.suggestion:
            console.print(
                Text.assemble(("  |-- ", "dim"), f"{f.span.start_line}: suggest ", (f.suggestion, "green"))
            )
    seen_rules: set[str] = set()
    for f in diagnostics.findings:
        if f.rule_id not in seen_rules:
            seen_rules.add(f.rule_id)
            rem = _get_remediation(f)
            if rem:
                console.print(Text.assemble(("  [Fix]", "dim"), f" [{f.rule_id}] {rem}"))
    console.print()


def _shorten_path(path: str | Path) -> str:
    """Return the path relative to the working directory when possible."""
    path = Path(path)
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


def _print_file_summary_table(diagnostics: tuple[Diagnostics, ...], console: Console) -> None:
    """Print a table of clean vs flagged files."""
    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Status", width=10)
    table.add_column("Findings", justify="right", width=8)

    flagged = sorted((d for d in diagnostics if d.findings), key=lambda d: str(d.path))
    clean = sorted((d for d in diagnostics if not d.findings), key=lambda d: str(d.path))
    for d in flagged:
        status = Text("NO PARSE", style="bold red") if d.parse_failed else Text("FLAGGED", style="bold yellow")
        table.add_row(Text(_shorten_path(d.path)), status, str(len(d.findings)))
    for d in clean:
        table.add_row(Text(_shorten_path(d.path)), Text("OK", style="bold green"), "0")

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_not_analyzed(batch: BatchResult, console: Console) -> None:
    for path in batch.unreadable:
        console.print(Text.assemble(("Unreadable:", "bold red"), " ", _shorten_path(path)))
    if batch.skipped:
        console.print(f"[bold yellow]Cancelled:[/bold yellow] {len(batch.skipped)} file(s) not analyzed")
        for path in batch.skipped:
            console.print(Text(f"  {_shorten_path(path)}", style="dim"))


def _print_summary(findings: list[Finding], console: Console) -> None:
    """Print a compact summary of findings."""
    by_severity: dict[Severity, int] = {}
    for f in findings:
        by_severity[f.severity] = by_severity.get(f.severity, 0) + 1

    total = len(findings)
    summary_parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for sev in (Severity.ERROR, Severity.WARNING, Severity.INFO):
        if sev in by_severity:
            summary_parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev.value}[/]")

    console.print()
    console.print(
        Panel(
            " | ".join(summary_parts),
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )
