"""
Typer CLI entry point and orchestration of the analysis pipeline.

    cleansweep analyze src/ lib/util.c --config cleansweep.toml --jobs 4
    cleansweep rules --config cleansweep.toml
    cleansweep rules --template > .cleansweep.toml

`analyze` exits 0 when no finding is at or above --severity-threshold
(default: error), 1 when one is, 2 on configuration errors and 130 when
interrupted before every file was analyzed.
"""

from __future__ import annotations

import logging
import signal
import threading
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from cleansweep.config import build_registry, default_config_template, load_config
from cleansweep.engine import analyze_paths
from cleansweep.errors import CleanSweepError
from cleansweep.findings.models import BatchResult, Severity
from cleansweep.registry import RuleRegistry, builtin_rule_types
from cleansweep.reporting.console import print_batch
from cleansweep.reporting.json_report import render_json
from cleansweep.traversal import collect_targets

logger = logging.getLogger(__name__)

app = typer.Typer(help="CleanSweep - clean-code convention checker for C and JavaScript sources.")

EXIT_FINDINGS = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


class OutputFormat(str, Enum):
    human = "human"
    json = "json"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _run_cancellable(files: List[Path], jobs: int, registry: RuleRegistry) -> BatchResult:
    """Run the batch; Ctrl-C lets in-flight files finish and skips the rest."""
    cancel = threading.Event()

    def _on_interrupt(signum, frame) -> None:
        logger.warning("Interrupted; finishing files in progress")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        return analyze_paths(files, registry, jobs=jobs, cancel=cancel)
    finally:
        signal.signal(signal.SIGINT, previous)


@app.command()
def analyze(
    targets: List[Path] = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Source files or directories to analyze.",
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file (default: project-local lookup)."
    ),
    severity_threshold: Severity = typer.Option(
        Severity.ERROR,
        "--severity-threshold",
        case_sensitive=False,
        help="Exit non-zero when a finding is at or above this severity.",
    ),
    output_format: OutputFormat = typer.Option(OutputFormat.human, "--format", "-f", help="Output format."),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Files analyzed in parallel."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show suggestions and remediation hints."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level for diagnostics on stderr."),
) -> None:
    """
    Check source files against the clean-code convention rules.

    Uses the rules enabled by the configuration; see `cleansweep rules`.
    """
    _configure_logging(log_level)

    try:
        registry = build_registry(load_config(Path.cwd(), config))
    except CleanSweepError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=EXIT_CONFIG)

    if not len(registry):
        typer.echo("No rules are enabled in the current configuration.", err=True)
        raise typer.Exit(code=EXIT_FINDINGS)

    try:
        files = collect_targets(targets)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    batch = _run_cancellable(files, jobs, registry)

    if output_format == OutputFormat.json:
        typer.echo(render_json(batch))
    else:
        print_batch(batch, verbose=verbose)

    if batch.cancelled:
        raise typer.Exit(code=EXIT_INTERRUPTED)
    if batch.has_findings_at(severity_threshold):
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command()
def rules(
    template: bool = typer.Option(False, "--template", help="Print a starter configuration file instead."),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file (default: project-local lookup)."
    ),
) -> None:
    """List the built-in rules with the severity and thresholds the configuration gives them."""
    if template:
        typer.echo(default_config_template())
        return

    try:
        registry = build_registry(load_config(Path.cwd(), config))
    except CleanSweepError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=EXIT_CONFIG)

    table = Table(title="Rules", header_style="bold magenta", box=box.ROUNDED)
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Severity")
    table.add_column("Node kinds", style="dim")
    table.add_column("Options", style="dim")
    for rule_type in builtin_rule_types():
        if rule_type.id in registry:
            rule = registry.get(rule_type.id)
            status = Text("enabled", style="green")
            severity, options = rule.severity, rule.options.model_dump()
        else:
            status = Text("disabled", style="dim red")
            severity, options = rule_type.default_severity, rule_type.Options().model_dump()
        table.add_row(
            rule_type.id,
            rule_type.name,
            status,
            severity.value,
            ", ".join(sorted(k.value for k in rule_type.kinds)),
            Text(", ".join(f"{k}={v}" for k, v in options.items()) or "-"),
        )
    Console().print(table)


def main() -> None:
    """Entry point for the `cleansweep` script and `python -m cleansweep.main`."""
    app()


if __name__ == "__main__":
    main()
