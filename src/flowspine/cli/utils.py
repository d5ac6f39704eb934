"""
CLI utility helpers: settings loading, logging setup and output formatting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flowspine.core.errors import (
    FlowSpineError,
    InvalidConfigError,
    MissingConfigError,
    TopologyError,
)
from flowspine.core.logging import configure_logging
from flowspine.core.settings import FlowSpineSettings
from flowspine.orchestration.report import ConvergenceReport, StepOutcome

console = Console()
err_console = Console(stderr=True)

_OUTCOME_STYLE = {
    StepOutcome.CREATED: "green",
    StepOutcome.REUSED: "cyan",
    StepOutcome.FAILED: "bold red",
    StepOutcome.SKIPPED: "yellow",
}

ENV_FILE_OPTION = typer.Option(
    Path(".env"), "--env-file", "-e", help="Environment file to read settings from."
)


# ── Settings / logging ───────────────────────────────────────────────────


def load_settings(env_file: Path | None) -> FlowSpineSettings:
    """Build settings once for the whole command. Missing env files are ignored."""
    try:
        return FlowSpineSettings(_env_file=env_file)
    except ValidationError as e:
        error = e.errors()[0]
        key = str(error["loc"][0]).upper() if error["loc"] else "settings"
        value = error.get("input")
        fail(InvalidConfigError(key, value, f"Invalid value for {key}: {value!r} ({error['msg']})"))


def init_logging(settings: FlowSpineSettings, *, verbose: bool = False) -> None:
    configure_logging(level="DEBUG" if verbose else settings.log_level)


# ── Errors ───────────────────────────────────────────────────────────────


def fail(error: FlowSpineError) -> NoReturn:
    """Print a fatal error to stderr and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}"
    )
    if isinstance(error, MissingConfigError):
        for key in error.keys:
            err_console.print(f"  • {escape(key)}")
    if isinstance(error, TopologyError):
        for issue in error.issues:
            err_console.print(f"  ! {escape(issue)}")
    context = error.context.to_dict()
    if context.get("body"):
        err_console.print(f"[dim]{escape(str(context['body']))}[/dim]")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_report(report: ConvergenceReport, *, as_json: bool = False) -> None:
    """Render a convergence report on stdout."""
    if as_json:
        print_json(report.to_dict())
        return

    mode = "[blue]DRY RUN[/blue] " if report.dry_run else ""
    table = Table(title=f"{mode}{report.topology}", show_lines=False, pad_edge=False)
    for column in ("Step", "Kind", "Name", "Outcome", "Id", "Writes", "Error"):
        table.add_column(column, overflow="fold")
    for step in report.steps:
        style = _OUTCOME_STYLE[step.outcome]
        table.add_row(
            step.key,
            step.kind,
            escape(step.name),
            f"[{style}]{step.outcome.value}[/{style}]",
            step.resource_id or "-",
            str(step.write_attempts),
            escape(step.error or ""),
        )
    console.print(table)

    style = "green" if report.ok else "bold red"
    console.print(f"[{style}]{escape(report.summary())}[/{style}]")


def print_mapping(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}")
