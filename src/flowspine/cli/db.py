"""
CLI: ``flowspine db`` — source database preflight.
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

import typer

from flowspine.cli.utils import (
    ENV_FILE_OPTION,
    console,
    fail,
    init_logging,
    load_settings,
    print_json,
    print_mapping,
)
from flowspine.core.errors import FlowSpineError
from flowspine.database import preflight

app = typer.Typer(no_args_is_help=True)


@app.command("check")
def check_db(
    env_file: Path = ENV_FILE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Check wal_level, the outbox table and the CDC replication slot."""
    settings = load_settings(env_file)
    init_logging(settings)
    try:
        conn = preflight.connect(settings)
        try:
            report = preflight.check_database(conn, settings)
        finally:
            conn.close()
    except FlowSpineError as e:
        fail(e)

    if as_json:
        print_json({**asdict(report), "ok": report.ok})
    else:
        print_mapping(
            {
                "wal_level": report.wal_level,
                "outbox table": "present" if report.outbox_table else "missing",
                f"slot {report.slot_name}": "present" if report.slot_exists else "missing",
            },
            title=f"Database {settings.postgres_db}@{settings.postgres_host}",
        )
        for issue in report.issues:
            console.print(f"  [yellow]![/yellow] {issue}")
    if not report.ok:
        raise typer.Exit(code=1)


@app.command("ensure-slot")
def ensure_slot(
    env_file: Path = ENV_FILE_OPTION,
    slot: str | None = typer.Option(None, "--slot", help="Slot name (default: CDC_SLOT_NAME)."),
    plugin: str = typer.Option(preflight.DEFAULT_PLUGIN, "--plugin", help="Output plugin."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Report without creating."),
) -> None:
    """Create the logical replication slot read by the CDC flow, if missing."""
    settings = load_settings(env_file)
    init_logging(settings)
    name = slot or settings.cdc_slot_name
    try:
        conn = preflight.connect(settings)
        try:
            status = preflight.ensure_replication_slot(conn, name, plugin, dry_run=dry_run)
        finally:
            conn.close()
    except FlowSpineError as e:
        fail(e)

    messages = {
        preflight.SlotStatus.EXISTS: f"[cyan]Slot '{name}' already exists[/cyan]",
        preflight.SlotStatus.CREATED: f"[green]✓ Created slot '{name}' ({plugin})[/green]",
        preflight.SlotStatus.PLANNED: f"[blue]\\[DRY RUN][/blue] Would create slot '{name}' ({plugin})",
    }
    console.print(messages[status])
