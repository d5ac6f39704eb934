"""
CLI: ``flowspine setup`` — provision the CDC and Outbox flows.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer

from flowspine.cli.utils import ENV_FILE_OPTION, fail, init_logging, load_settings, print_report
from flowspine.core.errors import FlowSpineError
from flowspine.core.logging import get_logger
from flowspine.core.settings import FlowSpineSettings
from flowspine.database import preflight
from flowspine.flows import build_topology
from flowspine.orchestration.runner import SetupRunner

app = typer.Typer(no_args_is_help=True)

logger = get_logger(__name__)

DRY_RUN_OPTION = typer.Option(
    False, "--dry-run", "-n", help="Show intended actions without touching NiFi."
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Debug logging.")
JSON_OPTION = typer.Option(False, "--json", help="Print the run report as JSON.")

Preflight = Callable[[FlowSpineSettings], None]


def _create_slot(settings: FlowSpineSettings) -> None:
    conn = preflight.connect(settings)
    try:
        preflight.ensure_replication_slot(conn, settings.cdc_slot_name)
    finally:
        conn.close()


def _check_outbox(settings: FlowSpineSettings) -> None:
    conn = preflight.connect(settings)
    try:
        preflight.check_outbox_table(conn, database=settings.postgres_db)
    finally:
        conn.close()


def _run_setup(
    flow: str,
    *,
    dry_run: bool,
    verbose: bool,
    as_json: bool,
    env_file: Path | None,
    db_preflight: Preflight | None = None,
) -> None:
    settings = load_settings(env_file)
    init_logging(settings, verbose=verbose)

    try:
        settings.validate_required()
        topology = build_topology(flow, settings)
        if db_preflight is not None:
            if dry_run:
                logger.info("db.preflight_skipped", reason="dry_run")
            else:
                db_preflight(settings)
        report = SetupRunner(settings, dry_run=dry_run).run(topology)
    except FlowSpineError as e:
        fail(e)

    print_report(report, as_json=as_json)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command("cdc")
def setup_cdc(
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
    as_json: bool = JSON_OPTION,
    env_file: Path = ENV_FILE_OPTION,
    create_slot: bool = typer.Option(
        False, "--create-slot", help="Create the logical replication slot first."
    ),
) -> None:
    """Provision the PostgreSQL CDC flow."""
    _run_setup(
        "cdc",
        dry_run=dry_run,
        verbose=verbose,
        as_json=as_json,
        env_file=env_file,
        db_preflight=_create_slot if create_slot else None,
    )


@app.command("outbox")
def setup_outbox(
    dry_run: bool = DRY_RUN_OPTION,
    verbose: bool = VERBOSE_OPTION,
    as_json: bool = JSON_OPTION,
    env_file: Path = ENV_FILE_OPTION,
    check_db: bool = typer.Option(
        False, "--check-db", help="Verify the outbox table exists first."
    ),
) -> None:
    """Provision the PostgreSQL Outbox flow."""
    _run_setup(
        "outbox",
        dry_run=dry_run,
        verbose=verbose,
        as_json=as_json,
        env_file=env_file,
        db_preflight=_check_outbox if check_db else None,
    )
