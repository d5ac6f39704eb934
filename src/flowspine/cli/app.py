"""
Root Typer application for the flowspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="flowspine",
    help="flowspine — provision NiFi CDC and Outbox flows idempotently.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        from flowspine import __version__

        try:
            v = pkg_version("flow-spine")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"flowspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """flowspine CLI — set up flows, inspect configuration, check the database."""


# ── Sub-command registration ─────────────────────────────────────────────

from flowspine.cli.config import app as config_app  # noqa: E402
from flowspine.cli.db import app as db_app  # noqa: E402
from flowspine.cli.setup import app as setup_app  # noqa: E402

app.add_typer(setup_app, name="setup", help="Provision a flow in NiFi.")
app.add_typer(config_app, name="config", help="Configuration inspection.")
app.add_typer(db_app, name="db", help="Source database preflight.")
