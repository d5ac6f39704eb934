"""
CLI: ``flowspine config`` — configuration inspection and validation.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from flowspine.cli.utils import ENV_FILE_OPTION, console, fail, load_settings, print_json
from flowspine.core.errors import ConfigError

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    env_file: Path = ENV_FILE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the effective configuration with secrets redacted."""
    settings = load_settings(env_file)
    data = settings.redacted()

    if as_json:
        print_json(data)
        return

    table = Table(title="flow-spine settings")
    table.add_column("Setting")
    table.add_column("Env")
    table.add_column("Value")
    for key, value in data.items():
        env = settings.env_name(key) if key in type(settings).model_fields else "-"
        table.add_row(key, env, str(value))
    console.print(table)


@app.command("validate")
def validate_config(env_file: Path = ENV_FILE_OPTION) -> None:
    """Check that every required setting is present and not a placeholder."""
    settings = load_settings(env_file)
    try:
        settings.validate_required()
    except ConfigError as e:
        fail(e)
    console.print(f"[green]✓ Configuration valid[/green] (NiFi at {settings.nifi_url})")
