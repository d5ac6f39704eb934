"""flowspine command-line interface (typer)."""

from flowspine.cli.app import app

__all__ = ["app"]
