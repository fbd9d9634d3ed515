"""Command line interface for the Kronos offline worker."""

from kronos.cli.typer_app import app

__all__ = ["app"]
