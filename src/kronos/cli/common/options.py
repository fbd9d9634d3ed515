"""
Reusable Typer Options Module

Option definitions shared by the main callback and the commands. Use them
as ``Annotated`` metadata, e.g. ``verbose: Annotated[int, verbose_option] = 0``.
"""

from __future__ import annotations

import typer

from kronos.shared.constants import Application, CLIHelp


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=Application.VERSION))
        raise typer.Exit


# Verbose option - count-based for multiple -v flags
verbose_option = typer.Option(
    "--verbose",
    "-v",
    count=True,
    help="Enable verbose output (equivalent to --log-level DEBUG).",
)

# Log level option - enum-based with case-insensitive choices
log_level_option = typer.Option(
    "--log-level",
    case_sensitive=False,
    help="Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: INFO.",
)

# JSON output option - flag-based
json_output_option = typer.Option(
    "--json",
    help="Enable machine-readable JSON output instead of human-readable format.",
)

config_option = typer.Option(
    "--config",
    "-c",
    exists=True,
    dir_okay=False,
    readable=True,
    help="TOML configuration file (default: config/kronos.toml, kronos.toml, ~/.kronos/config.toml).",
)

# Version option - for main app only
version_option = typer.Option(
    "--version",
    "-V",
    help="Show version information and exit.",
    callback=version_callback,
    is_eager=True,
)
