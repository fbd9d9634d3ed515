"""
Kronos Typer CLI Application

Drives the offline worker and the push dispatcher from a terminal, against
the cache and subscription databases named in the configuration.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer

from kronos.cli.common.context import CliContext, LogLevel, get_cli_context, set_cli_context
from kronos.cli.common.error_handler import handle_cli_error
from kronos.cli.common.options import (
    config_option,
    json_output_option,
    log_level_option,
    verbose_option,
    version_option,
)
from kronos.cli.push_handler import (
    handle_push_send_command,
    handle_push_subscribe_command,
    handle_push_vapid_key_command,
)
from kronos.cli.worker_handler import (
    handle_caches_command,
    handle_fetch_command,
    handle_install_command,
    handle_refresh_badge_command,
    handle_sync_command,
)
from kronos.config.loader import load_settings
from kronos.shared.constants import (
    Application,
    CLICommands,
    CLIDefaults,
    CLIHelp,
    NotificationDefaults,
)
from kronos.shared.logging import setup_structured_logger

__version__ = Application.VERSION


def main_callback(
    verbose: int,
    log_level: LogLevel | None,
    json_output: bool,
    config: Path | None,
) -> None:
    """
    Process the common options before any command runs.

    Loads the configuration, sets up logging and stores the CLI context.
    ``--log-level`` wins over the configured level; ``--verbose`` wins over
    both.
    """
    settings = load_settings(config)
    context = CliContext(
        verbose=verbose,
        log_level=log_level or LogLevel(settings.logging.level.upper()),
        json_output=json_output,
        config_path=config,
    )
    set_cli_context(context)

    setup_structured_logger(
        level=context.get_effective_log_level(),
        log_file=settings.logging.file,
        use_rich_console=settings.logging.rich_console,
    )


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    add_completion=True,
    rich_markup_mode=CLIHelp.APP_STYLE,
    no_args_is_help=True,
)

push_app = typer.Typer(help=CLIHelp.PUSH_HELP, no_args_is_help=True)
app.add_typer(push_app, name=CLICommands.PUSH)


@app.callback()
def main(
    verbose: Annotated[int, verbose_option] = 0,
    log_level: Annotated[LogLevel | None, log_level_option] = None,
    json_output: Annotated[bool, json_output_option] = False,
    config: Annotated[Path | None, config_option] = None,
    version: Annotated[bool, version_option] = False,  # noqa: ARG001
) -> None:
    """Main CLI callback with error handling."""
    try:
        main_callback(verbose, log_level, json_output, config)
    except typer.Exit:
        raise
    except Exception as e:
        exit_code = handle_cli_error(e, "main-callback", json_output=json_output)
        raise typer.Exit(exit_code) from e


def _run(command: str, handler: Callable[[], int]) -> None:
    """Run a handler, turning any error into an exit code."""
    try:
        exit_code = handler()
    except Exception as e:
        exit_code = handle_cli_error(
            e,
            command,
            json_output=get_cli_context().is_json_output_enabled(),
        )
    if exit_code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(exit_code)


@app.command(CLICommands.INSTALL, help=CLIHelp.INSTALL_HELP)
def install_command() -> None:
    """
    Install and activate the worker.

    Fetches the app shell into the static bucket (all or nothing), then
    deletes every bucket of other versions.

    Examples:
        kronos install
        kronos --json install
    """
    _run(CLICommands.INSTALL, handle_install_command)


@app.command(CLICommands.FETCH, help=CLIHelp.FETCH_HELP)
def fetch_command(
    url: str = typer.Argument(..., help=CLIHelp.FETCH_URL_HELP),
    navigate: bool = typer.Option(False, "--navigate", "-n", help=CLIHelp.FETCH_NAVIGATE_HELP),
) -> None:
    """
    Route a GET request through the worker.

    Examples:
        kronos fetch /manifest.json
        kronos fetch /api/notifications
        kronos fetch /dashboard --navigate
    """
    _run(CLICommands.FETCH, lambda: handle_fetch_command(url, navigate=navigate))


@app.command(CLICommands.SYNC, help=CLIHelp.SYNC_HELP)
def sync_command() -> None:
    _run(CLICommands.SYNC, handle_sync_command)


@app.command(CLICommands.REFRESH_BADGE, help=CLIHelp.REFRESH_BADGE_HELP)
def refresh_badge_command() -> None:
    _run(CLICommands.REFRESH_BADGE, handle_refresh_badge_command)


@app.command(CLICommands.CACHES, help=CLIHelp.CACHES_HELP)
def caches_command() -> None:
    _run(CLICommands.CACHES, handle_caches_command)


@push_app.command(CLICommands.PUSH_SEND, help=CLIHelp.PUSH_SEND_HELP)
def push_send_command(
    user_id: str = typer.Argument(..., help="Recipient user id"),
    title: str = typer.Option(NotificationDefaults.TITLE, "--title", help="Notification title"),
    body: str = typer.Option(NotificationDefaults.BODY, "--body", help="Notification body"),
    url: str = typer.Option(NotificationDefaults.URL, "--url", help="URL opened on click"),
    tag: str | None = typer.Option(None, "--tag", help="Notification tag"),
) -> None:
    """
    Send a notification to a user.

    Examples:
        kronos push send user-1 --title "Deal Update: Atlas" --body "Stage changed"
    """
    _run(
        f"{CLICommands.PUSH} {CLICommands.PUSH_SEND}",
        lambda: handle_push_send_command(user_id, title=title, body=body, url=url, tag=tag),
    )


@push_app.command(CLICommands.PUSH_SUBSCRIBE, help=CLIHelp.PUSH_SUBSCRIBE_HELP)
def push_subscribe_command(
    user_id: str = typer.Argument(..., help="Owner of the subscription"),
    endpoint: str = typer.Argument(..., help="Push service endpoint URL"),
    p256dh: str = typer.Option(..., "--p256dh", help="Client public key (base64url)"),
    auth: str = typer.Option(..., "--auth", help="Client auth secret (base64url)"),
) -> None:
    _run(
        f"{CLICommands.PUSH} {CLICommands.PUSH_SUBSCRIBE}",
        lambda: handle_push_subscribe_command(user_id, endpoint, p256dh, auth),
    )


@push_app.command(CLICommands.PUSH_VAPID_KEY, help=CLIHelp.PUSH_VAPID_KEY_HELP)
def push_vapid_key_command() -> None:
    _run(f"{CLICommands.PUSH} {CLICommands.PUSH_VAPID_KEY}", handle_push_vapid_key_command)


if __name__ == "__main__":
    app()
