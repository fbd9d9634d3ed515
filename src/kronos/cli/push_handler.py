"""Push command handlers for the Kronos CLI."""

from __future__ import annotations

import logging

from rich.console import Console

from kronos.cli.common.context import get_cli_context
from kronos.cli.json_formatter import format_json_output, write_json_output
from kronos.config.loader import load_settings
from kronos.push import NotificationPayload, PushService, SubscriptionStore
from kronos.shared.constants import CLICommands, CLIDefaults, NotificationDefaults

logger = logging.getLogger(__name__)


def _command(name: str) -> str:
    return f"{CLICommands.PUSH} {name}"


def _emit(command: str, data: object) -> bool:
    if not get_cli_context().is_json_output_enabled():
        return False
    write_json_output(format_json_output(success=True, command=command, data=data))
    return True


def handle_push_send_command(
    user_id: str,
    title: str = NotificationDefaults.TITLE,
    body: str = NotificationDefaults.BODY,
    url: str = NotificationDefaults.URL,
    tag: str | None = None,
    console: Console | None = None,
) -> int:
    """Deliver one notification to every subscription of ``user_id``."""
    console = console or Console()
    settings = load_settings(get_cli_context().config_path)

    with SubscriptionStore(settings.push.db_path) as store:
        service = PushService(settings.push, store)
        service.ensure_configured()
        result = service.send_push_notification(
            user_id,
            NotificationPayload(title=title, body=body, url=url, tag=tag),
        )

    if not _emit(_command(CLICommands.PUSH_SEND), result):
        console.print(
            f"Sent [green]{result.sent}[/green], failed [red]{result.failed}[/red] for user {user_id}"
        )
    return CLIDefaults.EXIT_SUCCESS if result.success else CLIDefaults.EXIT_ERROR


def handle_push_subscribe_command(
    user_id: str,
    endpoint: str,
    p256dh: str,
    auth: str,
    console: Console | None = None,
) -> int:
    """Store a browser push subscription for ``user_id``."""
    console = console or Console()
    settings = load_settings(get_cli_context().config_path)

    with SubscriptionStore(settings.push.db_path) as store:
        subscription = store.add(user_id, endpoint, p256dh, auth)

    if not _emit(_command(CLICommands.PUSH_SUBSCRIBE), {"id": subscription.id, "user_id": user_id}):
        console.print(f"[green]✓ Subscription {subscription.id} stored for {user_id}[/green]")
    return CLIDefaults.EXIT_SUCCESS


def handle_push_vapid_key_command(console: Console | None = None) -> int:
    """Print the VAPID public key pages subscribe with."""
    console = console or Console()
    settings = load_settings(get_cli_context().config_path)
    key = settings.push.vapid_public_key

    if not _emit(_command(CLICommands.PUSH_VAPID_KEY), {"vapid_public_key": key}):
        if key:
            console.print(key, markup=False, highlight=False)
        else:
            console.print("[yellow]No VAPID public key configured[/yellow]")
    return CLIDefaults.EXIT_SUCCESS
