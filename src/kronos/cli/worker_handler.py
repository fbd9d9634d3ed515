"""Worker command handlers for the Kronos CLI.

Each handler builds a worker against the configured cache database and
network, runs one event through it and renders the outcome either as rich
console output or as a JSON envelope.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from rich.console import Console
from rich.table import Table

from kronos.cli.common.context import get_cli_context
from kronos.cli.common.error_handler import log_cli_operation_success
from kronos.cli.json_formatter import format_json_output, write_json_output
from kronos.config.loader import load_settings
from kronos.config.models.settings import Settings
from kronos.shared.constants import CLICommands, CLIDefaults, Destinations, SyncTags
from kronos.worker.http import Request
from kronos.worker.lifecycle import Registration
from kronos.worker.network import AiohttpFetcher
from kronos.worker.platform import HeadlessPlatform
from kronos.worker.service_worker import PeriodicSyncEvent, ServiceWorker, SyncEvent
from kronos.worker.storage import CacheStorage
from kronos.worker.sync import SyncReport

logger = logging.getLogger(__name__)


def _settings() -> Settings:
    return load_settings(get_cli_context().config_path)


def _emit(command: str, data: object) -> bool:
    """Write the JSON envelope when --json is active; returns True if it did."""
    if not get_cli_context().is_json_output_enabled():
        return False
    write_json_output(format_json_output(success=True, command=command, data=data))
    return True


@asynccontextmanager
async def open_worker(settings: Settings) -> AsyncIterator[ServiceWorker]:
    """A worker over the configured storage and network, closed on exit."""
    storage = CacheStorage(settings.cache.db_path)
    fetcher = AiohttpFetcher(settings.http)
    try:
        yield ServiceWorker.from_settings(
            settings,
            platform=HeadlessPlatform(),
            storage=storage,
            fetcher=fetcher,
        )
    finally:
        await fetcher.close()
        storage.close()


async def _install(settings: Settings) -> dict[str, object]:
    async with open_worker(settings) as worker:
        await Registration().register(worker)
        static = worker.storage.open(worker.config.static_cache)
        return {
            "worker_id": worker.worker_id,
            "state": worker.lifecycle.state.value,
            "static_cache": worker.config.static_cache,
            "assets": static.keys(),
            "caches": worker.storage.keys(),
        }


def handle_install_command(console: Console | None = None) -> int:
    """Install and activate a worker: pre-cache the shell, drop stale buckets."""
    console = console or Console()
    start = time.perf_counter()

    result = asyncio.run(_install(_settings()))

    if not _emit(CLICommands.INSTALL, result):
        console.print(f"[green]✓ Worker {result['worker_id']} {result['state']}[/green]")
        console.print(f"Cached {len(result['assets'])} shell assets in {result['static_cache']}")
        for url in result["assets"]:
            console.print(f"  [dim]{url}[/dim]")

    log_cli_operation_success(CLICommands.INSTALL, (time.perf_counter() - start) * 1000)
    return CLIDefaults.EXIT_SUCCESS


async def _fetch(settings: Settings, url: str, *, navigate: bool) -> dict[str, object] | None:
    async with open_worker(settings) as worker:
        request = Request(
            url=worker.config.resolve(url),
            destination=Destinations.DOCUMENT if navigate else "",
        )
        strategy = worker.router.classify(request)
        response = await worker.fetch(request)
        if response is None:
            return None
        return {
            "url": request.url,
            "strategy": strategy.value,
            "status": response.status,
            "status_text": response.status_text,
            "headers": response.headers,
            "body": response.text(),
        }


def handle_fetch_command(url: str, *, navigate: bool = False, console: Console | None = None) -> int:
    """Route one GET through the worker and show the response."""
    console = console or Console()

    result = asyncio.run(_fetch(_settings(), url, navigate=navigate))
    if result is None:
        if not _emit(CLICommands.FETCH, {"url": url, "intercepted": False}):
            console.print(f"[yellow]{url} is not intercepted[/yellow]")
        return CLIDefaults.EXIT_SUCCESS

    if not _emit(CLICommands.FETCH, result):
        color = "green" if 200 <= int(result["status"]) < 300 else "red"
        console.print(
            f"[{color}]{result['status']} {result['status_text']}[/{color}] "
            f"{result['url']} [dim]({result['strategy']})[/dim]"
        )
        body = str(result["body"])
        if len(body) > CLIDefaults.BODY_PREVIEW_LENGTH:
            body = body[: CLIDefaults.BODY_PREVIEW_LENGTH] + "..."
        console.print(body, markup=False, highlight=False)
    return CLIDefaults.EXIT_SUCCESS


async def _sync(settings: Settings) -> SyncReport:
    async with open_worker(settings) as worker:
        return await worker.dispatch(SyncEvent(SyncTags.SYNC_DATA))


def handle_sync_command(console: Console | None = None) -> int:
    """Run the background sync sweep once."""
    console = console or Console()
    start = time.perf_counter()

    report = asyncio.run(_sync(_settings()))

    if not _emit(CLICommands.SYNC, report):
        table = Table(title="Sync sweep")
        table.add_column("URL")
        table.add_column("Result")
        for url in report.refreshed:
            table.add_row(url, "[green]refreshed[/green]")
        for url in report.failed:
            table.add_row(url, "[red]failed[/red]")
        for url in report.skipped:
            table.add_row(url, "[dim]skipped[/dim]")
        console.print(table)
        console.print(
            f"{len(report.refreshed)} refreshed, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped"
        )

    log_cli_operation_success(CLICommands.SYNC, (time.perf_counter() - start) * 1000)
    return CLIDefaults.EXIT_SUCCESS


async def _refresh_badge(settings: Settings) -> int | None:
    async with open_worker(settings) as worker:
        return await worker.dispatch(PeriodicSyncEvent(SyncTags.REFRESH_NOTIFICATIONS))


def handle_refresh_badge_command(console: Console | None = None) -> int:
    """Count unread notifications and set the badge."""
    console = console or Console()

    unread = asyncio.run(_refresh_badge(_settings()))

    if not _emit(CLICommands.REFRESH_BADGE, {"unread": unread}):
        if unread is None:
            console.print("[yellow]Unread count unavailable[/yellow]")
        else:
            console.print(f"Unread notifications: [bold]{unread}[/bold]")
    return CLIDefaults.EXIT_SUCCESS


def handle_caches_command(console: Console | None = None) -> int:
    """List buckets and their entries."""
    console = console or Console()
    settings = _settings()

    with CacheStorage(settings.cache.db_path) as storage:
        buckets = {name: storage.open(name).entries() for name in storage.keys()}

    if _emit(CLICommands.CACHES, buckets):
        return CLIDefaults.EXIT_SUCCESS

    if not buckets:
        console.print("[dim]No caches[/dim]")
        return CLIDefaults.EXIT_SUCCESS

    for name, entries in buckets.items():
        table = Table(title=f"{name} ({len(entries)})")
        table.add_column("URL")
        table.add_column("Status", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Stored")
        for entry in entries:
            table.add_row(entry.url, str(entry.status), str(entry.size), str(entry.stored_at))
        console.print(table)
    return CLIDefaults.EXIT_SUCCESS
