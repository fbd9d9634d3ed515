"""Background sync sweep, periodic notification refresh and sync registries.

The sweep re-fetches every cached API response after the device comes back
online. It is best-effort per entry but not as a whole: if the dynamic
bucket cannot even be opened the ``SyncError`` propagates, so the sync
registry keeps the tag and the sweep runs again on the next reconnect.

The periodic refresh is purely cosmetic (it drives the app badge) and
never raises.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from kronos.shared.constants import MessageTypes, Permissions, SyncTags
from kronos.shared.errors import (
    CacheStorageError,
    ErrorCode,
    ErrorContext,
    KronosNetworkError,
    SyncError,
)
from kronos.shared.logging import log_operation_success
from kronos.worker.badge import AppBadge
from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request
from kronos.worker.network import Fetcher
from kronos.worker.platform import Platform
from kronos.worker.storage import CacheStorage

logger = logging.getLogger(__name__)

SyncHandler = Callable[[str], Awaitable[object]]


@dataclass
class SyncReport:
    """URLs touched by one sync sweep."""

    refreshed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.refreshed) + len(self.failed) + len(self.skipped)


class SyncTasks:
    """The work behind the ``sync-data`` and ``refresh-notifications`` tags."""

    def __init__(
        self,
        config: WorkerConfig,
        storage: CacheStorage,
        fetcher: Fetcher,
        platform: Platform,
        badge: AppBadge,
        worker_id: str | None = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.fetcher = fetcher
        self.platform = platform
        self.badge = badge
        self.worker_id = worker_id

    async def sync_pending_data(self) -> SyncReport:
        """Re-fetch every cached API response and overwrite it on success.

        Raises:
            SyncError: If the dynamic bucket cannot be read
        """
        logger.info("Syncing pending data...")
        start = time.perf_counter()

        try:
            bucket = self.storage.open(self.config.dynamic_cache)
            urls = bucket.keys()
        except CacheStorageError as e:
            logger.error("Background sync failed: %s", e)
            raise SyncError(
                ErrorCode.SYNC_FAILED,
                f"Could not open {self.config.dynamic_cache}: {e.message}",
                ErrorContext(operation="sync_pending_data"),
                original_error=e,
            ) from e

        report = SyncReport()
        for url in urls:
            request = Request(url=url)
            if not self.config.is_api(request):
                report.skipped.append(url)
                continue

            try:
                response = await self.fetcher.fetch(request)
            except KronosNetworkError as e:
                logger.info("Failed to sync %s: %s", url, e)
                report.failed.append(url)
                continue

            if not response.ok:
                logger.info("Failed to sync %s: HTTP %s", url, response.status)
                report.failed.append(url)
                continue

            try:
                bucket.put(request, response.clone())
            except CacheStorageError as e:
                logger.warning("Failed to store synced %s: %s", url, e)
                report.failed.append(url)
                continue

            logger.debug("Synced: %s", url)
            report.refreshed.append(url)

        for client in self.platform.clients.match_all(controller=self.worker_id):
            client.post_message({"type": MessageTypes.SYNC_COMPLETE})

        log_operation_success(
            logger,
            "sync_pending_data",
            (time.perf_counter() - start) * 1000,
            result_info={
                "refreshed": len(report.refreshed),
                "failed": len(report.failed),
                "skipped": len(report.skipped),
            },
        )
        logger.info("Background sync complete")
        return report

    async def refresh_notifications(self) -> int | None:
        """Count unread notifications and show the count on the app badge.

        Returns:
            The unread count, or None when it could not be determined
        """
        request = self.config.request(self.config.notifications_endpoint)
        try:
            response = await self.fetcher.fetch(request)
            if not response.ok:
                logger.info("Notifications endpoint answered %s", response.status)
                return None

            notifications = response.json()
            if not isinstance(notifications, list):
                logger.info("Unexpected notifications payload: %r", type(notifications).__name__)
                return None

            unread = sum(
                1 for item in notifications if not (isinstance(item, dict) and item.get("read"))
            )
        except Exception as e:  # noqa: BLE001
            logger.info("Failed to refresh notifications: %s", e)
            return None

        self.badge.set_badge(unread)
        return unread


class SyncManager:
    """One-shot sync tags waiting for connectivity."""

    def __init__(self) -> None:
        self._tags: dict[str, None] = {}

    def register(self, tag: str = SyncTags.SYNC_DATA) -> None:
        self._tags[tag] = None
        logger.debug("Registered sync: %s", tag)

    def get_tags(self) -> list[str]:
        return list(self._tags)

    async def fire(self, handler: SyncHandler) -> dict[str, bool]:
        """Run each pending tag once.

        A tag whose handler succeeds is dropped; one whose handler raises is
        kept for the next call.
        """
        results: dict[str, bool] = {}
        for tag in list(self._tags):
            try:
                await handler(tag)
            except Exception as e:  # noqa: BLE001
                logger.warning("Sync %s failed, will retry: %s", tag, e)
                results[tag] = False
                continue
            self._tags.pop(tag, None)
            results[tag] = True
        return results


@dataclass
class PeriodicRegistration:
    tag: str
    min_interval: float
    last_run: float


class PeriodicSyncManager:
    """Recurring sync tags, gated on the periodic-background-sync permission."""

    def __init__(
        self,
        platform: Platform,
        default_min_interval: float = SyncTags.DEFAULT_MIN_INTERVAL_SECONDS,
    ) -> None:
        self.platform = platform
        self.default_min_interval = default_min_interval
        self._registrations: dict[str, PeriodicRegistration] = {}

    def register(
        self,
        tag: str = SyncTags.REFRESH_NOTIFICATIONS,
        min_interval: float | None = None,
        *,
        now: float | None = None,
    ) -> bool:
        """Register ``tag``; returns False without the permission."""
        state = self.platform.query_permission(SyncTags.PERIODIC_SYNC_PERMISSION)
        if state != Permissions.GRANTED:
            logger.info("Periodic sync permission %s, not registering %s", state, tag)
            return False

        interval = self.default_min_interval if min_interval is None else min_interval
        self._registrations[tag] = PeriodicRegistration(
            tag=tag,
            min_interval=interval,
            last_run=time.time() if now is None else now,
        )
        logger.debug("Registered periodic sync: %s every %ss", tag, interval)
        return True

    def unregister(self, tag: str) -> bool:
        return self._registrations.pop(tag, None) is not None

    def get_tags(self) -> list[str]:
        return list(self._registrations)

    def due(self, now: float | None = None) -> list[str]:
        now = time.time() if now is None else now
        return [
            r.tag for r in self._registrations.values() if now - r.last_run >= r.min_interval
        ]

    async def fire_due(self, handler: SyncHandler, now: float | None = None) -> list[str]:
        """Run every due tag once; the interval restarts whatever the outcome."""
        now = time.time() if now is None else now
        fired = self.due(now)
        for tag in fired:
            self._registrations[tag].last_run = now
            try:
                await handler(tag)
            except Exception as e:  # noqa: BLE001
                logger.info("Periodic sync %s failed: %s", tag, e)
        return fired
