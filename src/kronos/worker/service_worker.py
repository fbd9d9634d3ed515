"""The worker: one async handler per event kind.

Hosts (the CLI, tests, an embedding application) build events and hand them
to ``ServiceWorker.dispatch``; the dispatch table below is the whole
routing logic.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from kronos.config.models.settings import Settings
from kronos.shared.constants import EventKinds, MessageTypes, SyncTags
from kronos.worker.badge import AppBadge
from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request, Response
from kronos.worker.lifecycle import Registration, WorkerLifecycle
from kronos.worker.network import AiohttpFetcher, Fetcher
from kronos.worker.notifications import NotificationHandler, parse_push_payload
from kronos.worker.platform import HeadlessPlatform, Notification, Platform
from kronos.worker.router import FetchRouter
from kronos.worker.storage import CacheStorage
from kronos.worker.strategies import CacheStrategies
from kronos.worker.sync import SyncTasks

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    INSTALL = EventKinds.INSTALL
    ACTIVATE = EventKinds.ACTIVATE
    FETCH = EventKinds.FETCH
    PUSH = EventKinds.PUSH
    NOTIFICATION_CLICK = EventKinds.NOTIFICATION_CLICK
    MESSAGE = EventKinds.MESSAGE
    SYNC = EventKinds.SYNC
    PERIODIC_SYNC = EventKinds.PERIODIC_SYNC


@dataclass(frozen=True)
class InstallEvent:
    kind: ClassVar[EventKind] = EventKind.INSTALL


@dataclass(frozen=True)
class ActivateEvent:
    kind: ClassVar[EventKind] = EventKind.ACTIVATE


@dataclass(frozen=True)
class FetchEvent:
    request: Request
    kind: ClassVar[EventKind] = EventKind.FETCH


@dataclass(frozen=True)
class PushEvent:
    data: bytes | None = None
    kind: ClassVar[EventKind] = EventKind.PUSH


@dataclass(frozen=True)
class NotificationClickEvent:
    notification: Notification
    action: str = ""
    kind: ClassVar[EventKind] = EventKind.NOTIFICATION_CLICK


@dataclass(frozen=True)
class MessageEvent:
    data: dict[str, Any] = field(default_factory=dict)
    kind: ClassVar[EventKind] = EventKind.MESSAGE


@dataclass(frozen=True)
class SyncEvent:
    tag: str
    kind: ClassVar[EventKind] = EventKind.SYNC


@dataclass(frozen=True)
class PeriodicSyncEvent:
    tag: str
    kind: ClassVar[EventKind] = EventKind.PERIODIC_SYNC


WorkerEvent = (
    InstallEvent
    | ActivateEvent
    | FetchEvent
    | PushEvent
    | NotificationClickEvent
    | MessageEvent
    | SyncEvent
    | PeriodicSyncEvent
)


class ServiceWorker:
    """One version of the offline worker.

    Args:
        config: Immutable worker configuration
        storage: Cache storage (shared across versions)
        fetcher: The network
        platform: Host platform (clients, notifications, badge, permissions)
        worker_id: Optional stable identifier
        auto_skip_waiting: Request skip-waiting right after install
    """

    def __init__(
        self,
        config: WorkerConfig,
        storage: CacheStorage,
        fetcher: Fetcher,
        platform: Platform,
        worker_id: str | None = None,
        *,
        auto_skip_waiting: bool = True,
    ) -> None:
        self.config = config
        self.storage = storage
        self.fetcher = fetcher
        self.platform = platform

        self.lifecycle = WorkerLifecycle(
            config,
            storage,
            fetcher,
            platform,
            worker_id,
            auto_skip_waiting=auto_skip_waiting,
        )
        self.badge = AppBadge(platform.badge)
        self.router = FetchRouter(config, CacheStrategies(config, storage, fetcher))
        self.notifications = NotificationHandler(config, platform)
        self.sync = SyncTasks(
            config,
            storage,
            fetcher,
            platform,
            self.badge,
            worker_id=self.lifecycle.worker_id,
        )
        self.registration: Registration | None = None

        self._handlers: dict[EventKind, Callable[[Any], Awaitable[Any]]] = {
            EventKind.INSTALL: self._on_install,
            EventKind.ACTIVATE: self._on_activate,
            EventKind.FETCH: self._on_fetch,
            EventKind.PUSH: self._on_push,
            EventKind.NOTIFICATION_CLICK: self._on_notification_click,
            EventKind.MESSAGE: self._on_message,
            EventKind.SYNC: self._on_sync,
            EventKind.PERIODIC_SYNC: self._on_periodic_sync,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        platform: Platform | None = None,
        storage: CacheStorage | None = None,
        fetcher: Fetcher | None = None,
    ) -> ServiceWorker:
        """Build a worker with production collaborators for anything not given."""
        return cls(
            WorkerConfig.from_settings(settings),
            storage or CacheStorage(settings.cache.db_path),
            fetcher or AiohttpFetcher(settings.http),
            platform or HeadlessPlatform(),
        )

    @property
    def worker_id(self) -> str:
        return self.lifecycle.worker_id

    async def dispatch(self, event: WorkerEvent) -> Any:
        """Run the handler registered for ``event.kind``."""
        handler = self._handlers[event.kind]
        logger.debug("Dispatching %s to %s", event.kind.value, self.worker_id)
        return await handler(event)

    async def fetch(self, request: Request) -> Response | None:
        return await self.dispatch(FetchEvent(request))

    async def _on_install(self, event: InstallEvent) -> int:
        return await self.lifecycle.install()

    async def _on_activate(self, event: ActivateEvent) -> list[str]:
        return await self.lifecycle.activate()

    async def _on_fetch(self, event: FetchEvent) -> Response | None:
        return await self.router.handle(event.request)

    async def _on_push(self, event: PushEvent) -> Notification:
        logger.info("Push received")
        return self.notifications.show_push_notification(parse_push_payload(event.data))

    async def _on_notification_click(self, event: NotificationClickEvent) -> Any:
        logger.info("Notification clicked: %s", event.notification.title)
        return self.notifications.handle_notification_click(event.notification, event.action)

    async def _on_message(self, event: MessageEvent) -> None:
        data = event.data if isinstance(event.data, dict) else {}
        message_type = data.get("type")

        if message_type == MessageTypes.SKIP_WAITING:
            self.lifecycle.skip_waiting()
            if self.registration is not None and self.registration.waiting is self:
                await self.registration.promote_waiting()
        elif message_type == MessageTypes.SET_BADGE:
            try:
                count = int(data.get("count", 0))
            except (TypeError, ValueError):
                logger.info("Ignoring SET_BADGE with count %r", data.get("count"))
                return
            self.badge.set_badge(count)
        elif message_type == MessageTypes.CLEAR_BADGE:
            self.badge.clear_badge()
        else:
            logger.debug("Ignoring message %r", message_type)

    async def _on_sync(self, event: SyncEvent) -> Any:
        logger.info("Background sync triggered: %s", event.tag)
        if event.tag == SyncTags.SYNC_DATA:
            return await self.sync.sync_pending_data()
        return None

    async def _on_periodic_sync(self, event: PeriodicSyncEvent) -> Any:
        logger.info("Periodic sync triggered: %s", event.tag)
        if event.tag == SyncTags.REFRESH_NOTIFICATIONS:
            return await self.sync.refresh_notifications()
        return None
