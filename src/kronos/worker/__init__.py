"""Kronos offline worker.

Intercepts requests, answers them from versioned cache buckets or the
network, and handles the sync, push and badge events of the Kronos web
application.
"""

from kronos.worker.badge import AppBadge, BadgeResult
from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request, Response
from kronos.worker.lifecycle import Registration, WorkerLifecycle, WorkerState
from kronos.worker.network import AiohttpFetcher, Fetcher
from kronos.worker.notifications import NotificationPayload, parse_push_payload
from kronos.worker.platform import HeadlessPlatform, Platform
from kronos.worker.router import FetchRouter, FetchStrategy
from kronos.worker.service_worker import (
    ActivateEvent,
    EventKind,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    NotificationClickEvent,
    PeriodicSyncEvent,
    PushEvent,
    ServiceWorker,
    SyncEvent,
)
from kronos.worker.storage import CacheStorage
from kronos.worker.sync import PeriodicSyncManager, SyncManager, SyncReport

__all__ = [
    "ActivateEvent",
    "AiohttpFetcher",
    "AppBadge",
    "BadgeResult",
    "CacheStorage",
    "EventKind",
    "FetchEvent",
    "FetchRouter",
    "FetchStrategy",
    "Fetcher",
    "HeadlessPlatform",
    "InstallEvent",
    "MessageEvent",
    "NotificationClickEvent",
    "NotificationPayload",
    "PeriodicSyncEvent",
    "PeriodicSyncManager",
    "Platform",
    "PushEvent",
    "Registration",
    "Request",
    "Response",
    "ServiceWorker",
    "SyncEvent",
    "SyncManager",
    "SyncReport",
    "WorkerConfig",
    "WorkerLifecycle",
    "WorkerState",
    "parse_push_payload",
]
