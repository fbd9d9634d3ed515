"""Immutable worker configuration.

Built once from Settings and handed to every worker component; nothing in
the worker mutates it at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from kronos.config.models.settings import Settings
from kronos.shared.constants import Cache, NotificationDefaults, Routes, SyncTags
from kronos.worker.http import Request, resolve_url


@dataclass(frozen=True)
class WorkerConfig:
    """Bucket names, routes and notification defaults of one worker version."""

    origin: str = Routes.DEFAULT_ORIGIN
    cache_prefix: str = Cache.PREFIX
    cache_version: str = Cache.VERSION
    static_assets: tuple[str, ...] = Cache.STATIC_ASSETS
    api_prefix: str = Routes.API_PREFIX
    notifications_endpoint: str = Routes.NOTIFICATIONS_ENDPOINT
    notification_icon: str = NotificationDefaults.ICON
    notification_badge: str = NotificationDefaults.BADGE
    default_title: str = NotificationDefaults.TITLE
    default_body: str = NotificationDefaults.BODY
    vibrate: tuple[int, ...] = NotificationDefaults.VIBRATE
    periodic_min_interval: int = SyncTags.DEFAULT_MIN_INTERVAL_SECONDS
    dynamic_max_entries: int | None = None
    root_document: str = field(default=Cache.ROOT_DOCUMENT)

    @classmethod
    def from_settings(cls, settings: Settings) -> WorkerConfig:
        worker = settings.worker
        return cls(
            origin=worker.origin,
            cache_prefix=worker.cache_prefix,
            cache_version=worker.cache_version,
            static_assets=tuple(worker.static_assets),
            api_prefix=worker.api_prefix,
            notifications_endpoint=worker.notifications_endpoint,
            notification_icon=worker.notification_icon,
            notification_badge=worker.notification_badge,
            default_title=worker.default_title,
            default_body=worker.default_body,
            periodic_min_interval=settings.sync.periodic_min_interval,
            dynamic_max_entries=settings.cache.dynamic_max_entries,
        )

    @property
    def static_cache(self) -> str:
        return f"{self.cache_prefix}-static-{self.cache_version}"

    @property
    def dynamic_cache(self) -> str:
        return f"{self.cache_prefix}-dynamic-{self.cache_version}"

    @property
    def live_caches(self) -> frozenset[str]:
        return frozenset((self.static_cache, self.dynamic_cache))

    def resolve(self, url: str) -> str:
        return resolve_url(self.origin, url)

    def request(self, url: str, **kwargs: str) -> Request:
        """Build a GET request for a path or URL of this origin."""
        return Request(url=self.resolve(url), **kwargs)

    def is_api(self, request: Request) -> bool:
        return request.path.startswith(self.api_prefix)
