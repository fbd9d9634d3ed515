"""Cache-first and network-first fetch strategies.

Neither strategy lets a failure escape: a request that can be answered
neither by the network nor by a bucket gets a synthesized 503.
"""

from __future__ import annotations

import logging

from kronos.shared.errors import CacheStorageError, KronosNetworkError
from kronos.shared.logging import log_fetch
from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request, Response, offline_json_response, offline_text_response
from kronos.worker.network import Fetcher
from kronos.worker.storage import CacheStorage

logger = logging.getLogger(__name__)


class CacheStrategies:
    """Strategies bound to one worker's buckets and network."""

    def __init__(self, config: WorkerConfig, storage: CacheStorage, fetcher: Fetcher) -> None:
        self.config = config
        self.storage = storage
        self.fetcher = fetcher

    def _store(self, bucket_name: str, request: Request, response: Response, **bucket_opts: int | None) -> None:
        # A failed write-through never costs the caller its live response
        try:
            self.storage.open(bucket_name, **bucket_opts).put(request, response)
        except CacheStorageError as e:
            logger.warning("Could not cache %s in %s: %s", request.url, bucket_name, e)

    def _lookup(self, request: Request | str, bucket_name: str | None = None) -> Response | None:
        # An unreadable cache counts as a miss
        try:
            if bucket_name is None:
                return self.storage.match(request)
            return self.storage.open(bucket_name).match(request)
        except CacheStorageError as e:
            logger.warning("Cache lookup failed for %s: %s", request, e)
            return None

    async def cache_first(self, request: Request) -> Response:
        """Serve from any bucket; on a miss fetch and keep a copy in the static bucket."""
        cached = self._lookup(request)
        if cached is not None:
            log_fetch(logger, request.url, "cache-first", "cache", cached.status)
            return cached

        try:
            response = await self.fetcher.fetch(request)
        except KronosNetworkError as e:
            logger.info("Network request failed for %s: %s", request.url, e)
            log_fetch(logger, request.url, "cache-first", "offline", 503)
            return offline_text_response()

        if response.ok:
            self._store(self.config.static_cache, request, response.clone())
        log_fetch(logger, request.url, "cache-first", "network", response.status)
        return response

    async def network_first(self, request: Request) -> Response:
        """Prefer live data; fall back to the dynamic bucket, then the shell, then 503."""
        try:
            response = await self.fetcher.fetch(request)
        except KronosNetworkError as e:
            logger.info("Network failed for %s, trying cache: %s", request.url, e)
            return self._offline_fallback(request)

        if response.ok and self.config.is_api(request):
            self._store(
                self.config.dynamic_cache,
                request,
                response.clone(),
                max_entries=self.config.dynamic_max_entries,
            )
        log_fetch(logger, request.url, "network-first", "network", response.status)
        return response

    def _offline_fallback(self, request: Request) -> Response:
        cached = self._lookup(request, self.config.dynamic_cache)
        if cached is not None:
            log_fetch(logger, request.url, "network-first", "cache", cached.status)
            return cached

        if request.is_navigation:
            shell = self._lookup(self.config.resolve(self.config.root_document))
            if shell is not None:
                log_fetch(logger, request.url, "network-first", "shell", shell.status)
                return shell

        log_fetch(logger, request.url, "network-first", "offline", 503)
        return offline_json_response()
