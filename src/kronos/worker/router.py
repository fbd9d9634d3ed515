"""Fetch interceptor: decides which strategy answers a request."""

from __future__ import annotations

import logging
from enum import Enum

from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request, Response
from kronos.worker.strategies import CacheStrategies

logger = logging.getLogger(__name__)


class FetchStrategy(str, Enum):
    PASSTHROUGH = "passthrough"
    NETWORK_FIRST = "network-first"
    CACHE_FIRST = "cache-first"


class FetchRouter:
    """Routes every request under the worker's scope.

    Rules, first match wins: non-GET passes through untouched, API paths and
    navigations go network-first, everything else cache-first.
    """

    def __init__(self, config: WorkerConfig, strategies: CacheStrategies) -> None:
        self.config = config
        self.strategies = strategies

    def classify(self, request: Request) -> FetchStrategy:
        if not request.is_get:
            return FetchStrategy.PASSTHROUGH
        if self.config.is_api(request):
            return FetchStrategy.NETWORK_FIRST
        if request.is_navigation:
            return FetchStrategy.NETWORK_FIRST
        return FetchStrategy.CACHE_FIRST

    async def handle(self, request: Request) -> Response | None:
        """Answer ``request``, or return None when it is not intercepted."""
        strategy = self.classify(request)
        logger.debug("%s %s -> %s", request.method, request.url, strategy.value)

        if strategy is FetchStrategy.PASSTHROUGH:
            return None
        if strategy is FetchStrategy.NETWORK_FIRST:
            return await self.strategies.network_first(request)
        return await self.strategies.cache_first(request)
