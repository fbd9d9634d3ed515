"""The network as seen by the worker.

``Fetcher`` is the seam the strategies talk to. ``AiohttpFetcher`` is the
production implementation: it owns one lazily created aiohttp session and
turns transport failures into ``KronosNetworkError``. HTTP error statuses
are responses, not failures.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Protocol

import aiohttp

from kronos.config.models.http_settings import HTTPSettings
from kronos.shared.constants import HTTPHeaders
from kronos.shared.errors import (
    ErrorCode,
    ErrorContext,
    KronosNetworkError,
    create_network_error,
)
from kronos.worker.http import Request, Response

logger = logging.getLogger(__name__)


def _flatten_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Collapse a multi-valued header mapping, joining repeats with ', '."""
    flat: dict[str, str] = {}
    for name, value in headers.items():
        flat[name] = f"{flat[name]}, {value}" if name in flat else value
    return flat


class Fetcher(Protocol):
    """Anything that can turn a Request into a Response."""

    async def fetch(self, request: Request) -> Response:
        """Perform the request.

        Raises:
            KronosNetworkError: If no HTTP response was obtained
        """
        ...


class AiohttpFetcher:
    """Fetcher backed by a shared aiohttp.ClientSession."""

    def __init__(self, settings: HTTPSettings | None = None) -> None:
        self.settings = settings or HTTPSettings()
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(
            total=self.settings.total_timeout,
            connect=self.settings.connect_timeout,
            sock_read=self.settings.sock_read_timeout,
        )
        headers = {HTTPHeaders.USER_AGENT: self.settings.user_agent}

        try:
            session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                raise_for_status=False,
                auto_decompress=True,
            )
        except Exception as e:
            raise KronosNetworkError(
                code=ErrorCode.HTTP_SESSION_FAILED,
                message=f"Failed to create HTTP session: {e}",
                context=ErrorContext(operation="create_session"),
                original_error=e,
            ) from e

        logger.debug("aiohttp.ClientSession created")
        return session

    async def fetch(self, request: Request) -> Response:
        session = await self.get_session()
        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers or None,
                data=request.body or None,
            ) as resp:
                body = await resp.read()
                return Response(
                    status=resp.status,
                    body=body,
                    headers=_flatten_headers(resp.headers),
                    status_text=resp.reason or "",
                    url=str(resp.url),
                )
        except asyncio.TimeoutError as e:
            raise KronosNetworkError(
                code=ErrorCode.NETWORK_TIMEOUT,
                message=f"Request timed out: {request.url}",
                context=ErrorContext(url=request.url, operation="fetch"),
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise create_network_error(
                f"Network request failed: {e}",
                url=request.url,
                operation="fetch",
                original_error=e,
            ) from e

    async def close(self) -> None:
        """Close the HTTP session and release its connections."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                logger.debug("aiohttp.ClientSession closed")
            self._session = None

    async def __aenter__(self) -> AiohttpFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
