"""HTTP client configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from kronos.shared.constants import HTTPDefaults


class HTTPSettings(BaseModel):
    """aiohttp client configuration.

    Timeouts are the only bound on how long a fetch may take; the worker
    adds no retry or backoff of its own.
    """

    total_timeout: float = Field(default=HTTPDefaults.TOTAL_TIMEOUT, gt=0)
    connect_timeout: float = Field(default=HTTPDefaults.CONNECT_TIMEOUT, gt=0)
    sock_read_timeout: float = Field(default=HTTPDefaults.SOCK_READ_TIMEOUT, gt=0)
    user_agent: str = Field(default=HTTPDefaults.USER_AGENT)


__all__ = ["HTTPSettings"]
