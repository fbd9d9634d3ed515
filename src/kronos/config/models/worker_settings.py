"""Worker configuration models.

This module contains the configuration of the caching worker: the origin it
serves, its versioned bucket names, the shell manifest cached on install,
and the notification defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from kronos.shared.constants import Cache, NotificationDefaults, Routes, SyncTags


class WorkerSettings(BaseModel):
    """Caching worker configuration.

    Bumping ``cache_version`` gives the next activation a clean slate: every
    bucket carrying another version is deleted.
    """

    origin: str = Field(
        default=Routes.DEFAULT_ORIGIN,
        description="Origin of the application the worker controls",
    )
    cache_prefix: str = Field(default=Cache.PREFIX, description="Bucket name prefix")
    cache_version: str = Field(default=Cache.VERSION, description="Bucket version suffix")
    static_assets: list[str] = Field(
        default_factory=lambda: list(Cache.STATIC_ASSETS),
        description="Shell assets cached eagerly on install",
    )
    api_prefix: str = Field(
        default=Routes.API_PREFIX,
        description="Path prefix served network-first and cached in the dynamic bucket",
    )
    notifications_endpoint: str = Field(
        default=Routes.NOTIFICATIONS_ENDPOINT,
        description="Endpoint listing the user's notifications",
    )
    notification_icon: str = Field(default=NotificationDefaults.ICON)
    notification_badge: str = Field(default=NotificationDefaults.BADGE)
    default_title: str = Field(default=NotificationDefaults.TITLE)
    default_body: str = Field(default=NotificationDefaults.BODY)

    @field_validator("origin")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("api_prefix")
    @classmethod
    def _api_prefix_is_path(cls, value: str) -> str:
        if not value.startswith("/"):
            msg = f"api_prefix must start with '/': {value!r}"
            raise ValueError(msg)
        return value


class SyncSettings(BaseModel):
    """Background and periodic sync configuration."""

    periodic_min_interval: int = Field(
        default=SyncTags.DEFAULT_MIN_INTERVAL_SECONDS,
        gt=0,
        description="Minimum interval in seconds between periodic notification refreshes",
    )


__all__ = [
    "SyncSettings",
    "WorkerSettings",
]
