"""Configuration domain models."""

from __future__ import annotations

from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings
from .http_settings import HTTPSettings
from .push_settings import PushSettings
from .settings import Settings
from .worker_settings import SyncSettings, WorkerSettings

__all__ = [
    "AppSettings",
    "CacheSettings",
    "HTTPSettings",
    "LoggingSettings",
    "PushSettings",
    "Settings",
    "SyncSettings",
    "WorkerSettings",
]
