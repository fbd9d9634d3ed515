"""Kronos Configuration Module

This module provides unified access to configuration models and settings
management for the Kronos offline worker.
"""

from __future__ import annotations

from .loader import get_config, load_settings, reload_config, reset_config
from .models import (
    AppSettings,
    CacheSettings,
    HTTPSettings,
    LoggingSettings,
    PushSettings,
    Settings,
    SyncSettings,
    WorkerSettings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "HTTPSettings",
    "LoggingSettings",
    "PushSettings",
    "Settings",
    "SyncSettings",
    "WorkerSettings",
    "get_config",
    "load_settings",
    "reload_config",
    "reset_config",
]
