"""
Kronos Constants Module

Centralized constants for the Kronos offline worker.
"""

from .cache import Cache, CacheSchema
from .cli import CLICommands, CLIDefaults, CLIHelp
from .http_codes import ContentTypes, HTTPHeaders, HTTPStatusCodes, HTTPStatusTexts
from .system import Application, HTTPDefaults, Logging, PushDefaults
from .worker import (
    Destinations,
    EventKinds,
    MessageTypes,
    NotificationDefaults,
    Permissions,
    Routes,
    SyncTags,
)

__all__ = [
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "Application",
    "Cache",
    "CacheSchema",
    "ContentTypes",
    "Destinations",
    "EventKinds",
    "HTTPDefaults",
    "HTTPHeaders",
    "HTTPStatusCodes",
    "HTTPStatusTexts",
    "Logging",
    "MessageTypes",
    "NotificationDefaults",
    "Permissions",
    "PushDefaults",
    "Routes",
    "SyncTags",
]
