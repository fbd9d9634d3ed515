"""
Worker Constants

Event names, message types, sync tags and notification defaults shared by
the worker and the pages it controls.
"""


class EventKinds:
    """Event names dispatched to the worker."""

    INSTALL = "install"
    ACTIVATE = "activate"
    FETCH = "fetch"
    PUSH = "push"
    NOTIFICATION_CLICK = "notificationclick"
    MESSAGE = "message"
    SYNC = "sync"
    PERIODIC_SYNC = "periodicsync"


class MessageTypes:
    """Cross-context message types (worker <-> page)."""

    SKIP_WAITING = "SKIP_WAITING"
    SET_BADGE = "SET_BADGE"
    CLEAR_BADGE = "CLEAR_BADGE"
    SYNC_COMPLETE = "SYNC_COMPLETE"


class SyncTags:
    """Registered sync task tags."""

    SYNC_DATA = "sync-data"
    REFRESH_NOTIFICATIONS = "refresh-notifications"

    # Default periodic sync minimum interval: one hour
    DEFAULT_MIN_INTERVAL_SECONDS = 60 * 60

    PERIODIC_SYNC_PERMISSION = "periodic-background-sync"


class Permissions:
    """Permission states."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class Routes:
    """Application routes the worker knows about."""

    API_PREFIX = "/api/"
    NOTIFICATIONS_ENDPOINT = "/api/notifications"
    DEFAULT_ORIGIN = "http://localhost:5000"


class NotificationDefaults:
    """Defaults applied to push payloads and displayed notifications."""

    TITLE = "Kronos"
    BODY = "You have a new notification"
    URL = "/"
    ICON = "/icons/icon-192x192.png"
    BADGE = "/icons/icon-72x72.png"
    VIBRATE: tuple[int, ...] = (100, 50, 100)
    DISMISS_ACTION = "dismiss"


class Destinations:
    """Request destinations."""

    DOCUMENT = "document"
