"""
CLI Constants

Command names, help texts and exit codes for the kronos command line.
"""


class CLIDefaults:
    """CLI default values."""

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_INTERRUPTED = 130

    BODY_PREVIEW_LENGTH = 200


class CLICommands:
    """Command names."""

    INSTALL = "install"
    FETCH = "fetch"
    SYNC = "sync"
    REFRESH_BADGE = "refresh-badge"
    CACHES = "caches"
    PUSH = "push"
    PUSH_SEND = "send"
    PUSH_SUBSCRIBE = "subscribe"
    PUSH_VAPID_KEY = "vapid-key"


class CLIHelp:
    """Help texts."""

    APP_NAME = "kronos"
    APP_DESCRIPTION = "Offline-first caching worker and push dispatcher for Kronos"
    APP_STYLE = "rich"
    VERSION_TEXT = "kronos v{version}"

    INSTALL_HELP = "Install and activate the worker: cache the app shell and drop stale buckets."
    FETCH_HELP = "Route a GET request through the worker and print the response."
    SYNC_HELP = "Re-fetch every cached API response (background sync sweep)."
    REFRESH_BADGE_HELP = "Count unread notifications and update the app badge."
    CACHES_HELP = "List cache buckets and their entries."
    PUSH_HELP = "Web Push subscription management and delivery."
    PUSH_SEND_HELP = "Send a notification to every push subscription of a user."
    PUSH_SUBSCRIBE_HELP = "Store a browser push subscription for a user."
    PUSH_VAPID_KEY_HELP = "Print the VAPID public key."

    FETCH_URL_HELP = "Path or absolute URL to request"
    FETCH_NAVIGATE_HELP = "Treat the request as a page navigation (HTML document)"
