"""
System Constants

Application identity and logging defaults.
"""

BASE_KB = 1024
BASE_MB = BASE_KB * 1024


class Application:
    """Application identity."""

    NAME = "kronos"
    VERSION = "0.1.0"
    DESCRIPTION = "Offline-first caching worker for the Kronos web application"


class Logging:
    """Logging defaults."""

    DEFAULT_LEVEL = "INFO"
    DEFAULT_FILE_PATH = "logs/kronos.log"
    MAX_BYTES = 10 * BASE_MB
    BACKUP_COUNT = 5


class HTTPDefaults:
    """HTTP client defaults (seconds)."""

    TOTAL_TIMEOUT = 30.0
    CONNECT_TIMEOUT = 10.0
    SOCK_READ_TIMEOUT = 20.0
    USER_AGENT = f"{Application.NAME}/{Application.VERSION}"


class PushDefaults:
    """Web Push defaults."""

    VAPID_SUBJECT = "mailto:admin@kronos.app"
    DEFAULT_DB_PATH = "data/kronos-push.db"
    MESSAGE_PREVIEW_LENGTH = 100
    TTL_SECONDS = 24 * 60 * 60
