"""SQLite store of Web Push subscriptions."""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from pathlib import Path

from kronos.push.models import PushSubscription
from kronos.shared.constants import Cache
from kronos.shared.errors import ErrorCode, ErrorContext, InfrastructureError

logger = logging.getLogger(__name__)

_TABLE = "push_subscriptions"


def _store_error(message: str, operation: str, error: Exception, user_id: str | None = None) -> InfrastructureError:
    return InfrastructureError(
        ErrorCode.SUBSCRIPTION_STORE_FAILED,
        message,
        ErrorContext(operation=operation, user_id=user_id),
        original_error=error,
    )


def _row_to_subscription(row: sqlite3.Row) -> PushSubscription:
    return PushSubscription(
        id=row["id"],
        user_id=row["user_id"],
        endpoint=row["endpoint"],
        p256dh=row["p256dh"],
        auth=row["auth"],
    )


class SubscriptionStore:
    """Push subscriptions keyed by endpoint; one user may own several.

    Raises:
        InfrastructureError: With code SUBSCRIPTION_STORE_FAILED on any
            database failure
    """

    def __init__(self, db_path: Path | str = Cache.MEMORY_DB) -> None:
        self.db_path = str(db_path)
        self._lock = threading.RLock()

        try:
            if self.db_path != Cache.MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    endpoint TEXT NOT NULL UNIQUE,
                    p256dh TEXT NOT NULL,
                    auth TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
                )
                """
            )
            self.conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{_TABLE}_user ON {_TABLE}(user_id)")
            self.conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise _store_error(f"Failed to open subscription store: {e!s}", "initialize", e) from e

    def add(self, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
        """Store a subscription; re-subscribing an endpoint replaces its keys and owner."""
        try:
            with self._lock:
                row = self.conn.execute(
                    f"SELECT id FROM {_TABLE} WHERE endpoint = ?",  # noqa: S608
                    (endpoint,),
                ).fetchone()
                subscription_id = row["id"] if row else uuid.uuid4().hex
                self.conn.execute(
                    f"INSERT OR REPLACE INTO {_TABLE} (id, user_id, endpoint, p256dh, auth) "  # noqa: S608
                    "VALUES (?, ?, ?, ?, ?)",
                    (subscription_id, user_id, endpoint, p256dh, auth),
                )
                self.conn.commit()
        except sqlite3.Error as e:
            raise _store_error(f"Failed to store subscription: {e!s}", "add", e, user_id) from e

        logger.debug("Stored push subscription %s", subscription_id)
        return PushSubscription(subscription_id, user_id, endpoint, p256dh, auth)

    def for_user(self, user_id: str) -> list[PushSubscription]:
        try:
            with self._lock:
                rows = self.conn.execute(
                    f"SELECT * FROM {_TABLE} WHERE user_id = ? ORDER BY created_at, rowid",  # noqa: S608
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise _store_error(f"Failed to read subscriptions: {e!s}", "for_user", e, user_id) from e
        return [_row_to_subscription(row) for row in rows]

    def remove(self, subscription_id: str) -> bool:
        try:
            with self._lock:
                cursor = self.conn.execute(
                    f"DELETE FROM {_TABLE} WHERE id = ?",  # noqa: S608
                    (subscription_id,),
                )
                self.conn.commit()
        except sqlite3.Error as e:
            raise _store_error(f"Failed to remove subscription: {e!s}", "remove", e) from e
        return cursor.rowcount > 0

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __enter__(self) -> SubscriptionStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
