"""Web Push data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kronos.worker.notifications import NotificationPayload


@dataclass(frozen=True)
class PushSubscription:
    """A browser's push endpoint and encryption keys for one user."""

    id: str
    user_id: str
    endpoint: str
    p256dh: str
    auth: str

    def subscription_info(self) -> dict[str, Any]:
        """Shape expected by ``pywebpush.webpush``."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }


@dataclass(frozen=True)
class PushResult:
    """Delivery outcome for one user."""

    success: bool
    sent: int = 0
    failed: int = 0


@dataclass(frozen=True)
class BulkPushResult:
    """Delivery totals across several users."""

    success: bool
    total_sent: int = 0
    total_failed: int = 0


__all__ = ["BulkPushResult", "NotificationPayload", "PushResult", "PushSubscription"]
