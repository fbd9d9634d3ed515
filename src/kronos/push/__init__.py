"""Server-side Web Push: subscription storage and notification dispatch."""

from kronos.push.models import BulkPushResult, NotificationPayload, PushResult, PushSubscription
from kronos.push.service import PushService
from kronos.push.store import SubscriptionStore

__all__ = [
    "BulkPushResult",
    "NotificationPayload",
    "PushResult",
    "PushService",
    "PushSubscription",
    "SubscriptionStore",
]
