"""Web Push dispatch.

Sends notification payloads to every stored subscription of a user through
``pywebpush``. Delivery is per subscription: one failing endpoint does not
stop the others, and endpoints the push service reports as gone (404/410)
are removed from the store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import orjson
import requests
from pywebpush import WebPushException, webpush

from kronos.config.models.push_settings import PushSettings
from kronos.push.models import BulkPushResult, NotificationPayload, PushResult, PushSubscription
from kronos.push.store import SubscriptionStore
from kronos.shared.constants import HTTPStatusCodes, PushDefaults
from kronos.shared.errors import ErrorCode, ErrorContext, SecurityError

logger = logging.getLogger(__name__)

_EXPIRED_STATUSES = frozenset({HTTPStatusCodes.NOT_FOUND, HTTPStatusCodes.GONE})


def _preview(text: str, limit: int = PushDefaults.MESSAGE_PREVIEW_LENGTH) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class PushService:
    """Delivers notifications to the push subscriptions of users."""

    def __init__(self, settings: PushSettings, store: SubscriptionStore) -> None:
        self.settings = settings
        self.store = store

    def get_vapid_public_key(self) -> str:
        return self.settings.vapid_public_key

    def ensure_configured(self) -> None:
        """Raise SecurityError when no VAPID key pair is configured."""
        if not self.settings.is_configured:
            raise SecurityError(
                ErrorCode.PUSH_NOT_CONFIGURED,
                "VAPID keys not configured",
                ErrorContext(operation="push"),
            )

    def _deliver(self, subscription: PushSubscription, data: bytes) -> None:
        webpush(
            subscription_info=subscription.subscription_info(),
            data=data,
            vapid_private_key=self.settings.vapid_private_key,
            # webpush adds aud/exp to the claims it is given
            vapid_claims={"sub": self.settings.vapid_subject},
            ttl=self.settings.ttl,
        )

    def send_push_notification(self, user_id: str, payload: NotificationPayload) -> PushResult:
        """Send ``payload`` to every subscription of ``user_id``."""
        if not self.settings.is_configured:
            logger.info("VAPID keys not configured, skipping notification")
            return PushResult(success=False)

        subscriptions = self.store.for_user(user_id)
        if not subscriptions:
            logger.info("No subscriptions found for user %s", user_id)
            return PushResult(success=True)

        data = orjson.dumps(payload.to_dict())
        sent = 0
        failed = 0

        for subscription in subscriptions:
            try:
                self._deliver(subscription, data)
            except WebPushException as e:
                failed += 1
                status = e.response.status_code if e.response is not None else None
                logger.error("Failed to send to subscription %s: %s", subscription.id, e.message)
                if status in _EXPIRED_STATUSES:
                    logger.info("Removing expired subscription %s", subscription.id)
                    self.store.remove(subscription.id)
            except requests.RequestException as e:
                failed += 1
                logger.error("Failed to send to subscription %s: %s", subscription.id, e)
            except Exception as e:  # noqa: BLE001
                # Malformed stored keys fail inside payload encryption
                failed += 1
                logger.error(
                    "Failed to send to subscription %s: %s: %s",
                    subscription.id,
                    type(e).__name__,
                    e,
                )
            else:
                sent += 1

        return PushResult(success=True, sent=sent, failed=failed)

    def send_push_to_multiple_users(
        self, user_ids: Iterable[str], payload: NotificationPayload
    ) -> BulkPushResult:
        total_sent = 0
        total_failed = 0
        for user_id in user_ids:
            result = self.send_push_notification(user_id, payload)
            total_sent += result.sent
            total_failed += result.failed
        return BulkPushResult(success=True, total_sent=total_sent, total_failed=total_failed)

    def notify_new_message(
        self,
        recipient_user_id: str,
        sender_name: str,
        message_preview: str,
        conversation_id: str,
    ) -> PushResult:
        return self.send_push_notification(
            recipient_user_id,
            NotificationPayload(
                title=f"New message from {sender_name}",
                body=_preview(message_preview),
                url=f"/employee/chat?conversation={conversation_id}",
                tag=f"message-{conversation_id}",
                actions=[
                    {"action": "view", "title": "View"},
                    {"action": "dismiss", "title": "Dismiss"},
                ],
            ),
        )

    def notify_mention(
        self, recipient_user_id: str, mentioner_name: str, context: str, url: str
    ) -> PushResult:
        return self.send_push_notification(
            recipient_user_id,
            NotificationPayload(
                title=f"{mentioner_name} mentioned you",
                body=context,
                url=url,
                tag="mention",
                actions=[{"action": "view", "title": "View"}],
            ),
        )

    def notify_task_assignment(
        self, recipient_user_id: str, assigner_name: str, task_title: str, task_id: str
    ) -> PushResult:
        return self.send_push_notification(
            recipient_user_id,
            NotificationPayload(
                title="New Task Assigned",
                body=f"{assigner_name} assigned you: {task_title}",
                url="/employee/tasks",
                tag=f"task-{task_id}",
                actions=[{"action": "view", "title": "View Task"}],
            ),
        )

    def notify_deal_assignment(
        self, recipient_user_id: str, assigner_name: str, deal_name: str, deal_id: str
    ) -> PushResult:
        return self.send_push_notification(
            recipient_user_id,
            NotificationPayload(
                title="Added to Deal Team",
                body=f"{assigner_name} added you to the deal: {deal_name}",
                url=f"/employee/deals?deal={deal_id}",
                tag=f"deal-{deal_id}",
                actions=[{"action": "view", "title": "View Deal"}],
            ),
        )

    def notify_deal_update(
        self, recipient_user_id: str, deal_name: str, update_type: str, deal_id: str
    ) -> PushResult:
        return self.send_push_notification(
            recipient_user_id,
            NotificationPayload(
                title=f"Deal Update: {deal_name}",
                body=update_type,
                url=f"/employee/deals?deal={deal_id}",
                tag=f"deal-update-{deal_id}",
            ),
        )
