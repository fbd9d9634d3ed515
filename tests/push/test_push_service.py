"""Tests for Web Push dispatch."""

from __future__ import annotations

import binascii
from collections.abc import Generator
from unittest.mock import Mock

import orjson
import pytest
import requests
from pywebpush import WebPushException

from kronos.config.models import PushSettings
from kronos.push import NotificationPayload, PushService, SubscriptionStore
from kronos.shared.errors import ErrorCode, SecurityError


@pytest.fixture
def store() -> Generator[SubscriptionStore, None, None]:
    subscription_store = SubscriptionStore()
    yield subscription_store
    subscription_store.close()


@pytest.fixture
def settings() -> PushSettings:
    return PushSettings(
        vapid_public_key="BPublicKey",
        vapid_private_key="private-key",
        vapid_subject="mailto:admin@kronos.test",
        ttl=60,
    )


@pytest.fixture
def service(settings: PushSettings, store: SubscriptionStore) -> PushService:
    return PushService(settings, store)


@pytest.fixture
def webpush(mocker) -> Mock:
    return mocker.patch("kronos.push.service.webpush")


def _gone(status: int) -> WebPushException:
    return WebPushException("Push failed", response=Mock(status_code=status))


class TestSendPushNotification:
    def test_not_configured(self, store: SubscriptionStore, webpush: Mock) -> None:
        service = PushService(PushSettings(), store)
        store.add("u1", "https://push.example/1", "p", "a")

        result = service.send_push_notification("u1", NotificationPayload())

        assert result.success is False
        webpush.assert_not_called()

    def test_no_subscriptions(self, service: PushService, webpush: Mock) -> None:
        result = service.send_push_notification("nobody", NotificationPayload())

        assert (result.success, result.sent, result.failed) == (True, 0, 0)
        webpush.assert_not_called()

    def test_sends_to_every_subscription(
        self, service: PushService, store: SubscriptionStore, webpush: Mock
    ) -> None:
        # Given a user with two devices
        store.add("u1", "https://push.example/phone", "p1", "a1")
        store.add("u1", "https://push.example/laptop", "p2", "a2")
        store.add("u2", "https://push.example/other", "p3", "a3")

        # When a notification is sent to the user
        result = service.send_push_notification("u1", NotificationPayload(title="Hi", body="There"))

        # Then both devices get the same encrypted payload
        assert (result.success, result.sent, result.failed) == (True, 2, 0)
        endpoints = [c.kwargs["subscription_info"]["endpoint"] for c in webpush.call_args_list]
        assert endpoints == ["https://push.example/phone", "https://push.example/laptop"]

        call = webpush.call_args_list[0].kwargs
        assert call["subscription_info"]["keys"] == {"p256dh": "p1", "auth": "a1"}
        assert call["vapid_private_key"] == "private-key"
        assert call["vapid_claims"] == {"sub": "mailto:admin@kronos.test"}
        assert call["ttl"] == 60
        assert orjson.loads(call["data"]) == {
            "title": "Hi",
            "body": "There",
            "url": "/",
            "icon": "/icons/icon-192x192.png",
            "badge": "/icons/icon-72x72.png",
            "actions": [],
        }

    @pytest.mark.parametrize("status", [404, 410])
    def test_expired_subscription_is_removed(
        self, service: PushService, store: SubscriptionStore, webpush: Mock, status: int
    ) -> None:
        # Given one dead and one live endpoint
        store.add("u1", "https://push.example/dead", "p1", "a1")
        store.add("u1", "https://push.example/live", "p2", "a2")
        webpush.side_effect = [_gone(status), None]

        # When sending
        result = service.send_push_notification("u1", NotificationPayload())

        # Then the dead one is counted and pruned, the live one delivered
        assert (result.sent, result.failed) == (1, 1)
        assert [s.endpoint for s in store.for_user("u1")] == ["https://push.example/live"]

    def test_other_push_errors_keep_subscription(
        self, service: PushService, store: SubscriptionStore, webpush: Mock
    ) -> None:
        store.add("u1", "https://push.example/flaky", "p", "a")
        webpush.side_effect = _gone(500)

        result = service.send_push_notification("u1", NotificationPayload())

        assert result.failed == 1
        assert len(store.for_user("u1")) == 1

    def test_transport_errors_are_counted(
        self, service: PushService, store: SubscriptionStore, webpush: Mock
    ) -> None:
        store.add("u1", "https://push.example/1", "p", "a")
        webpush.side_effect = requests.ConnectionError("unreachable")

        result = service.send_push_notification("u1", NotificationPayload())

        assert (result.success, result.sent, result.failed) == (True, 0, 1)

    @pytest.mark.parametrize(
        "error",
        [binascii.Error("Invalid base64-encoded string"), ValueError("Could not deserialize key data")],
    )
    def test_malformed_subscription_keys_do_not_stop_delivery(
        self, service: PushService, store: SubscriptionStore, webpush: Mock, error: Exception
    ) -> None:
        # Given a subscription stored with unusable keys ahead of a valid one
        store.add("u1", "https://push.example/broken", "not-a-key", "a1")
        store.add("u1", "https://push.example/live", "p2", "a2")
        webpush.side_effect = [error, None]

        # When sending
        result = service.send_push_notification("u1", NotificationPayload())

        # Then the broken one is counted and the valid one still delivered
        assert (result.success, result.sent, result.failed) == (True, 1, 1)
        assert webpush.call_count == 2
        assert webpush.call_args.kwargs["subscription_info"]["endpoint"] == "https://push.example/live"
        assert len(store.for_user("u1")) == 2

    def test_multiple_users(self, service: PushService, store: SubscriptionStore, webpush: Mock) -> None:
        store.add("u1", "https://push.example/1", "p", "a")
        store.add("u2", "https://push.example/2", "p", "a")
        store.add("u2", "https://push.example/3", "p", "a")
        webpush.side_effect = [None, None, _gone(500)]

        result = service.send_push_to_multiple_users(["u1", "u2", "u3"], NotificationPayload())

        assert (result.success, result.total_sent, result.total_failed) == (True, 2, 1)


class TestConfiguration:
    def test_vapid_public_key(self, service: PushService) -> None:
        assert service.get_vapid_public_key() == "BPublicKey"

    def test_ensure_configured(self, store: SubscriptionStore) -> None:
        with pytest.raises(SecurityError) as exc_info:
            PushService(PushSettings(vapid_public_key="only-public"), store).ensure_configured()

        assert exc_info.value.code == ErrorCode.PUSH_NOT_CONFIGURED


class TestNotifyHelpers:
    @pytest.fixture(autouse=True)
    def _subscribed(self, store: SubscriptionStore) -> None:
        store.add("u1", "https://push.example/1", "p", "a")

    def _sent(self, webpush: Mock) -> dict:
        return orjson.loads(webpush.call_args.kwargs["data"])

    def test_new_message_preview_is_truncated(self, service: PushService, webpush: Mock) -> None:
        service.notify_new_message("u1", "Ada", "x" * 150, "c42")

        data = self._sent(webpush)
        assert data["title"] == "New message from Ada"
        assert data["body"] == "x" * 100 + "..."
        assert data["url"] == "/employee/chat?conversation=c42"
        assert data["tag"] == "message-c42"
        assert [a["action"] for a in data["actions"]] == ["view", "dismiss"]

    def test_short_message_kept_whole(self, service: PushService, webpush: Mock) -> None:
        service.notify_new_message("u1", "Ada", "hello", "c1")

        assert self._sent(webpush)["body"] == "hello"

    def test_mention(self, service: PushService, webpush: Mock) -> None:
        service.notify_mention("u1", "Grace", "in #deals", "/employee/chat?conversation=9")

        data = self._sent(webpush)
        assert data["title"] == "Grace mentioned you"
        assert data["tag"] == "mention"

    def test_task_assignment(self, service: PushService, webpush: Mock) -> None:
        service.notify_task_assignment("u1", "Lin", "Review NDA", "t7")

        data = self._sent(webpush)
        assert data["title"] == "New Task Assigned"
        assert data["body"] == "Lin assigned you: Review NDA"
        assert data["url"] == "/employee/tasks"
        assert data["tag"] == "task-t7"

    def test_deal_assignment(self, service: PushService, webpush: Mock) -> None:
        service.notify_deal_assignment("u1", "Lin", "Atlas", "d3")

        data = self._sent(webpush)
        assert data["title"] == "Added to Deal Team"
        assert data["url"] == "/employee/deals?deal=d3"
        assert data["tag"] == "deal-d3"

    def test_deal_update(self, service: PushService, webpush: Mock) -> None:
        result = service.notify_deal_update("u1", "Atlas", "Stage changed", "d3")

        data = self._sent(webpush)
        assert result.sent == 1
        assert data["title"] == "Deal Update: Atlas"
        assert data["body"] == "Stage changed"
        assert data["tag"] == "deal-update-d3"
        assert data["actions"] == []
