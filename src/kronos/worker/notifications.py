"""Push payloads, notification display and notification-click routing."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from kronos.shared.constants import NotificationDefaults
from kronos.worker.config import WorkerConfig
from kronos.worker.http import same_origin
from kronos.worker.platform import Notification, Platform, WindowClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationPayload:
    """What a push message asks the worker to display."""

    title: str = NotificationDefaults.TITLE
    body: str = NotificationDefaults.BODY
    url: str = NotificationDefaults.URL
    icon: str | None = None
    badge: str | None = None
    tag: str | None = None
    actions: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire form sent to push services, with icon and badge defaults filled in."""
        data: dict[str, Any] = {
            "title": self.title,
            "body": self.body,
            "url": self.url or NotificationDefaults.URL,
            "icon": self.icon or NotificationDefaults.ICON,
            "badge": self.badge or NotificationDefaults.BADGE,
            "actions": list(self.actions),
        }
        if self.tag is not None:
            data["tag"] = self.tag
        return data


def _text_field(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value)


def parse_push_payload(data: bytes | None) -> NotificationPayload:
    """Read a push message body.

    A JSON object supplies any of ``title``, ``body``, ``url``, ``tag`` and
    ``actions``. Anything else that is not JSON becomes the body under the
    default title. No data at all gives the default notification.
    """
    if not data:
        return NotificationPayload()

    text = data.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Push payload is not JSON, using it as the body")
        return NotificationPayload(body=text)

    if not isinstance(parsed, dict):
        return NotificationPayload(body=text)

    actions = parsed.get("actions")
    return NotificationPayload(
        title=_text_field(parsed, "title", NotificationDefaults.TITLE),
        body=_text_field(parsed, "body", NotificationDefaults.BODY),
        url=_text_field(parsed, "url", NotificationDefaults.URL),
        icon=parsed.get("icon"),
        badge=parsed.get("badge"),
        tag=parsed.get("tag"),
        actions=list(actions) if isinstance(actions, list) else [],
    )


class NotificationHandler:
    """Shows notifications and routes clicks to application windows."""

    def __init__(self, config: WorkerConfig, platform: Platform) -> None:
        self.config = config
        self.platform = platform

    def show_push_notification(self, payload: NotificationPayload) -> Notification:
        options: dict[str, Any] = {
            "body": payload.body,
            "icon": self.config.notification_icon,
            "badge": self.config.notification_badge,
            "vibrate": list(self.config.vibrate),
            "data": {
                "url": payload.url or NotificationDefaults.URL,
                "dateOfArrival": int(time.time() * 1000),
            },
            "actions": list(payload.actions),
        }
        if payload.tag is not None:
            options["tag"] = payload.tag
        return self.platform.notifications.show(payload.title, options)

    def handle_notification_click(
        self, notification: Notification, action: str = ""
    ) -> WindowClient | None:
        """Close ``notification`` and bring a window to its target URL.

        The first open window of this application wins; without one a new
        window is opened. The dismiss action only closes the notification.
        """
        notification.close()
        if action == NotificationDefaults.DISMISS_ACTION:
            logger.info("Notification %s dismissed", notification.id)
            return None

        target = self.config.resolve(notification.data.get("url") or NotificationDefaults.URL)

        for client in self.platform.clients.match_all(include_uncontrolled=True):
            if same_origin(self.config.origin, client.url):
                client.navigate(target)
                logger.info("Focused client %s at %s", client.id, target)
                return client.focus()

        logger.info("No open window, opening %s", target)
        return self.platform.clients.open_window(target)
