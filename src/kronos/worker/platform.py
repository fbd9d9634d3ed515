"""Platform abstraction the worker runs against.

The worker never touches windows, notifications or the app icon directly;
it goes through the objects bundled in ``Platform``. ``HeadlessPlatform``
keeps all of that state in memory, which is what the CLI host and the test
suite run on.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from kronos.shared.constants import Permissions

logger = logging.getLogger(__name__)

_client_ids = itertools.count(1)
_notification_ids = itertools.count(1)


@dataclass
class WindowClient:
    """A page (tab or installed-app window) under the worker's scope."""

    url: str
    id: str = field(default_factory=lambda: f"client-{next(_client_ids)}")
    focused: bool = False
    controller: str | None = None
    messages: list[dict[str, Any]] = field(default_factory=list)

    def navigate(self, url: str) -> None:
        logger.debug("Client %s navigating to %s", self.id, url)
        self.url = url

    def focus(self) -> WindowClient:
        self.focused = True
        return self

    def post_message(self, message: dict[str, Any]) -> None:
        self.messages.append(dict(message))


class ClientRegistry:
    """Open window clients."""

    def __init__(self) -> None:
        self._clients: list[WindowClient] = []

    def add(self, url: str, *, controller: str | None = None) -> WindowClient:
        client = WindowClient(url=url, controller=controller)
        self._clients.append(client)
        return client

    def remove(self, client: WindowClient) -> None:
        self._clients.remove(client)

    def match_all(
        self,
        *,
        include_uncontrolled: bool = False,
        controller: str | None = None,
    ) -> list[WindowClient]:
        """Clients in the order they were opened.

        Without ``include_uncontrolled`` only clients controlled by
        ``controller`` are returned.
        """
        if include_uncontrolled:
            return list(self._clients)
        return [c for c in self._clients if c.controller is not None and c.controller == controller]

    def open_window(self, url: str) -> WindowClient:
        for client in self._clients:
            client.focused = False
        client = self.add(url)
        client.focused = True
        logger.debug("Opened window %s at %s", client.id, url)
        return client

    def claim(self, worker_id: str) -> int:
        """Make ``worker_id`` the controller of every open client."""
        for client in self._clients:
            client.controller = worker_id
        return len(self._clients)

    def __len__(self) -> int:
        return len(self._clients)


@dataclass
class Notification:
    """A notification displayed by the platform."""

    title: str
    options: dict[str, Any]
    id: int = field(default_factory=lambda: next(_notification_ids))
    closed: bool = False

    @property
    def body(self) -> str:
        return self.options.get("body", "")

    @property
    def data(self) -> dict[str, Any]:
        return self.options.get("data") or {}

    def close(self) -> None:
        self.closed = True


class NotificationCenter:
    """Displayed notifications."""

    def __init__(self) -> None:
        self.shown: list[Notification] = []

    def show(self, title: str, options: dict[str, Any]) -> Notification:
        notification = Notification(title=title, options=dict(options))
        self.shown.append(notification)
        logger.info("Notification shown: %s", title)
        return notification

    @property
    def active(self) -> list[Notification]:
        return [n for n in self.shown if not n.closed]


class BadgeBackend(Protocol):
    """Platform app-badge capability."""

    def set_app_badge(self, count: int) -> None: ...

    def clear_app_badge(self) -> None: ...


class InMemoryBadge:
    """App badge kept in memory; ``count`` is None when cleared."""

    def __init__(self) -> None:
        self.count: int | None = None

    def set_app_badge(self, count: int) -> None:
        self.count = count

    def clear_app_badge(self) -> None:
        self.count = None


@dataclass
class Platform:
    """Everything the worker needs from its host."""

    clients: ClientRegistry = field(default_factory=ClientRegistry)
    notifications: NotificationCenter = field(default_factory=NotificationCenter)
    badge: BadgeBackend | None = None
    permissions: dict[str, str] = field(default_factory=dict)

    def query_permission(self, name: str) -> str:
        return self.permissions.get(name, Permissions.PROMPT)


def HeadlessPlatform(  # noqa: N802
    *,
    badge_supported: bool = True,
    permissions: dict[str, str] | None = None,
) -> Platform:
    """In-memory platform with an app badge when ``badge_supported``."""
    return Platform(
        badge=InMemoryBadge() if badge_supported else None,
        permissions=dict(permissions or {}),
    )
