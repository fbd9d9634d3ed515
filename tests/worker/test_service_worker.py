"""End-to-end tests driving the worker through dispatched events."""

from __future__ import annotations

import json

import pytest
from fakes import ORIGIN, FakeFetcher, url

from kronos.config.models.settings import Settings
from kronos.worker.http import Request, Response
from kronos.worker.lifecycle import Registration, WorkerState
from kronos.worker.platform import HeadlessPlatform, Platform
from kronos.worker.service_worker import (
    ActivateEvent,
    EventKind,
    FetchEvent,
    InstallEvent,
    MessageEvent,
    NotificationClickEvent,
    PeriodicSyncEvent,
    PushEvent,
    ServiceWorker,
    SyncEvent,
)
from kronos.worker.storage import CacheStorage
from kronos.worker.sync import SyncReport


class TestEvents:
    def test_event_kinds(self) -> None:
        assert FetchEvent(Request(url("/"))).kind is EventKind.FETCH
        assert PushEvent().kind.value == "push"
        assert NotificationClickEvent.kind.value == "notificationclick"
        assert PeriodicSyncEvent("x").kind.value == "periodicsync"


class TestInstallAndActivate:
    @pytest.mark.asyncio
    async def test_install_then_activate(
        self, worker: ServiceWorker, storage: CacheStorage, platform: Platform
    ) -> None:
        # Given a leftover bucket and an open page
        storage.open("kronos-v1")
        page = platform.clients.add(url("/"))

        # When install and activate are dispatched
        assert await worker.dispatch(InstallEvent()) == 3
        deleted = await worker.dispatch(ActivateEvent())

        # Then the old bucket is gone and the page is controlled
        assert deleted == ["kronos-v1"]
        assert storage.keys() == ["kronos-static-v1"]
        assert page.controller == "worker-test"
        assert worker.lifecycle.state is WorkerState.ACTIVATED


class TestFetch:
    @pytest.mark.asyncio
    async def test_offline_app_after_install(
        self, worker: ServiceWorker, fetcher: FakeFetcher
    ) -> None:
        # Given an installed worker and a dead network
        await worker.dispatch(InstallEvent())
        fetcher.offline = True

        # When the shell and a deep link are requested
        manifest = await worker.fetch(Request(url("/manifest.json")))
        page = await worker.fetch(Request(url("/deals/5"), destination="document"))
        api = await worker.fetch(Request(url("/api/notifications")))

        # Then cached assets and the shell answer, the API gets a JSON 503
        assert manifest.body == b'{"name":"Kronos"}'
        assert page.body == b"<html>shell</html>"
        assert api.status == 503
        assert json.loads(api.body) == {"error": "Offline"}

    @pytest.mark.asyncio
    async def test_offline_cached_notifications(
        self, worker: ServiceWorker, fetcher: FakeFetcher
    ) -> None:
        fetcher.add(url("/api/notifications"), b'[{"id":1}]')
        await worker.fetch(Request(url("/api/notifications")))
        fetcher.offline = True

        response = await worker.fetch(Request(url("/api/notifications")))

        assert response.status == 200
        assert response.body == b'[{"id":1}]'

    @pytest.mark.asyncio
    async def test_post_passes_through(self, worker: ServiceWorker) -> None:
        assert await worker.dispatch(FetchEvent(Request(url("/api/deals"), method="POST"))) is None


class TestPushAndClick:
    @pytest.mark.asyncio
    async def test_push_then_click(self, worker: ServiceWorker, platform: Platform) -> None:
        # Given a push message
        notification = await worker.dispatch(PushEvent(b'{"title":"X","body":"Y","url":"/z"}'))

        # When it is clicked with no window open
        client = await worker.dispatch(NotificationClickEvent(notification))

        # Then a window opens at the target
        assert notification.title == "X"
        assert notification.body == "Y"
        assert notification.closed is True
        assert client.url == f"{ORIGIN}/z"

    @pytest.mark.asyncio
    async def test_dismiss_click_opens_nothing(self, worker: ServiceWorker, platform: Platform) -> None:
        notification = await worker.dispatch(PushEvent(b'{"url":"/z"}'))

        result = await worker.dispatch(NotificationClickEvent(notification, action="dismiss"))

        assert result is None
        assert notification.closed is True
        assert len(platform.clients) == 0

    @pytest.mark.asyncio
    async def test_malformed_push(self, worker: ServiceWorker) -> None:
        notification = await worker.dispatch(PushEvent(b"hello"))

        assert notification.title == "Kronos"
        assert notification.body == "hello"
        assert notification.data["url"] == "/"

    @pytest.mark.asyncio
    async def test_empty_push(self, worker: ServiceWorker) -> None:
        notification = await worker.dispatch(PushEvent())

        assert notification.body == "You have a new notification"


class TestMessages:
    @pytest.mark.asyncio
    async def test_set_and_clear_badge(self, worker: ServiceWorker, platform: Platform) -> None:
        await worker.dispatch(MessageEvent({"type": "SET_BADGE", "count": 7}))
        assert platform.badge.count == 7

        await worker.dispatch(MessageEvent({"type": "CLEAR_BADGE"}))
        assert platform.badge.count is None

    @pytest.mark.asyncio
    async def test_set_badge_with_string_count(self, worker: ServiceWorker, platform: Platform) -> None:
        await worker.dispatch(MessageEvent({"type": "SET_BADGE", "count": "3"}))

        assert platform.badge.count == 3

    @pytest.mark.asyncio
    async def test_bad_badge_count_is_ignored(self, worker: ServiceWorker, platform: Platform) -> None:
        platform.badge.set_app_badge(2)

        await worker.dispatch(MessageEvent({"type": "SET_BADGE", "count": "many"}))

        assert platform.badge.count == 2

    @pytest.mark.asyncio
    async def test_unknown_message_is_ignored(self, worker: ServiceWorker) -> None:
        assert await worker.dispatch(MessageEvent({"type": "PING"})) is None
        assert await worker.dispatch(MessageEvent()) is None

    @pytest.mark.asyncio
    async def test_skip_waiting_promotes_waiting_worker(
        self, storage: CacheStorage, fetcher: FakeFetcher, platform: Platform, config
    ) -> None:
        # Given an active worker and an update waiting behind it
        registration = Registration()
        old = ServiceWorker(config, storage, fetcher, platform, "w1")
        new = ServiceWorker(config, storage, fetcher, platform, "w2", auto_skip_waiting=False)
        await registration.register(old)
        await registration.register(new)
        assert registration.waiting is new

        # When the page tells the update to skip waiting
        await new.dispatch(MessageEvent({"type": "SKIP_WAITING"}))

        # Then it takes over
        assert registration.active is new
        assert new.lifecycle.state is WorkerState.ACTIVATED
        assert old.lifecycle.state is WorkerState.REDUNDANT


class TestSyncEvents:
    @pytest.mark.asyncio
    async def test_sync_data(self, worker: ServiceWorker, storage: CacheStorage, fetcher: FakeFetcher) -> None:
        storage.open("kronos-dynamic-v1").put(url("/api/deals"), Response(200, b"old"))
        fetcher.add(url("/api/deals"), b"new")

        report = await worker.dispatch(SyncEvent("sync-data"))

        assert isinstance(report, SyncReport)
        assert report.refreshed == [url("/api/deals")]

    @pytest.mark.asyncio
    async def test_periodic_refresh_sets_badge(
        self, worker: ServiceWorker, fetcher: FakeFetcher, platform: Platform
    ) -> None:
        fetcher.add(url("/api/notifications"), b'[{"read":false},{"read":false}]')

        assert await worker.dispatch(PeriodicSyncEvent("refresh-notifications")) == 2
        assert platform.badge.count == 2

    @pytest.mark.asyncio
    async def test_unknown_tags(self, worker: ServiceWorker, fetcher: FakeFetcher) -> None:
        assert await worker.dispatch(SyncEvent("other")) is None
        assert await worker.dispatch(PeriodicSyncEvent("other")) is None
        assert fetcher.calls == []


class TestFromSettings:
    def test_builds_from_settings(self, storage: CacheStorage, fetcher: FakeFetcher) -> None:
        settings = Settings()

        worker = ServiceWorker.from_settings(
            settings, platform=HeadlessPlatform(), storage=storage, fetcher=fetcher
        )

        assert worker.config.static_cache == "kronos-static-v1"
        assert worker.storage is storage
        assert worker.worker_id.startswith("worker-")
