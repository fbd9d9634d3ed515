"""Tests for the push subscription store."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from kronos.push import SubscriptionStore
from kronos.shared.errors import ErrorCode, InfrastructureError


class TestSubscriptionStore:
    def test_add_and_list(self) -> None:
        with SubscriptionStore() as store:
            added = store.add("u1", "https://push.example/1", "p256", "auth")

            (found,) = store.for_user("u1")

        assert found == added
        assert found.subscription_info() == {
            "endpoint": "https://push.example/1",
            "keys": {"p256dh": "p256", "auth": "auth"},
        }

    def test_resubscribe_same_endpoint_keeps_id(self) -> None:
        with SubscriptionStore() as store:
            first = store.add("u1", "https://push.example/1", "old", "old")
            second = store.add("u2", "https://push.example/1", "new", "new")

            assert second.id == first.id
            assert store.for_user("u1") == []
            assert [s.p256dh for s in store.for_user("u2")] == ["new"]

    def test_remove(self) -> None:
        with SubscriptionStore() as store:
            subscription = store.add("u1", "https://push.example/1", "p", "a")

            assert store.remove(subscription.id) is True
            assert store.remove(subscription.id) is False
            assert store.for_user("u1") == []

    def test_persists_to_file(self, tmp_path: Path) -> None:
        db_path = tmp_path / "push" / "subscriptions.db"
        with SubscriptionStore(db_path) as store:
            store.add("u1", "https://push.example/1", "p", "a")

        with SubscriptionStore(db_path) as store:
            assert len(store.for_user("u1")) == 1

    def test_database_errors_are_wrapped(self) -> None:
        store = SubscriptionStore()
        store.close()

        with pytest.raises(InfrastructureError) as exc_info:
            store.for_user("u1")

        assert exc_info.value.code == ErrorCode.SUBSCRIPTION_STORE_FAILED
        assert isinstance(exc_info.value.original_error, sqlite3.Error)
