"""Tests for the kronos command line."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import toml
from fakes import FakeFetcher, shell_fetcher, url
from typer.testing import CliRunner

from kronos.cli import app

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every database at tmp_path and keep logs out of stdout."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KRONOS_CACHE__DB_PATH", str(tmp_path / "cache.db"))
    monkeypatch.setenv("KRONOS_PUSH__DB_PATH", str(tmp_path / "push.db"))
    monkeypatch.setenv("KRONOS_LOGGING__LEVEL", "WARNING")
    return tmp_path


@pytest.fixture
def network(mocker) -> FakeFetcher:
    fake = shell_fetcher()
    mocker.patch("kronos.cli.worker_handler.AiohttpFetcher", return_value=fake)
    return fake


def _json(result: Any) -> dict[str, Any]:
    assert result.exit_code == 0, result.output
    envelope = json.loads(result.stdout)
    assert envelope["success"] is True
    return envelope["data"]


class TestMainCallback:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "kronos v0.1.0" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("install", "fetch", "sync", "refresh-badge", "caches", "push"):
            assert command in result.output

    def test_config_file(self, cli_env: Path, network: FakeFetcher) -> None:
        config = cli_env / "custom.toml"
        config.write_text(toml.dumps({"worker": {"cache_version": "v2"}}), encoding="utf-8")

        data = _json(runner.invoke(app, ["--json", "--config", str(config), "install"]))

        assert data["static_cache"] == "kronos-static-v2"

    def test_missing_config_file(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["--config", str(cli_env / "nope.toml"), "caches"])

        assert result.exit_code != 0


class TestInstall:
    def test_install_json(self, cli_env: Path, network: FakeFetcher) -> None:
        data = _json(runner.invoke(app, ["--json", "install"]))

        assert data["state"] == "activated"
        assert data["static_cache"] == "kronos-static-v1"
        assert sorted(data["assets"]) == sorted([url("/"), url("/manifest.json"), url("/favicon.png")])
        assert data["caches"] == ["kronos-static-v1"]
        assert network.closed is True

    def test_install_console(self, cli_env: Path, network: FakeFetcher) -> None:
        result = runner.invoke(app, ["install"])

        assert result.exit_code == 0
        assert "activated" in result.output

    def test_install_failure(self, cli_env: Path, network: FakeFetcher) -> None:
        network.fail(url("/favicon.png"))

        result = runner.invoke(app, ["install"])

        assert result.exit_code == 1
        assert "Could not fetch shell asset" in result.output


class TestFetch:
    def test_offline_after_install(self, cli_env: Path, network: FakeFetcher) -> None:
        # Given an installed worker
        runner.invoke(app, ["install"])
        network.offline = True

        # When the manifest is requested with the network gone
        data = _json(runner.invoke(app, ["--json", "fetch", "/manifest.json"]))

        # Then the cached copy answers
        assert data["strategy"] == "cache-first"
        assert data["status"] == 200
        assert data["body"] == '{"name":"Kronos"}'

    def test_offline_uncached_api(self, cli_env: Path, network: FakeFetcher) -> None:
        network.offline = True

        data = _json(runner.invoke(app, ["--json", "fetch", "/api/notifications"]))

        assert data["strategy"] == "network-first"
        assert data["status"] == 503
        assert json.loads(data["body"]) == {"error": "Offline"}

    def test_navigation_falls_back_to_shell(self, cli_env: Path, network: FakeFetcher) -> None:
        runner.invoke(app, ["install"])
        network.offline = True

        data = _json(runner.invoke(app, ["--json", "fetch", "/deals/1", "--navigate"]))

        assert data["body"] == "<html>shell</html>"

    def test_console_output(self, cli_env: Path, network: FakeFetcher) -> None:
        result = runner.invoke(app, ["fetch", "/manifest.json"])

        assert result.exit_code == 0
        assert "200" in result.output


class TestSyncAndBadge:
    def test_sync_refreshes_cached_api(self, cli_env: Path, network: FakeFetcher) -> None:
        # Given a cached API response
        network.add(url("/api/deals"), b"v1")
        runner.invoke(app, ["fetch", "/api/deals"])
        network.add(url("/api/deals"), b"v2")

        # When the sweep runs
        data = _json(runner.invoke(app, ["--json", "sync"]))

        # Then it was refreshed
        assert data["refreshed"] == [url("/api/deals")]
        assert data["failed"] == []
        network.offline = True
        cached = _json(runner.invoke(app, ["--json", "fetch", "/api/deals"]))
        assert cached["body"] == "v2"

    def test_sync_console(self, cli_env: Path, network: FakeFetcher) -> None:
        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "0 refreshed" in result.output

    def test_refresh_badge(self, cli_env: Path, network: FakeFetcher) -> None:
        network.add(url("/api/notifications"), b'[{"read":false},{"read":true}]')

        assert _json(runner.invoke(app, ["--json", "refresh-badge"])) == {"unread": 1}

    def test_refresh_badge_offline(self, cli_env: Path, network: FakeFetcher) -> None:
        network.offline = True

        assert _json(runner.invoke(app, ["--json", "refresh-badge"])) == {"unread": None}


class TestCaches:
    def test_empty(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["caches"])

        assert result.exit_code == 0
        assert "No caches" in result.output

    def test_after_install(self, cli_env: Path, network: FakeFetcher) -> None:
        runner.invoke(app, ["install"])

        data = _json(runner.invoke(app, ["--json", "caches"]))

        assert list(data) == ["kronos-static-v1"]
        assert {entry["url"] for entry in data["kronos-static-v1"]} == {
            url("/"),
            url("/manifest.json"),
            url("/favicon.png"),
        }
        assert all(entry["status"] == 200 for entry in data["kronos-static-v1"])


class TestPush:
    @pytest.fixture
    def vapid(self, cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KRONOS_PUSH__VAPID_PUBLIC_KEY", "BPublic")
        monkeypatch.setenv("KRONOS_PUSH__VAPID_PRIVATE_KEY", "private")

    def test_vapid_key(self, vapid: None) -> None:
        data = _json(runner.invoke(app, ["--json", "push", "vapid-key"]))

        assert data == {"vapid_public_key": "BPublic"}

    def test_subscribe_and_send(self, vapid: None, mocker) -> None:
        webpush: Mock = mocker.patch("kronos.push.service.webpush")
        subscribed = _json(
            runner.invoke(
                app,
                [
                    "--json",
                    "push",
                    "subscribe",
                    "user-1",
                    "https://push.example/abc",
                    "--p256dh",
                    "key",
                    "--auth",
                    "secret",
                ],
            )
        )

        sent = _json(
            runner.invoke(
                app,
                ["--json", "push", "send", "user-1", "--title", "Deal Update: Atlas", "--tag", "deal-1"],
            )
        )

        assert subscribed["user_id"] == "user-1"
        assert sent == {"success": True, "sent": 1, "failed": 0}
        payload = json.loads(webpush.call_args.kwargs["data"])
        assert payload["title"] == "Deal Update: Atlas"
        assert payload["tag"] == "deal-1"

    def test_send_without_vapid_keys(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["push", "send", "user-1"])

        assert result.exit_code == 1
        assert "VAPID keys not configured" in result.output

    def test_send_without_vapid_keys_json(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["--json", "push", "send", "user-1"])

        assert result.exit_code == 1
        assert "PUSH_NOT_CONFIGURED" in result.output
