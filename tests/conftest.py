"""
Pytest configuration and shared fixtures for Kronos tests.

Worker tests run against an in-memory cache database, a headless platform
and ``FakeFetcher`` (see fakes.py), a scripted network.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
from fakes import ORIGIN, FakeFetcher, shell_fetcher

from kronos.cli.common.context import clear_cli_context
from kronos.config.loader import reset_config
from kronos.shared.constants import Permissions, SyncTags
from kronos.worker.config import WorkerConfig
from kronos.worker.platform import HeadlessPlatform, Platform
from kronos.worker.service_worker import ServiceWorker
from kronos.worker.storage import CacheStorage


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None, None, None]:
    """Undo what CLI runs leave behind (context, settings, logger handlers)."""
    yield
    clear_cli_context()
    reset_config()
    kronos_logger = logging.getLogger("kronos")
    kronos_logger.handlers.clear()
    kronos_logger.propagate = True
    kronos_logger.setLevel(logging.NOTSET)


@pytest.fixture
def config() -> WorkerConfig:
    return WorkerConfig(origin=ORIGIN)


@pytest.fixture
def storage() -> Generator[CacheStorage, None, None]:
    cache_storage = CacheStorage()
    yield cache_storage
    cache_storage.close()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return shell_fetcher()


@pytest.fixture
def platform() -> Platform:
    return HeadlessPlatform(permissions={SyncTags.PERIODIC_SYNC_PERMISSION: Permissions.GRANTED})


@pytest.fixture
def worker(
    config: WorkerConfig,
    storage: CacheStorage,
    fetcher: FakeFetcher,
    platform: Platform,
) -> ServiceWorker:
    return ServiceWorker(config, storage, fetcher, platform, worker_id="worker-test")
