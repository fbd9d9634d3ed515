"""Worker install / activate life cycle.

A worker version moves through a fixed set of states. Install pre-caches
the application shell all-or-nothing: if any shell asset cannot be fetched
the version becomes redundant and never controls a page. Activation removes
every bucket left behind by other versions and claims the open clients.

``Registration`` plays the page side: it installs new versions, keeps one
waiting while another is active, and promotes it when asked to skip
waiting.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from kronos.shared.errors import (
    CacheStorageError,
    DomainError,
    ErrorCode,
    ErrorContext,
    InstallError,
    KronosNetworkError,
)
from kronos.shared.logging import log_operation_error, log_operation_success
from kronos.worker.config import WorkerConfig
from kronos.worker.http import Request, Response
from kronos.worker.network import Fetcher
from kronos.worker.platform import Platform
from kronos.worker.storage import CacheBucket, CacheStorage

if TYPE_CHECKING:
    from kronos.worker.service_worker import ServiceWorker

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Life cycle states of one worker version."""

    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


_TRANSITIONS: dict[WorkerState, frozenset[WorkerState]] = {
    WorkerState.PARSED: frozenset({WorkerState.INSTALLING, WorkerState.REDUNDANT}),
    WorkerState.INSTALLING: frozenset({WorkerState.INSTALLED, WorkerState.REDUNDANT}),
    WorkerState.INSTALLED: frozenset({WorkerState.ACTIVATING, WorkerState.REDUNDANT}),
    WorkerState.ACTIVATING: frozenset({WorkerState.ACTIVATED, WorkerState.REDUNDANT}),
    WorkerState.ACTIVATED: frozenset({WorkerState.REDUNDANT}),
    WorkerState.REDUNDANT: frozenset(),
}


class WorkerLifecycle:
    """Install and activate steps for one worker version.

    Args:
        config: Worker configuration (bucket names, shell manifest)
        storage: Cache storage shared by all versions
        fetcher: Network used to pre-cache the shell
        platform: Host platform, for claiming clients
        worker_id: Identifier recorded as the controller of claimed clients
        auto_skip_waiting: Request skip-waiting as soon as install succeeds
    """

    def __init__(
        self,
        config: WorkerConfig,
        storage: CacheStorage,
        fetcher: Fetcher,
        platform: Platform,
        worker_id: str | None = None,
        *,
        auto_skip_waiting: bool = True,
    ) -> None:
        self.config = config
        self.storage = storage
        self.fetcher = fetcher
        self.platform = platform
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"
        self.auto_skip_waiting = auto_skip_waiting

        self._state = WorkerState.PARSED
        self.skip_waiting_requested = False

    @property
    def state(self) -> WorkerState:
        return self._state

    def _transition(self, new_state: WorkerState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise DomainError(
                ErrorCode.INVALID_STATE_TRANSITION,
                f"Cannot move worker from {self._state.value} to {new_state.value}",
                ErrorContext(
                    operation="lifecycle_transition",
                    additional_data={"worker_id": self.worker_id},
                ),
            )
        logger.debug("Worker %s: %s -> %s", self.worker_id, self._state.value, new_state.value)
        self._state = new_state

    def skip_waiting(self) -> None:
        """Ask to activate without waiting for the previous version's clients."""
        self.skip_waiting_requested = True

    def mark_redundant(self) -> None:
        if self._state is not WorkerState.REDUNDANT:
            self._transition(WorkerState.REDUNDANT)

    def _open_static_bucket(self) -> CacheBucket:
        try:
            return self.storage.open(self.config.static_cache)
        except CacheStorageError as e:
            raise InstallError(
                ErrorCode.INSTALL_FAILED,
                f"Could not open {self.config.static_cache}: {e.message}",
                ErrorContext(operation="install"),
                original_error=e,
            ) from e

    async def _fetch_asset(self, request: Request) -> Response:
        response = await self.fetcher.fetch(request)
        if not response.ok:
            raise InstallError(
                ErrorCode.INSTALL_FAILED,
                f"Shell asset {request.url} answered {response.status}",
                ErrorContext(url=request.url, operation="install"),
            )
        return response

    async def install(self) -> int:
        """Pre-cache the shell assets into the static bucket.

        Returns:
            Number of assets stored

        Raises:
            InstallError: If any asset could not be fetched or stored. Nothing
                is written to the static bucket and the worker is redundant.
        """
        self._transition(WorkerState.INSTALLING)
        logger.info("Installing worker %s", self.worker_id)
        start = time.perf_counter()

        requests = [self.config.request(asset) for asset in self.config.static_assets]
        try:
            bucket = self._open_static_bucket()
            results = await asyncio.gather(
                *(self._fetch_asset(request) for request in requests),
                return_exceptions=True,
            )

            failure = next((r for r in results if isinstance(r, BaseException)), None)
            if failure is not None:
                if isinstance(failure, InstallError):
                    raise failure
                if isinstance(failure, KronosNetworkError):
                    raise InstallError(
                        ErrorCode.INSTALL_FAILED,
                        f"Could not fetch shell asset: {failure.message}",
                        ErrorContext(url=failure.context.url, operation="install"),
                        original_error=failure,
                    ) from failure
                raise failure

            pairs = [(request, response) for request, response in zip(requests, results)]
            try:
                bucket.put_all(pairs)
            except CacheStorageError as e:
                raise InstallError(
                    ErrorCode.INSTALL_FAILED,
                    f"Could not store shell assets: {e.message}",
                    ErrorContext(operation="install"),
                    original_error=e,
                ) from e
        except InstallError as e:
            log_operation_error(logger, e, operation="install")
            self.mark_redundant()
            raise

        self._transition(WorkerState.INSTALLED)
        if self.auto_skip_waiting:
            self.skip_waiting()

        log_operation_success(
            logger,
            "install",
            (time.perf_counter() - start) * 1000,
            result_info={"assets": len(pairs), "bucket": self.config.static_cache},
        )
        return len(pairs)

    async def activate(self) -> list[str]:
        """Delete buckets of other versions and claim every open client.

        Returns:
            Names of the deleted buckets
        """
        self._transition(WorkerState.ACTIVATING)
        logger.info("Activating worker %s", self.worker_id)

        live = self.config.live_caches
        deleted = []
        for name in self.storage.keys():
            if name not in live:
                logger.info("Deleting old cache: %s", name)
                self.storage.delete(name)
                deleted.append(name)

        claimed = self.platform.clients.claim(self.worker_id)
        self._transition(WorkerState.ACTIVATED)
        logger.info("Worker %s active, controlling %d clients", self.worker_id, claimed)
        return deleted


class Registration:
    """Tracks the installing, waiting and active worker of one scope."""

    def __init__(self) -> None:
        self.installing: ServiceWorker | None = None
        self.waiting: ServiceWorker | None = None
        self.active: ServiceWorker | None = None

    async def register(self, worker: ServiceWorker) -> ServiceWorker:
        """Install ``worker`` and activate it when nothing holds it back.

        Raises:
            InstallError: If the install step fails; the previous active
                worker stays in control.
        """
        worker.registration = self
        self.installing = worker
        try:
            await worker.lifecycle.install()
        finally:
            self.installing = None

        if self.waiting is not None and self.waiting is not worker:
            self.waiting.lifecycle.mark_redundant()
        self.waiting = worker

        if self.active is None or worker.lifecycle.skip_waiting_requested:
            await self.promote_waiting()
        else:
            logger.info("Worker %s installed and waiting", worker.lifecycle.worker_id)
        return worker

    async def promote_waiting(self) -> ServiceWorker | None:
        """Activate the waiting worker, retiring the active one."""
        worker = self.waiting
        if worker is None:
            return None

        self.waiting = None
        previous = self.active
        self.active = worker
        if previous is not None and previous is not worker:
            previous.lifecycle.mark_redundant()
        await worker.lifecycle.activate()
        return worker
