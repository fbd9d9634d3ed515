"""App icon badge control.

Badging is optional on every platform, so callers ask ``AppBadge`` and get a
``BadgeResult`` back instead of probing for the capability themselves.
"""

from __future__ import annotations

import logging
from enum import Enum

from kronos.worker.platform import BadgeBackend

logger = logging.getLogger(__name__)


class BadgeResult(str, Enum):
    """Outcome of a badge update."""

    APPLIED = "applied"
    CLEARED = "cleared"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


class AppBadge:
    """Badge controller over an optional platform backend."""

    def __init__(self, backend: BadgeBackend | None) -> None:
        self._backend = backend

    @property
    def supported(self) -> bool:
        return self._backend is not None

    def try_set_badge(self, count: int) -> BadgeResult:
        """Show ``count`` on the icon; zero or less clears it."""
        if self._backend is None:
            logger.debug("App badge not supported on this platform")
            return BadgeResult.UNSUPPORTED

        try:
            if count > 0:
                self._backend.set_app_badge(count)
                return BadgeResult.APPLIED
            self._backend.clear_app_badge()
            return BadgeResult.CLEARED
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to update app badge to %s: %s", count, e)
            return BadgeResult.FAILED

    def set_badge(self, count: int) -> None:
        self.try_set_badge(count)

    def clear_badge(self) -> None:
        self.try_set_badge(0)
