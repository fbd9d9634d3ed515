"""Cache entry models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CachedEntry:
    """Metadata of one stored response.

    Attributes:
        bucket: Name of the bucket holding the entry
        url: Request URL the response is keyed by
        status: Stored HTTP status
        size: Body size in bytes
        stored_at: Timestamp the entry was written (UTC, SQLite format)
    """

    bucket: str
    url: str
    status: int
    size: int
    stored_at: str
