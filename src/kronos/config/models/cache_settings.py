"""Cache configuration model.

This module contains the cache configuration model for the SQLite-backed
cache storage.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from kronos.shared.constants import Cache


class CacheSettings(BaseModel):
    """Cache storage configuration."""

    db_path: str = Field(
        default=Cache.DEFAULT_DB_PATH,
        description="SQLite database holding every cache bucket (':memory:' allowed)",
    )
    dynamic_max_entries: int | None = Field(
        default=None,
        gt=0,
        description="Optional bound on the dynamic bucket; oldest entries are evicted first",
    )


__all__ = ["CacheSettings"]
