"""Versioned cache buckets persisted in SQLite."""

from kronos.worker.storage.cache_storage import CacheBucket, CacheStorage
from kronos.worker.storage.models import CachedEntry

__all__ = ["CacheBucket", "CacheStorage", "CachedEntry"]
