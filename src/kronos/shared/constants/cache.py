"""
Cache Storage Constants

Names and defaults for the versioned cache buckets and the shell assets
cached at install time.
"""

# Bucket naming: "<prefix>-<kind>-<version>"
CACHE_PREFIX = "kronos"
CACHE_VERSION = "v1"

STATIC_KIND = "static"
DYNAMIC_KIND = "dynamic"


class Cache:
    """Cache bucket constants."""

    PREFIX = CACHE_PREFIX
    VERSION = CACHE_VERSION

    STATIC_CACHE = f"{CACHE_PREFIX}-{STATIC_KIND}-{CACHE_VERSION}"
    DYNAMIC_CACHE = f"{CACHE_PREFIX}-{DYNAMIC_KIND}-{CACHE_VERSION}"

    # Pre-split single bucket; removed by the first activation that sees it
    LEGACY_CACHE = f"{CACHE_PREFIX}-{CACHE_VERSION}"

    STATIC_ASSETS: tuple[str, ...] = ("/", "/manifest.json", "/favicon.png")
    ROOT_DOCUMENT = "/"

    DEFAULT_DB_PATH = "data/kronos-cache.db"
    MEMORY_DB = ":memory:"


class CacheSchema:
    """SQLite schema constants."""

    VERSION = 1
    BUCKETS_TABLE = "cache_buckets"
    ENTRIES_TABLE = "cache_entries"
