"""Migration manager for the cache storage database.

This module provides database schema creation and version tracking.
"""

from __future__ import annotations

import logging
import sqlite3

from kronos.shared.constants import CacheSchema

logger = logging.getLogger(__name__)


class MigrationManager:
    """Database schema migration manager."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._current_version = self._get_current_version()

    def _get_current_version(self) -> int:
        """Get current schema version from database (0 if not set)."""
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if cursor.fetchone() is None:
            return 0

        cursor = self.conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    def create_tables(self) -> None:
        """Create database schema (v1)."""
        if self._current_version >= CacheSchema.VERSION:
            return

        schema_sql = f"""
        CREATE TABLE IF NOT EXISTS {CacheSchema.BUCKETS_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL,

            CHECK (length(name) > 0)
        );

        CREATE TABLE IF NOT EXISTS {CacheSchema.ENTRIES_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            bucket_id INTEGER NOT NULL,

            -- Request key
            url TEXT NOT NULL,

            -- Stored response
            status INTEGER NOT NULL,
            status_text TEXT NOT NULL DEFAULT '',
            headers TEXT NOT NULL DEFAULT '{{}}',
            body BLOB NOT NULL,

            stored_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL,

            UNIQUE (bucket_id, url)
        );

        CREATE INDEX IF NOT EXISTS idx_entries_url ON {CacheSchema.ENTRIES_TABLE}(url);

        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
        );
        """

        self.conn.executescript(schema_sql)
        self.conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (CacheSchema.VERSION,),
        )
        self._current_version = CacheSchema.VERSION

        logger.info("Created cache storage schema (v%d)", CacheSchema.VERSION)
