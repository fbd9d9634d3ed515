"""SQLite-backed cache storage.

Responses are grouped in named buckets. A bucket maps request URLs to stored
responses; writes to the same URL replace the previous entry (last writer
wins) and nothing expires on its own. Buckets are dropped wholesale.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from kronos.shared.constants import Cache, CacheSchema
from kronos.shared.errors import (
    CacheStorageError,
    ErrorCode,
    ErrorContext,
    create_cache_error,
)
from kronos.shared.logging import log_operation_error, log_operation_success
from kronos.worker.http import Request, Response
from kronos.worker.storage.migration import MigrationManager
from kronos.worker.storage.models import CachedEntry

logger = logging.getLogger(__name__)

_BUCKETS = CacheSchema.BUCKETS_TABLE
_ENTRIES = CacheSchema.ENTRIES_TABLE


def _cache_key(request: Request | str) -> str:
    return request.url if isinstance(request, Request) else request


def _row_to_response(row: sqlite3.Row) -> Response:
    return Response(
        status=row["status"],
        body=bytes(row["body"]),
        headers=json.loads(row["headers"]),
        status_text=row["status_text"],
        url=row["url"],
    )


class CacheStorage:
    """All cache buckets of one worker origin, persisted in one SQLite file.

    Example:
        >>> storage = CacheStorage(":memory:")
        >>> bucket = storage.open("kronos-static-v1")
        >>> bucket.put(Request("http://localhost:5000/"), Response(200, b"<html>"))
        >>> storage.match("http://localhost:5000/").status
        200
        >>> storage.close()
    """

    def __init__(self, db_path: Path | str = Cache.MEMORY_DB) -> None:
        """Open (and create if needed) the cache database.

        Raises:
            CacheStorageError: If database initialization fails
        """
        self.db_path = str(db_path)
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._initialize_db()

    def _initialize_db(self) -> None:
        context = ErrorContext(
            operation="initialize_cache_storage",
            additional_data={"db_path": self.db_path},
        )

        try:
            if self.db_path != Cache.MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,  # Auto-commit; explicit BEGIN for batches
            )
            self.conn.row_factory = sqlite3.Row

            if self.db_path != Cache.MEMORY_DB:
                self.conn.execute("PRAGMA journal_mode=WAL")
                self.conn.execute("PRAGMA synchronous=NORMAL")

            MigrationManager(self.conn).create_tables()

            log_operation_success(
                logger=logger,
                operation="initialize_cache_storage",
                duration_ms=0,
                context=context,
            )
        except (sqlite3.Error, OSError) as e:
            error = CacheStorageError(
                code=ErrorCode.CACHE_OPEN_FAILED,
                message=f"Failed to initialize cache storage: {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            raise error from e

    @property
    def _conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise CacheStorageError(
                code=ErrorCode.CACHE_ERROR,
                message="Cache storage is closed",
                context=ErrorContext(additional_data={"db_path": self.db_path}),
            )
        return self.conn

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block atomically; rolls back on any exception."""
        with self._lock:
            conn = self._conn
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise

    def _bucket_id(self, name: str) -> int | None:
        row = self._conn.execute(
            f"SELECT id FROM {_BUCKETS} WHERE name = ?", (name,)  # noqa: S608
        ).fetchone()
        return row["id"] if row else None

    def open(self, name: str, *, max_entries: int | None = None) -> CacheBucket:
        """Open the bucket called ``name``, creating it if absent.

        Args:
            name: Bucket name
            max_entries: Optional bound; oldest entries are evicted on overflow

        Raises:
            CacheStorageError: If the bucket cannot be created
        """
        try:
            with self._lock:
                self._conn.execute(
                    f"INSERT OR IGNORE INTO {_BUCKETS} (name) VALUES (?)",  # noqa: S608
                    (name,),
                )
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_OPEN_FAILED,
                f"Failed to open cache bucket {name!r}: {e!s}",
                bucket=name,
                operation="open",
                original_error=e,
            ) from e
        return CacheBucket(self, name, max_entries=max_entries)

    def has(self, name: str) -> bool:
        with self._lock:
            return self._bucket_id(name) is not None

    def keys(self) -> list[str]:
        """Bucket names in creation order."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT name FROM {_BUCKETS} ORDER BY id"  # noqa: S608
                ).fetchall()
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_READ_FAILED,
                f"Failed to list cache buckets: {e!s}",
                operation="keys",
                original_error=e,
            ) from e
        return [row["name"] for row in rows]

    def delete(self, name: str) -> bool:
        """Delete a bucket and every entry in it.

        Returns:
            True if the bucket existed
        """
        try:
            with self._transaction() as conn:
                bucket_id = self._bucket_id(name)
                if bucket_id is None:
                    return False
                conn.execute(f"DELETE FROM {_ENTRIES} WHERE bucket_id = ?", (bucket_id,))  # noqa: S608
                conn.execute(f"DELETE FROM {_BUCKETS} WHERE id = ?", (bucket_id,))  # noqa: S608
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_DELETE_FAILED,
                f"Failed to delete cache bucket {name!r}: {e!s}",
                bucket=name,
                operation="delete",
                original_error=e,
            ) from e
        logger.debug("Deleted cache bucket %s", name)
        return True

    def match(self, request: Request | str) -> Response | None:
        """Look a URL up across all buckets, oldest bucket first."""
        url = _cache_key(request)
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT e.* FROM {_ENTRIES} e JOIN {_BUCKETS} b ON b.id = e.bucket_id "  # noqa: S608
                    "WHERE e.url = ? ORDER BY b.id LIMIT 1",
                    (url,),
                ).fetchone()
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_READ_FAILED,
                f"Failed to match {url}: {e!s}",
                operation="match",
                original_error=e,
            ) from e
        return _row_to_response(row) if row else None

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.debug("Closed cache storage: %s", self.db_path)

    def __enter__(self) -> CacheStorage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CacheBucket:
    """Handle on one named bucket of a CacheStorage."""

    def __init__(
        self,
        storage: CacheStorage,
        name: str,
        *,
        max_entries: int | None = None,
    ) -> None:
        self.storage = storage
        self.name = name
        self.max_entries = max_entries

    def __repr__(self) -> str:
        return f"CacheBucket({self.name!r})"

    def _require_id(self, operation: str) -> int:
        bucket_id = self.storage._bucket_id(self.name)  # noqa: SLF001
        if bucket_id is None:
            raise create_cache_error(
                ErrorCode.CACHE_WRITE_FAILED,
                f"Cache bucket {self.name!r} was deleted",
                bucket=self.name,
                operation=operation,
            )
        return bucket_id

    def match(self, request: Request | str) -> Response | None:
        url = _cache_key(request)
        try:
            with self.storage._lock:  # noqa: SLF001
                row = self.storage._conn.execute(  # noqa: SLF001
                    f"SELECT e.* FROM {_ENTRIES} e JOIN {_BUCKETS} b ON b.id = e.bucket_id "  # noqa: S608
                    "WHERE b.name = ? AND e.url = ?",
                    (self.name, url),
                ).fetchone()
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_READ_FAILED,
                f"Failed to match {url} in {self.name!r}: {e!s}",
                bucket=self.name,
                operation="match",
                original_error=e,
            ) from e
        return _row_to_response(row) if row else None

    def put(self, request: Request | str, response: Response) -> None:
        """Store ``response`` under the request URL, replacing any previous entry."""
        self.put_all([(request, response)])

    def put_all(self, pairs: Iterable[tuple[Request | str, Response]]) -> None:
        """Store several responses in one transaction (all or nothing)."""
        pairs = list(pairs)
        try:
            with self.storage._transaction() as conn:  # noqa: SLF001
                bucket_id = self._require_id("put")
                for request, response in pairs:
                    url = _cache_key(request)
                    # Replacing re-appends, so insertion order tracks write order
                    conn.execute(
                        f"DELETE FROM {_ENTRIES} WHERE bucket_id = ? AND url = ?",  # noqa: S608
                        (bucket_id, url),
                    )
                    conn.execute(
                        f"INSERT INTO {_ENTRIES} "  # noqa: S608
                        "(bucket_id, url, status, status_text, headers, body) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        (
                            bucket_id,
                            url,
                            response.status,
                            response.status_text,
                            json.dumps(response.headers),
                            response.body,
                        ),
                    )
                if self.max_entries is not None:
                    self._evict_overflow(conn, bucket_id)
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_WRITE_FAILED,
                f"Failed to write {len(pairs)} entr(y/ies) to {self.name!r}: {e!s}",
                bucket=self.name,
                operation="put",
                original_error=e,
            ) from e

    def _evict_overflow(self, conn: sqlite3.Connection, bucket_id: int) -> None:
        evicted = conn.execute(
            f"DELETE FROM {_ENTRIES} WHERE id IN ("  # noqa: S608
            f"SELECT id FROM {_ENTRIES} WHERE bucket_id = ? "
            "ORDER BY id DESC LIMIT -1 OFFSET ?)",
            (bucket_id, self.max_entries),
        ).rowcount
        if evicted:
            logger.debug("Evicted %d oldest entries from %s", evicted, self.name)

    def delete(self, request: Request | str) -> bool:
        url = _cache_key(request)
        try:
            with self.storage._transaction() as conn:  # noqa: SLF001
                bucket_id = self.storage._bucket_id(self.name)  # noqa: SLF001
                if bucket_id is None:
                    return False
                cursor = conn.execute(
                    f"DELETE FROM {_ENTRIES} WHERE bucket_id = ? AND url = ?",  # noqa: S608
                    (bucket_id, url),
                )
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_DELETE_FAILED,
                f"Failed to delete {url} from {self.name!r}: {e!s}",
                bucket=self.name,
                operation="delete",
                original_error=e,
            ) from e
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        """Stored URLs in write order."""
        return [entry.url for entry in self.entries()]

    def entries(self) -> list[CachedEntry]:
        try:
            with self.storage._lock:  # noqa: SLF001
                rows = self.storage._conn.execute(  # noqa: SLF001
                    "SELECT e.url, e.status, length(e.body) AS size, e.stored_at "
                    f"FROM {_ENTRIES} e JOIN {_BUCKETS} b ON b.id = e.bucket_id "  # noqa: S608
                    "WHERE b.name = ? ORDER BY e.id",
                    (self.name,),
                ).fetchall()
        except sqlite3.Error as e:
            raise create_cache_error(
                ErrorCode.CACHE_READ_FAILED,
                f"Failed to list entries of {self.name!r}: {e!s}",
                bucket=self.name,
                operation="entries",
                original_error=e,
            ) from e
        return [
            CachedEntry(
                bucket=self.name,
                url=row["url"],
                status=row["status"],
                size=row["size"],
                stored_at=row["stored_at"],
            )
            for row in rows
        ]

    def __len__(self) -> int:
        return len(self.entries())
