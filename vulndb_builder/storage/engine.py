"""
Embedded storage engine adapter.

This module provides:
- DuckDB connection lifecycle management
- A bucket tree (named, nested namespaces) stored in two tables
- Single-writer / multi-reader transactions with all-or-nothing commit

Design decisions:
- DuckDB is the storage engine; this module only prescribes how it is used
- Bucket paths are encoded as names joined by the ASCII unit separator,
  so bucket names may contain "/" (scoped package names)
- No unique constraints on the tables; upserts are DELETE + INSERT inside
  the writer's transaction
- One process-wide write lock held for the lifetime of a write transaction
- Every read transaction runs on its own cursor and sees the snapshot taken
  at BEGIN, never a partially committed write
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

import duckdb

from .errors import StorageError

logger = logging.getLogger(__name__)

SEPARATOR = "\x1f"

BucketPath = Sequence[str]


def encode_path(path: BucketPath) -> str:
    """Encode a bucket path as the string stored in the bucket tables."""
    return SEPARATOR.join(path)


def _display(path: BucketPath) -> str:
    return "/".join(path)


class Transaction:
    """
    A read-only or writable transaction over the bucket tree.

    Instances are handed out by Engine.update() and Engine.view() and are
    only valid inside that block.
    """

    def __init__(self, cursor: duckdb.DuckDBPyConnection, writable: bool):
        self._cursor = cursor
        self.writable = writable
        self.closed = False

    def _execute(self, sql: str, params: Optional[list] = None):
        if self.closed:
            raise StorageError("transaction closed")
        try:
            return self._cursor.execute(sql, params or [])
        except duckdb.Error as e:
            raise StorageError(str(e)) from e

    def _check_writable(self):
        if not self.writable:
            raise StorageError("transaction not writable")

    def bucket_exists(self, path: BucketPath) -> bool:
        row = self._execute(
            "SELECT 1 FROM buckets WHERE path = ?", [encode_path(path)]
        ).fetchone()
        return row is not None

    def _key_exists(self, path: BucketPath, key: str) -> bool:
        row = self._execute(
            "SELECT 1 FROM entries WHERE bucket = ? AND key = ?",
            [encode_path(path), key],
        ).fetchone()
        return row is not None

    def create_bucket_if_not_exists(self, path: BucketPath):
        """
        Create every bucket along path that does not exist yet.

        Args:
            path: Bucket names from the root down

        Raises:
            StorageError: If a name is empty, collides with a value key in
                its parent, or the transaction is read-only
        """
        self._check_writable()
        if not path:
            raise StorageError("bucket name required")

        for depth in range(1, len(path) + 1):
            current = path[:depth]
            name = current[-1]
            if not name:
                raise StorageError("bucket name required", _display(current))
            if self.bucket_exists(current):
                continue
            parent = current[:-1]
            if parent and self._key_exists(parent, name):
                raise StorageError("incompatible value", _display(current))
            self._execute(
                "INSERT INTO buckets (path, parent, name) VALUES (?, ?, ?)",
                [encode_path(current), encode_path(parent), name],
            )

    def child_buckets(self, path: BucketPath) -> List[str]:
        """Names of the buckets directly under path, in key order."""
        rows = self._execute(
            "SELECT name FROM buckets WHERE parent = ? ORDER BY name",
            [encode_path(path)],
        ).fetchall()
        return [row[0] for row in rows]

    def put(self, path: BucketPath, key: str, value: bytes):
        self._check_writable()
        if not key:
            raise StorageError("key required", _display(path))
        if not self.bucket_exists(path):
            raise StorageError("bucket not found", _display(path))
        if self.bucket_exists(list(path) + [key]):
            raise StorageError("incompatible value", _display(list(path) + [key]))

        bucket = encode_path(path)
        self._execute("DELETE FROM entries WHERE bucket = ? AND key = ?", [bucket, key])
        self._execute(
            "INSERT INTO entries (bucket, key, value) VALUES (?, ?, ?)",
            [bucket, key, value],
        )

    def get(self, path: BucketPath, key: str) -> Optional[bytes]:
        row = self._execute(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?",
            [encode_path(path), key],
        ).fetchone()
        return bytes(row[0]) if row else None

    def items(self, path: BucketPath) -> List[Tuple[str, bytes]]:
        """All (key, value) pairs stored directly in path, ordered by key."""
        rows = self._execute(
            "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key",
            [encode_path(path)],
        ).fetchall()
        return [(row[0], bytes(row[1])) for row in rows]

    def delete_bucket(self, path: BucketPath):
        """Delete a bucket with all nested buckets and values."""
        self._check_writable()
        if not self.bucket_exists(path):
            raise StorageError("bucket not found", _display(path))

        encoded = encode_path(path)
        prefix = encoded + SEPARATOR
        self._execute(
            "DELETE FROM entries WHERE bucket = ? OR starts_with(bucket, ?)",
            [encoded, prefix],
        )
        self._execute(
            "DELETE FROM buckets WHERE path = ? OR starts_with(path, ?)",
            [encoded, prefix],
        )


class Engine:
    """
    Manages the DuckDB connection and hands out transactions.

    This class is responsible for:
    - Creating and maintaining a single database connection
    - Initializing the bucket and entry tables
    - Serializing writers and isolating readers
    """

    def __init__(self, db_path: str = ":memory:"):
        """
        Initialize engine.

        Args:
            db_path: Path to DuckDB database file (created if doesn't exist),
                or ":memory:" for a throwaway database
        """
        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = None
        self._write_lock = threading.Lock()
        self._conn_lock = threading.Lock()

    def connect(self) -> duckdb.DuckDBPyConnection:
        with self._conn_lock:
            if self.conn is None:
                try:
                    self.conn = duckdb.connect(self.db_path)
                except duckdb.Error as e:
                    raise StorageError(f"failed to open {self.db_path}: {e}") from e
            return self.conn

    def close(self):
        """Close database connection."""
        with self._conn_lock:
            if self.conn:
                self.conn.close()
                self.conn = None

    def initialize_schema(self):
        """
        Create the bucket tables if they don't exist.

        Tables created:
        - buckets: one row per bucket, with its parent path and own name
        - entries: key/value pairs stored in a bucket
        """
        conn = self.connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS buckets (
                    path VARCHAR NOT NULL,
                    parent VARCHAR NOT NULL,
                    name VARCHAR NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    bucket VARCHAR NOT NULL,
                    key VARCHAR NOT NULL,
                    value BLOB
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_buckets_path ON buckets(path)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_buckets_parent ON buckets(parent)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_entries_bucket ON entries(bucket)
            """)
        except duckdb.Error as e:
            raise StorageError(f"failed to initialize schema: {e}") from e

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        conn = self.connect()
        with self._conn_lock:
            return conn.cursor()

    @contextmanager
    def update(self) -> Iterator[Transaction]:
        """
        Run a writable transaction.

        Commits when the block exits normally. If the block raises, every
        write made in it is rolled back and the exception propagates.
        """
        with self._write_lock:
            cursor = self._cursor()
            tx = Transaction(cursor, writable=True)
            try:
                tx._execute("BEGIN TRANSACTION")
                try:
                    yield tx
                except BaseException:
                    try:
                        cursor.execute("ROLLBACK")
                    except duckdb.Error as e:
                        # the block's own exception is the one callers handle
                        logger.error("Rollback failed: %s", e)
                    raise
                tx._execute("COMMIT")
            finally:
                tx.closed = True
                cursor.close()

    @contextmanager
    def view(self) -> Iterator[Transaction]:
        """Run a read-only transaction against a consistent snapshot."""
        cursor = self._cursor()
        tx = Transaction(cursor, writable=False)
        try:
            tx._execute("BEGIN TRANSACTION")
            # first table access fixes the snapshot
            tx._execute("SELECT 1 FROM buckets LIMIT 1").fetchall()
            try:
                yield tx
            finally:
                cursor.execute("ROLLBACK")
        finally:
            tx.closed = True
            cursor.close()

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
