"""
SQLite fast store for entries.

This module manages the single SQLite database that caches entries fetched
from the content host. It is a disposable read model: every row can be
rebuilt from the authoritative repository.

Invariants:
    - One row per composite entry key (``entryKey`` primary key)
    - Rows are written whole; there are no partial column updates
    - Compiled search fragments only ever run through ``select``
    - ``lower()`` folds Unicode on every connection, matching the
      Python-lowered search parameters

How to change safely:
    - Schema changes must bump SCHEMA_VERSION; the store can always be
      dropped and re-warmed from the content host
    - Keep ``select`` the only path for caller-built SQL so query errors
      are wrapped consistently

Table schema:
    entries:
        - entryKey TEXT PRIMARY KEY ("00001" or "00001|tenant")
        - title TEXT
        - summary TEXT
        - categories TEXT (JSON array)
        - joinedCategories TEXT
        - tags TEXT (JSON array)
        - tagWithVersions TEXT (JSON array)
        - content TEXT
        - createdBy TEXT
        - createdAt INTEGER (Unix ms, 0 = unknown)
        - updatedBy TEXT
        - updatedAt INTEGER (Unix ms, 0 = unknown)
        - tenantId TEXT
        - INDEX on (tenantId, updatedAt DESC)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..errors import QueryExecutionError
from .record import COLUMNS, EntryRecord

logger = logging.getLogger(__name__)

TABLE = "entries"


def _unicode_lower(value: str | None) -> str | None:
    """Replacement for SQLite's ASCII-only ``lower()``."""
    return value.lower() if value is not None else None


class StoreNotInitializedError(Exception):
    """Fast-store database file does not exist yet."""

    pass


class EntryStore:
    """SQLite-backed key/value and query store for EntryRecords.

    Thread safety:
        Each operation opens its own connection.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> store = EntryStore("/var/lib/entryapi")
        >>> await store.initialize()
        >>> await store.put(EntryRecord.from_entry(entry))
        >>> record = await store.get("00001")
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        db_name: str = "entries.db",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory for the SQLite database file
            db_name: Database file name
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
        """
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages
        self._lock = asyncio.Lock()

    @contextmanager
    def _get_connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Open a configured connection.

        Raises:
            StoreNotInitializedError: If the database is missing and create=False
        """
        if not create and not self.db_path.exists():
            raise StoreNotInitializedError(f"Entry store not initialized: {self.db_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.create_function("lower", 1, _unicode_lower, deterministic=True)

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute(f"PRAGMA cache_size = {self.cache_size_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(f"""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS {TABLE} (
                entryKey TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                summary TEXT NOT NULL DEFAULT '',
                categories TEXT NOT NULL DEFAULT '[]',
                joinedCategories TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '[]',
                tagWithVersions TEXT NOT NULL DEFAULT '[]',
                content TEXT NOT NULL DEFAULT '',
                createdBy TEXT NOT NULL DEFAULT '',
                createdAt INTEGER NOT NULL DEFAULT 0,
                updatedBy TEXT NOT NULL DEFAULT '',
                updatedAt INTEGER NOT NULL DEFAULT 0,
                tenantId TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_entries_updated
                ON {TABLE}(tenantId, updatedAt DESC);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES ({self.SCHEMA_VERSION}, strftime('%s', 'now') * 1000);
        """)

    async def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        async with self._lock:
            with self._get_connection(create=True) as conn:
                self._create_schema(conn)
                logger.info(f"Initialized entry store: {self.db_path}")

    async def exists(self, entry_key: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(f"SELECT 1 FROM {TABLE} WHERE entryKey = ?", (entry_key,))
            return cursor.fetchone() is not None

    async def get(self, entry_key: str) -> EntryRecord | None:
        with self._get_connection() as conn:
            cursor = conn.execute(f"SELECT * FROM {TABLE} WHERE entryKey = ?", (entry_key,))
            row = cursor.fetchone()
            return EntryRecord.from_row(row) if row else None

    async def get_all(self, entry_keys: Sequence[str]) -> list[EntryRecord]:
        """Batch get; missing keys are skipped."""
        if not entry_keys:
            return []
        placeholders = ", ".join("?" for _ in entry_keys)
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT * FROM {TABLE} WHERE entryKey IN ({placeholders})",
                tuple(entry_keys),
            )
            return [EntryRecord.from_row(row) for row in cursor.fetchall()]

    async def put(self, record: EntryRecord) -> None:
        await self.put_all([record])

    async def put_all(self, records: Iterable[EntryRecord]) -> None:
        """Upsert records in one transaction."""
        rows = [record.to_row() for record in records]
        if not rows:
            return
        columns = ", ".join(COLUMNS)
        placeholders = ", ".join("?" for _ in COLUMNS)
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.executemany(
                    f"INSERT OR REPLACE INTO {TABLE} ({columns}) VALUES ({placeholders})",
                    rows,
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        logger.debug(f"Stored {len(rows)} entries", extra={"count": len(rows)})

    async def remove(self, entry_key: str) -> bool:
        """Delete one record. Returns True if a row was removed."""
        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {TABLE} WHERE entryKey = ?", (entry_key,))
            return cursor.rowcount > 0

    async def remove_all(self) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {TABLE}")
            return cursor.rowcount

    async def count(self) -> int:
        with self._get_connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]

    async def select(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read query built by the caller.

        Args:
            sql: SELECT statement using ``?N`` placeholders
            params: Values for placeholders 1..N, in order

        Returns:
            Result rows

        Raises:
            QueryExecutionError: If SQLite rejects the statement
        """
        with self._get_connection() as conn:
            try:
                return conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                logger.error(
                    f"Query rejected by entry store: {e}",
                    extra={"query": sql, "params": list(params)},
                )
                raise QueryExecutionError(str(e), query=sql, params=list(params)) from e
