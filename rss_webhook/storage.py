"""
SQLite storage for the seen-set.

A small async key/value store with per-key expiry. Delivered items
are recorded under their link hash so they are not sent again after
restarts; health metrics live in the same table without expiry.
"""

import json
import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import aiosqlite

from rss_webhook.errors import StoreLookupError, StoreWriteError
from rss_webhook.models import ExtractedItem

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 10 * 24 * 60 * 60

# SQLite limits the number of bound parameters per statement
LOOKUP_CHUNK_SIZE = 500


class Storage:
    """
    Async SQLite key/value store for seen items.

    Values are JSON documents. Keys with an expiry are ignored once
    expired and purged by ``cleanup_expired``.
    """

    def __init__(
        self,
        database_path: str | Path,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize storage with database path.

        Parameters
        ----------
        database_path : str | Path
            Path to the SQLite database file, or ``:memory:``.
        ttl_seconds : float
            Time-to-live of seen records written by ``store_item``.
        clock : Callable[[], float]
            Returns the current time as a Unix timestamp.
        """
        self.database_path = Path(database_path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """
        Initialize the database connection and create tables.

        Creates the database file and parent directories if they don't exist.
        """
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Initializing database at %s", self.database_path)

        self._connection = await aiosqlite.connect(self.database_path)
        await self._create_tables()

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        connection = self._require_connection()

        await connection.execute("""
            CREATE TABLE IF NOT EXISTS kv_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL,
                expires_at REAL
            )
        """)

        await connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_kv_expires
            ON kv_entries (expires_at)
        """)

        await connection.commit()
        logger.debug("Database tables created/verified")

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database not initialized")
        return self._connection

    async def check_existing(self, hashes: Sequence[str]) -> list[str]:
        """
        Return the hashes already present in the store.

        Parameters
        ----------
        hashes : Sequence[str]
            Link hashes to look up.

        Returns
        -------
        list[str]
            The present, unexpired hashes in input order, without duplicates.

        Raises
        ------
        StoreLookupError
            If the lookup fails.
        """
        unique = list(dict.fromkeys(hashes))
        if not unique:
            return []

        connection = self._require_connection()
        now = self._clock()
        found: set[str] = set()

        try:
            for start in range(0, len(unique), LOOKUP_CHUNK_SIZE):
                chunk = unique[start : start + LOOKUP_CHUNK_SIZE]
                placeholders = ", ".join("?" for _ in chunk)
                cursor = await connection.execute(
                    f"""
                    SELECT key FROM kv_entries
                    WHERE key IN ({placeholders})
                    AND (expires_at IS NULL OR expires_at > ?)
                    """,
                    (*chunk, now),
                )
                rows = await cursor.fetchall()
                found.update(row[0] for row in rows)
        except aiosqlite.Error as e:
            raise StoreLookupError("check_existing", e) from e

        return [h for h in unique if h in found]

    async def store_item(self, item: ExtractedItem, ttl: float | None = None) -> None:
        """
        Record a delivered item.

        Parameters
        ----------
        item : ExtractedItem
            The delivered item.
        ttl : float | None
            Time-to-live in seconds, defaults to the store's TTL.

        Raises
        ------
        StoreWriteError
            If the write fails.
        """
        await self.put(
            item.link_hash,
            {"title": item.title, "link": item.link},
            ttl=self.ttl_seconds if ttl is None else ttl,
        )
        logger.debug("Marked item as seen: %s", item.link_hash)

    async def get(self, key: str) -> Any | None:
        """
        Read a value.

        Parameters
        ----------
        key : str
            Key to read.

        Returns
        -------
        Any | None
            The decoded JSON value, or None if absent or expired.

        Raises
        ------
        StoreLookupError
            If the read fails.
        """
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                """
                SELECT value FROM kv_entries
                WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)
                """,
                (key, self._clock()),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreLookupError("get", e) from e

        if row is None:
            return None
        return json.loads(row[0])

    async def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Write a value, replacing any previous one.

        Parameters
        ----------
        key : str
            Key to write.
        value : Any
            JSON-serializable value.
        ttl : float | None
            Time-to-live in seconds. None means the key never expires.

        Raises
        ------
        StoreWriteError
            If the write fails.
        """
        connection = self._require_connection()
        now = self._clock()
        expires_at = now + ttl if ttl is not None else None

        try:
            await connection.execute(
                """
                INSERT OR REPLACE INTO kv_entries (key, value, updated_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (key, json.dumps(value, ensure_ascii=False), now, expires_at),
            )
            await connection.commit()
        except aiosqlite.Error as e:
            raise StoreWriteError("put", e) from e

    async def count(self) -> int:
        """
        Count the unexpired keys.

        Returns
        -------
        int
            Number of live entries.
        """
        connection = self._require_connection()

        cursor = await connection.execute(
            "SELECT COUNT(*) FROM kv_entries WHERE expires_at IS NULL OR expires_at > ?",
            (self._clock(),),
        )
        result = await cursor.fetchone()
        return result[0] if result else 0

    async def cleanup_expired(self) -> int:
        """
        Remove expired entries.

        Returns
        -------
        int
            Number of entries removed.

        Raises
        ------
        StoreWriteError
            If the delete fails.
        """
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                "DELETE FROM kv_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (self._clock(),),
            )
            await connection.commit()
        except aiosqlite.Error as e:
            raise StoreWriteError("cleanup_expired", e) from e

        deleted = cursor.rowcount
        if deleted > 0:
            logger.info("Cleaned up %d expired entries", deleted)

        return deleted

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    async def __aenter__(self) -> "Storage":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
