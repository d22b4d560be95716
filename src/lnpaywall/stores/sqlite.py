"""Embedded single-file record store on SQLite.

One connection per store, used by one writer at a time. Blocking sqlite3
calls run in a worker thread so the event loop never waits on disk I/O.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from typing import Any, Callable, TypeVar

from lnpaywall.invoice import InvoiceMetadata
from lnpaywall.record_store import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PATH = "lnpaywall.db"


class SQLiteStore:
    """``AtomicRecordStore`` backed by a single SQLite table.

    ``used`` is kept in its own column next to the JSON record so
    ``mark_used`` is a single conditional UPDATE.
    """

    def __init__(self, path: str = DEFAULT_PATH) -> None:
        self._path = path or DEFAULT_PATH
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                self._path, check_same_thread=False, isolation_level=None,
            )
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA busy_timeout = 5000")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS invoice_metadata (
                    payment_hash TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    used INTEGER NOT NULL DEFAULT 0
                )
            """)
        except sqlite3.Error as e:
            raise StoreError(f"Couldn't open SQLite store at {self._path}: {e}") from e

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        def locked() -> T:
            with self._lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            raise StoreError(f"SQLite store error: {e}") from e

    # -- RecordStore ----------------------------------------------------------

    async def put(self, key: str, metadata: InvoiceMetadata) -> None:
        await self._run(self._put, key, metadata)

    async def get(self, key: str) -> InvoiceMetadata | None:
        return await self._run(self._get, key)

    async def mark_used(self, key: str) -> bool:
        return await self._run(self._mark_used, key)

    # -- blocking implementations ---------------------------------------------

    def _put(self, key: str, metadata: InvoiceMetadata) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO invoice_metadata (payment_hash, data, used) "
            "VALUES (?, ?, ?)",
            (key, metadata.to_json(), int(metadata.used)),
        )

    def _get(self, key: str) -> InvoiceMetadata | None:
        row = self._conn.execute(
            "SELECT data, used FROM invoice_metadata WHERE payment_hash = ?", (key,),
        ).fetchone()
        if row is None:
            return None
        data, used = row
        metadata = InvoiceMetadata.from_json(data)
        # The column is authoritative; mark_used only touches it.
        return metadata.mark_used() if used else metadata

    def _mark_used(self, key: str) -> bool:
        cursor = self._conn.execute(
            "UPDATE invoice_metadata SET used = 1 WHERE payment_hash = ? AND used = 0",
            (key,),
        )
        return cursor.rowcount == 1

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Close the connection (releases the database file)."""
        with self._lock:
            self._conn.close()
        logger.debug("Closed SQLite store %s.", self._path)
