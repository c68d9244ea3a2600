# src/gym_log/records/store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .models import Collection, DateKey, StoredRecord

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A durable read or write failed (storage unavailable, full or corrupt)."""

    def __init__(self, op: str, collection: Collection, key: DateKey | None = None) -> None:
        self.op = op
        self.collection = collection
        self.key = key
        where = f"{collection.value}/{key}" if key else collection.value
        super().__init__(f"{op} failed for {where}")


class RecordStore:
    """
    SQLite record store: one table per collection, one row per date key.

    Layout is fixed:
    - id TEXT PRIMARY KEY (the date key)
    - date TEXT (always equal to id)
    - payload TEXT (JSON-encoded sequence)
    - updated_at REAL

    Thread-safety:
    - each call opens its own SQLite connection
    - async methods run the blocking work in a worker thread
    """

    def __init__(self, db_path: str | Path = "gym_log.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._schema_ready = False
        try:
            self._ensure_schema()
            totals = {c.value: self.count(c) for c in Collection}
        except (sqlite3.Error, OSError):
            # Surfaced again by the first scan/put; the session can still start.
            logger.exception("RecordStore unavailable db=%s", self._db_path)
            return
        logger.info("RecordStore ready db=%s totals=%s", self._db_path, totals)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Shutdown hook (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            for collection in Collection:
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {collection.value} (
                        id TEXT PRIMARY KEY,
                        date TEXT NOT NULL,
                        payload TEXT NOT NULL,
                        updated_at REAL NOT NULL
                    )
                    """
                )
            conn.commit()
            self._schema_ready = True
        finally:
            conn.close()

    # ---- blocking operations ----

    def _put_sync(self, collection: Collection, key: DateKey, value: list[dict[str, Any]]) -> None:
        self._ensure_schema()
        payload = json.dumps(value, ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                f"""
                INSERT INTO {collection.value}(id, date, payload, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    date = excluded.date,
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (key, key, payload, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, collection: Collection, key: DateKey) -> None:
        self._ensure_schema()
        conn = self._get_conn()
        try:
            conn.execute(f"DELETE FROM {collection.value} WHERE id = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def _scan_all_sync(self, collection: Collection) -> list[StoredRecord]:
        self._ensure_schema()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT id, payload FROM {collection.value} ORDER BY id ASC")
            out: list[StoredRecord] = []
            for row in cur.fetchall():
                key = str(row["id"])
                # A bad row costs only its own date.
                try:
                    value = json.loads(row["payload"])
                except (TypeError, ValueError):
                    logger.warning("Skipping undecodable %s record %s", collection.value, key, exc_info=True)
                    continue
                if not isinstance(value, list):
                    logger.warning("Skipping %s record %s: payload is not a list", collection.value, key)
                    continue
                if not value:
                    # Empty records are never written; a stray one reads as absent.
                    logger.warning("Skipping empty %s record %s", collection.value, key)
                    continue
                out.append(StoredRecord(key=key, value=value))
            return out
        finally:
            conn.close()

    def count(self, collection: Collection) -> int:
        self._ensure_schema()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT COUNT(*) FROM {collection.value}")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    # ---- public async API ----

    async def put(self, collection: Collection, key: DateKey, value: list[dict[str, Any]]) -> None:
        """
        Insert or replace the full sequence stored under `key`.

        An empty sequence is refused: an emptied record must be deleted instead.
        """
        if not value:
            raise ValueError(f"refusing to store an empty {collection.value} record for {key}; use delete()")
        try:
            await asyncio.to_thread(self._put_sync, collection, key, value)
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            raise StoreError("put", collection, key) from e
        logger.debug("put %s/%s entries=%d", collection.value, key, len(value))

    async def delete(self, collection: Collection, key: DateKey) -> None:
        """Remove the record for `key`; deleting an absent key is a no-op."""
        try:
            await asyncio.to_thread(self._delete_sync, collection, key)
        except (sqlite3.Error, OSError) as e:
            raise StoreError("delete", collection, key) from e
        logger.debug("delete %s/%s", collection.value, key)

    async def scan_all(self, collection: Collection) -> list[StoredRecord]:
        try:
            return await asyncio.to_thread(self._scan_all_sync, collection)
        except (sqlite3.Error, OSError) as e:
            raise StoreError("scan_all", collection) from e
