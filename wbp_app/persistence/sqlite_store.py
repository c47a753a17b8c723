"""SQLite-backed key-value store shared between processes."""

import asyncio
import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog

from ..errors import StoreUnavailableError
from .base import KeyValueStore, StorageChange

logger = structlog.get_logger(__name__)


class SqliteStore(KeyValueStore):
    """
    SQLite-based store for the shared grant state.

    Every write bumps a monotonically increasing revision. Writes made in
    this process notify local listeners immediately; writes made by other
    processes are picked up by the watcher task, which scans rows with a
    revision above the last one it has seen.
    """

    def __init__(self, db_path: str = "wbp_state.db"):
        super().__init__()
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._last_revision = 0
        self._seen: dict[str, Any] = {}
        self._watch_task: Optional[asyncio.Task] = None

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value TEXT,
                        revision INTEGER NOT NULL
                    )
                """)

                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_kv_revision ON kv(revision)
                """)

                conn.commit()

                for row in conn.execute("SELECT key, value, revision FROM kv"):
                    self._seen[row["key"]] = json.loads(row["value"])
                    self._last_revision = max(self._last_revision, row["revision"])
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Could not initialize store at {self.db_path}: {e}",
                operation="init"
            ) from e

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error("Database error", db_path=str(self.db_path), error=str(e))
            raise
        finally:
            if conn:
                conn.close()

    def _read(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}

        placeholders = ", ".join("?" for _ in keys)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv WHERE key IN ({placeholders})",
                keys
            ).fetchall()

        return {row["key"]: json.loads(row["value"]) for row in rows}

    def _write(self, items: dict[str, Any]) -> dict[str, StorageChange]:
        with self._lock:
            with self._get_connection() as conn:
                changes: dict[str, StorageChange] = {}

                for key, value in items.items():
                    row = conn.execute(
                        "SELECT value FROM kv WHERE key = ?", (key,)
                    ).fetchone()
                    old_value = json.loads(row["value"]) if row else None

                    conn.execute("""
                        INSERT INTO kv (key, value, revision)
                        VALUES (?, ?, (SELECT COALESCE(MAX(revision), 0) + 1 FROM kv))
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            revision = excluded.revision
                    """, (key, json.dumps(value)))

                    if row is None or old_value != value:
                        changes[key] = StorageChange(old_value=old_value, new_value=value)

                conn.commit()

            for key, value in items.items():
                self._seen[key] = value

            return changes

    def _scan(self) -> dict[str, StorageChange]:
        """Collect changes written since the last scan that this process has not seen."""
        with self._lock:
            with self._get_connection() as conn:
                rows = conn.execute("""
                    SELECT key, value, revision FROM kv
                    WHERE revision > ? ORDER BY revision
                """, (self._last_revision,)).fetchall()

            changes: dict[str, StorageChange] = {}
            for row in rows:
                self._last_revision = max(self._last_revision, row["revision"])
                value = json.loads(row["value"])
                old_value = self._seen.get(row["key"])
                if row["key"] not in self._seen or old_value != value:
                    changes[row["key"]] = StorageChange(old_value=old_value, new_value=value)
                    self._seen[row["key"]] = value

            return changes

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        keys = list(keys)
        try:
            return await asyncio.to_thread(self._read, keys)
        except (sqlite3.Error, ValueError) as e:
            raise StoreUnavailableError(
                f"Store read failed: {e}", operation="get", keys=keys
            ) from e

    async def set(self, items: dict[str, Any]) -> None:
        try:
            changes = await asyncio.to_thread(self._write, dict(items))
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Store write failed: {e}", operation="set", keys=list(items)
            ) from e

        logger.debug("Store updated", keys=sorted(items), changed=sorted(changes))
        await self._notify(changes)

    async def poll_changes(self) -> dict[str, StorageChange]:
        """Scan for writes from other processes and notify listeners."""
        try:
            changes = await asyncio.to_thread(self._scan)
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Store scan failed: {e}", operation="scan"
            ) from e

        if changes:
            logger.debug("External store changes detected", keys=sorted(changes))
            await self._notify(changes)
        return changes

    def start_watching(self, interval_ms: int = 500) -> None:
        """Start the background task polling for cross-process changes."""
        if self._watch_task and not self._watch_task.done():
            return
        self._watch_task = asyncio.create_task(self._watch(interval_ms / 1000))
        logger.info("Store watcher started", db_path=str(self.db_path), interval_ms=interval_ms)

    async def stop_watching(self) -> None:
        if self._watch_task is None:
            return
        self._watch_task.cancel()
        try:
            await self._watch_task
        except asyncio.CancelledError:
            pass
        self._watch_task = None
        logger.info("Store watcher stopped", db_path=str(self.db_path))

    async def _watch(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.poll_changes()
            except StoreUnavailableError as e:
                logger.warning("Store watcher scan failed, retrying", error=str(e))
