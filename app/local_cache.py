"""SQLite-backed local cache used when the remote store is unavailable."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

from .timestamps import normalize_timestamp, to_iso, utc_now

STORAGE_KEY_PREFIX = "local_"

# Fields revived as ``datetime`` when records are read back.
DATE_FIELDS = ("created_at", "updated_at", "detected_at")


def storage_key(collection: str) -> str:
    return f"{STORAGE_KEY_PREFIX}{collection}"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class LocalCache:
    """Durable key/value store holding one JSON array per storage key.

    Every write replaces the whole array for a key.  Callers performing a
    read-modify-write cycle are not synchronised with each other; the last
    writer wins.
    """

    def __init__(
        self,
        database_path: str | Path,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    storage_key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _revive(self, item: dict) -> dict:
        revived = dict(item)
        for key in DATE_FIELDS:
            if key in revived:
                revived[key] = normalize_timestamp(revived[key])
        return revived

    def get_items(self, key: str) -> list[dict]:
        """Return the records stored under ``key``.

        Unreadable or malformed entries are logged and treated as empty.
        """

        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT payload FROM cache_entries WHERE storage_key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            self.logger.warning("Error reading local cache %s: %s", key, exc)
            return []

        if row is None:
            return []

        try:
            data = json.loads(row["payload"])
        except (TypeError, ValueError) as exc:
            self.logger.warning("Discarding malformed local cache %s: %s", key, exc)
            return []

        if not isinstance(data, list):
            return []
        return [self._revive(item) for item in data if isinstance(item, dict)]

    def set_items(self, key: str, items: list[dict]) -> None:
        """Replace the records stored under ``key``."""

        payload = json.dumps(list(items), default=_json_default, ensure_ascii=False)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO cache_entries (storage_key, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(storage_key) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (key, payload, utc_now().isoformat()),
            )
            conn.commit()

    def clear(self, key: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM cache_entries WHERE storage_key = ?", (key,))
            conn.commit()


__all__ = ["LocalCache", "storage_key", "STORAGE_KEY_PREFIX"]
