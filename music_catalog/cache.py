from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class CacheTTL:
    """Content-aware lifetimes, in seconds."""

    SEARCH = 5 * 60
    TRACK = 24 * 60 * 60
    ALBUM = 24 * 60 * 60
    ARTIST = 24 * 60 * 60
    TOP_TRACKS = 15 * 60
    FEATURED_PLAYLISTS = 30 * 60
    NEW_RELEASES = 60 * 60


class StorageError(Exception):
    pass


class StorageQuotaError(StorageError):
    pass


class StorageAdapter(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...

    def close(self) -> None: ...


class SqliteStorage:
    """Durable string store in a single SQLite file."""

    def __init__(self, path: Path, max_bytes: Optional[int] = None) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()
        if max_bytes:
            page_size = self._conn.execute("PRAGMA page_size").fetchone()[0]
            self._conn.execute(f"PRAGMA max_page_count = {max(2, max_bytes // page_size)}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM entries WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO entries(key, value)
                    VALUES(?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                    """,
                    (key, value),
                )
                self._conn.commit()
            except sqlite3.OperationalError as exc:
                self._conn.rollback()
                if "full" in str(exc).lower():
                    raise StorageQuotaError(str(exc)) from exc
                raise StorageError(str(exc)) from exc
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StorageError(str(exc)) from exc

    def remove_item(self, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def keys(self) -> List[str]:
        try:
            with self._lock:
                rows = self._conn.execute("SELECT key FROM entries ORDER BY key").fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        return [row[0] for row in rows]


class MemoryStorage:
    """In-process string store; `capacity` bounds the total characters held."""

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = capacity
        self._items: Dict[str, str] = {}

    def close(self) -> None:
        self._items.clear()

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.capacity is not None:
            used = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
            if used + len(key) + len(value) > self.capacity:
                raise StorageQuotaError(f"storage capacity of {self.capacity} exceeded")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


@dataclass(slots=True)
class CacheStats:
    size: int
    items: int
    enabled: bool


class ResponseCache:
    """
    Namespaced, versioned TTL cache over JSON payloads.

    Best effort: storage failures are logged and turn into misses or dropped
    writes. A disabled cache accepts every call and stores nothing.
    """

    def __init__(
        self,
        storage: Optional[StorageAdapter],
        *,
        enabled: bool = True,
        prefix: str = "music_catalog_cache_",
        version: str = "v1",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.enabled = enabled and storage is not None
        self.namespace = f"{prefix}{version}_"
        self._clock = clock
        if self.enabled:
            removed = self.sweep_expired()
            if removed:
                logger.debug("Swept %d expired cache entries on startup", removed)

    def _full_key(self, key: str) -> str:
        return self.namespace + key

    def set(self, key: str, payload: Any, ttl: float) -> None:
        if not self.enabled:
            return
        now = self._clock()
        entry = {"key": key, "payload": payload, "stored_at": now, "expires_at": now + ttl}
        try:
            serialized = json.dumps(entry)
        except (TypeError, ValueError) as exc:
            logger.warning("Cache payload for %s is not serializable: %s", key, exc)
            return
        try:
            self.storage.set_item(self._full_key(key), serialized)
            return
        except StorageQuotaError:
            logger.debug("Cache quota reached writing %s; sweeping expired entries", key)
            self.sweep_expired()
        except StorageError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            return
        try:
            self.storage.set_item(self._full_key(key), serialized)
        except StorageError as exc:
            logger.warning("Dropping cache write for %s: %s", key, exc)

    def get(self, key: str) -> Any:
        if not self.enabled:
            return None
        full_key = self._full_key(key)
        try:
            raw = self.storage.get_item(full_key)
        except StorageError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            logger.debug("Cache miss for %s", key)
            return None
        entry = _parse_entry(raw)
        if entry is None:
            logger.warning("Removing corrupt cache entry %s", key)
            self._remove_full(full_key)
            return None
        if self._clock() > entry["expires_at"]:
            logger.debug("Cache entry %s expired", key)
            self._remove_full(full_key)
            return None
        logger.debug("Cache hit for %s", key)
        return entry.get("payload")

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def remove(self, key: str) -> None:
        if not self.enabled:
            return
        self._remove_full(self._full_key(key))

    def clear(self) -> None:
        if not self.enabled:
            return
        for full_key in self._own_keys():
            self._remove_full(full_key)

    def get_stats(self) -> CacheStats:
        if not self.enabled:
            return CacheStats(size=0, items=0, enabled=False)
        size = 0
        items = 0
        for full_key in self._own_keys():
            try:
                raw = self.storage.get_item(full_key)
            except StorageError as exc:
                logger.warning("Cache stats read failed for %s: %s", full_key, exc)
                continue
            if raw is None:
                continue
            items += 1
            size += len(full_key.encode("utf-8")) + len(raw.encode("utf-8"))
        return CacheStats(size=size, items=items, enabled=True)

    def sweep_expired(self) -> int:
        """Remove expired and unreadable entries; returns how many were removed."""
        if not self.enabled:
            return 0
        now = self._clock()
        removed = 0
        for full_key in self._own_keys():
            try:
                raw = self.storage.get_item(full_key)
            except StorageError as exc:
                logger.warning("Cache sweep read failed for %s: %s", full_key, exc)
                continue
            if raw is None:
                continue
            entry = _parse_entry(raw)
            if entry is None or now > entry["expires_at"]:
                self._remove_full(full_key)
                removed += 1
        return removed

    def _own_keys(self) -> List[str]:
        try:
            keys = self.storage.keys()
        except StorageError as exc:
            logger.warning("Cache key listing failed: %s", exc)
            return []
        return [key for key in keys if key.startswith(self.namespace)]

    def _remove_full(self, full_key: str) -> None:
        try:
            self.storage.remove_item(full_key)
        except StorageError as exc:
            logger.warning("Cache removal failed for %s: %s", full_key, exc)


def _parse_entry(raw: str) -> Optional[Dict[str, Any]]:
    try:
        entry = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(entry, dict):
        return None
    expires_at = entry.get("expires_at")
    if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
        return None
    return entry
