"""Key-value cache stores with per-entry expiry.

Entries are addressed by ``(namespace, key)`` so the structure cache and the
metadata cache can never collide, even when they share one physical store.
Expiry is lazy: an expired entry is deleted when it is next read, or in bulk
by :meth:`BaseCacheStore.sweep_expired`.

Two backends share one contract:

    SQLiteCacheStore  - durable, survives restarts (the default)
    InMemoryCacheStore - dict-backed, for tests and throwaway processes
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from contextlib import closing
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

from bioverse.exceptions import CacheUnavailableError
from bioverse.utils import Clock, epoch_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (payload_json, timestamp, expiry)
_Row = tuple[str, float, float]


class CacheNamespace(str, Enum):
    """Logical partitions with independent TTL policy."""
    structures = "structures"
    metadata = "metadata"


class CacheEntry(BaseModel, Generic[T]):
    """A cached value with its write time and expiry (epoch seconds)."""

    data: T
    timestamp: float
    expiry: float

    def is_expired(self, now: float) -> bool:
        return now > self.expiry


class BaseCacheStore:
    """Expiry, serialisation and error policy shared by every backend.

    Subclasses implement the synchronous row primitives (``_read``,
    ``_write``, ``_remove``, ``_remove_expired``, ``_count``) and may
    override :meth:`_call` to move them off the event loop.
    """

    def __init__(self, clock: Clock = epoch_now) -> None:
        self._clock = clock

    # -- Backend primitives ---------------------------------------------------

    def _read(self, namespace: str, key: str) -> _Row | None:
        raise NotImplementedError

    def _write(self, namespace: str, key: str, payload: str, timestamp: float, expiry: float) -> None:
        raise NotImplementedError

    def _remove(self, namespace: str, key: str) -> bool:
        raise NotImplementedError

    def _remove_expired(self, now: float, namespace: str | None) -> int:
        raise NotImplementedError

    def _count(self, namespace: str | None) -> int:
        raise NotImplementedError

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        return fn(*args)

    # -- Public API -----------------------------------------------------------

    async def get_entry(self, namespace: CacheNamespace | str, key: str) -> CacheEntry[Any] | None:
        """Return the live entry for ``key``, evicting it if expired or unreadable."""
        ns = _ns(namespace)
        row = await self._call(self._read, ns, key)
        if row is None:
            return None

        payload, timestamp, expiry = row
        now = self._clock()
        if now > expiry:
            logger.debug("Cache entry %s/%s expired at %.0f (now %.0f) - evicting", ns, key, expiry, now)
            await self._call(self._remove, ns, key)
            return None

        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("Cache entry %s/%s is not valid JSON - evicting", ns, key)
            await self._call(self._remove, ns, key)
            return None

        return CacheEntry[Any](data=data, timestamp=timestamp, expiry=expiry)

    async def get(self, namespace: CacheNamespace | str, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = await self.get_entry(namespace, key)
        return entry.data if entry is not None else None

    async def put(self, namespace: CacheNamespace | str, key: str, value: Any, ttl: float) -> CacheEntry[Any]:
        """Store ``value`` for ``ttl`` seconds, replacing any previous entry."""
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        payload = json.dumps(value)
        timestamp = self._clock()
        expiry = timestamp + ttl
        await self._call(self._write, _ns(namespace), key, payload, timestamp, expiry)
        return CacheEntry[Any](data=value, timestamp=timestamp, expiry=expiry)

    async def delete(self, namespace: CacheNamespace | str, key: str) -> bool:
        """Delete an entry. Returns True if it existed."""
        return await self._call(self._remove, _ns(namespace), key)

    async def sweep_expired(self, namespace: CacheNamespace | str | None = None) -> int:
        """Delete every entry whose expiry is in the past. Returns the count."""
        now = self._clock()
        removed = await self._call(self._remove_expired, now, _ns(namespace) if namespace else None)
        if removed:
            logger.info("Cache sweep removed %d expired entries", removed)
        return removed

    async def count(self, namespace: CacheNamespace | str | None = None) -> int:
        """Number of physically stored entries, expired ones included."""
        return await self._call(self._count, _ns(namespace) if namespace else None)

    def namespace(self, namespace: CacheNamespace | str, ttl: float) -> "NamespacedCache":
        """A view bound to one namespace and its default TTL."""
        return NamespacedCache(self, namespace, ttl)


class NamespacedCache:
    """``get/put/delete/sweep_expired`` scoped to a single namespace."""

    def __init__(self, store: BaseCacheStore, namespace: CacheNamespace | str, ttl: float) -> None:
        self.store = store
        self.namespace = _ns(namespace)
        self.ttl = ttl

    async def get(self, key: str) -> Any | None:
        return await self.store.get(self.namespace, key)

    async def put(self, key: str, value: Any, ttl: float | None = None) -> CacheEntry[Any]:
        return await self.store.put(self.namespace, key, value, self.ttl if ttl is None else ttl)

    async def delete(self, key: str) -> bool:
        return await self.store.delete(self.namespace, key)

    async def sweep_expired(self) -> int:
        return await self.store.sweep_expired(self.namespace)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class InMemoryCacheStore(BaseCacheStore):
    """Thread-safe dict-based cache store.

    Values are held as JSON text, so callers never share mutable state with
    the cache and the serialisation contract matches the SQLite backend.
    """

    def __init__(self, clock: Clock = epoch_now) -> None:
        super().__init__(clock)
        self._store: dict[tuple[str, str], _Row] = {}
        self._lock = threading.Lock()

    def _read(self, namespace: str, key: str) -> _Row | None:
        with self._lock:
            return self._store.get((namespace, key))

    def _write(self, namespace: str, key: str, payload: str, timestamp: float, expiry: float) -> None:
        with self._lock:
            self._store[(namespace, key)] = (payload, timestamp, expiry)

    def _remove(self, namespace: str, key: str) -> bool:
        with self._lock:
            return self._store.pop((namespace, key), None) is not None

    def _remove_expired(self, now: float, namespace: str | None) -> int:
        with self._lock:
            doomed = [
                k for k, (_, _, expiry) in self._store.items()
                if expiry < now and (namespace is None or k[0] == namespace)
            ]
            for k in doomed:
                del self._store[k]
            return len(doomed)

    def _count(self, namespace: str | None) -> int:
        with self._lock:
            if namespace is None:
                return len(self._store)
            return sum(1 for (ns, _) in self._store if ns == namespace)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._store.clear()


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS cache_entries (
        namespace TEXT NOT NULL,
        key TEXT NOT NULL,
        payload TEXT NOT NULL,
        timestamp REAL NOT NULL,
        expiry REAL NOT NULL,
        PRIMARY KEY (namespace, key)
    )
"""


class SQLiteCacheStore(BaseCacheStore):
    """Durable cache store backed by a single SQLite file.

    Each operation opens its own connection and runs in a worker thread, so
    concurrent resolutions never block the event loop or share a cursor.
    Writes use ``INSERT OR REPLACE``: the last writer for a key wins.
    Any SQLite or filesystem error surfaces as :class:`CacheUnavailableError`.
    """

    def __init__(self, path: Path | str, clock: Clock = epoch_now, timeout: float = 5.0) -> None:
        super().__init__(clock)
        self.path = Path(path)
        self._timeout = timeout
        self._initialised = False
        self._init_lock = threading.Lock()

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    def _connect(self) -> sqlite3.Connection:
        try:
            if not self._initialised:
                with self._init_lock:
                    if not self._initialised:
                        self.path.parent.mkdir(parents=True, exist_ok=True)
                        with closing(sqlite3.connect(str(self.path), timeout=self._timeout)) as conn:
                            conn.execute("PRAGMA journal_mode=WAL")
                            conn.execute(_SCHEMA)
                            conn.execute(
                                "CREATE INDEX IF NOT EXISTS idx_cache_expiry ON cache_entries (expiry)"
                            )
                            conn.commit()
                        self._initialised = True
                        logger.info("SQLiteCacheStore: using %s", self.path)
            return sqlite3.connect(str(self.path), timeout=self._timeout)
        except (sqlite3.Error, OSError) as exc:
            raise CacheUnavailableError(f"Cannot open cache at {self.path}: {exc}") from exc

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> tuple[list[Any], int]:
        """Run one statement in its own transaction; return (rows, rowcount)."""
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute(sql, params)
                return cur.fetchall(), cur.rowcount
        except (sqlite3.Error, OSError) as exc:
            raise CacheUnavailableError(f"Cache operation failed on {self.path}: {exc}") from exc
        finally:
            conn.close()

    def _read(self, namespace: str, key: str) -> _Row | None:
        rows, _ = self._execute(
            "SELECT payload, timestamp, expiry FROM cache_entries WHERE namespace = ? AND key = ?",
            (namespace, key),
        )
        if not rows:
            return None
        payload, timestamp, expiry = rows[0]
        return payload, float(timestamp), float(expiry)

    def _write(self, namespace: str, key: str, payload: str, timestamp: float, expiry: float) -> None:
        self._execute(
            "INSERT OR REPLACE INTO cache_entries (namespace, key, payload, timestamp, expiry) "
            "VALUES (?, ?, ?, ?, ?)",
            (namespace, key, payload, timestamp, expiry),
        )

    def _remove(self, namespace: str, key: str) -> bool:
        _, deleted = self._execute(
            "DELETE FROM cache_entries WHERE namespace = ? AND key = ?",
            (namespace, key),
        )
        return deleted > 0

    def _remove_expired(self, now: float, namespace: str | None) -> int:
        if namespace is None:
            _, deleted = self._execute("DELETE FROM cache_entries WHERE expiry < ?", (now,))
        else:
            _, deleted = self._execute(
                "DELETE FROM cache_entries WHERE expiry < ? AND namespace = ?",
                (now, namespace),
            )
        return deleted

    def _count(self, namespace: str | None) -> int:
        if namespace is None:
            rows, _ = self._execute("SELECT COUNT(*) FROM cache_entries")
        else:
            rows, _ = self._execute("SELECT COUNT(*) FROM cache_entries WHERE namespace = ?", (namespace,))
        return int(rows[0][0])


def _ns(namespace: CacheNamespace | str) -> str:
    return namespace.value if isinstance(namespace, CacheNamespace) else str(namespace)
