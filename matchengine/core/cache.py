"""Read-through result cache with TTL and explicit invalidation.

The cache is an optimization only: every backend failure is logged and
treated as a miss, so callers always fall through to direct computation.
"""

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

from cachetools import TLRUCache

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Key/value store with per-entry TTL (seconds)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl: int) -> None: ...

    def delete(self, key: str) -> None: ...


def _expires_at(_key: str, entry: tuple[str, int], now: float) -> float:
    return now + entry[1]


class MemoryCacheBackend:
    """In-process backend on a ``cachetools.TLRUCache`` (per-entry TTL, LRU eviction)."""

    def __init__(
        self,
        max_entries: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: TLRUCache = TLRUCache(
            maxsize=max_entries, ttu=_expires_at, timer=timer,
        )
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)


class CacheStats:
    """Hit/miss/error counters for one ResultCache."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.errors = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class ResultCache:
    """JSON-serializing facade over a CacheBackend that never raises.

    Usage::

        cache = ResultCache(MemoryCacheBackend(), default_ttl=300)
        key = ResultCache.make_key("search", query.fingerprint_payload())
        payload = cache.get_or_compute(key, lambda: compute().model_dump(mode="json"))
    """

    def __init__(self, backend: CacheBackend | None, default_ttl: int = 300) -> None:
        self._backend = backend
        self._default_ttl = default_ttl
        self.stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    @staticmethod
    def make_key(prefix: str, payload: Any) -> str:
        """Stable key: prefix plus sha256 of the canonical JSON of payload.

        Keys are sorted, so mapping field order never changes the key.
        """
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"{prefix}:{digest}"

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or backend failure."""
        if self._backend is None:
            return None
        try:
            raw = self._backend.get(key)
        except Exception as e:
            self.stats.errors += 1
            logger.warning("Cache get failed for %s: %s", key, e)
            return None
        if raw is None:
            self.stats.misses += 1
            logger.debug("Cache miss: %s", key)
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            self.stats.errors += 1
            logger.warning("Discarding undecodable cache entry %s", key)
            self.delete(key)
            return None
        self.stats.hits += 1
        logger.debug("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a JSON-serializable value. Returns False if it was not stored."""
        if self._backend is None:
            return False
        try:
            self._backend.set(key, json.dumps(value), ttl or self._default_ttl)
        except Exception as e:
            self.stats.errors += 1
            logger.warning("Cache set failed for %s: %s", key, e)
            return False
        return True

    def delete(self, *keys: str) -> bool:
        """Drop entries now instead of waiting for their TTL."""
        if self._backend is None:
            return False
        ok = True
        for key in keys:
            try:
                self._backend.delete(key)
            except Exception as e:
                self.stats.errors += 1
                logger.warning("Cache delete failed for %s: %s", key, e)
                ok = False
        return ok

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Any],
        ttl: int | None = None,
    ) -> Any:
        """Return the cached value for key, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.set(key, value, ttl)
        return value
