"""Bounded TTL cache shared by every resolver."""

import hashlib
import json
import threading
import time
from collections.abc import Callable
from typing import Any


class CacheEntry:
    """
    Cache entry with TTL support.

    Parameters
    ----------
    value : Any
        Cached value
    ttl : float
        Time-to-live in seconds
    written_at : float
        Write timestamp

    """

    __slots__ = ("ttl", "value", "written_at")

    def __init__(self, value: Any, ttl: float, written_at: float) -> None:
        self.value = value
        self.ttl = ttl
        self.written_at = written_at

    def is_expired(self, now: float) -> bool:
        """
        Check if cache entry has expired.

        Parameters
        ----------
        now : float
            Current timestamp from the owning store's clock

        Returns
        -------
        bool
            True if expired, False otherwise

        """
        return (now - self.written_at) > self.ttl


class CacheStore:
    """
    In-memory key/value cache with per-entry TTL and a size bound.

    Entries are kept in write order, so eviction drops the oldest writes
    first. All operations take an internal lock because resolvers read and
    write the store from worker threads.

    Parameters
    ----------
    default_ttl : float
        TTL in seconds used when ``set`` is called without one
    max_entries : int
        Maximum number of entries kept
    clock : Callable[[], float]
        Time source, injectable for tests

    """

    def __init__(
        self,
        default_ttl: float = 300,
        max_entries: int = 5000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            msg = "max_entries must be at least 1"
            raise ValueError(msg)
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(namespace: str, params: Any) -> str:
        """
        Generate cache key from a namespace and parameters.

        Parameters
        ----------
        namespace : str
            Kind of cached data (e.g. 'price', 'metadata')
        params : Any
            JSON-serializable parameters identifying the entry

        Returns
        -------
        str
            Cache key

        """
        key_str = json.dumps(params, sort_keys=True)
        digest = hashlib.sha256(key_str.encode()).hexdigest()
        return f"{namespace}:{digest}"

    def get(self, key: str) -> tuple[Any, bool]:
        """
        Get cached value if it exists and hasn't expired.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        tuple[Any, bool]
            ``(value, True)`` on a hit, ``(None, False)`` on a miss or expiry

        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None, False
            return entry.value, True

    def get_stale(self, key: str) -> tuple[Any, bool]:
        """
        Get the last written value for a key, ignoring expiry.

        Used for last-known-good fallbacks when a refresh fails.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        tuple[Any, bool]
            ``(value, True)`` if an entry exists, ``(None, False)`` otherwise

        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None, False
            return entry.value, True

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store value in cache with TTL, replacing any previous entry.

        Parameters
        ----------
        key : str
            Cache key
        value : Any
            Value to cache
        ttl : float | None
            Time-to-live in seconds. Uses default_ttl if None.

        """
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            # Re-insert so the dict order tracks write time
            self._cache.pop(key, None)
            self._cache[key] = CacheEntry(value, ttl, self._clock())
            while len(self._cache) > self.max_entries:
                oldest = next(iter(self._cache))
                del self._cache[oldest]

    def delete(self, key: str) -> None:
        """Remove a single entry if present."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        with self._lock:
            now = self._clock()
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        _, hit = self.get(key)
        return hit
