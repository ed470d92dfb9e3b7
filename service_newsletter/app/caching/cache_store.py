"""
Process-local, time-expiring key/value store backing the response cache.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.logging import get_logger


DEFAULT_TTL_SECONDS = 600


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the moment it was stored."""

    value: Any
    stored_at: float
    ttl_seconds: int

    def is_expired(self, now: float) -> bool:
        # ttl 0 means the entry never expires
        if self.ttl_seconds == 0:
            return False
        return now - self.stored_at >= self.ttl_seconds


class CacheStore:
    """In-memory cache with per-entry expiry and hit/miss accounting.

    Expired entries are dropped lazily: on ``get`` of the expired key, and on
    every ``keys``/``stats`` call. Hit and miss counters only ever grow;
    ``flush_all`` clears entries but keeps the counters.
    """

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        if default_ttl < 0:
            raise ValueError("default_ttl must be >= 0")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()
        self.logger = get_logger("newsletter.cache_store")

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Live-presence check that leaves the counters alone."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            raise ValueError("ttl_seconds must be >= 0")

        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl_seconds=ttl)

    def delete(self, key: str) -> int:
        """Remove ``key``; returns how many entries were removed."""
        with self._lock:
            if self._entries.pop(key, None) is None:
                return 0
            return 1

    def flush_all(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.info("Cache flushed", removed=count)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> List[str]:
        """Live keys in insertion order."""
        with self._lock:
            self._purge_locked()
            return list(self._entries)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            self._purge_locked()
            return self._stats_locked()

    def snapshot(self) -> Tuple[List[str], Dict[str, int]]:
        """Live keys and stats taken under one lock, so the two always agree."""
        with self._lock:
            self._purge_locked()
            return list(self._entries), self._stats_locked()

    def _stats_locked(self) -> Dict[str, int]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "keys": len(self._entries),
        }
