"""
Cache-or-fetch policy for the proxied upstream read routes.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .cache_store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# The list key deliberately ignores count/status/sort parameters: whichever
# parameters populate it first are served until expiry or invalidation.
CAMPAIGNS_LIST_KEY = "mailchimp_campaigns"
AUDIENCE_STATS_KEY = "audience_stats"


def campaign_key(campaign_id: str) -> str:
    return f"campaign_{campaign_id}"


def campaign_content_key(campaign_id: str) -> str:
    return f"campaign_content_{campaign_id}"


@dataclass(frozen=True)
class CacheResult:
    """A route payload and whether it was served from the cache."""

    value: Any
    cached: bool


class ProxyCache:
    """Wraps upstream fetchers with the cache-or-fetch protocol.

    Concurrent misses on the same key are not coalesced: each caller runs the
    fetcher, and the last one to finish owns the stored value.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        metrics: Optional["MetricsCollector"] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.store = store
        self.metrics = metrics
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("newsletter.proxy_cache")

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        transform: Callable[[Any], Any],
        *,
        cache_type: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> CacheResult:
        """Serve ``key`` from the store, or fetch, transform and store it.

        Exceptions from ``fetcher`` or ``transform`` propagate and leave the
        store untouched.
        """
        cache_type = cache_type or key
        cached_value = self.store.get(key)
        if cached_value is not None:
            self._record_access(cache_type, hit=True)
            self.logger.debug("Serving from cache", key=key)
            return CacheResult(value=cached_value, cached=True)

        self._record_access(cache_type, hit=False)
        raw = await fetcher()
        value = transform(raw)

        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        self.store.set(key, value, ttl)
        self.logger.info("Cached upstream response", key=key, cache_type=cache_type)
        return CacheResult(value=value, cached=False)

    def clear(self, key: Optional[str] = None) -> str:
        """Invalidate one key, or everything when no key is given."""
        if key:
            removed = self.store.delete(key)
            self._record_invalidation("key")
            self.logger.info("Cache key invalidated", key=key, removed=removed)
            return f"Cache '{key}' deleted"

        self.store.flush_all()
        self._record_invalidation("all")
        self.logger.info("Cache flushed by request")
        return "All cache deleted"

    def info(self) -> Dict[str, Any]:
        """Live keys and store statistics."""
        keys, stats = self.store.snapshot()
        return {
            "keys": keys,
            "stats": stats,
            "keysCount": len(keys),
        }

    def _record_access(self, cache_type: str, hit: bool) -> None:
        if self.metrics:
            self.metrics.record_cache_access(cache_type, hit)

    def _record_invalidation(self, scope: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", scope=scope)
