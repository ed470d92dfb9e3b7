"""
Response caching package.

CacheStore holds transformed upstream payloads in process memory with a
time-based expiry; ProxyCache applies the cache-or-fetch policy for each
read route and exposes manual invalidation and introspection.
"""

from .cache_store import CacheEntry, CacheStore, DEFAULT_TTL_SECONDS
from .proxy_cache import (
    AUDIENCE_STATS_KEY,
    CAMPAIGNS_LIST_KEY,
    CacheResult,
    ProxyCache,
    campaign_content_key,
    campaign_key,
)

__all__ = [
    "CacheEntry",
    "CacheStore",
    "DEFAULT_TTL_SECONDS",
    "AUDIENCE_STATS_KEY",
    "CAMPAIGNS_LIST_KEY",
    "CacheResult",
    "ProxyCache",
    "campaign_content_key",
    "campaign_key",
]
