"""
Unit tests for the response CacheStore.
"""

import pytest

from service_newsletter.app.caching.cache_store import CacheStore, CacheEntry, DEFAULT_TTL_SECONDS
from shared.test_helpers import FakeClock


class TestCacheStore:
    """Test cases for CacheStore."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(default_ttl=600, clock=clock)

    def test_default_ttl_is_ten_minutes(self):
        assert DEFAULT_TTL_SECONDS == 600
        assert CacheStore().default_ttl == 600

    def test_get_missing_key_returns_none(self, store):
        assert store.get("campaign_1") is None
        assert store.stats()["misses"] == 1

    def test_repeated_get_within_ttl_is_idempotent(self, store, clock):
        """Repeated reads return the same value and only count hits."""
        value = {"id": "1", "subject": "Hello"}
        store.set("campaign_1", value)

        for _ in range(5):
            clock.advance(10)
            assert store.get("campaign_1") is value

        stats = store.stats()
        assert stats["hits"] == 5
        assert stats["misses"] == 0

    def test_entry_present_just_before_ttl(self, store, clock):
        store.set("audience_stats", [1, 2], ttl_seconds=30)
        clock.advance(29.999)
        assert store.get("audience_stats") == [1, 2]

    def test_entry_absent_at_ttl(self, store, clock):
        store.set("audience_stats", [1, 2], ttl_seconds=30)
        clock.advance(30)
        assert store.get("audience_stats") is None
        assert store.keys() == []

    def test_expired_get_counts_as_miss_and_removes_entry(self, store, clock):
        store.set("campaign_1", "v")
        clock.advance(600)

        assert store.get("campaign_1") is None
        assert store.stats() == {"hits": 0, "misses": 1, "keys": 0}

    def test_default_ttl_applies_when_not_given(self, store, clock):
        store.set("campaign_1", "v")
        clock.advance(599)
        assert store.has("campaign_1")
        clock.advance(1)
        assert not store.has("campaign_1")

    def test_zero_ttl_never_expires(self, store, clock):
        store.set("pinned", "v", ttl_seconds=0)
        clock.advance(10 ** 7)
        assert store.get("pinned") == "v"

    def test_negative_ttl_rejected(self, store):
        with pytest.raises(ValueError):
            store.set("campaign_1", "v", ttl_seconds=-1)
        with pytest.raises(ValueError):
            CacheStore(default_ttl=-5)

    def test_set_replaces_value(self, store):
        store.set("campaign_1", "v1")
        store.set("campaign_1", "v2")
        assert store.get("campaign_1") == "v2"
        assert store.keys() == ["campaign_1"]

    def test_set_resets_age(self, store, clock):
        store.set("campaign_1", "v1", ttl_seconds=100)
        clock.advance(90)
        store.set("campaign_1", "v2", ttl_seconds=100)
        clock.advance(90)
        assert store.get("campaign_1") == "v2"

    def test_keys_are_isolated(self, store):
        store.set("campaign_1", "A")
        store.set("campaign_2", "B")

        assert store.get("campaign_1") == "A"
        assert store.get("campaign_2") == "B"

        assert store.delete("campaign_1") == 1
        assert store.get("campaign_1") is None
        assert store.get("campaign_2") == "B"

    def test_delete_missing_key_is_not_an_error(self, store):
        assert store.delete("nope") == 0

    def test_flush_all_empties_store_but_keeps_counters(self, store):
        store.set("campaign_1", "A")
        store.set("audience_stats", [])
        store.get("campaign_1")
        store.get("unknown")

        store.flush_all()

        assert store.keys() == []
        assert store.get("campaign_1") is None
        assert store.get("audience_stats") is None
        stats = store.stats()
        assert stats["keys"] == 0
        assert stats["hits"] == 1
        assert stats["misses"] == 3

    def test_keys_excludes_expired_entries(self, store, clock):
        store.set("short", "a", ttl_seconds=5)
        store.set("long", "b", ttl_seconds=50)
        store.set("mailchimp_campaigns", "c")
        clock.advance(10)

        assert store.keys() == ["long", "mailchimp_campaigns"]
        assert store.stats()["keys"] == 2

    def test_snapshot_returns_live_keys_with_stats(self, store, clock):
        store.set("short", "a", ttl_seconds=5)
        store.set("long", "b", ttl_seconds=50)
        store.get("long")
        clock.advance(10)

        keys, stats = store.snapshot()

        assert keys == ["long"]
        assert stats == {"hits": 1, "misses": 0, "keys": 1}

    def test_purge_expired_reports_removed_count(self, store, clock):
        store.set("a", 1, ttl_seconds=1)
        store.set("b", 2, ttl_seconds=1)
        store.set("c", 3)
        clock.advance(2)
        assert store.purge_expired() == 2
        assert store.keys() == ["c"]

    def test_has_does_not_touch_counters(self, store):
        store.set("campaign_1", "v")
        assert store.has("campaign_1")
        assert not store.has("campaign_2")
        assert store.stats() == {"hits": 0, "misses": 0, "keys": 1}

    def test_empty_collections_are_cacheable(self, store):
        store.set("audience_stats", [])
        assert store.get("audience_stats") == []
        assert store.stats()["hits"] == 1


class TestCacheEntry:
    """Test cases for CacheEntry expiry."""

    def test_is_expired_boundary(self):
        entry = CacheEntry(value="v", stored_at=100.0, ttl_seconds=10)
        assert not entry.is_expired(109.9)
        assert entry.is_expired(110.0)

    def test_entry_is_immutable(self):
        entry = CacheEntry(value="v", stored_at=0.0, ttl_seconds=10)
        with pytest.raises(AttributeError):
            entry.value = "other"
