"""
Unit tests for the content-aware TTL/LRU cache.
"""

import pytest

from storycraft.acquisition.cache import DEFAULT_TTLS, ContentCache, make_key


@pytest.fixture
def cache(clock):
    return ContentCache(max_entries=3, clock=clock)


class TestGetSet:
    """Tests for get()/set()"""

    def test_round_trip(self, cache):
        cache.set("k", {"v": 1}, "video")
        assert cache.get("k") == {"v": 1}

    def test_miss(self, cache):
        assert cache.get("missing") is None
        assert cache.stats()["misses"] == 1

    def test_overwrite_replaces_value(self, cache):
        cache.set("k", 1, "video")
        cache.set("k", 2, "video")
        assert cache.get("k") == 2
        assert len(cache) == 1

    def test_hit_updates_counters(self, cache, clock):
        cache.set("k", 1, "video")
        clock.advance(5)
        cache.get("k")
        cache.get("k")
        entry = cache.entry("k")
        assert entry.hit_count == 2
        assert entry.last_accessed == 5


class TestTtl:
    """Tests for category TTLs"""

    @pytest.mark.parametrize("category, ttl", [("shorts", 900), ("video", 3600), ("metadata", 1800), ("fallback", 300), ("error", 60)])
    def test_category_ttls(self, category, ttl):
        assert DEFAULT_TTLS[category] == ttl

    def test_unknown_category_uses_metadata_ttl(self, cache):
        assert cache.ttl_for("mystery") == 1800

    def test_expires_after_ttl(self, cache, clock):
        cache.set("k", 1, "error")
        clock.advance(59)
        assert cache.get("k") == 1
        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_shorts_expire_before_video(self, cache, clock):
        cache.set("s", 1, "shorts")
        cache.set("v", 2, "video")
        clock.advance(901)
        assert cache.get("s") is None
        assert cache.get("v") == 2

    def test_custom_ttls(self, clock):
        cache = ContentCache(ttls={"shorts": 10}, clock=clock)
        cache.set("k", 1, "shorts")
        clock.advance(10)
        assert cache.get("k") is None

    def test_has_respects_expiry(self, cache, clock):
        cache.set("k", 1, "error")
        assert cache.has("k")
        clock.advance(61)
        assert not cache.has("k")

    def test_cleanup_sweeps_expired(self, cache, clock):
        cache.set("a", 1, "error")
        cache.set("b", 2, "fallback")
        cache.set("c", 3, "video")
        clock.advance(301)
        assert cache.cleanup() == 2
        assert len(cache) == 1


class TestLru:
    """Tests for capacity and eviction"""

    def test_evicts_least_recently_used(self, cache):
        cache.set("a", 1, "video")
        cache.set("b", 2, "video")
        cache.set("c", 3, "video")
        cache.get("a")
        cache.set("d", 4, "video")
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.stats()["evictions"] == 1

    def test_never_exceeds_capacity(self, cache):
        for index in range(10):
            cache.set(f"k{index}", index, "video")
        assert len(cache) == 3

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ContentCache(max_entries=0)


class TestStats:
    """Tests for stats() and entries_by_category()"""

    def test_hit_rate(self, cache):
        cache.set("k", 1, "video")
        cache.get("k")
        cache.get("nope")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0

    def test_entries_by_category(self, cache):
        cache.set("a", 1, "video")
        cache.set("b", 2, "shorts")
        cache.set("c", 3, "shorts")
        assert cache.entries_by_category() == {"video": 1, "shorts": 2}

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, "video")
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.set("b", 2, "video")
        cache.clear()
        assert len(cache) == 0


def test_make_key_includes_hint():
    assert make_key("abc", "shorts") != make_key("abc", "auto")
    assert make_key("abc") == "youtube:abc:auto"
