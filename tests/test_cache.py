"""
Cache Unit Tests

TTL cache behaviour and the triage cache helpers.
"""

from unittest.mock import patch

import pytest

from app.core.cache import TTLCache, cache_triage, get_cached_triage, triage_cache


class TestTTLCache:

    def test_set_and_get(self):
        cache: TTLCache[str] = TTLCache(max_size=10, default_ttl=60)

        cache.set("ticket", "triaged")

        assert cache.get("ticket") == "triaged"
        assert cache.get("missing") is None

    def test_entry_expires(self):
        cache: TTLCache[str] = TTLCache(max_size=10, default_ttl=60)

        with patch("app.core.cache.time.monotonic", return_value=1000.0):
            cache.set("ticket", "triaged", ttl=5)
        with patch("app.core.cache.time.monotonic", return_value=1004.0):
            assert cache.get("ticket") == "triaged"
        with patch("app.core.cache.time.monotonic", return_value=1006.0):
            assert cache.get("ticket") is None

    def test_least_recently_used_is_evicted(self):
        cache: TTLCache[int] = TTLCache(max_size=2, default_ttl=60)

        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_overwrite_does_not_evict(self):
        cache: TTLCache[int] = TTLCache(max_size=2, default_ttl=60)

        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_stats(self):
        cache: TTLCache[str] = TTLCache(max_size=10, default_ttl=60)
        cache.set("a", "x")

        cache.get("a")
        cache.get("a")
        cache.get("nope")

        stats = cache.stats()
        assert stats["size"] == 1
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == pytest.approx(66.67)

    def test_delete_and_clear(self):
        cache: TTLCache[str] = TTLCache(max_size=10, default_ttl=60)
        cache.set("a", "x")
        cache.set("b", "y")

        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.clear()
        assert cache.get("b") is None
        assert cache.stats()["size"] == 0


class TestTriageCache:

    def test_round_trip(self):
        triage = {"category": "Billing", "urgency": "Low"}

        assert get_cached_triage("key") is None
        cache_triage("key", triage)

        assert get_cached_triage("key") == triage
        assert triage_cache.stats()["size"] == 1
