"""
Unit tests for the TTL cache.

Run with:
    python3 -m pytest dashboard/logics/test_cache_utils.py -v
"""

from unittest.mock import patch

from dashboard.logics.cache_utils import TTLCache


class TestTTLCache:

    def test_set_and_get(self):
        cache = TTLCache(max_size=2, ttl_seconds=60)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None

    def test_expired_entry_is_dropped(self):
        cache = TTLCache(max_size=2, ttl_seconds=60)
        with patch("dashboard.logics.cache_utils.time.time", return_value=1000.0):
            cache.set("a", 1)
        with patch("dashboard.logics.cache_utils.time.time", return_value=1061.0):
            assert cache.get("a") is None
        assert cache.size() == 0

    def test_per_entry_ttl(self):
        cache = TTLCache(max_size=2, ttl_seconds=300)
        with patch("dashboard.logics.cache_utils.time.time", return_value=1000.0):
            cache.set("short", 1, ttl=30)
            cache.set("long", 2)
        with patch("dashboard.logics.cache_utils.time.time", return_value=1100.0):
            assert cache.get("short") is None
            assert cache.get("long") == 2

    def test_least_recently_used_is_evicted(self):
        cache = TTLCache(max_size=2, ttl_seconds=60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_get_or_load_calls_loader_once(self):
        cache = TTLCache(max_size=2, ttl_seconds=60)
        calls = []

        def loader():
            calls.append(1)
            return {"value": 42}

        assert cache.get_or_load("k", loader) == {"value": 42}
        assert cache.get_or_load("k", loader) == {"value": 42}
        assert len(calls) == 1

    def test_delete_prefix_and_clear(self):
        cache = TTLCache(max_size=8, ttl_seconds=60)
        cache.set("churn:v1:12", 1)
        cache.set("churn:v1:6", 2)
        cache.set("filters:v1", 3)

        assert cache.delete_prefix("churn:") == 2
        assert cache.size() == 1
        assert cache.delete("filters:v1") is True
        assert cache.delete("filters:v1") is False

        cache.set("x", 1)
        cache.clear()
        assert cache.size() == 0

    def test_stats(self):
        cache = TTLCache(max_size=4, ttl_seconds=60)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["active_entries"] == 1
