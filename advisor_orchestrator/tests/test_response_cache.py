"""Tests for the TTL response cache."""

from __future__ import annotations

from advisor_orchestrator.core.models import GenerationResult
from advisor_orchestrator.core.response_cache import ResponseCache, make_cache_key


def _result(content: str = "answer") -> GenerationResult:
    return GenerationResult(content=content, provider="openai", model="gpt-4o-mini")


class TestMakeCacheKey:
    """Tests for cache key derivation."""

    def test_deterministic(self):
        key1 = make_cache_key("prompt", "openai", "gpt-4o-mini", 0.7, 800)
        key2 = make_cache_key("prompt", "openai", "gpt-4o-mini", 0.7, 800)
        assert key1 == key2

    def test_every_parameter_changes_key(self):
        base = make_cache_key("prompt", "openai", "gpt-4o-mini", 0.7, 800)

        assert make_cache_key("other", "openai", "gpt-4o-mini", 0.7, 800) != base
        assert make_cache_key("prompt", "anthropic", "gpt-4o-mini", 0.7, 800) != base
        assert make_cache_key("prompt", "openai", "gpt-4o", 0.7, 800) != base
        assert make_cache_key("prompt", "openai", "gpt-4o-mini", 0.2, 800) != base
        assert make_cache_key("prompt", "openai", "gpt-4o-mini", 0.7, 400) != base


class TestResponseCache:
    """Tests for ResponseCache."""

    def test_hit_and_miss(self, clock):
        cache = ResponseCache(ttl_seconds=300, clock=clock)
        result = _result()

        assert cache.get("k") is None
        cache.put("k", result)
        assert cache.get("k") is result

    def test_entry_expires_at_ttl(self, clock):
        """An entry is served before the TTL and dropped once it has elapsed."""
        cache = ResponseCache(ttl_seconds=300, clock=clock)
        cache.put("k", _result())

        clock.advance(299)
        assert cache.get("k") is not None

        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_put_refreshes_entry(self, clock):
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        cache.put("k", _result("first"))
        clock.advance(8)
        cache.put("k", _result("second"))
        clock.advance(8)

        assert cache.get("k").content == "second"

    def test_sweep_when_over_threshold(self, clock):
        """Writes past the threshold remove every expired entry."""
        cache = ResponseCache(ttl_seconds=10, sweep_threshold=2, clock=clock)
        cache.put("a", _result())
        cache.put("b", _result())

        clock.advance(20)
        cache.put("c", _result())

        assert len(cache) == 1
        assert cache.get("c") is not None

    def test_no_sweep_under_threshold(self, clock):
        cache = ResponseCache(ttl_seconds=10, sweep_threshold=5, clock=clock)
        cache.put("a", _result())
        clock.advance(20)
        cache.put("b", _result())

        # Expired entry stays until read
        assert len(cache) == 2

    def test_clear(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("a", _result())
        cache.put("b", _result())

        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") is None

    def test_stats_count_hits_and_misses(self, clock):
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        assert cache.stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}

        cache.get("k")
        cache.put("k", _result())
        cache.get("k")
        cache.get("k")
        clock.advance(10)
        cache.get("k")  # Expired, counts as a miss

        stats = cache.stats()
        assert stats["size"] == 0
        assert stats["hits"] == 2
        assert stats["misses"] == 2
        assert stats["hit_rate"] == 0.5

    def test_clear_resets_stats(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("a", _result())
        cache.get("a")

        cache.clear()

        assert cache.stats()["hits"] == 0
