"""
Tests for ResponseCache — TTL expiry, key shape and bounded size.
"""

from serginho.core.types import TokenUsage
from serginho.routing.provider_backends import GenerationResult
from serginho.routing.response_cache import ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _result(text: str = "Olá!") -> GenerationResult:
    return GenerationResult(text=text, usage=TokenUsage(1, 2, 3), model="m")


class TestResponseCache:

    def test_key_is_provider_and_prompt_prefix(self):
        assert ResponseCache.key_for("llama-8b", "oi  tudo\nbem") == "llama-8b:oi_tudo_bem"

    def test_key_uses_first_hundred_characters(self):
        base = "a" * 100
        assert ResponseCache.key_for("p", base + "x") == ResponseCache.key_for("p", base + "y")
        assert ResponseCache.key_for("p", "oi") != ResponseCache.key_for("q", "oi")

    def test_get_returns_stored_value(self):
        cache = ResponseCache()
        cache.set("k", _result())
        assert cache.get("k").text == "Olá!"
        assert cache.get("missing") is None

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=60, clock=clock)
        cache.set("k", _result())

        clock.now += 60
        assert cache.get("k") is not None

        clock.now += 1
        assert cache.get("k") is None
        assert "k" not in cache

    def test_set_refreshes_expiry(self):
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=60, clock=clock)
        cache.set("k", _result("old"))
        clock.now += 50
        cache.set("k", _result("new"))
        clock.now += 50

        assert cache.get("k").text == "new"

    def test_oldest_entry_evicted_past_max_entries(self):
        cache = ResponseCache(max_entries=2)
        cache.set("a", _result())
        cache.set("b", _result())
        cache.set("c", _result())

        assert len(cache) == 2
        assert "a" not in cache
        assert cache.get("c") is not None

    def test_unbounded_when_max_entries_is_none(self):
        cache = ResponseCache(max_entries=None)
        for i in range(50):
            cache.set(str(i), _result())
        assert len(cache) == 50

    def test_clear(self):
        cache = ResponseCache()
        cache.set("k", _result())
        cache.clear()
        assert len(cache) == 0
        assert cache.get("k") is None
