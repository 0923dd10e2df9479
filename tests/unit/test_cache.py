"""Response cache tests."""

from taleflow.cache import MISS, ResponseCache, make_signature
from taleflow.contracts import Capability


class FakeClock:
    def __init__(self) -> None:
        self.ms = 0

    def __call__(self) -> float:
        return self.ms / 1000

    def advance(self, ms: int) -> None:
        self.ms += ms


def test_signature_depends_on_content_not_identity():
    first = make_signature("text", "ovh-ai", {"prompt": "dragons", "age": 7})
    second = make_signature(Capability.TEXT, "ovh-ai", {"age": 7, "prompt": "dragons"})
    assert first == second
    assert first.startswith("text:ovh-ai:")


def test_signature_distinguishes_provider_capability_and_payload():
    base = make_signature("image", "ovh-sdxl", {"prompt": "castle"})
    assert base != make_signature("image", "openai-dalle", {"prompt": "castle"})
    assert base != make_signature("text", "ovh-sdxl", {"prompt": "castle"})
    assert base != make_signature("image", "ovh-sdxl", {"prompt": "forest"})


def test_get_put_and_expiry():
    clock = FakeClock()
    cache = ResponseCache(ttl_ms=1000, max_entries=10, clock=clock)

    assert cache.get("k") is MISS
    cache.put("k", "value")
    assert cache.get("k") == "value"

    clock.advance(999)
    assert cache.get("k") == "value"
    clock.advance(1)
    assert cache.get("k") is MISS
    assert len(cache) == 0


def test_zero_expiry_always_misses():
    cache = ResponseCache(ttl_ms=0, max_entries=10, clock=FakeClock())
    cache.put("k", "value")
    assert cache.get("k") is MISS


def test_none_is_a_cacheable_value():
    cache = ResponseCache(ttl_ms=1000, max_entries=10, clock=FakeClock())
    cache.put("k", None)
    assert cache.get("k") is None


def test_put_overwrites_and_refreshes_timestamp():
    clock = FakeClock()
    cache = ResponseCache(ttl_ms=1000, max_entries=10, clock=clock)
    cache.put("k", "old")
    clock.advance(800)
    cache.put("k", "new")
    clock.advance(800)
    assert cache.get("k") == "new"


def test_lru_eviction():
    cache = ResponseCache(ttl_ms=10_000, max_entries=2, clock=FakeClock())
    cache.put("a", 1)
    cache.put("b", 2)
    cache.get("a")
    cache.put("c", 3)

    assert cache.get("b") is MISS
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_purge_expired_and_clear():
    clock = FakeClock()
    cache = ResponseCache(ttl_ms=1000, max_entries=10, clock=clock)
    cache.put("old", 1)
    clock.advance(1500)
    cache.put("fresh", 2)

    assert cache.purge_expired() == 1
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
