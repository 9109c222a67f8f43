from dither_studio.infrastructure.cache import ResponseCache, render_key
from dither_studio.processing.settings import DitherSettings


def test_response_cache_eviction_limit():
    cache = ResponseCache(ttl=60, max_entries=16)

    # Fill the cache beyond the limit to trigger eviction logic.
    for idx in range(20):
        cache.put(f"key-{idx}", b"data")

    assert len(cache) == 16

    # Ensure the oldest entries are evicted first
    assert cache.get("key-0") is None
    assert cache.get("key-3") is None
    assert cache.get("key-4") == b"data"


def test_response_cache_expires_entries():
    cache = ResponseCache(ttl=-1, max_entries=4)
    cache.put("stale", b"data")
    assert cache.get("stale") is None
    assert len(cache) == 0


def test_response_cache_overwrites_without_evicting():
    cache = ResponseCache(ttl=60, max_entries=2)
    cache.put("a", b"1")
    cache.put("b", b"2")
    cache.put("a", b"3")
    assert cache.get("a") == b"3"
    assert cache.get("b") == b"2"


def test_zero_sized_cache_stores_nothing():
    cache = ResponseCache(ttl=60, max_entries=0)
    cache.put("a", b"1")
    assert cache.get("a") is None


def test_render_key_depends_on_image_settings_and_format():
    base = render_key(b"img", DitherSettings(), "png", None)
    assert base == render_key(b"img", DitherSettings(), "png", None)
    assert base != render_key(b"other", DitherSettings(), "png", None)
    assert base != render_key(b"img", DitherSettings(threshold=90), "png", None)
    assert base != render_key(b"img", DitherSettings(), "jpeg", 80)
