"""Tests for the TTL result cache."""

from cgmedia.cache import DEFAULT_TTL_SECONDS, ResultCache
from cgmedia.models import ConversionStrategy, NormalizedAsset
from tests.samples import FakeClock


def _asset(tag: bytes = b"jpeg") -> NormalizedAsset:
    return NormalizedAsset(
        image_bytes=tag,
        mime_type="image/jpeg",
        width=256,
        height=256,
        original_mime_type="image/png",
        conversion_strategy=ConversionStrategy.OPTIMIZED_STATIC,
    )


def test_key_suffix() -> None:
    assert ResultCache.key_for("https://x.example/a.png") == "https://x.example/a.png_optimized"


def test_miss_then_hit_returns_same_object(cache: ResultCache) -> None:
    assert cache.get("https://x.example/a.png") is None
    asset = _asset()
    cache.put("https://x.example/a.png", asset)
    assert cache.get("https://x.example/a.png") is asset


def test_put_replaces_existing(cache: ResultCache) -> None:
    cache.put("u", _asset(b"old"))
    newer = _asset(b"new")
    cache.put("u", newer)
    assert cache.get("u") is newer
    assert cache.stats().count == 1


def test_entry_expires_after_ttl(cache: ResultCache, clock: FakeClock) -> None:
    cache.put("u", _asset())
    clock.advance(DEFAULT_TTL_SECONDS - 1)
    assert cache.get("u") is not None
    clock.advance(1)
    assert cache.get("u") is None
    # Expired entry was evicted on lookup
    assert cache.stats().count == 0


def test_custom_ttl(clock: FakeClock) -> None:
    cache = ResultCache(ttl_seconds=10, clock=clock)
    cache.put("u", _asset())
    clock.advance(9.5)
    assert cache.get("u") is not None
    clock.advance(0.5)
    assert cache.get("u") is None


def test_stats_lists_keys(cache: ResultCache) -> None:
    cache.put("a", _asset())
    cache.put("b", _asset())
    stats = cache.stats()
    assert stats.count == 2
    assert sorted(stats.keys) == ["a_optimized", "b_optimized"]


def test_clear(cache: ResultCache) -> None:
    cache.put("a", _asset())
    cache.put("b", _asset())
    cache.clear()
    assert cache.stats().count == 0
    assert cache.get("a") is None
