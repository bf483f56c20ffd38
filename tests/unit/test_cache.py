"""
Unit tests for the in-memory cache and property cache service.
"""
import asyncio
import base64
import time
from unittest.mock import MagicMock

import pytest

from app.core.cache import InMemoryCache
from app.models.schemas import SimilarityFactors, SimilarityScore, UserProfile
from app.services.property_cache import CacheKeys, PropertyCacheService
from tests.conftest import build_property


def score_for(property_id: str, score: float = 0.8) -> SimilarityScore:
    factors = SimilarityFactors(
        location=score, type=score, price=score, size=score,
        amenities=score, collection=score, developer=score,
    )
    return SimilarityScore(property_id=property_id, score=score, factors=factors)


# =============================================================================
# InMemoryCache
# =============================================================================


class TestInMemoryCache:
    """Tests for the TTL/LRU cache."""

    def test_set_and_get(self):
        cache = InMemoryCache()
        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

    def test_get_missing_key(self):
        cache = InMemoryCache()
        assert cache.get("nonexistent") is None

    def test_ttl_expiration(self):
        cache = InMemoryCache()
        cache.set("key1", "value1", ttl_seconds=0.1)
        assert cache.get("key1") == "value1"

        time.sleep(0.15)
        assert cache.get("key1") is None
        assert cache.size() == 0

    def test_one_second_ttl(self):
        cache = InMemoryCache()
        cache.set("key1", "value1", ttl_seconds=1)
        assert cache.get("key1") == "value1"

        time.sleep(1.05)
        assert cache.get("key1") is None

    def test_default_ttl_applies(self):
        cache = InMemoryCache(default_ttl_seconds=0.1)
        cache.set("key1", "value1")

        time.sleep(0.15)
        assert cache.get("key1") is None

    def test_expired_read_counts_as_miss(self):
        cache = InMemoryCache()
        cache.set("key1", "value1", ttl_seconds=0.05)
        time.sleep(0.1)

        cache.get("key1")

        stats = cache.get_stats()
        assert stats.hits == 0
        assert stats.misses == 1

    def test_delete(self):
        cache = InMemoryCache()
        cache.set("key1", "value1")

        assert cache.delete("key1") is True
        assert cache.get("key1") is None
        assert cache.delete("key1") is False

    def test_lru_eviction_removes_least_recently_accessed(self):
        cache = InMemoryCache(max_size=3)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        cache.get("a")  # "b" is now the least recently used
        cache.set("d", 4)

        assert cache.size() == 3
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.get("d") == 4

    def test_insertion_order_evicts_oldest_without_reads(self):
        cache = InMemoryCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_overwrite_does_not_evict(self):
        cache = InMemoryCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert cache.size() == 2
        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_size_never_exceeds_max(self):
        cache = InMemoryCache(max_size=5)
        for i in range(50):
            cache.set(f"key{i}", i)
            assert cache.size() <= 5

    def test_stats(self):
        cache = InMemoryCache()
        cache.set("key1", "value1")
        cache.get("key1")
        cache.get("key1")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.size == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    def test_hit_rate_zero_without_reads(self):
        assert InMemoryCache().get_stats().hit_rate == 0.0

    def test_clear_resets_entries_and_stats(self):
        cache = InMemoryCache()
        cache.set("key1", "value1")
        cache.get("key1")
        cache.get("missing")

        cache.clear()

        stats = cache.get_stats()
        assert stats.size == 0
        assert stats.hits == 0
        assert stats.misses == 0

    def test_cleanup_expired(self):
        cache = InMemoryCache()
        cache.set("short", 1, ttl_seconds=0.05)
        cache.set("long", 2, ttl_seconds=60)
        time.sleep(0.1)

        assert cache.cleanup_expired() == 1
        assert cache.size() == 1
        assert cache.get("long") == 2

    def test_rejects_invalid_max_size(self):
        with pytest.raises(ValueError):
            InMemoryCache(max_size=0)


class TestCacheSweep:
    """Tests for the background expiry sweep."""

    @pytest.mark.asyncio
    async def test_sweep_removes_expired_entries(self):
        cache = InMemoryCache(sweep_interval_seconds=0.05)
        cache.set("short", 1, ttl_seconds=0.01)
        cache.set("long", 2, ttl_seconds=60)

        cache.start()
        assert cache.is_sweeping
        await asyncio.sleep(0.2)

        assert cache.size() == 1
        await cache.stop()
        assert not cache.is_sweeping

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_is_safe(self):
        cache = InMemoryCache(sweep_interval_seconds=60)

        await cache.stop()
        cache.start()
        cache.start()
        assert cache.is_sweeping

        await cache.stop()
        await cache.stop()
        assert not cache.is_sweeping


# =============================================================================
# CacheKeys / PropertyCacheService
# =============================================================================


class TestCacheKeys:
    def test_key_formats(self):
        assert CacheKeys.property("villa-42") == "property:villa-42"
        assert CacheKeys.similar_properties("p1") == "similar:p1"
        assert CacheKeys.user_preferences("u1") == "prefs:u1"

    def test_search_key_is_base64_of_query(self):
        key = CacheKeys.search_results('{"location":"Whitefield"}')

        assert key.startswith("search:")
        decoded = base64.b64decode(key[len("search:"):]).decode("utf-8")
        assert decoded == '{"location":"Whitefield"}'

    def test_keys_are_deterministic(self):
        assert CacheKeys.search_results("q") == CacheKeys.search_results("q")


class TestPropertyCacheService:
    def test_property_keyed_by_slug(self):
        service = PropertyCacheService()
        prop = build_property(id="p1", slug="sunrise-heights")

        service.cache_property(prop)

        assert service.get_cached_property("sunrise-heights") == prop
        assert service.get_cached_property("p1") is None

    def test_property_without_slug_keyed_by_id(self):
        service = PropertyCacheService()
        prop = build_property(id="p1", slug=None)

        service.cache_property(prop)

        assert service.get_cached_property("p1") == prop

    def test_similar_properties_round_trip(self):
        service = PropertyCacheService()
        props = [build_property(id="p2")]
        scores = [score_for("p2")]

        service.cache_similar_properties("p1", props, scores)
        cached = service.get_cached_similar_properties("p1")

        assert cached.properties == props
        assert cached.scores == scores

    def test_user_preferences_and_invalidation(self):
        service = PropertyCacheService()
        profile = UserProfile(user_id="u1")

        service.cache_user_preferences("u1", profile)
        assert service.get_cached_user_preferences("u1") == profile

        assert service.invalidate_user_preferences("u1") is True
        assert service.get_cached_user_preferences("u1") is None

    def test_search_results(self):
        service = PropertyCacheService()
        results = [build_property(id="p1")]

        service.cache_search_results("villas", results)

        assert service.get_cached_search_results("villas") == results
        assert service.get_cached_search_results("apartments") is None

    def test_domain_ttls_applied(self):
        backing = MagicMock()
        service = PropertyCacheService(
            cache=backing,
            property_ttl=11,
            similar_properties_ttl=22,
            user_preferences_ttl=33,
            search_results_ttl=44,
        )

        service.cache_property(build_property(id="p1"))
        service.cache_similar_properties("p1", [], [])
        service.cache_user_preferences("u1", UserProfile(user_id="u1"))
        service.cache_search_results("q", [])

        ttls = [call.args[2] for call in backing.set.call_args_list]
        assert ttls == [11, 22, 33, 44]

    def test_invalidate_by_id_drops_slug_entry(self):
        service = PropertyCacheService()
        service.cache_property(build_property(id="p1", slug="sunrise-heights"))

        service.invalidate_property("p1")

        assert service.get_cached_property("sunrise-heights") is None

    def test_invalidate_property_leaves_other_result_sets(self):
        service = PropertyCacheService()
        prop = build_property(id="p1", slug="sunrise-heights")
        service.cache_property(prop)
        service.cache_similar_properties("p1", [], [])
        service.cache_similar_properties("p2", [prop], [score_for("p1")])

        service.invalidate_property("p1", slug="sunrise-heights")

        assert service.get_cached_property("sunrise-heights") is None
        assert service.get_cached_similar_properties("p1") is None
        # Result sets containing p1 expire by TTL only
        assert service.get_cached_similar_properties("p2") is not None

    def test_stats_and_clear(self):
        service = PropertyCacheService()
        service.cache_property(build_property(id="p1"))
        service.get_cached_property("p1-slug")
        service.get_cached_property("missing")

        stats = service.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1

        service.clear()
        assert service.get_stats().size == 0

    @pytest.mark.asyncio
    async def test_start_and_stop_sweep(self):
        backing = InMemoryCache(sweep_interval_seconds=60)
        service = PropertyCacheService(cache=backing)

        service.start()
        assert backing.is_sweeping

        await service.stop()
        assert not backing.is_sweeping
