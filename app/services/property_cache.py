"""
Property-specific cache operations on top of the generic in-memory cache.
Builds deterministic keys and applies per-domain TTLs.
"""
import base64
import logging
from typing import Dict, List, Optional

from app.config.settings import Settings
from app.core.cache import CacheInterface, InMemoryCache
from app.models.schemas import (
    CachedSimilarProperties,
    CacheStats,
    Property,
    SimilarityScore,
    UserProfile,
)

logger = logging.getLogger(__name__)


class CacheKeys:
    """Centralized cache key generation."""

    @staticmethod
    def property(slug: str) -> str:
        return f"property:{slug}"

    @staticmethod
    def similar_properties(property_id: str) -> str:
        return f"similar:{property_id}"

    @staticmethod
    def user_preferences(user_id: str) -> str:
        return f"prefs:{user_id}"

    @staticmethod
    def search_results(query: str) -> str:
        encoded = base64.b64encode(query.encode("utf-8")).decode("utf-8")
        return f"search:{encoded}"


class PropertyCacheService:
    """
    Typed accessors for properties, similar-property result sets,
    user preference snapshots and search results.
    """

    PROPERTY_TTL = 1800  # 30 minutes
    SIMILAR_PROPERTIES_TTL = 900  # 15 minutes
    USER_PREFERENCES_TTL = 3600  # 1 hour
    SEARCH_RESULTS_TTL = 600  # 10 minutes

    def __init__(
        self,
        cache: Optional[CacheInterface] = None,
        property_ttl: int = PROPERTY_TTL,
        similar_properties_ttl: int = SIMILAR_PROPERTIES_TTL,
        user_preferences_ttl: int = USER_PREFERENCES_TTL,
        search_results_ttl: int = SEARCH_RESULTS_TTL,
    ) -> None:
        self._cache = cache or InMemoryCache(max_size=500, default_ttl_seconds=property_ttl)
        self._property_ttl = property_ttl
        self._similar_properties_ttl = similar_properties_ttl
        self._user_preferences_ttl = user_preferences_ttl
        self._search_results_ttl = search_results_ttl
        # Property id to the slug its entry is keyed under
        self._slugs: Dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "PropertyCacheService":
        cache: InMemoryCache = InMemoryCache(
            max_size=settings.CACHE_MAX_SIZE,
            default_ttl_seconds=settings.CACHE_DEFAULT_TTL_SEC,
            sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL_SEC,
        )
        return cls(
            cache=cache,
            property_ttl=settings.PROPERTY_CACHE_TTL_SEC,
            similar_properties_ttl=settings.SIMILAR_PROPERTIES_TTL_SEC,
            user_preferences_ttl=settings.USER_PREFERENCES_TTL_SEC,
            search_results_ttl=settings.SEARCH_RESULTS_TTL_SEC,
        )

    @property
    def cache(self) -> CacheInterface:
        return self._cache

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    def cache_property(self, prop: Property) -> None:
        if prop.slug:
            self._slugs[prop.id] = prop.slug
        self._cache.set(CacheKeys.property(prop.slug or prop.id), prop, self._property_ttl)

    def get_cached_property(self, slug: str) -> Optional[Property]:
        return self._cache.get(CacheKeys.property(slug))

    # -------------------------------------------------------------------------
    # Similar properties
    # -------------------------------------------------------------------------

    def cache_similar_properties(
        self,
        property_id: str,
        properties: List[Property],
        scores: List[SimilarityScore],
        limit: Optional[int] = None,
    ) -> None:
        entry = CachedSimilarProperties(
            properties=properties,
            scores=scores,
            limit=len(properties) if limit is None else limit,
        )
        self._cache.set(
            CacheKeys.similar_properties(property_id), entry, self._similar_properties_ttl
        )

    def get_cached_similar_properties(self, property_id: str) -> Optional[CachedSimilarProperties]:
        return self._cache.get(CacheKeys.similar_properties(property_id))

    # -------------------------------------------------------------------------
    # User preferences
    # -------------------------------------------------------------------------

    def cache_user_preferences(self, user_id: str, profile: UserProfile) -> None:
        self._cache.set(CacheKeys.user_preferences(user_id), profile, self._user_preferences_ttl)

    def get_cached_user_preferences(self, user_id: str) -> Optional[UserProfile]:
        return self._cache.get(CacheKeys.user_preferences(user_id))

    def invalidate_user_preferences(self, user_id: str) -> bool:
        return self._cache.delete(CacheKeys.user_preferences(user_id))

    # -------------------------------------------------------------------------
    # Search results
    # -------------------------------------------------------------------------

    def cache_search_results(self, query: str, results: List[Property]) -> None:
        self._cache.set(CacheKeys.search_results(query), results, self._search_results_ttl)

    def get_cached_search_results(self, query: str) -> Optional[List[Property]]:
        return self._cache.get(CacheKeys.search_results(query))

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def invalidate_property(self, property_id: str, slug: Optional[str] = None) -> None:
        """
        Drop the direct property entry and its similar-properties set.
        Result sets of other properties that merely contain it stay cached.
        The slug entry is found from the last cached copy when no slug is given.
        """
        self._cache.delete(CacheKeys.property(property_id))
        for known_slug in {slug, self._slugs.pop(property_id, None)}:
            if known_slug:
                self._cache.delete(CacheKeys.property(known_slug))
        self._cache.delete(CacheKeys.similar_properties(property_id))
        logger.info(
            f"Invalidated cache for property={property_id}",
            extra={"property_id": property_id},
        )

    def start(self) -> None:
        """Start the background expiry sweep of the backing cache."""
        if isinstance(self._cache, InMemoryCache):
            self._cache.start()

    async def stop(self) -> None:
        if isinstance(self._cache, InMemoryCache):
            await self._cache.stop()

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def clear(self) -> None:
        self._cache.clear()
        self._slugs.clear()
