"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
import logging
from functools import lru_cache

from fastapi import Depends

from app.config import get_settings
from app.core.circuit_breaker import CircuitBreaker
from app.models.interfaces import PropertyRepository, UserProfileRepository
from app.repositories.memory import InMemoryPropertyRepository, InMemoryUserProfileRepository
from app.repositories.supabase_repository import SupabasePropertyRepository
from app.services.personalization import PersonalizationService
from app.services.property_cache import PropertyCacheService
from app.services.recommendation import SimilarPropertiesService
from app.services.similarity import SimilarityConfig, SimilarityEngine

logger = logging.getLogger(__name__)


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_property_repository() -> PropertyRepository:
    """Supabase when credentials are configured, demo catalogue otherwise."""
    settings = get_settings()
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        return SupabasePropertyRepository.from_settings(settings)
    logger.info("SUPABASE_URL not set, using in-memory property catalogue")
    return InMemoryPropertyRepository()


@lru_cache()
def get_user_profile_repository() -> InMemoryUserProfileRepository:
    """Get singleton user profile repository."""
    return InMemoryUserProfileRepository()


@lru_cache()
def get_property_cache() -> PropertyCacheService:
    """Get singleton property cache."""
    return PropertyCacheService.from_settings(get_settings())


@lru_cache()
def get_similarity_engine() -> SimilarityEngine:
    """Get singleton similarity engine."""
    return SimilarityEngine(SimilarityConfig.from_settings(get_settings()))


@lru_cache()
def get_datastore_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for datastore queries."""
    settings = get_settings()
    return CircuitBreaker(
        name="property_datastore",
        failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


# =============================================================================
# Request-Scoped Dependencies (Per-Request Lifetime)
# =============================================================================


def get_personalization_service(
    profile_repo: UserProfileRepository = Depends(get_user_profile_repository),
) -> PersonalizationService:
    """Personalization service over the shared profile store."""
    return PersonalizationService(profile_repo)


def get_similar_properties_service(
    property_repo: PropertyRepository = Depends(get_property_repository),
    property_cache: PropertyCacheService = Depends(get_property_cache),
    similarity_engine: SimilarityEngine = Depends(get_similarity_engine),
    personalization_service: PersonalizationService = Depends(get_personalization_service),
    circuit_breaker: CircuitBreaker = Depends(get_datastore_circuit_breaker),
) -> SimilarPropertiesService:
    """
    Get similar-properties service with all dependencies wired.
    This is the main entry point for the recommendation endpoints.
    """
    return SimilarPropertiesService(
        property_repo=property_repo,
        property_cache=property_cache,
        similarity_engine=similarity_engine,
        personalization_service=personalization_service,
        circuit_breaker=circuit_breaker,
        candidate_multiplier=get_settings().CANDIDATE_POOL_MULTIPLIER,
    )


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    get_property_repository.cache_clear()
    get_user_profile_repository.cache_clear()
    get_property_cache.cache_clear()
    get_similarity_engine.cache_clear()
    get_datastore_circuit_breaker.cache_clear()
