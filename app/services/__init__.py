"""Services package - business logic layer."""
from .personalization import PersonalizationService
from .property_cache import CacheKeys, PropertyCacheService
from .recommendation import SimilarPropertiesService
from .similarity import (
    FactorScorer,
    SimilarityConfig,
    SimilarityEngine,
    SimilarityWeights,
)

__all__ = [
    "CacheKeys",
    "FactorScorer",
    "PersonalizationService",
    "PropertyCacheService",
    "SimilarityConfig",
    "SimilarityEngine",
    "SimilarityWeights",
    "SimilarPropertiesService",
]
