"""Models package - domain entities and interfaces."""
from .interfaces import PropertyRepository, UserProfileRepository
from .schemas import (
    CachedSimilarProperties,
    CacheStats,
    Developer,
    ErrorResponse,
    InteractionRequest,
    InteractionResponse,
    InteractionType,
    PersonalizationFactors,
    PersonalizedRecommendation,
    PriceRange,
    Property,
    PropertyCollection,
    PropertyConfiguration,
    PropertyImage,
    PropertyQuery,
    PropertyType,
    RecommendationMetadata,
    SimilarityFactors,
    SimilarityScore,
    SimilarPropertiesResult,
    UserBehavior,
    UserPreference,
    UserProfile,
)

__all__ = [
    # Interfaces
    "PropertyRepository",
    "UserProfileRepository",
    # Schemas
    "CachedSimilarProperties",
    "CacheStats",
    "Developer",
    "ErrorResponse",
    "InteractionRequest",
    "InteractionResponse",
    "InteractionType",
    "PersonalizationFactors",
    "PersonalizedRecommendation",
    "PriceRange",
    "Property",
    "PropertyCollection",
    "PropertyConfiguration",
    "PropertyImage",
    "PropertyQuery",
    "PropertyType",
    "RecommendationMetadata",
    "SimilarityFactors",
    "SimilarityScore",
    "SimilarPropertiesResult",
    "UserBehavior",
    "UserPreference",
    "UserProfile",
]
