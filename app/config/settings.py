"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Property Recommendation API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    # Property datastore (in-memory catalogue when unset)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    PROPERTIES_TABLE: str = "properties"

    # Circuit Breaker (datastore tiers)
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC: int = 30

    # Cache
    CACHE_MAX_SIZE: int = 500
    CACHE_DEFAULT_TTL_SEC: int = 3600
    CACHE_SWEEP_INTERVAL_SEC: int = 300  # 5 minutes

    # Cache TTLs per domain (seconds)
    PROPERTY_CACHE_TTL_SEC: int = 1800  # 30 minutes
    SIMILAR_PROPERTIES_TTL_SEC: int = 900  # 15 minutes
    USER_PREFERENCES_TTL_SEC: int = 3600  # 1 hour
    SEARCH_RESULTS_TTL_SEC: int = 600  # 10 minutes

    # Recommendations
    DEFAULT_SIMILAR_LIMIT: int = 6
    MAX_SIMILAR_LIMIT: int = 24
    CANDIDATE_POOL_MULTIPLIER: int = 3

    # Similarity tolerances
    SIMILARITY_PRICE_TOLERANCE: float = 0.3
    SIMILARITY_SIZE_TOLERANCE: float = 0.4
    SIMILARITY_MAX_DISTANCE_KM: float = 10.0
    SIMILARITY_MIN_SCORE: float = 0.3

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
