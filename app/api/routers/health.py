"""
Health check router for observability.
"""
from fastapi import APIRouter, Depends

from app.api.dependencies import get_datastore_circuit_breaker, get_property_cache
from app.core.circuit_breaker import CircuitBreaker
from app.services.property_cache import PropertyCacheService

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(
    circuit_breaker: CircuitBreaker = Depends(get_datastore_circuit_breaker),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> dict:
    """
    Readiness check for Kubernetes.
    Returns datastore circuit breaker state and cache statistics.
    """
    return {
        "status": "ready",
        "circuit_breaker": {
            "name": circuit_breaker.name,
            "state": circuit_breaker.state.value,
        },
        "cache": property_cache.get_stats().model_dump(by_alias=True),
    }
