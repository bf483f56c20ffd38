"""Core infrastructure components."""
from .cache import CacheInterface, CacheItem, InMemoryCache
from .circuit_breaker import CircuitBreaker, CircuitState
from .exceptions import (
    AppException,
    CircuitBreakerOpenError,
    DatastoreError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "CacheInterface",
    "CacheItem",
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "DatastoreError",
    "InMemoryCache",
    "NotFoundError",
    "ValidationError",
]
