"""
Pytest configuration and fixtures.
"""
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import (
    get_datastore_circuit_breaker,
    get_property_cache,
    get_property_repository,
    get_similarity_engine,
    get_user_profile_repository,
)
from app.core.circuit_breaker import CircuitBreaker
from app.main import app
from app.models.schemas import (
    Developer,
    Property,
    PropertyCollection,
    PropertyConfiguration,
    PropertyType,
)
from app.repositories.memory import InMemoryPropertyRepository, InMemoryUserProfileRepository
from app.services.property_cache import PropertyCacheService
from app.services.similarity import SimilarityEngine

# Kilometres per degree of latitude on a 6371 km sphere
KM_PER_DEGREE = 111.19492664455873


def build_property(id: str = "current", **overrides: Any) -> Property:
    """Apartment in Whitefield, 10M / 1200 sqft, with optional overrides."""
    data = {
        "id": id,
        "slug": f"{id}-slug",
        "title": f"Property {id}",
        "property_type": PropertyType.APARTMENT,
        "property_collection": PropertyCollection.FEATURED,
        "location": "Whitefield",
        "latitude": 12.9698,
        "longitude": 77.7500,
        "amenities": ["Gym", "Swimming Pool", "Clubhouse"],
        "property_configurations": [
            PropertyConfiguration(price=10_000_000, area=1200, bedrooms=2, bathrooms=2)
        ],
        "developer": Developer(id="dev-1", name="Prestige Group"),
    }
    data.update(overrides)
    return Property(**data)


def north_of(prop: Property, km: float) -> float:
    """Latitude `km` kilometres north of a property."""
    return prop.latitude + km / KM_PER_DEGREE


@pytest.fixture
def current_property():
    return build_property()


@pytest.fixture
def property_repo():
    """Seeded in-memory catalogue."""
    return InMemoryPropertyRepository()


@pytest.fixture
def profile_repo():
    return InMemoryUserProfileRepository()


@pytest.fixture
def property_cache():
    return PropertyCacheService()


@pytest.fixture
def similarity_engine():
    return SimilarityEngine()


@pytest.fixture
def circuit_breaker():
    return CircuitBreaker("property_datastore", failure_threshold=5)


@pytest.fixture
def test_client(property_repo, profile_repo, property_cache, similarity_engine, circuit_breaker):
    """
    TestClient fixture with dependency overrides.
    Uses fresh in-memory instances for isolation.
    """
    app.dependency_overrides[get_property_repository] = lambda: property_repo
    app.dependency_overrides[get_user_profile_repository] = lambda: profile_repo
    app.dependency_overrides[get_property_cache] = lambda: property_cache
    app.dependency_overrides[get_similarity_engine] = lambda: similarity_engine
    app.dependency_overrides[get_datastore_circuit_breaker] = lambda: circuit_breaker

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
