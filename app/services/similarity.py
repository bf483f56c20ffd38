"""
Property similarity engine.
Multi-factor weighted scoring of a candidate property against the one being viewed.
Pure computation: no I/O, no state beyond the immutable configuration.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.config.settings import Settings
from app.models.schemas import (
    Property,
    PropertyCollection,
    PropertyType,
    SimilarityFactors,
    SimilarityScore,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def jaccard(left: Sequence[str], right: Sequence[str]) -> float:
    """Intersection over union of two name sets (0 when both are empty)."""
    a, b = set(left), set(right)
    union = a | b
    return len(a & b) / len(union) if union else 0.0


# =============================================================================
# Configuration
# =============================================================================


class SimilarityWeights(BaseModel):
    """Factor weights, must sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    location: float = Field(default=0.25, ge=0)
    type: float = Field(default=0.20, ge=0)
    price: float = Field(default=0.20, ge=0)
    size: float = Field(default=0.15, ge=0)
    amenities: float = Field(default=0.10, ge=0)
    collection: float = Field(default=0.05, ge=0)
    developer: float = Field(default=0.05, ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> "SimilarityWeights":
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Similarity weights must sum to 1.0, got {total:.4f}")
        return self


class SimilarityConfig(BaseModel):
    """Validated tuning knobs for the similarity engine."""

    model_config = ConfigDict(frozen=True)

    weights: SimilarityWeights = Field(default_factory=SimilarityWeights)
    price_tolerance: float = Field(default=0.3, gt=0, description="Relative price gap scoring 0")
    size_tolerance: float = Field(default=0.4, gt=0, description="Relative area gap scoring 0")
    max_distance_km: float = Field(default=10.0, gt=0)
    distance_decay_km: float = Field(default=5.0, gt=0)
    min_score: float = Field(default=0.3, ge=0, le=1, description="Scores at or below are dropped")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SimilarityConfig":
        return cls(
            price_tolerance=settings.SIMILARITY_PRICE_TOLERANCE,
            size_tolerance=settings.SIMILARITY_SIZE_TOLERANCE,
            max_distance_km=settings.SIMILARITY_MAX_DISTANCE_KM,
            min_score=settings.SIMILARITY_MIN_SCORE,
        )


# =============================================================================
# Factor Scoring (Strategy Pattern)
# =============================================================================


class FactorScorer(ABC):
    """Scores one aspect of similarity in [0, 1]."""

    name: str = ""

    @abstractmethod
    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        pass


class LocationScorer(FactorScorer):
    """Exponential decay with distance, zero beyond the search radius."""

    name = "location"

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        coords = (current.latitude, current.longitude, candidate.latitude, candidate.longitude)
        if any(c is None for c in coords):
            return 0.0

        distance = haversine_km(*coords)
        if distance > config.max_distance_km:
            return 0.0
        return math.exp(-distance / config.distance_decay_km)


class TypeScorer(FactorScorer):
    """Exact type match, or partial credit for compatible types."""

    name = "type"

    COMPATIBLE: Dict[PropertyType, FrozenSet[PropertyType]] = {
        PropertyType.APARTMENT: frozenset({PropertyType.PENTHOUSE, PropertyType.VILLA}),
        PropertyType.HOUSE: frozenset({PropertyType.VILLA, PropertyType.PENTHOUSE}),
        PropertyType.VILLA: frozenset({PropertyType.HOUSE, PropertyType.PENTHOUSE}),
        PropertyType.PENTHOUSE: frozenset({PropertyType.APARTMENT, PropertyType.VILLA}),
        PropertyType.COMMERCIAL: frozenset({PropertyType.LAND}),
        PropertyType.LAND: frozenset({PropertyType.COMMERCIAL}),
    }

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        if current.property_type == candidate.property_type:
            return 1.0
        if candidate.property_type in self.COMPATIBLE.get(current.property_type, frozenset()):
            return 0.5
        return 0.0


def _relative_falloff(current: Optional[float], candidate: Optional[float], tolerance: float) -> float:
    """1.0 at equal values, linearly down to 0 at `tolerance` relative gap."""
    if not current or not candidate:
        return 0.5  # Neutral when either side is unknown
    gap = abs(current - candidate) / current
    if gap > tolerance:
        return 0.0
    return 1.0 - gap / tolerance


class PriceScorer(FactorScorer):
    """Compares the lowest configuration price."""

    name = "price"

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        return _relative_falloff(current.lowest_price, candidate.lowest_price, config.price_tolerance)


class SizeScorer(FactorScorer):
    """Compares the average configuration area."""

    name = "size"

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        return _relative_falloff(current.average_area, candidate.average_area, config.size_tolerance)


class AmenitiesScorer(FactorScorer):
    name = "amenities"

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        if not current.amenities and not candidate.amenities:
            return 1.0
        if not current.amenities or not candidate.amenities:
            return 0.0
        return jaccard(current.amenities, candidate.amenities)


class CollectionScorer(FactorScorer):
    """Exact collection match, adjacent collections, or a floor score."""

    name = "collection"

    ADJACENT: Dict[PropertyCollection, FrozenSet[PropertyCollection]] = {
        PropertyCollection.NEWLY_LAUNCHED: frozenset({PropertyCollection.FEATURED}),
        PropertyCollection.FEATURED: frozenset(
            {PropertyCollection.NEWLY_LAUNCHED, PropertyCollection.READY_TO_MOVE}
        ),
        PropertyCollection.UNDER_CONSTRUCTION: frozenset({PropertyCollection.READY_TO_MOVE}),
        PropertyCollection.READY_TO_MOVE: frozenset(
            {PropertyCollection.FEATURED, PropertyCollection.UNDER_CONSTRUCTION}
        ),
    }

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        if current.property_collection == candidate.property_collection:
            return 1.0
        adjacent = self.ADJACENT.get(current.property_collection, frozenset())
        return 0.7 if candidate.property_collection in adjacent else 0.3


class DeveloperScorer(FactorScorer):
    name = "developer"

    def score(self, current: Property, candidate: Property, config: SimilarityConfig) -> float:
        if current.developer is None or candidate.developer is None:
            return 0.5
        return 1.0 if current.developer.id == candidate.developer.id else 0.2


# =============================================================================
# Similarity Engine
# =============================================================================


class SimilarityEngine:
    """
    Scores candidate properties against the property being viewed.

    Deterministic: identical inputs and configuration always yield
    identical scores.
    """

    def __init__(self, config: Optional[SimilarityConfig] = None) -> None:
        self._config = config or SimilarityConfig()
        self._scorers: List[FactorScorer] = [
            LocationScorer(),
            TypeScorer(),
            PriceScorer(),
            SizeScorer(),
            AmenitiesScorer(),
            CollectionScorer(),
            DeveloperScorer(),
        ]

    @property
    def config(self) -> SimilarityConfig:
        return self._config

    def calculate_similarity(self, current: Property, candidate: Property) -> SimilarityScore:
        """Score a single candidate against the current property."""
        factors = {
            scorer.name: clamp(scorer.score(current, candidate, self._config))
            for scorer in self._scorers
        }
        weights = self._config.weights.model_dump()
        total = sum(value * weights[name] for name, value in factors.items())

        return SimilarityScore(
            property_id=candidate.id,
            score=round(clamp(total), 2),
            factors=SimilarityFactors(**factors),
        )

    def find_similar_properties(
        self,
        current: Property,
        candidates: List[Property],
        limit: int = 6,
    ) -> List[SimilarityScore]:
        """
        Rank candidates by similarity.

        Args:
            current: Property being viewed
            candidates: Pool of candidate properties
            limit: Maximum scores to return

        Returns:
            Scores above the minimum threshold, best first
        """
        scores = [
            self.calculate_similarity(current, candidate)
            for candidate in candidates
            if candidate.id != current.id
        ]
        scores = [s for s in scores if s.score > self._config.min_score]
        # Stable sort keeps datastore order among equal scores
        scores.sort(key=lambda s: s.score, reverse=True)

        logger.debug(
            f"Scored {len(candidates)} candidates for property={current.id}, "
            f"{len(scores)} above threshold"
        )
        return scores[:limit]
