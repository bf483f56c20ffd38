"""
Similar-properties service - main business logic orchestrator.
Coordinates cache, tiered candidate retrieval, similarity scoring and
personalization. Degrades to an empty "fallback" result instead of failing.
"""
import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple

from app.core.circuit_breaker import CircuitBreaker
from app.core.exceptions import CircuitBreakerOpenError
from app.core.telemetry import record_recommendation, record_tier_failure
from app.models.interfaces import PropertyRepository
from app.models.schemas import (
    CacheStats,
    InteractionType,
    PersonalizedRecommendation,
    Property,
    PropertyQuery,
    RecommendationMetadata,
    SimilarityScore,
    SimilarPropertiesResult,
)
from app.services.personalization import PersonalizationService
from app.services.property_cache import PropertyCacheService
from app.services.similarity import SimilarityEngine

logger = logging.getLogger(__name__)


class SimilarPropertiesService:
    """
    Entry point for "similar properties" on a property detail page.

    Responsibilities:
    - Serve cached result sets
    - Fetch candidates through four concurrent retrieval tiers
    - Score candidates and cache the top results
    - Personalize for known visitors
    """

    def __init__(
            self,
            property_repo: PropertyRepository,
            property_cache: PropertyCacheService,
            similarity_engine: SimilarityEngine,
            personalization_service: PersonalizationService,
            circuit_breaker: Optional[CircuitBreaker] = None,
            candidate_multiplier: int = 3,
    ) -> None:
        """
        Initialize the service with its collaborators.

        Args:
            property_repo: Read-only property datastore
            property_cache: Cache for similar-property result sets
            similarity_engine: Content similarity scorer
            personalization_service: Per-user re-ranking
            circuit_breaker: Optional breaker guarding datastore queries
            candidate_multiplier: Candidate pool size as a multiple of limit
        """
        self._property_repo = property_repo
        self._property_cache = property_cache
        self._similarity_engine = similarity_engine
        self._personalization = personalization_service
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name="property_datastore",
            failure_threshold=5,
            recovery_timeout_sec=30,
        )
        self._candidate_multiplier = candidate_multiplier

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def get_similar_properties(
            self,
            current_property: Property,
            user_id: Optional[str] = None,
            limit: int = 6,
    ) -> SimilarPropertiesResult:
        """
        Get similar properties, personalized when the visitor is known.

        Args:
            current_property: Property being viewed
            user_id: Optional visitor identifier
            limit: Maximum properties to return

        Returns:
            SimilarPropertiesResult with provenance metadata
        """
        start_time = time.perf_counter()
        log_context = {"property_id": current_property.id, "user_id": user_id}

        # Step 1: Cached result set, reusable when it was ranked for at least this limit
        cached = self._property_cache.get_cached_similar_properties(current_property.id)
        if cached is not None and limit <= cached.limit:
            properties = cached.properties[:limit]
            scores = cached.scores[:limit]
            personalized = await self._personalize(user_id, current_property, properties, scores)
            logger.info(
                f"Similar properties cache hit: property={current_property.id}",
                extra=log_context,
            )
            return self._build_result(
                start_time,
                algorithm="cached",
                cache_hit=True,
                properties=properties,
                scores=scores,
                personalized=personalized,
                total_candidates=len(cached.properties),
            )

        # Step 2: Tiered candidate retrieval
        candidates = await self.fetch_candidates(
            current_property, limit * self._candidate_multiplier
        )
        if not candidates:
            logger.info(
                f"No candidates for property={current_property.id}, serving fallback",
                extra=log_context,
            )
            return self._build_result(
                start_time,
                algorithm="fallback",
                cache_hit=False,
                properties=[],
                scores=[],
                personalized=[],
                total_candidates=0,
            )

        # Step 3: Score and keep the top results
        scores = self._similarity_engine.find_similar_properties(
            current_property, candidates, limit
        )
        by_id = {candidate.id: candidate for candidate in candidates}
        properties = [by_id[s.property_id] for s in scores]

        # Step 4: Personalize, then record the view
        personalized = await self._personalize(user_id, current_property, properties, scores)
        if user_id:
            await self._personalization.update_preferences(
                user_id, current_property, InteractionType.VIEW
            )

        # Step 5: Cache
        self._property_cache.cache_similar_properties(
            current_property.id, properties, scores, limit=limit
        )

        result = self._build_result(
            start_time,
            algorithm="similarity",
            cache_hit=False,
            properties=properties,
            scores=scores,
            personalized=personalized,
            total_candidates=len(candidates),
        )
        logger.info(
            f"Similar properties served: property={current_property.id}, "
            f"candidates={len(candidates)}, results={len(properties)}, "
            f"elapsed_ms={result.metadata.processing_time:.2f}",
            extra=log_context,
        )
        return result

    # -------------------------------------------------------------------------
    # Candidate retrieval
    # -------------------------------------------------------------------------

    def build_tier_queries(
            self,
            current_property: Property,
            limit: int,
    ) -> List[Tuple[str, PropertyQuery]]:
        """
        Build the retrieval tiers, most restrictive first.

        Tier 1 narrows Tier 2 to a price band around the current lowest
        price; without a price both tiers apply the same filter.
        """
        base = PropertyQuery(exclude_id=current_property.id, limit=limit)

        price_band: Dict[str, float] = {}
        price = current_property.lowest_price
        if price is not None:
            tolerance = self._similarity_engine.config.price_tolerance
            price_band = {
                "min_price": price * (1 - tolerance),
                "max_price": price * (1 + tolerance),
            }

        same_type_and_location = {
            "property_type": current_property.property_type,
            "location": current_property.location,
        }
        return [
            ("type_location_price", base.model_copy(update={**same_type_and_location, **price_band})),
            ("type_location", base.model_copy(update=same_type_and_location)),
            ("type", base.model_copy(update={"property_type": current_property.property_type})),
            ("location", base.model_copy(update={"location": current_property.location})),
        ]

    async def fetch_candidates(self, current_property: Property, limit: int) -> List[Property]:
        """
        Run all tiers concurrently and merge by id (first seen wins).

        A failed tier contributes no candidates; it never fails the request.
        """
        tiers = self.build_tier_queries(current_property, limit)
        results = await asyncio.gather(
            *(self._run_tier(name, query) for name, query in tiers)
        )

        merged: Dict[str, Property] = {}
        for rows in results:
            for prop in rows:
                if prop.id != current_property.id and prop.id not in merged:
                    merged[prop.id] = prop

        return list(merged.values())[:limit]

    async def _run_tier(self, name: str, query: PropertyQuery) -> List[Property]:
        try:
            return await self._circuit_breaker.call(
                lambda: self._property_repo.find_properties(query)
            )
        except CircuitBreakerOpenError:
            logger.warning(f"Skipping tier={name}: datastore circuit open")
        except Exception as e:
            logger.warning(f"Candidate tier failed, treating as empty: tier={name}, error={e}")
        record_tier_failure(name)
        return []

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _personalize(
            self,
            user_id: Optional[str],
            current_property: Property,
            properties: List[Property],
            scores: List[SimilarityScore],
    ) -> List[PersonalizedRecommendation]:
        if not user_id:
            return []
        return await self._personalization.get_personalized_recommendations(
            user_id, current_property, properties, scores
        )

    def _build_result(
            self,
            start_time: float,
            algorithm: str,
            cache_hit: bool,
            properties: List[Property],
            scores: List[SimilarityScore],
            personalized: List[PersonalizedRecommendation],
            total_candidates: int,
    ) -> SimilarPropertiesResult:
        elapsed = time.perf_counter() - start_time
        record_recommendation(algorithm, elapsed)
        return SimilarPropertiesResult(
            properties=properties,
            scores=scores,
            personalized_scores=personalized,
            cache_hit=cache_hit,
            algorithm=algorithm,
            metadata=RecommendationMetadata(
                total_candidates=total_candidates,
                processing_time=round(elapsed * 1000, 2),
                cache_stats=self._property_cache.get_stats(),
            ),
        )

    def invalidate_cache(self, property_id: str, slug: Optional[str] = None) -> None:
        """Hook for the property-edit workflow after a property changes."""
        self._property_cache.invalidate_property(property_id, slug)

    def get_cache_stats(self) -> CacheStats:
        return self._property_cache.get_stats()
