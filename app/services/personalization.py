"""
Personalization layer.
Accumulates per-user preferences and behavior from interaction events and
blends them with content similarity into a personalized ranking.
"""
import logging
from typing import Dict, List, Optional

from app.models.interfaces import UserProfileRepository
from app.models.schemas import (
    InteractionType,
    PersonalizationFactors,
    PersonalizedRecommendation,
    Property,
    SimilarityScore,
    UserBehavior,
    UserPreference,
    utcnow,
)
from app.services.similarity import clamp, jaccard

logger = logging.getLogger(__name__)


def _append_bounded(items: List[str], value: str, cap: Optional[int] = None) -> List[str]:
    """Append if absent, keeping only the newest `cap` entries."""
    if value in items:
        return items
    items = items + [value]
    if cap is not None and len(items) > cap:
        items = items[-cap:]
    return items


class PersonalizationService:
    """
    Personalized re-ranking of similar properties.

    Blend: similarity 40%, declared/observed preference 35%, behavior 25%.
    Users without any recorded state get the similarity ranking unchanged.
    """

    SIMILARITY_WEIGHT = 0.40
    PREFERENCE_WEIGHT = 0.35
    BEHAVIOR_WEIGHT = 0.25

    MAX_VIEWED = 50
    MAX_FAVORITED = 20
    MAX_SEARCHED_LOCATIONS = 20

    # Behavior sub-check weights
    VIEWED_ELSEWHERE = 0.3
    FAVORITED_ELSEWHERE = 0.4
    SEARCHED_LOCATION = 0.2
    SEARCHED_TYPE = 0.1

    def __init__(self, profile_repo: UserProfileRepository) -> None:
        self._profile_repo = profile_repo

    # -------------------------------------------------------------------------
    # Interaction tracking
    # -------------------------------------------------------------------------

    async def update_preferences(
        self,
        user_id: str,
        prop: Property,
        interaction_type: InteractionType,
    ) -> None:
        """
        Record one interaction event.

        Args:
            user_id: Visitor identifier
            prop: Property the visitor interacted with
            interaction_type: view, favorite, search or contact
        """
        interaction_type = InteractionType(interaction_type)
        preferences = await self._profile_repo.get_preferences(user_id) or UserPreference(
            user_id=user_id
        )
        behavior = await self._profile_repo.get_behavior(user_id) or UserBehavior(user_id=user_id)

        self._update_behavior(behavior, prop, interaction_type)
        self._update_preference(preferences, prop)

        await self._profile_repo.save_preferences(preferences)
        await self._profile_repo.save_behavior(behavior)

        logger.debug(
            f"Recorded {interaction_type.value} of property={prop.id} for user={user_id}",
            extra={"user_id": user_id, "property_id": prop.id},
        )

    def _update_behavior(
        self, behavior: UserBehavior, prop: Property, interaction_type: InteractionType
    ) -> None:
        behavior.last_activity = utcnow()

        if interaction_type == InteractionType.VIEW:
            behavior.viewed_properties = _append_bounded(
                behavior.viewed_properties, prop.id, self.MAX_VIEWED
            )
        elif interaction_type == InteractionType.FAVORITE:
            behavior.favorited_properties = _append_bounded(
                behavior.favorited_properties, prop.id, self.MAX_FAVORITED
            )
        elif interaction_type == InteractionType.SEARCH:
            behavior.searched_locations = _append_bounded(
                behavior.searched_locations, prop.location, self.MAX_SEARCHED_LOCATIONS
            )
            behavior.searched_types = _append_bounded(
                behavior.searched_types, prop.property_type.value
            )
        # Contact only refreshes last_activity

    def _update_preference(self, preferences: UserPreference, prop: Property) -> None:
        preferences.last_updated = utcnow()

        preferences.property_types = _append_bounded(
            preferences.property_types, prop.property_type.value
        )

        price = prop.lowest_price
        if price is not None:
            price_range = preferences.price_range
            if price_range.min is None or price < price_range.min:
                price_range.min = price
            if price_range.max is None or price > price_range.max:
                price_range.max = price

        if prop.location:
            preferences.locations = _append_bounded(preferences.locations, prop.location)
        for amenity in prop.amenities:
            preferences.amenities = _append_bounded(preferences.amenities, amenity)
        preferences.collections = _append_bounded(
            preferences.collections, prop.property_collection.value
        )
        if prop.developer is not None:
            preferences.developers = _append_bounded(preferences.developers, prop.developer.id)

    # -------------------------------------------------------------------------
    # Recommendation blending
    # -------------------------------------------------------------------------

    async def get_personalized_recommendations(
        self,
        user_id: str,
        current_property: Property,
        candidates: List[Property],
        similarity_scores: List[SimilarityScore],
    ) -> List[PersonalizedRecommendation]:
        """
        Blend similarity with the user's preferences and behavior.

        Args:
            user_id: Visitor identifier
            current_property: Property being viewed
            candidates: Properties to re-rank
            similarity_scores: Similarity of each candidate to current_property

        Returns:
            Personalized recommendations, best first
        """
        preferences = await self._profile_repo.get_preferences(user_id)
        behavior = await self._profile_repo.get_behavior(user_id)

        if preferences is None and behavior is None:
            # Cold start: fall back to pure content similarity
            return [
                PersonalizedRecommendation(
                    property_id=s.property_id,
                    score=s.score,
                    reason="Similar property",
                    factors=PersonalizationFactors(
                        preference=0.0, behavior=0.0, similarity=s.score
                    ),
                )
                for s in similarity_scores
            ]

        similarity_by_id: Dict[str, float] = {
            s.property_id: s.score for s in similarity_scores
        }
        recommendations = []
        for candidate in candidates:
            similarity = clamp(similarity_by_id.get(candidate.id, 0.0))
            preference = (
                self.calculate_preference_score(preferences, candidate) if preferences else 0.0
            )
            behavior_score = (
                self.calculate_behavior_score(behavior, candidate) if behavior else 0.0
            )

            total = (
                similarity * self.SIMILARITY_WEIGHT
                + preference * self.PREFERENCE_WEIGHT
                + behavior_score * self.BEHAVIOR_WEIGHT
            )
            recommendations.append(
                PersonalizedRecommendation(
                    property_id=candidate.id,
                    score=round(clamp(total), 2),
                    reason=self.generate_reason(preference, behavior_score, similarity),
                    factors=PersonalizationFactors(
                        preference=preference,
                        behavior=behavior_score,
                        similarity=similarity,
                    ),
                )
            )

        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations

    def calculate_preference_score(self, preferences: UserPreference, prop: Property) -> float:
        """Average of six preference sub-checks."""
        checks: List[float] = []

        checks.append(1.0 if prop.property_type.value in preferences.property_types else 0.0)

        price = prop.lowest_price
        checks.append(1.0 if price is not None and preferences.price_range.contains(price) else 0.0)

        location = prop.location.lower()
        checks.append(
            1.0 if any(loc.lower() in location for loc in preferences.locations if loc) else 0.0
        )

        checks.append(
            jaccard(prop.amenities, preferences.amenities) if preferences.amenities else 0.0
        )

        checks.append(
            1.0 if prop.property_collection.value in preferences.collections else 0.0
        )

        checks.append(
            1.0
            if prop.developer is not None and prop.developer.id in preferences.developers
            else 0.0
        )

        return clamp(sum(checks) / len(checks))

    def calculate_behavior_score(self, behavior: UserBehavior, prop: Property) -> float:
        """Weighted presence checks, averaged over the checks evaluated."""
        score = 0.0
        evaluated = 0

        evaluated += 1
        if any(pid != prop.id for pid in behavior.viewed_properties):
            score += self.VIEWED_ELSEWHERE

        evaluated += 1
        if any(pid != prop.id for pid in behavior.favorited_properties):
            score += self.FAVORITED_ELSEWHERE

        evaluated += 1
        location = prop.location.lower()
        if any(loc.lower() in location for loc in behavior.searched_locations if loc):
            score += self.SEARCHED_LOCATION

        evaluated += 1
        if prop.property_type.value in behavior.searched_types:
            score += self.SEARCHED_TYPE

        return clamp(score / evaluated)

    @staticmethod
    def generate_reason(preference: float, behavior: float, similarity: float) -> str:
        reasons = []

        if similarity > 0.7:
            reasons.append("Very similar to what you viewed")
        elif similarity > 0.5:
            reasons.append("Similar to your interests")

        if preference > 0.7:
            reasons.append("Matches your preferences")
        elif preference > 0.5:
            reasons.append("Partially matches your preferences")

        if behavior > 0.7:
            reasons.append("Based on your activity")
        elif behavior > 0.5:
            reasons.append("Similar to your previous choices")

        return ", ".join(reasons) if reasons else "Recommended for you"

    # -------------------------------------------------------------------------
    # Profile access
    # -------------------------------------------------------------------------

    async def get_user_preferences(self, user_id: str) -> Optional[UserPreference]:
        return await self._profile_repo.get_preferences(user_id)

    async def get_user_behavior(self, user_id: str) -> Optional[UserBehavior]:
        return await self._profile_repo.get_behavior(user_id)

    async def clear_user_data(self, user_id: str) -> bool:
        removed = await self._profile_repo.delete(user_id)
        if removed:
            logger.info(f"Cleared personalization data for user={user_id}", extra={"user_id": user_id})
        return removed
