"""
Visitor personalization profile endpoints.
"""
from fastapi import APIRouter, Depends, Path, Response, status

from app.api.dependencies import get_personalization_service, get_property_cache
from app.core.exceptions import NotFoundError
from app.models.schemas import ErrorResponse, UserProfile
from app.services.personalization import PersonalizationService
from app.services.property_cache import PropertyCacheService

router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get(
    "/{user_id}/profile",
    response_model=UserProfile,
    summary="Get User Profile",
    responses={404: {"model": ErrorResponse, "description": "No recorded activity"}},
)
async def get_user_profile(
    user_id: str = Path(..., min_length=1),
    personalization: PersonalizationService = Depends(get_personalization_service),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> UserProfile:
    """Accumulated preferences and behavior of a visitor."""
    profile = property_cache.get_cached_user_preferences(user_id)
    if profile is not None:
        return profile

    profile = UserProfile(
        user_id=user_id,
        preferences=await personalization.get_user_preferences(user_id),
        behavior=await personalization.get_user_behavior(user_id),
    )
    if profile.preferences is None and profile.behavior is None:
        raise NotFoundError("User profile", user_id)

    property_cache.cache_user_preferences(user_id, profile)
    return profile


@router.delete(
    "/{user_id}/profile",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear User Profile",
)
async def clear_user_profile(
    user_id: str = Path(..., min_length=1),
    personalization: PersonalizationService = Depends(get_personalization_service),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> Response:
    await personalization.clear_user_data(user_id)
    property_cache.invalidate_user_preferences(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
