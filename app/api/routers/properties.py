"""
Property recommendation endpoints.
Similar properties, interaction tracking, cache invalidation and search.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from app.api.dependencies import (
    get_personalization_service,
    get_property_cache,
    get_property_repository,
    get_similar_properties_service,
)
from app.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.interfaces import PropertyRepository
from app.models.schemas import (
    ErrorResponse,
    InteractionRequest,
    InteractionResponse,
    InteractionType,
    Property,
    PropertyQuery,
    PropertyType,
    SimilarPropertiesResult,
)
from app.services.personalization import PersonalizationService
from app.services.property_cache import PropertyCacheService
from app.services.recommendation import SimilarPropertiesService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/properties", tags=["properties"])


async def resolve_property(
    property_ref: str = Path(..., min_length=1, description="Property id or slug"),
    property_repo: PropertyRepository = Depends(get_property_repository),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> Property:
    """Look the property up in the cache, then the datastore."""
    prop = property_cache.get_cached_property(property_ref)
    if prop is not None:
        return prop

    prop = await property_repo.get_property(property_ref)
    if prop is None:
        raise NotFoundError("Property", property_ref)
    property_cache.cache_property(prop)
    return prop


@router.get(
    "/search",
    response_model=List[Property],
    summary="Search Properties",
    description="Filter active properties by type and/or location. Results are cached briefly.",
    responses={400: {"model": ErrorResponse, "description": "No filter given"}},
)
async def search_properties(
    response: Response,
    property_type: Optional[PropertyType] = Query(default=None),
    location: Optional[str] = Query(default=None, min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    property_repo: PropertyRepository = Depends(get_property_repository),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> List[Property]:
    if property_type is None and location is None:
        raise ValidationError("At least one of property_type or location is required")

    query = PropertyQuery(property_type=property_type, location=location, limit=limit)
    token = query.cache_token()

    results = property_cache.get_cached_search_results(token)
    response.headers["X-Cache"] = "HIT" if results is not None else "MISS"
    if results is None:
        results = await property_repo.find_properties(query)
        property_cache.cache_search_results(token, results)
    return results


@router.get(
    "/{property_ref}/similar",
    response_model=SimilarPropertiesResult,
    summary="Get Similar Properties",
    description="""
    Ranked list of properties similar to the one being viewed.

    Scoring combines location, type, price, size, amenities, collection and
    developer. When `user_id` is supplied, results are additionally
    re-ranked against that visitor's preferences and activity.
    """,
    responses={
        200: {"description": "Similar properties (possibly empty)"},
        404: {"model": ErrorResponse, "description": "Property not found"},
    },
)
async def get_similar_properties(
    response: Response,
    current_property: Property = Depends(resolve_property),
    limit: Optional[int] = Query(default=None, ge=1, description="Number of properties"),
    user_id: Optional[str] = Query(default=None, min_length=1, description="Visitor identifier"),
    service: SimilarPropertiesService = Depends(get_similar_properties_service),
    personalization: PersonalizationService = Depends(get_personalization_service),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> SimilarPropertiesResult:
    settings = get_settings()
    effective_limit = min(limit or settings.DEFAULT_SIMILAR_LIMIT, settings.MAX_SIMILAR_LIMIT)

    result = await service.get_similar_properties(current_property, user_id, effective_limit)

    # The miss path records the view inside the service
    if user_id and result.cache_hit:
        await personalization.update_preferences(user_id, current_property, InteractionType.VIEW)
    if user_id:
        property_cache.invalidate_user_preferences(user_id)

    response.headers["X-Cache"] = "HIT" if result.cache_hit else "MISS"
    if user_id:
        response.headers["Cache-Control"] = "private, max-age=60"
    else:
        response.headers["Cache-Control"] = "public, max-age=300, stale-while-revalidate=60"

    return result


@router.post(
    "/{property_ref}/interactions",
    response_model=InteractionResponse,
    summary="Record Interaction",
    responses={404: {"model": ErrorResponse, "description": "Property not found"}},
)
async def record_interaction(
    interaction: InteractionRequest = Body(...),
    current_property: Property = Depends(resolve_property),
    personalization: PersonalizationService = Depends(get_personalization_service),
    property_cache: PropertyCacheService = Depends(get_property_cache),
) -> InteractionResponse:
    await personalization.update_preferences(
        interaction.user_id, current_property, interaction.interaction_type
    )
    property_cache.invalidate_user_preferences(interaction.user_id)
    return InteractionResponse(message="User preferences updated successfully")


@router.delete(
    "/{property_ref}/cache",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Invalidate Property Cache",
    description="Called by the property-edit workflow after a property changes.",
)
async def invalidate_property_cache(
    property_ref: str = Path(..., min_length=1),
    property_repo: PropertyRepository = Depends(get_property_repository),
    service: SimilarPropertiesService = Depends(get_similar_properties_service),
) -> Response:
    prop = await property_repo.get_property(property_ref)
    if prop is None:
        service.invalidate_cache(property_ref)
    else:
        service.invalidate_cache(prop.id, prop.slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
