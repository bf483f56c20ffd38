"""
Domain models using Pydantic.
All data structures for the property recommendation engine.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enumerations
# =============================================================================


class PropertyType(str, Enum):
    HOUSE = "House"
    APARTMENT = "Apartment"
    COMMERCIAL = "Commercial"
    LAND = "Land"
    VILLA = "Villa"
    PENTHOUSE = "Penthouse"


class PropertyCollection(str, Enum):
    NEWLY_LAUNCHED = "Newly Launched"
    FEATURED = "Featured"
    READY_TO_MOVE = "Ready to Move"
    UNDER_CONSTRUCTION = "Under Construction"


class InteractionType(str, Enum):
    """Interaction events that feed the personalization layer."""

    VIEW = "view"
    FAVORITE = "favorite"
    SEARCH = "search"
    CONTACT = "contact"


# =============================================================================
# Property (owned by the external datastore)
# =============================================================================


class PropertyConfiguration(BaseModel):
    """One unit configuration (BHK variant) of a property."""

    id: Optional[str] = None
    bhk: Optional[int] = None
    price: float = Field(default=0, description="Price, 0 when unknown")
    area: float = Field(default=0, description="Carpet area, 0 when unknown")
    bedrooms: int = 0
    bathrooms: int = 0
    ready_by: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("price", "area", "bedrooms", "bathrooms", mode="before")
    @classmethod
    def _null_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class PropertyImage(BaseModel):
    id: str
    image_url: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class Developer(BaseModel):
    id: str
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class Property(BaseModel):
    """
    Property record as returned by the datastore.
    Read-only for the recommendation engine.
    """

    id: str = Field(..., description="Unique property identifier")
    slug: Optional[str] = Field(default=None, description="URL slug")
    title: str = Field(default="", description="Listing title")
    property_type: PropertyType
    property_collection: PropertyCollection
    location: str = Field(default="", description="Location name")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    amenities: List[str] = Field(default_factory=list)
    property_configurations: List[PropertyConfiguration] = Field(default_factory=list)
    property_images: List[PropertyImage] = Field(default_factory=list)
    developer: Optional[Developer] = None
    status: str = "active"

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator(
        "amenities", "property_configurations", "property_images", mode="before"
    )
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def lowest_price(self) -> Optional[float]:
        """Lowest positive configuration price, None if unpriced."""
        prices = [c.price for c in self.property_configurations if c.price > 0]
        return min(prices) if prices else None

    @property
    def average_area(self) -> Optional[float]:
        """Mean positive configuration area, None if unknown."""
        areas = [c.area for c in self.property_configurations if c.area > 0]
        return sum(areas) / len(areas) if areas else None


class PropertyQuery(BaseModel):
    """Filters for a single datastore query (one retrieval tier)."""

    status: str = "active"
    exclude_id: Optional[str] = None
    property_type: Optional[PropertyType] = None
    location: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    limit: int = Field(default=18, ge=1)

    def matches(self, prop: Property) -> bool:
        """Evaluate the filters against a property in memory."""
        if prop.status != self.status:
            return False
        if self.exclude_id is not None and prop.id == self.exclude_id:
            return False
        if self.property_type is not None and prop.property_type != self.property_type:
            return False
        if self.location is not None and prop.location != self.location:
            return False
        if self.min_price is not None or self.max_price is not None:
            price = prop.lowest_price
            if price is None:
                return False
            if self.min_price is not None and price < self.min_price:
                return False
            if self.max_price is not None and price > self.max_price:
                return False
        return True

    def cache_token(self) -> str:
        """Stable textual form used to key cached search results."""
        return self.model_dump_json(exclude={"status"}, exclude_none=True)


# =============================================================================
# Scoring
# =============================================================================


class ApiModel(BaseModel):
    """Base for models serialised to the rendering layer (camelCase JSON)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SimilarityFactors(ApiModel):
    """Per-factor sub-scores, each in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    location: float
    type: float
    price: float
    size: float
    amenities: float
    collection: float
    developer: float


class SimilarityScore(ApiModel):
    """Aggregate similarity of a candidate to the current property."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    score: float = Field(..., ge=0, le=1)
    factors: SimilarityFactors


class PersonalizationFactors(ApiModel):
    preference: float
    behavior: float
    similarity: float


class PersonalizedRecommendation(ApiModel):
    property_id: str
    score: float
    reason: str
    factors: PersonalizationFactors


# =============================================================================
# Personalization state
# =============================================================================


class PriceRange(BaseModel):
    """Observed price range, unset until the first priced interaction."""

    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, price: float) -> bool:
        if self.min is None or self.max is None:
            return False
        return self.min <= price <= self.max


class UserPreference(BaseModel):
    """Accumulated declared/observed preferences of a user."""

    user_id: str
    property_types: List[str] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=PriceRange)
    locations: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    collections: List[str] = Field(default_factory=list)
    developers: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)


class UserBehavior(BaseModel):
    """Bounded interaction history of a user."""

    user_id: str
    viewed_properties: List[str] = Field(default_factory=list)
    favorited_properties: List[str] = Field(default_factory=list)
    searched_locations: List[str] = Field(default_factory=list)
    searched_types: List[str] = Field(default_factory=list)
    last_activity: datetime = Field(default_factory=utcnow)


class UserProfile(BaseModel):
    """Preferences and behavior of one user, as exposed by the API."""

    user_id: str
    preferences: Optional[UserPreference] = None
    behavior: Optional[UserBehavior] = None


# =============================================================================
# Cache
# =============================================================================


class CacheStats(ApiModel):
    hits: int = 0
    misses: int = 0
    size: int = 0
    hit_rate: float = 0.0


class CachedSimilarProperties(BaseModel):
    """Payload stored under `similar:<property_id>`."""

    properties: List[Property]
    scores: List[SimilarityScore]
    limit: int = Field(..., ge=0, description="Limit the set was ranked for")


# =============================================================================
# API Models (External)
# =============================================================================


class RecommendationMetadata(ApiModel):
    total_candidates: int
    processing_time: float = Field(..., description="Wall-clock time in ms")
    cache_stats: CacheStats


class SimilarPropertiesResult(ApiModel):
    """Similar-properties response consumed by the property detail page."""

    properties: List[Property]
    scores: List[SimilarityScore]
    personalized_scores: List[PersonalizedRecommendation]
    cache_hit: bool
    algorithm: Literal["cached", "similarity", "fallback"]
    metadata: RecommendationMetadata


class InteractionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    interaction_type: InteractionType


class InteractionResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: Dict[str, Any] = Field(..., description="Error details")
