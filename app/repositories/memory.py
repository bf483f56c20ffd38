"""
In-memory repository implementations.
Used for prototyping and testing.
Production replaces the property catalogue with the Supabase repository.
"""
from typing import Dict, Iterable, List, Optional

from app.models.schemas import (
    Developer,
    Property,
    PropertyCollection,
    PropertyConfiguration,
    PropertyQuery,
    PropertyType,
    UserBehavior,
    UserPreference,
)


class InMemoryPropertyRepository:
    """
    In-memory implementation of PropertyRepository.
    Simulates the hosted property datastore.
    """

    def __init__(self, properties: Optional[Iterable[Property]] = None) -> None:
        self._properties: Dict[str, Property] = {}
        if properties is None:
            self._initialize_mock_data()
        else:
            for prop in properties:
                self.add(prop)

    def add(self, prop: Property) -> None:
        self._properties[prop.id] = prop

    def _initialize_mock_data(self) -> None:
        """Load a small demo catalogue."""
        prestige = Developer(id="dev-prestige", name="Prestige Group")
        sobha = Developer(id="dev-sobha", name="Sobha Limited")

        def config(price: float, area: float, bedrooms: int) -> PropertyConfiguration:
            return PropertyConfiguration(
                bhk=bedrooms, price=price, area=area, bedrooms=bedrooms, bathrooms=bedrooms
            )

        catalogue = [
            Property(
                id="p1",
                slug="prestige-lakeside-whitefield",
                title="Prestige Lakeside Habitat",
                property_type=PropertyType.APARTMENT,
                property_collection=PropertyCollection.FEATURED,
                location="Whitefield",
                latitude=12.9698,
                longitude=77.7500,
                amenities=["Gym", "Swimming Pool", "Clubhouse", "Power Backup"],
                property_configurations=[config(9_500_000, 1250, 2), config(13_500_000, 1750, 3)],
                developer=prestige,
            ),
            Property(
                id="p2",
                slug="prestige-shantiniketan-whitefield",
                title="Prestige Shantiniketan",
                property_type=PropertyType.APARTMENT,
                property_collection=PropertyCollection.READY_TO_MOVE,
                location="Whitefield",
                latitude=12.9890,
                longitude=77.7280,
                amenities=["Gym", "Swimming Pool", "Clubhouse"],
                property_configurations=[config(10_200_000, 1300, 2)],
                developer=prestige,
            ),
            Property(
                id="p3",
                slug="sobha-dream-acres-whitefield",
                title="Sobha Dream Acres",
                property_type=PropertyType.APARTMENT,
                property_collection=PropertyCollection.NEWLY_LAUNCHED,
                location="Whitefield",
                latitude=12.9560,
                longitude=77.7010,
                amenities=["Gym", "Jogging Track", "Power Backup"],
                property_configurations=[config(8_800_000, 1150, 2)],
                developer=sobha,
            ),
            Property(
                id="p4",
                slug="sobha-royal-pavilion-sarjapur",
                title="Sobha Royal Pavilion",
                property_type=PropertyType.APARTMENT,
                property_collection=PropertyCollection.UNDER_CONSTRUCTION,
                location="Sarjapur Road",
                latitude=12.9100,
                longitude=77.6860,
                amenities=["Swimming Pool", "Clubhouse", "Tennis Court"],
                property_configurations=[config(11_000_000, 1400, 3)],
                developer=sobha,
            ),
            Property(
                id="p5",
                slug="prestige-golfshire-villa",
                title="Prestige Golfshire Villas",
                property_type=PropertyType.VILLA,
                property_collection=PropertyCollection.FEATURED,
                location="Whitefield",
                latitude=12.9750,
                longitude=77.7400,
                amenities=["Private Garden", "Swimming Pool", "Clubhouse"],
                property_configurations=[config(42_000_000, 4200, 4)],
                developer=prestige,
            ),
            Property(
                id="p6",
                slug="skyline-penthouse-indiranagar",
                title="Skyline Penthouse",
                property_type=PropertyType.PENTHOUSE,
                property_collection=PropertyCollection.READY_TO_MOVE,
                location="Indiranagar",
                latitude=12.9784,
                longitude=77.6408,
                amenities=["Gym", "Private Terrace", "Power Backup"],
                property_configurations=[config(35_000_000, 3000, 4)],
            ),
            Property(
                id="p7",
                slug="tech-park-office-whitefield",
                title="Tech Park Office Floor",
                property_type=PropertyType.COMMERCIAL,
                property_collection=PropertyCollection.READY_TO_MOVE,
                location="Whitefield",
                latitude=12.9850,
                longitude=77.7350,
                amenities=["Power Backup", "Parking"],
                property_configurations=[config(60_000_000, 8000, 0)],
            ),
            Property(
                id="p8",
                slug="farm-plot-devanahalli",
                title="Devanahalli Farm Plot",
                property_type=PropertyType.LAND,
                property_collection=PropertyCollection.NEWLY_LAUNCHED,
                location="Devanahalli",
                latitude=13.2437,
                longitude=77.7172,
                property_configurations=[config(4_500_000, 10890, 0)],
            ),
        ]
        for prop in catalogue:
            self.add(prop)

    async def get_property(self, property_ref: str) -> Optional[Property]:
        """Fetch an active property by id or slug."""
        prop = self._properties.get(property_ref)
        if prop is None:
            prop = next(
                (p for p in self._properties.values() if p.slug == property_ref), None
            )
        if prop is None or prop.status != "active":
            return None
        return prop

    async def find_properties(self, query: PropertyQuery) -> List[Property]:
        """Fetch properties matching the query filters."""
        matches = [p for p in self._properties.values() if query.matches(p)]
        return matches[: query.limit]


class InMemoryUserProfileRepository:
    """
    In-memory implementation of UserProfileRepository.
    State lives for the lifetime of the process only.
    """

    def __init__(self) -> None:
        self._preferences: Dict[str, UserPreference] = {}
        self._behaviors: Dict[str, UserBehavior] = {}

    async def get_preferences(self, user_id: str) -> Optional[UserPreference]:
        return self._preferences.get(user_id)

    async def save_preferences(self, preferences: UserPreference) -> None:
        self._preferences[preferences.user_id] = preferences

    async def get_behavior(self, user_id: str) -> Optional[UserBehavior]:
        return self._behaviors.get(user_id)

    async def save_behavior(self, behavior: UserBehavior) -> None:
        self._behaviors[behavior.user_id] = behavior

    async def delete(self, user_id: str) -> bool:
        had_preferences = self._preferences.pop(user_id, None) is not None
        had_behavior = self._behaviors.pop(user_id, None) is not None
        return had_preferences or had_behavior
