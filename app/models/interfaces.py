"""
Repository interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts that data access implementations must follow.
"""
from typing import List, Optional, Protocol, runtime_checkable

from app.models.schemas import Property, PropertyQuery, UserBehavior, UserPreference


@runtime_checkable
class PropertyRepository(Protocol):
    """
    Interface for read-only property datastore access.
    Production: Supabase (Postgres) implementation.
    Testing: In-memory catalogue.
    """

    async def get_property(self, property_ref: str) -> Optional[Property]:
        """
        Fetch a single active property.

        Args:
            property_ref: Property id or slug

        Returns:
            Property if found, None otherwise
        """
        ...

    async def find_properties(self, query: PropertyQuery) -> List[Property]:
        """
        Fetch properties matching the query filters.

        Args:
            query: Equality/price filters and row limit

        Returns:
            Matching properties (may be empty)
        """
        ...


@runtime_checkable
class UserProfileRepository(Protocol):
    """
    Key-value store for per-user personalization state.
    The in-memory map is the default; a durable store can replace it.
    """

    async def get_preferences(self, user_id: str) -> Optional[UserPreference]:
        ...

    async def save_preferences(self, preferences: UserPreference) -> None:
        ...

    async def get_behavior(self, user_id: str) -> Optional[UserBehavior]:
        ...

    async def save_behavior(self, behavior: UserBehavior) -> None:
        ...

    async def delete(self, user_id: str) -> bool:
        """
        Remove both records of a user.

        Returns:
            True if anything was removed
        """
        ...
