"""Repository implementations package."""
from .memory import InMemoryPropertyRepository, InMemoryUserProfileRepository
from .supabase_repository import SupabasePropertyRepository

__all__ = [
    "InMemoryPropertyRepository",
    "InMemoryUserProfileRepository",
    "SupabasePropertyRepository",
]
