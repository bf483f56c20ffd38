"""API package - FastAPI routes and dependencies."""
from .dependencies import get_similar_properties_service
from .routers import health_router, properties_router, users_router

__all__ = [
    "get_similar_properties_service",
    "health_router",
    "properties_router",
    "users_router",
]
