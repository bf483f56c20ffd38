"""API routers."""
from .health import router as health_router
from .properties import router as properties_router
from .users import router as users_router

__all__ = ["health_router", "properties_router", "users_router"]
