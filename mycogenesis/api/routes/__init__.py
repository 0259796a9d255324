"""API routes package."""

from .content_routes import router as content_router
from .deps import get_coordinator
from .health_routes import router as health_router
from .page_routes import router as page_router

__all__ = ["content_router", "health_router", "page_router", "get_coordinator"]
