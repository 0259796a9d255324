"""API 엔드포인트 패키지 - export only."""

from .routes import content_router, get_coordinator, health_router, page_router

__all__ = ["content_router", "health_router", "page_router", "get_coordinator"]
