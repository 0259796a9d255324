"""Pydantic 스키마 - export only."""

from .api_schema import (
    CacheClearResponse,
    FAQRatingRequest,
    FAQRatingResponse,
    HealthResponse,
    LoadPerformance,
    OperationError,
    PageContentResponse,
    ServiceHealthEntry,
)

__all__ = [
    "CacheClearResponse",
    "FAQRatingRequest",
    "FAQRatingResponse",
    "HealthResponse",
    "LoadPerformance",
    "OperationError",
    "PageContentResponse",
    "ServiceHealthEntry",
]
