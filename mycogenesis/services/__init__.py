"""콘텐츠 어댑터 서비스 - export only."""

from .analytics_service import AnalyticsService
from .public_content_service import PublicContentService
from .sanity_service import SanityService

__all__ = ["AnalyticsService", "PublicContentService", "SanityService"]
