"""Service Coordinator - 전체 서비스 그래프 구성 및 수명 주기

clients → services → resilience → orchestrator → coordinator 순으로 생성하고
initialize()는 같은 의존 순서로 초기화합니다.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from mycogenesis.clients.firestore import FirestoreClient
from mycogenesis.clients.sanity import SanityClient
from mycogenesis.core.logging import logger
from mycogenesis.core.storage import KeyValueStorage, create_storage
from mycogenesis.services.analytics_service import AnalyticsService
from mycogenesis.services.public_content_service import PublicContentService
from mycogenesis.services.sanity_service import SanityService

from .coordinator import ContentCoordinator
from .notifications import Notifier
from .orchestrator import ContentOrchestrator
from .resilience import ErrorResilienceService


class ServiceCoordinator:
    def __init__(
        self,
        sanity_client: Optional[SanityClient] = None,
        firestore_client: Optional[FirestoreClient] = None,
        storage: Optional[KeyValueStorage] = None,
    ) -> None:
        self.sanity_client = sanity_client or SanityClient()
        self.firestore_client = firestore_client or FirestoreClient()
        self.storage = storage if storage is not None else create_storage()
        self.notifier = Notifier()

        # 상위 계층이 실패를 분류할 수 있도록 strict 모드
        self.sanity = SanityService(self.sanity_client, strict=True)
        self.public_content = PublicContentService(self.firestore_client)
        self.analytics = AnalyticsService(self.firestore_client)

        self.resilience = ErrorResilienceService(
            storage=self.storage,
            notifier=self.notifier,
            sanity_service=self.sanity,
            firestore_client=self.firestore_client,
        )
        self.orchestrator = ContentOrchestrator(
            self.sanity,
            public_content_service=self.public_content,
            analytics_service=self.analytics,
        )
        self.content = ContentCoordinator(self.sanity, self.resilience)

        self.initialized = False
        self.health_status: dict[str, Any] = {}

    async def initialize(self) -> "ServiceCoordinator":
        if self.initialized:
            return self

        logger.info("[COORD] Initializing services...")
        await self.resilience.initialize()
        self.health_status["error_resilience"] = "healthy"

        self.resilience.on_reconnect(self.orchestrator.clear_cache)
        self.content.register_content_types(self.orchestrator)
        self.health_status["content"] = "healthy"

        self.initialized = True
        logger.info("[COORD] All services initialized")
        return self

    async def check_service_health(self) -> dict[str, Any]:
        await self.resilience.perform_health_checks()
        services = self.resilience.get_service_health()
        content_stats = self.orchestrator.get_cache_stats()
        self.health_status = {
            "error_resilience": services["connectivity"]["status"],
            "content": "healthy" if content_stats["size"] > 0 else "warning",
            "services": services,
            "last_check": time.time(),
        }
        return self.health_status

    def get_cache_stats(self) -> dict[str, Any]:
        return {
            "orchestrator": self.orchestrator.get_cache_stats(),
            "coordinator": self.content.get_cache_stats(),
            "cms": {"size": len(self.sanity.cache)},
        }

    def clear_caches(self) -> None:
        self.orchestrator.clear_cache()
        self.content.clear_cache()
        self.sanity.clear_cache()

    async def shutdown(self) -> None:
        self.resilience.shutdown()
        self.clear_caches()
        self.initialized = False
        logger.info("[COORD] Services shut down")


_service_coordinator: Optional[ServiceCoordinator] = None


def get_service_coordinator() -> ServiceCoordinator:
    """싱글톤 ServiceCoordinator"""
    global _service_coordinator
    if _service_coordinator is None:
        _service_coordinator = ServiceCoordinator()
    return _service_coordinator


def reset_service_coordinator() -> None:
    global _service_coordinator
    _service_coordinator = None
