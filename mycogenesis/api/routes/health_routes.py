"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends

from mycogenesis import __version__
from mycogenesis.core.logging import logger
from mycogenesis.engine import ServiceCoordinator
from mycogenesis.schemas.api_schema import HealthResponse, ServiceHealthEntry

from .deps import get_coordinator

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(coordinator: ServiceCoordinator = Depends(get_coordinator)):
    """
    헬스 체크 엔드포인트

    - Sanity / Firebase / 네트워크 상태
    - 캐시 통계
    """
    services: dict[str, ServiceHealthEntry] = {}
    try:
        snapshot = await coordinator.check_service_health()
        for name, entry in snapshot.get("services", {}).items():
            services[name] = ServiceHealthEntry(**entry)
    except Exception as e:
        logger.error(f"[HEALTH] Health check failed: {e}")

    statuses = [entry.status for entry in services.values()]
    if statuses and all(s == "healthy" for s in statuses):
        status = "ok"
    elif any(s == "healthy" for s in statuses):
        status = "degraded"
    else:
        status = "error"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        services=services,
        cache=coordinator.get_cache_stats(),
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "MYCOgenesis 콘텐츠 서비스",
        "version": __version__,
        "docs": "/docs",
    }
