"""Content Routes (JSON) - Engine Layer로 위임

HTTP 요청을 ContentOrchestrator / ContentCoordinator 호출로 변환하는 역할만 수행합니다.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from mycogenesis.core.exceptions import ContentNotFoundException
from mycogenesis.core.logging import logger
from mycogenesis.engine import ServiceCoordinator
from mycogenesis.schemas.api_schema import (
    CacheClearResponse,
    FAQRatingRequest,
    FAQRatingResponse,
    PageContentResponse,
)

from .deps import get_coordinator

router = APIRouter(prefix="/api/v1", tags=["content"])


# 정수/불리언으로 바꾸는 옵션 키 (slug, category 등은 항상 문자열)
INT_OPTIONS = ("limit",)
BOOL_OPTIONS = ("featured", "force_refresh")


def _coerce(key: str, value: str) -> Any:
    """쿼리 문자열 → 옵션 값 (알려진 키만 변환)"""
    if key in INT_OPTIONS and value.isdigit():
        return int(value)
    if key in BOOL_OPTIONS and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def options_from_query(request: Request) -> dict[str, Any]:
    return {key: _coerce(key, value) for key, value in request.query_params.items()}


@router.get("/pages/{page_type}", response_model=PageContentResponse, response_model_by_alias=True)
async def get_page_content(
    page_type: str,
    request: Request,
    coordinator: ServiceCoordinator = Depends(get_coordinator),
):
    """페이지 타입별 병렬 콘텐츠 로드

    쿼리 파라미터는 그대로 operation 옵션이 됩니다 (slug, limit, category ...).
    """
    options = options_from_query(request)
    logger.info(f"[API] Page content request: {page_type} options={sorted(options)}")
    result = await coordinator.orchestrator.load_page_content(page_type, options)
    return result.to_dict()


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(coordinator: ServiceCoordinator = Depends(get_coordinator)):
    coordinator.clear_caches()
    return CacheClearResponse(status="cleared", cleared=["orchestrator", "coordinator", "cms"])


@router.get("/business/{slug}")
async def get_business_page(slug: str, coordinator: ServiceCoordinator = Depends(get_coordinator)):
    try:
        page = await coordinator.content.load_business_page(slug)
    except ContentNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    if page is None:
        raise HTTPException(status_code=503, detail="Business page temporarily unavailable")
    return page


@router.get("/tutorials/{slug}")
async def get_tutorial(slug: str, coordinator: ServiceCoordinator = Depends(get_coordinator)):
    try:
        tutorial = await coordinator.content.load_tutorial(slug)
    except ContentNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    if tutorial is None:
        raise HTTPException(status_code=503, detail="Tutorial temporarily unavailable")
    return tutorial


@router.get("/faqs")
async def get_faqs(
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    coordinator: ServiceCoordinator = Depends(get_coordinator),
):
    try:
        faqs = await coordinator.content.load_faqs(category=category, search_term=search, limit=limit)
    except Exception as e:
        logger.error(f"[API] FAQ load failed: {e}")
        raise HTTPException(status_code=503, detail="FAQs temporarily unavailable")
    return {"faqs": faqs, "total": len(faqs)}


@router.get("/faqs/categories")
async def get_faq_categories(coordinator: ServiceCoordinator = Depends(get_coordinator)):
    return {"categories": await coordinator.content.get_faq_categories()}


@router.post("/faqs/{faq_id}/rating", response_model=FAQRatingResponse)
async def rate_faq(
    faq_id: str,
    request: FAQRatingRequest,
    coordinator: ServiceCoordinator = Depends(get_coordinator),
):
    ok = await coordinator.content.submit_faq_rating(faq_id, 1 if request.helpful else 0, request.feedback)
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to submit rating")
    return FAQRatingResponse(status="submitted", faq_id=faq_id)
