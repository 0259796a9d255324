"""Page Routes (HTML) - 서버 렌더링 페이지

컴포넌트가 HTML 조각을 만들고 SEOManager가 <head>를 채웁니다.
로드 실패는 컴포넌트의 오류/404 상태로 렌더링되며 상태 코드에 반영됩니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from markupsafe import Markup

from mycogenesis.components import (
    BusinessPageComponent,
    FAQComponent,
    SEOManager,
    TutorialComponent,
    render_blog_cards,
    render_featured_products,
    render_page,
)
from mycogenesis.core.logging import logger
from mycogenesis.engine import ServiceCoordinator

from .deps import get_coordinator

router = APIRouter(prefix="/pages", tags=["pages"])


def _html(coordinator: ServiceCoordinator, seo: SEOManager, body: Markup, status_code: int = 200) -> HTMLResponse:
    document = render_page(seo.render_meta_tags(), body, coordinator.notifier.drain())
    return HTMLResponse(content=document, status_code=status_code)


def _status_for(component) -> int:
    if component.error:
        return 503
    return 404 if component.not_found else 200


@router.get("/business/{slug}", response_class=HTMLResponse)
async def business_page(slug: str, coordinator: ServiceCoordinator = Depends(get_coordinator)):
    component = await BusinessPageComponent().load(coordinator.content, slug)
    return _html(coordinator, component.seo(), component.render(), _status_for(component))


@router.get("/faq", response_class=HTMLResponse)
async def faq_page(
    category: Optional[str] = None,
    search: Optional[str] = None,
    coordinator: ServiceCoordinator = Depends(get_coordinator),
):
    component = await FAQComponent().load(coordinator.content, category=category, search_term=search)
    return _html(coordinator, component.seo(), component.render(), 503 if component.error else 200)


@router.get("/tutorials/{slug}", response_class=HTMLResponse)
async def tutorial_page(slug: str, coordinator: ServiceCoordinator = Depends(get_coordinator)):
    component = await TutorialComponent(storage=coordinator.storage).load(coordinator.content, slug)
    return _html(coordinator, component.seo(), component.render(), _status_for(component))


@router.get("/home", response_class=HTMLResponse)
async def home_page(coordinator: ServiceCoordinator = Depends(get_coordinator)):
    result = await coordinator.orchestrator.load_page_content("home")
    if not result.success:
        logger.warning(f"[PAGES] Home page loaded with critical failures: {result.errors}")

    seo = SEOManager()
    seo.set_basic_seo(
        title=f"{seo.site_name} | Gourmet & Medicinal Mushrooms",
        description="Fresh gourmet mushrooms, grow guides and cultivation tutorials.",
        image=f"{seo.base_url}/images/og-home.jpg",
        url=f"{seo.base_url}/",
    )
    body = Markup("\n").join([
        render_featured_products(result.data.get("featuredProducts")),
        render_blog_cards(result.data.get("featuredBlogPosts")),
    ])
    return _html(coordinator, seo, body)
