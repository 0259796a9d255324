"""비즈니스 페이지 컴포넌트 (#business-page-container)

hero → 본문(mainContent) → 사이드바 → 관련 페이지 → CTA 순으로 렌더링합니다.
"""

from __future__ import annotations

from typing import Any, Optional

from markupsafe import Markup

from mycogenesis.core.exceptions import ContentNotFoundException
from mycogenesis.core.logging import logger

from .content_renderer import ContentRenderer
from .seo_manager import SEOManager
from .templating import render_template


class BusinessPageComponent:
    def __init__(self, renderer: Optional[ContentRenderer] = None) -> None:
        self.renderer = renderer or ContentRenderer()
        self.page: Optional[dict[str, Any]] = None
        self.not_found = False
        self.error: Optional[str] = None

    def init(self, page: Optional[dict[str, Any]]) -> "BusinessPageComponent":
        self.page = page
        self.not_found = page is None
        self.error = None
        return self

    async def load(self, coordinator: Any, slug: str) -> "BusinessPageComponent":
        try:
            page = await coordinator.load_business_page(slug)
        except ContentNotFoundException:
            return self.init(None)
        except Exception as e:
            logger.error(f"[BUSINESS] Error loading business page {slug}: {e}")
            self.page = None
            self.error = "We're having trouble loading this page. Please try again later."
            return self
        return self.init(page)

    @property
    def main_content(self) -> list[Any]:
        page = self.page or {}
        return page.get("mainContent") or page.get("content") or []

    @property
    def sidebar(self) -> Optional[dict[str, Any]]:
        """사이드바 정규화 - 블록 배열이면 content로 감쌈"""
        sidebar = (self.page or {}).get("sidebar")
        if isinstance(sidebar, list):
            return {"content": sidebar, "quickLinks": []} if sidebar else None
        if isinstance(sidebar, dict) and sidebar.get("showSidebar", True):
            return sidebar
        return None

    @property
    def call_to_action(self) -> Optional[dict[str, Any]]:
        page = self.page or {}
        cta = page.get("callToAction")
        if isinstance(cta, dict) and (cta.get("heading") or cta.get("buttonText")):
            return cta
        section = page.get("ctaSection")
        if isinstance(section, dict) and section.get("showCta"):
            primary = section.get("primaryButton") or {}
            return {
                "heading": section.get("title") or section.get("heading"),
                "description": section.get("description"),
                "buttonText": primary.get("text"),
                "buttonUrl": primary.get("url"),
            }
        return None

    def render(self) -> Markup:
        return Markup(render_template("business_page.html", component=self, page=self.page or {}))

    def seo(self, seo: Optional[SEOManager] = None) -> SEOManager:
        seo = seo or SEOManager()
        if self.page:
            seo.set_business_page_seo(self.page)
        else:
            seo.set_error_state("404" if self.not_found else "error")
        return seo
