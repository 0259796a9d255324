"""FAQ 컴포넌트 - 카테고리 필터 / 검색 / 펼침 상태 / 평가

상태(선택 카테고리, 검색어, 펼친 항목)를 보관하고 render()로 #faq-container HTML을 생성합니다.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from markupsafe import Markup, escape

from mycogenesis.core.logging import logger

from .content_renderer import ContentRenderer
from .seo_manager import SEOManager
from .templating import render_template

ALL_CATEGORIES = "all"

CONTENT_TYPE_ICONS = {
    "blogPost": "📝",
    "tutorialGuide": "📚",
    "researchArticle": "🔬",
    "businessPage": "🏢",
    "product": "🍄",
}


def faq_in_category(faq: dict[str, Any], slug: str) -> bool:
    return faq.get("category") == slug or slug in (faq.get("categories") or [])


class FAQComponent:
    def __init__(self, renderer: Optional[ContentRenderer] = None, coordinator: Any = None) -> None:
        self.renderer = renderer or ContentRenderer()
        self.coordinator = coordinator
        self.faqs: list[dict[str, Any]] = []
        self.categories: list[dict[str, Any]] = []
        self.filtered_faqs: list[dict[str, Any]] = []
        self.expanded_items: set[str] = set()
        self.selected_category = ALL_CATEGORIES
        self.search_query = ""
        self.error: Optional[str] = None
        self.feedback: Optional[str] = None

    def init(self, faqs: Optional[list[dict[str, Any]]], categories: Optional[list[dict[str, Any]]]) -> "FAQComponent":
        self.faqs = list(faqs or [])
        self.categories = list(categories or [])
        self.error = None
        self.apply_filters()
        return self

    async def load(
        self,
        coordinator: Any = None,
        category: Optional[str] = None,
        search_term: Optional[str] = None,
    ) -> "FAQComponent":
        """coordinator로 FAQ + 카테고리를 읽어 init (실패 시 error 상태)"""
        coordinator = coordinator or self.coordinator
        self.coordinator = coordinator
        try:
            faqs = await coordinator.load_faqs()
            categories = await coordinator.get_faq_categories()
        except Exception as e:
            logger.error(f"[FAQ] Error loading FAQs: {e}")
            self.error = "We're having trouble loading the FAQ section. Please try again later."
            return self

        self.init(faqs, categories)
        if category:
            self.filter_by_category(category)
        if search_term:
            self.search_faqs(search_term)
        return self

    # ------------------------------------------------------------------
    # 필터 / 검색
    # ------------------------------------------------------------------
    def filter_by_category(self, slug: str) -> list[dict[str, Any]]:
        self.selected_category = slug or ALL_CATEGORIES
        return self.apply_filters()

    def search_faqs(self, query: str) -> list[dict[str, Any]]:
        self.search_query = (query or "").lower().strip()
        return self.apply_filters()

    def clear_filters(self) -> list[dict[str, Any]]:
        self.selected_category = ALL_CATEGORIES
        self.search_query = ""
        return self.apply_filters()

    def _search_text(self, faq: dict[str, Any]) -> str:
        parts = [faq.get("question") or ""]
        parts.extend(faq.get("keywords") or [])
        parts.extend(self.renderer.extract_text(faq.get("answer")))
        return " ".join(parts).lower()

    def apply_filters(self) -> list[dict[str, Any]]:
        filtered = list(self.faqs)
        if self.selected_category != ALL_CATEGORIES:
            filtered = [f for f in filtered if faq_in_category(f, self.selected_category)]
        if self.search_query:
            filtered = [f for f in filtered if self.search_query in self._search_text(f)]
        self.filtered_faqs = filtered
        return filtered

    # ------------------------------------------------------------------
    # 상호작용
    # ------------------------------------------------------------------
    def toggle_expanded(self, faq_id: str) -> bool:
        """펼침 상태 토글 - 토글 후 펼쳐져 있으면 True"""
        if faq_id in self.expanded_items:
            self.expanded_items.discard(faq_id)
            return False
        self.expanded_items.add(faq_id)
        return True

    async def rate_faq(self, faq_id: str, helpful: bool, feedback: str = "") -> bool:
        logger.info(f"[FAQ] FAQ {faq_id} rated as {'helpful' if helpful else 'not helpful'}")
        self.feedback = "Thanks for your feedback!" if helpful else "We'll work to improve this answer."
        if self.coordinator is None:
            return False
        return await self.coordinator.submit_faq_rating(faq_id, 1 if helpful else 0, feedback)

    # ------------------------------------------------------------------
    # 렌더링
    # ------------------------------------------------------------------
    def get_category_name(self, slug: str) -> str:
        category = next((c for c in self.categories if c.get("slug") == slug), None)
        if category is None:
            return slug
        return category.get("title") or category.get("name") or slug

    def highlight(self, text: Optional[str]) -> Markup:
        escaped = str(escape(text or ""))
        if not self.search_query:
            return Markup(escaped)
        pattern = re.compile(re.escape(str(escape(self.search_query))), re.IGNORECASE)
        return Markup(pattern.sub(lambda m: f'<mark class="bg-yellow-200">{m.group(0)}</mark>', escaped))

    def grouped_faqs(self) -> dict[str, list[dict[str, Any]]]:
        """priority별 그룹 (priority 없는 항목은 medium)"""
        groups: dict[str, list[dict[str, Any]]] = {"high": [], "medium": [], "low": []}
        for faq in self.filtered_faqs:
            priority = faq.get("priority")
            groups[priority if priority in groups else "medium"].append(faq)
        return groups

    def category_counts(self) -> dict[str, int]:
        return {
            c.get("slug"): sum(1 for f in self.faqs if faq_in_category(f, c.get("slug")))
            for c in self.categories
        }

    def render(self) -> Markup:
        return Markup(render_template(
            "faq.html",
            component=self,
            groups=self.grouped_faqs(),
            counts=self.category_counts(),
            icons=CONTENT_TYPE_ICONS,
        ))

    def seo(self, seo: Optional[SEOManager] = None) -> SEOManager:
        seo = seo or SEOManager()
        seo.set_faq_seo(
            self.filtered_faqs,
            self.search_query or None,
            None if self.selected_category == ALL_CATEGORIES else self.selected_category,
        )
        return seo
