"""Content Coordinator - 비즈니스 페이지 / 튜토리얼 / FAQ 로딩

- 타입별 TTL 캐시 (최대 개수 초과 시 가장 오래된 항목 제거)
- 같은 키의 동시 요청은 하나의 Task로 합침
- Sanity 조회는 ErrorResilienceService를 거쳐 재시도/폴백 처리
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import ContentNotFoundException
from mycogenesis.core.logging import logger
from mycogenesis.services.sanity_service import SanityService
from mycogenesis.utils.ttl_cache import TTLCache

from .orchestrator import ContentOrchestrator
from .resilience import ErrorResilienceService, is_offline_placeholder

FAQ_CATEGORIES_KEY = "faq-categories"


def faq_cache_key(category: Optional[str], search_term: Optional[str], limit: int) -> str:
    return f"faqs:{category or 'all'}:{search_term or 'none'}:{limit}"


def usable_fallback(value: Any) -> Any:
    """폴백 경로 결과 - 오프라인 안내 dict는 콘텐츠가 아니므로 None"""
    return None if is_offline_placeholder(value) else value


class ContentCoordinator:
    def __init__(
        self,
        sanity_service: SanityService,
        resilience: ErrorResilienceService,
    ) -> None:
        self.sanity = sanity_service
        self.resilience = resilience
        self.business_pages = TTLCache(settings.business_page_cache_ttl, settings.business_page_cache_max_items)
        self.tutorials = TTLCache(settings.tutorial_cache_ttl, settings.tutorial_cache_max_items)
        self.faqs = TTLCache(settings.faq_cache_ttl, settings.faq_cache_max_items)
        self.categories = TTLCache(settings.faq_cache_ttl)
        self.pending: dict[str, asyncio.Task] = {}

    def register_content_types(self, orchestrator: ContentOrchestrator) -> None:
        """orchestrator에 business-page / tutorial / faq 핸들러 등록"""
        orchestrator.register_content_type("business-page", {
            "load": lambda options: self.load_business_page(
                options["slug"], force_refresh=options.get("force_refresh", False)
            ),
            "preload": self.preload_business_pages,
            "update": self.update_business_page,
        })
        orchestrator.register_content_type("tutorial", {
            "load": lambda options: self.load_tutorial(
                options["slug"], force_refresh=options.get("force_refresh", False)
            ),
            "preload": self.preload_tutorials,
            "update": self.update_tutorial,
        })
        orchestrator.register_content_type("faq", {
            "load": lambda options: self.load_faqs(**options),
            "preload": self.preload_faqs,
            "update": self.update_faqs,
        })

    async def _dedupe(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self.pending.get(key)
        if task is not None:
            return await asyncio.shield(task)

        task = asyncio.ensure_future(factory())
        self.pending[key] = task
        try:
            return await asyncio.shield(task)
        finally:
            self.pending.pop(key, None)

    # ------------------------------------------------------------------
    # 비즈니스 페이지
    # ------------------------------------------------------------------
    async def load_business_page(self, slug: str, force_refresh: bool = False) -> Optional[dict[str, Any]]:
        """비즈니스 페이지 로딩

        Raises:
            ContentNotFoundException: 발행된 페이지가 없을 때
        """
        if not force_refresh:
            cached = self.business_pages.get(slug)
            if cached is not None:
                logger.debug(f"[COORD] Serving business page from cache: {slug}")
                return cached

        return await self._dedupe(f"business-page:{slug}", lambda: self._fetch_business_page(slug))

    async def _fetch_business_page(self, slug: str) -> Optional[dict[str, Any]]:
        async def operation() -> dict[str, Any]:
            page = await self.sanity.get_business_page(slug)
            if not page:
                raise ContentNotFoundException("business-page", slug)
            return page

        context = {"operation": "load-business-page", "contentType": "business-page", "options": {"slug": slug}}
        try:
            page = await self.resilience.execute_with_resilience(operation, context)
        except Exception as e:
            logger.error(f"[COORD] Failed to load business page ({slug}): {e}")
            raise
        if context.get("fallback"):
            return usable_fallback(page)

        self.business_pages.set(slug, page)
        self.resilience.store_fallback_data("business-page", page, {"slug": slug})
        return page

    async def preload_business_pages(self, limit: int = 5) -> list[dict[str, Any]]:
        try:
            pages = await self.sanity.get_business_pages()
        except Exception as e:
            logger.warning(f"[COORD] Failed to preload business pages: {e}")
            return []
        pages = pages[:limit]
        for page in pages:
            if page.get("slug"):
                self.business_pages.set(page["slug"], page)
        return pages

    def update_business_page(self, document: dict[str, Any]) -> bool:
        """캐시에 있는 페이지만 갱신"""
        slug = document.get("slug")
        if isinstance(slug, dict):
            slug = slug.get("current")
        if not slug or slug not in self.business_pages:
            return False
        self.business_pages.set(slug, {**document, "slug": slug})
        logger.info(f"[COORD] Updated cached business page: {slug}")
        return True

    # ------------------------------------------------------------------
    # 튜토리얼
    # ------------------------------------------------------------------
    async def load_tutorial(self, slug: str, force_refresh: bool = False) -> Optional[dict[str, Any]]:
        if not force_refresh:
            cached = self.tutorials.get(slug)
            if cached is not None:
                logger.debug(f"[COORD] Serving tutorial from cache: {slug}")
                return cached

        return await self._dedupe(f"tutorial:{slug}", lambda: self._fetch_tutorial(slug))

    async def _fetch_tutorial(self, slug: str) -> Optional[dict[str, Any]]:
        async def operation() -> dict[str, Any]:
            tutorial = await self.sanity.get_tutorial(slug)
            if not tutorial:
                raise ContentNotFoundException("tutorial", slug)
            return tutorial

        context = {"operation": "load-tutorial", "contentType": "tutorial", "options": {"slug": slug}}
        try:
            tutorial = await self.resilience.execute_with_resilience(operation, context)
        except Exception as e:
            logger.error(f"[COORD] Failed to load tutorial ({slug}): {e}")
            raise
        if context.get("fallback"):
            return usable_fallback(tutorial)

        self.tutorials.set(slug, tutorial)
        self.resilience.store_fallback_data("tutorial", tutorial, {"slug": slug})
        return tutorial

    async def preload_tutorials(
        self,
        limit: int = 5,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        try:
            tutorials = await self.sanity.get_tutorials(limit=limit, category=category, difficulty=difficulty)
        except Exception as e:
            logger.warning(f"[COORD] Failed to preload tutorials: {e}")
            return []
        for tutorial in tutorials:
            if tutorial.get("slug"):
                self.tutorials.set(tutorial["slug"], tutorial)
        return tutorials

    def update_tutorial(self, document: dict[str, Any]) -> bool:
        slug = document.get("slug")
        if isinstance(slug, dict):
            slug = slug.get("current")
        if not slug or slug not in self.tutorials:
            return False
        self.tutorials.set(slug, {**document, "slug": slug})
        logger.info(f"[COORD] Updated cached tutorial: {slug}")
        return True

    # ------------------------------------------------------------------
    # FAQ
    # ------------------------------------------------------------------
    async def load_faqs(
        self,
        category: Optional[str] = None,
        search_term: Optional[str] = None,
        limit: int = 100,
        force_refresh: bool = False,
    ) -> list[dict[str, Any]]:
        cache_key = faq_cache_key(category, search_term, limit)
        if not force_refresh:
            cached = self.faqs.get(cache_key)
            if cached is not None:
                logger.debug(f"[COORD] Serving FAQs from cache: {cache_key}")
                return cached

        faqs = await self._dedupe(cache_key, lambda: self._fetch_faqs(category, search_term, limit))
        return faqs or []

    async def _fetch_faqs(self, category: Optional[str], search_term: Optional[str], limit: int) -> Optional[list]:
        options = {"category": category, "search_term": search_term, "limit": limit}

        async def operation() -> list[dict[str, Any]]:
            faqs = await self.sanity.get_faqs(category=category, search_term=search_term, limit=limit)
            if FAQ_CATEGORIES_KEY not in self.categories:
                self.categories.set(FAQ_CATEGORIES_KEY, await self.sanity.get_faq_categories())
            return faqs

        context = {"operation": "load-faqs", "contentType": "faq", "options": options}
        try:
            faqs = await self.resilience.execute_with_resilience(operation, context)
        except Exception as e:
            logger.error(f"[COORD] Failed to load FAQs: {e}")
            raise
        if context.get("fallback"):
            return usable_fallback(faqs)

        self.faqs.set(faq_cache_key(category, search_term, limit), faqs)
        self.resilience.store_fallback_data("faq", faqs, options)
        return faqs

    async def get_faq_categories(self) -> list[dict[str, Any]]:
        cached = self.categories.get(FAQ_CATEGORIES_KEY)
        if cached is not None:
            return cached
        try:
            categories = await self.sanity.get_faq_categories()
        except Exception as e:
            logger.error(f"[COORD] Failed to load FAQ categories: {e}")
            return []
        self.categories.set(FAQ_CATEGORIES_KEY, categories)
        return categories

    async def preload_faqs(self, category: Optional[str] = None, limit: int = 100) -> list[dict[str, Any]]:
        try:
            return await self.load_faqs(category=category, limit=limit)
        except Exception as e:
            logger.warning(f"[COORD] Failed to preload FAQs: {e}")
            return []

    def update_faqs(self, _document: Any = None) -> int:
        """FAQ는 쿼리 단위로 캐시되므로 전부 무효화"""
        removed = self.faqs.delete_prefix("faqs:")
        self.categories.clear()
        logger.info(f"[COORD] FAQ cache invalidated ({removed} entries)")
        return removed

    async def submit_faq_rating(self, faq_id: str, rating: Any, feedback: str = "") -> bool:
        """faqRating 문서 생성 - 실패해도 예외 없이 False"""
        document = {
            "_type": "faqRating",
            "faq": {"_type": "reference", "_ref": faq_id},
            "rating": rating,
            "feedback": feedback,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.sanity.client.create(document)
        except Exception as e:
            logger.error(f"[COORD] Failed to submit FAQ rating for {faq_id}: {e}")
            return False
        logger.info(f"[COORD] Rating submitted for FAQ {faq_id}")
        return True

    # ------------------------------------------------------------------
    # 캐시 관리
    # ------------------------------------------------------------------
    def get_cache_stats(self) -> dict[str, Any]:
        return {
            "business_pages": {"size": len(self.business_pages), "ttl": self.business_pages.ttl_s},
            "tutorials": {"size": len(self.tutorials), "ttl": self.tutorials.ttl_s},
            "faqs": {"size": len(self.faqs), "ttl": self.faqs.ttl_s},
            "pending": list(self.pending.keys()),
        }

    def clear_cache(self) -> None:
        self.business_pages.clear()
        self.tutorials.clear()
        self.faqs.clear()
        self.categories.clear()
        logger.info("[COORD] Coordinator caches cleared")
