"""Content Orchestrator - 페이지 단위 병렬 로딩 + 캐시

load_page_content(page_type, options):
    1. 캐시 확인 (TTL 내면 operation 실행 없이 반환)
    2. 같은 키로 로딩 중이면 기존 Task를 함께 기다림
    3. page_type별 operation 테이블을 병렬 실행 (operation마다 타임아웃 + 재시도)
    4. 결과 병합 - 실패한 operation은 fallback 값으로 대체
    5. 결과 캐시
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import ContentTypeException, OperationTimeoutException
from mycogenesis.core.logging import logger
from mycogenesis.services.analytics_service import (
    BLOG_VIEWS,
    PAGE_VIEWS,
    PRODUCT_VIEWS,
    AnalyticsService,
    empty_views,
)
from mycogenesis.services.public_content_service import PublicContentService
from mycogenesis.services.sanity_service import SanityService
from mycogenesis.utils.ttl_cache import TTLCache, make_cache_key

from .result import LoadPerformance, OperationResult, PageContentResult
from .retry import NON_RETRYABLE

OperationFn = Callable[[], Awaitable[Any]]

PAGE_TYPES = ("home", "blog", "product-catalog", "single-product", "single-blog-post")

# 실패한 operation 대체 값 (없는 이름은 None)
OPERATION_FALLBACKS: dict[str, Callable[[], Any]] = {
    "featuredProducts": list,
    "blogPosts": list,
    "featuredBlogPosts": list,
    "featuredPosts": list,
    "categories": list,
    "products": list,
    "relatedProducts": list,
    "relatedPosts": list,
    "product": lambda: None,
    "blogPost": lambda: None,
    "pageAnalytics": empty_views,
    "productViews": empty_views,
    "postViews": empty_views,
}


def fallback_for_operation(name: str) -> Any:
    factory = OPERATION_FALLBACKS.get(name)
    return factory() if factory else None


@dataclass
class PageOperation:
    name: str
    fn: OperationFn
    required: bool = False


@dataclass
class ContentTypeHandler:
    load: Callable[[dict[str, Any]], Any]
    preload: Callable[..., Any]
    update: Callable[[Any], Any]
    registered: float = field(default_factory=time.time)


async def _noop(*_args: Any, **_kwargs: Any) -> None:
    return None


class ContentOrchestrator:
    """페이지 콘텐츠 오케스트레이터

    Attributes:
        cache: 페이지 결과 TTL 캐시
        loading: 로딩 중인 키 → asyncio.Task
        content_types: 등록된 content type 핸들러
    """

    def __init__(
        self,
        sanity_service: SanityService,
        public_content_service: Optional[PublicContentService] = None,
        analytics_service: Optional[AnalyticsService] = None,
        cache_ttl_s: Optional[float] = None,
        cache_max_items: Optional[int] = None,
        operation_timeout_s: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay_s: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sanity = sanity_service
        self.public_content = public_content_service
        self.analytics = analytics_service
        self.cache = TTLCache(
            cache_ttl_s or settings.content_cache_ttl,
            cache_max_items or settings.content_cache_max_items,
            clock=clock,
        )
        self.operation_timeout_s = operation_timeout_s or settings.orchestrator_operation_timeout_s
        self.retry_attempts = retry_attempts or settings.orchestrator_retry_attempts
        self.retry_delay_s = settings.orchestrator_retry_delay_s if retry_delay_s is None else retry_delay_s
        self.loading: dict[str, asyncio.Task] = {}
        self.content_types: dict[str, ContentTypeHandler] = {}
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # 페이지 로딩
    # ------------------------------------------------------------------
    async def load_page_content(self, page_type: str, options: Optional[dict[str, Any]] = None) -> PageContentResult:
        options = options or {}
        cache_key = make_cache_key(page_type, options)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"[ORCH] Returning cached content for: {page_type}")
            return self._copy_cached(cached)

        task = self.loading.get(cache_key)
        if task is not None:
            logger.debug(f"[ORCH] Content already loading, awaiting existing task: {cache_key}")
            return await asyncio.shield(task)

        task = asyncio.ensure_future(self._perform_parallel_load(page_type, options))
        self.loading[cache_key] = task
        try:
            result = await asyncio.shield(task)
            self.cache.set(cache_key, copy.deepcopy(result))
            return result
        except Exception as e:
            logger.error(f"[ORCH] Error loading content for {page_type}: {e}")
            raise
        finally:
            self.loading.pop(cache_key, None)

    @staticmethod
    def _copy_cached(cached: PageContentResult) -> PageContentResult:
        """캐시 항목의 사본 (호출자가 data/errors를 바꿔도 캐시는 그대로)"""
        return dataclasses.replace(
            cached,
            data=copy.deepcopy(cached.data),
            errors=copy.deepcopy(cached.errors),
            performance=dataclasses.replace(cached.performance),
            from_cache=True,
        )

    async def _perform_parallel_load(self, page_type: str, options: dict[str, Any]) -> PageContentResult:
        logger.info(f"[ORCH] Starting parallel content load for: {page_type}")
        start = self._clock()
        try:
            operations = self.get_operations_for_page_type(page_type, options)
            results = await asyncio.gather(*(self.execute_with_retry(op) for op in operations))
            merged = self.process_results(results)
        except Exception as e:
            logger.error(f"[ORCH] Parallel load failed for {page_type}: {e}")
            return self.get_fallback_content(page_type)

        merged.performance.elapsed_ms = (self._clock() - start) * 1000
        logger.info(
            f"[ORCH] Parallel load completed for {page_type} in "
            f"{merged.performance.elapsed_ms:.2f}ms {merged.performance.to_dict()}"
        )
        return merged

    def get_operations_for_page_type(self, page_type: str, options: dict[str, Any]) -> list[PageOperation]:
        """page_type별 operation 테이블 (이름/필수 여부 고정)"""
        sanity = self.sanity
        slug = options.get("slug")

        if page_type == "home":
            return [
                PageOperation("featuredProducts", lambda: sanity.get_featured_products(3), required=True),
                PageOperation("featuredBlogPosts", lambda: sanity.get_blog_posts(featured=True, limit=3)),
                PageOperation("categories", sanity.get_categories),
                PageOperation("pageAnalytics", lambda: self.get_page_analytics("home")),
            ]
        if page_type == "blog":
            return [
                PageOperation("blogPosts", lambda: sanity.get_blog_posts(limit=options.get("limit") or 12), required=True),
                PageOperation("categories", self._get_blog_categories),
                PageOperation("featuredPosts", lambda: sanity.get_blog_posts(featured=True, limit=3)),
            ]
        if page_type == "product-catalog":
            return [
                PageOperation("products", lambda: sanity.get_available_products(**options), required=True),
                PageOperation("categories", sanity.get_categories, required=True),
                PageOperation("featuredProducts", lambda: sanity.get_featured_products(3)),
            ]
        if page_type == "single-product":
            return [
                PageOperation("product", lambda: sanity.get_product(slug), required=True),
                PageOperation("relatedProducts", lambda: self.get_related_products(slug)),
                PageOperation("productViews", lambda: self.get_product_analytics(slug)),
            ]
        if page_type == "single-blog-post":
            return [
                PageOperation("blogPost", lambda: sanity.get_blog_post(slug), required=True),
                PageOperation("relatedPosts", lambda: self.get_related_blog_posts(slug)),
                PageOperation("postViews", lambda: self.get_blog_post_analytics(slug)),
            ]

        logger.warning(f"[ORCH] Unknown page type: {page_type}")
        return []

    async def execute_with_retry(self, operation: PageOperation) -> OperationResult:
        """operation 실행 - 시도마다 타임아웃, 실패 시 retry_delay * attempt 대기 후 재시도

        not-found / content type / validation 오류는 재시도하지 않습니다.
        """
        last_error: Optional[BaseException] = None
        attempts = 0
        for attempt in range(1, self.retry_attempts + 1):
            attempts = attempt
            try:
                try:
                    value = await asyncio.wait_for(operation.fn(), timeout=self.operation_timeout_s)
                except asyncio.TimeoutError:
                    raise OperationTimeoutException(operation.name, self.operation_timeout_s)
                return OperationResult.ok(operation.name, value, operation.required, attempt)
            except Exception as e:
                last_error = e
                logger.warning(f"[ORCH] Operation {operation.name} failed (attempt {attempt}): {e}")
                if isinstance(e, NON_RETRYABLE):
                    break
                if attempt < self.retry_attempts:
                    await self._sleep(self.retry_delay_s * attempt)

        return OperationResult.err(operation.name, last_error, operation.required, attempts)

    @staticmethod
    def process_results(results: list[OperationResult]) -> PageContentResult:
        merged = PageContentResult(performance=LoadPerformance(total_operations=len(results)))
        for result in results:
            if result.is_ok:
                merged.data[result.name] = result.value
                merged.performance.successful += 1
                continue

            merged.errors.append({
                "operation": result.name,
                "error": result.error_message,
                "required": result.required,
            })
            merged.performance.failed += 1
            if result.required:
                merged.performance.critical_failures += 1
            merged.data[result.name] = fallback_for_operation(result.name)

        merged.success = merged.performance.critical_failures == 0
        if merged.errors:
            logger.warning(f"[ORCH] Some operations failed: {merged.errors}")
        return merged

    @staticmethod
    def get_fallback_content(page_type: str) -> PageContentResult:
        return PageContentResult(
            success=False,
            data={},
            errors=[f"Failed to load content for {page_type}"],
            performance=LoadPerformance(total_operations=0, failed=1, critical_failures=1),
        )

    # ------------------------------------------------------------------
    # 보조 operation
    # ------------------------------------------------------------------
    async def _get_blog_categories(self) -> list[dict[str, Any]]:
        if self.public_content is None:
            return []
        return await self.public_content.get_blog_categories()

    async def get_related_products(self, slug: Optional[str]) -> list[dict[str, Any]]:
        """같은 카테고리 상품 (최대 4개)"""
        if not slug:
            return []
        try:
            product = await self.sanity.get_product(slug)
            category = (product or {}).get("category") or {}
            if category.get("slug"):
                return await self.sanity.get_available_products(category=category["slug"], limit=4)
        except Exception as e:
            logger.warning(f"[ORCH] Failed to get related products for {slug}: {e}")
        return []

    async def get_related_blog_posts(self, slug: Optional[str]) -> list[dict[str, Any]]:
        if not slug or self.public_content is None:
            return []
        try:
            post = await self.sanity.get_blog_post(slug)
            if post:
                return await self.public_content.get_related_blog_posts(post, 3)
        except Exception as e:
            logger.warning(f"[ORCH] Failed to get related posts for {slug}: {e}")
        return []

    async def _get_views(self, collection: str, doc_id: Optional[str]) -> dict[str, Any]:
        if self.analytics is None or not doc_id:
            return empty_views()
        return await self.analytics.get_views(collection, doc_id)

    async def get_page_analytics(self, page: str) -> dict[str, Any]:
        return await self._get_views(PAGE_VIEWS, page)

    async def get_product_analytics(self, slug: Optional[str]) -> dict[str, Any]:
        return await self._get_views(PRODUCT_VIEWS, slug)

    async def get_blog_post_analytics(self, slug: Optional[str]) -> dict[str, Any]:
        return await self._get_views(BLOG_VIEWS, slug)

    # ------------------------------------------------------------------
    # 캐시 관리
    # ------------------------------------------------------------------
    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("[ORCH] Content cache cleared")

    def get_cache_stats(self) -> dict[str, Any]:
        return {
            "size": len(self.cache),
            "active_loading": len(self.loading),
            "keys": self.cache.keys(),
        }

    async def preload_content(self, page_type: str, options: Optional[dict[str, Any]] = None) -> None:
        logger.info(f"[ORCH] Preloading content for: {page_type}")
        try:
            await self.load_page_content(page_type, options)
        except Exception as e:
            logger.warning(f"[ORCH] Preload failed for {page_type}: {e}")

    # ------------------------------------------------------------------
    # Content type 레지스트리
    # ------------------------------------------------------------------
    def register_content_type(self, content_type: str, handlers: dict[str, Any]) -> None:
        if not content_type or not isinstance(content_type, str):
            raise ContentTypeException("Content type must be a non-empty string")
        if not isinstance(handlers, dict):
            raise ContentTypeException("Handlers must be a mapping")
        if not callable(handlers.get("load")):
            raise ContentTypeException("Handler must include load method")

        self.content_types[content_type] = ContentTypeHandler(
            load=handlers["load"],
            preload=handlers.get("preload") or _noop,
            update=handlers.get("update") or _noop,
        )
        logger.info(f"[ORCH] Content type '{content_type}' registered")

    def get_content_type_handler(self, content_type: str) -> Optional[ContentTypeHandler]:
        return self.content_types.get(content_type)

    def _require_handler(self, content_type: str) -> ContentTypeHandler:
        handler = self.get_content_type_handler(content_type)
        if handler is None:
            raise ContentTypeException(f"Content type '{content_type}' is not registered")
        return handler

    async def load_content_type(self, content_type: str, options: Optional[dict[str, Any]] = None) -> Any:
        handler = self._require_handler(content_type)
        try:
            result = handler.load(options or {})
            return await result if inspect.isawaitable(result) else result
        except Exception as e:
            logger.error(f"[ORCH] Failed to load content type '{content_type}': {e}")
            raise

    async def update_content_type(self, content_type: str, data: Any) -> Any:
        handler = self._require_handler(content_type)
        try:
            result = handler.update(data)
            return await result if inspect.isawaitable(result) else result
        except Exception as e:
            logger.error(f"[ORCH] Failed to update content type '{content_type}': {e}")
            raise
