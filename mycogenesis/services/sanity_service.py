"""Sanity CMS 서비스 - GROQ 쿼리 + 이미지 URL + TTL 캐시

- (query, params) 단위 인메모리 TTL 캐시
- 목록 조회는 실패 시 [] / 단건 조회는 None (strict=False)
- strict=True면 예외를 그대로 올려 상위 Resilience 계층이 분류/재시도합니다.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from mycogenesis.clients.sanity import ImageUrl, ImageUrlBuilder, SanityClient
from mycogenesis.core.config import settings
from mycogenesis.core.logging import logger
from mycogenesis.utils.ttl_cache import TTLCache, make_cache_key

PRODUCT_PROJECTION = """{
    _id,
    name,
    slug,
    shortDescription,
    description,
    images[] {
        asset,
        alt,
        isPrimary
    },
    category->{name, slug, description, color},
    availability,
    price,
    healthBenefits,
    cookingTips,
    nutritionalInfo,
    isFeatured,
    sortOrder
}"""

BLOG_POST_LIST_PROJECTION = """{
    _id,
    title,
    slug,
    excerpt,
    featuredImage {
        asset,
        alt
    },
    author,
    categories,
    tags,
    publishedAt,
    readingTime,
    isFeatured,
    status
}"""

BLOG_POST_PROJECTION = """{
    _id,
    title,
    slug,
    excerpt,
    content,
    featuredImage {
        asset,
        alt
    },
    author,
    categories,
    tags,
    publishedAt,
    readingTime,
    isFeatured,
    status,
    seo
}"""

BUSINESS_PAGE_LIST_PROJECTION = """{
    _id,
    title,
    slug,
    subtitle,
    pageType,
    excerpt,
    heroImage {
        asset,
        alt,
        caption
    },
    showInNavigation,
    navigationOrder,
    publishedAt,
    lastUpdated,
    status,
    requiresAuth
}"""

BUSINESS_PAGE_PROJECTION = """{
    _id,
    _updatedAt,
    title,
    slug,
    subtitle,
    pageType,
    excerpt,
    seoTitle,
    seoDescription,
    heroImage {
        asset,
        alt,
        caption
    },
    mainContent,
    sidebar,
    callToAction,
    tags,
    publishedAt,
    lastUpdated,
    status,
    seo
}"""

TUTORIAL_PROJECTION = """{
    _id,
    title,
    slug,
    subtitle,
    description,
    tutorialType,
    difficulty,
    estimatedTime,
    category,
    introduction,
    featuredImage {
        asset,
        alt,
        caption
    },
    materials[],
    steps[],
    conclusion,
    publishedAt,
    lastUpdated,
    status,
    tags,
    seo
}"""

FAQ_PROJECTION = """{
    _id,
    question,
    slug,
    answer,
    category,
    categories,
    keywords,
    popular,
    priority,
    lastUpdated
}"""


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"[SANITY] unparseable datetime: {value!r}")
        return None


def _flatten_slug(slug: Any) -> Optional[str]:
    if isinstance(slug, dict):
        return slug.get("current")
    return slug


class SanityService:
    """Sanity 콘텐츠 조회 서비스"""

    def __init__(
        self,
        client: Optional[SanityClient] = None,
        cache_ttl_s: Optional[float] = None,
        strict: bool = False,
    ) -> None:
        self.client = client or SanityClient()
        self.builder = ImageUrlBuilder(self.client.project_id, self.client.dataset)
        self.cache = TTLCache(cache_ttl_s or settings.cms_cache_ttl)
        self.strict = strict

    # ------------------------------------------------------------------
    # 저수준 API
    # ------------------------------------------------------------------
    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None, use_cache: bool = True) -> Any:
        """캐시를 거친 GROQ 실행 (예외는 항상 전파)"""
        cache_key = make_cache_key(query, params or {})
        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("[SANITY] cache hit")
                return cached

        result = await self.client.fetch(query, params)
        if use_cache and result is not None:
            self.cache.set(cache_key, result)
        return result

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("[SANITY] query cache cleared")

    def url_for(self, source: Any) -> ImageUrl:
        return self.builder.image(source)

    def _image_url(self, source: Any, width: int, height: int) -> Optional[str]:
        try:
            return self.url_for(source).width(width).height(height).format("webp").url()
        except ValueError as e:
            logger.warning(f"[SANITY] image url build failed: {e}")
            return None

    async def _fetch_list(self, label: str, query: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        try:
            return await self.fetch(query, params) or []
        except Exception as e:
            if self.strict:
                raise
            logger.error(f"[SANITY] Error fetching {label}: {e}")
            return []

    async def _fetch_one(self, label: str, query: str, params: Optional[dict[str, Any]] = None) -> Optional[dict[str, Any]]:
        try:
            return await self.fetch(query, params)
        except Exception as e:
            if self.strict:
                raise
            logger.error(f"[SANITY] Error fetching {label}: {e}")
            return None

    # ------------------------------------------------------------------
    # 상품 / 카테고리
    # ------------------------------------------------------------------
    async def get_featured_products(self, limit: int = 3) -> list[dict[str, Any]]:
        query = (
            f'*[_type == "product" && isFeatured == true] | order(sortOrder asc) [0...{int(limit)}] '
            f"{PRODUCT_PROJECTION}"
        )
        return self.transform_products(await self._fetch_list("featured products", query))

    async def get_available_products(self, limit: int = 20, category: Optional[str] = None, **_: Any) -> list[dict[str, Any]]:
        query = '*[_type == "product" && availability != "discontinued"'
        if category:
            query += " && category->slug.current == $category"
        query += f"] | order(sortOrder asc, name asc) [0...{int(limit)}] {PRODUCT_PROJECTION}"
        products = await self._fetch_list("available products", query, {"category": category})
        return self.transform_products(products)

    async def get_product(self, slug: str) -> Optional[dict[str, Any]]:
        query = f'*[_type == "product" && slug.current == $slug][0] {PRODUCT_PROJECTION}'
        product = await self._fetch_one("product", query, {"slug": slug})
        return self.transform_product(product) if product else None

    async def get_categories(self) -> list[dict[str, Any]]:
        query = """*[_type == "category" && isActive == true] | order(sortOrder asc) {
            _id,
            name,
            slug,
            description,
            image {
                asset,
                alt
            },
            color,
            sortOrder
        }"""
        return self.transform_categories(await self._fetch_list("categories", query))

    # ------------------------------------------------------------------
    # 블로그
    # ------------------------------------------------------------------
    async def get_blog_posts(
        self,
        limit: int = 10,
        featured: bool = False,
        category: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        query = '*[_type == "blogPost" && status == "published"'
        if featured:
            query += " && isFeatured == true"
        if category:
            query += " && $category in categories"
        query += f"] | order(publishedAt desc) [0...{int(limit)}] {BLOG_POST_LIST_PROJECTION}"
        posts = await self._fetch_list("blog posts", query, {"category": category})
        return self.transform_blog_posts(posts)

    async def get_blog_post(self, slug: str) -> Optional[dict[str, Any]]:
        query = (
            f'*[_type == "blogPost" && slug.current == $slug && status == "published"][0] '
            f"{BLOG_POST_PROJECTION}"
        )
        post = await self._fetch_one("blog post", query, {"slug": slug})
        return self.transform_blog_post(post) if post else None

    # ------------------------------------------------------------------
    # 비즈니스 페이지 / 튜토리얼 / FAQ
    # ------------------------------------------------------------------
    async def get_business_pages(self, navigation: bool = False, page_type: Optional[str] = None) -> list[dict[str, Any]]:
        query = '*[_type == "businessPage" && status == "published"'
        if navigation:
            query += " && showInNavigation == true"
        if page_type:
            query += " && pageType == $pageType"
        query += f"] | order(navigationOrder asc) {BUSINESS_PAGE_LIST_PROJECTION}"
        pages = await self._fetch_list("business pages", query, {"pageType": page_type})
        return [self.transform_business_page(p) for p in pages]

    async def get_business_page(self, slug: str) -> Optional[dict[str, Any]]:
        query = (
            f'*[_type == "businessPage" && slug.current == $slug && status == "published"][0] '
            f"{BUSINESS_PAGE_PROJECTION}"
        )
        page = await self._fetch_one("business page", query, {"slug": slug})
        return self.transform_business_page(page) if page else None

    async def get_tutorials(
        self,
        limit: int = 10,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        query = '*[_type == "tutorialGuide" && status == "published"'
        if category:
            query += " && category == $category"
        if difficulty:
            query += " && difficulty == $difficulty"
        query += f"] | order(publishedAt desc) [0...{int(limit)}] {TUTORIAL_PROJECTION}"
        tutorials = await self._fetch_list(
            "tutorials", query, {"category": category, "difficulty": difficulty}
        )
        return [self.transform_tutorial(t) for t in tutorials]

    async def get_tutorial(self, slug: str) -> Optional[dict[str, Any]]:
        query = (
            f'*[_type == "tutorialGuide" && slug.current == $slug && status == "published"][0] '
            f"{TUTORIAL_PROJECTION}"
        )
        tutorial = await self._fetch_one("tutorial", query, {"slug": slug})
        return self.transform_tutorial(tutorial) if tutorial else None

    async def get_faqs(
        self,
        category: Optional[str] = None,
        search_term: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        query = '*[_type == "faq"'
        if category:
            query += " && (category == $category || $category in categories)"
        if search_term:
            query += " && (question match $searchTerm || pt::text(answer) match $searchTerm)"
        query += f"] | order(popular desc)[0...{int(limit)}] {FAQ_PROJECTION}"
        faqs = await self._fetch_list(
            "FAQs",
            query,
            {"category": category, "searchTerm": f"*{search_term}*" if search_term else None},
        )
        return [self.transform_faq(f) for f in faqs]

    async def get_faq_categories(self) -> list[dict[str, Any]]:
        query = """*[_type == "faqCategory"] | order(title) {
            _id,
            title,
            slug,
            description
        }"""
        categories = await self._fetch_list("FAQ categories", query)
        return [{**c, "slug": _flatten_slug(c.get("slug"))} for c in categories]

    async def test_connection(self) -> bool:
        try:
            await self.fetch('*[_type == "product"][0]', use_cache=False)
            return True
        except Exception as e:
            logger.error(f"[SANITY] connection test failed: {e}")
            return False

    # ------------------------------------------------------------------
    # 변환
    # ------------------------------------------------------------------
    def transform_products(self, products: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [self.transform_product(p) for p in products]

    def transform_product(self, product: dict[str, Any]) -> dict[str, Any]:
        images = product.get("images") or []
        primary = next((img for img in images if img.get("isPrimary")), images[0] if images else None)

        category = product.get("category")
        if isinstance(category, dict):
            category = {**category, "slug": _flatten_slug(category.get("slug"))}

        return {
            **product,
            "slug": _flatten_slug(product.get("slug")),
            "category": category,
            "images": [
                {**img, "url": self._image_url(img.get("asset"), 800, 600)} for img in images
            ],
            "primaryImage": (
                {**primary, "url": self._image_url(primary.get("asset"), 800, 600)} if primary else None
            ),
        }

    def transform_blog_posts(self, posts: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [self.transform_blog_post(p) for p in posts]

    def transform_blog_post(self, post: dict[str, Any]) -> dict[str, Any]:
        featured = post.get("featuredImage")
        return {
            **post,
            "slug": _flatten_slug(post.get("slug")),
            "featuredImage": (
                {**featured, "url": self._image_url(featured.get("asset"), 1200, 630)} if featured else None
            ),
            "publishedAt": _parse_datetime(post.get("publishedAt")),
        }

    def transform_categories(self, categories: list[dict[str, Any]]) -> list[dict[str, Any]]:
        result = []
        for category in categories:
            image = category.get("image")
            result.append({
                **category,
                "slug": _flatten_slug(category.get("slug")),
                "image": {**image, "url": self._image_url(image.get("asset"), 400, 300)} if image else None,
            })
        return result

    def transform_business_page(self, page: dict[str, Any]) -> dict[str, Any]:
        hero = page.get("heroImage")
        return {
            **page,
            "slug": _flatten_slug(page.get("slug")),
            "heroImage": {**hero, "url": self._image_url(hero.get("asset"), 1600, 800)} if hero else None,
            "publishedAt": _parse_datetime(page.get("publishedAt")),
            "lastUpdated": _parse_datetime(page.get("lastUpdated")),
        }

    def transform_tutorial(self, tutorial: dict[str, Any]) -> dict[str, Any]:
        featured = tutorial.get("featuredImage")
        steps = []
        for step in tutorial.get("steps") or []:
            if step.get("images"):
                step = {
                    **step,
                    "images": [
                        {**img, "url": self._image_url(img.get("asset"), 800, 600)} for img in step["images"]
                    ],
                }
            steps.append(step)
        return {
            **tutorial,
            "slug": _flatten_slug(tutorial.get("slug")),
            "featuredImage": (
                {**featured, "url": self._image_url(featured.get("asset"), 1200, 630)} if featured else None
            ),
            "steps": steps,
            "publishedAt": _parse_datetime(tutorial.get("publishedAt")),
            "lastUpdated": _parse_datetime(tutorial.get("lastUpdated")),
        }

    def transform_faq(self, faq: dict[str, Any]) -> dict[str, Any]:
        return {
            **faq,
            "slug": _flatten_slug(faq.get("slug")),
            "lastUpdated": _parse_datetime(faq.get("lastUpdated")),
        }
