"""Public Content Service - Firestore 기반 공개 콘텐츠 조회

모든 메서드는 실패 시 로깅 후 [] / None을 반환합니다.
"검색"은 서버 쿼리가 아니라 조회 결과에 대한 단순 클라이언트 측 필터입니다.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Optional

from mycogenesis.clients.firestore import FirestoreClient, Query
from mycogenesis.core.logging import logger, sanitize_for_log

BLOGS_COLLECTION = "blogs"
PRODUCTS_COLLECTION = "products"

# 검색 대상 필드
SEARCH_FIELDS = ("title", "name", "excerpt", "description", "shortDescription", "content")


def _matches(item: dict[str, Any], term: str) -> bool:
    haystack: list[str] = []
    for field_name in SEARCH_FIELDS:
        value = item.get(field_name)
        if isinstance(value, str):
            haystack.append(value)
    for tag in item.get("tags") or []:
        if isinstance(tag, str):
            haystack.append(tag)
    return term in " ".join(haystack).lower()


class PublicContentService:
    """Firestore 공개 콘텐츠 어댑터"""

    def __init__(self, client: Optional[FirestoreClient] = None) -> None:
        self.client = client or FirestoreClient()

    async def get_published_blog_posts(
        self,
        limit: int = 10,
        featured: Optional[bool] = None,
        category: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        try:
            query = (
                Query(BLOGS_COLLECTION)
                .where("status", "==", "published")
                .order_by("publishedAt", "desc")
            )
            if featured is not None:
                query = query.where("featured", "==", featured)
            if category:
                query = query.where("category", "==", category)
            query = query.limit(limit)

            posts = [doc.to_dict() for doc in await self.client.run_query(query)]
            if exclude_id:
                posts = [p for p in posts if p.get("id") != exclude_id]
            return posts
        except Exception as e:
            logger.error(f"[PUBLIC] Error getting published blog posts: {e}")
            return []

    async def get_blog_post_by_slug(self, slug: str) -> Optional[dict[str, Any]]:
        if not slug:
            return None
        try:
            query = (
                Query(BLOGS_COLLECTION)
                .where("slug", "==", slug)
                .where("status", "==", "published")
                .limit(1)
            )
            docs = await self.client.run_query(query)
            return docs[0].to_dict() if docs else None
        except Exception as e:
            logger.error(f"[PUBLIC] Error getting blog post by slug: {e}")
            return None

    async def get_featured_products(self, limit: int = 6) -> list[dict[str, Any]]:
        try:
            query = (
                Query(PRODUCTS_COLLECTION)
                .where("featured", "==", True)
                .where("availability", "==", "available")
                .order_by("order", "asc")
                .limit(limit)
            )
            return [doc.to_dict() for doc in await self.client.run_query(query)]
        except Exception as e:
            logger.error(f"[PUBLIC] Error getting featured products: {e}")
            return []

    async def get_available_products(
        self,
        limit: Optional[int] = 20,
        category: Optional[str] = None,
        order_by: str = "order",
        direction: str = "asc",
    ) -> list[dict[str, Any]]:
        try:
            query = Query(PRODUCTS_COLLECTION).where("availability", "==", "available")
            if category:
                query = query.where("category", "==", category)
            query = query.order_by(order_by, direction)
            if limit:
                query = query.limit(limit)
            return [doc.to_dict() for doc in await self.client.run_query(query)]
        except Exception as e:
            logger.error(f"[PUBLIC] Error getting available products: {e}")
            return []

    async def get_blog_categories(self) -> list[dict[str, Any]]:
        """발행된 글의 카테고리와 글 수 (글 수 내림차순, 이름 오름차순)"""
        posts = await self.get_published_blog_posts(limit=100)
        counts = Counter(p["category"] for p in posts if p.get("category"))
        return [
            {"name": name, "count": count}
            for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]

    async def get_related_blog_posts(self, post: dict[str, Any], limit: int = 3) -> list[dict[str, Any]]:
        """같은 카테고리 글 우선, 부족하면 최신 글로 채움"""
        post_id = post.get("id") or post.get("_id")
        related: list[dict[str, Any]] = []
        if post.get("category"):
            related = await self.get_published_blog_posts(
                limit=limit + 1, category=post["category"], exclude_id=post_id
            )
        if len(related) < limit:
            seen = {p.get("id") for p in related}
            recent = await self.get_published_blog_posts(limit=limit + len(related) + 1, exclude_id=post_id)
            related.extend(p for p in recent if p.get("id") not in seen)
        return related[:limit]

    async def search_content(
        self,
        term: str,
        content_types: Iterable[str] = ("blogs", "products"),
    ) -> dict[str, list[dict[str, Any]]]:
        """대소문자 무시 부분 문자열 검색 (클라이언트 측 필터)"""
        needle = (term or "").strip().lower()
        results: dict[str, list[dict[str, Any]]] = {}
        if not needle:
            return {content_type: [] for content_type in content_types}

        logger.info(f"[PUBLIC] search: {sanitize_for_log(needle, 50)}")
        for content_type in content_types:
            if content_type == "blogs":
                items = await self.get_published_blog_posts(limit=50)
            elif content_type == "products":
                items = await self.get_available_products(limit=50)
            else:
                logger.warning(f"[PUBLIC] unknown content type for search: {content_type}")
                items = []
            results[content_type] = [item for item in items if _matches(item, needle)]
        return results
