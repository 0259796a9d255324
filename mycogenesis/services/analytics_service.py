"""조회수 분석 서비스 (Firestore *-views 컬렉션)

- page-views/{page}, product-views/{slug}, blog-views/{slug}
- 문서: {viewCount, lastViewed, createdAt}
- 생성/증가는 트랜잭션 없이 read-modify-write 입니다.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from mycogenesis.clients.firestore import SERVER_TIMESTAMP, FirestoreClient
from mycogenesis.core.logging import logger

PAGE_VIEWS = "page-views"
PRODUCT_VIEWS = "product-views"
BLOG_VIEWS = "blog-views"


def empty_views() -> dict[str, Any]:
    return {"views": 0, "lastViewed": None}


class AnalyticsService:
    def __init__(self, client: Optional[FirestoreClient] = None) -> None:
        self.client = client or FirestoreClient()

    async def get_views(self, collection: str, doc_id: str) -> dict[str, Any]:
        """조회수 조회 - 문서가 없으면 {views: 0, lastViewed: None}"""
        if not doc_id:
            return empty_views()
        doc = await self.client.get_document(f"{collection}/{doc_id}")
        if doc is None:
            return empty_views()
        return {
            "views": int(doc.data.get("viewCount") or 0),
            "lastViewed": doc.data.get("lastViewed"),
        }

    async def get_page_analytics(self, page: str) -> dict[str, Any]:
        return await self.get_views(PAGE_VIEWS, page)

    async def get_product_analytics(self, slug: str) -> dict[str, Any]:
        return await self.get_views(PRODUCT_VIEWS, slug)

    async def get_blog_post_analytics(self, slug: str) -> dict[str, Any]:
        return await self.get_views(BLOG_VIEWS, slug)

    async def record_view(self, collection: str, doc_id: str) -> int:
        """조회수 +1 (문서가 없으면 생성)"""
        count = await self.client.increment_field(
            f"{collection}/{doc_id}",
            "viewCount",
            1,
            lastViewed=datetime.now(timezone.utc),
        )
        logger.debug(f"[ANALYTICS] {collection}/{doc_id} viewCount={count}")
        return count

    async def sync_content_update(self, collection: str, doc_id: str, action: str, data: dict[str, Any]) -> None:
        """CMS 문서 변경에 맞춰 분석 문서를 생성/삭제

        - delete: 분석 문서 삭제
        - 그 외: 노출 가능한 문서(단종 아님/발행됨)면 분석 문서가 없을 때 생성
        """
        path = f"{collection}/{doc_id}"
        if action == "delete":
            await self.client.delete_document(path)
            logger.info(f"[ANALYTICS] Removed analytics for deleted document: {path}")
            return

        visible = (
            data.get("availability") != "discontinued"
            if collection == PRODUCT_VIEWS
            else data.get("status") == "published"
        )
        if not visible:
            return

        existing = await self.client.get_document(path)
        if existing is None:
            id_field = "sanityProductId" if collection == PRODUCT_VIEWS else "sanityPostId"
            await self.client.set_document(path, {
                id_field: doc_id,
                "viewCount": 0,
                "lastViewed": None,
                "createdAt": SERVER_TIMESTAMP,
            })
            logger.info(f"[ANALYTICS] Created analytics document: {path}")
