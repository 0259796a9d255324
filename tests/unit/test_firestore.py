"""Firestore REST 클라이언트 / 쿼리 빌더 / 값 코덱 / 공개 콘텐츠 / 조회수 테스트"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from mycogenesis.clients.firestore import (
    SERVER_TIMESTAMP,
    FirestoreClient,
    FirestoreDocument,
    Query,
    decode_fields,
    encode_value,
)
from mycogenesis.clients.http_client import SharedHttpClient
from mycogenesis.core.exceptions import FirestoreException, NetworkException
from mycogenesis.services.analytics_service import PRODUCT_VIEWS, AnalyticsService
from mycogenesis.services.public_content_service import PublicContentService

ROOT = "projects/test/databases/(default)/documents"


def make_client(handler) -> FirestoreClient:
    return FirestoreClient(
        project_id="test",
        database="(default)",
        api_key="key",
        http_client=SharedHttpClient(transport=httpx.MockTransport(handler)),
    )


def raw_document(path: str, fields: dict) -> dict:
    return {
        "name": f"{ROOT}/{path}",
        "fields": fields,
        "createTime": "2024-01-01T00:00:00.123456789Z",
        "updateTime": "2024-01-02T00:00:00Z",
    }


class TestValues:
    def test_encode_scalar_types(self) -> None:
        assert encode_value(True) == {"booleanValue": True}
        assert encode_value(3) == {"integerValue": "3"}
        assert encode_value(1.5) == {"doubleValue": 1.5}
        assert encode_value(None) == {"nullValue": None}
        assert encode_value(datetime(2024, 1, 1, tzinfo=timezone.utc)) == {
            "timestampValue": "2024-01-01T00:00:00.000000Z"
        }

    def test_server_timestamp_encodes_as_timestamp(self) -> None:
        assert "timestampValue" in encode_value(SERVER_TIMESTAMP)

    def test_decode_nested_map_and_array(self) -> None:
        fields = {
            "tags": {"arrayValue": {"values": [{"stringValue": "gourmet"}, {"stringValue": "fresh"}]}},
            "meta": {"mapValue": {"fields": {"views": {"integerValue": "42"}}}},
            "empty": {"arrayValue": {}},
        }

        assert decode_fields(fields) == {"tags": ["gourmet", "fresh"], "meta": {"views": 42}, "empty": []}

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(TypeError):
            encode_value(object())


class TestQuery:
    def test_single_filter_order_and_limit(self) -> None:
        query = Query("blogs").where("status", "==", "published").order_by("publishedAt", "desc").limit(10)

        assert query.to_structured_query() == {
            "from": [{"collectionId": "blogs"}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": "status"},
                    "op": "EQUAL",
                    "value": {"stringValue": "published"},
                }
            },
            "orderBy": [{"field": {"fieldPath": "publishedAt"}, "direction": "DESCENDING"}],
            "limit": 10,
        }

    def test_multiple_filters_become_composite(self) -> None:
        structured = Query("products").where("featured", "==", True).where("availability", "==", "available") \
            .to_structured_query()

        assert structured["where"]["compositeFilter"]["op"] == "AND"
        assert len(structured["where"]["compositeFilter"]["filters"]) == 2

    def test_query_is_immutable(self) -> None:
        base = Query("blogs")
        base.where("status", "==", "published")

        assert base.filters == ()

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError):
            Query("blogs").where("status", "~=", "x")
        with pytest.raises(ValueError):
            Query("blogs").order_by("title", "sideways")
        with pytest.raises(ValueError):
            Query("blogs").limit(0)


class TestFirestoreClient:
    @pytest.mark.asyncio
    async def test_get_document_decodes(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["key"] == "key"
            return httpx.Response(200, json=raw_document("users/u1", {"role": {"stringValue": "admin"}}))

        document = await make_client(handler).get_document("users/u1")

        assert document.id == "u1"
        assert document.path == "users/u1"
        assert document.data == {"role": "admin"}
        assert document.create_time.microsecond == 123456

    @pytest.mark.asyncio
    async def test_get_missing_document_returns_none(self) -> None:
        client = make_client(lambda request: httpx.Response(404, json={"error": {"message": "not found"}}))

        assert await client.get_document("users/none") is None

    @pytest.mark.asyncio
    async def test_error_status_maps_to_code(self) -> None:
        client = make_client(lambda request: httpx.Response(403, json={"error": {"message": "denied"}}))

        with pytest.raises(FirestoreException) as exc_info:
            await client.get_document("users/u1")
        assert exc_info.value.code == "firestore/permission-denied"

    @pytest.mark.asyncio
    async def test_transport_error_raises_network_exception(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timeout", request=request)

        with pytest.raises(NetworkException):
            await make_client(handler).get_document("users/u1")

    @pytest.mark.asyncio
    async def test_run_query_skips_read_time_entries(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["structuredQuery"]["from"] == [{"collectionId": "blogs"}]
            return httpx.Response(200, json=[
                {"document": raw_document("blogs/b1", {"title": {"stringValue": "Spores"}}), "readTime": "x"},
                {"readTime": "2024-01-01T00:00:00Z"},
            ])

        documents = await make_client(handler).run_query(Query("blogs"))

        assert [d.to_dict() for d in documents] == [{"id": "b1", "title": "Spores"}]

    @pytest.mark.asyncio
    async def test_update_document_sends_mask_and_precondition(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = request.url.params
            return httpx.Response(200, json=raw_document("users/u1", {"role": {"stringValue": "admin"}}))

        await make_client(handler).update_document("users/u1", {"role": "admin"})

        assert seen["params"].get_list("updateMask.fieldPaths") == ["role"]
        assert seen["params"]["currentDocument.exists"] == "true"

    @pytest.mark.asyncio
    async def test_with_id_token_sends_bearer(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=raw_document("users/u1", {}))

        await make_client(handler).with_id_token("token-1").get_document("users/u1")

        assert seen["auth"] == "Bearer token-1"


def doc(doc_id: str, **data) -> FirestoreDocument:
    return FirestoreDocument(id=doc_id, path=f"blogs/{doc_id}", data=data)


class TestPublicContentService:
    @pytest.mark.asyncio
    async def test_blog_categories_sorted_by_count_then_name(self) -> None:
        client = MagicMock()
        client.run_query = AsyncMock(return_value=[
            doc("b1", category="growing"),
            doc("b2", category="recipes"),
            doc("b3", category="growing"),
            doc("b4", category="foraging"),
            doc("b5"),
        ])

        categories = await PublicContentService(client).get_blog_categories()

        assert categories == [
            {"name": "growing", "count": 2},
            {"name": "foraging", "count": 1},
            {"name": "recipes", "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_errors_return_empty(self) -> None:
        client = MagicMock()
        client.run_query = AsyncMock(side_effect=FirestoreException("unavailable"))
        service = PublicContentService(client)

        assert await service.get_published_blog_posts() == []
        assert await service.get_blog_post_by_slug("x") is None
        assert await service.get_featured_products() == []

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self) -> None:
        client = MagicMock()
        client.run_query = AsyncMock(return_value=[
            doc("b1", title="Growing Lion's Mane"),
            doc("b2", title="Oyster recipes", tags=["lion"]),
            doc("b3", title="Shiitake"),
        ])

        results = await PublicContentService(client).search_content("  LION ", content_types=("blogs",))

        assert [item["id"] for item in results["blogs"]] == ["b1", "b2"]

    @pytest.mark.asyncio
    async def test_related_posts_fill_with_recent(self) -> None:
        service = PublicContentService(MagicMock())
        service.get_published_blog_posts = AsyncMock(side_effect=[
            [{"id": "b2"}],
            [{"id": "b2"}, {"id": "b3"}, {"id": "b4"}],
        ])

        related = await service.get_related_blog_posts({"id": "b1", "category": "growing"}, limit=3)

        assert [p["id"] for p in related] == ["b2", "b3", "b4"]


class TestAnalyticsService:
    @pytest.mark.asyncio
    async def test_views_default_when_missing(self) -> None:
        client = MagicMock()
        client.get_document = AsyncMock(return_value=None)

        assert await AnalyticsService(client).get_product_analytics("reishi") == {"views": 0, "lastViewed": None}

    @pytest.mark.asyncio
    async def test_record_view_increments(self) -> None:
        client = MagicMock()
        client.increment_field = AsyncMock(return_value=5)

        assert await AnalyticsService(client).record_view(PRODUCT_VIEWS, "reishi") == 5
        assert client.increment_field.await_args.args[:3] == ("product-views/reishi", "viewCount", 1)

    @pytest.mark.asyncio
    async def test_sync_creates_document_for_visible_product(self) -> None:
        client = MagicMock()
        client.get_document = AsyncMock(return_value=None)
        client.set_document = AsyncMock()

        await AnalyticsService(client).sync_content_update(PRODUCT_VIEWS, "reishi", "update", {"availability": "available"})

        path, data = client.set_document.await_args.args
        assert path == "product-views/reishi"
        assert data["sanityProductId"] == "reishi"
        assert data["viewCount"] == 0

    @pytest.mark.asyncio
    async def test_sync_delete_removes_document(self) -> None:
        client = MagicMock()
        client.delete_document = AsyncMock()

        await AnalyticsService(client).sync_content_update(PRODUCT_VIEWS, "reishi", "delete", {})

        client.delete_document.assert_awaited_once_with("product-views/reishi")
