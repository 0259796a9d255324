"""ContentCoordinator / ServiceCoordinator 테스트"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mycogenesis.core.exceptions import ContentNotFoundException, NetworkException, SanityApiException
from mycogenesis.core.storage import MemoryStorage
from mycogenesis.engine import ContentOrchestrator, RetryPolicy, ServiceCoordinator
from mycogenesis.engine.coordinator import ContentCoordinator, faq_cache_key


@pytest.fixture
def coordinator(sanity_service, resilience) -> ContentCoordinator:
    resilience.register_retry_policy(
        "api-call", RetryPolicy(max_retries=1, base_delay=0, max_delay=0, backoff_factor=1, jitter=False)
    )
    return ContentCoordinator(sanity_service, resilience)


class TestBusinessPages:
    @pytest.mark.asyncio
    async def test_load_caches_page(self, coordinator, sanity_service) -> None:
        sanity_service.get_business_page = AsyncMock(return_value={"_id": "bp1", "slug": "about", "title": "About"})

        first = await coordinator.load_business_page("about")
        second = await coordinator.load_business_page("about")

        assert first == second == {"_id": "bp1", "slug": "about", "title": "About"}
        sanity_service.get_business_page.assert_awaited_once_with("about")

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, coordinator, sanity_service) -> None:
        sanity_service.get_business_page = AsyncMock(return_value={"slug": "about"})

        await coordinator.load_business_page("about")
        await coordinator.load_business_page("about", force_refresh=True)

        assert sanity_service.get_business_page.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_page_raises_not_found(self, coordinator, sanity_service) -> None:
        with pytest.raises(ContentNotFoundException):
            await coordinator.load_business_page("nope")
        sanity_service.get_business_page.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cms_outage_serves_stored_fallback(self, coordinator, sanity_service, resilience) -> None:
        resilience.store_fallback_data("business-page", {"slug": "about", "title": "Cached"}, {"slug": "about"})
        sanity_service.get_business_page = AsyncMock(side_effect=SanityApiException("unavailable", 503))

        page = await coordinator.load_business_page("about")

        assert page == {"slug": "about", "title": "Cached"}

    @pytest.mark.asyncio
    async def test_fallback_not_cached_after_cms_recovers(self, coordinator, sanity_service, resilience) -> None:
        """장애 중 돌려준 폴백은 캐시/재저장하지 않고, 복구 후 바로 새 콘텐츠를 조회"""
        resilience.store_fallback_data("business-page", {"slug": "about", "title": "Stale"}, {"slug": "about"})
        entry = dict(next(iter(resilience.fallback_data.values())))
        sanity_service.get_business_page = AsyncMock(side_effect=SanityApiException("unavailable", 503))

        during = await coordinator.load_business_page("about")

        assert during == {"slug": "about", "title": "Stale"}
        assert "about" not in coordinator.business_pages
        assert next(iter(resilience.fallback_data.values()))["expires"] == entry["expires"]

        sanity_service.get_business_page = AsyncMock(return_value={"slug": "about", "title": "Fresh"})
        after = await coordinator.load_business_page("about")

        assert after == {"slug": "about", "title": "Fresh"}
        sanity_service.get_business_page.assert_awaited_once_with("about")
        assert resilience.get_fallback_data("business-page", {"slug": "about"})["title"] == "Fresh"

    @pytest.mark.asyncio
    async def test_concurrent_loads_deduplicated(self, coordinator, sanity_service) -> None:
        gate = asyncio.Event()

        async def slow(slug):
            await gate.wait()
            return {"slug": slug}

        sanity_service.get_business_page = AsyncMock(side_effect=slow)
        tasks = [asyncio.ensure_future(coordinator.load_business_page("about")) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert all(r == {"slug": "about"} for r in results)
        sanity_service.get_business_page.assert_awaited_once()
        assert coordinator.pending == {}

    def test_update_only_touches_cached_pages(self, coordinator) -> None:
        assert coordinator.update_business_page({"slug": {"current": "about"}, "title": "New"}) is False

        coordinator.business_pages.set("about", {"slug": "about", "title": "Old"})
        assert coordinator.update_business_page({"slug": {"current": "about"}, "title": "New"}) is True
        assert coordinator.business_pages.get("about") == {"slug": "about", "title": "New"}

    @pytest.mark.asyncio
    async def test_preload_limits_and_caches(self, coordinator, sanity_service) -> None:
        sanity_service.get_business_pages = AsyncMock(
            return_value=[{"slug": f"page-{i}"} for i in range(8)]
        )

        pages = await coordinator.preload_business_pages(limit=5)

        assert len(pages) == 5
        assert len(coordinator.business_pages) == 5


class TestTutorials:
    @pytest.mark.asyncio
    async def test_load_tutorial_stores_fallback(self, coordinator, sanity_service, resilience, tutorial_doc) -> None:
        sanity_service.get_tutorial = AsyncMock(return_value=tutorial_doc)

        tutorial = await coordinator.load_tutorial("growing-oyster-mushrooms")

        assert tutorial["_id"] == "tut-1"
        assert resilience.get_fallback_data("tutorial", {"slug": "growing-oyster-mushrooms"}) == tutorial_doc

    @pytest.mark.asyncio
    async def test_preload_tutorials_error_returns_empty(self, coordinator, sanity_service) -> None:
        sanity_service.get_tutorials = AsyncMock(side_effect=SanityApiException("down", 500))

        assert await coordinator.preload_tutorials() == []

    @pytest.mark.asyncio
    async def test_offline_placeholder_is_not_content(self, coordinator, sanity_service, resilience) -> None:
        resilience.set_online(False)
        sanity_service.get_tutorial = AsyncMock(side_effect=NetworkException("connection refused"))

        assert await coordinator.load_tutorial("growing-oyster-mushrooms") is None
        assert len(coordinator.tutorials) == 0
        assert resilience.fallback_data == {}


class TestFaqs:
    def test_cache_key_format(self) -> None:
        assert faq_cache_key(None, None, 100) == "faqs:all:none:100"
        assert faq_cache_key("storage", "fridge", 10) == "faqs:storage:fridge:10"

    @pytest.mark.asyncio
    async def test_load_faqs_caches_and_loads_categories(
        self, coordinator, sanity_service, faq_docs, faq_categories
    ) -> None:
        sanity_service.get_faqs = AsyncMock(return_value=faq_docs)
        sanity_service.get_faq_categories = AsyncMock(return_value=faq_categories)

        faqs = await coordinator.load_faqs()
        again = await coordinator.load_faqs()
        categories = await coordinator.get_faq_categories()

        assert faqs == again == faq_docs
        sanity_service.get_faqs.assert_awaited_once_with(category=None, search_term=None, limit=100)
        assert categories == faq_categories
        sanity_service.get_faq_categories.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_load_faqs_returns_empty_list_when_handler_gives_none(self, coordinator, sanity_service) -> None:
        sanity_service.get_faqs = AsyncMock(side_effect=SanityApiException("down", 503))

        assert await coordinator.load_faqs() == []

    @pytest.mark.asyncio
    async def test_offline_faqs_are_empty_and_uncached(self, coordinator, sanity_service, resilience) -> None:
        resilience.set_online(False)
        sanity_service.get_faqs = AsyncMock(side_effect=NetworkException("connection refused"))

        assert await coordinator.load_faqs() == []
        assert len(coordinator.faqs) == 0

    @pytest.mark.asyncio
    async def test_category_error_returns_empty(self, coordinator, sanity_service) -> None:
        sanity_service.get_faq_categories = AsyncMock(side_effect=SanityApiException("down", 503))

        assert await coordinator.get_faq_categories() == []

    def test_update_invalidates_all_faq_entries(self, coordinator) -> None:
        coordinator.faqs.set(faq_cache_key(None, None, 100), [])
        coordinator.faqs.set(faq_cache_key("storage", None, 100), [])
        coordinator.categories.set("faq-categories", [])

        assert coordinator.update_faqs() == 2
        assert len(coordinator.faqs) == 0
        assert len(coordinator.categories) == 0

    @pytest.mark.asyncio
    async def test_submit_rating_creates_document(self, coordinator, sanity_service) -> None:
        assert await coordinator.submit_faq_rating("faq-1", 1, "great") is True

        document = sanity_service.client.create.await_args.args[0]
        assert document["_type"] == "faqRating"
        assert document["faq"] == {"_type": "reference", "_ref": "faq-1"}
        assert document["rating"] == 1
        assert document["feedback"] == "great"

    @pytest.mark.asyncio
    async def test_submit_rating_failure_returns_false(self, coordinator, sanity_service) -> None:
        sanity_service.client.create = AsyncMock(side_effect=SanityApiException("no token", 401))

        assert await coordinator.submit_faq_rating("faq-1", 0) is False


class TestContentTypeRegistration:
    @pytest.mark.asyncio
    async def test_registered_types_route_through_orchestrator(
        self, coordinator, sanity_service, no_sleep, tutorial_doc
    ) -> None:
        orchestrator = ContentOrchestrator(sanity_service, sleep=no_sleep)
        coordinator.register_content_types(orchestrator)
        sanity_service.get_tutorial = AsyncMock(return_value=tutorial_doc)

        tutorial = await orchestrator.load_content_type("tutorial", {"slug": "growing-oyster-mushrooms"})
        coordinator.tutorials.set("growing-oyster-mushrooms", tutorial_doc)
        updated = await orchestrator.update_content_type(
            "tutorial", {**tutorial_doc, "slug": {"current": "growing-oyster-mushrooms"}, "title": "v2"}
        )

        assert tutorial == tutorial_doc
        assert updated is True
        assert set(orchestrator.content_types) == {"business-page", "tutorial", "faq"}


class TestServiceCoordinator:
    @pytest.mark.asyncio
    async def test_initialize_and_cache_stats(self) -> None:
        coordinator = ServiceCoordinator(
            sanity_client=MagicMock(),
            firestore_client=MagicMock(),
            storage=MemoryStorage(),
        )

        await coordinator.initialize()
        stats = coordinator.get_cache_stats()

        assert coordinator.initialized is True
        assert set(coordinator.orchestrator.content_types) == {"business-page", "tutorial", "faq"}
        assert set(stats) == {"orchestrator", "coordinator", "cms"}

        await coordinator.shutdown()
        assert coordinator.initialized is False

    @pytest.mark.asyncio
    async def test_reconnect_clears_orchestrator_cache(self) -> None:
        coordinator = ServiceCoordinator(
            sanity_client=MagicMock(),
            firestore_client=MagicMock(),
            storage=MemoryStorage(),
        )
        await coordinator.initialize()
        coordinator.orchestrator.cache.set("home-{}", MagicMock())

        coordinator.resilience.set_online(False)
        coordinator.resilience.set_online(True)

        assert coordinator.orchestrator.get_cache_stats()["size"] == 0
