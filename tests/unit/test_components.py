"""렌더러 / SEO / FAQ / 튜토리얼 / 비즈니스 페이지 / 홈 카드 테스트"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mycogenesis.components import (
    BusinessPageComponent,
    ContentRenderer,
    FAQComponent,
    SEOManager,
    TutorialComponent,
    render_blog_cards,
    render_featured_products,
    render_page,
)
from mycogenesis.components.tutorial import OVERVIEW_STEP, progress_key
from mycogenesis.core.exceptions import ContentNotFoundException, SanityApiException


def text_block(text, style="normal", marks=None, list_item=None, mark_defs=None):
    block = {
        "_type": "block",
        "style": style,
        "children": [{"_type": "span", "text": text, "marks": marks or []}],
        "markDefs": mark_defs or [],
    }
    if list_item:
        block["listItem"] = list_item
    return block


@pytest.fixture
def seo() -> SEOManager:
    return SEOManager(base_url="https://myco.test/", site_name="MYCOgenesis")


class TestContentRenderer:
    def test_heading_and_paragraph(self) -> None:
        html = ContentRenderer().render_blocks([text_block("Substrates", style="h2"), text_block("Straw works.")])

        assert html == (
            '<h2 class="text-2xl font-bold mt-8 mb-4">Substrates</h2>'
            '<p class="mb-4">Straw works.</p>'
        )

    def test_consecutive_list_items_grouped(self) -> None:
        html = ContentRenderer().render_blocks([
            text_block("one", list_item="bullet"),
            text_block("two", list_item="bullet"),
            text_block("first", list_item="number"),
            text_block("after"),
        ])

        assert html.count("<ul") == 1
        assert html.count("<ol") == 1
        assert '<ul class="list-disc ml-6 mb-4"><li>one</li><li>two</li></ul>' in html
        assert html.endswith('</ol><p class="mb-4">after</p>')

    def test_text_is_escaped_and_marks_applied(self) -> None:
        html = ContentRenderer().render_blocks([text_block("<script>x</script>", marks=["strong"])])

        assert "<script>" not in html
        assert '<strong class="font-semibold">&lt;script&gt;' in html

    def test_link_annotations(self) -> None:
        block = text_block("About us", marks=["k1"], mark_defs=[
            {"_key": "k1", "_type": "internalLink", "type": "businessPage", "slug": "about"},
        ])
        external = text_block("Docs", marks=["k2"], mark_defs=[
            {"_key": "k2", "_type": "link", "href": "https://example.com/?a=1&b=2", "blank": True},
        ])

        html = ContentRenderer().render_blocks([block, external])

        assert 'href="/pages/business/about"' in html
        assert 'href="https://example.com/?a=1&amp;b=2"' in html
        assert 'target="_blank"' in html

    def test_custom_blocks(self) -> None:
        html = ContentRenderer().render_blocks([
            {"_type": "calloutBox", "type": "warning", "title": "Careful", "content": "Keep it humid"},
            {"_type": "statsGrid", "stats": [{"number": "500+", "label": "Growers"}]},
            {"_type": "timeline", "events": [{"title": "Founded", "date": "2019", "isImportant": True}]},
            {"_type": "mystery"},
        ])

        assert "bg-amber-50" in html
        assert "Keep it humid" in html
        assert "lg:grid-cols-1" in html
        assert "text-teal-800" in html

    def test_image_block_uses_resolver(self) -> None:
        renderer = ContentRenderer(image_url=lambda block: "https://cdn.test/img.jpg")

        html = renderer.render_blocks([{"_type": "image", "asset": {"_ref": "x"}, "alt": "Oysters", "width": "small"}])

        assert 'src="https://cdn.test/img.jpg"' in html
        assert "w-1/4 mx-auto" in html

    def test_non_list_input_renders_empty(self) -> None:
        assert ContentRenderer().render_blocks(None) == ""

    def test_extract_text(self) -> None:
        blocks = [text_block("Hello"), {"_type": "image"}, text_block("")]

        assert ContentRenderer.extract_text(blocks) == ["Hello"]
        assert ContentRenderer.extract_text("plain") == ["plain"]


class TestSEOManager:
    def test_business_page_seo(self, seo) -> None:
        seo.set_business_page_seo({"title": "About", "slug": "about", "excerpt": "Who we are", "tags": ["farm"]})

        assert seo.title == "About | MYCOgenesis"
        assert seo.canonical_url == "https://myco.test/pages/business/about"
        assert seo.properties["og:type"] == "article"
        assert seo.meta["keywords"] == "farm"
        assert seo.structured_data["@type"] == "Article"

    def test_tutorial_seo_steps(self, seo, tutorial_doc) -> None:
        seo.set_tutorial_seo(tutorial_doc)

        steps = seo.structured_data["step"]
        assert seo.structured_data["@type"] == "HowTo"
        assert len(steps) == 4
        assert steps[1]["url"] == "https://myco.test/pages/tutorials/growing-oyster-mushrooms#step-2"
        assert seo.meta["tutorial:difficulty"] == "beginner"

    def test_faq_seo_search_url(self, seo, faq_docs) -> None:
        seo.set_faq_seo(faq_docs, search_term="fresh mushrooms")

        assert seo.title == "FAQ: fresh mushrooms | MYCOgenesis"
        assert seo.canonical_url == "https://myco.test/pages/faq?search=fresh%20mushrooms"
        assert len(seo.structured_data["mainEntity"]) == 3

    def test_error_state(self, seo) -> None:
        seo.set_error_state("404")

        assert seo.title == "Page Not Found | MYCOgenesis"
        assert seo.meta["robots"] == "noindex, nofollow"

    def test_validate(self, seo) -> None:
        result = seo.validate()
        assert result["is_valid"] is False
        assert "Missing meta description" in result["issues"]

        seo.set_basic_seo("Home", "desc", "/img.jpg", "https://myco.test/")
        assert seo.validate() == {"is_valid": True, "issues": []}

    def test_structured_data_cannot_close_script(self, seo) -> None:
        seo.set_structured_data({"name": "</script><script>alert(1)"})

        assert "</script>" not in seo.structured_data_json()

    def test_render_meta_tags(self, seo) -> None:
        seo.set_basic_seo("Home & Garden", "desc", "/img.jpg", "https://myco.test/")

        head = seo.render_meta_tags()

        assert "Home &amp; Garden" in head
        assert 'rel="canonical"' in head


class TestFAQComponent:
    @pytest.fixture
    def component(self, faq_docs, faq_categories) -> FAQComponent:
        return FAQComponent().init(faq_docs, faq_categories)

    def test_filter_by_category_checks_both_fields(self, component) -> None:
        assert [f["_id"] for f in component.filter_by_category("storage")] == ["faq-1", "faq-3"]

    def test_search_matches_keywords_and_answer(self, component) -> None:
        assert [f["_id"] for f in component.search_faqs("  FRIDGE ")] == ["faq-1"]
        assert [f["_id"] for f in component.search_faqs("flushes")] == ["faq-3"]

    def test_clear_filters(self, component) -> None:
        component.filter_by_category("shipping")
        component.search_faqs("nothing matches")

        assert len(component.clear_filters()) == 3
        assert component.selected_category == "all"

    def test_toggle_expanded(self, component) -> None:
        assert component.toggle_expanded("faq-1") is True
        assert component.toggle_expanded("faq-1") is False
        assert component.expanded_items == set()

    def test_grouped_by_priority(self, component) -> None:
        groups = component.grouped_faqs()

        assert [f["_id"] for f in groups["high"]] == ["faq-1"]
        assert [f["_id"] for f in groups["medium"]] == ["faq-2", "faq-3"]
        assert groups["low"] == []

    def test_category_counts(self, component) -> None:
        assert component.category_counts() == {"storage": 2, "shipping": 1, "growing": 1}
        assert component.get_category_name("shipping") == "Shipping"
        assert component.get_category_name("unknown") == "unknown"

    def test_highlight_escapes(self, component) -> None:
        component.search_faqs("store")

        assert component.highlight("How do I <b>store</b>?") == (
            'How do I &lt;b&gt;<mark class="bg-yellow-200">store</mark>&lt;/b&gt;?'
        )

    @pytest.mark.asyncio
    async def test_rate_without_coordinator(self, component) -> None:
        assert await component.rate_faq("faq-1", True) is False
        assert component.feedback == "Thanks for your feedback!"

    @pytest.mark.asyncio
    async def test_rate_submits_through_coordinator(self, component) -> None:
        component.coordinator = MagicMock()
        component.coordinator.submit_faq_rating = AsyncMock(return_value=True)

        assert await component.rate_faq("faq-2", False, "too short") is True
        component.coordinator.submit_faq_rating.assert_awaited_once_with("faq-2", 0, "too short")

    @pytest.mark.asyncio
    async def test_load_applies_query_filters(self, faq_docs, faq_categories) -> None:
        coordinator = MagicMock()
        coordinator.load_faqs = AsyncMock(return_value=faq_docs)
        coordinator.get_faq_categories = AsyncMock(return_value=faq_categories)

        component = await FAQComponent().load(coordinator, category="storage", search_term="fridge")

        assert [f["_id"] for f in component.filtered_faqs] == ["faq-1"]

    @pytest.mark.asyncio
    async def test_load_failure_sets_error(self) -> None:
        coordinator = MagicMock()
        coordinator.load_faqs = AsyncMock(side_effect=SanityApiException("down", 503))

        component = await FAQComponent().load(coordinator)

        assert component.error is not None
        assert "faq-error" in component.render()

    def test_render(self, component) -> None:
        component.toggle_expanded("faq-2")

        html = component.render()

        assert 'id="faq-container"' in html
        assert 'data-faq-id="faq-1"' in html
        assert "High Priority" in html

    def test_seo_uses_category(self, component) -> None:
        component.filter_by_category("storage")

        seo = component.seo(SEOManager(base_url="https://myco.test", site_name="MYCOgenesis"))

        assert seo.canonical_url == "https://myco.test/pages/faq?category=storage"


class TestTutorialComponent:
    @pytest.fixture
    def component(self, storage, tutorial_doc) -> TutorialComponent:
        return TutorialComponent(storage=storage).init(tutorial_doc)

    def test_toggle_step_persists_progress(self, component, storage) -> None:
        assert component.toggle_step_complete(2) is True

        saved = json.loads(storage.get_item(progress_key("tut-1")))
        assert saved["currentStep"] == 0
        assert saved["completedSteps"] == [2]
        assert "lastAccessed" in saved
        assert component.progress_percent == 25.0

    def test_progress_restored_on_init(self, storage, tutorial_doc) -> None:
        storage.set_item(progress_key("tut-1"), json.dumps({"currentStep": 3, "completedSteps": [0, 1]}))

        component = TutorialComponent(storage=storage).init(tutorial_doc)

        assert component.current_step == 3
        assert component.completed_steps == {0, 1}

    def test_corrupt_progress_ignored(self, storage, tutorial_doc) -> None:
        storage.set_item(progress_key("tut-1"), "{oops")

        component = TutorialComponent(storage=storage).init(tutorial_doc)

        assert component.current_step == 0

    def test_reset_progress_removes_key(self, component, storage) -> None:
        component.toggle_step_complete(1)
        component.reset_progress()

        assert storage.get_item(progress_key("tut-1")) is None
        assert component.completed_steps == set()

    def test_navigation(self, component) -> None:
        assert component.previous_step() is False
        assert component.go_to_step(3) is True
        assert component.go_to_step(4) is False
        assert component.next_step() is False
        assert component.is_complete is True

        component.show_overview()
        assert component.current_step == OVERVIEW_STEP

    def test_render_step(self, component) -> None:
        component.go_to_step(1)

        html = component.render()

        assert 'id="tutorial-container"' in html
        assert "Inoculate" in html

    @pytest.mark.asyncio
    async def test_load_not_found(self) -> None:
        coordinator = MagicMock()
        coordinator.load_tutorial = AsyncMock(side_effect=ContentNotFoundException("tutorial", "nope"))

        component = await TutorialComponent().load(coordinator, "nope")

        assert component.not_found is True
        assert "Tutorial Not Found" in component.render()
        assert component.seo(SEOManager(base_url="", site_name="MYCOgenesis")).title == "Page Not Found | MYCOgenesis"


class TestBusinessPageComponent:
    def test_sidebar_block_list_is_wrapped(self) -> None:
        component = BusinessPageComponent().init({"title": "About", "sidebar": [text_block("Side")]})

        assert component.sidebar == {"content": [text_block("Side")], "quickLinks": []}

    def test_hidden_sidebar(self) -> None:
        component = BusinessPageComponent().init({"title": "About", "sidebar": {"showSidebar": False}})

        assert component.sidebar is None

    def test_cta_section_normalized(self) -> None:
        component = BusinessPageComponent().init({
            "title": "About",
            "ctaSection": {
                "showCta": True,
                "title": "Start growing",
                "primaryButton": {"text": "Shop kits", "url": "/products"},
            },
        })

        assert component.call_to_action == {
            "heading": "Start growing",
            "description": None,
            "buttonText": "Shop kits",
            "buttonUrl": "/products",
        }
        assert "Shop kits" in component.render()

    def test_render_main_content(self) -> None:
        page = {"title": "Our Story", "slug": "about", "mainContent": [text_block("Since 2019")]}

        html = BusinessPageComponent().init(page).render()

        assert 'id="business-page-container"' in html
        assert "Since 2019" in html

    @pytest.mark.asyncio
    async def test_load_error_renders_error_state(self) -> None:
        coordinator = MagicMock()
        coordinator.load_business_page = AsyncMock(side_effect=SanityApiException("down", 503))

        component = await BusinessPageComponent().load(coordinator, "about")

        assert component.error is not None
        assert "business-page-error" in component.render()


class TestHomeRenderers:
    def test_featured_products(self) -> None:
        html = render_featured_products([
            {"_id": "p1", "name": "Lion's Mane", "slug": "lions-mane", "availability": "seasonal"},
        ])

        assert 'id="featured-products"' in html
        assert 'data-product-id="p1"' in html
        assert "Seasonal" in html
        assert "/images/placeholder-mushroom.jpg" in html

    def test_featured_products_empty_state(self) -> None:
        assert "Featured Products Coming Soon" in render_featured_products(None)

    def test_blog_cards(self) -> None:
        html = render_blog_cards([{"_id": "b1", "title": "Spore prints", "slug": "spore-prints"}])

        assert 'id="blog"' in html
        assert 'data-post-id="b1"' in html

    def test_render_page_wraps_head_and_body(self) -> None:
        html = render_page("<title>T</title>", "<main>body</main>")

        assert "<title>T</title>" in html
        assert "<main>body</main>" in html
