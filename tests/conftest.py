"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (CMS 서비스, 스토리지, sleep)
- 전역 상태 초기화
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("ENVIRONMENT", "test")

from mycogenesis.core.storage import MemoryStorage  # noqa: E402
from mycogenesis.engine import Notifier  # noqa: E402
from mycogenesis.engine.resilience import ErrorResilienceService  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


class SleepRecorder:
    """asyncio.sleep 대체 - 대기 시간만 기록"""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


def make_sanity_service(**overrides: Any) -> MagicMock:
    """SanityService 모의 객체 (모든 조회는 빈 결과)"""
    service = MagicMock()
    service.get_featured_products = AsyncMock(return_value=[{"_id": "p1", "name": "Lion's Mane"}])
    service.get_available_products = AsyncMock(return_value=[])
    service.get_product = AsyncMock(return_value=None)
    service.get_categories = AsyncMock(return_value=[{"_id": "c1", "name": "Gourmet", "slug": "gourmet"}])
    service.get_blog_posts = AsyncMock(return_value=[])
    service.get_blog_post = AsyncMock(return_value=None)
    service.get_business_pages = AsyncMock(return_value=[])
    service.get_business_page = AsyncMock(return_value=None)
    service.get_tutorials = AsyncMock(return_value=[])
    service.get_tutorial = AsyncMock(return_value=None)
    service.get_faqs = AsyncMock(return_value=[])
    service.get_faq_categories = AsyncMock(return_value=[])
    service.test_connection = AsyncMock(return_value=True)
    service.client = MagicMock()
    service.client.create = AsyncMock(return_value={"_id": "rating-1"})
    service.cache = {}
    for name, value in overrides.items():
        setattr(service, name, value)
    return service


@pytest.fixture
def sanity_service() -> MagicMock:
    return make_sanity_service()


@pytest.fixture
def resilience(storage, notifier, no_sleep) -> ErrorResilienceService:
    return ErrorResilienceService(storage=storage, notifier=notifier, sleep=no_sleep, operation_timeout_s=1.0)


@pytest.fixture
def tutorial_doc() -> dict[str, Any]:
    return {
        "_id": "tut-1",
        "title": "Growing Oyster Mushrooms",
        "slug": "growing-oyster-mushrooms",
        "difficulty": "beginner",
        "excerpt": "Grow oysters on straw at home.",
        "steps": [
            {"title": "Prepare substrate", "content": []},
            {"title": "Inoculate", "content": []},
            {"title": "Incubate", "content": []},
            {"title": "Fruit", "content": []},
        ],
    }


@pytest.fixture
def faq_docs() -> list[dict[str, Any]]:
    return [
        {
            "_id": "faq-1",
            "question": "How do I store fresh mushrooms?",
            "answer": [{"_type": "block", "children": [{"_type": "span", "text": "Keep them in a paper bag in the fridge."}]}],
            "category": "storage",
            "keywords": ["fridge"],
            "priority": "high",
        },
        {
            "_id": "faq-2",
            "question": "Do you ship nationwide?",
            "answer": [{"_type": "block", "children": [{"_type": "span", "text": "We ship to all lower 48 states."}]}],
            "category": "shipping",
            "priority": "medium",
        },
        {
            "_id": "faq-3",
            "question": "Are grow kits reusable?",
            "answer": [{"_type": "block", "children": [{"_type": "span", "text": "Most kits produce two or three flushes."}]}],
            "categories": ["growing", "storage"],
        },
    ]


@pytest.fixture
def faq_categories() -> list[dict[str, Any]]:
    return [
        {"title": "Storage", "slug": "storage"},
        {"title": "Shipping", "slug": "shipping"},
        {"title": "Growing", "slug": "growing"},
    ]
