"""설정 관리 - 환경 변수 로드 및 검증"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # Sanity (Headless CMS)
    sanity_project_id: str = "gae98lpg"
    sanity_dataset: str = "production"
    sanity_api_version: str = "2024-01-01"
    sanity_use_cdn: bool = True
    sanity_token: Optional[str] = None
    sanity_timeout_s: float = 10.0

    # Firebase (Firestore REST + Auth REST)
    firebase_project_id: str = "mycogenesis"
    firebase_api_key: str = ""
    firebase_database: str = "(default)"
    firebase_timeout_s: float = 10.0

    # 캐시
    # - content_cache_ttl: 페이지 단위 오케스트레이터 캐시 (5분)
    # - cms_cache_ttl: Sanity 쿼리 단위 캐시 (5분)
    content_cache_ttl: int = 300
    content_cache_max_items: int = 200
    cms_cache_ttl: int = 300
    business_page_cache_ttl: int = 3600
    business_page_cache_max_items: int = 20
    tutorial_cache_ttl: int = 3600
    tutorial_cache_max_items: int = 20
    faq_cache_ttl: int = 1800
    faq_cache_max_items: int = 50

    # 오케스트레이터 (operation 단위 타임아웃/재시도)
    orchestrator_operation_timeout_s: float = 5.0
    orchestrator_retry_attempts: int = 3
    orchestrator_retry_delay_s: float = 1.0

    # Resilience 래퍼 (시도 1회당 하드 타임아웃)
    resilience_operation_timeout_s: float = 10.0
    fallback_data_ttl_s: int = 24 * 60 * 60

    # 스토리지 (브라우저 localStorage 대체)
    # memory | file | redis
    storage_backend: str = "memory"
    storage_path: str = ".mycogenesis-storage.json"
    redis_url: str = ""

    # API
    api_title: str = "MYCOgenesis Content Service"
    api_version: str = "1.0.0"
    api_description: str = "Sanity/Firestore 콘텐츠를 캐시/재시도/폴백과 함께 제공합니다."
    api_request_timeout_s: float = 20.0

    # 렌더링 (SEO canonical URL 기준)
    site_url: str = "https://mycogenesis.com"
    site_name: str = "MYCOgenesis"

    # 로깅
    log_level: str = "INFO"

    @field_validator(
        "content_cache_ttl",
        "cms_cache_ttl",
        "business_page_cache_ttl",
        "tutorial_cache_ttl",
        "faq_cache_ttl",
        "fallback_data_ttl_s",
    )
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache ttl must be positive")
        return v

    @field_validator(
        "content_cache_max_items",
        "business_page_cache_max_items",
        "tutorial_cache_max_items",
        "faq_cache_max_items",
        "orchestrator_retry_attempts",
    )
    @classmethod
    def validate_counts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache sizes and retry attempts must be positive")
        return v

    @field_validator(
        "orchestrator_operation_timeout_s",
        "resilience_operation_timeout_s",
        "sanity_timeout_s",
        "firebase_timeout_s",
        "api_request_timeout_s",
    )
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("orchestrator_retry_delay_s")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("orchestrator_retry_delay_s must be >= 0")
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "file", "redis"):
            raise ValueError("storage_backend must be one of: memory, file, redis")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
