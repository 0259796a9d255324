"""API 요청/응답 스키마"""
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator


class OperationError(BaseModel):
    """실패한 operation 요약"""
    operation: str = Field(..., description="operation 이름")
    error: str = Field(..., description="오류 메시지")
    required: bool = Field(..., description="필수 operation 여부")


class LoadPerformance(BaseModel):
    """병렬 로드 통계"""
    total_operations: int = Field(0, alias="totalOperations")
    successful: int = 0
    failed: int = 0
    critical_failures: int = Field(0, alias="criticalFailures")
    elapsed_ms: float = Field(0.0, alias="elapsedMs", ge=0)

    model_config = {"populate_by_name": True}


class PageContentResponse(BaseModel):
    """페이지 콘텐츠 응답 (success/data/errors/performance envelope)"""
    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    errors: list[Union[OperationError, str]] = Field(default_factory=list)
    performance: LoadPerformance
    from_cache: bool = Field(False, alias="fromCache")

    model_config = {"populate_by_name": True}


class FAQRatingRequest(BaseModel):
    """FAQ 평가 요청"""
    helpful: bool = Field(..., description="도움이 되었는지 여부")
    feedback: str = Field("", max_length=2000, description="자유 의견")

    @field_validator("feedback")
    @classmethod
    def strip_feedback(cls, v: str) -> str:
        return v.strip()


class FAQRatingResponse(BaseModel):
    status: str
    faq_id: str


class CacheClearResponse(BaseModel):
    status: str
    cleared: list[str]


class ServiceHealthEntry(BaseModel):
    status: str
    last_check: Optional[float] = None
    errors: int = 0


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealthEntry] = Field(default_factory=dict)
    cache: dict[str, Any] = Field(default_factory=dict)
