"""Operation / Page Result - Standardized Result Format

operation 단위 결과(Ok | Err)와 페이지 단위 병합 결과를 정의합니다.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class OperationStatus(str, Enum):
    """operation 실행 상태"""

    OK = "fulfilled"
    ERR = "rejected"


@dataclass
class OperationResult:
    """단일 operation 결과 (tagged union)

    Attributes:
        name: operation 이름 (featuredProducts 등)
        status: OK | ERR
        value: 성공 값 (OK일 때만 의미 있음)
        error: 마지막 예외 (ERR일 때만)
        required: 필수 operation 여부
        attempts: 실행 시도 횟수
    """

    name: str
    status: OperationStatus
    value: Any = None
    error: Optional[BaseException] = None
    required: bool = False
    attempts: int = 1

    @property
    def is_ok(self) -> bool:
        return self.status == OperationStatus.OK

    @property
    def error_message(self) -> str:
        if self.error is None:
            return "Unknown error"
        return getattr(self.error, "message", None) or str(self.error) or type(self.error).__name__

    @classmethod
    def ok(cls, name: str, value: Any, required: bool = False, attempts: int = 1) -> "OperationResult":
        return cls(name=name, status=OperationStatus.OK, value=value, required=required, attempts=attempts)

    @classmethod
    def err(cls, name: str, error: BaseException, required: bool = False, attempts: int = 1) -> "OperationResult":
        return cls(name=name, status=OperationStatus.ERR, error=error, required=required, attempts=attempts)


@dataclass
class LoadPerformance:
    total_operations: int = 0
    successful: int = 0
    failed: int = 0
    critical_failures: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalOperations": self.total_operations,
            "successful": self.successful,
            "failed": self.failed,
            "criticalFailures": self.critical_failures,
            "elapsedMs": round(self.elapsed_ms, 2),
        }


@dataclass
class PageContentResult:
    """페이지 콘텐츠 병합 결과

    success는 필수 operation 실패(critical failure)가 0일 때만 True 입니다.
    """

    success: bool = True
    data: dict[str, Any] = field(default_factory=dict)
    errors: list[Any] = field(default_factory=list)
    performance: LoadPerformance = field(default_factory=LoadPerformance)
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "errors": self.errors,
            "performance": self.performance.to_dict(),
            "fromCache": self.from_cache,
        }
