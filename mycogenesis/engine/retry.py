"""Retry Policy - 지수 백오프 정책

delay = min(base_delay * backoff_factor ** attempt, max_delay), jitter면 ±25%
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional

from mycogenesis.core.exceptions import ContentNotFoundException, ContentTypeException, ValidationException

JITTER_RATIO = 0.25

# 재시도해도 결과가 바뀌지 않는 예외
NON_RETRYABLE = (ContentNotFoundException, ContentTypeException, ValidationException)


@dataclass(frozen=True)
class RetryPolicy:
    """재시도 정책

    Attributes:
        max_retries: 최초 시도 이후 추가 재시도 횟수 (총 시도 = max_retries + 1)
        base_delay: 기본 대기 (초)
        max_delay: 최대 대기 (초)
        backoff_factor: 지수 배수
        jitter: ±25% 무작위 편차 적용 여부
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int, rand: Optional[Callable[[], float]] = None) -> float:
        """attempt(0부터)번째 실패 후 대기 시간 (초)"""
        exponential = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if not self.jitter:
            return exponential
        rand = rand or random.random
        spread = exponential * JITTER_RATIO
        return exponential + (rand() * 2 - 1) * spread


DEFAULT_POLICIES: dict[str, RetryPolicy] = {
    # API 호출: 지수 백오프
    "api-call": RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0, backoff_factor=2.0, jitter=True),
    # 네트워크 오류: 빠른 재시도
    "network": RetryPolicy(max_retries=2, base_delay=0.5, max_delay=2.0, backoff_factor=1.5, jitter=False),
    # 서비스 불가: 느긋한 재시도
    "service-unavailable": RetryPolicy(max_retries=5, base_delay=5.0, max_delay=30.0, backoff_factor=2.0, jitter=True),
}
