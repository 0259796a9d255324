"""Error Resilience Service - 재시도/에러 분류/폴백 데이터

execute_with_resilience(operation, context, error_type):
    1. 정책(RetryPolicy)에 따라 max_retries + 1회 시도 (시도마다 하드 타임아웃)
    2. 마지막 예외를 분류해 핸들러 선택
       - "sanity" (메시지/코드)          → sanity-api
       - code가 auth/ 또는 firestore/    → firebase-api
       - 네트워크/타임아웃/TypeError+fetch → network
       - 그 외                            → error_type으로 등록된 핸들러 (없으면 재발생)
    3. 핸들러는 저장된 폴백 데이터를 돌려주거나, 알림을 남기고 None을 반환
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import NetworkException, OperationTimeoutException, StorageException
from mycogenesis.core.logging import logger
from mycogenesis.core.storage import KeyValueStorage, MemoryStorage
from mycogenesis.utils.ttl_cache import make_cache_key

from .notifications import NotificationLevel, Notifier
from .retry import DEFAULT_POLICIES, NON_RETRYABLE, RetryPolicy

T = TypeVar("T")

ErrorHandler = Callable[[BaseException, dict[str, Any]], Awaitable[Any]]

FALLBACK_STORAGE_KEY = "myco-fallback-data"
MAX_RECORDED_ERRORS = 50

CRITICAL_PATTERNS = [
    re.compile(r"firebase.*initialization", re.IGNORECASE),
    re.compile(r"sanity.*client.*failed", re.IGNORECASE),
    re.compile(r"chunk.*load.*failed", re.IGNORECASE),
    re.compile(r"script.*error", re.IGNORECASE),
]


@dataclass
class ServiceHealth:
    status: str = "unknown"
    last_check: Optional[float] = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    def record_error(self, error: BaseException, context: dict[str, Any]) -> None:
        self.status = "error"
        self.errors.append({
            "message": str(error),
            "timestamp": time.time(),
            "context": context,
        })
        # 오래된 오류부터 버림
        del self.errors[:-MAX_RECORDED_ERRORS]


def error_code_of(error: BaseException) -> str:
    code = getattr(error, "code", None)
    return code if isinstance(code, str) else ""


def is_offline_placeholder(value: Any) -> bool:
    return isinstance(value, dict) and value.get("offline") is True


def is_network_error(error: BaseException) -> bool:
    if isinstance(error, (NetworkException, OperationTimeoutException, httpx.TransportError, asyncio.TimeoutError)):
        return True
    return isinstance(error, TypeError) and "fetch" in str(error)


class ErrorResilienceService:
    """재시도 + 에러 핸들러 레지스트리 + 폴백 데이터 저장소"""

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        notifier: Optional[Notifier] = None,
        policies: Optional[dict[str, RetryPolicy]] = None,
        operation_timeout_s: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        sanity_service: Any = None,
        firestore_client: Any = None,
    ) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self.notifier = notifier or Notifier()
        self.retry_policies: dict[str, RetryPolicy] = dict(policies or DEFAULT_POLICIES)
        self.operation_timeout_s = operation_timeout_s or settings.resilience_operation_timeout_s
        self._sleep = sleep
        self.sanity_service = sanity_service
        self.firestore_client = firestore_client

        self.service_health: dict[str, ServiceHealth] = {
            "sanity": ServiceHealth(),
            "firebase": ServiceHealth(),
            "connectivity": ServiceHealth(),
        }
        self.online = True
        self.fallback_data: dict[str, dict[str, Any]] = {}
        self.error_handlers: dict[str, ErrorHandler] = {}
        self._reconnect_callbacks: list[Callable[[], Any]] = []
        self._setup_error_handlers()

    async def initialize(self) -> None:
        self.load_fallback_data()
        logger.info("[RESILIENCE] Error resilience service initialized")

    # ------------------------------------------------------------------
    # 정책 / 핸들러 레지스트리
    # ------------------------------------------------------------------
    def register_retry_policy(self, name: str, policy: RetryPolicy) -> None:
        self.retry_policies[name] = policy

    def get_retry_policy(self, name: str) -> RetryPolicy:
        return self.retry_policies.get(name) or self.retry_policies["api-call"]

    def register_error_handler(self, name: str, handler: ErrorHandler) -> None:
        self.error_handlers[name] = handler

    def _setup_error_handlers(self) -> None:
        self.error_handlers["sanity-api"] = self._handle_sanity_error
        self.error_handlers["firebase-api"] = self._handle_firebase_error
        self.error_handlers["network"] = self._handle_network_error

    def get_error_handler(self, error: BaseException, default_type: str) -> Optional[ErrorHandler]:
        code = error_code_of(error)
        if "sanity" in str(error).lower() or "sanity" in code:
            return self.error_handlers.get("sanity-api")
        if code.startswith("auth/") or code.startswith("firestore/"):
            return self.error_handlers.get("firebase-api")
        if is_network_error(error):
            return self.error_handlers.get("network")
        return self.error_handlers.get(default_type)

    # ------------------------------------------------------------------
    # 실행
    # ------------------------------------------------------------------
    async def execute_with_resilience(
        self,
        operation: Callable[[], Awaitable[T]],
        context: Optional[dict[str, Any]] = None,
        error_type: str = "api-call",
    ) -> Optional[T]:
        """operation을 재시도 정책에 따라 실행하고, 최종 실패 시 핸들러로 위임

        Returns:
            operation 결과, 또는 핸들러가 돌려준 폴백 값(None 포함)

        Raises:
            마지막 예외 - 분류된 핸들러가 없을 때
        """
        if context is None:
            context = {}
        policy = self.get_retry_policy(error_type)
        op_name = context.get("operation", "unknown")
        start = time.monotonic()
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(policy.max_attempts):
            attempts = attempt + 1
            try:
                try:
                    result = await asyncio.wait_for(operation(), timeout=self.operation_timeout_s)
                except asyncio.TimeoutError:
                    raise OperationTimeoutException(op_name, self.operation_timeout_s)
                self.log_operation_metrics(context, attempts, time.monotonic() - start, True)
                return result
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[RESILIENCE] Operation {op_name} failed "
                    f"(attempt {attempts}/{policy.max_attempts}): {e}"
                )
                if isinstance(e, NON_RETRYABLE) or attempt == policy.max_retries:
                    break
                delay = policy.delay_for(attempt)
                logger.info(f"[RESILIENCE] Retrying {op_name} in {delay:.2f}s")
                await self._sleep(delay)

        self.log_operation_metrics(context, attempts, time.monotonic() - start, False)

        assert last_error is not None
        handler = self.get_error_handler(last_error, error_type)
        if handler is None:
            raise last_error
        # 핸들러 경로 표시 (실제 조회 결과가 아님)
        context["fallback"] = True
        return await handler(last_error, context)

    # ------------------------------------------------------------------
    # 핸들러
    # ------------------------------------------------------------------
    async def _handle_sanity_error(self, error: BaseException, context: dict[str, Any]) -> Any:
        logger.warning(f"[RESILIENCE] Sanity API error: {error}")
        self.service_health["sanity"].record_error(error, context)

        fallback = self.get_fallback_data(context.get("contentType"), context.get("options"))
        if fallback is not None:
            self.notifier.notify("Content loaded from cache due to service issues", NotificationLevel.WARNING)
            return fallback

        self.notifier.notify("Unable to load latest content. Please try again later.", NotificationLevel.ERROR)
        return None

    async def _handle_firebase_error(self, error: BaseException, context: dict[str, Any]) -> Any:
        logger.warning(f"[RESILIENCE] Firebase API error: {error}")
        self.service_health["firebase"].record_error(error, context)

        code = error_code_of(error)
        if code.startswith("auth/"):
            return await self.handle_auth_error(error, context)
        if code.startswith("firestore/"):
            return await self.handle_firestore_error(error, context)
        return None

    async def _handle_network_error(self, error: BaseException, context: dict[str, Any]) -> Any:
        logger.warning(f"[RESILIENCE] Network error: {error}")
        self.service_health["connectivity"].status = "error"

        if not self.online:
            return await self.handle_offline_mode(context)

        fallback = self.get_fallback_data(context.get("contentType"), context.get("options"))
        if fallback is not None:
            self.notifier.notify("Using cached data due to network issues", NotificationLevel.INFO)
            return fallback

        self.notifier.notify("Network unavailable. Some features may be limited.", NotificationLevel.WARNING)
        return None

    async def handle_auth_error(self, error: BaseException, context: dict[str, Any]) -> None:
        messages = {
            "auth/network-request-failed": ("Network connection required for authentication", NotificationLevel.WARNING),
            "auth/too-many-requests": ("Too many login attempts. Please wait and try again.", NotificationLevel.ERROR),
            "auth/user-disabled": ("Your account has been disabled. Please contact support.", NotificationLevel.ERROR),
        }
        message, level = messages.get(
            error_code_of(error),
            ("Authentication error. Please try logging in again.", NotificationLevel.ERROR),
        )
        self.notifier.notify(message, level)
        return None

    async def handle_firestore_error(self, error: BaseException, context: dict[str, Any]) -> Any:
        code = error_code_of(error)
        if code == "firestore/unavailable":
            fallback = self.get_fallback_data(context.get("contentType"), context.get("options"))
            if fallback is not None:
                self.notifier.notify("Using cached data while service recovers", NotificationLevel.INFO)
                return fallback
        elif code == "firestore/permission-denied":
            self.notifier.notify("Access denied. Please check your permissions.", NotificationLevel.ERROR)
        elif code == "firestore/quota-exceeded":
            self.notifier.notify("Service quota exceeded. Please try again later.", NotificationLevel.WARNING)
        return None

    async def handle_offline_mode(self, context: dict[str, Any]) -> Any:
        logger.info("[RESILIENCE] Entering offline mode")
        cached = self.get_fallback_data(context.get("contentType"), context.get("options"))
        if cached is not None:
            self.notifier.notify("You are offline. Showing cached content.", NotificationLevel.INFO)
            return cached

        self.notifier.notify("You are offline and no cached content is available.", NotificationLevel.WARNING)
        return self.get_offline_placeholder(context.get("contentType"))

    @staticmethod
    def get_offline_placeholder(content_type: Optional[str]) -> dict[str, Any]:
        placeholders = {
            "products": {
                "success": False,
                "data": {"featuredProducts": [], "products": []},
                "offline": True,
                "message": "Product catalog unavailable offline",
            },
            "blog": {
                "success": False,
                "data": {"blogPosts": [], "featuredPosts": []},
                "offline": True,
                "message": "Blog posts unavailable offline",
            },
        }
        return placeholders.get(content_type or "", {
            "success": False,
            "data": None,
            "offline": True,
            "message": "Content unavailable offline",
        })

    # ------------------------------------------------------------------
    # 폴백 데이터
    # ------------------------------------------------------------------
    def load_fallback_data(self) -> None:
        try:
            raw = self.storage.get_item(FALLBACK_STORAGE_KEY)
        except StorageException as e:
            logger.warning(f"[RESILIENCE] Failed to load fallback data: {e}")
            return
        if not raw:
            return
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[RESILIENCE] Corrupt fallback data ignored: {e}")
            return
        if isinstance(parsed, dict):
            self.fallback_data.update(parsed)
            logger.info(f"[RESILIENCE] Loaded {len(parsed)} fallback entries from storage")

    def store_fallback_data(self, content_type: str, data: Any, options: Optional[dict[str, Any]] = None) -> None:
        now = time.time()
        self.fallback_data[make_cache_key(content_type, options or {})] = {
            "data": data,
            "timestamp": now,
            "expires": now + settings.fallback_data_ttl_s,
        }
        try:
            self.storage.set_item(
                FALLBACK_STORAGE_KEY,
                json.dumps(self.fallback_data, ensure_ascii=False, default=str),
            )
        except StorageException as e:
            logger.warning(f"[RESILIENCE] Failed to store fallback data: {e}")

    def get_fallback_data(self, content_type: Optional[str], options: Optional[dict[str, Any]] = None) -> Any:
        """content_type+options 키 우선, 없으면 content_type 전체 키 (만료 항목 무시)"""
        if not content_type:
            return None
        now = time.time()
        for key in (make_cache_key(content_type, options or {}), make_cache_key(content_type, {})):
            entry = self.fallback_data.get(key)
            if not isinstance(entry, dict):
                continue
            if entry.get("expires") and entry["expires"] < now:
                continue
            return entry.get("data")
        return None

    # ------------------------------------------------------------------
    # 연결 상태 / 헬스 체크
    # ------------------------------------------------------------------
    def on_reconnect(self, callback: Callable[[], Any]) -> None:
        self._reconnect_callbacks.append(callback)

    def set_online(self, online: bool) -> None:
        was_online = self.online
        self.online = online
        self.service_health["connectivity"].status = "healthy" if online else "offline"
        if online and not was_online:
            self.notifier.notify("Connection restored", NotificationLevel.SUCCESS)
            for callback in self._reconnect_callbacks:
                callback()
        elif not online and was_online:
            self.notifier.notify("You are now offline", NotificationLevel.WARNING)

    @staticmethod
    def is_critical_error(error: Any) -> bool:
        text = getattr(error, "message", None) or str(error or "")
        return any(pattern.search(text) for pattern in CRITICAL_PATTERNS)

    async def check_sanity_health(self) -> None:
        health = self.service_health["sanity"]
        if self.sanity_service is not None:
            try:
                ok = await self.sanity_service.test_connection()
            except Exception as e:
                logger.warning(f"[RESILIENCE] Sanity health check failed: {e}")
                ok = False
            health.status = "healthy" if ok else "unhealthy"
        health.last_check = time.time()

    async def check_firebase_health(self) -> None:
        health = self.service_health["firebase"]
        if self.firestore_client is not None:
            try:
                await self.firestore_client.get_document("health-check/test")
                health.status = "healthy"
            except Exception as e:
                logger.warning(f"[RESILIENCE] Firebase health check failed: {e}")
                health.status = "unhealthy"
        health.last_check = time.time()

    async def check_connectivity_health(self) -> None:
        health = self.service_health["connectivity"]
        health.status = "healthy" if self.online else "offline"
        health.last_check = time.time()

    async def perform_health_checks(self) -> None:
        """Sanity/Firebase 점검 후 그 결과로 온라인 여부를 갱신

        설정된 백엔드가 하나라도 healthy면 온라인입니다. 오프라인에서 복귀하면
        on_reconnect 콜백이 실행됩니다.
        """
        results = await asyncio.gather(
            self.check_sanity_health(),
            self.check_firebase_health(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"[RESILIENCE] Health check raised: {result}")

        probed = [
            self.service_health[name].status
            for name, backend in (("sanity", self.sanity_service), ("firebase", self.firestore_client))
            if backend is not None
        ]
        if probed:
            self.set_online(any(status == "healthy" for status in probed))
        await self.check_connectivity_health()

    def get_service_health(self) -> dict[str, dict[str, Any]]:
        return {
            name: {"status": h.status, "last_check": h.last_check, "errors": len(h.errors)}
            for name, h in self.service_health.items()
        }

    def get_error_stats(self) -> dict[str, int]:
        sanity = len(self.service_health["sanity"].errors)
        firebase = len(self.service_health["firebase"].errors)
        return {"sanity": sanity, "firebase": firebase, "total": sanity + firebase}

    @staticmethod
    def log_operation_metrics(context: dict[str, Any], attempts: int, duration_s: float, success: bool) -> None:
        logger.info(
            f"[RESILIENCE] metrics operation={context.get('operation', 'unknown')} "
            f"attempts={attempts} duration_ms={duration_s * 1000:.1f} success={success}"
        )

    def shutdown(self) -> None:
        self._reconnect_callbacks.clear()
        logger.info("[RESILIENCE] Error resilience service shutdown")
