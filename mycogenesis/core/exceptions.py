"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class MycoException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# CMS(Sanity) 관련 예외
class CmsException(MycoException):
    """CMS 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "CMS_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CMS_ERROR", details)


class SanityApiException(CmsException):
    """Sanity API 호출 실패 (HTTP 오류, 잘못된 응답, 토큰 없음 등)"""
    def __init__(self, reason: str, status_code: Optional[int] = None, details: Optional[dict[str, Any]] = None):
        self.status_code = status_code
        # Resilience 분류기가 메시지/코드의 "sanity" 문자열로 판별합니다.
        self.code = f"sanity/{status_code}" if status_code else "sanity/error"
        message = f"sanity request failed: {reason}"
        super().__init__(message, "SANITY_API_ERROR",
                        details or {"reason": reason, "status_code": status_code})


# 데이터베이스(Firebase) 관련 예외
class DatabaseException(MycoException):
    """데이터베이스 관련 예외"""
    def __init__(self, message: str, error_code: str = "DB_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "DB_ERROR", details)


class FirebaseException(DatabaseException):
    """Firebase 예외 - code는 'auth/...' 또는 'firestore/...' 형식"""
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        self.code = code
        super().__init__(message, "FIREBASE_ERROR", details or {"code": code})


class FirebaseAuthException(FirebaseException):
    """Firebase Auth 오류 (auth/*)"""
    def __init__(self, code: str, message: str = "", details: Optional[dict[str, Any]] = None):
        if not code.startswith("auth/"):
            code = f"auth/{code}"
        super().__init__(code, message or f"Firebase auth error: {code}", details)


class FirestoreException(FirebaseException):
    """Firestore 오류 (firestore/*)"""
    def __init__(self, code: str, message: str = "", details: Optional[dict[str, Any]] = None):
        if not code.startswith("firestore/"):
            code = f"firestore/{code}"
        super().__init__(code, message or f"Firestore error: {code}", details)


# 네트워크/타임아웃
class NetworkException(MycoException):
    """네트워크 오류 (연결 실패, 오프라인 등)"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Network request failed: {reason}"
        super().__init__(message, "NETWORK_ERROR", details or {"reason": reason})


class OperationTimeoutException(MycoException):
    """operation 타임아웃"""
    def __init__(self, operation: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Operation '{operation}' timed out after {timeout_s}s"
        super().__init__(message, "TIMEOUT",
                        details or {"operation": operation, "timeout_s": timeout_s})


# 콘텐츠 관련 예외
class ContentNotFoundException(MycoException):
    """문서를 찾을 수 없을 때"""
    def __init__(self, content_type: str, slug: str, details: Optional[dict[str, Any]] = None):
        message = f"{content_type} not found: {slug}"
        super().__init__(message, "CONTENT_NOT_FOUND",
                        details or {"content_type": content_type, "slug": slug})


class ContentTypeException(MycoException):
    """등록되지 않았거나 잘못 등록된 콘텐츠 타입"""
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "CONTENT_TYPE_ERROR", details)


# 스토리지 관련 예외
class StorageException(MycoException):
    """Key/Value 스토리지 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Storage {operation} failed: {reason}"
        super().__init__(message, "STORAGE_ERROR",
                        details or {"operation": operation, "reason": reason})


# 유효성 검증 관련 예외
class ValidationException(MycoException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                        details or {"field": field, "reason": reason})


# 관리자 스크립트
class AdminException(MycoException):
    """관리자 작업 실패 (인증 사용자 없음, 프로필 없음 등)"""
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "ADMIN_ERROR", details)
