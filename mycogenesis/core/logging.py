"""로깅 설정

모든 모듈은 mycogenesis 로거 하나를 쓰고, 메시지 앞에 [ORCH], [RESILIENCE] 같은 태그를 붙입니다.
ENVIRONMENT=production 에서는 DEBUG가 INFO로 올라가고 짧은 포맷을 씁니다.
"""
import logging
import os
import re
import sys

from mycogenesis.core.config import settings

LOGGER_NAME = "mycogenesis"
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

PRODUCTION_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEVELOPMENT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# key=value / "key": "value" / Bearer xxx 형태의 비밀값
_SECRET_PATTERNS = (
    re.compile(r"(?i)\b(password|token|api_?key|secret|idToken)(\s*[=:]\s*\"?)([^\s\"&,}]+)"),
    re.compile(r"(?i)\b(bearer)(\s+)([A-Za-z0-9._\-]+)"),
)


def _resolve_level(name: str) -> int:
    level = getattr(logging, name.upper(), logging.INFO)
    if IS_PRODUCTION and level < logging.INFO:
        return logging.INFO
    return level


def setup_logging() -> logging.Logger:
    """mycogenesis 로거 초기화 (핸들러는 한 번만 추가)"""
    log = logging.getLogger(LOGGER_NAME)
    level = _resolve_level(settings.log_level)
    log.setLevel(level)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(
            fmt=PRODUCTION_FORMAT if IS_PRODUCTION else DEVELOPMENT_FORMAT,
            datefmt=DATE_FORMAT,
        ))
        log.addHandler(handler)
    return log


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """비밀값을 *** 로 가리고 max_length로 자른 문자열"""
    if not value:
        return "[empty]"

    result = value
    for pattern in _SECRET_PATTERNS:
        result = pattern.sub(lambda m: f"{m.group(1)}{m.group(2)}***", result)

    if len(result) > max_length:
        result = result[:max_length] + "..."
    return result
