"""Key/Value 스토리지 - 브라우저 localStorage 대체

튜토리얼 진행도(tutorial_progress_<id>)와 폴백 데이터(myco-fallback-data)를
문자열 값으로 저장합니다. 백엔드는 settings.storage_backend로 선택합니다.
"""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional, Protocol

from redis import Redis

from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import StorageException
from mycogenesis.core.logging import logger


class KeyValueStorage(Protocol):
    """localStorage 호환 인터페이스"""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """프로세스 메모리 스토리지 (테스트/단일 프로세스용)"""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileStorage:
    """JSON 파일 하나에 전체 key/value를 저장하는 스토리지"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageException("read", str(e), {"path": str(self.path)})
        if not isinstance(data, dict):
            raise StorageException("read", "storage file must contain a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StorageException("write", str(e), {"path": str(self.path)})

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class RedisStorage:
    """Redis 스토리지 (여러 프로세스가 진행도/폴백 데이터를 공유할 때)"""

    KEY_PREFIX = "myco:storage:"

    def __init__(self, redis_url: Optional[str] = None) -> None:
        url = redis_url or settings.redis_url
        if not url:
            raise StorageException("connect", "redis_url is not configured")
        try:
            self.redis_client = Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.redis_client.ping()
            logger.info("Redis storage connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise StorageException("connect", str(e))

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self.redis_client.get(self.KEY_PREFIX + key)
        except Exception as e:
            raise StorageException("read", str(e), {"key": key})

    def set_item(self, key: str, value: str) -> None:
        try:
            self.redis_client.set(self.KEY_PREFIX + key, value)
        except Exception as e:
            raise StorageException("write", str(e), {"key": key})

    def remove_item(self, key: str) -> None:
        try:
            self.redis_client.delete(self.KEY_PREFIX + key)
        except Exception as e:
            raise StorageException("delete", str(e), {"key": key})

    def health_check(self) -> bool:
        try:
            self.redis_client.ping()
            return True
        except Exception:
            return False


def create_storage(backend: Optional[str] = None) -> KeyValueStorage:
    """설정에 맞는 스토리지 생성"""
    backend = (backend or settings.storage_backend).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return JsonFileStorage(settings.storage_path)
    if backend == "redis":
        return RedisStorage()
    raise ValueError(f"Unsupported storage backend: {backend}")
