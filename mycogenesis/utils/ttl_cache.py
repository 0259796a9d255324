"""인메모리 TTL 캐시

- 항목은 {data, timestamp} 형태로 저장되며 TTL이 지나면 조회 시 제거됩니다.
- max_items를 넘으면 가장 오래 저장된 항목부터 제거합니다.
- 락이 없습니다. 단일 이벤트 루프에서 await 사이에만 접근합니다.
"""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


def make_cache_key(prefix: str, payload: Any = None) -> str:
    """prefix + JSON 직렬화된 payload로 안정적인 캐시 키 생성

    dict 키 순서와 무관하게 같은 키가 나오도록 sort_keys를 사용합니다.
    """
    serialized = json.dumps(payload if payload is not None else {}, sort_keys=True, default=str, ensure_ascii=False)
    return f"{prefix}-{serialized}"


class TTLCache:
    def __init__(
        self,
        ttl_s: float,
        max_items: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        self.ttl_s = ttl_s
        self.max_items = max_items
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_s:
            del self._entries[key]
            return None
        return entry.data

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, data: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())
        if self.max_items is not None:
            while len(self._entries) > self.max_items:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)
