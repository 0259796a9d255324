"""사용자 알림 (toast 대체)

알림은 로그로 남기고 최근 N개를 보관합니다. 렌더링 계층이 꺼내서 배너로 표시합니다.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from mycogenesis.core.logging import logger


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    timestamp: float = field(default_factory=time.time)


class Notifier:
    def __init__(self, max_items: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items)

    def notify(self, message: str, level: NotificationLevel | str = NotificationLevel.INFO) -> Notification:
        notification = Notification(message=message, level=NotificationLevel(level))
        self._items.append(notification)
        if notification.level == NotificationLevel.ERROR:
            logger.error(f"[NOTIFY] {message}")
        elif notification.level == NotificationLevel.WARNING:
            logger.warning(f"[NOTIFY] {message}")
        else:
            logger.info(f"[NOTIFY] ({notification.level.value}) {message}")
        return notification

    @property
    def notifications(self) -> list[Notification]:
        return list(self._items)

    def latest(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def drain(self) -> list[Notification]:
        items = list(self._items)
        self._items.clear()
        return items
